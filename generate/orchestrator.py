import logging
import math
from typing import Callable, Optional

from generate.adapter import ConversationClient
from generate.config import TOTAL_CONVERSATIONS_TO_GENERATE
from generate.models import GenerationRun, PersonaConfig, ThemeReport
from generate.validator import validate_conversations

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[GenerationRun], None]

MISSING_CREDENTIAL_MESSAGE = "Cannot generate: OPENAI_API_KEY is missing. Please configure it in your environment."
NO_THEMES_MESSAGE = "No dialogue themes selected. Please select at least one theme in Settings."
NO_ITEMS_MESSAGE = (
    "No conversations were generated. The model did not produce any usable output "
    "for the selected themes."
)


def per_theme_quota(target_total: int, n_themes: int) -> int:
    if n_themes <= 0:
        return 0
    return math.ceil(target_total / n_themes)


def request_count(quota: int, target_total: int, accumulated: int) -> int:
    return max(0, min(quota, target_total - accumulated))


def check_preconditions(persona: PersonaConfig, credential_present: bool) -> Optional[str]:
    if not credential_present:
        return MISSING_CREDENTIAL_MESSAGE
    if not persona.active_themes:
        return NO_THEMES_MESSAGE
    return None


def summarize(run: GenerationRun) -> None:
    """Set the terminal status and notice unless a hard error already did."""
    if run.status == "failed":
        return
    if run.count == 0:
        run.status = "empty"
        run.error_message = NO_ITEMS_MESSAGE
    elif run.count < run.target_total:
        run.status = "partial"
        run.error_message = (
            f"Process finished. Generated {run.count}/{run.target_total} conversations. "
            "Some themes yielded fewer results than requested."
        )
    else:
        run.status = "succeeded"
        run.error_message = None


class DatasetOrchestrator:
    """Runs one dataset generation at a time against an injected client.

    Themes are processed strictly in order, one client call each. The first
    failing call stops the run; items gathered so far are kept on the run.
    """

    def __init__(
        self,
        client: ConversationClient,
        target_total: int = TOTAL_CONVERSATIONS_TO_GENERATE,
    ):
        if target_total <= 0:
            raise ValueError("target_total must be positive")
        self.client = client
        self.target_total = target_total
        self.current: GenerationRun | None = None

    @property
    def is_running(self) -> bool:
        return self.current is not None and self.current.is_active

    def run(
        self,
        persona: PersonaConfig,
        credential_present: bool,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationRun:
        if self.is_running:
            raise RuntimeError("A generation run is already in progress.")

        snapshot = persona.model_copy(deep=True)
        run = GenerationRun(target_total=self.target_total)
        self.current = run

        problem = check_preconditions(snapshot, credential_present)
        if problem is not None:
            logger.warning("Generation rejected: %s", problem)
            run.status = "rejected"
            run.error_message = problem
            return run

        run.themes_remaining = list(snapshot.active_themes)
        run.is_active = True
        run.status = "running"
        try:
            self._process_themes(run, snapshot, on_progress)
        finally:
            run.is_active = False

        del run.accumulated[self.target_total:]
        summarize(run)
        logger.info(
            "Run finished with status %s: %d/%d conversations", run.status, run.count, run.target_total
        )
        return run

    def _process_themes(
        self,
        run: GenerationRun,
        persona: PersonaConfig,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        quota = per_theme_quota(self.target_total, len(run.themes_remaining))
        while run.themes_remaining:
            if run.count >= self.target_total:
                break
            theme = run.themes_remaining.pop(0)
            n = request_count(quota, self.target_total, run.count)
            if n <= 0:
                continue

            report = ThemeReport(theme=theme, requested=n)
            run.reports.append(report)
            try:
                raw_text = self.client.generate(theme, n, persona)
                items = validate_conversations(raw_text, theme, persona.user_name, persona.ai_name)
            except Exception as e:
                logger.error("Error generating conversations for theme %s: %s", theme, e)
                report.error = str(e)
                run.status = "failed"
                run.error_message = f"Failed for theme {theme}: {e}. Generation stopped."
                return

            report.received = len(items)
            if not items:
                run.diagnostics.append(f"No conversations returned for theme: {theme}")
                logger.warning("No conversations returned for theme: %s", theme)
            elif len(items) < n:
                run.diagnostics.append(f"Requested {n} but validated {len(items)} for theme: {theme}")
                logger.warning("Requested %d but validated %d for theme %s", n, len(items), theme)

            run.accumulated.extend(items)
            logger.info("Theme %s done: %d/%d", theme, run.display_count, self.target_total)
            if on_progress is not None:
                on_progress(run)
