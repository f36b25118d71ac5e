import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from pydantic import ValidationError

from generate.config import DIALOGUE_THEMES
from generate.models import PersonaConfig

logger = logging.getLogger(__name__)

PERSISTED_FIELDS = ("user_name", "ai_name", "ai_personality", "conversation_style", "active_themes")


def credential_present(dotenv_path: str = ".env") -> bool:
    load_dotenv(dotenv_path)
    return bool(os.getenv("OPENAI_API_KEY", "").strip())


class SettingsStore:
    """Persists the persona settings as a JSON file.

    Only persona fields are written; whether a credential is present is always
    derived from the environment at read time.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> PersonaConfig:
        if not self.path.exists():
            return PersonaConfig()
        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(stored, dict):
                raise ValueError("settings file must contain a JSON object")
            return PersonaConfig.model_validate(self._merge_defaults(stored))
        except (OSError, ValueError, ValidationError) as exc:
            logger.error("Failed to load settings from %s: %s", self.path, exc)
            return PersonaConfig()

    @staticmethod
    def _merge_defaults(stored: Dict[str, Any]) -> Dict[str, Any]:
        merged = PersonaConfig().model_dump()
        for key in PERSISTED_FIELDS:
            if key in stored:
                merged[key] = stored[key]
        themes = merged["active_themes"]
        if isinstance(themes, list):
            merged["active_themes"] = [t for t in themes if t in DIALOGUE_THEMES]
        else:
            merged["active_themes"] = list(DIALOGUE_THEMES)
        return merged

    def save(self, config: PersonaConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump(include=set(PERSISTED_FIELDS))
        payload["active_themes"] = list(config.active_themes)
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    def reset(self) -> PersonaConfig:
        defaults = PersonaConfig()
        self.save(defaults)
        return defaults
