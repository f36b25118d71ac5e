import json
import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from generate.config import LEGACY_AI_TAG, LEGACY_USER_TAG, TURN_COUNT_BOUNDS
from generate.models import ConversationItem

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class MalformedPayloadError(ValueError):
    """Raised when a model response is not a JSON array."""


def unwrap_code_fence(raw_text: str) -> str:
    cleaned = raw_text.strip()
    match = FENCE_RE.match(cleaned)
    if match and match.group(1):
        cleaned = match.group(1).strip()
    return cleaned


def parse_payload(raw_text: str) -> List[Any]:
    cleaned = unwrap_code_fence(raw_text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Failed to parse JSON response: {e}") from e
    if not isinstance(parsed, list):
        raise MalformedPayloadError(
            f"Response was not a JSON array as expected (got {type(parsed).__name__})."
        )
    return parsed


def has_tag(turn: str, tag: str) -> bool:
    """Case-insensitive ``tag:`` check on the leading slice of ``turn``.

    Only the slice is lowercased, so ``len(tag) + 1`` characters of the
    original turn are exactly the prefix even when lowercasing changes length.
    """
    return bool(tag) and turn[: len(tag) + 1].lower() == f"{tag.lower()}:"


def speaker_tags(user_name: str, ai_name: str) -> List[Tuple[str, str]]:
    """(tag, canonical name) pairs in match order."""
    pairs = [
        (LEGACY_USER_TAG, user_name),
        (LEGACY_AI_TAG, ai_name),
        (ai_name, ai_name),
        (user_name, user_name),
    ]
    return [(tag, name) for tag, name in pairs if tag]


def normalize_turn(turn: str, user_name: str, ai_name: str) -> str:
    for tag, name in speaker_tags(user_name, ai_name):
        if has_tag(turn, tag):
            return f"{name}:{turn[len(tag) + 1:]}"
    return turn


def turn_speaker(turn: str, user_name: str, ai_name: str) -> Optional[str]:
    if has_tag(turn, user_name):
        return "user"
    if has_tag(turn, ai_name):
        return "ai"
    return None


def turn_deviations(conversation: List[str], user_name: str, ai_name: str) -> List[str]:
    reasons: List[str] = []
    lo, hi = TURN_COUNT_BOUNDS
    if not (lo <= len(conversation) <= hi):
        reasons.append("length_out_of_bounds")
    speakers = [turn_speaker(t, user_name, ai_name) for t in conversation]
    for i, speaker in enumerate(speakers):
        if speaker is None:
            reasons.append(f"unknown_speaker_{i}")
    if speakers and speakers[0] not in (None, "user"):
        reasons.append("first_not_user")
    for i in range(1, len(speakers)):
        if speakers[i] is None or speakers[i] != speakers[i - 1]:
            continue
        if speakers[i] == "user" and "two_user_in_row" not in reasons:
            reasons.append("two_user_in_row")
        if speakers[i] == "ai" and "two_ai_in_row" not in reasons:
            reasons.append("two_ai_in_row")
    return reasons


def validate_conversations(
    raw_text: str,
    theme: str,
    user_name: str,
    ai_name: str,
) -> List[ConversationItem]:
    """Parse a model response and keep the structurally valid conversations.

    Raises ``MalformedPayloadError`` when the response as a whole is not a JSON
    array. Items missing ``theme``/``conversation`` or carrying non-string turns
    are dropped one by one. Theme mismatches are corrected, speaker tags are
    rewritten to the configured names, and turn-count or alternation problems
    are only logged.
    """
    parsed = parse_payload(raw_text)
    validated: List[ConversationItem] = []
    for i, item in enumerate(parsed):
        try:
            conversation = ConversationItem.model_validate(item)
        except ValidationError as e:
            logger.warning(
                "Invalid structure for conversation object at index %d (theme %s). Skipping: %s",
                i,
                theme,
                "; ".join(err["msg"] for err in e.errors()),
            )
            continue
        if conversation.theme != theme:
            logger.warning(
                "Requested theme %r, item %d has theme %r. Correcting.", theme, i, conversation.theme
            )
        turns = [normalize_turn(t, user_name, ai_name) for t in conversation.conversation]
        reasons = turn_deviations(turns, user_name, ai_name)
        if reasons:
            logger.warning(
                "Conversation at index %d for theme %s has %d turns; keeping it despite: %s",
                i,
                theme,
                len(turns),
                ", ".join(reasons),
            )
        validated.append(ConversationItem(theme=theme, conversation=turns))
    return validated
