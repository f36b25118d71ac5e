from typing import List, NamedTuple

from generate.config import LEGACY_AI_TAG, LEGACY_USER_TAG
from generate.models import ConversationItem
from generate.validator import has_tag


class RenderedTurn(NamedTuple):
    speaker: str
    text: str
    is_user: bool


def split_turn(turn: str, index: int, user_name: str, ai_name: str) -> RenderedTurn:
    """Resolve who speaks a turn for display.

    Prefixes win; an untagged turn is attributed by position, with the user on
    even indices. The positional guess is display-only and can be wrong for
    conversations that do not alternate.
    """
    candidates = [
        (user_name, user_name, True),
        (ai_name, ai_name, False),
        (LEGACY_USER_TAG, user_name, True),
        (LEGACY_AI_TAG, ai_name, False),
    ]
    for tag, speaker, is_user in candidates:
        if has_tag(turn, tag):
            return RenderedTurn(speaker, turn[len(tag) + 1:].strip(), is_user)
    is_user = index % 2 == 0
    return RenderedTurn(user_name if is_user else ai_name, turn, is_user)


def render_turns(item: ConversationItem, user_name: str, ai_name: str) -> List[RenderedTurn]:
    return [split_turn(t, i, user_name, ai_name) for i, t in enumerate(item.conversation)]
