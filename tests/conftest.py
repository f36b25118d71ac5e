import json
from typing import Dict, List, Tuple, Union

import pytest

from generate.models import PersonaConfig


def make_conversation(user_name: str = "User", ai_name: str = "IRIS", turns: int = 6) -> List[str]:
    speakers = [user_name, ai_name]
    return [f"{speakers[i % 2]}: line {i}" for i in range(turns)]


def make_items(theme: str, n: int, user_name: str = "User", ai_name: str = "IRIS") -> List[Dict]:
    return [{"theme": theme, "conversation": make_conversation(user_name, ai_name)} for _ in range(n)]


Response = Union[str, Exception, None]


class FakeClient:
    """Scripted stand-in for the LLM adapter.

    ``responses`` maps a theme to raw text or an exception. Themes without an
    entry get exactly the requested number of valid conversations.
    """

    def __init__(self, responses: Dict[str, Response] | None = None):
        self.responses = responses or {}
        self.calls: List[Tuple[str, int, PersonaConfig]] = []

    def generate(self, theme: str, count: int, persona: PersonaConfig) -> str:
        self.calls.append((theme, count, persona))
        response = self.responses.get(theme)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return json.dumps(make_items(theme, count, persona.user_name, persona.ai_name))
        return response

    @property
    def requested_themes(self) -> List[str]:
        return [theme for theme, _, _ in self.calls]


@pytest.fixture
def persona() -> PersonaConfig:
    return PersonaConfig(user_name="Alex", ai_name="Nova", active_themes=("Fashion Talk", "Music Mood Match"))
