from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from generate.config import (
    DEFAULT_AI_NAME,
    DEFAULT_AI_PERSONALITY,
    DEFAULT_CONVERSATION_STYLE,
    DEFAULT_USER_NAME,
    DIALOGUE_THEMES,
)

RunStatus = Literal["idle", "running", "rejected", "failed", "empty", "partial", "succeeded"]


class PersonaConfig(BaseModel):
    """Persona fields and active themes read once at the start of a run."""

    model_config = ConfigDict(frozen=True)

    user_name: str = Field(default=DEFAULT_USER_NAME, min_length=1)
    ai_name: str = Field(default=DEFAULT_AI_NAME, min_length=1)
    ai_personality: str = DEFAULT_AI_PERSONALITY
    conversation_style: str = DEFAULT_CONVERSATION_STYLE
    active_themes: Tuple[str, ...] = DIALOGUE_THEMES

    @field_validator("user_name", "ai_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("active_themes")
    @classmethod
    def validate_themes(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [t for t in v if t not in DIALOGUE_THEMES]
        if unknown:
            raise ValueError(f"unknown themes: {unknown}")
        # Insertion order wins; duplicates are dropped.
        return tuple(dict.fromkeys(v))


class ConversationItem(BaseModel):
    theme: StrictStr
    conversation: List[StrictStr] = Field(min_length=1)

    @property
    def turns(self) -> List[str]:
        return self.conversation


class ConversationBatch(BaseModel):
    """Object wrapper for structured output; a top-level array cannot be constrained."""

    conversations: List[ConversationItem]


class ThemeReport(BaseModel):
    theme: str
    requested: int
    received: int = 0
    error: Optional[str] = None


class GenerationRun(BaseModel):
    target_total: int
    themes_remaining: List[str] = Field(default_factory=list)
    accumulated: List[ConversationItem] = Field(default_factory=list)
    error_message: Optional[str] = None
    is_active: bool = False
    status: RunStatus = "idle"
    reports: List[ThemeReport] = Field(default_factory=list)
    diagnostics: List[str] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.accumulated)

    @property
    def display_count(self) -> int:
        return min(self.count, self.target_total)

    @property
    def failed_theme(self) -> Optional[str]:
        for report in self.reports:
            if report.error is not None:
                return report.theme
        return None
