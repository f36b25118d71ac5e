from .generation import GENERATION_SYSTEM_PROMPT, build_user_prompt, render_system_prompt

__all__ = ["GENERATION_SYSTEM_PROMPT", "build_user_prompt", "render_system_prompt"]
