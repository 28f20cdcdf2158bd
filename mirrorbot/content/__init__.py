"""User-facing texts, prompts and formatters."""

from mirrorbot.content.messages import escape_markdown, frosted_style
from mirrorbot.content.prompts import cancelled_text, error_text, keyboard_for, step_prompt

__all__ = [
    "escape_markdown",
    "frosted_style",
    "cancelled_text",
    "error_text",
    "keyboard_for",
    "step_prompt",
]
