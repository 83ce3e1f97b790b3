"""PromptType constants for rubric response prompts.

Wire values match the stored rubric documents (``3-likert`` and so on).
Spelled-out aliases such as ``three_point_likert`` are accepted on input and
folded onto the wire value by ``normalize_prompt_type``.
"""

from __future__ import annotations

from typing import Optional


class PromptType:
    THREE_POINT_LIKERT = "3-likert"
    FIVE_POINT_LIKERT = "5-likert"
    SEVEN_POINT_LIKERT = "7-likert"
    TEXT = "text"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"

    ALL = (
        THREE_POINT_LIKERT,
        FIVE_POINT_LIKERT,
        SEVEN_POINT_LIKERT,
        TEXT,
        DROPDOWN,
        CHECKBOX,
    )


_ALIASES = {
    "three_point_likert": PromptType.THREE_POINT_LIKERT,
    "five_point_likert": PromptType.FIVE_POINT_LIKERT,
    "seven_point_likert": PromptType.SEVEN_POINT_LIKERT,
}


def normalize_prompt_type(value: object) -> Optional[str]:
    """Return the wire value for ``value`` or None when it is not a prompt type."""
    if not isinstance(value, str):
        return None
    token = value.strip().lower()
    if token in PromptType.ALL:
        return token
    return _ALIASES.get(token)


__all__ = ["PromptType", "normalize_prompt_type"]
