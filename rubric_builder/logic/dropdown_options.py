"""Option list for a dropdown prompt that is being edited.

The list is ordered purely by position; options carry no order field. It is
written back into the parent Prompt only when the prompt edit is committed.
"""

from __future__ import annotations

from typing import Iterable, List, Optional
import logging
import re

from rubric_builder.models.blocks import DropdownOption

logger = logging.getLogger(__name__)

MAX_OPTIONS = 10
MAX_OPTION_TEXT = 250

_NON_LETTERS = re.compile(r"[^a-zA-Z]")


def normalize_option_key(text: str) -> str:
    """Derive the option key/value: trimmed, lowercased, letters only."""
    return _NON_LETTERS.sub("", text.strip().lower())


class DropdownOptionError(ValueError):
    """Raised when an option cannot be added; ``reason`` is a short code."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class DropdownOptionList:
    def __init__(self, options: Optional[Iterable[DropdownOption]] = None) -> None:
        self._options: List[DropdownOption] = [o.model_copy() for o in (options or [])]

    def __len__(self) -> int:
        return len(self._options)

    def __iter__(self):
        return iter(self._options)

    def __getitem__(self, index: int) -> DropdownOption:
        return self._options[index]

    def keys(self) -> List[str]:
        return [o.key for o in self._options]

    def add(self, text: str) -> DropdownOption:
        """Append an option built from ``text``.

        Rejected (DropdownOptionError) when the trimmed text is empty or at
        least 250 characters, when the list already holds 10 options, or when
        the derived key is empty or already used by another option.
        """
        trimmed = (text or "").strip()
        if not trimmed:
            raise DropdownOptionError("empty", "Option text is required.")
        if len(trimmed) >= MAX_OPTION_TEXT:
            raise DropdownOptionError("too_long", f"Option text must be under {MAX_OPTION_TEXT} characters.")
        if len(self._options) >= MAX_OPTIONS:
            raise DropdownOptionError("full", f"A dropdown prompt allows at most {MAX_OPTIONS} options.")
        key = normalize_option_key(trimmed)
        if not key:
            raise DropdownOptionError("no_letters", "Option text must contain at least one letter.")
        if key in self.keys():
            raise DropdownOptionError("duplicate", f"An option equivalent to '{trimmed}' already exists.")
        option = DropdownOption(key=key, text=trimmed, value=key)
        self._options.append(option)
        logger.info("dropdown_options.add key=%s count=%s", key, len(self._options))
        return option

    def move(self, index: int, direction: str) -> bool:
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        if not 0 <= index < len(self._options):
            return False
        if direction == "up" and index == 0:
            return False
        if direction == "down" and index == len(self._options) - 1:
            return False
        option = self._options.pop(index)
        self._options.insert(index - 1 if direction == "up" else index + 1, option)
        return True

    def remove(self, index: int) -> bool:
        if not 0 <= index < len(self._options):
            return False
        del self._options[index]
        return True

    def to_list(self) -> List[DropdownOption]:
        return [o.model_copy() for o in self._options]


__all__ = [
    "DropdownOptionList",
    "DropdownOptionError",
    "normalize_option_key",
    "MAX_OPTIONS",
    "MAX_OPTION_TEXT",
]
