"""Field-level validation for rubric documents.

Checks produce error flags keyed by field path rather than raising, so a
caller can highlight every offending field at once. Blocks are addressed by
their order (``prompt[3].promptText``) since order is a block's identity
while editing. ``RubricValidationError`` wraps a failed result for callers
that need to abort, such as save.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from rubric_builder.logic.block_store import BlockStore
from rubric_builder.logic.dropdown_options import MAX_OPTIONS
from rubric_builder.models.blocks import BlockVariant, Heading, Prompt, TextBlock
from rubric_builder.models.prompt_type import PromptType, normalize_prompt_type

TITLE_MIN = 3
TITLE_MAX = 200
HEADING_MAX = 499
TEXT_BLOCK_MAX = 4999


@dataclass
class ValidationResult:
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, path: str, code: Optional[str]) -> None:
        if code:
            self.errors[path] = code


class RubricValidationError(ValueError):
    def __init__(self, result: ValidationResult) -> None:
        super().__init__(f"rubric validation failed: {sorted(result.errors)}")
        self.result = result


def _bounded_text(value: object, maximum: int, minimum: int = 1) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return "missing"
    length = len(value.strip())
    if length < minimum:
        return "too_short"
    if length > maximum:
        return "too_long"
    return None


def validate_title(title: object) -> Optional[str]:
    return _bounded_text(title, TITLE_MAX, TITLE_MIN)


def validate_heading(heading: Heading) -> Optional[str]:
    return _bounded_text(heading.text, HEADING_MAX)


def validate_text_block(block: TextBlock) -> Optional[str]:
    return _bounded_text(block.text, TEXT_BLOCK_MAX)


def validate_prompt(prompt: Prompt) -> Dict[str, str]:
    """Return ``{field: code}`` for the prompt's invalid fields."""
    errors: Dict[str, str] = {}
    prompt_type = normalize_prompt_type(prompt.prompt_type)
    if prompt_type is None:
        errors["promptType"] = "missing" if not prompt.prompt_type else "unknown"
    if not isinstance(prompt.prompt_text, str) or not prompt.prompt_text.strip():
        errors["promptText"] = "missing"
    if prompt_type == PromptType.DROPDOWN:
        count = len(prompt.prompt_options or [])
        if count < 1 or count > MAX_OPTIONS:
            errors["promptOptions"] = "count"
    elif prompt_type is not None and prompt.prompt_options:
        errors["promptOptions"] = "unexpected"
    return errors


def validate_rubric(title: object, store: BlockStore) -> ValidationResult:
    result = ValidationResult()
    result.add("rubricTitle", validate_title(title))
    for variant, block in store.merged_ordered_view():
        prefix = f"{variant.value}[{block.order}]"
        if variant == BlockVariant.HEADING:
            result.add(f"{prefix}.text", validate_heading(block))  # type: ignore[arg-type]
        elif variant == BlockVariant.TEXT_BLOCK:
            result.add(f"{prefix}.text", validate_text_block(block))  # type: ignore[arg-type]
        else:
            for name, code in validate_prompt(block).items():  # type: ignore[arg-type]
                result.add(f"{prefix}.{name}", code)
    return result


__all__ = [
    "TITLE_MIN",
    "TITLE_MAX",
    "HEADING_MAX",
    "TEXT_BLOCK_MAX",
    "ValidationResult",
    "RubricValidationError",
    "validate_title",
    "validate_heading",
    "validate_text_block",
    "validate_prompt",
    "validate_rubric",
]
