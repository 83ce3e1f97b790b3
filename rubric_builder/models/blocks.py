"""Pydantic models for rubric content blocks.

A rubric document is made of three block variants (headings, text blocks and
response prompts) that share a numeric ``order``. Field names are snake_case
in Python and camelCase on the wire; unknown keys (for example a stored
document ``id``) are kept so that editing a loaded block does not drop them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rubric_builder.models.prompt_type import normalize_prompt_type


class BlockVariant(str, Enum):
    HEADING = "heading"
    TEXT_BLOCK = "textBlock"
    PROMPT = "prompt"


# Tie-break rank used when two blocks report the same order
VARIANT_RANK: Dict[BlockVariant, int] = {
    BlockVariant.HEADING: 0,
    BlockVariant.TEXT_BLOCK: 1,
    BlockVariant.PROMPT: 2,
}


class DropdownOption(BaseModel):
    key: str
    text: str
    value: str


class _BlockBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    order: int

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Heading(_BlockBase):
    text: str


class TextBlock(_BlockBase):
    """Free text rendered from Markdown source."""

    text: str


class Prompt(_BlockBase):
    prompt_type: str = Field(alias="promptType")
    prompt_text: str = Field(alias="promptText")
    prompt_required: bool = Field(default=False, alias="promptRequired")
    prompt_options: Optional[List[DropdownOption]] = Field(default=None, alias="promptOptions")

    @field_validator("prompt_type", mode="before")
    @classmethod
    def fold_prompt_type_alias(cls, v: Any) -> Any:
        # Unknown types pass through untouched and are flagged by validation
        return normalize_prompt_type(v) or v


Block = Union[Heading, TextBlock, Prompt]

BLOCK_MODELS: Dict[BlockVariant, type] = {
    BlockVariant.HEADING: Heading,
    BlockVariant.TEXT_BLOCK: TextBlock,
    BlockVariant.PROMPT: Prompt,
}


__all__ = [
    "BlockVariant",
    "VARIANT_RANK",
    "DropdownOption",
    "Heading",
    "TextBlock",
    "Prompt",
    "Block",
    "BLOCK_MODELS",
]
