"""Pydantic models for whole-rubric payloads exchanged with the rubric service."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from rubric_builder.models.blocks import Heading, Prompt, TextBlock


class RubricRecord(BaseModel):
    """A stored rubric as returned by ``GET /rubric``."""

    model_config = ConfigDict(populate_by_name=True)

    rubric_id: str = Field(alias="rubricID")
    rubric_title: str = Field(default="", alias="rubricTitle")
    is_org_default: bool = Field(default=False, alias="isOrgDefault")
    org_id: Optional[str] = Field(default=None, alias="orgID")
    headings: List[Heading] = Field(default_factory=list)
    text_blocks: List[TextBlock] = Field(default_factory=list, alias="textBlocks")
    prompts: List[Prompt] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    def last_modified(self) -> Optional[datetime]:
        return self.updated_at or self.created_at


class RubricSaveRequest(BaseModel):
    """Body of ``PUT /rubric``.

    Block lists stay raw: the service keeps the well-formed entries and drops
    the rest instead of rejecting the whole document.
    """

    model_config = ConfigDict(populate_by_name=True)

    mode: Literal["create", "edit"]
    rubric_id: Optional[str] = Field(default=None, alias="rubricID")
    rubric_title: Optional[str] = Field(default=None, alias="rubricTitle")
    org_default: Optional[bool] = Field(default=None, alias="orgDefault")
    headings: List[Dict[str, Any]] = Field(default_factory=list)
    text_blocks: List[Dict[str, Any]] = Field(default_factory=list, alias="textBlocks")
    prompts: List[Dict[str, Any]] = Field(default_factory=list)


class RubricSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rubric_id: str = Field(alias="rubricID")
    rubric_title: str = Field(alias="rubricTitle")
    is_org_default: bool = Field(default=False, alias="isOrgDefault")
    num_prompts: int = Field(default=0, alias="numPrompts")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class OrgDefaultStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    org_id: str = Field(alias="orgID")
    has_default: bool = Field(alias="hasDefault")


__all__ = ["RubricRecord", "RubricSaveRequest", "RubricSummary", "OrgDefaultStatus"]
