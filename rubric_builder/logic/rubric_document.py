"""Rubric document: metadata plus ordered blocks, with load/save.

``RubricDocument`` is the single value object behind the rubric editor. It
owns the ``BlockStore`` and ``OrderingEngine``, the rubric-level metadata
(title, organization-default flag) and the serialization to and from the
rubric service. It knows nothing about session state; ``EditSession`` layers
Clean/Dirty/Saving on top of it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from rubric_builder.logic.block_store import BlockStore, Located
from rubric_builder.logic.dropdown_options import DropdownOptionList
from rubric_builder.logic.order_sequences import OrderingEngine
from rubric_builder.logic.persistence_client import (
    MalformedRubricError,
    PersistenceError,
    RubricPersistenceClient,
)
from rubric_builder.logic.validation import (
    RubricValidationError,
    ValidationResult,
    validate_heading,
    validate_prompt,
    validate_rubric,
    validate_text_block,
)
from rubric_builder.models.blocks import Block, BlockVariant, Heading, Prompt, TextBlock
from rubric_builder.models.prompt_type import PromptType, normalize_prompt_type

logger = logging.getLogger(__name__)

MODE_CREATE = "create"
MODE_EDIT = "edit"


class MissingRubricIdError(ValueError):
    pass


class RubricTitleLockedError(ValueError):
    pass


class OrgDefaultUnavailableError(ValueError):
    pass


@dataclass
class SaveOutcome:
    rubric_id: str
    created: bool

    @property
    def redirect_params(self) -> Dict[str, str]:
        """Query flag for the rubric list view: ``created=true`` or ``saved=true``."""
        return {"created": "true"} if self.created else {"saved": "true"}


@dataclass
class PromptDraft:
    """An in-progress prompt edit; ``order`` is None for a new prompt."""

    order: Optional[int] = None
    prompt_type: str = ""
    prompt_text: str = ""
    prompt_required: bool = False
    options: DropdownOptionList = field(default_factory=DropdownOptionList)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "promptType": normalize_prompt_type(self.prompt_type) or self.prompt_type,
            "promptText": self.prompt_text.strip(),
            "promptRequired": bool(self.prompt_required),
            "promptOptions": None,
        }
        if payload["promptType"] == PromptType.DROPDOWN:
            payload["promptOptions"] = [o.model_dump() for o in self.options.to_list()]
        return payload


def _single_error(path: str, code: Optional[str]) -> None:
    if code:
        result = ValidationResult()
        result.add(path, code)
        raise RubricValidationError(result)


class RubricDocument:
    def __init__(self, org_display_name: str) -> None:
        self.org_display_name = org_display_name
        self.store = BlockStore()
        self.engine = OrderingEngine(self.store)
        self.mode = MODE_CREATE
        self.rubric_id: Optional[str] = None
        self.is_org_default = False
        self.title_locked = False
        self.org_default_available = False
        self.etag: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self.loaded = False
        self._title = ""

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def title(self) -> str:
        return self._title

    def set_title(self, title: str) -> None:
        if self.title_locked:
            raise RubricTitleLockedError("The organization default rubric uses the organization's name as its title.")
        self._title = title

    def set_org_default(self, enabled: bool) -> None:
        """Toggle the organization-default flag.

        Enabling forces the title to the organization's display name and
        locks it; disabling clears and unlocks it. Only offered while
        creating a rubric for an organization that has no default yet.
        """
        if not self.org_default_available:
            raise OrgDefaultUnavailableError("Organization default is not available for this rubric.")
        if enabled:
            self.is_org_default = True
            self._title = self.org_display_name
            self.title_locked = True
        else:
            self.is_org_default = False
            self._title = ""
            self.title_locked = False

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def merged_ordered_view(self) -> List[Located]:
        return self.store.merged_ordered_view()

    def find_by_order(self, order: int) -> Optional[Located]:
        return self.store.find_by_order(order)

    def add_heading(self, text: str) -> Block:
        _single_error(f"{BlockVariant.HEADING.value}.text", validate_heading(Heading(order=0, text=text)))
        return self.engine.insert(BlockVariant.HEADING, {"text": text.strip()})

    def add_text_block(self, text: str) -> Block:
        _single_error(f"{BlockVariant.TEXT_BLOCK.value}.text", validate_text_block(TextBlock(order=0, text=text)))
        return self.engine.insert(BlockVariant.TEXT_BLOCK, {"text": text.strip()})

    def edit_text(self, order: int, text: str) -> Optional[Block]:
        """Replace the text of the heading or text block at ``order``."""
        found = self.store.find_by_order(order)
        if found is None:
            return None
        variant, _ = found
        if variant == BlockVariant.HEADING:
            code = validate_heading(Heading(order=order, text=text))
        elif variant == BlockVariant.TEXT_BLOCK:
            code = validate_text_block(TextBlock(order=order, text=text))
        else:
            raise ValueError(f"block at order {order} is a prompt; use commit_prompt")
        _single_error(f"{variant.value}[{order}].text", code)
        return self.engine.edit(order, {"text": text.strip()})

    def begin_prompt(self, order: Optional[int] = None) -> Optional[PromptDraft]:
        """Open a draft for a new prompt, or for the prompt at ``order``.

        Returns None when ``order`` does not hold a prompt.
        """
        if order is None:
            return PromptDraft()
        found = self.store.find_by_order(order)
        if found is None or found[0] != BlockVariant.PROMPT:
            return None
        prompt: Prompt = found[1]  # type: ignore[assignment]
        options = prompt.prompt_options if prompt.prompt_type == PromptType.DROPDOWN else None
        return PromptDraft(
            order=prompt.order,
            prompt_type=prompt.prompt_type,
            prompt_text=prompt.prompt_text,
            prompt_required=prompt.prompt_required,
            options=DropdownOptionList(options),
        )

    def commit_prompt(self, draft: PromptDraft) -> Optional[Block]:
        """Write a prompt draft back into the document.

        New drafts are appended at the end. Drafts for an order that no
        longer holds a prompt are dropped (returns None).
        """
        payload = draft.to_payload()
        candidate = Prompt.model_validate({**payload, "order": draft.order or 0})
        errors = validate_prompt(candidate)
        if errors:
            result = ValidationResult()
            for name, code in errors.items():
                result.add(f"{BlockVariant.PROMPT.value}.{name}", code)
            raise RubricValidationError(result)
        if draft.order is None:
            return self.engine.insert(BlockVariant.PROMPT, payload)
        found = self.store.find_by_order(draft.order)
        if found is None or found[0] != BlockVariant.PROMPT:
            logger.info("rubric_document.commit_prompt.stale order=%s", draft.order)
            return None
        return self.engine.edit(draft.order, payload)

    def move(self, order: int, direction: str) -> bool:
        return self.engine.move(order, direction)

    def delete(self, order: int) -> bool:
        return self.engine.delete(order)

    # ------------------------------------------------------------------
    # Validation and serialization
    # ------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        return validate_rubric(self._title, self.store)

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "mode": self.mode,
            "rubricTitle": self._title.strip(),
            "headings": [b.to_wire() for b in self.store.headings],
            "textBlocks": [b.to_wire() for b in self.store.text_blocks],
            "prompts": [b.to_wire() for b in self.store.prompts],
        }
        if self.mode == MODE_EDIT:
            body["rubricID"] = self.rubric_id
        elif self.is_org_default:
            body["orgDefault"] = True
        return body

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def check_org_default(self, client: RubricPersistenceClient, org_id: str) -> bool:
        """Offer the organization-default option when the org has none yet."""
        if self.mode != MODE_CREATE:
            self.org_default_available = False
            return False
        status = await client.get_org_default_status()
        self.org_default_available = status.org_id == org_id and not status.has_default
        return self.org_default_available

    async def save(self, client: RubricPersistenceClient) -> SaveOutcome:
        """Validate and persist the whole document in one request.

        Raises RubricValidationError before any network traffic when the
        document is invalid, and PersistenceError subclasses when the
        service fails; in both cases in-memory state is untouched.
        """
        result = self.validate()
        if not result.valid:
            raise RubricValidationError(result)
        created = self.mode == MODE_CREATE
        if_match = self.etag if self.mode == MODE_EDIT else None
        saved = await client.put_rubric(self.to_payload(), if_match=if_match)
        self.rubric_id = saved.rubric_id
        self.mode = MODE_EDIT
        self.etag = saved.etag
        self.org_default_available = False
        logger.info("rubric.save.ok rubric_id=%s created=%s", saved.rubric_id, created)
        return SaveOutcome(rubric_id=saved.rubric_id, created=created)

    async def load(
        self,
        client: RubricPersistenceClient,
        rubric_id: Optional[str],
        is_current: Callable[[], bool] = lambda: True,
    ) -> bool:
        """Fetch ``rubric_id`` and replace the document wholesale.

        The result is applied only when ``is_current()`` is still True once
        the fetch completes; otherwise it is discarded and False returned.
        On failure the document is reset to an empty, non-editable state
        and the error propagates.
        """
        if not isinstance(rubric_id, str) or not rubric_id.strip():
            self.reset()
            raise MissingRubricIdError("No Rubric ID provided.")
        try:
            loaded = await client.get_rubric(rubric_id.strip())
        except PersistenceError:
            if is_current():
                self.reset()
            raise
        if not is_current():
            logger.info("rubric.load.discarded rubric_id=%s", rubric_id)
            return False
        record = loaded.record
        for prompt in record.prompts:
            if normalize_prompt_type(prompt.prompt_type) is None:
                self.reset()
                raise MalformedRubricError(f"Prompt at order {prompt.order} has an unknown type.")
        # Options only belong on dropdowns
        prompts = [
            p.model_copy(update={"prompt_options": None})
            if p.prompt_type != PromptType.DROPDOWN and p.prompt_options is not None
            else p
            for p in record.prompts
        ]
        self.store.replace(record.headings, record.text_blocks, prompts)
        self.engine.reindex()
        self.mode = MODE_EDIT
        self.rubric_id = record.rubric_id
        self._title = record.rubric_title
        self.is_org_default = record.is_org_default
        self.title_locked = record.is_org_default
        self.org_default_available = False
        self.etag = loaded.etag
        self.last_updated = record.last_modified()
        self.loaded = True
        logger.info("rubric.load.ok rubric_id=%s blocks=%s", record.rubric_id, self.store.count())
        return True

    def reset(self) -> None:
        self.store.clear()
        self.mode = MODE_CREATE
        self.rubric_id = None
        self._title = ""
        self.is_org_default = False
        self.title_locked = False
        self.org_default_available = False
        self.etag = None
        self.last_updated = None
        self.loaded = False


__all__ = [
    "MODE_CREATE",
    "MODE_EDIT",
    "MissingRubricIdError",
    "RubricTitleLockedError",
    "OrgDefaultUnavailableError",
    "SaveOutcome",
    "PromptDraft",
    "RubricDocument",
]
