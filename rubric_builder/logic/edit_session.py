"""Edit session state machine over a RubricDocument.

States::

    LOADING --load ok--> CLEAN <--save ok-- SAVING
    LOADING --load fail--> LOAD_ERROR          |
    CLEAN --mutation--> DIRTY --save--> SAVING --save fail--> DIRTY

LOAD_ERROR is terminal until the caller navigates away. Every load is
stamped with a generation number; ``close()`` or a newer ``load()`` bumps it,
so a fetch that resolves late is discarded instead of overwriting the
document.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Optional
import logging

from rubric_builder.logic.persistence_client import PersistenceError, RubricPersistenceClient
from rubric_builder.logic.rubric_document import (
    MissingRubricIdError,
    PromptDraft,
    RubricDocument,
    SaveOutcome,
)
from rubric_builder.logic.validation import RubricValidationError
from rubric_builder.models.blocks import Block

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    LOAD_ERROR = "load_error"
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class SessionNotEditableError(RuntimeError):
    pass


ErrorChannel = Callable[[str], None]


class EditSession:
    def __init__(
        self,
        document: RubricDocument,
        client: RubricPersistenceClient,
        on_error: Optional[ErrorChannel] = None,
    ) -> None:
        self.document = document
        self.client = client
        self.on_error = on_error
        self.state = SessionState.CLEAN
        self.error: Optional[str] = None
        self.field_errors: Dict[str, str] = {}
        self._generation = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _report(self, message: str) -> None:
        self.error = message
        logger.warning("edit_session.error state=%s message=%s", self.state.value, message)
        if self.on_error is not None:
            self.on_error(message)

    async def start_create(self, org_id: str) -> None:
        """Begin a new rubric and ask whether the org-default option applies."""
        self._generation += 1
        self.document.reset()
        self.state = SessionState.CLEAN
        try:
            await self.document.check_org_default(self.client, org_id)
        except PersistenceError as e:
            self._report(e.message)

    async def load(self, rubric_id: Optional[str]) -> bool:
        self._generation += 1
        generation = self._generation
        self.state = SessionState.LOADING
        self.error = None
        self.field_errors = {}

        def is_current() -> bool:
            return generation == self._generation

        try:
            applied = await self.document.load(self.client, rubric_id, is_current=is_current)
        except (MissingRubricIdError, PersistenceError) as e:
            if not is_current():
                return False
            self.state = SessionState.LOAD_ERROR
            self._report(getattr(e, "message", None) or str(e))
            return False
        if not applied:
            return False
        self.state = SessionState.CLEAN
        return True

    def close(self) -> None:
        """Abandon the session; any in-flight load is ignored when it lands."""
        self._generation += 1
        logger.info("edit_session.close generation=%s", self._generation)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_editable(self) -> None:
        if self.state not in (SessionState.CLEAN, SessionState.DIRTY):
            raise SessionNotEditableError(f"rubric cannot be edited while {self.state.value}")

    def _touch(self, changed: bool = True) -> None:
        if changed and self.state == SessionState.CLEAN:
            self.state = SessionState.DIRTY

    def set_title(self, title: str) -> None:
        self._require_editable()
        self.document.set_title(title)
        self._touch()

    def set_org_default(self, enabled: bool) -> None:
        self._require_editable()
        self.document.set_org_default(enabled)
        self._touch()

    def add_heading(self, text: str) -> Block:
        self._require_editable()
        block = self.document.add_heading(text)
        self._touch()
        return block

    def add_text_block(self, text: str) -> Block:
        self._require_editable()
        block = self.document.add_text_block(text)
        self._touch()
        return block

    def edit_text(self, order: int, text: str) -> Optional[Block]:
        self._require_editable()
        block = self.document.edit_text(order, text)
        self._touch(block is not None)
        return block

    def begin_prompt(self, order: Optional[int] = None) -> Optional[PromptDraft]:
        self._require_editable()
        return self.document.begin_prompt(order)

    def commit_prompt(self, draft: PromptDraft) -> Optional[Block]:
        self._require_editable()
        block = self.document.commit_prompt(draft)
        self._touch(block is not None)
        return block

    def move(self, order: int, direction: str) -> bool:
        self._require_editable()
        changed = self.document.move(order, direction)
        self._touch(changed)
        return changed

    def delete(self, order: int) -> bool:
        self._require_editable()
        changed = self.document.delete(order)
        self._touch(changed)
        return changed

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save(self) -> Optional[SaveOutcome]:
        """Persist the document.

        Validation failures leave the state unchanged and fill
        ``field_errors``; service failures return the session to DIRTY
        with the message on ``error``. Both return None. Anything else also
        returns the session to DIRTY and propagates.
        """
        self._require_editable()
        self.field_errors = {}
        self.error = None
        previous = self.state
        self.state = SessionState.SAVING
        try:
            outcome = await self.document.save(self.client)
        except RubricValidationError as e:
            self.state = previous
            self.field_errors = dict(e.result.errors)
            logger.info("edit_session.save.invalid fields=%s", sorted(self.field_errors))
            return None
        except PersistenceError as e:
            self.state = SessionState.DIRTY
            self._report(e.message)
            return None
        except Exception:
            self.state = SessionState.DIRTY
            logger.error("edit_session.save.failed", exc_info=True)
            raise
        self.state = SessionState.CLEAN
        return outcome


__all__ = ["SessionState", "SessionNotEditableError", "EditSession"]
