"""Rubric block order maintenance.

Provides the single source of truth for ``order`` values across headings,
text blocks and prompts. Every mutation keeps the orders contiguous and
1-based over the whole document. Requests that reference an order which no
longer exists (a stale click, a double submit) are absorbed as no-ops and
reported by returning False.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import logging

from rubric_builder.logic.block_store import BlockStore
from rubric_builder.models.blocks import BLOCK_MODELS, Block, BlockVariant

logger = logging.getLogger(__name__)

UP = "up"
DOWN = "down"


def _wire_keys(model: type, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Rename snake_case field names in ``payload`` to their wire aliases."""
    out = dict(payload)
    for name, info in model.model_fields.items():
        if info.alias and name in out:
            out[info.alias] = out.pop(name)
    return out


class OrderingEngine:
    def __init__(self, store: BlockStore) -> None:
        self.store = store

    def insert(self, variant: BlockVariant, payload: Dict[str, Any]) -> Block:
        """Append a new block at the end of the document and return it.

        Any ``order`` in ``payload`` is ignored; new blocks never land
        mid-document.
        """
        variant = BlockVariant(variant)
        new_order = self.store.last_order() + 1
        fields = {k: v for k, v in payload.items() if k != "order"}
        block = BLOCK_MODELS[variant].model_validate({**fields, "order": new_order})
        self.store.append(variant, block)
        logger.info("ordering.insert variant=%s order=%s", variant.value, new_order)
        return block

    def move(self, order: int, direction: str) -> bool:
        """Swap the block at ``order`` with its neighbour above or below.

        The neighbour may live in a different collection; only the two
        ``order`` values change. Moving up from 1 or down from the last
        order is a no-op.
        """
        if direction not in (UP, DOWN):
            raise ValueError(f"direction must be '{UP}' or '{DOWN}', got {direction!r}")
        last = self.store.last_order()
        if direction == UP and order <= 1:
            logger.info("ordering.move.noop order=%s direction=%s reason=top", order, direction)
            return False
        if direction == DOWN and order >= last:
            logger.info("ordering.move.noop order=%s direction=%s reason=bottom", order, direction)
            return False
        found = self.store.find_by_order(order)
        target = order - 1 if direction == UP else order + 1
        neighbour = self.store.find_by_order(target)
        if found is None or neighbour is None:
            logger.info("ordering.move.noop order=%s direction=%s reason=stale", order, direction)
            return False
        _, moving = found
        _, other = neighbour
        moving.order, other.order = target, order
        logger.info("ordering.move order=%s direction=%s new_order=%s", order, direction, target)
        return True

    def delete(self, order: int) -> bool:
        """Remove the block at ``order`` and close the gap it leaves."""
        found = self.store.find_by_order(order)
        if found is None:
            logger.info("ordering.delete.noop order=%s reason=stale", order)
            return False
        variant, block = found
        self.store.remove(variant, block)
        for _, remaining in self.store.merged_ordered_view():
            if remaining.order > order:
                remaining.order -= 1
        logger.info("ordering.delete variant=%s order=%s remaining=%s", variant.value, order, self.store.count())
        return True

    def edit(self, order: int, payload: Dict[str, Any]) -> Optional[Block]:
        """Replace the content of the block at ``order`` in place.

        Order, variant and any extra stored fields are preserved. Returns the
        updated block, or None when ``order`` is stale.
        """
        found = self.store.find_by_order(order)
        if found is None:
            logger.info("ordering.edit.noop order=%s reason=stale", order)
            return None
        variant, block = found
        model = BLOCK_MODELS[variant]
        merged = {**block.model_dump(by_alias=True), **_wire_keys(model, payload), "order": block.order}
        updated = model.model_validate(merged)
        items = self.store.collection(variant)
        for idx, candidate in enumerate(items):
            if candidate is block:
                items[idx] = updated
                break
        logger.info("ordering.edit variant=%s order=%s", variant.value, order)
        return updated

    def reindex(self) -> bool:
        """Rewrite orders as contiguous 1..N following the current document order.

        Used after loading a stored document whose orders have gaps or
        duplicates. Returns True when any order changed.
        """
        changed = False
        for idx, (_, block) in enumerate(self.store.merged_ordered_view(), start=1):
            if block.order != idx:
                block.order = idx
                changed = True
        if changed:
            logger.info("ordering.reindex orders=%s", self.store.orders())
        return changed


__all__ = ["OrderingEngine", "UP", "DOWN"]
