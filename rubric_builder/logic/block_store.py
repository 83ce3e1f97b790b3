"""Storage for the three typed block collections of a rubric.

Headings, text blocks and prompts are kept in separate lists, but callers see
one document: every query here treats the three lists as a single arena keyed
by the shared 1-based ``order`` value. No list is assumed to be in document
order on its own.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import logging

from rubric_builder.models.blocks import (
    Block,
    BlockVariant,
    Heading,
    Prompt,
    TextBlock,
    VARIANT_RANK,
)

logger = logging.getLogger(__name__)

Located = Tuple[BlockVariant, Block]


class BlockStore:
    def __init__(
        self,
        headings: Optional[Iterable[Heading]] = None,
        text_blocks: Optional[Iterable[TextBlock]] = None,
        prompts: Optional[Iterable[Prompt]] = None,
    ) -> None:
        self._collections: Dict[BlockVariant, List[Block]] = {
            BlockVariant.HEADING: list(headings or []),
            BlockVariant.TEXT_BLOCK: list(text_blocks or []),
            BlockVariant.PROMPT: list(prompts or []),
        }

    @property
    def headings(self) -> List[Heading]:
        return self._collections[BlockVariant.HEADING]  # type: ignore[return-value]

    @property
    def text_blocks(self) -> List[TextBlock]:
        return self._collections[BlockVariant.TEXT_BLOCK]  # type: ignore[return-value]

    @property
    def prompts(self) -> List[Prompt]:
        return self._collections[BlockVariant.PROMPT]  # type: ignore[return-value]

    def collection(self, variant: BlockVariant) -> List[Block]:
        return self._collections[BlockVariant(variant)]

    def _iter_all(self) -> Iterator[Tuple[BlockVariant, int, Block]]:
        for variant, items in self._collections.items():
            for idx, block in enumerate(items):
                yield variant, idx, block

    def count(self) -> int:
        return sum(len(items) for items in self._collections.values())

    def last_order(self) -> int:
        """Highest ``order`` across all collections, or 0 when empty."""
        return max((block.order for _, _, block in self._iter_all()), default=0)

    def merged_ordered_view(self) -> List[Located]:
        """Return every block tagged with its variant, ascending by order.

        Ties (which only occur if the contiguity invariant was broken by a
        loaded payload) fall back to variant rank, then array index, so the
        result is deterministic.
        """
        entries = sorted(
            self._iter_all(),
            key=lambda e: (e[2].order, VARIANT_RANK[e[0]], e[1]),
        )
        return [(variant, block) for variant, _, block in entries]

    def find_by_order(self, order: int) -> Optional[Located]:
        for variant, _, block in self._iter_all():
            if block.order == order:
                return variant, block
        return None

    def orders(self) -> List[int]:
        return sorted(block.order for _, _, block in self._iter_all())

    def check_contiguous(self) -> bool:
        """True when the orders are exactly 1..N with no duplicates or gaps."""
        return self.orders() == list(range(1, self.count() + 1))

    def append(self, variant: BlockVariant, block: Block) -> None:
        self._collections[BlockVariant(variant)].append(block)

    def remove(self, variant: BlockVariant, block: Block) -> None:
        items = self._collections[BlockVariant(variant)]
        # Identity match: two blocks may compare equal field-by-field
        for idx, candidate in enumerate(items):
            if candidate is block:
                del items[idx]
                return

    def replace(
        self,
        headings: Iterable[Heading],
        text_blocks: Iterable[TextBlock],
        prompts: Iterable[Prompt],
    ) -> None:
        """Swap all three collections wholesale (used on load)."""
        self._collections[BlockVariant.HEADING] = list(headings)
        self._collections[BlockVariant.TEXT_BLOCK] = list(text_blocks)
        self._collections[BlockVariant.PROMPT] = list(prompts)
        if not self.check_contiguous():
            logger.warning("block_store.replace.non_contiguous orders=%s", self.orders())

    def clear(self) -> None:
        for items in self._collections.values():
            items.clear()


__all__ = ["BlockStore", "Located"]
