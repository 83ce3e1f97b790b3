"""Server-side clean-up of submitted rubric block lists.

Submitted blocks are filtered rather than rejected wholesale: entries with
empty text, a non-numeric order or an unknown prompt type are dropped and
logged. The one hard failure is a dropdown prompt left with no usable
options, which raises ``DropdownOptionsRequired``.
"""

from __future__ import annotations

from typing import Any, Dict, List
import logging

from rubric_builder.logic.dropdown_options import MAX_OPTIONS
from rubric_builder.logic.validation import TITLE_MAX, TITLE_MIN
from rubric_builder.models.prompt_type import PromptType, normalize_prompt_type

logger = logging.getLogger(__name__)


class DropdownOptionsRequired(ValueError):
    pass


def _is_order(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def title_is_valid(title: Any) -> bool:
    return isinstance(title, str) and TITLE_MIN <= len(title.strip()) <= TITLE_MAX


def sanitize_text_blocks(items: List[Dict[str, Any]], kind: str) -> List[Dict[str, Any]]:
    """Keep ``{text, order}`` for entries with non-blank text and an integer order."""
    kept: List[Dict[str, Any]] = []
    for item in items or []:
        text = item.get("text") if isinstance(item, dict) else None
        order = item.get("order") if isinstance(item, dict) else None
        if isinstance(text, str) and text.strip() and _is_order(order):
            kept.append({"text": text.strip(), "order": order})
        else:
            logger.info("rubric_sanitize.drop kind=%s order=%s", kind, order)
    return kept


def _sanitize_options(options: Any) -> List[Dict[str, str]]:
    kept: List[Dict[str, str]] = []
    seen: set[str] = set()
    for opt in options if isinstance(options, list) else []:
        if not isinstance(opt, dict):
            continue
        key, value, text = opt.get("key"), opt.get("value"), opt.get("text")
        if not all(isinstance(v, str) and v for v in (key, value, text)):
            continue
        if key in seen or len(kept) >= MAX_OPTIONS:
            continue
        seen.add(key)
        kept.append({"key": key, "value": value, "text": text})
    return kept


def sanitize_prompts(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    kept: List[Dict[str, Any]] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        prompt_type = normalize_prompt_type(item.get("promptType"))
        text = item.get("promptText")
        order = item.get("order")
        if prompt_type is None or not isinstance(text, str) or not text.strip() or not _is_order(order):
            logger.info("rubric_sanitize.drop kind=prompt order=%s", order)
            continue
        required = item.get("promptRequired")
        prompt: Dict[str, Any] = {
            "promptType": prompt_type,
            "promptText": text.strip(),
            "promptRequired": required is True or required == "true",
            "order": order,
        }
        if prompt_type == PromptType.DROPDOWN:
            options = _sanitize_options(item.get("promptOptions"))
            if not options:
                raise DropdownOptionsRequired(f"dropdown prompt at order {order} has no options")
            prompt["promptOptions"] = options
        kept.append(prompt)
    return kept


__all__ = [
    "DropdownOptionsRequired",
    "title_is_valid",
    "sanitize_text_blocks",
    "sanitize_prompts",
]
