"""ETag helpers for rubric documents.

A rubric's entity tag is a weak SHA1 over its id and last-modified stamp, so
it changes on every whole-document save. Clients echo it in ``If-Match`` to
detect that another session saved the rubric after they loaded it.
"""

from __future__ import annotations

import hashlib
import logging

logger = logging.getLogger(__name__)


def compute_rubric_etag(rubric_id: str, updated_at: str) -> str:
    token = f"{rubric_id}|{updated_at}".encode("utf-8")
    return f'W/"{hashlib.sha1(token).hexdigest()}"'


def normalize_if_match(value: str | None) -> str:
    """Return the opaque token of an ETag/If-Match value.

    Tolerates surrounding whitespace, the weak prefix and quotes, so
    ``W/"abc"``, ``"abc"`` and ``abc`` all normalize to ``abc``.
    """
    if value is None:
        return ""
    v = value.strip()
    if v[:2].upper() == "W/":
        v = v[2:].strip()
    if len(v) >= 2 and v[0] == '"' and v[-1] == '"':
        v = v[1:-1]
    return v


def compare_etag(current: str | None, if_match: str | None) -> bool:
    """Return True when any token of a comma-separated If-Match matches ``current``.

    A wildcard ``*`` matches any existing entity; empty values never match.
    """
    if not current or not if_match:
        return False
    current_norm = normalize_if_match(current)
    tokens = [normalize_if_match(t) for t in if_match.split(",") if t.strip()]
    matched = "*" in tokens or current_norm in tokens
    logger.info("etag.compare tokens=%s matched=%s", len(tokens), matched)
    return matched


__all__ = ["compute_rubric_etag", "normalize_if_match", "compare_etag"]
