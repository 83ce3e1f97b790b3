"""Rubric data access helpers.

Each rubric is stored as one row: metadata columns plus a JSON ``document``
column holding the three block lists. Saves always rewrite the whole
document; there is no per-block storage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import json
import logging
import re

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from rubric_builder.db.base import get_engine

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS rubric (
    rubric_id VARCHAR(64) PRIMARY KEY,
    org_id VARCHAR(64) NOT NULL,
    rubric_title VARCHAR(200) NOT NULL,
    is_org_default BOOLEAN NOT NULL DEFAULT FALSE,
    document TEXT NOT NULL,
    created_at VARCHAR(40) NOT NULL,
    updated_at VARCHAR(40) NOT NULL
)
"""

_COLUMNS = "rubric_id, org_id, rubric_title, is_org_default, document, created_at, updated_at"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_schema(engine: Engine | None = None) -> None:
    eng = engine or get_engine()
    with eng.begin() as conn:
        conn.execute(sql_text(_SCHEMA))


def _row_to_rubric(row: Any) -> Dict[str, Any]:
    document = json.loads(row["document"] or "{}")
    return {
        "rubricID": row["rubric_id"],
        "orgID": row["org_id"],
        "rubricTitle": row["rubric_title"],
        "isOrgDefault": bool(row["is_org_default"]),
        "headings": document.get("headings", []),
        "textBlocks": document.get("textBlocks", []),
        "prompts": document.get("prompts", []),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _encode_document(headings: list, text_blocks: list, prompts: list) -> str:
    return json.dumps(
        {"headings": headings, "textBlocks": text_blocks, "prompts": prompts},
        ensure_ascii=False,
        separators=(",", ":"),
    )


def get_rubric(rubric_id: str) -> Optional[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM rubric WHERE rubric_id = :rid"),
            {"rid": rubric_id},
        ).mappings().fetchone()
    return _row_to_rubric(row) if row else None


def create_rubric(
    rubric_id: str,
    org_id: str,
    rubric_title: str,
    is_org_default: bool,
    headings: list,
    text_blocks: list,
    prompts: list,
) -> Dict[str, Any]:
    stamp = _now()
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text(
                f"INSERT INTO rubric ({_COLUMNS}) VALUES "
                "(:rid, :org, :title, :is_default, :doc, :created, :updated)"
            ),
            {
                "rid": rubric_id,
                "org": org_id,
                "title": rubric_title,
                "is_default": bool(is_org_default),
                "doc": _encode_document(headings, text_blocks, prompts),
                "created": stamp,
                "updated": stamp,
            },
        )
    logger.info("repository_rubrics.create rubric_id=%s org_default=%s", rubric_id, is_org_default)
    return get_rubric(rubric_id) or {}


def update_rubric(
    rubric_id: str,
    rubric_title: Optional[str],
    headings: list,
    text_blocks: list,
    prompts: list,
) -> bool:
    """Overwrite a rubric's document (and title when given). False when absent."""
    params = {
        "rid": rubric_id,
        "doc": _encode_document(headings, text_blocks, prompts),
        "updated": _now(),
    }
    assignments = "document = :doc, updated_at = :updated"
    if rubric_title:
        assignments += ", rubric_title = :title"
        params["title"] = rubric_title
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(
            sql_text(f"UPDATE rubric SET {assignments} WHERE rubric_id = :rid"),
            params,
        )
    updated = result.rowcount == 1
    logger.info("repository_rubrics.update rubric_id=%s updated=%s", rubric_id, updated)
    return updated


def delete_rubric(rubric_id: str) -> bool:
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(
            sql_text("DELETE FROM rubric WHERE rubric_id = :rid"),
            {"rid": rubric_id},
        )
    return result.rowcount == 1


def org_has_default(org_id: str) -> bool:
    """True when the organization already owns its default rubric."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT 1 FROM rubric WHERE rubric_id = :org AND is_org_default = :yes"),
            {"org": org_id, "yes": True},
        ).fetchone()
    return row is not None


def _title_sort_key(title: str) -> str:
    return re.sub(r"[^A-Za-z]+", "", str(title)).lower()


def list_rubrics() -> List[Dict[str, Any]]:
    """Return rubric summaries ordered by letters-only, case-folded title."""
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(sql_text(f"SELECT {_COLUMNS} FROM rubric")).mappings().all()
    result: List[Dict[str, Any]] = []
    for r in rows:
        rubric = _row_to_rubric(r)
        result.append(
            {
                "rubricID": rubric["rubricID"],
                "rubricTitle": rubric["rubricTitle"],
                "isOrgDefault": rubric["isOrgDefault"],
                "numPrompts": len(rubric["prompts"]),
                "updatedAt": rubric["updatedAt"],
            }
        )
    result.sort(key=lambda item: _title_sort_key(item["rubricTitle"]))
    return result


__all__ = [
    "ensure_schema",
    "get_rubric",
    "create_rubric",
    "update_rubric",
    "delete_rubric",
    "org_has_default",
    "list_rubrics",
]
