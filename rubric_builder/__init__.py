"""Peer Review Rubric builder.

The editing engine lives in `rubric_builder/logic/` (block store, ordering,
dropdown options, document and edit session) and talks to the rubric service
through `logic/persistence_client.py`. A reference implementation of that
service is exposed by the FastAPI application factory below; its routes live
in `rubric_builder/routes/`.
"""

from __future__ import annotations

from rubric_builder.main import create_app

__all__ = ["create_app"]
