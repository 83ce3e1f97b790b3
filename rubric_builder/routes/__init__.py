"""APIRouter registration for the rubric service."""

from __future__ import annotations

from fastapi import APIRouter

from rubric_builder.routes.rubrics import router as rubrics_router

api_router = APIRouter()
api_router.include_router(rubrics_router, tags=["PeerReviewRubrics"])

__all__ = ["api_router"]
