"""Peer Review Rubric endpoints.

Whole-document persistence for rubrics: fetch one, list all, report whether
the organization has its default rubric, create/replace with a single PUT,
and delete. Successful responses carry ``{"err": false, ...}``; domain
failures use the ``{"err": true, "errMsg": ...}`` envelope.
"""

from __future__ import annotations

from typing import Optional
import logging
import uuid

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import JSONResponse

from rubric_builder.config import AppConfig
from rubric_builder.http.problem import error_response
from rubric_builder.logic import repository_rubrics
from rubric_builder.logic.etag import compare_etag, compute_rubric_etag
from rubric_builder.logic.rubric_sanitize import (
    DropdownOptionsRequired,
    sanitize_prompts,
    sanitize_text_blocks,
    title_is_valid,
)
from rubric_builder.models.rubric import RubricSaveRequest, RubricSummary

router = APIRouter()
logger = logging.getLogger(__name__)


def _config(request: Request) -> AppConfig:
    return request.app.state.config


def _etag_for(rubric: dict) -> str:
    return compute_rubric_etag(rubric["rubricID"], rubric["updatedAt"])


@router.get(
    "/rubric",
    summary="Get a Peer Review Rubric",
    operation_id="getPeerReviewRubric",
)
def get_rubric(request: Request, rubric_id: Optional[str] = Query(default=None, alias="rubricID")) -> JSONResponse:
    rid = (rubric_id or "").strip() or _config(request).organization.org_id
    rubric = repository_rubrics.get_rubric(rid)
    if rubric is None:
        logger.info("rubrics.get.not_found rubric_id=%s", rid)
        return error_response("rubric_not_found")
    return JSONResponse({"err": False, "rubric": rubric}, headers={"ETag": _etag_for(rubric)})


@router.get(
    "/rubric/orgdefault",
    summary="Report whether the organization has a default rubric",
    operation_id="checkOrgDefaultRubric",
)
def check_org_default(request: Request) -> JSONResponse:
    org_id = _config(request).organization.org_id
    has_default = repository_rubrics.org_has_default(org_id)
    return JSONResponse({"err": False, "orgID": org_id, "hasDefault": has_default})


@router.get(
    "/rubrics",
    summary="List all Peer Review Rubrics",
    operation_id="getAllPeerReviewRubrics",
)
def list_rubrics() -> JSONResponse:
    rubrics = [
        RubricSummary.model_validate(r).model_dump(by_alias=True, mode="json")
        for r in repository_rubrics.list_rubrics()
    ]
    return JSONResponse({"err": False, "rubrics": rubrics})


@router.put(
    "/rubric",
    summary="Create or replace a Peer Review Rubric",
    operation_id="updatePeerReviewRubric",
)
def put_rubric(
    request: Request,
    payload: RubricSaveRequest,
    if_match: Optional[str] = Header(default=None, alias="If-Match"),
) -> JSONResponse:
    org = _config(request).organization
    logger.info(
        "rubrics.put.entry mode=%s rubric_id=%s blocks=%s",
        payload.mode,
        payload.rubric_id,
        len(payload.headings) + len(payload.text_blocks) + len(payload.prompts),
    )
    if not title_is_valid(payload.rubric_title):
        return error_response("missing_values")

    existing = None
    if payload.mode == "edit":
        if not (payload.rubric_id or "").strip():
            return error_response("missing_values")
        existing = repository_rubrics.get_rubric(payload.rubric_id.strip())
        if existing is None:
            return error_response("not_found")
        if if_match is not None and not compare_etag(_etag_for(existing), if_match):
            logger.info("rubrics.put.etag_mismatch rubric_id=%s", existing["rubricID"])
            return error_response("etag_mismatch", headers={"ETag": _etag_for(existing)})

    headings = sanitize_text_blocks(payload.headings, "heading")
    text_blocks = sanitize_text_blocks(payload.text_blocks, "textBlock")
    try:
        prompts = sanitize_prompts(payload.prompts)
    except DropdownOptionsRequired:
        logger.info("rubrics.put.dropdown_options_missing", exc_info=True)
        return error_response("dropdown_options")

    title = payload.rubric_title.strip()
    if existing is None:
        is_default = payload.org_default is True
        if is_default and repository_rubrics.org_has_default(org.org_id):
            return error_response("org_default_exists")
        rubric_id = org.org_id if is_default else uuid.uuid4().hex[:12]
        saved = repository_rubrics.create_rubric(
            rubric_id=rubric_id,
            org_id=org.org_id,
            rubric_title=title,
            is_org_default=is_default,
            headings=headings,
            text_blocks=text_blocks,
            prompts=prompts,
        )
        status_code, msg = 201, "Peer Review Rubric successfully created."
    else:
        rubric_id = existing["rubricID"]
        # The organization default keeps the organization's name as its title
        new_title = None if existing["isOrgDefault"] else title
        if not repository_rubrics.update_rubric(rubric_id, new_title, headings, text_blocks, prompts):
            return error_response("save_failed")
        saved = repository_rubrics.get_rubric(rubric_id) or existing
        status_code, msg = 200, "Peer Review Rubric successfully updated."

    return JSONResponse(
        {"err": False, "rubricID": rubric_id, "msg": msg},
        status_code=status_code,
        headers={"ETag": _etag_for(saved)},
    )


@router.delete(
    "/rubric",
    summary="Delete a Peer Review Rubric",
    operation_id="deletePeerReviewRubric",
)
def delete_rubric(rubric_id: str = Query(alias="rubricID")) -> JSONResponse:
    if not repository_rubrics.delete_rubric(rubric_id.strip()):
        return error_response("not_found")
    logger.info("rubrics.delete rubric_id=%s", rubric_id)
    return JSONResponse({"err": False, "msg": "Rubric successfully deleted."})


__all__ = ["router"]
