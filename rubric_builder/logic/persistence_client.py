"""Async HTTP client for the rubric service.

Wraps the three endpoints the editor needs (``GET /rubric``,
``GET /rubric/orgdefault`` and ``PUT /rubric``) and turns transport errors,
non-2xx statuses and ``{"err": true}`` envelopes into ``PersistenceError``
subclasses. These calls are the only places the editor suspends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import httpx
from pydantic import ValidationError as PydanticValidationError

from rubric_builder.config import PersistenceConfig
from rubric_builder.models.rubric import OrgDefaultStatus, RubricRecord

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RubricNotFoundError(PersistenceError):
    pass


class RubricConflictError(PersistenceError):
    """The stored rubric changed after it was loaded (If-Match mismatch)."""


class MalformedRubricError(PersistenceError):
    pass


@dataclass
class LoadedRubric:
    record: RubricRecord
    etag: Optional[str] = None


@dataclass
class SavedRubric:
    rubric_id: str
    etag: Optional[str] = None


class RubricPersistenceClient:
    def __init__(
        self,
        config: Optional[PersistenceConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if client is None:
            if config is None:
                raise ValueError("either config or client is required")
            client = httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)
        self._client = client

    async def __aenter__(self) -> "RubricPersistenceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("persistence.transport_error method=%s url=%s", method, url, exc_info=True)
            raise PersistenceError(f"Unable to reach the rubric service: {e}") from e

    @staticmethod
    def _unwrap(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = None
        message = None
        if isinstance(data, dict):
            message = data.get("errMsg") or data.get("detail") or data.get("title")
        status = response.status_code
        if status == 404:
            raise RubricNotFoundError(message or "Rubric not found.", status)
        if status == 412:
            raise RubricConflictError(message or "Rubric was modified since it was loaded.", status)
        if response.is_error:
            raise PersistenceError(message or f"Rubric service responded {status}.", status)
        if not isinstance(data, dict):
            raise MalformedRubricError("Rubric service returned a non-object body.", status)
        if data.get("err") is True:
            raise PersistenceError(message or "Rubric service reported an error.", status)
        return data

    async def get_rubric(self, rubric_id: str) -> LoadedRubric:
        response = await self._request("GET", "/rubric", params={"rubricID": rubric_id})
        data = self._unwrap(response)
        try:
            record = RubricRecord.model_validate(data.get("rubric"))
        except PydanticValidationError as e:
            logger.error("persistence.get_rubric.malformed rubric_id=%s errors=%s", rubric_id, e.error_count())
            raise MalformedRubricError("Rubric payload is malformed.", response.status_code) from e
        if record.rubric_id != rubric_id:
            raise MalformedRubricError("Unable to locate rubric.", response.status_code)
        return LoadedRubric(record=record, etag=response.headers.get("ETag"))

    async def get_org_default_status(self) -> OrgDefaultStatus:
        response = await self._request("GET", "/rubric/orgdefault")
        data = self._unwrap(response)
        try:
            return OrgDefaultStatus.model_validate(data)
        except PydanticValidationError as e:
            raise MalformedRubricError("Organization default status is malformed.", response.status_code) from e

    async def put_rubric(self, body: Dict[str, Any], *, if_match: Optional[str] = None) -> SavedRubric:
        headers = {"If-Match": if_match} if if_match else None
        response = await self._request("PUT", "/rubric", json=body, headers=headers)
        data = self._unwrap(response)
        rubric_id = data.get("rubricID")
        if not isinstance(rubric_id, str) or not rubric_id:
            raise MalformedRubricError("Save response did not include a rubric id.", response.status_code)
        logger.info("persistence.put_rubric.ok rubric_id=%s mode=%s", rubric_id, body.get("mode"))
        return SavedRubric(rubric_id=rubric_id, etag=response.headers.get("ETag"))


__all__ = [
    "PersistenceError",
    "RubricNotFoundError",
    "RubricConflictError",
    "MalformedRubricError",
    "LoadedRubric",
    "SavedRubric",
    "RubricPersistenceClient",
]
