"""End-to-end tests: edit sessions saving to and loading from the rubric service.

The service runs in-process behind ``httpx.ASGITransport``. Scenarios that
need a misbehaving service (transport failures, slow responses) use
``httpx.MockTransport`` instead.
"""

from __future__ import annotations

from typing import Any, Dict, List

import anyio
import httpx
import pytest

from rubric_builder.logic.dropdown_options import DropdownOptionList
from rubric_builder.logic.edit_session import EditSession, SessionNotEditableError, SessionState
from rubric_builder.logic.rubric_document import (
    MODE_CREATE,
    MODE_EDIT,
    PromptDraft,
    RubricTitleLockedError,
)
from rubric_builder.models.blocks import BlockVariant

pytestmark = pytest.mark.anyio


def _fill(session: EditSession, title: str = "Lab Report Review") -> None:
    session.set_title(title)
    session.add_heading("Intro")
    session.commit_prompt(PromptDraft(prompt_type="text", prompt_text="Rate this", prompt_required=True))
    session.add_text_block("Instructions")
    options = DropdownOptionList()
    options.add("Agree")
    options.add("Disagree")
    session.commit_prompt(PromptDraft(prompt_type="dropdown", prompt_text="Overall", options=options))


def _wire_rubric(rubric_id: str, title: str, **overrides: Any) -> Dict[str, Any]:
    rubric = {
        "rubricID": rubric_id,
        "rubricTitle": title,
        "isOrgDefault": False,
        "headings": [{"text": f"{title} heading", "order": 1}],
        "textBlocks": [],
        "prompts": [],
    }
    rubric.update(overrides)
    return rubric


@pytest.fixture
def create_rubric(persistence, new_session, org):
    """Create and save a filled-in rubric, returning its id."""

    async def _create(title: str = "Lab Report Review") -> str:
        session = new_session(persistence)
        await session.start_create(org.org_id)
        _fill(session, title)
        outcome = await session.save()
        assert outcome is not None
        return outcome.rubric_id

    return _create


# ---------------------------------------------------------------------------
# Create, load, edit
# ---------------------------------------------------------------------------


async def test_create_then_load_round_trip(persistence, new_session, org) -> None:
    session = new_session(persistence)
    await session.start_create(org.org_id)
    assert session.document.org_default_available is True
    _fill(session)
    assert session.state == SessionState.DIRTY

    outcome = await session.save()
    assert outcome is not None
    assert outcome.created is True
    assert outcome.redirect_params == {"created": "true"}
    assert session.state == SessionState.CLEAN
    assert session.document.mode == MODE_EDIT
    assert session.document.rubric_id == outcome.rubric_id
    assert session.document.etag

    reader = new_session(persistence)
    assert await reader.load(outcome.rubric_id) is True
    assert reader.state == SessionState.CLEAN
    assert reader.document.title == "Lab Report Review"
    assert reader.document.etag == session.document.etag
    assert reader.document.last_updated is not None
    assert reader.document.to_payload()["prompts"] == session.document.to_payload()["prompts"]
    assert [v for v, _ in reader.document.merged_ordered_view()] == [
        BlockVariant.HEADING,
        BlockVariant.PROMPT,
        BlockVariant.TEXT_BLOCK,
        BlockVariant.PROMPT,
    ]


async def test_start_create_after_save_creates_a_second_rubric(persistence, http_client, new_session, org) -> None:
    session = new_session(persistence)
    await session.start_create(org.org_id)
    _fill(session, "First rubric")
    first = await session.save()
    assert first is not None and first.created is True

    await session.start_create(org.org_id)
    assert session.document.mode == MODE_CREATE
    assert session.document.rubric_id is None
    assert session.document.etag is None
    assert session.document.org_default_available is True
    assert session.document.to_payload()["mode"] == "create"
    _fill(session, "Second rubric")
    second = await session.save()
    assert second is not None
    assert second.created is True
    assert second.rubric_id != first.rubric_id

    listing = (await http_client.get("/rubrics")).json()
    assert [r["rubricTitle"] for r in listing["rubrics"]] == ["First rubric", "Second rubric"]


async def test_start_create_after_load_leaves_edit_mode(persistence, new_session, org, create_rubric) -> None:
    rubric_id = await create_rubric()
    session = new_session(persistence)
    assert await session.load(rubric_id) is True
    assert session.document.mode == MODE_EDIT

    await session.start_create(org.org_id)
    assert session.document.mode == MODE_CREATE
    assert session.document.store.count() == 0
    assert session.document.org_default_available is True


async def test_edit_save_persists_moves_and_signals_saved(persistence, new_session, create_rubric) -> None:
    rubric_id = await create_rubric()
    session = new_session(persistence)
    await session.load(rubric_id)
    loaded_etag = session.document.etag

    assert session.move(4, "up") is True
    assert session.delete(1) is True
    assert session.state == SessionState.DIRTY
    outcome = await session.save()
    assert outcome.created is False
    assert outcome.redirect_params == {"saved": "true"}
    assert outcome.rubric_id == rubric_id
    assert session.document.etag != loaded_etag

    reader = new_session(persistence)
    await reader.load(rubric_id)
    view = reader.document.merged_ordered_view()
    assert [b.order for _, b in view] == [1, 2, 3]
    assert [v for v, _ in view] == [BlockVariant.PROMPT, BlockVariant.PROMPT, BlockVariant.TEXT_BLOCK]
    assert view[1][1].prompt_text == "Overall"


async def test_noop_mutations_leave_session_clean(persistence, new_session, create_rubric) -> None:
    rubric_id = await create_rubric()
    session = new_session(persistence)
    await session.load(rubric_id)
    assert session.move(1, "up") is False
    assert session.delete(99) is False
    assert session.state == SessionState.CLEAN


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


async def test_concurrent_edit_is_rejected_and_session_stays_dirty(persistence, new_session, create_rubric) -> None:
    rubric_id = await create_rubric()
    errors: List[str] = []
    first = new_session(persistence, errors)
    second = new_session(persistence)
    await first.load(rubric_id)
    await second.load(rubric_id)

    second.add_heading("Added elsewhere")
    assert await second.save() is not None

    first.delete(1)
    assert await first.save() is None
    assert first.state == SessionState.DIRTY
    assert first.error == "This rubric was changed by someone else since it was loaded."
    assert errors == [first.error]
    assert first.document.store.count() == 3

    reader = new_session(persistence)
    await reader.load(rubric_id)
    assert reader.document.store.count() == 5


async def test_put_without_if_match_is_last_write_wins(persistence, http_client, new_session, create_rubric) -> None:
    rubric_id = await create_rubric()
    session = new_session(persistence)
    await session.load(rubric_id)
    session.add_heading("Newer")
    await session.save()

    body = {"mode": "edit", "rubricID": rubric_id, "rubricTitle": "Overwritten", "headings": [], "textBlocks": [], "prompts": []}
    response = await http_client.put("/rubric", json=body)
    assert response.status_code == 200
    assert response.json()["err"] is False

    stale = await http_client.put("/rubric", json=body, headers={"If-Match": session.document.etag})
    assert stale.status_code == 412
    assert stale.json()["code"] == "PRE_IF_MATCH_ETAG_MISMATCH"


async def test_load_of_unknown_rubric_is_terminal(persistence, new_session) -> None:
    errors: List[str] = []
    session = new_session(persistence, errors)
    assert await session.load("does-not-exist") is False
    assert session.state == SessionState.LOAD_ERROR
    assert session.error == "Sorry, we're having trouble finding a Peer Review Rubric to use."
    assert errors == [session.error]
    assert session.document.store.count() == 0
    with pytest.raises(SessionNotEditableError):
        session.add_heading("Nope")
    with pytest.raises(SessionNotEditableError):
        await session.save()


@pytest.mark.parametrize("rubric_id", [None, "", "   "])
async def test_load_without_rubric_id(persistence, new_session, rubric_id) -> None:
    session = new_session(persistence)
    assert await session.load(rubric_id) is False
    assert session.state == SessionState.LOAD_ERROR
    assert session.error == "No Rubric ID provided."


async def test_invalid_document_is_not_sent(new_session, mock_persistence) -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(500)

    session = new_session(mock_persistence(handler))
    session.add_heading("Intro")
    assert await session.save() is None
    assert session.field_errors == {"rubricTitle": "missing"}
    assert session.state == SessionState.DIRTY
    assert requests == []


async def test_transport_failure_on_save_keeps_document(new_session, mock_persistence) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    errors: List[str] = []
    session = new_session(mock_persistence(handler), errors)
    _fill(session)
    assert await session.save() is None
    assert session.state == SessionState.DIRTY
    assert session.error.startswith("Unable to reach the rubric service")
    assert errors == [session.error]
    assert session.document.mode == MODE_CREATE
    assert session.document.rubric_id is None
    assert session.document.store.count() == 4


async def test_unexpected_save_failure_returns_session_to_dirty(new_session, mock_persistence) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("transport exploded")

    session = new_session(mock_persistence(handler))
    _fill(session)
    with pytest.raises(RuntimeError):
        await session.save()
    assert session.state == SessionState.DIRTY
    # Still editable after the failure
    session.add_heading("Still editable")
    assert session.document.store.count() == 5


async def test_malformed_stored_prompt_fails_the_load(new_session, mock_persistence) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        prompts = [{"promptType": "essay", "promptText": "Write", "order": 2}]
        return httpx.Response(200, json={"err": False, "rubric": _wire_rubric("r1", "Broken", prompts=prompts)})

    session = new_session(mock_persistence(handler))
    assert await session.load("r1") is False
    assert session.state == SessionState.LOAD_ERROR
    assert session.document.store.count() == 0


async def test_loaded_orders_are_made_contiguous(new_session, mock_persistence) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        rubric = _wire_rubric(
            "r1",
            "Gappy",
            headings=[{"text": "Top", "order": 3}],
            prompts=[{"promptType": "checkbox", "promptText": "Done?", "order": 9, "id": "p-1"}],
        )
        return httpx.Response(200, json={"err": False, "rubric": rubric}, headers={"ETag": 'W/"abc"'})

    session = new_session(mock_persistence(handler))
    assert await session.load("r1") is True
    assert session.document.store.orders() == [1, 2]
    assert session.document.etag == 'W/"abc"'
    assert session.document.to_payload()["prompts"][0]["id"] == "p-1"


async def test_load_drops_options_stored_on_non_dropdown_prompts(new_session, mock_persistence) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        stray = [{"key": "yes", "text": "Yes", "value": "yes"}]
        rubric = _wire_rubric(
            "r1",
            "Stray options",
            prompts=[{"promptType": "text", "promptText": "Comment", "order": 2, "promptOptions": stray}],
        )
        return httpx.Response(200, json={"err": False, "rubric": rubric})

    session = new_session(mock_persistence(handler))
    assert await session.load("r1") is True
    assert "promptOptions" not in session.document.to_payload()["prompts"][0]
    assert session.document.validate().valid


async def test_late_load_is_discarded_when_superseded(new_session, mock_persistence) -> None:
    slow_started = anyio.Event()
    release = anyio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        rubric_id = request.url.params["rubricID"]
        if rubric_id == "slow":
            slow_started.set()
            await release.wait()
        return httpx.Response(200, json={"err": False, "rubric": _wire_rubric(rubric_id, f"Rubric {rubric_id}")})

    session = new_session(mock_persistence(handler))
    results: Dict[str, bool] = {}

    async def load_slow() -> None:
        results["slow"] = await session.load("slow")

    async with anyio.create_task_group() as tg:
        tg.start_soon(load_slow)
        await slow_started.wait()
        results["fast"] = await session.load("fast")
        release.set()

    assert results == {"slow": False, "fast": True}
    assert session.document.rubric_id == "fast"
    assert session.document.title == "Rubric fast"
    assert session.state == SessionState.CLEAN


async def test_load_resolving_after_close_is_ignored(new_session, mock_persistence) -> None:
    started = anyio.Event()
    release = anyio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await release.wait()
        return httpx.Response(200, json={"err": False, "rubric": _wire_rubric("r1", "Late")})

    session = new_session(mock_persistence(handler))
    results: List[bool] = []

    async def load() -> None:
        results.append(await session.load("r1"))

    async with anyio.create_task_group() as tg:
        tg.start_soon(load)
        await started.wait()
        session.close()
        release.set()

    assert results == [False]
    assert session.document.loaded is False
    assert session.document.store.count() == 0


# ---------------------------------------------------------------------------
# Organization default
# ---------------------------------------------------------------------------


async def test_org_default_rubric_flow(persistence, http_client, new_session, org) -> None:
    session = new_session(persistence)
    await session.start_create(org.org_id)
    session.set_org_default(True)
    assert session.document.title == org.display_name
    session.commit_prompt(PromptDraft(prompt_type="3-likert", prompt_text="Clarity"))
    outcome = await session.save()
    assert outcome.rubric_id == org.org_id

    status = await http_client.get("/rubric/orgdefault")
    assert status.json() == {"err": False, "orgID": org.org_id, "hasDefault": True}

    second = new_session(persistence)
    await second.start_create(org.org_id)
    assert second.document.org_default_available is False

    default = await http_client.get("/rubric")
    assert default.status_code == 200
    assert default.json()["rubric"]["rubricID"] == org.org_id

    editor = new_session(persistence)
    await editor.load(org.org_id)
    assert editor.document.is_org_default is True
    assert editor.document.title_locked is True
    with pytest.raises(RubricTitleLockedError):
        editor.set_title("Renamed")

    duplicate = await http_client.put(
        "/rubric",
        json={"mode": "create", "orgDefault": True, "rubricTitle": "Another", "headings": [], "textBlocks": [], "prompts": []},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["err"] is True

    rename = await http_client.put(
        "/rubric",
        json={"mode": "edit", "rubricID": org.org_id, "rubricTitle": "Renamed", "headings": [], "textBlocks": [], "prompts": []},
    )
    assert rename.status_code == 200
    stored = (await http_client.get("/rubric", params={"rubricID": org.org_id})).json()["rubric"]
    assert stored["rubricTitle"] == org.display_name


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------


async def test_service_keeps_only_well_formed_blocks(http_client) -> None:
    body = {
        "mode": "create",
        "rubricTitle": "  Sanitized  ",
        "headings": [
            {"text": " Hi ", "order": 1},
            {"text": "   ", "order": 2},
            {"text": "Bad order", "order": "3"},
        ],
        "textBlocks": [{"text": "Body", "order": True}],
        "prompts": [
            {"promptType": "three_point_likert", "promptText": "Q", "order": 2, "promptRequired": "true"},
            {"promptType": "essay", "promptText": "Dropped", "order": 3},
            {
                "promptType": "dropdown",
                "promptText": "Choose",
                "order": 4,
                "promptOptions": [
                    {"key": "yes", "text": "Yes", "value": "yes"},
                    {"key": "yes", "text": "YES", "value": "yes"},
                    {"key": "", "text": "Blank", "value": ""},
                ],
            },
        ],
    }
    created = await http_client.put("/rubric", json=body)
    assert created.status_code == 201
    rubric_id = created.json()["rubricID"]
    assert created.headers["ETag"].startswith('W/"')

    stored = (await http_client.get("/rubric", params={"rubricID": rubric_id})).json()["rubric"]
    assert stored["rubricTitle"] == "Sanitized"
    assert stored["headings"] == [{"text": "Hi", "order": 1}]
    assert stored["textBlocks"] == []
    assert stored["prompts"] == [
        {"promptType": "3-likert", "promptText": "Q", "promptRequired": True, "order": 2},
        {
            "promptType": "dropdown",
            "promptText": "Choose",
            "promptRequired": False,
            "order": 4,
            "promptOptions": [{"key": "yes", "value": "yes", "text": "Yes"}],
        },
    ]


async def test_service_rejects_dropdown_without_options_and_short_titles(http_client) -> None:
    no_options = await http_client.put(
        "/rubric",
        json={
            "mode": "create",
            "rubricTitle": "Dropdowns",
            "prompts": [{"promptType": "dropdown", "promptText": "Pick", "order": 1, "promptOptions": []}],
        },
    )
    assert no_options.status_code == 400
    assert no_options.json() == {"err": True, "errMsg": "Oops, a Dropdown Prompt requires at least one response option."}

    short = await http_client.put("/rubric", json={"mode": "create", "rubricTitle": " ab "})
    assert short.status_code == 400
    assert short.json()["err"] is True

    missing_id = await http_client.put("/rubric", json={"mode": "edit", "rubricTitle": "Has title"})
    assert missing_id.status_code == 400

    unknown = await http_client.put("/rubric", json={"mode": "edit", "rubricID": "nope", "rubricTitle": "Has title"})
    assert unknown.status_code == 404

    bad_mode = await http_client.put("/rubric", json={"mode": "upsert", "rubricTitle": "Has title"})
    assert bad_mode.status_code == 422
    assert bad_mode.headers["content-type"].startswith("application/problem+json")


async def test_list_is_sorted_by_letters_and_delete_removes(http_client, create_rubric) -> None:
    gamma = await create_rubric("gamma")
    await create_rubric("Beta rubric")
    await create_rubric("  Alpha-2")

    listing = (await http_client.get("/rubrics")).json()
    assert listing["err"] is False
    assert [r["rubricTitle"] for r in listing["rubrics"]] == ["Alpha-2", "Beta rubric", "gamma"]
    assert all(r["numPrompts"] == 2 for r in listing["rubrics"])

    deleted = await http_client.delete("/rubric", params={"rubricID": gamma})
    assert deleted.status_code == 200
    assert (await http_client.get("/rubric", params={"rubricID": gamma})).status_code == 404
    again = await http_client.delete("/rubric", params={"rubricID": gamma})
    assert again.status_code == 404
    assert len((await http_client.get("/rubrics")).json()["rubrics"]) == 2


async def test_health(http_client) -> None:
    response = await http_client.get("http://testserver/health")
    assert response.json() == {"status": "ok"}
