"""Central error mapping for the rubric service.

Single source of truth for the user-facing messages and HTTP statuses that
route handlers attach to failed requests. Route modules must import from
here instead of hardcoding strings or numbers.
"""

from __future__ import annotations

ERROR_MAP = {
    "missing_values": {"status": 400, "message": "Required field is missing or malformed."},
    "save_failed": {"status": 500, "message": "An error occured saving information to the database."},
    "internal": {"status": 500, "message": "Sorry, we seem to have encountered an internal error."},
    "not_found": {"status": 404, "message": "A resource with that identifier was not found."},
    "rubric_not_found": {"status": 404, "message": "Sorry, we're having trouble finding a Peer Review Rubric to use."},
    "dropdown_options": {"status": 400, "message": "Oops, a Dropdown Prompt requires at least one response option."},
    "org_default_exists": {"status": 409, "message": "This organization already has a default Peer Review Rubric."},
    "etag_mismatch": {
        "status": 412,
        "code": "PRE_IF_MATCH_ETAG_MISMATCH",
        "message": "This rubric was changed by someone else since it was loaded.",
    },
}

__all__ = ["ERROR_MAP"]
