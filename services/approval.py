"""
Two-level approval state machine for builder visits.

Each level is {status, by, at, comment} with status Pending | Approved | Rejected.
Level 2 can only be approved while level 1 is Approved; rejecting level 2 sends an
approved level 1 back to Pending; any full edit resets both levels.
Functions are pure: they take the stored structure and return a new one.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from services.errors import InvalidComment, PrecursorNotApproved, ValidationError

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"

STATUS_PENDING = "Pending"
STATUS_LEVEL1_APPROVED = "Level1Approved"
STATUS_LEVEL2_APPROVED = "Level2Approved"
STATUS_LEVEL1_REJECTED = "Level1Rejected"
STATUS_LEVEL2_REJECTED = "Level2Rejected"

MIN_COMMENT_LENGTH = 3
LEVELS = (1, 2)


@dataclass
class ApprovalOutcome:
    approval: dict[str, Any]
    approval_status: str


def pending_level() -> dict[str, Any]:
    return {"status": PENDING, "by": "", "at": None, "comment": ""}


def initial_approval() -> dict[str, Any]:
    return {"level1": pending_level(), "level2": pending_level()}


def ensure_approval(approval: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Copy of the stored structure with missing levels/keys filled as Pending (legacy records have none)."""
    out = initial_approval()
    for key in ("level1", "level2"):
        stored = (approval or {}).get(key)
        if isinstance(stored, dict):
            out[key] = {**pending_level(), **copy.deepcopy(stored)}
            if not out[key].get("status"):
                out[key]["status"] = PENDING
    return out


def _level_key(level: Any) -> str:
    try:
        level = int(level)
    except (TypeError, ValueError):
        raise ValidationError("Approval level must be 1 or 2")
    if level not in LEVELS:
        raise ValidationError("Approval level must be 1 or 2")
    return f"level{level}"


def _stamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def derive_status(approval: dict[str, Any], previous: Optional[str] = None) -> str:
    """Legacy single-string projection after an approval."""
    l1 = approval["level1"]["status"]
    l2 = approval["level2"]["status"]
    if l1 == APPROVED and l2 == APPROVED:
        return STATUS_LEVEL2_APPROVED
    if l1 == APPROVED:
        return STATUS_LEVEL1_APPROVED
    return previous or STATUS_PENDING


def approve(
    approval: Optional[dict[str, Any]],
    level: Any,
    by: str,
    comment: str = "",
    previous_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ApprovalOutcome:
    key = _level_key(level)
    state = ensure_approval(approval)
    if key == "level2" and state["level1"]["status"] != APPROVED:
        raise PrecursorNotApproved()
    state[key] = {"status": APPROVED, "by": by or "", "at": _stamp(now), "comment": (comment or "").strip()}
    return ApprovalOutcome(state, derive_status(state, previous_status))


def validate_comment(comment: Optional[str]) -> str:
    text = (comment or "").strip()
    if len(text) < MIN_COMMENT_LENGTH:
        raise InvalidComment()
    return text


def reject(
    approval: Optional[dict[str, Any]],
    level: Any,
    by: str,
    comment: Optional[str],
    now: Optional[datetime] = None,
) -> ApprovalOutcome:
    text = validate_comment(comment)
    key = _level_key(level)
    state = ensure_approval(approval)
    state[key] = {"status": REJECTED, "by": by or "", "at": _stamp(now), "comment": text}
    if key == "level2":
        if state["level1"]["status"] == APPROVED:
            state["level1"] = pending_level()
        return ApprovalOutcome(state, STATUS_LEVEL2_REJECTED)
    # Level 1 rejection leaves level 2 as it was (ensure_approval already defaulted it to Pending).
    return ApprovalOutcome(state, STATUS_LEVEL1_REJECTED)


def reset_on_edit() -> ApprovalOutcome:
    return ApprovalOutcome(initial_approval(), STATUS_PENDING)


def is_fully_approved(approval: Optional[dict[str, Any]]) -> bool:
    return ensure_approval(approval)["level2"]["status"] == APPROVED


def legacy_projection(
    approval: Optional[dict[str, Any]], legacy_status: Optional[str], now: Optional[datetime] = None
) -> Optional[ApprovalOutcome]:
    """
    Map a single-string legacy approvalStatus onto the two-level structure.
    Returns None when nothing needs to change.
    """
    changed = not approval
    state = ensure_approval(approval)
    status = legacy_status or ""
    legacy = status.lower()
    stamp = {"by": "migration", "at": _stamp(now), "comment": "Mapped from legacy approvalStatus"}
    if legacy == "approved":
        status = "Approved"
        if state["level2"]["status"] != APPROVED:
            state["level2"] = {"status": APPROVED, **stamp}
            changed = True
    elif legacy in ("rejected", "changes needed"):
        if state["level2"]["status"] != REJECTED or status != "Changes Needed":
            state["level2"] = {"status": REJECTED, **stamp}
            changed = True
        status = "Changes Needed"
    if not changed:
        return None
    return ApprovalOutcome(state, status or STATUS_PENDING)
