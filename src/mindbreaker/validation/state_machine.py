"""Content validation state machine.

States: draft -> pending (published, not validated) -> published (validated)
-> archived. A quest may additionally carry a shadow draft (``draft_data``),
a proposed edit overlay orthogonal to its state.

Everything here is pure: each ``plan_*`` function inspects a record and
returns the column changes to apply, or raises ``ValueError`` for a
transition the record's state does not allow. Persistence lives in
``mindbreaker.validation.service``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from mindbreaker.validation.registry import EntityKind


class State(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# Never copied from a shadow draft or an edit request onto the live record
SYSTEM_MANAGED_FIELDS = frozenset({
    "id",
    "created_at",
    "updated_at",
    "edit_reason",
    "is_validated",
    "status",
    "author_id",
    "draft_data",
})

VALID_ACTIONS: dict[State, frozenset[str]] = {
    State.DRAFT: frozenset({"approve", "update", "reject", "merge", "delete"}),
    State.PENDING: frozenset({"approve", "update", "reject", "merge", "delete"}),
    State.PUBLISHED: frozenset({"approve", "update", "reject", "merge", "delete"}),
    State.ARCHIVED: frozenset({"merge", "delete"}),
}

REJECT_UNSUPPORTED = "Rejection with reason is only supported for Quests"


def derive_state(record: Any) -> State:  # noqa: ANN401
    """Map a record's ``status`` / ``is_validated`` pair onto a state."""
    if record.status == State.ARCHIVED.value:
        return State.ARCHIVED
    if record.status == State.DRAFT.value:
        return State.DRAFT
    return State.PUBLISHED if record.is_validated else State.PENDING


def has_shadow_draft(record: Any) -> bool:  # noqa: ANN401
    return getattr(record, "draft_data", None) is not None


def validate_transition(record: Any, action: str) -> State:  # noqa: ANN401
    """Raise ValueError if ``action`` is not allowed from the record's state."""
    state = derive_state(record)
    if action not in VALID_ACTIONS[state]:
        raise ValueError(f"Cannot {action} a record that is {state.value}")
    return state


def merge_draft(columns: Iterable[str], draft: Mapping[str, Any]) -> dict[str, Any]:
    """Changes a shadow draft (or edit request) proposes for the live record.

    Denylisted keys and keys that are not columns of the record are dropped.
    An explicit ``None`` is kept: it clears the column.
    """
    columns = frozenset(columns)
    return {
        key: value
        for key, value in draft.items()
        if key not in SYSTEM_MANAGED_FIELDS and key in columns
    }


def _check_name(kind: EntityKind, changes: Mapping[str, Any]) -> None:
    if kind.name_field in changes:
        value = changes[kind.name_field]
        if value is None or not str(value).strip():
            raise ValueError(f"{kind.label} {kind.name_field} cannot be empty")


def plan_edit(kind: EntityKind, data: Mapping[str, Any]) -> dict[str, Any]:
    """Column changes for a proposed edit, refusing one that blanks the name."""
    changes = merge_draft(kind.column_names, data)
    _check_name(kind, changes)
    return changes


def plan_approve(kind: EntityKind, record: Any) -> dict[str, Any]:  # noqa: ANN401
    """Approve a record.

    With a shadow draft: apply the draft and clear it; ``status`` and
    ``is_validated`` are left as they are. Otherwise: mark it validated
    (publishing it if it was still a draft). Approving a record that is
    already validated and has no draft is a no-op and returns ``{}``.
    """
    state = validate_transition(record, "approve")

    if kind.supports_draft and has_shadow_draft(record):
        merged = plan_edit(kind, record.draft_data)
        merged["draft_data"] = None
        return merged

    if state is State.PUBLISHED:
        return {}

    changes: dict[str, Any] = {"is_validated": True}
    if state is State.DRAFT:
        changes["status"] = State.PUBLISHED.value
    return changes


def plan_update(kind: EntityKind, record: Any, fields: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ANN401
    """Validate a record while applying admin corrections.

    ``fields`` holds only what the caller explicitly sent; anything omitted is
    left unchanged. ``name`` and ``title`` both target the kind's name column;
    ``description`` targets ``summary`` on kinds that have one.
    """
    state = validate_transition(record, "update")
    changes: dict[str, Any] = {"is_validated": True}
    if state is State.DRAFT:
        changes["status"] = State.PUBLISHED.value

    for key in ("name", "title"):
        if key in fields:
            changes[kind.name_field] = fields[key]
    _check_name(kind, changes)

    if kind.summary_field in fields:
        changes[kind.summary_field] = fields[kind.summary_field]
    elif "description" in fields:
        changes[kind.summary_field] = fields["description"]

    for key in kind.extra_fields:
        if key in fields:
            changes[key] = fields[key]

    return changes


def plan_reject(
    kind: EntityKind,
    record: Any,  # noqa: ANN401
    reason: str | None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Reject a record with a reason.

    With a shadow draft only the draft is discarded. Without one the record
    is archived.
    """
    if not kind.supports_reject:
        raise ValueError(REJECT_UNSUPPORTED)
    if reason is None or not reason.strip():
        raise ValueError("Rejection reason is required")
    validate_transition(record, "reject")

    if kind.supports_draft and has_shadow_draft(record):
        return {"draft_data": None, "rejection_reason": reason}

    return {
        "status": State.ARCHIVED.value,
        "rejection_reason": reason,
        "archived_at": now or datetime.now(timezone.utc),
    }


def check_merge(source_id: str, target_id: str | None) -> str:
    """Validate a merge target id before any record is loaded."""
    if not target_id:
        raise ValueError("targetId is required")
    if target_id == source_id:
        raise ValueError("Cannot merge a record into itself")
    return target_id
