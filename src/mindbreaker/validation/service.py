"""Admin validation workflow: applies state machine plans to the database.

Each transition loads the record, asks ``state_machine`` for a plan, writes
it and commits in one transaction. Post-commit work (author notification
push, cache invalidation) never undoes a committed transition.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from mindbreaker.cache.tags import revalidate_content
from mindbreaker.config import get_settings
from mindbreaker.database import atomic
from mindbreaker.db.models import EditRequest, Expedition, Notification, Organization, Profile, Quest
from mindbreaker.errors import InvalidInput, NotFound
from mindbreaker.notifications.service import create_notification, push_notification
from mindbreaker.validation import state_machine
from mindbreaker.validation.registry import EntityKind, get_kind_for_resource

logger = structlog.get_logger()


async def _load(db: AsyncSession, kind: EntityKind, record_id: str) -> Any:  # noqa: ANN401
    record = await db.get(kind.model, record_id)
    if record is None:
        raise NotFound(f"{kind.label} not found")
    return record


def _apply(record: Any, changes: dict[str, Any]) -> None:  # noqa: ANN401
    for key, value in changes.items():
        setattr(record, key, value)


async def _notify_author(
    db: AsyncSession,
    kind: EntityKind,
    record: Any,  # noqa: ANN401
    subtype: str,
    title: str,
    description: str | None = None,
) -> Notification | None:
    if record.author_id is None:
        return None
    return await create_notification(
        db,
        record.author_id,
        "validation",
        subtype,
        title,
        description=description,
        action_url=f"/{kind.type}/{record.id}",
        metadata={"type": kind.type, "id": record.id},
    )


async def _after_commit(redis: object | None, notification: Notification | None = None) -> None:
    if notification is not None:
        await push_notification(redis, notification)
    await revalidate_content(redis, get_settings().admin_revalidate_paths)


def _log_transition(kind: EntityKind, record_id: str, action: str, admin: Profile, **extra: Any) -> None:  # noqa: ANN401
    logger.info(
        "validation_transition",
        type=kind.type,
        id=record_id,
        action=action,
        admin_id=admin.id,
        **extra,
    )


def _record_name(kind: EntityKind, record: Any) -> str:  # noqa: ANN401
    return getattr(record, kind.name_field)


# ---------------------------------------------------------------------------
# Entity transitions
# ---------------------------------------------------------------------------


async def approve(
    db: AsyncSession, redis: object | None, kind: EntityKind, record_id: str, admin: Profile
) -> None:
    """Approve a record, or apply its shadow draft if it carries one."""
    notification = None
    async with atomic(db):
        record = await _load(db, kind, record_id)
        shadow = kind.supports_draft and state_machine.has_shadow_draft(record)
        changes = state_machine.plan_approve(kind, record)
        # Already validated: nothing to write, nobody to tell
        if changes:
            _apply(record, changes)
            notification = await _notify_author(
                db,
                kind,
                record,
                "edit_approved" if shadow else "approved",
                f"{kind.label} approved",
                description=_record_name(kind, record),
            )
    _log_transition(kind, record_id, "approve", admin, shadow_draft=shadow, noop=not changes)
    await _after_commit(redis, notification)


async def update_and_validate(
    db: AsyncSession,
    redis: object | None,
    kind: EntityKind,
    record_id: str,
    fields: dict[str, Any],
    admin: Profile,
) -> None:
    """Validate a record while applying the corrections present in ``fields``."""
    notification = None
    async with atomic(db):
        record = await _load(db, kind, record_id)
        _apply(record, state_machine.plan_update(kind, record, fields))
        notification = await _notify_author(
            db,
            kind,
            record,
            "approved",
            f"{kind.label} approved",
            description=_record_name(kind, record),
        )
    _log_transition(kind, record_id, "update", admin, fields=sorted(fields))
    await _after_commit(redis, notification)


async def reject(
    db: AsyncSession,
    redis: object | None,
    kind: EntityKind,
    record_id: str,
    reason: str | None,
    admin: Profile,
) -> None:
    """Reject a record (or only its shadow draft) with a reason."""
    if not kind.supports_reject:
        raise InvalidInput(state_machine.REJECT_UNSUPPORTED)
    if reason is None or not reason.strip():
        raise InvalidInput("Rejection reason is required")

    notification = None
    async with atomic(db):
        record = await _load(db, kind, record_id)
        shadow = state_machine.has_shadow_draft(record)
        _apply(record, state_machine.plan_reject(kind, record, reason))
        notification = await _notify_author(
            db,
            kind,
            record,
            "edit_rejected" if shadow else "rejected",
            f"{kind.label} rejected",
            description=reason,
        )
    _log_transition(kind, record_id, "reject", admin, shadow_draft=shadow)
    await _after_commit(redis, notification)


async def merge(
    db: AsyncSession,
    redis: object | None,
    kind: EntityKind,
    source_id: str,
    target_id: str | None,
    admin: Profile,
) -> None:
    """Fold a duplicate into ``target_id`` and delete it.

    Every reference is rewritten to the target and the source is deleted in
    one transaction. Per-user rows that already exist for the target are
    dropped from the source side first so unique keys hold.
    """
    try:
        target_id = state_machine.check_merge(source_id, target_id)
    except ValueError as e:
        raise InvalidInput(str(e)) from e

    async with atomic(db):
        source = await _load(db, kind, source_id)
        await _load(db, kind, target_id)
        state_machine.validate_transition(source, "merge")

        rewritten: dict[str, int] = {}
        for ref in kind.references:
            column = getattr(ref.model, ref.column)
            if ref.unique_with is not None:
                owner = getattr(ref.model, ref.unique_with)
                other = aliased(ref.model)
                taken = select(getattr(other, ref.unique_with)).where(getattr(other, ref.column) == target_id)
                await db.execute(
                    delete(ref.model)
                    .where(column == source_id, owner.in_(taken))
                    .execution_options(synchronize_session=False)
                )
            result = await db.execute(
                update(ref.model)
                .where(column == source_id)
                .values({ref.column: target_id})
                .execution_options(synchronize_session=False)
            )
            rewritten[ref.model.__tablename__] = result.rowcount

        await db.delete(source)

    _log_transition(kind, source_id, "merge", admin, target_id=target_id, rewritten=rewritten)
    await _after_commit(redis)


async def delete_record(
    db: AsyncSession, redis: object | None, kind: EntityKind, record_id: str, admin: Profile
) -> None:
    """Hard delete; dependent rows follow the database's ON DELETE rules."""
    async with atomic(db):
        record = await _load(db, kind, record_id)
        await db.delete(record)
    _log_transition(kind, record_id, "delete", admin)
    await _after_commit(redis)


# ---------------------------------------------------------------------------
# Edit requests
# ---------------------------------------------------------------------------


async def _load_edit_request(db: AsyncSession, request_id: str) -> EditRequest:
    req = await db.get(EditRequest, request_id)
    if req is None:
        raise NotFound("Edit request not found")
    return req


async def review_edit_request(
    db: AsyncSession,
    redis: object | None,
    request_id: str,
    action: str,
    reason: str | None,
    admin: Profile,
) -> None:
    """Approve (apply ``data`` to the target record) or reject an edit request."""
    if action not in ("approve", "reject"):
        raise InvalidInput("Invalid action")

    notification = None
    async with atomic(db):
        req = await _load_edit_request(db, request_id)
        if req.status != "pending":
            raise InvalidInput(f"Edit request is already {req.status}")
        kind = get_kind_for_resource(req.resource_type)

        if action == "approve":
            record = await _load(db, kind, req.resource_id)
            _apply(record, state_machine.plan_edit(kind, req.data or {}))
            req.status = "approved"
            title = f"{kind.label} edit approved"
        else:
            if reason is None or not reason.strip():
                raise InvalidInput("Rejection reason is required")
            req.status = "rejected"
            req.rejection_reason = reason
            title = f"{kind.label} edit rejected"

        req.reviewed_by = admin.id
        req.reviewed_at = datetime.now(timezone.utc)

        if req.requested_by is not None:
            notification = await create_notification(
                db,
                req.requested_by,
                "validation",
                f"edit_{req.status}",
                title,
                description=reason if action == "reject" else None,
                action_url=f"/{kind.type}/{req.resource_id}",
                metadata={"edit_request_id": req.id, "type": kind.type, "id": req.resource_id},
            )

    logger.info(
        "validation_transition",
        type="edits",
        id=request_id,
        action=action,
        admin_id=admin.id,
    )
    await _after_commit(redis, notification)


async def delete_edit_request(
    db: AsyncSession, redis: object | None, request_id: str, admin: Profile
) -> None:
    async with atomic(db):
        req = await _load_edit_request(db, request_id)
        await db.delete(req)
    logger.info("validation_transition", type="edits", id=request_id, action="delete", admin_id=admin.id)
    await _after_commit(redis)


# ---------------------------------------------------------------------------
# Pending queue
# ---------------------------------------------------------------------------


async def list_pending(db: AsyncSession) -> dict[str, list]:
    """Everything waiting on an admin, oldest first."""
    orgs = await db.execute(
        select(Organization)
        .where(Organization.is_validated.is_(False), Organization.status != "archived")
        .order_by(Organization.created_at.asc())
    )
    expeditions = await db.execute(
        select(Expedition)
        .where(Expedition.is_validated.is_(False), Expedition.status != "archived")
        .order_by(Expedition.created_at.asc())
    )
    quests = await db.execute(
        select(Quest)
        .where(
            Quest.status != "archived",
            (Quest.is_validated.is_(False)) | (Quest.draft_data.is_not(None)),
        )
        .order_by(Quest.created_at.asc())
    )
    edits = await db.execute(
        select(EditRequest)
        .where(EditRequest.status == "pending")
        .order_by(EditRequest.created_at.asc())
    )
    return {
        "organizations": list(orgs.scalars().all()),
        "expeditions": list(expeditions.scalars().all()),
        "quests": list(quests.scalars().all()),
        "edit_requests": list(edits.scalars().all()),
    }
