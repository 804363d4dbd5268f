"""Exercise submissions and their admin review.

A submission points at the user's work through the one URL column that
matches its type. Submitting counts as activity for the daily streak.
Review is one-way: only a pending submission can be approved or rejected.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mindbreaker.cache.tags import SUBMISSIONS, revalidate_admin
from mindbreaker.database import atomic
from mindbreaker.db.models import ExerciseSubmission, Profile, QuestExercise
from mindbreaker.errors import InvalidInput, NotFound
from mindbreaker.gamification.streak_service import record_activity
from mindbreaker.notifications.service import create_notification, push_notification

logger = structlog.get_logger()

REVIEW_PATH = "/guild-hall/admin/submissions"

# submission_type -> column holding the link to the work
URL_FIELDS = {
    "text": "file_url",
    "zip": "file_url",
    "drive": "drive_url",
    "github": "github_repo_url",
}


async def submit(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    exercise_id: str,
    submission_type: str,
    url: str | None,
) -> ExerciseSubmission:
    field = URL_FIELDS.get(submission_type)
    if field is None:
        raise InvalidInput(f"Invalid submission type: {submission_type}")
    url = (url or "").strip()
    if not url:
        raise InvalidInput(f"{field} is required for {submission_type} submissions")

    async with atomic(db):
        if await db.get(QuestExercise, exercise_id) is None:
            raise NotFound("Exercise not found")
        await record_activity(db, user_id)
        submission = ExerciseSubmission(
            user_id=user_id,
            exercise_id=exercise_id,
            submission_type=submission_type,
            **{field: url},
        )
        db.add(submission)
        await db.flush()

    logger.info(
        "exercise_submitted",
        submission_id=submission.id,
        user_id=user_id,
        exercise_id=exercise_id,
        type=submission_type,
    )
    await revalidate_admin(redis, [SUBMISSIONS], [REVIEW_PATH])
    return submission


async def list_submissions(
    db: AsyncSession,
    status: str | None = None,
    user_id: int | None = None,
) -> list[ExerciseSubmission]:
    """Submissions with exercise and submitter loaded, newest first."""
    query = select(ExerciseSubmission).options(
        selectinload(ExerciseSubmission.exercise),
        selectinload(ExerciseSubmission.user),
    )
    if status is not None:
        query = query.where(ExerciseSubmission.status == status)
    if user_id is not None:
        query = query.where(ExerciseSubmission.user_id == user_id)
    result = await db.execute(query.order_by(ExerciseSubmission.submitted_at.desc()))
    return list(result.scalars().all())


async def get_exercise_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Exercise totals for a user: how many exist, approved, awaiting review."""
    total = (await db.execute(select(func.count()).select_from(QuestExercise))).scalar_one()
    result = await db.execute(
        select(ExerciseSubmission.status, func.count())
        .where(ExerciseSubmission.user_id == user_id)
        .group_by(ExerciseSubmission.status)
    )
    by_status = dict(result.all())
    return {
        "total": total,
        "completed": by_status.get("approved", 0),
        "pending": by_status.get("pending", 0),
    }


async def review_submission(
    db: AsyncSession,
    redis: object | None,
    submission_id: str,
    approve: bool,
    feedback: str | None,
    admin: Profile,
) -> ExerciseSubmission:
    async with atomic(db):
        result = await db.execute(
            select(ExerciseSubmission)
            .options(selectinload(ExerciseSubmission.exercise))
            .where(ExerciseSubmission.id == submission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise NotFound("Submission not found")
        if submission.status != "pending":
            raise InvalidInput(f"Submission is already {submission.status}")

        submission.status = "approved" if approve else "rejected"
        submission.feedback = feedback.strip() if feedback and feedback.strip() else None
        submission.reviewed_by = admin.id
        submission.reviewed_at = datetime.now(timezone.utc)

        exercise_title = submission.exercise.title
        notification = await create_notification(
            db,
            submission.user_id,
            "validation",
            f"submission_{submission.status}",
            f"Submission {submission.status}",
            description=submission.feedback or exercise_title,
            action_url=f"/dashboard/exercises/{submission.exercise_id}",
            metadata={"submission_id": submission.id, "exercise_id": submission.exercise_id},
        )

    logger.info(
        "submission_reviewed",
        submission_id=submission_id,
        status=submission.status,
        admin_id=admin.id,
    )
    await push_notification(redis, notification)
    await revalidate_admin(redis, [SUBMISSIONS], [REVIEW_PATH])
    return submission
