"""Exercise submission endpoints: users submit, admins review."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.dependencies import require_admin, require_user
from mindbreaker.database import get_session
from mindbreaker.db.models import ExerciseSubmission, Profile
from mindbreaker.redis_client import get_redis_dep
from mindbreaker.submissions import service
from mindbreaker.submissions.schemas import (
    ExerciseStats,
    MySubmissionsResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionReview,
)

router = APIRouter(prefix="/api/v1", tags=["Submissions"])


def _response(s: ExerciseSubmission, *, with_relations: bool = True) -> SubmissionResponse:
    return SubmissionResponse(
        id=s.id,
        user_id=s.user_id,
        username=s.user.username if with_relations else None,
        exercise_id=s.exercise_id,
        exercise_title=s.exercise.title if with_relations else None,
        submission_type=s.submission_type,
        file_url=s.file_url,
        drive_url=s.drive_url,
        github_repo_url=s.github_repo_url,
        status=s.status,
        feedback=s.feedback,
        reviewed_by=s.reviewed_by,
        reviewed_at=s.reviewed_at,
        submitted_at=s.submitted_at,
    )


# ── Authenticated endpoints ──


@router.post("/exercises/{exercise_id}/submissions", response_model=SubmissionResponse, status_code=201)
async def submit_exercise(
    exercise_id: str,
    body: SubmissionCreate,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    submission = await service.submit(db, redis, user.id, exercise_id, body.submission_type, body.url)
    return _response(submission, with_relations=False)


@router.get("/users/me/submissions", response_model=MySubmissionsResponse)
async def my_submissions(
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's submissions plus exercise totals."""
    submissions = await service.list_submissions(db, user_id=user.id)
    stats = await service.get_exercise_stats(db, user.id)
    return MySubmissionsResponse(
        submissions=[_response(s) for s in submissions],
        stats=ExerciseStats(**stats),
    )


# ── Admin endpoints ──


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    status: str = Query("pending", pattern="^(pending|approved|rejected)$"),
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    submissions = await service.list_submissions(db, status=status)
    return SubmissionListResponse(submissions=[_response(s) for s in submissions])


@router.post("/submissions/{submission_id}/approve", response_model=SubmissionResponse)
async def approve_submission(
    submission_id: str,
    body: SubmissionReview | None = None,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    feedback = body.feedback if body else None
    submission = await service.review_submission(db, redis, submission_id, True, feedback, admin)
    return _response(submission, with_relations=False)


@router.post("/submissions/{submission_id}/reject", response_model=SubmissionResponse)
async def reject_submission(
    submission_id: str,
    body: SubmissionReview | None = None,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    feedback = body.feedback if body else None
    submission = await service.review_submission(db, redis, submission_id, False, feedback, admin)
    return _response(submission, with_relations=False)
