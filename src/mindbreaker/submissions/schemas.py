"""Exercise submission models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SubmissionCreate(BaseModel):
    """``url`` is stored in the column that matches ``submission_type``."""

    submission_type: str
    url: str | None = None


class SubmissionReview(BaseModel):
    feedback: str | None = None


class SubmissionResponse(BaseModel):
    id: str
    user_id: int
    username: str | None = None
    exercise_id: str
    exercise_title: str | None = None
    submission_type: str
    file_url: str | None = None
    drive_url: str | None = None
    github_repo_url: str | None = None
    status: str
    feedback: str | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    submitted_at: datetime


class ExerciseStats(BaseModel):
    total: int
    completed: int
    pending: int


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]


class MySubmissionsResponse(BaseModel):
    submissions: list[SubmissionResponse]
    stats: ExerciseStats
