"""Integration tests for exercise submissions and their review."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import fetch, make_exercise, make_quest
from mindbreaker.db.models import ExerciseSubmission, Notification, Profile

GITHUB = "https://github.com/member/borrow-checker"


@pytest_asyncio.fixture
async def exercise(db_session: AsyncSession):
    quest = await make_quest(db_session, "Ownership", status="published")
    return await make_exercise(db_session, quest, "Fix the borrow checker")


async def _submit(client: AsyncClient, exercise_id: str, headers, type_: str = "github", url: str | None = GITHUB):
    return await client.post(
        f"/api/v1/exercises/{exercise_id}/submissions",
        json={"submission_type": type_, "url": url},
        headers=headers,
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_guest_gets_401(self, client: AsyncClient, exercise):
        response = await client.post(
            f"/api/v1/exercises/{exercise.id}/submissions", json={"submission_type": "github", "url": GITHUB}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("type_", "column"),
        [("text", "file_url"), ("zip", "file_url"), ("drive", "drive_url"), ("github", "github_repo_url")],
    )
    async def test_url_lands_in_column_for_type(
        self, client: AsyncClient, exercise, member_headers, type_, column
    ):
        response = await _submit(client, exercise.id, member_headers, type_, "https://example.com/work")
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data[column] == "https://example.com/work"
        others = {"file_url", "drive_url", "github_repo_url"} - {column}
        assert all(data[c] is None for c in others)

    @pytest.mark.asyncio
    async def test_submitting_counts_toward_streak(self, client: AsyncClient, exercise, member, member_headers):
        await _submit(client, exercise.id, member_headers)
        assert (await fetch(Profile, member.id)).streak_days == 1

    @pytest.mark.asyncio
    async def test_unknown_type_is_400(self, client: AsyncClient, exercise, member_headers):
        response = await _submit(client, exercise.id, member_headers, "email")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid submission type: email"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [None, "", "   "])
    async def test_missing_url_is_400(self, client: AsyncClient, exercise, member_headers, url):
        response = await _submit(client, exercise.id, member_headers, "drive", url)
        assert response.status_code == 400
        assert response.json() == {"error": "drive_url is required for drive submissions"}

    @pytest.mark.asyncio
    async def test_unknown_exercise_is_404(self, client: AsyncClient, member, member_headers):
        response = await _submit(client, "nope", member_headers)
        assert response.status_code == 404
        assert (await fetch(Profile, member.id)).streak_days == 0

    @pytest.mark.asyncio
    async def test_my_submissions_with_stats(
        self, client: AsyncClient, db_session: AsyncSession, exercise, member_headers, admin_headers
    ):
        quest = await make_quest(db_session, "Lifetimes", status="published")
        await make_exercise(db_session, quest, "Annotate lifetimes")
        approved = (await _submit(client, exercise.id, member_headers)).json()["id"]
        await _submit(client, exercise.id, member_headers, "zip", "https://files.example.com/retry.zip")
        await client.post(f"/api/v1/submissions/{approved}/approve", headers=admin_headers)

        response = await client.get("/api/v1/users/me/submissions", headers=member_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["stats"] == {"total": 2, "completed": 1, "pending": 1}
        assert len(data["submissions"]) == 2
        assert {s["exercise_title"] for s in data["submissions"]} == {"Fix the borrow checker"}


class TestReview:
    @pytest.mark.asyncio
    async def test_member_cannot_review(self, client: AsyncClient, exercise, member_headers):
        submission_id = (await _submit(client, exercise.id, member_headers)).json()["id"]
        response = await client.post(f"/api/v1/submissions/{submission_id}/approve", headers=member_headers)
        assert response.status_code == 403
        assert (await client.get("/api/v1/submissions", headers=member_headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_queue_lists_pending_with_context(self, client: AsyncClient, exercise, member_headers, admin_headers):
        submission_id = (await _submit(client, exercise.id, member_headers)).json()["id"]

        response = await client.get("/api/v1/submissions", headers=admin_headers)
        [item] = response.json()["submissions"]
        assert item["id"] == submission_id
        assert item["username"] == "member"
        assert item["exercise_title"] == "Fix the borrow checker"

    @pytest.mark.asyncio
    async def test_approve_with_feedback_notifies_submitter(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        exercise,
        admin,
        member,
        member_headers,
        admin_headers,
        fake_redis,
    ):
        submission_id = (await _submit(client, exercise.id, member_headers)).json()["id"]

        response = await client.post(
            f"/api/v1/submissions/{submission_id}/approve",
            json={"feedback": "Clean solution"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        stored = await fetch(ExerciseSubmission, submission_id)
        assert (stored.status, stored.feedback, stored.reviewed_by) == ("approved", "Clean solution", admin.id)
        assert stored.reviewed_at is not None

        [notification] = (
            await db_session.execute(select(Notification).where(Notification.user_id == member.id))
        ).scalars().all()
        assert notification.type == "validation"
        assert notification.subtype == "submission_approved"
        assert notification.description == "Clean solution"

        fake_redis.incr.assert_any_await("cache:tag:submissions")
        channels = [c.args[0] for c in fake_redis.publish.await_args_list]
        assert f"ws:user:{member.id}" in channels

    @pytest.mark.asyncio
    async def test_reject_without_body(self, client: AsyncClient, exercise, member_headers, admin_headers):
        submission_id = (await _submit(client, exercise.id, member_headers)).json()["id"]

        response = await client.post(f"/api/v1/submissions/{submission_id}/reject", headers=admin_headers)
        assert response.status_code == 200
        stored = await fetch(ExerciseSubmission, submission_id)
        assert (stored.status, stored.feedback) == ("rejected", None)

    @pytest.mark.asyncio
    async def test_reviewing_twice_is_400(self, client: AsyncClient, exercise, member_headers, admin_headers):
        submission_id = (await _submit(client, exercise.id, member_headers)).json()["id"]
        await client.post(f"/api/v1/submissions/{submission_id}/approve", headers=admin_headers)

        response = await client.post(f"/api/v1/submissions/{submission_id}/reject", headers=admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Submission is already approved"}
        assert (await fetch(ExerciseSubmission, submission_id)).status == "approved"

    @pytest.mark.asyncio
    async def test_unknown_submission_is_404(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/submissions/nope/approve", headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Submission not found"}
