"""Integration tests for notification reads and the daily streak endpoint."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers, fetch, make_profile
from mindbreaker.db.models import Notification, Profile


async def _notify(db: AsyncSession, user: Profile, title: str, *, age_minutes: int = 0, **kwargs) -> Notification:
    notification = Notification(
        user_id=user.id,
        type="system",
        subtype="test",
        title=title,
        created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
        **kwargs,
    )
    db.add(notification)
    await db.commit()
    return notification


class TestListNotifications:
    @pytest.mark.asyncio
    async def test_guest_gets_401(self, client: AsyncClient):
        response = await client.get("/api/v1/notifications")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_own_newest_first_without_expired(
        self, client: AsyncClient, db_session: AsyncSession, member, member_headers
    ):
        other = await make_profile(db_session, "other")
        await _notify(db_session, member, "older", age_minutes=10)
        await _notify(db_session, member, "newer", age_minutes=1)
        await _notify(
            db_session,
            member,
            "expired",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
        )
        await _notify(
            db_session,
            member,
            "still live",
            age_minutes=5,
            expires_at=datetime.now(timezone.utc) + timedelta(days=1),
        )
        await _notify(db_session, other, "not mine")

        response = await client.get("/api/v1/notifications", headers=member_headers)
        assert response.status_code == 200
        titles = [n["title"] for n in response.json()["notifications"]]
        assert titles == ["newer", "still live", "older"]

    @pytest.mark.asyncio
    async def test_unread_only(self, client: AsyncClient, db_session: AsyncSession, member, member_headers):
        await _notify(db_session, member, "seen", read=True)
        await _notify(db_session, member, "unseen")

        response = await client.get("/api/v1/notifications?unread_only=true", headers=member_headers)
        assert [n["title"] for n in response.json()["notifications"]] == ["unseen"]

    @pytest.mark.asyncio
    async def test_capped_at_50(self, client: AsyncClient, db_session: AsyncSession, member, member_headers):
        for i in range(55):
            db_session.add(Notification(user_id=member.id, type="system", subtype="test", title=f"n{i}"))
        await db_session.commit()

        response = await client.get("/api/v1/notifications", headers=member_headers)
        assert len(response.json()["notifications"]) == 50


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_patch_marks_read_and_unread(
        self, client: AsyncClient, db_session: AsyncSession, member, member_headers
    ):
        notification = await _notify(db_session, member, "hello")

        response = await client.patch(
            f"/api/v1/notifications/{notification.id}", json={"read": True}, headers=member_headers
        )
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert (await fetch(Notification, notification.id)).read is True

        await client.patch(f"/api/v1/notifications/{notification.id}", json={"read": False}, headers=member_headers)
        assert (await fetch(Notification, notification.id)).read is False

    @pytest.mark.asyncio
    async def test_someone_elses_notification_is_404(
        self, client: AsyncClient, db_session: AsyncSession, member_headers
    ):
        other = await make_profile(db_session, "other")
        notification = await _notify(db_session, other, "private")

        response = await client.patch(
            f"/api/v1/notifications/{notification.id}", json={"read": True}, headers=member_headers
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Notification not found"}
        assert (await fetch(Notification, notification.id)).read is False

    @pytest.mark.asyncio
    async def test_read_all_and_unread_count(
        self, client: AsyncClient, db_session: AsyncSession, member, member_headers
    ):
        other = await make_profile(db_session, "other")
        await _notify(db_session, member, "a")
        await _notify(db_session, member, "b")
        await _notify(db_session, member, "c", read=True)
        untouched = await _notify(db_session, other, "theirs")

        count = await client.get("/api/v1/notifications/unread-count", headers=member_headers)
        assert count.json() == {"unread_count": 2}

        response = await client.post("/api/v1/notifications/read-all", headers=member_headers)
        assert response.json() == {"updated": 2}

        count = await client.get("/api/v1/notifications/unread-count", headers=member_headers)
        assert count.json() == {"unread_count": 0}
        assert (await fetch(Notification, untouched.id)).read is False


class TestStreak:
    @pytest.mark.asyncio
    async def test_first_call_starts_streak_second_is_unchanged(
        self, client: AsyncClient, member, member_headers
    ):
        first = await client.post("/api/v1/users/me/streak", headers=member_headers)
        assert first.status_code == 200
        assert first.json()["streak_days"] == 1
        assert first.json()["updated"] is True

        second = await client.post("/api/v1/users/me/streak", headers=member_headers)
        assert second.json()["streak_days"] == 1
        assert second.json()["updated"] is False

        assert (await fetch(Profile, member.id)).streak_days == 1

    @pytest.mark.asyncio
    async def test_activity_yesterday_extends(
        self, client: AsyncClient, db_session: AsyncSession, member, member_headers
    ):
        await db_session.execute(
            update(Profile)
            .where(Profile.id == member.id)
            .values(streak_days=4, last_streak_at=datetime.now(timezone.utc) - timedelta(days=1))
        )
        await db_session.commit()

        response = await client.post("/api/v1/users/me/streak", headers=member_headers)
        assert response.json()["streak_days"] == 5
        assert (await fetch(Profile, member.id)).streak_days == 5

    @pytest.mark.asyncio
    async def test_missed_day_resets(self, client: AsyncClient, db_session: AsyncSession, member):
        await db_session.execute(
            update(Profile)
            .where(Profile.id == member.id)
            .values(streak_days=12, last_streak_at=datetime.now(timezone.utc) - timedelta(days=3))
        )
        await db_session.commit()

        response = await client.post("/api/v1/users/me/streak", headers=auth_headers(member))
        assert response.json()["streak_days"] == 1
        assert response.json()["updated"] is True
