"""Integration tests for admin role requests."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers, fetch, make_profile
from mindbreaker.db.models import AdminRequest, Notification, Profile

REASON = "I maintain the Rust expedition and want to review quests"


async def _notifications(db: AsyncSession, user_id: int) -> list[Notification]:
    result = await db.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars().all())


async def _file(client: AsyncClient, headers, reason: str = REASON):
    return await client.post("/api/v1/admin-requests", json={"reason": reason}, headers=headers)


class TestCreateRequest:
    @pytest.mark.asyncio
    async def test_guest_gets_401(self, client: AsyncClient):
        response = await client.post("/api/v1/admin-requests", json={"reason": REASON})
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", [None, "", "too short", "   padded   "])
    async def test_short_reason_is_400(self, client: AsyncClient, member_headers, reason):
        response = await client.post("/api/v1/admin-requests", json={"reason": reason}, headers=member_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Please provide a reason (at least 10 characters)"}

    @pytest.mark.asyncio
    async def test_creates_pending_and_notifies_every_admin(
        self, client: AsyncClient, db_session: AsyncSession, admin, member, member_headers, fake_redis
    ):
        second_admin = await make_profile(db_session, "admin2", is_admin=True)

        response = await _file(client, member_headers, f"  {REASON}  ")
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["reason"] == REASON
        assert data["username"] == "member"

        for profile in (admin, second_admin):
            [notification] = await _notifications(db_session, profile.id)
            assert notification.title == "New Admin Request"
            assert notification.subtype == "new_admin_request"
            assert notification.action_url == "/guild-hall/admin/requests"
        assert await _notifications(db_session, member.id) == []

        channels = [c.args[0] for c in fake_redis.publish.await_args_list]
        assert f"ws:user:{admin.id}" in channels
        assert f"ws:user:{second_admin.id}" in channels
        fake_redis.incr.assert_any_await("cache:tag:admin")

    @pytest.mark.asyncio
    async def test_second_pending_request_is_400(
        self, client: AsyncClient, db_session: AsyncSession, member, member_headers
    ):
        await _file(client, member_headers)
        response = await _file(client, member_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "You already have a pending admin request"}

        rows = (await db_session.execute(select(AdminRequest).where(AdminRequest.user_id == member.id))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_admin_cannot_request(self, client: AsyncClient, admin_headers):
        response = await _file(client, admin_headers)
        assert response.status_code == 400


class TestReviewRequest:
    @pytest.mark.asyncio
    async def test_member_cannot_list_or_review(self, client: AsyncClient, member_headers):
        created = await _file(client, member_headers)
        assert (await client.get("/api/v1/admin-requests", headers=member_headers)).status_code == 403
        response = await client.post(f"/api/v1/admin-requests/{created.json()['id']}/approve", headers=member_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_pending(self, client: AsyncClient, admin_headers, member_headers):
        created = await _file(client, member_headers)

        response = await client.get("/api/v1/admin-requests", headers=admin_headers)
        assert response.status_code == 200
        [item] = response.json()["requests"]
        assert item["id"] == created.json()["id"]
        assert item["username"] == "member"

    @pytest.mark.asyncio
    async def test_approve_grants_admin(
        self, client: AsyncClient, db_session: AsyncSession, admin, admin_headers, member, member_headers
    ):
        request_id = (await _file(client, member_headers)).json()["id"]

        response = await client.post(f"/api/v1/admin-requests/{request_id}/approve", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["reviewed_by"] == admin.id

        assert (await fetch(Profile, member.id)).is_admin is True
        stored = await fetch(AdminRequest, request_id)
        assert stored.reviewed_at is not None
        titles = [n.title for n in await _notifications(db_session, member.id)]
        assert titles == ["Admin Request Approved!"]

        # The new admin now passes the admin gate
        assert (await client.get("/api/v1/admin-requests", headers=member_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_reject_keeps_role_and_allows_a_new_request(
        self, client: AsyncClient, db_session: AsyncSession, admin_headers, member, member_headers
    ):
        request_id = (await _file(client, member_headers)).json()["id"]

        response = await client.post(f"/api/v1/admin-requests/{request_id}/reject", headers=admin_headers)
        assert response.json()["status"] == "rejected"
        assert (await fetch(Profile, member.id)).is_admin is False
        titles = [n.title for n in await _notifications(db_session, member.id)]
        assert titles == ["Admin Request Update"]

        assert (await _file(client, member_headers)).status_code == 201

    @pytest.mark.asyncio
    async def test_reviewed_request_is_404(self, client: AsyncClient, admin_headers, member_headers):
        request_id = (await _file(client, member_headers)).json()["id"]
        await client.post(f"/api/v1/admin-requests/{request_id}/reject", headers=admin_headers)

        response = await client.post(f"/api/v1/admin-requests/{request_id}/approve", headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Request not found"}

    @pytest.mark.asyncio
    async def test_unknown_request_is_404(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/admin-requests/nope/reject", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_by_status(self, client: AsyncClient, db_session: AsyncSession, admin_headers, member_headers):
        other = await make_profile(db_session, "other")
        first = (await _file(client, member_headers)).json()["id"]
        await _file(client, auth_headers(other))
        await client.post(f"/api/v1/admin-requests/{first}/approve", headers=admin_headers)

        approved = await client.get("/api/v1/admin-requests?status=approved", headers=admin_headers)
        assert [r["id"] for r in approved.json()["requests"]] == [first]
        pending = await client.get("/api/v1/admin-requests", headers=admin_headers)
        assert [r["username"] for r in pending.json()["requests"]] == ["other"]
