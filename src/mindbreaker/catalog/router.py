"""Public catalog: published and validated content, cached per tag."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.cache.tags import EXPEDITIONS, ORGANIZATIONS, QUESTS, cached
from mindbreaker.config import get_settings
from mindbreaker.database import get_session
from mindbreaker.db.models import Expedition, Organization, Quest
from mindbreaker.redis_client import get_redis_dep

router = APIRouter(prefix="/api/v1", tags=["Catalog"])


def _published(model: Any):  # noqa: ANN401, ANN202
    return select(model).where(model.status == "published", model.is_validated.is_(True))


@router.get("/quests")
async def list_quests(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> list[dict]:
    async def load() -> list[dict]:
        result = await db.execute(_published(Quest).order_by(Quest.order_index.asc(), Quest.title.asc()))
        return [
            {
                "id": q.id,
                "title": q.title,
                "summary": q.summary,
                "link_url": q.link_url,
                "thumbnail_url": q.thumbnail_url,
                "xp_reward": q.xp_reward,
                "organization_id": q.organization_id,
                "expedition_id": q.expedition_id,
            }
            for q in result.scalars().all()
        ]

    return await cached(redis, "catalog:quests", [QUESTS], get_settings().catalog_cache_ttl_seconds, load)


@router.get("/expeditions")
async def list_expeditions(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> list[dict]:
    async def load() -> list[dict]:
        result = await db.execute(_published(Expedition).order_by(Expedition.title.asc()))
        return [
            {
                "id": e.id,
                "title": e.title,
                "summary": e.summary,
                "organization_id": e.organization_id,
            }
            for e in result.scalars().all()
        ]

    return await cached(
        redis, "catalog:expeditions", [EXPEDITIONS], get_settings().catalog_cache_ttl_seconds, load
    )


@router.get("/organizations")
async def list_organizations(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
) -> list[dict]:
    async def load() -> list[dict]:
        result = await db.execute(_published(Organization).order_by(Organization.name.asc()))
        return [
            {
                "id": o.id,
                "name": o.name,
                "description": o.description,
                "website_url": o.website_url,
            }
            for o in result.scalars().all()
        ]

    return await cached(
        redis, "catalog:organizations", [ORGANIZATIONS], get_settings().catalog_cache_ttl_seconds, load
    )
