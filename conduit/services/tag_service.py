from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.cache import TAGS_KEY, cache
from conduit.config import settings
from conduit.models import Tag


async def list_tags(db: AsyncSession) -> list[str]:
    """All tag names, alphabetically; cached in Redis for ``CACHE_TTL_TAGS``."""
    cached = await cache.get(TAGS_KEY)
    if cached is not None:
        return cached

    result = await db.execute(select(Tag.name).order_by(Tag.name))
    names = list(result.scalars().all())
    await cache.set(TAGS_KEY, names, ttl=settings.CACHE_TTL_TAGS)
    return names
