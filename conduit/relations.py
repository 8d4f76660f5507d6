"""
Relationship store: the user-follows-user and user-favorites-article edges.

Design notes
------------
- Each relation is a two-column join table whose composite primary key
  is the pair itself, so the database rejects duplicate edges no matter
  how many sessions race on the same pair.
- ``add`` is a single ``INSERT ... ON CONFLICT DO NOTHING`` and ``remove``
  a single ``DELETE``; both are idempotent and neither reports whether
  the edge existed before.
- Mutations run on the request session and commit it straight away, so
  a request never holds more than one pooled connection.  Handlers only
  read before they mutate a relation, so the commit carries nothing else.
- The write and its commit are shielded from cancellation: if the request
  task is cancelled mid-write the edge is still committed (or not at
  all), only the response is lost.
- Nothing else in the code base writes to ``followers`` or ``favoriters``.
"""
import asyncio
import logging
from typing import Awaitable

from sqlalchemy import Column, Table, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import RelationNotFound, SelfReference
from conduit.models import Article, User, favoriters, followers

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def _run_to_completion(write: Awaitable[None]) -> None:
    """
    Await *write* under ``asyncio.shield``.

    If the caller is cancelled, wait for the write to settle before
    re-raising so the session is never closed while it is still in use.
    """
    task = asyncio.ensure_future(write)
    try:
        await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        raise


class Relation:
    """
    One many-to-many edge set between an *actor* (always a user) and a
    *target* row of ``target_model``.
    """

    def __init__(
        self,
        db: AsyncSession,
        table: Table,
        actor: Column,
        target: Column,
        target_model,
        allow_self: bool = True,
    ) -> None:
        self._db = db
        self._table = table
        self._actor = actor
        self._target = target
        self._target_model = target_model
        self._allow_self = allow_self

    @property
    def name(self) -> str:
        return self._table.name

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def exists(self, actor_id: int, target_id: int) -> bool:
        q = (
            select(self._actor)
            .where(self._actor == actor_id, self._target == target_id)
            .limit(1)
        )
        return (await self._db.execute(q)).first() is not None

    async def count_for(self, target_id: int) -> int:
        q = select(func.count()).select_from(self._table).where(self._target == target_id)
        return (await self._db.execute(q)).scalar_one()

    async def targets_of(self, actor_id: int) -> list[int]:
        q = select(self._target).where(self._actor == actor_id)
        return list((await self._db.execute(q)).scalars().all())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, actor_id: int, target_id: int) -> None:
        """Create the edge; a no-op when it already exists."""
        if not self._allow_self and actor_id == target_id:
            raise SelfReference()
        await _run_to_completion(self._add(actor_id, target_id))

    async def remove(self, actor_id: int, target_id: int) -> None:
        """Delete the edge; a no-op when it does not exist."""
        await _run_to_completion(self._remove(actor_id, target_id))

    async def _add(self, actor_id: int, target_id: int) -> None:
        await self._ensure_endpoints(actor_id, target_id)
        insert = _INSERT_BY_DIALECT[self._db.get_bind().dialect.name]
        stmt = (
            insert(self._table)
            .values({self._actor.name: actor_id, self._target.name: target_id})
            .on_conflict_do_nothing()
        )
        try:
            await self._db.execute(stmt)
            await self._db.commit()
        except IntegrityError as exc:
            # An endpoint vanished between the existence check and the insert.
            await self._db.rollback()
            raise RelationNotFound() from exc
        logger.debug("%s: %s -> %s added", self.name, actor_id, target_id)

    async def _remove(self, actor_id: int, target_id: int) -> None:
        await self._db.execute(
            delete(self._table).where(
                self._actor == actor_id, self._target == target_id
            )
        )
        await self._db.commit()
        logger.debug("%s: %s -> %s removed", self.name, actor_id, target_id)

    async def _ensure_endpoints(self, actor_id: int, target_id: int) -> None:
        actor = await self._db.scalar(select(User.id).where(User.id == actor_id))
        target = await self._db.scalar(
            select(self._target_model.id).where(self._target_model.id == target_id)
        )
        if actor is None or target is None:
            raise RelationNotFound()


class RelationshipStore:
    """Owner of both relations; built per request on the request session."""

    def __init__(self, db: AsyncSession) -> None:
        self.follows = Relation(
            db,
            followers,
            actor=followers.c.follower_id,
            target=followers.c.user_id,
            target_model=User,
            allow_self=False,
        )
        self.favorites = Relation(
            db,
            favoriters,
            actor=favoriters.c.user_id,
            target=favoriters.c.article_id,
            target_model=Article,
        )
