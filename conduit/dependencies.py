"""
Request-scoped providers for the components built at startup.

The application lifespan stores the long-lived objects on ``app.state``;
these dependencies hand them to route handlers so no module holds a
global database handle.  Tests swap them out via
``app.dependency_overrides``.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.relations import RelationshipStore
from conduit.tokens import TokenService


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_relations(db: AsyncSession = Depends(get_db)) -> RelationshipStore:
    return RelationshipStore(db)
