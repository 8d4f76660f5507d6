"""
Bearer authentication dependencies.

Routes opt in explicitly:

- ``require_user``: the request must carry ``Authorization: Bearer <token>``
  with a valid token; the user id is returned and stored on
  ``request.state.user_id``.
- ``optional_user``: anonymous requests get ``None``; a header that is
  present but invalid is still rejected.
- ``current_user``: ``require_user`` plus loading the ``User`` row.

Rejections always surface as the generic 401 body from
``conduit.errors``; the precise reason is only logged.
"""
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import get_token_service
from conduit.errors import TokenMalformed
from conduit.models import User
from conduit.tokens import TokenService


def parse_bearer(header: str | None) -> str:
    """Return the token from a ``Bearer <token>`` header value."""
    parts = (header or "").split()
    if len(parts) != 2 or parts[0] != "Bearer":
        raise TokenMalformed("authorization header is not 'Bearer <token>'")
    return parts[1]


async def require_user(
    request: Request,
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    user_id = tokens.validate(parse_bearer(authorization))
    request.state.user_id = user_id
    return user_id


async def optional_user(
    request: Request,
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> int | None:
    if authorization is None:
        request.state.user_id = None
        return None
    return await require_user(request, authorization, tokens)


async def current_user(
    user_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise TokenMalformed(f"token subject {user_id} no longer exists")
    return user
