"""
User service — registration, login and account updates.

Login deliberately answers "wrong email or password" for both an unknown
email and a bad password, and spends a bcrypt comparison in both cases,
so responses do not reveal which accounts exist.

bcrypt is CPU-bound; hashing and checking run in a worker thread.
"""
import asyncio
import logging
from functools import lru_cache

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import Conflict, InvalidCredentials, NotFound
from conduit.models import User
from conduit.schemas import UserCreate, UserUpdate
from conduit.security import hash_password, verify_password

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _placeholder_hash() -> str:
    return hash_password("placeholder-password-for-unknown-accounts")


async def _ensure_unique(
    db: AsyncSession, username: str | None, email: str | None, exclude_id: int | None = None
) -> None:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return
    q = select(User.id).where(or_(*clauses))
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    if (await db.execute(q.limit(1))).first() is not None:
        raise Conflict("a user with this username or email already exists")


async def _flush(db: AsyncSession) -> None:
    # Unique constraints still guard against a concurrent registration.
    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("a user with this username or email already exists") from exc


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: UserCreate) -> User:
    await _ensure_unique(db, data.username, data.email)
    user = User(
        username=data.username,
        email=data.email,
        password=await asyncio.to_thread(hash_password, data.password),
        bio="",
        image="",
    )
    db.add(user)
    await _flush(db)
    logger.info("Registered user id=%d", user.id)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Return the user owning *email* if *password* matches."""
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    stored = user.password if user is not None else await asyncio.to_thread(_placeholder_hash)
    matches = await asyncio.to_thread(verify_password, stored, password)
    if not matches or user is None:
        logger.info("Failed login attempt")
        raise InvalidCredentials()
    return user


async def get_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("profile not found")
    return user


async def update_user(db: AsyncSession, user: User, data: UserUpdate) -> User:
    """
    Apply the fields present in *data* to *user*.

    Only explicitly sent fields change (``exclude_unset``); a new password
    is hashed before it touches the row.
    """
    changes = data.model_dump(exclude_unset=True)
    await _ensure_unique(db, changes.get("username"), changes.get("email"), exclude_id=user.id)

    password = changes.pop("password", None)
    if password is not None:
        user.password = await asyncio.to_thread(hash_password, password)
    for field, value in changes.items():
        if value is None and field in ("username", "email"):
            continue
        setattr(user, field, value if value is not None else "")

    await _flush(db)
    return user
