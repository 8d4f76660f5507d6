from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from conduit import presenter
from conduit.auth import optional_user, require_user
from conduit.database import get_db
from conduit.dependencies import get_relations
from conduit.relations import RelationshipStore
from conduit.services import user_service

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("/{username}")
async def show_profile(
    username: str,
    viewer_id: int | None = Depends(optional_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    user = await user_service.get_by_username(db, username)
    return {"profile": await presenter.profile(user, viewer_id, relations)}


@router.post("/{username}/follow")
async def follow(
    username: str,
    viewer_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    user = await user_service.get_by_username(db, username)
    await relations.follows.add(viewer_id, user.id)
    return {"profile": await presenter.profile(user, viewer_id, relations)}


@router.delete("/{username}/follow")
async def unfollow(
    username: str,
    viewer_id: int = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    # Unfollowing someone you do not follow is a successful no-op.
    user = await user_service.get_by_username(db, username)
    await relations.follows.remove(viewer_id, user.id)
    return {"profile": await presenter.profile(user, viewer_id, relations)}
