from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from conduit import presenter
from conduit.auth import current_user
from conduit.database import get_db
from conduit.dependencies import get_token_service
from conduit.models import User
from conduit.schemas import LoginRequest, RegisterRequest, UserUpdateRequest
from conduit.services import user_service
from conduit.tokens import TokenService

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", status_code=201)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = await user_service.register(db, payload.user)
    return {"user": presenter.user(user, tokens.issue(user.id))}


@router.post("/users/login")
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = await user_service.authenticate(db, payload.user.email, payload.user.password)
    return {"user": presenter.user(user, tokens.issue(user.id))}


@router.get("/user")
async def show_user(
    user: User = Depends(current_user),
    tokens: TokenService = Depends(get_token_service),
):
    return {"user": presenter.user(user, tokens.issue(user.id))}


@router.put("/user")
async def update_user(
    payload: UserUpdateRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = await user_service.update_user(db, user, payload.user)
    return {"user": presenter.user(user, tokens.issue(user.id))}
