from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from conduit.security import MAX_PASSWORD_BYTES


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


Password = Annotated[str, Field(min_length=8), AfterValidator(_check_password_bytes)]
Email = Annotated[str, Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")]


# --- User ---

class UserLogin(BaseModel):
    email: Email
    password: str = Field(min_length=1)


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    email: Email
    password: Password


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=1, max_length=100)
    email: Email | None = None
    password: Password | None = None
    bio: str | None = None
    image: str | None = Field(None, max_length=500)


class LoginRequest(BaseModel):
    user: UserLogin


class RegisterRequest(BaseModel):
    user: UserCreate


class UserUpdateRequest(BaseModel):
    user: UserUpdate


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field("", max_length=500)
    body: str = Field(min_length=1)
    tag_list: list[str] = Field(default_factory=list, alias="tagList")

    model_config = ConfigDict(populate_by_name=True)


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=500)
    body: str | None = Field(None, min_length=1)
    tag_list: list[str] | None = Field(None, alias="tagList")

    model_config = ConfigDict(populate_by_name=True)


class ArticleCreateRequest(BaseModel):
    article: ArticleCreate


class ArticleUpdateRequest(BaseModel):
    article: ArticleUpdate


# --- Comment ---

class CommentCreate(BaseModel):
    body: str = Field(min_length=1)


class CommentCreateRequest(BaseModel):
    comment: CommentCreate
