"""
Response shapes for profiles, articles and comments.

Relationship-derived fields (``following``, ``favorited``,
``favoritesCount``) are read from the ``RelationshipStore`` on every
render and must never be cached alongside the entity data.
"""
from datetime import datetime, timezone

from conduit.models import Article, Comment, User
from conduit.relations import RelationshipStore


def isoformat(value: datetime | None) -> str | None:
    """RFC 3339 timestamp; naive values (SQLite) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


async def profile(user: User, viewer_id: int | None, relations: RelationshipStore) -> dict:
    following = False
    if viewer_id is not None:
        following = await relations.follows.exists(viewer_id, user.id)
    return {
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
        "following": following,
    }


async def article(article: Article, viewer_id: int | None, relations: RelationshipStore) -> dict:
    """
    Render *article*; ``author`` and ``tags`` must already be loaded.
    """
    favorited = False
    if viewer_id is not None:
        favorited = await relations.favorites.exists(viewer_id, article.id)
    return {
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "body": article.body,
        "tagList": sorted(tag.name for tag in article.tags),
        "createdAt": isoformat(article.created_at),
        "updatedAt": isoformat(article.updated_at),
        "favorited": favorited,
        "favoritesCount": await relations.favorites.count_for(article.id),
        "author": await profile(article.author, viewer_id, relations),
    }


async def comment(comment: Comment, viewer_id: int | None, relations: RelationshipStore) -> dict:
    return {
        "id": comment.id,
        "body": comment.body,
        "createdAt": isoformat(comment.created_at),
        "updatedAt": isoformat(comment.updated_at),
        "author": await profile(comment.author, viewer_id, relations),
    }


def user(user: User, token: str) -> dict:
    """Authenticated user's own view, returned with a fresh token."""
    return {
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
        "image": user.image,
        "token": token,
    }
