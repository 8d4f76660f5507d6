from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from conduit import presenter
from conduit.auth import current_user, optional_user
from conduit.database import get_db
from conduit.dependencies import get_relations
from conduit.models import Article, User
from conduit.relations import RelationshipStore
from conduit.schemas import ArticleCreateRequest, ArticleUpdateRequest, CommentCreateRequest
from conduit.services import article_service, comment_service

router = APIRouter(prefix="/api/articles", tags=["articles"])


async def _render_many(articles: list[Article], viewer_id: int | None, relations: RelationshipStore) -> dict:
    rendered = [await presenter.article(a, viewer_id, relations) for a in articles]
    return {"articles": rendered, "articlesCount": len(rendered)}


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------

@router.get("")
async def list_articles(
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    viewer_id: int | None = Depends(optional_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    articles = await article_service.list_articles(db, relations, tag, author, favorited)
    return await _render_many(articles, viewer_id, relations)


@router.get("/feed")
async def feed(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    articles = await article_service.feed(db, relations, user.id)
    return await _render_many(articles, user.id, relations)


@router.post("", status_code=201)
async def create_article(
    payload: ArticleCreateRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.create_article(db, user, payload.article)
    return {"article": await presenter.article(article, user.id, relations)}


@router.get("/{slug}")
async def show_article(
    slug: str,
    viewer_id: int | None = Depends(optional_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.get_article(db, slug)
    return {"article": await presenter.article(article, viewer_id, relations)}


@router.put("/{slug}")
async def update_article(
    slug: str,
    payload: ArticleUpdateRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.get_article(db, slug)
    article = await article_service.update_article(db, article, user, payload.article)
    return {"article": await presenter.article(article, user.id, relations)}


@router.delete("/{slug}", status_code=204)
async def delete_article(
    slug: str,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.get_article(db, slug)
    await article_service.delete_article(db, article, user)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

@router.post("/{slug}/favorite")
async def favorite(
    slug: str,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.get_article(db, slug)
    await relations.favorites.add(user.id, article.id)
    return {"article": await presenter.article(article, user.id, relations)}


@router.delete("/{slug}/favorite")
async def unfavorite(
    slug: str,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.get_article(db, slug)
    await relations.favorites.remove(user.id, article.id)
    return {"article": await presenter.article(article, user.id, relations)}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.get("/{slug}/comments")
async def list_comments(
    slug: str,
    viewer_id: int | None = Depends(optional_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.get_article(db, slug)
    comments = await comment_service.list_comments(db, article)
    return {"comments": [await presenter.comment(c, viewer_id, relations) for c in comments]}


@router.post("/{slug}/comments", status_code=201)
async def add_comment(
    slug: str,
    payload: CommentCreateRequest,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
    relations: RelationshipStore = Depends(get_relations),
):
    article = await article_service.get_article(db, slug)
    comment = await comment_service.add_comment(db, article, user, payload.comment)
    return {"comment": await presenter.comment(comment, user.id, relations)}


@router.delete("/{slug}/comments/{comment_id}", status_code=204)
async def delete_comment(
    slug: str,
    comment_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.get_article(db, slug)
    await comment_service.delete_comment(db, article, comment_id, user)
    return Response(status_code=204)
