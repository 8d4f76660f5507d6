"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Every query that feeds the presenter eager-loads ``author``
  (``joinedload``, many-to-one) and ``tags`` (``selectinload``,
  many-to-many); the ORM relationships are ``lazy="raise"``.
  ``unique()`` is required after ``joinedload`` queries.
- Favorite state is not stored on the article: ``favorited`` and
  ``favoritesCount`` come from ``conduit.relations`` at render time.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import re
import time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from conduit.cache import cache
from conduit.errors import Conflict, Forbidden, NotFound
from conduit.models import Article, Tag, User
from conduit.relations import RelationshipStore
from conduit.schemas import ArticleCreate, ArticleUpdate

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-") or "article"


def _with_author_and_tags(q):
    return q.options(joinedload(Article.author), selectinload(Article.tags))


async def _unique_slug(db: AsyncSession, title: str, exclude_id: int | None = None) -> str:
    """
    Slug for *title*, suffixed with a Unix timestamp when another article
    already uses it.
    """
    slug = slugify(title)
    q = select(Article.id).where(Article.slug == slug)
    if exclude_id is not None:
        q = q.where(Article.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        slug = f"{slug}-{int(time.time() * 1000)}"
    return slug


async def _resolve_tags(db: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag rows for each distinct name in *tag_names*, creating any
    that do not exist yet within the caller's transaction.
    """
    tags: list[Tag] = []
    seen: set[str] = set()
    for raw in tag_names:
        name = raw.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        result = await db.execute(select(Tag).where(Tag.name == name))
        tag = result.scalar_one_or_none()
        if not tag:
            tag = Tag(name=name, slug=slugify(name))
            db.add(tag)
            await db.flush()
        tags.append(tag)
    return tags


async def _flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("an article with this slug already exists") from exc


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, slug: str) -> Article:
    """Return the article for *slug* with author and tags loaded."""
    q = _with_author_and_tags(select(Article).where(Article.slug == slug))
    article = (await db.execute(q)).unique().scalar_one_or_none()
    if article is None:
        raise NotFound("article not found")
    return article


async def list_articles(
    db: AsyncSession,
    relations: RelationshipStore,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
) -> list[Article]:
    """
    All articles, newest first, optionally narrowed by tag name, author
    username and the username of a user who favorited them.
    """
    q = select(Article)
    if tag:
        q = q.where(Article.tags.any(Tag.name == tag))
    if author:
        q = q.join(User, Article.user_id == User.id).where(User.username == author)
    if favorited:
        fan = (await db.execute(select(User.id).where(User.username == favorited))).scalar_one_or_none()
        if fan is None:
            return []
        q = q.where(Article.id.in_(await relations.favorites.targets_of(fan)))

    q = _with_author_and_tags(q.order_by(Article.created_at.desc(), Article.id.desc()))
    return list((await db.execute(q)).unique().scalars().all())


async def feed(db: AsyncSession, relations: RelationshipStore, user_id: int) -> list[Article]:
    """Articles written by the users *user_id* follows, newest first."""
    followed = await relations.follows.targets_of(user_id)
    if not followed:
        return []
    q = _with_author_and_tags(
        select(Article)
        .where(Article.user_id.in_(followed))
        .order_by(Article.created_at.desc(), Article.id.desc())
    )
    return list((await db.execute(q)).unique().scalars().all())


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, author: User, data: ArticleCreate) -> Article:
    article = Article(
        slug=await _unique_slug(db, data.title),
        title=data.title,
        description=data.description,
        body=data.body,
        user_id=author.id,
    )
    article.author = author
    article.tags = await _resolve_tags(db, data.tag_list)

    db.add(article)
    await _flush(db)
    await cache.invalidate_tags()
    return article


def _ensure_owner(article: Article, user: User) -> None:
    if article.user_id != user.id:
        raise Forbidden("only the author may change this article")


async def update_article(db: AsyncSession, article: Article, user: User, data: ArticleUpdate) -> Article:
    """
    Apply the fields present in *data*; a new title also regenerates the
    slug.
    """
    _ensure_owner(article, user)

    changes = data.model_dump(exclude_unset=True)
    tag_names: list[str] | None = changes.pop("tag_list", None)

    for field, value in changes.items():
        if value is not None:
            setattr(article, field, value)

    if changes.get("title"):
        article.slug = await _unique_slug(db, changes["title"], exclude_id=article.id)

    if tag_names is not None:
        article.tags = await _resolve_tags(db, tag_names)

    await _flush(db)
    await cache.invalidate_tags()
    return article


async def delete_article(db: AsyncSession, article: Article, user: User) -> None:
    _ensure_owner(article, user)
    await db.delete(article)
    await db.flush()
