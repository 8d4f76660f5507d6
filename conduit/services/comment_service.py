"""
Comment service — comments attached to an Article.

Only the comment's author may delete it; there is no edit operation.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit.errors import Forbidden, NotFound
from conduit.models import Article, Comment, User
from conduit.schemas import CommentCreate


async def list_comments(db: AsyncSession, article: Article) -> list[Comment]:
    q = (
        select(Comment)
        .where(Comment.article_id == article.id)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at, Comment.id)
    )
    return list((await db.execute(q)).unique().scalars().all())


async def add_comment(db: AsyncSession, article: Article, author: User, data: CommentCreate) -> Comment:
    comment = Comment(body=data.body, article_id=article.id, user_id=author.id)
    comment.author = author
    db.add(comment)
    await db.flush()
    return comment


async def delete_comment(db: AsyncSession, article: Article, comment_id: int, user: User) -> None:
    """
    Delete *comment_id* from *article*.

    A comment id that exists but belongs to another article is reported
    as not found rather than leaking its existence.
    """
    comment = await db.get(Comment, comment_id)
    if comment is None or comment.article_id != article.id:
        raise NotFound("comment not found")
    if comment.user_id != user.id:
        raise Forbidden("only the author may delete this comment")
    await db.delete(comment)
    await db.flush()
