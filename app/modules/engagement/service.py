import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError, NotFound, Forbidden
from app.modules.auth.models import User, UserRole
from app.modules.blogs.models import Blog
from app.modules.engagement import models, schemas

logger = logging.getLogger(__name__)

async def _require_blog(db: AsyncSession, blog_id: UUID) -> Blog:
    blog = await db.get(Blog, blog_id)
    if not blog:
        raise NotFound("Blog not found")
    return blog

# Comments

async def list_comments(db: AsyncSession, blog_id: Optional[UUID]) -> List[models.Comment]:
    if not blog_id:
        raise ValidationError("Blog ID is required")
    result = await db.execute(
        select(models.Comment)
        .where(models.Comment.blog_id == blog_id)
        .order_by(models.Comment.created_at.desc())
    )
    return result.scalars().all()

async def create_comment(db: AsyncSession, user: User, comment_in: schemas.CommentCreate) -> models.Comment:
    await _require_blog(db, comment_in.blog_id)
    comment = models.Comment(blog_id=comment_in.blog_id, user_id=user.id, content=comment_in.content.strip())
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment

async def _owned_comment(db: AsyncSession, user: User, comment_id: UUID) -> models.Comment:
    comment = await db.get(models.Comment, comment_id)
    if not comment:
        raise NotFound("Comment not found")
    if comment.user_id != user.id and user.role != UserRole.ADMIN:
        raise Forbidden()
    return comment

async def update_comment(db: AsyncSession, user: User, comment_id: UUID, comment_in: schemas.CommentUpdate) -> models.Comment:
    comment = await _owned_comment(db, user, comment_id)
    comment.content = comment_in.content.strip()
    await db.commit()
    await db.refresh(comment)
    return comment

async def delete_comment(db: AsyncSession, user: User, comment_id: UUID) -> None:
    comment = await _owned_comment(db, user, comment_id)
    await db.delete(comment)
    await db.commit()

# Bookmarks

async def _find_bookmark(db: AsyncSession, user_id: UUID, blog_id: UUID) -> Optional[models.Bookmark]:
    result = await db.execute(
        select(models.Bookmark).where(models.Bookmark.user_id == user_id, models.Bookmark.blog_id == blog_id)
    )
    return result.scalars().first()

async def add_bookmark(db: AsyncSession, user: User, blog_id: UUID) -> Tuple[models.Bookmark, bool]:
    """
    Returns the bookmark and whether it was newly created.
    """
    await _require_blog(db, blog_id)
    existing = await _find_bookmark(db, user.id, blog_id)
    if existing:
        return existing, False

    user_id = user.id
    bookmark = models.Bookmark(user_id=user_id, blog_id=blog_id)
    db.add(bookmark)
    try:
        await db.commit()
    except IntegrityError:
        # Double click race, the other request created it
        await db.rollback()
        return await _find_bookmark(db, user_id, blog_id), False
    await db.refresh(bookmark)
    return bookmark, True

async def remove_bookmark(db: AsyncSession, user: User, blog_id: UUID) -> None:
    bookmark = await _find_bookmark(db, user.id, blog_id)
    if not bookmark:
        raise NotFound("Bookmark not found")
    await db.delete(bookmark)
    await db.commit()

async def is_bookmarked(db: AsyncSession, user: Optional[User], blog_id: UUID) -> bool:
    if user is None:
        return False
    return await _find_bookmark(db, user.id, blog_id) is not None

async def list_bookmarks(db: AsyncSession, user_id: UUID) -> List[models.Bookmark]:
    result = await db.execute(
        select(models.Bookmark)
        .where(models.Bookmark.user_id == user_id)
        .order_by(models.Bookmark.created_at.desc())
    )
    return result.scalars().all()
