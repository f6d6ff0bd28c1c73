from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.engagement import schemas, service

router = APIRouter()

# Comments

@router.get("/comments", response_model=List[schemas.CommentRead])
async def list_comments(
    blog_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_comments(db, blog_id)

@router.post("/comments", response_model=schemas.CommentRead, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_in: schemas.CommentCreate,
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_comment(db, current_user, comment_in)

@router.put("/comments/{comment_id}", response_model=schemas.CommentRead)
async def update_comment(
    comment_id: UUID,
    comment_in: schemas.CommentUpdate,
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.update_comment(db, current_user, comment_id, comment_in)

@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await service.delete_comment(db, current_user, comment_id)
    return {"message": "Comment deleted successfully"}

# Bookmarks

@router.get("/bookmarks", response_model=List[schemas.BookmarkRead])
async def list_bookmarks(
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_bookmarks(db, current_user.id)

@router.get("/bookmarks/check", response_model=schemas.BookmarkStatus)
async def check_bookmark(
    blog_id: UUID,
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return {"is_bookmarked": await service.is_bookmarked(db, current_user, blog_id)}

@router.post("/bookmarks", response_model=schemas.BookmarkRead)
async def add_bookmark(
    bookmark_in: schemas.BookmarkCreate,
    response: Response,
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Idempotent: an existing bookmark comes back with 200, a new one with 201.
    """
    bookmark, created = await service.add_bookmark(db, current_user, bookmark_in.blog_id)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return bookmark

@router.delete("/bookmarks/{blog_id}")
async def remove_bookmark(
    blog_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await service.remove_bookmark(db, current_user, blog_id)
    return {"message": "Bookmark removed"}
