from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.blogs import schemas, service
from app.modules.catalog.models import AccessType

router = APIRouter()

@router.get("", response_model=schemas.BlogList)
async def list_blogs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    access_type: Optional[AccessType] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Published blogs, newest first.
    """
    blogs, total = await service.list_published(db, page, limit, category, access_type, search)
    return {"blogs": blogs, "pagination": service.paginate(total, page, limit)}

@router.get("/search", response_model=List[schemas.BlogSummary])
async def search_blogs(
    q: Optional[str] = None,
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.search_blogs(db, q, limit)

@router.get("/related", response_model=List[schemas.BlogSummary])
async def related_blogs(
    category: Optional[str] = None,
    exclude: Optional[UUID] = None,
    limit: int = Query(3, ge=1, le=20),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.related_blogs(db, category, exclude, limit)

@router.get("/{slug}", response_model=schemas.BlogDetail)
async def get_blog(
    slug: str,
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Blog by slug. Viewers without access get the preview and no content.
    """
    blog = await service.get_published_by_slug(db, slug)
    return await service.present_blog(db, blog, current_user)
