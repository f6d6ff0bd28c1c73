from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.blogs.service import paginate
from app.modules.catalog.models import AccessType
from app.modules.resources import schemas, service

router = APIRouter()

@router.get("", response_model=schemas.ResourceList)
async def list_resources(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[str] = None,
    access_type: Optional[AccessType] = None,
    search: Optional[str] = None,
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Published resources with per-item access flags.
    """
    resources, total = await service.list_published(db, page, limit, category, access_type, search)
    return {
        "resources": await service.present_many(db, resources, current_user),
        "pagination": paginate(total, page, limit),
    }

@router.get("/{slug}", response_model=schemas.ResourceDetail)
async def get_resource(
    slug: str,
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    resource = await service.get_published_by_slug(db, slug)
    return await service.present_resource(db, resource, current_user)
