from typing import Any, List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.blogs import service as blog_service
from app.modules.blogs.schemas import BlogSummary
from app.modules.catalog import schemas, service
from app.modules.resources import service as resource_service
from app.modules.resources.schemas import ResourceDetail
from pydantic import BaseModel

router = APIRouter()

class FeaturedContent(BaseModel):
    featured_blogs: List[BlogSummary]
    featured_resources: List[ResourceDetail]
    latest_blogs: List[BlogSummary]

@router.get("/categories", response_model=List[schemas.CategoryRead])
async def list_categories(db: AsyncSession = Depends(get_db)) -> Any:
    return await service.list_categories(db)

@router.get("/tags", response_model=List[schemas.TagWithCounts])
async def list_tags(db: AsyncSession = Depends(get_db)) -> Any:
    return await service.list_tags(db)

@router.get("/featured", response_model=FeaturedContent)
async def featured_content(
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Landing page content: featured blogs and resources plus the latest blogs.
    """
    resources = await resource_service.featured_resources(db)
    return {
        "featured_blogs": await blog_service.featured_blogs(db),
        "featured_resources": await resource_service.present_many(db, resources, current_user),
        "latest_blogs": await blog_service.latest_blogs(db),
    }
