from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, BackgroundTasks, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.blogs import schemas, service
from app.modules.catalog.models import AccessType
from app.modules.media import service as media_service
from app.modules.media.storage import B2Storage, get_storage

router = APIRouter()

@router.get("", response_model=List[schemas.BlogRead])
async def list_blogs(
    published: Optional[bool] = None,
    access_type: Optional[AccessType] = None,
    category_id: Optional[UUID] = None,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.admin_list(db, published, access_type, category_id)

@router.get("/{blog_id}", response_model=schemas.BlogRead)
async def get_blog(
    blog_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.get_blog(db, blog_id)

@router.post("", response_model=schemas.BlogRead, status_code=status.HTTP_201_CREATED)
async def create_blog(
    blog_in: schemas.BlogCreate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_blog(db, blog_in, current_user)

@router.put("/{blog_id}", response_model=schemas.BlogRead)
async def update_blog(
    blog_id: UUID,
    blog_in: schemas.BlogUpdate,
    background_tasks: BackgroundTasks,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: B2Storage = Depends(get_storage),
) -> Any:
    blog, old_cover = await service.update_blog(db, blog_id, blog_in)
    if old_cover:
        background_tasks.add_task(media_service.delete_quietly, storage, old_cover)
    return blog

@router.delete("/{blog_id}")
async def delete_blog(
    blog_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: B2Storage = Depends(get_storage),
) -> Any:
    cover = await service.delete_blog(db, blog_id)
    if cover:
        background_tasks.add_task(media_service.delete_quietly, storage, cover)
    return {"message": "Blog deleted successfully"}
