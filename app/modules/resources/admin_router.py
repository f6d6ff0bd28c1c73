from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, BackgroundTasks, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.resources import schemas, service
from app.modules.catalog.models import AccessType
from app.modules.media import service as media_service
from app.modules.media.storage import B2Storage, get_storage

router = APIRouter()

@router.get("", response_model=List[schemas.ResourceRead])
async def list_resources(
    published: Optional[bool] = None,
    access_type: Optional[AccessType] = None,
    category_id: Optional[UUID] = None,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.admin_list(db, published, access_type, category_id)

@router.get("/{resource_id}", response_model=schemas.ResourceRead)
async def get_resource(
    resource_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.get_resource(db, resource_id)

@router.post("", response_model=schemas.ResourceRead, status_code=status.HTTP_201_CREATED)
async def create_resource(
    resource_in: schemas.ResourceCreate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_resource(db, resource_in, current_user)

@router.put("/{resource_id}", response_model=schemas.ResourceRead)
async def update_resource(
    resource_id: UUID,
    resource_in: schemas.ResourceUpdate,
    background_tasks: BackgroundTasks,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: B2Storage = Depends(get_storage),
) -> Any:
    resource, old_cover = await service.update_resource(db, resource_id, resource_in)
    if old_cover:
        background_tasks.add_task(media_service.delete_quietly, storage, old_cover)
    return resource

@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: B2Storage = Depends(get_storage),
) -> Any:
    cover = await service.delete_resource(db, resource_id)
    if cover:
        background_tasks.add_task(media_service.delete_quietly, storage, cover)
    return {"message": "Resource deleted successfully"}
