from typing import Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.catalog import schemas, service

router = APIRouter()

# Categories

@router.get("/categories", response_model=List[schemas.CategoryRead])
async def list_categories(
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_categories(db)

@router.post("/categories", response_model=schemas.CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_in: schemas.CategoryCreate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_category(db, category_in)

@router.put("/categories/{category_id}", response_model=schemas.CategoryRead)
async def update_category(
    category_id: UUID,
    category_in: schemas.CategoryUpdate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.update_category(db, category_id, category_in)

@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await service.delete_category(db, category_id)
    return {"message": "Category deleted successfully"}

# Tags

@router.get("/tags", response_model=List[schemas.TagWithCounts])
async def list_tags(
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_tags(db)

@router.post("/tags", response_model=schemas.TagRead, status_code=status.HTTP_201_CREATED)
async def create_tag(
    tag_in: schemas.TagCreate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_tag(db, tag_in)

@router.put("/tags/{tag_id}", response_model=schemas.TagRead)
async def update_tag(
    tag_id: UUID,
    tag_in: schemas.TagUpdate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.update_tag(db, tag_id, tag_in)

@router.delete("/tags/{tag_id}")
async def delete_tag(
    tag_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await service.delete_tag(db, tag_id)
    return {"message": "Tag deleted successfully"}
