from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.subscriptions import schemas, service
from app.modules.subscriptions.models import SubscriptionStatus

router = APIRouter()

@router.get("/plans", response_model=List[schemas.PlanRead])
async def list_plans(
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_plans(db, include_inactive=True)

@router.post("/plans", response_model=schemas.PlanRead, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan_in: schemas.PlanCreate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_plan(db, plan_in)

@router.put("/plans/{plan_id}", response_model=schemas.PlanRead)
async def update_plan(
    plan_id: UUID,
    plan_in: schemas.PlanUpdate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.update_plan(db, plan_id, plan_in)

@router.delete("/plans/{plan_id}")
async def delete_plan(
    plan_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await service.delete_plan(db, plan_id)
    return {"message": "Plan deleted successfully"}

@router.get("/subscriptions", response_model=List[schemas.SubscriptionAdminRead])
async def list_subscriptions(
    status: Optional[SubscriptionStatus] = None,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.admin_list(db, status)
