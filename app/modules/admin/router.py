from typing import Any, List, Optional
from uuid import UUID
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.auth import schemas as auth_schemas
from app.modules.admin import schemas, service
from app.modules.payments import schemas as payment_schemas
from app.modules.payments.models import PaymentStatus, PaymentType

router = APIRouter()

@router.get("/stats", response_model=schemas.AdminStats)
async def get_admin_stats(
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Dashboard totals and the last 6 months of earnings.
    """
    return await service.get_stats(db)

@router.get("/users", response_model=List[auth_schemas.UserRead])
async def get_all_users(
    search: Optional[str] = None,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.get_all_users(db, search)

@router.get("/users/{user_id}", response_model=schemas.UserDetail)
async def get_user_detail(
    user_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.get_user_details(db, user_id)

@router.patch("/users/{user_id}/ban", response_model=auth_schemas.UserRead)
async def update_user_ban(
    user_id: UUID,
    payload: schemas.UserBan,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Ban or unban a user.
    """
    return await service.set_user_banned(db, user_id, payload.banned, current_user)

@router.get("/payments", response_model=List[payment_schemas.PaymentRead])
async def list_payments(
    status: Optional[PaymentStatus] = None,
    type: Optional[PaymentType] = None,
    user_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_payments(db, status, type, user_id, start_date, end_date)

@router.get("/settings", response_model=List[schemas.SettingRead])
async def get_settings(
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await service.get_settings(db)

@router.put("/settings", response_model=List[schemas.SettingRead])
async def update_settings(
    payload: schemas.SettingsUpdate,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await service.update_settings(db, payload.settings)
