from typing import Any
from fastapi import APIRouter, Depends, BackgroundTasks, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import security
from app.core import deps
from app.modules.auth import schemas, models, service
from app.modules.notifications import service as notifications
from app.modules.notifications.mail import Mailer, get_mailer

router = APIRouter()

@router.post("/signup", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user_in: schemas.UserCreate,
    background_tasks: BackgroundTasks,
    mailer: Mailer = Depends(get_mailer),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Create an unverified account and email a 6-digit code.
    """
    user, otp = await service.signup(db, user_in)
    background_tasks.add_task(notifications.send_otp_email, mailer, user.email, otp)
    return {"message": "Account created. Please check your email for the verification code.", "user": user}

@router.post("/verify-otp", response_model=schemas.UserRead)
async def verify_otp(
    data: schemas.OTPVerify,
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.verify_otp(db, data)

@router.post("/resend-otp")
async def resend_otp(
    data: schemas.OTPResend,
    background_tasks: BackgroundTasks,
    mailer: Mailer = Depends(get_mailer),
    db: AsyncSession = Depends(get_db)
) -> Any:
    user, otp = await service.resend_otp(db, data.email)
    background_tasks.add_task(notifications.send_otp_email, mailer, user.email, otp)
    return {"message": "A new verification code has been sent."}

@router.post("/login", response_model=schemas.Token)
async def login_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
) -> Any:
    user = await service.authenticate(db, form_data.username, form_data.password)
    access_token = security.create_access_token(subject=user.id)
    return {
        "access_token": access_token,
        "token_type": "bearer"
    }

@router.get("/me", response_model=schemas.UserRead)
async def read_users_me(
    current_user: models.User = Depends(deps.get_current_user),
) -> Any:
    return current_user

@router.put("/me", response_model=schemas.UserRead)
async def update_user_me(
    user_in: schemas.UserUpdate,
    current_user: models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    if user_in.name is not None:
        current_user.name = user_in.name

    db.add(current_user)
    await db.commit()
    await db.refresh(current_user)
    return current_user

@router.get("/profile", response_model=schemas.Profile)
async def read_profile(
    current_user: models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Current user with purchases, subscriptions, recent payments and bookmarks.
    """
    return await service.get_profile(db, current_user)

@router.post("/change-password")
async def change_password(
    data: schemas.PasswordChange,
    current_user: models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    await service.change_password(db, current_user, data)
    return {"message": "Password updated successfully"}
