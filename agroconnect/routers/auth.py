"""
Authentication routes.
"""

from fastapi import APIRouter, Depends

from agroconnect.models import (
    PasswordChange,
    Requester,
    TokenResponse,
    User,
    UserCreate,
    UserLogin,
    UserUpdate,
)
from agroconnect.services.auth import AuthService, get_current_user
from .deps import get_auth_service

router = APIRouter()


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
async def register(
    body: UserCreate,
    service: AuthService = Depends(get_auth_service),
):
    return await service.register(body)


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    body: UserLogin,
    service: AuthService = Depends(get_auth_service),
):
    return await service.login(body.email, body.password)


@router.get("/auth/me", response_model=User)
async def me(
    requester: Requester = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.me(requester)


@router.put("/auth/profile", response_model=User)
async def update_profile(
    body: UserUpdate,
    requester: Requester = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.update_profile(requester, body)


@router.put("/auth/password")
async def change_password(
    body: PasswordChange,
    requester: Requester = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    await service.change_password(requester, body)
    return {"status": "success", "message": "Password changed"}


@router.delete("/auth/account")
async def delete_account(
    requester: Requester = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    """Deactivate the current account."""
    await service.delete_account(requester)
    return {"status": "success", "message": "Account deactivated"}
