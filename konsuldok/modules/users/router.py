import uuid
from typing import Literal
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.db import get_session
from konsuldok.core.security import Principal, get_principal, require_roles
from konsuldok.modules.doctors.schemas import DoctorOut
from konsuldok.modules.patients.schemas import PatientOut
from konsuldok.modules.staff.schemas import StaffOut
from konsuldok.modules.users.models import User
from konsuldok.modules.users.schemas import (
    UserCreate, UserUpdate, UserSelfUpdate, UserOut, UserDetailOut, UserPage, UserSortField,
)
from konsuldok.modules.users.service import UserService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)

admin_only = require_roles(UserRole.ADMIN)

_PROFILE_OUT = {"patient_profile": PatientOut, "doctor_profile": DoctorOut, "staff_profile": StaffOut}

async def _detail(service: UserService, user: User) -> UserDetailOut:
    linked = await service.linked_profiles(user)
    profiles = {k: _PROFILE_OUT[k].model_validate(v) if v else None for k, v in linked.items()}
    return UserDetailOut.model_validate(user).model_copy(update=profiles)

@router.post("", response_model=UserOut, status_code=201)
async def create_user(payload: UserCreate, principal: Principal = Depends(admin_only), service: UserService = Depends(svc)):
    return await service.create(payload, principal)

@router.get("/me", response_model=UserDetailOut)
async def get_me(principal: Principal = Depends(get_principal), service: UserService = Depends(svc)):
    return await _detail(service, await service.get(principal.user_id))

@router.patch("/profile/me", response_model=UserOut)
async def update_my_profile(payload: UserSelfUpdate, principal: Principal = Depends(get_principal), service: UserService = Depends(svc)):
    return await service.update_me(payload, principal)

@router.get("", response_model=UserPage, dependencies=[Depends(admin_only)])
async def list_users(
    role: UserRole | None = None,
    is_active: bool | None = None,
    sort_by: UserSortField = "created_at",
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: UserService = Depends(svc),
):
    return await service.list(role=role, is_active=is_active, sort_by=sort_by, order=order, page=page, limit=limit)

@router.get("/{user_id}", response_model=UserDetailOut, dependencies=[Depends(admin_only)])
async def get_user(user_id: uuid.UUID, service: UserService = Depends(svc)):
    return await _detail(service, await service.get(user_id))

@router.patch("/{user_id}", response_model=UserOut)
async def update_user(user_id: uuid.UUID, payload: UserUpdate, principal: Principal = Depends(admin_only), service: UserService = Depends(svc)):
    return await service.update(user_id, payload, principal)

@router.delete("/{user_id}", status_code=204)
async def deactivate_user(user_id: uuid.UUID, principal: Principal = Depends(admin_only), service: UserService = Depends(svc)):
    await service.deactivate(user_id, principal)
