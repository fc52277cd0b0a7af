import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.db import get_session
from konsuldok.core.security import get_principal, require_roles, Principal
from konsuldok.modules.staff.schemas import StaffCreate, StaffUpdate, StaffOut, StaffPage
from konsuldok.modules.staff.service import StaffService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> StaffService:
    return StaffService(session)

admin_only = require_roles(UserRole.ADMIN)

@router.post("", response_model=StaffOut, status_code=status.HTTP_201_CREATED)
async def create_staff(payload: StaffCreate, principal: Principal = Depends(admin_only), service: StaffService = Depends(svc)):
    return await service.create(payload, principal)

@router.get("/profile/me", response_model=StaffOut)
async def get_my_staff_profile(principal: Principal = Depends(require_roles(UserRole.STAFF)), service: StaffService = Depends(svc)):
    return await service.get_mine(principal)

@router.get("", response_model=StaffPage, dependencies=[Depends(require_roles(UserRole.DOCTOR, UserRole.STAFF, UserRole.ADMIN))])
async def list_staff(
    department: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: StaffService = Depends(svc),
):
    return await service.list(department, page, limit)

@router.get("/{staff_id}", response_model=StaffOut)
async def get_staff(staff_id: uuid.UUID, principal: Principal = Depends(get_principal), service: StaffService = Depends(svc)):
    return await service.get(staff_id, principal)

@router.patch("/{staff_id}", response_model=StaffOut)
async def update_staff(
    staff_id: uuid.UUID,
    payload: StaffUpdate,
    principal: Principal = Depends(admin_only),
    service: StaffService = Depends(svc),
):
    return await service.update(staff_id, payload, principal)
