import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.db import get_session
from konsuldok.core.security import get_principal, require_roles, Principal
from konsuldok.modules.doctors.schemas import DoctorCreate, DoctorUpdate, DoctorOut, DoctorList, AvailabilitySlots
from konsuldok.modules.doctors.service import DoctorService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> DoctorService:
    return DoctorService(session)

@router.post("", response_model=DoctorOut, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    payload: DoctorCreate,
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
    service: DoctorService = Depends(svc),
):
    return await service.create(payload, principal)

@router.get("", response_model=DoctorList, dependencies=[Depends(get_principal)])
async def list_doctors(
    specialty: str | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: DoctorService = Depends(svc),
):
    return await service.list_for_booking(specialty, search, page, limit)

@router.get("/{doctor_id}", response_model=DoctorOut, dependencies=[Depends(get_principal)])
async def get_doctor(doctor_id: uuid.UUID, service: DoctorService = Depends(svc)):
    return await service.get(doctor_id)

@router.get("/{doctor_id}/availability", response_model=AvailabilitySlots, dependencies=[Depends(get_principal)])
async def doctor_availability(
    doctor_id: uuid.UUID,
    date: str = Query(..., description="YYYY-MM-DD"),
    duration: int = Query(30),
    service: DoctorService = Depends(svc),
):
    return await service.available_slots(doctor_id, date, duration)

@router.patch("/{doctor_id}", response_model=DoctorOut)
async def update_doctor(
    doctor_id: uuid.UUID,
    payload: DoctorUpdate,
    principal: Principal = Depends(require_roles(UserRole.DOCTOR, UserRole.ADMIN)),
    service: DoctorService = Depends(svc),
):
    return await service.update(doctor_id, payload, principal)
