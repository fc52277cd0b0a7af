import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.config import settings
from konsuldok.core.constants import AppointmentStatus, UserRole
from konsuldok.core.db import get_session
from konsuldok.core.security import get_principal, require_roles, Principal
from konsuldok.modules.appointments.repository import SqlSchedulingStore
from konsuldok.modules.appointments.schemas import (
    AppointmentCreate, AppointmentUpdate, AppointmentCancel, AppointmentFilters, AppointmentOut,
)
from konsuldok.modules.appointments.service import AppointmentService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(
        SqlSchedulingStore(session),
        settings.clinic_tz,
        slot_increment_minutes=settings.SLOT_INCREMENT_MINUTES,
        min_duration_minutes=settings.MIN_APPOINTMENT_MINUTES,
    )

@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    principal: Principal = Depends(require_roles(UserRole.PATIENT, UserRole.STAFF, UserRole.ADMIN)),
    service: AppointmentService = Depends(svc),
):
    return await service.create(payload, principal)

@router.get("", response_model=list[AppointmentOut])
async def list_appointments(
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    doctor_id: uuid.UUID | None = None,
    patient_id: uuid.UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    filters = AppointmentFilters(
        status=status_filter, doctor_id=doctor_id, patient_id=patient_id,
        start_date=start_date, end_date=end_date, limit=limit, offset=offset,
    )
    return await service.list_for(principal, filters)

@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(
    appointment_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    return await service.get(appointment_id, principal)

@router.patch("/{appointment_id}", response_model=AppointmentOut)
async def update_appointment(
    appointment_id: uuid.UUID,
    payload: AppointmentUpdate,
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    return await service.update(appointment_id, payload, principal)

@router.patch("/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    appointment_id: uuid.UUID,
    payload: AppointmentCancel,
    principal: Principal = Depends(get_principal),
    service: AppointmentService = Depends(svc),
):
    return await service.cancel(appointment_id, payload.reason, principal)

@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: uuid.UUID,
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
    service: AppointmentService = Depends(svc),
):
    await service.delete(appointment_id, principal)
