import uuid
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.db import get_session
from konsuldok.core.security import get_principal, require_roles, Principal
from konsuldok.modules.patients.schemas import PatientCreate, PatientUpdate, PatientOut
from konsuldok.modules.patients.service import PatientService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> PatientService:
    return PatientService(session)

@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    principal: Principal = Depends(get_principal),
    service: PatientService = Depends(svc),
):
    return await service.create(payload, principal)

@router.get("/profile/me", response_model=PatientOut)
async def get_my_patient_profile(
    principal: Principal = Depends(get_principal),
    service: PatientService = Depends(svc),
):
    return await service.get_mine(principal)

@router.get("/{patient_id}", response_model=PatientOut)
async def get_patient(
    patient_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: PatientService = Depends(svc),
):
    return await service.get(patient_id, principal)

@router.get("", response_model=list[PatientOut], dependencies=[Depends(require_roles(UserRole.DOCTOR, UserRole.STAFF, UserRole.ADMIN))])
async def list_patients(
    limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
    service: PatientService = Depends(svc),
):
    return await service.list(limit, offset)

@router.patch("/{patient_id}", response_model=PatientOut)
async def update_patient(
    patient_id: uuid.UUID,
    payload: PatientUpdate,
    principal: Principal = Depends(get_principal),
    service: PatientService = Depends(svc),
):
    return await service.update(patient_id, payload, principal)

@router.delete("/{patient_id}", status_code=204)
async def delete_patient(
    patient_id: uuid.UUID,
    principal: Principal = Depends(require_roles(UserRole.ADMIN)),
    service: PatientService = Depends(svc),
):
    await service.delete(patient_id, principal)
