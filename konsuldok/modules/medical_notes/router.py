import uuid
from datetime import datetime
from typing import Literal
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.db import get_session
from konsuldok.core.security import get_principal, require_roles, Principal
from konsuldok.modules.medical_notes.schemas import NoteCreate, NoteUpdate, NoteQuery, NoteOut, NotePage
from konsuldok.modules.medical_notes.service import MedicalNoteService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> MedicalNoteService:
    return MedicalNoteService(session)

@router.post("", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreate,
    principal: Principal = Depends(require_roles(UserRole.DOCTOR, UserRole.STAFF)),
    service: MedicalNoteService = Depends(svc),
):
    return await service.create(payload, principal)

@router.get("/patient/{patient_id}", response_model=NotePage)
async def list_patient_notes(
    patient_id: uuid.UUID,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    sort_by: Literal["consultation_date", "created_at"] = "consultation_date",
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    service: MedicalNoteService = Depends(svc),
):
    query = NoteQuery(start_date=start_date, end_date=end_date, sort_by=sort_by, order=order, page=page, limit=limit)
    return await service.list_for_patient(patient_id, query, principal)

@router.get("/{note_id}", response_model=NoteOut)
async def get_note(
    note_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: MedicalNoteService = Depends(svc),
):
    return await service.get(note_id, principal)

@router.patch("/{note_id}", response_model=NoteOut)
async def update_note(
    note_id: uuid.UUID,
    payload: NoteUpdate,
    principal: Principal = Depends(require_roles(UserRole.DOCTOR, UserRole.STAFF, UserRole.ADMIN)),
    service: MedicalNoteService = Depends(svc),
):
    return await service.update(note_id, payload, principal)

@router.delete("/{note_id}", status_code=204)
async def delete_note(
    note_id: uuid.UUID,
    principal: Principal = Depends(require_roles(UserRole.DOCTOR, UserRole.STAFF, UserRole.ADMIN)),
    service: MedicalNoteService = Depends(svc),
):
    await service.delete(note_id, principal)
