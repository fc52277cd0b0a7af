import uuid
from datetime import datetime
from typing import Literal
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.config import settings
from konsuldok.core.constants import UserRole
from konsuldok.core.errors import AppError
from konsuldok.core.db import get_session
from konsuldok.core.security import get_principal, require_roles, Principal
from konsuldok.modules.medical_documents.schemas import DocumentMeta, DocumentUpdate, DocumentQuery, DocumentOut, DocumentPage
from konsuldok.modules.medical_documents.service import MedicalDocumentService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> MedicalDocumentService:
    return MedicalDocumentService(session)

def _split_tags(raw: str | None) -> list[str]:
    return [t.strip() for t in (raw or "").split(",") if t.strip()]

def _out(service: MedicalDocumentService, obj) -> DocumentOut:
    out = DocumentOut.model_validate(obj)
    out.download_url = service.download_url(obj)
    return out

@router.post("/upload/{patient_id}", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
async def upload_document(
    patient_id: uuid.UUID,
    file: UploadFile = File(...),
    description: str | None = Form(None, max_length=1000),
    document_date: datetime | None = Form(None),
    tags: str | None = Form(None, description="comma separated"),
    principal: Principal = Depends(require_roles(UserRole.PATIENT, UserRole.STAFF, UserRole.DOCTOR, UserRole.ADMIN)),
    service: MedicalDocumentService = Depends(svc),
):
    if file.size is not None and file.size > settings.MAX_UPLOAD_BYTES:
        raise AppError(f"File too large (>{settings.MAX_UPLOAD_BYTES} bytes).", status_code=413, code="FILE_TOO_LARGE")
    data = await file.read()
    meta = DocumentMeta(description=description, document_date=document_date, tags=_split_tags(tags))
    obj = await service.upload(
        patient_id, filename=file.filename, content_type=file.content_type, data=data, meta=meta, actor=principal,
    )
    return _out(service, obj)

@router.get("/patient/{patient_id}", response_model=DocumentPage)
async def list_patient_documents(
    patient_id: uuid.UUID,
    tags: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    sort_by: Literal["created_at", "document_date", "file_name"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    service: MedicalDocumentService = Depends(svc),
):
    query = DocumentQuery(tags=_split_tags(tags), start_date=start_date, end_date=end_date, sort_by=sort_by, order=order, page=page, limit=limit)
    result = await service.list_for_patient(patient_id, query, principal)
    result["documents"] = [DocumentOut.model_validate(d) for d in result["documents"]]
    return result

@router.get("/{document_id}", response_model=DocumentOut)
async def get_document(
    document_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: MedicalDocumentService = Depends(svc),
):
    return _out(service, await service.get(document_id, principal))

@router.patch("/{document_id}", response_model=DocumentOut)
async def update_document(
    document_id: uuid.UUID,
    payload: DocumentUpdate,
    principal: Principal = Depends(get_principal),
    service: MedicalDocumentService = Depends(svc),
):
    return _out(service, await service.update(document_id, payload, principal))

@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: MedicalDocumentService = Depends(svc),
):
    await service.delete(document_id, principal)
