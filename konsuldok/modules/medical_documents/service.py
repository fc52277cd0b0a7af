import math
import hashlib
import uuid
import logging
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.config import settings
from konsuldok.core.constants import UserRole, CLINIC_ROLES
from konsuldok.core.errors import AppError, ForbiddenError, InfrastructureError, InvalidInputError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.medical_documents.models import MedicalDocument
from konsuldok.modules.medical_documents.repository import MedicalDocumentRepository
from konsuldok.modules.medical_documents.schemas import DocumentMeta, DocumentUpdate, DocumentQuery
from konsuldok.modules.patients.repository import PatientRepository
from konsuldok.platform.provider_registry import registry

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (BotoCoreError, ClientError, OSError)

def storage_key(patient_id: uuid.UUID, sha: str, filename: str | None) -> str:
    ext = ""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
    return f"documents/{patient_id}/{sha}{('.' + ext) if ext else ''}"

class MedicalDocumentService:
    def __init__(self, session: AsyncSession):
        self.repo = MedicalDocumentRepository(session)
        self.patients = PatientRepository(session)
        self.session = session

    def _check_patient_scope(self, patient_id: uuid.UUID, actor: Principal):
        if actor.role == UserRole.PATIENT and actor.patient_profile_id != patient_id:
            raise ForbiddenError("You can only access your own medical documents.")

    def download_url(self, obj: MedicalDocument) -> str | None:
        try:
            return registry.object_storage().presign_download(
                obj.storage_key, expires_seconds=settings.DOWNLOAD_URL_TTL_SECONDS, filename=obj.file_name
            )
        except STORAGE_ERRORS:
            logger.error(f"Could not presign download for document {obj.id}", exc_info=True)
            return None

    async def upload(self, patient_id: uuid.UUID, *, filename: str | None, content_type: str | None, data: bytes, meta: DocumentMeta, actor: Principal) -> MedicalDocument:
        self._check_patient_scope(patient_id, actor)
        if not data:
            raise InvalidInputError("No file provided for upload.")
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise AppError(f"File too large (>{settings.MAX_UPLOAD_BYTES} bytes).", status_code=413, code="FILE_TOO_LARGE")
        mime = content_type or "application/octet-stream"
        if mime not in settings.ALLOWED_UPLOAD_TYPES:
            raise InvalidInputError(f"Invalid file type {mime}. Allowed: {', '.join(settings.ALLOWED_UPLOAD_TYPES)}.")
        if not await self.patients.exists(patient_id):
            raise NotFoundError(f"Patient profile not found with ID: {patient_id}")

        sha = hashlib.sha256(data).hexdigest()
        key = storage_key(patient_id, sha, filename)
        try:
            registry.object_storage().put_bytes(key, data, content_type=mime)
        except STORAGE_ERRORS as e:
            logger.error(f"Upload of {key} failed", exc_info=True)
            raise InfrastructureError("Document storage is unavailable.") from e

        obj = await self.repo.create(
            patient_id=patient_id,
            uploaded_by=actor.user_id,
            file_name=filename or key.rsplit("/", 1)[-1],
            file_type=mime,
            file_size=len(data),
            storage_key=key,
            sha256=sha,
            description=meta.description,
            document_date=meta.document_date,
            tags=meta.tags,
            created_by=actor.user_id,
        )
        await self.session.commit()
        logger.info(f"Document {obj.id} ({len(data)} bytes) uploaded for patient {patient_id} by {actor.user_id}")
        return obj

    async def list_for_patient(self, patient_id: uuid.UUID, query: DocumentQuery, actor: Principal) -> dict:
        self._check_patient_scope(patient_id, actor)
        offset = (query.page - 1) * query.limit
        docs = await self.repo.list_for_patient(
            patient_id, tags=query.tags, start=query.start_date, end=query.end_date,
            sort_by=query.sort_by, order=query.order, limit=query.limit, offset=offset,
        )
        total = await self.repo.count_for_patient(patient_id, tags=query.tags, start=query.start_date, end=query.end_date)
        return {
            "documents": docs,
            "total_count": total,
            "total_pages": math.ceil(total / query.limit) if total else 0,
            "current_page": query.page,
        }

    async def get(self, document_id: uuid.UUID, actor: Principal) -> MedicalDocument:
        obj = await self.repo.get(document_id)
        if not obj:
            raise NotFoundError("Medical document not found.")
        self._check_patient_scope(obj.patient_id, actor)
        return obj

    def _ensure_can_manage(self, obj: MedicalDocument, actor: Principal, action: str):
        if actor.role not in CLINIC_ROLES and obj.uploaded_by != actor.user_id:
            raise ForbiddenError(f"You are not authorized to {action} this document.")

    async def update(self, document_id: uuid.UUID, payload: DocumentUpdate, actor: Principal) -> MedicalDocument:
        obj = await self.get(document_id, actor)
        self._ensure_can_manage(obj, actor, "update")
        for k, v in payload.model_dump(exclude_unset=True).items():
            setattr(obj, k, [] if k == "tags" and v is None else v)
        obj.updated_by = actor.user_id
        await self.session.commit()
        logger.info(f"Document metadata {document_id} updated by {actor.user_id}")
        return obj

    async def delete(self, document_id: uuid.UUID, actor: Principal) -> None:
        obj = await self.get(document_id, actor)
        self._ensure_can_manage(obj, actor, "delete")
        logger.warning(f"Deleting document {document_id} ({obj.storage_key}) by {actor.user_id}")
        try:
            registry.object_storage().delete(obj.storage_key)
        except STORAGE_ERRORS:
            # metadata is still soft deleted; the orphaned object can be swept later
            logger.error(f"Storage delete failed for {obj.storage_key}", exc_info=True)
        obj.soft_delete(actor.user_id)
        await self.session.commit()
