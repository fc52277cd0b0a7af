import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from konsuldok.core.constants import UserRole
from konsuldok.core.errors import AppError, ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.doctors.schemas import DoctorCreate, DoctorUpdate
from konsuldok.modules.doctors.service import DoctorService
from konsuldok.modules.medical_documents.schemas import DocumentMeta, DocumentQuery, DocumentUpdate
from konsuldok.modules.medical_documents.service import MedicalDocumentService
from konsuldok.modules.medical_notes.schemas import NoteCreate, NoteQuery, NoteUpdate
from konsuldok.modules.medical_notes.service import MedicalNoteService
from konsuldok.modules.patients.schemas import PatientCreate
from konsuldok.modules.patients.service import PatientService
from konsuldok.modules.users.schemas import UserCreate
from konsuldok.modules.users.service import UserService
from konsuldok.platform.provider_registry import ProviderRegistry
from support import MONDAY

ADMIN = Principal(user_id=uuid.uuid4(), role=UserRole.ADMIN)

WEEKDAY_MORNINGS = [{"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"}]


class MemoryStorage:
    def __init__(self, fail_delete: bool = False):
        self.objects: dict[str, bytes] = {}
        self.fail_delete = fail_delete

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        self.objects[key] = data

    def presign_download(self, key: str, expires_seconds: int = 900, filename: str | None = None) -> str:
        return f"memory://{key}?ttl={expires_seconds}&name={filename}"

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise OSError("disk gone")
        self.objects.pop(key, None)


@pytest.fixture
def storage():
    mem = MemoryStorage()
    ProviderRegistry.override(object_storage=mem)
    yield mem
    ProviderRegistry.override()


async def _user(session, email: str, role: UserRole, first: str = "Budi", last: str = "Santoso"):
    payload = UserCreate(email=email, first_name=first, last_name=last, role=role)
    return await UserService(session).create(payload, ADMIN)


@pytest_asyncio.fixture
async def people(session):
    doc_user = await _user(session, "andi.wijaya@konsuldok.id", UserRole.DOCTOR, "Andi", "Wijaya")
    pat_user = await _user(session, "dewi.lestari@mail.co.id", UserRole.PATIENT, "Dewi", "Lestari")
    doctor = await DoctorService(session).create(
        DoctorCreate(user_id=doc_user.id, specialty="Penyakit Dalam", license_number="SIP-0001", weekly_schedule=WEEKDAY_MORNINGS),
        ADMIN,
    )
    patient = await PatientService(session).create(PatientCreate(user_id=pat_user.id), ADMIN)
    return {
        "doctor": doctor,
        "patient": patient,
        "as_doctor": Principal(user_id=doc_user.id, role=UserRole.DOCTOR, doctor_profile_id=doctor.id),
        "as_patient": Principal(user_id=pat_user.id, role=UserRole.PATIENT, patient_profile_id=patient.id),
    }


async def test_duplicate_email_is_case_insensitive(session):
    await _user(session, "rina@konsuldok.id", UserRole.STAFF)
    with pytest.raises(ConflictError) as exc:
        await _user(session, "Rina@Konsuldok.id", UserRole.STAFF)
    assert exc.value.code == "DUPLICATE_EMAIL"


async def test_patient_profile_requires_patient_account(session, people):
    staff_user = await _user(session, "staff@konsuldok.id", UserRole.STAFF)
    svc = PatientService(session)
    with pytest.raises(ConflictError) as exc:
        await svc.create(PatientCreate(user_id=staff_user.id), ADMIN)
    assert exc.value.code == "ROLE_MISMATCH"
    with pytest.raises(ConflictError) as exc:
        await svc.create(PatientCreate(user_id=people["patient"].user_id), ADMIN)
    assert exc.value.code == "PROFILE_EXISTS"


async def test_patient_cannot_create_profile_for_someone_else(session, people):
    with pytest.raises(ForbiddenError):
        await PatientService(session).create(PatientCreate(user_id=uuid.uuid4()), people["as_patient"])


async def test_doctor_license_must_be_unique(session, people):
    other = await _user(session, "sari@konsuldok.id", UserRole.DOCTOR, "Sari", "Putri")
    with pytest.raises(ConflictError) as exc:
        await DoctorService(session).create(
            DoctorCreate(user_id=other.id, specialty="Anak", license_number="SIP-0001"), ADMIN
        )
    assert exc.value.code == "DUPLICATE_LICENSE"


async def test_doctor_profile_for_missing_user(session):
    with pytest.raises(NotFoundError):
        await DoctorService(session).create(
            DoctorCreate(user_id=uuid.uuid4(), specialty="Penyakit Dalam", license_number="SIP-9999"), ADMIN
        )


async def test_schedule_is_stored_in_wire_shape(people):
    assert people["doctor"].weekly_schedule == WEEKDAY_MORNINGS


async def test_schedule_is_stored_ordered_by_day_and_start(session, people):
    shuffled = [
        {"dayOfWeek": 3, "startTime": "13:00", "endTime": "16:00"},
        {"dayOfWeek": 1, "startTime": "13:00", "endTime": "16:00"},
        {"dayOfWeek": 1, "startTime": "08:00", "endTime": "12:00"},
    ]
    updated = await DoctorService(session).update(people["doctor"].id, DoctorUpdate(weekly_schedule=shuffled), ADMIN)
    assert updated.weekly_schedule == [shuffled[2], shuffled[1], shuffled[0]]


async def test_list_for_booking_filters_by_specialty_and_name(session, people):
    svc = DoctorService(session)
    found = await svc.list_for_booking(search="wija")
    assert found["total_count"] == 1
    assert found["doctors"][0]["full_name"] == "Andi Wijaya"
    assert (await svc.list_for_booking(specialty="Gigi Umum"))["total_count"] == 0


async def test_only_owner_or_admin_updates_doctor(session, people):
    svc = DoctorService(session)
    stranger = Principal(user_id=uuid.uuid4(), role=UserRole.DOCTOR, doctor_profile_id=uuid.uuid4())
    with pytest.raises(ForbiddenError):
        await svc.update(people["doctor"].id, DoctorUpdate(biography="x"), stranger)

    new_schedule = [{"dayOfWeek": 1, "startTime": "13:00", "endTime": "15:00"}]
    updated = await svc.update(people["doctor"].id, DoctorUpdate(weekly_schedule=new_schedule), people["as_doctor"])
    assert updated.weekly_schedule == new_schedule


async def test_available_slots_follow_weekly_schedule(session, people):
    result = await DoctorService(session).available_slots(people["doctor"].id, MONDAY.isoformat(), 60)
    assert result["date"] == MONDAY.isoformat()
    assert len(result["slots"]) == 9  # 09:00 through 11:00 in 15 minute steps


async def test_available_slots_rejects_bad_date(session, people):
    with pytest.raises(InvalidInputError):
        await DoctorService(session).available_slots(people["doctor"].id, "07-01-2030", 30)


async def test_note_authoring_rules(session, people):
    svc = MedicalNoteService(session)
    payload = NoteCreate(patient_id=people["patient"].id, note_content="Demam 3 hari", tags=["demam"])
    with pytest.raises(ForbiddenError):
        await svc.create(payload, people["as_patient"])

    note = await svc.create(payload, people["as_doctor"])
    other_doctor = Principal(user_id=uuid.uuid4(), role=UserRole.DOCTOR)
    with pytest.raises(ForbiddenError):
        await svc.update(note.id, NoteUpdate(note_content="edit"), other_doctor)

    edited = await svc.update(note.id, NoteUpdate(note_content="Demam 4 hari"), ADMIN)
    assert edited.note_content == "Demam 4 hari"


async def test_note_for_unknown_appointment(session, people):
    payload = NoteCreate(patient_id=people["patient"].id, note_content="Kontrol", appointment_id=uuid.uuid4())
    with pytest.raises(NotFoundError):
        await MedicalNoteService(session).create(payload, people["as_doctor"])


async def test_patient_sees_only_own_notes(session, people):
    svc = MedicalNoteService(session)
    for day in (1, 2, 3):
        await svc.create(
            NoteCreate(
                patient_id=people["patient"].id,
                note_content=f"visit {day}",
                consultation_date=datetime(2030, 1, day, 3, tzinfo=timezone.utc),
            ),
            people["as_doctor"],
        )
    page = await svc.list_for_patient(people["patient"].id, NoteQuery(limit=2), people["as_patient"])
    assert page["total_count"] == 3
    assert page["total_pages"] == 2
    assert [n.note_content for n in page["notes"]] == ["visit 3", "visit 2"]

    stranger = Principal(user_id=uuid.uuid4(), role=UserRole.PATIENT, patient_profile_id=uuid.uuid4())
    with pytest.raises(ForbiddenError):
        await svc.list_for_patient(people["patient"].id, NoteQuery(), stranger)


async def test_document_upload_validates_type_and_size(session, people, storage):
    svc = MedicalDocumentService(session)
    pid = people["patient"].id
    with pytest.raises(InvalidInputError):
        await svc.upload(pid, filename="x.pdf", content_type="application/pdf", data=b"", meta=DocumentMeta(), actor=ADMIN)
    with pytest.raises(InvalidInputError):
        await svc.upload(pid, filename="x.exe", content_type="application/x-msdownload", data=b"MZ", meta=DocumentMeta(), actor=ADMIN)
    with pytest.raises(AppError) as exc:
        await svc.upload(pid, filename="big.pdf", content_type="application/pdf", data=b"0" * (5 * 1024 * 1024 + 1), meta=DocumentMeta(), actor=ADMIN)
    assert exc.value.status_code == 413
    assert storage.objects == {}


async def test_document_lifecycle(session, people, storage):
    svc = MedicalDocumentService(session)
    pid = people["patient"].id
    doc = await svc.upload(
        pid, filename="Lab.PDF", content_type="application/pdf", data=b"%PDF-1.7",
        meta=DocumentMeta(tags=["lab", "darah"]), actor=people["as_patient"],
    )
    assert doc.storage_key.startswith(f"documents/{pid}/") and doc.storage_key.endswith(".pdf")
    assert storage.objects[doc.storage_key] == b"%PDF-1.7"
    assert svc.download_url(doc).startswith("memory://documents/")

    page = await svc.list_for_patient(pid, DocumentQuery(tags=["lab"]), people["as_doctor"])
    assert page["total_count"] == 1
    assert (await svc.list_for_patient(pid, DocumentQuery(tags=["rontgen"]), ADMIN))["total_count"] == 0

    cleared = await svc.update(doc.id, DocumentUpdate(tags=None), people["as_patient"])
    assert cleared.tags == []

    await svc.delete(doc.id, people["as_patient"])
    assert storage.objects == {}
    with pytest.raises(NotFoundError):
        await svc.get(doc.id, ADMIN)


async def test_document_delete_survives_storage_failure(session, people, storage):
    svc = MedicalDocumentService(session)
    doc = await svc.upload(
        people["patient"].id, filename="scan.png", content_type="image/png", data=b"\x89PNG",
        meta=DocumentMeta(), actor=ADMIN,
    )
    storage.fail_delete = True
    await svc.delete(doc.id, ADMIN)
    with pytest.raises(NotFoundError):
        await svc.get(doc.id, ADMIN)
