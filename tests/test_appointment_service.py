import uuid
from datetime import datetime, timedelta

import pytest

from konsuldok.core.constants import AppointmentStatus as S, UserRole
from konsuldok.core.errors import ForbiddenError, InvalidInputError, NotFoundError, SlotUnavailableError
from konsuldok.core.security import Principal
from konsuldok.modules.appointments.schemas import AppointmentCreate, AppointmentFilters, AppointmentUpdate
from konsuldok.modules.appointments.service import VALID_NEXT
from support import MONDAY, NOW, at


def booking(doctor_id, start, duration=30, patient_id=None, **kw):
    return AppointmentCreate(doctor_id=doctor_id, appointment_time=start, duration_minutes=duration, patient_id=patient_id, **kw)


# ---- create ----

async def test_staff_booking_is_confirmed(service, store, staff, doctor_id, patient_id):
    appt = await service.create(booking(doctor_id, at("10:00"), patient_id=patient_id), staff)
    assert appt.status == S.CONFIRMED
    assert appt.scheduled_by_staff == staff.user_id
    assert appt.created_by == staff.user_id
    assert store.locked == [doctor_id]
    assert store.commits == 1
    assert [e for e, _ in store.events] == ["APPOINTMENT_CREATED"]


async def test_patient_booking_is_requested_for_own_profile(service, patient, doctor_id, patient_id):
    appt = await service.create(booking(doctor_id, at("10:00")), patient)
    assert appt.status == S.REQUESTED
    assert appt.patient_id == patient_id
    assert appt.scheduled_by_staff is None


async def test_patient_cannot_book_for_someone_else(service, patient, other_patient, doctor_id):
    with pytest.raises(ForbiddenError):
        await service.create(booking(doctor_id, at("10:00"), patient_id=other_patient.patient_profile_id), patient)


async def test_staff_must_name_the_patient(service, staff, doctor_id):
    with pytest.raises(InvalidInputError):
        await service.create(booking(doctor_id, at("10:00")), staff)


async def test_overlapping_booking_is_rejected_and_touching_one_accepted(service, store, staff, doctor_id, patient_id):
    store.add_appointment(doctor_id, at("10:00"), 30, status=S.CONFIRMED)

    with pytest.raises(SlotUnavailableError) as exc:
        await service.create(booking(doctor_id, at("10:15"), patient_id=patient_id), staff)
    assert exc.value.code == "SLOT_TAKEN"
    assert store.rollbacks == 1

    appt = await service.create(booking(doctor_id, at("10:30"), patient_id=patient_id), staff)
    assert appt.appointment_time == at("10:30")


async def test_out_of_hours_differs_from_unknown_doctor(service, staff, doctor_id, patient_id):
    with pytest.raises(SlotUnavailableError) as exc:
        await service.create(booking(doctor_id, at("08:00"), patient_id=patient_id), staff)
    assert exc.value.code == "OUTSIDE_SCHEDULE"

    with pytest.raises(NotFoundError):
        await service.create(booking(uuid.uuid4(), at("10:00"), patient_id=patient_id), staff)


async def test_unknown_patient_is_not_found(service, staff, doctor_id):
    with pytest.raises(NotFoundError):
        await service.create(booking(doctor_id, at("10:00"), patient_id=uuid.uuid4()), staff)


@pytest.mark.parametrize("start", [NOW - timedelta(days=1), NOW])
async def test_past_time_is_invalid(service, staff, doctor_id, patient_id, start):
    with pytest.raises(InvalidInputError):
        await service.create(booking(doctor_id, start, patient_id=patient_id), staff)


async def test_short_duration_is_invalid(service, staff, doctor_id, patient_id):
    with pytest.raises(InvalidInputError):
        await service.create(booking(doctor_id, at("10:00"), duration=4, patient_id=patient_id), staff)


async def test_naive_time_is_clinic_local(service, staff, doctor_id, patient_id):
    appt = await service.create(booking(doctor_id, datetime(2030, 1, 7, 9, 0), patient_id=patient_id), staff)
    assert appt.appointment_time == at("09:00")


# ---- reschedule ----

async def test_reschedule_overlapping_own_slot_succeeds(service, store, staff, doctor_id, patient_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, patient_id=patient_id)
    moved = await service.reschedule(appt.id, at("10:15"), staff)
    assert moved.appointment_time == at("10:15")
    assert store.events[-1][0] == "APPOINTMENT_UPDATED"


async def test_reschedule_onto_another_booking_fails(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("09:00"), 30)
    store.add_appointment(doctor_id, at("10:00"), 30)
    with pytest.raises(SlotUnavailableError):
        await service.reschedule(appt.id, at("10:15"), staff)
    assert appt.appointment_time == at("09:00")


async def test_duration_change_is_rechecked(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("11:30"), 30)
    with pytest.raises(SlotUnavailableError) as exc:
        await service.update(appt.id, AppointmentUpdate(duration_minutes=45), staff)
    assert exc.value.code == "OUTSIDE_SCHEDULE"
    assert appt.duration_minutes == 30


async def test_reschedule_to_the_past_is_invalid(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30)
    with pytest.raises(InvalidInputError):
        await service.reschedule(appt.id, NOW - timedelta(hours=1), staff)


async def test_duration_change_of_past_appointment_is_invalid(service, store, staff, doctor_id):
    yesterday = (NOW - timedelta(days=1)).date()
    appt = store.add_appointment(doctor_id, at("10:00", yesterday), 30)
    with pytest.raises(InvalidInputError):
        await service.update(appt.id, AppointmentUpdate(duration_minutes=60), staff)
    assert appt.duration_minutes == 30
    assert store.commits == 0


# ---- status transitions ----

def test_transition_table():
    assert VALID_NEXT[S.REQUESTED] == {S.CONFIRMED, S.CANCELLED}
    assert VALID_NEXT[S.CONFIRMED] == {S.COMPLETED, S.CANCELLED, S.NO_SHOW}
    assert not VALID_NEXT[S.CANCELLED] and not VALID_NEXT[S.COMPLETED] and not VALID_NEXT[S.NO_SHOW]


async def test_doctor_confirms_then_completes_with_notes(service, store, doctor, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.REQUESTED)
    await service.update(appt.id, AppointmentUpdate(status=S.CONFIRMED, completion_notes="ignored"), doctor)
    assert appt.status == S.CONFIRMED
    assert appt.completion_notes is None

    await service.update(appt.id, AppointmentUpdate(status=S.COMPLETED, completion_notes="Follow up in 2 weeks"), doctor)
    assert appt.status == S.COMPLETED
    assert appt.completion_notes == "Follow up in 2 weeks"


async def test_patient_cannot_confirm(service, store, patient, doctor_id, patient_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.REQUESTED, patient_id=patient_id)
    with pytest.raises(ForbiddenError):
        await service.update(appt.id, AppointmentUpdate(status=S.CONFIRMED), patient)


async def test_illegal_transition_is_invalid(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.REQUESTED)
    with pytest.raises(InvalidInputError):
        await service.update(appt.id, AppointmentUpdate(status=S.COMPLETED), staff)
    with pytest.raises(InvalidInputError):
        await service.update(appt.id, AppointmentUpdate(status=S.NO_SHOW), staff)


async def test_no_show_only_from_confirmed(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.CONFIRMED)
    await service.update(appt.id, AppointmentUpdate(status=S.NO_SHOW), staff)
    assert appt.status == S.NO_SHOW
    with pytest.raises(InvalidInputError):
        await service.update(appt.id, AppointmentUpdate(status=S.CONFIRMED), staff)


async def test_cancel_via_update_needs_reason(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30)
    with pytest.raises(InvalidInputError):
        await service.update(appt.id, AppointmentUpdate(status=S.CANCELLED), staff)
    await service.update(appt.id, AppointmentUpdate(status=S.CANCELLED, cancellation_reason="Doctor ill"), staff)
    assert appt.cancellation_reason == "Doctor ill"


@pytest.mark.parametrize("status", [S.CANCELLED, S.COMPLETED])
async def test_terminal_appointments_are_immutable(service, store, staff, doctor_id, status):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=status)
    with pytest.raises(InvalidInputError):
        await service.reschedule(appt.id, at("11:00"), staff)
    with pytest.raises(InvalidInputError):
        await service.update(appt.id, AppointmentUpdate(reason_for_visit="changed"), staff)


async def test_empty_update_is_a_no_op(service, store, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30)
    assert await service.update(appt.id, AppointmentUpdate(), staff) is appt
    assert store.commits == 0 and store.events == []


# ---- cancel ----

async def test_patient_cancels_own_appointment(service, store, patient, doctor_id, patient_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.REQUESTED, patient_id=patient_id)
    cancelled = await service.cancel(appt.id, "  Feeling better  ", patient)
    assert cancelled.status == S.CANCELLED
    assert cancelled.cancellation_reason == "Feeling better"
    assert store.events[-1][0] == "APPOINTMENT_CANCELLED"


async def test_patient_cannot_cancel_another_patients_appointment(service, store, other_patient, doctor_id, patient_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, patient_id=patient_id)
    with pytest.raises(ForbiddenError):
        await service.cancel(appt.id, "not mine", other_patient)


async def test_doctor_cancels_only_own_appointments(service, store, doctor, doctor_id):
    own = store.add_appointment(doctor_id, at("10:00"), 30)
    await service.cancel(own.id, "Emergency surgery", doctor)

    other_doctor = store.add_doctor([])
    foreign = store.add_appointment(other_doctor, at("10:00"), 30)
    with pytest.raises(ForbiddenError):
        await service.cancel(foreign.id, "Emergency surgery", doctor)


@pytest.mark.parametrize("status", [S.CANCELLED, S.COMPLETED])
async def test_cannot_cancel_terminal_appointment(service, store, admin, doctor_id, status):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=status)
    with pytest.raises(InvalidInputError):
        await service.cancel(appt.id, "again", admin)


async def test_clinic_can_cancel_no_show(service, store, admin, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.NO_SHOW)
    cancelled = await service.cancel(appt.id, "patient called back", admin)
    assert cancelled.status == S.CANCELLED
    assert cancelled.cancellation_reason == "patient called back"


async def test_patient_cannot_cancel_no_show(service, store, patient, doctor_id, patient_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30, status=S.NO_SHOW, patient_id=patient_id)
    with pytest.raises(InvalidInputError):
        await service.cancel(appt.id, "missed it", patient)
    assert appt.status == S.NO_SHOW


async def test_cancel_requires_reason(service, store, admin, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30)
    with pytest.raises(InvalidInputError):
        await service.cancel(appt.id, "   ", admin)


async def test_cancelled_slot_can_be_booked_again(service, store, staff, doctor_id, patient_id):
    appt = await service.create(booking(doctor_id, at("10:00"), patient_id=patient_id), staff)
    await service.cancel(appt.id, "Rescheduled by phone", staff)
    again = await service.create(booking(doctor_id, at("10:00"), patient_id=patient_id), staff)
    assert again.status == S.CONFIRMED


# ---- read / delete ----

async def test_get_missing_appointment(service, admin):
    with pytest.raises(NotFoundError):
        await service.get(uuid.uuid4(), admin)


async def test_patient_sees_only_own_appointments(service, store, patient, other_patient, doctor_id, patient_id):
    mine = store.add_appointment(doctor_id, at("10:00"), 30, patient_id=patient_id)
    store.add_appointment(doctor_id, at("11:00"), 30, patient_id=other_patient.patient_profile_id)

    assert await service.get(mine.id, patient) is mine
    with pytest.raises(ForbiddenError):
        await service.get(mine.id, other_patient)
    listed = await service.list_for(patient, AppointmentFilters(patient_id=other_patient.patient_profile_id))
    assert [a.id for a in listed] == [mine.id]


async def test_list_filters_by_day_range(service, store, admin, doctor_id):
    monday = store.add_appointment(doctor_id, at("10:00"), 30)
    store.add_appointment(doctor_id, at("10:00", MONDAY + timedelta(days=7)), 30)
    listed = await service.list_for(admin, AppointmentFilters(start_date=MONDAY, end_date=MONDAY))
    assert [a.id for a in listed] == [monday.id]


async def test_doctor_without_profile_cannot_list(service):
    with pytest.raises(InvalidInputError):
        await service.list_for(Principal(user_id=uuid.uuid4(), role=UserRole.DOCTOR))


async def test_delete_is_admin_only_soft_delete(service, store, admin, staff, doctor_id):
    appt = store.add_appointment(doctor_id, at("10:00"), 30)
    with pytest.raises(ForbiddenError):
        await service.delete(appt.id, staff)
    await service.delete(appt.id, admin)
    assert appt.deleted_at == NOW
    with pytest.raises(NotFoundError):
        await service.get(appt.id, admin)
