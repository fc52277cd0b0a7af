from enum import Enum


class UserRole(str, Enum):
    ADMIN = "Admin"
    DOCTOR = "Doctor"
    STAFF = "Staff"  # nurses and front-desk staff
    PATIENT = "Patient"


# Roles allowed to act on behalf of the clinic rather than themselves.
CLINIC_ROLES = frozenset({UserRole.DOCTOR, UserRole.STAFF, UserRole.ADMIN})
BOOKING_DESK_ROLES = frozenset({UserRole.STAFF, UserRole.ADMIN})


class AppointmentStatus(str, Enum):
    REQUESTED = "Requested"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    NO_SHOW = "NoShow"


TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})
# Only these statuses hold a doctor's time.
BLOCKING_STATUSES = frozenset({AppointmentStatus.REQUESTED, AppointmentStatus.CONFIRMED})
