import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from konsuldok.core.constants import UserRole
from konsuldok.modules.doctors.schemas import DoctorOut
from konsuldok.modules.patients.schemas import PatientOut
from konsuldok.modules.staff.schemas import StaffOut

# Indonesian mobile numbers: +62 / 62 / 0 followed by 8xx...
PHONE_PATTERN = r"^(\+62|62|0)8[1-9][0-9]{6,10}$"

UserSortField = Literal["created_at", "email", "first_name", "last_name"]

class UserCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)
    role: UserRole = UserRole.PATIENT

class UserUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)
    role: UserRole | None = None
    is_active: bool | None = None

class UserSelfUpdate(BaseModel):
    """Fields an account holder may change on their own record.

    Anything else in the body (email, role, password, is_active) is dropped.
    """
    model_config = ConfigDict(extra="ignore")

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    phone_number: str | None = Field(default=None, pattern=PHONE_PATTERN)

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone_number: str | None
    role: UserRole
    is_active: bool
    created_at: datetime | None = None

class UserDetailOut(UserOut):
    patient_profile: PatientOut | None = None
    doctor_profile: DoctorOut | None = None
    staff_profile: StaffOut | None = None

class UserPage(BaseModel):
    users: list[UserOut]
    total_count: int
    total_pages: int
    current_page: int
