import uuid
from datetime import date
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, computed_field
from konsuldok.modules.patients.models import PatientProfile

BloodType = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
Gender = Literal["Male", "Female", "Other", "Prefer Not To Say"]

class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    country: str = "Indonesia"

class EmergencyContact(BaseModel):
    name: str | None = None
    relationship: str | None = None
    phone: str | None = None

class PatientCreate(BaseModel):
    user_id: uuid.UUID
    date_of_birth: date | None = None
    gender: Gender | None = None
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    blood_type: BloodType | None = None
    allergies: list[str] = Field(default_factory=list)
    medical_history_summary: str | None = None
    insurance_provider: str | None = None
    insurance_policy_number: str | None = None

class PatientUpdate(BaseModel):
    date_of_birth: date | None = None
    gender: Gender | None = None
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    blood_type: BloodType | None = None
    allergies: list[str] | None = None
    medical_history_summary: str | None = None
    insurance_provider: str | None = None
    insurance_policy_number: str | None = None

class PatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    date_of_birth: date | None
    gender: str | None
    address: dict | None
    emergency_contact: dict | None
    blood_type: str | None
    allergies: list[str]
    medical_history_summary: str | None
    insurance_provider: str | None
    insurance_policy_number: str | None

    @computed_field
    @property
    def age(self) -> int | None:
        if not self.date_of_birth:
            return None
        return PatientProfile(date_of_birth=self.date_of_birth).age_on(date.today())
