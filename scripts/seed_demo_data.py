import asyncio
import os
import sys
from datetime import date
from sqlalchemy.future import select

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from konsuldok.core.constants import UserRole
from konsuldok.core.db import SessionLocal, init_models
from konsuldok.modules.users.models import User
from konsuldok.modules.doctors.models import DoctorProfile
from konsuldok.modules.patients.models import PatientProfile
from konsuldok.modules.staff.models import StaffProfile

DOCTORS = [
    ("Andi", "Wijaya", "Penyakit Dalam", "STR-3171-0001"),
    ("Siti", "Rahmawati", "Anak", "STR-3171-0002"),
    ("Budi", "Santoso", "Jantung & Pembuluh Darah", "STR-3171-0003"),
]
PATIENTS = [
    ("Dewi", "Lestari", date(1990, 4, 12), "Female"),
    ("Rizky", "Pratama", date(1985, 11, 3), "Male"),
]

def weekly_schedule() -> list[dict]:
    """Monday to Friday, morning and afternoon blocks with a lunch break."""
    blocks = []
    for day in range(1, 6):
        blocks.append({"dayOfWeek": day, "startTime": "08:00", "endTime": "12:00"})
        blocks.append({"dayOfWeek": day, "startTime": "13:00", "endTime": "16:00"})
    return blocks

async def get_or_create_user(db, email: str, first: str, last: str, role: UserRole) -> User:
    res = await db.execute(select(User).where(User.email == email))
    user = res.scalars().first()
    if user:
        print(f"  - User {email} already exists. Skipping.")
        return user
    user = User(email=email, first_name=first, last_name=last, role=role)
    db.add(user)
    await db.flush()
    print(f"  - Created {role.value} user {email} ({user.id})")
    return user

async def main():
    print("Starting demo data seed...")
    await init_models()

    async with SessionLocal() as db:
        admin = await get_or_create_user(db, "admin@konsuldok.id", "Admin", "Klinik", UserRole.ADMIN)
        staff = await get_or_create_user(db, "staff@konsuldok.id", "Rina", "Kusuma", UserRole.STAFF)
        res = await db.execute(select(StaffProfile).where(StaffProfile.user_id == staff.id))
        if not res.scalars().first():
            db.add(StaffProfile(
                user_id=staff.id,
                job_title="Perawat",  # nurse
                department="Poli Umum",
                employee_id="EMP-0001",
                hire_date=date(2021, 3, 1),
                certifications=["BTCLS"],
                created_by=admin.id,
            ))
            print("    ...staff profile for Rina Kusuma")

        for first, last, specialty, license_number in DOCTORS:
            user = await get_or_create_user(db, f"{first.lower()}.{last.lower()}@konsuldok.id", first, last, UserRole.DOCTOR)
            res = await db.execute(select(DoctorProfile).where(DoctorProfile.user_id == user.id))
            if res.scalars().first():
                continue
            db.add(DoctorProfile(
                user_id=user.id,
                specialty=specialty,
                license_number=license_number,
                years_of_experience=8,
                weekly_schedule=weekly_schedule(),
                created_by=admin.id,
            ))
            print(f"    ...doctor profile for {first} {last} ({specialty})")

        for first, last, dob, gender in PATIENTS:
            user = await get_or_create_user(db, f"{first.lower()}.{last.lower()}@mail.co.id", first, last, UserRole.PATIENT)
            res = await db.execute(select(PatientProfile).where(PatientProfile.user_id == user.id))
            if res.scalars().first():
                continue
            db.add(PatientProfile(
                user_id=user.id,
                date_of_birth=dob,
                gender=gender,
                address={"city": "Jakarta", "country": "Indonesia"},
                created_by=admin.id,
            ))
            print(f"    ...patient profile for {first} {last}")

        print("\nCommitting all changes to the database...")
        await db.commit()
        print("Seed complete!")

if __name__ == "__main__":
    asyncio.run(main())
