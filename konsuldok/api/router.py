from fastapi import APIRouter
from konsuldok.modules.users.router import router as users_router
from konsuldok.modules.patients.router import router as patients_router
from konsuldok.modules.doctors.router import router as doctors_router
from konsuldok.modules.staff.router import router as staff_router
from konsuldok.modules.appointments.router import router as appointments_router
from konsuldok.modules.medical_notes.router import router as notes_router
from konsuldok.modules.medical_documents.router import router as documents_router

api_router = APIRouter()
api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(patients_router, prefix="/patients", tags=["patients"])
api_router.include_router(doctors_router, prefix="/doctors", tags=["doctors"])
api_router.include_router(staff_router, prefix="/staff", tags=["staff"])
api_router.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
api_router.include_router(notes_router, prefix="/medical-notes", tags=["medical-notes"])
api_router.include_router(documents_router, prefix="/medical-documents", tags=["medical-documents"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
