import uuid
import logging
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from konsuldok.core.config import settings
from konsuldok.core.constants import UserRole
from konsuldok.core.errors import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)

class Principal(BaseModel):
    """The authenticated caller. Profile ids come from token claims, not a lookup."""
    user_id: uuid.UUID
    role: UserRole
    patient_profile_id: uuid.UUID | None = None
    doctor_profile_id: uuid.UUID | None = None

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise AuthenticationError(f"Invalid token: {e}")

def _opt_uuid(v) -> uuid.UUID | None:
    return uuid.UUID(str(v)) if v else None

def principal_from_claims(data: dict) -> Principal:
    try:
        return Principal(
            user_id=uuid.UUID(str(data.get("sub") or data.get("user_id"))),
            role=UserRole(data.get("role")),
            patient_profile_id=_opt_uuid(data.get("patient_profile")),
            doctor_profile_id=_opt_uuid(data.get("doctor_profile")),
        )
    except ValueError as e:
        raise AuthenticationError(f"Invalid token claims: {e}")

async def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(http_bearer)) -> Principal:
    # local dev without a token acts as an admin
    if creds is None and settings.ENV == "local":
        return Principal(user_id=uuid.UUID(int=0), role=UserRole.ADMIN)
    if creds is None:
        raise AuthenticationError("Missing bearer token.")
    return principal_from_claims(_decode_token(creds.credentials))

def require_roles(*allowed: UserRole):
    def dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.has_role(*allowed):
            raise ForbiddenError(f"This action requires one of: {', '.join(r.value for r in allowed)}.")
        return principal
    return dep
