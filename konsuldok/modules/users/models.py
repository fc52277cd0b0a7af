from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Enum as SAEnum
from konsuldok.core.base import Base, TrackedMixin
from konsuldok.core.constants import UserRole

class User(Base, TrackedMixin):
    # Credentials and sessions live with the identity provider; this is the account record.
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[UserRole] = mapped_column(SAEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]), default=UserRole.PATIENT, index=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
