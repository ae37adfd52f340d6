from dataclasses import dataclass
from uuid import UUID

from app.domain.enums import UserRole


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller, passed explicitly into every service call."""

    user_id: UUID
    username: str
    role: UserRole

    @property
    def is_expert(self) -> bool:
        return self.role == UserRole.EXPERT
