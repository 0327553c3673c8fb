"""CallerContext — the explicit identity passed into every core operation."""

from dataclasses import dataclass

from src.fm_common.enums import UserRole


@dataclass(frozen=True)
class CallerContext:
    user_id: str
    role: UserRole
    org_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN
