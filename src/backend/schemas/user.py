"""
User-related Pydantic schemas.
"""

from typing import List, Optional

from pydantic import Field

from core.config import settings
from schemas.base import ApiModel


class CurrentUser(ApiModel):
    """The authenticated caller, with roles loaded from the database."""

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    roles: List[str] = Field(default_factory=list)

    def has_any_role(self, *roles: str) -> bool:
        """Capability check used by every role-gated route."""
        return any(role in self.roles for role in roles)

    @property
    def is_admin(self) -> bool:
        return self.has_any_role(*settings.admin_roles_list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UserSummary(ApiModel):
    id: str
    email: str
    full_name: Optional[str] = None
