"""
Identity models for the acting principal.

The issue engine never issues credentials or sessions; an upstream identity
collaborator supplies (user_id, role, city_district) and the engine only
reads them.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from app.utils.city_normalizer import same_district


class UserRole(str, Enum):
    """Roles recognised by the issue lifecycle."""
    SUPER_ADMIN = "SUPER_ADMIN"
    CITY_ADMIN = "CITY_ADMIN"
    CITIZEN = "CITIZEN"


class Principal(BaseModel):
    """The user on whose behalf an operation runs."""
    id: str = Field(..., min_length=1, description="User identifier")
    role: UserRole = Field(default=UserRole.CITIZEN, description="User role")
    city_district: Optional[str] = Field(None, description="District the user belongs to / administers")
    name: Optional[str] = Field(None, max_length=100, description="Display name")

    class Config:
        frozen = True

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.SUPER_ADMIN, UserRole.CITY_ADMIN)

    def can_administer(self, city_district: Optional[str]) -> bool:
        """
        Whether this principal may change the status of issues in a district.

        Super admins act on every district; city admins only on their own.
        """
        if self.role == UserRole.SUPER_ADMIN:
            return True
        if self.role == UserRole.CITY_ADMIN:
            return same_district(self.city_district, city_district)
        return False
