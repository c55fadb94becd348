"""
Request identity helpers.

Authentication happens upstream (gateway / session layer). It forwards the
acting user as headers, which are turned into a Principal here. Missing
identity yields None and the engine answers Unauthorized.
"""

import logging
from typing import Optional

from fastapi import Header

from app.core.errors import ValidationError
from app.models.user import Principal, UserRole

logger = logging.getLogger(__name__)


def get_current_principal(
    user_id: Optional[str] = Header(None, alias="X-User-ID", description="Acting user ID"),
    role: Optional[str] = Header(None, alias="X-User-Role", description="SUPER_ADMIN, CITY_ADMIN or CITIZEN"),
    city: Optional[str] = Header(None, alias="X-User-City", description="District of the acting user"),
    name: Optional[str] = Header(None, alias="X-User-Name", description="Display name"),
) -> Optional[Principal]:
    """
    Build the acting Principal from identity headers.

    Returns:
        Principal, or None when no X-User-ID is supplied

    Raises:
        ValidationError: X-User-Role is not a known role
    """
    if not user_id or not user_id.strip():
        return None

    try:
        user_role = UserRole((role or UserRole.CITIZEN.value).strip().upper())
    except ValueError:
        logger.warning(f"Rejected unknown role header: {role!r}")
        raise ValidationError(f"Unknown role: {role}")

    return Principal(id=user_id.strip(), role=user_role, city_district=city, name=name)
