"""User profile schemas."""

from typing import Optional

from pydantic import EmailStr, Field

from ._strict_base import StrictRequestModel
from .base import StandardizedModel


class UserProfileUpdate(StrictRequestModel):
    """Partial update; omitted or blank fields keep their current value."""

    full_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)


class UserResponse(StandardizedModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool
