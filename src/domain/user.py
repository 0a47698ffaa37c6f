"""User domain models and enums."""

import re
from enum import StrEnum

from pydantic import Field, field_validator

from src.core.config import constants
from src.domain.base import DomainModel


class UserRole(StrEnum):
    """User role in the family."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


def validate_display_name(v: str) -> str:
    """Validate name is usable - allows Unicode letters, digits, spaces, hyphens, apostrophes."""
    v = v.strip()

    if not v:
        raise ValueError("Name cannot be empty")

    if len(v) > constants.MAX_NAME_LENGTH:
        raise ValueError(f"Name too long (max {constants.MAX_NAME_LENGTH} characters)")

    if not re.match(r"^[\w\s'-]+$", v, re.UNICODE):
        raise ValueError("Name can only contain letters, digits, spaces, hyphens, and apostrophes")

    return v


class User(DomainModel):
    """User data transfer object. The credential never leaves the accounts service."""

    id: str = Field(..., description="Unique user ID")
    name: str = Field(..., description="Display name of the user")
    role: UserRole = Field(default=UserRole.MEMBER, description="User role in the family")
    score: int = Field(default=0, ge=0, description="Cumulative points earned")
    level: int = Field(default=1, ge=1, description="Level derived from score")
    family_id: str | None = Field(default=None, description="Family the user belongs to, once onboarded")
    avatar: str = Field(default="", description="Avatar image URL")
    created_at: int = Field(default=0, description="Account creation time (epoch ms)")

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is usable."""
        return validate_display_name(v)

    @property
    def is_admin(self) -> bool:
        """Whether the user holds the ADMIN role."""
        return self.role == UserRole.ADMIN
