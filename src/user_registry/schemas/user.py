"""
Request / response bodies for the users API.

Format checks (lengths, username characters, email shape) live here and fail with
400 before the service is called. Business rules (full name characters) live in
the service layer.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9]+$"
EMAIL_MAX_LENGTH = 100


def check_email_length(value: str | None) -> str | None:
    if value is not None and len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"must be at most {EMAIL_MAX_LENGTH} characters")
    return value


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    full_name: str = Field(min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def email_length(cls, v: str | None) -> str | None:
        return check_email_length(v)


class UserUpdate(BaseModel):
    """
    Sparse update body. Omitted fields and fields sent as `null` are both left unchanged.
    """
    model_config = ConfigDict(extra="forbid")

    username: str | None = Field(default=None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr | None = None
    full_name: str | None = Field(default=None, min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def email_length(cls, v: str | None) -> str | None:
        return check_email_length(v)

    def to_changes(self) -> dict[str, Any]:
        """Only the fields that carry a value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    full_name: str
    created_at: datetime
    updated_at: datetime
