"""Pydantic models for API responses.

None of these models carry the password hash or the one-time
activation/reset keys.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from domain.model.user import User


class PublicUserResponse(BaseModel):
    """Public view of an activated user."""
    id: str
    login: str

    @classmethod
    def from_domain(cls, user: User) -> "PublicUserResponse":
        return cls(id=user.id, login=user.login)


class AdminUserResponse(BaseModel):
    """Full profile for user management screens."""
    id: str
    login: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    lang_key: str
    image_url: Optional[str] = None
    activated: bool
    created_by: str
    created_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    last_modified_date: Optional[datetime] = None
    authorities: Optional[list[str]] = Field(None, description="Role names; omitted when not loaded")

    @classmethod
    def from_domain(cls, user: User) -> "AdminUserResponse":
        return cls(
            id=user.id,
            login=user.login,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            lang_key=user.lang_key,
            image_url=user.image_url,
            activated=user.activated,
            created_by=user.created_by,
            created_date=user.created_date,
            last_modified_by=user.last_modified_by,
            last_modified_date=user.last_modified_date,
            authorities=sorted(user.authorities) if user.authorities is not None else None,
        )


class CurrentUser(BaseModel):
    """Authenticated caller resolved from a bearer token."""
    id: str
    login: str
    authorities: list[str] = Field(default_factory=list)
