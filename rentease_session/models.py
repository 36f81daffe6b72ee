"""Session data models."""
from typing import Any, Optional
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field, field_validator, model_validator
from datamodel import BaseModel as DataModel

from .conf import SESSION_TTL


class UserProfile(DataModel):
    """UserProfile.

    Typed mirror of the ``userDetail`` object returned by the backend on
    login. Field names follow the backend's wire names.
    """
    userId: str
    fullName: Optional[str] = None
    emailAddress: Optional[str] = None
    contactNo: Optional[str] = None
    nric: Optional[str] = None
    dateOfBirth: Optional[str] = None
    statusCode: Optional[str] = None
    roleCode: Optional[str] = None


class SessionRecord(BaseModel):
    """An authenticated user's session.

    ``user`` is opaque: the store never looks inside it.
    """

    user: Any
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = {
        "arbitrary_types_allowed": True,
        "populate_by_name": True,
        "frozen": True,
    }

    @field_validator("user")
    @classmethod
    def validate_user(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("session user cannot be null")
        return v

    @field_validator("created_at", "expires_at")
    @classmethod
    def validate_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("session timestamps must be timezone-aware")
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "SessionRecord":
        """expiresAt must come strictly after createdAt."""
        if self.expires_at <= self.created_at:
            raise ValueError(
                f"expiresAt ({self.expires_at.isoformat()}) must be after "
                f"createdAt ({self.created_at.isoformat()})"
            )
        return self

    @classmethod
    def create(
        cls,
        user: Any,
        now: Optional[datetime] = None,
        ttl: int = SESSION_TTL,
    ) -> "SessionRecord":
        """Build a fresh record valid for ``ttl`` seconds from ``now``."""
        now = now or datetime.now(timezone.utc)
        return cls(user=user, created_at=now, expires_at=now + timedelta(seconds=ttl))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at

    def with_user(self, user: Any) -> "SessionRecord":
        """Same expiry window, different user."""
        return SessionRecord(
            user=user,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )
