"""
Account Models

The local user table is a mock identity provider: it exists so each
person on a shared machine gets their own expense list. It is not a
security boundary.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserAccount(BaseModel):
    """A registered user in the local user table."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    username: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Display name, also the key of the user's expense list"
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=254,
    )
    password_hash: str = Field(..., alias="passwordHash")
    created_at: datetime = Field(
        default_factory=_utcnow,
        alias="createdAt",
    )


class Session(BaseModel):
    """The logged-in user for this app instance."""

    username: str = Field(..., min_length=1)
    logged_in_at: datetime = Field(default_factory=_utcnow)
