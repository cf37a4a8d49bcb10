"""
User profile document model.

Maps to the `users` MongoDB collection (`_id` = uid).

Two creation paths produce slightly different shapes:
- Federated sign-up: uid is the identity provider's uid, email is set
- Phone sign-up: uid is ``phone_<canonical phone>``, email and displayName
  start empty until the profile-completion step fills them in

userType is the authoritative role; it defaults to "user" when absent.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from schemas.models.base import DocumentModel

Role = Literal["user", "admin"]
ROLES: tuple[Role, ...] = ("user", "admin")


class UserProfileDoc(DocumentModel):
    """Document model for the `users` collection."""

    uid: str
    email: str = ""
    display_name: str = Field(default="", alias="displayName")
    phone_number: str = Field(default="", alias="phoneNumber")
    photo_url: str = Field(default="", alias="photoURL")
    user_type: Role = Field(default="user", alias="userType")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def is_complete(self) -> bool:
        """A profile is complete once the user has given a display name."""
        return bool(self.display_name.strip())
