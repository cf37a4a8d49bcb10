"""
OTP challenge document model.

Maps to the `phoneAuth` MongoDB collection, one document per canonical phone
number (`_id` = phone number). Issuing a new OTP overwrites the document, so
there is never more than one challenge per number.

attempts counts failed verification tries; the challenge is dead once it
reaches the configured maximum, once it is verified, or once expiresAt has
passed. Records are never deleted by verification, only by the expiry sweep.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import DocumentModel


class OTPChallengeDoc(DocumentModel):
    """Document model for the `phoneAuth` collection."""

    phone_number: str = Field(alias="phoneNumber")
    code: str = Field(pattern=r"^\d{6}$")
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")
    attempts: int = Field(default=0, ge=0)
    verified: bool = False
    verified_at: Optional[datetime] = Field(default=None, alias="verifiedAt")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_active(self, now: datetime, max_attempts: int) -> bool:
        return (
            not self.verified
            and self.attempts < max_attempts
            and not self.is_expired(now)
        )
