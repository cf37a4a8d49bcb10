"""
Session value types.

Principal is the authenticated identity shared by both sign-in paths.
The runtime Session is a tagged union of four frozen variants; consumers
match on the variant instead of probing optional fields:

    Initializing      — restoration has not decided a path yet
    NoSession         — nobody is signed in
    PhoneSession      — OTP-authenticated, locally tracked TTL
    FederatedSession  — validity delegated to the identity provider

PersistedPhoneSession is the client-durable blob written by the phone path
(`{user, userProfile, timestamp}`; timestamp = lastExtendedAt in epoch ms).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import Role, UserProfileDoc
from shared.datetime_utils import from_epoch_millis, to_epoch_millis


class Principal(BaseModel):
    """The authenticated identity backing a session."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="uid")
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    role: Role = Field(default="user", alias="userType")

    @classmethod
    def from_profile(cls, profile: UserProfileDoc) -> "Principal":
        return cls(
            id=profile.uid,
            email=profile.email or None,
            display_name=profile.display_name or None,
            phone_number=profile.phone_number or None,
            photo_url=profile.photo_url or None,
            role=profile.user_type,
        )


class PersistedPhoneSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: Principal
    user_profile: Optional[UserProfileDoc] = Field(default=None, alias="userProfile")
    timestamp: int
    issued_at: Optional[int] = Field(default=None, alias="issuedAt")

    @property
    def last_extended_at(self) -> datetime:
        return from_epoch_millis(self.timestamp)

    @property
    def issued_at_datetime(self) -> datetime:
        return from_epoch_millis(self.issued_at if self.issued_at is not None else self.timestamp)

    def is_valid(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.last_extended_at < ttl

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "PersistedPhoneSession":
        return cls.model_validate_json(raw)


@dataclass(frozen=True)
class Initializing:
    pass


@dataclass(frozen=True)
class NoSession:
    pass


@dataclass(frozen=True)
class PhoneSession:
    principal: Principal
    profile: Optional[UserProfileDoc]
    issued_at: datetime
    last_extended_at: datetime

    # The role of a phone session comes from the stored profile
    role_resolved: ClassVar[bool] = True

    @property
    def profile_complete(self) -> bool:
        return self.profile is not None and self.profile.is_complete

    def is_valid(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.last_extended_at < ttl

    def extended(self, now: datetime) -> "PhoneSession":
        return replace(self, last_extended_at=now)

    def to_persisted(self) -> PersistedPhoneSession:
        return PersistedPhoneSession(
            user=self.principal,
            user_profile=self.profile,
            timestamp=to_epoch_millis(self.last_extended_at),
            issued_at=to_epoch_millis(self.issued_at),
        )

    @classmethod
    def from_persisted(cls, record: PersistedPhoneSession) -> "PhoneSession":
        return cls(
            principal=record.user,
            profile=record.user_profile,
            issued_at=record.issued_at_datetime,
            last_extended_at=record.last_extended_at,
        )


@dataclass(frozen=True)
class FederatedSession:
    principal: Principal
    profile: Optional[UserProfileDoc] = None
    role_resolved: bool = False

    expires_implicitly_with_provider: ClassVar[bool] = True


Session = Union[Initializing, NoSession, PhoneSession, FederatedSession]
ActiveSession = Union[PhoneSession, FederatedSession]
