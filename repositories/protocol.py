"""Repository protocols. Services depend on these, not the MongoDB classes."""

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.otp import OTPChallengeDoc
from schemas.models.user import Role, UserProfileDoc


class OTPStore(Protocol):
    async def get(self, phone_number: str) -> Optional[OTPChallengeDoc]: ...

    async def put(self, challenge: OTPChallengeDoc) -> None: ...

    async def increment_attempts(self, phone_number: str) -> None: ...

    async def mark_verified(
        self, phone_number: str, verified_at: datetime, max_attempts: int
    ) -> bool: ...

    async def delete_expired(self, now: datetime) -> int: ...


class ProfileStore(Protocol):
    async def get_profile(self, uid: str) -> Optional[UserProfileDoc]: ...

    async def get_role(self, uid: str) -> Optional[Role]: ...

    async def find_by_phone(self, phone_number: str) -> Optional[UserProfileDoc]: ...

    async def create_profile(self, profile: UserProfileDoc) -> None: ...

    async def update_profile(self, uid: str, updates: dict) -> Optional[UserProfileDoc]: ...
