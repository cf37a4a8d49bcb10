"""
Shared test fixtures.

In-memory stand-ins for the OTP store, profile store, message sender and
clock so service and route tests run without MongoDB or the WhatsApp gateway.
"""

from datetime import datetime, timedelta, timezone

import pytest

from errors import StoreReadError, StoreWriteError
from infrastructure.messaging.protocol import DeliveryResult
from schemas.models.user import UserProfileDoc


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeOTPStore:
    def __init__(self) -> None:
        self.challenges = {}
        self.fail_reads = False
        self.fail_writes = False

    def _check_write(self):
        if self.fail_writes:
            raise StoreWriteError("write failed")

    async def get(self, phone_number):
        if self.fail_reads:
            raise StoreReadError("read failed")
        challenge = self.challenges.get(phone_number)
        return challenge.model_copy() if challenge else None

    async def put(self, challenge):
        self._check_write()
        self.challenges[challenge.phone_number] = challenge

    async def increment_attempts(self, phone_number):
        self._check_write()
        current = self.challenges[phone_number]
        self.challenges[phone_number] = current.model_copy(
            update={"attempts": current.attempts + 1}
        )

    async def mark_verified(self, phone_number, verified_at, max_attempts):
        self._check_write()
        current = self.challenges.get(phone_number)
        if current is None or current.verified or current.attempts >= max_attempts:
            return False
        self.challenges[phone_number] = current.model_copy(
            update={"verified": True, "verified_at": verified_at}
        )
        return True

    async def delete_expired(self, now):
        self._check_write()
        expired = [p for p, c in self.challenges.items() if c.expires_at < now]
        for phone in expired:
            del self.challenges[phone]
        return len(expired)


class FakeProfileStore:
    def __init__(self) -> None:
        self.profiles = {}
        self.fail_reads = False
        self.fail_writes = False

    def add(self, **fields) -> UserProfileDoc:
        profile = UserProfileDoc(**fields)
        self.profiles[profile.uid] = profile
        return profile

    async def get_profile(self, uid):
        if self.fail_reads:
            raise StoreReadError("read failed")
        return self.profiles.get(uid)

    async def get_role(self, uid):
        if self.fail_reads:
            raise StoreReadError("read failed")
        profile = self.profiles.get(uid)
        return profile.user_type if profile else None

    async def find_by_phone(self, phone_number):
        if self.fail_reads:
            raise StoreReadError("read failed")
        for profile in self.profiles.values():
            if profile.phone_number == phone_number:
                return profile
        return None

    async def create_profile(self, profile):
        if self.fail_writes:
            raise StoreWriteError("write failed")
        self.profiles[profile.uid] = profile

    async def update_profile(self, uid, updates):
        if self.fail_writes:
            raise StoreWriteError("write failed")
        current = self.profiles.get(uid)
        if current is None:
            return None
        data = current.model_dump(by_alias=True)
        data.update(updates)
        updated = UserProfileDoc.model_validate(data)
        self.profiles[uid] = updated
        return updated


class FakeSender:
    def __init__(self) -> None:
        self.sent = []
        self.delivered = True
        self.error = None

    async def send(self, destination, template_id, variables):
        if self.error is not None:
            raise self.error
        self.sent.append((destination, template_id, dict(variables)))
        return DeliveryResult(delivered=self.delivered, detail="" if self.delivered else "rejected")

    def last(self, template_id):
        for destination, tid, variables in reversed(self.sent):
            if tid == template_id:
                return destination, variables
        return None


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def otp_store():
    return FakeOTPStore()


@pytest.fixture
def profile_store():
    return FakeProfileStore()


@pytest.fixture
def sender():
    return FakeSender()
