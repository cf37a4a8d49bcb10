"""Unit tests for document models and session value types."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from schemas.models.base import DocumentModel
from schemas.models.otp import OTPChallengeDoc
from schemas.models.session import (
    FederatedSession,
    PersistedPhoneSession,
    PhoneSession,
    Principal,
)
from schemas.models.user import UserProfileDoc
from shared.datetime_utils import to_epoch_millis

NOW = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)


# ── DocumentModel ─────────────────────────────────────────────────────────────


class TestDocumentModel:
    def test_from_mongo_returns_none_for_none(self):
        assert DocumentModel.from_mongo(None) is None

    def test_id_alias(self):
        assert DocumentModel.model_validate({"_id": "919876543210"}).id == "919876543210"

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in DocumentModel().to_mongo()


# ── OTPChallengeDoc ───────────────────────────────────────────────────────────


class TestOTPChallengeDoc:
    def _make(self, **overrides):
        fields = dict(
            phone_number="919876543210",
            code="482917",
            created_at=NOW,
            expires_at=NOW + timedelta(minutes=10),
        )
        fields.update(overrides)
        return OTPChallengeDoc(**fields)

    def test_defaults(self):
        challenge = self._make()
        assert challenge.attempts == 0
        assert challenge.verified is False
        assert challenge.verified_at is None

    @pytest.mark.parametrize("code", ["12345", "1234567", "abcdef", ""])
    def test_code_must_be_six_digits(self, code):
        with pytest.raises(ValidationError):
            self._make(code=code)

    def test_negative_attempts_rejected(self):
        with pytest.raises(ValidationError):
            self._make(attempts=-1)

    def test_to_mongo_uses_stored_names(self):
        doc = self._make().to_mongo()
        assert {"phoneNumber", "createdAt", "expiresAt", "verifiedAt"} <= set(doc)

    def test_is_expired_is_strict(self):
        challenge = self._make()
        assert not challenge.is_expired(NOW + timedelta(minutes=10))
        assert challenge.is_expired(NOW + timedelta(minutes=10, seconds=1))

    @pytest.mark.parametrize(
        "overrides, active",
        [
            ({}, True),
            ({"verified": True}, False),
            ({"attempts": 3}, False),
        ],
    )
    def test_is_active(self, overrides, active):
        assert self._make(**overrides).is_active(NOW, max_attempts=3) is active


# ── UserProfileDoc ────────────────────────────────────────────────────────────


class TestUserProfileDoc:
    def test_defaults_to_user_role(self):
        assert UserProfileDoc(uid="u").user_type == "user"

    def test_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            UserProfileDoc(uid="u", user_type="owner")

    @pytest.mark.parametrize("name, complete", [("", False), ("   ", False), ("Asha", True)])
    def test_is_complete(self, name, complete):
        assert UserProfileDoc(uid="u", display_name=name).is_complete is complete

    def test_reads_camel_case_document(self):
        profile = UserProfileDoc.model_validate(
            {"_id": "u", "uid": "u", "displayName": "Asha", "photoURL": "http://x/p.png"}
        )
        assert profile.display_name == "Asha"
        assert profile.photo_url == "http://x/p.png"


# ── Session types ─────────────────────────────────────────────────────────────


class TestPrincipal:
    def test_from_profile_blank_fields_become_none(self):
        principal = Principal.from_profile(UserProfileDoc(uid="u", user_type="admin"))
        assert principal.id == "u"
        assert principal.email is None
        assert principal.role == "admin"

    def test_is_frozen(self):
        with pytest.raises(ValidationError):
            Principal(id="u").role = "admin"


class TestPersistedPhoneSession:
    def test_json_shape(self):
        record = PersistedPhoneSession(user=Principal(id="u"), timestamp=1000, issued_at=500)
        restored = PersistedPhoneSession.from_json(record.to_json())
        assert restored.timestamp == 1000
        assert restored.issued_at == 500
        assert '"issuedAt"' in record.to_json()

    def test_issued_at_falls_back_to_timestamp(self):
        record = PersistedPhoneSession(user=Principal(id="u"), timestamp=to_epoch_millis(NOW))
        assert record.issued_at_datetime == NOW

    def test_accepts_legacy_blob_without_issued_at(self):
        raw = '{"user": {"uid": "u"}, "userProfile": null, "timestamp": 1736933400000}'
        record = PersistedPhoneSession.from_json(raw)
        assert record.issued_at is None

    @pytest.mark.parametrize(
        "age, valid",
        [
            (timedelta(hours=23, minutes=59), True),
            (timedelta(hours=24), False),
            (timedelta(hours=24, minutes=1), False),
        ],
    )
    def test_validity_window(self, age, valid):
        record = PersistedPhoneSession(user=Principal(id="u"), timestamp=to_epoch_millis(NOW - age))
        assert record.is_valid(NOW, timedelta(hours=24)) is valid


class TestPhoneSession:
    def test_persisted_round_trip(self):
        session = PhoneSession(
            principal=Principal(id="u"),
            profile=UserProfileDoc(uid="u", display_name="Asha"),
            issued_at=NOW - timedelta(hours=2),
            last_extended_at=NOW,
        )
        assert PhoneSession.from_persisted(session.to_persisted()) == session

    def test_extended_keeps_issued_at(self):
        session = PhoneSession(
            principal=Principal(id="u"), profile=None, issued_at=NOW, last_extended_at=NOW
        )
        later = session.extended(NOW + timedelta(minutes=30))
        assert later.issued_at == NOW
        assert later.last_extended_at == NOW + timedelta(minutes=30)

    def test_role_is_always_resolved(self):
        session = PhoneSession(
            principal=Principal(id="u"), profile=None, issued_at=NOW, last_extended_at=NOW
        )
        assert session.role_resolved is True
        assert session.profile_complete is False


class TestFederatedSession:
    def test_defaults(self):
        session = FederatedSession(principal=Principal(id="fb-1"))
        assert session.role_resolved is False
        assert session.profile is None
        assert FederatedSession.expires_implicitly_with_provider is True
