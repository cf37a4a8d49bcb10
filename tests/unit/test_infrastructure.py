"""Unit tests for the infrastructure layer: HTTP, messaging, session stores, federated bridge."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from config import MessagingSettings
from errors import StoreReadError, StoreWriteError
from infrastructure.federated.bridge import FederatedAuthBridge
from infrastructure.http_client import HttpClient
from infrastructure.messaging.whatsapp import WhatsAppMessageSender
from infrastructure.session_store.file_store import FileSessionPersistence
from infrastructure.session_store.memory_store import InMemorySessionPersistence
from infrastructure.session_store.redis_store import RedisSessionPersistence
from schemas.models.session import PersistedPhoneSession, Principal
from schemas.models.user import UserProfileDoc


# ── Helpers ───────────────────────────────────────────────────────────────────


def _record(timestamp=1736933400000) -> PersistedPhoneSession:
    profile = UserProfileDoc(uid="phone_919876543210", phone_number="919876543210")
    return PersistedPhoneSession(
        user=Principal.from_profile(profile),
        user_profile=profile,
        timestamp=timestamp,
        issued_at=timestamp - 60_000,
    )


def _fake_redis(get_returns=None):
    """Return a mock async Redis client."""
    r = AsyncMock()
    r.get.return_value = get_returns
    r.setex.return_value = True
    r.delete.return_value = 1
    return r


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_post_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "post", return_value=fake_resp)
        resp = await client.post("http://example.com")
        assert resp.status_code == 200
        await client.aclose()

    async def test_get_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "get", return_value=fake_resp)
        resp = await client.get("http://example.com")
        assert resp.status_code == 200
        await client.aclose()

    async def test_base_url(self):
        async with HttpClient(base_url="http://api.local") as client:
            assert str(client._client.base_url) == "http://api.local/"


# ── WhatsAppMessageSender ─────────────────────────────────────────────────────


class TestWhatsAppMessageSender:
    def _make(self, api_key="test-key"):
        settings = MessagingSettings(
            whatsapp_api_key=api_key,
            whatsapp_api_base_url="https://wa.example.com/api/",
        )
        http = MagicMock()
        return WhatsAppMessageSender(settings, http, app_url="https://dineezy.in"), http

    def _response(self, status_code=200, body=None):
        resp = MagicMock(status_code=status_code, text=json.dumps(body or {}))
        resp.json.return_value = body if body is not None else {}
        return resp

    def test_renders_otp_template(self):
        sender, _ = self._make()
        text = sender.render("PHONE_VERIFICATION_OTP", {"name": "Asha", "otp": "482917"})
        assert "Hi Asha" in text
        assert "*482917*" in text
        assert "Dineezy" in text
        assert "10 minutes" in text

    def test_renders_welcome_template(self):
        sender, _ = self._make()
        text = sender.render("WELCOME_LOGIN", {"name": "Asha"})
        assert "Welcome to Dineezy" in text
        assert "https://dineezy.in" in text

    async def test_send_success(self):
        sender, http = self._make()
        http.get = AsyncMock(return_value=self._response(body={"status": True}))

        result = await sender.send(
            "919876543210", "PHONE_VERIFICATION_OTP", {"name": "A", "otp": "482917"}
        )

        assert result.delivered is True
        url = http.get.call_args[0][0]
        params = http.get.call_args[1]["params"]
        assert url == "https://wa.example.com/api/create-message"
        assert params["apikey"] == "test-key"
        assert params["to"] == "919876543210"
        assert "482917" in params["message"]

    async def test_strips_plus_from_destination(self):
        sender, http = self._make()
        http.get = AsyncMock(return_value=self._response(body={"success": True}))
        await sender.send("+919876543210", "WELCOME_LOGIN", {"name": "A"})
        assert http.get.call_args[1]["params"]["to"] == "919876543210"

    async def test_missing_api_key(self):
        sender, http = self._make(api_key="")
        http.get = AsyncMock()
        result = await sender.send("919876543210", "WELCOME_LOGIN", {"name": "A"})
        assert result.delivered is False
        http.get.assert_not_called()

    @pytest.mark.parametrize(
        "status_code, body",
        [(500, {"status": True}), (200, {"status": False, "message": "invalid number"})],
        ids=["http_error", "gateway_rejected"],
    )
    async def test_not_delivered(self, status_code, body):
        sender, http = self._make()
        http.get = AsyncMock(return_value=self._response(status_code, body))
        result = await sender.send("919876543210", "WELCOME_LOGIN", {"name": "A"})
        assert result.delivered is False

    async def test_network_error(self):
        sender, http = self._make()
        http.get = AsyncMock(side_effect=Exception("timeout"))
        result = await sender.send("919876543210", "WELCOME_LOGIN", {"name": "A"})
        assert result.delivered is False
        assert result.detail == "network_error"

    async def test_invalid_json(self):
        sender, http = self._make()
        resp = MagicMock(status_code=200, text="<html>")
        resp.json.side_effect = ValueError("no json")
        http.get = AsyncMock(return_value=resp)
        result = await sender.send("919876543210", "WELCOME_LOGIN", {"name": "A"})
        assert result.detail == "invalid_response"


# ── Session persistence ───────────────────────────────────────────────────────


class TestInMemorySessionPersistence:
    async def test_round_trip(self):
        store = InMemorySessionPersistence()
        await store.save(_record())
        loaded = await store.load()
        assert loaded == _record()

    async def test_stored_blob_uses_wire_names(self):
        store = InMemorySessionPersistence()
        await store.save(_record())
        blob = json.loads(store.raw)
        assert set(blob) == {"user", "userProfile", "timestamp", "issuedAt"}
        assert blob["user"]["uid"] == "phone_919876543210"

    async def test_corrupt_blob_is_cleared(self):
        store = InMemorySessionPersistence(raw="{not json")
        assert await store.load() is None
        assert store.raw is None

    async def test_clear(self):
        store = InMemorySessionPersistence()
        await store.save(_record())
        await store.clear()
        assert await store.load() is None


class TestRedisSessionPersistence:
    async def test_save_uses_scoped_key_and_ttl(self):
        r = _fake_redis()
        store = RedisSessionPersistence(r, "client-1", ttl_seconds=86400)
        await store.save(_record())
        key, ttl, payload = r.setex.call_args[0]
        assert key == "phoneAuthSession:client-1"
        assert ttl == 86400
        assert json.loads(payload)["timestamp"] == 1736933400000

    async def test_load_hit(self):
        r = _fake_redis(get_returns=_record().to_json())
        loaded = await RedisSessionPersistence(r, "client-1").load()
        assert loaded.user.id == "phone_919876543210"

    async def test_load_miss(self):
        assert await RedisSessionPersistence(_fake_redis(), "c").load() is None

    async def test_load_corrupt_clears(self):
        r = _fake_redis(get_returns='{"user": 1}')
        assert await RedisSessionPersistence(r, "c").load() is None
        r.delete.assert_awaited_once_with("phoneAuthSession:c")

    async def test_load_undecodable_clears(self):
        r = _fake_redis()
        r.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        assert await RedisSessionPersistence(r, "c").load() is None
        r.delete.assert_awaited_once_with("phoneAuthSession:c")

    async def test_read_error(self):
        r = _fake_redis()
        r.get.side_effect = RedisConnectionError("down")
        with pytest.raises(StoreReadError):
            await RedisSessionPersistence(r, "c").load()

    async def test_write_error(self):
        r = _fake_redis()
        r.setex.side_effect = RedisConnectionError("down")
        with pytest.raises(StoreWriteError):
            await RedisSessionPersistence(r, "c").save(_record())


class TestFileSessionPersistence:
    async def test_round_trip(self, tmp_path):
        store = FileSessionPersistence(str(tmp_path / "nested" / "session.json"))
        await store.save(_record())
        assert (await store.load()) == _record()
        assert not (tmp_path / "nested" / "session.json.tmp").exists()

    async def test_missing_file(self, tmp_path):
        assert await FileSessionPersistence(str(tmp_path / "none.json")).load() is None

    async def test_clear_is_idempotent(self, tmp_path):
        store = FileSessionPersistence(str(tmp_path / "session.json"))
        await store.save(_record())
        await store.clear()
        await store.clear()
        assert await store.load() is None

    async def test_corrupt_file_is_removed(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("garbage", encoding="utf-8")
        assert await FileSessionPersistence(str(path)).load() is None
        assert not path.exists()

    async def test_non_utf8_file_is_removed(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert await FileSessionPersistence(str(path)).load() is None
        assert not path.exists()

    async def test_unwritable_path(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        store = FileSessionPersistence(str(blocker / "session.json"))
        with pytest.raises(StoreWriteError):
            await store.save(_record())


# ── FederatedAuthBridge ───────────────────────────────────────────────────────


class TestFederatedAuthBridge:
    def test_subscribe_replays_current_state(self):
        principal = Principal(id="fb-1")
        bridge = FederatedAuthBridge(initial=principal)
        seen = []
        bridge.subscribe(seen.append)
        assert seen == [principal]

    def test_publish_and_unsubscribe(self):
        bridge = FederatedAuthBridge()
        seen = []
        unsubscribe = bridge.subscribe(seen.append)
        bridge.publish(Principal(id="fb-1"))
        unsubscribe()
        bridge.publish(None)
        assert [p.id if p else None for p in seen] == [None, "fb-1"]
        assert bridge.subscriber_count == 0

    async def test_sign_out_calls_hook_then_publishes(self):
        hook = AsyncMock()
        bridge = FederatedAuthBridge(sign_out_hook=hook, initial=Principal(id="fb-1"))
        await bridge.sign_out()
        hook.assert_awaited_once()
        assert bridge.current is None

    async def test_failed_hook_keeps_provider_state(self):
        hook = AsyncMock(side_effect=ConnectionError("offline"))
        bridge = FederatedAuthBridge(sign_out_hook=hook, initial=Principal(id="fb-1"))
        with pytest.raises(ConnectionError):
            await bridge.sign_out()
        assert bridge.current is not None
