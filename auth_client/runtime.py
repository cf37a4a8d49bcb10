"""
Client runtime assembly.

build_client_runtime() wires a SessionFacade to a persistence backend
(Redis when REDIS_URI is set, otherwise a local JSON file), the federated
bridge, a profile source and the HTTP API client, and hands back one object
the host application drives:

    runtime = build_client_runtime(settings, api_base_url="http://localhost:8000")
    await runtime.start()
    ...
    runtime.focus.focus()          # on window focus / app resume
    await runtime.aclose()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as aioredis
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from auth_client.phone_auth_client import PhoneAuthClient
from config import AppSettings
from infrastructure.federated.bridge import FederatedAuthBridge
from infrastructure.http_client import HttpClient
from infrastructure.session_store.file_store import FileSessionPersistence
from infrastructure.session_store.protocol import SessionPersistence
from infrastructure.session_store.redis_store import RedisSessionPersistence
from repositories.profile_repository import USERS_COLLECTION, MongoProfileRepository
from services.session.facade import ProfileSource, SessionFacade
from services.session.focus_revalidator import FocusEvents
from services.session.route_guard import RouteGuard
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass
class ClientRuntime:
    facade: SessionFacade
    guard: RouteGuard
    api: PhoneAuthClient
    federated: FederatedAuthBridge
    focus: FocusEvents
    client_id: str
    _closers: list = field(default_factory=list)

    async def start(self):
        return await self.facade.initialize()

    async def aclose(self) -> None:
        await self.facade.close()
        for close in reversed(self._closers):
            await close()


def build_persistence(
    settings: AppSettings,
    client_id: str,
    redis_client: Optional[aioredis.Redis] = None,
) -> SessionPersistence:
    if redis_client is not None:
        return RedisSessionPersistence(
            redis_client,
            client_id,
            storage_key=settings.session.session_storage_key,
            ttl_seconds=settings.session.session_ttl_seconds,
        )
    return FileSessionPersistence(settings.session.session_file_path)


def build_client_runtime(
    settings: Optional[AppSettings] = None,
    api_base_url: str = "http://localhost:8000",
    client_id: Optional[str] = None,
    profiles: Optional[ProfileSource] = None,
    federated: Optional[FederatedAuthBridge] = None,
) -> ClientRuntime:
    """Assemble a ClientRuntime.

    With Redis, the session key is scoped by ``client_id``; pass a stable one
    (a cookie or device id) to restore the session in a later process. When
    omitted, a fresh random id is generated and nothing is restored.
    """
    if settings is None:
        settings = AppSettings()
    if client_id is None:
        client_id = generate_secure_token(16)

    closers = []

    redis_client = None
    if settings.redis.redis_uri:
        redis_client = aioredis.from_url(
            settings.redis.redis_uri, encoding="utf-8", decode_responses=True
        )
        closers.append(redis_client.aclose)
    persistence = build_persistence(settings, client_id, redis_client)

    if profiles is None:
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        closers.append(mongo_client.close)
        profiles = MongoProfileRepository(mongo_client[settings.db.db_name][USERS_COLLECTION])

    federated = federated or FederatedAuthBridge()
    focus = FocusEvents()
    facade = SessionFacade(
        persistence,
        federated,
        profiles,
        settings=settings.session,
        focus_source=focus,
    )

    http = HttpClient(base_url=api_base_url)
    closers.append(http.aclose)

    log.info(
        "client_runtime_built",
        client_id=client_id,
        persistence=type(persistence).__name__,
    )
    return ClientRuntime(
        facade=facade,
        guard=RouteGuard(facade, settings.routes),
        api=PhoneAuthClient(http, facade),
        federated=federated,
        focus=focus,
        client_id=client_id,
        _closers=closers,
    )
