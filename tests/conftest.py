"""Общие фикстуры: временный каталог данных, фиктивные часы и каналы."""

import asyncio
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from clipcut.core.config import Settings
from clipcut.core.db import create_engine, create_session_factory, init_db
from clipcut.db.repositories.item_repository import ItemRepository
from clipcut.domains.clipboard.services import CutCoordinator
from clipcut.domains.devices.services import DeviceRegistry
from clipcut.domains.notifications.services import NotificationRouter
from clipcut.main import create_app


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeChannel:
    def __init__(self):
        self.sent = []
        self.closed = False

    async def send_json(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True

    def of_type(self, message_type: str):
        return [m for m in self.sent if m.get("type") == message_type]


class BrokenChannel(FakeChannel):
    async def send_json(self, data):
        raise ConnectionResetError("peer went away")


class SlowChannel(FakeChannel):
    async def send_json(self, data):
        await asyncio.sleep(10)
        self.sent.append(data)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        sweep_interval_seconds=3600,
        notify_timeout_seconds=0.2,
        log_level="DEBUG",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def engine(settings):
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.resolved_database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def repository(engine, settings, clock) -> ItemRepository:
    repository = ItemRepository(create_session_factory(engine), settings.files_dir, clock=clock)
    await repository.init()
    return repository


@pytest.fixture
def registry(clock) -> DeviceRegistry:
    return DeviceRegistry(clock=clock)


@pytest.fixture
def notifier(registry) -> NotificationRouter:
    return NotificationRouter(registry, send_timeout=0.2)


@pytest.fixture
def coordinator(repository, registry, notifier, clock) -> CutCoordinator:
    return CutCoordinator(repository, registry, notifier, clock=clock, default_ttl=300)


@pytest.fixture
def client(settings, clock):
    app = create_app(settings, clock=clock)
    with TestClient(app) as client:
        yield client
