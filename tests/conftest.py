"""Pytest configuration and fixtures."""

import asyncio
import random
import threading
from dataclasses import replace

import pytest
import pytest_asyncio

from config import load_config
from database import close_db_pool, init_db_pool, run_migrations
from services import set_main_loop
from services.entry_registry import Entry, EntryRegistry
from services.wheel_service import WheelService


WHEEL_NAMES = ["Ali", "Beatriz", "Charles", "Diya", "Eric", "Fatima", "Gabriel", "Hanna"]


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(20240601)


@pytest.fixture
def eight_names():
    return EntryRegistry(Entry(name) for name in WHEEL_NAMES)


@pytest.fixture
def test_config(tmp_path):
    return replace(
        load_config(),
        environment="testing",
        database_path=str(tmp_path / "wheel.sqlite"),
        admin_username="admin",
        admin_password="s3cret",
        secret_key="test-secret",
        db_pool_size=2,
        spin_duration_ms=1000,
        default_wheel_id="default-wheel",
        rigging_fallback_url=None,
    )


@pytest_asyncio.fixture
async def db_pool(test_config):
    """Fresh migrated database for one test."""
    pool = await init_db_pool(
        database_path=test_config.database_path,
        pool_size=test_config.db_pool_size,
        busy_timeout_ms=1000,
    )
    await run_migrations(pool)
    yield pool
    await close_db_pool()


@pytest_asyncio.fixture
async def wheel_service(db_pool, clock, rng):
    service = WheelService(duration_ms=1000, frame_ms=5, clock=clock, rng=rng)
    yield service
    await service.shutdown()


@pytest.fixture
def background_loop():
    """Event loop running in a thread, standing in for the aiohttp server loop."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    set_main_loop(loop)
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()
    set_main_loop(None)


@pytest.fixture
def app(test_config, background_loop, clock, rng):
    """Flask app whose routes reach the service on the background loop."""
    from web import create_app

    def on_loop(coro):
        return asyncio.run_coroutine_threadsafe(coro, background_loop).result(timeout=10)

    async def open_db():
        pool = await init_db_pool(
            database_path=test_config.database_path,
            pool_size=test_config.db_pool_size,
            busy_timeout_ms=1000,
        )
        await run_migrations(pool)

    on_loop(open_db())
    service = WheelService(
        default_wheel_id=test_config.default_wheel_id,
        duration_ms=test_config.spin_duration_ms,
        frame_ms=5,
        clock=clock,
        rng=rng,
    )
    flask_app = create_app(test_config, testing=True, wheel_service=service)
    flask_app.config["RUN_ON_LOOP"] = on_loop
    yield flask_app
    on_loop(service.shutdown())
    on_loop(close_db_pool())


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "s3cret"})
    assert response.status_code == 200
    return client
