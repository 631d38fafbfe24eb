from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import fakeredis
import pytest

from worldstate.reducers import ReducerResult, dispatch_reducer
from worldstate.settings import Settings, init_settings, reset_settings_for_tests


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs.

    In CI, we *don't* auto-load `.env` by default so a developer's local REDIS_URL
    never leaks into the suite. Opt-in with: WORLDSTATE_LOAD_DOTENV_FOR_TESTS=1
    """

    if os.environ.get("CI") and os.environ.get("WORLDSTATE_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(autouse=True)
def _fast_lock_settings() -> Generator[None, None, None]:
    # Short lock wait so "world is busy" tests fail fast.
    reset_settings_for_tests()
    init_settings(settings=Settings(lock_ttl_ms=1_000, lock_wait_ms=50))
    yield
    reset_settings_for_tests()


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def call(r: fakeredis.FakeRedis):
    """Invoke a reducer as `sender` (default "admin"), including lifecycle reducers."""

    def _call(reducer: str, *, sender: str = "admin", **args: Any) -> ReducerResult:
        return dispatch_reducer(r=r, sender=sender, reducer=reducer, args=args, allow_lifecycle=True)

    return _call


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to a fakeredis instance shared with the test."""

    from fastapi.testclient import TestClient

    from worldstate.api.deps import get_redis
    from worldstate.main import app

    fake = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield fake

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, fake
    app.dependency_overrides.clear()
