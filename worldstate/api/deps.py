from __future__ import annotations

from collections.abc import Generator

import redis
from fastapi import Header, HTTPException, status

from worldstate.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except Exception:
            # Some redis client versions don't require explicit close.
            pass


def get_identity(x_identity: str | None = Header(default=None)) -> str:
    """Caller identity. Transport auth is out of scope; the header is trusted as-is."""

    if not x_identity:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Identity header is required")
    return x_identity
