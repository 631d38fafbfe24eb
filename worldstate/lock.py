from __future__ import annotations

import time
from contextlib import contextmanager
from uuid import uuid4

import redis
from redis.exceptions import WatchError

from worldstate.errors import WorldBusyError


WORLD_LOCK_KEY = "lock:world"


def holds_world_lock(pipe: redis.client.Pipeline, token: str) -> bool:
    """WATCH the lock and check it still carries `token`.

    Leaves `pipe` in watch mode, so a MULTI/EXEC queued next aborts with
    WatchError if anyone takes the lock in between.
    """

    pipe.watch(WORLD_LOCK_KEY)
    return pipe.get(WORLD_LOCK_KEY) == token


@contextmanager
def world_lock(*, r: redis.Redis, ttl_ms: int = 5_000, wait_ms: int = 2_000, poll_ms: int = 5):
    """World-wide reducer lock.

    Every reducer runs under this lock, so read-then-write sequences inside a
    reducer never interleave with another reducer's writes. The TTL bounds how
    long a crashed holder can block the world; a holder that outlives it fails
    at commit (see `Transaction.commit`).

    The bounded wait sleeps, so call this off the event loop.
    """

    token = uuid4().hex
    deadline = time.monotonic() + wait_ms / 1000
    while not r.set(WORLD_LOCK_KEY, token, nx=True, px=ttl_ms):
        if time.monotonic() >= deadline:
            raise WorldBusyError("World is busy")
        time.sleep(poll_ms / 1000)
    try:
        yield token
    finally:
        _release(r, token)


def _release(r: redis.Redis, token: str) -> None:
    # Compare-and-delete: never drop a lock that expired and was taken by someone else.
    with r.pipeline(transaction=True) as pipe:
        try:
            if holds_world_lock(pipe, token):
                pipe.multi()
                pipe.delete(WORLD_LOCK_KEY)
                pipe.execute()
        except WatchError:
            # The lock changed hands after the check; it is no longer ours to release.
            return
