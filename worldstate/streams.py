from __future__ import annotations

from dataclasses import dataclass

import redis

from worldstate.store import CHANGES_STREAM_KEY


@dataclass(frozen=True, slots=True)
class ChangeMessage:
    id: str
    fields: dict[str, str]


def _next_stream_id(stream_id: str) -> str:
    ms, _, seq = stream_id.partition("-")
    return f"{int(ms)}-{int(seq or 0) + 1}"


def read_changes(*, r: redis.Redis, after: str = "0-0", count: int = 100) -> list[ChangeMessage]:
    """Committed row changes strictly after stream id `after`, in commit order."""

    entries = r.xrange(CHANGES_STREAM_KEY, min=_next_stream_id(after), max="+", count=count)
    return [ChangeMessage(id=str(mid), fields=dict(fields)) for mid, fields in entries]
