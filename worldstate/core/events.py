from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventType = Literal["reducer_committed"]


@dataclass(frozen=True, slots=True)
class WorldEvent:
    type: EventType
    reducer: str
    sender: str
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, reducer: str, sender: str, payload: dict[str, Any]) -> "WorldEvent":
        return WorldEvent(type=type, reducer=reducer, sender=sender, payload=payload, ts=datetime.now(timezone.utc))

    def as_message(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "reducer": self.reducer,
            "sender": self.sender,
            "ts": self.ts.isoformat(),
            **self.payload,
        }
