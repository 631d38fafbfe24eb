from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from worldstate.db import Database


@dataclass(frozen=True, slots=True)
class ReducerContext:
    """Per-call context handed to every reducer.

    `sender` is the caller identity supplied by the dispatcher; `db` is the
    transactional view of all tables for this call.
    """

    sender: str
    db: Database
    timestamp: datetime
