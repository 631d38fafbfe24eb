from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import redis
from redis.exceptions import WatchError

from worldstate.errors import WorldBusyError
from worldstate.lock import holds_world_lock


TABLE_KEY_PREFIX = "worldstate:table:"  # + {table}; hash of key -> JSON row
SEQ_KEY_PREFIX = "worldstate:seq:"  # + {sequence}; last allocated id
TX_COUNTER_KEY = "worldstate:tx"
CHANGES_STREAM_KEY = "worldstate:changes"

TABLES: tuple[str, ...] = ("item", "weapon", "armor", "consumables", "station", "train", "player")


def table_key(table: str) -> str:
    return f"{TABLE_KEY_PREFIX}{table}"


def seq_key(name: str) -> str:
    return f"{SEQ_KEY_PREFIX}{name}"


@dataclass(frozen=True, slots=True)
class RowChange:
    table: str
    op: str  # insert | update | delete
    key: str
    row: str | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "op": self.op,
            "key": self.key,
            "row": json.loads(self.row) if self.row is not None else None,
        }


@dataclass(frozen=True, slots=True)
class CommitInfo:
    tx_id: int
    changes: list[RowChange]
    stream_ids: list[str]


class Transaction:
    """Write buffer over the Redis tables.

    Reads go to the buffer first, then to Redis. Nothing reaches Redis until
    `commit()`, which applies every write plus one change-stream entry per
    changed row in a single MULTI/EXEC. Dropping the object discards the
    buffer, which is how a failed reducer is rolled back.

    Callers must hold the world lock for the whole read-modify-commit cycle.
    """

    def __init__(self, *, r: redis.Redis) -> None:
        self._r = r
        # table -> key -> raw JSON (None == deleted)
        self._writes: dict[str, dict[str, str | None]] = {}
        # table -> key -> raw JSON as first read from Redis
        self._originals: dict[str, dict[str, str | None]] = {}
        self._seqs: dict[str, int] = {}
        self._closed = False

    def _original(self, table: str, key: str) -> str | None:
        cache = self._originals.setdefault(table, {})
        if key not in cache:
            cache[key] = self._r.hget(table_key(table), key)
        return cache[key]

    def get(self, table: str, key: str) -> str | None:
        pending = self._writes.get(table, {})
        if key in pending:
            return pending[key]
        return self._original(table, key)

    def put(self, table: str, key: str, raw: str) -> None:
        self._check_open()
        self._original(table, key)
        self._writes.setdefault(table, {})[key] = raw

    def remove(self, table: str, key: str) -> None:
        self._check_open()
        self._original(table, key)
        self._writes.setdefault(table, {})[key] = None

    def next_id(self, name: str) -> int:
        self._check_open()
        if name not in self._seqs:
            self._seqs[name] = int(self._r.get(seq_key(name)) or 0)
        self._seqs[name] += 1
        return self._seqs[name]

    def pending_changes(self) -> list[RowChange]:
        changes: list[RowChange] = []
        for table, rows in self._writes.items():
            for key, raw in rows.items():
                before = self._originals.get(table, {}).get(key)
                if before is None and raw is None:
                    # Inserted and deleted inside the same reducer.
                    continue
                if before is None:
                    changes.append(RowChange(table=table, op="insert", key=key, row=raw))
                elif raw is None:
                    changes.append(RowChange(table=table, op="delete", key=key, row=before))
                elif raw != before:
                    changes.append(RowChange(table=table, op="update", key=key, row=raw))
        return changes

    def commit(self, *, reducer: str, sender: str, lock_token: str | None = None) -> CommitInfo:
        """Apply the buffer in one MULTI/EXEC.

        With `lock_token`, the commit only goes through while the world lock
        still carries that token; otherwise it raises WorldBusyError and
        writes nothing.
        """

        self._check_open()
        self._closed = True

        changes = self.pending_changes()
        if not changes and not self._seqs:
            return CommitInfo(tx_id=0, changes=[], stream_ids=[])

        with self._r.pipeline(transaction=True) as pipe:
            try:
                if lock_token is not None and not holds_world_lock(pipe, lock_token):
                    raise WorldBusyError("World lock expired before commit")
                pipe.watch(TX_COUNTER_KEY)
                tx_id = int(pipe.get(TX_COUNTER_KEY) or 0) + 1

                pipe.multi()
                pipe.set(TX_COUNTER_KEY, tx_id)
                for change in changes:
                    if change.op == "delete":
                        pipe.hdel(table_key(change.table), change.key)
                    else:
                        pipe.hset(table_key(change.table), change.key, change.row or "")
                for name, value in self._seqs.items():
                    pipe.set(seq_key(name), value)
                for change in changes:
                    pipe.xadd(
                        CHANGES_STREAM_KEY,
                        {
                            "tx": str(tx_id),
                            "reducer": reducer,
                            "sender": sender,
                            "table": change.table,
                            "op": change.op,
                            "key": change.key,
                            "row": change.row or "",
                        },
                    )
                results = pipe.execute()
            except WatchError as e:
                raise WorldBusyError("World lock lost during commit") from e

        # xadd results are the trailing entries of the pipeline reply.
        stream_ids = [str(x) for x in results[len(results) - len(changes) :]] if changes else []
        return CommitInfo(tx_id=tx_id, changes=changes, stream_ids=stream_ids)

    def rollback(self) -> None:
        self._closed = True
        self._writes.clear()
        self._seqs.clear()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Transaction already closed")


def _row_order(row: dict[str, Any]) -> tuple[bool, Any]:
    key = row.get("id", row.get("player_id", ""))
    # Numeric ids numerically, string ids lexically; a table only ever holds one kind.
    return isinstance(key, str), key


def _sorted_rows(raw_rows: dict[str, str]) -> list[dict[str, Any]]:
    rows = [json.loads(raw) for raw in raw_rows.values()]
    rows.sort(key=_row_order)
    return rows


def read_table(*, r: redis.Redis, table: str) -> list[dict[str, Any]]:
    return _sorted_rows(r.hgetall(table_key(table)))


def read_snapshot(*, r: redis.Redis) -> tuple[str, dict[str, list[dict[str, Any]]]]:
    """Read every table plus the latest change-stream id in one MULTI/EXEC."""

    pipe = r.pipeline(transaction=True)
    for table in TABLES:
        pipe.hgetall(table_key(table))
    pipe.xrevrange(CHANGES_STREAM_KEY, count=1)
    results = pipe.execute()

    tables: dict[str, list[dict[str, Any]]] = {}
    for table, raw_rows in zip(TABLES, results[: len(TABLES)]):
        tables[table] = _sorted_rows(raw_rows)

    last = results[-1]
    offset = str(last[0][0]) if last else "0-0"
    return offset, tables
