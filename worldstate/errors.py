from __future__ import annotations


class ReducerError(ValueError):
    """Base class for reducer rejections.

    Subclasses ValueError so routes can keep a single `except ValueError` seam
    for both argument validation and domain rejections.
    """


class NotFoundError(ReducerError):
    def __init__(self, what: str, key: object) -> None:
        self.what = what
        self.key = key
        super().__init__(f"{what} {key} not found")


class InvariantViolation(ReducerError):
    """A caller/environment contract was broken (e.g. disconnect without an active player)."""


class UniqueConstraintViolation(ReducerError):
    def __init__(self, table: str, key: object) -> None:
        self.table = table
        self.key = key
        super().__init__(f"Duplicate primary key {key!r} in table '{table}'")


class WorldBusyError(ReducerError):
    """The world lock could not be acquired in time."""
