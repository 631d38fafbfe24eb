from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable, Mapping

import redis
from pydantic import BaseModel

from worldstate import equipment, ledger, session, world
from worldstate.api.models import (
    AddArmorArgs,
    AddConsumableArgs,
    AddItemArgs,
    AddStationArgs,
    AddTrainArgs,
    AddWeaponArgs,
    EnterGameArgs,
    IdArgs,
    ItemIdArgs,
    KeyArgs,
    NoArgs,
    PlayerItemArgs,
    ReducerArgs,
)
from worldstate.core.context import ReducerContext
from worldstate.db import Database
from worldstate.errors import ReducerError, WorldBusyError
from worldstate.lock import world_lock
from worldstate.settings import get_settings
from worldstate.store import RowChange, Transaction


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReducerSpec:
    name: str
    handler: Callable[..., Any]
    args_model: type[ReducerArgs]
    # Lifecycle reducers are driven by the session surface, never called directly by clients.
    lifecycle: bool = False


@dataclass(frozen=True, slots=True)
class ReducerResult:
    reducer: str
    sender: str
    value: Any
    changes: list[RowChange]
    stream_ids: list[str]

    def value_as_json(self) -> Any:
        if isinstance(self.value, BaseModel):
            return self.value.model_dump(mode="json")
        return self.value


def _now() -> datetime:
    return datetime.now(tz=UTC)


REDUCERS: dict[str, ReducerSpec] = {
    spec.name: spec
    for spec in (
        ReducerSpec("connect", session.connect, NoArgs, lifecycle=True),
        ReducerSpec("disconnect", session.disconnect, NoArgs, lifecycle=True),
        ReducerSpec("AddItem", ledger.add_item, AddItemArgs),
        ReducerSpec("DeleteItem", ledger.delete_item, IdArgs),
        ReducerSpec("AddWeapon", world.add_weapon, AddWeaponArgs),
        ReducerSpec("DeleteWeapon", world.delete_weapon, IdArgs),
        ReducerSpec("AddArmor", world.add_armor, AddArmorArgs),
        ReducerSpec("DeleteArmor", world.delete_armor, IdArgs),
        ReducerSpec("AddConsumable", world.add_consumable, AddConsumableArgs),
        ReducerSpec("DeleteConsumable", world.delete_consumable, IdArgs),
        ReducerSpec("AddTrain", world.add_train, AddTrainArgs),
        ReducerSpec("DeleteTrain", world.delete_train, KeyArgs),
        ReducerSpec("AddStation", world.add_station, AddStationArgs),
        ReducerSpec("DeleteStation", world.delete_station, KeyArgs),
        ReducerSpec("EnterGame", session.enter_game, EnterGameArgs),
        ReducerSpec("AddExistingItemToPlayer", equipment.add_existing_item_to_player, PlayerItemArgs),
        ReducerSpec("EquipWeapon", equipment.equip_weapon, ItemIdArgs),
        ReducerSpec("EquipArmor", equipment.equip_armor, ItemIdArgs),
        ReducerSpec("AddConsumableToPlayer", equipment.add_consumable_to_player, ItemIdArgs),
    )
}


class LifecycleReducerError(ReducerError):
    pass


def spec_for_reducer(name: str) -> ReducerSpec:
    spec = REDUCERS.get(name)
    if spec is None:
        raise ValueError(f"Unknown reducer: {name}")
    return spec


def dispatch_reducer(
    *,
    r: redis.Redis,
    sender: str,
    reducer: str,
    args: Mapping[str, Any] | None = None,
    allow_lifecycle: bool = False,
) -> ReducerResult:
    """Run one reducer as a single atomic unit.

    - validate arguments against the reducer's pydantic model
    - take the world lock
    - run the handler against a fresh transaction
    - commit every write plus change-stream entries in one MULTI/EXEC

    Any exception drops the transaction, so a rejected reducer writes nothing.
    """

    spec = spec_for_reducer(reducer)
    if spec.lifecycle and not allow_lifecycle:
        raise LifecycleReducerError(f"Reducer '{reducer}' cannot be called directly")

    params = spec.args_model.model_validate(dict(args or {}))
    settings = get_settings()

    with world_lock(r=r, ttl_ms=settings.lock_ttl_ms, wait_ms=settings.lock_wait_ms) as token:
        tx = Transaction(r=r)
        ctx = ReducerContext(sender=sender, db=Database(tx), timestamp=_now())
        try:
            value = spec.handler(ctx, **params.model_dump())
        except ReducerError as e:
            tx.rollback()
            logger.warning("[%s] rejected for %s: %s", reducer, sender, e)
            raise
        except Exception:
            tx.rollback()
            logger.exception("[%s] failed for %s", reducer, sender)
            raise

        try:
            commit = tx.commit(reducer=reducer, sender=sender, lock_token=token)
        except WorldBusyError:
            logger.warning("[%s] lost the world lock before commit for %s", reducer, sender)
            raise

    logger.debug("[%s] committed tx %s with %d change(s)", reducer, commit.tx_id, len(commit.changes))
    return ReducerResult(
        reducer=reducer,
        sender=sender,
        value=value,
        changes=commit.changes,
        stream_ids=commit.stream_ids,
    )
