from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Catalog records


class Item(BaseModel):
    id: int = Field(..., ge=0)
    name: str = ""
    quantity: int = Field(1, ge=0)


class Weapon(BaseModel):
    id: int = Field(..., ge=0)
    name: str
    attack: int = Field(0, ge=0)


class Armor(BaseModel):
    id: int = Field(..., ge=0)
    name: str
    defence: int = Field(0, ge=0)


class Consumable(BaseModel):
    id: int = Field(..., ge=0)
    name: str
    # Healing, buffs, etc.
    value: int = Field(0, ge=0)


class Station(BaseModel):
    id: str
    name: str
    items: list[Item] = Field(default_factory=list)


class Train(BaseModel):
    # Station ids are not checked against the station table.
    id: str
    from_station_id: str
    to_station_id: str
    money: int = Field(0, ge=0)


# ---------------------------------------------------------------------------
# Players


class PlayerStatus(StrEnum):
    active = "active"
    logged_out = "logged_out"


class HeldItem(BaseModel):
    """A copy of a catalog Item taken when it was bound to a player.

    `seq` is local to the owning player; catalog changes never reach these copies.
    """

    seq: int
    id: int
    name: str
    quantity: int


class ItemRef(BaseModel):
    id: int
    quantity: int = 1


class Player(BaseModel):
    identity: str
    player_id: int = Field(..., ge=0)
    status: PlayerStatus = PlayerStatus.active

    # Set by EnterGame; empty until then.
    name: str = ""
    money: int = Field(0, ge=0)

    items: list[HeldItem] = Field(default_factory=list)
    equipped_weapon: ItemRef | None = None
    equipped_armor: ItemRef | None = None
    consumables: list[HeldItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Reducer arguments. Wire names follow the client SDK (camelCase ids);
# snake_case field names are accepted as well.


class ReducerArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class NoArgs(ReducerArgs):
    pass


class AddItemArgs(ReducerArgs):
    item_id: int = Field(..., ge=0, alias="id")
    name: str = ""


class IdArgs(ReducerArgs):
    item_id: int = Field(..., ge=0, alias="id")


class AddWeaponArgs(ReducerArgs):
    name: str
    attack: int = Field(..., ge=0)


class AddArmorArgs(ReducerArgs):
    name: str
    defence: int = Field(..., ge=0)


class AddConsumableArgs(ReducerArgs):
    name: str
    value: int = Field(..., ge=0)


class AddTrainArgs(ReducerArgs):
    train_id: str = Field(..., alias="id")
    from_station_id: str = Field(..., alias="fromStationId")
    to_station_id: str = Field(..., alias="toStationId")
    money: int = Field(0, ge=0)


class AddStationArgs(ReducerArgs):
    station_id: str = Field(..., alias="id")
    name: str


class KeyArgs(ReducerArgs):
    key: str = Field(..., alias="id")


class EnterGameArgs(ReducerArgs):
    name: str = Field(..., max_length=64)


class PlayerItemArgs(ReducerArgs):
    player_identity: str = Field(..., alias="playerIdentity")
    item_id: int = Field(..., ge=0, alias="itemId")


class ItemIdArgs(ReducerArgs):
    item_id: int = Field(..., ge=0, alias="itemId")


# ---------------------------------------------------------------------------
# HTTP responses


class RowChangeModel(BaseModel):
    table: str
    op: str
    key: str
    row: dict[str, Any] | None = None


class ReducerResponse(BaseModel):
    reducer: str
    sender: str
    result: Any = None
    changes: list[RowChangeModel] = Field(default_factory=list)


class SessionResponse(BaseModel):
    identity: str
    player: Player


class TableResponse(BaseModel):
    table: str
    rows: list[dict[str, Any]]


class SnapshotResponse(BaseModel):
    offset: str
    tables: dict[str, list[dict[str, Any]]]


class ChangeEntry(BaseModel):
    id: str
    fields: dict[str, str]


class ChangesResponse(BaseModel):
    stream: str
    changes: list[ChangeEntry]
