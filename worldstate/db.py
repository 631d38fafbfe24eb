from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from worldstate.api.models import Armor, Consumable, Item, Player, Station, Train, Weapon
from worldstate.errors import NotFoundError, UniqueConstraintViolation
from worldstate.store import Transaction


ModelT = TypeVar("ModelT", bound=BaseModel)

# Weapons, armor and consumables share one id space; their companion Items use the same ids.
CATALOG_SEQ = "catalog"
PLAYER_SEQ = "player"


@dataclass(frozen=True, slots=True)
class TableSpec(Generic[ModelT]):
    name: str
    model: type[ModelT]
    key_field: str
    # Human-friendly label for error messages.
    label: str


class TableHandle(Generic[ModelT]):
    """Typed access to one table inside a transaction."""

    def __init__(self, *, tx: Transaction, spec: TableSpec[ModelT]) -> None:
        self._tx = tx
        self.spec = spec

    def _key_of(self, row: ModelT) -> str:
        return str(getattr(row, self.spec.key_field))

    def find(self, key: object) -> ModelT | None:
        raw = self._tx.get(self.spec.name, str(key))
        if raw is None:
            return None
        return self.spec.model.model_validate_json(raw)

    def require(self, key: object) -> ModelT:
        row = self.find(key)
        if row is None:
            raise NotFoundError(self.spec.label, key)
        return row

    def exists(self, key: object) -> bool:
        return self._tx.get(self.spec.name, str(key)) is not None

    def insert(self, row: ModelT) -> ModelT:
        key = self._key_of(row)
        if self.exists(key):
            raise UniqueConstraintViolation(self.spec.name, key)
        self._tx.put(self.spec.name, key, row.model_dump_json())
        return row

    def update(self, row: ModelT) -> ModelT:
        key = self._key_of(row)
        if not self.exists(key):
            raise NotFoundError(self.spec.label, key)
        self._tx.put(self.spec.name, key, row.model_dump_json())
        return row

    def delete(self, key: object) -> bool:
        if not self.exists(key):
            return False
        self._tx.remove(self.spec.name, str(key))
        return True


ITEM = TableSpec(name="item", model=Item, key_field="id", label="Item")
WEAPON = TableSpec(name="weapon", model=Weapon, key_field="id", label="Weapon")
ARMOR = TableSpec(name="armor", model=Armor, key_field="id", label="Armor")
CONSUMABLES = TableSpec(name="consumables", model=Consumable, key_field="id", label="Consumable")
STATION = TableSpec(name="station", model=Station, key_field="id", label="Station")
TRAIN = TableSpec(name="train", model=Train, key_field="id", label="Train")
PLAYER = TableSpec(name="player", model=Player, key_field="identity", label="Player")


class Database:
    """All tables, bound to one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self.tx = tx
        self.item = TableHandle(tx=tx, spec=ITEM)
        self.weapon = TableHandle(tx=tx, spec=WEAPON)
        self.armor = TableHandle(tx=tx, spec=ARMOR)
        self.consumables = TableHandle(tx=tx, spec=CONSUMABLES)
        self.station = TableHandle(tx=tx, spec=STATION)
        self.train = TableHandle(tx=tx, spec=TRAIN)
        self.player = TableHandle(tx=tx, spec=PLAYER)

    def next_catalog_id(self) -> int:
        """Allocate an id for a weapon/armor/consumable that no Item already uses."""

        while True:
            candidate = self.tx.next_id(CATALOG_SEQ)
            if not self.item.exists(candidate):
                return candidate

    def next_player_id(self) -> int:
        return self.tx.next_id(PLAYER_SEQ)
