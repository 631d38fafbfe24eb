"""Catalog entities: weapons, armor, consumables, trains and stations.

Weapons, armor and consumables are registered in two steps: insert the
specialized record, then register a companion Item with the same id through
the ledger. Deletes run the same steps in the same order; if the companion
Item is gone the reducer fails and nothing is committed.
"""

from __future__ import annotations

import logging

from worldstate.api.models import Armor, Consumable, Station, Train, Weapon
from worldstate.core.context import ReducerContext
from worldstate.ledger import add_item, delete_item


logger = logging.getLogger(__name__)


def add_weapon(ctx: ReducerContext, *, name: str, attack: int) -> Weapon:
    weapon = ctx.db.weapon.insert(Weapon(id=ctx.db.next_catalog_id(), name=name, attack=attack))
    add_item(ctx, item_id=weapon.id, name=weapon.name)
    return weapon


def delete_weapon(ctx: ReducerContext, *, item_id: int) -> None:
    weapon = ctx.db.weapon.require(item_id)
    ctx.db.weapon.delete(weapon.id)
    delete_item(ctx, item_id=item_id)


def add_armor(ctx: ReducerContext, *, name: str, defence: int) -> Armor:
    armor = ctx.db.armor.insert(Armor(id=ctx.db.next_catalog_id(), name=name, defence=defence))
    add_item(ctx, item_id=armor.id, name=armor.name)
    return armor


def delete_armor(ctx: ReducerContext, *, item_id: int) -> None:
    armor = ctx.db.armor.require(item_id)
    ctx.db.armor.delete(armor.id)
    delete_item(ctx, item_id=item_id)


def add_consumable(ctx: ReducerContext, *, name: str, value: int) -> Consumable:
    consumable = ctx.db.consumables.insert(Consumable(id=ctx.db.next_catalog_id(), name=name, value=value))
    add_item(ctx, item_id=consumable.id, name=consumable.name)
    return consumable


def delete_consumable(ctx: ReducerContext, *, item_id: int) -> None:
    consumable = ctx.db.consumables.require(item_id)
    ctx.db.consumables.delete(consumable.id)
    delete_item(ctx, item_id=item_id)


def add_train(ctx: ReducerContext, *, train_id: str, from_station_id: str, to_station_id: str, money: int) -> Train:
    train = Train(id=train_id, from_station_id=from_station_id, to_station_id=to_station_id, money=money)
    logger.info("[AddTrain] %s: %s -> %s", train_id, from_station_id, to_station_id)
    return ctx.db.train.insert(train)


def delete_train(ctx: ReducerContext, *, key: str) -> None:
    train = ctx.db.train.require(key)
    ctx.db.train.delete(train.id)


def add_station(ctx: ReducerContext, *, station_id: str, name: str) -> Station:
    logger.info("[AddStation] %s (%s)", station_id, name)
    return ctx.db.station.insert(Station(id=station_id, name=name, items=[]))


def delete_station(ctx: ReducerContext, *, key: str) -> None:
    station = ctx.db.station.require(key)
    ctx.db.station.delete(station.id)
