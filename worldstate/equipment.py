from __future__ import annotations

import logging

from worldstate.api.models import HeldItem, Item, ItemRef, Player
from worldstate.core.context import ReducerContext
from worldstate.session import require_active_player


logger = logging.getLogger(__name__)


def _copy_of(item: Item, *, held: list[HeldItem]) -> HeldItem:
    seq = (held[-1].seq + 1) if held else 1
    return HeldItem(seq=seq, id=item.id, name=item.name, quantity=item.quantity)


def add_existing_item_to_player(ctx: ReducerContext, *, player_identity: str, item_id: int) -> Player:
    """Copy a catalog item into a player's inventory.

    The catalog quantity is left alone: it counts the item kind, it is not stock.
    """

    player = require_active_player(ctx, player_identity)
    global_item = ctx.db.item.require(item_id)

    player.items.append(_copy_of(global_item, held=player.items))
    logger.info("[AddExistingItemToPlayer] Item %s added to player %s", item_id, player.player_id)
    return ctx.db.player.update(player)


def equip_weapon(ctx: ReducerContext, *, item_id: int) -> Player:
    player = require_active_player(ctx, ctx.sender)
    player.equipped_weapon = ItemRef(id=item_id, quantity=1)
    logger.info("[EquipWeapon] Player %s equipped weapon %s", player.player_id, item_id)
    return ctx.db.player.update(player)


def equip_armor(ctx: ReducerContext, *, item_id: int) -> Player:
    player = require_active_player(ctx, ctx.sender)
    player.equipped_armor = ItemRef(id=item_id, quantity=1)
    logger.info("[EquipArmor] Player %s equipped armor %s", player.player_id, item_id)
    return ctx.db.player.update(player)


def add_consumable_to_player(ctx: ReducerContext, *, item_id: int) -> Player:
    player = require_active_player(ctx, ctx.sender)
    global_item = ctx.db.item.require(item_id)

    player.consumables.append(_copy_of(global_item, held=player.consumables))
    logger.info("[AddConsumableToPlayer] Consumable %s added to player %s", item_id, player.player_id)
    return ctx.db.player.update(player)
