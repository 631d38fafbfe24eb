"""Inventory ledger: quantity-counted items in the shared catalog.

Multiple copies of the same item kind collapse into one row with a count.
AddItem increments-or-creates; DeleteItem decrements-or-deletes, so a row is
never stored with quantity 0.
"""

from __future__ import annotations

import logging

from worldstate.api.models import Item
from worldstate.core.context import ReducerContext


logger = logging.getLogger(__name__)


def add_item(ctx: ReducerContext, *, item_id: int, name: str = "") -> Item:
    logger.info("[AddItem] Adding item with ID %s, name %s", item_id, name)

    item = ctx.db.item.find(item_id)
    if item is not None:
        item.quantity += 1
        ctx.db.item.update(item)
        logger.info("[AddItem] Increased quantity of item %s. Current quantity: %s", item_id, item.quantity)
        return item

    item = ctx.db.item.insert(Item(id=item_id, name=name, quantity=1))
    logger.info("[AddItem] Inserted new item with ID %s", item_id)
    return item


def delete_item(ctx: ReducerContext, *, item_id: int) -> Item | None:
    """Remove one unit of an item. Returns what is left, or None once the row is gone."""

    logger.info("[DeleteItem] Deleting item with ID %s", item_id)

    item = ctx.db.item.require(item_id)
    if item.quantity > 1:
        item.quantity -= 1
        ctx.db.item.update(item)
        logger.info("[DeleteItem] Decreased quantity of item %s. Current quantity: %s", item_id, item.quantity)
        return item

    ctx.db.item.delete(item_id)
    logger.info("[DeleteItem] Item %s fully removed!", item_id)
    return None
