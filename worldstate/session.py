"""Session lifecycle: moving a player between active and logged-out.

A player is one record keyed by identity with a status tag, so an identity is
never active and logged out at the same time. Transitions only flip the tag;
name, money and inventory are carried over verbatim.
"""

from __future__ import annotations

import logging

from statemachine.exceptions import TransitionNotAllowed

from worldstate.api.models import Player, PlayerStatus
from worldstate.core.context import ReducerContext
from worldstate.errors import InvariantViolation, NotFoundError
from worldstate.fsm import SessionFSM


logger = logging.getLogger(__name__)


def require_active_player(ctx: ReducerContext, identity: str) -> Player:
    """Return the active player for `identity`; logged-out players count as missing."""

    player = ctx.db.player.find(identity)
    if player is None or player.status != PlayerStatus.active:
        raise NotFoundError("Player", identity)
    return player


def connect(ctx: ReducerContext) -> Player:
    logger.info("[Connect] Client connected: %s", ctx.sender)

    player = ctx.db.player.find(ctx.sender)
    fsm = SessionFSM(player)
    try:
        fsm.send("connect")
    except TransitionNotAllowed as e:
        raise InvariantViolation(f"[Connect] Player {ctx.sender} is already connected") from e

    if player is not None:
        logger.info("[Connect] Found logged out player, moving to active players.")
        fsm.sync_status_to_model()
        return ctx.db.player.update(player)

    logger.info("[Connect] No logged out player found, creating new player.")
    player = Player(
        identity=ctx.sender,
        player_id=ctx.db.next_player_id(),
        status=PlayerStatus.active,
        name="",
        money=0,
    )
    return ctx.db.player.insert(player)


def disconnect(ctx: ReducerContext) -> Player:
    logger.info("[Disconnect] Client disconnected: %s", ctx.sender)

    player = ctx.db.player.find(ctx.sender)
    fsm = SessionFSM(player)
    try:
        fsm.send("disconnect")
    except TransitionNotAllowed as e:
        raise InvariantViolation("[Disconnect] Player not found") from e

    fsm.sync_status_to_model()
    ctx.db.player.update(player)
    logger.info("[Disconnect] Player moved to logged_out_player.")
    return player


def enter_game(ctx: ReducerContext, *, name: str) -> Player:
    player = require_active_player(ctx, ctx.sender)
    SessionFSM(player).send("enter_game")

    player.name = name
    logger.info("[EnterGame] Player %s entered as %r", player.player_id, name)
    return ctx.db.player.update(player)
