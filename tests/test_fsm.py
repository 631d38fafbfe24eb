from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from worldstate.api.models import Player, PlayerStatus
from worldstate.fsm import UNKNOWN, SessionFSM


def _player(status: PlayerStatus) -> Player:
    return Player(identity="abc", player_id=1, status=status)


def test_unknown_identity_starts_in_unknown_and_can_connect() -> None:
    fsm = SessionFSM(None)
    assert fsm.current_state.value == UNKNOWN

    fsm.send("connect")
    assert fsm.current_state == fsm.active


def test_disconnect_requires_active() -> None:
    with pytest.raises(TransitionNotAllowed):
        SessionFSM(None).send("disconnect")

    with pytest.raises(TransitionNotAllowed):
        SessionFSM(_player(PlayerStatus.logged_out)).send("disconnect")


def test_connect_while_active_is_not_allowed() -> None:
    with pytest.raises(TransitionNotAllowed):
        SessionFSM(_player(PlayerStatus.active)).send("connect")


def test_round_trip_syncs_status_to_model() -> None:
    player = _player(PlayerStatus.active)
    fsm = SessionFSM(player)

    fsm.send("disconnect")
    fsm.sync_status_to_model()
    assert player.status == PlayerStatus.logged_out

    fsm = SessionFSM(player)
    fsm.send("connect")
    fsm.sync_status_to_model()
    assert player.status == PlayerStatus.active


def test_enter_game_is_a_self_transition() -> None:
    fsm = SessionFSM(_player(PlayerStatus.active))
    fsm.send("enter_game")
    assert fsm.current_state == fsm.active

    with pytest.raises(TransitionNotAllowed):
        SessionFSM(_player(PlayerStatus.logged_out)).send("enter_game")
