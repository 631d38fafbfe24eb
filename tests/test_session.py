from __future__ import annotations

import json
import random

import pytest

from worldstate.api.models import PlayerStatus
from worldstate.errors import InvariantViolation, NotFoundError
from worldstate.store import read_table, table_key


def _stored_player(r, identity: str) -> dict:
    raw = r.hget(table_key("player"), identity)
    assert raw is not None
    return json.loads(raw)


def test_first_connect_creates_empty_active_player(r, call) -> None:
    res = call("connect", sender="alice")
    player = res.value

    assert player.identity == "alice"
    assert player.player_id == 1
    assert player.status == PlayerStatus.active
    assert player.name == ""
    assert player.money == 0
    assert player.items == []
    assert player.equipped_weapon is None


def test_player_ids_are_unique_and_survive_reconnect(call) -> None:
    a = call("connect", sender="alice").value
    b = call("connect", sender="bob").value
    assert a.player_id != b.player_id

    call("disconnect", sender="alice")
    again = call("connect", sender="alice").value
    assert again.player_id == a.player_id


def test_connect_disconnect_connect_restores_everything(r, call) -> None:
    call("connect", sender="alice")
    call("EnterGame", sender="alice", name="Alice")
    call("AddItem", id=11, name="Sword")
    call("AddExistingItemToPlayer", playerIdentity="alice", itemId=11)
    call("EquipWeapon", sender="alice", itemId=11)
    before = _stored_player(r, "alice")

    res = call("disconnect", sender="alice")
    assert res.value.status == PlayerStatus.logged_out
    logged_out = _stored_player(r, "alice")
    assert logged_out["status"] == "logged_out"
    assert {k: v for k, v in logged_out.items() if k != "status"} == {k: v for k, v in before.items() if k != "status"}

    call("connect", sender="alice")
    assert _stored_player(r, "alice") == before


def test_disconnect_without_active_player_is_an_invariant_violation(r, call) -> None:
    with pytest.raises(InvariantViolation):
        call("disconnect", sender="ghost")
    assert r.hgetall(table_key("player")) == {}

    call("connect", sender="alice")
    call("disconnect", sender="alice")
    with pytest.raises(InvariantViolation):
        call("disconnect", sender="alice")
    assert _stored_player(r, "alice")["status"] == "logged_out"


def test_second_connect_while_active_is_rejected(r, call) -> None:
    call("connect", sender="alice")
    with pytest.raises(InvariantViolation):
        call("connect", sender="alice")
    assert len(read_table(r=r, table="player")) == 1


def test_enter_game_sets_name_only_for_active_player(call) -> None:
    with pytest.raises(NotFoundError):
        call("EnterGame", sender="alice", name="Alice")

    call("connect", sender="alice")
    res = call("EnterGame", sender="alice", name="Alice")
    assert res.value.name == "Alice"

    call("disconnect", sender="alice")
    with pytest.raises(NotFoundError):
        call("EnterGame", sender="alice", name="Bob")


def test_one_record_per_identity_across_random_interleavings(r, call) -> None:
    rng = random.Random(1234)
    identities = ["a", "b", "c"]
    seen: set[str] = set()

    for _ in range(200):
        identity = rng.choice(identities)
        op = rng.choice(["connect", "disconnect"])
        try:
            call(op, sender=identity)
        except InvariantViolation:
            pass
        else:
            if op == "connect":
                seen.add(identity)

        rows = read_table(r=r, table="player")
        identities_in_table = [row["identity"] for row in rows]
        # Never both, never neither once connected.
        assert len(identities_in_table) == len(set(identities_in_table))
        assert set(identities_in_table) == seen
        assert all(row["status"] in {"active", "logged_out"} for row in rows)
