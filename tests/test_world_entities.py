from __future__ import annotations

import pytest

from worldstate.errors import NotFoundError, UniqueConstraintViolation
from worldstate.store import read_table, table_key


def test_add_weapon_registers_companion_item(r, call) -> None:
    weapon = call("AddWeapon", name="Sword", attack=10).value

    assert weapon.attack == 10
    items = read_table(r=r, table="item")
    assert items == [{"id": weapon.id, "name": "Sword", "quantity": 1}]

    call("DeleteWeapon", id=weapon.id)
    assert read_table(r=r, table="weapon") == []
    assert read_table(r=r, table="item") == []


def test_specialized_records_never_share_ids(r, call) -> None:
    weapon = call("AddWeapon", name="Axe", attack=7).value
    armor = call("AddArmor", name="Mail", defence=4).value
    consumable = call("AddConsumable", name="Bread", value=2).value

    assert len({weapon.id, armor.id, consumable.id}) == 3
    assert all(row["quantity"] == 1 for row in read_table(r=r, table="item"))


def test_catalog_ids_skip_items_that_already_exist(r, call) -> None:
    call("AddItem", id=1, name="Rock")

    armor = call("AddArmor", name="Helmet", defence=3).value

    assert armor.id == 2
    assert read_table(r=r, table="item") == [
        {"id": 1, "name": "Rock", "quantity": 1},
        {"id": 2, "name": "Helmet", "quantity": 1},
    ]


def test_delete_armor_and_consumable_remove_companions(r, call) -> None:
    armor = call("AddArmor", name="Mail", defence=4).value
    potion = call("AddConsumable", name="Potion", value=25).value

    call("DeleteArmor", id=armor.id)
    call("DeleteConsumable", id=potion.id)

    assert read_table(r=r, table="armor") == []
    assert read_table(r=r, table="consumables") == []
    assert read_table(r=r, table="item") == []


def test_delete_specialized_decrements_a_stacked_companion(r, call) -> None:
    weapon = call("AddWeapon", name="Sword", attack=10).value
    call("AddItem", id=weapon.id, name="Sword")

    call("DeleteWeapon", id=weapon.id)

    assert read_table(r=r, table="item") == [{"id": weapon.id, "name": "Sword", "quantity": 1}]


def test_delete_weapon_rolls_back_when_companion_is_missing(r, call) -> None:
    weapon = call("AddWeapon", name="Sword", attack=10).value
    call("DeleteItem", id=weapon.id)

    with pytest.raises(NotFoundError):
        call("DeleteWeapon", id=weapon.id)

    # The weapon delete happened first inside the reducer but was never committed.
    assert r.hget(table_key("weapon"), str(weapon.id)) is not None


@pytest.mark.parametrize("reducer", ["DeleteWeapon", "DeleteArmor", "DeleteConsumable"])
def test_delete_unknown_specialized_record(call, reducer: str) -> None:
    with pytest.raises(NotFoundError):
        call(reducer, id=404)


def test_trains_have_no_referential_check(r, call) -> None:
    train = call("AddTrain", id="t1", fromStationId="nowhere", toStationId="elsewhere", money=50).value

    assert train.from_station_id == "nowhere"
    assert read_table(r=r, table="station") == []

    call("DeleteTrain", id="t1")
    assert read_table(r=r, table="train") == []
    with pytest.raises(NotFoundError):
        call("DeleteTrain", id="t1")


def test_train_and_station_keys_are_unique(call) -> None:
    call("AddTrain", id="t1", fromStationId="a", toStationId="b", money=0)
    with pytest.raises(UniqueConstraintViolation):
        call("AddTrain", id="t1", fromStationId="c", toStationId="d", money=0)

    call("AddStation", id="s1", name="Central")
    with pytest.raises(UniqueConstraintViolation):
        call("AddStation", id="s1", name="Other")


def test_stations_start_empty_and_can_be_deleted(r, call) -> None:
    station = call("AddStation", id="s1", name="Central").value
    assert station.items == []

    call("DeleteStation", id="s1")
    assert read_table(r=r, table="station") == []
    with pytest.raises(NotFoundError):
        call("DeleteStation", id="s1")


def test_tables_list_rows_in_key_order(r, call) -> None:
    for station_id in ("b", "aa", "c"):
        call("AddStation", id=station_id, name=station_id.upper())
    for item_id in (10, 2, 1):
        call("AddItem", id=item_id)

    assert [row["id"] for row in read_table(r=r, table="station")] == ["aa", "b", "c"]
    assert [row["id"] for row in read_table(r=r, table="item")] == [1, 2, 10]
