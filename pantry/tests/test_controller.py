import pytest
from google.api_core import exceptions as google_exceptions

from commonlib.storage import InvalidKey, StoreUnavailable
from pantry.controller import InventoryController, filter_items
from pantry.models import InventoryItem


def _names(items):
    return [item.name for item in items]


def _counts(items):
    return {item.name: item.quantity for item in items}


def test_mirror_starts_empty_and_load_populates(firestore_client, controller):
    firestore_client.inventory.update({"rice": {"quantity": 2}, "beans": {"quantity": 1}})
    assert controller.mirror == []
    controller.load()
    assert _counts(controller.mirror) == {"rice": 2, "beans": 1}


def test_refresh_twice_without_mutation_is_stable(firestore_client, controller):
    firestore_client.inventory.update({"rice": {"quantity": 2}, "beans": {"quantity": 1}})
    first = controller.refresh()
    second = controller.refresh()
    assert sorted(first, key=lambda item: item.name) == sorted(second, key=lambda item: item.name)


def test_refresh_replaces_mirror_even_when_empty(firestore_client, controller):
    firestore_client.inventory["rice"] = {"quantity": 2}
    controller.load()
    firestore_client.inventory.clear()
    assert controller.refresh() == []
    assert controller.mirror == []


def test_add_creates_item_at_one(firestore_client, controller):
    written = controller.add_item("rice")
    assert written == InventoryItem(name="rice", quantity=1)
    assert firestore_client.inventory == {"rice": {"quantity": 1}}
    assert controller.mirror == [InventoryItem(name="rice", quantity=1)]


def test_add_increments_existing_item(firestore_client, controller):
    firestore_client.inventory["rice"] = {"quantity": 3}
    controller.add_item("rice")
    assert firestore_client.inventory["rice"] == {"quantity": 4}
    assert _counts(controller.mirror) == {"rice": 4}


def test_add_is_get_then_put_then_list(firestore_client, controller):
    controller.add_item("rice")
    assert firestore_client.calls == [("get", "rice"), ("set", "rice"), ("list", None)]


def test_add_keeps_name_case(firestore_client, controller):
    controller.add_item("Rice")
    controller.add_item("rice")
    assert firestore_client.inventory == {"Rice": {"quantity": 1}, "rice": {"quantity": 1}}


def test_remove_decrements(firestore_client, controller):
    firestore_client.inventory["beans"] = {"quantity": 2}
    assert controller.remove_item("beans") == 1
    assert firestore_client.inventory["beans"] == {"quantity": 1}
    assert _counts(controller.mirror) == {"beans": 1}


def test_remove_deletes_at_one(firestore_client, controller):
    firestore_client.inventory["beans"] = {"quantity": 1}
    controller.load()
    assert controller.remove_item("beans") == 0
    assert "beans" not in firestore_client.inventory
    assert controller.mirror == []


def test_remove_missing_item_is_noop(firestore_client, controller):
    firestore_client.inventory["rice"] = {"quantity": 2}
    assert controller.remove_item("salt") is None
    assert firestore_client.inventory == {"rice": {"quantity": 2}}
    assert firestore_client.calls == [("get", "salt"), ("list", None)]
    assert _counts(controller.mirror) == {"rice": 2}


def test_empty_name_touches_nothing(firestore_client, controller):
    assert controller.add_item("") is None
    assert controller.remove_item("") is None
    assert firestore_client.calls == []


def test_invalid_name_propagates_without_round_trip(firestore_client, controller):
    with pytest.raises(InvalidKey):
        controller.add_item("flour/wheat")
    assert firestore_client.calls == []


def test_quantity_never_drops_below_one(firestore_client, controller):
    actions = ["add", "add", "remove", "remove", "remove", "add", "remove", "add", "add", "remove"]
    for action in actions:
        getattr(controller, f"{action}_item")("oats")
        for body in firestore_client.inventory.values():
            assert body["quantity"] >= 1
    assert firestore_client.inventory == {"oats": {"quantity": 1}}


def test_failed_write_leaves_mirror_and_skips_refresh(firestore_client, controller):
    firestore_client.inventory["rice"] = {"quantity": 3}
    controller.load()
    before = list(controller.mirror)
    firestore_client.calls.clear()
    firestore_client.fail("set", google_exceptions.ServiceUnavailable("backend down"))

    with pytest.raises(StoreUnavailable):
        controller.add_item("rice")

    assert controller.mirror == before
    assert ("list", None) not in firestore_client.calls
    assert firestore_client.inventory["rice"] == {"quantity": 3}


def test_failed_refresh_keeps_previous_mirror(firestore_client, controller):
    firestore_client.inventory["rice"] = {"quantity": 3}
    controller.load()
    firestore_client.fail("list", google_exceptions.DeadlineExceeded("timeout"))
    with pytest.raises(StoreUnavailable):
        controller.add_item("rice")
    # the write landed; only the mirror is stale
    assert firestore_client.inventory["rice"] == {"quantity": 4}
    assert _counts(controller.mirror) == {"rice": 3}


def test_search_is_case_insensitive_substring(firestore_client, controller):
    firestore_client.inventory.update({"Rice": {"quantity": 1}, "Beans": {"quantity": 2}})
    controller.load()

    controller.set_search_query("ri")
    assert _names(controller.filtered_view()) == ["Rice"]

    controller.set_search_query("")
    assert _names(controller.filtered_view()) == ["Rice", "Beans"]


def test_search_query_is_stored_verbatim_without_store_access(firestore_client, controller):
    controller.set_search_query("  BEA ")
    assert controller.search_query == "  BEA "
    assert firestore_client.calls == []


def test_filter_preserves_mirror_order():
    items = [
        InventoryItem(name="Brown Rice", quantity=1),
        InventoryItem(name="Apricots", quantity=2),
        InventoryItem(name="rice noodles", quantity=3),
    ]
    assert _names(filter_items(items, "RICE")) == ["Brown Rice", "rice noodles"]
    assert filter_items(items, "quinoa") == []


def test_submit_add_uses_draft_then_clears_and_closes(firestore_client, controller):
    controller.open_add_dialog()
    controller.set_draft_name("lentils")
    written = controller.submit_add()
    assert written == InventoryItem(name="lentils", quantity=1)
    assert controller.dialog.is_open is False
    assert controller.dialog.draft == ""
    assert _counts(controller.mirror) == {"lentils": 1}


def test_submit_add_failure_keeps_dialog_open(firestore_client, controller):
    firestore_client.fail("get", google_exceptions.ServiceUnavailable("backend down"))
    controller.open_add_dialog()
    controller.set_draft_name("lentils")
    with pytest.raises(StoreUnavailable):
        controller.submit_add()
    assert controller.dialog.is_open is True
    assert controller.dialog.draft == "lentils"


def test_snapshot_reports_visible_items(json_store):
    json_store.put("rice", 2)
    json_store.put("beans", 1)
    controller = InventoryController(json_store)
    controller.load()
    controller.search("bea")
    snapshot = controller.snapshot()
    assert [item["name"] for item in snapshot["items"]] == ["rice", "beans"]
    assert snapshot["visible"] == [{"name": "beans", "quantity": 1, "display_name": "Beans"}]
    assert snapshot["query"] == "bea"
    assert snapshot["dialog"] == {"open": False, "draft": ""}
