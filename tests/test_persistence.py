import json

import pytest

from bill_store import BillStore
from config import STATE_KEY
from data_models import BillState
from persistence import (
    JsonFileStore,
    MemoryStore,
    PersistenceAdapter,
    StorageError,
    state_from_dict,
    state_to_dict,
)


def _session_state(store: BillStore) -> BillState:
    store.load_parsed([])
    store.advance('items')
    pizza = store.add_item("Pizza", "12.50")
    cola = store.add_item("Cola", "1.20", qty=3)
    store.duplicate_item(cola.id)
    ana = store.add_person("Ana")
    bob = store.add_person("Bob")
    store.advance('people')
    store.advance('assign')
    store.assign_all(cola.id)
    store.toggle(pizza.id, ana.id)
    store.remove_person(bob.id)
    return store.state


def test_round_trip_of_a_reachable_state(persistence) -> None:
    state = _session_state(BillStore(persistence=persistence))

    assert persistence.load() == state


def test_round_trip_through_a_file(tmp_path) -> None:
    adapter = PersistenceAdapter(JsonFileStore(tmp_path / "nested" / "state.json"))
    state = _session_state(BillStore(persistence=adapter))

    assert adapter.load() == state

    adapter.clear()
    assert adapter.load() is None


def test_snapshot_schema() -> None:
    state = BillState(current_step="people", next_item_id=5, next_person_id=2)

    assert state_to_dict(state) == {
        "currentStep": "people",
        "items": [],
        "people": [],
        "assignments": {},
        "nextItemId": 5,
        "nextPersonId": 2,
    }


def test_missing_fields_fall_back_to_defaults() -> None:
    assert state_from_dict({}) == BillState()


def test_items_without_quantity_get_one() -> None:
    state = state_from_dict({"items": [{"id": 4, "label": "Supa", "price": "4.50"}]})

    assert state.items[0].qty == 1
    assert state.items[0].price == "4.50"


@pytest.mark.parametrize("step, expected", [
    ("assign", "assign"),
    ("step-summary", "summary"),
    ("checkout", "upload"),
    (3, "upload"),
    (None, "upload"),
])
def test_persisted_step_is_validated(step, expected) -> None:
    assert state_from_dict({"currentStep": step}).current_step == expected


def test_malformed_entries_are_dropped() -> None:
    state = state_from_dict({
        "items": [{"id": 1, "label": "Supa", "price": 4.5, "qty": 0}, "junk", {"label": "no id"},
                  {"id": 1, "label": "dup"}],
        "people": [{"id": "2", "name": "Ana"}, {"id": 3, "name": "  "}, {"id": True, "name": "Bob"}],
        "assignments": {"1": [2, "2", None], "x": [2], "5": "2"},
        "nextItemId": "seven",
        "nextPersonId": 3,
        "extra": {"ignored": True},
    })

    assert [(i.id, i.label, i.price, i.qty) for i in state.items] == [(1, "Supa", "4.5", 1)]
    assert [(p.id, p.name) for p in state.people] == [(2, "Ana")]
    assert state.assignments == {1: [2]}
    assert state.next_item_id == 1
    assert state.next_person_id == 3


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "null", ""])
def test_unreadable_snapshot_loads_nothing(raw) -> None:
    store = MemoryStore()
    store.set(STATE_KEY, raw)

    assert PersistenceAdapter(store).load() is None


def test_quota_errors_are_swallowed() -> None:
    adapter = PersistenceAdapter(MemoryStore(quota=10))
    bill = BillStore(persistence=adapter)

    item = bill.add_item("A rather long label", "1.00")

    assert bill.state.items == [item]
    assert adapter.save(bill.state) is False
    assert adapter.load() is None


class BrokenStore(MemoryStore):
    def get(self, key):
        raise StorageError("disabled")

    def remove(self, key):
        raise StorageError("disabled")


def test_read_and_clear_failures_are_swallowed() -> None:
    adapter = PersistenceAdapter(BrokenStore())

    assert adapter.load() is None
    adapter.clear()


def test_corrupt_file_raises_storage_error(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{{{", encoding="utf-8")
    file_store = JsonFileStore(path)

    with pytest.raises(StorageError):
        file_store.get(STATE_KEY)
    assert PersistenceAdapter(file_store).load() is None


def test_file_store_keeps_other_keys(tmp_path) -> None:
    path = tmp_path / "state.json"
    file_store = JsonFileStore(path)
    file_store.set("a", "1")
    file_store.set("b", "2")
    file_store.remove("a")

    assert json.loads(path.read_text(encoding="utf-8")) == {"b": "2"}
    assert file_store.get("a") is None


def test_corrupt_file_is_replaced_on_save_and_clear(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text('{"splitbill-state": "{\\"items', encoding="utf-8")
    adapter = PersistenceAdapter(JsonFileStore(path))
    bill = BillStore(persistence=adapter)

    bill.add_item("Pizza", "12.50")

    assert [i.label for i in adapter.load().items] == ["Pizza"]

    bill.reset()

    assert adapter.load() is None
    assert json.loads(path.read_text(encoding="utf-8")) == {}

    bill.add_person("Ana")

    assert [p.name for p in adapter.load().people] == ["Ana"]


def test_clear_recovers_a_corrupt_file(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{{{", encoding="utf-8")
    adapter = PersistenceAdapter(JsonFileStore(path))

    adapter.clear()

    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_failed_write_keeps_previous_content(tmp_path, monkeypatch) -> None:
    path = tmp_path / "state.json"
    file_store = JsonFileStore(path)
    file_store.set("a", "1")

    def disk_full(*args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("persistence.json.dump", disk_full)

    with pytest.raises(StorageError):
        file_store.set("a", "2")
    monkeypatch.undo()

    assert file_store.get("a") == "1"
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


def test_fractional_and_boolean_ids_are_rejected() -> None:
    state = state_from_dict({
        "items": [{"id": 1.5, "label": "half"}, {"id": 2.0, "label": "Supa", "qty": "2"}],
        "people": [{"id": False, "name": "Ana"}, {"id": 4, "name": 7}],
        "assignments": {"2": [True, 1.0]},
    })

    assert [(i.id, i.label, i.qty) for i in state.items] == [(2, "Supa", 2)]
    assert state.people == []
    assert state.assignments == {2: [1]}
