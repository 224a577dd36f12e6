"""Receipt text to settlement, the way the wizard drives it."""

import pytest

from bill_splitter import BillSplitter
from bill_store import BillStore
from persistence import MemoryStore, PersistenceAdapter
from receipt_parser import parse_receipt_text
from wizard import WizardController


def test_receipt_to_settlement() -> None:
    persistence = PersistenceAdapter(MemoryStore())
    store = BillStore(persistence=persistence)
    wizard = WizardController(store)

    store.load_parsed(parse_receipt_text("Pizza 12,50\nCola 3x 1,20\nОБЩА СУМА 16,10"))
    assert wizard.next()
    pizza, cola = store.state.items
    assert (pizza.label, pizza.price, pizza.qty) == ("Pizza", "12.50", 1)
    assert (cola.label, cola.price, cola.qty) == ("Cola", "1.20", 3)
    assert store.bill_total() == pytest.approx(16.10)

    assert wizard.next()
    a = store.add_person("A")
    b = store.add_person("B")
    assert wizard.next()
    store.toggle(pizza.id, a.id)
    store.set_assignment(cola.id, [a.id, b.id])
    assert wizard.next()

    owed = BillSplitter.from_state(store.state).calculate_balances()
    assert owed[a.id] == pytest.approx(14.30)
    assert owed[b.id] == pytest.approx(1.80)

    resumed = BillStore()
    resumed.hydrate(persistence.load())
    assert resumed.state == store.state
    assert resumed.state.current_step == "summary"
