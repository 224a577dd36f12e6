"""Shared pytest fixtures for the splitbill tests."""

import pytest

from bill_store import BillStore
from persistence import MemoryStore, PersistenceAdapter


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def persistence(memory_store):
    return PersistenceAdapter(memory_store)


@pytest.fixture
def store(persistence):
    return BillStore(persistence=persistence)


@pytest.fixture
def dinner(store):
    """Two priced items and two people, still on the items step"""
    store.skip_scan()
    store.advance('items')
    pizza = store.add_item('Pizza', '12.50')
    cola = store.add_item('Cola', '1.20', qty=3)
    ana = store.add_person('Ana')
    bob = store.add_person('Bob')
    return store, pizza, cola, ana, bob
