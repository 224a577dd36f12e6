"""
Bill Store module for Splitbill
Owns the bill state; every change goes through one of its operations
"""

from typing import Callable, Iterable, List, Optional

from constants import FIRST_STEP
from data_models import BillState, Item, ParsedLine, Person, format_money
from log_config import get_logger
from wizard import check_advance, check_back

logger = get_logger(__name__)


class BillStoreError(Exception):
    """Base error for bill store operations"""


class UnknownItemError(BillStoreError, KeyError):
    pass


class UnknownPersonError(BillStoreError, KeyError):
    pass


class InvalidPersonName(BillStoreError, ValueError):
    pass


class BillStore:
    """Single source of truth for items, people, assignments and the current step.

    Each mutation writes through ``persistence`` (when attached) and then
    notifies subscribers, so views re-render from the confirmed state.
    """

    def __init__(self, state: Optional[BillState] = None, persistence=None):
        self._state = state if state is not None else BillState()
        self.persistence = persistence
        self.image_path: Optional[str] = None
        self._listeners: List[Callable] = []
        self._prune_assignments()

    @property
    def state(self) -> BillState:
        return self._state

    # ----- notifications -----

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it"""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    def _commit(self):
        if self.persistence is not None:
            self.persistence.save(self._state)
        self._notify()

    # ----- lookups -----

    def _item(self, item_id: int) -> Item:
        item = self._state.find_item(item_id)
        if item is None:
            raise UnknownItemError(item_id)
        return item

    def _person(self, person_id: int) -> Person:
        person = self._state.find_person(person_id)
        if person is None:
            raise UnknownPersonError(person_id)
        return person

    def assignees(self, item_id: int) -> List[int]:
        return list(self._state.assignments.get(item_id, []))

    def bill_total(self) -> float:
        return sum(item.total for item in self._state.items)

    # ----- items -----

    def _new_item(self, label: str = "", price: str = "", qty: int = 1) -> Item:
        item = Item(id=self._state.next_item_id, label=label, price=price, qty=_positive_qty(qty))
        self._state.next_item_id += 1
        return item

    def add_item(self, label: str = "", price: str = "", qty: int = 1) -> Item:
        item = self._new_item(label, price, qty)
        self._state.items.append(item)
        self._commit()
        return item

    def remove_item(self, item_id: int) -> None:
        item = self._item(item_id)
        self._state.items.remove(item)
        self._state.assignments.pop(item_id, None)
        self._commit()

    def duplicate_item(self, item_id: int) -> Item:
        """Insert a copy right after the original, qty reset to 1, nobody assigned"""
        original = self._item(item_id)
        copy = self._new_item(original.label, original.price, 1)
        position = self._state.items.index(original) + 1
        self._state.items.insert(position, copy)
        self._commit()
        return copy

    def update_item(self, item_id: int, label: Optional[str] = None,
                    price: Optional[str] = None, qty: Optional[int] = None) -> Item:
        item = self._item(item_id)
        if label is not None:
            item.label = label
        if price is not None:
            item.price = str(price)
        if qty is not None:
            item.qty = _positive_qty(qty)
        self._commit()
        return item

    def load_parsed(self, parsed: Iterable[ParsedLine]) -> List[Item]:
        """Replace all items with parser output"""
        items = []
        for line in parsed:
            price = format_money(line.price) if line.price is not None else ""
            items.append(self._new_item(line.label, price, line.qty or 1))
        self._state.items = items
        self._state.assignments = {}
        self._commit()
        return items

    def skip_scan(self) -> None:
        """Start from an empty item list instead of a scanned receipt"""
        self._state.items = []
        self._state.assignments = {}
        self._commit()

    def _prune_blank_items(self):
        kept = [item for item in self._state.items if not item.is_blank()]
        dropped = len(self._state.items) - len(kept)
        if dropped:
            logger.debug("Pruned %d blank item rows", dropped)
        if not kept:
            kept = [self._new_item()]
        self._state.items = kept
        self._prune_assignments()

    # ----- people -----

    def add_person(self, name: str) -> Person:
        name = (name or "").strip()
        if not name:
            raise InvalidPersonName("Person name must not be blank")
        person = Person(id=self._state.next_person_id, name=name)
        self._state.next_person_id += 1
        self._state.people.append(person)
        self._commit()
        return person

    def remove_person(self, person_id: int) -> None:
        person = self._person(person_id)
        self._state.people.remove(person)
        for item_id, person_ids in self._state.assignments.items():
            self._state.assignments[item_id] = [pid for pid in person_ids if pid != person_id]
        self._commit()

    # ----- assignments -----

    def set_assignment(self, item_id: int, person_ids: Iterable[int]) -> List[int]:
        self._item(item_id)
        known = set(self._state.person_ids())
        cleaned = []
        for pid in person_ids:
            if pid in known and pid not in cleaned:
                cleaned.append(pid)
        self._state.assignments[item_id] = cleaned
        self._commit()
        return list(cleaned)

    def toggle(self, item_id: int, person_id: int) -> bool:
        """Flip one person's share of an item; returns True when now assigned"""
        self._item(item_id)
        self._person(person_id)
        current = self._state.assignments.setdefault(item_id, [])
        if person_id in current:
            current.remove(person_id)
            assigned = False
        else:
            current.append(person_id)
            assigned = True
        self._commit()
        return assigned

    def assign_all(self, item_id: int) -> List[int]:
        return self.set_assignment(item_id, self._state.person_ids())

    def assign_none(self, item_id: int) -> List[int]:
        return self.set_assignment(item_id, [])

    def _prune_assignments(self):
        item_ids = {item.id for item in self._state.items}
        person_ids = set(self._state.person_ids())
        pruned = {}
        for item_id, pids in self._state.assignments.items():
            if item_id not in item_ids:
                continue
            kept = []
            for pid in pids:
                if pid in person_ids and pid not in kept:
                    kept.append(pid)
            pruned[item_id] = kept
        self._state.assignments = pruned

    # ----- steps -----

    def advance(self, to_step: str) -> None:
        """Move one step forward; raises StepValidationError when gated"""
        check_advance(self._state, to_step)
        if self._state.current_step == 'items':
            self._prune_blank_items()
        self._state.current_step = to_step
        self._commit()

    def go_back(self, to_step: str) -> None:
        check_back(self._state, to_step)
        self._state.current_step = to_step
        self._commit()

    # ----- image -----

    def set_image(self, image_path: str) -> None:
        self.image_path = image_path
        self._notify()

    def clear_image(self) -> None:
        self.image_path = None
        self._notify()

    # ----- lifecycle -----

    def hydrate(self, state: BillState) -> None:
        """Install a previously saved state, dropping dangling references"""
        self._state = state
        self._state.next_item_id = max(
            [self._state.next_item_id] + [item.id + 1 for item in self._state.items])
        self._state.next_person_id = max(
            [self._state.next_person_id] + [p.id + 1 for p in self._state.people])
        self._prune_assignments()
        self._notify()

    def reset(self) -> None:
        """New bill: empty state, counters back to 1, saved snapshot removed"""
        self._state = BillState(current_step=FIRST_STEP)
        self.image_path = None
        if self.persistence is not None:
            self.persistence.clear()
        self._notify()


def _positive_qty(qty) -> int:
    try:
        return max(1, int(qty))
    except (TypeError, ValueError):
        return 1
