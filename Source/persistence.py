"""
Persistence module for Splitbill

Saves the bill snapshot into a string key-value store and reads it back.
Saving is best-effort: a failing store never affects the in-memory bill.
Loaded data is treated as untrusted and every field is checked.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from config import STATE_KEY
from constants import FIRST_STEP, STEPS
from data_models import BillState, Item, Person
from log_config import get_logger

logger = get_logger(__name__)

# Step ids written by the browser version of the app
LEGACY_STEP_PREFIX = 'step-'


class StorageError(Exception):
    """Raised by key-value stores for any read or write failure"""


class KeyValueStore(ABC):
    """Minimal string store the bill snapshot lives in"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Dict-backed store; ``quota`` (in characters) mimics browser storage limits"""

    def __init__(self, quota: Optional[int] = None):
        self.data: Dict[str, str] = {}
        self.quota = quota

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self.data.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageError(f"Quota of {self.quota} characters exceeded")
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Keys and values kept as one JSON object in a file"""

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self.path}")
        return data

    def _read_for_update(self) -> Dict[str, str]:
        """Current content, or nothing when the file is damaged and will be overwritten"""
        try:
            return self._read_all()
        except StorageError as e:
            logger.warning("Replacing unreadable store: %s", e)
            return {}

    def _write_all(self, data: Dict[str, str]) -> None:
        # temp file plus rename, so an interrupted write never leaves a truncated store
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=self.path.parent,
                                             prefix=f".{self.path.name}.", suffix='.tmp',
                                             delete=False) as f:
                tmp_name = f.name
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_for_update()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        try:
            data = self._read_all()
        except StorageError as e:
            logger.warning("Replacing unreadable store: %s", e)
            self._write_all({})
            return
        if key in data:
            del data[key]
            self._write_all(data)


def state_to_dict(state: BillState) -> Dict[str, Any]:
    """Snapshot in the persisted schema"""
    return {
        'currentStep': state.current_step,
        'items': [
            {'id': item.id, 'label': item.label, 'price': item.price, 'qty': item.qty}
            for item in state.items
        ],
        'people': [{'id': p.id, 'name': p.name} for p in state.people],
        'assignments': {str(item_id): list(pids) for item_id, pids in state.assignments.items()},
        'nextItemId': state.next_item_id,
        'nextPersonId': state.next_person_id,
    }


def _reject_bool(value):
    if isinstance(value, bool):
        raise ValueError("booleans are not ids")
    return value


SnapshotId = Annotated[int, BeforeValidator(_reject_bool)]

_ID_ADAPTER = TypeAdapter(SnapshotId)


def _valid_id(value) -> Optional[int]:
    try:
        return _ID_ADAPTER.validate_python(value)
    except ValidationError:
        return None


def _valid_entries(model, raw) -> list:
    """Entries that validate, first occurrence of each id only"""
    if not isinstance(raw, list):
        return []
    entries = []
    seen = set()
    for entry in raw:
        try:
            parsed = model.model_validate(entry)
        except ValidationError as e:
            logger.debug("Dropping %s entry %r: %s", model.__name__, entry, e)
            continue
        if parsed.id in seen:
            continue
        seen.add(parsed.id)
        entries.append(parsed)
    return entries


class ItemEntry(BaseModel):
    """Persisted item; an id is required, everything else has a default"""
    model_config = ConfigDict(extra='ignore')

    id: SnapshotId
    label: str = ''
    price: str = ''
    qty: int = 1

    @field_validator('label', mode='before')
    @classmethod
    def text_label(cls, value):
        return value if isinstance(value, str) else ''

    @field_validator('price', mode='before')
    @classmethod
    def text_price(cls, value):
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return ''
        return str(value)

    @field_validator('qty', mode='wrap')
    @classmethod
    def positive_qty(cls, value, handler):
        # snapshots from before quantities existed have no qty
        try:
            qty = handler(value)
        except ValidationError:
            return 1
        return qty if qty >= 1 else 1

    def to_item(self) -> Item:
        return Item(id=self.id, label=self.label, price=self.price, qty=self.qty)


class PersonEntry(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: SnapshotId
    name: str

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name is blank")
        return value

    def to_person(self) -> Person:
        return Person(id=self.id, name=self.name)


class BillSnapshot(BaseModel):
    """Validated form of the persisted bill; malformed parts fall back to defaults"""
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    current_step: str = Field(FIRST_STEP, alias='currentStep')
    items: List[ItemEntry] = Field(default_factory=list)
    people: List[PersonEntry] = Field(default_factory=list)
    assignments: Dict[int, List[int]] = Field(default_factory=dict)
    next_item_id: int = Field(1, alias='nextItemId')
    next_person_id: int = Field(1, alias='nextPersonId')

    @field_validator('current_step', mode='before')
    @classmethod
    def known_step(cls, value):
        if isinstance(value, str):
            if value.startswith(LEGACY_STEP_PREFIX):
                value = value[len(LEGACY_STEP_PREFIX):]
            if value in STEPS:
                return value
        return FIRST_STEP

    @field_validator('items', mode='before')
    @classmethod
    def valid_items(cls, value):
        return _valid_entries(ItemEntry, value)

    @field_validator('people', mode='before')
    @classmethod
    def valid_people(cls, value):
        return _valid_entries(PersonEntry, value)

    @field_validator('assignments', mode='before')
    @classmethod
    def valid_assignments(cls, value):
        if not isinstance(value, dict):
            return {}
        assignments = {}
        for key, pids in value.items():
            item_id = _valid_id(key)
            if item_id is None or not isinstance(pids, list):
                continue
            kept = []
            for pid in map(_valid_id, pids):
                if pid is not None and pid not in kept:
                    kept.append(pid)
            assignments[item_id] = kept
        return assignments

    @field_validator('next_item_id', 'next_person_id', mode='wrap')
    @classmethod
    def positive_counter(cls, value, handler):
        try:
            counter = handler(value)
        except ValidationError:
            return 1
        return counter if counter >= 1 else 1

    def to_state(self) -> BillState:
        return BillState(
            items=[entry.to_item() for entry in self.items],
            people=[entry.to_person() for entry in self.people],
            assignments={item_id: list(pids) for item_id, pids in self.assignments.items()},
            current_step=self.current_step,
            next_item_id=self.next_item_id,
            next_person_id=self.next_person_id,
        )


def state_from_dict(data: Dict[str, Any]) -> BillState:
    """Rebuild a BillState, defaulting anything missing or malformed"""
    return BillSnapshot.model_validate(data).to_state()


class PersistenceAdapter:
    """Reads and writes the bill snapshot under a single key"""

    def __init__(self, store: KeyValueStore, key: str = STATE_KEY):
        self.store = store
        self.key = key

    def save(self, state: BillState) -> bool:
        try:
            self.store.set(self.key, json.dumps(state_to_dict(state), ensure_ascii=False))
        except (StorageError, TypeError, ValueError) as e:
            logger.warning("Could not save bill state: %s", e)
            return False
        return True

    def load(self) -> Optional[BillState]:
        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logger.warning("Could not read bill state: %s", e)
            return None
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Ignoring unreadable bill state: %s", e)
            return None
        try:
            return state_from_dict(data)
        except ValidationError as e:
            logger.warning("Ignoring bill state of type %s: %s", type(data).__name__, e)
            return None

    def clear(self) -> None:
        try:
            self.store.remove(self.key)
        except StorageError as e:
            logger.warning("Could not clear bill state: %s", e)
