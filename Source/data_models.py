"""
Data models for Splitbill - receipt items, people and the bill snapshot
"""

import math
from dataclasses import dataclass, field
from typing import List, Dict, Optional

from constants import FIRST_STEP


@dataclass
class ParsedLine:
    """A candidate item produced by the receipt parser"""
    label: str
    price: Optional[float] = None
    qty: int = 1


@dataclass
class Item:
    """A single editable line of the bill. Price is kept as entered text."""
    id: int
    label: str = ""
    price: str = ""
    qty: int = 1

    @property
    def unit_price(self) -> float:
        """Numeric price, 0 when the text is not a usable number"""
        return price_value(self.price)

    @property
    def total(self) -> float:
        return self.unit_price * (self.qty if self.qty is not None else 1)

    def is_blank(self) -> bool:
        return not (self.label or "").strip() and self.unit_price <= 0


@dataclass
class Person:
    """Someone sharing the bill"""
    id: int
    name: str


@dataclass
class BillState:
    """The whole bill: items, people, who shares what, and where the wizard is"""
    items: List[Item] = field(default_factory=list)
    people: List[Person] = field(default_factory=list)
    assignments: Dict[int, List[int]] = field(default_factory=dict)
    current_step: str = FIRST_STEP
    next_item_id: int = 1
    next_person_id: int = 1

    def find_item(self, item_id: int) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_person(self, person_id: int) -> Optional[Person]:
        for person in self.people:
            if person.id == person_id:
                return person
        return None

    def person_ids(self) -> List[int]:
        return [p.id for p in self.people]


def price_value(price) -> float:
    """Convert a stored price (text or number) to a float, 0.0 if unusable"""
    if price is None or isinstance(price, bool):
        return 0.0
    try:
        value = float(str(price).strip().replace(',', '.'))
    except (ValueError, TypeError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def format_money(amount: float) -> str:
    """Two-decimal rendering used everywhere an amount is shown or stored"""
    return f"{amount:.2f}"


@dataclass
class ProcessingMetrics:
    """Timing of the last recognition run"""
    workers_used: int = 0
    processing_time: float = 0.0
    regions_processed: int = 0
    characters: int = 0
