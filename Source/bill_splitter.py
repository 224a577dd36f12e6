"""
Bill Splitter module for Splitbill
Turns item-to-person assignments into what each person owes
"""

from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from config import CURRENCY_LABEL, ZERO_LABEL
from data_models import Item, Person, format_money


def per_person_share(item: Item, assignees: Iterable[int]) -> Optional[float]:
    """Equal share of one item, None when nobody is assigned"""
    count = len(set(assignees))
    if count == 0:
        return None
    return item.total / count


def settle(items: Iterable[Item], assignments: Mapping[int, Iterable[int]],
           people: Iterable[Person]) -> Dict[int, float]:
    """Map every person id to the amount owed.

    Each assigned item is divided evenly among its assignees. Items nobody
    shares add nothing to anyone. Amounts are not rounded here.
    """
    people = list(people)
    owed = {person.id: 0.0 for person in people}

    for item in items:
        total = item.total
        if total <= 0:
            continue
        assignees = [pid for pid in dict.fromkeys(assignments.get(item.id, [])) if pid in owed]
        if not assignees:
            continue
        share = total / len(assignees)
        for pid in assignees:
            owed[pid] += share

    return owed


class BillSplitter:
    """Settlement for one bill, in display order"""

    def __init__(self, items: List[Item], assignments: Mapping[int, Iterable[int]],
                 people: List[Person]):
        self.items = items
        self.assignments = assignments
        self.people = people
        self.balances: Dict[int, float] = {}

    @classmethod
    def from_state(cls, state) -> "BillSplitter":
        return cls(state.items, state.assignments, state.people)

    def calculate_balances(self) -> Dict[int, float]:
        self.balances = settle(self.items, self.assignments, self.people)
        return self.balances

    def bill_total(self) -> float:
        return sum(item.total for item in self.items)

    def unassigned_total(self) -> float:
        """Cost of items nobody has been assigned to"""
        return sum(item.total for item in self.items
                   if item.total > 0 and not self.assignments.get(item.id))

    def ordered_balances(self) -> List[Tuple[Person, float]]:
        """Highest amount first; ties keep the order people were added"""
        if not self.balances:
            self.calculate_balances()
        pairs = [(person, self.balances.get(person.id, 0.0)) for person in self.people]
        # sorted() is stable, so equal amounts stay in insertion order
        return sorted(pairs, key=lambda pair: pair[1], reverse=True)

    def summary_lines(self, currency: str = CURRENCY_LABEL,
                      zero_label: str = ZERO_LABEL) -> List[str]:
        lines = []
        for person, amount in self.ordered_balances():
            lines.append(f"{person.name}: {format_amount(amount, currency, zero_label)}")
        return lines

    def summary_text(self, currency: str = CURRENCY_LABEL,
                     zero_label: str = ZERO_LABEL) -> str:
        """Plain-text export, one "<name>: <amount>" line per person"""
        return '\n'.join(self.summary_lines(currency, zero_label))


def format_amount(amount: float, currency: str = CURRENCY_LABEL,
                  zero_label: str = ZERO_LABEL) -> str:
    if amount == 0:
        return zero_label
    return f"{format_money(amount)} {currency}"
