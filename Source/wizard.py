"""
Wizard module for Splitbill
Step order, forward gating rules and the controller driving the bill store
"""

from typing import Optional

from constants import (
    FIRST_STEP,
    ITEMS_GATE_MESSAGE,
    PEOPLE_GATE_MESSAGE,
    SKIP_STEP_MESSAGE,
    STEPS,
)
from data_models import BillState
from log_config import get_logger

logger = get_logger(__name__)


class StepValidationError(Exception):
    """A forward step was refused; the message is meant for the user"""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step


class UnknownStepError(ValueError):
    """Step name outside the wizard sequence"""


def step_index(step: str) -> int:
    try:
        return STEPS.index(step)
    except ValueError:
        raise UnknownStepError(f"Unknown wizard step: {step!r}") from None


def next_step(step: str) -> Optional[str]:
    idx = step_index(step)
    return STEPS[idx + 1] if idx + 1 < len(STEPS) else None


def previous_step(step: str) -> Optional[str]:
    idx = step_index(step)
    return STEPS[idx - 1] if idx > 0 else None


def check_advance(state: BillState, target: str) -> None:
    """Raise StepValidationError unless state may move forward to target"""
    current = step_index(state.current_step)
    wanted = step_index(target)

    if wanted != current + 1:
        raise StepValidationError(SKIP_STEP_MESSAGE, state.current_step)

    if state.current_step == 'items':
        if not any(item.unit_price > 0 for item in state.items):
            raise StepValidationError(ITEMS_GATE_MESSAGE, 'items')
    elif state.current_step == 'people':
        if not state.people:
            raise StepValidationError(PEOPLE_GATE_MESSAGE, 'people')


def check_back(state: BillState, target: str) -> None:
    if step_index(target) > step_index(state.current_step):
        raise StepValidationError(SKIP_STEP_MESSAGE, state.current_step)


class WizardController:
    """Next/back/stepper navigation over a BillStore.

    Validation failures are remembered in ``error`` so the front end can show
    them inline; a successful move clears it.
    """

    def __init__(self, store):
        self.store = store
        self.error: Optional[str] = None

    @property
    def current_step(self) -> str:
        return self.store.state.current_step

    def _attempt(self, move, target: str) -> bool:
        try:
            move(target)
        except StepValidationError as e:
            logger.debug("Refused move %s -> %s: %s", self.current_step, target, e.message)
            self.error = e.message
            return False
        self.error = None
        return True

    def next(self) -> bool:
        target = next_step(self.current_step)
        if target is None:
            return False
        return self._attempt(self.store.advance, target)

    def back(self) -> bool:
        target = previous_step(self.current_step)
        if target is None:
            return False
        return self._attempt(self.store.go_back, target)

    def select(self, step: str) -> bool:
        """Stepper click: reached steps freely, the next one through gating"""
        if step_index(step) <= step_index(self.current_step):
            return self._attempt(self.store.go_back, step)
        return self._attempt(self.store.advance, step)

    def new_bill(self) -> None:
        self.store.reset()
        self.error = None

    def at_first_step(self) -> bool:
        return self.current_step == FIRST_STEP
