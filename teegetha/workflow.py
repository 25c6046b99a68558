"""
Wizard step state machine.

Steps run in a fixed linear order. Forward moves go one step at a time and
only when the caller vouches for the step's precondition; backward moves
are free up to the current step. SUCCESS is terminal until reset().
"""

from enum import Enum
from typing import List

from loguru import logger

from teegetha.errors import InvalidTransitionError


class WizardStep(str, Enum):
    LANDING = 'LANDING'
    UPLOAD = 'UPLOAD'
    ROSTER = 'ROSTER'
    DESIGN = 'DESIGN'
    SHOP = 'SHOP'
    CHECKOUT = 'CHECKOUT'
    SUCCESS = 'SUCCESS'


STEP_ORDER: List[WizardStep] = list(WizardStep)


class WorkflowStateMachine:
    """Tracks the current wizard step and gates transitions."""

    def __init__(self, step: WizardStep = WizardStep.LANDING):
        self._step = step

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def index(self) -> int:
        return STEP_ORDER.index(self._step)

    @property
    def is_terminal(self) -> bool:
        return self._step == WizardStep.SUCCESS

    def can_reach(self, target: WizardStep) -> bool:
        """True if the step indicator may jump to ``target``."""
        return not self.is_terminal and STEP_ORDER.index(target) <= self.index

    def advance(self, target: WizardStep, precondition: bool = True, reason: str = "") -> WizardStep:
        """
        Move forward exactly one step to ``target``.

        ``precondition`` is the step-specific check evaluated by the caller
        (e.g. roster not empty, total cost above zero).
        """
        if self.is_terminal:
            raise InvalidTransitionError(self._step.value, target.value, "order already completed")
        if STEP_ORDER.index(target) != self.index + 1:
            raise InvalidTransitionError(self._step.value, target.value, "steps must be completed in order")
        if not precondition:
            raise InvalidTransitionError(self._step.value, target.value, reason or "precondition not met")

        logger.debug(f"Wizard step {self._step.value} -> {target.value}")
        self._step = target
        return self._step

    def back(self) -> WizardStep:
        """Go one step earlier; no-op on LANDING and on SUCCESS."""
        if self.index > 0 and not self.is_terminal:
            self._step = STEP_ORDER[self.index - 1]
        return self._step

    def jump_to(self, target: WizardStep) -> WizardStep:
        if self.is_terminal:
            raise InvalidTransitionError(self._step.value, target.value, "order already completed")
        if STEP_ORDER.index(target) > self.index:
            raise InvalidTransitionError(self._step.value, target.value, "cannot skip ahead")
        self._step = target
        return self._step

    def reset(self) -> WizardStep:
        self._step = WizardStep.LANDING
        return self._step
