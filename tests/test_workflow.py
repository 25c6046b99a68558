"""
Tests for the wizard step state machine.
"""

import pytest

from teegetha.errors import InvalidTransitionError
from teegetha.workflow import STEP_ORDER, WizardStep, WorkflowStateMachine


def machine_at(step: WizardStep) -> WorkflowStateMachine:
    return WorkflowStateMachine(step)


class TestAdvance:

    def test_linear_walk(self):
        machine = WorkflowStateMachine()
        for target in STEP_ORDER[1:]:
            assert machine.advance(target) == target
        assert machine.is_terminal

    def test_cannot_skip_steps(self):
        machine = machine_at(WizardStep.ROSTER)
        with pytest.raises(InvalidTransitionError):
            machine.advance(WizardStep.SHOP)
        assert machine.step == WizardStep.ROSTER

    def test_failed_precondition_leaves_step_unchanged(self):
        machine = machine_at(WizardStep.SHOP)
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.advance(WizardStep.CHECKOUT, precondition=False, reason="order total must be greater than zero")

        assert machine.step == WizardStep.SHOP
        assert exc_info.value.details['reason'] == "order total must be greater than zero"

    def test_no_advance_from_success(self):
        machine = machine_at(WizardStep.SUCCESS)
        with pytest.raises(InvalidTransitionError):
            machine.advance(WizardStep.LANDING)


class TestBack:

    @pytest.mark.parametrize('step', STEP_ORDER[1:-1])
    def test_back_goes_one_step_earlier(self, step):
        machine = machine_at(step)
        assert machine.back() == STEP_ORDER[STEP_ORDER.index(step) - 1]

    def test_back_on_landing_is_noop(self):
        assert machine_at(WizardStep.LANDING).back() == WizardStep.LANDING

    def test_back_on_success_is_noop(self):
        assert machine_at(WizardStep.SUCCESS).back() == WizardStep.SUCCESS


class TestJumpTo:

    def test_jump_backwards(self):
        machine = machine_at(WizardStep.CHECKOUT)
        assert machine.jump_to(WizardStep.ROSTER) == WizardStep.ROSTER
        assert machine.jump_to(WizardStep.ROSTER) == WizardStep.ROSTER

    def test_forward_jump_rejected(self):
        machine = machine_at(WizardStep.ROSTER)
        with pytest.raises(InvalidTransitionError):
            machine.jump_to(WizardStep.CHECKOUT)
        assert machine.step == WizardStep.ROSTER

    def test_jump_rejected_from_success(self):
        machine = machine_at(WizardStep.SUCCESS)
        with pytest.raises(InvalidTransitionError):
            machine.jump_to(WizardStep.CHECKOUT)
        assert not machine.can_reach(WizardStep.LANDING)

    def test_can_reach(self):
        machine = machine_at(WizardStep.DESIGN)
        assert machine.can_reach(WizardStep.UPLOAD)
        assert machine.can_reach(WizardStep.DESIGN)
        assert not machine.can_reach(WizardStep.SHOP)


def test_reset_is_the_exit_from_success():
    machine = machine_at(WizardStep.SUCCESS)
    assert machine.reset() == WizardStep.LANDING
    assert machine.advance(WizardStep.UPLOAD) == WizardStep.UPLOAD
