"""Unit tests for the booking wizard state machine.

Run with: pytest tests/test_wizard.py -v
"""

import uuid
from datetime import date

import pytest

from bookings.domain.errors import MissingSelectionError
from bookings.services import wizard
from bookings.services.wizard import LayoutMode, Step, WizardState

ACTIVITY = uuid.uuid4()
SLOT = uuid.uuid4()
DAY = date(2026, 3, 12)


def filled(state: WizardState) -> WizardState:
    state = wizard.select_activity(state, ACTIVITY)
    state = wizard.select_date(state, DAY)
    return wizard.select_slot(state, SLOT)


class TestLayouts:
    """Tests for the step sequences of each layout."""

    def test_desktop_has_two_steps(self):
        """Desktop merges activity, date and slot into one step."""
        state = WizardState.start(LayoutMode.DESKTOP)
        assert state.steps == (Step.SELECT_ACTIVITY, Step.ENTER_DETAILS)
        assert state.step is Step.SELECT_ACTIVITY

    def test_mobile_has_three_steps(self):
        """Mobile asks for the activity first, then date and slot."""
        state = WizardState.start(LayoutMode.MOBILE)
        assert len(state.steps) == 3
        assert state.step_number == 1

    def test_mobile_with_preselected_activity(self):
        """A preselected activity starts mobile at the date step."""
        state = WizardState.start(LayoutMode.MOBILE, activity_id=ACTIVITY)
        assert state.step is Step.SELECT_DATE_TIME
        assert state.activity_id == ACTIVITY


class TestAdvance:
    """Tests for forward transitions."""

    def test_desktop_requires_all_selections(self):
        """Desktop names every missing field in one message."""
        transition = wizard.advance(WizardState.start(LayoutMode.DESKTOP))
        assert not transition.accepted
        assert transition.missing == ("activity", "date", "time_slot")
        assert transition.message == "Please select activity, date, and time slot"
        assert transition.title == "Missing information"

    def test_desktop_missing_slot_only(self):
        """Only the missing field is named."""
        state = wizard.select_activity(WizardState.start(LayoutMode.DESKTOP), ACTIVITY)
        state = wizard.select_date(state, DAY)
        transition = wizard.advance(state)
        assert transition.message == "Please select time slot"

    def test_desktop_advances_when_complete(self):
        """With everything chosen, desktop moves to the details step."""
        transition = wizard.advance(filled(WizardState.start(LayoutMode.DESKTOP)))
        assert transition.accepted
        assert transition.state.is_final_step
        assert transition.title is None

    def test_mobile_activity_step_needs_only_activity(self):
        """Mobile's first step only checks the activity."""
        state = wizard.select_activity(WizardState.start(LayoutMode.MOBILE), ACTIVITY)
        transition = wizard.advance(state)
        assert transition.accepted
        assert transition.state.step is Step.SELECT_DATE_TIME

    def test_mobile_date_step_needs_date_and_slot(self):
        """Mobile's second step requires both date and slot."""
        state = wizard.select_activity(WizardState.start(LayoutMode.MOBILE), ACTIVITY)
        state = wizard.advance(state).state
        transition = wizard.advance(state)
        assert not transition.accepted
        assert transition.message == "Please select date and time slot"

    def test_cannot_advance_past_final_step(self):
        """The details step has no next step."""
        state = wizard.advance(filled(WizardState.start(LayoutMode.DESKTOP))).state
        assert not wizard.advance(state).accepted


class TestSelections:
    """Tests for selection changes."""

    def test_changing_activity_clears_slot(self):
        """A slot belongs to one activity, so a new activity clears it."""
        state = filled(WizardState.start(LayoutMode.DESKTOP))
        state = wizard.select_activity(state, uuid.uuid4())
        assert state.time_slot_id is None
        assert state.booking_date == DAY

    def test_reselecting_same_activity_keeps_slot(self):
        """Choosing the same activity again changes nothing."""
        state = filled(WizardState.start(LayoutMode.DESKTOP))
        assert wizard.select_activity(state, ACTIVITY) == state

    def test_changing_date_clears_slot(self):
        """A new date clears the slot."""
        state = filled(WizardState.start(LayoutMode.DESKTOP))
        state = wizard.select_date(state, date(2026, 4, 1))
        assert state.time_slot_id is None


class TestGoBack:
    """Tests for backward transitions."""

    def test_back_keeps_data(self):
        """Going back does not clear entered data."""
        state = wizard.advance(filled(WizardState.start(LayoutMode.DESKTOP))).state
        back = wizard.go_back(state)
        assert back.step is Step.SELECT_ACTIVITY
        assert (back.activity_id, back.booking_date, back.time_slot_id) == (ACTIVITY, DAY, SLOT)

    def test_back_from_first_step_stays(self):
        """There is nothing before the first step."""
        state = WizardState.start(LayoutMode.MOBILE)
        assert wizard.go_back(state) == state


class TestSubmission:
    """Tests for the submission lock."""

    def final_state(self) -> WizardState:
        return wizard.advance(filled(WizardState.start(LayoutMode.DESKTOP))).state

    def test_lock_blocks_second_submission(self):
        """A submission in flight rejects another one."""
        locked = wizard.begin_submission(self.final_state())
        assert locked.accepted
        assert locked.state.submitting
        assert not wizard.begin_submission(locked.state).accepted

    def test_submission_requires_final_step(self):
        """Submitting from an earlier step is rejected."""
        assert not wizard.begin_submission(WizardState.start(LayoutMode.DESKTOP)).accepted

    def test_failure_unlocks(self):
        """A failed submission can be retried."""
        locked = wizard.begin_submission(self.final_state()).state
        retry = wizard.begin_submission(wizard.submission_failed(locked))
        assert retry.accepted

    def test_success_resets(self):
        """A successful submission resets to the initial state."""
        locked = wizard.begin_submission(self.final_state()).state
        reset = wizard.submission_succeeded(locked)
        assert reset == WizardState.start(LayoutMode.DESKTOP)

    def test_success_keeps_preselected_activity(self):
        """A page-level activity survives the reset."""
        state = WizardState.start(LayoutMode.MOBILE, activity_id=ACTIVITY)
        state = wizard.select_slot(wizard.select_date(state, DAY), SLOT)
        state = wizard.advance(state).state
        reset = wizard.submission_succeeded(wizard.begin_submission(state).state)
        assert reset.activity_id == ACTIVITY
        assert reset.step is Step.SELECT_DATE_TIME


class TestRequireSelection:
    """Tests for require_selection."""

    def test_missing_fields_raise(self):
        """Missing slot and date raise with the wizard message."""
        with pytest.raises(MissingSelectionError) as excinfo:
            wizard.require_selection(ACTIVITY, None, None)
        assert excinfo.value.missing == ("date", "time_slot")
        assert excinfo.value.message == "Please select date and time slot"

    def test_complete_selection_passes(self):
        """A full selection raises nothing."""
        wizard.require_selection(ACTIVITY, DAY, SLOT)
