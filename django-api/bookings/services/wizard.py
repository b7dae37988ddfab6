"""Booking wizard state machine.

The wizard is a value object: each transition takes a ``WizardState`` and
returns a new one. Blocked transitions are results, not exceptions, so the
caller can render the "missing information" message.

Flows:

- desktop: activity + date + slot in one step, then details (2 steps)
- mobile: activity, then date + slot, then details (3 steps)
- mobile with the activity chosen on the page: date + slot, then details
"""

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Self
from uuid import UUID

from bookings.domain.errors import MissingSelectionError

MISSING_TITLE = "Missing information"

FIELD_LABELS = {
    "activity": "activity",
    "date": "date",
    "time_slot": "time slot",
}


class LayoutMode(Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"


class Step(Enum):
    SELECT_ACTIVITY = "select_activity"
    SELECT_DATE_TIME = "select_date_time"
    ENTER_DETAILS = "enter_details"


@dataclass(frozen=True)
class WizardState:
    layout: LayoutMode
    step: Step
    activity_preselected: bool = False
    activity_id: UUID | None = None
    booking_date: date | None = None
    time_slot_id: UUID | None = None
    submitting: bool = False

    @classmethod
    def start(cls, layout: LayoutMode, activity_id: UUID | None = None) -> Self:
        preselected = activity_id is not None
        state = cls(
            layout=layout,
            step=Step.SELECT_ACTIVITY,
            activity_preselected=preselected,
            activity_id=activity_id,
        )
        return replace(state, step=state.steps[0])

    @property
    def steps(self) -> tuple[Step, ...]:
        if self.layout is LayoutMode.DESKTOP:
            return (Step.SELECT_ACTIVITY, Step.ENTER_DETAILS)
        if self.activity_preselected:
            return (Step.SELECT_DATE_TIME, Step.ENTER_DETAILS)
        return (Step.SELECT_ACTIVITY, Step.SELECT_DATE_TIME, Step.ENTER_DETAILS)

    @property
    def step_number(self) -> int:
        return self.steps.index(self.step) + 1

    @property
    def is_final_step(self) -> bool:
        return self.step is Step.ENTER_DETAILS


@dataclass(frozen=True)
class Transition:
    """Outcome of a requested transition."""

    state: WizardState
    accepted: bool
    missing: tuple[str, ...] = ()
    message: str | None = None

    @property
    def title(self) -> str | None:
        return None if self.accepted else MISSING_TITLE


def describe_missing(missing: tuple[str, ...]) -> str:
    labels = [FIELD_LABELS[field] for field in missing]
    if len(labels) == 1:
        text = labels[0]
    elif len(labels) == 2:
        text = f"{labels[0]} and {labels[1]}"
    else:
        text = f"{', '.join(labels[:-1])}, and {labels[-1]}"
    return f"Please select {text}"


def _required_for(state: WizardState) -> tuple[str, ...]:
    if state.step is Step.SELECT_ACTIVITY and state.layout is LayoutMode.DESKTOP:
        return ("activity", "date", "time_slot")
    if state.step is Step.SELECT_ACTIVITY:
        return ("activity",)
    if state.step is Step.SELECT_DATE_TIME:
        return ("date", "time_slot")
    return ()


def _selections(state: WizardState) -> dict[str, object]:
    return {
        "activity": state.activity_id,
        "date": state.booking_date,
        "time_slot": state.time_slot_id,
    }


def _missing(state: WizardState) -> tuple[str, ...]:
    values = _selections(state)
    return tuple(field for field in _required_for(state) if values[field] is None)


def missing_for_submission(state: WizardState) -> tuple[str, ...]:
    return tuple(field for field, value in _selections(state).items() if value is None)


def require_selection(
    activity_id: UUID | None, booking_date: date | None, time_slot_id: UUID | None
) -> None:
    """Raise MissingSelectionError unless activity, date and slot are all set."""
    values = {"activity": activity_id, "date": booking_date, "time_slot": time_slot_id}
    missing = tuple(field for field, value in values.items() if value is None)
    if missing:
        raise MissingSelectionError(describe_missing(missing), missing)


def select_activity(state: WizardState, activity_id: UUID | None) -> WizardState:
    """Choose an activity. A slot belongs to one activity, so it is cleared."""
    if activity_id == state.activity_id:
        return state
    return replace(state, activity_id=activity_id, time_slot_id=None)


def select_date(state: WizardState, booking_date: date | None) -> WizardState:
    """Choose a date. Slot availability is per date, so the slot is cleared."""
    return replace(state, booking_date=booking_date, time_slot_id=None)


def select_slot(state: WizardState, time_slot_id: UUID | None) -> WizardState:
    return replace(state, time_slot_id=time_slot_id)


def advance(state: WizardState) -> Transition:
    if state.is_final_step:
        return Transition(state=state, accepted=False, message="Already at the final step")
    missing = _missing(state)
    if missing:
        return Transition(
            state=state,
            accepted=False,
            missing=missing,
            message=describe_missing(missing),
        )
    next_step = state.steps[state.step_number]
    return Transition(state=replace(state, step=next_step), accepted=True)


def go_back(state: WizardState) -> WizardState:
    """Step backwards. Entered data is kept."""
    if state.step_number == 1:
        return state
    return replace(state, step=state.steps[state.step_number - 2])


def begin_submission(state: WizardState) -> Transition:
    """Lock the wizard while a finalize sequence is in flight."""
    if state.submitting:
        return Transition(
            state=state, accepted=False, message="Your booking is already being processed"
        )
    if not state.is_final_step:
        return Transition(
            state=state, accepted=False, message="Please complete the previous steps"
        )
    missing = missing_for_submission(state)
    if missing:
        return Transition(
            state=state,
            accepted=False,
            missing=missing,
            message=describe_missing(missing),
        )
    return Transition(state=replace(state, submitting=True), accepted=True)


def submission_failed(state: WizardState) -> WizardState:
    """Unlock so the user can retry from the same step."""
    return replace(state, submitting=False)


def submission_succeeded(state: WizardState) -> WizardState:
    """Reset to the initial state once a booking is committed."""
    preselected = state.activity_id if state.activity_preselected else None
    return WizardState.start(state.layout, activity_id=preselected)
