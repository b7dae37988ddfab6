"""Booking commit sequence.

Steps run strictly in order and each failure stops the ones after it:

1. re-check remaining capacity
2. charge the upfront amount (customers only, when above zero)
3. store the booking row
4. store one participant row per seat
5. count the coupon redemption when the price came from a coupon
6. best effort: backfill the purchaser's phone and send confirmations

Nothing is rolled back. A failure in 3 or 4 after a successful charge is
reported as "payment succeeded but booking failed". A failure in 5 is only
logged, and failures in 6 are warnings on an otherwise confirmed booking.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from bookings.domain import (
    Activity,
    Booking,
    BookingStatus,
    BookingType,
    ContactPerson,
    Money,
    ParticipantCount,
    TimeSlot,
)
from bookings.domain.errors import (
    NOTIFICATION_DELAYED_MESSAGE,
    ActivityNotFoundError,
    AgentPricingRequiredError,
    ExperienceNotFoundError,
    InvalidParticipantCountError,
    PaymentCancelledError,
    PaymentFailedError,
    PersistenceFailedError,
    TimeSlotNotFoundError,
)
from bookings.services.availability import SlotAvailabilityTracker
from bookings.services.charge import (
    ChargeAuthority,
    ChargeOutcome,
    ChargeRequest,
    request_charge,
)
from bookings.services.notifications import BookingNotice, BookingNotifier
from bookings.services.payment_split import PaymentSplit, PaymentSplitCalculator, PolicyKind
from bookings.services.pricing import PriceSource, ResolvedPrice
from bookings.stores.repository import BookingRepository

logger = logging.getLogger(__name__)

PROFILE_PHONE_WARNING = "We couldn't save your phone number to your profile."


@dataclass(frozen=True)
class BookingSelection:
    """What the purchaser chose in the wizard, plus the contact form."""

    experience_id: UUID
    activity_id: UUID
    time_slot_id: UUID
    booking_date: date
    participant_count: int
    contact: ContactPerson
    user_id: UUID | None = None
    is_agent: bool = False
    bypass_payment: bool = False
    b2b_price: Decimal = Decimal("0")
    referral_code: str | None = None
    coupon_code: str | None = None
    note_for_guide: str | None = None


@dataclass(frozen=True)
class FinalizedBooking:
    booking: Booking
    split: PaymentSplit
    warnings: tuple[str, ...] = ()

    @property
    def booking_date(self) -> date:
        return self.booking.booking_date.date()

    @property
    def notification_failed(self) -> bool:
        return NOTIFICATION_DELAYED_MESSAGE in self.warnings


class BookingFinalizer:
    """Validates, charges and commits one booking."""

    def __init__(
        self,
        repository: BookingRepository,
        tracker: SlotAvailabilityTracker,
        calculator: PaymentSplitCalculator,
        notifier: BookingNotifier,
        charge_authority: ChargeAuthority | None = None,
        max_participants: int = 50,
    ) -> None:
        self._repository = repository
        self._tracker = tracker
        self._calculator = calculator
        self._notifier = notifier
        self._charge_authority = charge_authority
        self._max_participants = max_participants

    async def finalize(
        self,
        selection: BookingSelection,
        pricing: ResolvedPrice,
        split: PaymentSplit,
        charge_authority: ChargeAuthority | None = None,
    ) -> FinalizedBooking:
        """Commit a booking.

        Raises:
            InvalidParticipantCountError, AgentPricingRequiredError,
            AdvanceExceedsTotalError, PaymentSplitMismatchError: before any
                store write or charge.
            SlotFullError, CapacityExceededError: capacity re-check failed.
            PaymentCancelledError, PaymentFailedError: charge did not succeed.
            PersistenceFailedError: booking or participant rows not stored.
        """
        self._validate(selection, pricing, split)
        activity, slot = await self._load(selection)

        await self._tracker.ensure_capacity(
            slot, selection.booking_date, selection.participant_count
        )

        booking_id = uuid.uuid4()
        payment_reference = await self._collect(
            selection, pricing, split, booking_id, charge_authority
        )

        booking = Booking(
            id=booking_id,
            user_id=selection.user_id,
            experience_id=selection.experience_id,
            activity_id=activity.id,
            time_slot_id=slot.id,
            booking_date=datetime.combine(selection.booking_date, time.min),
            participant_count=selection.participant_count,
            booking_amount=Money.of(pricing.total, pricing.currency),
            due_amount=Money.of(split.due, pricing.currency),
            b2b_price=self._b2b_snapshot(selection, activity),
            is_agent_booking=selection.is_agent,
            type=BookingType.ONLINE,
            status=BookingStatus.CONFIRMED,
            contact=selection.contact,
            referral_code=await self._referral_code(selection),
            coupon_code=selection.coupon_code,
            note_for_guide=selection.note_for_guide,
            payment_reference=payment_reference,
        )
        await self._persist(booking)
        if pricing.source is PriceSource.COUPON:
            await self._consume_coupon(booking)

        warnings = []
        if not await self._backfill_phone(selection):
            warnings.append(PROFILE_PHONE_WARNING)
        if not await self._notify(booking, activity, slot, split):
            warnings.append(NOTIFICATION_DELAYED_MESSAGE)
        return FinalizedBooking(booking=booking, split=split, warnings=tuple(warnings))

    def _validate(
        self, selection: BookingSelection, pricing: ResolvedPrice, split: PaymentSplit
    ) -> None:
        try:
            ParticipantCount(selection.participant_count, maximum=self._max_participants)
        except ValueError as exc:
            raise InvalidParticipantCountError(str(exc)) from exc
        if selection.is_agent:
            if selection.b2b_price <= 0:
                raise AgentPricingRequiredError("b2b_price")
            if pricing.source is not PriceSource.AGENT:
                raise AgentPricingRequiredError("selling_price")
        self._calculator.verify(pricing.total, split)

    async def _load(self, selection: BookingSelection) -> tuple[Activity, TimeSlot]:
        activity = await self._repository.get_activity(selection.activity_id)
        if activity is None or activity.experience_id != selection.experience_id:
            raise ActivityNotFoundError(selection.activity_id)
        slot = await self._repository.get_time_slot(selection.time_slot_id)
        if slot is None or slot.activity_id != activity.id:
            raise TimeSlotNotFoundError(selection.time_slot_id)
        return activity, slot

    async def _collect(
        self,
        selection: BookingSelection,
        pricing: ResolvedPrice,
        split: PaymentSplit,
        booking_id: UUID,
        charge_authority: ChargeAuthority | None,
    ) -> str | None:
        """Run the charge when one is owed; return the gateway reference."""
        if (
            split.policy.kind is PolicyKind.AGENT
            or selection.is_agent
            or selection.bypass_payment
            or split.upfront <= 0
        ):
            return None
        authority = charge_authority or self._charge_authority
        if authority is None:
            raise PaymentFailedError("No charge authority configured")
        result = await request_charge(
            authority,
            ChargeRequest(
                amount=split.upfront,
                currency=pricing.currency,
                order_id=str(booking_id),
                prefill=selection.contact,
            ),
        )
        if result.outcome is ChargeOutcome.CANCELLED:
            raise PaymentCancelledError()
        if result.outcome is ChargeOutcome.FAILED:
            logger.warning("Charge for order %s failed: %s", booking_id, result.error)
            raise PaymentFailedError(result.error)
        return result.payment_reference

    @staticmethod
    def _b2b_snapshot(selection: BookingSelection, activity: Activity) -> Money:
        if selection.b2b_price != 0:
            return Money.of(selection.b2b_price, activity.currency)
        return activity.b2b_price

    async def _referral_code(self, selection: BookingSelection) -> str | None:
        """Agent bookings carry the agent's name as their referral code."""
        if not selection.is_agent or selection.user_id is None:
            return selection.referral_code
        try:
            agent = await self._repository.get_profile(selection.user_id)
        except Exception:
            logger.exception("Could not load agent profile %s", selection.user_id)
            return selection.referral_code
        if agent is None:
            return selection.referral_code
        return agent.full_name

    async def _persist(self, booking: Booking) -> None:
        try:
            await self._repository.add_booking(booking)
            await self._repository.add_participants(
                booking.id, booking.contact, booking.participant_count
            )
        except Exception as exc:
            logger.exception(
                "Booking %s not stored (payment reference %s)",
                booking.id,
                booking.payment_reference,
            )
            raise PersistenceFailedError(booking.payment_reference) from exc

    async def _consume_coupon(self, booking: Booking) -> None:
        try:
            await self._repository.consume_coupon(booking.coupon_code)
        except Exception:
            logger.exception(
                "Coupon %s not counted for booking %s", booking.coupon_code, booking.id
            )

    async def _backfill_phone(self, selection: BookingSelection) -> bool:
        if selection.user_id is None:
            return True
        try:
            profile = await self._repository.get_profile(selection.user_id)
            if profile is None or profile.is_vendor:
                return True
            if not (profile.phone_number or "").strip():
                await self._repository.set_profile_phone(
                    profile.id, selection.contact.phone_number
                )
        except Exception:
            logger.warning("Phone backfill failed for profile %s", selection.user_id)
            return False
        return True

    async def _notify(
        self, booking: Booking, activity: Activity, slot: TimeSlot, split: PaymentSplit
    ) -> bool:
        try:
            experience = await self._repository.get_experience(booking.experience_id)
            if experience is None:
                raise ExperienceNotFoundError(booking.experience_id)
            vendor_phone = None
            if experience.vendor_id is not None:
                vendor = await self._repository.get_profile(experience.vendor_id)
                vendor_phone = vendor.phone_number if vendor else None
            await self._notifier.notify(
                BookingNotice(
                    booking=booking,
                    experience=experience,
                    activity=activity,
                    slot=slot,
                    upfront=split.upfront,
                    due=split.due,
                    partial_payment=split.policy.kind is PolicyKind.PARTIAL,
                    vendor_phone=vendor_phone,
                )
            )
        except Exception:
            logger.warning("Confirmation for booking %s not sent", booking.id, exc_info=True)
            return False
        return True
