"""Booking service - the entry point handlers call.

Services:
- Depend only on interfaces (stores, notifier, charge authority)
- Validate identifiers and domain invariants
- Orchestrate pricing, splitting and finalizing
- Return domain results or raise domain errors
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import date, datetime
from uuid import UUID

from bookings.conf import booking_setting, local_now, partial_payment_rate
from bookings.domain import (
    Activity,
    ParticipantCount,
    Profile,
    SlotAvailability,
    SlotStatus,
)
from bookings.domain.errors import (
    ActivityNotFoundError,
    AgentPricingRequiredError,
    AgentRoleRequiredError,
    BookingNotFoundError,
    InvalidIdentifierError,
    InvalidParticipantCountError,
)
from bookings.services.availability import SlotAvailabilityTracker
from bookings.services.charge import ChargeAuthority
from bookings.services.finalizer import BookingFinalizer, BookingSelection, FinalizedBooking
from bookings.services.notifications import BookingNotifier, Notifier, load_notifier
from bookings.services.payment_split import (
    CommissionBreakdown,
    PaymentPolicy,
    PaymentSplit,
    PaymentSplitCalculator,
)
from bookings.services.pricing import (
    AgentPricing,
    CouponValidation,
    CouponValidator,
    PricingResolver,
    ResolvedPrice,
    StoreCouponValidator,
    check_coupon,
)
from bookings.stores import BookingRepository, RecordStore


def parse_id(value: str | UUID, field: str) -> UUID:
    """Parse an identifier.

    Raises:
        InvalidIdentifierError: If the value is not a valid UUID.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidIdentifierError(field) from None


@dataclass(frozen=True)
class SlotListing:
    availability: SlotAvailability
    status: SlotStatus


@dataclass(frozen=True)
class Quote:
    price: ResolvedPrice
    split: PaymentSplit
    coupon: CouponValidation | None = None


class BookingService:
    """Service for availability, quoting and booking."""

    def __init__(
        self,
        repository: BookingRepository,
        tracker: SlotAvailabilityTracker,
        resolver: PricingResolver,
        coupon_validator: CouponValidator,
        calculator: PaymentSplitCalculator,
        finalizer: BookingFinalizer,
        max_participants: int = 50,
        few_spots_threshold: int = 3,
    ) -> None:
        self._repository = repository
        self._tracker = tracker
        self._resolver = resolver
        self._coupon_validator = coupon_validator
        self._calculator = calculator
        self._finalizer = finalizer
        self._max_participants = max_participants
        self._few_spots_threshold = few_spots_threshold

    def _participants(self, participant_count: int) -> int:
        try:
            return ParticipantCount(participant_count, maximum=self._max_participants).value
        except ValueError as exc:
            raise InvalidParticipantCountError(str(exc)) from exc

    async def _activity(self, activity_id: str | UUID) -> Activity:
        parsed = parse_id(activity_id, "activity_id")
        activity = await self._repository.get_activity(parsed)
        if activity is None:
            raise ActivityNotFoundError(parsed)
        return activity

    async def purchaser(
        self, user_id: int | None, as_agent: bool = False
    ) -> Profile | None:
        """Return the profile of the signed-in account making a booking.

        Anonymous callers and accounts without a profile get None.

        Raises:
            AgentRoleRequiredError: If an agent booking is asked for and the
                profile does not carry the agent role.
        """
        profile = None
        if user_id is not None:
            profile = await self._repository.get_profile_for_user(user_id)
        if as_agent and (profile is None or not profile.is_agent):
            raise AgentRoleRequiredError()
        return profile

    async def list_slots(
        self, activity_id: str | UUID, day: date, participant_count: int = 1
    ) -> list[SlotListing]:
        """Return every slot of an activity on a date with its display status.

        Raises:
            InvalidIdentifierError: If the activity_id is not a valid UUID.
            ActivityNotFoundError: If the activity does not exist or is inactive.
            InvalidParticipantCountError: If the count is out of bounds.
        """
        count = self._participants(participant_count)
        activity = await self._activity(activity_id)
        slots = await self._tracker.list_slots(activity.id, day)
        return [
            SlotListing(
                availability=slot,
                status=slot.status(count, self._few_spots_threshold),
            )
            for slot in slots
        ]

    async def available_dates(
        self,
        activity_id: str | UUID,
        participant_count: int = 1,
        days: int | None = None,
    ) -> list[date]:
        count = self._participants(participant_count)
        window = booking_setting("BOOKING_WINDOW_DAYS")
        days = window if days is None else max(1, min(days, window))
        return await self._tracker.available_dates(
            parse_id(activity_id, "activity_id"), count, days
        )

    async def validate_coupon(
        self, activity_id: str | UUID, code: str | None
    ) -> CouponValidation:
        """Check a coupon against an activity's per-person price.

        Raises:
            InvalidCouponError: For an empty code or any rejection.
        """
        activity = await self._activity(activity_id)
        return await check_coupon(self._coupon_validator, code, activity)

    async def _price(
        self,
        activity: Activity,
        participant_count: int,
        coupon_code: str | None,
        agent_pricing: AgentPricing | None,
    ) -> tuple[ResolvedPrice, CouponValidation | None]:
        coupon = None
        # Agent prices replace the coupon path entirely.
        if coupon_code and agent_pricing is None:
            coupon = await check_coupon(self._coupon_validator, coupon_code, activity)
        price = self._resolver.resolve(
            activity, participant_count, coupon=coupon, agent_pricing=agent_pricing
        )
        return price, coupon

    def _policy(
        self, agent_pricing: AgentPricing | None, partial_payment: bool
    ) -> PaymentPolicy:
        if agent_pricing is not None:
            return PaymentPolicy.agent(agent_pricing.advance_payment)
        return PaymentPolicy.for_customer(partial_payment)

    async def quote(
        self,
        activity_id: str | UUID,
        participant_count: int,
        coupon_code: str | None = None,
        agent_pricing: AgentPricing | None = None,
        partial_payment: bool = False,
    ) -> Quote:
        """Resolve the total and split it into upfront and due.

        Raises:
            InvalidCouponError: If a coupon code was given and rejected.
            AdvanceExceedsTotalError: If an agent advance is above the total.
        """
        count = self._participants(participant_count)
        activity = await self._activity(activity_id)
        price, coupon = await self._price(activity, count, coupon_code, agent_pricing)
        split = self._calculator.split(
            price.total, self._policy(agent_pricing, partial_payment)
        )
        return Quote(price=price, split=split, coupon=coupon)

    async def submit(
        self,
        selection: BookingSelection,
        agent_pricing: AgentPricing | None = None,
        partial_payment: bool = False,
        charge_authority: ChargeAuthority | None = None,
    ) -> FinalizedBooking:
        """Price the selection server-side and run the finalize sequence."""
        if selection.is_agent and agent_pricing is None:
            raise AgentPricingRequiredError("selling_price")
        if selection.is_agent:
            selection = replace(selection, b2b_price=agent_pricing.b2b_price)
        else:
            agent_pricing = None
        count = self._participants(selection.participant_count)
        activity = await self._activity(selection.activity_id)
        price, _ = await self._price(activity, count, selection.coupon_code, agent_pricing)
        split = self._calculator.split(
            price.total, self._policy(agent_pricing, partial_payment)
        )
        return await self._finalizer.finalize(
            selection, price, split, charge_authority=charge_authority
        )

    async def commission(self, booking_id: str | UUID) -> CommissionBreakdown:
        """Recompute a booking's commission figures from its snapshots.

        Raises:
            InvalidIdentifierError: If the booking_id is not a valid UUID.
            BookingNotFoundError: If the booking does not exist.
            ActivityNotFoundError: If the booked activity no longer exists.
        """
        parsed = parse_id(booking_id, "booking_id")
        booking = await self._repository.get_booking(parsed)
        if booking is None:
            raise BookingNotFoundError(parsed)
        activity = await self._repository.get_activity(
            booking.activity_id, active_only=False
        )
        if activity is None:
            raise ActivityNotFoundError(booking.activity_id)
        return self._calculator.commission_for(booking, activity.base_price.amount)


def build_booking_service(
    store: RecordStore,
    clock: Callable[[], datetime] = local_now,
    notifier: Notifier | None = None,
    charge_authority: ChargeAuthority | None = None,
) -> BookingService:
    """Wire a BookingService from settings."""
    repository = BookingRepository(store)
    tracker = SlotAvailabilityTracker(repository, clock)
    calculator = PaymentSplitCalculator(partial_payment_rate())
    max_participants = booking_setting("MAX_PARTICIPANTS")
    booking_notifier = BookingNotifier(
        notifier or load_notifier(),
        country_code=booking_setting("DEFAULT_COUNTRY_CODE"),
        admin_phones=booking_setting("ADMIN_PHONE_NUMBERS"),
    )
    finalizer = BookingFinalizer(
        repository,
        tracker,
        calculator,
        booking_notifier,
        charge_authority=charge_authority,
        max_participants=max_participants,
    )
    return BookingService(
        repository=repository,
        tracker=tracker,
        resolver=PricingResolver(),
        coupon_validator=StoreCouponValidator(repository, clock),
        calculator=calculator,
        finalizer=finalizer,
        max_participants=max_participants,
        few_spots_threshold=booking_setting("FEW_SPOTS_THRESHOLD"),
    )
