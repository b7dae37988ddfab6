"""Unit tests for the booking commit sequence.

Run with: pytest tests/test_finalizer.py -v
"""

import uuid
from decimal import Decimal

import pytest

from bookings.domain import ContactPerson
from bookings.domain.errors import (
    NOTIFICATION_DELAYED_MESSAGE,
    ActivityNotFoundError,
    AdvanceExceedsTotalError,
    AgentPricingRequiredError,
    CapacityExceededError,
    InvalidParticipantCountError,
    PaymentCancelledError,
    PaymentFailedError,
    PersistenceFailedError,
    SlotFullError,
    TimeSlotNotFoundError,
)
from bookings.services.availability import SlotAvailabilityTracker
from bookings.services.finalizer import (
    PROFILE_PHONE_WARNING,
    BookingFinalizer,
    BookingSelection,
)
from bookings.services.notifications import BookingNotifier
from bookings.services.payment_split import (
    PaymentPolicy,
    PaymentSplit,
    PaymentSplitCalculator,
)
from bookings.services.pricing import (
    AgentPricing,
    PriceSource,
    PricingResolver,
    StoreCouponValidator,
    check_coupon,
)
from bookings.stores import BookingRepository, Entity, InMemoryRecordStore
from seed_data import (
    AFTERNOON_SLOT_ID,
    AGENT_ID,
    BACKWATER_ID,
    CRUISE_ID,
    CRUISE_SLOT_ID,
    CUSTOMER_ID,
    EXPERIENCE_ID,
    KAYAK_SLOT_ID,
    MORNING_SLOT_ID,
    TRIP_DAY,
    VENDOR_ID,
    RecordingNotifier,
    ScriptedChargeAuthority,
    booking_row,
    seed_rows,
)

CONTACT = ContactPerson("Meera Nair", "meera@example.com", "9000000001")


class FailingInsertStore(InMemoryRecordStore):
    """Fails inserts into one entity."""

    def __init__(self, seed, failing: Entity) -> None:
        super().__init__(seed)
        self.failing = failing

    async def insert(self, entity, rows):
        if entity is self.failing:
            raise ConnectionError("store unavailable")
        return await super().insert(entity, rows)


def selection(**overrides) -> BookingSelection:
    fields = {
        "experience_id": EXPERIENCE_ID,
        "activity_id": BACKWATER_ID,
        "time_slot_id": MORNING_SLOT_ID,
        "booking_date": TRIP_DAY,
        "participant_count": 3,
        "contact": CONTACT,
        "user_id": CUSTOMER_ID,
    }
    fields.update(overrides)
    return BookingSelection(**fields)


def make_finalizer(store, clock, notifier=None, authority=None) -> BookingFinalizer:
    repository = BookingRepository(store)
    return BookingFinalizer(
        repository,
        SlotAvailabilityTracker(repository, clock),
        PaymentSplitCalculator(Decimal("0.10")),
        BookingNotifier(notifier or RecordingNotifier(), "+91"),
        charge_authority=authority or ScriptedChargeAuthority(),
    )


async def priced(repository, activity_id, count, policy, agent_pricing=None):
    activity = await repository.get_activity(activity_id)
    price = PricingResolver().resolve(activity, count, agent_pricing=agent_pricing)
    split = PaymentSplitCalculator(Decimal("0.10")).split(price.total, policy)
    return price, split


class TestHappyPath:
    """Tests for successful finalization."""

    @pytest.mark.asyncio
    async def test_partial_payment_booking(self, store, repository, clock, notifier):
        """A partial booking charges 10%, stores the row and one participant per seat."""
        authority = ScriptedChargeAuthority("success", "pay_001")
        finalizer = make_finalizer(store, clock, notifier, authority)
        price, split = await priced(repository, BACKWATER_ID, 3, PaymentPolicy.partial())

        result = await finalizer.finalize(selection(), price, split)

        assert authority.requests[0].amount == Decimal("120.00")
        assert authority.requests[0].order_id == str(result.booking.id)
        stored = store.rows(Entity.BOOKINGS)
        assert len(stored) == 1
        row = stored[0]
        assert row["booking_amount"] == Decimal("1200.00")
        assert row["due_amount"] == Decimal("1080.00")
        assert row["b2b_price"] == Decimal("300.00")
        assert row["payment_reference"] == "pay_001"
        assert row["status"] == "confirmed"
        assert row["type"] == "online"
        participants = store.rows(Entity.BOOKING_PARTICIPANTS)
        assert len(participants) == 3
        assert {p["email"] for p in participants} == {"meera@example.com"}
        assert result.warnings == ()
        assert result.booking.upfront_amount.amount == Decimal("120.00")

    @pytest.mark.asyncio
    async def test_result_exposes_calendar_date(self, store, repository, clock):
        """The finalized booking reports the booked day as a date."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())

        result = await finalizer.finalize(selection(participant_count=1), price, split)

        assert result.booking_date == TRIP_DAY
        assert result.booking.booking_date.date() == TRIP_DAY

    @pytest.mark.asyncio
    async def test_backfills_missing_profile_phone(self, store, repository, clock):
        """A purchaser without a phone gets the contact phone."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())
        await finalizer.finalize(selection(participant_count=1), price, split)

        profile = await repository.get_profile(CUSTOMER_ID)
        assert profile.phone_number == "9000000001"

    @pytest.mark.asyncio
    async def test_vendor_profile_is_not_backfilled(self, store, repository, clock):
        """Vendor profiles keep their own phone."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())
        await finalizer.finalize(
            selection(participant_count=1, user_id=VENDOR_ID), price, split
        )

        profile = await repository.get_profile(VENDOR_ID)
        assert profile.phone_number == "9876543210"

    @pytest.mark.asyncio
    async def test_notifies_customer_and_vendor(self, store, repository, clock, notifier):
        """Confirmations go to the customer and the experience's vendor."""
        finalizer = make_finalizer(store, clock, notifier)
        price, split = await priced(repository, BACKWATER_ID, 2, PaymentPolicy.full())
        await finalizer.finalize(selection(participant_count=2), price, split)

        phones = [phone for _, phone, _ in notifier.messages]
        assert phones == ["+919000000001", "+919876543210"]
        assert len(notifier.emails) == 1

    @pytest.mark.asyncio
    async def test_bypass_skips_charge(self, store, repository, clock):
        """Staff bypass commits without a charge."""
        authority = ScriptedChargeAuthority("error")
        finalizer = make_finalizer(store, clock, authority=authority)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())

        result = await finalizer.finalize(
            selection(participant_count=1, bypass_payment=True), price, split
        )

        assert authority.requests == []
        assert result.booking.payment_reference is None
        assert len(store.rows(Entity.BOOKINGS)) == 1


class TestAgentBookings:
    """Tests for agent bookings."""

    @pytest.mark.asyncio
    async def test_agent_booking(self, store, repository, clock):
        """800 x 2 with 500 advance is stored with 1100 due and no charge."""
        authority = ScriptedChargeAuthority()
        finalizer = make_finalizer(store, clock, authority=authority)
        pricing = AgentPricing(
            selling_price=Decimal("800"),
            b2b_price=Decimal("650"),
            advance_payment=Decimal("500"),
        )
        price, split = await priced(
            repository, BACKWATER_ID, 2, PaymentPolicy.agent(Decimal("500")), pricing
        )

        result = await finalizer.finalize(
            selection(
                participant_count=2,
                user_id=AGENT_ID,
                is_agent=True,
                b2b_price=Decimal("650"),
                referral_code="IGNORED",
            ),
            price,
            split,
        )

        assert authority.requests == []
        assert result.booking.booking_amount.amount == Decimal("1600.00")
        assert result.booking.due_amount.amount == Decimal("1100.00")
        assert result.booking.b2b_price.amount == Decimal("650.00")
        assert result.booking.referral_code == "Asha Rao"
        assert result.booking.is_agent_booking

    @pytest.mark.asyncio
    async def test_agent_without_b2b_price(self, store, repository, clock):
        """Agents must enter a B2B price."""
        finalizer = make_finalizer(store, clock)
        pricing = AgentPricing(selling_price=Decimal("800"))
        price, split = await priced(
            repository, BACKWATER_ID, 2, PaymentPolicy.agent(), pricing
        )
        with pytest.raises(AgentPricingRequiredError, match="Please enter B2B Price"):
            await finalizer.finalize(
                selection(participant_count=2, is_agent=True), price, split
            )

    @pytest.mark.asyncio
    async def test_agent_without_selling_price(self, store, repository, clock):
        """Agents must enter a selling price."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 2, PaymentPolicy.agent())
        with pytest.raises(AgentPricingRequiredError, match="Please enter Selling Price"):
            await finalizer.finalize(
                selection(participant_count=2, is_agent=True, b2b_price=Decimal("300")),
                price,
                split,
            )

    @pytest.mark.asyncio
    async def test_advance_above_total_rejected_before_persistence(
        self, store, repository, clock
    ):
        """An advance above the total never reaches the store."""
        finalizer = make_finalizer(store, clock)
        pricing = AgentPricing(selling_price=Decimal("800"), b2b_price=Decimal("650"))
        price, _ = await priced(
            repository, BACKWATER_ID, 2, PaymentPolicy.agent(), pricing
        )
        split = PaymentSplit(
            upfront=Decimal("0.00"),
            due=Decimal("0.00"),
            policy=PaymentPolicy.agent(Decimal("2000")),
        )
        with pytest.raises(AdvanceExceedsTotalError):
            await finalizer.finalize(
                selection(participant_count=2, is_agent=True, b2b_price=Decimal("650")),
                price,
                split,
            )
        assert store.rows(Entity.BOOKINGS) == []


class TestRejections:
    """Tests for sequences that stop before a booking exists."""

    @pytest.mark.asyncio
    async def test_cancelled_charge_leaves_no_booking(
        self, store, repository, clock, tracker
    ):
        """A dismissed 150 charge stores nothing and leaves capacity unchanged."""
        authority = ScriptedChargeAuthority("cancel")
        finalizer = make_finalizer(store, clock, authority=authority)
        price, split = await priced(repository, CRUISE_ID, 1, PaymentPolicy.full())
        slot = await repository.get_time_slot(CRUISE_SLOT_ID)
        before = await tracker.remaining_capacity(slot, TRIP_DAY)

        with pytest.raises(PaymentCancelledError):
            await finalizer.finalize(
                selection(
                    activity_id=CRUISE_ID, time_slot_id=CRUISE_SLOT_ID, participant_count=1
                ),
                price,
                split,
            )

        assert authority.requests[0].amount == Decimal("150.00")
        assert store.rows(Entity.BOOKINGS) == []
        assert await tracker.remaining_capacity(slot, TRIP_DAY) == before

    @pytest.mark.asyncio
    async def test_failed_charge(self, store, repository, clock):
        """A gateway error stores nothing."""
        finalizer = make_finalizer(store, clock, authority=ScriptedChargeAuthority("error"))
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())
        with pytest.raises(PaymentFailedError):
            await finalizer.finalize(selection(participant_count=1), price, split)
        assert store.rows(Entity.BOOKINGS) == []

    @pytest.mark.asyncio
    async def test_capacity_recheck(self, store, repository, clock):
        """A slot that filled up since listing rejects the booking before charging."""
        await store.insert(
            Entity.BOOKINGS, [booking_row(participants=4), booking_row(participants=5)]
        )
        authority = ScriptedChargeAuthority()
        finalizer = make_finalizer(store, clock, authority=authority)
        price, split = await priced(repository, BACKWATER_ID, 2, PaymentPolicy.full())

        with pytest.raises(CapacityExceededError):
            await finalizer.finalize(selection(participant_count=2), price, split)
        assert authority.requests == []

    @pytest.mark.asyncio
    async def test_full_slot(self, store, repository, clock):
        """A fully booked slot raises SlotFullError."""
        await store.insert(
            Entity.BOOKINGS, [booking_row(slot_id=AFTERNOON_SLOT_ID, participants=4)]
        )
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())
        with pytest.raises(SlotFullError):
            await finalizer.finalize(
                selection(time_slot_id=AFTERNOON_SLOT_ID, participant_count=1), price, split
            )

    @pytest.mark.asyncio
    async def test_participant_bounds(self, store, repository, clock):
        """More than the maximum participants is a validation error."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 51, PaymentPolicy.full())
        with pytest.raises(InvalidParticipantCountError):
            await finalizer.finalize(selection(participant_count=51), price, split)

    @pytest.mark.asyncio
    async def test_slot_of_another_activity(self, store, repository, clock):
        """A slot must belong to the selected activity."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())
        with pytest.raises(TimeSlotNotFoundError):
            await finalizer.finalize(
                selection(time_slot_id=KAYAK_SLOT_ID, participant_count=1), price, split
            )

    @pytest.mark.asyncio
    async def test_activity_of_another_experience(self, store, repository, clock):
        """An activity must belong to the selected experience."""
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())
        with pytest.raises(ActivityNotFoundError):
            await finalizer.finalize(
                selection(experience_id=uuid.uuid4(), participant_count=1), price, split
            )


class TestAfterPayment:
    """Tests for failures after the charge succeeded."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing", [Entity.BOOKINGS, Entity.BOOKING_PARTICIPANTS])
    async def test_persistence_failure_points_to_support(self, clock, failing):
        """A store failure after payment says payment succeeded."""
        store = FailingInsertStore(seed_rows(), failing)
        repository = BookingRepository(store)
        finalizer = make_finalizer(store, clock)
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())

        with pytest.raises(PersistenceFailedError) as excinfo:
            await finalizer.finalize(selection(participant_count=1), price, split)

        assert excinfo.value.payment_reference == "pay_test_001"
        assert "Payment was successful" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_notification_failure_is_soft(self, store, repository, clock):
        """A failed confirmation leaves a confirmed booking with a warning."""
        finalizer = make_finalizer(store, clock, RecordingNotifier(fail=True))
        price, split = await priced(repository, BACKWATER_ID, 1, PaymentPolicy.full())

        result = await finalizer.finalize(selection(participant_count=1), price, split)

        assert result.notification_failed
        assert result.warnings == (NOTIFICATION_DELAYED_MESSAGE,)
        assert len(store.rows(Entity.BOOKINGS)) == 1

    @pytest.mark.asyncio
    async def test_profile_backfill_failure_is_soft(self, clock):
        """A failed phone backfill is a warning, not an error."""
        class FailingUpdateStore(InMemoryRecordStore):
            async def update(self, entity, record_id, patch):
                raise ConnectionError("store unavailable")

        store = FailingUpdateStore(seed_rows())
        finalizer = make_finalizer(store, clock)
        price, split = await priced(
            BookingRepository(store), BACKWATER_ID, 1, PaymentPolicy.full()
        )

        result = await finalizer.finalize(selection(participant_count=1), price, split)

        assert result.warnings == (PROFILE_PHONE_WARNING,)
        assert not result.notification_failed

    @pytest.mark.asyncio
    async def test_coupon_count_failure_is_soft(self, clock):
        """A redemption that cannot be counted is logged; the booking stands."""
        class FailingIncrementStore(InMemoryRecordStore):
            async def increment(self, entity, record_id, field, amount=1):
                raise ConnectionError("store unavailable")

        store = FailingIncrementStore(seed_rows())
        repository = BookingRepository(store)
        finalizer = make_finalizer(store, clock)
        activity = await repository.get_activity(BACKWATER_ID)
        coupon = await check_coupon(
            StoreCouponValidator(repository, clock), "FLAT50", activity
        )
        price = PricingResolver().resolve(activity, 1, coupon=coupon)
        split = PaymentSplitCalculator(Decimal("0.10")).split(
            price.total, PaymentPolicy.full()
        )
        assert price.source is PriceSource.COUPON

        result = await finalizer.finalize(
            selection(participant_count=1, coupon_code="FLAT50"), price, split
        )

        assert result.warnings == ()
        assert store.rows(Entity.BOOKINGS)[0]["coupon_code"] == "FLAT50"
