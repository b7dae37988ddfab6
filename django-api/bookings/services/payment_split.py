"""Upfront/due split of a booking total, and commission reporting."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from bookings.domain import Booking, round_money
from bookings.domain.errors import AdvanceExceedsTotalError, PaymentSplitMismatchError

ZERO = Decimal("0.00")
TOLERANCE = Decimal("0.01")


class PolicyKind(Enum):
    AGENT = "agent"
    PARTIAL = "partial"
    FULL = "full"


@dataclass(frozen=True)
class PaymentPolicy:
    """How a total is collected. Exactly one kind applies per booking."""

    kind: PolicyKind
    advance_payment: Decimal = ZERO

    @classmethod
    def agent(cls, advance_payment: Decimal = ZERO) -> "PaymentPolicy":
        return cls(kind=PolicyKind.AGENT, advance_payment=round_money(advance_payment))

    @classmethod
    def partial(cls) -> "PaymentPolicy":
        return cls(kind=PolicyKind.PARTIAL)

    @classmethod
    def full(cls) -> "PaymentPolicy":
        return cls(kind=PolicyKind.FULL)

    @classmethod
    def for_customer(cls, partial_payment: bool) -> "PaymentPolicy":
        return cls.partial() if partial_payment else cls.full()


@dataclass(frozen=True)
class PaymentSplit:
    upfront: Decimal
    due: Decimal
    policy: PaymentPolicy

    @property
    def collected_online(self) -> bool:
        return self.upfront > 0


@dataclass(frozen=True)
class CommissionBreakdown:
    """Settlement figures. Derived from booking inputs, never stored."""

    commission_per_vendor: Decimal
    net_commission: Decimal
    amount_vendor_owes_platform: Decimal


class PaymentSplitCalculator:
    """Splits a resolved total into what is charged now and what is due later."""

    def __init__(self, partial_rate: Decimal) -> None:
        self.partial_rate = partial_rate

    def split(self, total: Decimal, policy: PaymentPolicy) -> PaymentSplit:
        """Apply one payment policy to a total.

        Raises:
            AdvanceExceedsTotalError: If an agent advance is above the total.
        """
        total = round_money(total)
        if policy.kind is PolicyKind.AGENT:
            # Agents are invoiced, never charged online.
            if policy.advance_payment > total:
                raise AdvanceExceedsTotalError(policy.advance_payment, total)
            if policy.advance_payment > 0:
                due = max(ZERO, round_money(total - policy.advance_payment))
            else:
                due = ZERO
            return PaymentSplit(upfront=ZERO, due=due, policy=policy)
        if policy.kind is PolicyKind.PARTIAL:
            upfront = round_money(total * self.partial_rate)
            return PaymentSplit(
                upfront=upfront, due=round_money(total - upfront), policy=policy
            )
        return PaymentSplit(upfront=total, due=ZERO, policy=policy)

    def verify(self, total: Decimal, split: PaymentSplit) -> None:
        """Re-derive the split for ``total`` and check it matches ``split``.

        Raises:
            AdvanceExceedsTotalError: If an agent advance is above the total.
            PaymentSplitMismatchError: If the amounts do not reconcile.
        """
        expected = self.split(total, split.policy)
        if (
            abs(expected.upfront - split.upfront) > TOLERANCE
            or abs(expected.due - split.due) > TOLERANCE
        ):
            raise PaymentSplitMismatchError()
        if split.policy.kind is not PolicyKind.AGENT:
            if abs(split.upfront + split.due - round_money(total)) > TOLERANCE:
                raise PaymentSplitMismatchError()

    @staticmethod
    def commission(
        base_price: Decimal,
        b2b_price: Decimal,
        booking_amount: Decimal,
        participant_count: int,
        upfront: Decimal,
    ) -> CommissionBreakdown:
        vendor_share = round_money(b2b_price * participant_count)
        net = round_money(booking_amount - vendor_share)
        return CommissionBreakdown(
            commission_per_vendor=round_money(base_price - b2b_price),
            net_commission=net,
            amount_vendor_owes_platform=round_money(net - upfront),
        )

    def commission_for(self, booking: Booking, base_price: Decimal) -> CommissionBreakdown:
        """Recompute commission figures from a stored booking's snapshots."""
        return self.commission(
            base_price=base_price,
            b2b_price=booking.b2b_price.amount,
            booking_amount=booking.booking_amount.amount,
            participant_count=booking.participant_count,
            upfront=booking.upfront_amount.amount,
        )
