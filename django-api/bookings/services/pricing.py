"""Price resolution: activity discounts, coupons and agent selling prices.

Precedence when resolving a booking total, highest first:

1. Agent selling price (> 0). Coupons are ignored.
2. A validated coupon. Its ``final_amount`` is a per-person price.
3. The activity's own discounted price, falling back to its base price.

All money is rounded to 2 places at each point of combination.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from bookings.domain import Activity, Coupon, DiscountCalculation, DiscountType, round_money
from bookings.domain.errors import InvalidCouponError, MalformedRecordError
from bookings.stores.repository import BookingRepository

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ActivityDiscount:
    """Derived price fields stored alongside an activity."""

    discounted_price: Decimal
    discount_percentage: Decimal


def apply_activity_discount(
    base_price: Decimal | int | str,
    discount_type: DiscountType,
    discount_value: Decimal | int | str,
) -> ActivityDiscount:
    """Derive the discounted price and stored percentage for an activity.

    Flat discounts are also expressed as a percentage of the base price so
    listings can show a uniform "x% off".
    """
    base = Decimal(str(base_price))
    value = Decimal(str(discount_value))
    if discount_type is DiscountType.FLAT:
        percentage = round_money(value / base * HUNDRED) if base > 0 else Decimal("0.00")
        return ActivityDiscount(
            discounted_price=round_money(max(Decimal("0"), base - value)),
            discount_percentage=percentage,
        )
    discounted = round_money(base * (1 - value / HUNDRED))
    return ActivityDiscount(
        discounted_price=max(Decimal("0.00"), discounted),
        discount_percentage=round_money(value),
    )


def calculate_coupon_discount(coupon: Coupon, price: Decimal) -> DiscountCalculation:
    """Apply a coupon to one per-person price."""
    price = round_money(price)
    if coupon.type is DiscountType.PERCENTAGE:
        discount = round_money(price * coupon.discount_value / HUNDRED)
    else:
        discount = round_money(coupon.discount_value)
    discount = min(discount, price)
    savings = round_money(discount / price * HUNDRED) if price > 0 else Decimal("0.00")
    return DiscountCalculation(
        original_amount=price,
        discount_amount=discount,
        final_amount=round_money(price - discount),
        savings_percentage=savings,
    )


@dataclass(frozen=True)
class CouponValidation:
    valid: bool
    discount_calculation: DiscountCalculation | None = None
    coupon: Coupon | None = None


class CouponValidator(ABC):
    """Interface for coupon checks."""

    @abstractmethod
    async def validate(
        self, code: str, activity: Activity, price: Decimal
    ) -> CouponValidation:
        """Return the discount for ``price`` if the code applies to the activity."""
        ...


class StoreCouponValidator(CouponValidator):
    """Validates coupons held in the record store."""

    def __init__(
        self, repository: BookingRepository, clock: Callable[[], datetime]
    ) -> None:
        self._repository = repository
        self._clock = clock

    async def validate(
        self, code: str, activity: Activity, price: Decimal
    ) -> CouponValidation:
        try:
            coupon = await self._repository.find_coupon(code.strip())
        except MalformedRecordError:
            return CouponValidation(valid=False)
        if coupon is None or not coupon.is_usable(activity.experience_id, self._clock()):
            return CouponValidation(valid=False)
        return CouponValidation(
            valid=True,
            discount_calculation=calculate_coupon_discount(coupon, price),
            coupon=coupon,
        )


class PriceSource(Enum):
    AGENT = "agent"
    COUPON = "coupon"
    ACTIVITY = "activity"


@dataclass(frozen=True)
class AgentPricing:
    """Prices an agent types in for a booking made on a customer's behalf."""

    selling_price: Decimal
    b2b_price: Decimal = Decimal("0")
    advance_payment: Decimal = Decimal("0")


@dataclass(frozen=True)
class ResolvedPrice:
    per_person: Decimal
    total: Decimal
    currency: str
    source: PriceSource
    list_total: Decimal

    @property
    def savings(self) -> Decimal:
        """How much below the undiscounted list price the total sits."""
        return max(Decimal("0.00"), round_money(self.list_total - self.total))


class PricingResolver:
    """Computes per-person and total prices for an activity."""

    def resolve(
        self,
        activity: Activity,
        participant_count: int,
        coupon: CouponValidation | None = None,
        agent_pricing: AgentPricing | None = None,
    ) -> ResolvedPrice:
        list_total = round_money(activity.base_price.amount * participant_count)

        if agent_pricing is not None and agent_pricing.selling_price > 0:
            per_person = round_money(agent_pricing.selling_price)
            source = PriceSource.AGENT
        elif coupon is not None and coupon.valid and coupon.discount_calculation:
            per_person = coupon.discount_calculation.final_amount
            source = PriceSource.COUPON
        else:
            per_person = activity.unit_price.amount
            source = PriceSource.ACTIVITY

        return ResolvedPrice(
            per_person=per_person,
            total=round_money(per_person * participant_count),
            currency=activity.currency,
            source=source,
            list_total=list_total,
        )


async def check_coupon(
    validator: CouponValidator, code: str | None, activity: Activity
) -> CouponValidation:
    """Validate a code against the activity's per-person price.

    Every rejection surfaces as the same InvalidCouponError.
    """
    if not code or not code.strip():
        raise InvalidCouponError("Please enter a coupon code")
    result = await validator.validate(
        code.strip().upper(), activity, activity.unit_price.amount
    )
    if not result.valid or result.discount_calculation is None:
        logger.info("Coupon rejected for activity %s", activity.id)
        raise InvalidCouponError()
    return result
