"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Self

CENT = Decimal("0.01")


def round_money(value: Decimal | int | str) -> Decimal:
    """Round to 2 decimal places, half up.

    Every monetary combination goes through here so chained calculations
    always see the already-rounded intermediate.
    """
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class DiscountType(Enum):
    """How a discount value is interpreted."""

    FLAT = "flat"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal
    currency: str = "INR"

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    @classmethod
    def of(cls, amount: Decimal | int | str, currency: str = "INR") -> Self:
        return cls(amount=round_money(amount), currency=currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing seat capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")

    def remaining_after(self, booked: int) -> Self:
        return type(self)(value=max(0, self.value - booked))


@dataclass(frozen=True)
class ParticipantCount:
    """Number of seats requested by one booking."""

    value: int
    maximum: int = 50

    def __post_init__(self) -> None:
        if self.value < 1:
            raise ValueError("At least one participant is required")
        if self.value > self.maximum:
            raise ValueError(f"Maximum {self.maximum} participants allowed")
