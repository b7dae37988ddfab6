"""Domain error codes for the bookings module."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_ID = "INVALID_ID"
    EXPERIENCE_NOT_FOUND = "EXPERIENCE_NOT_FOUND"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    TIME_SLOT_NOT_FOUND = "TIME_SLOT_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    MISSING_SELECTION = "MISSING_SELECTION"
    INVALID_PARTICIPANT_COUNT = "INVALID_PARTICIPANT_COUNT"
    AGENT_PRICING_REQUIRED = "AGENT_PRICING_REQUIRED"
    AGENT_ROLE_REQUIRED = "AGENT_ROLE_REQUIRED"
    ADVANCE_EXCEEDS_TOTAL = "ADVANCE_EXCEEDS_TOTAL"
    PAYMENT_SPLIT_MISMATCH = "PAYMENT_SPLIT_MISMATCH"
    INVALID_COUPON = "INVALID_COUPON"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    SLOT_FULL = "SLOT_FULL"
    PAYMENT_CANCELLED = "PAYMENT_CANCELLED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"
    MALFORMED_RECORD = "MALFORMED_RECORD"


class ErrorKind(Enum):
    """How an error propagates and what the user is shown."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CAPACITY = "capacity"
    COUPON = "coupon"
    PERMISSION = "permission"
    PAYMENT = "payment"
    PERSISTENCE = "persistence"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    kind: ErrorKind = ErrorKind.VALIDATION

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidIdentifierError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {field} format",
        )
        self.field = field


class ExperienceNotFoundError(DomainError):
    """Raised when the booked experience does not exist."""

    def __init__(self, experience_id: object) -> None:
        super().__init__(
            code=ErrorCode.EXPERIENCE_NOT_FOUND,
            message="Experience not found",
            kind=ErrorKind.NOT_FOUND,
        )
        self.experience_id = experience_id


class ActivityNotFoundError(DomainError):
    """Raised when an activity is missing or inactive."""

    def __init__(self, activity_id: object) -> None:
        super().__init__(
            code=ErrorCode.ACTIVITY_NOT_FOUND,
            message="Activity not found",
            kind=ErrorKind.NOT_FOUND,
        )
        self.activity_id = activity_id


class TimeSlotNotFoundError(DomainError):
    """Raised when a slot is missing or belongs to another activity."""

    def __init__(self, time_slot_id: object) -> None:
        super().__init__(
            code=ErrorCode.TIME_SLOT_NOT_FOUND,
            message="Time slot not found",
            kind=ErrorKind.NOT_FOUND,
        )
        self.time_slot_id = time_slot_id


class BookingNotFoundError(DomainError):
    """Raised when no booking has the given id."""

    def __init__(self, booking_id: object) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_NOT_FOUND,
            message="Booking not found",
            kind=ErrorKind.NOT_FOUND,
        )
        self.booking_id = booking_id


class MissingSelectionError(DomainError):
    """Raised when date, slot or activity have not been chosen."""

    def __init__(self, message: str, missing: tuple[str, ...]) -> None:
        super().__init__(code=ErrorCode.MISSING_SELECTION, message=message)
        self.missing = missing


class InvalidParticipantCountError(DomainError):
    """Raised when a group size is below one or above the maximum."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_PARTICIPANT_COUNT, message=message)


class AgentPricingRequiredError(DomainError):
    """Raised when an agent omits the B2B or selling price."""

    def __init__(self, field: str) -> None:
        label = "B2B Price" if field == "b2b_price" else "Selling Price"
        super().__init__(
            code=ErrorCode.AGENT_PRICING_REQUIRED,
            message=f"Please enter {label}",
        )
        self.field = field


class AgentRoleRequiredError(DomainError):
    """Raised when an agent booking is requested without an agent profile."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.AGENT_ROLE_REQUIRED,
            message="Only signed-in agents can make agent bookings",
            kind=ErrorKind.PERMISSION,
        )


class AdvanceExceedsTotalError(DomainError):
    """Raised when an agent advance is larger than the booking total."""

    def __init__(self, advance: Decimal, total: Decimal) -> None:
        super().__init__(
            code=ErrorCode.ADVANCE_EXCEEDS_TOTAL,
            message="Advance payment cannot be greater than booking amount",
        )
        self.advance = advance
        self.total = total


class PaymentSplitMismatchError(DomainError):
    """Raised when upfront and due do not reconcile to the total."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_SPLIT_MISMATCH,
            message="Payment amounts do not match the booking total",
        )


class InvalidCouponError(DomainError):
    """Raised for every coupon failure, whatever the underlying reason."""

    def __init__(self, message: str = "Invalid coupon code") -> None:
        super().__init__(
            code=ErrorCode.INVALID_COUPON,
            message=message,
            kind=ErrorKind.COUPON,
        )


class SlotFullError(DomainError):
    """Raised when a slot has no seats left at all."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.SLOT_FULL,
            message="This time slot is fully booked. Please select another time slot.",
            kind=ErrorKind.CAPACITY,
        )
        self.remaining = 0


class CapacityExceededError(DomainError):
    """Raised when fewer seats remain than were requested."""

    def __init__(self, remaining: int, requested: int) -> None:
        plural = "" if remaining == 1 else "s"
        super().__init__(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message=(
                f"Only {remaining} spot{plural} available for this time slot. "
                "Please select fewer participants."
            ),
            kind=ErrorKind.CAPACITY,
        )
        self.remaining = remaining
        self.requested = requested


class PaymentCancelledError(DomainError):
    """Raised when the purchaser abandons the charge."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_CANCELLED,
            message="Payment cancelled. Your booking was not completed.",
            kind=ErrorKind.PAYMENT,
        )


class PaymentFailedError(DomainError):
    """Raised when the charge is declined or no payment was confirmed."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_FAILED,
            message="There was an error processing payment. Please try again.",
            kind=ErrorKind.PAYMENT,
        )
        self.reason = reason


class PersistenceFailedError(DomainError):
    """Raised when the booking could not be stored after payment."""

    def __init__(self, payment_reference: str | None) -> None:
        if payment_reference:
            message = (
                "Payment was successful but there was an error creating your "
                "booking. Please contact support."
            )
        else:
            message = "There was an error creating your booking. Please try again."
        super().__init__(
            code=ErrorCode.PERSISTENCE_FAILED,
            message=message,
            kind=ErrorKind.PERSISTENCE,
        )
        self.payment_reference = payment_reference


class MalformedRecordError(DomainError):
    """Raised when a store row lacks fields the domain requires."""

    def __init__(self, entity: str, missing: tuple[str, ...]) -> None:
        super().__init__(
            code=ErrorCode.MALFORMED_RECORD,
            message=f"Malformed {entity} record",
            kind=ErrorKind.PERSISTENCE,
        )
        self.entity = entity
        self.missing = missing


NOTIFICATION_DELAYED_MESSAGE = (
    "Your booking was successful, but we couldn't send the confirmation "
    "messages. Please check your booking in your profile."
)
