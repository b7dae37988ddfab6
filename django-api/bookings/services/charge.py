"""Payment gateway boundary.

Gateways report back through callbacks (a popup that may succeed, be
dismissed, or fail). ``request_charge`` turns that into one awaitable with
exactly three tagged outcomes.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from bookings.domain import ContactPerson

logger = logging.getLogger(__name__)


class ChargeOutcome(Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ChargeRequest:
    """What the gateway is asked to collect.

    ``amount`` is in whole currency units, not minor units.
    """

    amount: Decimal
    currency: str
    order_id: str
    description: str = ""
    prefill: ContactPerson | None = None


@dataclass(frozen=True)
class ChargeResult:
    outcome: ChargeOutcome
    payment_reference: str | None = None
    error: str | None = None


class ChargeAuthority(ABC):
    """Interface for an external, callback-driven payment gateway."""

    @abstractmethod
    def charge(
        self,
        request: ChargeRequest,
        on_success: Callable[[str], None],
        on_cancel: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        """Start a charge. Exactly one callback is expected to fire later."""
        ...


class ClientConfirmedChargeAuthority(ChargeAuthority):
    """Adapter for charges the client already completed with the gateway.

    The browser runs the gateway popup and posts back the gateway's payment
    reference; this authority reports that reference as the outcome.
    """

    def __init__(self, payment_reference: str | None) -> None:
        self._payment_reference = payment_reference

    def charge(self, request, on_success, on_cancel, on_error) -> None:
        if self._payment_reference:
            on_success(self._payment_reference)
        else:
            on_error("Missing payment reference")


async def request_charge(
    authority: ChargeAuthority, request: ChargeRequest
) -> ChargeResult:
    """Invoke the gateway and wait for its first callback.

    There is no timeout here; a hung charge is bounded only by the gateway.
    Callbacks fired after the first one are ignored.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[ChargeResult] = loop.create_future()

    def settle(result: ChargeResult) -> None:
        def _set() -> None:
            if not future.done():
                future.set_result(result)

        loop.call_soon_threadsafe(_set)

    try:
        authority.charge(
            request,
            on_success=lambda reference: settle(
                ChargeResult(ChargeOutcome.SUCCEEDED, payment_reference=reference)
            ),
            on_cancel=lambda: settle(ChargeResult(ChargeOutcome.CANCELLED)),
            on_error=lambda error: settle(
                ChargeResult(ChargeOutcome.FAILED, error=str(error))
            ),
        )
    except Exception as exc:
        logger.exception("Charge authority raised for order %s", request.order_id)
        return ChargeResult(ChargeOutcome.FAILED, error=str(exc))

    result = await future
    logger.info("Charge for order %s %s", request.order_id, result.outcome.value)
    return result
