"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never expose internal error details
"""

import logging
from decimal import Decimal
from functools import wraps

from asgiref.sync import async_to_sync
from django.core.cache import cache
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings import cache as cache_keys
from bookings.conf import booking_setting
from bookings.domain import ContactPerson
from bookings.domain.errors import DomainError, ErrorKind
from bookings.handlers.serializers import (
    BookingRequestSerializer,
    BookingSerializer,
    CommissionSerializer,
    CouponRequestSerializer,
    CouponSerializer,
    DatesQuerySerializer,
    QuoteRequestSerializer,
    QuoteSerializer,
    SlotQuerySerializer,
    SlotSerializer,
)
from bookings.services.booking_service import (
    BookingService,
    build_booking_service,
    parse_id,
)
from bookings.services.charge import ClientConfirmedChargeAuthority
from bookings.services.finalizer import BookingSelection
from bookings.services.pricing import AgentPricing
from bookings.services.wizard import require_selection
from bookings.stores.django_store import DjangoRecordStore

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.COUPON: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERMISSION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CAPACITY: status.HTTP_409_CONFLICT,
    ErrorKind.PAYMENT: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(error: DomainError) -> Response:
    body = {"error": {"code": error.code.value, "message": error.message}}
    return Response(body, status=STATUS_BY_KIND[error.kind])


def maps_domain_errors(handler):
    """Turn a DomainError raised by the handler into its HTTP response."""

    @wraps(handler)
    def wrapper(self, request, *args, **kwargs):
        try:
            return handler(self, request, *args, **kwargs)
        except DomainError as error:
            logger.info("%s %s rejected: %s", request.method, request.path, error.code.value)
            return error_response(error)

    return wrapper


def invalid_input(errors) -> Response:
    body = {
        "error": {"code": "INVALID_INPUT", "message": "Invalid request", "fields": errors}
    }
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def _agent_pricing(data: dict | None) -> AgentPricing | None:
    return AgentPricing(**data) if data else None


class BookingAPIView(APIView):
    """Base view that wires a database-backed BookingService."""

    def get_service(self) -> BookingService:
        return build_booking_service(DjangoRecordStore())


class SlotListView(BookingAPIView):
    """Handler for GET /api/activities/{activity_id}/slots"""

    @maps_domain_errors
    def get(self, request: Request, activity_id: str) -> Response:
        query = SlotQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_input(query.errors)
        activity = parse_id(activity_id, "activity_id")
        day = query.validated_data["date"]
        participants = query.validated_data["participants"]

        key = cache_keys.slots_key(activity, day, participants)
        payload = cache.get(key)
        if payload is None:
            listings = async_to_sync(self.get_service().list_slots)(
                activity, day, participants
            )
            payload = {
                "activity_id": str(activity),
                "date": day.isoformat(),
                "participants": participants,
                "slots": SlotSerializer(listings, many=True).data,
            }
            cache.set(key, payload, booking_setting("AVAILABILITY_CACHE_TIMEOUT"))
        return Response(payload)


class AvailableDatesView(BookingAPIView):
    """Handler for GET /api/activities/{activity_id}/dates"""

    @maps_domain_errors
    def get(self, request: Request, activity_id: str) -> Response:
        query = DatesQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_input(query.errors)
        activity = parse_id(activity_id, "activity_id")
        participants = query.validated_data["participants"]
        days = query.validated_data.get("days") or booking_setting("BOOKING_WINDOW_DAYS")

        key = cache_keys.dates_key(activity, participants, days)
        payload = cache.get(key)
        if payload is None:
            dates = async_to_sync(self.get_service().available_dates)(
                activity, participants, days
            )
            payload = {"dates": [day.isoformat() for day in dates]}
            cache.set(key, payload, booking_setting("AVAILABILITY_CACHE_TIMEOUT"))
        return Response(payload)


class QuoteView(BookingAPIView):
    """Handler for POST /api/quotes"""

    @maps_domain_errors
    def post(self, request: Request) -> Response:
        body = QuoteRequestSerializer(data=request.data)
        if not body.is_valid():
            return invalid_input(body.errors)
        data = body.validated_data
        quote = async_to_sync(self.get_service().quote)(
            data["activity_id"],
            data["participants"],
            coupon_code=data.get("coupon_code"),
            agent_pricing=_agent_pricing(data.get("agent_pricing")),
            partial_payment=data["partial_payment"],
        )
        return Response(QuoteSerializer(quote).data)


class CouponValidateView(BookingAPIView):
    """Handler for POST /api/coupons/validate"""

    @maps_domain_errors
    def post(self, request: Request) -> Response:
        body = CouponRequestSerializer(data=request.data)
        if not body.is_valid():
            return invalid_input(body.errors)
        result = async_to_sync(self.get_service().validate_coupon)(
            body.validated_data["activity_id"], body.validated_data["coupon_code"]
        )
        return Response(CouponSerializer(result).data)


class BookingCreateView(BookingAPIView):
    """Handler for POST /api/bookings"""

    @maps_domain_errors
    def post(self, request: Request) -> Response:
        body = BookingRequestSerializer(data=request.data)
        if not body.is_valid():
            return invalid_input(body.errors)
        data = body.validated_data
        require_selection(
            data.get("activity_id"), data.get("booking_date"), data.get("time_slot_id")
        )

        service = self.get_service()
        # Who is booking, and as what, comes from the session, never the body.
        user_pk = request.user.pk if request.user.is_authenticated else None
        purchaser = async_to_sync(service.purchaser)(user_pk, as_agent=data["is_agent"])

        agent_pricing = _agent_pricing(data.get("agent_pricing"))
        selection = BookingSelection(
            experience_id=data["experience_id"],
            activity_id=data["activity_id"],
            time_slot_id=data["time_slot_id"],
            booking_date=data["booking_date"],
            participant_count=data["participants"],
            contact=ContactPerson(**data["contact"]),
            user_id=purchaser.id if purchaser else None,
            is_agent=purchaser is not None and purchaser.is_agent,
            # Only staff may skip the charge.
            bypass_payment=data["bypass_payment"] and request.user.is_staff,
            b2b_price=agent_pricing.b2b_price if agent_pricing else Decimal("0"),
            referral_code=data.get("referral_code") or None,
            coupon_code=(data.get("coupon_code") or "").strip().upper() or None,
            note_for_guide=data.get("note_for_guide") or None,
        )
        result = async_to_sync(service.submit)(
            selection,
            agent_pricing=agent_pricing,
            partial_payment=data["partial_payment"],
            charge_authority=ClientConfirmedChargeAuthority(data.get("payment_reference")),
        )
        return Response(BookingSerializer(result).data, status=status.HTTP_201_CREATED)


class CommissionView(BookingAPIView):
    """Handler for GET /api/bookings/{booking_id}/commission"""

    @maps_domain_errors
    def get(self, request: Request, booking_id: str) -> Response:
        breakdown = async_to_sync(self.get_service().commission)(booking_id)
        return Response(CommissionSerializer(breakdown).data)
