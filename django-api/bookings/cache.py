"""Cache keys for availability listings.

Listings are keyed under a per-activity version number. Bumping the version
orphans every cached listing of that activity at once, whatever its date or
participant count; orphans expire on their own timeout.
"""

import logging
from datetime import date
from uuid import UUID

from django.core.cache import cache

logger = logging.getLogger(__name__)

INITIAL_VERSION = 1


def _version_key(activity_id: UUID | str) -> str:
    return f"bookings:activity:{activity_id}:version"


def activity_version(activity_id: UUID | str) -> int:
    return cache.get(_version_key(activity_id), INITIAL_VERSION)


def slots_key(activity_id: UUID | str, day: date, participant_count: int) -> str:
    prefix = f"bookings:activity:{activity_id}:v{activity_version(activity_id)}"
    return f"{prefix}:slots:{day.isoformat()}:{participant_count}"


def dates_key(activity_id: UUID | str, participant_count: int, days: int) -> str:
    prefix = f"bookings:activity:{activity_id}:v{activity_version(activity_id)}"
    return f"{prefix}:dates:{participant_count}:{days}"


def invalidate_activity(activity_id: UUID | str) -> None:
    """Drop every cached listing of one activity."""
    key = _version_key(activity_id)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, INITIAL_VERSION + 1, None)
    logger.debug("Availability cache invalidated for activity %s", activity_id)
