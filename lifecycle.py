"""
Ride request lifecycle: pending -> accepted -> completed.

Riders create requests, drivers accept and complete them. In strict mode
(the default) every transition is a compare-and-swap on the stored status,
so a request can only be accepted once and only completed after it was
accepted. Lenient mode applies the updates unconditionally, the way the
first version of the drivers' API did.
"""
import logging
import math
import numbers
from typing import Callable, List, Optional, Tuple

from errors import InvalidArgument, NotFound
from models import RideRequest, RideStatus, as_utc, utcnow
from store import RideRequestStore, Subscription

logger = logging.getLogger(__name__)


def _text(value, name: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidArgument(f"{name} must be a string.")
    return value


def _coordinate(value) -> float:
    # bool is an int subclass; JSON true/false is not a coordinate
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgument("Pickup must be a (latitude, longitude) pair of numbers.")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidArgument("Pickup coordinates must be finite numbers.")
    return value


class LifecycleService:
    def __init__(self, store: RideRequestStore, strict: bool = True, clock: Optional[Callable] = None):
        self.store = store
        self.strict = strict
        self.clock = clock or utcnow

    def now(self):
        """Current time from the clock, always timezone-aware UTC."""
        return as_utc(self.clock())

    def request_ride(
        self,
        rider_id: str,
        pickup: Tuple[float, float],
        destination: str,
        rider_email: str = "N/A",
    ) -> RideRequest:
        """Create (or replace) the rider's ride request in status pending."""
        if not isinstance(rider_id, str) or not rider_id:
            raise InvalidArgument("Rider ID is required.")
        destination = _text(destination, "destination")
        rider_email = _text(rider_email, "riderEmail") or "N/A"
        try:
            raw_latitude, raw_longitude = pickup
        except (TypeError, ValueError):
            raise InvalidArgument("Pickup must be a (latitude, longitude) pair of numbers.") from None
        latitude, longitude = _coordinate(raw_latitude), _coordinate(raw_longitude)

        previous = self.store.get(rider_id)
        if previous is not None and previous.status != RideStatus.COMPLETED:
            logger.warning("Rider %s replaced an in-flight ride request (was %s)", rider_id, previous.status)

        record = RideRequest(
            rider_id=rider_id,
            pickup_latitude=latitude,
            pickup_longitude=longitude,
            destination=destination,
            status=RideStatus.PENDING.value,
            rider_email=rider_email,
            timestamp=self.now(),
        )
        stored = self.store.put(rider_id, record)
        logger.info("Ride requested by rider %s", rider_id)
        return stored

    def accept_ride(self, ride_request_id: str, driver_id: str, driver_name: str, driver_vehicle: str) -> RideRequest:
        driver_fields = (driver_id, driver_name, driver_vehicle)
        if not all(isinstance(v, str) and v for v in driver_fields):
            raise InvalidArgument("Driver ID, name, and vehicle are required.")
        fields = {
            "status": RideStatus.ACCEPTED.value,
            "driver_id": driver_id,
            "driver_name": driver_name,
            "driver_vehicle": driver_vehicle,
            "accepted_at": self.now(),
        }
        expected = RideStatus.PENDING if self.strict else None
        stored = self.store.update(ride_request_id, fields, expected_status=expected)
        logger.info("Ride request %s accepted by driver %s.", ride_request_id, driver_name)
        return stored

    def complete_ride(self, ride_request_id: str) -> RideRequest:
        fields = {
            "status": RideStatus.COMPLETED.value,
            "completed_at": self.now(),
        }
        expected = RideStatus.ACCEPTED if self.strict else None
        stored = self.store.update(ride_request_id, fields, expected_status=expected)
        logger.info("Ride request %s marked as completed.", ride_request_id)
        return stored

    def list_pending(self) -> List[RideRequest]:
        rows = self.store.list_where(RideStatus.PENDING)
        logger.info("Fetched %d pending ride requests.", len(rows))
        return rows

    def get_ride(self, ride_request_id: str) -> RideRequest:
        record = self.store.get(ride_request_id)
        if record is None:
            raise NotFound("Ride request not found.")
        return record

    def watch_ride(self, rider_id: str, callback) -> Subscription:
        """Live view of a rider's own request; see ``RideRequestStore.subscribe``."""
        return self.store.subscribe(rider_id, callback)
