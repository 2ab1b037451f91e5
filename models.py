from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
import enum


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"


# pending -> accepted -> completed; completed is terminal
ALLOWED_TRANSITIONS = {
    RideStatus.PENDING: {RideStatus.ACCEPTED},
    RideStatus.ACCEPTED: {RideStatus.COMPLETED},
    RideStatus.COMPLETED: set(),
}


def can_transition(current, new) -> bool:
    return RideStatus(new) in ALLOWED_TRANSITIONS.get(RideStatus(current), set())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Timezone-aware UTC copy of value; naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    # SQLite hands datetimes back naive; they were written as UTC
    return as_utc(value).isoformat() if value is not None else None


class RideRequest(SQLModel, table=True):
    """One rider's request for a ride, keyed by the rider's identity."""

    rider_id: str = Field(primary_key=True)
    pickup_latitude: float
    pickup_longitude: float
    destination: str = ""
    status: str = Field(default=RideStatus.PENDING.value, index=True)  # pending, accepted, completed
    rider_email: str = "N/A"
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    driver_vehicle: Optional[str] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def pickup_location(self) -> str:
        return f"Lat: {self.pickup_latitude}, Lng: {self.pickup_longitude}"

    def to_dict(self) -> dict:
        # same document shape the drivers' API has always returned
        return {
            "id": self.rider_id,
            "riderId": self.rider_id,
            "pickupLocation": self.pickup_location,
            "pickupLatitude": self.pickup_latitude,
            "pickupLongitude": self.pickup_longitude,
            "destination": self.destination,
            "status": self.status,
            "riderEmail": self.rider_email,
            "timestamp": _iso(self.timestamp),
            "driverId": self.driver_id,
            "driverName": self.driver_name,
            "driverVehicle": self.driver_vehicle,
            "acceptedAt": _iso(self.accepted_at),
            "completedAt": _iso(self.completed_at),
        }
