"""
Data model shared by the BusAlert services and API.
"""
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from busalert.config import (
    DEFAULT_ALERT_DISTANCE, MIN_ALERT_DISTANCE, MAX_ALERT_DISTANCE
)


class Region(str, Enum):
    """Coarse geographic classification used to pick a transit provider."""
    SAO_PAULO = "sao-paulo"
    RIO_DE_JANEIRO = "rio-de-janeiro"
    GLOBAL = "global"


class CapacityLevel(str, Enum):
    """How full a bus is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TransportProvider(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    regions: Tuple[str, ...]


class BusRoute(BaseModel):
    """A candidate bus returned by a nearby-route search."""
    model_config = ConfigDict(frozen=True)

    id: str
    number: str
    destination_label: str
    eta_minutes: int
    capacity_level: CapacityLevel
    distance_meters: int
    provider_id: str


class BusStop(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    latitude: float
    longitude: float
    distance_from_origin_km: float
    is_destination: bool = False
    passed: bool = False


class RouteInfo(BaseModel):
    """Ordered stop sequence for one (bus, destination) query."""
    model_config = ConfigDict(frozen=True)

    stops: Tuple[BusStop, ...]
    total_distance_km: float
    estimated_time_minutes: int
    provider_id: str

    @model_validator(mode="after")
    def check_single_destination(self) -> "RouteInfo":
        destinations = [stop for stop in self.stops if stop.is_destination]
        if len(destinations) != 1:
            raise ValueError(
                f"Route must have exactly one destination stop, found {len(destinations)}"
            )
        return self

    @property
    def destination_index(self) -> int:
        for index, stop in enumerate(self.stops):
            if stop.is_destination:
                return index
        raise ValueError("Route has no destination stop")


class AlertSettings(BaseModel):
    """Rider alert preferences. Immutable; replace to change."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    notifications_enabled: bool = True
    sound_enabled: bool = True
    vibration_enabled: bool = True
    alert_distance_stops: int = Field(
        default=DEFAULT_ALERT_DISTANCE, ge=MIN_ALERT_DISTANCE, le=MAX_ALERT_DISTANCE
    )


class ProgressUpdate(BaseModel):
    """One position along a route, as seen by the alert engine."""
    model_config = ConfigDict(frozen=True)

    current_stop_index: int
    stops_remaining: int
    eta_minutes: int


class AlertDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    fire: bool = False
    rearmed: bool = False
    stops_remaining: Optional[int] = None


class PositionSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None


class TripStatus(BaseModel):
    """Snapshot of an active (or stopped) trip."""
    route_id: str
    destination: str
    active: bool
    current_stop_index: Optional[int] = None
    stops_remaining: Optional[int] = None
    eta_minutes: Optional[int] = None
    has_alerted: bool = False
    alerts_fired: int = 0
    stops: List[BusStop] = []
