"""
Service for tracking a rider's progress along a route's stop sequence.
"""
import math
import queue
import threading
from typing import Optional, Sequence

from busalert.config import MINUTES_PER_STOP, TICK_INTERVAL_SECONDS
from busalert.models import BusStop, ProgressUpdate, RouteInfo

# Mean Earth radius; haversine_distance returns meters
EARTH_RADIUS_METERS = 6371000


def eta_for_stops(stops_remaining: int, per_stop_minutes: int = MINUTES_PER_STOP) -> int:
    return max(1, stops_remaining * per_stop_minutes)


def build_update(route_info: RouteInfo, stop_index: int,
                 per_stop_minutes: int = MINUTES_PER_STOP) -> ProgressUpdate:
    """Compute stops remaining and ETA for a stop index along a route."""
    stops_remaining = max(0, route_info.destination_index - stop_index)
    return ProgressUpdate(
        current_stop_index=stop_index,
        stops_remaining=stops_remaining,
        eta_minutes=eta_for_stops(stops_remaining, per_stop_minutes),
    )


class RouteProgressSimulator:
    """
    Forward-only replay of a route: index 0 up to the last stop.

    Stops remaining is always derived from the current index, never stored.
    """

    def __init__(self, route_info: RouteInfo, per_stop_minutes: int = MINUTES_PER_STOP):
        if not route_info.stops:
            raise ValueError("Cannot simulate a route without stops")
        self.route_info = route_info
        self.per_stop_minutes = per_stop_minutes
        self.current_stop_index = 0
        self._lock = threading.Lock()

    @property
    def last_index(self) -> int:
        return len(self.route_info.stops) - 1

    @property
    def stops_remaining(self) -> int:
        return max(0, self.route_info.destination_index - self.current_stop_index)

    @property
    def is_terminal(self) -> bool:
        return self.current_stop_index >= self.last_index

    def current_update(self) -> ProgressUpdate:
        with self._lock:
            return build_update(self.route_info, self.current_stop_index, self.per_stop_minutes)

    def advance(self) -> Optional[ProgressUpdate]:
        """Move one stop forward. Returns None once the last stop is reached."""
        with self._lock:
            if self.current_stop_index >= self.last_index:
                return None
            self.current_stop_index += 1
            update = build_update(self.route_info, self.current_stop_index, self.per_stop_minutes)
        print(f"[Progress] Bus moved to stop {update.current_stop_index}, "
              f"{update.stops_remaining} stop(s) to destination")
        return update


class ProgressTicker:
    """
    Runs a simulator on a timer thread and publishes each update to a queue.

    Stops by itself once the simulator reaches its terminal stop.
    """

    def __init__(self, simulator: RouteProgressSimulator, updates: queue.Queue,
                 stop_event: threading.Event,
                 interval_seconds: float = TICK_INTERVAL_SECONDS):
        self.simulator = simulator
        self.updates = updates
        self.stop_event = stop_event
        self.interval_seconds = interval_seconds
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self.thread = threading.Thread(target=self._run, name="ProgressTickerThread", daemon=True)
        self.thread.start()

    def _run(self) -> None:
        # Event.wait doubles as an interruptible sleep
        while not self.stop_event.wait(self.interval_seconds):
            update = self.simulator.advance()
            if update is None:
                print("[Progress] Reached last stop, ticker finished")
                return
            self.updates.put(update)

    def join(self, timeout: Optional[float] = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout=timeout)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great circle distance between two points in meters."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)
    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def nearest_stop_index(stops: Sequence[BusStop], lat: float, lon: float) -> int:
    """Index of the stop closest to the given position."""
    if not stops:
        raise ValueError("No stops to match against")
    min_distance = float('inf')
    closest_index = 0
    for index, stop in enumerate(stops):
        distance = haversine_distance(lat, lon, stop.latitude, stop.longitude)
        if distance < min_distance:
            min_distance = distance
            closest_index = index
    print(f"[Progress] Position ({lat}, {lon}) matched stop {closest_index} at {min_distance:.0f} m")
    return closest_index


def progress_for_position(route_info: RouteInfo, lat: float, lon: float,
                          per_stop_minutes: int = MINUTES_PER_STOP) -> ProgressUpdate:
    """Map a device position to a progress update via the nearest stop."""
    index = nearest_stop_index(route_info.stops, lat, lon)
    return build_update(route_info, index, per_stop_minutes)
