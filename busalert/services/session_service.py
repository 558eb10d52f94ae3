"""
Trip session: wires route progress to the proximity alert engine.

Threading:
- Ticker thread: advances the simulator every tick and publishes updates
- Consumer thread: evaluates each update against the alert engine

Both threads share only the update queue and the stop event. Once the rider
reports a real position the ticker is stopped and telemetry alone drives
progress.
"""
import queue
import threading
from typing import List, Optional

from busalert.config import MINUTES_PER_STOP, TICK_INTERVAL_SECONDS
from busalert.models import AlertDecision, BusStop, ProgressUpdate, RouteInfo, TripStatus
from busalert.services.alert_service import ProximityAlertEngine
from busalert.services.position_service import PositionSource, read_position
from busalert.services.progress_service import (
    ProgressTicker, RouteProgressSimulator, progress_for_position
)
from busalert.services.route_service import RouteProvider
from busalert.services.settings_service import AlertSettingsStore
from busalert.services.sink_service import AlertSinks, dispatch_alert


class TripSession:
    """One rider's active trip, from bus selection until stop()."""

    def __init__(self, route_id: str, destination: str, route_info: RouteInfo,
                 settings_store: AlertSettingsStore, sinks: AlertSinks,
                 tick_seconds: float = TICK_INTERVAL_SECONDS,
                 per_stop_minutes: int = MINUTES_PER_STOP):
        self.route_id = route_id
        self.destination = destination
        self.route_info = route_info
        self.settings_store = settings_store
        self.sinks = sinks
        self.tick_seconds = tick_seconds
        self.per_stop_minutes = per_stop_minutes

        self.simulator: Optional[RouteProgressSimulator] = RouteProgressSimulator(
            route_info, per_stop_minutes
        )
        self.engine: Optional[ProximityAlertEngine] = ProximityAlertEngine()
        self.updates: queue.Queue = queue.Queue()
        self.stop_event = threading.Event()
        self.ticker_stop = threading.Event()
        self.telemetry_driven = False

        self.last_update: Optional[ProgressUpdate] = None
        self.alerts_fired = 0

        self._eval_lock = threading.Lock()
        self._ticker: Optional[ProgressTicker] = None
        self._consumer: Optional[threading.Thread] = None
        self.updates.put(self.simulator.current_update())

    @property
    def active(self) -> bool:
        return not self.stop_event.is_set()

    def start(self) -> None:
        """Begin ticking and evaluating in the background."""
        self._ticker = ProgressTicker(
            self.simulator, self.updates, self.ticker_stop, self.tick_seconds
        )
        self._ticker.start()
        self._consumer = threading.Thread(
            target=self._consume_loop, name="AlertConsumerThread", daemon=True
        )
        self._consumer.start()
        print(f"[Trip] Started trip on {self.route_id} to '{self.destination}'")

    def tick(self) -> Optional[ProgressUpdate]:
        """Advance the simulator once and queue the update (no thread needed)."""
        if not self.active or self.telemetry_driven:
            return None
        update = self.simulator.advance()
        if update is not None:
            self.updates.put(update)
        return update

    def process_pending(self) -> Optional[AlertDecision]:
        """Evaluate every queued update now. Returns the last decision made."""
        decision = None
        while True:
            try:
                update = self.updates.get_nowait()
            except queue.Empty:
                return decision
            decision = self.handle_update(update) or decision

    def _consume_loop(self) -> None:
        while not self.stop_event.is_set():
            try:
                update = self.updates.get(timeout=0.1)
            except queue.Empty:
                continue
            self.handle_update(update)

    def handle_update(self, update: ProgressUpdate,
                      from_telemetry: bool = False) -> Optional[AlertDecision]:
        """
        Evaluate one update. Simulated updates older than the last one seen
        are dropped, and so is every simulated update once telemetry has
        taken over. Telemetry may move backwards.
        """
        with self._eval_lock:
            if not self.active:
                return None
            if from_telemetry and not self.telemetry_driven:
                self.telemetry_driven = True
                self.ticker_stop.set()
                print("[Trip] Device position received, simulated progress stopped")
            elif not from_telemetry and self.telemetry_driven:
                print(f"[Trip] Ignoring simulated update for stop {update.current_stop_index}")
                return None
            if (not from_telemetry and self.last_update is not None
                    and update.current_stop_index < self.last_update.current_stop_index):
                print(f"[Trip] Ignoring out-of-order update for stop {update.current_stop_index}")
                return None

            settings = self.settings_store.snapshot()
            decision = self.engine.on_progress(update, settings)
            self.last_update = update

            if decision.fire:
                self.alerts_fired += 1
                dispatch_alert(self.sinks, settings, update.stops_remaining, self.destination)
            return decision

    def report_position(self, lat: float, lon: float) -> Optional[AlertDecision]:
        """Feed a real device position instead of simulated progress."""
        if not self.active:
            return None
        update = progress_for_position(self.route_info, lat, lon, self.per_stop_minutes)
        return self.handle_update(update, from_telemetry=True)

    def stop(self) -> None:
        """End the trip. No alert fires after this returns."""
        with self._eval_lock:
            self.stop_event.set()
            self.ticker_stop.set()
        if self._ticker is not None:
            self._ticker.join(timeout=5.0)
        if self._consumer is not None:
            self._consumer.join(timeout=5.0)
        # Discard progress state
        self.simulator = None
        self.engine = None
        self.last_update = None
        print(f"[Trip] Stopped trip on {self.route_id}")

    def status(self) -> TripStatus:
        with self._eval_lock:
            update = self.last_update
            return TripStatus(
                route_id=self.route_id,
                destination=self.destination,
                active=self.active,
                current_stop_index=update.current_stop_index if update else None,
                stops_remaining=update.stops_remaining if update else None,
                eta_minutes=update.eta_minutes if update else None,
                has_alerted=self.engine.has_alerted if self.engine else False,
                alerts_fired=self.alerts_fired,
                stops=self._stops_with_progress(update),
            )

    def _stops_with_progress(self, update: Optional[ProgressUpdate]) -> List[BusStop]:
        if update is None:
            return list(self.route_info.stops)
        return [
            stop.model_copy(update={"passed": index < update.current_stop_index})
            for index, stop in enumerate(self.route_info.stops)
        ]


def start_trip(provider: RouteProvider, route_id: str, position_source: PositionSource,
               destination: str, settings_store: AlertSettingsStore, sinks: AlertSinks,
               tick_seconds: float = TICK_INTERVAL_SECONDS,
               autostart: bool = True) -> TripSession:
    """
    Fetch route detail for the rider's position and begin a trip.

    Raises PositionUnavailable or ProviderUnavailable; no session is
    created in either case.
    """
    origin = read_position(position_source)
    route_info = provider.get_route_detail(route_id, origin, destination)
    session = TripSession(
        route_id, destination, route_info, settings_store, sinks, tick_seconds=tick_seconds
    )
    if autostart:
        session.start()
    return session
