"""
Proximity alert state machine.

Decides from progress alone when to fire the "prepare to get off" alert,
exactly once per approach, and when to rearm after the rider leaves the
alert window.
"""
import threading

from busalert.models import AlertDecision, AlertSettings, ProgressUpdate


class ProximityAlertEngine:
    """
    Holds the fired flag for one trip.

    Rules, evaluated per update against one settings snapshot:
    1. 0 < stops_remaining <= alert distance and not yet alerted: fire.
    2. stops_remaining > alert distance and alerted: rearm.
    3. Otherwise: no change.

    Arrival (stops_remaining == 0) never fires a new alert.
    """

    def __init__(self):
        self.has_alerted = False
        self._lock = threading.Lock()

    def on_progress(self, update: ProgressUpdate, settings: AlertSettings) -> AlertDecision:
        stops_remaining = update.stops_remaining
        alert_distance = settings.alert_distance_stops

        with self._lock:
            if 0 < stops_remaining <= alert_distance and not self.has_alerted:
                self.has_alerted = True
                print(f"[Alert] Firing destination alert, {stops_remaining} stop(s) remaining")
                return AlertDecision(fire=True, stops_remaining=stops_remaining)

            if stops_remaining > alert_distance and self.has_alerted:
                self.has_alerted = False
                print(f"[Alert] Rearmed, {stops_remaining} stop(s) remaining")
                return AlertDecision(rearmed=True, stops_remaining=stops_remaining)

        return AlertDecision(stops_remaining=stops_remaining)

    def reset(self) -> None:
        with self._lock:
            self.has_alerted = False
