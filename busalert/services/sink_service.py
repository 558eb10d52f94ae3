"""
Best-effort delivery of alerts to notification, sound and vibration sinks.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from busalert.config import (
    NOTIFICATION_TITLE, NOTIFICATION_TAG, DESTINATION_BEEPS,
    ALERT_VIBRATION_PATTERN, TEST_VIBRATION_PATTERN
)
from busalert.models import AlertSettings


class AlertSink(ABC):
    """Fire-and-forget output channel."""

    name = "sink"

    @abstractmethod
    def trigger(self, payload: Dict[str, Any]) -> None:
        ...


class ConsoleNotificationSink(AlertSink):
    name = "notification"

    def trigger(self, payload: Dict[str, Any]) -> None:
        print(f"[Notification] {payload['title']}: {payload['body']}")


class ConsoleSoundSink(AlertSink):
    name = "sound"

    def trigger(self, payload: Dict[str, Any]) -> None:
        beeps = ", ".join(f"{hz} Hz/{ms} ms" for hz, ms in payload["beeps"])
        print(f"[Sound] Playing {beeps}")


class ConsoleVibrationSink(AlertSink):
    name = "vibration"

    def trigger(self, payload: Dict[str, Any]) -> None:
        print(f"[Vibration] Pattern {payload['pattern']}")


class AlertSinks:
    """The three alert outputs for one rider."""

    def __init__(self, notification: Optional[AlertSink] = None,
                 sound: Optional[AlertSink] = None,
                 vibration: Optional[AlertSink] = None):
        self.notification = notification or ConsoleNotificationSink()
        self.sound = sound or ConsoleSoundSink()
        self.vibration = vibration or ConsoleVibrationSink()


def build_notification(stops_remaining: int, destination: str) -> Dict[str, Any]:
    return {
        "title": NOTIFICATION_TITLE,
        "body": f"{stops_remaining} stop(s) left to {destination}",
        "tag": NOTIFICATION_TAG,
        "require_interaction": True,
    }


def _safe_trigger(sink: AlertSink, payload: Dict[str, Any]) -> bool:
    try:
        sink.trigger(payload)
        return True
    except Exception as e:
        # Sinks are best-effort; log and carry on with the rest
        print(f"[Sinks] {sink.name} sink failed: {e}")
        return False


def dispatch_alert(sinks: AlertSinks, settings: AlertSettings,
                   stops_remaining: int, destination: str) -> Dict[str, bool]:
    """
    Deliver a fired alert to every sink enabled in settings.

    Returns {sink name: delivered} for the sinks that were attempted.
    """
    results = {}
    if settings.notifications_enabled:
        results["notification"] = _safe_trigger(
            sinks.notification, build_notification(stops_remaining, destination)
        )
    if settings.sound_enabled:
        results["sound"] = _safe_trigger(sinks.sound, {"beeps": DESTINATION_BEEPS})
    if settings.vibration_enabled:
        results["vibration"] = _safe_trigger(sinks.vibration, {"pattern": ALERT_VIBRATION_PATTERN})
    return results


def play_test_sound(sinks: AlertSinks) -> bool:
    """Play the destination sound outside of any trip."""
    return _safe_trigger(sinks.sound, {"beeps": DESTINATION_BEEPS})


def play_test_vibration(sinks: AlertSinks) -> bool:
    """Vibrate with the short test pattern outside of any trip."""
    return _safe_trigger(sinks.vibration, {"pattern": TEST_VIBRATION_PATTERN})
