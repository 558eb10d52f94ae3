"""
Service for holding and validating rider alert settings.
"""
import threading
from typing import Any, Optional

from pydantic import ValidationError

from busalert.errors import InvalidConfiguration
from busalert.models import AlertSettings


# Option names accepted from the configuration surface
OPTION_ALIASES = {
    "notifications": "notifications_enabled",
    "sound": "sound_enabled",
    "vibration": "vibration_enabled",
    "alertDistance": "alert_distance_stops",
    "alert_distance": "alert_distance_stops",
}


def normalize_options(options: dict) -> dict:
    return {OPTION_ALIASES.get(name, name): value for name, value in options.items()}


class AlertSettingsStore:
    """
    Current alert settings for one rider session.

    Readers get the immutable AlertSettings object itself, so a snapshot
    can never mix old and new values.
    """

    def __init__(self, settings: Optional[AlertSettings] = None):
        self._settings = settings or AlertSettings()
        self._lock = threading.Lock()

    def snapshot(self) -> AlertSettings:
        with self._lock:
            return self._settings

    def update(self, **changes: Any) -> AlertSettings:
        """
        Apply a partial update.

        Raises InvalidConfiguration and keeps the previous settings if any
        value is out of range or an option is unknown.
        """
        changes = normalize_options(changes)
        with self._lock:
            merged = {**self._settings.model_dump(), **changes}
            try:
                new_settings = AlertSettings.model_validate(merged)
            except ValidationError as e:
                print(f"[Settings] Rejected update {changes}: {e.errors()[0]['msg']}")
                raise InvalidConfiguration(f"Invalid alert settings: {e}") from e
            self._settings = new_settings
        print(f"[Settings] Updated: {new_settings.model_dump()}")
        return new_settings
