"""
Unit tests for alert sink dispatch.
"""
from busalert.config import ALERT_VIBRATION_PATTERN, TEST_VIBRATION_PATTERN
from busalert.models import AlertSettings
from busalert.services.sink_service import (
    AlertSink, AlertSinks, ConsoleNotificationSink, ConsoleSoundSink, dispatch_alert, play_test_sound, play_test_vibration
)


class RecordingSink(AlertSink):
    def __init__(self, name):
        self.name = name
        self.payloads = []

    def trigger(self, payload):
        self.payloads.append(payload)


class BrokenSink(AlertSink):
    name = "broken"

    def trigger(self, payload):
        raise PermissionError("permission denied")


def make_sinks():
    return AlertSinks(
        notification=RecordingSink("notification"),
        sound=RecordingSink("sound"),
        vibration=RecordingSink("vibration"),
    )


def test_dispatch_to_all_enabled_sinks():
    """Test: each enabled sink gets its payload"""
    sinks = make_sinks()
    results = dispatch_alert(sinks, AlertSettings(), 2, "Terminal Bandeira")

    assert results == {"notification": True, "sound": True, "vibration": True}
    notification = sinks.notification.payloads[0]
    assert notification["body"] == "2 stop(s) left to Terminal Bandeira"
    assert notification["tag"] == "destination-alert"
    assert notification["require_interaction"]
    assert len(sinks.sound.payloads[0]["beeps"]) == 3
    assert sinks.vibration.payloads[0]["pattern"] == ALERT_VIBRATION_PATTERN


def test_disabled_sinks_are_skipped():
    """Test: toggled-off cues are not triggered"""
    sinks = make_sinks()
    settings = AlertSettings(sound_enabled=False, vibration_enabled=False)
    results = dispatch_alert(sinks, settings, 1, "Centro")

    assert results == {"notification": True}
    assert sinks.sound.payloads == []
    assert sinks.vibration.payloads == []


def test_failing_sink_does_not_block_others():
    """Test: a sink error is contained"""
    sinks = make_sinks()
    sinks.sound = BrokenSink()
    results = dispatch_alert(sinks, AlertSettings(), 1, "Centro")

    assert results == {"notification": True, "sound": False, "vibration": True}
    assert len(sinks.notification.payloads) == 1
    assert len(sinks.vibration.payloads) == 1


def test_manual_test_cues():
    """Test: test sound and vibration use their own patterns"""
    sinks = make_sinks()
    assert play_test_sound(sinks)
    assert play_test_vibration(sinks)
    assert sinks.vibration.payloads[0]["pattern"] == TEST_VIBRATION_PATTERN


def test_manual_test_cue_failure_reported():
    """Test: an unsupported device reports the cue as not triggered"""
    sinks = AlertSinks(vibration=BrokenSink())
    assert not play_test_vibration(sinks)


def test_missing_sinks_default_to_console():
    """Test: sinks left as None fall back to console output"""
    vibration = RecordingSink("vibration")
    sinks = AlertSinks(vibration=vibration)

    assert isinstance(sinks.notification, ConsoleNotificationSink)
    assert isinstance(sinks.sound, ConsoleSoundSink)
    assert sinks.vibration is vibration
