"""
Device position sources.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator, Optional, Tuple

from busalert.errors import PositionUnavailable
from busalert.models import PositionSample


class PositionError(str, Enum):
    """Terminal error tags a position source may end with."""
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"


class PositionSource(ABC):
    @abstractmethod
    def samples(self) -> Iterator[PositionSample]:
        """
        Lazy stream of position samples. Calling again restarts the stream.
        Raises PositionUnavailable when the device cannot deliver a fix.
        """


class FixedPositionSource(PositionSource):
    """Reports the same fix forever, or fails with the given error."""

    def __init__(self, latitude: float, longitude: float,
                 accuracy_meters: Optional[float] = None,
                 error: Optional[PositionError] = None):
        self.sample = PositionSample(
            latitude=latitude, longitude=longitude, accuracy_meters=accuracy_meters
        )
        self.error = error

    def samples(self) -> Iterator[PositionSample]:
        if self.error is not None:
            raise PositionUnavailable(self.error.value)
        while True:
            yield self.sample


def read_position(source: PositionSource) -> Tuple[float, float]:
    """First (latitude, longitude) fix from a source. No retries."""
    try:
        sample = next(iter(source.samples()))
    except StopIteration:
        raise PositionUnavailable(PositionError.UNAVAILABLE.value)
    except PositionUnavailable as e:
        print(f"[Position] Could not read position: {e.reason}")
        raise
    return sample.latitude, sample.longitude
