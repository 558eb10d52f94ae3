"""
Service for classifying coordinates into transit regions.
"""
from typing import Dict, Optional
from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry

from busalert.cache import TTLCache, coordinate_key
from busalert.config import COORDINATE_PRECISION, REGION_BOUNDS, TRANSPORT_PROVIDERS
from busalert.models import Region, TransportProvider


def build_region_boxes() -> Dict[Region, BaseGeometry]:
    """Create a Shapely box per configured region (x = lon, y = lat)."""
    boxes = {}
    for region_id, (min_lat, max_lat, min_lon, max_lon) in REGION_BOUNDS.items():
        boxes[Region(region_id)] = box(min_lon, min_lat, max_lon, max_lat)
    return boxes


def classify(lat: float, lon: float, boxes: Dict[Region, BaseGeometry]) -> Region:
    """Map a coordinate pair to the first region whose box covers it."""
    point = Point(lon, lat)  # Shapely uses (lon, lat)
    for region, region_box in boxes.items():
        # covers() includes the boundary, matching inclusive bounds
        if region_box.covers(point):
            return region
    return Region.GLOBAL


def get_provider_for_region(region: Region) -> TransportProvider:
    """Pick the transport provider serving a region, falling back to the global one."""
    providers = [
        TransportProvider(id=p["id"], name=p["name"], regions=tuple(p["regions"]))
        for p in TRANSPORT_PROVIDERS
    ]
    for provider in providers:
        if region.value in provider.regions:
            return provider
    return providers[0]


class RegionResolver:
    """Cache-backed region classification. Never fails."""

    def __init__(self, cache: TTLCache, boxes: Optional[Dict[Region, BaseGeometry]] = None):
        self.cache = cache
        self.boxes = boxes if boxes is not None else build_region_boxes()

    def resolve(self, lat: float, lon: float) -> Region:
        """
        Classify a coordinate pair.

        Coordinates are quantized before classification, so every point
        sharing a cache key gets the same region.
        """
        try:
            key = f"region:{coordinate_key(lat, lon, COORDINATE_PRECISION)}"
            cached = self.cache.get(key)
            if cached is not None:
                return cached
            region = classify(
                round(lat, COORDINATE_PRECISION), round(lon, COORDINATE_PRECISION), self.boxes
            )
        except Exception as e:
            print(f"[Region] Error classifying ({lat}, {lon}): {e}; defaulting to global")
            return Region.GLOBAL

        print(f"[Region] Detected region {region.value} for ({lat}, {lon})")
        self.cache.put(key, region)
        return region
