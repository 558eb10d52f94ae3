"""
Service for searching nearby bus routes and fetching route details.
"""
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from pydantic import ValidationError

from busalert.cache import TTLCache, coordinate_key
from busalert.config import (
    BUS_NUMBERS, STOP_NAMES, DESTINATION_LABELS, ORIGIN_STOP_NAME,
    MINUTES_PER_STOP, COORDINATE_PRECISION, PROVIDER_TIMEOUT_SECONDS
)
from busalert.errors import ProviderUnavailable
from busalert.models import BusRoute, BusStop, CapacityLevel, Region, RouteInfo
from busalert.services.region_service import RegionResolver, get_provider_for_region


Coordinates = Tuple[float, float]


class RouteProvider(ABC):
    """Transit backend interface. Implementations raise ProviderUnavailable on failure."""

    @abstractmethod
    def search_nearby_routes(self, lat: float, lon: float,
                             destination: str) -> List[BusRoute]:
        """Buses near (lat, lon) heading towards destination, sorted by ETA."""

    @abstractmethod
    def get_route_detail(self, route_id: str, origin: Coordinates,
                         destination: str) -> RouteInfo:
        """Ordered stops for route_id from origin to destination."""


def sort_by_eta(routes: Sequence[BusRoute]) -> List[BusRoute]:
    """Sort routes by ETA, keeping generation order for ties."""
    return sorted(routes, key=lambda route: route.eta_minutes)


def resolve_destination_index(stop_names: Sequence[str], destination: str) -> Tuple[int, bool]:
    """
    Find which generated stop is the rider's destination.

    Returns (index, matched). If no stop name matches the requested text,
    falls back to the second-to-last stop with matched=False.
    """
    wanted = destination.strip().lower()
    if wanted:
        for index, name in enumerate(stop_names):
            if index > 0 and name.lower() == wanted:
                return index, True
    return max(0, len(stop_names) - 2), False


class MockRouteProvider(RouteProvider):
    """Generates plausible routes from per-region tables."""

    def __init__(self, region_resolver: RegionResolver, rng: Optional[random.Random] = None):
        self.region_resolver = region_resolver
        self.rng = rng or random.Random()

    def search_nearby_routes(self, lat: float, lon: float,
                             destination: str) -> List[BusRoute]:
        region = self.region_resolver.resolve(lat, lon)
        provider = get_provider_for_region(region)
        print(f"[Route Service] Searching buses with provider {provider.name} in region {region.value}")

        labels = DESTINATION_LABELS.get(region.value, DESTINATION_LABELS[Region.GLOBAL.value])
        routes = []
        for index, number in enumerate(BUS_NUMBERS.get(region.value, BUS_NUMBERS[Region.GLOBAL.value])):
            routes.append(BusRoute(
                id=f"bus-{number}-{index}",
                number=number,
                destination_label=self.rng.choice(labels),
                eta_minutes=self.rng.randint(3, 18),
                capacity_level=self.rng.choice(list(CapacityLevel)),
                distance_meters=self.rng.randint(100, 600),
                provider_id=provider.id,
            ))
        return sort_by_eta(routes)

    def get_route_detail(self, route_id: str, origin: Coordinates,
                         destination: str) -> RouteInfo:
        lat, lon = origin
        region = self.region_resolver.resolve(lat, lon)
        provider = get_provider_for_region(region)
        print(f"[Route Service] Building route for bus {route_id} in region {region.value}")

        stop_names = STOP_NAMES.get(region.value, STOP_NAMES[Region.GLOBAL.value])
        destination_index, matched = resolve_destination_index(stop_names, destination)
        if not matched:
            print(f"[Route Service] '{destination}' not on route, using stop {destination_index} as destination")

        stops = []
        for index, name in enumerate(stop_names):
            if index == 0:
                name = ORIGIN_STOP_NAME
            elif index == destination_index and not matched and destination.strip():
                name = destination.strip()
            stops.append(BusStop(
                id=f"stop-{index}",
                name=name,
                latitude=lat + (self.rng.random() - 0.5) * 0.01,
                longitude=lon + (self.rng.random() - 0.5) * 0.01,
                distance_from_origin_km=index * 0.8 + self.rng.random() * 0.3,
                is_destination=index == destination_index,
            ))

        return RouteInfo(
            stops=tuple(stops),
            total_distance_km=stops[-1].distance_from_origin_km if stops else 0.0,
            estimated_time_minutes=len(stops) * MINUTES_PER_STOP,
            provider_id=provider.id,
        )


class HttpRouteProvider(RouteProvider):
    """
    JSON-over-HTTP transit backend.

    Expects `GET {base_url}/routes` to return a list of bus routes and
    `GET {base_url}/routes/{route_id}` to return a route detail, both
    shaped like the BusRoute/RouteInfo models.
    """

    def __init__(self, base_url: str, api_key: Optional[str] = None,
                 timeout: float = PROVIDER_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["AccountKey"] = self.api_key
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"[Route Service] Error calling {url}: {e}")
            raise ProviderUnavailable(f"Transit backend request failed: {e}") from e

    def search_nearby_routes(self, lat: float, lon: float,
                             destination: str) -> List[BusRoute]:
        data = self._get_json("/routes", {"lat": lat, "lon": lon, "destination": destination})
        if isinstance(data, dict):
            data = data.get("value")
        if not isinstance(data, list):
            print(f"[Route Service] Route search returned no route list: {data!r}")
            raise ProviderUnavailable("Route search response has no route list")
        try:
            routes = [BusRoute.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise ProviderUnavailable(f"Malformed route search response: {e}") from e
        return sort_by_eta(routes)

    def get_route_detail(self, route_id: str, origin: Coordinates,
                         destination: str) -> RouteInfo:
        lat, lon = origin
        data = self._get_json(
            f"/routes/{route_id}", {"lat": lat, "lon": lon, "destination": destination}
        )
        try:
            return RouteInfo.model_validate(data)
        except ValidationError as e:
            raise ProviderUnavailable(f"Malformed route detail response: {e}") from e


class CachedRouteProvider(RouteProvider):
    """Wraps a RouteProvider so identical queries hit upstream once per TTL window."""

    def __init__(self, provider: RouteProvider, cache: TTLCache):
        self.provider = provider
        self.cache = cache

    def search_nearby_routes(self, lat: float, lon: float,
                             destination: str) -> List[BusRoute]:
        key = f"routes:{coordinate_key(lat, lon, COORDINATE_PRECISION)}:{destination}"
        routes = self._fetch(
            key, lambda: tuple(self.provider.search_nearby_routes(lat, lon, destination))
        )
        if not routes:
            print(f"[Route Service] No routes found near ({lat}, {lon}) to '{destination}'")
        return list(routes)

    def get_route_detail(self, route_id: str, origin: Coordinates,
                         destination: str) -> RouteInfo:
        key = f"route:{route_id}:{destination}"
        return self._fetch(
            key, lambda: self.provider.get_route_detail(route_id, origin, destination)
        )

    def _fetch(self, key: str, producer):
        try:
            return self.cache.get_or_fetch(key, producer)
        except ProviderUnavailable as e:
            # Leave the stale entry in place; hand it to the caller for display
            e.last_known = self.cache.peek(key)
            raise
