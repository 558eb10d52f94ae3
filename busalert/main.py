"""
FastAPI application for destination-approach bus alerts.
"""
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from busalert.cache import TTLCache
from busalert.config import (
    CACHE_TTL_SECONDS, TICK_INTERVAL_SECONDS, TRANSIT_API_URL, TRANSIT_API_KEY,
    PROVIDER_TIMEOUT_SECONDS
)
from busalert.errors import InvalidConfiguration, PositionUnavailable, ProviderUnavailable
from busalert.models import AlertSettings, BusRoute, RouteInfo, TripStatus
from busalert.services.position_service import FixedPositionSource
from busalert.services.region_service import RegionResolver, get_provider_for_region
from busalert.services.route_service import (
    CachedRouteProvider, HttpRouteProvider, MockRouteProvider, RouteProvider
)
from busalert.services.session_service import TripSession, start_trip
from busalert.services.settings_service import AlertSettingsStore
from busalert.services.sink_service import AlertSinks, play_test_sound, play_test_vibration


class TripRequest(BaseModel):
    """Request body for starting a trip."""
    route_id: str
    lat: float
    lon: float
    destination: str
    accuracy: Optional[float] = None


class PositionRequest(BaseModel):
    lat: float
    lon: float
    accuracy: Optional[float] = None


class SettingsRequest(BaseModel):
    """Partial settings update; omitted fields keep their value."""
    notifications: Optional[bool] = None
    sound: Optional[bool] = None
    vibration: Optional[bool] = None
    alertDistance: Optional[int] = None


def provider_error(e: ProviderUnavailable) -> HTTPException:
    detail = {"error": str(e), "retryable": e.retryable}
    if e.last_known is not None:
        detail["has_last_known"] = True
    return HTTPException(status_code=503, detail=detail)


def create_app(provider: Optional[RouteProvider] = None,
               cache: Optional[TTLCache] = None,
               sinks: Optional[AlertSinks] = None,
               tick_seconds: float = TICK_INTERVAL_SECONDS) -> FastAPI:
    """
    Build the API with its own cache, providers and rider session.

    `provider` is the raw (uncached) transit backend; defaults to the HTTP
    backend when BUSALERT_TRANSIT_API_URL is set, else the mock.
    """
    app = FastAPI(title="BusAlert API", version="1.0.0")

    if cache is None:
        cache = TTLCache(CACHE_TTL_SECONDS)
    region_resolver = RegionResolver(cache)
    if provider is None:
        if TRANSIT_API_URL:
            provider = HttpRouteProvider(TRANSIT_API_URL, TRANSIT_API_KEY, PROVIDER_TIMEOUT_SECONDS)
        else:
            provider = MockRouteProvider(region_resolver)
    routes = CachedRouteProvider(provider, cache)
    settings_store = AlertSettingsStore()
    sinks = sinks or AlertSinks()

    app.state.cache = cache
    app.state.region_resolver = region_resolver
    app.state.routes = routes
    app.state.settings_store = settings_store
    app.state.sinks = sinks
    app.state.trip = None

    def current_trip() -> TripSession:
        trip = app.state.trip
        if trip is None:
            raise HTTPException(status_code=404, detail="No active trip")
        return trip

    @app.get("/")
    def root():
        """Root endpoint."""
        return {"message": "BusAlert API", "version": "1.0.0"}

    @app.get("/region")
    def get_region(
        lat: float = Query(..., description="Current latitude"),
        lon: float = Query(..., description="Current longitude")
    ):
        region = region_resolver.resolve(lat, lon)
        return {"region": region.value, "provider": get_provider_for_region(region).id}

    @app.get("/nearby_routes", response_model=List[BusRoute])
    def get_nearby_routes(
        lat: float = Query(..., description="Current latitude"),
        lon: float = Query(..., description="Current longitude"),
        destination: str = Query(..., description="Where the rider is going")
    ):
        print(f"[API] Searching routes near ({lat}, {lon}) to '{destination}'")
        try:
            return routes.search_nearby_routes(lat, lon, destination)
        except ProviderUnavailable as e:
            raise provider_error(e)

    @app.get("/route_detail", response_model=RouteInfo)
    def get_route_detail(
        route_id: str = Query(..., description="Bus route id from /nearby_routes"),
        lat: float = Query(..., description="Current latitude"),
        lon: float = Query(..., description="Current longitude"),
        destination: str = Query(..., description="Where the rider is going")
    ):
        try:
            return routes.get_route_detail(route_id, (lat, lon), destination)
        except ProviderUnavailable as e:
            raise provider_error(e)

    @app.get("/settings", response_model=AlertSettings)
    def get_settings():
        return settings_store.snapshot()

    @app.put("/settings", response_model=AlertSettings)
    def put_settings(request: SettingsRequest):
        changes = request.model_dump(exclude_none=True)
        try:
            return settings_store.update(**changes)
        except InvalidConfiguration as e:
            raise HTTPException(status_code=422, detail=str(e))

    @app.post("/trip", response_model=TripStatus)
    def post_trip(request: TripRequest):
        """Start tracking a trip, replacing any trip already in progress."""
        if app.state.trip is not None:
            app.state.trip.stop()
            app.state.trip = None

        source = FixedPositionSource(request.lat, request.lon, request.accuracy)
        try:
            trip = start_trip(
                routes, request.route_id, source, request.destination,
                settings_store, sinks, tick_seconds=tick_seconds, autostart=False
            )
        except ProviderUnavailable as e:
            raise provider_error(e)
        except PositionUnavailable as e:
            raise HTTPException(status_code=409, detail={"error": str(e), "reason": e.reason})
        except Exception as e:
            print(f"[Internal Error] {str(e)}")
            raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

        # Evaluate the starting stop before the timer takes over
        trip.process_pending()
        trip.start()
        app.state.trip = trip
        return trip.status()

    @app.get("/trip", response_model=TripStatus)
    def get_trip():
        return current_trip().status()

    @app.post("/trip/position", response_model=TripStatus)
    def post_position(request: PositionRequest):
        trip = current_trip()
        trip.report_position(request.lat, request.lon)
        return trip.status()

    @app.delete("/trip")
    def delete_trip():
        trip = current_trip()
        trip.stop()
        app.state.trip = None
        return {"stopped": True}

    @app.post("/alerts/test_sound")
    def post_test_sound():
        return {"triggered": play_test_sound(sinks)}

    @app.post("/alerts/test_vibration")
    def post_test_vibration():
        return {"triggered": play_test_vibration(sinks)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
