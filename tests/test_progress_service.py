"""
Unit tests for route progress simulation and position matching.
"""
import math
import queue
import threading
import pytest

from busalert.models import BusStop, RouteInfo
from busalert.services.progress_service import (
    EARTH_RADIUS_METERS, ProgressTicker, RouteProgressSimulator, build_update,
    haversine_distance, nearest_stop_index, progress_for_position
)


def make_route_info(num_stops=6, destination_index=4):
    stops = tuple(
        BusStop(id=f"stop-{i}", name=f"Stop {i}", latitude=-23.5 + i * 0.002,
                longitude=-46.5, distance_from_origin_km=i * 0.8,
                is_destination=(i == destination_index))
        for i in range(num_stops)
    )
    return RouteInfo(stops=stops, total_distance_km=stops[-1].distance_from_origin_km,
                     estimated_time_minutes=num_stops * 3, provider_id="sptrans")


def test_initial_state():
    """Test: simulator starts at the first stop"""
    simulator = RouteProgressSimulator(make_route_info())
    update = simulator.current_update()

    assert simulator.current_stop_index == 0
    assert update.stops_remaining == 4
    assert update.eta_minutes == 12


def test_advance_until_terminal():
    """Test: each advance moves one stop until the last stop"""
    simulator = RouteProgressSimulator(make_route_info())

    updates = []
    while True:
        update = simulator.advance()
        if update is None:
            break
        updates.append(update)

    assert [u.current_stop_index for u in updates] == [1, 2, 3, 4, 5]
    assert [u.stops_remaining for u in updates] == [3, 2, 1, 0, 0]
    assert simulator.is_terminal
    assert simulator.advance() is None
    assert simulator.current_stop_index == 5


def test_eta_has_one_minute_floor():
    """Test: ETA is stops * 3 with a floor of one minute"""
    simulator = RouteProgressSimulator(make_route_info())
    etas = []
    while True:
        update = simulator.advance()
        if update is None:
            break
        etas.append(update.eta_minutes)
    assert etas == [9, 6, 3, 1, 1]


def test_stops_remaining_zero_only_at_or_after_destination():
    """Test: zero stops remaining never happens before the destination"""
    route_info = make_route_info(num_stops=8, destination_index=5)
    for index in range(len(route_info.stops)):
        update = build_update(route_info, index)
        assert (update.stops_remaining == 0) == (index >= route_info.destination_index)


def test_single_stop_route_is_terminal():
    """Test: a one-stop route never advances"""
    simulator = RouteProgressSimulator(make_route_info(num_stops=1, destination_index=0))
    assert simulator.is_terminal
    assert simulator.advance() is None
    assert simulator.current_update().stops_remaining == 0


def test_ticker_publishes_every_stop_in_order():
    """Test: background ticker delivers all updates then finishes"""
    simulator = RouteProgressSimulator(make_route_info())
    updates = queue.Queue()
    ticker = ProgressTicker(simulator, updates, threading.Event(), interval_seconds=0.01)

    ticker.start()
    ticker.join(timeout=5)

    indexes = []
    while not updates.empty():
        indexes.append(updates.get_nowait().current_stop_index)
    assert indexes == [1, 2, 3, 4, 5]


def test_ticker_stops_on_event():
    """Test: setting the stop event halts ticking"""
    simulator = RouteProgressSimulator(make_route_info())
    stop_event = threading.Event()
    ticker = ProgressTicker(simulator, queue.Queue(), stop_event, interval_seconds=60)

    ticker.start()
    stop_event.set()
    ticker.join(timeout=5)

    assert not ticker.thread.is_alive()
    assert simulator.current_stop_index == 0


def test_nearest_stop_index():
    """Test: position maps to the closest stop"""
    route_info = make_route_info()
    assert nearest_stop_index(route_info.stops, -23.5, -46.5) == 0
    assert nearest_stop_index(route_info.stops, -23.4941, -46.5) == 3


def test_nearest_stop_index_requires_stops():
    """Test: matching against no stops is an error"""
    with pytest.raises(ValueError):
        nearest_stop_index([], 0.0, 0.0)


def test_progress_for_position():
    """Test: telemetry position becomes a progress update"""
    update = progress_for_position(make_route_info(), -23.496, -46.5)
    assert update.current_stop_index == 2
    assert update.stops_remaining == 2
    assert update.eta_minutes == 6


def test_haversine_distance_in_meters():
    """Test: one degree of latitude is about 111 km"""
    distance = haversine_distance(0.0, 0.0, 1.0, 0.0)
    assert distance == pytest.approx(EARTH_RADIUS_METERS * math.pi / 180)
    assert distance == pytest.approx(111195, abs=1)
    assert haversine_distance(-23.5, -46.5, -23.5, -46.5) == 0.0
