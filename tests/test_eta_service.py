import asyncio

import pytest
import requests

from orders.models import Order
from orders.zones import get_zone
from routing.eta_service import DEFAULT_DETOUR_FACTOR, EtaEstimator
from routing.geo import haversine_meters
from routing.osrm_client import OSRMClient, OSRMError
from routing.route_service import RoutedEtaEstimator
from routing.waypoints import STUDENT_CAFE


@pytest.fixture
def estimator():
    return EtaEstimator()


def test_estimate_bends_through_nearest_waypoint(estimator):
    shaw = get_zone("SHAW").anchor

    eta = estimator.estimate(STUDENT_CAFE.coordinates, shaw)

    # 1. routed via the zone's own anchor
    assert eta.via_waypoint == "SHAW"

    # 2. straight line inflated by the detour factor, walked at 1.4 m/s
    expected = haversine_meters(STUDENT_CAFE.coordinates, shaw) * DEFAULT_DETOUR_FACTOR
    assert eta.distance_meters == pytest.approx(expected)
    assert eta.duration_seconds == pytest.approx(expected / 1.4)


def test_estimate_for_arbitrary_destination_adds_last_leg(estimator):
    # a point just off the SRRS waypoint
    destination = (22.41970, 114.20675)

    eta = estimator.estimate(STUDENT_CAFE.coordinates, destination)

    assert eta.via_waypoint == "SRRS"
    straight = haversine_meters(STUDENT_CAFE.coordinates, destination) * DEFAULT_DETOUR_FACTOR
    assert eta.distance_meters >= straight


@pytest.mark.parametrize("zone_code", ["UC", "MED", "SHAW", "NA", "CC"])
@pytest.mark.parametrize("heading", [(1, 0), (0, 1), (-1, 1), (-1, -1)])
def test_estimate_grows_moving_away_from_zone(estimator, zone_code, heading):
    """
    Walking a partner outward along a straight line from the drop-off never
    makes the ETA shorter.
    """
    anchor = get_zone(zone_code).anchor
    step = 0.0003

    points = [(anchor[0] + k * step * heading[0], anchor[1] + k * step * heading[1]) for k in range(15)]
    durations = [estimator.estimate(point, anchor).duration_seconds for point in points]

    assert durations[0] == pytest.approx(0.0)
    assert all(later >= earlier for earlier, later in zip(durations, durations[1:]))


def test_pending_order_estimates_from_pickup(estimator, order_record):
    order = Order.from_record(order_record())

    eta = estimator.estimate_for_order(order)

    assert eta.from_point == STUDENT_CAFE.coordinates


def test_accepted_order_without_position_falls_back_to_pickup(estimator, order_record):
    order = Order.from_record(order_record(status="accepted", partner_id="partner_p"))

    eta = estimator.estimate_for_order(order)

    # 1. no report yet: the pickup point stands in
    assert eta.from_point == STUDENT_CAFE.coordinates

    moving = Order.from_record(order_record(
        status="accepted", partner_id="partner_p", partner_lat=22.4200, partner_lng=114.2080,
    ))

    # 2. once reported, the partner position is used
    assert estimator.estimate_for_order(moving).from_point == (22.4200, 114.2080)
    assert estimator.estimate_for_order(moving).distance_meters < eta.distance_meters


def test_terminal_orders_have_no_eta(estimator, order_record):
    delivered = Order.from_record(order_record(status="delivered", partner_id="partner_p"))
    cancelled = Order.from_record(order_record(status="cancelled"))

    assert estimator.estimate_for_order(delivered) is None
    assert estimator.estimate_for_order(cancelled) is None


def test_estimator_rejects_bad_parameters():
    with pytest.raises(ValueError):
        EtaEstimator(walking_speed_mps=0)
    with pytest.raises(ValueError):
        EtaEstimator(detour_factor=0.9)


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def json(self):
        return self.payload


def test_osrm_client_parses_route(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append(url)
        return FakeResponse({"code": "Ok", "routes": [{"distance": 612.0, "duration": 437.0}]})

    monkeypatch.setattr(requests, "get", fake_get)
    client = OSRMClient(base_url="http://osrm.local/")

    route = client.compute_route([(22.418461, 114.204712), (22.421197, 114.209186)])

    # 1. normalised output
    assert route == {"distance": 612.0, "duration": 437.0}

    # 2. OSRM wants lon,lat and the foot profile
    assert calls[0] == "http://osrm.local/route/v1/foot/114.204712,22.418461;114.209186,22.421197"


def test_osrm_client_wraps_failures(monkeypatch):
    def broken_get(url, params=None, timeout=None):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(requests, "get", broken_get)
    client = OSRMClient(base_url="http://osrm.local")

    with pytest.raises(OSRMError):
        client.compute_route([(22.41, 114.20), (22.42, 114.21)])

    monkeypatch.setattr(requests, "get", lambda url, params=None, timeout=None: FakeResponse({"code": "NoRoute"}))
    with pytest.raises(OSRMError):
        client.compute_route([(22.41, 114.20), (22.42, 114.21)])


class StubOSRM:
    def __init__(self, fail=False):
        self.fail = fail

    def compute_route(self, coordinates):
        if self.fail:
            raise OSRMError("down")
        return {"distance": 700.0, "duration": 500.0}


def test_routed_estimator_uses_walking_route(order_record):
    order = Order.from_record(order_record())

    eta = asyncio.run(RoutedEtaEstimator(StubOSRM()).estimate_for_order(order))

    # the router's figures as-is: no waypoint leg, no detour factor
    assert eta.distance_meters == 700.0
    assert eta.duration_seconds == 500.0
    assert eta.via_waypoint is None


def test_routed_estimator_falls_back_to_waypoints(order_record):
    order = Order.from_record(order_record())
    fallback = EtaEstimator()

    eta = asyncio.run(RoutedEtaEstimator(StubOSRM(fail=True), fallback).estimate_for_order(order))

    # same answer the waypoint estimator gives
    assert eta == fallback.estimate_for_order(order)


def test_routed_estimator_terminal_order(order_record):
    order = Order.from_record(order_record(status="cancelled"))

    assert asyncio.run(RoutedEtaEstimator(StubOSRM()).estimate_for_order(order)) is None
