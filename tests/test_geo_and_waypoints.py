import math

import pytest

from routing.geo import haversine_meters, interpolate, is_valid_coordinate, walking_duration_seconds
from routing.waypoints import CAMPUS_WAYPOINTS, STUDENT_CAFE, get_pickup_point, nearest_waypoint
from orders.zones import CAMPUS_ZONES, get_zone, list_zones


def test_haversine_known_distances():
    """
    Distances on campus scale are in the hundreds of metres, and the
    function is symmetric with zero self-distance.
    """
    cafe = STUDENT_CAFE.coordinates
    new_asia = get_zone("NA").anchor

    d = haversine_meters(cafe, new_asia)

    # 1. Cafe -> New Asia is roughly 540 m as the crow flies
    assert 450 < d < 650

    # 2. symmetric
    assert math.isclose(d, haversine_meters(new_asia, cafe))

    # 3. identical points
    assert haversine_meters(cafe, cafe) == 0.0

    # 4. one degree of latitude is ~111 km anywhere
    assert 110_000 < haversine_meters((0.0, 0.0), (1.0, 0.0)) < 112_500


def test_interpolate_is_clamped():
    a = (22.0, 114.0)
    b = (23.0, 115.0)

    assert interpolate(a, b, 0.5) == (22.5, 114.5)
    assert interpolate(a, b, -1) == a
    assert interpolate(a, b, 2) == b


def test_walking_duration():
    # 1. 140 m at 1.4 m/s is 100 s
    assert math.isclose(walking_duration_seconds(140.0, 1.4), 100.0)

    # 2. zero distance takes no time
    assert walking_duration_seconds(0.0) == 0.0

    # 3. nonsense speed is rejected
    with pytest.raises(ValueError):
        walking_duration_seconds(100.0, 0)


def test_coordinate_validation():
    assert is_valid_coordinate(22.4185, 114.2047)
    assert not is_valid_coordinate(91.0, 0.0)
    assert not is_valid_coordinate(0.0, -181.0)
    assert not is_valid_coordinate(float("nan"), 114.0)
    assert not is_valid_coordinate(None, 114.0)


def test_nearest_waypoint_prefers_exact_match_and_earlier_on_tie():
    # 1. a zone anchor is its own nearest waypoint
    for zone in CAMPUS_ZONES:
        assert nearest_waypoint(zone.anchor).code == zone.code

    # 2. ties resolve to the earlier catalog entry
    twins = [CAMPUS_WAYPOINTS[1], CAMPUS_WAYPOINTS[1]]
    assert nearest_waypoint((0.0, 0.0), twins) is twins[0]

    # 3. empty catalog is a programming error
    with pytest.raises(ValueError):
        nearest_waypoint((0.0, 0.0), [])


def test_catalog_lookups():
    assert get_pickup_point("STUDENT_CAFE") is STUDENT_CAFE
    assert get_pickup_point("NOWHERE") is None
    assert get_zone("XX") is None

    walk_times = [zone.walk_time_minutes for zone in list_zones()]
    assert walk_times == sorted(walk_times)
