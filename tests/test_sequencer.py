import pytest

from fieldops.models.domain import Coordinate
from fieldops.services.geospatial import distance_meters
from fieldops.services.routing.sequencer import (
    estimate_route_time,
    nearest_neighbor_order,
    optimize_route_points,
    path_distance_meters,
    sequence_route,
)

A = Coordinate("a", 4.6, -74.0)
B = Coordinate("b", 4.6, -74.1)
C = Coordinate("c", 4.6, -74.2)
D = Coordinate("d", 4.6, -74.3)


def test_single_point_is_returned_unchanged():
    assert optimize_route_points([A]) == [A]
    assert optimize_route_points([]) == []
    assert optimize_route_points([D, A], start=A) == [D, A]


def test_nearest_neighbour_walks_from_first_point():
    assert optimize_route_points([A, D, B, C]) == [A, B, C, D]


def test_order_indices_keep_repeated_coordinates_apart():
    assert nearest_neighbor_order([A, D, B, C]) == [0, 2, 3, 1]
    assert nearest_neighbor_order([A, D, A]) == [0, 2, 1]
    assert nearest_neighbor_order([D, A]) == [0, 1]


def test_start_point_leads_the_tour():
    ordered = optimize_route_points([A, D, B, C], start=C)

    assert ordered[0].id == "c"
    assert sorted(c.id for c in ordered) == ["a", "b", "c", "d"]


def test_start_point_outside_the_set_is_prepended():
    depot = Coordinate("depot", 4.6, -74.35)

    ordered = optimize_route_points([A, B, C], start=depot)

    assert [c.id for c in ordered] == ["depot", "c", "b", "a"]


def test_ties_resolve_to_the_earliest_candidate():
    origin = Coordinate("o", 0.0, 0.0)
    east = Coordinate("e", 0.0, 0.5)
    west = Coordinate("w", 0.0, -0.5)

    assert [c.id for c in optimize_route_points([origin, east, west])] == ["o", "e", "w"]
    assert [c.id for c in optimize_route_points([origin, west, east])] == ["o", "w", "e"]


def test_sequence_route_reports_improvement():
    result = sequence_route([A, D, B, C])

    assert [c.id for c in result.coordinates] == ["a", "b", "c", "d"]
    assert result.optimized_distance_m == pytest.approx(path_distance_meters([A, B, C, D]))
    assert result.improvement_percentage == pytest.approx(50.0, abs=0.5)
    assert result.algorithm == "nearest_neighbor"


def test_sequence_route_on_identical_points_has_no_improvement():
    result = sequence_route([A, A])
    assert result.original_distance_m == 0
    assert result.improvement_percentage == 0.0


def test_estimate_uses_stop_minutes_travel_and_setup():
    first = Coordinate("p1", 4.6, -74.1)
    second = Coordinate("p2", 4.6, -74.0)
    expected_travel = distance_meters(first, second) / 1000 / 60 * 60

    estimate = estimate_route_time([(first, 15), (second, 20)], speed_kmh=60)

    assert estimate.work_minutes == 35
    assert estimate.travel_minutes == round(expected_travel)
    assert estimate.setup_minutes == 30
    assert estimate.break_minutes == 0
    assert estimate.total_minutes == round(35 + expected_travel + 30)
    assert [timing.point_order for timing in estimate.breakdown] == [1, 2]
    assert estimate.breakdown[1].travel_minutes == pytest.approx(expected_travel)
    assert estimate.breakdown[1].cumulative_minutes == pytest.approx(35 + expected_travel)


def test_metropolitan_zones_travel_slower_than_rural():
    stops = [(Coordinate("p1", 4.6, -74.1), None), (Coordinate("p2", 4.6, -74.0), None)]

    metro = estimate_route_time(stops, zone_category="metropolitan")
    rural = estimate_route_time(stops, zone_category="rural")

    assert metro.travel_minutes > rural.travel_minutes
    assert metro.work_minutes == rural.work_minutes == 30


def test_long_routes_get_breaks():
    stops = [(Coordinate(f"p{i}", 4.6, -74.1), 15) for i in range(20)]

    estimate = estimate_route_time(stops)
    assert estimate.break_minutes == 15
    assert estimate.total_minutes == 300 + 30 + 15

    bare = estimate_route_time(stops, include_setup=False, include_breaks=False)
    assert bare.total_minutes == 300
