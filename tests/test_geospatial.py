import pytest

from fieldops.models.domain import GeoPoint
from fieldops.services.geospatial import (
    bounding_box,
    centroid,
    distance_meters,
    has_self_intersections,
    point_in_polygon,
    points_within_radius,
    polygon_area,
    polygon_perimeter,
    polygon_valid,
    segments_intersect,
    within_country_bounds,
)

SQUARE = [
    GeoPoint(4.5, -74.2),
    GeoPoint(4.7, -74.2),
    GeoPoint(4.7, -74.0),
    GeoPoint(4.5, -74.0),
]


def test_square_area_and_perimeter():
    assert polygon_area(SQUARE) > 1_000_000

    sides = sum(distance_meters(SQUARE[i], SQUARE[(i + 1) % 4]) for i in range(4))
    assert polygon_perimeter(SQUARE) == pytest.approx(sides, abs=1.0)


def test_closing_vertex_does_not_change_measurements():
    closed = SQUARE + [SQUARE[0]]
    assert polygon_area(closed) == pytest.approx(polygon_area(SQUARE))
    assert polygon_perimeter(closed) == pytest.approx(polygon_perimeter(SQUARE))


def test_distance_is_zero_for_same_point_and_symmetric():
    a = GeoPoint(4.6, -74.1)
    b = GeoPoint(6.25, -75.56)
    assert distance_meters(a, a) == 0
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))
    # Bogota to Medellin is roughly 240 km in a straight line
    assert 200_000 < distance_meters(a, b) < 280_000


def test_point_in_polygon_contains_centroid():
    center = centroid(SQUARE)
    assert center.latitude == pytest.approx(4.6)
    assert center.longitude == pytest.approx(-74.1)
    assert point_in_polygon(center, SQUARE)
    assert not point_in_polygon(GeoPoint(4.8, -74.1), SQUARE)


def test_polygon_validity():
    assert polygon_valid(SQUARE)
    assert polygon_valid(SQUARE + [SQUARE[0]])
    assert not polygon_valid(SQUARE[:2])
    collinear = [GeoPoint(0, 0), GeoPoint(1, 1), GeoPoint(2, 2)]
    assert not polygon_valid(collinear)


def test_crossing_edges_are_detected():
    bowtie = [GeoPoint(0, 0), GeoPoint(2, 2), GeoPoint(2, 0), GeoPoint(0, 1)]
    assert has_self_intersections(bowtie)
    assert not polygon_valid(bowtie)
    assert not has_self_intersections(SQUARE)


def test_collinear_overlapping_segments_intersect():
    assert segments_intersect(GeoPoint(0, 0), GeoPoint(0, 2), GeoPoint(0, 1), GeoPoint(0, 3))
    assert not segments_intersect(GeoPoint(0, 0), GeoPoint(0, 1), GeoPoint(0, 2), GeoPoint(0, 3))


def test_bounding_box_and_radius_helpers():
    box = bounding_box(SQUARE)
    assert (box.north, box.south, box.east, box.west) == (4.7, 4.5, -74.0, -74.2)
    assert box.center.latitude == pytest.approx(4.6)
    assert box.center.longitude == pytest.approx(-74.1)
    assert bounding_box([]) is None

    nearby = points_within_radius(SQUARE, GeoPoint(4.5, -74.2), 1_000)
    assert nearby == [SQUARE[0]]


def test_country_bounds():
    assert within_country_bounds(4.6, -74.1)
    assert not within_country_bounds(40.4, -3.7)


def test_geopoint_rejects_out_of_range_values():
    with pytest.raises(ValueError):
        GeoPoint(91, 0)
    with pytest.raises(ValueError):
        GeoPoint(0, -181)
