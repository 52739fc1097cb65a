import pytest

from fieldops.errors import NotFoundError, RouteStatusError
from fieldops.models.domain import Coordinate, Route, RoutePoint
from fieldops.persistence.memory import (
    InMemoryRoutePointRepository,
    InMemoryRouteRepository,
    InMemoryZoneRepository,
)
from fieldops.services.routing.service import RouteService, transition


@pytest.fixture
def route_repos(bogota_zone):
    routes = InMemoryRouteRepository([Route(id="r1", name="Ruta 1", zone_id="z1")])
    points = InMemoryRoutePointRepository(
        [
            RoutePoint("p1", "r1", Coordinate("a", 4.6, -74.19, zone_id="z1"), 1),
            RoutePoint("p2", "r1", Coordinate("d", 4.6, -74.01, zone_id="z1"), 2),
            RoutePoint("p3", "r1", Coordinate("b", 4.6, -74.13, zone_id="z1"), 3),
            RoutePoint("p4", "r1", Coordinate("c", 4.6, -74.07, zone_id=None), 4),
        ]
    )
    zones = InMemoryZoneRepository([bogota_zone])
    return routes, points, zones


@pytest.fixture
def service(route_repos):
    return RouteService(*route_repos)


def test_full_lifecycle(service):
    assert service.assign("r1", "i1").status == "assigned"
    assert service.start("r1").status == "in_progress"
    finished = service.finish("r1")
    assert finished.status == "completed"
    assert finished.assigned_inspector_id == "i1"
    assert finished.updated_at is not None


def test_unassign_returns_route_to_pending(service):
    service.assign("r1", "i1")
    service.start("r1")

    route = service.unassign("r1")

    assert route.status == "pending"
    assert route.assigned_inspector_id is None


@pytest.mark.parametrize(
    ("status", "action"),
    [
        ("pending", "start"),
        ("pending", "finish"),
        ("assigned", "cancel"),
        ("completed", "unassign"),
        ("cancelled", "assign"),
    ],
)
def test_illegal_transitions_are_rejected(status, action):
    route = Route(id="r1", name="Ruta", status=status)
    with pytest.raises(RouteStatusError) as excinfo:
        transition(route, action, "i1")
    assert excinfo.value.status == status
    assert excinfo.value.action == action


def test_assign_requires_inspector_and_known_action():
    route = Route(id="r1", name="Ruta")
    with pytest.raises(ValueError):
        transition(route, "assign")
    with pytest.raises(ValueError):
        transition(route, "archive")


def test_cancel_pending_route(service, route_repos):
    routes, _, _ = route_repos
    service.cancel("r1")
    assert routes.find_by_id("r1").status == "cancelled"


def test_unknown_route(service):
    with pytest.raises(NotFoundError):
        service.start("missing")


def test_optimize_reorders_points_and_updates_duration(service, route_repos):
    routes, points, _ = route_repos

    result = service.optimize_route_order("r1")

    assert result.ordered_point_ids == ["p1", "p3", "p4", "p2"]
    assert [p.id for p in points.find_by_route("r1")] == ["p1", "p3", "p4", "p2"]
    assert result.optimized_distance_m < result.original_distance_m
    expected = round(result.optimized_distance_m / 1000 * 2 + 4 * 15)
    assert result.estimated_duration_minutes == expected
    assert routes.find_by_id("r1").estimated_duration_minutes == expected


def test_optimize_keeps_short_routes_in_place(bogota_zone):
    routes = InMemoryRouteRepository([Route(id="r2", name="Corta")])
    points = InMemoryRoutePointRepository(
        [
            RoutePoint("p2", "r2", Coordinate("y", 4.6, -74.0), 2),
            RoutePoint("p1", "r2", Coordinate("x", 4.6, -74.2), 1),
        ]
    )
    service = RouteService(routes, points, InMemoryZoneRepository([bogota_zone]))

    result = service.optimize_route_order("r2")

    assert result.ordered_point_ids == ["p1", "p2"]
    assert result.original_distance_m == result.optimized_distance_m


def test_optimize_handles_a_revisited_stop(bogota_zone):
    depot = Coordinate("c1", 4.6, -74.19)
    routes = InMemoryRouteRepository([Route(id="r", name="Ida y vuelta")])
    points = InMemoryRoutePointRepository(
        [
            RoutePoint("p1", "r", depot, 1),
            RoutePoint("p2", "r", Coordinate("c2", 4.6, -74.01), 2),
            RoutePoint("p3", "r", depot, 3),
        ]
    )
    service = RouteService(routes, points, InMemoryZoneRepository([bogota_zone]))

    result = service.optimize_route_order("r")

    assert result.ordered_point_ids == ["p1", "p3", "p2"]
    assert [(p.id, p.point_order) for p in points.find_by_route("r")] == [("p1", 1), ("p3", 2), ("p2", 3)]


def test_validate_route_zones(service, route_repos):
    _, points, _ = route_repos
    points.find_by_route("r1")[0].coordinate = Coordinate("far", 9.0, -70.0, zone_id="z1")

    report = service.validate_route_zones("r1")

    assert report.total_points == 4
    assert report.valid_points == 2
    assert report.invalid_points == 1
    assert report.mismatched_point_ids == ["p4"]
    assert report.unassigned_points == 1
    assert not report.is_valid


def test_estimate_uses_zone_category_speed(service):
    metro = service.estimate_route_time("r1")
    faster = service.estimate_route_time("r1", speed_kmh=45)

    assert metro.work_minutes == 60
    assert metro.travel_minutes > faster.travel_minutes
    assert len(metro.breakdown) == 4
