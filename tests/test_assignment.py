import pytest

from fieldops.errors import CollaboratorError
from fieldops.models.domain import Inspector, Route
from fieldops.persistence.memory import (
    InMemoryInspectorRepository,
    InMemoryRouteRepository,
    InMemoryZoneRepository,
)
from fieldops.services.assignment.engine import AssignmentEngine, can_resolve, detect_conflicts, score_inspector
from fieldops.services.assignment.models import AssignmentConflict, AssignmentOptions
from fieldops.services.assignment.workload import WorkloadCalculator, WorkloadSnapshot, utilization_spread


class FailingRouteRepository(InMemoryRouteRepository):
    def __init__(self, routes, failing_ids):
        super().__init__(routes)
        self.failing_ids = set(failing_ids)

    def assign_to_inspector(self, route_id, inspector_id):
        if route_id in self.failing_ids:
            raise CollaboratorError("assign_to_inspector", RuntimeError("write rejected"))
        return super().assign_to_inspector(route_id, inspector_id)


class FlakyReleaseRouteRepository(InMemoryRouteRepository):
    """Fails the n-th release and every lookup of the listed ids."""

    def __init__(self, routes, fail_release_call=None, failing_lookups=()):
        super().__init__(routes)
        self.fail_release_call = fail_release_call
        self.failing_lookups = set(failing_lookups)
        self.release_calls = 0

    def unassign_from_inspector(self, route_id):
        self.release_calls += 1
        if self.release_calls == self.fail_release_call:
            raise CollaboratorError("update route", RuntimeError("boom"))
        return super().unassign_from_inspector(route_id)

    def find_by_id(self, route_id):
        if route_id in self.failing_lookups:
            raise CollaboratorError("find route", ConnectionError("reset"))
        return super().find_by_id(route_id)


class VanishingRouteRepository(InMemoryRouteRepository):
    """Accepts assignment writes that touch no row."""

    def assign_to_inspector(self, route_id, inspector_id):
        return None


def _engine(inspectors, routes, route_repo=None):
    inspector_repo = InMemoryInspectorRepository(inspectors)
    route_repo = route_repo or InMemoryRouteRepository(routes)
    return AssignmentEngine(inspector_repo, route_repo, WorkloadCalculator(inspector_repo, route_repo)), route_repo


@pytest.fixture
def ana():
    return Inspector("i1", "Ana", "CC-1", preferred_zones={"z1"}, max_daily_routes=3)


@pytest.fixture
def beto():
    return Inspector("i2", "Beto", "CC-2", preferred_zones={"z2"}, max_daily_routes=3)


def test_score_weights_favour_preferred_zone(ana, beto):
    route = Route(id="r1", name="Ruta", priority="high", zone_id="z1")
    options = AssignmentOptions()

    preferred = score_inspector(route, ana, 0, options)
    other = score_inspector(route, beto, 0, options)

    assert preferred.score == 96
    assert other.score == 68
    assert preferred.factors.zone_match == 100
    assert other.factors.zone_match == 30


def test_score_factor_fallbacks(beto):
    route = Route(id="r1", name="Ruta", priority="low", zone_id="z1")
    options = AssignmentOptions(allow_cross_zone_assignment=False, balance_workload=False, consider_availability=False)

    score = score_inspector(route, beto, 40, options)

    assert (score.factors.zone_match, score.factors.workload_balance, score.factors.availability) == (0, 50, 50)
    assert score.factors.priority == 40
    assert score.score == round(0 + 50 * 0.3 + 50 * 0.2 + 40 * 0.1)

    unzoned = score_inspector(Route(id="r2", name="Ruta"), beto, 120, AssignmentOptions())
    assert unzoned.factors.zone_match == 50
    assert unzoned.factors.workload_balance == 0


def test_conflict_detection(beto):
    route = Route(id="r1", name="Ruta", zone_id="z1")
    snapshot = WorkloadSnapshot(WorkloadCalculator(InMemoryInspectorRepository([beto]), InMemoryRouteRepository()).calculate_all_inspector_workloads())
    strict = AssignmentOptions(allow_cross_zone_assignment=False, max_utilization_threshold=20)

    conflicts = detect_conflicts(route, beto, snapshot, strict)

    assert [(c.conflict_type, c.severity) for c in conflicts] == [
        ("zone_mismatch", "medium"),
        ("capacity_exceeded", "medium"),
    ]
    assert not can_resolve(conflicts, strict)
    assert can_resolve(conflicts[1:], strict)
    assert not can_resolve(
        [AssignmentConflict("r1", "i2", "capacity_exceeded", "full", "high")],
        AssignmentOptions(),
    )


def test_route_goes_to_inspector_with_zone_preference(ana, beto):
    engine, _ = _engine([beto, ana], [Route(id="r1", name="Ruta", priority="high", zone_id="z1")])

    result = engine.assign_routes(["r1"])

    assert result.success
    assert [(a.route_id, a.inspector_id) for a in result.assignments] == [("r1", "i1")]
    assignment = result.assignments[0]
    assert (assignment.estimated_end_time - assignment.estimated_start_time).total_seconds() == 60 * 60


def test_batch_tracks_load_between_routes():
    inspectors = [
        Inspector("i1", "Ana", "CC-1", max_daily_routes=2),
        Inspector("i2", "Beto", "CC-2", max_daily_routes=2),
    ]
    routes = [Route(id=f"r{n}", name=f"Ruta {n}") for n in (1, 2, 3)]
    engine, route_repo = _engine(inspectors, routes)

    result = engine.assign_routes(["r1", "r2", "r3"])

    assert [a.inspector_id for a in result.assignments] == ["i1", "i2", "i1"]
    assert [(w.inspector_id, w.zone_id, w.assigned_routes, w.utilization_percentage) for w in result.workload_distribution] == [
        ("i1", "unknown", 2, 100),
        ("i2", "unknown", 1, 50),
    ]
    assert result.workload_distribution[0].total_estimated_minutes == 120
    # without commit nothing is written
    assert all(route.status == "pending" for route in route_repo.find_all())


def test_high_priority_routes_are_served_first():
    inspector = Inspector("i1", "Ana", "CC-1", max_daily_routes=1)
    routes = [Route(id="low", name="Baja", priority="low"), Route(id="high", name="Alta", priority="high")]
    engine, _ = _engine([inspector], routes)

    result = engine.assign_routes(["low", "high"])

    assert [a.route_id for a in result.assignments] == ["high"]
    assert [r.id for r in result.unassigned_routes] == ["low"]
    assert [(c.conflict_type, c.severity) for c in result.conflicts] == [
        ("capacity_exceeded", "high"),
        ("capacity_exceeded", "medium"),
        ("capacity_exceeded", "medium"),
    ]
    assert result.conflicts[0].description == "Inspector has no available capacity (1/1)"
    assert result.conflicts[-1] == AssignmentConflict(
        "low", "i1", "capacity_exceeded", "Unable to resolve assignment conflicts", "medium"
    )


def test_full_inspector_is_skipped_for_the_next_candidate(ana, beto):
    ana.max_daily_routes = 1
    routes = [
        Route(id="busy", name="Ocupada", status="assigned", assigned_inspector_id="i1"),
        Route(id="r1", name="Ruta", priority="high", zone_id="z1"),
    ]
    engine, _ = _engine([ana, beto], routes)

    result = engine.assign_routes(["r1"], AssignmentOptions(balance_workload=False))

    assert [a.inspector_id for a in result.assignments] == ["i2"]


def test_inspectors_over_threshold_are_not_candidates(ana, beto):
    routes = [
        Route(id="x1", name="X1", status="assigned", assigned_inspector_id="i1"),
        Route(id="x2", name="X2", status="in_progress", assigned_inspector_id="i1"),
        Route(id="r1", name="Ruta", zone_id="z1"),
    ]
    engine, _ = _engine([ana, beto], routes)

    result = engine.assign_routes(["r1"], AssignmentOptions(max_utilization_threshold=50))

    assert [a.inspector_id for a in result.assignments] == ["i2"]


def test_cross_zone_disallowed_leaves_route_unassigned(beto):
    engine, _ = _engine([beto], [Route(id="r1", name="Ruta", zone_id="z1")])

    result = engine.assign_routes(["r1"], AssignmentOptions(allow_cross_zone_assignment=False))

    assert result.assignments == []
    mismatch, summary = result.conflicts
    assert (mismatch.inspector_id, mismatch.conflict_type) == ("i2", "zone_mismatch")
    assert (summary.inspector_id, summary.description) == ("i2", "Unable to resolve assignment conflicts")


def test_no_active_inspectors():
    engine, _ = _engine([Inspector("i1", "Ana", "CC-1", is_active=False)], [Route(id="r1", name="Ruta")])

    result = engine.assign_routes(["r1"])

    assert result.unassigned_count == 1
    assert result.conflicts == [AssignmentConflict("r1", "", "capacity_exceeded", "No available inspectors found", "high")]


def test_only_pending_routes_are_considered(ana):
    routes = [Route(id="r1", name="Ruta"), Route(id="done", name="Hecha", status="completed")]
    engine, _ = _engine([ana], routes)

    result = engine.assign_routes(["r1", "done", "missing"])

    assert result.total_routes == 1
    assert [a.route_id for a in result.assignments] == ["r1"]


def test_commit_persists_and_continues_past_write_failures(ana, beto):
    routes = [Route(id="r1", name="Uno", zone_id="z1"), Route(id="r2", name="Dos", zone_id="z1")]
    repo = FailingRouteRepository(routes, failing_ids={"r1"})
    engine, _ = _engine([ana, beto], routes, route_repo=repo)

    result = engine.assign_all_pending(commit=True)

    assert not result.success
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Route r1:")
    assert [r.id for r in result.unassigned_routes] == ["r1"]
    assert [a.route_id for a in result.assignments] == ["r2"]
    stored = repo.find_by_id("r2")
    assert (stored.status, stored.assigned_inspector_id) == ("assigned", "i1")
    assert repo.find_by_id("r1").status == "pending"


def test_reassign_moves_routes_off_an_inspector(ana, beto):
    routes = [
        Route(id="r1", name="Uno", zone_id="z1", status="assigned", assigned_inspector_id="i1"),
        Route(id="r2", name="Dos", zone_id="z1", status="completed", assigned_inspector_id="i1"),
    ]
    engine, repo = _engine([ana, beto], routes)
    ana.is_active = False

    result = engine.reassign_inspector_routes("i1")

    assert [(a.route_id, a.inspector_id) for a in result.assignments] == [("r1", "i2")]
    assert repo.find_by_id("r1").assigned_inspector_id == "i2"
    assert repo.find_by_id("r2").assigned_inspector_id == "i1"


def test_commit_without_an_updated_row_is_an_error(ana):
    repo = VanishingRouteRepository([Route(id="r1", name="Uno", zone_id="z1")])
    engine, _ = _engine([ana], [], route_repo=repo)

    result = engine.assign_routes(["r1"], commit=True)

    assert not result.success
    assert result.assignments == []
    assert [r.id for r in result.unassigned_routes] == ["r1"]
    assert "no route row was updated" in result.errors[0]


def test_failed_route_lookup_is_reported_and_the_rest_assigned(ana):
    routes = [Route(id="r1", name="Uno"), Route(id="r2", name="Dos")]
    repo = FlakyReleaseRouteRepository(routes, failing_lookups={"r1"})
    engine, _ = _engine([ana], routes, route_repo=repo)

    result = engine.assign_routes(["r1", "r2"])

    assert result.errors == ["Route r1: find route failed: reset"]
    assert result.total_routes == 1
    assert [a.route_id for a in result.assignments] == ["r2"]


def test_reassign_keeps_partial_progress_when_a_release_fails(ana, beto):
    routes = [
        Route(id=f"r{n}", name=f"Ruta {n}", zone_id="z2", status="assigned", assigned_inspector_id="i1")
        for n in range(3)
    ]
    repo = FlakyReleaseRouteRepository(routes, fail_release_call=2)
    engine, _ = _engine([ana, beto], routes, route_repo=repo)
    ana.is_active = False

    result = engine.reassign_inspector_routes("i1")

    assert not result.success
    assert result.errors == ["Route r1: update route failed: boom"]
    assert [(a.route_id, a.inspector_id) for a in result.assignments] == [("r0", "i2"), ("r2", "i2")]
    statuses = [(route.id, route.status, route.assigned_inspector_id) for route in repo.find_all()]
    assert statuses == [("r0", "assigned", "i2"), ("r1", "assigned", "i1"), ("r2", "assigned", "i2")]


def test_recommendations_flag_overloaded_and_idle_inspectors():
    inspectors = [
        Inspector("i1", "Ana", "CC-1", max_daily_routes=1),
        Inspector("i2", "Beto", "CC-2", max_daily_routes=4),
        Inspector("i3", "Caro", "CC-3", max_daily_routes=2),
    ]
    routes = [
        Route(id="a", name="A", status="assigned", assigned_inspector_id="i1"),
        Route(id="b", name="B", status="in_progress", assigned_inspector_id="i1"),
        Route(id="c", name="C", status="assigned", assigned_inspector_id="i2"),
        Route(id="d", name="D", status="assigned", assigned_inspector_id="i3"),
    ]
    engine, _ = _engine(inspectors, routes)

    recommendations = engine.get_assignment_recommendations()

    assert recommendations.overloaded_inspectors == ["i1"]
    assert recommendations.underutilized_inspectors == ["i2"]
    assert recommendations.suggested_reassignments == []


def test_workload_calculator(bogota_zone, ana, beto):
    routes = InMemoryRouteRepository(
        [
            Route(id="a", name="A", zone_id="z1", status="assigned", assigned_inspector_id="i1", estimated_duration_minutes=90),
            Route(id="b", name="B", zone_id="z1", status="completed", assigned_inspector_id="i1", estimated_duration_minutes=30),
            Route(id="c", name="C", zone_id="z1"),
        ]
    )
    calculator = WorkloadCalculator(InMemoryInspectorRepository([ana, beto]), routes, InMemoryZoneRepository([bogota_zone]))

    metrics = calculator.calculate_inspector_workload("i1")
    assert (metrics.current_routes, metrics.available_capacity, metrics.utilization_percentage) == (1, 2, 33)
    assert metrics.estimated_work_hours == 1.5
    assert calculator.calculate_inspector_workload("nobody") is None
    assert [m.inspector_id for m in calculator.calculate_all_inspector_workloads()] == ["i1", "i2"]

    zone = calculator.calculate_zone_workload("z1")
    assert zone.zone_name == "Zona I - Metropolitana Suroriente"
    assert (zone.total_routes, zone.assigned_routes, zone.unassigned_routes) == (3, 2, 1)
    assert (zone.capacity.total, zone.capacity.used, zone.capacity.available) == (3, 1, 2)
    assert calculator.calculate_zone_workload("z9").zone_name == "Unknown zone"

    overview = calculator.system_overview()
    assert (overview.total_inspectors, overview.active_inspectors) == (2, 2)
    assert overview.system_utilization == round(1 / 6 * 100)
    assert [z.zone_id for z in overview.zone_breakdown] == ["z1"]


def test_snapshot_is_independent_of_source_metrics(ana):
    metrics = WorkloadCalculator(InMemoryInspectorRepository([ana]), InMemoryRouteRepository()).calculate_all_inspector_workloads()
    snapshot = WorkloadSnapshot(metrics)

    snapshot.record_assignment("i1", Route(id="r1", name="Ruta", estimated_duration_minutes=90))

    recorded = snapshot.get("i1")
    assert (recorded.current_routes, recorded.available_capacity, recorded.utilization_percentage) == (1, 2, 33)
    assert recorded.estimated_work_hours == 1.5
    assert metrics[0].current_routes == 0


def test_inspectors_with_capacity_sorted_by_room(ana, beto):
    caro = Inspector("i3", "Caro", "CC-3", preferred_zones={"z1"}, max_daily_routes=5)
    routes = InMemoryRouteRepository(
        [
            Route(id="a", name="A", status="assigned", assigned_inspector_id="i1"),
            Route(id="b", name="B", status="assigned", assigned_inspector_id="i1"),
            Route(id="c", name="C", status="assigned", assigned_inspector_id="i1"),
        ]
    )
    calculator = WorkloadCalculator(InMemoryInspectorRepository([ana, beto, caro]), routes)

    assert [m.inspector_id for m in calculator.find_inspectors_with_capacity()] == ["i3", "i2"]
    assert [m.inspector_id for m in calculator.find_inspectors_with_capacity(4)] == ["i3"]
    assert [m.inspector_id for m in calculator.find_inspectors_with_capacity(zone_id="z1")] == ["i3"]


def test_predict_workload_impact(ana, beto):
    routes = InMemoryRouteRepository([Route(id="a", name="A", status="assigned", assigned_inspector_id="i1")])
    calculator = WorkloadCalculator(InMemoryInspectorRepository([ana, beto]), routes)

    prediction = calculator.predict_workload_impact([("r1", "i1"), ("r2", "i1"), ("r3", "i1"), ("r4", "i2"), ("r5", "ghost")])

    assert [(i.inspector_id, i.current_utilization, i.projected_utilization, i.will_exceed_capacity) for i in prediction.impact_summary] == [
        ("i1", 33, 133, True),
        ("i2", 0, 33, False),
    ]
    assert prediction.impact_summary[0].utilization_change == 100
    assert [m.current_routes for m in prediction.before_assignment] == [1, 0]
    assert [(m.current_routes, m.available_capacity) for m in prediction.after_assignment] == [(4, -1), (1, 2)]


def test_balance_recommendations_include_spread_rule():
    inspectors = [
        Inspector("i1", "Ana", "CC-1", max_daily_routes=1),
        Inspector("i2", "Beto", "CC-2", max_daily_routes=4),
    ]
    routes = InMemoryRouteRepository(
        [
            Route(id="a", name="A", status="assigned", assigned_inspector_id="i1"),
            Route(id="b", name="B", status="assigned", assigned_inspector_id="i1"),
            Route(id="c", name="C", status="assigned", assigned_inspector_id="i2"),
        ]
    )
    calculator = WorkloadCalculator(InMemoryInspectorRepository(inspectors), routes)

    balance = calculator.balance_recommendations()

    assert [m.inspector_id for m in balance.overloaded_inspectors] == ["i1"]
    assert [m.inspector_id for m in balance.underutilized_inspectors] == ["i2"]
    assert [(r.action, r.priority, r.affected_inspectors) for r in balance.recommendations] == [
        ("redistribute", "high", ["i1"]),
        ("optimize", "medium", ["i1", "i2"]),
        ("optimize", "low", ["i2"]),
    ]


def test_even_workload_needs_no_rebalancing(ana, beto):
    routes = InMemoryRouteRepository(
        [
            Route(id=f"r{n}", name="R", status="assigned", assigned_inspector_id=owner)
            for n, owner in enumerate(["i1", "i1", "i2", "i2"])
        ]
    )
    calculator = WorkloadCalculator(InMemoryInspectorRepository([ana, beto]), routes)

    assert utilization_spread(calculator.calculate_all_inspector_workloads()) == 0
    assert calculator.balance_recommendations().recommendations == []
