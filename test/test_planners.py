"""test/test_planners.py - 规划器、终止条件与路径简化"""
import time

import numpy as np
import pytest

from conftest import iteration_limit, make_si

from constrained_bench.benchmark.driver import ManifoldStrategy
from constrained_bench.errors import UnknownPlannerError
from constrained_bench.planners import (PLANNERS, PROJECTION_PLANNERS,
                                        PathSimplifier, PlannerStatus,
                                        PlannerTerminationCondition,
                                        ProblemDefinition, list_planners,
                                        parse_planner)
from constrained_bench.planners.base import path_length
from constrained_bench.spaces.projections import CoordinateProjection


def _solve(si, name, start, goal, n=3000):
    planner = parse_planner(name, si, 0.5)
    pdef = ProblemDefinition(si)
    pdef.set_start_and_goal_states(si.space.new_state(start),
                                   si.space.new_state(goal))
    planner.set_problem_definition(pdef)
    planner.setup()
    return planner, pdef, planner.solve(iteration_limit(n, time_limit=20.0))


class TestPlannerStatus:

    def test_solved_flags(self):
        assert PlannerStatus.EXACT_SOLUTION.solved
        assert PlannerStatus.APPROXIMATE_SOLUTION.solved
        assert not PlannerStatus.TIMEOUT.solved
        assert not PlannerStatus.CRASH.solved

    def test_codes_are_distinct(self):
        codes = [s.code for s in PlannerStatus]
        assert codes == list(range(len(codes)))


class TestTerminationCondition:

    def test_deadline(self):
        ptc = PlannerTerminationCondition(0.01)
        assert not ptc()
        time.sleep(0.02)
        assert ptc()
        assert ptc.reason is PlannerStatus.TIMEOUT

    def test_poll_hook_can_terminate(self):
        ptc = PlannerTerminationCondition(
            60.0, poll_hook=lambda c: c.terminate(PlannerStatus.MEMORY_LIMIT))
        assert ptc()
        assert ptc.reason is PlannerStatus.MEMORY_LIMIT

    def test_iteration_limit(self):
        ptc = iteration_limit(3)
        assert [ptc() for _ in range(4)] == [False, False, False, True]


class TestCatalog:

    def test_listing(self):
        assert list_planners() == sorted(PLANNERS)
        assert "RRTConnect" in list_planners()

    def test_unknown_planner(self, projected_sphere_si):
        with pytest.raises(UnknownPlannerError, match="PRM"):
            parse_planner("PRM", projected_sphere_si, 1.0)

    def test_range_applied(self, projected_sphere_si):
        planner = parse_planner("RRT", projected_sphere_si, 0.75)
        assert planner.range == pytest.approx(0.75)
        with pytest.raises(ValueError):
            planner.range = -1.0

    def test_projection_capability_matches_closed_set(self, projected_sphere_si):
        for name in PLANNERS:
            planner = parse_planner(name, projected_sphere_si, 1.0)
            assert planner.accepts_projection == (name in PROJECTION_PLANNERS)

    def test_default_projection_on_setup(self, projected_sphere_si):
        planner = parse_planner("KPIECE1", projected_sphere_si, 1.0)
        planner.set_problem_definition(ProblemDefinition(projected_sphere_si))
        planner.setup()
        assert isinstance(planner.projection, CoordinateProjection)
        assert planner.projection_name == "default"

    def test_unregistered_projection_raises(self, projected_sphere_si):
        planner = parse_planner("KPIECE1", projected_sphere_si, 1.0)
        with pytest.raises(KeyError):
            planner.set_projection_evaluator("sphere")


class TestSolve:

    @pytest.mark.parametrize("name", sorted(PLANNERS))
    def test_free_sphere(self, sphere_problem, name, east, north):
        si = make_si(sphere_problem, ManifoldStrategy.PROJECTED, seed=5,
                     validity=lambda x: True)
        planner, pdef, status = _solve(si, name, east, north)
        assert status is PlannerStatus.EXACT_SOLUTION
        path = pdef.solution
        np.testing.assert_array_equal(path[0].values, east)
        np.testing.assert_allclose(path[-1].values, north, atol=1e-3)
        for i in range(1, len(path)):
            assert si.check_motion(path[i - 1], path[i])
        assert planner.graph_size >= 2

    @pytest.mark.parametrize("name", ["RRT", "RRTConnect"])
    def test_atlas_and_nullspace(self, sphere_problem, name, east, north):
        for strategy in (ManifoldStrategy.ATLAS, ManifoldStrategy.NULLSPACE):
            si = make_si(sphere_problem, strategy, seed=5,
                         validity=lambda x: True)
            _, pdef, status = _solve(si, name, east, north)
            assert status is PlannerStatus.EXACT_SOLUTION
            assert pdef.has_solution

    def test_invalid_start(self, sphere_problem, east, north):
        si = make_si(sphere_problem, ManifoldStrategy.PROJECTED,
                     validity=lambda x: x[1] > 0.5)
        _, _, status = _solve(si, "RRT", east, north, n=10)
        assert status is PlannerStatus.INVALID_START

    def test_clear_discards_search_state(self, projected_sphere_si, east, north):
        planner, pdef, _ = _solve(projected_sphere_si, "RRTConnect", east, north)
        assert planner.graph_size > 0
        planner.clear()
        assert planner.graph_size == 0
        assert not pdef.has_solution

    def test_timeout_is_status_not_error(self, sphere_problem):
        # 起点和终点之间全是墙
        si = make_si(sphere_problem, ManifoldStrategy.PROJECTED,
                     validity=lambda x: abs(x[2]) > 0.5)
        _, pdef, status = _solve(si, "RRT", sphere_problem.start,
                                 sphere_problem.goal, n=200)
        assert status is PlannerStatus.TIMEOUT
        assert not pdef.has_solution


class TestSimplifier:

    def test_shortcut_does_not_lengthen(self, projected_sphere_si, east, north):
        _, pdef, status = _solve(projected_sphere_si, "RRT", east, north)
        assert status.solved
        simplifier = PathSimplifier(projected_sphere_si)
        path, before, after = simplifier.simplify(pdef.solution)
        assert after <= before + 1e-9
        assert path[0] is pdef.solution[0]
        assert path[-1] is pdef.solution[-1]

    def test_path_length(self, projected_sphere_si):
        space = projected_sphere_si.space
        path = [space.new_state(np.array([0.0, 0.0, 0.0])),
                space.new_state(np.array([3.0, 4.0, 0.0]))]
        assert path_length(path) == pytest.approx(5.0)
        assert path_length(path[:1]) == 0.0
