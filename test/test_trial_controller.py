"""test/test_trial_controller.py - trial 复位协议与复位完整性"""
import logging

import numpy as np
import pytest

from conftest import iteration_limit

from constrained_bench.benchmark import (ConstrainedBenchmark, SimpleSetup,
                                         TrialController)
from constrained_bench.benchmark.driver import (ManifoldStrategy,
                                                anchor_endpoints,
                                                configure_bounds,
                                                configure_planner,
                                                register_projections,
                                                reset_space, select_strategy)
from constrained_bench.config import BenchmarkOptions
from constrained_bench.constraints import parse_problem
from constrained_bench.spaces import SpaceInformation

DRIVER_LOGGER = "constrained_bench.benchmark.driver"


def _run_messages(caplog):
    return [r.getMessage() for r in caplog.records
            if r.name == DRIVER_LOGGER and " run " in r.getMessage()]


class TestAtlasScenario:
    """atlas / sphere / 3 runs / 1s."""

    @pytest.fixture
    def bench(self):
        return ConstrainedBenchmark.from_options(BenchmarkOptions(
            problem="sphere", planner="RRTConnect", space="atlas",
            runs=3, time_limit=1.0, seed=11))

    def test_three_sequential_trials(self, bench, caplog, monkeypatch):
        charts_after_reset = []
        original_clear = bench.planner.clear

        def clear():
            # 空间复位在规划器复位之前完成
            charts_after_reset.append(bench.space.chart_count)
            original_clear()

        monkeypatch.setattr(bench.planner, "clear", clear)
        caplog.set_level(logging.INFO, logger=DRIVER_LOGGER)

        results = bench.run()

        assert _run_messages(caplog) == [
            "RRTConnect+A run 1", "RRTConnect+A run 2", "RRTConnect+A run 3"]
        assert charts_after_reset == [0, 0, 0]
        assert bench.controller.trials == 3
        assert results.total_runs == 3
        assert [r.run for r in results.experiments[0].runs] == [1, 2, 3]
        assert bench.planner.name.endswith("+A")

    def test_banner_logged(self, caplog):
        caplog.set_level(logging.INFO, logger=DRIVER_LOGGER)
        ConstrainedBenchmark.from_options(BenchmarkOptions(
            problem="sphere", space="atlas", runs=1, time_limit=0.1))
        text = "\n".join(r.getMessage() for r in caplog.records)
        assert "`atlas' state space with `RRTConnect' for `sphere' problem" in text
        assert "Ambient Dimension: 3   CoDimension: 1" in text


class TestTrialCount:

    def test_failures_do_not_stop_trials(self, caplog):
        # stewart 在极短时限内基本无法求解, 每次都是普通的失败结果
        bench = ConstrainedBenchmark.from_options(BenchmarkOptions(
            problem="stewart", planner="RRT", space="projected",
            runs=4, time_limit=0.01, links=3, seed=3))
        caplog.set_level(logging.INFO, logger=DRIVER_LOGGER)
        results = bench.run()
        assert len(_run_messages(caplog)) == 4
        assert results.total_runs == 4

    def test_counter_is_per_controller(self, sphere_problem):
        space, _ = select_strategy(ManifoldStrategy.PROJECTED, sphere_problem)
        a = TrialController(ManifoldStrategy.PROJECTED, space)
        b = TrialController(ManifoldStrategy.PROJECTED, space)

        class _Planner:
            name = "P"

            def clear(self):
                pass

        a.pre_run(_Planner())
        a.pre_run(_Planner())
        b.pre_run(_Planner())
        assert (a.trials, b.trials) == (2, 1)

    def test_request_uses_fixed_harness_settings(self):
        request = TrialController.build_request(
            BenchmarkOptions(runs=7, time_limit=2.5))
        assert request.run_count == 7
        assert request.time_limit == pytest.approx(2.5)
        assert request.memory_limit_mb == pytest.approx(2048.0)
        assert request.sampling_interval == pytest.approx(0.1)
        assert not request.use_parallel_workers
        assert request.simplify_solutions


class TestResetCompleteness:
    """复位后重新锚定并规划, 结果与第一次完全相同."""

    def _cycle(self, strategy, problem, space, si, ss, planner, reset):
        if reset:
            reset_space(strategy, space)
            if strategy is ManifoldStrategy.ATLAS:
                assert space.chart_count == 0
        start, goal = anchor_endpoints(strategy, space, problem)
        ss.set_start_and_goal_states(start, goal)
        planner.clear()
        si.reseed(1234)
        ss.set_planner(planner)
        ss.setup()
        status = ss.solve(iteration_limit(150))
        path = ss.solution_path
        values = None if path is None else np.array([s.values for s in path])
        return status, planner.graph_size, values

    @pytest.mark.parametrize("planner_name", ["RRTConnect", "KPIECE1"])
    def test_reset_reproduces_first_cycle(self, strategy, planner_name):
        problem = parse_problem("sphere")
        space, allocator = select_strategy(strategy, problem)
        configure_bounds(space, problem, 5)
        si = SpaceInformation(space, seed=1234)
        si.set_valid_state_sampler_allocator(allocator)
        ss = SimpleSetup(si)
        ss.set_state_validity_checker(problem.validity)
        register_projections(space, 5, 2)
        planner = configure_planner(planner_name, si, strategy, "sphere", 1.0)

        first = self._cycle(strategy, problem, space, si, ss, planner, reset=False)
        second = self._cycle(strategy, problem, space, si, ss, planner, reset=True)
        third = self._cycle(strategy, problem, space, si, ss, planner, reset=True)

        for other in (second, third):
            assert other[0] is first[0]
            assert other[1] == first[1]
            if first[2] is None:
                assert other[2] is None
            else:
                np.testing.assert_array_equal(other[2], first[2])
