"""test/test_harness.py - BenchmarkRequest、顺序执行、crash / 内存上限记录"""
import logging

import numpy as np
import pytest

from conftest import make_si

from constrained_bench.benchmark import harness
from constrained_bench.benchmark.driver import ManifoldStrategy
from constrained_bench.benchmark.harness import Benchmark, BenchmarkRequest
from constrained_bench.benchmark.memory import MemoryMonitor
from constrained_bench.benchmark.simple_setup import SimpleSetup
from constrained_bench.planners import RRT, Planner, PlannerStatus


class _Exploding(Planner):
    def __init__(self, si):
        super().__init__(si, "Exploding")

    def solve(self, ptc):
        raise RuntimeError("boom")

    def clear(self):
        pass


@pytest.fixture
def free_setup(sphere_problem, east, north):
    si = make_si(sphere_problem, ManifoldStrategy.PROJECTED,
                 validity=lambda x: True)
    ss = SimpleSetup(si)
    ss.set_state_validity_checker(lambda x: True)
    ss.set_start_and_goal_states(si.space.new_state(east),
                                 si.space.new_state(north))
    return ss


class TestRequest:

    def test_defaults(self):
        req = BenchmarkRequest(time_limit=1.0)
        assert req.run_count == 100
        assert not req.use_parallel_workers

    @pytest.mark.parametrize("kwargs", [
        {"time_limit": 0.0},
        {"time_limit": 1.0, "run_count": 0},
        {"time_limit": 1.0, "memory_limit_mb": 0.0},
        {"time_limit": 1.0, "sampling_interval": 0.0},
        {"time_limit": 1.0, "use_parallel_workers": True},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            BenchmarkRequest(**kwargs)


class TestBenchmark:

    def test_requires_planner(self, free_setup):
        with pytest.raises(RuntimeError):
            Benchmark(free_setup, "sphere").benchmark(BenchmarkRequest(1.0))

    def test_events_in_order(self, free_setup):
        events = []
        bench = Benchmark(free_setup, "sphere")
        bench.set_seed(5)
        bench.add_planner(RRT(free_setup.si))
        bench.set_pre_run_event(lambda p: events.append(("pre", p.name)))
        bench.set_post_run_event(lambda p, r: events.append(("post", r.run)))
        results = bench.benchmark(BenchmarkRequest(time_limit=2.0, run_count=2))
        assert events == [("pre", "RRT"), ("post", 1), ("pre", "RRT"), ("post", 2)]
        runs = results.experiments[0].runs
        assert all(r.solved and r.correct_solution for r in runs)
        assert all(r.simplified_length <= r.solution_length + 1e-9 for r in runs)
        assert runs[0].seed != runs[1].seed

    def test_seeds_follow_master_seed(self, free_setup):
        def seeds():
            bench = Benchmark(free_setup, "sphere")
            bench.set_seed(21)
            bench.add_planner(RRT(free_setup.si))
            res = bench.benchmark(BenchmarkRequest(time_limit=0.01, run_count=3))
            return [r.seed for r in res.experiments[0].runs]

        assert seeds() == seeds()

    def test_crash_is_recorded(self, free_setup):
        bench = Benchmark(free_setup, "sphere")
        bench.add_planner(_Exploding(free_setup.si))
        results = bench.benchmark(BenchmarkRequest(time_limit=1.0, run_count=3))
        runs = results.experiments[0].runs
        assert len(runs) == 3
        assert {r.status for r in runs} == {PlannerStatus.CRASH.value}
        assert results.experiments[0].success_rate == 0.0

    def test_post_solve_failure_is_recorded(self, free_setup, monkeypatch):
        def broken(*args, **kwargs):
            raise ZeroDivisionError("simplify")

        monkeypatch.setattr(free_setup, "simplify_solution", broken)
        bench = Benchmark(free_setup, "sphere")
        bench.set_seed(5)
        bench.add_planner(RRT(free_setup.si))
        results = bench.benchmark(BenchmarkRequest(time_limit=2.0, run_count=3))
        runs = results.experiments[0].runs
        assert results.total_runs == 3
        assert [r.run for r in runs] == [1, 2, 3]
        for r in runs:
            assert r.status == PlannerStatus.CRASH.value
            assert not r.solved
            assert r.simplify_time == 0.0
            assert r.simplified_length == 0.0

    def test_memory_checked_once_per_interval(self, free_setup, monkeypatch):
        calls = []
        monkeypatch.setattr(harness.MemoryMonitor, "exceeded",
                            lambda self: calls.append(1) or False)
        bench = Benchmark(free_setup, "sphere")
        bench.add_planner(RRT(free_setup.si))
        bench.benchmark(BenchmarkRequest(time_limit=2.0, run_count=1,
                                         sampling_interval=60.0))
        assert len(calls) == 1

    def test_raw_output_captures_trial_log(self, free_setup, tmp_path,
                                           monkeypatch):
        monkeypatch.chdir(tmp_path)
        bench = Benchmark(free_setup, "sphere")
        bench.add_planner(_Exploding(free_setup.si))
        bench.benchmark(BenchmarkRequest(time_limit=1.0, run_count=1,
                                         save_raw_output=True))
        raw = tmp_path / "sphere.raw.log"
        assert raw.exists()
        assert "boom" in raw.read_text(encoding="utf-8")
        assert not any(isinstance(h, logging.FileHandler)
                       and h.baseFilename == str(raw)
                       for h in logging.getLogger().handlers)

    def test_memory_limit_marks_failure(self, free_setup, monkeypatch):
        monkeypatch.setattr(harness.MemoryMonitor, "exceeded", lambda self: True)
        bench = Benchmark(free_setup, "sphere")
        bench.add_planner(RRT(free_setup.si))
        results = bench.benchmark(BenchmarkRequest(time_limit=5.0, run_count=1))
        run = results.experiments[0].runs[0]
        assert run.status == PlannerStatus.MEMORY_LIMIT.value
        assert not run.solved

    def test_progress_sampling(self, sphere_problem):
        # 有障碍的球面: 短时间内不会求解, 保证有进度样本
        si = make_si(sphere_problem, ManifoldStrategy.PROJECTED)
        ss = SimpleSetup(si)
        ss.set_state_validity_checker(sphere_problem.validity)
        ss.set_start_and_goal_states(si.space.new_state(sphere_problem.start),
                                     si.space.new_state(sphere_problem.goal))
        bench = Benchmark(ss, "sphere")
        bench.add_planner(RRT(si))
        req = BenchmarkRequest(time_limit=0.2, run_count=1,
                               collect_progress=True, sampling_interval=0.01)
        run = bench.benchmark(req).experiments[0].runs[0]
        assert run.progress
        times = [t for t, _ in run.progress]
        assert times == sorted(times)
        assert "graph states" in run.progress[-1][1]


class TestMemoryMonitor:

    def test_baseline_and_peak(self):
        monitor = MemoryMonitor(1024.0)
        assert monitor.get_memory_mb() > 0
        block = np.ones(4_000_000)
        used = monitor.used_mb()
        assert used >= 0.0
        assert monitor.peak_mb == pytest.approx(used)
        assert not monitor.exceeded()
        del block
