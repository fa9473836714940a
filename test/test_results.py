"""test/test_results.py - 结果日志与结果图"""
import pytest

from constrained_bench.benchmark.harness import (BenchmarkRequest,
                                                 BenchmarkResults,
                                                 PlannerExperiment, RunRecord)
from constrained_bench.benchmark.plotting import plot_results
from constrained_bench.benchmark.results import (default_output_name,
                                                 format_results, save_results)
from constrained_bench.errors import ResultWriteError


def _record(run, solved):
    return RunRecord(run=run, seed=100 + run,
                     status="Exact solution" if solved else "Timeout",
                     solved=solved, time=0.25 * run, memory=1.5,
                     graph_states=40, validity_checks=120,
                     solution_length=3.0 if solved else 0.0,
                     solution_states=12 if solved else 0,
                     correct_solution=solved)


@pytest.fixture
def results():
    exp = PlannerExperiment("RRTConnect+P", [_record(1, True), _record(2, False)])
    return BenchmarkResults(
        experiment_name="sphere",
        request=BenchmarkRequest(time_limit=1.0, run_count=2),
        parameters={"ambient_dimension": ("INTEGER", "3")},
        experiments=[exp], setup_info="ProjectedStateSpace [projected]",
        start_time=0.0, total_time=0.5)


class TestOutputName:

    def test_default_name(self):
        assert default_output_name("RRTConnect+A", "sphere") == \
            "RRTConnect+A_on_sphere.log"


class TestFormat:

    def test_layout(self, results):
        lines = format_results(results).splitlines()
        assert lines[1] == "Experiment sphere"
        assert "1 experiment properties" in lines
        assert "ambient_dimension INTEGER=3" in lines
        assert "2 runs per planner" in lines
        assert "1 planners" in lines
        assert "RRTConnect+P" in lines
        assert "2 runs" in lines
        assert lines[-1] == "."

    def test_run_rows(self, results):
        lines = format_results(results).splitlines()
        idx = lines.index("2 runs")
        first, second = lines[idx + 1], lines[idx + 2]
        assert first.startswith("0.25; ")
        assert first.split("; ")[2] == "1"
        assert second.split("; ")[2] == "0"
        # status 列是枚举编号: Exact solution = 0, Timeout = 2
        assert first.split("; ")[3] == "0"
        assert second.split("; ")[3] == "2"

    def test_success_rate(self, results):
        assert results.experiments[0].success_rate == pytest.approx(0.5)
        assert results.experiments[0].mean_time == pytest.approx(0.375)
        assert results.total_runs == 2


class TestSave:

    def test_writes_file(self, results, tmp_path):
        path = save_results(results, tmp_path / "logs" / "out.log")
        text = (tmp_path / "logs" / "out.log").read_text(encoding="utf-8")
        assert path.endswith("out.log")
        assert "Experiment sphere" in text

    def test_write_failure(self, results, tmp_path):
        # 目标是一个已存在的目录
        with pytest.raises(ResultWriteError):
            save_results(results, tmp_path)

    def test_plot(self, results, tmp_path):
        out = plot_results(results, tmp_path / "fig.png")
        assert (tmp_path / "fig.png").stat().st_size > 0
        assert out.endswith("fig.png")

    def test_plot_write_failure(self, results, tmp_path):
        # 父路径是普通文件, 无法建目录
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(ResultWriteError):
            plot_results(results, blocker / "fig.png")
