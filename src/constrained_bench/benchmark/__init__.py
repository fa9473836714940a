"""
benchmark - benchmark harness 与约束规划驱动

- harness: BenchmarkRequest, RunRecord, Benchmark (顺序执行 trial)
- simple_setup: SimpleSetup
- memory: MemoryMonitor (psutil)
- results / plotting: 结果日志与结果图
- driver: ManifoldStrategy 分派、端点锚定、投影注册、规划器配置、
  TrialController, ConstrainedBenchmark
"""

from .driver import (ConstrainedBenchmark, ManifoldStrategy, TrialController,
                     anchor_endpoints, configure_bounds, configure_planner,
                     register_projections, reset_space, select_strategy,
                     verify_endpoints)
from .harness import (Benchmark, BenchmarkRequest, BenchmarkResults,
                      PlannerExperiment, RunRecord)
from .memory import MemoryMonitor
from .plotting import plot_results
from .results import default_output_name, format_results, save_results
from .simple_setup import SimpleSetup

__all__ = [
    "ConstrainedBenchmark",
    "ManifoldStrategy",
    "TrialController",
    "select_strategy",
    "anchor_endpoints",
    "reset_space",
    "configure_bounds",
    "configure_planner",
    "register_projections",
    "verify_endpoints",
    "Benchmark",
    "BenchmarkRequest",
    "BenchmarkResults",
    "PlannerExperiment",
    "RunRecord",
    "MemoryMonitor",
    "SimpleSetup",
    "plot_results",
    "save_results",
    "format_results",
    "default_output_name",
]
