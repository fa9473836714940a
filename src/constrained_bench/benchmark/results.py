"""
benchmark/results.py - 结果日志 (result sink)

save_results 把 BenchmarkResults 写成 OMPL 风格的纯文本日志:
头部是实验信息与请求参数, 随后每个规划器一个块, 列出属性名/类型
和每次 trial 的一行分号分隔的数值。

写入失败抛出 ResultWriteError, 不重试。
"""

import logging
import platform
import time
from pathlib import Path
from typing import List, Tuple

from .. import __version__
from ..errors import ResultWriteError
from ..planners.base import PlannerStatus
from .harness import BenchmarkResults, RunRecord

logger = logging.getLogger(__name__)

# (列名, 类型, RunRecord 字段)
RUN_PROPERTIES: List[Tuple[str, str, str]] = [
    ("time", "REAL", "time"),
    ("memory", "REAL", "memory"),
    ("solved", "BOOLEAN", "solved"),
    ("status", "ENUM", "status"),
    ("graph states", "INTEGER", "graph_states"),
    ("state validity checks", "INTEGER", "validity_checks"),
    ("solution length", "REAL", "solution_length"),
    ("solution states", "INTEGER", "solution_states"),
    ("correct solution", "BOOLEAN", "correct_solution"),
    ("simplification time", "REAL", "simplify_time"),
    ("simplified solution length", "REAL", "simplified_length"),
    ("seed", "INTEGER", "seed"),
]


def default_output_name(planner_name: str, problem: str) -> str:
    """未指定 -f 时的默认日志名: <规划器名>_on_<问题名>.log."""
    return f"{planner_name}_on_{problem}.log"


def _format_value(record: RunRecord, attr: str, type_: str) -> str:
    value = getattr(record, attr)
    if type_ == "BOOLEAN":
        return "1" if value else "0"
    if type_ == "ENUM":
        return str(PlannerStatus(value).code)
    if type_ == "INTEGER":
        return str(int(value))
    return f"{float(value):.6g}"


def format_results(results: BenchmarkResults) -> str:
    """BenchmarkResults -> 日志文本."""
    req = results.request
    lines = [
        f"constrained_bench version {__version__}",
        f"Experiment {results.experiment_name}",
        f"{len(results.parameters)} experiment properties",
    ]
    for name, (type_, value) in results.parameters.items():
        lines.append(f"{name} {type_}={value}")
    lines += [
        f"Running on {platform.node() or 'unknown'}",
        "Starting at " + time.strftime("%Y-%m-%d %H:%M:%S",
                                       time.localtime(results.start_time)),
        "<<<|",
        results.setup_info,
        "|>>>",
        f"{req.time_limit:g} seconds per run",
        f"{req.memory_limit_mb:g} MB per run",
        f"{req.run_count} runs per planner",
        f"{results.total_time:.6g} seconds spent to collect the data",
        "1 enum types",
        "status|" + "|".join(s.value for s in PlannerStatus),
        f"{len(results.experiments)} planners",
    ]
    for exp in results.experiments:
        lines.append(exp.name)
        lines.append("0 common properties")
        lines.append(f"{len(RUN_PROPERTIES)} properties for each run")
        for name, type_, _ in RUN_PROPERTIES:
            lines.append(f"{name} {type_}")
        lines.append(f"{len(exp.runs)} runs")
        for record in exp.runs:
            lines.append("; ".join(_format_value(record, attr, type_)
                                   for _, type_, attr in RUN_PROPERTIES) + "; ")
        if req.collect_progress:
            keys = sorted({k for r in exp.runs for _, props in r.progress
                           for k in props})
            lines.append(f"{len(keys) + 1} progress properties for each run")
            lines.append("time REAL")
            lines += [f"{k} REAL" for k in keys]
            lines.append(f"{len(exp.runs)} runs")
            for record in exp.runs:
                samples = []
                for t, props in record.progress:
                    samples.append(",".join([f"{t:.6g}"] + [
                        f"{props.get(k, 0.0):.6g}" for k in keys]) + ";")
                lines.append("".join(samples))
        lines.append(".")
    return "\n".join(lines) + "\n"


def save_results(results: BenchmarkResults, path) -> str:
    """写入结果日志, 返回路径字符串

    Raises:
        ResultWriteError: 无法写入
    """
    p = Path(path)
    try:
        if p.parent != Path(""):
            p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w", encoding="utf-8") as f:
            f.write(format_results(results))
    except OSError as e:
        raise ResultWriteError(f"无法写入结果日志 {p}: {e}") from e
    logger.info("结果已写入 %s (%d runs)", p, results.total_runs)
    return str(p)
