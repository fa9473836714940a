"""
constrained_bench/cli.py - 命令行入口

    constrained-bench -c <problem> -p <planner> -s <space> -t <timelimit> -w <sleep>

未知选项、未知的问题 / 规划器 / 空间名称: 打印原因、用法以及问题和
规划器列表, 以状态 0 退出 (视为 "显示帮助")。结果日志写入失败以
状态 1 退出。
"""

import argparse
import logging
import sys
from typing import List, Optional

from .benchmark.driver import ConstrainedBenchmark, ManifoldStrategy
from .config import BenchmarkOptions
from .constraints.problems import list_problems
from .errors import ConfigurationError, ResultWriteError
from .planners.catalog import list_planners

logger = logging.getLogger(__name__)

LOG_FMT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"


class _UsageRequested(Exception):
    """argparse 解析失败, 转为打印用法."""


class _UsageParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise _UsageRequested(message)


def build_parser() -> argparse.ArgumentParser:
    d = BenchmarkOptions()
    parser = _UsageParser(
        prog="constrained-bench",
        description="Benchmark constrained sampling-based planners "
                    "(atlas / projected / null manifold representations)")
    parser.add_argument("-c", dest="problem", default=d.problem,
                        help="Problem name")
    parser.add_argument("-p", dest="planner", default=d.planner,
                        help="Planner name")
    parser.add_argument("-s", dest="space", default=d.space,
                        help="Constrained state space: atlas | projected | null")
    parser.add_argument("-t", dest="time_limit", type=float, default=d.time_limit,
                        help="Time limit per run (seconds)")
    parser.add_argument("-r", dest="runs", type=int, default=d.runs,
                        help="Number of runs")
    parser.add_argument("-w", dest="artificial_delay", type=float,
                        default=d.artificial_delay,
                        help="Artificial delay per validity check (seconds)")
    parser.add_argument("-n", dest="links", type=int, default=d.links,
                        help="Number of links (chain / stewart)")
    parser.add_argument("-g", dest="chains", type=int, default=d.chains,
                        help="Number of chains (stewart)")
    parser.add_argument("-a", dest="tie_break", action="store_false",
                        help="Disable atlas chart separation (tie-break)")
    parser.add_argument("-y", dest="print_space", action="store_true",
                        help="Print the state space before benchmarking")
    parser.add_argument("-f", dest="output", default=d.output,
                        help="Output log (default: <planner>_on_<problem>.log)")
    parser.add_argument("--range", dest="range", type=float, default=d.range,
                        help="Planner range")
    parser.add_argument("--seed", type=int, default=d.seed,
                        help="Random seed (0 = timestamp)")
    parser.add_argument("--plot", default=d.plot,
                        help="Also save a result figure to this path")
    parser.add_argument("--config", default=None,
                        help="JSON file with BenchmarkOptions (flags override)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    return parser


def usage(reason: str = "") -> None:
    """打印原因、用法行和问题 / 规划器列表."""
    if reason:
        print(reason)
    print("Usage: constrained-bench -c <problem> -p <planner> -s <space> "
          "-t <timelimit> -w <sleep> -o")
    print("Available problems:")
    for name in list_problems():
        print(f"    {name}")
    print("Available planners:")
    for name in list_planners():
        print(f"    {name}")
    print("Available spaces: " + ", ".join(s.value for s in ManifoldStrategy))


def parse_options(argv: Optional[List[str]] = None) -> BenchmarkOptions:
    """命令行 -> BenchmarkOptions

    --config 给出的 JSON 作为默认值, 显式给出的选项覆盖它。
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.config:
        base = BenchmarkOptions.from_json(args.config).to_dict()
        parser.set_defaults(**base)
        args = parser.parse_args(argv)
    values = vars(args)
    values.pop("config")
    values.pop("verbose")
    return BenchmarkOptions.from_dict(values)


def _verbose(argv: List[str]) -> bool:
    return "-v" in argv or "--verbose" in argv


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    logging.basicConfig(level=logging.DEBUG if _verbose(argv) else logging.INFO,
                        format=LOG_FMT, datefmt="%H:%M:%S")

    try:
        options = parse_options(argv)
        bench = ConstrainedBenchmark.from_options(options)
    except (_UsageRequested, ConfigurationError) as e:
        usage(str(e))
        return 0
    except (OSError, ValueError) as e:
        # --config 文件无法读取或内容不合法
        usage(f"Invalid configuration: {e}")
        return 0

    if options.print_space:
        print(bench.describe())

    bench.run()
    try:
        path = bench.save()
    except ResultWriteError as e:
        logger.error("%s", e)
        return 1
    logger.info("Results saved to %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
