"""
benchmark/driver.py - 约束规划 benchmark 驱动

流程:
    ProblemDescriptor
      -> select_strategy      (构造约束空间 + 对应的有效状态采样器分配器)
      -> configure_bounds     (chain: [-links, links], 其它: [-20, 20])
      -> anchor_endpoints     (ATLAS 先建锚点 chart 再绑定状态)
      -> register_projections + configure_planner
      -> TrialController      (每个 trial 前复位空间与规划器, 顺序执行)
      -> save_results

三种流形表示的 "构造 / 采样器 / 锚定 / 复位" 集中在同一张分派表
(_STRATEGY_OPS) 里, 保证一次运行中各环节使用同一种表示。
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np

from ..config import (COLLECT_PROGRESS, DEFAULT_BOUND, MEMORY_LIMIT_MB,
                      SAMPLING_INTERVAL, SAVE_RAW_OUTPUT, SIMPLIFY_SOLUTIONS,
                      USE_PARALLEL_WORKERS, BenchmarkOptions)
from ..constraints.base import Constraint
from ..constraints.problems import ProblemDescriptor, parse_problem
from ..errors import (ConfigurationError, InvalidEndpointError,
                      UnknownSpaceError)
from ..planners.base import Planner
from ..planners.catalog import parse_planner
from ..spaces.atlas import AtlasStateSpace
from ..spaces.base import ConstrainedState, ConstrainedStateSpace
from ..spaces.nullspace import NullspaceStateSpace
from ..spaces.projected import ProjectedStateSpace
from ..spaces.projections import (ChainProjection, SphereProjection,
                                  StewartProjection)
from ..spaces.samplers import (atlas_sampler_allocator,
                               projected_sampler_allocator)
from ..spaces.space_information import SpaceInformation
from .harness import Benchmark, BenchmarkRequest, BenchmarkResults
from .plotting import plot_results
from .results import default_output_name, save_results
from .simple_setup import SimpleSetup

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 1. 流形表示选择
# ═══════════════════════════════════════════════════════════════════════════

class ManifoldStrategy(enum.Enum):
    ATLAS = "atlas"
    PROJECTED = "projected"
    NULLSPACE = "null"

    @property
    def suffix(self) -> str:
        """规划器改名后缀: +A / +P / +N."""
        return "+" + self.name[0]

    @classmethod
    def parse(cls, name: str) -> "ManifoldStrategy":
        """按命令行名称解析; 未知名称抛出 UnknownSpaceError."""
        for strategy in cls:
            if strategy.value == name:
                return strategy
        raise UnknownSpaceError(name)


@dataclass(frozen=True)
class _StrategyOps:
    """一种流形表示的全部专属步骤."""
    build_space: Callable[[Constraint, BenchmarkOptions], ConstrainedStateSpace]
    sampler_allocator: Callable
    anchor: Callable[[ConstrainedStateSpace, np.ndarray, np.ndarray],
                     Tuple[ConstrainedState, ConstrainedState]]
    reset: Callable[[ConstrainedStateSpace], None]


def _anchor_on_charts(space: AtlasStateSpace, start: np.ndarray,
                      goal: np.ndarray) -> Tuple[ConstrainedState, ConstrainedState]:
    # 两次独立的建 chart 调用, 之后再把原始点绑定到各自的 chart
    start_chart = space.anchor_chart(start)
    goal_chart = space.anchor_chart(goal)
    return (space.new_state_on_chart(start, start_chart),
            space.new_state_on_chart(goal, goal_chart))


def _anchor_raw(space: ConstrainedStateSpace, start: np.ndarray,
                goal: np.ndarray) -> Tuple[ConstrainedState, ConstrainedState]:
    return space.new_state(start), space.new_state(goal)


def _reset_atlas(space: AtlasStateSpace) -> None:
    # 丢弃全部 chart, 包括起点/终点的锚点 chart
    space.clear()


def _reset_cache(space: ConstrainedStateSpace) -> None:
    space.clear()


_STRATEGY_OPS = {
    ManifoldStrategy.ATLAS: _StrategyOps(
        build_space=lambda c, opts: AtlasStateSpace(c, opts.atlas_parameters()),
        sampler_allocator=atlas_sampler_allocator,
        anchor=_anchor_on_charts,
        reset=_reset_atlas,
    ),
    ManifoldStrategy.PROJECTED: _StrategyOps(
        build_space=lambda c, opts: ProjectedStateSpace(c),
        sampler_allocator=projected_sampler_allocator,
        anchor=_anchor_raw,
        reset=_reset_cache,
    ),
    ManifoldStrategy.NULLSPACE: _StrategyOps(
        build_space=lambda c, opts: NullspaceStateSpace(c),
        sampler_allocator=projected_sampler_allocator,
        anchor=_anchor_raw,
        reset=_reset_cache,
    ),
}


def select_strategy(strategy: ManifoldStrategy, problem: ProblemDescriptor,
                    options: Optional[BenchmarkOptions] = None,
                    ) -> Tuple[ConstrainedStateSpace, Callable]:
    """构造约束空间及与之配套的采样器分配器 (同一次分派)."""
    ops = _STRATEGY_OPS[strategy]
    space = ops.build_space(problem.constraint, options or BenchmarkOptions())
    return space, ops.sampler_allocator


def anchor_endpoints(strategy: ManifoldStrategy, space: ConstrainedStateSpace,
                     problem: ProblemDescriptor
                     ) -> Tuple[ConstrainedState, ConstrainedState]:
    """按流形表示构造起点/终点状态

    Raises:
        InvalidEndpointError: ATLAS 锚点不在约束流形上
    """
    try:
        return _STRATEGY_OPS[strategy].anchor(space, problem.start, problem.goal)
    except ValueError as e:
        raise InvalidEndpointError(f"无法锚定 {problem.name} 的起点/终点: {e}") from e


def reset_space(strategy: ManifoldStrategy, space: ConstrainedStateSpace) -> None:
    _STRATEGY_OPS[strategy].reset(space)


# ═══════════════════════════════════════════════════════════════════════════
# 2. 边界 / 投影 / 规划器
# ═══════════════════════════════════════════════════════════════════════════

def configure_bounds(space: ConstrainedStateSpace, problem: ProblemDescriptor,
                     links: int) -> float:
    """所有环境维度设为 [-B, B]; chain 问题 B = links, 否则 B = 20."""
    bound = float(links) if problem.name == "chain" else DEFAULT_BOUND
    space.set_bounds(-bound, bound)
    return bound


def register_projections(space: ConstrainedStateSpace, links: int,
                         chains: int) -> None:
    """登记三个问题族的命名投影 (只存工厂, 不立即构造)."""
    space.register_projection("sphere", SphereProjection)
    space.register_projection("chain",
                              lambda s: ChainProjection(s, 3, links))
    space.register_projection("stewart",
                              lambda s: StewartProjection(s, links, chains))


def configure_planner(name: str, si: SpaceInformation,
                      strategy: ManifoldStrategy, problem: str,
                      range_: float) -> Planner:
    """构造规划器, 设 range, 按流形表示改名, 按能力绑定投影

    Raises:
        UnknownPlannerError: 名称不在目录中
    """
    planner = parse_planner(name, si, range_)
    planner.name = planner.name + strategy.suffix
    space = si.space
    if planner.accepts_projection and space.has_projection(problem):
        planner.set_projection_evaluator(problem)
        logger.debug("%s 使用投影 '%s'", planner.name, problem)
    elif planner.accepts_projection:
        logger.debug("%s: 投影 '%s' 未注册, 使用默认投影", planner.name, problem)
    return planner


def verify_endpoints(problem: ProblemDescriptor,
                     space: ConstrainedStateSpace) -> None:
    """起点/终点必须满足约束、边界和有效性谓词

    Raises:
        InvalidEndpointError
    """
    for label, x in (("start", problem.start), ("goal", problem.goal)):
        if not problem.constraint.is_satisfied(x):
            raise InvalidEndpointError(f"{problem.name}: {label} 不满足约束")
        if not space.satisfies_bounds(x):
            raise InvalidEndpointError(f"{problem.name}: {label} 超出边界")
        if not problem.validity(x):
            raise InvalidEndpointError(f"{problem.name}: {label} 无效")


# ═══════════════════════════════════════════════════════════════════════════
# 3. Trial 控制
# ═══════════════════════════════════════════════════════════════════════════

class TrialController:
    """每个 trial 之前的复位协议

    1. 复位流形表示的内部缓存 (ATLAS: 丢弃全部 chart)
    2. 清空规划器搜索状态 (规划器对象本身复用)
    3. 记录 "<规划器名> run <i>"

    trial 计数属于本对象, 同一进程内的多次 benchmark 互不影响。

    Args:
        strategy: 流形表示
        space: 约束状态空间
    """

    def __init__(self, strategy: ManifoldStrategy, space: ConstrainedStateSpace):
        self.strategy = strategy
        self.space = space
        self.trials = 0

    def pre_run(self, planner: Planner) -> None:
        reset_space(self.strategy, self.space)
        planner.clear()
        self.trials += 1
        logger.info("%s run %d", planner.name, self.trials)

    @staticmethod
    def build_request(options: BenchmarkOptions) -> BenchmarkRequest:
        return BenchmarkRequest(
            time_limit=options.time_limit,
            memory_limit_mb=MEMORY_LIMIT_MB,
            run_count=options.runs,
            sampling_interval=SAMPLING_INTERVAL,
            collect_progress=COLLECT_PROGRESS,
            save_raw_output=SAVE_RAW_OUTPUT,
            use_parallel_workers=USE_PARALLEL_WORKERS,
            simplify_solutions=SIMPLIFY_SOLUTIONS,
        )

    def run(self, bench: Benchmark, request: BenchmarkRequest) -> BenchmarkResults:
        bench.set_pre_run_event(self.pre_run)
        return bench.benchmark(request)


# ═══════════════════════════════════════════════════════════════════════════
# 4. 整体组装
# ═══════════════════════════════════════════════════════════════════════════

class ConstrainedBenchmark:
    """一次完整的约束规划 benchmark

    构造时完成全部配置; 任何 ConfigurationError 都在第一个 trial 之前抛出。

    Example:
        >>> cb = ConstrainedBenchmark.from_options(BenchmarkOptions(
        ...     problem="sphere", space="atlas", runs=3, time_limit=1.0))
        >>> cb.run()
        >>> cb.save()
    """

    def __init__(self, options: BenchmarkOptions):
        self.options = options
        self.strategy = ManifoldStrategy.parse(options.space)
        try:
            self.request = TrialController.build_request(options)
        except ValueError as e:
            raise ConfigurationError(f"Invalid request: {e}") from e
        self.problem = parse_problem(options.problem, options.artificial_delay,
                                     options.links, options.chains)

        logger.info(
            "Constrained Planning Benchmarking: `%s' state space with `%s' "
            "for `%s' problem", options.space, options.planner, options.problem)
        logger.info("  Ambient Dimension: %d   CoDimension: %d",
                    self.problem.ambient_dimension, self.problem.co_dimension)
        logger.info("  Timeout: %.2fs   Artificial Delay: %.2fs",
                    options.time_limit, options.artificial_delay)

        self.space, allocator = select_strategy(self.strategy, self.problem,
                                                options)
        self.bound = configure_bounds(self.space, self.problem, options.links)
        verify_endpoints(self.problem, self.space)

        self.si = SpaceInformation(self.space, seed=options.seed)
        self.si.set_valid_state_sampler_allocator(allocator)
        self.setup = SimpleSetup(self.si)
        self.setup.set_state_validity_checker(self.problem.validity)
        start, goal = anchor_endpoints(self.strategy, self.space, self.problem)
        self.setup.set_start_and_goal_states(start, goal)

        register_projections(self.space, options.links, options.chains)
        self.planner = configure_planner(options.planner, self.si, self.strategy,
                                         options.problem, options.range)
        self.setup.set_planner(self.planner)
        self.setup.setup()

        self.controller = TrialController(self.strategy, self.space)
        self.results: Optional[BenchmarkResults] = None

    @classmethod
    def from_options(cls, options: BenchmarkOptions) -> "ConstrainedBenchmark":
        return cls(options)

    def describe(self) -> str:
        return self.setup.describe()

    def _make_benchmark(self) -> Benchmark:
        bench = Benchmark(self.setup, self.problem.name)
        bench.set_seed(self.options.seed)
        bench.add_experiment_parameter(
            "ambient_dimension", "INTEGER", self.problem.ambient_dimension)
        bench.add_experiment_parameter(
            "manifold_dimension", "INTEGER", self.problem.manifold_dimension)
        bench.add_experiment_parameter(
            "co_dimension", "INTEGER", self.problem.co_dimension)
        bench.add_experiment_parameter(
            "collision_check_time", "REAL", self.options.artificial_delay)
        for key, value in self.problem.parameters.items():
            bench.add_experiment_parameter(key, "INTEGER", value)
        bench.add_planner(self.planner)
        return bench

    def run(self) -> BenchmarkResults:
        self.results = self.controller.run(self._make_benchmark(), self.request)
        return self.results

    @property
    def output_path(self) -> str:
        return self.options.output or default_output_name(self.planner.name,
                                                          self.problem.name)

    def save(self, path: Optional[str] = None) -> str:
        """写结果日志 (以及可选的结果图)

        Raises:
            ResultWriteError: 日志或结果图写入失败
        """
        if self.results is None:
            raise RuntimeError("尚未运行 benchmark")
        out = save_results(self.results, path or self.output_path)
        if self.options.plot:
            plot_results(self.results, self.options.plot)
        return out
