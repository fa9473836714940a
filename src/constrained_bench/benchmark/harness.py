"""
benchmark/harness.py - 重复 trial 的 benchmark harness

BenchmarkRequest: 一次 benchmark 的资源约束 (时间 / 内存 / 次数 / 采样间隔)
RunRecord:        单次 trial 的测量结果
Benchmark:        按顺序对每个规划器运行 run_count 次, 每次前后触发事件钩子

单次 trial 的失败 (超时 / 超内存 / 异常) 记录为普通结果, 不向外抛出。
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .. import config
from ..planners.base import (Planner, PlannerStatus,
                             PlannerTerminationCondition)
from ..utils.seed import make_rng, spawn_seed
from ..utils.timing import Timer
from .memory import MemoryMonitor
from .simple_setup import SimpleSetup

logger = logging.getLogger(__name__)

PreRunEvent = Callable[[Planner], None]
PostRunEvent = Callable[[Planner, "RunRecord"], None]


# ═══════════════════════════════════════════════════════════════════════════
# 请求与结果
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BenchmarkRequest:
    """一次 benchmark 的资源约束

    Attributes:
        time_limit: 单次 trial 时间上限 (秒)
        memory_limit_mb: 单次 trial 内存上限 (MB)
        run_count: trial 次数
        sampling_interval: 进度采样间隔 (秒)
        collect_progress: 是否采样规划器进度属性
        save_raw_output: 是否把 trial 期间的日志另存为原始输出
        use_parallel_workers: 必须为 False, trial 严格顺序执行
        simplify_solutions: 是否对解路径做 shortcut 简化
    """
    time_limit: float
    memory_limit_mb: float = config.MEMORY_LIMIT_MB
    run_count: int = 100
    sampling_interval: float = config.SAMPLING_INTERVAL
    collect_progress: bool = config.COLLECT_PROGRESS
    save_raw_output: bool = config.SAVE_RAW_OUTPUT
    use_parallel_workers: bool = config.USE_PARALLEL_WORKERS
    simplify_solutions: bool = config.SIMPLIFY_SOLUTIONS

    def __post_init__(self) -> None:
        if self.run_count < 1:
            raise ValueError("run_count 必须 >= 1")
        if self.time_limit <= 0:
            raise ValueError("time_limit 必须为正")
        if self.memory_limit_mb <= 0:
            raise ValueError("memory_limit_mb 必须为正")
        if self.sampling_interval <= 0:
            raise ValueError("sampling_interval 必须为正")
        if self.use_parallel_workers:
            raise ValueError("不支持并行 trial: 相邻 trial 共享空间与规划器状态")


@dataclass
class RunRecord:
    """单次 trial 的测量结果."""
    run: int
    seed: int
    status: str
    solved: bool
    time: float
    memory: float
    graph_states: int
    validity_checks: int
    solution_length: float = 0.0
    solution_states: int = 0
    correct_solution: bool = False
    simplify_time: float = 0.0
    simplified_length: float = 0.0
    progress: List[Tuple[float, Dict[str, float]]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PlannerExperiment:
    """一个规划器的全部 trial."""
    name: str
    runs: List[RunRecord] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if not self.runs:
            return 0.0
        return sum(r.solved for r in self.runs) / len(self.runs)

    @property
    def mean_time(self) -> float:
        if not self.runs:
            return 0.0
        return sum(r.time for r in self.runs) / len(self.runs)


@dataclass
class BenchmarkResults:
    """一次 benchmark 调用的全部结果."""
    experiment_name: str
    request: BenchmarkRequest
    parameters: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    experiments: List[PlannerExperiment] = field(default_factory=list)
    setup_info: str = ""
    start_time: float = 0.0
    total_time: float = 0.0

    @property
    def total_runs(self) -> int:
        return sum(len(e.runs) for e in self.experiments)


# ═══════════════════════════════════════════════════════════════════════════
# Benchmark
# ═══════════════════════════════════════════════════════════════════════════

class Benchmark:
    """顺序执行的 benchmark

    Args:
        setup: SimpleSetup (空间 / 问题 / 有效性检查)
        experiment_name: 实验名 (写入结果日志)

    Example:
        >>> bench = Benchmark(ss, "sphere")
        >>> bench.add_planner(planner)
        >>> bench.set_pre_run_event(reset_fn)
        >>> results = bench.benchmark(BenchmarkRequest(time_limit=1.0, run_count=3))
    """

    def __init__(self, setup: SimpleSetup, experiment_name: str = ""):
        self.setup = setup
        self.experiment_name = experiment_name
        self.planners: List[Planner] = []
        self.parameters: Dict[str, Tuple[str, str]] = {}
        self._pre_run: Optional[PreRunEvent] = None
        self._post_run: Optional[PostRunEvent] = None
        self._seed = 0
        self.results: Optional[BenchmarkResults] = None

    def add_experiment_parameter(self, name: str, type_: str, value) -> None:
        self.parameters[name] = (type_, str(value))

    def add_planner(self, planner: Planner) -> None:
        self.planners.append(planner)

    def set_pre_run_event(self, fn: PreRunEvent) -> None:
        self._pre_run = fn

    def set_post_run_event(self, fn: PostRunEvent) -> None:
        self._post_run = fn

    def set_seed(self, seed: int) -> None:
        """主种子; 每个 trial 的种子由它派生 (0 = 按时间)."""
        self._seed = int(seed)

    # ── 单次 trial ───────────────────────────────────────────────

    def _make_ptc(self, request: BenchmarkRequest, planner: Planner,
                  monitor: MemoryMonitor, progress: list):
        # 首次轮询立即检查, 之后每 sampling_interval 检查一次
        last_sample = [float("-inf")]

        def poll(ptc: PlannerTerminationCondition) -> None:
            now = ptc.elapsed
            if now - last_sample[0] < request.sampling_interval:
                return
            last_sample[0] = now
            if monitor.exceeded():
                ptc.terminate(PlannerStatus.MEMORY_LIMIT)
                return
            if request.collect_progress:
                progress.append((now, planner.progress_properties()))

        return PlannerTerminationCondition(request.time_limit, poll_hook=poll)

    def _run_once(self, planner: Planner, request: BenchmarkRequest,
                  run: int, seed: int) -> RunRecord:
        si = self.setup.si
        si.reseed(seed)
        si.validity_checks = 0
        monitor = MemoryMonitor(request.memory_limit_mb)
        progress: List[Tuple[float, Dict[str, float]]] = []

        self.setup.set_planner(planner)
        ptc = self._make_ptc(request, planner, monitor, progress)
        timer = Timer()
        try:
            with timer.phase("solve"):
                self.setup.setup()
                status = self.setup.solve(ptc)
        except Exception:
            logger.exception("%s run %d 异常, 记为 crash", planner.name, run)
            status = PlannerStatus.CRASH
        monitor.used_mb()

        record = RunRecord(
            run=run, seed=seed, status=status.value, solved=status.solved,
            time=timer.get("solve"), memory=monitor.peak_mb,
            graph_states=planner.graph_size,
            validity_checks=si.validity_checks, progress=progress,
        )
        if status.solved and self.setup.solution_path is not None:
            try:
                self._measure_solution(record, request, timer)
            except Exception:
                logger.exception("%s run %d 解路径后处理异常, 记为 crash",
                                 planner.name, run)
                record.status = PlannerStatus.CRASH.value
                record.solved = False
                record.correct_solution = False
                record.simplify_time = 0.0
                record.simplified_length = 0.0
        logger.debug("%s run %d 耗时:\n%s", planner.name, run, timer.summary())
        return record

    def _measure_solution(self, record: RunRecord, request: BenchmarkRequest,
                          timer: Timer) -> None:
        record.solution_states = len(self.setup.solution_path)
        record.solution_length = self.setup.solution_length()
        record.correct_solution = self.setup.solution_is_valid()
        if request.simplify_solutions:
            with timer.phase("simplify"):
                _, _, after = self.setup.simplify_solution()
            record.simplify_time = timer.get("simplify")
            record.simplified_length = after

    # ── 主循环 ───────────────────────────────────────────────────

    def benchmark(self, request: BenchmarkRequest) -> BenchmarkResults:
        """对每个规划器顺序运行 request.run_count 次."""
        if not self.planners:
            raise RuntimeError("未添加规划器")
        results = BenchmarkResults(
            experiment_name=self.experiment_name, request=request,
            parameters=dict(self.parameters),
            setup_info=self.setup.describe(), start_time=time.time(),
        )
        raw_handler = None
        if request.save_raw_output:
            raw_handler = logging.FileHandler(
                f"{self.experiment_name or 'benchmark'}.raw.log", encoding="utf-8")
            logging.getLogger().addHandler(raw_handler)

        seeds = make_rng(self._seed)
        t0 = time.perf_counter()
        try:
            for planner in self.planners:
                experiment = PlannerExperiment(planner.name)
                results.experiments.append(experiment)
                logger.info("Executing %d runs for %s", request.run_count,
                            planner.name)
                for i in range(request.run_count):
                    seed = spawn_seed(seeds)
                    if self._pre_run is not None:
                        self._pre_run(planner)
                    record = self._run_once(planner, request, i + 1, seed)
                    experiment.runs.append(record)
                    if self._post_run is not None:
                        self._post_run(planner, record)
                    logger.debug("%s run %d: %s (%.3fs)", planner.name, i + 1,
                                 record.status, record.time)
        finally:
            if raw_handler is not None:
                logging.getLogger().removeHandler(raw_handler)
                raw_handler.close()
        results.total_time = time.perf_counter() - t0
        self.results = results
        return results
