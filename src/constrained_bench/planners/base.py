"""
planners/base.py - 统一规划器接口

PlannerStatus                : 单次 solve 的结果状态
PlannerTerminationCondition  : wall-clock 截止时间 + 可选轮询钩子
ProblemDefinition            : 起点 / 终点 / 解路径
Planner ABC                  : 所有规划器的统一接口
ProjectionPlanner            : 需要命名投影的规划器族 (KPIECE / ProjEST ...)
"""

from __future__ import annotations

import abc
import enum
import logging
import time
from typing import Callable, Dict, List, Optional

import numpy as np

from ..spaces.base import ConstrainedState
from ..spaces.projections import CoordinateProjection

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# PlannerStatus
# ═══════════════════════════════════════════════════════════════════════════

class PlannerStatus(enum.Enum):
    EXACT_SOLUTION = "Exact solution"
    APPROXIMATE_SOLUTION = "Approximate solution"
    TIMEOUT = "Timeout"
    INVALID_START = "Invalid start"
    INVALID_GOAL = "Invalid goal"
    MEMORY_LIMIT = "Memory limit"
    CRASH = "Crash"

    @property
    def solved(self) -> bool:
        return self in (PlannerStatus.EXACT_SOLUTION,
                        PlannerStatus.APPROXIMATE_SOLUTION)

    @property
    def code(self) -> int:
        return list(PlannerStatus).index(self)


# ═══════════════════════════════════════════════════════════════════════════
# PlannerTerminationCondition
# ═══════════════════════════════════════════════════════════════════════════

class PlannerTerminationCondition:
    """规划终止条件

    规划器在每次迭代时调用 ``ptc()``; 返回 True 即应停止。
    poll_hook 在每次调用时执行, 可调用 ``terminate()`` 提前终止
    (harness 用它做内存检查和进度采样)。

    Args:
        time_limit: 秒
        poll_hook: 可选回调, 参数为本条件对象
    """

    def __init__(self, time_limit: float,
                 poll_hook: Optional[Callable[["PlannerTerminationCondition"], None]] = None):
        self.start = time.perf_counter()
        self.deadline = self.start + float(time_limit)
        self._poll_hook = poll_hook
        self._terminated = False
        self.reason: Optional[PlannerStatus] = None

    def terminate(self, reason: PlannerStatus = PlannerStatus.TIMEOUT) -> None:
        self._terminated = True
        self.reason = reason

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.start

    def __call__(self) -> bool:
        if self._poll_hook is not None and not self._terminated:
            self._poll_hook(self)
        if self._terminated:
            return True
        if time.perf_counter() >= self.deadline:
            self.terminate(PlannerStatus.TIMEOUT)
            return True
        return False


# ═══════════════════════════════════════════════════════════════════════════
# ProblemDefinition
# ═══════════════════════════════════════════════════════════════════════════

class ProblemDefinition:
    """起点、终点与解路径."""

    def __init__(self, si, goal_threshold: float = 1e-3):
        self.si = si
        self.start: Optional[ConstrainedState] = None
        self.goal: Optional[ConstrainedState] = None
        self.goal_threshold = goal_threshold
        self.solution: Optional[List[ConstrainedState]] = None
        self.approximate = False

    def set_start_and_goal_states(self, start: ConstrainedState,
                                  goal: ConstrainedState) -> None:
        self.start = start
        self.goal = goal
        self.clear_solution_paths()

    def clear_solution_paths(self) -> None:
        self.solution = None
        self.approximate = False

    def add_solution_path(self, path: List[ConstrainedState],
                          approximate: bool = False) -> None:
        self.solution = list(path)
        self.approximate = approximate

    @property
    def has_solution(self) -> bool:
        return self.solution is not None

    def is_goal(self, state: ConstrainedState) -> bool:
        return float(np.linalg.norm(state.values - self.goal.values)) <= self.goal_threshold


def path_length(path: List[ConstrainedState]) -> float:
    if not path or len(path) < 2:
        return 0.0
    return float(sum(np.linalg.norm(path[i].values - path[i - 1].values)
                     for i in range(1, len(path))))


# ═══════════════════════════════════════════════════════════════════════════
# _StateTree - 树节点存储
# ═══════════════════════════════════════════════════════════════════════════

class _StateTree:
    """用 numpy 数组存储节点坐标, 便于最近邻查询."""
    __slots__ = ('values', 'parents', 'states', 'n', 'cap', 'ndim')

    def __init__(self, ndim: int, cap: int = 1024):
        self.ndim = ndim
        self.cap = cap
        self.values = np.empty((cap, ndim), dtype=np.float64)
        self.parents = np.full(cap, -1, dtype=np.int32)
        self.states: List[ConstrainedState] = []
        self.n = 0

    def add(self, state: ConstrainedState, parent: int) -> int:
        if self.n >= self.cap:
            self.cap *= 2
            new_v = np.empty((self.cap, self.ndim), dtype=np.float64)
            new_v[:self.n] = self.values[:self.n]
            self.values = new_v
            new_p = np.full(self.cap, -1, dtype=np.int32)
            new_p[:self.n] = self.parents[:self.n]
            self.parents = new_p
        idx = self.n
        self.values[idx] = state.values
        self.parents[idx] = parent
        self.states.append(state)
        self.n += 1
        return idx

    def nearest(self, values: np.ndarray) -> int:
        diffs = self.values[:self.n] - values
        return int(np.argmin(np.sum(diffs * diffs, axis=1)))

    def path(self, idx: int) -> List[ConstrainedState]:
        """根 -> idx 的状态序列."""
        out = []
        while idx >= 0:
            out.append(self.states[idx])
            idx = int(self.parents[idx])
        out.reverse()
        return out

    def __len__(self) -> int:
        return self.n


# ═══════════════════════════════════════════════════════════════════════════
# Planner ABC
# ═══════════════════════════════════════════════════════════════════════════

class Planner(abc.ABC):
    """所有规划器的统一接口.

    生命周期::

        planner = SomePlanner(si)
        planner.set_problem_definition(pdef)
        planner.setup()
        status = planner.solve(ptc)
        planner.clear()                     # 清除搜索状态, 对象本身复用
    """

    #: 该规划器是否使用命名投影
    accepts_projection = False

    def __init__(self, si, name: str):
        self.si = si
        self._name = name
        self.pdef: Optional[ProblemDefinition] = None
        self._range = 0.0
        self._is_setup = False

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def range(self) -> float:
        return self._range

    @range.setter
    def range(self, value: float) -> None:
        if value < 0:
            raise ValueError("range 不能为负")
        self._range = float(value)

    def set_problem_definition(self, pdef: ProblemDefinition) -> None:
        self.pdef = pdef

    def setup(self) -> None:
        if self._range <= 0:
            low, high = self.si.space.bounds
            extent = np.where(np.isfinite(high - low), high - low, 1.0)
            self._range = 0.2 * float(np.linalg.norm(extent))
        self._is_setup = True

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    def _check_endpoints(self) -> Optional[PlannerStatus]:
        if self.pdef is None or self.pdef.start is None or self.pdef.goal is None:
            raise RuntimeError(f"{self.name}: 未设置起点/终点")
        if not self.si.is_valid(self.pdef.start):
            return PlannerStatus.INVALID_START
        if not self.si.is_valid(self.pdef.goal):
            return PlannerStatus.INVALID_GOAL
        return None

    @abc.abstractmethod
    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        """在 ptc 触发前尝试求解, 解写入 pdef."""

    @abc.abstractmethod
    def clear(self) -> None:
        """丢弃搜索状态 (树 / 网格 / 采样器)."""

    @property
    def graph_size(self) -> int:
        """当前搜索图的状态数."""
        return 0

    def progress_properties(self) -> Dict[str, float]:
        return {"graph states": float(self.graph_size)}

    def describe(self) -> str:
        return f"{self.name} (range={self._range:g})"


class ProjectionPlanner(Planner):
    """使用命名投影的规划器族."""

    accepts_projection = True

    def __init__(self, si, name: str):
        super().__init__(si, name)
        self.projection = None
        self.projection_name: Optional[str] = None

    def set_projection_evaluator(self, name: str) -> None:
        """按名称绑定空间中注册的投影; 未注册时抛出 KeyError."""
        self.projection = self.si.space.get_projection(name)
        self.projection_name = name

    def setup(self) -> None:
        super().setup()
        if self.projection is None:
            self.projection = CoordinateProjection(self.si.space, self._range)
            self.projection_name = "default"
