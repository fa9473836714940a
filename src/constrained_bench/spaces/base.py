"""
spaces/base.py - 约束状态空间基类

ConstrainedState:       环境坐标上的一个状态 (位于流形上)
ConstrainedStateSpace:  三种流形表示 (atlas / projected / nullspace) 的公共部分

公共部分包括:
- 环境空间坐标边界
- 沿流形的离散测地线 (discrete_geodesic), 每步长度 delta
- 切空间基缓存 (clear() 时清空)
- 命名投影注册表 (projection evaluator 工厂)
"""

import abc
import logging
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from scipy.linalg import null_space

from ..constraints.base import Constraint

logger = logging.getLogger(__name__)

# 采样时投影失败的最大重试次数
SAMPLE_ATTEMPTS = 100


class ConstrainedState:
    """流形上的状态 (只保存环境坐标)."""
    __slots__ = ("values",)

    def __init__(self, values: np.ndarray):
        self.values = np.array(values, dtype=np.float64)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({np.array2string(self.values, precision=4)})"


class ConstrainedStateSpace(abc.ABC):
    """约束状态空间

    Args:
        constraint: 等式约束
        delta: 测地线离散步长
        lambda_: 测地线长度与直线距离之比的上限
        tangent_cache_size: 切空间基缓存容量
    """

    kind = "constrained"

    def __init__(self, constraint: Constraint, delta: float = 0.05,
                 lambda_: float = 2.0, tangent_cache_size: int = 1024):
        self.constraint = constraint
        self.ambient_dim = constraint.ambient_dim
        self.manifold_dim = constraint.manifold_dim
        self.delta = float(delta)
        self.lambda_ = float(lambda_)
        self.low = np.full(self.ambient_dim, -np.inf)
        self.high = np.full(self.ambient_dim, np.inf)
        self._projections: Dict[str, Callable] = {}
        self._si = None
        self._tangent_cache: "OrderedDict[bytes, np.ndarray]" = OrderedDict()
        self._tangent_cache_size = tangent_cache_size

    # ── 配置 ─────────────────────────────────────────────────────

    def set_bounds(self, low, high) -> None:
        """设置环境坐标边界, low/high 可以是标量或 (n,) 数组."""
        low = np.broadcast_to(np.asarray(low, dtype=np.float64),
                              (self.ambient_dim,)).copy()
        high = np.broadcast_to(np.asarray(high, dtype=np.float64),
                               (self.ambient_dim,)).copy()
        if np.any(low >= high):
            raise ValueError("边界必须满足 low < high")
        self.low, self.high = low, high

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.low.copy(), self.high.copy()

    def satisfies_bounds(self, x: np.ndarray) -> bool:
        return bool(np.all(x >= self.low) and np.all(x <= self.high))

    def set_space_information(self, si) -> None:
        self._si = si

    @property
    def space_information(self):
        return self._si

    # ── 投影注册表 ───────────────────────────────────────────────

    def register_projection(self, name: str, factory: Callable) -> None:
        """登记命名投影; 同名覆盖. factory(space) -> ProjectionEvaluator."""
        if name in self._projections:
            logger.debug("覆盖已注册的投影 '%s'", name)
        self._projections[name] = factory

    def has_projection(self, name: str) -> bool:
        return name in self._projections

    def get_projection(self, name: str):
        """按名称构造投影; 未注册时抛出 KeyError."""
        try:
            factory = self._projections[name]
        except KeyError:
            raise KeyError(f"投影 '{name}' 未注册") from None
        return factory(self)

    @property
    def projection_names(self) -> List[str]:
        return sorted(self._projections)

    # ── 状态 ─────────────────────────────────────────────────────

    def new_state(self, x: np.ndarray) -> ConstrainedState:
        return ConstrainedState(x)

    def distance(self, a: ConstrainedState, b: ConstrainedState) -> float:
        return float(np.linalg.norm(a.values - b.values))

    def project(self, x: np.ndarray) -> Tuple[bool, np.ndarray]:
        return self.constraint.project(x)

    def tangent_basis(self, x: np.ndarray) -> np.ndarray:
        """x 处切空间的正交基 (n, m), 带 LRU 缓存."""
        key = np.round(x, 9).tobytes()
        basis = self._tangent_cache.get(key)
        if basis is not None:
            self._tangent_cache.move_to_end(key)
            return basis
        basis = null_space(self.constraint.jacobian(x))
        self._tangent_cache[key] = basis
        if len(self._tangent_cache) > self._tangent_cache_size:
            self._tangent_cache.popitem(last=False)
        return basis

    @property
    def cache_size(self) -> int:
        return len(self._tangent_cache)

    # ── 测地线 ───────────────────────────────────────────────────

    @abc.abstractmethod
    def _step(self, x: np.ndarray, target: np.ndarray) -> Optional[np.ndarray]:
        """从 x 朝 target 走一步 (长度约 delta), 结果位于流形上; 失败返回 None."""

    def _state_after_step(self, x: np.ndarray) -> ConstrainedState:
        return self.new_state(x)

    def discrete_geodesic(
        self,
        a: ConstrainedState,
        b: ConstrainedState,
        max_distance: Optional[float] = None,
    ) -> Tuple[bool, List[ConstrainedState]]:
        """沿流形从 a 走向 b

        Args:
            a, b: 起止状态
            max_distance: 累计步长上限, 超过即停 (用于 range 受限的扩展)

        Returns:
            (是否到达 b, 途经状态列表 [a, ..., 最后一个到达的状态])
        """
        goal = b.values
        x = a.values
        states = [a]
        d0 = float(np.linalg.norm(goal - x))
        limit = self.lambda_ * d0
        travelled = 0.0
        dist = d0
        while dist > self.delta:
            y = self._step(x, goal)
            if y is None or not self.satisfies_bounds(y):
                return False, states
            step = float(np.linalg.norm(y - x))
            if step < 1e-12 or step > self.lambda_ * self.delta:
                return False, states
            travelled += step
            if travelled > limit:
                return False, states
            if max_distance is not None and travelled > max_distance:
                return False, states
            new_dist = float(np.linalg.norm(goal - y))
            if new_dist >= dist:
                return False, states
            x, dist = y, new_dist
            states.append(self._state_after_step(y))
        if max_distance is not None and travelled + dist > max_distance:
            return False, states
        states.append(b)
        return True, states

    def interpolate(self, a: ConstrainedState, b: ConstrainedState,
                    t: float) -> ConstrainedState:
        """按弧长比例 t 在测地线上取点; 测地线中断时在已走过的部分上取."""
        _, states = self.discrete_geodesic(a, b)
        if len(states) == 1:
            return states[0]
        seg = np.array([np.linalg.norm(states[i].values - states[i - 1].values)
                        for i in range(1, len(states))])
        cum = np.concatenate([[0.0], np.cumsum(seg)])
        idx = int(np.searchsorted(cum, t * cum[-1]))
        return states[min(idx, len(states) - 1)]

    # ── 采样 ─────────────────────────────────────────────────────

    def sample_uniform(self, rng: np.random.Generator) -> Optional[ConstrainedState]:
        """在边界内均匀采样环境点并投影到流形."""
        low = np.where(np.isfinite(self.low), self.low, -1.0)
        high = np.where(np.isfinite(self.high), self.high, 1.0)
        for _ in range(SAMPLE_ATTEMPTS):
            ok, x = self.project(rng.uniform(low, high))
            if ok and self.satisfies_bounds(x):
                return self.new_state(x)
        return None

    def sample_uniform_near(self, rng: np.random.Generator,
                            near: ConstrainedState,
                            distance: float) -> Optional[ConstrainedState]:
        """在 near 附近 distance 范围内采样并投影."""
        for _ in range(SAMPLE_ATTEMPTS):
            offset = rng.uniform(-distance, distance, self.ambient_dim)
            ok, x = self.project(near.values + offset)
            if ok and self.satisfies_bounds(x):
                return self.new_state(x)
        return None

    # ── 复位 ─────────────────────────────────────────────────────

    def clear(self) -> None:
        """清除空间内部缓存 (每个 trial 之前调用)."""
        self._tangent_cache.clear()

    def describe(self) -> str:
        lines = [
            f"{type(self).__name__} [{self.kind}]",
            f"  Ambient dimension:  {self.ambient_dim}",
            f"  Manifold dimension: {self.manifold_dim}",
            f"  Co-dimension:       {self.constraint.co_dim}",
            f"  Delta: {self.delta}   Lambda: {self.lambda_}",
            f"  Tolerance: {self.constraint.tolerance}",
            f"  Bounds: [{self.low.min():g}, {self.high.max():g}]",
            f"  Projections: {', '.join(self.projection_names) or '-'}",
        ]
        return "\n".join(lines)
