"""
spaces/atlas.py - Atlas 约束状态空间

流形用一组局部 chart (切平面坐标片) 覆盖:

- AtlasChart: 中心点 + 切空间正交基 + 分离半空间
- AtlasState: 环境坐标 + 指向所在 chart 的非拥有引用
- AtlasStateSpace: 拥有全部 chart; anchor_chart 在给定点建 chart,
  采样/测地线行走时按需生长新 chart, clear() 丢弃全部 chart

chart 所有权:
    space 独占所有 chart, state 只持有引用。clear() 会把所有 chart
    标记为失效, 之后读取旧 state 的 ``chart`` 会抛出 StaleStateError;
    需要 chart 时应调用 ``AtlasStateSpace.chart_for(state)`` 重新绑定。
"""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from ..config import AtlasParameters
from ..constraints.base import Constraint
from ..errors import StaleStateError
from .base import SAMPLE_ATTEMPTS, ConstrainedState, ConstrainedStateSpace

logger = logging.getLogger(__name__)


class AtlasChart:
    """流形上的局部 chart

    phi(u) = center + basis @ u 把 m 维 chart 坐标映射到切平面,
    psi(u) 再把切平面上的点投影到流形。

    Args:
        atlas: 所属 AtlasStateSpace
        center: chart 中心 (位于流形上)
        basis: 切空间正交基 (n, m)
        chart_id: 编号
        anchor: 是否为锚点 chart (起点/终点)
    """

    def __init__(self, atlas: "AtlasStateSpace", center: np.ndarray,
                 basis: np.ndarray, chart_id: int, anchor: bool = False):
        self.atlas = atlas
        self.center = np.array(center, dtype=np.float64)
        self.basis = basis
        self.id = chart_id
        self.anchor = anchor
        self.alive = True
        self.halfspaces: List[Tuple[np.ndarray, float]] = []

    def phi(self, u: np.ndarray) -> np.ndarray:
        return self.center + self.basis @ u

    def psi_inverse(self, x: np.ndarray) -> np.ndarray:
        return self.basis.T @ (x - self.center)

    def psi(self, u: np.ndarray) -> Tuple[bool, np.ndarray]:
        return self.atlas.project(self.phi(u))

    def add_separator(self, other: "AtlasChart") -> None:
        """加入与 other 的分离半空间 (两中心的垂直平分面)."""
        u = self.psi_inverse(other.center)
        self.halfspaces.append((u, 0.5 * float(u @ u)))

    def in_polytope(self, u: np.ndarray) -> bool:
        return all(float(n @ u) <= off for n, off in self.halfspaces)

    def __repr__(self) -> str:
        flag = " anchor" if self.anchor else ""
        return f"AtlasChart(#{self.id}{flag}, alive={self.alive})"


class AtlasState(ConstrainedState):
    """带 chart 引用的 atlas 状态."""
    __slots__ = ("_chart",)

    def __init__(self, values: np.ndarray, chart: Optional[AtlasChart] = None):
        super().__init__(values)
        self._chart = chart

    @property
    def chart(self) -> Optional[AtlasChart]:
        """所在 chart; chart 已被 clear() 丢弃时抛出 StaleStateError."""
        if self._chart is not None and not self._chart.alive:
            raise StaleStateError(
                f"state 引用的 chart #{self._chart.id} 已在 atlas 复位时被丢弃")
        return self._chart

    @property
    def is_stale(self) -> bool:
        return self._chart is not None and not self._chart.alive

    def set_real_state(self, values: np.ndarray, chart: AtlasChart) -> None:
        self.values = np.array(values, dtype=np.float64)
        self._chart = chart


class AtlasStateSpace(ConstrainedStateSpace):
    """ATLAS 变体

    Args:
        constraint: 等式约束
        params: chart 参数 (rho / alpha / epsilon / separate / exploration)
    """

    kind = "atlas"

    def __init__(self, constraint: Constraint,
                 params: Optional[AtlasParameters] = None, **kwargs):
        super().__init__(constraint, **kwargs)
        self.params = params or AtlasParameters()
        self._cos_alpha = math.cos(self.params.alpha)
        self._charts: List[AtlasChart] = []
        self._anchor_points: List[np.ndarray] = []
        self._next_id = 0

    # ── 参数 ─────────────────────────────────────────────────────

    @property
    def rho(self) -> float:
        return self.params.rho

    @property
    def alpha(self) -> float:
        return self.params.alpha

    @property
    def epsilon(self) -> float:
        return self.params.epsilon

    @property
    def separate(self) -> bool:
        return self.params.separate

    # ── chart 管理 ───────────────────────────────────────────────

    @property
    def chart_count(self) -> int:
        return len(self._charts)

    @property
    def charts(self) -> Tuple[AtlasChart, ...]:
        return tuple(self._charts)

    @property
    def anchor_points(self) -> Tuple[np.ndarray, ...]:
        return tuple(p.copy() for p in self._anchor_points)

    def _new_chart(self, x: np.ndarray, anchor: bool = False) -> AtlasChart:
        chart = AtlasChart(self, x, self.tangent_basis(x), self._next_id,
                           anchor=anchor)
        self._next_id += 1
        if self.separate:
            for other in self._charts:
                if np.linalg.norm(other.center - chart.center) < 2 * self.rho:
                    chart.add_separator(other)
                    other.add_separator(chart)
        self._charts.append(chart)
        logger.debug("新建 chart #%d (共 %d)", chart.id, len(self._charts))
        return chart

    def anchor_chart(self, x: np.ndarray) -> AtlasChart:
        """在流形上的点 x 处建立锚点 chart

        锚点位置会被记住: clear() 之后第一次采样时按需重建。

        Raises:
            ValueError: x 不满足约束
        """
        x = np.asarray(x, dtype=np.float64)
        if not self.constraint.is_satisfied(x):
            raise ValueError("锚点不在约束流形上")
        if not any(np.allclose(x, p) for p in self._anchor_points):
            self._anchor_points.append(x.copy())
        return self._new_chart(x, anchor=True)

    def _ensure_charts(self) -> None:
        if not self._charts:
            for p in self._anchor_points:
                self._new_chart(p, anchor=True)

    def owns(self, chart: AtlasChart, x: np.ndarray) -> bool:
        """x 是否落在 chart 的有效域内."""
        u = chart.psi_inverse(x)
        if np.linalg.norm(u) > self.rho:
            return False
        if np.linalg.norm(x - chart.phi(u)) > self.epsilon:
            return False
        if self.separate and not chart.in_polytope(u):
            return False
        if self.manifold_dim > 0:
            sv = np.linalg.svd(chart.basis.T @ self.tangent_basis(x),
                               compute_uv=False)
            if sv.min() < self._cos_alpha:
                return False
        return True

    def owning_chart(self, x: np.ndarray) -> Optional[AtlasChart]:
        """按中心距离由近到远找到第一个包含 x 的 chart."""
        if not self._charts:
            return None
        d = [float(np.linalg.norm(c.center - x)) for c in self._charts]
        for i in np.argsort(d):
            chart = self._charts[i]
            if d[i] > self.rho + self.epsilon:
                break
            if self.owns(chart, x):
                return chart
        return None

    def chart_for(self, state: AtlasState) -> AtlasChart:
        """返回 state 的 chart; 引用为空或已失效时重新锚定."""
        chart = state._chart
        if chart is None or not chart.alive:
            chart = self.owning_chart(state.values) or self._new_chart(state.values)
            state._chart = chart
        return chart

    # ── 状态 ─────────────────────────────────────────────────────

    def new_state(self, x: np.ndarray) -> AtlasState:
        return AtlasState(x)

    def new_state_on_chart(self, x: np.ndarray, chart: AtlasChart) -> AtlasState:
        state = AtlasState(x)
        state.set_real_state(x, chart)
        return state

    def _bind(self, x: np.ndarray) -> AtlasState:
        chart = self.owning_chart(x) or self._new_chart(x)
        return self.new_state_on_chart(x, chart)

    # ── 测地线 ───────────────────────────────────────────────────

    def _step(self, x: np.ndarray, target: np.ndarray) -> Optional[np.ndarray]:
        chart = self.owning_chart(x) or self._new_chart(x)
        v = chart.basis.T @ (target - x)
        n = float(np.linalg.norm(v))
        if n < 1e-12:
            return None
        remaining = float(np.linalg.norm(target - x))
        u = chart.psi_inverse(x) + v * (min(self.delta, remaining) / n)
        ok, y = chart.psi(u)
        return y if ok else None

    def _state_after_step(self, x: np.ndarray) -> AtlasState:
        return self._bind(x)

    # ── 采样 ─────────────────────────────────────────────────────

    def _random_ball(self, rng: np.random.Generator, radius: float) -> np.ndarray:
        m = self.manifold_dim
        v = rng.normal(size=m)
        v /= max(float(np.linalg.norm(v)), 1e-12)
        return v * radius * rng.uniform() ** (1.0 / m)

    def sample_uniform(self, rng: np.random.Generator) -> Optional[AtlasState]:
        """随机选 chart, 在 (1 + exploration) * rho 的球内采样后投影.

        落在现有 chart 之外的样本会生长新的 chart。
        """
        self._ensure_charts()
        if not self._charts:
            return super().sample_uniform(rng)
        radius = self.rho * (1.0 + self.params.exploration)
        for _ in range(SAMPLE_ATTEMPTS):
            chart = self._charts[int(rng.integers(len(self._charts)))]
            ok, x = chart.psi(self._random_ball(rng, radius))
            if ok and self.satisfies_bounds(x):
                return self._bind(x)
        return None

    def sample_uniform_near(self, rng: np.random.Generator,
                            near: ConstrainedState,
                            distance: float) -> Optional[AtlasState]:
        if not isinstance(near, AtlasState):
            near = self.new_state(near.values)
        chart = self.chart_for(near)
        u0 = chart.psi_inverse(near.values)
        for _ in range(SAMPLE_ATTEMPTS):
            ok, x = chart.psi(u0 + self._random_ball(rng, distance))
            if ok and self.satisfies_bounds(x):
                return self._bind(x)
        return None

    # ── 复位 ─────────────────────────────────────────────────────

    def clear(self) -> None:
        """丢弃全部 chart (包括锚点 chart)."""
        super().clear()
        for chart in self._charts:
            chart.alive = False
        n = len(self._charts)
        self._charts = []
        logger.debug("atlas 复位: 丢弃 %d 个 chart", n)

    def describe(self) -> str:
        return "\n".join([
            super().describe(),
            f"  Rho: {self.rho}   Alpha: {self.alpha:.4f}   "
            f"Epsilon: {self.epsilon}   Separate: {self.separate}",
            f"  Charts: {self.chart_count}   Anchors: {len(self._anchor_points)}",
        ])
