"""
spaces/space_information.py - 规划器看到的空间信息

SpaceInformation 把约束状态空间、有效性谓词、有效状态采样器分配器
和随机数生成器绑在一起, 并提供 is_valid / check_motion。
"""

import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..utils.seed import make_rng
from .base import ConstrainedState, ConstrainedStateSpace
from .samplers import projected_sampler_allocator

logger = logging.getLogger(__name__)


class SpaceInformation:
    """空间信息

    Args:
        space: 约束状态空间
        seed: 随机种子 (0 = 按时间自动)
    """

    def __init__(self, space: ConstrainedStateSpace, seed: int = 0):
        self.space = space
        self.rng = make_rng(seed)
        self._validity: Optional[Callable[[np.ndarray], bool]] = None
        self._sampler_allocator: Callable = projected_sampler_allocator
        self.validity_checks = 0
        self._is_setup = False

    def reseed(self, seed: int) -> None:
        self.rng = make_rng(seed)

    def set_state_validity_checker(self, fn: Callable[[np.ndarray], bool]) -> None:
        self._validity = fn

    def set_valid_state_sampler_allocator(self, allocator: Callable) -> None:
        self._sampler_allocator = allocator

    @property
    def sampler_allocator(self) -> Callable:
        return self._sampler_allocator

    def allocate_valid_state_sampler(self):
        return self._sampler_allocator(self)

    def setup(self) -> None:
        if self._validity is None:
            raise RuntimeError("未设置状态有效性检查器")
        self.space.set_space_information(self)
        self._is_setup = True

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    # ── 有效性 ───────────────────────────────────────────────────

    def is_valid(self, state: ConstrainedState) -> bool:
        self.validity_checks += 1
        if not self.space.satisfies_bounds(state.values):
            return False
        return bool(self._validity(state.values))

    def check_motion(self, a: ConstrainedState, b: ConstrainedState) -> bool:
        """a -> b 的测地线能否走通且途经状态全部有效."""
        reached, states = self.space.discrete_geodesic(a, b)
        return reached and all(self.is_valid(s) for s in states[1:-1])

    def valid_prefix(self, states: List[ConstrainedState]) -> List[ConstrainedState]:
        """返回 states 中从头开始连续有效的部分 (首个状态视为已验证)."""
        out = states[:1]
        for s in states[1:]:
            if not self.is_valid(s):
                break
            out.append(s)
        return out

    def extend(self, a: ConstrainedState, b: ConstrainedState,
               max_distance: float) -> Tuple[bool, List[ConstrainedState]]:
        """从 a 朝 b 沿测地线走最多 max_distance, 截到第一个无效状态为止.

        Returns:
            (是否无阻碍地到达 b, 有效途经状态)
        """
        reached, states = self.space.discrete_geodesic(a, b, max_distance)
        valid = self.valid_prefix(states)
        return reached and len(valid) == len(states), valid

    def describe(self) -> str:
        return "\n".join([
            self.space.describe(),
            f"  Valid state sampler: {getattr(self._sampler_allocator, '__name__', '?')}",
            f"  Validity checks so far: {self.validity_checks}",
        ])
