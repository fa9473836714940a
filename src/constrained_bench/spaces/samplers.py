"""
spaces/samplers.py - 有效状态采样器与分配器

两个分配器与流形表示一一对应:
- atlas_sampler_allocator:      仅用于 AtlasStateSpace
- projected_sampler_allocator:  PROJECTED 与 NULLSPACE 共用

采样器拒绝与之不匹配的空间, 防止 "ATLAS 采样 + PROJECTED 锚定" 的混用。
"""

import logging
from typing import Optional

from .atlas import AtlasStateSpace
from .base import ConstrainedState

logger = logging.getLogger(__name__)


class ConstrainedValidStateSampler:
    """在约束流形上反复采样直到得到有效状态.

    Args:
        si: SpaceInformation
        attempts: 每次 sample() 的最大尝试次数
    """

    def __init__(self, si, attempts: int = 100):
        self.si = si
        self.space = si.space
        self.attempts = attempts
        self._check_space()

    def _check_space(self) -> None:
        if isinstance(self.space, AtlasStateSpace):
            raise TypeError("projected 采样器不能用于 AtlasStateSpace")

    def sample(self) -> Optional[ConstrainedState]:
        for _ in range(self.attempts):
            state = self.space.sample_uniform(self.si.rng)
            if state is not None and self.si.is_valid(state):
                return state
        return None

    def sample_near(self, near: ConstrainedState,
                    distance: float) -> Optional[ConstrainedState]:
        for _ in range(self.attempts):
            state = self.space.sample_uniform_near(self.si.rng, near, distance)
            if state is not None and self.si.is_valid(state):
                return state
        return None


class AtlasValidStateSampler(ConstrainedValidStateSampler):
    """基于 chart 的有效状态采样器."""

    def _check_space(self) -> None:
        if not isinstance(self.space, AtlasStateSpace):
            raise TypeError("atlas 采样器需要 AtlasStateSpace")


def atlas_sampler_allocator(si) -> AtlasValidStateSampler:
    return AtlasValidStateSampler(si)


def projected_sampler_allocator(si) -> ConstrainedValidStateSampler:
    return ConstrainedValidStateSampler(si)
