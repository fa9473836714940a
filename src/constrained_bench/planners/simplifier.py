"""
planners/simplifier.py - 路径后处理

Shortcut 优化: 反复随机选两个非相邻路径点, 若它们之间的测地线
可走通且途经状态全部有效, 则移除中间所有点。
"""

import logging
from typing import List, Optional

import numpy as np

from ..spaces.base import ConstrainedState
from .base import PlannerTerminationCondition, path_length

logger = logging.getLogger(__name__)


class PathSimplifier:
    """沿约束流形的 shortcut 简化器

    Args:
        si: SpaceInformation
        max_iters: 最大 shortcut 尝试次数

    Example:
        >>> simplifier = PathSimplifier(si)
        >>> short = simplifier.shortcut(path)
    """

    def __init__(self, si, max_iters: int = 100) -> None:
        self.si = si
        self.max_iters = max_iters

    def shortcut(
        self,
        path: List[ConstrainedState],
        ptc: Optional[PlannerTerminationCondition] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> List[ConstrainedState]:
        if len(path) <= 2:
            return list(path)
        if rng is None:
            rng = self.si.rng

        path = list(path)
        removed = 0
        for _ in range(self.max_iters):
            if len(path) <= 2 or (ptc is not None and ptc()):
                break
            i = int(rng.integers(0, len(path) - 2))
            j = int(rng.integers(i + 2, len(path)))
            if self.si.check_motion(path[i], path[j]):
                removed += j - i - 1
                path = path[:i + 1] + path[j:]

        if removed > 0:
            logger.debug("Shortcut: 移除 %d 个中间点, 剩余 %d 个", removed, len(path))
        return path

    def simplify(self, path: List[ConstrainedState],
                 ptc: Optional[PlannerTerminationCondition] = None):
        """返回 (简化后的路径, 简化前长度, 简化后长度)."""
        before = path_length(path)
        out = self.shortcut(path, ptc)
        return out, before, path_length(out)
