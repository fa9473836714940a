"""
spaces/projected.py - 投影法约束状态空间

每一步在环境空间中直接朝目标移动 delta, 再用 Newton 迭代投影回流形。
"""

from typing import Optional

import numpy as np

from .base import ConstrainedStateSpace


class ProjectedStateSpace(ConstrainedStateSpace):
    """PROJECTED 变体: 环境空间移动 + 投影."""

    kind = "projected"

    def _step(self, x: np.ndarray, target: np.ndarray) -> Optional[np.ndarray]:
        d = target - x
        n = float(np.linalg.norm(d))
        if n < 1e-12:
            return None
        ok, y = self.project(x + d * (min(self.delta, n) / n))
        return y if ok else None
