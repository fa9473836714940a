"""
spaces/nullspace.py - 零空间法约束状态空间

每一步先把朝向目标的方向投影到当前点的切空间 (雅可比零空间),
沿切向移动 delta 后再校正回流形。
"""

from typing import Optional

import numpy as np

from .base import ConstrainedStateSpace


class NullspaceStateSpace(ConstrainedStateSpace):
    """NULLSPACE 变体: 切空间行走 + 校正."""

    kind = "null"

    def _step(self, x: np.ndarray, target: np.ndarray) -> Optional[np.ndarray]:
        basis = self.tangent_basis(x)
        v = basis @ (basis.T @ (target - x))
        n = float(np.linalg.norm(v))
        if n < 1e-12:
            return None
        remaining = float(np.linalg.norm(target - x))
        ok, y = self.project(x + v * (min(self.delta, remaining) / n))
        return y if ok else None
