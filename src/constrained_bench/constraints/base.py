"""
constraints/base.py - 等式约束基类

Constraint 定义环境空间 R^n 中的 k 个标量等式约束 F(x) = 0,
约束流形维度为 n - k。投影采用 Newton / 最小二乘迭代。
"""

import abc
from typing import Tuple

import numpy as np


class Constraint(abc.ABC):
    """等式约束 F: R^n -> R^k

    子类必须实现 ``function``; ``jacobian`` 默认使用中心差分,
    有解析形式的子类应覆写。

    Args:
        ambient_dim: 环境空间维度 n
        co_dim: 约束个数 k (余维)
        tolerance: |F(x)| 的满足阈值
        max_iterations: 投影最大迭代次数
    """

    def __init__(self, ambient_dim: int, co_dim: int,
                 tolerance: float = 1e-4, max_iterations: int = 50):
        if not ambient_dim >= co_dim >= 0:
            raise ValueError(
                f"需要 ambient_dim >= co_dim >= 0, 得到 {ambient_dim}, {co_dim}")
        self.ambient_dim = int(ambient_dim)
        self.co_dim = int(co_dim)
        self.tolerance = float(tolerance)
        self.max_iterations = int(max_iterations)

    @property
    def manifold_dim(self) -> int:
        return self.ambient_dim - self.co_dim

    @abc.abstractmethod
    def function(self, x: np.ndarray) -> np.ndarray:
        """F(x), 形状 (k,)."""

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        """(k, n) 雅可比矩阵, 中心差分."""
        h = 1e-6
        x = np.asarray(x, dtype=np.float64)
        jac = np.empty((self.co_dim, self.ambient_dim))
        for i in range(self.ambient_dim):
            e = np.zeros(self.ambient_dim)
            e[i] = h
            jac[:, i] = (self.function(x + e) - self.function(x - e)) / (2 * h)
        return jac

    def distance(self, x: np.ndarray) -> float:
        return float(np.linalg.norm(self.function(x)))

    def is_satisfied(self, x: np.ndarray) -> bool:
        return self.distance(x) <= self.tolerance

    def project(self, x: np.ndarray) -> Tuple[bool, np.ndarray]:
        """把 x 投影到流形上

        Returns:
            (是否收敛, 投影后的点)
        """
        x = np.array(x, dtype=np.float64)
        for _ in range(self.max_iterations):
            f = self.function(x)
            norm = float(np.linalg.norm(f))
            if not np.isfinite(norm):
                return False, x
            if norm <= self.tolerance:
                return True, x
            dx, *_ = np.linalg.lstsq(self.jacobian(x), f, rcond=None)
            x = x - dx
        return self.is_satisfied(x), x
