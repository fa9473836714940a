"""
spaces/projections.py - 命名投影 (projection evaluator)

投影把高维状态映射到低维欧氏空间, 供 KPIECE / ProjEST 等规划器
划分网格。每个问题族一个:

- SphereProjection:  (方位角, 极角)
- ChainProjection:   末端执行器位置的前 dim 个坐标
- StewartProjection: 平台 (所有链末端) 的质心
"""

import abc
import math
from typing import Tuple

import numpy as np


class ProjectionEvaluator(abc.ABC):
    """投影基类

    Args:
        space: 约束状态空间
        cell_sizes: 每个投影维度的网格尺寸
    """

    def __init__(self, space, cell_sizes):
        self.space = space
        self.cell_sizes = np.asarray(cell_sizes, dtype=np.float64)

    @property
    def dimension(self) -> int:
        return len(self.cell_sizes)

    @abc.abstractmethod
    def project(self, values: np.ndarray) -> np.ndarray:
        """环境坐标 -> 投影坐标."""

    def cell(self, values: np.ndarray) -> Tuple[int, ...]:
        """投影坐标所在的网格单元."""
        return tuple(np.floor(self.project(values) / self.cell_sizes).astype(int))


class SphereProjection(ProjectionEvaluator):
    def __init__(self, space):
        super().__init__(space, [math.pi / 16, math.pi / 16])

    def project(self, values: np.ndarray) -> np.ndarray:
        x, y, z = values[:3]
        return np.array([math.atan2(y, x), math.acos(max(-1.0, min(1.0, z)))])


class ChainProjection(ProjectionEvaluator):
    """末端执行器位置.

    Args:
        space: 状态空间
        dim: 投影维度 (<= 3)
        links: 连杆数
    """

    def __init__(self, space, dim: int, links: int):
        if not 1 <= dim <= 3:
            raise ValueError("ChainProjection 维度必须在 [1, 3] 内")
        self.links = links
        super().__init__(space, [0.25 * max(links, 1) / 5.0] * dim)

    def project(self, values: np.ndarray) -> np.ndarray:
        end = values[3 * (self.links - 1):3 * self.links]
        return np.array(end[:self.dimension])


class StewartProjection(ProjectionEvaluator):
    """平台质心."""

    def __init__(self, space, links: int, chains: int):
        self.links = links
        self.chains = chains
        super().__init__(space, [0.1, 0.1, 0.1])

    def project(self, values: np.ndarray) -> np.ndarray:
        pts = np.asarray(values).reshape(self.chains, self.links, 3)
        return pts[:, -1, :].mean(axis=0)


class CoordinateProjection(ProjectionEvaluator):
    """默认投影: 前 min(3, n) 个环境坐标, 网格尺寸取 range 的一半."""

    def __init__(self, space, cell_size: float = 0.5):
        dim = min(3, space.ambient_dim)
        super().__init__(space, [max(cell_size, 1e-3) * 0.5] * dim)

    def project(self, values: np.ndarray) -> np.ndarray:
        return np.array(values[:self.dimension])
