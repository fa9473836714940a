"""
constraints/library.py - 目录中使用的具体约束

所有约束都是 "点间距离等于常数" 的形式 (LinkageConstraint),
雅可比矩阵有解析解:

- SphereConstraint:  |p| = 1                       (n=3, k=1)
- ChainConstraint:   单位长连杆链 + 末端在球面上      (n=3L, k=L+1)
- StewartConstraint: 多条链 + 末端构成刚性平台        (n=3LC)
"""

import math
from typing import List, Sequence, Tuple, Union

import numpy as np

from .base import Constraint

# 距离项的一端: 变量点索引 (int) 或固定点 (ndarray)
Endpoint = Union[int, np.ndarray]


class LinkageConstraint(Constraint):
    """由若干 |a - b| = length 项组成的约束

    环境空间是 n_points 个三维点拼接而成的向量。

    Args:
        n_points: 变量点个数
        terms: [(a, b, length), ...]
    """

    def __init__(self, n_points: int,
                 terms: Sequence[Tuple[Endpoint, Endpoint, float]],
                 **kwargs):
        super().__init__(3 * n_points, len(terms), **kwargs)
        self.n_points = n_points
        self.terms = [(a if isinstance(a, int) else np.asarray(a, dtype=np.float64),
                       b if isinstance(b, int) else np.asarray(b, dtype=np.float64),
                       float(length))
                      for a, b, length in terms]

    def points(self, x: np.ndarray) -> np.ndarray:
        return np.asarray(x, dtype=np.float64).reshape(self.n_points, 3)

    @staticmethod
    def _point(pts: np.ndarray, e: Endpoint) -> np.ndarray:
        return pts[e] if isinstance(e, int) else e

    def function(self, x: np.ndarray) -> np.ndarray:
        pts = self.points(x)
        out = np.empty(self.co_dim)
        for r, (a, b, length) in enumerate(self.terms):
            out[r] = np.linalg.norm(self._point(pts, a) - self._point(pts, b)) - length
        return out

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        pts = self.points(x)
        jac = np.zeros((self.co_dim, self.ambient_dim))
        for r, (a, b, _) in enumerate(self.terms):
            d = self._point(pts, a) - self._point(pts, b)
            n = np.linalg.norm(d)
            u = d / n if n > 1e-12 else np.zeros(3)
            if isinstance(a, int):
                jac[r, 3 * a:3 * a + 3] += u
            if isinstance(b, int):
                jac[r, 3 * b:3 * b + 3] -= u
        return jac


class SphereConstraint(LinkageConstraint):
    """单位球面."""

    def __init__(self, **kwargs):
        super().__init__(1, [(0, np.zeros(3), 1.0)], **kwargs)


class ChainConstraint(LinkageConstraint):
    """从原点出发的 links 节单位连杆链, 末端位于半径 links-1 的球面上.

    Args:
        links: 连杆数 (>= 3)
        length: 单节连杆长度
    """

    def __init__(self, links: int, length: float = 1.0, **kwargs):
        if links < 3:
            raise ValueError("chain 需要至少 3 节连杆")
        self.links = links
        self.length = length
        self.radius = (links - 1) * length
        origin = np.zeros(3)
        terms: List[Tuple[Endpoint, Endpoint, float]] = [(0, origin, length)]
        terms += [(i, i - 1, length) for i in range(1, links)]
        terms.append((links - 1, origin, self.radius))
        super().__init__(links, terms, **kwargs)

    def configuration(self, direction: float) -> np.ndarray:
        """沿 direction (+1 / -1) 方向伸展, 最后一节向上弯折的构型."""
        a = self.radius
        L = self.length
        pts = np.zeros((self.links, 3))
        for i in range(self.links - 1):
            pts[i] = ((i + 1) * L, 0.0, 0.0)
        # 末端: 与倒数第二个关节相距 L 且 |p| = a
        x = a - L * L / (2 * a)
        pts[-1] = (x, 0.0, math.sqrt(max(a * a - x * x, 0.0)))
        pts[:, 0] *= direction
        return pts.ravel()


class StewartConstraint(LinkageConstraint):
    """chains 条 links 节连杆链, 基座均布在半径 base_radius 的圆上,
    相邻链末端之间保持基座多边形边长 (刚性平台).

    Args:
        links: 每条链的连杆数
        chains: 链数 (>= 2)
        base_radius: 基座圆半径
    """

    def __init__(self, links: int, chains: int, base_radius: float = 2.0,
                 length: float = 1.0, **kwargs):
        if chains < 2:
            raise ValueError("stewart 需要至少 2 条链")
        if links < 1:
            raise ValueError("stewart 需要至少 1 节连杆")
        self.links = links
        self.chains = chains
        self.length = length
        angles = 2 * math.pi * np.arange(chains) / chains
        self.bases = base_radius * np.stack(
            [np.cos(angles), np.sin(angles), np.zeros(chains)], axis=1)
        self.side = float(np.linalg.norm(self.bases[0] - self.bases[1]))

        terms: List[Tuple[Endpoint, Endpoint, float]] = []
        for c in range(chains):
            first = c * links
            terms.append((first, self.bases[c], length))
            terms += [(first + i, first + i - 1, length) for i in range(1, links)]
        ends = [self.end_index(c) for c in range(chains)]
        if chains == 2:
            terms.append((ends[0], ends[1], self.side))
        else:
            terms += [(ends[c], ends[(c + 1) % chains], self.side)
                      for c in range(chains)]
        super().__init__(links * chains, terms, **kwargs)

    def end_index(self, chain: int) -> int:
        return chain * self.links + self.links - 1

    def configuration(self, tilt: float) -> np.ndarray:
        """所有链以相同姿态倾斜 tilt (rad, 绕 y 轴) 的构型."""
        step = self.length * np.array([math.sin(tilt), 0.0, math.cos(tilt)])
        pts = np.zeros((self.chains, self.links, 3))
        for c in range(self.chains):
            for i in range(self.links):
                pts[c, i] = self.bases[c] + (i + 1) * step
        return pts.reshape(-1)
