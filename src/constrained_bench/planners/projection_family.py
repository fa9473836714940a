"""
planners/projection_family.py - 基于投影网格的规划器

这些规划器把树节点按命名投影 (ProjectionEvaluator) 划分到网格单元,
优先扩展探索不足的单元:

- ProjEST:  单树, 按 1/单元节点数 加权选单元
- KPIECE1:  单树, 优先外部单元, 按分数选单元, 扩展失败降分
- BKPIECE1: KPIECE1 的双向版本, 每次扩展后尝试连接另一棵树
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

import numpy as np

from .base import (PlannerStatus, PlannerTerminationCondition,
                   ProjectionPlanner, _StateTree)

logger = logging.getLogger(__name__)

Cell = Tuple[int, ...]


class _Grid:
    """投影网格: 单元 -> 树节点索引列表, 附带 KPIECE 分数."""

    def __init__(self, projection):
        self.projection = projection
        self.cells: Dict[Cell, List[int]] = defaultdict(list)
        self.scores: Dict[Cell, float] = {}
        self.selections: Dict[Cell, int] = defaultdict(int)

    def add(self, values: np.ndarray, idx: int) -> Cell:
        cell = self.projection.cell(values)
        if cell not in self.scores:
            self.scores[cell] = 1.0
        self.cells[cell].append(idx)
        return cell

    def neighbour_count(self, cell: Cell) -> int:
        count = 0
        for d in range(len(cell)):
            for step in (-1, 1):
                nb = cell[:d] + (cell[d] + step,) + cell[d + 1:]
                if nb in self.cells:
                    count += 1
        return count

    def is_exterior(self, cell: Cell) -> bool:
        return self.neighbour_count(cell) < 2 * len(cell)

    def __len__(self) -> int:
        return len(self.cells)


# ═══════════════════════════════════════════════════════════════════════════
# 1. ProjEST
# ═══════════════════════════════════════════════════════════════════════════

class ProjEST(ProjectionPlanner):
    """基于投影的 EST.

    Args:
        si: SpaceInformation
        goal_bias: 以终点为扩展目标的概率
    """

    def __init__(self, si, goal_bias: float = 0.05):
        super().__init__(si, "ProjEST")
        self.goal_bias = goal_bias
        self._tree: Optional[_StateTree] = None
        self._grid: Optional[_Grid] = None
        self._sampler = None

    def clear(self) -> None:
        self._tree = None
        self._grid = None
        self._sampler = None
        if self.pdef is not None:
            self.pdef.clear_solution_paths()

    @property
    def graph_size(self) -> int:
        return 0 if self._tree is None else len(self._tree)

    def _select_node(self, rng: np.random.Generator) -> int:
        cells = list(self._grid.cells)
        weights = np.array([1.0 / len(self._grid.cells[c]) for c in cells])
        cell = cells[int(rng.choice(len(cells), p=weights / weights.sum()))]
        members = self._grid.cells[cell]
        return members[int(rng.integers(len(members)))]

    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        bad = self._check_endpoints()
        if bad is not None:
            return bad
        if self._tree is None:
            self._tree = _StateTree(self.si.space.ambient_dim)
            self._grid = _Grid(self.projection)
            self._grid.add(self.pdef.start.values,
                           self._tree.add(self.pdef.start, -1))
        if self._sampler is None:
            self._sampler = self.si.allocate_valid_state_sampler()
        tree, goal, rng = self._tree, self.pdef.goal, self.si.rng

        while not ptc():
            idx = self._select_node(rng)
            if rng.uniform() < self.goal_bias:
                target = goal
            else:
                target = self._sampler.sample_near(tree.states[idx], self._range)
                if target is None:
                    continue
            reached, states = self.si.extend(tree.states[idx], target,
                                             self._range)
            if len(states) < 2:
                continue
            idx_new = tree.add(states[-1], idx)
            self._grid.add(states[-1].values, idx_new)
            if (reached and target is goal) or self.pdef.is_goal(states[-1]):
                path = tree.path(idx_new)
                if path[-1] is not goal:
                    path.append(goal)
                self.pdef.add_solution_path(path)
                return PlannerStatus.EXACT_SOLUTION

        return ptc.reason or PlannerStatus.TIMEOUT


# ═══════════════════════════════════════════════════════════════════════════
# 2. KPIECE1
# ═══════════════════════════════════════════════════════════════════════════

class _KPIECETree:
    """一棵 KPIECE 树: 节点存储 + 投影网格."""

    def __init__(self, ndim: int, projection):
        self.tree = _StateTree(ndim)
        self.grid = _Grid(projection)

    def add(self, state, parent: int) -> int:
        idx = self.tree.add(state, parent)
        self.grid.add(state.values, idx)
        return idx

    def select(self, rng: np.random.Generator,
               border_fraction: float) -> Tuple[Cell, int]:
        """按外部/内部比例选单元, 单元内取分数最高者, 再随机选节点."""
        cells = list(self.grid.cells)
        exterior = [c for c in cells if self.grid.is_exterior(c)]
        ext = set(exterior)
        interior = [c for c in cells if c not in ext]
        pool = exterior if (exterior and (not interior or
                                          rng.uniform() < border_fraction)) else interior
        scores = np.array([self.grid.scores[c]
                           / (1.0 + self.grid.selections[c]) for c in pool])
        cell = pool[int(np.argmax(scores))]
        self.grid.selections[cell] += 1
        members = self.grid.cells[cell]
        return cell, members[int(rng.integers(len(members)))]


class KPIECE1(ProjectionPlanner):
    """KPIECE1 (Kinodynamic motion Planning by Interior-Exterior Cell Exploration).

    Args:
        si: SpaceInformation
        goal_bias: 以终点为扩展目标的概率
        border_fraction: 选外部单元的概率
        failed_expansion_factor: 扩展失败时单元分数的衰减系数
        min_valid_path_fraction: 部分有效扩展被接受的最小比例
    """

    def __init__(self, si, goal_bias: float = 0.05,
                 border_fraction: float = 0.9,
                 failed_expansion_factor: float = 0.5,
                 min_valid_path_fraction: float = 0.2):
        super().__init__(si, "KPIECE1")
        self.goal_bias = goal_bias
        self.border_fraction = border_fraction
        self.failed_expansion_factor = failed_expansion_factor
        self.min_valid_path_fraction = min_valid_path_fraction
        self._data: Optional[_KPIECETree] = None
        self._sampler = None

    def clear(self) -> None:
        self._data = None
        self._sampler = None
        if self.pdef is not None:
            self.pdef.clear_solution_paths()

    @property
    def graph_size(self) -> int:
        return 0 if self._data is None else len(self._data.tree)

    def _accept(self, reached: bool, states, target) -> bool:
        if len(states) < 2:
            return False
        if reached:
            return True
        moved = np.linalg.norm(states[-1].values - states[0].values)
        wanted = np.linalg.norm(target.values - states[0].values)
        return wanted > 0 and moved / wanted >= self.min_valid_path_fraction

    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        bad = self._check_endpoints()
        if bad is not None:
            return bad
        if self._data is None:
            self._data = _KPIECETree(self.si.space.ambient_dim, self.projection)
            self._data.add(self.pdef.start, -1)
        if self._sampler is None:
            self._sampler = self.si.allocate_valid_state_sampler()
        data, goal, rng = self._data, self.pdef.goal, self.si.rng

        while not ptc():
            cell, idx = data.select(rng, self.border_fraction)
            near = data.tree.states[idx]
            if rng.uniform() < self.goal_bias:
                target = goal
            else:
                target = self._sampler.sample_near(near, self._range)
                if target is None:
                    continue
            reached, states = self.si.extend(near, target, self._range)
            if not self._accept(reached, states, target):
                data.grid.scores[cell] *= self.failed_expansion_factor
                continue
            idx_new = data.add(states[-1], idx)
            if (reached and target is goal) or self.pdef.is_goal(states[-1]):
                path = data.tree.path(idx_new)
                if path[-1] is not goal:
                    path.append(goal)
                self.pdef.add_solution_path(path)
                return PlannerStatus.EXACT_SOLUTION

        return ptc.reason or PlannerStatus.TIMEOUT


# ═══════════════════════════════════════════════════════════════════════════
# 3. BKPIECE1
# ═══════════════════════════════════════════════════════════════════════════

class BKPIECE1(KPIECE1):
    """双向 KPIECE1: 两棵树交替扩展, 新节点尝试连接另一棵树的最近节点."""

    def __init__(self, si, **kwargs):
        kwargs.setdefault("goal_bias", 0.0)
        super().__init__(si, **kwargs)
        self.name = "BKPIECE1"
        self._goal_data: Optional[_KPIECETree] = None

    def clear(self) -> None:
        super().clear()
        self._goal_data = None

    @property
    def graph_size(self) -> int:
        if self._data is None:
            return 0
        return len(self._data.tree) + len(self._goal_data.tree)

    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        bad = self._check_endpoints()
        if bad is not None:
            return bad
        if self._data is None:
            ndim = self.si.space.ambient_dim
            self._data = _KPIECETree(ndim, self.projection)
            self._data.add(self.pdef.start, -1)
            self._goal_data = _KPIECETree(ndim, self.projection)
            self._goal_data.add(self.pdef.goal, -1)
        if self._sampler is None:
            self._sampler = self.si.allocate_valid_state_sampler()
        rng = self.si.rng

        grow, other = self._data, self._goal_data
        while not ptc():
            cell, idx = grow.select(rng, self.border_fraction)
            near = grow.tree.states[idx]
            target = self._sampler.sample_near(near, self._range)
            if target is not None:
                reached, states = self.si.extend(near, target, self._range)
                if self._accept(reached, states, target):
                    idx_new = grow.add(states[-1], idx)
                    new = states[-1]
                    idx_other = other.tree.nearest(new.values)
                    if self.si.check_motion(new, other.tree.states[idx_other]):
                        path_g = grow.tree.path(idx_new)
                        path_o = other.tree.path(idx_other)
                        if grow is self._data:
                            full = path_g + path_o[::-1]
                        else:
                            full = path_o + path_g[::-1]
                        self.pdef.add_solution_path(full)
                        return PlannerStatus.EXACT_SOLUTION
                else:
                    grow.grid.scores[cell] *= self.failed_expansion_factor
            grow, other = other, grow

        return ptc.reason or PlannerStatus.TIMEOUT
