"""
planners/rrt_family.py - RRT 系列 (流形版本)

与欧氏空间 RRT 的区别仅在于扩展: 节点之间沿约束流形的离散测地线
行走 (SpaceInformation.extend), 每次最多走 range 的长度。

- RRT:        单树, 目标偏置采样
- RRTConnect: 双树, extend + connect 交替
"""

from __future__ import annotations

import logging
from typing import Optional

from .base import (Planner, PlannerStatus, PlannerTerminationCondition,
                   _StateTree)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 1. RRT (basic, single-tree)
# ═══════════════════════════════════════════════════════════════════════════

class RRT(Planner):
    """单树 RRT.

    Args:
        si: SpaceInformation
        goal_bias: 直接以终点为采样目标的概率
    """

    def __init__(self, si, goal_bias: float = 0.05):
        super().__init__(si, "RRT")
        self.goal_bias = goal_bias
        self._tree: Optional[_StateTree] = None
        self._sampler = None

    def clear(self) -> None:
        self._tree = None
        self._sampler = None
        if self.pdef is not None:
            self.pdef.clear_solution_paths()

    @property
    def graph_size(self) -> int:
        return 0 if self._tree is None else len(self._tree)

    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        bad = self._check_endpoints()
        if bad is not None:
            return bad
        start, goal = self.pdef.start, self.pdef.goal
        if self._tree is None:
            self._tree = _StateTree(self.si.space.ambient_dim)
            self._tree.add(start, -1)
        if self._sampler is None:
            self._sampler = self.si.allocate_valid_state_sampler()
        tree = self._tree
        rng = self.si.rng

        while not ptc():
            if rng.uniform() < self.goal_bias:
                target = goal
            else:
                target = self._sampler.sample()
                if target is None:
                    continue
            idx_near = tree.nearest(target.values)
            reached, states = self.si.extend(tree.states[idx_near], target,
                                             self._range)
            if len(states) < 2:
                continue
            idx_new = tree.add(states[-1], idx_near)
            if (reached and target is goal) or self.pdef.is_goal(states[-1]):
                path = tree.path(idx_new)
                if path[-1] is not goal:
                    path.append(goal)
                self.pdef.add_solution_path(path)
                logger.debug("%s: 找到解, %d 个节点", self.name, len(tree))
                return PlannerStatus.EXACT_SOLUTION

        return ptc.reason or PlannerStatus.TIMEOUT


# ═══════════════════════════════════════════════════════════════════════════
# 2. RRT-Connect (bidirectional)
# ═══════════════════════════════════════════════════════════════════════════

class RRTConnect(Planner):
    """双向 RRT-Connect."""

    def __init__(self, si):
        super().__init__(si, "RRTConnect")
        self._start_tree: Optional[_StateTree] = None
        self._goal_tree: Optional[_StateTree] = None
        self._sampler = None

    def clear(self) -> None:
        self._start_tree = None
        self._goal_tree = None
        self._sampler = None
        if self.pdef is not None:
            self.pdef.clear_solution_paths()

    @property
    def graph_size(self) -> int:
        if self._start_tree is None:
            return 0
        return len(self._start_tree) + len(self._goal_tree)

    def _connect(self, tree: _StateTree, target, ptc):
        """tree 朝 target 反复扩展; 返回 (是否连上, 最后一个新增节点)."""
        idx = tree.nearest(target.values)
        while not ptc():
            reached, states = self.si.extend(tree.states[idx], target,
                                             self._range)
            if len(states) < 2:
                return False, idx
            if reached:
                return True, idx
            idx = tree.add(states[-1], idx)
        return False, idx

    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        bad = self._check_endpoints()
        if bad is not None:
            return bad
        if self._start_tree is None:
            ndim = self.si.space.ambient_dim
            self._start_tree = _StateTree(ndim)
            self._start_tree.add(self.pdef.start, -1)
            self._goal_tree = _StateTree(ndim)
            self._goal_tree.add(self.pdef.goal, -1)
        if self._sampler is None:
            self._sampler = self.si.allocate_valid_state_sampler()

        tree_a, tree_b = self._start_tree, self._goal_tree
        while not ptc():
            q_rand = self._sampler.sample()
            if q_rand is None:
                continue
            idx_near = tree_a.nearest(q_rand.values)
            _, states = self.si.extend(tree_a.states[idx_near], q_rand,
                                       self._range)
            if len(states) >= 2:
                idx_new = tree_a.add(states[-1], idx_near)
                connected, idx_b = self._connect(tree_b, states[-1], ptc)
                if connected:
                    path_a = tree_a.path(idx_new)
                    path_b = tree_b.path(idx_b)
                    if tree_a is self._start_tree:
                        full = path_a + path_b[::-1]
                    else:
                        full = path_b + path_a[::-1]
                    self.pdef.add_solution_path(full)
                    logger.debug("%s: 找到解, %d 个节点", self.name,
                                 self.graph_size)
                    return PlannerStatus.EXACT_SOLUTION
            tree_a, tree_b = tree_b, tree_a

        return ptc.reason or PlannerStatus.TIMEOUT
