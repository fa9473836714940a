"""
benchmark/simple_setup.py - 单问题规划设置

SimpleSetup 把 SpaceInformation、ProblemDefinition、规划器和
路径简化器组装在一起, 供 Benchmark 反复调用 solve()。
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from ..planners.base import (Planner, PlannerStatus,
                             PlannerTerminationCondition, ProblemDefinition,
                             path_length)
from ..planners.simplifier import PathSimplifier
from ..spaces.base import ConstrainedState
from ..spaces.space_information import SpaceInformation

logger = logging.getLogger(__name__)


class SimpleSetup:
    """规划设置

    Args:
        si: SpaceInformation

    Example:
        >>> ss = SimpleSetup(si)
        >>> ss.set_start_and_goal_states(start, goal)
        >>> ss.set_planner(planner)
        >>> ss.setup()
        >>> status = ss.solve(PlannerTerminationCondition(5.0))
    """

    def __init__(self, si: SpaceInformation):
        self.si = si
        self.space = si.space
        self.pdef = ProblemDefinition(si)
        self.planner: Optional[Planner] = None
        self.simplifier = PathSimplifier(si)
        self.last_status: Optional[PlannerStatus] = None
        self._is_setup = False

    def set_state_validity_checker(self, fn) -> None:
        self.si.set_state_validity_checker(fn)

    def set_start_and_goal_states(self, start: ConstrainedState,
                                  goal: ConstrainedState) -> None:
        self.pdef.set_start_and_goal_states(start, goal)

    def set_planner(self, planner: Planner) -> None:
        self.planner = planner
        planner.set_problem_definition(self.pdef)
        self._is_setup = False

    def setup(self) -> None:
        if self.planner is None:
            raise RuntimeError("未设置规划器")
        self.si.setup()
        self.planner.setup()
        self._is_setup = True

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    def solve(self, ptc: PlannerTerminationCondition) -> PlannerStatus:
        if not self._is_setup:
            self.setup()
        self.pdef.clear_solution_paths()
        self.last_status = self.planner.solve(ptc)
        return self.last_status

    @property
    def solution_path(self) -> Optional[List[ConstrainedState]]:
        return self.pdef.solution

    def simplify_solution(self, ptc: Optional[PlannerTerminationCondition] = None
                          ) -> Tuple[List[ConstrainedState], float, float]:
        """简化当前解并写回; 返回 (路径, 简化前长度, 简化后长度)."""
        if self.pdef.solution is None:
            raise RuntimeError("没有可简化的解")
        path, before, after = self.simplifier.simplify(self.pdef.solution, ptc)
        self.pdef.add_solution_path(path, self.pdef.approximate)
        return path, before, after

    def solution_is_valid(self) -> bool:
        """逐段检查解路径 (测地线可走通且状态有效)."""
        path = self.pdef.solution
        if not path:
            return False
        return all(self.si.check_motion(path[i - 1], path[i])
                   for i in range(1, len(path)))

    def solution_length(self) -> float:
        return path_length(self.pdef.solution or [])

    def describe(self) -> str:
        start = self.pdef.start.values if self.pdef.start is not None else None
        goal = self.pdef.goal.values if self.pdef.goal is not None else None
        lines = [
            "Settings for the state space:",
            self.si.describe(),
            "Start: " + (np.array2string(start, precision=4) if start is not None else "-"),
            "Goal:  " + (np.array2string(goal, precision=4) if goal is not None else "-"),
            "Planner: " + (self.planner.describe() if self.planner else "-"),
        ]
        return "\n".join(lines)
