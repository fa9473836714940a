"""
planners/ - 约束流形上的采样规划器

- base: Planner ABC, ProjectionPlanner, PlannerStatus,
        PlannerTerminationCondition, ProblemDefinition
- rrt_family: RRT / RRTConnect
- projection_family: ProjEST / KPIECE1 / BKPIECE1
- simplifier: PathSimplifier
- catalog: parse_planner, list_planners
"""

from .base import (Planner, PlannerStatus, PlannerTerminationCondition,
                   ProblemDefinition, ProjectionPlanner, path_length)
from .rrt_family import RRT, RRTConnect
from .projection_family import BKPIECE1, KPIECE1, ProjEST
from .simplifier import PathSimplifier
from .catalog import (PLANNERS, PROJECTION_PLANNERS, list_planners,
                      parse_planner)

__all__ = [
    "Planner",
    "ProjectionPlanner",
    "PlannerStatus",
    "PlannerTerminationCondition",
    "ProblemDefinition",
    "path_length",
    "RRT",
    "RRTConnect",
    "ProjEST",
    "KPIECE1",
    "BKPIECE1",
    "PathSimplifier",
    "PLANNERS",
    "PROJECTION_PLANNERS",
    "parse_planner",
    "list_planners",
]
