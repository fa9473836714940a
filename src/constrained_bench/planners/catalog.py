"""
planners/catalog.py - 规划器目录

parse_planner(name, si, range) 按名称构造规划器并设置统一的 range;
未知名称抛出 UnknownPlannerError。

PROJECTION_PLANNERS 是使用命名投影的规划器族 (封闭集合);
其中只有已实现的才出现在 PLANNERS 里。
"""

import logging
from typing import List

from ..errors import UnknownPlannerError
from .base import Planner
from .projection_family import BKPIECE1, KPIECE1, ProjEST
from .rrt_family import RRT, RRTConnect

logger = logging.getLogger(__name__)

PLANNERS = {
    "RRT": RRT,
    "RRTConnect": RRTConnect,
    "ProjEST": ProjEST,
    "KPIECE1": KPIECE1,
    "BKPIECE1": BKPIECE1,
}

PROJECTION_PLANNERS = frozenset({
    "KPIECE1", "BKPIECE1", "LBKPIECE1", "ProjEST", "PDST", "SBL", "STRIDE",
})


def list_planners() -> List[str]:
    return sorted(PLANNERS)


def parse_planner(name: str, si, range_: float) -> Planner:
    """按名称构造规划器

    Raises:
        UnknownPlannerError: 名称不在目录中
    """
    cls = PLANNERS.get(name)
    if cls is None:
        raise UnknownPlannerError(name)
    planner = cls(si)
    planner.range = range_
    return planner
