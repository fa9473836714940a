"""
constraints - 等式约束与问题目录

- base: Constraint (function / jacobian / project)
- library: SphereConstraint, ChainConstraint, StewartConstraint
- problems: ProblemDescriptor, parse_problem, list_problems
"""

from .base import Constraint
from .library import (ChainConstraint, LinkageConstraint, SphereConstraint,
                      StewartConstraint)
from .problems import ProblemDescriptor, list_problems, parse_problem

__all__ = [
    "Constraint",
    "LinkageConstraint",
    "SphereConstraint",
    "ChainConstraint",
    "StewartConstraint",
    "ProblemDescriptor",
    "parse_problem",
    "list_problems",
]
