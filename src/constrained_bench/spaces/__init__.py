"""
spaces - 约束状态空间

三种流形表示共用 ConstrainedStateSpace 接口:
- ProjectedStateSpace  (projected)
- NullspaceStateSpace  (null)
- AtlasStateSpace      (atlas, chart 覆盖)
"""

from .base import ConstrainedState, ConstrainedStateSpace
from .projected import ProjectedStateSpace
from .nullspace import NullspaceStateSpace
from .atlas import AtlasChart, AtlasState, AtlasStateSpace
from .projections import (ChainProjection, CoordinateProjection, ProjectionEvaluator,
                          SphereProjection, StewartProjection)
from .samplers import (AtlasValidStateSampler, ConstrainedValidStateSampler,
                       atlas_sampler_allocator, projected_sampler_allocator)
from .space_information import SpaceInformation

__all__ = [
    "ConstrainedState",
    "ConstrainedStateSpace",
    "ProjectedStateSpace",
    "NullspaceStateSpace",
    "AtlasChart",
    "AtlasState",
    "AtlasStateSpace",
    "ProjectionEvaluator",
    "CoordinateProjection",
    "SphereProjection",
    "ChainProjection",
    "StewartProjection",
    "ConstrainedValidStateSampler",
    "AtlasValidStateSampler",
    "atlas_sampler_allocator",
    "projected_sampler_allocator",
    "SpaceInformation",
]
