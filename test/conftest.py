"""
conftest.py - 测试共享 fixtures

提供 sphere / chain 问题、三种流形表示的 SpaceInformation,
以及按迭代次数终止的 PlannerTerminationCondition, 使各测试模块保持简短。
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))
os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest

from constrained_bench.benchmark.driver import (ManifoldStrategy,
                                                configure_bounds,
                                                select_strategy)
from constrained_bench.config import BenchmarkOptions
from constrained_bench.constraints.problems import parse_problem
from constrained_bench.planners.base import (PlannerStatus,
                                             PlannerTerminationCondition)
from constrained_bench.spaces.space_information import SpaceInformation


def iteration_limit(n: int, time_limit: float = 60.0) -> PlannerTerminationCondition:
    """poll 超过 n 次即终止 (与墙钟无关, 结果可复现)."""
    count = [0]

    def hook(ptc):
        count[0] += 1
        if count[0] > n:
            ptc.terminate(PlannerStatus.TIMEOUT)

    return PlannerTerminationCondition(time_limit, poll_hook=hook)


def make_si(problem, strategy: ManifoldStrategy, seed: int = 42,
            validity=None) -> SpaceInformation:
    space, allocator = select_strategy(
        strategy, problem, BenchmarkOptions(space=strategy.value))
    configure_bounds(space, problem, problem.links or 5)
    si = SpaceInformation(space, seed=seed)
    si.set_valid_state_sampler_allocator(allocator)
    si.set_state_validity_checker(validity or problem.validity)
    si.setup()
    return si


# =========================================================================
# 问题
# =========================================================================

@pytest.fixture(scope="session")
def sphere_problem():
    return parse_problem("sphere")


@pytest.fixture(scope="session")
def chain_problem():
    return parse_problem("chain", links=5)


# =========================================================================
# SpaceInformation
# =========================================================================

@pytest.fixture(params=list(ManifoldStrategy), ids=lambda s: s.value)
def strategy(request) -> ManifoldStrategy:
    return request.param


@pytest.fixture
def free_sphere_si(sphere_problem, strategy):
    """无障碍单位球面 (有效性恒为真)."""
    return make_si(sphere_problem, strategy, validity=lambda x: True)


@pytest.fixture
def projected_sphere_si(sphere_problem):
    return make_si(sphere_problem, ManifoldStrategy.PROJECTED,
                   validity=lambda x: True)


@pytest.fixture
def atlas_sphere_si(sphere_problem):
    return make_si(sphere_problem, ManifoldStrategy.ATLAS,
                   validity=lambda x: True)


@pytest.fixture
def east():
    return np.array([1.0, 0.0, 0.0])


@pytest.fixture
def north():
    return np.array([0.0, 1.0, 0.0])
