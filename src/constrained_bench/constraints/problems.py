"""
constraints/problems.py - 问题目录

ProblemDescriptor: 一次 benchmark 的不可变问题描述
(约束、有效性谓词、起点/终点、人为延迟)。

parse_problem(name, ...) 按名称构造描述符; 未知名称抛出
UnknownProblemError。有效性谓词在返回前休眠 artificial_delay 秒,
用来模拟昂贵的碰撞检测。
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List

import numpy as np

from ..errors import UnknownProblemError
from .base import Constraint
from .library import ChainConstraint, SphereConstraint, StewartConstraint

logger = logging.getLogger(__name__)

ValidityFn = Callable[[np.ndarray], bool]

# 非相邻关节之间的最小距离
JOINT_CLEARANCE = 0.5
STEWART_TILT = math.pi / 6


@dataclass(frozen=True, eq=False)
class ProblemDescriptor:
    """约束规划问题描述

    Attributes:
        name: 目录名 ('sphere' / 'chain' / 'stewart')
        constraint: 等式约束
        validity: 环境坐标 -> 是否有效 (已包含人为延迟)
        start: 起点 (满足约束)
        goal: 终点 (满足约束)
        artificial_delay: 每次有效性检查的延迟 (秒)
        links: 连杆数 (chain / stewart)
        chains: 链数 (stewart)
    """
    name: str
    constraint: Constraint
    validity: ValidityFn
    start: np.ndarray
    goal: np.ndarray
    artificial_delay: float = 0.0
    links: int = 0
    chains: int = 0
    parameters: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        n = self.constraint.ambient_dim
        if self.start.shape != (n,) or self.goal.shape != (n,):
            raise ValueError(f"起点/终点维度必须为 {n}")

    @property
    def ambient_dimension(self) -> int:
        return self.constraint.ambient_dim

    @property
    def co_dimension(self) -> int:
        return self.constraint.co_dim

    @property
    def manifold_dimension(self) -> int:
        return self.constraint.manifold_dim


def with_delay(fn: ValidityFn, delay: float) -> ValidityFn:
    """给有效性谓词加上人为延迟."""
    if delay <= 0:
        return fn

    def delayed(x: np.ndarray) -> bool:
        time.sleep(delay)
        return fn(x)

    return delayed


# ═══════════════════════════════════════════════════════════════════════════
# 有效性谓词
# ═══════════════════════════════════════════════════════════════════════════

def sphere_valid(x: np.ndarray) -> bool:
    """三条纬度带墙, 每条墙上有一个窄缝."""
    if -0.80 < x[2] < -0.6:
        if -0.05 < x[1] < 0.05:
            return bool(x[0] > 0)
        return False
    if -0.1 < x[2] < 0.1:
        if -0.05 < x[0] < 0.05:
            return bool(x[1] < 0)
        return False
    if 0.6 < x[2] < 0.80:
        if -0.05 < x[1] < 0.05:
            return bool(x[0] < 0)
        return False
    return True


def _nonadjacent_clear(pts: np.ndarray, clearance: float) -> bool:
    """pts 为一条链 (含基座) 的关节序列, 检查非相邻关节间距."""
    diff = pts[:, None, :] - pts[None, :, :]
    dist = np.linalg.norm(diff, axis=2)
    idx = np.arange(len(pts))
    mask = np.abs(idx[:, None] - idx[None, :]) >= 2
    return bool(np.all(dist[mask] >= clearance))


def make_chain_validity(links: int) -> ValidityFn:
    def chain_valid(x: np.ndarray) -> bool:
        pts = np.vstack([np.zeros(3), np.asarray(x).reshape(links, 3)])
        return _nonadjacent_clear(pts, JOINT_CLEARANCE)

    return chain_valid


def make_stewart_validity(links: int, chains: int) -> ValidityFn:
    def stewart_valid(x: np.ndarray) -> bool:
        pts = np.asarray(x).reshape(chains, links, 3)
        if np.any(pts[:, :, 2] <= 0.0):
            return False
        for c in range(chains):
            others = np.delete(pts, c, axis=0).reshape(-1, 3)
            d = np.linalg.norm(pts[c][:, None, :] - others[None, :, :], axis=2)
            if np.any(d < JOINT_CLEARANCE):
                return False
        return True

    return stewart_valid


# ═══════════════════════════════════════════════════════════════════════════
# 目录
# ═══════════════════════════════════════════════════════════════════════════

def _sphere(delay: float, links: int, chains: int) -> ProblemDescriptor:
    return ProblemDescriptor(
        name="sphere",
        constraint=SphereConstraint(),
        validity=with_delay(sphere_valid, delay),
        start=np.array([0.0, 0.0, -1.0]),
        goal=np.array([0.0, 0.0, 1.0]),
        artificial_delay=delay,
    )


def _chain(delay: float, links: int, chains: int) -> ProblemDescriptor:
    constraint = ChainConstraint(links)
    return ProblemDescriptor(
        name="chain",
        constraint=constraint,
        validity=with_delay(make_chain_validity(links), delay),
        start=constraint.configuration(+1.0),
        goal=constraint.configuration(-1.0),
        artificial_delay=delay,
        links=links,
        parameters={"links": links},
    )


def _stewart(delay: float, links: int, chains: int) -> ProblemDescriptor:
    constraint = StewartConstraint(links, chains)
    return ProblemDescriptor(
        name="stewart",
        constraint=constraint,
        validity=with_delay(make_stewart_validity(links, chains), delay),
        start=constraint.configuration(STEWART_TILT),
        goal=constraint.configuration(-STEWART_TILT),
        artificial_delay=delay,
        links=links,
        chains=chains,
        parameters={"links": links, "chains": chains},
    )


PROBLEMS = {
    "sphere": _sphere,
    "chain": _chain,
    "stewart": _stewart,
}


def list_problems() -> List[str]:
    return sorted(PROBLEMS)


def parse_problem(name: str, artificial_delay: float = 0.0,
                  links: int = 5, chains: int = 2) -> ProblemDescriptor:
    """按名称构造问题

    Raises:
        UnknownProblemError: 名称不在目录中, 或参数不合法
    """
    builder = PROBLEMS.get(name)
    if builder is None:
        raise UnknownProblemError(name)
    try:
        problem = builder(float(artificial_delay), int(links), int(chains))
    except ValueError as e:
        raise UnknownProblemError(name, str(e)) from e
    logger.debug("问题 %s: n=%d k=%d", name,
                 problem.ambient_dimension, problem.co_dimension)
    return problem
