"""
utils/seed.py - 随机种子管理

统一管理 benchmark 的可复现性种子。
"""

import time

import numpy as np


def make_seed(seed: int = 0) -> int:
    """如果 seed == 0, 用当前时间戳生成; 否则原样返回."""
    if seed == 0:
        return int(time.time()) % (2**31)
    return seed


def make_rng(seed: int = 0) -> np.random.Generator:
    """返回 numpy Generator, seed==0 时自动分配."""
    return np.random.default_rng(make_seed(seed))


def spawn_seed(rng: np.random.Generator) -> int:
    """从已有 Generator 派生一个新的非零种子 (每个 trial 一个)."""
    return int(rng.integers(1, 2**31 - 1))
