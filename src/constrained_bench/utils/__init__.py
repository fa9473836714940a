"""utils - 随机种子与计时辅助"""

from .seed import make_rng, make_seed, spawn_seed
from .timing import Timer

__all__ = ["make_seed", "make_rng", "spawn_seed", "Timer"]
