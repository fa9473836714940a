"""
constrained_bench - 约束采样规划 benchmark 驱动

在等式约束流形上反复运行采样规划器, 比较三种流形表示:

- ATLAS:     局部 chart 覆盖流形, 按需生长
- PROJECTED: 环境空间移动后投影回流形
- NULLSPACE: 沿雅可比零空间行走后校正

每个 trial 之前复位流形缓存 (ATLAS 丢弃全部 chart) 和规划器搜索状态,
保证 trial 之间相互独立。结果写成 OMPL 风格的纯文本日志。

用法:
    constrained-bench -c sphere -p RRTConnect -s atlas -t 1 -r 10
"""

__version__ = "0.1.0"

from .config import AtlasParameters, BenchmarkOptions
from .errors import (BenchmarkError, ConfigurationError, InvalidEndpointError,
                     ResultWriteError, StaleStateError, UnknownPlannerError,
                     UnknownProblemError, UnknownSpaceError)
from .benchmark import (ConstrainedBenchmark, ManifoldStrategy,
                        TrialController)

__all__ = [
    "__version__",
    "AtlasParameters",
    "BenchmarkOptions",
    "BenchmarkError",
    "ConfigurationError",
    "UnknownSpaceError",
    "UnknownProblemError",
    "UnknownPlannerError",
    "InvalidEndpointError",
    "StaleStateError",
    "ResultWriteError",
    "ConstrainedBenchmark",
    "ManifoldStrategy",
    "TrialController",
]
