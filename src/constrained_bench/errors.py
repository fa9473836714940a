"""
constrained_bench/errors.py - 错误分类

ConfigurationError 及其子类都在第一次 trial 之前抛出 (致命配置错误);
单次 trial 的规划失败不是异常, 由 harness 记录为普通结果。
"""


class BenchmarkError(Exception):
    """所有 constrained_bench 异常的基类."""


class ConfigurationError(BenchmarkError):
    """致命配置错误: 在任何 trial 运行前终止."""


class UnknownSpaceError(ConfigurationError):
    """未知的约束状态空间 (manifold strategy) 名称."""

    def __init__(self, name: str):
        super().__init__(f"Invalid constrained state space: {name!r}")
        self.name = name


class UnknownProblemError(ConfigurationError):
    """问题目录中不存在该名称."""

    def __init__(self, name: str, reason: str = ""):
        msg = f"Invalid problem: {name!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.name = name


class UnknownPlannerError(ConfigurationError):
    """规划器目录中不存在该名称."""

    def __init__(self, name: str):
        super().__init__(f"Invalid planner: {name!r}")
        self.name = name


class InvalidEndpointError(ConfigurationError):
    """起点或终点不满足有效性谓词."""


class StaleStateError(BenchmarkError):
    """Atlas state 的 chart 引用在 space.clear() 之后失效."""


class ResultWriteError(BenchmarkError):
    """结果日志写入失败."""
