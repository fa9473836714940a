"""
utils/timing.py - 阶段计时器

记录单次 trial 内各阶段 (solve / simplify) 的耗时。
"""

import time
from contextlib import contextmanager


class Timer:
    """阶段计时器."""

    def __init__(self):
        self.records: dict[str, float] = {}

    @contextmanager
    def phase(self, name: str):
        """记录 name 阶段的耗时 (秒); 同名阶段累加."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.records[name] = (self.records.get(name, 0.0)
                                  + time.perf_counter() - t0)

    def get(self, name: str) -> float:
        return self.records.get(name, 0.0)

    @property
    def total(self) -> float:
        return sum(self.records.values())

    def to_dict(self) -> dict:
        return {**self.records, "total": self.total}

    def summary(self, unit: str = "ms") -> str:
        """返回格式化汇总字符串."""
        mul = 1000.0 if unit == "ms" else 1.0
        lines = []
        for name, sec in self.records.items():
            lines.append(f"  {name:20s}: {sec * mul:8.1f} {unit}")
        lines.append(f"  {'TOTAL':20s}: {self.total * mul:8.1f} {unit}")
        return "\n".join(lines)
