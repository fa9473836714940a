"""
benchmark/memory.py - 单次 trial 的内存监控

用 psutil 读取进程 RSS, 以 trial 开始时的读数为基线;
超过上限的 trial 由 harness 标记为失败 (不终止进程)。
"""

import logging
import os

import psutil

logger = logging.getLogger(__name__)


class MemoryMonitor:
    """进程内存监控

    Args:
        limit_mb: 单次 trial 允许新增的内存 (MB)
    """

    def __init__(self, limit_mb: float):
        self.limit_mb = float(limit_mb)
        self.process = psutil.Process(os.getpid())
        self._baseline = self.get_memory_mb()
        self.peak_mb = 0.0

    def get_memory_mb(self) -> float:
        """当前进程 RSS (MB)."""
        try:
            return self.process.memory_info().rss / 1024 / 1024
        except psutil.NoSuchProcess:
            return 0.0

    def used_mb(self) -> float:
        """相对基线新增的内存, 同时更新峰值."""
        used = max(0.0, self.get_memory_mb() - self._baseline)
        self.peak_mb = max(self.peak_mb, used)
        return used

    def exceeded(self) -> bool:
        used = self.used_mb()
        if used > self.limit_mb:
            logger.warning("trial 内存超限: %.1f MB > %.1f MB", used, self.limit_mb)
            return True
        return False
