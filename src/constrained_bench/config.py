"""
constrained_bench/config.py - benchmark 参数配置

AtlasParameters:  ATLAS 变体的 chart 调参
BenchmarkOptions: 一次 benchmark 调用的全部命令行参数

harness 固定参数 (内存上限、采样间隔等) 以模块常量给出,
本驱动不允许通过命令行修改。
"""

import json
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

# ── harness 固定参数 ─────────────────────────────────────────
MEMORY_LIMIT_MB = 2048.0
SAMPLING_INTERVAL = 0.1
COLLECT_PROGRESS = False
SAVE_RAW_OUTPUT = False
USE_PARALLEL_WORKERS = False
SIMPLIFY_SOLUTIONS = True

# 非 chain 问题的坐标边界
DEFAULT_BOUND = 20.0


@dataclass(frozen=True)
class AtlasParameters:
    """Atlas 状态空间参数

    Attributes:
        rho: chart 半径 (库默认 0.1)
        alpha: chart 与流形切空间的最大夹角 (库默认 pi/16)
        epsilon: chart 与流形的最大距离
        separate: 是否在相邻 chart 之间加分离半空间 (tie-break)
        exploration: 采样时超出 chart 半径的比例, 用于生长新 chart
    """
    rho: float = 0.5
    alpha: float = math.pi / 8
    epsilon: float = 0.2
    separate: bool = True
    exploration: float = 0.5

    def __post_init__(self) -> None:
        if self.rho <= 0:
            raise ValueError("rho 必须为正")
        if not 0 < self.alpha < math.pi / 2:
            raise ValueError("alpha 必须在 (0, pi/2) 内")
        if self.epsilon <= 0:
            raise ValueError("epsilon 必须为正")
        if self.exploration < 0:
            raise ValueError("exploration 不能为负")


@dataclass
class BenchmarkOptions:
    """一次 benchmark 调用的参数

    Attributes:
        problem: 问题目录名 (-c)
        planner: 规划器目录名 (-p)
        space: 'atlas' | 'projected' | 'null' (-s)
        time_limit: 单次 trial 时间上限, 秒 (-t)
        runs: trial 次数 (-r)
        artificial_delay: 每次有效性检查的人为延迟, 秒 (-w)
        links: chain 类问题的连杆数 (-n)
        chains: stewart 问题的链数 (-g)
        tie_break: ATLAS chart 分离开关, -a 关闭
        print_space: 开始前打印状态空间描述 (-y)
        output: 结果日志路径 (-f), None 时自动命名
        range: 规划器统一的 range 参数
        seed: 随机种子, 0 表示按时间自动生成
        plot: 结果图输出路径 (可选)
    """
    problem: str = "sphere"
    planner: str = "RRTConnect"
    space: str = "projected"
    time_limit: float = 5.0
    runs: int = 100
    artificial_delay: float = 0.0
    links: int = 5
    chains: int = 2
    tie_break: bool = True
    print_space: bool = False
    output: Optional[str] = None
    range: float = 1.0
    seed: int = 0
    plot: Optional[str] = None

    def atlas_parameters(self) -> AtlasParameters:
        return AtlasParameters(separate=self.tie_break)

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_json(self, filepath: str | Path) -> str:
        """保存到 JSON 文件, 返回路径字符串"""
        p = Path(filepath)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(p)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BenchmarkOptions":
        """从字典构造, 忽略未知键"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})

    @classmethod
    def from_json(cls, filepath: str | Path) -> "BenchmarkOptions":
        """从 JSON 文件加载"""
        with open(filepath, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
