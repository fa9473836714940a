"""
benchmark/plotting.py - benchmark 结果图

每个规划器一列: 左图为 trial 耗时箱线图, 右图为成功率柱状图。
"""

import logging
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # 非交互后端
import matplotlib.pyplot as plt
import numpy as np

from ..errors import ResultWriteError
from .harness import BenchmarkResults

logger = logging.getLogger(__name__)


def plot_results(results: BenchmarkResults, path) -> str:
    """绘制耗时分布与成功率并保存, 返回路径字符串

    Raises:
        ResultWriteError: 无法写入图片
    """
    names = [e.name for e in results.experiments]
    times = [np.array([r.time for r in e.runs]) for e in results.experiments]
    rates = [100.0 * e.success_rate for e in results.experiments]

    fig, (ax_t, ax_s) = plt.subplots(1, 2, figsize=(10, 4))

    ax_t.boxplot(times)
    ax_t.set_xticks(range(1, len(names) + 1))
    ax_t.set_xticklabels(names, rotation=20)
    ax_t.axhline(results.request.time_limit, color="red", linestyle="--",
                 alpha=0.7, label="time limit")
    ax_t.set_ylabel("time (s)")
    ax_t.set_title("Trial time")
    ax_t.legend(fontsize=8)
    ax_t.grid(True, alpha=0.3)

    ax_s.bar(range(len(names)), rates, color="steelblue")
    ax_s.set_xticks(range(len(names)))
    ax_s.set_xticklabels(names, rotation=20)
    ax_s.set_ylim(0, 100)
    ax_s.set_ylabel("solved (%)")
    ax_s.set_title("Success rate")
    ax_s.grid(True, alpha=0.3, axis="y")

    fig.suptitle(f"{results.experiment_name}: "
                 f"{results.request.run_count} runs per planner", fontsize=12)
    fig.tight_layout()

    p = Path(path)
    try:
        if p.parent != Path(""):
            p.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(p, dpi=150, bbox_inches="tight")
    except OSError as e:
        raise ResultWriteError(f"无法写入结果图 {p}: {e}") from e
    finally:
        plt.close(fig)
    logger.info("结果图已保存至 %s", p)
    return str(p)
