from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

LOGGER = logging.getLogger("txbench.charts")

CHART_FILENAME = "tps.png"
LINE_COLOR = "#2E86AB"

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13


def render_sweep_chart(
    summary: pd.DataFrame,
    output_dir: Path,
    title: str = "Throughput vs Worker Count",
    filename: str = CHART_FILENAME,
) -> Path | None:
    """Plot mean TPS per worker count with the min/max range as a band."""
    chart_path = output_dir / filename
    data = summary.dropna(subset=["tps_mean"]).sort_values("workers")
    if data.empty:
        LOGGER.warning("No measurable throughput; skipping chart %s", chart_path)
        return None

    workers = data["workers"].to_numpy(dtype=float)
    means = data["tps_mean"].to_numpy(dtype=float)
    lows = data["tps_min"].to_numpy(dtype=float)
    highs = data["tps_max"].to_numpy(dtype=float)

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(workers, means, marker="o", linewidth=2.5, markersize=8, color=LINE_COLOR, label="mean")
    if len(workers) > 1:
        ax.fill_between(workers, lows, highs, color=LINE_COLOR, alpha=0.2, label="min/max")
    else:
        ax.errorbar(
            workers,
            means,
            yerr=np.vstack([means - lows, highs - means]),
            fmt="none",
            ecolor=LINE_COLOR,
            capsize=6,
        )

    for x, y in zip(workers, means):
        ax.annotate(f"{y:.1f}", (x, y), textcoords="offset points", xytext=(0, 8), ha="center")

    ax.set_xlabel("Workers", fontweight="semibold")
    ax.set_ylabel("Throughput (TPS)", fontweight="semibold")
    ax.set_xticks(data["workers"].astype(int).tolist())
    ax.set_ylim(bottom=0)
    ax.set_title(title, fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, linestyle="--")
    ax.legend(loc="lower right")

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


__all__ = ["render_sweep_chart"]
