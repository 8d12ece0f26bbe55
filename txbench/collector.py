from __future__ import annotations

import threading

import pandas as pd

from .config import SweepPoint
from .driver import RunResult

RUN_COLUMNS = [
    "workers",
    "run",
    "state",
    "requested",
    "successful",
    "failed",
    "elapsed_s",
    "tps",
]

SUMMARY_COLUMNS = ["workers", "runs", "tps_mean", "tps_min", "tps_max", "failed_runs"]


class BenchmarkResultCollector:
    """Accumulates per-run results of a sweep and summarises them per worker count."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: list[dict[str, object]] = []

    def record(self, point: SweepPoint, result: RunResult) -> None:
        metrics = result.metrics
        row = {
            "workers": point.workers,
            "run": point.run,
            "state": result.state.value,
            "requested": metrics.requested,
            "successful": metrics.successful,
            "failed": metrics.failed,
            "elapsed_s": metrics.elapsed_s,
            "tps": metrics.tps,
        }
        with self._lock:
            self._rows.append(row)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def build_dataframe(self) -> pd.DataFrame:
        with self._lock:
            rows = list(self._rows)
        if not rows:
            return pd.DataFrame(columns=RUN_COLUMNS)
        df = pd.DataFrame(rows, columns=RUN_COLUMNS)
        df["tps"] = pd.to_numeric(df["tps"], errors="coerce")
        return df

    def summary(self) -> pd.DataFrame:
        """Mean, min and max TPS per worker count; undefined rates are skipped."""
        df = self.build_dataframe()
        if df.empty:
            return pd.DataFrame(columns=SUMMARY_COLUMNS)

        grouped = df.groupby("workers", sort=True)
        summary = pd.DataFrame(
            {
                "runs": grouped.size(),
                "tps_mean": grouped["tps"].mean(),
                "tps_min": grouped["tps"].min(),
                "tps_max": grouped["tps"].max(),
                "failed_runs": grouped["state"].apply(lambda states: int((states == "failed").sum())),
            }
        )
        summary.index.name = "workers"
        return summary.reset_index()[SUMMARY_COLUMNS]


__all__ = ["BenchmarkResultCollector", "RUN_COLUMNS", "SUMMARY_COLUMNS"]
