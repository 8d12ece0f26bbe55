from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from .driver import RunResult
from .errors import ReportingError

LOGGER = logging.getLogger("txbench.report")

REPORT_FORMATS: tuple[str, ...] = ("text", "json", "tps")
SEPARATOR = "-" * 80


def result_to_dict(result: RunResult) -> dict[str, Any]:
    metrics = result.metrics
    return {
        "state": result.state.value,
        "requested": metrics.requested,
        "successful": metrics.successful,
        "failed": metrics.failed,
        "payload_bytes": metrics.payload_bytes,
        "elapsed_s": metrics.elapsed_s,
        "transaction_time_ms": metrics.transaction_time_ms,
        "tps": metrics.tps,
        "started_at": metrics.started_wall,
        "workers": max(len(result.worker_results), 1),
        "error": str(result.error) if result.error is not None else None,
        "failures": [str(failure) for failure in result.failures],
    }


def format_tps(tps: float | None) -> str:
    return "undefined" if tps is None else f"{tps:.2f}"


def format_text(result: RunResult) -> str:
    metrics = result.metrics
    lines = [
        SEPARATOR,
        f"Benchmark {result.state.value.upper()}",
        f"Requested transactions: {metrics.requested}",
        f"Successful:             {metrics.successful}",
        f"Failed:                 {metrics.failed}",
        f"Sum of sent payload:    {metrics.payload_bytes} bytes",
        f"Duration:               {metrics.elapsed_s:.6f}s",
    ]
    if metrics.transaction_time_ms is not None:
        lines.append(f"Transaction time:       {metrics.transaction_time_ms:.3f}ms")
    lines.append(f"TPS:                    {format_tps(metrics.tps)}")
    if result.worker_results:
        lines.append(f"Workers:                {len(result.worker_results)}")
    if result.error is not None:
        lines.append(f"Error:                  {result.error}")
    return "\n".join(lines)


def format_report(result: RunResult, fmt: str = "text") -> str:
    if fmt == "text":
        return format_text(result)
    if fmt == "json":
        return json.dumps(result_to_dict(result), indent=2)
    if fmt == "tps":
        return format_tps(result.metrics.tps)
    raise ValueError(f"Unknown report format: {fmt}")


def emit_report(result: RunResult, fmt: str = "text", stream: TextIO | None = None) -> RunResult:
    """Write the report for ``result``; the result itself is returned unchanged."""
    text = format_report(result, fmt)
    target = stream if stream is not None else sys.stdout
    try:
        target.write(text + "\n")
        target.flush()
    except (OSError, ValueError) as exc:
        raise ReportingError(f"failed to write {fmt} report: {exc}") from exc
    return result


__all__ = [
    "REPORT_FORMATS",
    "emit_report",
    "format_report",
    "format_tps",
    "result_to_dict",
]
