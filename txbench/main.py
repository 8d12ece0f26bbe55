from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Callable

from .charts import render_sweep_chart
from .collector import BenchmarkResultCollector
from .config import (
    DEFAULT_NAMESPACE,
    DEFAULT_TOPIC,
    DEFAULT_TRANSACTIONS,
    BenchmarkConfig,
    FailurePolicy,
    SweepPlan,
    parse_worker_counts,
)
from .docker_control import ServiceManager
from .driver import RunResult, run_benchmark
from .errors import BenchmarkError, ConfigurationError, ReportingError
from .report import REPORT_FORMATS, emit_report
from .transport import REQUEST_TIMEOUT_S_DEFAULT, KafkaTransport, Transport

LOGGER = logging.getLogger("txbench")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    env = os.environ
    parser = argparse.ArgumentParser(description="Transaction throughput benchmark")
    parser.add_argument(
        "--address",
        default=env.get("TXBENCH_ADDRESS"),
        help="Target endpoint as host:port",
    )
    parser.add_argument(
        "--credential",
        default=env.get("TXBENCH_CREDENTIAL"),
        help="Authorization credential presented when connecting",
    )
    parser.add_argument(
        "--topic",
        default=env.get("TXBENCH_TOPIC", DEFAULT_TOPIC),
        help="Destination stream the key/value writes are sent to",
    )
    parser.add_argument(
        "--namespace",
        default=env.get("TXBENCH_NAMESPACE", DEFAULT_NAMESPACE),
        help="Fixed key used for every transaction of a run",
    )
    parser.add_argument(
        "-n",
        "--transactions",
        type=int,
        default=env.get("TXBENCH_TRANSACTIONS", str(DEFAULT_TRANSACTIONS)),
        help="Number of transactions each worker sends",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=env.get("TXBENCH_TIMEOUT", str(REQUEST_TIMEOUT_S_DEFAULT)),
        help="Seconds to wait for each acknowledgment",
    )
    parser.add_argument(
        "-w",
        "--workers",
        default=env.get("TXBENCH_WORKERS", "1"),
        help="Comma-separated list of worker counts; more than one value runs a sweep",
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=env.get("TXBENCH_RUNS", "1"),
        help="Number of runs per worker count",
    )
    parser.add_argument(
        "--on-error",
        choices=[policy.value for policy in FailurePolicy],
        default=env.get("TXBENCH_ON_ERROR", FailurePolicy.ABORT.value),
        help="abort on the first failed write, or count failures and continue",
    )
    parser.add_argument(
        "--format",
        choices=REPORT_FORMATS,
        default=env.get("TXBENCH_FORMAT", "text"),
        help="Report format; 'tps' prints only the rate",
    )
    parser.add_argument(
        "--output-dir",
        default=env.get("TXBENCH_OUTPUT_DIR"),
        help="Directory for sweep artefacts (CSV files, chart, manifest)",
    )
    parser.add_argument(
        "--restart-containers",
        default=env.get("TXBENCH_RESTART_CONTAINERS"),
        help="Comma-separated service container names to restart before each worker count",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the planned runs without connecting",
    )
    parser.add_argument(
        "--log-level",
        default=env.get("TXBENCH_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    parser.add_argument(
        "--log-path",
        default=env.get("TXBENCH_LOG_PATH"),
        help="Optional file that receives a copy of the log",
    )
    return parser.parse_args(argv)


def setup_logging(level: str, log_path: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger("txbench").addHandler(handler)


def build_config(args: argparse.Namespace) -> tuple[BenchmarkConfig, SweepPlan]:
    if not args.address:
        raise ConfigurationError("--address (or TXBENCH_ADDRESS) is required")
    if not args.credential:
        raise ConfigurationError("--credential (or TXBENCH_CREDENTIAL) is required")
    if args.timeout <= 0:
        raise ConfigurationError(f"timeout must be > 0, got {args.timeout}")
    if args.format not in REPORT_FORMATS:
        raise ConfigurationError(
            f"report format must be one of {', '.join(REPORT_FORMATS)}, got {args.format!r}"
        )
    try:
        policy = FailurePolicy(args.on_error)
    except ValueError as exc:
        choices = ", ".join(item.value for item in FailurePolicy)
        raise ConfigurationError(
            f"on-error policy must be one of {choices}, got {args.on_error!r}"
        ) from exc

    plan = SweepPlan(worker_counts=parse_worker_counts(args.workers), runs=args.runs)
    config = BenchmarkConfig(
        address=args.address,
        credential=args.credential,
        transactions=args.transactions,
        namespace=args.namespace,
        topic=args.topic,
        policy=policy,
        workers=plan.worker_counts[0],
    ).validate()
    return config, plan


def main(
    argv: list[str] | None = None,
    transport_factory: Callable[[], Transport] | None = None,
    service_manager: ServiceManager | None = None,
) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_path)

    try:
        config, plan = build_config(args)
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    if args.dry_run:
        _print_plan(config, plan)
        return EXIT_OK

    if transport_factory is None:
        timeout = args.timeout

        def transport_factory() -> Transport:
            return KafkaTransport(request_timeout_s=timeout)

    if service_manager is None and args.restart_containers:
        names = [name.strip() for name in args.restart_containers.split(",") if name.strip()]
        service_manager = ServiceManager(names)

    if not plan.is_sweep:
        if service_manager is not None:
            try:
                service_manager.restart()
            except BenchmarkError as exc:
                LOGGER.error("%s", exc)
                return EXIT_FAILED
        result = run_benchmark(transport_factory, config)
        _report(result, args.format)
        return EXIT_OK if result.ok else EXIT_FAILED

    return _run_sweep(args, config, plan, transport_factory, service_manager)


def _run_sweep(
    args: argparse.Namespace,
    config: BenchmarkConfig,
    plan: SweepPlan,
    transport_factory: Callable[[], Transport],
    service_manager: ServiceManager | None,
) -> int:
    collector = BenchmarkResultCollector()
    all_ok = True
    current_workers = None
    for point in plan:
        if point.workers != current_workers:
            current_workers = point.workers
            if service_manager is not None:
                try:
                    service_manager.restart()
                except BenchmarkError as exc:
                    LOGGER.error("%s", exc)
                    return EXIT_FAILED
        LOGGER.info(
            "Running benchmark with %d transactions and %d worker(s) (%d of %d)",
            config.transactions,
            point.workers,
            point.run,
            plan.runs,
        )
        result = run_benchmark(transport_factory, config.with_workers(point.workers))
        collector.record(point, result)
        all_ok = all_ok and result.ok
        _report(result, args.format)

    summary = collector.summary()
    print(summary.to_string(index=False), file=sys.stderr)

    if args.output_dir:
        _write_artifacts(Path(args.output_dir), collector)

    return EXIT_OK if all_ok else EXIT_FAILED


def _write_artifacts(output_dir: Path, collector: BenchmarkResultCollector) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = time.strftime("%Y-%m-%d-%H-%M-%S")

    runs_path = output_dir / f"tps-{stamp}__runs.csv"
    collector.build_dataframe().to_csv(runs_path, index=False)
    summary = collector.summary()
    summary_path = output_dir / f"tps-{stamp}__summary.csv"
    summary.to_csv(summary_path, index=False)
    LOGGER.info("Saved run results to %s and summary to %s", runs_path, summary_path)

    chart_path = render_sweep_chart(summary, output_dir, filename=f"tps-{stamp}.png")
    manifest = {
        "runs": str(runs_path),
        "summary": str(summary_path),
        "chart": str(chart_path) if chart_path is not None else None,
        "points": json.loads(summary.to_json(orient="records")),
    }
    manifest_path = output_dir / "benchmark_manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Benchmark manifest written to %s", manifest_path)


def _report(result: RunResult, fmt: str) -> None:
    try:
        emit_report(result, fmt)
    except ReportingError as exc:
        LOGGER.error("%s", exc)


def _print_plan(config: BenchmarkConfig, plan: SweepPlan) -> None:
    print(
        f"Target: {config.address} topic={config.topic} namespace={config.namespace} "
        f"transactions={config.transactions} on-error={config.policy.value}"
    )
    for point in plan:
        print(f"  - workers={point.workers} run={point.run}")


if __name__ == "__main__":
    sys.exit(main())
