from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from pathlib import Path

from .charts import render_upload_chart
from .client import ClientSetupError, create_client
from .config import (
    DEFAULT_BACKOFF_S,
    DEFAULT_DATA_SHARDS,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_PARITY_SHARDS,
    DEFAULT_REPORT_INTERVAL_S,
    DEFAULT_THREADS,
    SECTOR_SIZE,
    UploadConfig,
)
from .keys import KeyDerivationError, derive_app_key
from .outcomes import OutcomeLog
from .supervisor import UploadSupervisor, install_signal_handlers, restore_signal_handlers

LOGGER = logging.getLogger("slabload.main")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    env = os.environ
    parser = argparse.ArgumentParser(
        description="Upload random slabs to a storage indexer and report sustained throughput"
    )
    parser.add_argument(
        "--indexer-url",
        default=env.get("SLABLOAD_INDEXER_URL", "null://"),
        help="URL of the indexer API (null:// discards uploads locally)",
    )
    parser.add_argument(
        "--app-secret",
        default=env.get("SLABLOAD_APP_SECRET", ""),
        help="Secret used to derive the application key",
    )
    parser.add_argument(
        "--client-factory",
        default=env.get("SLABLOAD_CLIENT_FACTORY"),
        help="Storage client factory as 'package.module:callable'",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=env.get("SLABLOAD_THREADS", str(DEFAULT_THREADS)),
        help="Number of upload threads",
    )
    parser.add_argument(
        "--data-shards",
        type=int,
        default=env.get("SLABLOAD_DATA_SHARDS", str(DEFAULT_DATA_SHARDS)),
    )
    parser.add_argument(
        "--parity-shards",
        type=int,
        default=env.get("SLABLOAD_PARITY_SHARDS", str(DEFAULT_PARITY_SHARDS)),
    )
    parser.add_argument(
        "--sector-size",
        type=int,
        default=env.get("SLABLOAD_SECTOR_SIZE", str(SECTOR_SIZE)),
        help="Backend sector size in bytes",
    )
    parser.add_argument(
        "--backoff",
        type=float,
        default=env.get("SLABLOAD_BACKOFF_SECONDS", str(DEFAULT_BACKOFF_S)),
        help="Seconds to wait after a failed upload",
    )
    parser.add_argument(
        "--report-interval",
        type=float,
        default=env.get("SLABLOAD_REPORT_INTERVAL_SECONDS", str(DEFAULT_REPORT_INTERVAL_S)),
        help="Seconds between average speed reports",
    )
    parser.add_argument(
        "--history-size",
        type=int,
        default=env.get("SLABLOAD_HISTORY_SIZE", str(DEFAULT_HISTORY_SIZE)),
        help="Number of recent uploads averaged by the speed report",
    )
    parser.add_argument(
        "--log-level",
        default=env.get("SLABLOAD_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    parser.add_argument(
        "--log-path",
        default=env.get("SLABLOAD_LOG_PATH"),
        help="Append logs to this file instead of stdout",
    )
    parser.add_argument(
        "--results-csv",
        default=env.get("SLABLOAD_RESULTS_CSV"),
        help="Write every upload attempt to this CSV file on exit",
    )
    parser.add_argument(
        "--chart-path",
        default=env.get("SLABLOAD_CHART_PATH"),
        help="Render an upload duration chart to this PNG file on exit",
    )
    return parser.parse_args(argv)


def configure_logging(level: str, log_path: Path | None = None) -> logging.Logger:
    logger = logging.getLogger("slabload")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    for existing in list(logger.handlers):
        existing.close()
        logger.removeHandler(existing)
    logger.addHandler(handler)
    return logger


def config_from_args(args: argparse.Namespace) -> UploadConfig:
    return UploadConfig(
        threads=args.threads,
        data_shards=args.data_shards,
        parity_shards=args.parity_shards,
        backoff_s=args.backoff,
        report_interval_s=args.report_interval,
        history_size=args.history_size,
        sector_size=args.sector_size,
    )


def write_artifacts(
    outcomes: OutcomeLog,
    results_csv: str | None,
    chart_path: str | None,
) -> None:
    if not results_csv and not chart_path:
        return

    df = outcomes.build_dataframe()
    if results_csv:
        csv_path = Path(results_csv)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(csv_path, index=False)
        LOGGER.info("Saved %d upload attempts to %s", len(df), csv_path)
    if chart_path:
        render_upload_chart(df, Path(chart_path))


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    config = config_from_args(args)
    try:
        config.validate()
    except ValueError as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_logging(args.log_level, Path(args.log_path) if args.log_path else None)

    try:
        app_key = derive_app_key(args.app_secret)
    except KeyDerivationError:
        LOGGER.exception("failed to load app key")
        return 1

    try:
        client = create_client(args.indexer_url, app_key, args.client_factory)
    except ClientSetupError:
        LOGGER.exception("failed to connect storage client")
        return 1

    LOGGER.info(
        "starting %d upload thread(s): %d+%d shards, %d byte slabs (redundancy %.2fx)",
        config.threads,
        config.data_shards,
        config.parity_shards,
        config.unit_size,
        config.redundancy_factor,
    )

    stop_event = threading.Event()
    previous_handlers = {}
    if threading.current_thread() is threading.main_thread():
        previous_handlers = install_signal_handlers(stop_event)

    outcomes = OutcomeLog()
    supervisor = UploadSupervisor(client=client, config=config, outcomes=outcomes)
    try:
        results = supervisor.run(stop_event)
    finally:
        restore_signal_handlers(previous_handlers)
        client.close()

    write_artifacts(outcomes, args.results_csv, args.chart_path)

    print("Upload attempts:")
    for status, count in sorted(outcomes.summaries().items()):
        print(f"  {status}: {count}")

    failed = [result for result in results if result.failed]
    if failed:
        for result in failed:
            print(f"  {result.name} stopped: {result.reason}", file=sys.stderr)
        LOGGER.error("%d upload thread(s) stopped on errors", len(failed))
        return 1

    LOGGER.info("all upload threads finished, exiting")
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
