"""Main entry point for the transactional notification service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from notifier.config.environment import EnvironmentConfig
from notifier.config.exceptions import ConfigurationError
from notifier.config.loader import load_config
from notifier.config.models import AppConfig
from notifier.contracts.validator import ContractValidator
from notifier.dispatch.dispatcher import Dispatcher
from notifier.dispatch.providers import build_provider
from notifier.logging import get_logger
from notifier.logging.config import configure_logging
from notifier.persistence.database import close_database, get_session, init_database
from notifier.persistence.repositories import DeliveryRecordRepository
from notifier.policy.engine import PolicyEngine, StaticConsentService, policy_summary
from notifier.scheduler import RetryJob, SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_retry_job(app_config: AppConfig, env_config: EnvironmentConfig) -> RetryJob:
    """Wire provider, policy, validator and dispatcher into a retry job."""
    provider = build_provider(app_config, env_config)
    # No consent backend is configured for the standalone service; every
    # owner is treated as opted in.
    policy_engine = PolicyEngine(StaticConsentService())
    dispatcher = Dispatcher.from_config(
        app_config,
        policy_engine=policy_engine,
        provider=provider,
        validator=ContractValidator(),
    )
    return RetryJob.from_config(app_config, dispatcher)


def print_policy_summary() -> None:
    print(f"{'CATEGORY':<28} {'TEMPLATE':<14} CONSENT  EXEMPT  MUST_SEND  ESSENTIAL")
    for row in policy_summary():
        print(
            f"{row['category']:<28} {row['template']:<14} "
            f"{'yes' if row['requires_consent'] else 'no':<8} "
            f"{'yes' if row['security_exempt'] else 'no':<7} "
            f"{'yes' if row['must_send'] else 'no':<10} "
            f"{'yes' if row['product_essential'] else 'no'}"
        )


def print_stats(failure_limit: int = 10) -> None:
    with get_session() as session:
        repo = DeliveryRecordRepository(session)
        by_status = repo.count_by_status()
        by_category = repo.count_by_category()
        failures = repo.list_recent_failures(limit=failure_limit)

    print("Delivery records by status:")
    for status, count in by_status.items():
        print(f"  {status:<10} {count}")

    print("Delivery records by category:")
    if not by_category:
        print("  (none)")
    for category, count in sorted(by_category.items()):
        print(f"  {category:<28} {count}")

    print(f"Recent failures (up to {failure_limit}):")
    if not failures:
        print("  (none)")
    for record in failures:
        print(
            f"  {record.idempotency_key}  retries={record.retry_count}  "
            f"type={record.error_type.value if record.error_type else '-'}  "
            f"error={record.last_error or '-'}"
        )


def main(argv=None) -> int:
    """
    Main entry point for the transactional notification service.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Transactional Notifier - delivery retry service and audit tooling"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run a single retry pass immediately and exit",
    )
    parser.add_argument(
        "--policy-summary",
        action="store_true",
        help="Print the send policy of every message category and exit",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print delivery record counts and recent failures and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    args = parser.parse_args(argv)

    if args.policy_summary:
        print_policy_summary()
        return 0

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Transactional Notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
            },
        )

        init_database(env_config.database_url)

        if args.stats:
            print_stats()
            close_database()
            return 0

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "provider_mode": env_config.provider_mode or app_config.provider.mode,
                "max_retries": app_config.dispatch.max_retries,
                "retry_interval_seconds": app_config.retry.interval_seconds,
                "log_format": app_config.logging.format,
            },
        )

        retry_job = build_retry_job(app_config, env_config)

        if args.manual_run:
            logger.info(
                "Executing manual retry run",
                extra={"event": "service.manual_run.starting"},
            )
            result = retry_job.run_once()

            logger.info(
                f"Manual retry run completed: "
                f"{result.total_candidates} candidates, "
                f"{result.succeeded} succeeded, "
                f"{result.still_failing} still failing, "
                f"{result.skipped} skipped",
                extra={
                    "event": "service.manual_run.completed",
                    "recovered_stale": result.recovered_stale,
                    "duration_seconds": round(result.duration_seconds, 3),
                },
            )

            close_database()

            logger.info(
                "Transactional Notifier stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 1 if result.still_failing else 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            job_callable=retry_job.run_once,
            interval_seconds=app_config.retry.interval_seconds,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()

        logger.info(
            "Retry scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)
            close_database()

        logger.info(
            "Transactional Notifier stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
