"""Main entry point for the DevLink notifier service."""

import argparse
import json
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from devlink.config.environment import EnvironmentConfig
from devlink.config.exceptions import ConfigurationError
from devlink.config.loader import load_config
from devlink.config.models import AppConfig, JobName
from devlink.jobs import ScheduledJobs
from devlink.logging import get_logger
from devlink.logging.config import configure_logging
from devlink.notifications import (
    LinkBuilder,
    Mailer,
    NotificationError,
    NotificationService,
    SMTPClient,
)
from devlink.persistence.database import close_database, init_database
from devlink.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

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


def build_services(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    smtp_client: Optional[SMTPClient] = None,
) -> Tuple[NotificationService, ScheduledJobs]:
    """Wire the mail transport, notification service and job runner together."""
    mailer = Mailer(env_config, app_config.email, smtp_client=smtp_client)
    notification_service = NotificationService(
        mailer=mailer,
        links=LinkBuilder(env_config.app_base_url),
        bulk_max_workers=app_config.email.bulk_max_workers,
    )
    scheduled_jobs = ScheduledJobs(notification_service, app_config)
    return notification_service, scheduled_jobs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devlink-notifier",
        description="DevLink notifier - scheduled digests, reminders and notification emails",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present, else built-in defaults)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--run-job",
        choices=[job.value for job in JobName],
        metavar="NAME",
        help=f"Run one job immediately and exit ({', '.join(job.value for job in JobName)})",
    )
    mode.add_argument(
        "--send-test-email",
        metavar="ADDRESS",
        help="Send a test email to ADDRESS and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the DevLink notifier.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    load_dotenv()

    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "DevLink notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run_job": args.run_job,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "enabled_jobs": [name.value for name in app_config.jobs.enabled_jobs()],
                "log_format": app_config.logging.format,
            },
        )

        notification_service, scheduled_jobs = build_services(app_config, env_config)

        if args.send_test_email:
            return _send_test_email(notification_service, args.send_test_email)

        if args.run_job:
            return _run_job(scheduled_jobs, args.run_job)

        return _run_daemon(scheduled_jobs, app_config, start_time)

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
    finally:
        close_database()


def _send_test_email(notification_service: NotificationService, address: str) -> int:
    try:
        notification_service.send_test_email(address)
    except NotificationError as e:
        print(f"Test email failed: {e}", file=sys.stderr)
        return 1

    print(f"Test email sent to {address}")
    return 0


def _run_job(scheduled_jobs: ScheduledJobs, job_name: str) -> int:
    logger.info(
        f"Executing manual run of {job_name}",
        extra={"event": "service.manual_run.starting", "job": job_name},
    )

    try:
        result = scheduled_jobs.run(job_name)
    except Exception as e:
        print(json.dumps({"success": False, "job": job_name, "error": str(e)}))
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def _run_daemon(scheduled_jobs: ScheduledJobs, app_config: AppConfig, start_time: float) -> int:
    shutdown_event = threading.Event()

    scheduler_service = SchedulerService(
        scheduled_jobs=scheduled_jobs,
        jobs_config=app_config.jobs,
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()

    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
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

    logger.info(
        "DevLink notifier stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(time.time() - start_time, 2),
        },
    )
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
