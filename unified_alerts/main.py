# unified_alerts/main.py
"""
Entry point for one alert run. Meant to be invoked repeatedly by cron or a
systemd timer; it is not a long-running process.

Usage: python -m unified_alerts.main [--dry-run] [--state-file PATH]
Exit code 0 when the run completed, 1 when it was aborted.
"""

import argparse
import sys

import httpx
from sqlalchemy.exc import SQLAlchemyError

from unified_alerts.config import ConfigurationError, settings
from unified_alerts.database import check_connection, session_scope
from unified_alerts.services.discord_service import DiscordWebhook
from unified_alerts.services.notifier import AlertRunner
from unified_alerts.services.sent_state import make_sent_state
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Post unified incident alerts to Discord")
    parser.add_argument("--dry-run", action="store_true",
                        help="Log new incidents instead of sending them (same as NOTIFY_DISCORD=0)")
    parser.add_argument("--state-file",
                        help="Track sent incidents in this JSON file instead of discord_message_id")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    overrides = {}
    if args.dry_run:
        overrides["NOTIFY_DISCORD"] = False
    if args.state_file:
        overrides.update(SENT_STATE_MODE="file", STATE_FILENAME=args.state_file)
    config = settings.model_copy(update=overrides)

    logger.info("🚀 Unified alerts run starting...")
    try:
        if not config.DISCORD_HOOK:
            raise ConfigurationError("DISCORD_HOOK must be set")
        sent_state = make_sent_state(config)

        with session_scope() as db, httpx.Client(timeout=config.HTTP_TIMEOUT_SECONDS) as http_client:
            check_connection(db)
            logger.info("✅ Successfully connected to the database.")
            runner = AlertRunner(db, DiscordWebhook(config.DISCORD_HOOK, http_client), http_client,
                                 config, sent_state)
            runner.run()
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        return 1
    except SQLAlchemyError as e:
        logger.critical(f"Database error, aborting run: {e}", exc_info=True)
        return 1

    logger.info("🏁 Run complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
