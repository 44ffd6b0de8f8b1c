import argparse
import logging
import sys
import time
from datetime import date, datetime
from typing import Optional

import schedule

from expiry_alerts import settings
from expiry_alerts.exceptions import ExpiryAlertError
from expiry_alerts.logger import setup_logger
from expiry_alerts.mailer import SendGridDispatcher
from expiry_alerts.pipeline import ExpiryAlertPipeline
from expiry_alerts.schemas import RunSummary
from expiry_alerts.snapshot_reader import FirebaseSnapshotReader

logger = logging.getLogger(__name__)


def get_today() -> date:
    """Today's calendar date in the configured alert timezone."""
    return datetime.now(settings.alert_zone()).date()


def run_process(today: Optional[date] = None, test_mode: bool = False) -> RunSummary:
    """
    Runs one daily check end to end.
    Configuration is verified before any client exists, so a bad deployment reads and sends nothing.
    """
    settings.require_settings()

    today = today or get_today()

    reader = FirebaseSnapshotReader.from_settings()
    dispatcher = SendGridDispatcher.from_settings()
    try:
        pipeline = ExpiryAlertPipeline(
            reader=reader,
            dispatcher=dispatcher,
            today=today,
            test_mode=test_mode,
            max_workers=settings.dispatch_workers(),
        )
        return pipeline.run()
    finally:
        reader.close()
        dispatcher.close()


def scheduled_job(test_mode: bool = False):
    # A failed day is logged and picked up again by tomorrow's run.
    try:
        run_process(test_mode=test_mode)
    except ExpiryAlertError as e:
        logger.error(f"❌ Daily check aborted: {e}")
    except Exception as e:
        # Anything else must not escape run_pending() and stop the scheduler loop.
        logger.error(f"❌ Daily check crashed: {e}", exc_info=True)


def run_scheduler(at: str, test_mode: bool = False):
    schedule.every().day.at(at).do(scheduled_job, test_mode=test_mode)
    logger.info(f"[Scheduler] Daily expiry check at {at} (server local time)")
    logger.info(f"[Scheduler] Next run: {schedule.next_run()}")

    while True:
        schedule.run_pending()
        time.sleep(60)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LIMS kit expiry alert job")
    parser.add_argument(
        "--now", "-n",
        action="store_true",
        help="Run the expiry check once immediately and exit",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Evaluate as if today were this date (YYYY-MM-DD). Implies --now.",
    )
    parser.add_argument(
        "--time",
        type=str,
        default=settings.SCHEDULE_TIME,
        help=f"Daily schedule time in HH:MM format (default: {settings.SCHEDULE_TIME})",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Evaluate and render, but do not send any email",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logger()

    if args.now or args.date:
        try:
            summary = run_process(today=args.date, test_mode=args.test)
        except ExpiryAlertError as e:
            logger.error(f"❌ Daily check aborted: {e}")
            return 1
        if summary.failed:
            logger.warning(f"⚠️ {len(summary.failed)} alert email(s) were not delivered:")
            for failure in summary.failed:
                logger.warning(f"  - {failure.study} ({failure.recipient}): {failure.reason}")
        return 0

    run_scheduler(args.time, test_mode=args.test)
    return 0


if __name__ == "__main__":
    sys.exit(main())
