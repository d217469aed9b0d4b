"""
Print a queue's analytics report as JSON

Usage:
    python -m queueline.scripts.queue_report <queue_id> [--period 30d]
    python -m queueline.scripts.queue_report <queue_id> --statistics
    python -m queueline.scripts.queue_report --owner <owner_id>
"""

import argparse
import sys
import uuid
from datetime import datetime
from typing import Optional, Sequence

import structlog
from sqlmodel import Session

from queueline.core.config import get_settings
from queueline.core.database import engine
from queueline.core.exceptions import QueueServiceError
from queueline.core.logging_config import configure_logging
from queueline.services.analytics import PERIOD_DAYS, AnalyticsService

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Queue analytics report")
    parser.add_argument("queue_id", nargs="?", type=uuid.UUID, help="Queue to report on")
    parser.add_argument(
        "--period",
        choices=sorted(PERIOD_DAYS),
        default=None,
        help="Lookback window (defaults to ANALYTICS_DEFAULT_PERIOD)",
    )
    parser.add_argument("--statistics", action="store_true", help="All-time counters instead of the windowed report")
    parser.add_argument("--owner", type=uuid.UUID, default=None, help="Overview of every queue of this owner")
    parser.add_argument("--indent", type=int, default=2)
    return parser


def run_report(session: Session, args: argparse.Namespace, now: Optional[datetime] = None) -> str:
    """Build the requested report and return it serialized"""
    service = AnalyticsService(session)

    if args.owner is not None and args.queue_id is None:
        report = service.owner_overview(args.owner, now=now)
    elif args.statistics:
        report = service.queue_statistics(args.queue_id, now=now, owner_id=args.owner)
    else:
        report = service.queue_report(args.queue_id, args.period, now=now, owner_id=args.owner)

    return report.model_dump_json(indent=args.indent or None)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the report script"""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.queue_id is None and args.owner is None:
        parser.error("a queue id or --owner is required")

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    try:
        with Session(engine) as session:
            print(run_report(session, args))
    except QueueServiceError as e:
        logger.error(f"Report failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
