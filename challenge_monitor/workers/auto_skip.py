"""Nightly auto-skip job: backfills SKIPPED for challenges left unlogged."""
from __future__ import annotations

import argparse
import json
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from challenge_monitor.core.config import settings
from challenge_monitor.core.logging import configure_logging
from challenge_monitor.features.challenges.service import ChallengeService, get_challenge_service

logger = logging.getLogger("challenge_monitor.workers.auto_skip")


def resolve_target_date(now: datetime, cutoff_hour: Optional[int] = None) -> date:
    """Yesterday while still before the cutoff hour (a late-night run), today afterwards."""
    cutoff = settings.AUTO_SKIP_CUTOFF_HOUR if cutoff_hour is None else cutoff_hour
    if now.hour < cutoff:
        return now.date() - timedelta(days=1)
    return now.date()


def run_auto_skip_job(
    target_date: date,
    *,
    service: Optional[ChallengeService] = None,
) -> dict:
    svc = service or get_challenge_service()
    report = svc.run_auto_skip_report(target_date)
    result = report.as_dict()

    logger.info(
        "[auto_skip] job finished",
        extra={
            "log_date": result["target_date"],
            "skipped_count": result["skipped_count"],
            "failed_count": result["failed_count"],
        },
    )
    return result


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backfill SKIPPED for unlogged challenge days")
    parser.add_argument("--date", type=_parse_date, default=None, help="Target date (YYYY-MM-DD)")
    parser.add_argument(
        "--cutoff-hour",
        type=int,
        default=None,
        help="Local hour before which the previous day is targeted",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.ENV)

    target = args.date or resolve_target_date(datetime.now(), args.cutoff_hour)
    result = run_auto_skip_job(target)
    print(json.dumps(result))
    return 1 if result["failed_count"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
