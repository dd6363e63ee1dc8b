"""
Hourly digest broadcast.

Every user gets their digest once a day at DIGEST_SEND_HOUR in their own
timezone; this loop only has to wake up at the top of every hour.

Usage:
  - Cron (recommended): install with ``python setup_cron.py``, which adds
      0 * * * * cd /path/to/project && .venv/bin/python -m jobscout.run_daily --once
  - Or keep it running in the background: ``python -m jobscout.run_daily``
"""
from __future__ import annotations

import sys
import time
from datetime import datetime, timedelta

from jobscout.broadcast import DigestOutcome, DigestSender
from jobscout.config import AppConfig, ensure_dirs, load_config
from jobscout.email_report import build_mailer
from jobscout.log import get_logger
from jobscout.store import MatchStore, utcnow

log = get_logger(__name__)


def run_once(config: AppConfig | None = None, diagnostic: bool = False) -> list[DigestOutcome]:
    config = config or load_config()
    ensure_dirs(config)
    mailer = build_mailer(config)
    if mailer is None:
        log.warning("No email transport configured; due digests will fail to send")
    sender = DigestSender(MatchStore(config.db_path), mailer, config)
    outcomes = sender.broadcast_all(diagnostic=diagnostic)
    for outcome in outcomes:
        log.info("  %s: %s (%d)", outcome.user_id, outcome.state.value, outcome.http_status)
    return outcomes


def next_run(now: datetime) -> datetime:
    """The next top of the hour after *now*."""
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def main() -> None:
    log.info("Scheduler: digest broadcast at the top of every hour")
    while True:
        now = utcnow()
        target = next_run(now)
        wait_secs = (target - now).total_seconds()
        log.info("Next broadcast at %s UTC (in %.1f minutes)", target.strftime("%H:%M"), wait_secs / 60)
        time.sleep(wait_secs)
        try:
            run_once()
        except Exception:
            log.exception("Broadcast failed; retrying next hour")


if __name__ == "__main__":
    if "--once" in sys.argv:
        run_once(diagnostic="--check" in sys.argv)
        sys.exit(0)
    main()
