"""Delete refresh sessions whose expiry has passed.

Expired rows are already removed lazily when a refresh presents them; this
script sweeps the ones nobody comes back for. Safe to run from cron.
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from todo_api.core.config import settings  # noqa: E402
from todo_api.core.logging import setup_logging  # noqa: E402
from todo_api.core.security import utcnow  # noqa: E402
from todo_api.db.session import SessionLocal  # noqa: E402
from todo_api.services.session_store import SqlSessionStore  # noqa: E402

logger = logging.getLogger("purge_expired_sessions")


def purge(*, grace_minutes: int = 0) -> int:
    cutoff = utcnow() - dt.timedelta(minutes=grace_minutes)
    db = SessionLocal()
    try:
        removed = SqlSessionStore(db).delete_expired(cutoff)
    finally:
        db.close()
    logger.info("Purged %s expired refresh sessions (cutoff %s)", removed, cutoff.isoformat())
    return removed


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--grace-minutes",
        type=int,
        default=0,
        help="Keep sessions that expired less than this many minutes ago.",
    )
    args = parser.parse_args()
    setup_logging(settings.LOG_LEVEL)
    purge(grace_minutes=max(args.grace_minutes, 0))


if __name__ == "__main__":
    main()
