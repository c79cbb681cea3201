#!/usr/bin/env python3
"""
Remove expired refresh tokens and idle assessment sessions.

Intended to run from cron, e.g. every 15 minutes:

    */15 * * * * cd /srv/simplehire/backend && python cleanup_sessions.py
"""

import argparse
import logging

from simplehire.database import SessionLocal
from simplehire.services.cleanup_service import run_cleanup


def main():
    parser = argparse.ArgumentParser(description="Clean up stale Simplehire sessions")
    parser.add_argument(
        "--max-age",
        type=int,
        default=None,
        help="seconds of inactivity after which an idle session is deleted (default: SESSION_MAX_AGE_SECONDS)"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    db = SessionLocal()
    try:
        result = run_cleanup(db, args.max_age)
    finally:
        db.close()

    print(f"Removed {result.refresh_tokens} refresh token(s) and deleted {result.sessions} session(s)")


if __name__ == "__main__":
    main()
