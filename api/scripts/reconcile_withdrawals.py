#!/usr/bin/env python3
"""
Resolve withdrawals left in "processing".

Same pass the scheduler runs in the API process, for use when the job
is disabled or after an outage.

Usage:
    python scripts/reconcile_withdrawals.py [--grace-minutes 15]
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Settings
from database import build_engine, build_session_factory
from logging_config import setup_logging
from services.funds_service import reconcile_withdrawals


def main(argv=None):
    settings = Settings()
    parser = argparse.ArgumentParser(description='Reconcile processing withdrawals against the deal mirror')
    parser.add_argument(
        '--grace-minutes',
        type=int,
        default=settings.RECONCILE_GRACE_MINUTES,
        help=f'Only touch rows older than this (default: {settings.RECONCILE_GRACE_MINUTES})'
    )
    args = parser.parse_args(argv)

    setup_logging(settings.LOG_LEVEL)
    engine = build_engine(settings)
    db = build_session_factory(engine)()
    try:
        result = reconcile_withdrawals(db, timedelta(minutes=args.grace_minutes))
    finally:
        db.close()
        engine.dispose()

    print(f"Settled: {result['settled']}  Failed: {result['failed']}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
