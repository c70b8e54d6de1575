#!/usr/bin/env python3
"""
Verify medgate notification hashes for tamper detection.

Usage:
    python scripts/verify_chain.py --database-url sqlite:///./medgate.db
"""
from __future__ import annotations

import argparse
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, select

from medgate.app.config import settings
from medgate.app.domain.models import NotificationRecord
from medgate.app.services.notifications import verify_chain


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify notification chain integrity.")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Database URL (SQLAlchemy compatible)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    engine = create_engine(args.database_url, future=True)
    SessionLocal = sessionmaker(bind=engine, class_=Session, autoflush=False)
    with SessionLocal() as db:
        entries = list(db.exec(select(NotificationRecord).order_by(NotificationRecord.seq.asc())))
    if not entries:
        print("No notifications found for verification.")
        return 0

    problems = verify_chain(entries)
    for problem in problems:
        print(f"[WARN] {problem}", file=sys.stderr)
    if problems:
        return 1
    print(f"Verified {len(entries)} notifications; chain intact")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
