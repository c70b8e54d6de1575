#!/usr/bin/env python3
"""Seed medgate DB with demo patients, providers and grants."""
from __future__ import annotations

import argparse
import hashlib

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel

from medgate.app.config import settings
from medgate.app.services.access import AccessLedgerService
from medgate.app.services.records import RecordService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed DB with demo records/grants")
    parser.add_argument("--patients", type=int, default=3)
    parser.add_argument("--database-url", default=settings.database_url)
    return parser.parse_args()


def seed_patient(db: Session, idx: int) -> None:
    patient_id = f"pat-{idx}"
    provider_id = f"doc-{idx}"
    pointer = hashlib.sha256(f"ipfs-demo-{idx}".encode()).hexdigest()

    RecordService(db).upsert(patient_id, f"Demo Patient {idx}", pointer)
    ledger = AccessLedgerService(db)
    ledger.grant(patient_id, provider_id)
    ledger.grant(patient_id, "clinic-shared")
    # even-numbered patients withdraw the shared clinic again
    if idx % 2 == 0:
        ledger.revoke(patient_id, "clinic-shared")


def main() -> int:
    args = parse_args()
    engine = create_engine(args.database_url, future=True)
    SQLModel.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, class_=Session, autoflush=False)
    with SessionLocal() as db:
        for idx in range(1, args.patients + 1):
            seed_patient(db, idx)
        db.commit()
    print(f"Seeded {args.patients} demo patients.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
