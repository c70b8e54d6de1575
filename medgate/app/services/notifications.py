"""Notification log: append-only, hash-chained record of emitted signals."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from ..domain.chain import chain_hash
from ..domain.models import NotificationKind, NotificationRecord

logger = logging.getLogger(__name__)


def _utc_naive(moment: datetime) -> datetime:
    # SQLite hands back naive values for timestamps stored as aware UTC
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def hash_material(entry: NotificationRecord) -> dict:
    return {
        "kind": NotificationKind(entry.kind).value,
        "subject_id": entry.subject_id,
        "target_id": entry.target_id,
        "data_hash": entry.data_hash,
        "timestamp": entry.timestamp,
        "created_at": _utc_naive(entry.created_at).isoformat(),
    }


class NotificationService:
    """Emits notifications inside the caller's transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def emit(
        self,
        kind: NotificationKind,
        subject_id: str,
        target_id: Optional[str] = None,
        data_hash: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> NotificationRecord:
        entry = NotificationRecord(
            kind=kind,
            subject_id=subject_id,
            target_id=target_id,
            data_hash=data_hash,
            timestamp=timestamp,
        )
        entry.prev_hash = self._latest_hash()
        entry.curr_hash = chain_hash(hash_material(entry), entry.prev_hash)

        self.session.add(entry)
        self.session.flush()
        self.session.refresh(entry)
        logger.debug("notification %s seq=%s subject=%s", kind.value, entry.seq, subject_id)
        return entry

    def feed(
        self,
        subject_id: Optional[str] = None,
        kind: Optional[NotificationKind] = None,
        after_seq: int = 0,
        limit: int = 100,
    ) -> List[NotificationRecord]:
        stmt = select(NotificationRecord).where(NotificationRecord.seq > after_seq)
        if subject_id:
            stmt = stmt.where(NotificationRecord.subject_id == subject_id)
        if kind:
            stmt = stmt.where(NotificationRecord.kind == kind)
        stmt = stmt.order_by(NotificationRecord.seq.asc()).limit(limit)
        return list(self.session.exec(stmt).all())

    def _latest_hash(self) -> Optional[str]:
        stmt = select(NotificationRecord.curr_hash).order_by(NotificationRecord.seq.desc()).limit(1)
        return self.session.exec(stmt).first()


def verify_chain(entries: List[NotificationRecord]) -> List[str]:
    """Recompute the chain over entries ordered by seq; return problems found."""
    problems: List[str] = []
    prev: Optional[str] = None
    for entry in entries:
        if entry.prev_hash != prev:
            problems.append(f"notification[{entry.seq}].prev_hash mismatch")
        if entry.curr_hash != chain_hash(hash_material(entry), prev):
            problems.append(f"notification[{entry.seq}].curr_hash mismatch")
        prev = entry.curr_hash
    return problems
