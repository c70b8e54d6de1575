"""Record store backed by the patient_records table."""
from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session

from ...registry import AuthorizationError
from ..domain.models import NotificationKind, PatientRecordRow
from ..domain.policy import ViewContext, may_view
from ..infra.clock import current_timestamp
from .access import AccessLedgerService
from .notifications import NotificationService

logger = logging.getLogger(__name__)


class RecordService:
    """One row per owner; writes replace the row, reads are gated by the ledger."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, caller_id: str, name: str, data_hash: str) -> PatientRecordRow:
        timestamp = current_timestamp()
        record = self.session.get(PatientRecordRow, caller_id)
        if record:
            record.name = name
            record.data_hash = data_hash
            record.timestamp = timestamp
        else:
            record = PatientRecordRow(
                owner_id=caller_id, name=name, data_hash=data_hash, timestamp=timestamp
            )
        self.session.add(record)
        self.session.flush()
        self.session.refresh(record)

        NotificationService(self.session).emit(
            NotificationKind.RECORD_ADDED,
            caller_id,
            data_hash=data_hash,
            timestamp=timestamp,
        )
        logger.info("record updated owner=%s data_hash=%s", caller_id, data_hash)
        return record

    def read(self, caller_id: str, patient_id: str) -> Optional[PatientRecordRow]:
        """Current record of patient_id, or None if it was never written.

        Raises AuthorizationError unless the caller owns the record or holds
        a grant from its owner.
        """
        ledger = AccessLedgerService(self.session)
        if not may_view(ViewContext(viewer_id=caller_id, patient_id=patient_id), ledger.is_authorized):
            logger.warning("denied read viewer=%s patient=%s", caller_id, patient_id)
            raise AuthorizationError()
        return self.session.get(PatientRecordRow, patient_id)
