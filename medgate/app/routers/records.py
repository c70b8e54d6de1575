"""Patient record routes."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..deps import caller_identity, db_session
from ..domain.schemas import RecordIn, RecordOut
from ..infra.db import get_write_session
from ..services.records import RecordService

router = APIRouter()


@router.put("/me", response_model=RecordOut)
def add_or_update_record(body: RecordIn, caller_id: str = Depends(caller_identity)) -> RecordOut:
    """Store or replace the caller's own record."""
    with get_write_session() as session:
        record = RecordService(session).upsert(caller_id, body.name, body.data_hash)
        return RecordOut(
            patient=record.owner_id,
            name=record.name,
            data_hash=record.data_hash,
            timestamp=record.timestamp,
            exists=True,
        )


@router.get("/{patient_id}", response_model=RecordOut)
def view_record(
    patient_id: str,
    caller_id: str = Depends(caller_identity),
    session: Session = Depends(db_session),
) -> RecordOut:
    record = RecordService(session).read(caller_id, patient_id)
    if record is None:
        return RecordOut(patient=patient_id)
    return RecordOut(
        patient=patient_id,
        name=record.name,
        data_hash=record.data_hash,
        timestamp=record.timestamp,
        exists=True,
    )
