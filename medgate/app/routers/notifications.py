"""Notification feed for external observers."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..config import settings
from ..deps import db_session
from ..domain.models import NotificationKind
from ..domain.schemas import NotificationOut
from ..services.notifications import NotificationService

router = APIRouter()


@router.get("/", response_model=List[NotificationOut])
def list_notifications(
    subject: Optional[str] = Query(None),
    kind: Optional[NotificationKind] = Query(None),
    after_seq: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=500),
    session: Session = Depends(db_session),
):
    return NotificationService(session).feed(
        subject_id=subject,
        kind=kind,
        after_seq=after_seq,
        limit=limit or min(settings.notification_page_size, 500),
    )
