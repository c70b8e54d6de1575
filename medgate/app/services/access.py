"""Access ledger backed by the access_permissions table."""
from __future__ import annotations

import logging
from typing import List

from sqlmodel import Session, select

from ..domain.models import AccessPermission, NotificationKind, utc_now
from .notifications import NotificationService

logger = logging.getLogger(__name__)


class AccessLedgerService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def grant(self, caller_id: str, provider_id: str) -> None:
        self._set(caller_id, provider_id, True)
        NotificationService(self.session).emit(
            NotificationKind.ACCESS_GRANTED, caller_id, target_id=provider_id
        )
        logger.info("access granted owner=%s grantee=%s", caller_id, provider_id)

    def revoke(self, caller_id: str, provider_id: str) -> None:
        self._set(caller_id, provider_id, False)
        NotificationService(self.session).emit(
            NotificationKind.ACCESS_REVOKED, caller_id, target_id=provider_id
        )
        logger.info("access revoked owner=%s grantee=%s", caller_id, provider_id)

    def is_authorized(self, owner_id: str, grantee_id: str) -> bool:
        permission = self.session.get(AccessPermission, (owner_id, grantee_id))
        return bool(permission and permission.granted)

    def grantees(self, owner_id: str) -> List[str]:
        stmt = (
            select(AccessPermission.grantee_id)
            .where(AccessPermission.owner_id == owner_id, AccessPermission.granted == True)  # noqa: E712
            .order_by(AccessPermission.grantee_id)
        )
        return list(self.session.exec(stmt).all())

    def _set(self, owner_id: str, grantee_id: str, granted: bool) -> None:
        permission = self.session.get(AccessPermission, (owner_id, grantee_id))
        if permission:
            permission.granted = granted
            permission.updated_at = utc_now()
        else:
            permission = AccessPermission(owner_id=owner_id, grantee_id=grantee_id, granted=granted)
        self.session.add(permission)
        self.session.flush()
