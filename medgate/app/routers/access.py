"""Grant / revoke routes for the caller's own record."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..deps import caller_identity, db_session
from ..domain.schemas import AccessStatusOut, GranteeListOut
from ..infra.db import get_write_session
from ..services.access import AccessLedgerService

router = APIRouter()


@router.get("/", response_model=GranteeListOut)
def list_grantees(
    caller_id: str = Depends(caller_identity),
    session: Session = Depends(db_session),
):
    return GranteeListOut(owner=caller_id, grantees=AccessLedgerService(session).grantees(caller_id))


@router.get("/{provider_id}", response_model=AccessStatusOut)
def access_status(
    provider_id: str,
    caller_id: str = Depends(caller_identity),
    session: Session = Depends(db_session),
):
    granted = AccessLedgerService(session).is_authorized(caller_id, provider_id)
    return AccessStatusOut(owner=caller_id, grantee=provider_id, granted=granted)


@router.post("/{provider_id}", response_model=AccessStatusOut)
def grant_access(provider_id: str, caller_id: str = Depends(caller_identity)):
    with get_write_session() as session:
        AccessLedgerService(session).grant(caller_id, provider_id)
    return AccessStatusOut(owner=caller_id, grantee=provider_id, granted=True)


@router.delete("/{provider_id}", response_model=AccessStatusOut)
def revoke_access(provider_id: str, caller_id: str = Depends(caller_identity)):
    with get_write_session() as session:
        AccessLedgerService(session).revoke(caller_id, provider_id)
    return AccessStatusOut(owner=caller_id, grantee=provider_id, granted=False)
