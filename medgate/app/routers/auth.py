"""Caller key management routes."""
import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ..deps import db_session, provisioning_credential
from ..domain.chain import canonical_bytes
from ..domain.schemas import ActorKeyIn, ActorKeyOut
from ..domain.sign import is_valid_signature
from ..infra.db import get_write_session
from ..services.keys import KeyAlreadyRegistered, KeyRegistry

router = APIRouter()


def registration_message(actor_id: str, public_key_hex: str) -> bytes:
    return canonical_bytes({"actor_id": actor_id, "public_key_hex": public_key_hex})


@router.post(
    "/keys",
    response_model=ActorKeyOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(provisioning_credential)],
)
def register_key(payload: ActorKeyIn):
    """Provision a key for an identity.

    Requires the operator credential; the body must also be signed by the
    key being bound.
    """
    try:
        public_bytes = bytes.fromhex(payload.public_key_hex)
        signature = base64.b64decode(payload.signature, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid key or signature encoding") from exc

    message = registration_message(payload.actor_id, payload.public_key_hex)
    if not is_valid_signature(public_bytes, message, signature):
        raise HTTPException(status_code=400, detail="Signature verification failed")

    with get_write_session() as session:
        try:
            key = KeyRegistry(session).register(payload.actor_id, payload.public_key_hex)
        except KeyAlreadyRegistered as exc:
            raise HTTPException(status_code=409, detail="Key already registered") from exc
        return ActorKeyOut.model_validate(key)


@router.get("/keys/{actor_id}", response_model=ActorKeyOut)
def get_key(actor_id: str, session: Session = Depends(db_session)):
    key = KeyRegistry(session).get(actor_id)
    if not key:
        raise HTTPException(status_code=404, detail="Key not found")
    return key
