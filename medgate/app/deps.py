"""Dependency injection utilities."""
import base64
import binascii
import hmac
import logging
from collections.abc import Generator
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlmodel import Session

from .config import settings
from .domain.chain import canonical_bytes, sha256_hex
from .domain.sign import is_valid_signature
from .infra.db import get_session
from .services.keys import KeyRegistry

logger = logging.getLogger(__name__)


def db_session() -> Generator[Session, None, None]:
    """Provide a scoped DB session to FastAPI endpoints."""
    with get_session() as session:
        yield session


def request_message(caller_id: str, method: str, path: str, body: bytes) -> bytes:
    """Bytes a caller signs to prove it issued this exact request."""
    return canonical_bytes(
        {
            "caller_id": caller_id,
            "method": method.upper(),
            "path": path,
            "body_sha256": sha256_hex(body),
        }
    )


async def request_body(request: Request) -> bytes:
    return await request.body()


def caller_identity(
    request: Request,
    body: bytes = Depends(request_body),
    x_caller_id: Optional[str] = Header(None),
    x_signature: Optional[str] = Header(None),
) -> str:
    """Resolve the acting identity once, at the HTTP boundary.

    The identity is only accepted when the request is signed with the key
    provisioned for it. With signatures switched off, identities that have
    no key are taken from the header unchecked.
    """
    if not x_caller_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Caller identity required")

    with get_session() as session:
        key = KeyRegistry(session).get(x_caller_id)
        public_key_hex = key.public_key_hex if key else None
    if public_key_hex is None:
        if settings.require_signatures:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Caller key not registered")
        return x_caller_id

    if not x_signature:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Signature required")
    try:
        signature = base64.b64decode(x_signature, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature encoding") from exc

    message = request_message(x_caller_id, request.method, request.url.path, body)
    if not is_valid_signature(bytes.fromhex(public_key_hex), message, signature):
        logger.warning("rejected signature caller=%s path=%s", x_caller_id, request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Signature verification failed")
    return x_caller_id


def provisioning_credential(x_admin_token: Optional[str] = Header(None)) -> None:
    """Only the operator holding the admin token may bind keys to identities."""
    expected = settings.admin_token
    if not expected or not x_admin_token or not hmac.compare_digest(x_admin_token.encode(), expected.encode()):
        logger.warning("rejected key provisioning attempt")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Key provisioning not permitted")
