"""API I/O schemas."""
from typing import List

from pydantic import BaseModel

from .models import ActorKeyRead, NotificationRead


class RecordIn(BaseModel):
    name: str
    data_hash: str


class RecordOut(BaseModel):
    patient: str
    name: str = ""
    data_hash: str = ""
    timestamp: int = 0
    # False when nothing was ever written; the other fields then hold zero values
    exists: bool = False


class AccessStatusOut(BaseModel):
    owner: str
    grantee: str
    granted: bool


class GranteeListOut(BaseModel):
    owner: str
    grantees: List[str]


class ActorKeyIn(BaseModel):
    actor_id: str
    public_key_hex: str
    # base64 Ed25519 signature over {"actor_id", "public_key_hex"}
    signature: str


class ActorKeyOut(ActorKeyRead):
    pass


class NotificationOut(NotificationRead):
    pass
