"""Persistence models for records, grants and the notification log."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlmodel import Field as SQLField, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationKind(str, Enum):
    RECORD_ADDED = "RecordAdded"
    ACCESS_GRANTED = "AccessGranted"
    ACCESS_REVOKED = "AccessRevoked"


class PatientRecordRow(SQLModel, table=True):
    """Current record of one owner; rewritten in place on every upsert."""

    __tablename__ = "patient_records"

    owner_id: str = SQLField(primary_key=True, index=True)
    name: str = SQLField(default="")
    data_hash: str = SQLField(default="")
    timestamp: int = SQLField(default=0, nullable=False)


class AccessPermission(SQLModel, table=True):
    """Grant flag for one (owner, grantee) pair. Missing row means denied."""

    __tablename__ = "access_permissions"

    owner_id: str = SQLField(primary_key=True, index=True)
    grantee_id: str = SQLField(primary_key=True, index=True)
    granted: bool = SQLField(default=False, nullable=False)
    updated_at: datetime = SQLField(default_factory=utc_now, nullable=False)


class NotificationRecord(SQLModel, table=True):
    """Append-only, hash-chained log of emitted notifications."""

    __tablename__ = "notifications"

    seq: Optional[int] = SQLField(default=None, primary_key=True)
    kind: NotificationKind = SQLField(index=True)
    subject_id: str = SQLField(index=True)
    target_id: Optional[str] = SQLField(default=None, index=True)
    data_hash: Optional[str] = SQLField(default=None)
    timestamp: Optional[int] = SQLField(default=None)
    prev_hash: Optional[str] = SQLField(default=None)
    curr_hash: Optional[str] = SQLField(default=None, index=True)
    created_at: datetime = SQLField(default_factory=utc_now, nullable=False)


class NotificationRead(BaseModel):
    seq: int
    kind: NotificationKind
    subject_id: str
    target_id: Optional[str]
    data_hash: Optional[str]
    timestamp: Optional[int]
    prev_hash: Optional[str]
    curr_hash: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActorKey(SQLModel, table=True):
    """Registered Ed25519 public key of an identity."""

    __tablename__ = "actor_keys"

    actor_id: str = SQLField(primary_key=True)
    public_key_hex: str
    created_at: datetime = SQLField(default_factory=utc_now, nullable=False)


class ActorKeyRead(BaseModel):
    actor_id: str
    public_key_hex: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
