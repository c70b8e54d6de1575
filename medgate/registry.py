from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

RECORD_ADDED = "RecordAdded"
ACCESS_GRANTED = "AccessGranted"
ACCESS_REVOKED = "AccessRevoked"

UNAUTHORIZED_VIEWER = "Access denied: unauthorized viewer"


class AuthorizationError(PermissionError):
    """Raised when a viewer holds no grant for the requested record."""

    def __init__(self, reason: str = UNAUTHORIZED_VIEWER) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class PatientRecord:
    """Pointer to an owner's off-chain health data.

    The owner is the key the record is stored under, carried here only so
    callers can tell whose record they hold.
    """

    owner: str
    name: str = ""
    data_hash: str = ""
    timestamp: int = 0

    def as_tuple(self) -> tuple[str, str, int]:
        return (self.name, self.data_hash, self.timestamp)


@dataclass(frozen=True)
class Notification:
    """Signal emitted alongside a committed state change.

    kind is one of RecordAdded / AccessGranted / AccessRevoked.
    subject is the acting identity, target the provider for grant changes.
    """

    kind: str
    subject: str
    target: Optional[str] = None
    data_hash: Optional[str] = None
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "subject": self.subject,
            "target": self.target,
            "data_hash": self.data_hash,
            "timestamp": self.timestamp,
        }


def _unix_seconds() -> int:
    return int(time.time())


@dataclass
class AccessLedger:
    """Boolean grant per (owner, grantee); anything never written is denied."""

    permissions: Dict[str, Dict[str, bool]] = field(default_factory=dict)

    def grant(self, caller: str, provider: str) -> Notification:
        self.permissions.setdefault(caller, {})[provider] = True
        return Notification(kind=ACCESS_GRANTED, subject=caller, target=provider)

    def revoke(self, caller: str, provider: str) -> Notification:
        self.permissions.setdefault(caller, {})[provider] = False
        return Notification(kind=ACCESS_REVOKED, subject=caller, target=provider)

    def is_authorized(self, owner: str, grantee: str) -> bool:
        return self.permissions.get(owner, {}).get(grantee, False)

    def grantees(self, owner: str) -> List[str]:
        return sorted(g for g, ok in self.permissions.get(owner, {}).items() if ok)


@dataclass
class RecordStore:
    """One PatientRecord per owner, replaced wholesale on every write."""

    records: Dict[str, PatientRecord] = field(default_factory=dict)

    def upsert(self, caller: str, name: str, data_hash: str, timestamp: int) -> Notification:
        self.records[caller] = PatientRecord(
            owner=caller, name=name, data_hash=data_hash, timestamp=timestamp
        )
        return Notification(
            kind=RECORD_ADDED, subject=caller, data_hash=data_hash, timestamp=timestamp
        )

    def get(self, owner: str) -> Optional[PatientRecord]:
        return self.records.get(owner)

    def read(self, caller: str, patient: str, ledger: AccessLedger) -> Optional[PatientRecord]:
        """Return the patient's current record if the caller may see it.

        Returns None when the caller is authorized but nothing was ever
        written for the patient.
        """
        if caller != patient and not ledger.is_authorized(patient, caller):
            raise AuthorizationError()
        return self.records.get(patient)


Subscriber = Callable[[Notification], None]


class RecordRegistry:
    """Owned record store + access ledger behind a single writer lock.

    Caller identity is always passed in explicitly; it is resolved by
    whatever layer receives the request, never inferred here.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self.store = RecordStore()
        self.ledger = AccessLedger()
        self._clock = clock or _unix_seconds
        self._last_timestamp = 0
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def add_or_update_record(self, caller: str, name: str, data_hash: str) -> PatientRecord:
        with self._lock:
            notification = self.store.upsert(caller, name, data_hash, self._now())
            logger.info("record updated owner=%s data_hash=%s", caller, data_hash)
            self._emit(notification)
            return self.store.records[caller]

    def grant_access(self, caller: str, provider: str) -> None:
        with self._lock:
            notification = self.ledger.grant(caller, provider)
            logger.info("access granted owner=%s grantee=%s", caller, provider)
            self._emit(notification)

    def revoke_access(self, caller: str, provider: str) -> None:
        with self._lock:
            notification = self.ledger.revoke(caller, provider)
            logger.info("access revoked owner=%s grantee=%s", caller, provider)
            self._emit(notification)

    def is_authorized(self, owner: str, grantee: str) -> bool:
        with self._lock:
            return self.ledger.is_authorized(owner, grantee)

    def view_record(self, caller: str, patient: str) -> Optional[PatientRecord]:
        with self._lock:
            try:
                return self.store.read(caller, patient, self.ledger)
            except AuthorizationError:
                logger.warning("denied read viewer=%s patient=%s", caller, patient)
                raise

    def _now(self) -> int:
        # never hand out a timestamp older than one already issued
        self._last_timestamp = max(self._clock(), self._last_timestamp)
        return self._last_timestamp

    def _emit(self, notification: Notification) -> None:
        # called with the lock held so observers see mutations in commit order
        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                logger.exception("subscriber failed for %s", notification.kind)
