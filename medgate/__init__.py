"""
medgate: a permissioned registry of patient health-data pointers.

Each identity owns at most one record (a name, an opaque reference to
off-chain data, and the time it was written) and decides which other
identities may read it. The record contents are never interpreted here;
only disclosure is gated.

The in-memory core lives in `registry`; `medgate.app` exposes the same
operations over HTTP with SQLModel persistence.
"""

__all__ = [
    "AccessLedger",
    "AuthorizationError",
    "Notification",
    "PatientRecord",
    "RecordRegistry",
    "RecordStore",
]

from .registry import (
    AccessLedger,
    AuthorizationError,
    Notification,
    PatientRecord,
    RecordRegistry,
    RecordStore,
)

__version__ = "0.1.0"
