"""Caller key registry helpers."""
from sqlmodel import Session

from ..domain.models import ActorKey


class KeyAlreadyRegistered(Exception):
    pass


class KeyRegistry:
    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, actor_id: str, public_key_hex: str) -> ActorKey:
        """Bind a public key to an identity. Existing bindings are never replaced."""
        if self.session.get(ActorKey, actor_id):
            raise KeyAlreadyRegistered(actor_id)
        key = ActorKey(actor_id=actor_id, public_key_hex=public_key_hex)
        self.session.add(key)
        self.session.flush()
        self.session.refresh(key)
        return key

    def get(self, actor_id: str) -> ActorKey | None:
        return self.session.get(ActorKey, actor_id)
