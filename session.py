"""
Identity session: owns the cached Principal for one client session.

A Principal is materialized from an identity, its current role assignment
and the registry entry for that role. It is a point-in-time copy: later
changes to the assignment are seen only after the next resolve_principal.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from pydantic import ValidationError

from config import SESSION_CACHE_KEY
from database import AssignmentStore
from errors import NoAssignment
from identity import normalize_email
from models import ACTIVE, Identity, Principal
from roles import get_role

logger = logging.getLogger(__name__)


class SessionCache:
    """In-process key-value store holding serialized principals."""

    def __init__(self):
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[float] = None):
        now = time.monotonic()
        expires_at = now + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._purge_expired(now)
            self._entries[key] = (value, expires_at)

    def delete(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def _purge_expired(self, now: float):
        # Caller holds the lock
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._entries[key]

    def __len__(self):
        with self._lock:
            return len(self._entries)


class IdentitySession:
    def __init__(
        self,
        session_id: str,
        store: AssignmentStore,
        cache: SessionCache,
        ttl_seconds: Optional[float] = None,
    ):
        self.session_id = session_id
        self.store = store
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @property
    def cache_key(self) -> str:
        return f"{self.session_id}:{SESSION_CACHE_KEY}"

    def resolve_principal(self, identity: Identity) -> Principal:
        """
        Look up the identity's assignment and role, then cache the Principal.

        Raises:
            NoAssignment: no assignment, an inactive one, or a role the
                registry does not know. The session is cleared first.
            StoreError: the store is unreachable; the cache is left untouched.
        """
        identity_key = normalize_email(identity.email)
        assignment = self.store.get_assignment(identity_key)

        if assignment is None or assignment.get("status") != ACTIVE:
            logger.warning("No active assignment for %s", identity_key)
            self.clear_session()
            raise NoAssignment(identity_key)

        role = get_role(assignment["role"])
        if role is None:
            logger.warning("Assignment for %s names unknown role %r", identity_key, assignment["role"])
            self.clear_session()
            raise NoAssignment(identity_key)

        principal = Principal(
            identity_id=identity.id,
            email=identity_key,
            display_name=identity.display_name,
            role=role.name,
            permissions=role.permissions,
            pages=role.pages,
            department=assignment.get("department"),
            resolved_at=datetime.now(timezone.utc),
        )
        self.cache.set(self.cache_key, principal.model_dump_json(), self.ttl_seconds)
        logger.info("Resolved %s as %s", identity_key, role.name)
        return principal

    def get_current_principal(self) -> Optional[Principal]:
        raw = self.cache.get(self.cache_key)
        if raw is None:
            return None
        try:
            return Principal.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session entry %s", self.cache_key)
            self.clear_session()
            return None

    def clear_session(self):
        self.cache.delete(self.cache_key)
