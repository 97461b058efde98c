"""
Identity provider backed by the local identities table.

Verifies credentials and notifies subscribers when an identity signs in or
out. It knows nothing about roles.
"""

import logging
import threading
from typing import Callable, List, Optional

from database import create_identity, get_identity_by_email, get_identity_by_id
from errors import AuthError
from models import Identity
from security import hash_password, verify_password

logger = logging.getLogger(__name__)

SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"

IdentityListener = Callable[[str, Identity], None]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _to_identity(row) -> Identity:
    return Identity(id=row["id"], email=row["email"], display_name=row["display_name"])


class IdentityProvider:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._listeners: List[IdentityListener] = []
        self._lock = threading.Lock()

    def authenticate(self, email: str, password: str) -> Identity:
        """Verify credentials and announce the sign-in"""
        key = normalize_email(email)
        if not key or not password:
            raise AuthError("Email and password are required")

        row = get_identity_by_email(self.db_path, key)
        if row is None or not verify_password(password, row["password_hash"]):
            logger.warning("Failed sign-in for %s", key)
            raise AuthError("Incorrect email or password")

        identity = _to_identity(row)
        self._notify(SIGNED_IN, identity)
        return identity

    def register(self, email: str, display_name: str, password: str) -> Optional[Identity]:
        """Create an identity; None when the email is already taken"""
        key = normalize_email(email)
        new_id = create_identity(self.db_path, key, display_name.strip(), hash_password(password))
        if new_id is None:
            return None
        return Identity(id=new_id, email=key, display_name=display_name.strip())

    def get_identity(self, identity_id: int) -> Optional[Identity]:
        row = get_identity_by_id(self.db_path, identity_id)
        return _to_identity(row) if row else None

    def sign_out(self, identity: Identity):
        self._notify(SIGNED_OUT, identity)

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register for sign-in/sign-out events; returns an unsubscribe callable"""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, identity: Identity):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(event, identity)
