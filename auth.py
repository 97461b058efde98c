import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from authorization import has_permission
from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from database import AssignmentStore
from errors import NoAssignment
from identity import IdentityProvider
from models import Principal
from page_guard import PageGuard
from role_admin import RoleAdministration
from session import IdentitySession, SessionCache

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Collaborators shared by every request, built once per application."""

    store: AssignmentStore
    identity_provider: IdentityProvider
    session_cache: SessionCache
    administration: RoleAdministration
    page_guard: PageGuard

    def session(self, session_id: str) -> IdentitySession:
        return IdentitySession(
            session_id,
            self.store,
            self.session_cache,
            ttl_seconds=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


def create_access_token(data: dict):
    """Create JWT access token"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sid") or not payload.get("sub"):
        return None
    return payload


def sign_in(services: Services, email: str, password: str) -> Tuple[str, Principal]:
    """Authenticate, resolve a fresh Principal into a new session and issue its token.

    An identity without an active assignment is signed straight back out.
    """
    identity = services.identity_provider.authenticate(email, password)
    session = services.session(uuid.uuid4().hex)
    try:
        principal = session.resolve_principal(identity)
    except NoAssignment:
        services.identity_provider.sign_out(identity)
        raise

    token = create_access_token(data={"sub": str(identity.id), "sid": session.session_id, "role": principal.role})
    return token, principal


def get_identity_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services),
) -> Optional[IdentitySession]:
    """Session named by the bearer token, or None without a valid token"""
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None
    return services.session(payload["sid"])


def get_current_principal(session: Optional[IdentitySession] = Depends(get_identity_session)) -> Principal:
    """Get the cached Principal for the caller's session"""
    principal = session.get_current_principal() if session else None
    if principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def require_permission(permission: str):
    """Dependency factory requiring a specific permission"""
    def check_permission(principal: Principal = Depends(get_current_principal)):
        if not has_permission(principal, permission):
            logger.warning("%s lacks %s", principal.email, permission)
            raise HTTPException(status_code=403, detail=f"Permission required: {permission}")
        return principal
    return check_permission
