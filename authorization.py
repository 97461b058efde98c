"""
Authorization engine: allow/deny answers for a Principal.

Every check is a pure read of the Principal. A missing principal, or one
whose role is no longer in the registry, has no permissions and no pages.
"""

from typing import FrozenSet, Optional

from models import Principal
from roles import ALL_PERMISSIONS, get_role

# Required to create, change or revoke role assignments
ROLE_ADMIN_PERMISSION = "roles.manage"


def _granted_permissions(principal: Optional[Principal]) -> FrozenSet[str]:
    if principal is None or get_role(principal.role) is None:
        return frozenset()
    return principal.permissions


def _granted_pages(principal: Optional[Principal]) -> FrozenSet[str]:
    if principal is None or get_role(principal.role) is None:
        return frozenset()
    return principal.pages


def has_permission(principal: Optional[Principal], permission: str) -> bool:
    """Exact membership, or the ``all`` sentinel. No prefix or wildcard matching."""
    permissions = _granted_permissions(principal)
    if ALL_PERMISSIONS in permissions:
        return True
    return permission in permissions


def can_perform_action(principal: Optional[Principal], resource: str, action: str) -> bool:
    return has_permission(principal, f"{resource}.{action}")


def can_access_page(principal: Optional[Principal], page_id: str) -> bool:
    return page_id in _granted_pages(principal)


def get_accessible_pages(principal: Optional[Principal]) -> FrozenSet[str]:
    return _granted_pages(principal)


def get_user_permissions(principal: Optional[Principal]) -> FrozenSet[str]:
    return _granted_permissions(principal)


def is_role_admin(principal: Optional[Principal]) -> bool:
    return has_permission(principal, ROLE_ADMIN_PERMISSION)
