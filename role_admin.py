"""
Role administration: create, change, deactivate and revoke role assignments.

Every mutation checks the acting principal before touching the store, so a
refused call leaves no trace. Mutations never touch the acting principal's
own cached session, and an already-resolved principal for the target
identity keeps its old role until that identity resolves again.
"""

import logging
from typing import List, Optional

from authorization import ROLE_ADMIN_PERMISSION, is_role_admin
from database import AssignmentStore
from errors import AssignmentNotFound, Forbidden, InvalidAssignment, UnknownRole
from identity import normalize_email
from models import ACTIVE, INACTIVE, Principal, RoleAssignment, RoleChange, SystemStats
from roles import Role, RoleName, get_role

logger = logging.getLogger(__name__)

STAFF_ROLES = {
    RoleName.NURSE.value,
    RoleName.LAB.value,
    RoleName.RECEPTION.value,
    RoleName.TRIAGE.value,
    RoleName.STAFF.value,
}


class RoleAdministration:
    def __init__(self, store: AssignmentStore):
        self.store = store

    def assign_role(
        self,
        actor: Optional[Principal],
        identity_key: str,
        role_name: str,
        department: Optional[str] = None,
        status: str = ACTIVE,
    ) -> RoleAssignment:
        """Create or overwrite the assignment for ``identity_key``."""
        self._require_admin(actor, "assign_role")
        key = self._validate_key(identity_key)
        role = self._resolve_role(role_name)
        self._validate_status(status)
        department = (department or "").strip() or None

        existing = self.store.get_assignment(key)
        if existing is None:
            audit = {"action": "assign", "old_role": None, "new_role": role.name}
        elif (existing["role"], existing["department"], existing["status"]) != (role.name, department, status):
            audit = {"action": "update", "old_role": existing["role"], "new_role": role.name}
        else:
            audit = None
        if audit:
            audit["changed_by"] = actor.email

        row = self.store.upsert_assignment(
            key,
            {"role": role.name, "department": department, "status": status, "assigned_by": actor.email},
            audit=audit,
        )
        logger.info("%s assigned %s to %s", actor.email, role.name, key)
        return RoleAssignment(**row)

    def change_role(self, actor: Optional[Principal], identity_key: str, new_role_name: str) -> RoleAssignment:
        self._require_admin(actor, "change_role")
        key = self._validate_key(identity_key)
        role = self._resolve_role(new_role_name)
        existing = self._require_assignment(key)

        row = self.store.upsert_assignment(
            key,
            {
                "role": role.name,
                "department": existing["department"],
                "status": existing["status"],
                "assigned_by": actor.email,
            },
            audit={
                "action": "change",
                "old_role": existing["role"],
                "new_role": role.name,
                "changed_by": actor.email,
            },
        )
        logger.info("%s changed %s from %s to %s", actor.email, key, existing["role"], role.name)
        return RoleAssignment(**row)

    def set_status(self, actor: Optional[Principal], identity_key: str, status: str) -> RoleAssignment:
        """Activate or deactivate an assignment without changing its role."""
        self._require_admin(actor, "set_status")
        key = self._validate_key(identity_key)
        self._validate_status(status)
        existing = self._require_assignment(key)

        row = self.store.upsert_assignment(
            key,
            {
                "role": existing["role"],
                "department": existing["department"],
                "status": status,
                "assigned_by": actor.email,
            },
            audit={
                "action": "activate" if status == ACTIVE else "deactivate",
                "old_role": existing["role"],
                "new_role": existing["role"],
                "changed_by": actor.email,
            },
        )
        logger.info("%s set %s to %s", actor.email, key, status)
        return RoleAssignment(**row)

    def revoke_access(self, actor: Optional[Principal], identity_key: str):
        self._require_admin(actor, "revoke_access")
        key = self._validate_key(identity_key)
        existing = self._require_assignment(key)

        self.store.delete_assignment(
            key,
            audit={
                "action": "revoke",
                "old_role": existing["role"],
                "new_role": None,
                "changed_by": actor.email,
            },
        )
        logger.info("%s revoked access for %s", actor.email, key)

    def list_assignments(self, search: Optional[str] = None) -> List[RoleAssignment]:
        """Assignments newest first, optionally filtered by a case-insensitive
        substring of the identity key, role name or department."""
        term = (search or "").strip().lower()
        assignments = [RoleAssignment(**row) for row in self.store.list_assignments()]
        if not term:
            return assignments
        return [
            a for a in assignments
            if term in a.identity_key.lower()
            or term in a.role.lower()
            or (a.department and term in a.department.lower())
        ]

    def get_history(self, identity_key: str) -> List[RoleChange]:
        key = self._validate_key(identity_key)
        return [RoleChange(**row) for row in self.store.list_changes(key)]

    def system_stats(self) -> SystemStats:
        assignments = self.store.list_assignments()
        return SystemStats(
            total_users=len(assignments),
            active_users=sum(1 for a in assignments if a["status"] == ACTIVE),
            admin_users=sum(1 for a in assignments if a["role"] == RoleName.ADMIN.value),
            doctor_users=sum(1 for a in assignments if a["role"] == RoleName.DOCTOR.value),
            staff_users=sum(1 for a in assignments if a["role"] in STAFF_ROLES),
        )

    def _require_admin(self, actor: Optional[Principal], operation: str):
        if not is_role_admin(actor):
            who = actor.email if actor else "anonymous"
            logger.warning("Refused %s for %s", operation, who)
            raise Forbidden(ROLE_ADMIN_PERMISSION)

    def _require_assignment(self, key: str):
        existing = self.store.get_assignment(key)
        if existing is None:
            raise AssignmentNotFound(key)
        return existing

    @staticmethod
    def _validate_key(identity_key: str) -> str:
        key = normalize_email(identity_key)
        if not key:
            raise InvalidAssignment("Identity key is required")
        return key

    @staticmethod
    def _resolve_role(role_name: str) -> Role:
        role = get_role(role_name)
        if role is None:
            raise UnknownRole(role_name)
        return role

    @staticmethod
    def _validate_status(status: str):
        if status not in (ACTIVE, INACTIVE):
            raise InvalidAssignment(f"Status must be '{ACTIVE}' or '{INACTIVE}'")
