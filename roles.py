"""
Role Registry - the single canonical table of roles, permissions and pages.

Roles are deployment configuration: nothing in this module mutates at runtime.
Permissions are ``<resource>.<action>`` strings, or the ``all`` sentinel which
grants every permission.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict

ALL_PERMISSIONS = "all"


class RoleName(str, Enum):
    ADMIN = "Admin"
    DOCTOR = "Doctor"
    NURSE = "Nurse"
    PHARMACY = "Pharmacy"
    LAB = "Lab"
    RECEPTION = "Reception"
    TRIAGE = "Triage"
    STAFF = "Staff"


class Role(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    permissions: FrozenSet[str]
    pages: FrozenSet[str]
    home_page: str


def _role(name: RoleName, permissions: List[str], pages: List[str], home_page: str) -> Role:
    return Role(
        name=name.value,
        permissions=frozenset(permissions),
        pages=frozenset(pages),
        home_page=home_page,
    )


ROLES: Dict[RoleName, Role] = {
    RoleName.ADMIN: _role(
        RoleName.ADMIN,
        [ALL_PERMISSIONS],
        [
            "admin.html", "index.html", "patients.html", "triage.html", "doctors.html",
            "lab.html", "pharmacy.html", "appointments.html", "billing.html", "reports.html",
        ],
        "admin.html",
    ),
    RoleName.DOCTOR: _role(
        RoleName.DOCTOR,
        [
            "patients.read", "patients.update",
            "appointments.read", "appointments.update",
            "triage.read", "triage.update",
            "consultations.create", "consultations.read", "consultations.update",
            "labRequests.create", "labRequests.read",
            "labResults.read",
            "prescriptions.create", "prescriptions.read",
            "medicines.read",
        ],
        ["doctors.html", "index.html", "patients.html", "lab.html", "pharmacy.html"],
        "doctors.html",
    ),
    RoleName.NURSE: _role(
        RoleName.NURSE,
        [
            "patients.create", "patients.read", "patients.update",
            "appointments.read",
            "triage.create", "triage.read", "triage.update",
            "consultations.read",
            "labRequests.read",
            "labResults.read",
            "prescriptions.read",
            "medicines.read",
        ],
        ["patients.html", "index.html", "triage.html", "lab.html", "pharmacy.html"],
        "patients.html",
    ),
    RoleName.PHARMACY: _role(
        RoleName.PHARMACY,
        [
            "prescriptions.read", "prescriptions.update",
            "medicines.create", "medicines.read", "medicines.update",
            "patients.read",
        ],
        ["pharmacy.html", "index.html", "patients.html"],
        "pharmacy.html",
    ),
    RoleName.LAB: _role(
        RoleName.LAB,
        [
            "labRequests.read", "labRequests.update",
            "labResults.create", "labResults.read", "labResults.update",
            "patients.read",
        ],
        ["lab.html", "index.html", "patients.html"],
        "lab.html",
    ),
    RoleName.RECEPTION: _role(
        RoleName.RECEPTION,
        [
            "appointments.create", "appointments.read", "appointments.update", "appointments.delete",
            "patients.create", "patients.read", "patients.update",
            "billing.create", "billing.read", "billing.update",
            "doctors.read",
        ],
        ["appointments.html", "index.html", "patients.html", "billing.html"],
        "appointments.html",
    ),
    RoleName.TRIAGE: _role(
        RoleName.TRIAGE,
        [
            "triage.create", "triage.read", "triage.update",
            "patients.create", "patients.read",
            "appointments.read",
        ],
        ["triage.html", "index.html", "patients.html", "appointments.html"],
        "triage.html",
    ),
    RoleName.STAFF: _role(
        RoleName.STAFF,
        ["patients.read", "appointments.read", "triage.read"],
        ["index.html", "patients.html", "triage.html"],
        "index.html",
    ),
}

_ROLES_BY_NAME: Dict[str, Role] = {role.name: role for role in ROLES.values()}


def get_role(role_name: Optional[str]) -> Optional[Role]:
    """Return the role registered under ``role_name``, or None if there is none."""
    if not isinstance(role_name, str):
        return None
    return _ROLES_BY_NAME.get(role_name)


def list_roles() -> List[Role]:
    """Every registered role, in declaration order."""
    return list(ROLES.values())
