from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from auth import Services, get_current_principal, get_services, require_permission
from authorization import ROLE_ADMIN_PERMISSION
from models import (
    AssignRoleRequest,
    ChangeRoleRequest,
    Principal,
    RoleAssignment,
    RoleChange,
    StatusUpdate,
)
from roles import Role, get_role, list_roles

router = APIRouter(tags=["Role Administration"])

require_role_admin = require_permission(ROLE_ADMIN_PERMISSION)


@router.get("/roles", response_model=List[Role])
def get_roles(principal: Principal = Depends(require_role_admin)):
    """Roles available for assignment"""
    return list_roles()


@router.get("/roles/{role_name}", response_model=Role)
def get_role_detail(role_name: str, principal: Principal = Depends(require_role_admin)):
    role = get_role(role_name)
    if role is None:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


@router.get("/assignments", response_model=List[RoleAssignment])
def list_assignments(
    q: Optional[str] = None,
    principal: Principal = Depends(require_role_admin),
    services: Services = Depends(get_services),
):
    """List assignments, filtered by email, role or department"""
    return services.administration.list_assignments(q)


@router.put("/assignments/{identity_key}", response_model=RoleAssignment)
def assign_role(
    identity_key: str,
    body: AssignRoleRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    return services.administration.assign_role(
        principal, identity_key, body.role, body.department, body.status
    )


@router.patch("/assignments/{identity_key}/role", response_model=RoleAssignment)
def change_role(
    identity_key: str,
    body: ChangeRoleRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    return services.administration.change_role(principal, identity_key, body.role)


@router.patch("/assignments/{identity_key}/status", response_model=RoleAssignment)
def update_status(
    identity_key: str,
    body: StatusUpdate,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Activate or deactivate an assignment"""
    return services.administration.set_status(principal, identity_key, body.status)


@router.delete("/assignments/{identity_key}", status_code=204)
def revoke_access(
    identity_key: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Remove the binding; the identity can no longer sign in"""
    services.administration.revoke_access(principal, identity_key)
    return Response(status_code=204)


@router.get("/assignments/{identity_key}/history", response_model=List[RoleChange])
def assignment_history(
    identity_key: str,
    principal: Principal = Depends(require_role_admin),
    services: Services = Depends(get_services),
):
    return services.administration.get_history(identity_key)
