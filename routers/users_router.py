from fastapi import APIRouter, Depends, HTTPException

from auth import Services, get_current_principal, get_services
from authorization import ROLE_ADMIN_PERMISSION, get_user_permissions, is_role_admin
from errors import Forbidden, UnknownRole
from models import Principal, UserCreate
from roles import get_role

router = APIRouter(prefix="/users", tags=["User Management"])


@router.post("/", status_code=201)
def create_user_account(
    user_data: UserCreate,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Register an identity, optionally assigning its role (Administrator only)"""
    if not is_role_admin(principal):
        raise Forbidden(ROLE_ADMIN_PERMISSION)
    if user_data.role and get_role(user_data.role) is None:
        raise UnknownRole(user_data.role)

    identity = services.identity_provider.register(user_data.email, user_data.display_name, user_data.password)
    if identity is None:
        raise HTTPException(status_code=400, detail="Email already registered")

    assignment = None
    if user_data.role:
        assignment = services.administration.assign_role(
            principal, identity.email, user_data.role, user_data.department
        )

    return {
        "id": identity.id,
        "email": identity.email,
        "display_name": identity.display_name,
        "assignment": assignment,
    }


@router.get("/me")
def get_current_user_info(principal: Principal = Depends(get_current_principal)):
    """Get current principal info"""
    return {
        "id": principal.identity_id,
        "email": principal.email,
        "display_name": principal.display_name,
        "role": principal.role,
        "department": principal.department,
        "permissions": sorted(get_user_permissions(principal)),
        "pages": sorted(principal.pages),
    }
