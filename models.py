from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

ACTIVE = "active"
INACTIVE = "inactive"


class Identity(BaseModel):
    id: int
    email: str
    display_name: str


class RoleAssignment(BaseModel):
    identity_key: str
    role: str
    department: Optional[str] = None
    status: str = ACTIVE
    assigned_at: datetime
    assigned_by: str
    updated_at: datetime


class RoleChange(BaseModel):
    identity_key: str
    action: str
    old_role: Optional[str] = None
    new_role: Optional[str] = None
    changed_by: str
    changed_at: datetime


class Principal(BaseModel):
    """Point-in-time view of an identity, its assignment and its role."""

    model_config = ConfigDict(frozen=True)

    identity_id: int
    email: str
    display_name: str
    role: str
    permissions: FrozenSet[str]
    pages: FrozenSet[str]
    department: Optional[str] = None
    resolved_at: datetime


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    redirect_to: str
    principal: Principal


class UserCreate(BaseModel):
    email: str
    display_name: str
    password: str = Field(min_length=6)
    role: Optional[str] = None
    department: Optional[str] = None


class AssignRoleRequest(BaseModel):
    role: str
    department: Optional[str] = None
    status: str = ACTIVE


class ChangeRoleRequest(BaseModel):
    role: str


class StatusUpdate(BaseModel):
    status: str


class NavItem(BaseModel):
    id: str
    title: str
    icon: str
    url: str
    active: bool = False


class PageView(BaseModel):
    page: str
    principal: Principal
    navigation: List[NavItem]
    content: Dict[str, Any] = {}


class DeniedView(BaseModel):
    title: str = "Access Denied"
    message: str
    return_to: str
    reason: str


class PermissionCheck(BaseModel):
    permission: str
    allowed: bool


class SystemStats(BaseModel):
    total_users: int
    active_users: int
    admin_users: int
    doctor_users: int
    staff_users: int
