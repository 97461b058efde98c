from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from auth import Services, get_current_principal, get_identity_session, get_services
from authorization import has_permission
from models import NavItem, PermissionCheck, Principal
from page_guard import build_navigation
from session import IdentitySession

router = APIRouter(tags=["Pages"])


@router.get("/pages/{page_id}")
async def open_page(
    page_id: str,
    session: Optional[IdentitySession] = Depends(get_identity_session),
    services: Services = Depends(get_services),
):
    """Run the page guard: page view on success, access-denied view otherwise"""
    result = await services.page_guard.evaluate(session, page_id)
    if result.authorized:
        return JSONResponse(content=result.view.model_dump(mode="json"))
    status_code = 403 if result.view.reason == "forbidden" else 401
    return JSONResponse(status_code=status_code, content=result.view.model_dump(mode="json"))


@router.get("/navigation", response_model=List[NavItem])
def navigation(principal: Principal = Depends(get_current_principal)):
    return build_navigation(principal)


@router.get("/permissions/check", response_model=PermissionCheck)
def check_permission(permission: str, principal: Principal = Depends(get_current_principal)):
    return PermissionCheck(permission=permission, allowed=has_permission(principal, permission))
