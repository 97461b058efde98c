from typing import Optional

from fastapi import APIRouter, Depends, Response

from auth import Services, get_identity_session, get_services, sign_in
from config import ACCESS_TOKEN_EXPIRE_MINUTES
from models import Identity, LoginRequest, TokenResponse
from roles import get_role
from session import IdentitySession

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, services: Services = Depends(get_services)):
    """Authenticate and open a session; the response names the role's landing page"""
    access_token, principal = sign_in(services, request.email, request.password)
    return TokenResponse(
        access_token=access_token,
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        redirect_to=get_role(principal.role).home_page,
        principal=principal,
    )


@router.post("/logout", status_code=204)
def logout(
    session: Optional[IdentitySession] = Depends(get_identity_session),
    services: Services = Depends(get_services),
):
    """Discard the cached Principal for this session"""
    if session is not None:
        principal = session.get_current_principal()
        session.clear_session()
        if principal is not None:
            services.identity_provider.sign_out(
                Identity(id=principal.identity_id, email=principal.email, display_name=principal.display_name)
            )
    return Response(status_code=204)
