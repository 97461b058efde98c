"""
Page guard: gates every protected page load.

Per load the guard moves Unauthenticated -> Authenticating -> Authorized or
Denied. Authorized yields the page shell with a role-filtered menu and the
page's own initialization payload. Denied yields a fixed access-denied view
with a single way back. There is no retry.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from authorization import can_access_page, get_accessible_pages
from config import DEFAULT_PAGE, LOGIN_PAGE, RESOLVE_TIMEOUT_SECONDS
from errors import StoreError
from models import DeniedView, NavItem, PageView, Principal
from session import IdentitySession

logger = logging.getLogger(__name__)

PageInitializer = Callable[[Principal], Dict[str, Any]]

NAVIGATION_ITEMS = [
    {"id": "index", "title": "Dashboard", "icon": "📊", "url": "index.html"},
    {"id": "patients", "title": "Patients", "icon": "👥", "url": "patients.html"},
    {"id": "triage", "title": "Triage", "icon": "🚨", "url": "triage.html"},
    {"id": "doctors", "title": "Doctors", "icon": "👨‍⚕️", "url": "doctors.html"},
    {"id": "lab", "title": "Laboratory", "icon": "🧪", "url": "lab.html"},
    {"id": "pharmacy", "title": "Pharmacy", "icon": "💊", "url": "pharmacy.html"},
    {"id": "appointments", "title": "Appointments", "icon": "📅", "url": "appointments.html"},
    {"id": "billing", "title": "Billing", "icon": "💰", "url": "billing.html"},
    {"id": "reports", "title": "Reports", "icon": "📈", "url": "reports.html"},
    {"id": "admin", "title": "Admin", "icon": "⚙️", "url": "admin.html"},
]

DENIED_MESSAGES = {
    "unauthenticated": "Please sign in to continue.",
    "timeout": "Could not verify your session. Please sign in again.",
    "store_error": "Could not verify your session. Please sign in again.",
    "forbidden": "You don't have permission to access this page.",
}


class GuardState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHORIZED = "authorized"
    DENIED = "denied"


@dataclass
class GuardResult:
    page_id: str
    state: GuardState
    view: Union[PageView, DeniedView]
    principal: Optional[Principal] = None
    transitions: List[GuardState] = field(default_factory=list)

    @property
    def authorized(self) -> bool:
        return self.state == GuardState.AUTHORIZED


def build_navigation(principal: Optional[Principal], current_page: Optional[str] = None) -> List[NavItem]:
    """Menu entries for the pages this principal may open, in menu order"""
    pages = get_accessible_pages(principal)
    return [
        NavItem(**item, active=item["url"] == current_page)
        for item in NAVIGATION_ITEMS
        if item["url"] in pages
    ]


def denied_view(reason: str) -> DeniedView:
    return_to = DEFAULT_PAGE if reason == "forbidden" else LOGIN_PAGE
    return DeniedView(message=DENIED_MESSAGES[reason], return_to=return_to, reason=reason)


class PageGuard:
    def __init__(
        self,
        initializers: Optional[Dict[str, PageInitializer]] = None,
        resolve_timeout: float = RESOLVE_TIMEOUT_SECONDS,
    ):
        self.initializers = dict(initializers or {})
        self.resolve_timeout = resolve_timeout

    def register(self, page_id: str, initializer: PageInitializer):
        self.initializers[page_id] = initializer

    async def evaluate(self, session: Optional[IdentitySession], page_id: str) -> GuardResult:
        transitions = [GuardState.UNAUTHENTICATED, GuardState.AUTHENTICATING]

        def deny(reason: str, principal: Optional[Principal] = None) -> GuardResult:
            logger.info("Denied %s: %s", page_id, reason)
            transitions.append(GuardState.DENIED)
            return GuardResult(page_id, GuardState.DENIED, denied_view(reason), principal, transitions)

        if session is None:
            return deny("unauthenticated")

        try:
            principal = await asyncio.wait_for(
                asyncio.to_thread(session.get_current_principal),
                timeout=self.resolve_timeout,
            )
        except asyncio.TimeoutError:
            return deny("timeout")
        except StoreError as exc:
            logger.warning("Session resolution failed for %s: %s", page_id, exc)
            return deny("store_error")

        if principal is None:
            return deny("unauthenticated")
        if not can_access_page(principal, page_id):
            return deny("forbidden", principal)

        initializer = self.initializers.get(page_id)
        content = await asyncio.to_thread(initializer, principal) if initializer else {}

        transitions.append(GuardState.AUTHORIZED)
        view = PageView(
            page=page_id,
            principal=principal,
            navigation=build_navigation(principal, page_id),
            content=content,
        )
        return GuardResult(page_id, GuardState.AUTHORIZED, view, principal, transitions)
