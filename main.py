import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from auth import Services
from config import API_TITLE, API_VERSION, DATABASE_PATH, HOST, INIT_TIMEOUT_SECONDS, LOG_LEVEL, PORT, SEED_IDENTITIES
from database import AssignmentStore, init_database, seed_identities
from errors import AssignmentNotFound, AuthError, Forbidden, InvalidAssignment, NoAssignment, StoreError, UnknownRole
from identity import IdentityProvider
from models import Identity
from page_guard import PageGuard
from role_admin import RoleAdministration
from routers import auth_router, pages_router, roles_router, users_router
from session import SessionCache

logger = logging.getLogger(__name__)


def initialize_store(database_path: str, seeds):
    """Create tables and seed identities"""
    init_database(database_path)
    if seeds:
        seed_identities(database_path, seeds)


def log_identity_event(event: str, identity: Identity):
    logger.info("Identity %s: %s", event, identity.email)


def build_page_guard(administration: RoleAdministration) -> PageGuard:
    guard = PageGuard()
    guard.register("index.html", lambda principal: {
        "welcome": f"Welcome {principal.display_name}: {principal.department or principal.role}",
    })
    guard.register("admin.html", lambda principal: {
        "stats": administration.system_stats().model_dump(),
    })
    return guard


def create_app(database_path: str = DATABASE_PATH, seeds=SEED_IDENTITIES, init_timeout: float = INIT_TIMEOUT_SECONDS) -> FastAPI:
    store = AssignmentStore(database_path)
    identity_provider = IdentityProvider(database_path)
    identity_provider.subscribe(log_identity_event)
    administration = RoleAdministration(store)
    services = Services(
        store=store,
        identity_provider=identity_provider,
        session_cache=SessionCache(),
        administration=administration,
        page_guard=build_page_guard(administration),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Initialize database once before serving, bounded by init_timeout
        try:
            await asyncio.wait_for(
                asyncio.to_thread(initialize_store, database_path, seeds),
                timeout=init_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Database initialization exceeded %ss", init_timeout)
            raise StoreError(f"Database initialization timed out after {init_timeout}s")
        except StoreError:
            logger.exception("Database initialization failed")
            raise
        yield

    app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)
    app.state.services = services

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(roles_router.router)
    app.include_router(pages_router.router)

    # Root endpoint
    @app.get("/")
    def root():
        return {
            "message": "Hospital Management System API",
            "docs": "/docs",
            "endpoints": {
                "login": "POST /auth/login",
                "logout": "POST /auth/logout",
                "current_user": "GET /users/me",
                "create_user": "POST /users",
                "roles": "GET /roles",
                "assignments": "GET /assignments",
                "assign_role": "PUT /assignments/{email}",
                "change_role": "PATCH /assignments/{email}/role",
                "revoke_access": "DELETE /assignments/{email}",
                "open_page": "GET /pages/{page}",
                "navigation": "GET /navigation",
            },
        }

    return app


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(NoAssignment)
    async def no_assignment_handler(request: Request, exc: NoAssignment):
        return JSONResponse(
            status_code=403,
            content={"detail": "You do not have access. Contact administrator.", "sign_out": True},
        )

    @app.exception_handler(Forbidden)
    async def forbidden_handler(request: Request, exc: Forbidden):
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(AssignmentNotFound)
    async def assignment_not_found_handler(request: Request, exc: AssignmentNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store unavailable: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable. Please try again.", "retry": True},
        )

    @app.exception_handler(UnknownRole)
    @app.exception_handler(InvalidAssignment)
    async def bad_request_handler(request: Request, exc: Exception):
        return JSONResponse(status_code=400, content={"detail": str(exc)})


logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=HOST, port=PORT, reload=True)
