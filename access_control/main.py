from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .core.config import settings
from .core.database import SessionLocal, init_db
from .core.exceptions import InvalidCredential, PartialCommitFailure, StoreUnavailable
from .core.logging_config import get_logger, setup_logging
from .jobs.security_scanner import SecurityScanner
from .routers import access, alerts, auth, persons, visitors

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Access Control API",
    description="QR access control for a training center: entries, exits, visitors and security alerts",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(access.router, prefix="/api/v1")
app.include_router(persons.router, prefix="/api/v1")
app.include_router(visitors.router, prefix="/api/v1")
app.include_router(alerts.router, prefix="/api/v1")

app.state.security_scanner = SecurityScanner(SessionLocal, settings.security_scan_interval_seconds)


def _error_body(exc, message: str) -> dict:
    body = {"code": exc.code, "message": message}
    if settings.debug and exc.detail:
        body["detail"] = exc.detail
    return body


@app.exception_handler(InvalidCredential)
async def invalid_credential_handler(request: Request, exc: InvalidCredential):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": exc.code, "message": exc.message},
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body(exc, "Service temporarily unavailable, please retry"),
    )


@app.exception_handler(PartialCommitFailure)
async def partial_commit_handler(request: Request, exc: PartialCommitFailure):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(exc, "The operation may have been partially applied; contact an administrator"),
    )


@app.get("/")
def read_root():
    return {"message": "Access Control API is running"}


@app.get("/health")
def health_check():
    return {"status": "healthy", "security_scanner": app.state.security_scanner.is_running}


@app.on_event("startup")
def startup_event():
    """Create tables and default roles, then start the security sweep"""
    from .services.auth_service import AuthService

    init_db()
    db = SessionLocal()
    try:
        AuthService.ensure_default_roles(db)
    finally:
        db.close()

    if settings.security_scan_enabled:
        app.state.security_scanner.start()


@app.on_event("shutdown")
def shutdown_event():
    app.state.security_scanner.stop()
