"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn app.main:app --reload
"""

from fastapi import FastAPI, Request  # The FastAPI framework
from fastapi.middleware.cors import CORSMiddleware  # Cross-Origin Resource Sharing
from fastapi.responses import JSONResponse

from app.core.config import settings  # Application settings
from app.core.logging import configure_logging
from app.routers import auth, users, google_auth, invites, admin  # Accounts
from app.routers import devices, farms  # User-facing device management
from app.routers import iot  # Device-facing registration and uploads
from app.routers import dashboard  # Dashboard feeds
from app.services.claims import ClaimError

configure_logging()

# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
# - docs_url: Swagger UI, http://localhost:8000/docs
# - redoc_url: ReDoc, http://localhost:8000/redoc
app = FastAPI(
    title=settings.APP_NAME,  # "Epic IoT Dashboard"
    docs_url="/docs",
    redoc_url="/redoc",
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The dashboard front-end is served from a different origin than the API.
# Devices don't send an Origin header, so CORS never applies to them.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# ERROR HANDLERS
# ---------------------------------------------------------------------------
@app.exception_handler(ClaimError)
def claim_error_handler(request: Request, exc: ClaimError) -> JSONResponse:
    """Claim failures keep the {"success": false, "error": ...} envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# auth.router: /auth/register, /auth/login, /auth/change-password
# google_auth.router: /auth/google/login, /auth/google/callback
# invites.router: /auth/invite/verify, /auth/invite/register
# users.router: /users/me
# admin.router: /admin/users, /admin/invites
# devices.router: /devices/claim, /devices/assign-farm, /devices/{id}/...
# farms.router: /farms, /farms/{id}/devices
# iot.router: /iot/register-device, /iot/upload-csv, /iot/upload-json
# dashboard.router: /dashboard/devices
app.include_router(auth.router)
app.include_router(google_auth.router)
app.include_router(invites.router)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(devices.router)
app.include_router(farms.router)
app.include_router(iot.router)
app.include_router(dashboard.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe for the hosting platform.

    Does NOT check database connectivity.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
