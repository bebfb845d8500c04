"""
Account routes: registration and login.

Both endpoints accept every common method so that the service itself answers
non-POST requests with a structured 405, and read the raw body so malformed
JSON and missing fields map to distinct errors.
"""

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from ..models import ErrorResponse, LoginResponse, RegisterResponse
from .passwords import PasswordHasher
from .service import AuthService


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/api",
    tags=["accounts"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_405_METHOD_NOT_ALLOWED: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
)

ACCEPTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


# =============================================================================
# Dependencies
# =============================================================================

def get_auth_service(request: Request) -> AuthService:
    """
    Build the auth service from the collaborators on app state.

    ``credential_store`` is None when the database is disabled or could not
    be reached at startup.
    """
    state = request.app.state
    hasher: PasswordHasher = state.password_hasher
    return AuthService(getattr(state, "credential_store", None), hasher)


# =============================================================================
# Endpoints
# =============================================================================

@auth_router.api_route(
    "/register",
    methods=ACCEPTED_METHODS,
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
)
async def register(request: Request, service: AuthService = Depends(get_auth_service)):
    """
    Create an account.

    Body: ``{"nom", "prenom", "sexe", "password"}``; the password needs at
    least 6 characters.
    """
    body = await request.body()
    user_id = await run_in_threadpool(service.register, request.method, body)
    return RegisterResponse(id_utilisateur=user_id)


@auth_router.api_route(
    "/login",
    methods=ACCEPTED_METHODS,
    response_model=LoginResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
async def login(request: Request, service: AuthService = Depends(get_auth_service)):
    """
    Check credentials and return the profile.

    Body: ``{"id_utilisateur", "password"}``.
    """
    body = await request.body()
    profile = await run_in_threadpool(service.login, request.method, body)
    return LoginResponse(user=profile)
