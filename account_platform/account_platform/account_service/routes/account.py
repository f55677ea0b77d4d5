"""
Account routes - registration, login and profile management under /auth.
"""
import logging
from fastapi import APIRouter, Depends, Request, status

from ..auth import TokenClaims
from ..dependencies import get_account_service, get_current_claims
from ..errors import InvalidCredentials
from ..schemas import AuthResponse, LoginRequest, ProfileResponse, ProfileUpdate, RegisterRequest, UserResponse
from ..service import AccountService
from ..utils.event_logger import log_account_event

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, request: Request, service: AccountService = Depends(get_account_service)):
    result = service.register(payload.email, payload.password)
    log_account_event("register_success", result.user.id, result.user.email, request)
    return AuthResponse(message="User registered successfully", token=result.token, user=result.user)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, request: Request, service: AccountService = Depends(get_account_service)):
    try:
        result = service.login(payload.email, payload.password)
    except InvalidCredentials:
        log_account_event("login_failure", None, payload.email, request)
        raise

    log_account_event("login_success", result.user.id, result.user.email, request)
    return AuthResponse(message="Login successful", token=result.token, user=result.user)


@router.get("/profile", response_model=UserResponse)
def get_profile(
    claims: TokenClaims = Depends(get_current_claims),
    service: AccountService = Depends(get_account_service),
):
    return UserResponse(user=service.get_profile(claims.user_id))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    request: Request,
    claims: TokenClaims = Depends(get_current_claims),
    service: AccountService = Depends(get_account_service),
):
    user = service.update_profile(claims.user_id, payload)
    log_account_event(
        "profile_update", user.id, user.email, request,
        metadata={"fields": sorted(payload.present_fields())},
    )
    return ProfileResponse(message="Profile updated successfully", user=user)
