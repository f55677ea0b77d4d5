from fastapi import Depends, Header, Request
from typing import Optional
import logging

from .auth import TokenClaims
from .errors import AccountError, TokenExpired, Unauthorized
from .service import AccountService

logger = logging.getLogger(__name__)


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_current_claims(
    service: AccountService = Depends(get_account_service),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> TokenClaims:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized()
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized()

    try:
        return service.authenticate(token)
    except AccountError as exc:
        reason = "expired" if isinstance(exc, TokenExpired) else "invalid"
        logger.info("[Auth] Rejected bearer token: reason=%s", reason)
        raise
