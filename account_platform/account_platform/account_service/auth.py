from passlib.context import CryptContext
from datetime import datetime, timedelta
from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict
import logging
import jwt

from .errors import CryptoUnavailable, TokenExpired, TokenInvalid

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24
DEFAULT_HASH_ROUNDS = 29000


def build_password_context(rounds: int = DEFAULT_HASH_ROUNDS) -> CryptContext:
    # Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__default_rounds=rounds,
    )


pwd_context = build_password_context()


def hash_password(password: str, context: Optional[CryptContext] = None) -> str:
    """
    Hash a password with a fresh random salt.

    Raises:
        CryptoUnavailable: If the OS randomness source cannot produce a salt
    """
    context = context or pwd_context
    try:
        return context.hash(password)
    except (NotImplementedError, OSError) as e:
        logger.error("[Crypto] Unable to generate password salt: %s", e)
        raise CryptoUnavailable() from e


def verify_password(plain_password: str, hashed_password: str, context: Optional[CryptContext] = None) -> bool:
    context = context or pwd_context
    try:
        return context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Malformed or unrecognised digest
        return False


def dummy_verify(context: Optional[CryptContext] = None) -> None:
    """Spend the cost of one verification so unknown users are not distinguishable by timing."""
    (context or pwd_context).dummy_verify()


class TokenClaims(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["valid"] = "valid"
    user_id: str
    email: str
    expires_at: datetime


class TokenRejected(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["rejected"] = "rejected"
    reason: Literal["invalid", "expired"]
    detail: str = ""


TokenVerification = Union[TokenClaims, TokenRejected]


def create_access_token(user_id: str, email: str, secret_key: str, issued_at: Optional[datetime] = None) -> str:
    issued_at = issued_at or datetime.utcnow()
    expire = issued_at + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    payload = {"sub": user_id, "email": email, "iat": issued_at, "exp": expire}
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> TokenVerification:
    """
    Check a bearer token's signature and expiry.

    Args:
        token: Encoded JWT
        secret_key: Process-wide signing key

    Returns:
        TokenClaims when the token is valid, otherwise TokenRejected with
        reason "expired" (signature fine, expiry passed) or "invalid"
    """
    try:
        data = jwt.decode(
            token,
            secret_key,
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        return TokenRejected(reason="expired", detail=str(exc))
    except jwt.InvalidTokenError as exc:
        return TokenRejected(reason="invalid", detail=str(exc))

    email = data.get("email")
    if not isinstance(email, str):
        return TokenRejected(reason="invalid", detail="Token is missing the email claim")

    return TokenClaims(
        user_id=data["sub"],
        email=email,
        expires_at=datetime.utcfromtimestamp(data["exp"]),
    )


def verify_access_token(token: str, secret_key: str) -> TokenClaims:
    """Like decode_access_token, but raises TokenInvalid / TokenExpired on rejection."""
    result = decode_access_token(token, secret_key)
    if isinstance(result, TokenClaims):
        return result
    if result.reason == "expired":
        raise TokenExpired()
    raise TokenInvalid()
