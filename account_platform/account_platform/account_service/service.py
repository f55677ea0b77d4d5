"""
Account service: registration, login and profile management.

This is the surface the HTTP handlers call into. It owns no global state;
the user store and signing key are handed in by whoever builds it.
"""
from typing import Optional
import logging
import re

from passlib.context import CryptContext

from .auth import (
    TokenClaims,
    build_password_context,
    create_access_token,
    dummy_verify,
    hash_password,
    verify_access_token,
    verify_password,
)
from .config import Settings
from .errors import InvalidCredentials, InvalidInput, NotFound
from .models import MembershipLevel
from .schemas import AuthResult, ProfileUpdate, PublicUser
from .user_store import UserStore

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PHONE_PATTERN = re.compile(r"[0-9+\- ()]+")
# Largest value an SQLite INTEGER column holds
MAX_POINTS = 2 ** 63 - 1


class AccountService:
    def __init__(self, store: UserStore, secret_key: str, password_context: Optional[CryptContext] = None):
        self.store = store
        self.secret_key = secret_key
        self.password_context = password_context or build_password_context()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccountService":
        settings.validate_secret()
        store = UserStore(settings.database_path)
        return cls(store, settings.SECRET_KEY, build_password_context(settings.PASSWORD_HASH_ROUNDS))

    def register(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        missing = []
        if not email or not email.strip():
            missing.append("email")
        if not password:
            missing.append("password")
        if missing:
            raise InvalidInput("Email and password are required", fields=missing)
        if len(password) < PASSWORD_MIN_LENGTH:
            raise InvalidInput(f"Password must be at least {PASSWORD_MIN_LENGTH} characters", fields=["password"])

        hashed_pw = hash_password(password, self.password_context)
        record = self.store.create_user(email, hashed_pw)

        logger.info("[Register] User registered: user_id=%s", record.id)
        token = create_access_token(record.id, record.email, self.secret_key)
        return AuthResult(token=token, user=PublicUser.from_record(record))

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        if not email or not password:
            raise InvalidInput("Email and password are required", fields=[
                name for name, value in (("email", email), ("password", password)) if not value
            ])

        record = self.store.find_by_email(email)
        if record is None:
            dummy_verify(self.password_context)
            raise InvalidCredentials()
        if not verify_password(password, record.password_hash, self.password_context):
            raise InvalidCredentials()

        logger.info("[Login] Successful login: user_id=%s", record.id)
        token = create_access_token(record.id, record.email, self.secret_key)
        return AuthResult(token=token, user=PublicUser.from_record(record))

    def authenticate(self, token: str) -> TokenClaims:
        return verify_access_token(token, self.secret_key)

    def get_profile(self, user_id: str) -> PublicUser:
        record = self.store.find_by_id(user_id)
        if record is None:
            raise NotFound()
        return PublicUser.from_record(record)

    def update_profile(self, user_id: str, update: ProfileUpdate) -> PublicUser:
        violations = validate_profile_update(update)
        if violations:
            raise InvalidInput(f"Invalid value for: {', '.join(violations)}", fields=violations)

        record = self.store.update_profile(user_id, update)
        if record is None:
            raise NotFound()
        return PublicUser.from_record(record)

    def close(self) -> None:
        self.store.close()


def validate_profile_update(update: ProfileUpdate) -> list:
    """Return the API names of every field in ``update`` that holds an unacceptable value."""
    fields = update.present_fields()
    violations = []

    if "membership_level" in fields and fields["membership_level"] not in MembershipLevel.values():
        violations.append("membershipLevel")

    if "points" in fields:
        points = fields["points"]
        if isinstance(points, bool) or not isinstance(points, int) or not 0 <= points <= MAX_POINTS:
            violations.append("points")

    phone = fields.get("phone")
    if phone is not None and not PHONE_PATTERN.fullmatch(phone):
        violations.append("phone")

    return violations
