"""
Error taxonomy for the account service.

Every error carries the HTTP status the boundary maps it to, so the
FastAPI app can translate them through a single exception handler.
"""
from typing import List, Optional


class AccountError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidInput(AccountError):
    status_code = 400
    message = "Invalid input"

    def __init__(self, message: Optional[str] = None, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class DuplicateEmail(AccountError):
    status_code = 400
    message = "User already exists with this email"


class InvalidCredentials(AccountError):
    status_code = 401
    message = "Invalid credentials"


class Unauthorized(AccountError):
    status_code = 401
    message = "Access token required"


class TokenInvalid(AccountError):
    status_code = 403
    message = "Invalid or expired token"


class TokenExpired(AccountError):
    status_code = 403
    message = "Invalid or expired token"


class NotFound(AccountError):
    status_code = 404
    message = "User not found"


class StorageFailure(AccountError):
    status_code = 500
    message = "Storage failure"


class CryptoUnavailable(AccountError):
    status_code = 500
    message = "Secure randomness unavailable"
