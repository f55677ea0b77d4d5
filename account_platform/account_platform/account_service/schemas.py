from pydantic import BaseModel, ConfigDict, StrictInt
from pydantic.alias_generators import to_camel
from datetime import datetime

from typing import Optional


class UserRecord(BaseModel):
    """Detached copy of a stored user, including the password hash. Never leaves the service."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    email: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    membership_level: str
    points: int
    created_at: datetime


class PublicUser(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    membership_level: str
    points: int
    created_at: datetime

    @classmethod
    def from_record(cls, record: UserRecord) -> "PublicUser":
        return cls.model_validate(record, from_attributes=True)


class ProfileUpdate(BaseModel):
    """Sparse profile update; only fields present in ``model_fields_set`` are applied."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    membership_level: Optional[str] = None
    points: Optional[StrictInt] = None

    def present_fields(self) -> dict:
        return self.model_dump(exclude_unset=True)


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResult(BaseModel):
    token: str
    user: PublicUser


class AuthResponse(BaseModel):
    message: str
    token: str
    user: PublicUser


class UserResponse(BaseModel):
    user: PublicUser


class ProfileResponse(BaseModel):
    message: str
    user: PublicUser
