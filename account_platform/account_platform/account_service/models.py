from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from datetime import datetime
from enum import Enum
from .db import Base
import uuid


class MembershipLevel(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"

    @classmethod
    def values(cls) -> list:
        return [level.value for level in cls]


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column("password", String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    # Profile
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    membership_level = Column(String, default=MembershipLevel.BRONZE.value, nullable=False)
    points = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        CheckConstraint(
            "membership_level IN ('Bronze', 'Silver', 'Gold', 'Platinum')",
            name="ck_users_membership_level",
        ),
        CheckConstraint("length(password) > 0", name="ck_users_password_not_empty"),
    )


# Columns present in the first on-disk shape of the users table
CORE_COLUMNS = ("id", "email", "password", "created_at")

# Columns added later, with the SQL used to add and backfill each one
PROFILE_COLUMNS = {
    "first_name": "VARCHAR",
    "last_name": "VARCHAR",
    "phone": "VARCHAR",
    "membership_level": f"VARCHAR NOT NULL DEFAULT '{MembershipLevel.BRONZE.value}'",
    "points": "INTEGER NOT NULL DEFAULT 0",
}
