"""
User model

Local directory of marketplace principals. Credentials live with the identity
provider; a row only keeps the provider subject id as a back-reference.
"""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, Integer, String, Text

from marketplace.models.base import Base, utcnow


class UserType(str, Enum):
    VENDOR = "vendor"
    CUSTOMER = "customer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(
        SAEnum(UserType, name="user_type", values_callable=_enum_values),
        nullable=False,
        default=UserType.CUSTOMER,
        index=True
    )
    aws_cognito_id = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # Not unique at storage level; sign-up checks for an existing phone
    phone = Column(String(20), nullable=True, index=True)
    post_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    is_profile_updated = Column(Boolean, nullable=False, default=False)
    is_profile_reverified = Column(Boolean, nullable=False, default=False)
    profile_reverified_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        SAEnum(UserStatus, name="user_status", values_callable=_enum_values),
        nullable=False,
        default=UserStatus.PENDING,
        index=True
    )
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    remarks = Column(Text, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User id={self.id} email={self.email} type={self.type}>"
