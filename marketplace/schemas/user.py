from datetime import datetime
from typing import Optional

from pydantic import Field

from marketplace.models.user import UserStatus, UserType
from marketplace.schemas.base import CamelModel


class UserSummary(CamelModel):
    """Public profile returned by the auth flows"""
    id: int
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: UserType


class OnboardedUser(CamelModel):
    id: int
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    type: UserType
    is_verified: bool
    is_profile_updated: bool


class UserResponse(CamelModel):
    id: int
    type: UserType
    aws_cognito_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    post_code: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    is_verified: bool
    verified_at: Optional[datetime] = None
    is_profile_updated: bool
    status: UserStatus
    remarks: Optional[str] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserStatusUpdate(CamelModel):
    status: UserStatus
    remarks: Optional[str] = Field(None, max_length=1000)


class MessageResponse(CamelModel):
    message: str
