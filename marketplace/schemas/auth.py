"""
Request and response models for the auth endpoints

Each endpoint has its own explicitly defined request model.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from marketplace.models.user import UserType
from marketplace.schemas.base import CamelModel
from marketplace.schemas.user import UserSummary


class VerificationMethod(str, Enum):
    EMAIL = "email"
    PHONE = "phone"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class SignUpRequest(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    # Shape is checked by the auth service so failures carry field names
    email: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=20)
    user_type: UserType = UserType.CUSTOMER
    password: Optional[str] = Field(None, min_length=8, max_length=256)

    @field_validator('first_name', 'last_name', 'phone', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return _strip(v)

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class SignUpResponse(CamelModel):
    message: str
    cognito_user_id: Optional[str] = None
    verification_required: bool = False
    code_delivery_details: Optional[Dict[str, Any]] = None
    user: Optional[UserSummary] = None


class SendVerificationCodeRequest(CamelModel):
    email_or_phone: str = Field(..., min_length=1, max_length=255)
    verification_method: Optional[VerificationMethod] = None

    @field_validator('email_or_phone', mode='before')
    @classmethod
    def strip_identifier(cls, v):
        return _strip(v)


class VerificationCodeSentResponse(CamelModel):
    message: str
    method: VerificationMethod


class VerifyCodeRequest(CamelModel):
    email_or_phone: str = Field(..., min_length=1, max_length=255)
    verification_code: str = Field(..., min_length=1, max_length=20)
    verification_method: Optional[VerificationMethod] = None

    @field_validator('email_or_phone', 'verification_code', mode='before')
    @classmethod
    def strip_values(cls, v):
        return _strip(v)


class VerifyCodeResponse(CamelModel):
    message: str
    user: UserSummary


class SignInRequest(CamelModel):
    email_or_phone: str = Field(..., min_length=1, max_length=255)
    # Accepted but not used; the identifier decides the channel
    verification_method: Optional[VerificationMethod] = None

    @field_validator('email_or_phone', mode='before')
    @classmethod
    def strip_identifier(cls, v):
        return _strip(v)


class SignInResponse(CamelModel):
    message: str
    session: Optional[str] = None
    challenge_name: Optional[str] = None
    method: VerificationMethod


class CompleteSignInRequest(CamelModel):
    email_or_phone: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=20)
    session: str = Field(..., min_length=1)

    @field_validator('email_or_phone', 'code', mode='before')
    @classmethod
    def strip_values(cls, v):
        return _strip(v)


class AdminSignInRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class TokenPair(CamelModel):
    access_token: str
    id_token: str
    refresh_token: Optional[str] = None


class AuthenticatedResponse(CamelModel):
    message: str
    tokens: TokenPair
    user: UserSummary
