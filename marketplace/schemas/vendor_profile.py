from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from marketplace.models.user import UserType
from marketplace.schemas.base import CamelModel
from marketplace.schemas.user import OnboardedUser

MIN_ESTABLISHMENT_YEAR = 1900


def _check_establishment(value: Optional[int]) -> Optional[int]:
    if value is not None and not MIN_ESTABLISHMENT_YEAR <= value <= datetime.now().year:
        raise ValueError(
            f"establishment must be between {MIN_ESTABLISHMENT_YEAR} and {datetime.now().year}"
        )
    return value


class VendorOnboardingRequest(CamelModel):
    """User profile fields plus vendor business fields for one onboarding call"""

    # User profile
    aws_cognito_id: Optional[str] = Field(None, max_length=255)
    user_type: UserType = UserType.VENDOR
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    post_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    is_verified: bool = False
    is_profile_updated: bool = True

    # Business
    business_type_id: Optional[int] = None
    business_type: Optional[str] = Field(None, max_length=100)
    business_name: str = Field(..., min_length=1, max_length=255)
    company_name: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    designation: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=255)
    gst_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    company_details: Optional[str] = None
    whatsapp_number: Optional[str] = Field(None, max_length=20)
    working_days: Optional[str] = Field(None, max_length=100)
    employee_count: Optional[int] = Field(None, ge=1)
    payment_mode: Optional[str] = Field(None, max_length=100)
    establishment: Optional[int] = None

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator('establishment')
    @classmethod
    def establishment_year(cls, v):
        return _check_establishment(v)


class VendorProfileSummary(CamelModel):
    id: int
    business_name: Optional[str] = None
    company_name: Optional[str] = None
    business_type: Optional[str] = None
    website: Optional[str] = None


class VendorOnboardingResponse(CamelModel):
    message: str
    user: OnboardedUser
    vendor_profile: VendorProfileSummary


class VendorProfileResponse(CamelModel):
    id: int
    user_id: int
    business_type_id: Optional[int] = None
    business_type: Optional[str] = None
    business_name: Optional[str] = None
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    designation: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    website: Optional[str] = None
    business_registration_certificate: Optional[str] = None
    gst_number: Optional[str] = None
    address: Optional[str] = None
    company_details: Optional[str] = None
    whatsapp_number: Optional[str] = None
    logo: Optional[str] = None
    working_days: Optional[str] = None
    employee_count: Optional[int] = None
    payment_mode: Optional[str] = None
    establishment: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class VendorProfileUpdate(CamelModel):
    business_type_id: Optional[int] = None
    business_type: Optional[str] = Field(None, max_length=100)
    business_name: Optional[str] = Field(None, min_length=1, max_length=255)
    company_name: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    designation: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=255)
    gst_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    company_details: Optional[str] = None
    whatsapp_number: Optional[str] = Field(None, max_length=20)
    working_days: Optional[str] = Field(None, max_length=100)
    employee_count: Optional[int] = Field(None, ge=1)
    payment_mode: Optional[str] = Field(None, max_length=100)
    establishment: Optional[int] = None

    @field_validator('establishment')
    @classmethod
    def establishment_year(cls, v):
        return _check_establishment(v)
