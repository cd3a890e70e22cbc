"""
Authentication Routes
Sign-up, verification codes, passwordless sign-in, admin sign-in and vendor onboarding
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError

from marketplace.models.user import UserType
from marketplace.schemas.auth import (
    AdminSignInRequest,
    AuthenticatedResponse,
    CompleteSignInRequest,
    SendVerificationCodeRequest,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
    VerificationCodeSentResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from marketplace.schemas.user import UserResponse
from marketplace.schemas.vendor_profile import VendorOnboardingRequest, VendorOnboardingResponse
from marketplace.utils.dependencies import AuthServiceDep, CurrentUser, FileStorageDep, OptionalUser
from marketplace.utils.exceptions import ForbiddenError, InvalidFormatError, MarketplaceError, UnauthorizedError
from marketplace.utils.file_storage import CERTIFICATE_EXTENSIONS, LOGO_EXTENSIONS

logger = logging.getLogger(__name__)

router = APIRouter()


async def _discard_uploads(file_storage, urls):
    # Nothing references these objects once onboarding has rolled back
    for url in urls:
        await file_storage.discard(url)


@router.post(
    "/sign-up",
    response_model=SignUpResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED
)
async def sign_up(data: SignUpRequest, auth_service: AuthServiceDep, current_user: OptionalUser):
    """
    Register a vendor, customer or admin

    Vendors and customers receive a verification code. Admin accounts can
    only be created by an authenticated admin.
    """
    if data.user_type == UserType.ADMIN:
        if current_user is None:
            raise UnauthorizedError("Authentication required to create admin users")
        if current_user.type != UserType.ADMIN:
            raise ForbiddenError("Only admins can create admin users")

    return await auth_service.sign_up(data)


@router.post("/admin/sign-in", response_model=AuthenticatedResponse)
async def admin_sign_in(data: AdminSignInRequest, auth_service: AuthServiceDep):
    """Password sign-in for admins"""
    return await auth_service.admin_sign_in(data.email, data.password)


@router.post("/send-verification-code", response_model=VerificationCodeSentResponse)
async def send_verification_code(data: SendVerificationCodeRequest, auth_service: AuthServiceDep):
    return await auth_service.send_verification_code(data.email_or_phone, data.verification_method)


@router.post("/resend-code", response_model=VerificationCodeSentResponse)
async def resend_code(data: SendVerificationCodeRequest, auth_service: AuthServiceDep):
    return await auth_service.send_verification_code(data.email_or_phone, data.verification_method)


@router.post("/verify-code", response_model=VerifyCodeResponse, status_code=status.HTTP_201_CREATED)
async def verify_code(data: VerifyCodeRequest, auth_service: AuthServiceDep):
    """
    Confirm a verification code

    Creates the local account for a self-registered vendor or customer.
    """
    return await auth_service.verify_code(
        data.email_or_phone,
        data.verification_code,
        data.verification_method
    )


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(data: SignInRequest, auth_service: AuthServiceDep):
    """Start passwordless sign-in; the code goes to the identifier's own channel"""
    return await auth_service.sign_in(data.email_or_phone)


@router.post("/complete-sign-in", response_model=AuthenticatedResponse)
async def complete_sign_in(data: CompleteSignInRequest, auth_service: AuthServiceDep):
    return await auth_service.complete_sign_in(data.email_or_phone, data.code, data.session)


@router.post(
    "/vendor-onboarding",
    response_model=VendorOnboardingResponse,
    status_code=status.HTTP_201_CREATED
)
async def vendor_onboarding(
    auth_service: AuthServiceDep,
    file_storage: FileStorageDep,
    business_name: str = Form(...),
    aws_cognito_id: Optional[str] = Form(None),
    user_type: UserType = Form(UserType.VENDOR),
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    post_code: Optional[str] = Form(None),
    country: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    is_verified: bool = Form(False),
    is_profile_updated: bool = Form(True),
    business_type_id: Optional[int] = Form(None),
    business_type: Optional[str] = Form(None),
    company_name: Optional[str] = Form(None),
    contact_person: Optional[str] = Form(None),
    designation: Optional[str] = Form(None),
    website: Optional[str] = Form(None),
    gst_number: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    company_details: Optional[str] = Form(None),
    whatsapp_number: Optional[str] = Form(None),
    working_days: Optional[str] = Form(None),
    employee_count: Optional[int] = Form(None),
    payment_mode: Optional[str] = Form(None),
    establishment: Optional[int] = Form(None),
    logo: Optional[UploadFile] = File(None),
    certificate: Optional[UploadFile] = File(None)
):
    """
    Complete vendor onboarding

    Multipart form with optional logo and certificate files. Files are
    uploaded first; the user and vendor profile are then written in one
    transaction.
    """
    form_values = {
        'business_name': business_name,
        'aws_cognito_id': aws_cognito_id,
        'user_type': user_type,
        'first_name': first_name,
        'last_name': last_name,
        'email': email,
        'phone': phone,
        'post_code': post_code,
        'country': country,
        'city': city,
        'is_verified': is_verified,
        'is_profile_updated': is_profile_updated,
        'business_type_id': business_type_id,
        'business_type': business_type,
        'company_name': company_name,
        'contact_person': contact_person,
        'designation': designation,
        'website': website,
        'gst_number': gst_number,
        'address': address,
        'company_details': company_details,
        'whatsapp_number': whatsapp_number,
        'working_days': working_days,
        'employee_count': employee_count,
        'payment_mode': payment_mode,
        'establishment': establishment,
    }
    try:
        data = VendorOnboardingRequest(**form_values)
    except ValidationError as e:
        fields = [str(error['loc'][0]) for error in e.errors() if error.get('loc')]
        raise InvalidFormatError(e.errors()[0]['msg'], fields=fields)

    uploaded = []
    try:
        logo_url = None
        certificate_url = None
        # Browsers send an empty part when no file is chosen
        if logo is not None and logo.filename:
            logo_url = await file_storage.upload(logo, "vendor-logos", LOGO_EXTENSIONS, "logo")
            uploaded.append(logo_url)
        if certificate is not None and certificate.filename:
            certificate_url = await file_storage.upload(
                certificate, "vendor-certificates", CERTIFICATE_EXTENSIONS, "certificate"
            )
            uploaded.append(certificate_url)

        result = await auth_service.onboard_vendor(data, logo_url, certificate_url)
        logger.info(f"Vendor onboarded: user {result.user.id}, profile {result.vendor_profile.id}")
        return result

    except MarketplaceError:
        await _discard_uploads(file_storage, uploaded)
        raise
    except Exception as e:
        logger.error(f"Vendor onboarding failed: {e}")
        await _discard_uploads(file_storage, uploaded)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Vendor onboarding failed"
        )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser):
    """Profile of the authenticated user"""
    return current_user
