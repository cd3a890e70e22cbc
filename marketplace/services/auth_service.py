"""
Authentication Service
Passwordless sign-up, verification, sign-in and vendor onboarding

Coordinates the identity provider with the local user directory and vendor
profile store. Provider writes are committed as soon as they return and
cannot be rolled back, so local rows are only written once the provider
side has succeeded.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from marketplace.config import IdentityPool, Settings
from marketplace.db.database import MarketplaceDatabase
from marketplace.models.base import utcnow
from marketplace.models.user import User, UserStatus, UserType
from marketplace.schemas.auth import (
    AuthenticatedResponse,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
    TokenPair,
    VerificationCodeSentResponse,
    VerificationMethod,
    VerifyCodeResponse,
)
from marketplace.schemas.user import OnboardedUser, UserSummary
from marketplace.schemas.vendor_profile import (
    VendorOnboardingRequest,
    VendorOnboardingResponse,
    VendorProfileSummary,
)
from marketplace.services.identity_provider import (
    CognitoIdentityProvider,
    IdentityProviderError,
    ProviderErrorCode,
    TokenSet,
    pool_for_user_type,
)
from marketplace.services.user_service import UserService
from marketplace.services.vendor_profile_service import VendorProfileService
from marketplace.utils.exceptions import (
    ConflictError,
    InvalidFormatError,
    InvalidRequestError,
    MarketplaceError,
    NotFoundError,
    UnauthorizedError,
    UpstreamFailureError,
)
from marketplace.utils.logger import AuditLogger
from marketplace.utils.password_generator import generate_temporary_password
from marketplace.utils.security import TokenVerifier
from marketplace.utils.validators import is_email, is_phone_number, normalize_phone

logger = logging.getLogger(__name__)

USER_TYPE_ATTRIBUTE = "custom:user_type"
ADMIN_PASSWORDLESS_MESSAGE = "Admin users must use password authentication"


def translate_provider_error(error: IdentityProviderError) -> MarketplaceError:
    """Map a provider failure onto the domain error taxonomy"""
    code = error.code
    if code == ProviderErrorCode.IDENTITY_ALREADY_EXISTS:
        return ConflictError("User with this email already exists", fields=['email'])
    if code == ProviderErrorCode.INVALID_CREDENTIAL_FORMAT:
        return InvalidFormatError("Password does not meet requirements", fields=['password'])
    if code == ProviderErrorCode.INVALID_ATTRIBUTE:
        return InvalidFormatError(f"Invalid parameter: {error.message}")
    if code == ProviderErrorCode.CODE_MISMATCH:
        return InvalidFormatError("Invalid verification code", fields=['verificationCode'])
    if code == ProviderErrorCode.CODE_EXPIRED:
        return InvalidFormatError("Verification code has expired", fields=['verificationCode'])
    if code == ProviderErrorCode.IDENTITY_NOT_FOUND:
        return NotFoundError("User not found")
    if code in (
        ProviderErrorCode.INCORRECT_CREDENTIALS,
        ProviderErrorCode.NOT_CONFIRMED,
        ProviderErrorCode.INVALID_TOKEN,
        ProviderErrorCode.CHALLENGE_EXPIRED,
        ProviderErrorCode.INCORRECT_ANSWER,
    ):
        return UnauthorizedError(error.message)
    return UpstreamFailureError(error.message)


def _user_summary(user: User) -> UserSummary:
    return UserSummary.model_validate(user)


def _token_pair(tokens: TokenSet) -> TokenPair:
    return TokenPair(
        access_token=tokens.access_token,
        id_token=tokens.id_token,
        refresh_token=tokens.refresh_token,
    )


class AuthService:
    """Auth orchestrator"""

    def __init__(
        self,
        settings: Settings,
        database: MarketplaceDatabase,
        identity_provider: CognitoIdentityProvider,
        token_verifier: TokenVerifier,
        audit_logger: Optional[AuditLogger] = None
    ):
        self.settings = settings
        self.database = database
        self.identity_provider = identity_provider
        self.token_verifier = token_verifier
        self.audit = audit_logger or AuditLogger()

    # ------------------------------------------------------------------
    # Identifier helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _default_method(identifier: str, method: Optional[VerificationMethod]) -> VerificationMethod:
        if method:
            return method
        return VerificationMethod.EMAIL if is_email(identifier) else VerificationMethod.PHONE

    async def _resolve_username(self, identifier: str) -> Optional[str]:
        """
        Turn an email or phone into the provider username

        Usernames are emails. Phones need a provider lookup; None means no
        identity has this phone.
        """
        if is_email(identifier):
            return identifier.lower()
        if is_phone_number(identifier):
            return await self.identity_provider.find_by_phone(
                IdentityPool.GENERAL, normalize_phone(identifier)
            )
        raise InvalidFormatError(
            "Invalid email or phone number format",
            fields=['emailOrPhone'],
            values=[identifier]
        )

    async def _find_local_user(self, username: str, identifier: str) -> Optional[User]:
        async with self.database.session() as db:
            user = await UserService.find_by_email(db, username)
            if not user and is_phone_number(identifier):
                user = await UserService.find_by_phone(db, identifier)
            return user

    async def _deliver_code(self, username: str, method: VerificationMethod) -> None:
        if method == VerificationMethod.PHONE:
            await self.identity_provider.admin_resend(IdentityPool.GENERAL, username, "SMS")
        else:
            await self.identity_provider.resend_code(IdentityPool.GENERAL, username)

    # ------------------------------------------------------------------
    # Sign-up
    # ------------------------------------------------------------------

    async def sign_up(self, data: SignUpRequest) -> SignUpResponse:
        """
        Register a new user

        Admins are provisioned in the admin pool, confirmed and stored
        locally straight away. Vendors and customers are registered in the
        general pool with a throwaway password; their local row is only
        created once they verify the code.

        Args:
            data: Sign-up request

        Returns:
            SignUpResponse: Admin summary or verification-required response

        Raises:
            ConflictError: Email or phone already in the directory
            InvalidFormatError: Malformed email or phone
        """
        async with self.database.session() as db:
            existing = await UserService.find_by_email_or_phone(db, data.email, data.phone)
        if existing:
            raise ConflictError(
                "User with this email or phone already exists",
                fields=['email', 'phone'],
                values=[data.email, data.phone]
            )

        if not is_email(data.email):
            raise InvalidFormatError("Invalid email format", fields=['email'], values=[data.email])
        if not is_phone_number(data.phone):
            raise InvalidFormatError("Invalid phone number format", fields=['phone'], values=[data.phone])

        phone = normalize_phone(data.phone)
        attributes = {
            'email': data.email,
            'phone_number': phone,
            'given_name': data.first_name,
            'family_name': data.last_name,
            USER_TYPE_ATTRIBUTE: data.user_type.value,
        }

        if data.user_type == UserType.ADMIN:
            return await self._sign_up_admin(data, phone, attributes)

        pool = pool_for_user_type(data.user_type)
        try:
            registration = await self.identity_provider.register(
                pool, data.email, generate_temporary_password(), attributes
            )
        except IdentityProviderError as e:
            raise self._sign_up_error(e, data.email)

        self.audit.log_user_action(
            data.email, "sign_up", "identity", registration.subject_id,
            details={'user_type': data.user_type.value}
        )
        return SignUpResponse(
            message="User registered successfully. Please verify your email.",
            cognito_user_id=registration.subject_id,
            verification_required=True,
            code_delivery_details=registration.code_delivery,
        )

    async def _sign_up_admin(self, data: SignUpRequest, phone: str, attributes: dict) -> SignUpResponse:
        if not data.password:
            raise InvalidRequestError("Password is required for admin users", fields=['password'])

        pool = IdentityPool.ADMIN
        try:
            registration = await self.identity_provider.register(pool, data.email, data.password, attributes)
            await self.identity_provider.admin_confirm(pool, data.email)
            await self.identity_provider.mark_attribute_verified(pool, data.email, 'email_verified')
        except IdentityProviderError as e:
            raise self._sign_up_error(e, data.email)

        try:
            async with self.database.transaction() as db:
                user = await UserService.create(db, {
                    'type': UserType.ADMIN,
                    'aws_cognito_id': registration.subject_id,
                    'first_name': data.first_name,
                    'last_name': data.last_name,
                    'email': data.email,
                    'phone': phone,
                    'is_verified': True,
                    'verified_at': utcnow(),
                    'status': UserStatus.ACTIVE,
                    'created_by': self.settings.system_user_id,
                })
        except IntegrityError:
            raise ConflictError(
                "User with this email already exists",
                fields=['email'],
                values=[data.email]
            )

        self.audit.log_user_action(data.email, "admin_sign_up", "user", user.id)
        return SignUpResponse(
            message="Admin user registered successfully",
            verification_required=False,
            user=_user_summary(user),
        )

    @staticmethod
    def _sign_up_error(error: IdentityProviderError, email: str) -> MarketplaceError:
        domain_error = translate_provider_error(error)
        if error.code == ProviderErrorCode.IDENTITY_ALREADY_EXISTS:
            domain_error.values = [email]
        return domain_error

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def send_verification_code(
        self,
        identifier: str,
        method: Optional[VerificationMethod] = None
    ) -> VerificationCodeSentResponse:
        """
        Send (or resend) a verification code by email or SMS

        Raises:
            NotFoundError: No identity registered with this phone
            InvalidRequestError: The account is an admin
        """
        method = self._default_method(identifier, method)
        username = await self._resolve_username(identifier)
        if not username:
            raise NotFoundError(
                "User not found with this phone number",
                fields=['emailOrPhone'],
                values=[identifier]
            )

        local_user = await self._find_local_user(username, identifier)
        if local_user and local_user.type == UserType.ADMIN:
            raise InvalidRequestError("Admin users use password authentication")

        try:
            await self._deliver_code(username, method)
        except IdentityProviderError as e:
            raise translate_provider_error(e)

        logger.info(f"Verification code sent via {method.value}")
        return VerificationCodeSentResponse(
            message=f"Verification code sent to {method.value}",
            method=method,
        )

    async def verify_code(
        self,
        identifier: str,
        code: str,
        method: Optional[VerificationMethod] = None
    ) -> VerifyCodeResponse:
        """
        Confirm a registration code and create the local user

        This is where a self-registered vendor or customer gets its local
        row. Attributes are re-read from the provider rather than trusted
        from the client.

        Raises:
            InvalidFormatError: Code mismatch or expired code
            InvalidRequestError: The account is an admin
        """
        method = self._default_method(identifier, method)
        username = await self._resolve_username(identifier)
        if not username:
            raise NotFoundError(
                "User not found with this phone number",
                fields=['emailOrPhone'],
                values=[identifier]
            )

        local_user = await self._find_local_user(username, identifier)
        if local_user and local_user.type == UserType.ADMIN:
            raise InvalidRequestError("Admin users use password authentication")

        pool = IdentityPool.GENERAL
        try:
            await self.identity_provider.confirm_registration(pool, username, code)
            if method == VerificationMethod.PHONE:
                await self.identity_provider.mark_attribute_verified(pool, username, 'phone_number_verified')
            record = await self.identity_provider.get_user_attributes(pool, username)
        except IdentityProviderError as e:
            raise translate_provider_error(e)

        attributes = record.attributes
        # The general pool never yields admins
        user_type = (
            UserType.VENDOR
            if attributes.get(USER_TYPE_ATTRIBUTE) == UserType.VENDOR.value
            else UserType.CUSTOMER
        )

        try:
            async with self.database.transaction() as db:
                user = await UserService.create(db, {
                    'type': user_type,
                    'aws_cognito_id': record.subject_id,
                    'first_name': attributes.get('given_name'),
                    'last_name': attributes.get('family_name'),
                    'email': (attributes.get('email') or username).lower(),
                    'phone': attributes.get('phone_number'),
                    'is_verified': True,
                    'verified_at': utcnow(),
                    'created_by': self.settings.system_user_id,
                })
        except IntegrityError:
            raise ConflictError("User already exists", fields=['email'], values=[username])

        self.audit.log_user_action(username, "verify_code", "user", user.id, details={'method': method.value})
        return VerifyCodeResponse(
            message="Verification successful. Account created.",
            user=_user_summary(user),
        )

    # ------------------------------------------------------------------
    # Passwordless sign-in
    # ------------------------------------------------------------------

    async def sign_in(self, identifier: str) -> SignInResponse:
        """
        Start a passwordless sign-in

        Opens a custom challenge with the provider and sends the code the
        user will answer it with. The code goes to whichever channel the
        identifier is: email identifiers get an email, phones get an SMS.

        Raises:
            UnauthorizedError: Unknown user or provider failure
            InvalidRequestError: The account is an admin
        """
        method = self._default_method(identifier, None)
        username = await self._resolve_username(identifier)
        if not username:
            raise UnauthorizedError("User not found")

        user = await self._find_local_user(username, identifier)
        if not user:
            raise UnauthorizedError("User not found")
        if user.type == UserType.ADMIN:
            raise InvalidRequestError(ADMIN_PASSWORDLESS_MESSAGE)

        try:
            challenge = await self.identity_provider.initiate_custom_auth(IdentityPool.GENERAL, username)
            await self._deliver_code(username, method)
        except IdentityProviderError as e:
            raise UnauthorizedError(e.message)

        self.audit.log_user_action(username, "sign_in_started", "user", user.id, details={'method': method.value})
        return SignInResponse(
            message=f"Verification code sent to your {method.value}",
            session=challenge.session,
            challenge_name=challenge.challenge_name,
            method=method,
        )

    async def complete_sign_in(self, identifier: str, code: str, session: str) -> AuthenticatedResponse:
        """
        Answer the sign-in challenge and issue tokens

        Raises:
            UnauthorizedError: Wrong or expired code, unknown user
            InvalidRequestError: The account is an admin
        """
        username = await self._resolve_username(identifier)
        if not username:
            raise UnauthorizedError("User not found")

        user = await self._find_local_user(username, identifier)
        if not user:
            raise UnauthorizedError("User not found in local directory")
        if user.type == UserType.ADMIN:
            raise InvalidRequestError(ADMIN_PASSWORDLESS_MESSAGE)

        try:
            tokens = await self.identity_provider.respond_to_challenge(
                IdentityPool.GENERAL, username, session, code
            )
        except IdentityProviderError as e:
            raise UnauthorizedError(e.message)

        self.audit.log_user_action(username, "sign_in", "user", user.id)
        return AuthenticatedResponse(
            message="Sign in successful",
            tokens=_token_pair(tokens),
            user=_user_summary(user),
        )

    # ------------------------------------------------------------------
    # Admin password sign-in
    # ------------------------------------------------------------------

    async def admin_sign_in(self, email: str, password: str) -> AuthenticatedResponse:
        """
        Exchange admin credentials for tokens

        Raises:
            UnauthorizedError: Not an admin, or credentials rejected
        """
        async with self.database.session() as db:
            user = await UserService.find_by_email(db, email)
        if not user or user.type != UserType.ADMIN:
            raise UnauthorizedError("Invalid credentials or user is not an admin")

        try:
            tokens = await self.identity_provider.password_auth(IdentityPool.ADMIN, email, password)
        except IdentityProviderError as e:
            messages = {
                ProviderErrorCode.INCORRECT_CREDENTIALS: "Incorrect email or password",
                ProviderErrorCode.IDENTITY_NOT_FOUND: "User not found in identity provider",
                ProviderErrorCode.NOT_CONFIRMED: "User is not confirmed",
            }
            logger.warning(f"Admin sign in failed for user {user.id}: {e.code.value}")
            raise UnauthorizedError(messages.get(e.code, "Invalid credentials"))

        self.audit.log_user_action(email, "admin_sign_in", "user", user.id)
        return AuthenticatedResponse(
            message="Admin sign in successful",
            tokens=_token_pair(tokens),
            user=_user_summary(user),
        )

    # ------------------------------------------------------------------
    # Vendor onboarding
    # ------------------------------------------------------------------

    async def onboard_vendor(
        self,
        data: VendorOnboardingRequest,
        logo_url: Optional[str] = None,
        certificate_url: Optional[str] = None
    ) -> VendorOnboardingResponse:
        """
        Create (or reuse) the vendor's user and its vendor profile

        Both writes happen in one transaction; any failure rolls back the
        user row created by this call as well.

        Args:
            data: User profile and business fields
            logo_url: Public URL of the uploaded logo
            certificate_url: Public URL of the uploaded registration certificate

        Returns:
            VendorOnboardingResponse: Created user and profile summaries

        Raises:
            ConflictError: The user or its vendor profile already exists
        """
        if data.user_type == UserType.ADMIN:
            raise InvalidRequestError("Admin accounts cannot be onboarded as vendors", fields=['userType'])
        if data.email and not is_email(data.email):
            raise InvalidFormatError("Invalid email format", fields=['email'], values=[data.email])
        if data.phone and not is_phone_number(data.phone):
            raise InvalidFormatError("Invalid phone number format", fields=['phone'], values=[data.phone])

        system_user = self.settings.system_user_id
        try:
            async with self.database.transaction() as db:
                user = None
                if data.aws_cognito_id:
                    user = await UserService.find_by_cognito_id(db, data.aws_cognito_id)
                if not user and data.email:
                    user = await UserService.find_by_email(db, data.email)

                if not user:
                    if not data.email:
                        raise InvalidRequestError(
                            "Email is required to create a new vendor account",
                            fields=['email']
                        )
                    user = await UserService.create(db, {
                        'type': data.user_type,
                        'aws_cognito_id': data.aws_cognito_id,
                        'first_name': data.first_name,
                        'last_name': data.last_name,
                        'email': data.email,
                        'phone': normalize_phone(data.phone) if data.phone else None,
                        'post_code': data.post_code,
                        'country': data.country,
                        'city': data.city,
                        'is_verified': data.is_verified,
                        'verified_at': utcnow() if data.is_verified else None,
                        'is_profile_updated': data.is_profile_updated,
                        'created_by': system_user,
                    })

                profile = await VendorProfileService.create(db, {
                    'user_id': user.id,
                    'business_type_id': data.business_type_id,
                    'business_type': data.business_type,
                    'business_name': data.business_name,
                    'company_name': data.company_name,
                    'contact_person': data.contact_person,
                    'designation': data.designation,
                    'country': data.country,
                    'city': data.city,
                    'website': data.website,
                    'business_registration_certificate': certificate_url,
                    'gst_number': data.gst_number,
                    'address': data.address,
                    'company_details': data.company_details,
                    'whatsapp_number': data.whatsapp_number,
                    'logo': logo_url,
                    'working_days': data.working_days,
                    'employee_count': data.employee_count,
                    'payment_mode': data.payment_mode,
                    'establishment': data.establishment,
                    'created_by': system_user,
                })
        except ConflictError as e:
            raise ConflictError("User or vendor profile already exists", fields=e.fields, values=e.values)
        except IntegrityError as e:
            logger.warning(f"Vendor onboarding hit a uniqueness violation: {e.orig}")
            raise ConflictError("User or vendor profile already exists")

        self.audit.log_user_action(
            user.email, "vendor_onboarding", "vendor_profile", profile.id,
            details={'user_id': user.id}
        )
        return VendorOnboardingResponse(
            message="Vendor onboarding completed successfully",
            user=OnboardedUser.model_validate(user),
            vendor_profile=VendorProfileSummary.model_validate(profile),
        )

    # ------------------------------------------------------------------
    # Bearer token validation
    # ------------------------------------------------------------------

    async def validate_user(self, token: str) -> User:
        """
        Resolve a bearer access token to the local user

        The signature is verified against both pools' keys first; the pool
        that owns the key decides the tenant.

        Raises:
            UnauthorizedError: Invalid token or no matching local user
        """
        pool, claims = await self.token_verifier.verify(token)

        try:
            record = await self.identity_provider.get_user_by_token(token)
        except IdentityProviderError as e:
            logger.info(f"Identity provider rejected token: {e.code.value}")
            raise UnauthorizedError("Invalid or expired token")

        if record.subject_id != claims.get('sub'):
            raise UnauthorizedError("Invalid or expired token")

        async with self.database.session() as db:
            user = await UserService.find_by_cognito_id(db, record.subject_id)
        if not user:
            raise UnauthorizedError("User not found in local directory")

        if (user.type == UserType.ADMIN) != (pool == IdentityPool.ADMIN):
            logger.warning(f"Token pool {pool.value} does not match type of user {user.id}")
            raise UnauthorizedError("Invalid or expired token")

        return user
