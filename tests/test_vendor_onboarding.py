"""
Tests for transactional vendor onboarding

These run against a real SQLite database so rollback behaviour is observed
rather than mocked.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from marketplace.models.user import UserType
from marketplace.schemas.vendor_profile import VendorOnboardingRequest
from marketplace.services.user_service import UserService
from marketplace.services.vendor_profile_service import VendorProfileService
from marketplace.utils.exceptions import ConflictError, InvalidFormatError, InvalidRequestError


def onboarding_request(**overrides) -> VendorOnboardingRequest:
    data = {
        "awsCognitoId": "sub-vendor-1",
        "firstName": "Vic",
        "lastName": "Vendor",
        "email": "vic@example.com",
        "phone": "2466689410",
        "country": "India",
        "city": "Pune",
        "isVerified": True,
        "businessName": "Vic Metals",
        "companyName": "Vic Metals Pvt Ltd",
        "businessType": "Manufacturer",
        "website": "https://vicmetals.example.com",
        "employeeCount": 25,
        "establishment": 2005,
    }
    data.update(overrides)
    return VendorOnboardingRequest(**data)


async def row_counts(database):
    async with database.session() as db:
        return await UserService.count(db), await VendorProfileService.count(db)


class TestVendorOnboarding:
    """Test AuthService.onboard_vendor"""

    @pytest.mark.asyncio
    async def test_creates_user_and_profile(self, auth_service, database):
        result = await auth_service.onboard_vendor(
            onboarding_request(),
            logo_url="https://cdn.example.com/vendor-logos/logo.png",
            certificate_url="https://cdn.example.com/vendor-certificates/cert.pdf",
        )

        assert result.message == "Vendor onboarding completed successfully"
        assert result.user.email == "vic@example.com"
        assert result.user.phone == "+2466689410"
        assert result.user.type == UserType.VENDOR
        assert result.user.is_verified is True
        assert result.user.is_profile_updated is True
        assert result.vendor_profile.business_name == "Vic Metals"
        assert await row_counts(database) == (1, 1)

        async with database.session() as db:
            profile = await VendorProfileService.find_by_user_id(db, result.user.id)
        assert profile.logo == "https://cdn.example.com/vendor-logos/logo.png"
        assert profile.business_registration_certificate == "https://cdn.example.com/vendor-certificates/cert.pdf"
        assert profile.created_by == 1

    @pytest.mark.asyncio
    async def test_twice_with_same_identity_conflicts(self, auth_service, database):
        await auth_service.onboard_vendor(onboarding_request())

        with pytest.raises(ConflictError) as exc_info:
            await auth_service.onboard_vendor(onboarding_request(businessName="Second Try"))

        assert exc_info.value.message == "User or vendor profile already exists"
        assert await row_counts(database) == (1, 1)

    @pytest.mark.asyncio
    async def test_reuses_existing_user_found_by_email(self, auth_service, database, create_user):
        user = await create_user(email="vic@example.com", type=UserType.VENDOR, aws_cognito_id="sub-other")

        result = await auth_service.onboard_vendor(onboarding_request(awsCognitoId=None))

        assert result.user.id == user.id
        assert await row_counts(database) == (1, 1)

    @pytest.mark.asyncio
    async def test_reuses_existing_user_found_by_identity(self, auth_service, database, create_user):
        user = await create_user(email="verified@example.com", type=UserType.VENDOR, aws_cognito_id="sub-vendor-1")

        result = await auth_service.onboard_vendor(onboarding_request())

        assert result.user.id == user.id
        assert result.user.email == "verified@example.com"

    @pytest.mark.asyncio
    async def test_profile_constraint_violation_rolls_back_user(self, auth_service, database):
        failing_create = AsyncMock(
            side_effect=IntegrityError("INSERT INTO vendor_profiles", {}, Exception("UNIQUE constraint failed"))
        )

        with patch("marketplace.services.auth_service.VendorProfileService.create", failing_create):
            with pytest.raises(ConflictError):
                await auth_service.onboard_vendor(onboarding_request(email="new@example.com"))

        failing_create.assert_awaited_once()
        assert await row_counts(database) == (0, 0)

    @pytest.mark.asyncio
    async def test_unexpected_profile_failure_rolls_back_user(self, auth_service, database):
        failing_create = AsyncMock(side_effect=RuntimeError("disk full"))

        with patch("marketplace.services.auth_service.VendorProfileService.create", failing_create):
            with pytest.raises(RuntimeError):
                await auth_service.onboard_vendor(onboarding_request(email="new@example.com"))

        assert await row_counts(database) == (0, 0)

    @pytest.mark.asyncio
    async def test_new_account_requires_email(self, auth_service, database):
        with pytest.raises(InvalidRequestError):
            await auth_service.onboard_vendor(onboarding_request(email=None, awsCognitoId="sub-unknown"))

        assert await row_counts(database) == (0, 0)

    @pytest.mark.asyncio
    async def test_invalid_phone(self, auth_service):
        with pytest.raises(InvalidFormatError):
            await auth_service.onboard_vendor(onboarding_request(phone="12-34"))

    @pytest.mark.asyncio
    async def test_admin_type_rejected(self, auth_service, database):
        with pytest.raises(InvalidRequestError):
            await auth_service.onboard_vendor(onboarding_request(userType="admin"))

        assert await row_counts(database) == (0, 0)


class TestOnboardingRequest:

    def test_employee_count_must_be_positive(self):
        with pytest.raises(ValueError):
            onboarding_request(employeeCount=0)

    def test_establishment_year_range(self):
        with pytest.raises(ValueError):
            onboarding_request(establishment=1850)
