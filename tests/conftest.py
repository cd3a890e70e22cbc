"""
Pytest configuration for marketplace tests
"""

import os
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

os.environ.setdefault("ENVIRONMENT", "testing")

from marketplace.config import Settings
from marketplace.db.database import MarketplaceDatabase
from marketplace.models.user import UserStatus, UserType
from marketplace.services.auth_service import AuthService
from marketplace.services.identity_provider import (
    ChallengeSession,
    CognitoIdentityProvider,
    IdentityRecord,
    RegistrationResult,
    TokenSet,
)
from marketplace.services.user_service import UserService
from marketplace.utils.security import TokenVerifier


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test."
    )


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite database"""
    return Settings(
        _env_file=None,
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}",
        db_create_tables=True,
        aws_region="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        aws_cognito_user_pool_id="us-east-1_general",
        aws_cognito_client_id="general-client",
        aws_cognito_client_secret="general-secret",
        aws_cognito_admin_user_pool_id="us-east-1_admin",
        aws_cognito_admin_client_id="admin-client",
        aws_cognito_admin_client_secret="admin-secret",
        aws_s3_bucket_name="marketplace-uploads",
    )


@pytest_asyncio.fixture
async def database(settings):
    """Initialized database with tables created"""
    db = MarketplaceDatabase(settings)
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def identity_provider():
    """Identity provider double with successful defaults"""
    provider = MagicMock(spec=CognitoIdentityProvider)
    provider.register.return_value = RegistrationResult(
        subject_id="sub-123",
        user_confirmed=False,
        code_delivery={
            "Destination": "j***@e***.com",
            "DeliveryMedium": "EMAIL",
            "AttributeName": "email",
        },
    )
    provider.admin_confirm.return_value = None
    provider.mark_attribute_verified.return_value = None
    provider.confirm_registration.return_value = None
    provider.resend_code.return_value = {"DeliveryMedium": "EMAIL"}
    provider.admin_resend.return_value = None
    provider.find_by_phone.return_value = "jane@example.com"
    provider.get_user_attributes.return_value = IdentityRecord(
        username="jane@example.com",
        subject_id="sub-123",
        attributes={
            "sub": "sub-123",
            "email": "jane@example.com",
            "phone_number": "+2466689410",
            "given_name": "Jane",
            "family_name": "Doe",
            "custom:user_type": "vendor",
        },
    )
    provider.initiate_custom_auth.return_value = ChallengeSession(
        session="challenge-session",
        challenge_name="CUSTOM_CHALLENGE",
    )
    provider.respond_to_challenge.return_value = TokenSet(
        access_token="access-token",
        id_token="id-token",
        refresh_token="refresh-token",
    )
    provider.password_auth.return_value = TokenSet(
        access_token="admin-access-token",
        id_token="admin-id-token",
        refresh_token="admin-refresh-token",
    )
    return provider


@pytest.fixture
def token_verifier():
    return MagicMock(spec=TokenVerifier)


@pytest.fixture
def auth_service(settings, database, identity_provider, token_verifier):
    return AuthService(settings, database, identity_provider, token_verifier)


@pytest.fixture
def create_user(database):
    """Insert a user row directly into the directory"""

    async def _create(**overrides):
        data = {
            "type": UserType.CUSTOMER,
            "email": "existing@example.com",
            "phone": "+15550001111",
            "first_name": "Existing",
            "last_name": "User",
            "is_verified": True,
            "status": UserStatus.ACTIVE,
        }
        data.update(overrides)
        async with database.transaction() as db:
            return await UserService.create(db, data)

    return _create
