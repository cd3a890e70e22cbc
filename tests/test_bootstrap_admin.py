"""
Tests for first-admin provisioning
"""

from unittest.mock import patch

import pytest

from marketplace.bootstrap_admin import create_first_admin, main, parse_args
from marketplace.config import IdentityPool
from marketplace.models.user import UserType
from marketplace.schemas.auth import SignUpRequest
from marketplace.utils.exceptions import ConflictError


def admin_request(**overrides) -> SignUpRequest:
    data = {
        "first_name": "Ada",
        "last_name": "Admin",
        "email": "ada@example.com",
        "phone": "+15550002222",
        "user_type": UserType.ADMIN,
        "password": "Adm1n!Password",
    }
    data.update(overrides)
    return SignUpRequest(**data)


class TestCreateFirstAdmin:

    @pytest.mark.asyncio
    async def test_creates_admin_in_empty_directory(self, auth_service, identity_provider):
        result = await create_first_admin(auth_service, admin_request())

        assert result.verification_required is False
        assert result.user.type == UserType.ADMIN
        identity_provider.register.assert_awaited_once()
        assert identity_provider.register.call_args.args[0] == IdentityPool.ADMIN

    @pytest.mark.asyncio
    async def test_refuses_when_admin_exists(self, auth_service, identity_provider, create_user):
        await create_user(email="root@example.com", type=UserType.ADMIN)

        with pytest.raises(ConflictError):
            await create_first_admin(auth_service, admin_request())

        identity_provider.register.assert_not_called()

    @pytest.mark.asyncio
    async def test_forces_admin_type(self, auth_service, identity_provider):
        result = await create_first_admin(auth_service, admin_request(user_type=UserType.CUSTOMER))

        assert result.user.type == UserType.ADMIN


class TestCommandLine:

    def test_parse_args(self):
        args = parse_args([
            "--email", "ada@example.com",
            "--phone", "+15550002222",
            "--first-name", "Ada",
            "--last-name", "Admin",
        ])

        assert args.email == "ada@example.com"
        assert args.first_name == "Ada"

    def test_short_password_rejected_before_connecting(self, monkeypatch, settings):
        monkeypatch.setenv("MARKETPLACE_ADMIN_PASSWORD", "short")

        with patch("marketplace.bootstrap_admin.get_settings", return_value=settings), \
                patch("marketplace.bootstrap_admin.setup_logging"), \
                patch("marketplace.bootstrap_admin.asyncio.run") as run:
            code = main([
                "--email", "ada@example.com",
                "--phone", "+15550002222",
                "--first-name", "Ada",
                "--last-name", "Admin",
            ])

        assert code == 2
        run.assert_not_called()
