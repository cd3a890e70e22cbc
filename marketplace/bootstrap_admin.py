"""
Create the first admin account

Admin sign-up over HTTP needs an admin bearer token, so the first admin is
provisioned from the command line:

    marketplace-bootstrap-admin --email ada@example.com --phone +15550002222 \
        --first-name Ada --last-name Admin

The password is read from MARKETPLACE_ADMIN_PASSWORD, or prompted for.
The command refuses to run once any admin exists.
"""

import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import List, Optional

from pydantic import ValidationError

from marketplace.config import Settings, get_settings
from marketplace.db.database import MarketplaceDatabase
from marketplace.models.user import UserType
from marketplace.schemas.auth import SignUpRequest, SignUpResponse
from marketplace.services.auth_service import AuthService
from marketplace.services.identity_provider import CognitoIdentityProvider
from marketplace.services.user_service import UserService
from marketplace.utils.exceptions import ConflictError, MarketplaceError
from marketplace.utils.logger import setup_logging
from marketplace.utils.security import TokenVerifier

logger = logging.getLogger(__name__)

PASSWORD_ENV = "MARKETPLACE_ADMIN_PASSWORD"


async def create_first_admin(auth_service: AuthService, data: SignUpRequest) -> SignUpResponse:
    """
    Provision an admin while the directory has none

    Raises:
        ConflictError: An admin already exists
    """
    async with auth_service.database.session() as db:
        admins = await UserService.list_by_type(db, UserType.ADMIN)
    if admins:
        raise ConflictError("An admin user already exists; use the admin sign-up endpoint instead")

    return await auth_service.sign_up(data.model_copy(update={'user_type': UserType.ADMIN}))


async def _run(settings: Settings, data: SignUpRequest) -> int:
    database = MarketplaceDatabase(settings)
    await database.initialize()
    try:
        auth_service = AuthService(
            settings, database, CognitoIdentityProvider(settings), TokenVerifier(settings)
        )
        result = await create_first_admin(auth_service, data)
    except MarketplaceError as e:
        logger.error(f"Admin bootstrap failed: {e.message}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await database.close()

    print(f"Created admin user {result.user.id} ({result.user.email})")
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the first marketplace admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--phone", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    password = os.environ.get(PASSWORD_ENV) or getpass.getpass("Admin password: ")

    settings = get_settings()
    setup_logging(settings.logging_config_path, settings.log_level, settings.log_format, settings.environment)

    try:
        data = SignUpRequest(
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email.lower(),
            phone=args.phone,
            user_type=UserType.ADMIN,
            password=password,
        )
    except ValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2

    return asyncio.run(_run(settings, data))


if __name__ == "__main__":
    sys.exit(main())
