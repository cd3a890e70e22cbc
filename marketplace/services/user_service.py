"""
User Service
Local user directory operations
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.base import utcnow
from marketplace.models.user import User, UserStatus, UserType
from marketplace.models.vendor_profile import VendorProfile
from marketplace.utils.exceptions import ConflictError, NotFoundError
from marketplace.utils.validators import phone_variants

logger = logging.getLogger(__name__)


class UserService:
    """
    User directory operations

    Methods flush but never commit; the caller owns the transaction.
    """

    @staticmethod
    async def create(db: AsyncSession, user_data: Dict[str, Any]) -> User:
        """
        Create a user row

        Args:
            db: Database session
            user_data: Column values for the new user

        Returns:
            User: The created user with its id assigned

        Raises:
            ConflictError: If the email or external identity id is taken
        """
        email = user_data['email']
        if await UserService.find_by_email(db, email):
            raise ConflictError(
                "User with this email already exists",
                fields=['email'],
                values=[email]
            )

        cognito_id = user_data.get('aws_cognito_id')
        if cognito_id and await UserService.find_by_cognito_id(db, cognito_id):
            raise ConflictError(
                "User with this Cognito ID already exists",
                fields=['aws_cognito_id'],
                values=[cognito_id]
            )

        user = User(**user_data)
        db.add(user)
        await db.flush()

        logger.info(f"Created {user.type.value} user {user.id}")
        return user

    @staticmethod
    async def find_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> User:
        user = await UserService.find_by_id(db, user_id)
        if not user:
            raise NotFoundError(f"User with ID {user_id} not found", fields=['id'], values=[user_id])
        return user

    @staticmethod
    async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_cognito_id(db: AsyncSession, cognito_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.aws_cognito_id == cognito_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_phone(db: AsyncSession, phone: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.phone.in_(phone_variants(phone))).order_by(User.id).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_email_or_phone(
        db: AsyncSession,
        email: Optional[str],
        phone: Optional[str]
    ) -> Optional[User]:
        """Find a user matching either the email or the phone (raw or '+'-prefixed)"""
        conditions = []
        if email:
            conditions.append(func.lower(User.email) == email.lower())
        if phone:
            conditions.append(User.phone.in_(phone_variants(phone)))
        if not conditions:
            return None

        result = await db.execute(select(User).where(or_(*conditions)).order_by(User.id).limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    async def update_status(
        db: AsyncSession,
        user_id: int,
        status: UserStatus,
        updated_by: Optional[int] = None,
        remarks: Optional[str] = None
    ) -> User:
        """
        Change lifecycle status

        ACTIVE also marks the user verified; SUSPENDED clears verification
        and records the rejection time and remarks.
        """
        user = await UserService.get_by_id(db, user_id)
        now = utcnow()

        user.status = status
        user.updated_by = updated_by
        if status == UserStatus.ACTIVE:
            user.is_verified = True
            user.verified_at = now
        elif status == UserStatus.SUSPENDED:
            user.is_verified = False
            user.rejected_at = now
            user.remarks = remarks
        elif remarks is not None:
            user.remarks = remarks

        await db.flush()
        await db.refresh(user)

        logger.info(f"User {user_id} status changed to {status.value}")
        return user

    @staticmethod
    async def update_verification_status(
        db: AsyncSession,
        user_id: int,
        is_verified: bool,
        updated_by: Optional[int] = None
    ) -> User:
        user = await UserService.get_by_id(db, user_id)
        user.is_verified = is_verified
        user.verified_at = utcnow() if is_verified else None
        user.updated_by = updated_by

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def remove(db: AsyncSession, user_id: int) -> None:
        """Delete a user and its vendor profile"""
        user = await UserService.get_by_id(db, user_id)
        await db.execute(delete(VendorProfile).where(VendorProfile.user_id == user_id))
        await db.delete(user)
        await db.flush()
        logger.info(f"Removed user {user_id}")

    @staticmethod
    async def list_by_type(db: AsyncSession, user_type: UserType) -> List[User]:
        result = await db.execute(
            select(User).where(User.type == user_type).order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_vendors(db: AsyncSession) -> List[User]:
        """Vendor users that have completed a vendor profile"""
        result = await db.execute(
            select(User)
            .join(VendorProfile, VendorProfile.user_id == User.id)
            .where(User.type == UserType.VENDOR)
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def count(db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(User))
        return result.scalar_one()
