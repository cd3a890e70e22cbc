"""
Vendor Profile Service
One vendor profile per user
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.user import User
from marketplace.models.vendor_profile import VendorProfile
from marketplace.utils.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class VendorProfileService:
    """Vendor profile store. Methods flush; callers commit."""

    @staticmethod
    async def create(db: AsyncSession, profile_data: Dict[str, Any]) -> VendorProfile:
        """
        Create the vendor profile of a user

        Args:
            db: Database session
            profile_data: Column values, must include user_id

        Returns:
            VendorProfile: The created profile

        Raises:
            NotFoundError: If the owning user does not exist
            ConflictError: If the user already has a profile
        """
        user_id = profile_data['user_id']
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError(f"User with ID {user_id} not found", fields=['user_id'], values=[user_id])

        if await VendorProfileService.find_by_user_id(db, user_id):
            raise ConflictError(
                "Vendor profile already exists for this user",
                fields=['user_id'],
                values=[user_id]
            )

        profile = VendorProfile(**profile_data)
        db.add(profile)
        user.is_profile_updated = True
        await db.flush()

        logger.info(f"Created vendor profile {profile.id} for user {user_id}")
        return profile

    @staticmethod
    async def find_by_id(db: AsyncSession, profile_id: int) -> Optional[VendorProfile]:
        return await db.get(VendorProfile, profile_id)

    @staticmethod
    async def get_by_id(db: AsyncSession, profile_id: int) -> VendorProfile:
        profile = await VendorProfileService.find_by_id(db, profile_id)
        if not profile:
            raise NotFoundError(
                f"Vendor profile with ID {profile_id} not found",
                fields=['id'],
                values=[profile_id]
            )
        return profile

    @staticmethod
    async def find_by_user_id(db: AsyncSession, user_id: int) -> Optional[VendorProfile]:
        result = await db.execute(select(VendorProfile).where(VendorProfile.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def update(
        db: AsyncSession,
        profile_id: int,
        changes: Dict[str, Any],
        updated_by: Optional[int] = None
    ) -> VendorProfile:
        profile = await VendorProfileService.get_by_id(db, profile_id)
        for field_name, value in changes.items():
            setattr(profile, field_name, value)
        profile.updated_by = updated_by

        await db.flush()
        await db.refresh(profile)
        return profile

    @staticmethod
    async def remove(db: AsyncSession, profile_id: int) -> None:
        """Delete a profile and mark the owner's profile as incomplete"""
        profile = await VendorProfileService.get_by_id(db, profile_id)
        user = await db.get(User, profile.user_id)
        if user:
            user.is_profile_updated = False
        await db.delete(profile)
        await db.flush()
        logger.info(f"Removed vendor profile {profile_id}")

    @staticmethod
    async def count(db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(VendorProfile))
        return result.scalar_one()
