"""
Vendor Profile Routes
"""

import logging

from fastapi import APIRouter

from marketplace.models.user import User, UserType
from marketplace.models.vendor_profile import VendorProfile
from marketplace.schemas.user import MessageResponse
from marketplace.schemas.vendor_profile import VendorProfileResponse, VendorProfileUpdate
from marketplace.services.vendor_profile_service import VendorProfileService
from marketplace.utils.dependencies import AdminUser, CurrentUser, DatabaseDep
from marketplace.utils.exceptions import ForbiddenError, NotFoundError
from marketplace.utils.logger import get_audit_logger

logger = logging.getLogger(__name__)

router = APIRouter()
audit = get_audit_logger()


def _ensure_can_access(profile: VendorProfile, user: User) -> None:
    if user.type != UserType.ADMIN and profile.user_id != user.id:
        raise ForbiddenError("Not allowed to access this vendor profile")


@router.get("/me", response_model=VendorProfileResponse)
async def get_my_vendor_profile(current_user: CurrentUser, db: DatabaseDep):
    profile = await VendorProfileService.find_by_user_id(db, current_user.id)
    if not profile:
        raise NotFoundError("Vendor profile not found")
    return profile


@router.get("/{profile_id}", response_model=VendorProfileResponse)
async def get_vendor_profile(profile_id: int, current_user: CurrentUser, db: DatabaseDep):
    profile = await VendorProfileService.get_by_id(db, profile_id)
    _ensure_can_access(profile, current_user)
    return profile


@router.patch("/{profile_id}", response_model=VendorProfileResponse)
async def update_vendor_profile(
    profile_id: int,
    data: VendorProfileUpdate,
    current_user: CurrentUser,
    db: DatabaseDep
):
    """Update business details; owner or admin only"""
    profile = await VendorProfileService.get_by_id(db, profile_id)
    _ensure_can_access(profile, current_user)

    changes = data.model_dump(exclude_unset=True)
    profile = await VendorProfileService.update(db, profile_id, changes, current_user.id)
    await db.commit()

    logger.info(f"Vendor profile {profile_id} updated by user {current_user.id}")
    return profile


@router.delete("/{profile_id}", response_model=MessageResponse)
async def delete_vendor_profile(profile_id: int, admin: AdminUser, db: DatabaseDep):
    await VendorProfileService.remove(db, profile_id)
    await db.commit()

    audit.log_user_action(f"admin:{admin.id}", "delete", "vendor_profile", profile_id)
    return MessageResponse(message="Vendor profile deleted successfully")
