"""
User Routes
Directory lookups and admin status management
"""

import logging
from typing import List

from fastapi import APIRouter

from marketplace.models.user import UserType
from marketplace.schemas.user import MessageResponse, UserResponse, UserStatusUpdate
from marketplace.services.user_service import UserService
from marketplace.utils.dependencies import AdminUser, CurrentUser, DatabaseDep
from marketplace.utils.logger import get_audit_logger

logger = logging.getLogger(__name__)

router = APIRouter()
audit = get_audit_logger()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: CurrentUser):
    return current_user


@router.get("/vendors", response_model=List[UserResponse])
async def list_vendor_users(admin: AdminUser, db: DatabaseDep):
    """Vendors that have completed their vendor profile"""
    return await UserService.list_vendors(db)


@router.get("/by-type/{user_type}", response_model=List[UserResponse])
async def list_users_by_type(user_type: UserType, admin: AdminUser, db: DatabaseDep):
    return await UserService.list_by_type(db, user_type)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, admin: AdminUser, db: DatabaseDep):
    return await UserService.get_by_id(db, user_id)


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(user_id: int, data: UserStatusUpdate, admin: AdminUser, db: DatabaseDep):
    """
    Change a user's lifecycle status

    Activating a user marks it verified; suspending clears verification
    and records the remarks.
    """
    user = await UserService.update_status(db, user_id, data.status, admin.id, data.remarks)
    await db.commit()

    audit.log_user_action(
        f"admin:{admin.id}", "update_status", "user", user_id,
        details={'status': data.status.value}
    )
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int, admin: AdminUser, db: DatabaseDep):
    await UserService.remove(db, user_id)
    await db.commit()

    audit.log_user_action(f"admin:{admin.id}", "delete", "user", user_id)
    return MessageResponse(message="User deleted successfully")
