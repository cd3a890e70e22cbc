from marketplace.models.base import Base
from marketplace.models.user import User, UserStatus, UserType
from marketplace.models.vendor_profile import VendorProfile

__all__ = ["Base", "User", "UserStatus", "UserType", "VendorProfile"]
