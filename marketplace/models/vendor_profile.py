from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from marketplace.models.base import Base, utcnow


class VendorProfile(Base):
    """Business details of a vendor, one row per user"""

    __tablename__ = "vendor_profiles"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_vendor_profiles_user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # business_types table is managed by the catalog service
    business_type_id = Column(Integer, nullable=True)
    business_type = Column(String(100), nullable=True)
    business_name = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)
    contact_person = Column(String(255), nullable=True)
    designation = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    business_registration_certificate = Column(String(500), nullable=True)
    gst_number = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    company_details = Column(Text, nullable=True)
    whatsapp_number = Column(String(20), nullable=True)
    logo = Column(String(500), nullable=True)
    working_days = Column(String(100), nullable=True)
    employee_count = Column(Integer, nullable=True)
    payment_mode = Column(String(100), nullable=True)
    establishment = Column(Integer, nullable=True)
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<VendorProfile id={self.id} user_id={self.user_id}>"
