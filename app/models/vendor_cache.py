from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from app.core.database import Base
from app.models.transaction import new_id
from app.utils.dates import now_local


class VendorCacheEntry(Base):
    __tablename__ = "vendor_cache"
    __table_args__ = (
        UniqueConstraint("user_id", "vendor_name", name="uq_vendor_cache_user_vendor"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)

    # Always the normalized form, see app.utils.vendor.normalize_vendor_name
    vendor_name = Column(String(200), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), index=True, nullable=False)
    hit_count = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=now_local)
    updated_at = Column(DateTime, nullable=False, default=now_local, onupdate=now_local)
