"""
Supplier claim model: a user's request to take ownership of a seeded supplier.
"""
import enum
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kindred.core.database import Base
from kindred.models.base import new_id


class SupplierClaimStatus(str, enum.Enum):
    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    REJECTED = "REJECTED"


class SupplierClaim(Base):
    __tablename__ = "supplier_claims"

    id = Column(String(36), primary_key=True, default=new_id)
    supplier_id = Column(String(36), ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(SupplierClaimStatus, name="supplier_claim_status"), nullable=False,
                    default=SupplierClaimStatus.PENDING)
    verification_code = Column(String(10), nullable=False)
    company_email = Column(String(255), nullable=False)
    failed_attempts = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    processed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="claims")
    user = relationship("User", foreign_keys=[user_id], back_populates="claims")
    processor = relationship("User", foreign_keys=[processed_by])
