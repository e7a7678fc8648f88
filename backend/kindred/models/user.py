"""
Application user model.
"""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kindred.core.database import Base


class UserRole(str, enum.Enum):
    BRAND = "BRAND"
    SUPPLIER = "SUPPLIER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class User(Base):
    __tablename__ = "users"

    # Same id as the authentication identity
    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(SQLEnum(UserRole, name="user_role"), nullable=False, default=UserRole.MEMBER)
    # Immutable after creation; NULL only for seeded admins
    invite_link_token = Column(String(255), ForeignKey("invite_links.token"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    invite_link = relationship("InviteLink", foreign_keys=[invite_link_token], back_populates="signups")
    member = relationship("Member", back_populates="user", uselist=False, cascade="all, delete-orphan")
    membership = relationship("OrganisationMember", back_populates="user", uselist=False, cascade="all, delete-orphan")
    claims = relationship("SupplierClaim", back_populates="user", foreign_keys="SupplierClaim.user_id",
                          cascade="all, delete-orphan")

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
