"""
Admin-issued invite link model. Every signup consumes one.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kindred.core.database import Base
from kindred.models.base import new_id
from kindred.models.user import UserRole


class InviteLink(Base):
    __tablename__ = "invite_links"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(255), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)  # NULL = never expires
    max_uses = Column(Integer, nullable=True)  # NULL = unlimited
    # Derived: number of users referencing the token
    used_count = Column(Integer, default=0, nullable=False)
    target_role = Column(SQLEnum(UserRole, name="user_role"), nullable=True)  # Overrides the role chosen at signup
    notes = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", use_alter=True, name="fk_invite_links_created_by"),
                        nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    creator = relationship("User", foreign_keys=[created_by])
    signups = relationship("User", foreign_keys="User.invite_link_token", back_populates="invite_link")
