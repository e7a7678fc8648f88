"""
OrganisationInvite model for email-targeted, single-use organisation invites.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from kindred.core.database import Base
from kindred.models.base import new_id
from kindred.models.organisation import OrganisationRole


class OrganisationInvite(Base):
    __tablename__ = "organisation_invites"

    id = Column(String(36), primary_key=True, default=new_id)
    organisation_id = Column(String(36), ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    token = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(SQLEnum(OrganisationRole, name="organisation_role"), nullable=False)  # ADMIN or MEMBER
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    organisation = relationship("Organisation", back_populates="invites")
    created_by = relationship("User", foreign_keys=[created_by_id])
