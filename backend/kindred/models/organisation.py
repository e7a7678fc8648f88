"""
Organisation and OrganisationMember models.
"""
import enum
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from kindred.core.database import Base
from kindred.models.base import new_id


class OrganisationType(str, enum.Enum):
    BRAND = "BRAND"
    SUPPLIER = "SUPPLIER"


class OrganisationRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


# Display order for rosters
ROLE_RANK = {
    OrganisationRole.OWNER: 0,
    OrganisationRole.ADMIN: 1,
    OrganisationRole.MEMBER: 2,
}


class Organisation(Base):
    __tablename__ = "organisations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    type = Column(SQLEnum(OrganisationType, name="organisation_type"), nullable=False)
    brand_id = Column(String(36), ForeignKey("brands.id", ondelete="CASCADE"), nullable=True, unique=True)
    supplier_id = Column(String(36), ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    brand = relationship("Brand")
    supplier = relationship("Supplier")
    members = relationship("OrganisationMember", back_populates="organisation", cascade="all, delete-orphan")
    invites = relationship("OrganisationInvite", back_populates="organisation", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "(type = 'BRAND' AND brand_id IS NOT NULL AND supplier_id IS NULL)"
            " OR (type = 'SUPPLIER' AND supplier_id IS NOT NULL AND brand_id IS NULL)",
            name="ck_organisations_single_profile",
        ),
    )


class OrganisationMember(Base):
    __tablename__ = "organisation_members"

    organisation_id = Column(String(36), ForeignKey("organisations.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(SQLEnum(OrganisationRole, name="organisation_role"), nullable=False, default=OrganisationRole.MEMBER)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    organisation = relationship("Organisation", back_populates="members")
    user = relationship("User", back_populates="membership")

    __table_args__ = (
        # A user belongs to at most one organisation
        UniqueConstraint("user_id", name="uq_organisation_members_user"),
    )
