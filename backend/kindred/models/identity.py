"""
Authentication identity model.

Identities are owned by the identity provider (services/identity.py), which
commits them on its own session, independently of application records.
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from kindred.core.database import Base
from kindred.models.base import new_id


class AuthIdentity(Base):
    __tablename__ = "auth_identities"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)  # NULL for OAuth-only identities
    provider = Column(String(20), nullable=False, default="email")
    confirmation_code = Column(String(255), unique=True, index=True, nullable=True)  # Single use
    email_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    user_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
