"""
Identity provider: credentials, confirmation codes and identity lifecycle.

The identity store is separate from application records. Every function here
opens and commits its own session, so an identity survives (or disappears)
independently of whatever transaction the caller has open. Callers that create
application rows after an identity must delete the identity themselves when
those rows fail.
"""
import logging
import secrets
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError

from kindred.core.database import SessionLocal
from kindred.core.errors import AuthenticationError, Conflict, ValidationError
from kindred.core.timeutils import utcnow
from kindred.models.identity import AuthIdentity

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _detach(db, identity: AuthIdentity) -> AuthIdentity:
    db.refresh(identity)
    db.expunge(identity)
    return identity


def create_identity(email: str, password: Optional[str], metadata: Optional[dict] = None,
                    provider: str = "email") -> AuthIdentity:
    """
    Create an identity and issue a single-use confirmation code.

    Raises:
        Conflict: the email is already registered
        ValidationError: password too short
    """
    email = normalize_email(email)
    if provider == "email" and (not password or len(password) < MIN_PASSWORD_LENGTH):
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    db = SessionLocal()
    try:
        if db.query(AuthIdentity).filter(AuthIdentity.email == email).first():
            raise Conflict("User already registered")

        identity = AuthIdentity(
            email=email,
            hashed_password=hash_password(password) if password else None,
            provider=provider,
            confirmation_code=secrets.token_urlsafe(32),
            user_metadata=dict(metadata or {}),
        )
        db.add(identity)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise Conflict("User already registered")
        logger.info(f"Created identity {identity.id} for {email}")
        return _detach(db, identity)
    finally:
        db.close()


def delete_identity(identity_id: str) -> bool:
    db = SessionLocal()
    try:
        deleted = db.query(AuthIdentity).filter(AuthIdentity.id == identity_id).delete()
        db.commit()
        return bool(deleted)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_identity(identity_id: str) -> Optional[AuthIdentity]:
    db = SessionLocal()
    try:
        identity = db.query(AuthIdentity).filter(AuthIdentity.id == identity_id).first()
        if identity:
            db.expunge(identity)
        return identity
    finally:
        db.close()


def authenticate(email: str, password: str) -> Optional[AuthIdentity]:
    """Return the identity when the credentials match, None otherwise."""
    db = SessionLocal()
    try:
        identity = db.query(AuthIdentity).filter(AuthIdentity.email == normalize_email(email)).first()
        if not identity or not identity.hashed_password:
            return None
        if not verify_password(password, identity.hashed_password):
            return None
        db.expunge(identity)
        return identity
    finally:
        db.close()


def exchange_code(code: Optional[str]) -> AuthIdentity:
    """
    Consume a confirmation code and mark the email confirmed.

    Raises:
        AuthenticationError: missing, unknown or already used code
    """
    if not code:
        raise AuthenticationError("Missing confirmation code")

    db = SessionLocal()
    try:
        identity = db.query(AuthIdentity).filter(AuthIdentity.confirmation_code == code).first()
        if not identity:
            raise AuthenticationError("Invalid or expired confirmation code")
        identity.confirmation_code = None
        if identity.email_confirmed_at is None:
            identity.email_confirmed_at = utcnow()
        db.commit()
        return _detach(db, identity)
    finally:
        db.close()
