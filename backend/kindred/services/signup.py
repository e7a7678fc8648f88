"""
Signup orchestration.

A signup touches two stores: the identity provider and the application
database. The identity is created first; if the application user cannot be
written, the identity is deleted again so the email can be reused.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kindred.core.errors import PermissionDenied, UpstreamError, ValidationError
from kindred.core.timeutils import utcnow
from kindred.models.identity import AuthIdentity
from kindred.models.member import Member
from kindred.models.user import User, UserRole
from kindred.services import identity as identity_provider
from kindred.services.email import send_confirmation_email
from kindred.services.invite_links import recompute_invite_usage, validate_invite_token

logger = logging.getLogger(__name__)

SIGNUP_ROLES = (UserRole.BRAND, UserRole.SUPPLIER, UserRole.MEMBER)


def parse_signup_role(role: Optional[str]) -> UserRole:
    try:
        parsed = UserRole((role or "").strip().upper())
    except ValueError:
        raise ValidationError("Invalid role")
    if parsed not in SIGNUP_ROLES:
        raise ValidationError("Invalid role")
    return parsed


def _create_member_profile(db: Session, user: User, first_name: Optional[str], last_name: Optional[str]) -> Optional[Member]:
    """Best effort; a failure is logged and the signup still succeeds."""
    if not first_name and not last_name:
        return None
    try:
        member = Member(
            user_id=user.id,
            first_name=(first_name or "").strip() or "User",
            last_name=(last_name or "").strip(),
        )
        db.add(member)
        db.commit()
        return member
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"[Signup] Member profile creation failed for user {user.id}: {e}")
        return None


def _insert_user(db: Session, identity: AuthIdentity, role: UserRole, invite_token: str) -> User:
    """Insert the user and refresh the invite usage count in one transaction."""
    user = User(
        id=identity.id,
        email=identity.email,
        role=role,
        invite_link_token=invite_token,
        email_verified_at=identity.email_confirmed_at,
    )
    db.add(user)
    db.flush()
    recompute_invite_usage(db, invite_token)
    db.commit()
    db.refresh(user)
    return user


def signup(
    db: Session,
    email: Optional[str],
    password: Optional[str],
    role: Optional[str],
    invite_token: Optional[str],
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    """
    Register a new account against an invite link.

    Args:
        db: Database session
        email, password, role: Credentials and requested role
        invite_token: Invite link token; required
        first_name, last_name: Optional names for the member profile

    Returns:
        The created User

    Raises:
        ValidationError: missing fields, invalid role, identity rejected
        PermissionDenied / NotFound: invite not usable
        UpstreamError: user row could not be written
    """
    if not email or not password or not role:
        raise ValidationError("Email, password, and role are required")
    requested_role = parse_signup_role(role)
    if not invite_token:
        raise PermissionDenied("An invite is required to sign up")

    invite = validate_invite_token(db, invite_token)
    final_role = invite.target_role or requested_role

    identity = identity_provider.create_identity(
        email,
        password,
        metadata={
            "first_name": first_name,
            "last_name": last_name,
            "role": final_role.value,
            "invite_token": invite_token,
        },
    )

    try:
        user = _insert_user(db, identity, final_role, invite_token)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Signup] Failed to create user record for {identity.email}: {e}", exc_info=True)
        try:
            identity_provider.delete_identity(identity.id)
        except Exception as cleanup_error:
            logger.error(f"[Signup] Failed to delete orphaned identity {identity.id}: {cleanup_error}", exc_info=True)
        raise UpstreamError("Failed to create user account")

    _create_member_profile(db, user, first_name, last_name)

    if identity.confirmation_code:
        send_confirmation_email(identity.email, identity.confirmation_code, first_name)

    logger.info(f"[Signup] User {user.id} signed up as {final_role.value} with invite {invite_token[:6]}...")
    return user


def complete_auth_callback(
    db: Session,
    code: Optional[str],
    invite_token: Optional[str] = None,
    role: Optional[str] = None,
) -> tuple[User, bool]:
    """
    Exchange a confirmation/OAuth code and make sure an application user exists.

    An identity that already has a user row is only marked verified. A new
    identity needs a usable invite, exactly like signup.

    Returns:
        (user, created)
    """
    identity = identity_provider.exchange_code(code)

    user = db.query(User).filter(User.id == identity.id).first()
    if user:
        if user.email_verified_at is None:
            user.email_verified_at = identity.email_confirmed_at or utcnow()
            db.commit()
        return user, False

    metadata = identity.user_metadata or {}
    token = invite_token or metadata.get("invite_token")
    if not token:
        raise PermissionDenied("An invite is required to sign up")
    invite = validate_invite_token(db, token)

    if invite.target_role:
        final_role = invite.target_role
    else:
        try:
            final_role = parse_signup_role(role or metadata.get("role"))
        except ValidationError:
            final_role = UserRole.MEMBER

    try:
        user = _insert_user(db, identity, final_role, token)
    except SQLAlchemyError as e:
        db.rollback()
        existing = db.query(User).filter(User.id == identity.id).first()
        if existing:
            return existing, False
        logger.error(f"[Signup] Callback failed to create user for {identity.email}: {e}", exc_info=True)
        raise UpstreamError("Failed to create user account")

    _create_member_profile(db, user, metadata.get("first_name"), metadata.get("last_name"))
    logger.info(f"[Signup] User {user.id} created from auth callback as {final_role.value}")
    return user, True
