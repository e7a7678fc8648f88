"""
Organisation invites: email-targeted, single-use, expiring after ORG_INVITE_TTL_DAYS.
"""
import logging
from datetime import timedelta
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kindred.core.config import APP_URL, ORG_INVITE_TTL_DAYS
from kindred.core.errors import Conflict, NotFound, PermissionDenied, UpstreamError, ValidationError
from kindred.core.timeutils import ensure_aware, utcnow
from kindred.models.organisation import Organisation, OrganisationMember, OrganisationRole
from kindred.models.organisation_invite import OrganisationInvite
from kindred.models.user import User
from kindred.services.email import send_org_invite_email
from kindred.services.invite_links import generate_invite_token
from kindred.services.organisations import MANAGER_ROLES, get_membership, require_membership

logger = logging.getLogger(__name__)

INVITABLE_ROLES = (OrganisationRole.ADMIN, OrganisationRole.MEMBER)


def invite_url(token: str) -> str:
    return f"{APP_URL}/invite/{token}"


def is_expired(invite: OrganisationInvite, now=None) -> bool:
    return ensure_aware(invite.expires_at) <= (now or utcnow())


def _normalize_invite_email(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise ValidationError("Email is required")
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValidationError("Invalid email address")


def create_invite(db: Session, user: User, email: Optional[str], role: Optional[str] = "MEMBER") -> OrganisationInvite:
    """
    Invite `email` to the caller's organisation.

    Only the OWNER may invite ADMINs. Expired, unaccepted invites for the same
    email are replaced; a live one blocks a new invite.
    """
    email = _normalize_invite_email(email)
    try:
        invite_role = OrganisationRole((role or "MEMBER").strip().upper())
    except ValueError:
        invite_role = None
    if invite_role not in INVITABLE_ROLES:
        raise ValidationError("Invalid role. Can only invite as ADMIN or MEMBER")

    membership = require_membership(db, user)
    if membership.role not in MANAGER_ROLES:
        raise PermissionDenied("Only owners and admins can invite members")
    if invite_role == OrganisationRole.ADMIN and membership.role != OrganisationRole.OWNER:
        raise PermissionDenied("Only the owner can invite admins")

    organisation = membership.organisation
    already_member = (
        db.query(OrganisationMember)
        .join(User, User.id == OrganisationMember.user_id)
        .filter(OrganisationMember.organisation_id == organisation.id, User.email == email)
        .first()
    )
    if already_member:
        raise Conflict("This user is already a member of your organisation")

    now = utcnow()
    existing = db.query(OrganisationInvite).filter(
        OrganisationInvite.organisation_id == organisation.id,
        OrganisationInvite.email == email,
        OrganisationInvite.accepted_at.is_(None),
    ).all()
    for previous in existing:
        if not is_expired(previous, now):
            raise Conflict("An active invite already exists for this email")
        db.delete(previous)

    invite = OrganisationInvite(
        organisation_id=organisation.id,
        email=email,
        token=generate_invite_token(),
        role=invite_role,
        created_by_id=user.id,
        expires_at=now + timedelta(days=ORG_INVITE_TTL_DAYS),
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    logger.info(f"[OrgInvite] {user.id} invited {email} to {organisation.id} as {invite_role.value}")

    inviter_name = None
    if user.member:
        inviter_name = f"{user.member.first_name} {user.member.last_name}".strip()
    send_org_invite_email(email, invite.token, organisation.name, inviter_name or user.email, invite_role.value)
    return invite


def list_invites(db: Session, user: User) -> dict:
    membership = require_membership(db, user)
    if membership.role not in MANAGER_ROLES:
        raise PermissionDenied("Only owners and admins can view invites")

    invites = (
        db.query(OrganisationInvite)
        .filter(OrganisationInvite.organisation_id == membership.organisation_id)
        .order_by(OrganisationInvite.created_at.desc())
        .all()
    )
    now = utcnow()
    grouped = {"pending": [], "accepted": [], "expired": []}
    for invite in invites:
        if invite.accepted_at is not None:
            grouped["accepted"].append(invite)
        elif is_expired(invite, now):
            grouped["expired"].append(invite)
        else:
            grouped["pending"].append(invite)
    return grouped


def _load_open_invite(db: Session, token: str) -> OrganisationInvite:
    invite = db.query(OrganisationInvite).filter(OrganisationInvite.token == token).first()
    if not invite:
        raise NotFound("Invite not found")
    if invite.accepted_at is not None:
        raise ValidationError("This invite has already been accepted")
    if is_expired(invite):
        raise ValidationError("This invite has expired")
    return invite


def get_invite(db: Session, token: str) -> OrganisationInvite:
    """Public lookup used by the invite landing page."""
    return _load_open_invite(db, token)


def accept_invite(db: Session, token: str, user: User) -> OrganisationMember:
    """
    Join the invite's organisation with the invite's role and mark the invite used,
    in one transaction.
    """
    invite = _load_open_invite(db, token)
    if invite.email.lower() != (user.email or "").lower():
        raise PermissionDenied("This invite was sent to a different email address")
    if get_membership(db, user.id):
        raise Conflict("You are already a member of an organisation. Leave your current organisation first.")

    try:
        membership = OrganisationMember(
            organisation_id=invite.organisation_id,
            user_id=user.id,
            role=invite.role,
        )
        db.add(membership)
        invite.accepted_at = utcnow()
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("You are already a member of an organisation. Leave your current organisation first.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[OrgInvite] Failed to accept invite {invite.id} for {user.id}: {e}", exc_info=True)
        raise UpstreamError("Failed to accept invite")

    db.refresh(membership)
    logger.info(f"[OrgInvite] {user.id} joined {invite.organisation_id} as {invite.role.value}")
    return membership


def cancel_invite(db: Session, token: str, user: User) -> None:
    invite = db.query(OrganisationInvite).filter(OrganisationInvite.token == token).first()
    if not invite:
        raise NotFound("Invite not found")
    membership = get_membership(db, user.id)
    if not membership or membership.organisation_id != invite.organisation_id \
            or membership.role not in MANAGER_ROLES:
        raise PermissionDenied("Only owners and admins can cancel invites")
    if invite.accepted_at is not None:
        raise ValidationError("This invite has already been accepted")
    db.delete(invite)
    db.commit()
    logger.info(f"[OrgInvite] Invite {invite.id} cancelled by {user.id}")


def purge_expired_invites(db: Session, older_than: timedelta = timedelta(days=1)) -> int:
    """Delete unaccepted invites that expired more than `older_than` ago."""
    cutoff = utcnow() - older_than
    deleted = db.query(OrganisationInvite).filter(
        OrganisationInvite.accepted_at.is_(None),
        OrganisationInvite.expires_at < cutoff,
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def invite_details(invite: OrganisationInvite) -> dict:
    organisation: Organisation = invite.organisation
    return {
        "email": invite.email,
        "role": invite.role.value,
        "expiresAt": ensure_aware(invite.expires_at).isoformat(),
        "organisation": {
            "id": organisation.id,
            "name": organisation.name,
            "type": organisation.type.value,
        },
    }
