"""
Invite link policy and admin management.

check_invite_link() is the single eligibility rule for every entry point that
consumes an invite (public validation, signup, auth callback).
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from kindred.core.config import INVITE_TOKEN_BYTES
from kindred.core.errors import NotFound, PermissionDenied, ValidationError
from kindred.core.timeutils import ensure_aware, utcnow
from kindred.models.invite_link import InviteLink
from kindred.models.user import User, UserRole

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid invite token"
DEACTIVATED = "This invite link has been deactivated"
EXPIRED = "This invite link has expired"
EXHAUSTED = "This invite link has reached its maximum usage limit"


@dataclass
class InviteCheck:
    valid: bool
    reason: Optional[str] = None
    target_role: Optional[UserRole] = None
    not_found: bool = False


def check_invite_link(invite: Optional[InviteLink], now: Optional[datetime] = None) -> InviteCheck:
    """Pure eligibility check. Order: missing, deactivated, expired, exhausted."""
    if invite is None:
        return InviteCheck(False, INVALID_TOKEN, not_found=True)
    now = now or utcnow()
    if not invite.is_active:
        return InviteCheck(False, DEACTIVATED)
    expires_at = ensure_aware(invite.expires_at)
    if expires_at is not None and expires_at <= now:
        return InviteCheck(False, EXPIRED)
    if invite.max_uses is not None and (invite.used_count or 0) >= invite.max_uses:
        return InviteCheck(False, EXHAUSTED)
    return InviteCheck(True, target_role=invite.target_role)


def get_invite_by_token(db: Session, token: str) -> Optional[InviteLink]:
    return db.query(InviteLink).filter(InviteLink.token == token).first()


def validate_invite_token(db: Session, token: Optional[str]) -> InviteLink:
    """
    Load an invite by token and enforce check_invite_link().

    Raises:
        ValidationError: no token
        NotFound: unknown token
        PermissionDenied: deactivated, expired or exhausted
    """
    if not token:
        raise ValidationError("Invite token is required")
    invite = get_invite_by_token(db, token)
    check = check_invite_link(invite)
    if check.not_found:
        raise NotFound(check.reason)
    if not check.valid:
        raise PermissionDenied(check.reason)
    return invite


def count_invite_signups(db: Session, token: str) -> int:
    return db.query(func.count(User.id)).filter(User.invite_link_token == token).scalar() or 0


def recompute_invite_usage(db: Session, token: str) -> int:
    """
    Set used_count from the number of users referencing the token.
    Flushes but does not commit; runs in the caller's transaction.
    """
    invite = get_invite_by_token(db, token)
    if invite is None:
        return 0
    db.flush()
    invite.used_count = count_invite_signups(db, token)
    db.flush()
    return invite.used_count


def generate_invite_token(nbytes: int = INVITE_TOKEN_BYTES) -> str:
    """URL-safe random token."""
    return secrets.token_urlsafe(nbytes)


def _normalize_max_uses(max_uses: Optional[int]) -> Optional[int]:
    if max_uses is None or max_uses <= 0:
        return None
    return max_uses


def create_invite_link(
    db: Session,
    admin: User,
    expires_at: Optional[datetime] = None,
    max_uses: Optional[int] = None,
    notes: Optional[str] = None,
    target_role: Optional[UserRole] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> InviteLink:
    """
    Create an invite link.

    Args:
        db: Database session
        admin: Issuing admin
        expires_at: Optional expiry, must be in the future
        max_uses: Optional cap; values <= 0 mean unlimited
        target_role: Role forced onto users signing up with this link

    Returns:
        The committed InviteLink
    """
    expires_at = ensure_aware(expires_at)
    if expires_at is not None and expires_at <= utcnow():
        raise ValidationError("Expiry date must be in the future")

    invite = InviteLink(
        token=generate_invite_token(),
        is_active=True,
        expires_at=expires_at,
        max_uses=_normalize_max_uses(max_uses),
        used_count=0,
        target_role=target_role,
        notes=notes,
        email=email.strip().lower() if email else None,
        phone=phone,
        created_by=admin.id,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    logger.info(f"[AdminInvites] Invite link {invite.id} created by {admin.email}")
    return invite


_UNSET = object()


def update_invite_link(
    db: Session,
    invite_id: str,
    is_active=_UNSET,
    expires_at=_UNSET,
    max_uses=_UNSET,
    notes=_UNSET,
) -> InviteLink:
    """Partial update. Passing expires_at=None clears the expiry; max_uses <= 0 clears the cap."""
    invite = db.query(InviteLink).filter(InviteLink.id == invite_id).first()
    if not invite:
        raise NotFound("Invite link not found")

    if is_active is not _UNSET and is_active is not None:
        invite.is_active = bool(is_active)
    if expires_at is not _UNSET:
        invite.expires_at = ensure_aware(expires_at)
    if max_uses is not _UNSET:
        invite.max_uses = _normalize_max_uses(max_uses)
    if notes is not _UNSET:
        invite.notes = notes

    db.commit()
    db.refresh(invite)
    logger.info(f"[AdminInvites] Invite link {invite.id} updated")
    return invite


def delete_invite_link(db: Session, invite_id: str) -> None:
    invite = db.query(InviteLink).filter(InviteLink.id == invite_id).first()
    if not invite:
        raise NotFound("Invite link not found")
    if count_invite_signups(db, invite.token) > 0 or (invite.used_count or 0) > 0:
        raise ValidationError("Cannot delete invite link that has been used. Deactivate it instead.")
    db.delete(invite)
    db.commit()
    logger.info(f"[AdminInvites] Invite link {invite_id} deleted")


def list_invite_links(
    db: Session,
    is_active: Optional[bool] = None,
    target_role: Optional[UserRole] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[InviteLink], int, dict]:
    """
    Returns:
        (invites for the page, total matching, stats over all invites)
    """
    query = db.query(InviteLink)
    if is_active is not None:
        query = query.filter(InviteLink.is_active == is_active)
    if target_role is not None:
        query = query.filter(InviteLink.target_role == target_role)

    total = query.count()
    invites = (
        query.order_by(InviteLink.created_at.desc(), InviteLink.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    all_count = db.query(func.count(InviteLink.id)).scalar() or 0
    active_count = db.query(func.count(InviteLink.id)).filter(InviteLink.is_active.is_(True)).scalar() or 0
    total_signups = db.query(func.coalesce(func.sum(InviteLink.used_count), 0)).scalar() or 0
    stats = {
        "total": all_count,
        "active": active_count,
        "inactive": all_count - active_count,
        "totalSignups": int(total_signups),
    }
    return invites, total, stats
