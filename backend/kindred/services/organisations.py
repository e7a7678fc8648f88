"""
Organisation service: creation, roster and role management.

A user belongs to at most one organisation; organisation_members.user_id is
unique, so concurrent joins lose with an IntegrityError rather than creating
a second membership. Every organisation keeps exactly one OWNER.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kindred.core.errors import Conflict, NotFound, PermissionDenied, UpstreamError, ValidationError
from kindred.core.timeutils import ensure_aware
from kindred.models.brand import Brand
from kindred.models.organisation import (
    ROLE_RANK, Organisation, OrganisationMember, OrganisationRole, OrganisationType,
)
from kindred.models.supplier import Supplier
from kindred.models.user import User
from kindred.services.profiles import get_user_brand, get_user_supplier, unique_slug

logger = logging.getLogger(__name__)

ALREADY_MEMBER = "You are already a member of an organisation"
MANAGER_ROLES = (OrganisationRole.OWNER, OrganisationRole.ADMIN)


def get_membership(db: Session, user_id: str) -> Optional[OrganisationMember]:
    return db.query(OrganisationMember).filter(OrganisationMember.user_id == user_id).first()


def require_membership(db: Session, user: User) -> OrganisationMember:
    membership = get_membership(db, user.id)
    if not membership:
        raise NotFound("You are not a member of an organisation")
    return membership


def get_member(db: Session, organisation_id: str, user_id: str) -> Optional[OrganisationMember]:
    return db.query(OrganisationMember).filter(
        OrganisationMember.organisation_id == organisation_id,
        OrganisationMember.user_id == user_id,
    ).first()


def parse_role(role: Optional[str]) -> OrganisationRole:
    try:
        return OrganisationRole((role or "").strip().upper())
    except ValueError:
        raise ValidationError("Invalid role")


def _add_owner(db: Session, organisation: Organisation, user_id: str) -> OrganisationMember:
    membership = OrganisationMember(
        organisation_id=organisation.id,
        user_id=user_id,
        role=OrganisationRole.OWNER,
    )
    db.add(membership)
    db.flush()
    return membership


def build_organisation(
    db: Session,
    owner_id: str,
    name: str,
    brand: Optional[Brand] = None,
    supplier: Optional[Supplier] = None,
) -> Organisation:
    """
    Add an organisation wrapping `brand` or `supplier` plus its OWNER membership
    to the session. Flushes; the caller owns the commit.
    """
    organisation = Organisation(
        name=name,
        slug=unique_slug(db, Organisation, name, "organisation"),
        type=OrganisationType.BRAND if brand is not None else OrganisationType.SUPPLIER,
        brand_id=brand.id if brand is not None else None,
        supplier_id=supplier.id if supplier is not None else None,
    )
    db.add(organisation)
    db.flush()
    _add_owner(db, organisation, owner_id)
    return organisation


def create_organisation(db: Session, user: User, name: Optional[str], org_type: Optional[str] = None) -> Organisation:
    """
    Create an organisation around the caller's brand or supplier, with the caller as OWNER.

    Args:
        db: Database session
        user: Creating user
        name: Organisation name
        org_type: "BRAND" or "SUPPLIER"; picks the profile when the user has both

    Returns:
        The committed Organisation
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organisation name is required")

    if get_membership(db, user.id):
        raise Conflict(ALREADY_MEMBER)

    brand = get_user_brand(db, user.id)
    supplier = get_user_supplier(db, user.id)
    if org_type:
        try:
            wanted = OrganisationType(org_type.strip().upper())
        except ValueError:
            raise ValidationError("Invalid organisation type")
        if wanted == OrganisationType.BRAND:
            supplier = None
        else:
            brand = None
    elif brand is not None:
        supplier = None

    if brand is None and supplier is None:
        raise ValidationError("You need a brand or supplier profile before creating an organisation")

    profile_filter = (
        Organisation.brand_id == brand.id if brand is not None else Organisation.supplier_id == supplier.id
    )
    if db.query(Organisation).filter(profile_filter).first():
        raise Conflict("This profile already belongs to an organisation")

    try:
        organisation = build_organisation(db, user.id, name, brand=brand, supplier=supplier)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if get_membership(db, user.id):
            raise Conflict(ALREADY_MEMBER)
        logger.error(f"[Organisation] Failed to create organisation for user {user.id}: {e}", exc_info=True)
        raise UpstreamError("Failed to create organisation")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Organisation] Failed to create organisation for user {user.id}: {e}", exc_info=True)
        raise UpstreamError("Failed to create organisation")

    db.refresh(organisation)
    logger.info(f"[Organisation] Created {organisation.type.value} organisation {organisation.id} owned by {user.id}")
    return organisation


def list_members(db: Session, organisation_id: str) -> list[OrganisationMember]:
    """Roster ordered OWNER, ADMIN, MEMBER, then by join time."""
    members = db.query(OrganisationMember).filter(OrganisationMember.organisation_id == organisation_id).all()
    return sorted(
        members,
        key=lambda m: (ROLE_RANK[m.role], ensure_aware(m.joined_at).timestamp() if m.joined_at else 0.0),
    )


def delete_organisation(db: Session, user: User) -> None:
    membership = require_membership(db, user)
    if membership.role != OrganisationRole.OWNER:
        raise PermissionDenied("Only the organisation owner can delete it")
    organisation = membership.organisation
    try:
        db.delete(organisation)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Organisation] Failed to delete organisation {organisation.id}: {e}", exc_info=True)
        raise UpstreamError("Failed to delete organisation")
    logger.info(f"[Organisation] Organisation {membership.organisation_id} deleted by {user.id}")


def transfer_ownership(db: Session, user: User, new_owner_id: Optional[str]) -> OrganisationMember:
    """
    Demote the current OWNER to ADMIN and promote `new_owner_id` (an ADMIN) to OWNER,
    in one transaction.

    Returns:
        The new owner's membership
    """
    if not new_owner_id:
        raise ValidationError("New owner ID is required")
    membership = require_membership(db, user)
    if membership.role != OrganisationRole.OWNER:
        raise PermissionDenied("Only the owner can transfer ownership")
    if new_owner_id == user.id:
        raise ValidationError("You are already the owner")

    target = get_member(db, membership.organisation_id, new_owner_id)
    if not target:
        raise ValidationError("New owner must be a member of the organisation")
    if target.role == OrganisationRole.MEMBER:
        raise ValidationError("New owner must be an admin. Promote them to admin first.")

    try:
        membership.role = OrganisationRole.ADMIN
        target.role = OrganisationRole.OWNER
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"[Organisation] Ownership transfer {user.id} -> {new_owner_id} failed, rolled back: {e}",
            exc_info=True,
        )
        raise UpstreamError("Failed to transfer ownership")

    db.refresh(target)
    logger.info(f"[Organisation] Ownership of {membership.organisation_id} transferred to {new_owner_id}")
    return target


def update_member_role(db: Session, user: User, target_user_id: str, role: Optional[str]) -> OrganisationMember:
    new_role = parse_role(role)
    membership = require_membership(db, user)
    if membership.role not in MANAGER_ROLES:
        raise PermissionDenied("Only owners and admins can update member roles")

    target = get_member(db, membership.organisation_id, target_user_id)
    if not target:
        raise NotFound("Member not found")
    if target_user_id == user.id:
        raise ValidationError("You cannot change your own role")

    if new_role == OrganisationRole.OWNER or target.role == OrganisationRole.OWNER:
        if membership.role != OrganisationRole.OWNER:
            raise PermissionDenied("Only the owner can transfer ownership")
        if new_role == OrganisationRole.OWNER:
            return transfer_ownership(db, user, target_user_id)

    if membership.role == OrganisationRole.ADMIN and target.role == OrganisationRole.ADMIN \
            and new_role != OrganisationRole.MEMBER:
        raise PermissionDenied("Only the owner can change admin roles")

    target.role = new_role
    db.commit()
    db.refresh(target)
    logger.info(f"[Organisation] {user.id} set role of {target_user_id} to {new_role.value}")
    return target


def remove_member(db: Session, user: User, target_user_id: str) -> None:
    membership = require_membership(db, user)
    target = get_member(db, membership.organisation_id, target_user_id)
    if not target:
        raise NotFound("Member not found")
    if target.role == OrganisationRole.OWNER:
        raise ValidationError("Cannot remove the owner. Transfer ownership first.")

    if target_user_id == user.id:
        if membership.role != OrganisationRole.MEMBER:
            raise ValidationError("You cannot remove yourself. Use leave instead.")
    else:
        if membership.role not in MANAGER_ROLES:
            raise PermissionDenied("Only owners and admins can remove members")
        if membership.role == OrganisationRole.ADMIN and target.role == OrganisationRole.ADMIN:
            raise PermissionDenied("Only the owner can remove admins")

    db.delete(target)
    db.commit()
    logger.info(f"[Organisation] {user.id} removed {target_user_id} from {membership.organisation_id}")


def leave_organisation(db: Session, user: User) -> None:
    membership = require_membership(db, user)
    if membership.role == OrganisationRole.OWNER:
        raise ValidationError(
            "Organisation owner cannot leave. Transfer ownership or delete the organisation."
        )
    organisation_id = membership.organisation_id
    db.delete(membership)
    db.commit()
    logger.info(f"[Organisation] {user.id} left {organisation_id}")
