"""
Supplier claim flow.

A user claims a seeded (UNCLAIMED) supplier by proving access to a company
email address: a 6-digit code is mailed there and must be entered back.
Admins can also approve or reject pending claims directly.
"""
import hmac
import logging
import secrets
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kindred.core.config import CLAIM_MAX_VERIFICATION_ATTEMPTS
from kindred.core.errors import Conflict, NotFound, RateLimited, UpstreamError, ValidationError
from kindred.core.timeutils import utcnow
from kindred.models.supplier import ClaimStatus, Supplier
from kindred.models.supplier_claim import SupplierClaim, SupplierClaimStatus
from kindred.models.user import User
from kindred.services.email import send_claim_verification_email
from kindred.services.organisations import build_organisation, get_membership

logger = logging.getLogger(__name__)


def generate_verification_code() -> str:
    """Six digits, 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


def _get_supplier(db: Session, slug: str) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.slug == slug).first()
    if not supplier:
        raise NotFound("Supplier not found")
    return supplier


def initiate_claim(db: Session, slug: str, user: User, company_email: Optional[str]) -> SupplierClaim:
    """
    Open a PENDING claim and mark the supplier PENDING, then mail the code.

    Returns:
        The committed claim (its verification_code is needed by callers in development)
    """
    company_email = (company_email or "").strip().lower()
    if not company_email:
        raise ValidationError("Company email is required for verification")

    supplier = _get_supplier(db, slug)
    if supplier.claim_status == ClaimStatus.CLAIMED or supplier.user_id:
        raise Conflict("This supplier profile has already been claimed")

    previous = db.query(SupplierClaim).filter(
        SupplierClaim.supplier_id == supplier.id,
        SupplierClaim.user_id == user.id,
    ).order_by(SupplierClaim.created_at.desc()).all()
    for claim in previous:
        if claim.status == SupplierClaimStatus.PENDING:
            raise Conflict("You already have a pending claim for this supplier")
        if claim.status == SupplierClaimStatus.REJECTED:
            raise Conflict("Your previous claim for this supplier was rejected")

    if db.query(Supplier).filter(Supplier.user_id == user.id).first():
        raise Conflict("You already own a supplier profile")

    claim = SupplierClaim(
        supplier_id=supplier.id,
        user_id=user.id,
        status=SupplierClaimStatus.PENDING,
        verification_code=generate_verification_code(),
        company_email=company_email,
        failed_attempts=0,
    )
    try:
        db.add(claim)
        supplier.claim_status = ClaimStatus.PENDING
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[SupplierClaim] Failed to open claim on {supplier.id} for {user.id}: {e}", exc_info=True)
        raise UpstreamError("Failed to create claim")

    db.refresh(claim)
    logger.info(f"[SupplierClaim] Claim {claim.id} opened on supplier {supplier.id} by {user.id}")
    send_claim_verification_email(company_email, claim.verification_code, supplier.company_name)
    return claim


def _ensure_claimable(supplier: Supplier, user_id: str) -> None:
    if supplier.claim_status == ClaimStatus.CLAIMED or supplier.user_id not in (None, user_id):
        raise Conflict("This supplier profile has already been claimed")


def _grant_supplier(db: Session, supplier: Supplier, claim: SupplierClaim, processed_by: Optional[str] = None) -> None:
    """
    Hand the supplier to the claimant inside the caller's transaction: the
    supplier becomes CLAIMED, competing PENDING claims are REJECTED and the
    claimant gets a SUPPLIER organisation unless they already belong to one.
    """
    now = utcnow()
    claim.status = SupplierClaimStatus.CLAIMED
    claim.processed_at = now
    supplier.claim_status = ClaimStatus.CLAIMED
    supplier.user_id = claim.user_id

    competing = db.query(SupplierClaim).filter(
        SupplierClaim.supplier_id == supplier.id,
        SupplierClaim.status == SupplierClaimStatus.PENDING,
        SupplierClaim.id != claim.id,
    ).all()
    for other in competing:
        other.status = SupplierClaimStatus.REJECTED
        other.processed_at = now
        other.processed_by = processed_by
        other.notes = other.notes or "Supplier claimed by another user"

    if get_membership(db, claim.user_id) is None:
        build_organisation(db, claim.user_id, supplier.company_name, supplier=supplier)


def verify_claim(db: Session, slug: str, user: User, code: Optional[str]) -> SupplierClaim:
    """
    Check the code. On a match the claim and supplier become CLAIMED and, if the
    user has no organisation yet, a SUPPLIER organisation is created with the
    user as OWNER, all in one transaction.
    """
    code = (code or "").strip()
    if not code:
        raise ValidationError("Verification code is required")

    supplier = _get_supplier(db, slug)
    _ensure_claimable(supplier, user.id)
    claim = db.query(SupplierClaim).filter(
        SupplierClaim.supplier_id == supplier.id,
        SupplierClaim.user_id == user.id,
        SupplierClaim.status == SupplierClaimStatus.PENDING,
    ).first()
    if not claim:
        raise NotFound("No pending claim found for this supplier")

    if claim.failed_attempts >= CLAIM_MAX_VERIFICATION_ATTEMPTS:
        raise RateLimited("Too many failed verification attempts. Contact support to complete your claim.")

    if not hmac.compare_digest(claim.verification_code, code):
        claim.failed_attempts += 1
        db.commit()
        logger.info(f"[SupplierClaim] Wrong code for claim {claim.id} (attempt {claim.failed_attempts})")
        raise ValidationError("Invalid verification code")

    try:
        _grant_supplier(db, supplier, claim)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[SupplierClaim] Failed to complete claim {claim.id}: {e}", exc_info=True)
        raise UpstreamError("Failed to complete claim")

    db.refresh(claim)
    logger.info(f"[SupplierClaim] Claim {claim.id} verified, supplier {supplier.id} owned by {user.id}")
    return claim


def list_claims(db: Session, status: Optional[SupplierClaimStatus] = None, page: int = 1,
                limit: int = 20) -> tuple[list[SupplierClaim], int, dict]:
    query = db.query(SupplierClaim)
    if status is not None:
        query = query.filter(SupplierClaim.status == status)
    total = query.count()
    claims = (
        query.order_by(SupplierClaim.created_at.desc(), SupplierClaim.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    counts = dict(
        db.query(SupplierClaim.status, func.count(SupplierClaim.id)).group_by(SupplierClaim.status).all()
    )
    statistics = {
        "total": sum(counts.values()),
        "pending": counts.get(SupplierClaimStatus.PENDING, 0),
        "claimed": counts.get(SupplierClaimStatus.CLAIMED, 0),
        "rejected": counts.get(SupplierClaimStatus.REJECTED, 0),
    }
    return claims, total, statistics


def get_claim(db: Session, claim_id: str) -> SupplierClaim:
    claim = db.query(SupplierClaim).filter(SupplierClaim.id == claim_id).first()
    if not claim:
        raise NotFound("Claim not found")
    return claim


def process_claim(db: Session, claim_id: str, admin: User, status: Optional[str],
                  notes: Optional[str] = None) -> SupplierClaim:
    """
    Admin decision on a PENDING claim. Claim and supplier change together or
    not at all.
    """
    try:
        decision = SupplierClaimStatus((status or "").strip().upper())
    except ValueError:
        decision = None
    if decision not in (SupplierClaimStatus.CLAIMED, SupplierClaimStatus.REJECTED):
        raise ValidationError("Status must be either CLAIMED or REJECTED")

    claim = get_claim(db, claim_id)
    if claim.status != SupplierClaimStatus.PENDING:
        raise ValidationError("This claim has already been processed")

    supplier = claim.supplier
    if decision == SupplierClaimStatus.CLAIMED:
        _ensure_claimable(supplier, claim.user_id)

    try:
        claim.processed_by = admin.id
        if notes is not None:
            claim.notes = notes

        if decision == SupplierClaimStatus.CLAIMED:
            _grant_supplier(db, supplier, claim, processed_by=admin.id)
        else:
            claim.status = decision
            claim.processed_at = utcnow()
            db.flush()
            other_pending = db.query(SupplierClaim).filter(
                SupplierClaim.supplier_id == supplier.id,
                SupplierClaim.status == SupplierClaimStatus.PENDING,
            ).count()
            if other_pending == 0 and supplier.user_id is None:
                supplier.claim_status = ClaimStatus.UNCLAIMED
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[AdminClaims] Failed to process claim {claim_id}, left PENDING: {e}", exc_info=True)
        raise UpstreamError("Failed to update supplier")

    db.refresh(claim)
    logger.info(f"[AdminClaims] Claim {claim.id} set to {decision.value} by {admin.email}")
    return claim
