"""
Brand and supplier profiles.
"""
import logging
import re
import time
from typing import Optional

from sqlalchemy.orm import Session

from kindred.core.errors import Conflict, ValidationError
from kindred.models.brand import Brand
from kindred.models.supplier import ClaimStatus, Supplier
from kindred.models.user import User

logger = logging.getLogger(__name__)


def generate_slug(name: str, fallback: str = "organisation") -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', (name or "").lower()).strip('-')
    return slug or fallback


def unique_slug(db: Session, model, name: str, fallback: str) -> str:
    """Slug for `name`, suffixed with a millisecond timestamp when already taken."""
    slug = generate_slug(name, fallback)
    if not db.query(model).filter(model.slug == slug).first():
        return slug
    candidate = f"{slug}-{int(time.time() * 1000)}"
    while db.query(model).filter(model.slug == candidate).first():
        candidate = f"{slug}-{int(time.time() * 1000)}"
        time.sleep(0.001)
    return candidate


def get_user_brand(db: Session, user_id: str) -> Optional[Brand]:
    return db.query(Brand).filter(Brand.user_id == user_id).first()


def get_user_supplier(db: Session, user_id: str) -> Optional[Supplier]:
    return db.query(Supplier).filter(Supplier.user_id == user_id).first()


def create_brand(db: Session, user: User, name: Optional[str], category: Optional[str] = None,
                 description: Optional[str] = None, logo_url: Optional[str] = None) -> Brand:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Brand name is required")
    if get_user_brand(db, user.id):
        raise Conflict("You already have a brand profile")

    brand = Brand(
        user_id=user.id,
        name=name,
        slug=unique_slug(db, Brand, name, "brand"),
        category=category,
        description=description,
        logo_url=logo_url,
    )
    db.add(brand)
    db.commit()
    db.refresh(brand)
    logger.info(f"Brand {brand.id} created for user {user.id}")
    return brand


def create_supplier(db: Session, user: Optional[User], company_name: Optional[str],
                    contact_email: Optional[str] = None, description: Optional[str] = None) -> Supplier:
    """
    Create a supplier profile. With a user it is owned (CLAIMED) from the start;
    without one it is a seeded, UNCLAIMED listing waiting to be claimed.
    """
    company_name = (company_name or "").strip()
    if not company_name:
        raise ValidationError("Company name is required")
    if user is not None and get_user_supplier(db, user.id):
        raise Conflict("You already have a supplier profile")

    supplier = Supplier(
        user_id=user.id if user else None,
        company_name=company_name,
        slug=unique_slug(db, Supplier, company_name, "supplier"),
        contact_email=contact_email.strip().lower() if contact_email else None,
        description=description,
        claim_status=ClaimStatus.CLAIMED if user else ClaimStatus.UNCLAIMED,
    )
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    logger.info(f"Supplier {supplier.id} created ({supplier.claim_status.value})")
    return supplier
