"""
Admin supplier seeding: unclaimed listings that suppliers can later claim.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import EmailStr
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_admin_user_dependency
from kindred.core.database import get_db
from kindred.core.responses import paginate, success_response
from kindred.models.supplier import ClaimStatus, Supplier
from kindred.models.user import User
from kindred.services.profiles import create_supplier
from kindred.services.serializers import supplier_dict

router = APIRouter()


class SeedSupplierRequest(CamelModel):
    company_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    description: Optional[str] = None


@router.get("")
async def list_suppliers(
    claim_status: Optional[ClaimStatus] = Query(None, alias="claimStatus"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    query = db.query(Supplier)
    if claim_status is not None:
        query = query.filter(Supplier.claim_status == claim_status)
    total = query.count()
    suppliers = query.order_by(Supplier.company_name).offset((page - 1) * limit).limit(limit).all()
    return success_response({
        "suppliers": [supplier_dict(s) for s in suppliers],
        "pagination": paginate(page, limit, total),
    })


@router.post("")
async def seed_supplier(
    request: SeedSupplierRequest,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    supplier = create_supplier(db, None, request.company_name, request.contact_email, request.description)
    return success_response(supplier_dict(supplier), status_code=status.HTTP_201_CREATED)
