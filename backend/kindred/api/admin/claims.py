"""
Admin supplier claim review.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_admin_user_dependency
from kindred.core.database import get_db
from kindred.core.responses import paginate, success_response
from kindred.models.supplier_claim import SupplierClaimStatus
from kindred.models.user import User
from kindred.services import claims as claim_service
from kindred.services.serializers import claim_dict

router = APIRouter()


class ProcessClaimRequest(CamelModel):
    status: Optional[str] = None
    notes: Optional[str] = None


@router.get("")
async def list_claims(
    status: Optional[SupplierClaimStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    claims, total, statistics = claim_service.list_claims(db, status, page, limit)
    return success_response({
        "claims": [claim_dict(claim, include_supplier=True) for claim in claims],
        "statistics": statistics,
        "pagination": paginate(page, limit, total),
    })


@router.get("/{claim_id}")
async def get_claim(
    claim_id: str,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    return success_response(claim_dict(claim_service.get_claim(db, claim_id), include_supplier=True))


@router.patch("/{claim_id}")
async def process_claim(
    claim_id: str,
    request: ProcessClaimRequest,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    claim = claim_service.process_claim(db, claim_id, admin, request.status, request.notes)
    return success_response(
        claim_dict(claim, include_supplier=True),
        message=f"Claim {claim.status.value.lower()}",
    )
