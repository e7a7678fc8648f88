"""
Supplier claim endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_user_dependency
from kindred.core.config import RATE_LIMIT_CLAIM_PER_MINUTE, is_development
from kindred.core.database import get_db
from kindred.core.rate_limit import rate_limit
from kindred.core.responses import success_response
from kindred.models.user import User
from kindred.services.claims import initiate_claim, verify_claim
from kindred.services.serializers import claim_dict

router = APIRouter()


class InitiateClaimRequest(CamelModel):
    company_email: Optional[str] = None


class VerifyClaimRequest(CamelModel):
    verification_code: Optional[str] = None


@router.post("/{slug}/claim")
async def start_claim(
    slug: str,
    request: InitiateClaimRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("supplier-claim", RATE_LIMIT_CLAIM_PER_MINUTE)),
):
    claim = initiate_claim(db, slug, current_user, request.company_email)
    data = {"claim": claim_dict(claim)}
    if is_development():
        data["verificationCode"] = claim.verification_code
    return success_response(
        data,
        status_code=status.HTTP_201_CREATED,
        message=f"A verification code has been sent to {claim.company_email}",
    )


@router.patch("/{slug}/claim")
async def complete_claim(
    slug: str,
    request: VerifyClaimRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("supplier-claim-verify", RATE_LIMIT_CLAIM_PER_MINUTE)),
):
    claim = verify_claim(db, slug, current_user, request.verification_code)
    return success_response(
        {"claim": claim_dict(claim, include_supplier=True)},
        message="Supplier profile claimed",
    )
