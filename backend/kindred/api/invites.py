"""
Public invite link validation.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kindred.core.config import RATE_LIMIT_PUBLIC_PER_MINUTE
from kindred.core.database import get_db
from kindred.core.rate_limit import rate_limit
from kindred.core.responses import success_response
from kindred.services.invite_links import validate_invite_token

router = APIRouter()


@router.get("/validate")
async def validate_invite(
    token: Optional[str] = None,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("invite-validate", RATE_LIMIT_PUBLIC_PER_MINUTE)),
):
    invite = validate_invite_token(db, token)
    return success_response({
        "valid": True,
        "token": invite.token,
        "targetRole": invite.target_role.value if invite.target_role else None,
    })
