"""
Organisation invite endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_user_dependency
from kindred.core.config import RATE_LIMIT_PUBLIC_PER_MINUTE
from kindred.core.database import get_db
from kindred.core.rate_limit import rate_limit
from kindred.core.responses import success_response
from kindred.models.user import User
from kindred.services import org_invites as invite_service
from kindred.services.serializers import organisation_dict, organisation_invite_dict, organisation_member_dict

router = APIRouter()


class CreateInviteRequest(CamelModel):
    email: Optional[str] = None
    role: Optional[str] = "MEMBER"


@router.get("/organisation/invite")
async def list_invites(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    grouped = invite_service.list_invites(db, current_user)
    return success_response({
        key: [organisation_invite_dict(invite) for invite in invites]
        for key, invites in grouped.items()
    })


@router.post("/organisation/invite")
async def create_invite(
    request: CreateInviteRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    invite = invite_service.create_invite(db, current_user, request.email, request.role)
    return success_response(
        {"invite": organisation_invite_dict(invite), "inviteUrl": invite_service.invite_url(invite.token)},
        status_code=status.HTTP_201_CREATED,
        message=f"Invite sent to {invite.email}",
    )


@router.get("/organisation/invite/{token}")
async def get_invite(
    token: str,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("org-invite", RATE_LIMIT_PUBLIC_PER_MINUTE)),
):
    """Public: invite details for the landing page."""
    invite = invite_service.get_invite(db, token)
    return success_response(invite_service.invite_details(invite))


@router.post("/organisation/invite/{token}")
async def accept_invite(
    token: str,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("org-invite", RATE_LIMIT_PUBLIC_PER_MINUTE)),
):
    membership = invite_service.accept_invite(db, token, current_user)
    return success_response(
        {
            "membership": organisation_member_dict(membership),
            "organisation": organisation_dict(membership.organisation),
        },
        message=f"You have joined {membership.organisation.name}",
    )


@router.delete("/organisation/invite/{token}")
async def cancel_invite(
    token: str,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    invite_service.cancel_invite(db, token, current_user)
    return success_response(message="Invite cancelled")
