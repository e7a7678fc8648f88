"""
Admin invite link management.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_admin_user_dependency
from kindred.core.database import get_db
from kindred.core.responses import paginate, success_response
from kindred.models.invite_link import InviteLink
from kindred.models.user import User, UserRole
from kindred.services import invite_links as invite_service
from kindred.services.email import send_invite_email
from kindred.services.serializers import invite_link_dict, user_dict

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateInviteLinkRequest(CamelModel):
    expires_at: Optional[datetime] = None
    max_uses: Optional[int] = None
    notes: Optional[str] = None
    target_role: Optional[UserRole] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class UpdateInviteLinkRequest(CamelModel):
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None
    max_uses: Optional[int] = None
    notes: Optional[str] = None


@router.get("")
async def list_invite_links(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    target_role: Optional[UserRole] = Query(None, alias="targetRole"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    invites, total, stats = invite_service.list_invite_links(db, is_active, target_role, page, limit)
    return success_response({
        "invites": [invite_link_dict(invite) for invite in invites],
        "stats": stats,
        "pagination": paginate(page, limit, total),
    })


@router.post("")
async def create_invite_link(
    request: CreateInviteLinkRequest,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    invite = invite_service.create_invite_link(
        db,
        admin,
        expires_at=request.expires_at,
        max_uses=request.max_uses,
        notes=request.notes,
        target_role=request.target_role,
        email=request.email,
        phone=request.phone,
    )
    if invite.email and not send_invite_email(invite.email, invite.token, invite.notes):
        logger.warning(f"[AdminInvites] Invite email to {invite.email} not delivered for invite {invite.id}")
    return success_response(invite_link_dict(invite), status_code=status.HTTP_201_CREATED)


@router.get("/{invite_id}")
async def get_invite_link(
    invite_id: str,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    invite = db.query(InviteLink).filter(InviteLink.id == invite_id).first()
    if not invite:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite link not found")
    data = invite_link_dict(invite)
    data["signups"] = [user_dict(user) for user in invite.signups]
    return success_response(data)


@router.patch("/{invite_id}")
async def update_invite_link(
    invite_id: str,
    request: UpdateInviteLinkRequest,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    changes = {field: getattr(request, field) for field in request.model_fields_set}
    invite = invite_service.update_invite_link(db, invite_id, **changes)
    return success_response(invite_link_dict(invite))


@router.delete("/{invite_id}")
async def delete_invite_link(
    invite_id: str,
    admin: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db),
):
    invite_service.delete_invite_link(db, invite_id)
    return success_response(message="Invite link deleted")
