"""
Member profile endpoints for the current user.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_user_dependency
from kindred.core.database import get_db
from kindred.core.responses import success_response
from kindred.models.member import Member
from kindred.models.user import User
from kindred.services.serializers import member_dict

router = APIRouter()


class CreateMemberRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    phone: Optional[str] = None
    is_public: Optional[bool] = None


class UpdateMemberRequest(CreateMemberRequest):
    pass


@router.get("/member")
async def get_member_profile(current_user: User = Depends(get_current_user_dependency)):
    if not current_user.member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member profile not found")
    return success_response(member_dict(current_user.member))


@router.post("/member")
async def create_member_profile(
    request: CreateMemberRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    if current_user.member:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Member profile already exists")
    if not (request.first_name or "").strip() or not (request.last_name or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="First name and last name are required")

    member = Member(
        user_id=current_user.id,
        first_name=request.first_name.strip(),
        last_name=request.last_name.strip(),
        job_title=request.job_title,
        bio=request.bio,
        avatar_url=request.avatar_url,
        linkedin_url=request.linkedin_url,
        phone=request.phone,
        is_public=True if request.is_public is None else request.is_public,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return success_response(member_dict(member), status_code=status.HTTP_201_CREATED)


@router.patch("/member")
async def update_member_profile(
    request: UpdateMemberRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    member = current_user.member
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member profile not found")

    for field in request.model_fields_set:
        value = getattr(request, field)
        if field in ("first_name", "is_public") and value is None:
            continue
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    return success_response(member_dict(member))
