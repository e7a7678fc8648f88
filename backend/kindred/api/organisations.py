"""
Organisation management endpoints for the current user's organisation.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import get_current_user_dependency
from kindred.core.database import get_db
from kindred.core.responses import success_response
from kindred.models.user import User
from kindred.services import organisations as organisation_service
from kindred.services.serializers import (
    brand_dict, organisation_dict, organisation_member_dict, supplier_dict,
)

router = APIRouter()


class CreateOrganisationRequest(CamelModel):
    name: Optional[str] = None
    type: Optional[str] = None


class UpdateMemberRoleRequest(CamelModel):
    role: Optional[str] = None


class TransferOwnershipRequest(CamelModel):
    new_owner_id: Optional[str] = None


@router.get("/organisation")
async def get_my_organisation(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    """Organisation, its brand or supplier, roster and the caller's role. data is null without one."""
    membership = organisation_service.get_membership(db, current_user.id)
    if not membership:
        return success_response(None)

    organisation = membership.organisation
    data = organisation_dict(organisation)
    data["brand"] = brand_dict(organisation.brand)
    data["supplier"] = supplier_dict(organisation.supplier)
    data["members"] = [
        organisation_member_dict(m) for m in organisation_service.list_members(db, organisation.id)
    ]
    data["userRole"] = membership.role.value
    return success_response(data)


@router.post("/organisation")
async def create_organisation(
    request: CreateOrganisationRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    organisation = organisation_service.create_organisation(db, current_user, request.name, request.type)
    data = organisation_dict(organisation)
    data["userRole"] = "OWNER"
    return success_response(data, status_code=status.HTTP_201_CREATED, message="Organisation created")


@router.delete("/organisation")
async def delete_organisation(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    organisation_service.delete_organisation(db, current_user)
    return success_response(message="Organisation deleted")


@router.get("/organisation/members")
async def list_members(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    membership = organisation_service.require_membership(db, current_user)
    members = organisation_service.list_members(db, membership.organisation_id)
    return success_response([organisation_member_dict(m) for m in members])


@router.patch("/organisation/members/{user_id}")
async def update_member_role(
    user_id: str,
    request: UpdateMemberRoleRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    membership = organisation_service.update_member_role(db, current_user, user_id, request.role)
    return success_response(organisation_member_dict(membership), message="Member role updated")


@router.delete("/organisation/members/{user_id}")
async def remove_member(
    user_id: str,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    organisation_service.remove_member(db, current_user, user_id)
    return success_response(message="Member removed")


@router.post("/organisation/transfer")
async def transfer_ownership(
    request: TransferOwnershipRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    new_owner = organisation_service.transfer_ownership(db, current_user, request.new_owner_id)
    return success_response(organisation_member_dict(new_owner), message="Ownership transferred")


@router.post("/organisation/leave")
async def leave_organisation(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db),
):
    organisation_service.leave_organisation(db, current_user)
    return success_response(message="You have left the organisation")
