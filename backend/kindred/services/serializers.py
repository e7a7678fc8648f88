"""
camelCase dictionaries for API responses.
"""
from typing import Optional

from kindred.core.timeutils import isoformat
from kindred.models import (
    Brand, InviteLink, Member, Organisation, OrganisationInvite, OrganisationMember, Supplier, SupplierClaim, User,
)
from kindred.core.config import APP_URL


def _enum(value):
    return value.value if value is not None and hasattr(value, "value") else value


def user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": _enum(user.role),
        "createdAt": isoformat(user.created_at),
    }


def member_dict(member: Optional[Member]) -> Optional[dict]:
    if member is None:
        return None
    return {
        "id": member.id,
        "userId": member.user_id,
        "firstName": member.first_name,
        "lastName": member.last_name,
        "jobTitle": member.job_title,
        "bio": member.bio,
        "avatarUrl": member.avatar_url,
        "linkedinUrl": member.linkedin_url,
        "phone": member.phone,
        "isPublic": member.is_public,
        "createdAt": isoformat(member.created_at),
    }


def invite_link_dict(invite: InviteLink) -> dict:
    return {
        "id": invite.id,
        "token": invite.token,
        "inviteUrl": f"{APP_URL}/signup?invite={invite.token}",
        "isActive": invite.is_active,
        "expiresAt": isoformat(invite.expires_at),
        "maxUses": invite.max_uses,
        "usedCount": invite.used_count,
        "targetRole": _enum(invite.target_role),
        "notes": invite.notes,
        "email": invite.email,
        "phone": invite.phone,
        "createdBy": invite.created_by,
        "createdAt": isoformat(invite.created_at),
    }


def brand_dict(brand: Optional[Brand]) -> Optional[dict]:
    if brand is None:
        return None
    return {
        "id": brand.id,
        "name": brand.name,
        "slug": brand.slug,
        "category": brand.category,
        "description": brand.description,
        "logoUrl": brand.logo_url,
        "isVerified": brand.is_verified,
        "userId": brand.user_id,
    }


def supplier_dict(supplier: Optional[Supplier]) -> Optional[dict]:
    if supplier is None:
        return None
    return {
        "id": supplier.id,
        "companyName": supplier.company_name,
        "slug": supplier.slug,
        "contactEmail": supplier.contact_email,
        "description": supplier.description,
        "logoUrl": supplier.logo_url,
        "claimStatus": _enum(supplier.claim_status),
        "userId": supplier.user_id,
    }


def organisation_dict(organisation: Organisation) -> dict:
    return {
        "id": organisation.id,
        "name": organisation.name,
        "slug": organisation.slug,
        "type": _enum(organisation.type),
        "brandId": organisation.brand_id,
        "supplierId": organisation.supplier_id,
        "createdAt": isoformat(organisation.created_at),
    }


def organisation_member_dict(membership: OrganisationMember) -> dict:
    user = membership.user
    member = user.member if user else None
    return {
        "userId": membership.user_id,
        "organisationId": membership.organisation_id,
        "role": _enum(membership.role),
        "joinedAt": isoformat(membership.joined_at),
        "email": user.email if user else None,
        "firstName": member.first_name if member else None,
        "lastName": member.last_name if member else None,
        "avatarUrl": member.avatar_url if member else None,
    }


def organisation_invite_dict(invite: OrganisationInvite) -> dict:
    return {
        "id": invite.id,
        "organisationId": invite.organisation_id,
        "email": invite.email,
        "token": invite.token,
        "role": _enum(invite.role),
        "createdById": invite.created_by_id,
        "expiresAt": isoformat(invite.expires_at),
        "acceptedAt": isoformat(invite.accepted_at),
        "createdAt": isoformat(invite.created_at),
    }


def claim_dict(claim: SupplierClaim, include_supplier: bool = False) -> dict:
    data = {
        "id": claim.id,
        "supplierId": claim.supplier_id,
        "userId": claim.user_id,
        "status": _enum(claim.status),
        "companyEmail": claim.company_email,
        "failedAttempts": claim.failed_attempts,
        "notes": claim.notes,
        "processedAt": isoformat(claim.processed_at),
        "processedBy": claim.processed_by,
        "createdAt": isoformat(claim.created_at),
    }
    if include_supplier:
        data["supplier"] = supplier_dict(claim.supplier)
        data["user"] = {"id": claim.user.id, "email": claim.user.email} if claim.user else None
    return data
