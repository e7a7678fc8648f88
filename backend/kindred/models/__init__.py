"""
Database models.
"""
from kindred.models.identity import AuthIdentity
from kindred.models.user import User, UserRole
from kindred.models.invite_link import InviteLink
from kindred.models.member import Member
from kindred.models.brand import Brand
from kindred.models.supplier import Supplier, ClaimStatus
from kindred.models.organisation import Organisation, OrganisationMember, OrganisationType, OrganisationRole
from kindred.models.organisation_invite import OrganisationInvite
from kindred.models.supplier_claim import SupplierClaim, SupplierClaimStatus

__all__ = [
    "AuthIdentity",
    "User",
    "UserRole",
    "InviteLink",
    "Member",
    "Brand",
    "Supplier",
    "ClaimStatus",
    "Organisation",
    "OrganisationMember",
    "OrganisationType",
    "OrganisationRole",
    "OrganisationInvite",
    "SupplierClaim",
    "SupplierClaimStatus",
]
