"""
Authentication endpoints: invite-gated signup, auth callback, login, logout, me.
"""
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Cookie, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from pydantic import EmailStr
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import (
    clear_session_cookie, create_session, delete_session, get_current_user_dependency, set_session_cookie,
)
from kindred.core.config import RATE_LIMIT_PUBLIC_PER_MINUTE, RATE_LIMIT_SIGNUP_PER_MINUTE, SESSION_COOKIE_NAME
from kindred.core.database import get_db
from kindred.core.errors import KindredError
from kindred.core.rate_limit import rate_limit
from kindred.core.responses import success_response
from kindred.models.user import User
from kindred.services import identity as identity_provider
from kindred.services.organisations import get_membership
from kindred.services.serializers import member_dict, organisation_dict, user_dict
from kindred.services.signup import complete_auth_callback, signup

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_NEXT = "/dashboard?welcome=true"


class SignupRequest(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    invite_token: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


def _safe_next(next_path: Optional[str]) -> str:
    """Only same-site relative paths are followed."""
    if next_path and next_path.startswith("/") and not next_path.startswith("//"):
        return next_path
    return DEFAULT_NEXT


@router.post("/signup")
async def signup_endpoint(
    request: SignupRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("signup", RATE_LIMIT_SIGNUP_PER_MINUTE)),
):
    """Create an account. Requires a valid invite link token."""
    user = signup(
        db,
        email=request.email,
        password=request.password,
        role=request.role,
        invite_token=request.invite_token,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return success_response(
        {"user": {"id": user.id, "email": user.email, "role": user.role.value}},
        status_code=status.HTTP_201_CREATED,
        message="Please check your email to verify your account",
    )


@router.get("/callback")
async def auth_callback(
    code: Optional[str] = None,
    invite: Optional[str] = None,
    role: Optional[str] = None,
    next: Optional[str] = None,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("auth-callback", RATE_LIMIT_PUBLIC_PER_MINUTE)),
):
    """
    Redirect target for email confirmation and OAuth sign-in.
    Creates the application user for a first-time identity when the invite allows it.
    """
    if not code:
        return RedirectResponse("/login?error=auth_callback_error", status_code=status.HTTP_302_FOUND)
    try:
        user, created = complete_auth_callback(db, code, invite_token=invite, role=role)
    except KindredError as e:
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            return RedirectResponse("/login?error=auth_callback_error", status_code=status.HTTP_302_FOUND)
        logger.info(f"[Signup] Auth callback rejected: {e.message}")
        return RedirectResponse(f"/signup?error={quote(e.message)}", status_code=status.HTTP_302_FOUND)

    response = RedirectResponse(_safe_next(next), status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, create_session(user.id, user.email, user.role.value))
    return response


@router.post("/login")
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    identity = identity_provider.authenticate(request.email, request.password)
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    user = db.query(User).filter(User.id == identity.id).first()
    if not user:
        # Identity without an application account (signup never completed)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No account found. Sign up with an invite first."
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    response = success_response({"user": user_dict(user)})
    set_session_cookie(response, create_session(user.id, user.email, user.role.value))
    return response


@router.post("/logout")
async def logout(session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME)):
    """Logout and clear session."""
    if session_token:
        delete_session(session_token)
    response = success_response(message="Logged out")
    clear_session_cookie(response)
    return response


@router.get("/me")
async def get_me(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Get current user info with member profile and organisation."""
    membership = get_membership(db, current_user.id)
    organisation = None
    if membership:
        organisation = organisation_dict(membership.organisation)
        organisation["userRole"] = membership.role.value

    data = user_dict(current_user)
    data["emailVerified"] = current_user.email_verified_at is not None
    data["member"] = member_dict(current_user.member)
    data["organisation"] = organisation
    return success_response(data)
