"""
Authentication utilities and dependencies.
"""
from fastapi import Depends, HTTPException, status, Cookie, Response
from sqlalchemy.orm import Session
from typing import Optional
from kindred.core.database import get_db
from kindred.core.config import SESSION_SECRET, SESSION_COOKIE_NAME, SESSION_MAX_AGE_HOURS
from kindred.models.user import User, UserRole
import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

# Verified sessions cache (per process). Tokens are self-contained, so a cold
# cache only costs a signature check.
_sessions: dict[str, dict] = {}


def _sign(payload: str) -> str:
    secret = SESSION_SECRET.encode() if SESSION_SECRET else b'default-secret-change-in-prod'
    return hmac.new(secret, payload.encode(), hashlib.sha256).hexdigest()


def create_session(user_id: str, email: str, role: str) -> str:
    """Create a session token."""
    session_data = {
        'user_id': user_id,
        'email': email,
        'role': role,
        'created_at': datetime.now(timezone.utc).isoformat(),
    }
    # base64url keeps the token cookie-safe
    payload = base64.urlsafe_b64encode(json.dumps(session_data, sort_keys=True).encode()).decode().rstrip("=")
    session_token = f"{payload}.{_sign(payload)}"
    _sessions[session_token] = session_data
    return session_token


def verify_session(session_token: Optional[str]) -> Optional[dict]:
    """Verify and get session data."""
    if not session_token:
        return None

    session_data = _sessions.get(session_token)
    if session_data is None:
        parts = session_token.rsplit('.', 1)
        if len(parts) != 2:
            return None
        payload, signature = parts
        if not hmac.compare_digest(signature, _sign(payload)):
            return None
        try:
            padded = payload + "=" * (-len(payload) % 4)
            session_data = json.loads(base64.urlsafe_b64decode(padded.encode()).decode())
        except ValueError:
            return None

    if _is_expired(session_data):
        _sessions.pop(session_token, None)
        return None

    _sessions[session_token] = session_data
    return session_data


def _is_expired(session_data: dict) -> bool:
    try:
        created_at = datetime.fromisoformat(session_data['created_at'])
    except (KeyError, TypeError, ValueError):
        return True
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - created_at > timedelta(hours=SESSION_MAX_AGE_HOURS)


def sweep_sessions() -> int:
    """Drop expired sessions from the cache. Returns how many were removed."""
    expired = [token for token, data in list(_sessions.items()) if _is_expired(data)]
    for token in expired:
        _sessions.pop(token, None)
    return len(expired)


def delete_session(session_token: str):
    """Delete a session."""
    _sessions.pop(session_token, None)


def set_session_cookie(response: Response, session_token: str):
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,
        samesite="lax",
        max_age=SESSION_MAX_AGE_HOURS * 3600,
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(key=SESSION_COOKIE_NAME)


def get_current_user_dependency(
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db)
) -> User:
    """Dependency to get current authenticated user."""
    if not session_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    session_data = verify_session(session_token)
    if not session_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session"
        )

    user = db.query(User).filter(User.id == session_data['user_id']).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )
    return user


def get_current_admin_user_dependency(
    current_user: User = Depends(get_current_user_dependency)
) -> User:
    """Dependency to get current platform admin user."""
    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def require_role(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given user roles.
    Usage: Depends(require_role(UserRole.BRAND, UserRole.ADMIN))
    """
    def role_checker(current_user: User = Depends(get_current_user_dependency)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user

    return role_checker
