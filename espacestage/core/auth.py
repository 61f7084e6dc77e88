"""
Authentication Utility - JWT, password handling and access control.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies resolving the bearer token to an account
- Role and ownership checks used by every protected route
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from espacestage.core.config import Settings, get_settings
from espacestage.core.errors import AccountBlocked, Forbidden, Unauthenticated
from espacestage.db.postgres import Database, get_db
from espacestage.schemas.schemas import AccountStatus, UserRole

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; missing header is reported as Unauthenticated below
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unknown or malformed hash
        return False


def create_access_token(data: dict, settings: Optional[Settings] = None,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = settings or get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Optional[Settings] = None) -> Optional[dict]:
    """Decode and verify JWT token. Expired or tampered tokens return None."""
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> dict:
    """
    FastAPI dependency - Resolve the bearer token to an active account.

    Usage:
        @router.get("/protected")
        def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise Unauthenticated("Missing authentication token")

    payload = decode_token(credentials.credentials, request.app.state.settings)
    if not payload or not payload.get("sub"):
        raise Unauthenticated("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token")

    account = db.fetch_one(
        "SELECT id, email, role, status FROM accounts WHERE id = :id",
        {"id": user_id},
    )
    if not account:
        raise Unauthenticated("Account no longer exists")

    if account["status"] == AccountStatus.blocked.value:
        raise AccountBlocked()

    return {"user_id": account["id"], "email": account["email"], "role": UserRole(account["role"])}


def require_roles(*roles: UserRole):
    """Build a dependency that only lets the given roles through."""
    allowed = frozenset(roles)
    label = ", ".join(sorted(role.value for role in allowed))

    def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in allowed:
            raise Forbidden(f"Access restricted to: {label}")
        return user

    return dependency


get_current_student = require_roles(UserRole.student)
get_current_company = require_roles(UserRole.company)
get_current_admin = require_roles(UserRole.admin)
get_company_or_admin = require_roles(UserRole.company, UserRole.admin)


def ensure_owner_or_admin(user: dict, owner_id: int, message: str = "You do not own this resource") -> None:
    """Raise Forbidden unless the caller owns the resource or is an admin."""
    if user["role"] == UserRole.admin:
        return
    if user["user_id"] != owner_id:
        raise Forbidden(message)
