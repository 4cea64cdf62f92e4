"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for role-gated routes (admin, guide, student)
"""

from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from projexa.core.config import get_settings
from projexa.db.postgres import execute_raw_sql

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor (auto_error=False so a missing header is a 401, not a 403)
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def create_user_token(user_id: int, role: str) -> str:
    """Access token for a user; `sub` is the user id as a string."""
    return create_access_token({"sub": str(user_id), "role": role})


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - the authenticated user as a dict
    (user_id, email, name, role, department).

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise _unauthorized("No authorization token")

    payload = decode_token(credentials.credentials) or {}
    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        raise _unauthorized("Invalid or expired token")

    rows = execute_raw_sql("""
        SELECT user_id, email, name, role, department, is_active
        FROM users WHERE user_id = :id
    """, {"id": int(user_id)})
    if not rows:
        raise _unauthorized("Invalid or expired token")

    user = rows[0]
    if not user.pop("is_active"):
        raise HTTPException(status_code=403, detail="Account deactivated")
    return user


def require_role(role: str):
    """Dependency factory: only users with this role get through."""
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] != role:
            raise HTTPException(status_code=403, detail=f"{role.capitalize()}s only")
        return user
    return dependency


require_admin = require_role("admin")
require_guide = require_role("guide")
require_student = require_role("student")
