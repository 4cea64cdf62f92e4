"""
Authentication Routes

POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info and dashboard path
PUT /auth/password - Change own password

Accounts are created by admins (see user_routes); there is no self sign-up.
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from projexa.db.postgres import get_db_session
from projexa.core.auth import hash_password, verify_password, create_user_token, get_current_user
from projexa.schemas.schemas import (
    LoginRequest, TokenResponse, MeResponse, PasswordChange, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def dashboard_path(role: str) -> str:
    return f"/dashboard/{role}"


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id, password_hash, role, is_active FROM users WHERE email = :email"),
            {"email": request.email}
        )
        user = result.fetchone()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user_id, password_hash, role, is_active = user

    if not verify_password(request.password, password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    token = create_user_token(user_id, role)

    return TokenResponse(access_token=token, user_id=user_id, role=role, dashboard=dashboard_path(role))


@router.get("/me", response_model=MeResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT user_id, email, name, role, department, specialization, year, semester,
                       is_active, created_at
                FROM users WHERE user_id = :id
            """),
            {"id": user["user_id"]}
        )
        row = result.fetchone()

    return MeResponse(
        user_id=row[0], email=row[1], name=row[2], role=row[3], department=row[4],
        specialization=row[5], year=row[6], semester=row[7], is_active=row[8],
        created_at=row[9], dashboard=dashboard_path(row[3])
    )


@router.put("/password", response_model=MessageResponse)
async def change_password(data: PasswordChange, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = db.execute(
            text("SELECT password_hash FROM users WHERE user_id = :id"),
            {"id": user["user_id"]}
        ).fetchone()

        if not verify_password(data.old_password, row[0]):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        db.execute(
            text("UPDATE users SET password_hash = :hash WHERE user_id = :id"),
            {"hash": hash_password(data.new_password), "id": user["user_id"]}
        )

    return MessageResponse(message="Password updated")
