"""
User Management Routes (admin only)

POST /admin/users - Create user in the admin's department
GET /admin/users - List users (filters: role, department, search)
GET /admin/users/{user_id} - Get a user
PUT /admin/users/{user_id} - Update user (optional password reset)
DELETE /admin/users/{user_id} - Delete user
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.core.auth import hash_password, require_admin
from projexa.api.routes.admin_project_routes import delete_submissions_where, delete_files
from projexa.schemas.schemas import (
    UserCreate, UserUpdate, UserResponse, UserRole, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["Admin: Users"])

USER_COLUMNS = """
    user_id, email, name, role, department, specialization, year, semester, is_active, created_at
"""


def _get_user_row(user_id: int) -> dict:
    results = execute_raw_sql(
        f"SELECT {USER_COLUMNS} FROM users WHERE user_id = :id", {"id": user_id}
    )
    if not results:
        raise HTTPException(status_code=404, detail="User not found")
    return results[0]


def _check_same_department(admin: dict, department: Optional[str]):
    if not admin["department"] or admin["department"] != department:
        raise HTTPException(
            status_code=403,
            detail="Admin can only manage users of their own department"
        )


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(data: UserCreate, admin: dict = Depends(require_admin)):
    """
    Create an account for an admin, guide or student.
    Year and semester are only kept for students.
    """
    _check_same_department(admin, data.department)

    is_student = data.role == UserRole.student

    with get_db_session() as db:
        result = db.execute(
            text("SELECT user_id FROM users WHERE email = :email"),
            {"email": data.email}
        )
        if result.fetchone():
            raise HTTPException(status_code=409, detail="Email already registered")

        result = db.execute(
            text("""
                INSERT INTO users (email, password_hash, name, role, department,
                                   specialization, year, semester, is_active)
                VALUES (:email, :password_hash, :name, :role, :department,
                        :specialization, :year, :semester, TRUE)
                RETURNING user_id
            """),
            {
                "email": data.email,
                "password_hash": hash_password(data.password),
                "name": data.name,
                "role": data.role.value,
                "department": data.department,
                "specialization": data.specialization,
                "year": data.year if is_student else None,
                "semester": data.semester if is_student else None
            }
        )
        user_id = result.fetchone()[0]

    logger.info("Admin %s created %s account %s", admin["user_id"], data.role.value, user_id)
    return UserResponse(**_get_user_row(user_id))


@router.get("", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    department: Optional[str] = Query(None, description="Defaults to the admin's department"),
    search: Optional[str] = Query(None, description="Search in name or email"),
    admin: dict = Depends(require_admin)
):
    sql = f"SELECT {USER_COLUMNS} FROM users WHERE department = :department"
    params = {"department": department or admin["department"]}

    if role:
        sql += " AND role = :role"
        params["role"] = role.value
    if search:
        sql += " AND (LOWER(name) LIKE :search OR LOWER(email) LIKE :search)"
        params["search"] = f"%{search.lower()}%"

    sql += " ORDER BY role, name"
    return [UserResponse(**r) for r in execute_raw_sql(sql, params)]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, admin: dict = Depends(require_admin)):
    return UserResponse(**_get_user_row(user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, data: UserUpdate, admin: dict = Depends(require_admin)):
    """Update a user. Only provided fields are updated."""
    existing = _get_user_row(user_id)
    _check_same_department(admin, existing["department"])

    updates = []
    params = {"id": user_id}

    for field in ["email", "name", "specialization", "year", "semester", "is_active"]:
        value = getattr(data, field)
        if value is not None:
            updates.append(f"{field} = :{field}")
            params[field] = value

    if data.role:
        updates.append("role = :role")
        params["role"] = data.role.value
    if data.password:
        updates.append("password_hash = :password_hash")
        params["password_hash"] = hash_password(data.password)

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        if data.email and data.email != existing["email"]:
            taken = db.execute(
                text("SELECT user_id FROM users WHERE email = :email AND user_id != :id"),
                {"email": data.email, "id": user_id}
            ).fetchone()
            if taken:
                raise HTTPException(status_code=409, detail="Email already registered")

        db.execute(text(f"UPDATE users SET {', '.join(updates)} WHERE user_id = :id"), params)

    return UserResponse(**_get_user_row(user_id))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int, admin: dict = Depends(require_admin)):
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    existing = _get_user_row(user_id)
    _check_same_department(admin, existing["department"])

    with get_db_session() as db:
        db.execute(text("DELETE FROM notifications WHERE user_id = :id"), {"id": user_id})
        db.execute(text("DELETE FROM group_members WHERE student_id = :id"), {"id": user_id})
        db.execute(text("UPDATE projects SET guide_id = NULL WHERE guide_id = :id"), {"id": user_id})
        db.execute(
            text("UPDATE admin_projects SET assigned_guide_id = NULL WHERE assigned_guide_id = :id"),
            {"id": user_id}
        )
        removed_files = delete_submissions_where(db, "student_id = :id", {"id": user_id})
        db.execute(text("DELETE FROM projects WHERE student_id = :id"), {"id": user_id})
        db.execute(text("DELETE FROM users WHERE user_id = :id"), {"id": user_id})

    delete_files(removed_files)
    logger.info("Admin %s deleted user %s", admin["user_id"], user_id)
    return MessageResponse(message="User deleted")
