"""
Admin Project Routes

POST /admin/projects - Create admin project, auto-assign eligible students
GET /admin/projects - List admin projects of the admin's department
GET /admin/projects/{id} - Get admin project
PUT /admin/projects/{id} - Update admin project
DELETE /admin/projects/{id} - Delete admin project and everything under it
GET /admin/projects/{id}/students - Student projects with guide info
PUT /admin/student-projects/{project_id}/guide - Assign a guide

POST /admin/projects/{id}/groups - Create group
GET /admin/projects/{id}/groups - List groups with members
POST /admin/groups/{group_id}/members - Add student to group
DELETE /admin/groups/{group_id}/members/{student_id} - Remove student from group
DELETE /admin/groups/{group_id} - Delete group
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.core.auth import require_admin
from projexa.schemas.schemas import (
    AdminProjectCreate, AdminProjectUpdate, AdminProjectResponse, AdminProjectCreateResponse,
    StudentProjectResponse, GuideAssignment,
    GroupCreate, GroupMemberAdd, GroupMemberResponse, GroupResponse,
    MessageResponse
)
from projexa.utils.storage import delete_submission_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin: Projects & Groups"])


ADMIN_PROJECT_QUERY = """
    SELECT ap.admin_project_id, ap.title, ap.description, ap.department, ap.year, ap.semester,
           ap.max_students, ap.status, ap.project_type, ap.allow_group_formation,
           ap.min_group_size, ap.max_group_size, ap.assigned_guide_id, ap.created_at,
           (SELECT COUNT(*) FROM projects p WHERE p.admin_project_id = ap.admin_project_id)
               AS student_count
    FROM admin_projects ap
"""

STUDENT_PROJECT_QUERY = """
    SELECT p.project_id, p.title, p.description, p.project_name, p.student_id,
           s.name AS student_name, s.email AS student_email,
           p.guide_id, g.name AS guide_name, p.admin_project_id,
           ap.title AS admin_project_title, p.department, p.status,
           p.is_group_project, p.group_id, pg.name AS group_name, p.similarity_score
    FROM projects p
    JOIN users s ON p.student_id = s.user_id
    LEFT JOIN users g ON p.guide_id = g.user_id
    LEFT JOIN admin_projects ap ON p.admin_project_id = ap.admin_project_id
    LEFT JOIN project_groups pg ON p.group_id = pg.group_id
"""


def get_owned_admin_project(admin_project_id: int, admin: dict) -> dict:
    """Fetch an admin project, 404 if missing, 403 if another department's."""
    results = execute_raw_sql(
        ADMIN_PROJECT_QUERY + " WHERE ap.admin_project_id = :id", {"id": admin_project_id}
    )
    if not results:
        raise HTTPException(status_code=404, detail="Admin project not found")
    if results[0]["department"] != admin["department"]:
        raise HTTPException(status_code=403, detail="Admin project belongs to another department")
    return results[0]


def _get_owned_group(group_id: int, admin: dict) -> dict:
    results = execute_raw_sql("""
        SELECT pg.group_id, pg.admin_project_id, pg.name, pg.max_members, ap.department,
               ap.assigned_guide_id
        FROM project_groups pg
        JOIN admin_projects ap ON pg.admin_project_id = ap.admin_project_id
        WHERE pg.group_id = :gid
    """, {"gid": group_id})
    if not results:
        raise HTTPException(status_code=404, detail="Group not found")
    if results[0]["department"] != admin["department"]:
        raise HTTPException(status_code=403, detail="Group belongs to another department")
    return results[0]


def delete_submissions_where(db, condition: str, params: dict) -> List[str]:
    """
    Delete submissions matching a WHERE clause inside the caller's transaction.
    Returns their stored file paths; remove those only once the transaction
    has committed, so a rollback never leaves rows pointing at missing files.
    """
    rows = db.execute(
        text(f"SELECT file_path FROM submissions WHERE {condition}"), params
    ).fetchall()
    db.execute(text(f"DELETE FROM submissions WHERE {condition}"), params)
    return [row[0] for row in rows]


def delete_files(file_paths: List[str]) -> None:
    for file_path in file_paths:
        delete_submission_file(file_path)


# ============================================================
# ADMIN PROJECTS
# ============================================================

@router.post("/projects", response_model=AdminProjectCreateResponse, status_code=201)
async def create_admin_project(data: AdminProjectCreate, admin: dict = Depends(require_admin)):
    """
    Create a department project and give every eligible student a project row.

    Eligible: students of the same department, year and semester that do
    not have a project under this admin project yet.
    """
    if data.department != admin["department"]:
        raise HTTPException(
            status_code=403, detail="You can only create projects for your own department"
        )
    if data.min_group_size > data.max_group_size:
        raise HTTPException(status_code=400, detail="min_group_size cannot exceed max_group_size")

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO admin_projects (title, description, department, year, semester,
                    created_by, max_students, status, project_type, allow_group_formation,
                    min_group_size, max_group_size)
                VALUES (:title, :description, :department, :year, :semester,
                    :created_by, :max_students, 'active', :project_type, :allow_groups,
                    :min_size, :max_size)
                RETURNING admin_project_id
            """),
            {
                "title": data.title, "description": data.description,
                "department": data.department, "year": data.year, "semester": data.semester,
                "created_by": admin["user_id"], "max_students": data.max_students,
                "project_type": data.project_type.value,
                "allow_groups": data.allow_group_formation,
                "min_size": data.min_group_size, "max_size": data.max_group_size
            }
        )
        admin_project_id = result.fetchone()[0]

        students = db.execute(
            text("""
                SELECT u.user_id FROM users u
                WHERE u.role = 'student' AND u.is_active = TRUE
                  AND u.department = :department AND u.year = :year AND u.semester = :semester
                  AND NOT EXISTS (
                      SELECT 1 FROM projects p
                      WHERE p.student_id = u.user_id AND p.admin_project_id = :apid
                  )
            """),
            {
                "department": data.department, "year": data.year,
                "semester": data.semester, "apid": admin_project_id
            }
        ).fetchall()

        for (student_id,) in students:
            db.execute(
                text("""
                    INSERT INTO projects (title, description, student_id, department,
                        admin_project_id, status, is_group_project)
                    VALUES (:title, :description, :sid, :department, :apid, 'pending', FALSE)
                """),
                {
                    "title": data.title, "description": data.description, "sid": student_id,
                    "department": data.department, "apid": admin_project_id
                }
            )

    logger.info(
        "Admin project %s created, %d students assigned", admin_project_id, len(students)
    )
    project = get_owned_admin_project(admin_project_id, admin)
    return AdminProjectCreateResponse(
        message=f"Project created and assigned to {len(students)} students",
        admin_project=AdminProjectResponse(**project),
        assigned_students=len(students)
    )


@router.get("/projects", response_model=List[AdminProjectResponse])
async def list_admin_projects(admin: dict = Depends(require_admin)):
    results = execute_raw_sql(
        ADMIN_PROJECT_QUERY + " WHERE ap.department = :dept ORDER BY ap.created_at DESC, ap.admin_project_id DESC",
        {"dept": admin["department"]}
    )
    return [AdminProjectResponse(**r) for r in results]


@router.get("/projects/{admin_project_id}", response_model=AdminProjectResponse)
async def get_admin_project(admin_project_id: int, admin: dict = Depends(require_admin)):
    return AdminProjectResponse(**get_owned_admin_project(admin_project_id, admin))


@router.put("/projects/{admin_project_id}", response_model=AdminProjectResponse)
async def update_admin_project(
    admin_project_id: int,
    data: AdminProjectUpdate,
    admin: dict = Depends(require_admin)
):
    get_owned_admin_project(admin_project_id, admin)

    updates = []
    params = {"id": admin_project_id}

    if data.title is not None:
        updates.append("title = :title")
        params["title"] = data.title
    if data.description is not None:
        updates.append("description = :description")
        params["description"] = data.description
    if data.status:
        updates.append("status = :status")
        params["status"] = data.status.value
    if data.assigned_guide_id is not None:
        _check_guide(data.assigned_guide_id, admin["department"])
        updates.append("assigned_guide_id = :guide_id")
        params["guide_id"] = data.assigned_guide_id

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        db.execute(
            text(f"UPDATE admin_projects SET {', '.join(updates)} WHERE admin_project_id = :id"),
            params
        )

    return AdminProjectResponse(**get_owned_admin_project(admin_project_id, admin))


@router.delete("/projects/{admin_project_id}", response_model=MessageResponse)
async def delete_admin_project(admin_project_id: int, admin: dict = Depends(require_admin)):
    """Delete an admin project with its groups, student projects, phases and submissions."""
    get_owned_admin_project(admin_project_id, admin)
    params = {"apid": admin_project_id}

    with get_db_session() as db:
        removed_files = delete_submissions_where(
            db,
            "project_id IN (SELECT project_id FROM projects WHERE admin_project_id = :apid)"
            " OR phase_id IN (SELECT phase_id FROM phases WHERE project_id = :apid)",
            params
        )
        db.execute(
            text("DELETE FROM rubrics WHERE phase_id IN (SELECT phase_id FROM phases WHERE project_id = :apid)"),
            params
        )
        db.execute(text("DELETE FROM phases WHERE project_id = :apid"), params)
        db.execute(text("DELETE FROM projects WHERE admin_project_id = :apid"), params)
        db.execute(
            text("DELETE FROM group_members WHERE group_id IN (SELECT group_id FROM project_groups WHERE admin_project_id = :apid)"),
            params
        )
        db.execute(text("DELETE FROM project_groups WHERE admin_project_id = :apid"), params)
        db.execute(text("DELETE FROM admin_projects WHERE admin_project_id = :apid"), params)

    delete_files(removed_files)

    logger.info("Admin project %s deleted by %s", admin_project_id, admin["user_id"])
    return MessageResponse(message="Admin project deleted")


# ============================================================
# STUDENT PROJECTS & GUIDES
# ============================================================

def _check_guide(guide_id: int, department: str):
    results = execute_raw_sql(
        "SELECT role, department FROM users WHERE user_id = :id", {"id": guide_id}
    )
    if not results or results[0]["role"] != "guide":
        raise HTTPException(status_code=404, detail="Guide not found")
    if results[0]["department"] != department:
        raise HTTPException(status_code=400, detail="Guide must belong to the same department")


@router.get("/projects/{admin_project_id}/students", response_model=List[StudentProjectResponse])
async def list_project_students(admin_project_id: int, admin: dict = Depends(require_admin)):
    get_owned_admin_project(admin_project_id, admin)
    results = execute_raw_sql(
        STUDENT_PROJECT_QUERY + " WHERE p.admin_project_id = :apid ORDER BY s.name",
        {"apid": admin_project_id}
    )
    return [StudentProjectResponse(**r) for r in results]


@router.put("/student-projects/{project_id}/guide", response_model=StudentProjectResponse)
async def assign_guide(project_id: int, data: GuideAssignment, admin: dict = Depends(require_admin)):
    projects = execute_raw_sql(
        "SELECT project_id, department FROM projects WHERE project_id = :id", {"id": project_id}
    )
    if not projects:
        raise HTTPException(status_code=404, detail="Project not found")
    if projects[0]["department"] != admin["department"]:
        raise HTTPException(status_code=403, detail="Project belongs to another department")

    _check_guide(data.guide_id, admin["department"])

    with get_db_session() as db:
        db.execute(
            text("UPDATE projects SET guide_id = :gid WHERE project_id = :id"),
            {"gid": data.guide_id, "id": project_id}
        )

    results = execute_raw_sql(STUDENT_PROJECT_QUERY + " WHERE p.project_id = :id", {"id": project_id})
    return StudentProjectResponse(**results[0])


# ============================================================
# GROUPS
# ============================================================

def _get_group(group_id: int) -> GroupResponse:
    group = execute_raw_sql("""
        SELECT group_id, admin_project_id, name, description, max_members
        FROM project_groups WHERE group_id = :gid
    """, {"gid": group_id})[0]
    members = execute_raw_sql("""
        SELECT u.user_id AS student_id, u.name, u.email, gm.role
        FROM group_members gm
        JOIN users u ON gm.student_id = u.user_id
        WHERE gm.group_id = :gid
        ORDER BY gm.member_id
    """, {"gid": group_id})
    return GroupResponse(
        **group,
        member_count=len(members),
        members=[GroupMemberResponse(**m) for m in members]
    )


@router.post("/projects/{admin_project_id}/groups", response_model=GroupResponse, status_code=201)
async def create_group(admin_project_id: int, data: GroupCreate, admin: dict = Depends(require_admin)):
    get_owned_admin_project(admin_project_id, admin)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO project_groups (admin_project_id, name, description, max_members, created_by)
                VALUES (:apid, :name, :description, :max_members, :created_by)
                RETURNING group_id
            """),
            {
                "apid": admin_project_id, "name": data.name, "description": data.description,
                "max_members": data.max_members, "created_by": admin["user_id"]
            }
        )
        group_id = result.fetchone()[0]

    return _get_group(group_id)


@router.get("/projects/{admin_project_id}/groups", response_model=List[GroupResponse])
async def list_groups(admin_project_id: int, admin: dict = Depends(require_admin)):
    get_owned_admin_project(admin_project_id, admin)
    rows = execute_raw_sql(
        "SELECT group_id FROM project_groups WHERE admin_project_id = :apid ORDER BY group_id",
        {"apid": admin_project_id}
    )
    return [_get_group(r["group_id"]) for r in rows]


@router.post("/groups/{group_id}/members", response_model=GroupResponse, status_code=201)
async def add_group_member(group_id: int, data: GroupMemberAdd, admin: dict = Depends(require_admin)):
    """
    Add a student to a group.

    The student's project under the same admin project becomes a group
    project and gets the admin project's assigned guide.
    """
    group = _get_owned_group(group_id, admin)
    params = {"gid": group_id, "sid": data.student_id, "apid": group["admin_project_id"]}

    with get_db_session() as db:
        student = db.execute(
            text("SELECT role, department FROM users WHERE user_id = :sid"), params
        ).fetchone()
        if not student or student[0] != "student":
            raise HTTPException(status_code=404, detail="Student not found")
        if student[1] != admin["department"]:
            raise HTTPException(status_code=403, detail="Student belongs to another department")

        has_project = db.execute(
            text("SELECT 1 FROM projects WHERE student_id = :sid AND admin_project_id = :apid"),
            params
        ).fetchone()
        if not has_project:
            raise HTTPException(
                status_code=400, detail="Student has no project under this admin project"
            )

        existing = db.execute(
            text("""
                SELECT gm.group_id FROM group_members gm
                JOIN project_groups pg ON gm.group_id = pg.group_id
                WHERE gm.student_id = :sid AND pg.admin_project_id = :apid
            """),
            params
        ).fetchone()
        if existing:
            raise HTTPException(
                status_code=409, detail="Student is already in a group for this project"
            )

        member_count = db.execute(
            text("SELECT COUNT(*) FROM group_members WHERE group_id = :gid"), params
        ).scalar()
        if member_count >= group["max_members"]:
            raise HTTPException(status_code=400, detail="Group is full")

        db.execute(
            text("INSERT INTO group_members (group_id, student_id, role) VALUES (:gid, :sid, :role)"),
            {**params, "role": data.role.value}
        )
        db.execute(
            text("""
                UPDATE projects
                SET is_group_project = TRUE, group_id = :gid,
                    guide_id = COALESCE(:guide_id, guide_id)
                WHERE student_id = :sid AND admin_project_id = :apid
            """),
            {**params, "guide_id": group["assigned_guide_id"]}
        )

    logger.info("Student %s added to group %s", data.student_id, group_id)
    return _get_group(group_id)


@router.delete("/groups/{group_id}/members/{student_id}", response_model=GroupResponse)
async def remove_group_member(group_id: int, student_id: int, admin: dict = Depends(require_admin)):
    group = _get_owned_group(group_id, admin)
    params = {"gid": group_id, "sid": student_id, "apid": group["admin_project_id"]}

    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM group_members WHERE group_id = :gid AND student_id = :sid"), params
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Student is not a member of this group")

        db.execute(
            text("""
                UPDATE projects SET is_group_project = FALSE, group_id = NULL
                WHERE student_id = :sid AND admin_project_id = :apid AND group_id = :gid
            """),
            params
        )

    return _get_group(group_id)


@router.delete("/groups/{group_id}", response_model=MessageResponse)
async def delete_group(group_id: int, admin: dict = Depends(require_admin)):
    _get_owned_group(group_id, admin)

    with get_db_session() as db:
        db.execute(
            text("UPDATE projects SET is_group_project = FALSE, group_id = NULL WHERE group_id = :gid"),
            {"gid": group_id}
        )
        db.execute(text("DELETE FROM group_members WHERE group_id = :gid"), {"gid": group_id})
        db.execute(text("DELETE FROM project_groups WHERE group_id = :gid"), {"gid": group_id})

    return MessageResponse(message="Group deleted")
