"""
Student Routes

GET /student/projects - Get own projects
POST /student/projects - Register a project (random guide of the department)
GET /student/topics/similar - Previous topics similar to a title
GET /student/phases - Phases of own projects (?project_id=)
GET /student/submissions - Own submissions, newest first
"""

import re
import random
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.core.auth import require_student
from projexa.api.routes.admin_project_routes import STUDENT_PROJECT_QUERY
from projexa.api.routes.phase_routes import PHASE_QUERY, build_phase_response
from projexa.api.routes.submission_routes import SUBMISSION_QUERY
from projexa.services.rubric_service import STOP_WORDS
from projexa.schemas.schemas import (
    ProjectRegister, StudentProjectResponse, PreviousTopicResponse,
    PhaseResponse, SubmissionResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/student", tags=["Student"])

MAX_SIMILAR_TOPICS = 5


def significant_words(title: str) -> set:
    words = re.findall(r"[a-z0-9]+", title.lower())
    return {w for w in words if len(w) > 2 and w not in STOP_WORDS}


def find_similar_topics(title: str, topics: List[dict], limit: int = MAX_SIMILAR_TOPICS) -> List[dict]:
    """Topics sharing at least one significant word, most shared words first."""
    if len(title.strip()) < 3:
        return []
    wanted = significant_words(title)
    if not wanted:
        return []

    scored = []
    for topic in topics:
        shared = len(wanted & significant_words(topic["title"]))
        if shared:
            scored.append((shared, topic))
    scored.sort(key=lambda item: item[0], reverse=True)
    return [topic for _, topic in scored[:limit]]


@router.get("/projects", response_model=List[StudentProjectResponse])
async def get_my_projects(student: dict = Depends(require_student)):
    results = execute_raw_sql(
        STUDENT_PROJECT_QUERY + " WHERE p.student_id = :sid ORDER BY p.created_at DESC, p.project_id DESC",
        {"sid": student["user_id"]}
    )
    return [StudentProjectResponse(**r) for r in results]


@router.post("/projects", response_model=StudentProjectResponse, status_code=201)
async def register_project(data: ProjectRegister, student: dict = Depends(require_student)):
    """
    Register a project outside any admin project.
    A guide of the student's department is picked at random.
    """
    guides = execute_raw_sql(
        "SELECT user_id FROM users WHERE role = 'guide' AND is_active = TRUE AND department = :dept",
        {"dept": student["department"]}
    )
    if not guides:
        raise HTTPException(status_code=400, detail="No guide available in your department")
    guide_id = random.choice(guides)["user_id"]

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO projects (title, description, student_id, guide_id, department,
                    status, is_group_project)
                VALUES (:title, :description, :sid, :gid, :dept, 'active', FALSE)
                RETURNING project_id
            """),
            {
                "title": data.title, "description": data.description,
                "sid": student["user_id"], "gid": guide_id, "dept": student["department"]
            }
        )
        project_id = result.fetchone()[0]

    logger.info("Student %s registered project %s with guide %s", student["user_id"], project_id, guide_id)
    results = execute_raw_sql(STUDENT_PROJECT_QUERY + " WHERE p.project_id = :id", {"id": project_id})
    return StudentProjectResponse(**results[0])


@router.get("/topics/similar", response_model=List[PreviousTopicResponse])
async def get_similar_topics(
    title: str = Query(..., description="Proposed project title"),
    student: dict = Depends(require_student)
):
    """Previous-year topics that look like the proposed title."""
    if len(title.strip()) < 3:
        return []
    topics = execute_raw_sql("SELECT topic_id, title, year FROM previous_topics")
    return [PreviousTopicResponse(**t) for t in find_similar_topics(title, topics)]


@router.get("/phases", response_model=List[PhaseResponse])
async def get_my_phases(
    project_id: Optional[int] = Query(None),
    student: dict = Depends(require_student)
):
    sql = PHASE_QUERY + """
        WHERE ph.department = :dept AND ph.project_id IN (
            SELECT admin_project_id FROM projects WHERE student_id = :sid
    """
    params = {"dept": student["department"], "sid": student["user_id"]}

    if project_id:
        owned = execute_raw_sql(
            "SELECT student_id FROM projects WHERE project_id = :pid", {"pid": project_id}
        )
        if not owned:
            raise HTTPException(status_code=404, detail="Project not found")
        if owned[0]["student_id"] != student["user_id"]:
            raise HTTPException(status_code=403, detail="This project does not belong to you")
        sql += " AND project_id = :pid"
        params["pid"] = project_id

    sql += ") ORDER BY ph.deadline"
    return [build_phase_response(r) for r in execute_raw_sql(sql, params)]


@router.get("/submissions", response_model=List[SubmissionResponse])
async def get_my_submissions(student: dict = Depends(require_student)):
    results = execute_raw_sql(
        SUBMISSION_QUERY + " WHERE s.student_id = :sid ORDER BY s.submission_date DESC, s.submission_id DESC",
        {"sid": student["user_id"]}
    )
    return [SubmissionResponse(**r) for r in results]
