"""
Phase, Rubric & Reference Routes (admin only)

POST /admin/phases - Create phase for an admin project
GET /admin/phases - List phases with rubrics (?project_id=)
PUT /admin/phases/{phase_id} - Update phase
DELETE /admin/phases/{phase_id} - Delete phase, its rubrics and submissions
POST /admin/phases/{phase_id}/rubrics - Add rubric
PUT /admin/rubrics/{rubric_id} - Update rubric
DELETE /admin/rubrics/{rubric_id} - Delete rubric
GET /admin/stats - Department dashboard numbers
POST /admin/references - Upload a previous-year reference PDF
GET /admin/references - List reference PDFs
"""

import os
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from sqlalchemy import text

from projexa.core.config import get_settings
from projexa.core.auth import require_admin
from projexa.core.errors import PDFExtractionError
from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.api.routes.admin_project_routes import (
    get_owned_admin_project, delete_submissions_where, delete_files
)
from projexa.services.mongo_service import ReferenceDocumentService
from projexa.services.similarity_service import compute_text_hash, requires_similarity_check
from projexa.utils.file_upload import read_pdf_upload, extract_text_from_pdf, clean_extracted_text
from projexa.schemas.schemas import (
    PhaseCreate, PhaseUpdate, PhaseResponse, RubricCreate, RubricUpdate, RubricResponse,
    AdminStatsResponse, ReferenceDocumentResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin: Phases & Rubrics"])


PHASE_QUERY = """
    SELECT ph.phase_id, ph.project_id, ap.title AS project_title, ph.name, ph.description,
           ph.deadline, ph.max_marks, ph.late_penalty_per_day, ph.department, ph.is_active
    FROM phases ph
    JOIN admin_projects ap ON ph.project_id = ap.admin_project_id
"""


def build_phase_response(row: dict) -> PhaseResponse:
    """Attach rubrics and the similarity flag to a phase row."""
    rubrics = execute_raw_sql(
        "SELECT rubric_id, phase_id, name, description FROM rubrics WHERE phase_id = :pid ORDER BY rubric_id",
        {"pid": row["phase_id"]}
    )
    return PhaseResponse(
        **row,
        requires_similarity_check=requires_similarity_check(row["name"]),
        rubrics=[RubricResponse(**r) for r in rubrics]
    )


def _get_owned_phase(phase_id: int, admin: dict) -> dict:
    results = execute_raw_sql(PHASE_QUERY + " WHERE ph.phase_id = :id", {"id": phase_id})
    if not results:
        raise HTTPException(status_code=404, detail="Phase not found")
    if results[0]["department"] != admin["department"]:
        raise HTTPException(status_code=403, detail="Phase belongs to another department")
    return results[0]


def _get_owned_rubric(rubric_id: int, admin: dict) -> dict:
    results = execute_raw_sql("""
        SELECT r.rubric_id, r.phase_id, r.name, r.description, ph.department
        FROM rubrics r JOIN phases ph ON r.phase_id = ph.phase_id
        WHERE r.rubric_id = :id
    """, {"id": rubric_id})
    if not results:
        raise HTTPException(status_code=404, detail="Rubric not found")
    if results[0]["department"] != admin["department"]:
        raise HTTPException(status_code=403, detail="Rubric belongs to another department")
    return results[0]


# ============================================================
# PHASES
# ============================================================

@router.post("/phases", response_model=PhaseResponse, status_code=201)
async def create_phase(data: PhaseCreate, admin: dict = Depends(require_admin)):
    project = get_owned_admin_project(data.project_id, admin)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO phases (project_id, name, description, deadline, max_marks,
                    late_penalty_per_day, department, is_active, created_by)
                VALUES (:project_id, :name, :description, :deadline, :max_marks,
                    :penalty, :department, FALSE, :created_by)
                RETURNING phase_id
            """),
            {
                "project_id": data.project_id, "name": data.name, "description": data.description,
                "deadline": data.deadline, "max_marks": data.max_marks,
                "penalty": data.late_penalty_per_day, "department": project["department"],
                "created_by": admin["user_id"]
            }
        )
        phase_id = result.fetchone()[0]

    logger.info("Phase %s '%s' created for admin project %s", phase_id, data.name, data.project_id)
    return build_phase_response(_get_owned_phase(phase_id, admin))


@router.get("/phases", response_model=List[PhaseResponse])
async def list_phases(
    project_id: Optional[int] = Query(None, description="Admin project to filter by"),
    admin: dict = Depends(require_admin)
):
    sql = PHASE_QUERY + " WHERE ph.department = :dept"
    params = {"dept": admin["department"]}
    if project_id:
        sql += " AND ph.project_id = :project_id"
        params["project_id"] = project_id
    sql += " ORDER BY ph.deadline"

    return [build_phase_response(r) for r in execute_raw_sql(sql, params)]


@router.put("/phases/{phase_id}", response_model=PhaseResponse)
async def update_phase(phase_id: int, data: PhaseUpdate, admin: dict = Depends(require_admin)):
    """Update a phase. Only provided fields are updated."""
    _get_owned_phase(phase_id, admin)

    updates = []
    params = {"id": phase_id}
    for field in ["name", "description", "deadline", "max_marks", "late_penalty_per_day", "is_active"]:
        value = getattr(data, field)
        if value is not None:
            updates.append(f"{field} = :{field}")
            params[field] = value

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        db.execute(text(f"UPDATE phases SET {', '.join(updates)} WHERE phase_id = :id"), params)

    return build_phase_response(_get_owned_phase(phase_id, admin))


@router.delete("/phases/{phase_id}", response_model=MessageResponse)
async def delete_phase(phase_id: int, admin: dict = Depends(require_admin)):
    _get_owned_phase(phase_id, admin)

    with get_db_session() as db:
        removed_files = delete_submissions_where(db, "phase_id = :pid", {"pid": phase_id})
        db.execute(text("DELETE FROM rubrics WHERE phase_id = :pid"), {"pid": phase_id})
        db.execute(text("DELETE FROM phases WHERE phase_id = :pid"), {"pid": phase_id})

    delete_files(removed_files)
    logger.info("Phase %s deleted with %d submissions", phase_id, len(removed_files))
    return MessageResponse(message="Phase deleted")


# ============================================================
# RUBRICS
# ============================================================

@router.post("/phases/{phase_id}/rubrics", response_model=RubricResponse, status_code=201)
async def create_rubric(phase_id: int, data: RubricCreate, admin: dict = Depends(require_admin)):
    _get_owned_phase(phase_id, admin)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO rubrics (phase_id, name, description)
                VALUES (:pid, :name, :description)
                RETURNING rubric_id
            """),
            {"pid": phase_id, "name": data.name, "description": data.description}
        )
        rubric_id = result.fetchone()[0]

    return RubricResponse(rubric_id=rubric_id, phase_id=phase_id, name=data.name, description=data.description)


@router.put("/rubrics/{rubric_id}", response_model=RubricResponse)
async def update_rubric(rubric_id: int, data: RubricUpdate, admin: dict = Depends(require_admin)):
    rubric = _get_owned_rubric(rubric_id, admin)

    with get_db_session() as db:
        db.execute(
            text("UPDATE rubrics SET name = :name, description = :description WHERE rubric_id = :id"),
            {"name": data.name, "description": data.description, "id": rubric_id}
        )

    return RubricResponse(
        rubric_id=rubric_id, phase_id=rubric["phase_id"], name=data.name, description=data.description
    )


@router.delete("/rubrics/{rubric_id}", response_model=MessageResponse)
async def delete_rubric(rubric_id: int, admin: dict = Depends(require_admin)):
    _get_owned_rubric(rubric_id, admin)

    with get_db_session() as db:
        db.execute(text("DELETE FROM rubrics WHERE rubric_id = :id"), {"id": rubric_id})

    return MessageResponse(message="Rubric deleted")


# ============================================================
# DASHBOARD STATS
# ============================================================

@router.get("/stats", response_model=AdminStatsResponse)
async def get_admin_stats(admin: dict = Depends(require_admin)):
    params = {"dept": admin["department"]}

    with get_db_session() as db:
        students = db.execute(
            text("SELECT COUNT(*) FROM users WHERE role = 'student' AND department = :dept"), params
        ).scalar()
        guides = db.execute(
            text("SELECT COUNT(*) FROM users WHERE role = 'guide' AND department = :dept"), params
        ).scalar()
        total_projects = db.execute(
            text("SELECT COUNT(*) FROM projects WHERE department = :dept"), params
        ).scalar()
        active_projects = db.execute(
            text("SELECT COUNT(*) FROM projects WHERE department = :dept AND status = 'active'"), params
        ).scalar()
        pending = db.execute(
            text("""
                SELECT COUNT(*) FROM submissions s
                JOIN projects p ON s.project_id = p.project_id
                WHERE p.department = :dept AND s.guide_status = 'pending'
            """),
            params
        ).scalar()
        active_phase = db.execute(
            text("""
                SELECT name FROM phases
                WHERE department = :dept AND is_active = TRUE
                ORDER BY deadline LIMIT 1
            """),
            params
        ).fetchone()

    return AdminStatsResponse(
        total_students=students,
        total_guides=guides,
        total_projects=total_projects,
        active_projects=active_projects,
        pending_submissions=pending,
        active_phase=active_phase[0] if active_phase else "No active phase"
    )


# ============================================================
# REFERENCE PDFs (previous-year projects for similarity checks)
# ============================================================

@router.post("/references", response_model=ReferenceDocumentResponse, status_code=201)
async def upload_reference(file: UploadFile = File(...), admin: dict = Depends(require_admin)):
    """Store a reference PDF in reference_dir and cache its text."""
    content, filename = await read_pdf_upload(file)
    filename = os.path.basename(filename)
    reference_dir = get_settings().reference_dir
    target = os.path.join(reference_dir, filename)
    if os.path.exists(target):
        raise HTTPException(
            status_code=409, detail=f"A reference named '{filename}' already exists"
        )

    try:
        body = clean_extracted_text(extract_text_from_pdf(content))
    except PDFExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    os.makedirs(reference_dir, exist_ok=True)
    with open(target, "wb") as f:
        f.write(content)

    ReferenceDocumentService().store(compute_text_hash(content), filename, body)
    logger.info("Reference PDF %s uploaded by admin %s", filename, admin["user_id"])

    return ReferenceDocumentResponse(filename=filename, size_bytes=len(content), text_length=len(body))


@router.get("/references", response_model=List[ReferenceDocumentResponse])
async def list_references(admin: dict = Depends(require_admin)):
    reference_dir = get_settings().reference_dir
    if not os.path.isdir(reference_dir):
        return []

    cached = {doc["filename"]: doc for doc in ReferenceDocumentService().list_all()}
    references = []
    for filename in sorted(os.listdir(reference_dir)):
        if not filename.lower().endswith(".pdf"):
            continue
        references.append(ReferenceDocumentResponse(
            filename=filename,
            size_bytes=os.path.getsize(os.path.join(reference_dir, filename)),
            text_length=cached.get(filename, {}).get("text_length", 0)
        ))
    return references
