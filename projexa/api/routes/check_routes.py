"""
Automated Check Routes

POST /checks/similarity - Similarity check of a PDF against reference projects (student)
POST /checks/rubrics - Rubric presence check of a PDF for a phase
"""

import logging

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form

from projexa.core.auth import get_current_user, require_student
from projexa.core.errors import PDFExtractionError, SimilarityCheckError, ReferenceDocumentsMissing
from projexa.db.postgres import execute_raw_sql
from projexa.services.similarity_service import (
    get_similarity_service, requires_similarity_check, similarity_message
)
from projexa.services.rubric_service import get_rubric_service, rubric_message
from projexa.utils.file_upload import read_pdf_upload
from projexa.schemas.schemas import SimilarityCheckResponse, RubricCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checks", tags=["Checks"])

NOT_REQUIRED_MESSAGE = "Similarity check not required for this phase"


def get_phase(phase_id: int) -> dict:
    results = execute_raw_sql(
        "SELECT phase_id, project_id, name, deadline, max_marks, is_active FROM phases WHERE phase_id = :id",
        {"id": phase_id}
    )
    if not results:
        raise HTTPException(status_code=404, detail="Phase not found")
    return results[0]


def get_student_project(project_id: int, student_id: int) -> dict:
    results = execute_raw_sql("""
        SELECT project_id, student_id, guide_id, admin_project_id, title, is_group_project, group_id
        FROM projects WHERE project_id = :pid
    """, {"pid": project_id})
    if not results:
        raise HTTPException(status_code=404, detail="Project not found")
    if results[0]["student_id"] != student_id:
        raise HTTPException(status_code=403, detail="This project does not belong to you")
    return results[0]


def run_similarity_check(content: bytes, student_id: int, project_id: int, phase: dict) -> dict:
    """
    Run the similarity pipeline for a phase, mapping failures to HTTP errors.
    Phases that do not need the check get a zero score.
    """
    if not requires_similarity_check(phase["name"]):
        return {
            "similarity_score": 0,
            "is_similar": False,
            "explanation": None,
            "similar_projects": [],
            "message": NOT_REQUIRED_MESSAGE
        }

    try:
        result = get_similarity_service().check_submission(
            content, student_id, project_id, phase["phase_id"]
        )
    except PDFExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReferenceDocumentsMissing as e:
        raise HTTPException(status_code=500, detail=str(e))
    except SimilarityCheckError as e:
        logger.error("Similarity check failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Similarity check failed: {e}")

    result["message"] = similarity_message(result["is_similar"])
    return result


def run_rubric_check(content: bytes, phase_id: int, user_id: int) -> dict:
    try:
        result = get_rubric_service().validate_submission(content, phase_id, user_id=user_id)
    except PDFExtractionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    result["message"] = rubric_message(result)
    return result


@router.post("/similarity", response_model=SimilarityCheckResponse)
async def check_similarity(
    file: UploadFile = File(...),
    phase_id: int = Form(...),
    project_id: int = Form(...),
    student: dict = Depends(require_student)
):
    """
    Compare a PDF with previous-year reference projects.

    Nothing is submitted; use this to screen a document before
    POST /submissions.
    """
    content, filename = await read_pdf_upload(file)
    phase = get_phase(phase_id)
    get_student_project(project_id, student["user_id"])

    logger.info("Similarity check of %s by student %s", filename, student["user_id"])
    result = run_similarity_check(content, student["user_id"], project_id, phase)
    return SimilarityCheckResponse(**result)


@router.post("/rubrics", response_model=RubricCheckResponse)
async def check_rubrics(
    file: UploadFile = File(...),
    phase_id: int = Form(...),
    user: dict = Depends(get_current_user)
):
    content, _ = await read_pdf_upload(file)
    get_phase(phase_id)

    result = run_rubric_check(content, phase_id, user["user_id"])
    return RubricCheckResponse(**result)
