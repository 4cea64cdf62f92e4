"""
Submission Routes

POST /submissions - Submit a phase PDF (student)
GET /submissions/{submission_id} - Get a submission
GET /submissions/{submission_id}/checks - Stored similarity and rubric reports
GET /submissions/{submission_id}/file-url - Signed, expiring link to the PDF
GET /files/{token} - Download a file through a signed link

SUBMISSION PIPELINE:
1. Ownership: the project is the student's, the phase belongs to its admin project
2. Duplicate guard (resubmission only after a rejection or a flagged similarity check)
3. Similarity check (similarity phases only); similar -> nothing stored
4. Rubric check; missing sections -> stored as automatically rejected
5. Late days, file storage, row insert, guide notification
"""

import os
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from fastapi.responses import FileResponse
from sqlalchemy import text

from projexa.core.config import get_settings
from projexa.core.auth import get_current_user, require_student
from projexa.db.postgres import get_db_session, execute_raw_sql, as_datetime
from projexa.api.routes.check_routes import (
    get_phase, get_student_project, run_similarity_check, run_rubric_check
)
from projexa.services.similarity_service import requires_similarity_check
from projexa.services.mongo_service import RubricReportService, SimilarityReportService
from projexa.services.grading_service import compute_late_days
from projexa.services.notification_service import notify
from projexa.utils.file_upload import read_pdf_upload
from projexa.utils.storage import (
    save_submission_file, delete_submission_file, create_file_token, read_file_token, resolve_path
)
from projexa.schemas.schemas import (
    SubmissionResponse, SubmissionResult, SimilarityCheckResponse, RubricCheckResponse,
    FileUrlResponse, SubmissionChecksResponse, GuideStatus, RubricCheckStatus
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["Submissions"])
files_router = APIRouter(prefix="/files", tags=["Submissions"])

SUBMISSION_QUERY = """
    SELECT s.submission_id, s.student_id, u.name AS student_name, s.project_id,
           p.title AS project_title, s.phase_id, ph.name AS phase_name, ph.deadline,
           ph.max_marks, s.submission_date, s.rubric_check_status, s.guide_status,
           s.marks_awarded, s.remarks, s.late_days, s.similarity_score
    FROM submissions s
    JOIN users u ON s.student_id = u.user_id
    JOIN projects p ON s.project_id = p.project_id
    JOIN phases ph ON s.phase_id = ph.phase_id
"""

DUPLICATE_MESSAGE = "You have already submitted for this phase."
CHECK_SKIPPED_MESSAGE = "Similarity check unavailable; submission continued without it"


def get_submission(submission_id: int) -> SubmissionResponse:
    results = execute_raw_sql(SUBMISSION_QUERY + " WHERE s.submission_id = :id", {"id": submission_id})
    if not results:
        raise HTTPException(status_code=404, detail="Submission not found")
    return SubmissionResponse(**results[0])


def can_resubmit(existing: dict, needs_similarity: bool, threshold: int) -> bool:
    """
    A phase accepts a new submission over an existing one only when the
    guide rejected it, or it is still pending with a flagged similarity score.
    """
    if existing["guide_status"] == GuideStatus.rejected.value:
        return True
    return (
        needs_similarity
        and existing["guide_status"] == GuideStatus.pending.value
        and (existing["similarity_score"] or 0) >= threshold
    )


def _check_file_access(submission_id: int, user: dict) -> str:
    """Return the stored path if the user may open this submission's file."""
    results = execute_raw_sql("""
        SELECT s.file_path, s.student_id, p.guide_id, p.department
        FROM submissions s JOIN projects p ON s.project_id = p.project_id
        WHERE s.submission_id = :id
    """, {"id": submission_id})
    if not results:
        raise HTTPException(status_code=404, detail="Submission not found")
    row = results[0]

    allowed = (
        (user["role"] == "student" and row["student_id"] == user["user_id"])
        or (user["role"] == "guide" and row["guide_id"] == user["user_id"])
        or (user["role"] == "admin" and row["department"] == user["department"])
    )
    if not allowed:
        raise HTTPException(status_code=403, detail="Not allowed to access this submission")
    return row["file_path"]


def _store_submission(existing: list, values: dict) -> int:
    """Replace the previous row (if any) and insert the new one in one transaction."""
    with get_db_session() as db:
        if existing:
            db.execute(
                text("DELETE FROM submissions WHERE submission_id = :id"),
                {"id": existing[0]["submission_id"]}
            )
        result = db.execute(
            text("""
                INSERT INTO submissions (student_id, project_id, phase_id, file_path, submission_date,
                    rubric_check_status, guide_status, remarks, late_days, similarity_score)
                VALUES (:sid, :pid, :phid, :file_path, :submission_date,
                    :rubric_status, :guide_status, :remarks, :late_days, :similarity_score)
                RETURNING submission_id
            """),
            values
        )
        return result.fetchone()[0]


@router.post("", response_model=SubmissionResult)
async def create_submission(
    file: UploadFile = File(...),
    project_id: int = Form(...),
    phase_id: int = Form(...),
    proceed_on_check_failure: bool = Form(False),
    student: dict = Depends(require_student)
):
    """
    Submit a PDF for a phase.

    accepted=false with no stored submission when the similarity check
    flags the document. A document missing required sections is stored
    but automatically rejected, so the student can resubmit.
    """
    settings = get_settings()
    content, filename = await read_pdf_upload(file)

    project = get_student_project(project_id, student["user_id"])
    phase = get_phase(phase_id)
    if phase["project_id"] != project["admin_project_id"]:
        raise HTTPException(status_code=400, detail="Phase does not belong to this project")

    needs_similarity = requires_similarity_check(phase["name"])

    existing = execute_raw_sql("""
        SELECT submission_id, file_path, guide_status, similarity_score
        FROM submissions WHERE project_id = :pid AND phase_id = :phid
    """, {"pid": project_id, "phid": phase_id})
    if existing and not can_resubmit(existing[0], needs_similarity, settings.similarity_threshold):
        raise HTTPException(status_code=409, detail=DUPLICATE_MESSAGE)

    # Similarity screening
    similarity = None
    if needs_similarity:
        try:
            similarity = run_similarity_check(content, student["user_id"], project_id, phase)
        except HTTPException as e:
            if e.status_code != 502 or not proceed_on_check_failure:
                raise
            logger.warning("Proceeding without similarity check for project %s: %s", project_id, e.detail)
            similarity = {
                "similarity_score": 0, "is_similar": False, "explanation": None,
                "similar_projects": [], "message": CHECK_SKIPPED_MESSAGE
            }

        if similarity["is_similar"]:
            logger.info(
                "Submission of project %s phase %s blocked by similarity score %s",
                project_id, phase_id, similarity["similarity_score"]
            )
            return SubmissionResult(
                accepted=False,
                message=similarity["message"],
                similarity=SimilarityCheckResponse(**similarity)
            )

    # Rubric validation
    rubric = run_rubric_check(content, phase_id, student["user_id"])
    if rubric["is_valid"]:
        rubric_status, guide_status = RubricCheckStatus.passed.value, GuideStatus.pending.value
    else:
        rubric_status, guide_status = RubricCheckStatus.failed.value, GuideStatus.rejected.value

    submission_date = datetime.utcnow()
    late_days = compute_late_days(submission_date, as_datetime(phase["deadline"]))
    similarity_score = similarity["similarity_score"] if similarity else 0

    file_path = save_submission_file(student["user_id"], project_id, phase_id, content)

    try:
        submission_id = _store_submission(existing, {
            "sid": student["user_id"], "pid": project_id, "phid": phase_id,
            "file_path": file_path, "submission_date": submission_date,
            "rubric_status": rubric_status, "guide_status": guide_status,
            "remarks": None if rubric["is_valid"] else rubric["reason"],
            "late_days": late_days, "similarity_score": similarity_score
        })
    except Exception:
        # Rolled back: the new file has no row, the old row and file stay
        delete_submission_file(file_path)
        raise

    if existing:
        delete_submission_file(existing[0]["file_path"])
        logger.info("Replaced submission %s with %s", existing[0]["submission_id"], submission_id)

    RubricReportService().attach_submission(rubric["report_id"], submission_id)

    if project["guide_id"]:
        notify(
            project["guide_id"],
            "New Submission",
            f"{student['name']} submitted {phase['name']} for {project['title']}."
        )

    logger.info(
        "Submission %s stored (%s, rubric %s, %d late days)",
        submission_id, filename, rubric_status, late_days
    )
    return SubmissionResult(
        accepted=rubric["is_valid"],
        message=(
            "Submission received and sent to your guide for review." if rubric["is_valid"]
            else rubric["message"]
        ),
        submission=get_submission(submission_id),
        similarity=SimilarityCheckResponse(**similarity) if similarity else None,
        rubric_check=RubricCheckResponse(**rubric)
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission_detail(submission_id: int, user: dict = Depends(get_current_user)):
    _check_file_access(submission_id, user)
    return get_submission(submission_id)


@router.get("/{submission_id}/checks", response_model=SubmissionChecksResponse)
async def get_submission_checks(submission_id: int, user: dict = Depends(get_current_user)):
    """Stored similarity and rubric reports behind a submission."""
    _check_file_access(submission_id, user)
    submission = get_submission(submission_id)

    similarity_report = SimilarityReportService().get_latest(submission.project_id, submission.phase_id)
    if similarity_report:
        similarity_report.pop("raw_response", None)

    return SubmissionChecksResponse(
        submission_id=submission_id,
        similarity_report=similarity_report,
        rubric_report=RubricReportService().get_by_submission(submission_id)
    )


@router.get("/{submission_id}/file-url", response_model=FileUrlResponse)
async def get_file_url(submission_id: int, user: dict = Depends(get_current_user)):
    """Signed link to the submitted PDF, valid for file_url_expire_minutes."""
    file_path = _check_file_access(submission_id, user)
    minutes = get_settings().file_url_expire_minutes
    token = create_file_token(file_path, minutes)
    return FileUrlResponse(url=f"/api/files/{token}", expires_in=minutes * 60)


@files_router.get("/{token}")
async def download_file(token: str):
    relative_path = read_file_token(token)
    if not relative_path:
        raise HTTPException(status_code=403, detail="Invalid or expired file link")

    try:
        full_path = resolve_path(relative_path)
    except ValueError:
        raise HTTPException(status_code=403, detail="Invalid or expired file link")

    if not os.path.exists(full_path):
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(full_path, media_type="application/pdf", filename=os.path.basename(full_path))
