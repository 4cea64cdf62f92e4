"""
Guide Routes

GET /guide/projects - Assigned projects with student and group info
GET /guide/submissions - Submissions of assigned projects (?status=)
PUT /guide/submissions/{submission_id}/review - Accept/reject with marks
GET /guide/stats - Dashboard numbers

REVIEW RULES:
- accepted needs 0 <= marks <= phase max_marks; rejected clears marks
- accepting an initial phase needs the final project name
- accepting a group member's submission marks the whole group
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.core.auth import require_guide
from projexa.api.routes.admin_project_routes import STUDENT_PROJECT_QUERY
from projexa.api.routes.submission_routes import SUBMISSION_QUERY, get_submission
from projexa.services.grading_service import is_initial_phase, propagate_group_marks
from projexa.services.notification_service import notify
from projexa.schemas.schemas import (
    StudentProjectResponse, SubmissionResponse, ReviewRequest, ReviewResponse,
    GuideStatsResponse, GuideStatus, ReviewDecision
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/guide", tags=["Guide"])


@router.get("/projects", response_model=List[StudentProjectResponse])
async def get_assigned_projects(guide: dict = Depends(require_guide)):
    results = execute_raw_sql(
        STUDENT_PROJECT_QUERY + " WHERE p.guide_id = :gid ORDER BY s.name",
        {"gid": guide["user_id"]}
    )
    return [StudentProjectResponse(**r) for r in results]


@router.get("/submissions", response_model=List[SubmissionResponse])
async def get_assigned_submissions(
    status: Optional[GuideStatus] = Query(None, description="Filter by review status"),
    guide: dict = Depends(require_guide)
):
    sql = SUBMISSION_QUERY + " WHERE p.guide_id = :gid"
    params = {"gid": guide["user_id"]}
    if status:
        sql += " AND s.guide_status = :status"
        params["status"] = status.value
    sql += " ORDER BY s.submission_date DESC, s.submission_id DESC"

    return [SubmissionResponse(**r) for r in execute_raw_sql(sql, params)]


@router.put("/submissions/{submission_id}/review", response_model=ReviewResponse)
async def review_submission(
    submission_id: int,
    review: ReviewRequest,
    guide: dict = Depends(require_guide)
):
    """
    Review a submission.

    The student is notified; on a group project an acceptance is copied
    to every other member's submission for the same phase.
    """
    results = execute_raw_sql("""
        SELECT s.submission_id, s.student_id, s.project_id, s.phase_id, s.guide_status,
               p.guide_id, p.is_group_project, ph.name AS phase_name, ph.max_marks
        FROM submissions s
        JOIN projects p ON s.project_id = p.project_id
        JOIN phases ph ON s.phase_id = ph.phase_id
        WHERE s.submission_id = :id
    """, {"id": submission_id})
    if not results:
        raise HTTPException(status_code=404, detail="Submission not found")
    row = results[0]

    if row["guide_id"] != guide["user_id"]:
        raise HTTPException(status_code=403, detail="You are not the guide for this project")

    accepted = review.status == ReviewDecision.accepted
    marks = None
    if accepted:
        if review.marks is None:
            raise HTTPException(status_code=400, detail="Marks are required to accept a submission")
        if review.marks > row["max_marks"]:
            raise HTTPException(
                status_code=400, detail=f"Marks must be between 0 and {row['max_marks']}"
            )
        marks = review.marks

    project_name = (review.project_name or "").strip()
    initial = is_initial_phase(row["phase_name"])
    if accepted and initial and not project_name:
        raise HTTPException(
            status_code=400, detail="Project name is required when accepting the initial phase"
        )

    with get_db_session() as db:
        db.execute(
            text("""
                UPDATE submissions
                SET guide_status = :status, marks_awarded = :marks, remarks = :remarks
                WHERE submission_id = :id
            """),
            {"status": review.status.value, "marks": marks, "remarks": review.remarks, "id": submission_id}
        )
        if accepted and initial:
            db.execute(
                text("UPDATE projects SET project_name = :name, status = 'active' WHERE project_id = :pid"),
                {"name": project_name, "pid": row["project_id"]}
            )

    group_updated = 0
    if accepted and row["is_group_project"]:
        group_updated = propagate_group_marks(
            row["project_id"], row["phase_id"], row["phase_name"],
            review.status.value, marks, review.remarks
        )

    if row["guide_status"] != GuideStatus.pending.value:
        title = "Submission Review Updated"
    else:
        title = f"Submission {review.status.value}"
    message = f"Your submission for {row['phase_name']} has been {review.status.value}."
    if accepted:
        message += f" Marks: {marks:g}/{row['max_marks']}."
    if review.remarks:
        message += f" Remarks: {review.remarks}"
    notify(row["student_id"], title, message)

    logger.info(
        "Guide %s %s submission %s (group members updated: %d)",
        guide["user_id"], review.status.value, submission_id, group_updated
    )
    return ReviewResponse(
        message=f"Submission {review.status.value}",
        submission=get_submission(submission_id),
        group_members_updated=group_updated
    )


@router.get("/stats", response_model=GuideStatsResponse)
async def get_guide_stats(guide: dict = Depends(require_guide)):
    params = {"gid": guide["user_id"]}

    with get_db_session() as db:
        assigned = db.execute(
            text("SELECT COUNT(*) FROM projects WHERE guide_id = :gid"), params
        ).scalar()
        counts = db.execute(
            text("""
                SELECT s.guide_status, COUNT(*) FROM submissions s
                JOIN projects p ON s.project_id = p.project_id
                WHERE p.guide_id = :gid
                GROUP BY s.guide_status
            """),
            params
        ).fetchall()

    by_status = {status: count for status, count in counts}
    pending = by_status.pop(GuideStatus.pending.value, 0)
    return GuideStatsResponse(
        assigned_projects=assigned,
        pending_reviews=pending,
        reviewed_submissions=sum(by_status.values())
    )
