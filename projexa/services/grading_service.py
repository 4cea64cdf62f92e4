"""
Grading Service - late days, penalties, leaderboard and group marking.

SCORING:
    final = max(0, marks_awarded - late_days * late_penalty_per_day)

Only submissions with marks (accepted by a guide) count towards the
leaderboard. Students without any graded submission are left out.
"""

import math
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import text

from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.services.notification_service import notify

logger = logging.getLogger(__name__)

INITIAL_PHASE_MARKERS = ("phase 1", "review 1", "initial", "proposal")
GROUP_MARKING_SUFFIX = " (Group marking - same as group leader)"


def compute_late_days(submission_date: datetime, deadline: datetime) -> int:
    """Whole days past the deadline, rounded up. 0 when on time."""
    if deadline.tzinfo is not None:
        deadline = deadline.astimezone(timezone.utc).replace(tzinfo=None)
    overdue = (submission_date - deadline).total_seconds()
    if overdue <= 0:
        return 0
    return math.ceil(overdue / 86400)


def final_marks(marks_awarded: Optional[float], late_days: int, penalty_per_day: float) -> float:
    if marks_awarded is None:
        return 0.0
    penalty = (late_days or 0) * (penalty_per_day or 0)
    return max(0.0, float(marks_awarded) - penalty)


def is_initial_phase(phase_name: str) -> bool:
    name = (phase_name or "").lower()
    return any(marker in name for marker in INITIAL_PHASE_MARKERS)


# ============================================================
# LEADERBOARD
# ============================================================

def build_leaderboard(rows: List[dict], limit: int = 0) -> List[dict]:
    """
    Aggregate graded submission rows into ranked entries.

    Each row: student_id, name, marks_awarded, late_days, late_penalty_per_day.
    Rows with marks_awarded None are ignored.
    """
    totals = {}
    for row in rows:
        if row["marks_awarded"] is None:
            continue
        entry = totals.setdefault(row["student_id"], {
            "student_id": row["student_id"],
            "name": row["name"],
            "total_marks": 0.0,
            "submissions": 0
        })
        entry["total_marks"] += final_marks(
            row["marks_awarded"], row["late_days"], row["late_penalty_per_day"]
        )
        entry["submissions"] += 1

    entries = sorted(totals.values(), key=lambda e: e["total_marks"], reverse=True)
    if limit > 0:
        entries = entries[:limit]

    for rank, entry in enumerate(entries, start=1):
        entry["rank"] = rank
        entry["average_marks"] = round(entry["total_marks"] / entry["submissions"], 2)
        entry["total_marks"] = round(entry["total_marks"], 2)
    return entries


def get_department_leaderboard(department: str, limit: int = 0) -> List[dict]:
    rows = execute_raw_sql("""
        SELECT u.user_id AS student_id, u.name, s.marks_awarded, s.late_days,
               ph.late_penalty_per_day
        FROM users u
        JOIN projects p ON p.student_id = u.user_id
        JOIN submissions s ON s.project_id = p.project_id
        JOIN phases ph ON s.phase_id = ph.phase_id
        WHERE u.role = 'student' AND u.department = :dept AND s.marks_awarded IS NOT NULL
        ORDER BY u.user_id
    """, {"dept": department})
    return build_leaderboard(rows, limit)


# ============================================================
# GROUP MARKING
# ============================================================

def propagate_group_marks(
    project_id: int,
    phase_id: int,
    phase_name: str,
    status: str,
    marks: Optional[float],
    remarks: str
) -> int:
    """
    Copy a review onto the other group members' submissions for the same phase.
    Returns how many submissions were updated.
    """
    with get_db_session() as db:
        project = db.execute(
            text("""
                SELECT student_id, is_group_project, group_id, admin_project_id
                FROM projects WHERE project_id = :pid
            """),
            {"pid": project_id}
        ).fetchone()

        if not project or not project[1] or not project[2]:
            return 0
        student_id, _, group_id, admin_project_id = project

        others = db.execute(
            text("""
                SELECT s.submission_id, s.student_id
                FROM group_members gm
                JOIN projects p ON p.student_id = gm.student_id AND p.admin_project_id = :apid
                JOIN submissions s ON s.project_id = p.project_id AND s.phase_id = :phid
                WHERE gm.group_id = :gid AND gm.student_id != :sid
            """),
            {"apid": admin_project_id, "phid": phase_id, "gid": group_id, "sid": student_id}
        ).fetchall()

        for submission_id, _ in others:
            db.execute(
                text("""
                    UPDATE submissions
                    SET guide_status = :status, marks_awarded = :marks, remarks = :remarks
                    WHERE submission_id = :id
                """),
                {
                    "status": status, "marks": marks,
                    "remarks": f"{remarks}{GROUP_MARKING_SUFFIX}", "id": submission_id
                }
            )

        members = db.execute(
            text("SELECT student_id FROM group_members WHERE group_id = :gid AND student_id != :sid"),
            {"gid": group_id, "sid": student_id}
        ).fetchall()

    for (member_id,) in members:
        notify(
            member_id,
            f"Group Submission {status}",
            f"Your group submission for {phase_name} has been {status} "
            f"(marks propagated from group leader). {remarks}".strip()
        )

    logger.info("Propagated group review to %d submissions", len(others))
    return len(others)
