"""
Leaderboard Routes

GET /leaderboard - Department ranking by penalised marks
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from projexa.core.auth import get_current_user
from projexa.services.grading_service import get_department_leaderboard
from projexa.schemas.schemas import LeaderboardResponse, LeaderboardEntry

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    department: Optional[str] = Query(None, description="Admins only; others see their own department"),
    limit: int = Query(0, ge=0, description="0 = everyone"),
    user: dict = Depends(get_current_user)
):
    """
    Rank students by total marks after late penalties.

    Per graded submission: max(0, marks - late_days * late_penalty_per_day)
    """
    if user["role"] == "admin" and department:
        selected = department
    else:
        selected = user["department"]

    if not selected:
        raise HTTPException(status_code=400, detail="No department to rank")

    entries = get_department_leaderboard(selected, limit)
    return LeaderboardResponse(
        department=selected,
        entries=[LeaderboardEntry(**e) for e in entries]
    )
