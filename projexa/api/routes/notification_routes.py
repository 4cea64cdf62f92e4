"""
Notification Routes

GET /notifications - Own notifications, newest first (?unread_only=)
PUT /notifications/read-all - Mark all as read
PUT /notifications/{notification_id}/read - Mark one as read
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from projexa.db.postgres import get_db_session, execute_raw_sql
from projexa.core.auth import get_current_user
from projexa.schemas.schemas import NotificationResponse, MessageResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    unread_only: bool = Query(False),
    user: dict = Depends(get_current_user)
):
    sql = """
        SELECT notification_id, title, message, is_read, created_at
        FROM notifications WHERE user_id = :uid
    """
    if unread_only:
        sql += " AND is_read = FALSE"
    sql += " ORDER BY created_at DESC, notification_id DESC"

    return [NotificationResponse(**n) for n in execute_raw_sql(sql, {"uid": user["user_id"]})]


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE notifications SET is_read = TRUE WHERE user_id = :uid AND is_read = FALSE"),
            {"uid": user["user_id"]}
        )
        updated = result.rowcount

    return MessageResponse(message=f"{updated} notifications marked as read")


@router.put("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(notification_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE notifications SET is_read = TRUE WHERE notification_id = :id AND user_id = :uid"),
            {"id": notification_id, "uid": user["user_id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Notification not found")

    return MessageResponse(message="Notification marked as read")
