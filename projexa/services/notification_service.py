"""
In-app notifications (the notifications table).
"""

import logging

from sqlalchemy import text

from projexa.db.postgres import get_db_session

logger = logging.getLogger(__name__)


def notify(user_id: int, title: str, message: str) -> bool:
    """
    Insert a notification in its own transaction.
    A failure is logged and reported, never raised: the action that
    triggered the notification has already been committed.
    """
    try:
        with get_db_session() as db:
            db.execute(
                text("""
                    INSERT INTO notifications (user_id, title, message, is_read)
                    VALUES (:uid, :title, :message, FALSE)
                """),
                {"uid": user_id, "title": title, "message": message}
            )
        return True
    except Exception as e:
        logger.warning("Failed to notify user %s: %s", user_id, e)
        return False
