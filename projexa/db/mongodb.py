"""
MongoDB Connection Utility

Check reports and the reference text cache live in MongoDB:
- similarity_reports: one document per model verdict, raw reply included
- rubric_reports: found / missing sections per check, linked to a submission
- reference_documents: extracted text of reference PDFs keyed by content hash

Nothing in PostgreSQL joins against these, so they stay schema-free.
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from projexa.core.config import get_settings

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "similarity_reports": "similarity_reports",
    "rubric_reports": "rubric_reports",
    "reference_documents": "reference_documents"
}

# Set lazily; tests swap _client for an in-memory client
_client: MongoClient = None
_db: Database = None


def get_mongo_db() -> Database:
    """Database handle, connecting on first use."""
    global _client, _db
    if _db is None:
        settings = get_settings()
        if _client is None:
            _client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=5000)
        _db = _client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    return get_mongo_db()[name]


def check_mongo_connection() -> bool:
    try:
        get_mongo_db().command("ping")
    except Exception as e:
        logger.error("MongoDB connection failed: %s", e)
        return False
    return True


def init_mongo_indexes():
    """Create report and cache indexes. Safe to call on every startup."""
    db = get_mongo_db()

    db[COLLECTIONS["similarity_reports"]].create_index(
        [("project_id", ASCENDING), ("phase_id", ASCENDING), ("checked_at", DESCENDING)]
    )
    db[COLLECTIONS["rubric_reports"]].create_index("submission_id")
    db[COLLECTIONS["rubric_reports"]].create_index("phase_id")
    db[COLLECTIONS["reference_documents"]].create_index("content_hash", unique=True)

    logger.info("MongoDB indexes ready")
