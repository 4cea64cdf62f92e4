"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. similarity_reports  - every AI similarity verdict, with the raw reply
2. rubric_reports      - every rubric validation result
3. reference_documents - extracted text of reference PDFs, keyed by hash

WHY MongoDB for these?
- AI replies have loose, changing shapes
- Reports are audit records, never joined
- Reference text is a cache: extract each PDF once, reuse forever
"""

from datetime import datetime
from typing import Optional, List
from bson import ObjectId
from pymongo.collection import Collection

from projexa.db.mongodb import get_collection, COLLECTIONS


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


# ============================================================
# SIMILARITY REPORTS COLLECTION
# ============================================================

class SimilarityReportService:
    """
    Stores the outcome of each similarity check.
    The relational store only keeps the score; the explanation and the
    raw model reply live here.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["similarity_reports"])

    def insert(
        self,
        student_id: int,
        project_id: int,
        phase_id: int,
        result: dict,
        reference_names: List[str],
        model: str
    ) -> str:
        """
        Insert a similarity verdict.

        Example result:
        {
            "similarity_score": 35,
            "explanation": "Different problem domain ...",
            "is_similar": False,
            "similar_projects": [],
            "raw_response": "{...}"
        }
        """
        doc = {
            "student_id": student_id,
            "project_id": project_id,
            "phase_id": phase_id,
            "similarity_score": result.get("similarity_score", 0),
            "explanation": result.get("explanation"),
            "is_similar": result.get("is_similar", False),
            "similar_projects": result.get("similar_projects", []),
            "raw_response": result.get("raw_response"),
            "reference_documents": reference_names,
            "model": model,
            "checked_at": datetime.utcnow()
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def get_latest(self, project_id: int, phase_id: int) -> Optional[dict]:
        """Fetch the most recent verdict for a project phase."""
        doc = self.collection.find_one(
            {"project_id": project_id, "phase_id": phase_id},
            sort=[("checked_at", -1)]
        )
        return serialize_doc(doc)


# ============================================================
# RUBRIC REPORTS COLLECTION
# ============================================================

class RubricReportService:

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["rubric_reports"])

    def insert(self, phase_id: int, result: dict, user_id: int = None, submission_id: int = None) -> str:
        doc = {
            "phase_id": phase_id,
            "user_id": user_id,
            "submission_id": submission_id,
            "is_valid": result["is_valid"],
            "found_rubrics": result["found_rubrics"],
            "missing_rubrics": result["missing_rubrics"],
            "reason": result.get("reason"),
            "text_length": len(result.get("extracted_text", "")),
            "checked_at": datetime.utcnow()
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def attach_submission(self, report_id: str, submission_id: int) -> None:
        """Link a report to the submission row created after the check."""
        self.collection.update_one(
            {"_id": ObjectId(report_id)},
            {"$set": {"submission_id": submission_id}}
        )

    def get_by_submission(self, submission_id: int) -> Optional[dict]:
        doc = self.collection.find_one(
            {"submission_id": submission_id},
            sort=[("checked_at", -1)]
        )
        return serialize_doc(doc)


# ============================================================
# REFERENCE DOCUMENTS COLLECTION
# Cache of extracted reference text (never re-extract the same file)
# ============================================================

class ReferenceDocumentService:

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["reference_documents"])

    def get_by_hash(self, content_hash: str) -> Optional[dict]:
        doc = self.collection.find_one({"content_hash": content_hash})
        return serialize_doc(doc)

    def store(self, content_hash: str, filename: str, text: str) -> None:
        """Store or refresh the cached text of a reference file."""
        self.collection.update_one(
            {"content_hash": content_hash},
            {"$set": {
                "content_hash": content_hash,
                "filename": filename,
                "text": text,
                "text_length": len(text),
                "extracted_at": datetime.utcnow()
            }},
            upsert=True
        )

    def list_all(self) -> List[dict]:
        cursor = self.collection.find({}, {"text": 0}).sort("filename", 1)
        return serialize_docs(list(cursor))
