"""
Similarity Check Service - plagiarism screening with the AI model.

FLOW (single pass, no retries):
1. Extract + clean text of the submitted PDF (no text -> PDFExtractionError)
2. Load reference PDFs (previous-year projects) from reference_dir,
   using the MongoDB text cache so each file is extracted once
3. One model call with the comparison prompt
4. Regex-extract the JSON verdict from the reply
5. Store the verdict in MongoDB, keep the score on the project row

Only phases whose name contains settings.similarity_phase_keyword
("phase 1" by default) are screened.
"""

import os
import re
import json
import hashlib
import logging
from typing import List, Tuple

from sqlalchemy import text

from projexa.core.config import get_settings
from projexa.core.errors import PDFExtractionError, ReferenceDocumentsMissing
from projexa.db.postgres import get_db_session
from projexa.services.ai_client import get_ai_client
from projexa.services.mongo_service import ReferenceDocumentService, SimilarityReportService
from projexa.utils.file_upload import extract_text_from_pdf, clean_extracted_text

logger = logging.getLogger(__name__)

# Keeps a single prompt within the model's context window
MAX_DOCUMENT_CHARS = 30000

NO_TEXT_MESSAGE = "No text could be extracted from the PDF. Scanned documents without a text layer cannot be checked"

SYSTEM_PROMPT = "You are analyzing academic submissions for plagiarism detection. Return ONLY valid JSON."

COMPARISON_PROMPT = """Compare the current submission with previous year projects.

Current Student Submission:
{current}

Previous Year Projects:
{references}

IMPORTANT INSTRUCTIONS:
1. Look for substantial overlaps in content, methodology, and approach
2. Check for similar problem statements, objectives, and solutions
3. Identify reused sections, methodologies, or implementation details
4. Consider structural similarities and content organization
5. Be thorough in your analysis - academic integrity is important

Scoring Guidelines:
- 0-20: Completely different projects
- 21-40: Some common elements but clearly different work
- 41-60: Notable similarities that warrant attention
- 61-80: Significant overlap indicating possible plagiarism
- 81-100: Very high similarity suggesting direct copying

Provide a JSON response:
{{
  "similarityScore": <number 0-100>,
  "explanation": "<detailed explanation of similarities found, naming the reference documents>",
  "isSimilar": <boolean true if score >= {threshold}, false otherwise>,
  "similarProjects": ["<reference document name>"]
}}"""

UNEXPECTED_FORMAT = "Analysis completed but response format was unexpected"
FALLBACK_THRESHOLD = 50


def compute_text_hash(content: bytes) -> str:
    """Compute MD5 hash of file content for cache lookups."""
    return hashlib.md5(content).hexdigest()


def requires_similarity_check(phase_name: str) -> bool:
    keyword = get_settings().similarity_phase_keyword.lower()
    return keyword in (phase_name or "").lower()


def build_similarity_prompt(current_text: str, references: List[Tuple[str, str]]) -> str:
    reference_docs = "".join(
        f"Reference Project {i} ({name}):\n{body[:MAX_DOCUMENT_CHARS]}\n\n"
        for i, (name, body) in enumerate(references, start=1)
    )
    return COMPARISON_PROMPT.format(
        current=current_text[:MAX_DOCUMENT_CHARS],
        references=reference_docs,
        threshold=get_settings().similarity_threshold
    )


def _coerce_score(value) -> int:
    """Leading integer of the value ("85%" -> 85, "55.8" -> 55), clamped to 0-100."""
    match = re.match(r"\s*(-?\d+)", str(value)) if value is not None else None
    if not match:
        return 0
    return max(0, min(100, int(match.group(1))))


def parse_similarity_response(response_text: str, threshold: int) -> dict:
    """
    Turn the model reply into a verdict.

    The reply should contain a JSON object; anything around it (markdown
    fences, prose) is ignored. The similar flag is always recomputed from
    the score. Without parseable JSON the first number in the reply is
    taken as the score.
    """
    match = re.search(r"\{.*\}", response_text or "", re.DOTALL)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            score = _coerce_score(parsed.get("similarityScore"))
            similar_projects = parsed.get("similarProjects") or []
            if not isinstance(similar_projects, list):
                similar_projects = [str(similar_projects)]
            return {
                "similarity_score": score,
                "explanation": parsed.get("explanation") or "No explanation provided",
                "is_similar": score >= threshold,
                "similar_projects": [str(p) for p in similar_projects]
            }

    logger.warning("Similarity reply had no parseable JSON, falling back to first number")
    number = re.search(r"(\d{1,3})%?", response_text or "")
    score = _coerce_score(number.group(1)) if number else 0
    return {
        "similarity_score": score,
        "explanation": UNEXPECTED_FORMAT,
        "is_similar": score >= FALLBACK_THRESHOLD,
        "similar_projects": []
    }


def similarity_message(is_similar: bool) -> str:
    if is_similar:
        return "High similarity detected. Please contact your guide before proceeding."
    return "Similarity check passed. You may proceed with submission."


class SimilarityService:
    """
    Runs the similarity pipeline for one submission.
    """

    def __init__(self):
        self.settings = get_settings()
        self.ai_client = get_ai_client()
        self.reference_cache = ReferenceDocumentService()
        self.report_service = SimilarityReportService()

    def load_references(self) -> List[Tuple[str, str]]:
        """
        Read every PDF in reference_dir as (filename, text).
        Text comes from the MongoDB cache when the file content is unchanged.
        """
        reference_dir = self.settings.reference_dir
        if not os.path.isdir(reference_dir):
            logger.warning("Reference directory not found: %s", reference_dir)
            return []

        references = []
        for filename in sorted(os.listdir(reference_dir)):
            if not filename.lower().endswith(".pdf"):
                continue
            with open(os.path.join(reference_dir, filename), "rb") as f:
                content = f.read()
            content_hash = compute_text_hash(content)

            cached = self.reference_cache.get_by_hash(content_hash)
            if cached:
                references.append((filename, cached["text"]))
                continue

            try:
                body = clean_extracted_text(extract_text_from_pdf(content))
            except Exception as e:
                logger.error("Skipping unreadable reference PDF %s: %s", filename, e)
                continue
            self.reference_cache.store(content_hash, filename, body)
            logger.info("Loaded reference PDF %s (%d bytes)", filename, len(content))
            references.append((filename, body))

        return references

    def check_text(self, current_text: str) -> dict:
        """
        Compare already-extracted text against the reference set.

        Raises:
            ReferenceDocumentsMissing: no reference PDF available
            SimilarityCheckError: the model call failed
        """
        references = self.load_references()
        if not references:
            raise ReferenceDocumentsMissing(
                f"No reference PDFs found for comparison in '{self.settings.reference_dir}'"
            )
        logger.info("Checking similarity against %d reference PDFs", len(references))

        prompt = build_similarity_prompt(current_text, references)
        reply = self.ai_client.complete(SYSTEM_PROMPT, prompt)

        result = parse_similarity_response(reply, self.settings.similarity_threshold)
        result["raw_response"] = reply
        result["reference_names"] = [name for name, _ in references]
        logger.info(
            "Similarity score %s (similar=%s)", result["similarity_score"], result["is_similar"]
        )
        return result

    def check_submission(self, pdf_content: bytes, student_id: int, project_id: int, phase_id: int) -> dict:
        """Full pipeline: extract, compare, store report, record score on the project."""
        current_text = clean_extracted_text(extract_text_from_pdf(pdf_content))
        if not current_text:
            raise PDFExtractionError(NO_TEXT_MESSAGE)
        result = self.check_text(current_text)

        self.report_service.insert(
            student_id=student_id,
            project_id=project_id,
            phase_id=phase_id,
            result=result,
            reference_names=result["reference_names"],
            model=self.ai_client.model
        )

        try:
            with get_db_session() as db:
                db.execute(
                    text("""
                        UPDATE projects SET similarity_score = :score
                        WHERE project_id = :pid AND student_id = :sid
                    """),
                    {"score": result["similarity_score"], "pid": project_id, "sid": student_id}
                )
        except Exception as e:
            logger.warning("Could not record similarity score on project %s: %s", project_id, e)

        return result


def get_similarity_service() -> SimilarityService:
    return SimilarityService()
