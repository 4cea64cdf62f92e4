"""
File Upload Utility - Validate submission PDFs and extract their text.

Only PDF (.pdf) is accepted, read with PyPDF2.
Max file size comes from settings (max_upload_mb).
"""

import io
import re
import logging
from typing import Tuple
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader

from projexa.core.config import get_settings
from projexa.core.errors import PDFExtractionError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.pdf'}

# "P e t   H o s t e l": single word characters separated by spaces
_SPACED_OUT = re.compile(r'^(\w\s+){2,}\w?$')


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_pdf_upload(file: UploadFile) -> Tuple[bytes, str]:
    """
    Validate an uploaded PDF and return its bytes.

    Args:
        file: FastAPI UploadFile

    Returns:
        Tuple of (content, filename)

    Raises:
        HTTPException on validation errors
    """
    settings = get_settings()

    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Only PDF submissions are accepted"
        )

    content = await file.read()

    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_mb}MB"
        )

    return content, file.filename


def extract_text_from_pdf(content: bytes) -> str:
    """Extract raw text from PDF bytes, page by page."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except Exception as e:
        logger.error("Error reading PDF: %s", e)
        raise PDFExtractionError(f"Failed to extract text from PDF: {e}") from e


def clean_extracted_text(raw_text: str) -> str:
    """
    Tidy extracted text before it goes to the similarity model.
    Rejoins letter-spaced runs and drops space before punctuation.
    """
    cleaned = raw_text.strip()

    # Segments are separated by 2+ spaces; a segment of lone characters
    # is a word whose letters were extracted one by one
    segments = re.split(r'[ \t]{2,}|\n+', cleaned)
    fixed = []
    for segment in segments:
        segment = segment.strip()
        if _SPACED_OUT.match(segment):
            segment = re.sub(r'\s+', '', segment)
        fixed.append(segment)

    cleaned = ' '.join(s for s in fixed if s)
    cleaned = re.sub(r'\s+([,.!?;:])', r'\1', cleaned)
    cleaned = re.sub(r'\s+', ' ', cleaned)
    return cleaned.strip()


def normalize_for_matching(raw_text: str) -> str:
    """Collapse whitespace and lower-case, for rubric matching."""
    return re.sub(r'\s+', ' ', raw_text.strip()).lower()
