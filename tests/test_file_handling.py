import io
import os

import pytest
from fastapi import HTTPException, UploadFile

from projexa.core.errors import PDFExtractionError
from projexa.utils.file_upload import (
    clean_extracted_text, extract_text_from_pdf, normalize_for_matching, read_pdf_upload
)
from projexa.utils.storage import (
    create_file_token, delete_submission_file, read_file_token, resolve_path, save_submission_file
)


def test_clean_text_rejoins_letter_spaced_words():
    raw = "Title:  P e t   H o s t e l  \n\nA booking system , for pets ."
    assert clean_extracted_text(raw) == "Title: Pet Hostel A booking system, for pets."


def test_normalize_for_matching():
    assert normalize_for_matching("  Literature\n\nSURVEY\t here ") == "literature survey here"


def test_extract_text_from_generated_pdf(make_pdf):
    text = extract_text_from_pdf(make_pdf(["Abstract", "Problem Statement"]))
    assert "Abstract" in text
    assert "Problem Statement" in text


def test_extract_text_from_garbage_raises():
    with pytest.raises(PDFExtractionError):
        extract_text_from_pdf(b"this is not a pdf")


def _upload(filename, content):
    return UploadFile(file=io.BytesIO(content), filename=filename)


@pytest.mark.anyio
async def test_read_pdf_upload_accepts_pdf(make_pdf):
    content, filename = await read_pdf_upload(_upload("report.PDF", make_pdf(["x"])))
    assert filename == "report.PDF"
    assert content.startswith(b"%PDF")


@pytest.mark.anyio
@pytest.mark.parametrize("filename,content,status", [
    ("report.docx", b"data", 400),
    ("report.pdf", b"", 400),
    ("report.pdf", b"x" * (10 * 1024 * 1024 + 1), 413),
])
async def test_read_pdf_upload_rejects(filename, content, status):
    with pytest.raises(HTTPException) as exc:
        await read_pdf_upload(_upload(filename, content))
    assert exc.value.status_code == status


@pytest.fixture
def anyio_backend():
    return "asyncio"


def test_save_and_delete_submission_file():
    relative = save_submission_file(3, 7, 2, b"%PDF-1.4 test")

    assert relative.startswith("3/7/2_") and relative.endswith(".pdf")
    with open(resolve_path(relative), "rb") as f:
        assert f.read() == b"%PDF-1.4 test"

    assert delete_submission_file(relative) is True
    assert not os.path.exists(resolve_path(relative))
    assert delete_submission_file(relative) is False


def test_resolve_path_refuses_traversal():
    with pytest.raises(ValueError):
        resolve_path("../../etc/passwd")
    assert delete_submission_file("../outside.pdf") is False


def test_file_token_round_trip_and_expiry():
    token = create_file_token("3/7/2_1.pdf")
    assert read_file_token(token) == "3/7/2_1.pdf"

    expired = create_file_token("3/7/2_1.pdf", expires_minutes=-1)
    assert read_file_token(expired) is None
    assert read_file_token("not-a-token") is None


def test_access_token_is_not_a_file_token(headers):
    bearer = headers(1, "student")["Authorization"].split()[1]
    assert read_file_token(bearer) is None
