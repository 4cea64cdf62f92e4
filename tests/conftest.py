"""
Shared fixtures.

Settings are read once, so the environment is prepared before anything
from projexa is imported: an in-memory SQLite database, temporary upload
and reference directories, and a fixed JWT secret.
"""

import os
import shutil
import sqlite3
import tempfile
from datetime import datetime

_TMP_DIR = tempfile.mkdtemp(prefix="projexa-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["REFERENCE_DIR"] = os.path.join(_TMP_DIR, "references")
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["AI_API_KEY"] = "test-key"
os.environ["SIMILARITY_THRESHOLD"] = "40"

import mongomock
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from projexa.main import app
from projexa.core.auth import hash_password, create_user_token
from projexa.core.config import get_settings
from projexa.core.errors import SimilarityCheckError
from projexa.db import mongodb
from projexa.db.postgres import engine, get_db_session
from projexa.db.schema import metadata
from projexa.services import ai_client

sqlite3.register_adapter(datetime, lambda value: value.isoformat(" "))

DEFAULT_PASSWORD = "password123"
SAFE_REPLY = (
    '{"similarityScore": 12, "explanation": "Different problem domain", '
    '"isSimilar": false, "similarProjects": []}'
)


# ============================================================
# PDF BUILDER
# ============================================================

def build_pdf(lines):
    """Build a one-page PDF whose text layer holds the given lines."""
    content = ["BT", "/F1 12 Tf", "14 TL", "72 740 Td"]
    for line in lines:
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        content.append(f"({escaped}) Tj T*")
    content.append("ET")
    stream = "\n".join(content).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    pdf = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(pdf)
    pdf += f"xref\n0 {len(objects) + 1}\n".encode()
    pdf += b"0000000000 65535 f \n"
    for offset in offsets:
        pdf += f"{offset:010d} 00000 n \n".encode()
    pdf += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode()
    return pdf


@pytest.fixture
def make_pdf():
    return build_pdf


# ============================================================
# STORES
# ============================================================

@pytest.fixture(autouse=True)
def fresh_stores():
    """Empty relational schema, empty mongomock database and directories per test."""
    metadata.drop_all(engine)
    metadata.create_all(engine)

    mongodb._client = mongomock.MongoClient()
    mongodb._db = None

    settings = get_settings()
    for directory in (settings.upload_dir, settings.reference_dir):
        shutil.rmtree(directory, ignore_errors=True)
        os.makedirs(directory)

    yield


class FakeAIClient:
    """Stands in for the model client; records prompts and returns a canned reply."""

    model = "fake-model"

    def __init__(self):
        self.reply = SAFE_REPLY
        self.error = None
        self.calls = []

    def complete(self, system_prompt, user_content, max_tokens=2000):
        self.calls.append(user_content)
        if self.error:
            raise SimilarityCheckError(self.error)
        return self.reply


@pytest.fixture(autouse=True)
def fake_ai(monkeypatch):
    fake = FakeAIClient()
    monkeypatch.setattr(ai_client, "_ai_client", fake)
    return fake


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def add_reference(make_pdf):
    """Drop a reference PDF into the reference directory."""
    def _add(filename, lines):
        path = os.path.join(get_settings().reference_dir, filename)
        with open(path, "wb") as f:
            f.write(make_pdf(lines))
        return path
    return _add


# ============================================================
# USERS & TOKENS
# ============================================================

@pytest.fixture
def create_user():
    def _create(role, email, name=None, department="CSE", year=None, semester=None,
                is_active=True, password=DEFAULT_PASSWORD):
        with get_db_session() as db:
            result = db.execute(
                text("""
                    INSERT INTO users (email, password_hash, name, role, department, year, semester, is_active)
                    VALUES (:email, :hash, :name, :role, :dept, :year, :semester, :active)
                    RETURNING user_id
                """),
                {
                    "email": email, "hash": hash_password(password),
                    "name": name or email.split("@")[0].title(), "role": role,
                    "dept": department, "year": year, "semester": semester, "active": is_active
                }
            )
            return result.fetchone()[0]
    return _create


def auth_headers(user_id, role="student"):
    token = create_user_token(user_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def admin(create_user):
    user_id = create_user("admin", "admin@projexa.edu", name="Dept Admin")
    return {"user_id": user_id, "headers": auth_headers(user_id, "admin")}


@pytest.fixture
def guide(create_user):
    user_id = create_user("guide", "guide@projexa.edu", name="Dr Guide")
    return {"user_id": user_id, "headers": auth_headers(user_id, "guide")}


@pytest.fixture
def student(create_user):
    user_id = create_user("student", "asha@projexa.edu", name="Asha", year=4, semester=7)
    return {"user_id": user_id, "headers": auth_headers(user_id, "student")}


# ============================================================
# PROJECT SETUP
# ============================================================

@pytest.fixture
def admin_project(client, admin, guide, student):
    """Admin project for CSE year 4 sem 7 with the student's project guided by `guide`."""
    response = client.post("/api/admin/projects", headers=admin["headers"], json={
        "title": "Final Year Capstone", "description": "Capstone", "department": "CSE",
        "year": 4, "semester": 7
    })
    assert response.status_code == 201
    admin_project_id = response.json()["admin_project"]["admin_project_id"]

    students = client.get(
        f"/api/admin/projects/{admin_project_id}/students", headers=admin["headers"]
    ).json()
    project_id = students[0]["project_id"]
    client.put(
        f"/api/admin/student-projects/{project_id}/guide",
        headers=admin["headers"], json={"guide_id": guide["user_id"]}
    )
    return {"admin_project_id": admin_project_id, "project_id": project_id}


@pytest.fixture
def create_phase(client, admin):
    def _create(project_id, name, deadline="2099-01-01T00:00:00", max_marks=100, penalty=0,
                rubrics=()):
        response = client.post("/api/admin/phases", headers=admin["headers"], json={
            "project_id": project_id, "name": name, "description": f"{name} deliverable",
            "deadline": deadline, "max_marks": max_marks, "late_penalty_per_day": penalty
        })
        assert response.status_code == 201, response.text
        phase_id = response.json()["phase_id"]
        for rubric in rubrics:
            client.post(
                f"/api/admin/phases/{phase_id}/rubrics", headers=admin["headers"],
                json={"name": rubric, "description": f"{rubric} section"}
            )
        return phase_id
    return _create


@pytest.fixture
def submit(client, make_pdf):
    def _submit(user, project_id, phase_id, lines, proceed=False, filename="report.pdf"):
        return client.post(
            "/api/submissions",
            headers=user["headers"],
            data={
                "project_id": str(project_id), "phase_id": str(phase_id),
                "proceed_on_check_failure": "true" if proceed else "false"
            },
            files={"file": (filename, make_pdf(lines), "application/pdf")}
        )
    return _submit
