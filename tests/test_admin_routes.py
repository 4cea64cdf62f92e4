import os

from projexa.core.config import get_settings
from projexa.db.postgres import execute_raw_sql


# ============================================================
# USERS
# ============================================================

def _new_user(**overrides):
    data = {
        "email": "ravi@projexa.edu", "password": "password123", "name": "Ravi",
        "role": "student", "department": "CSE", "year": 4, "semester": 7
    }
    data.update(overrides)
    return data


def test_create_user(client, admin):
    response = client.post("/api/admin/users", headers=admin["headers"], json=_new_user())

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "student"
    assert body["year"] == 4
    assert body["is_active"] is True


def test_year_and_semester_only_kept_for_students(client, admin):
    response = client.post("/api/admin/users", headers=admin["headers"], json=_new_user(
        email="prof@projexa.edu", role="guide"
    ))
    assert response.json()["year"] is None
    assert response.json()["semester"] is None


def test_create_user_in_other_department_is_forbidden(client, admin):
    response = client.post("/api/admin/users", headers=admin["headers"], json=_new_user(department="ECE"))
    assert response.status_code == 403


def test_duplicate_email(client, admin, student):
    response = client.post("/api/admin/users", headers=admin["headers"], json=_new_user(
        email="asha@projexa.edu"
    ))
    assert response.status_code == 409


def test_list_and_search_users(client, admin, guide, student):
    everyone = client.get("/api/admin/users", headers=admin["headers"]).json()
    assert len(everyone) == 3

    guides = client.get("/api/admin/users?role=guide", headers=admin["headers"]).json()
    assert [u["email"] for u in guides] == ["guide@projexa.edu"]

    found = client.get("/api/admin/users?search=ASH", headers=admin["headers"]).json()
    assert [u["name"] for u in found] == ["Asha"]


def test_update_user_and_reset_password(client, admin, student):
    response = client.put(
        f"/api/admin/users/{student['user_id']}", headers=admin["headers"],
        json={"name": "Asha K", "password": "reset-pass-1"}
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Asha K"

    login = client.post("/api/auth/login", json={"email": "asha@projexa.edu", "password": "reset-pass-1"})
    assert login.status_code == 200


def test_admin_cannot_delete_self(client, admin):
    response = client.delete(f"/api/admin/users/{admin['user_id']}", headers=admin["headers"])
    assert response.status_code == 400


def test_delete_user(client, admin, student):
    response = client.delete(f"/api/admin/users/{student['user_id']}", headers=admin["headers"])
    assert response.status_code == 200
    assert client.get(f"/api/admin/users/{student['user_id']}", headers=admin["headers"]).status_code == 404


# ============================================================
# ADMIN PROJECTS
# ============================================================

def test_create_project_assigns_eligible_students(client, admin, create_user):
    create_user("student", "s1@projexa.edu", year=4, semester=7)
    create_user("student", "s2@projexa.edu", year=4, semester=7)
    create_user("student", "junior@projexa.edu", year=2, semester=3)
    create_user("student", "ece@projexa.edu", department="ECE", year=4, semester=7)

    response = client.post("/api/admin/projects", headers=admin["headers"], json={
        "title": "Capstone 2026", "department": "CSE", "year": 4, "semester": 7
    })

    assert response.status_code == 201
    body = response.json()
    assert body["assigned_students"] == 2
    assert body["admin_project"]["student_count"] == 2
    assert body["admin_project"]["project_type"] == "individual"
    assert body["admin_project"]["max_group_size"] == 4

    projects = execute_raw_sql("SELECT status, is_group_project FROM projects")
    assert all(p["status"] == "pending" for p in projects)


def test_create_project_for_other_department(client, admin):
    response = client.post("/api/admin/projects", headers=admin["headers"], json={
        "title": "Capstone 2026", "department": "MECH", "year": 4, "semester": 7
    })
    assert response.status_code == 403


def test_assign_guide_must_share_department(client, admin, admin_project, create_user):
    other_guide = create_user("guide", "eceguide@projexa.edu", department="ECE")

    response = client.put(
        f"/api/admin/student-projects/{admin_project['project_id']}/guide",
        headers=admin["headers"], json={"guide_id": other_guide}
    )
    assert response.status_code == 400


def test_students_listing_includes_guide(client, admin, admin_project):
    students = client.get(
        f"/api/admin/projects/{admin_project['admin_project_id']}/students", headers=admin["headers"]
    ).json()
    assert students[0]["guide_name"] == "Dr Guide"
    assert students[0]["admin_project_title"] == "Final Year Capstone"


def test_update_admin_project(client, admin, admin_project, guide):
    response = client.put(
        f"/api/admin/projects/{admin_project['admin_project_id']}", headers=admin["headers"],
        json={"status": "completed", "assigned_guide_id": guide["user_id"]}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["assigned_guide_id"] == guide["user_id"]


def test_delete_admin_project_removes_everything(client, admin, student, admin_project,
                                                 create_phase, submit):
    phase_id = create_phase(admin_project["admin_project_id"], "Design Review", rubrics=["Abstract"])
    submitted = submit(student, admin_project["project_id"], phase_id, ["Abstract"])
    stored = os.path.join(get_settings().upload_dir, str(student["user_id"]))
    assert submitted.status_code == 200
    assert os.listdir(stored)

    response = client.delete(
        f"/api/admin/projects/{admin_project['admin_project_id']}", headers=admin["headers"]
    )

    assert response.status_code == 200
    for table in ("admin_projects", "projects", "phases", "rubrics", "submissions"):
        assert execute_raw_sql(f"SELECT COUNT(*) AS n FROM {table}")[0]["n"] == 0
    assert not os.listdir(os.path.join(stored, str(admin_project["project_id"])))


# ============================================================
# GROUPS
# ============================================================

def test_group_membership(client, admin, guide, create_user, headers):
    s1 = create_user("student", "s1@projexa.edu", year=4, semester=7)
    s2 = create_user("student", "s2@projexa.edu", year=4, semester=7)
    s3 = create_user("student", "s3@projexa.edu", year=4, semester=7)
    created = client.post("/api/admin/projects", headers=admin["headers"], json={
        "title": "Group Capstone", "department": "CSE", "year": 4, "semester": 7,
        "project_type": "group"
    }).json()
    apid = created["admin_project"]["admin_project_id"]
    client.put(f"/api/admin/projects/{apid}", headers=admin["headers"],
               json={"assigned_guide_id": guide["user_id"]})

    group = client.post(f"/api/admin/projects/{apid}/groups", headers=admin["headers"], json={
        "name": "Team A", "max_members": 2
    })
    assert group.status_code == 201
    group_id = group.json()["group_id"]

    added = client.post(f"/api/admin/groups/{group_id}/members", headers=admin["headers"],
                        json={"student_id": s1, "role": "leader"})
    assert added.status_code == 201
    client.post(f"/api/admin/groups/{group_id}/members", headers=admin["headers"], json={"student_id": s2})

    full = client.post(f"/api/admin/groups/{group_id}/members", headers=admin["headers"],
                       json={"student_id": s3})
    assert full.status_code == 400

    other = client.post(f"/api/admin/projects/{apid}/groups", headers=admin["headers"],
                        json={"name": "Team B"}).json()
    duplicate = client.post(f"/api/admin/groups/{other['group_id']}/members", headers=admin["headers"],
                            json={"student_id": s1})
    assert duplicate.status_code == 409

    project = execute_raw_sql(
        "SELECT is_group_project, group_id, guide_id FROM projects WHERE student_id = :sid", {"sid": s1}
    )[0]
    assert project["is_group_project"]
    assert project["group_id"] == group_id
    assert project["guide_id"] == guide["user_id"]

    groups = client.get(f"/api/admin/projects/{apid}/groups", headers=admin["headers"]).json()
    assert groups[0]["member_count"] == 2
    assert groups[0]["members"][0]["role"] == "leader"

    removed = client.delete(f"/api/admin/groups/{group_id}/members/{s2}", headers=admin["headers"])
    assert removed.json()["member_count"] == 1
    project = execute_raw_sql("SELECT is_group_project, group_id FROM projects WHERE student_id = :sid", {"sid": s2})[0]
    assert not project["is_group_project"]
    assert project["group_id"] is None

    client.delete(f"/api/admin/groups/{group_id}", headers=admin["headers"])
    project = execute_raw_sql("SELECT group_id FROM projects WHERE student_id = :sid", {"sid": s1})[0]
    assert project["group_id"] is None


def test_group_members_must_hold_a_project_in_the_department(client, admin, create_user):
    mech = create_user("student", "mech@projexa.edu", department="MECH", year=4, semester=7)
    junior = create_user("student", "junior@projexa.edu", year=2, semester=3)
    created = client.post("/api/admin/projects", headers=admin["headers"], json={
        "title": "Group Capstone", "department": "CSE", "year": 4, "semester": 7,
        "project_type": "group"
    }).json()
    apid = created["admin_project"]["admin_project_id"]
    group_id = client.post(f"/api/admin/projects/{apid}/groups", headers=admin["headers"],
                           json={"name": "Team A"}).json()["group_id"]

    outsider = client.post(f"/api/admin/groups/{group_id}/members", headers=admin["headers"],
                           json={"student_id": mech})
    assert outsider.status_code == 403

    no_project = client.post(f"/api/admin/groups/{group_id}/members", headers=admin["headers"],
                             json={"student_id": junior})
    assert no_project.status_code == 400

    groups = client.get(f"/api/admin/projects/{apid}/groups", headers=admin["headers"]).json()
    assert groups[0]["member_count"] == 0
    assert execute_raw_sql("SELECT * FROM group_members") == []


# ============================================================
# PHASES, RUBRICS, STATS, REFERENCES
# ============================================================

def test_phase_and_rubric_management(client, admin, admin_project, create_phase):
    phase_id = create_phase(admin_project["admin_project_id"], "Phase 1 Synopsis",
                            rubrics=["Abstract", "Problem Statement"])

    phases = client.get(
        f"/api/admin/phases?project_id={admin_project['admin_project_id']}", headers=admin["headers"]
    ).json()
    assert phases[0]["requires_similarity_check"] is True
    assert [r["name"] for r in phases[0]["rubrics"]] == ["Abstract", "Problem Statement"]

    blank = client.post(f"/api/admin/phases/{phase_id}/rubrics", headers=admin["headers"],
                        json={"name": "   ", "description": "x"})
    assert blank.status_code == 422

    trimmed = client.post(f"/api/admin/phases/{phase_id}/rubrics", headers=admin["headers"],
                          json={"name": "  Conclusion ", "description": " Wrap up "})
    assert trimmed.json()["name"] == "Conclusion"

    rubric_id = trimmed.json()["rubric_id"]
    updated = client.put(f"/api/admin/rubrics/{rubric_id}", headers=admin["headers"],
                         json={"name": "Conclusions", "description": "Wrap up"})
    assert updated.json()["name"] == "Conclusions"
    assert client.delete(f"/api/admin/rubrics/{rubric_id}", headers=admin["headers"]).status_code == 200

    activated = client.put(f"/api/admin/phases/{phase_id}", headers=admin["headers"], json={"is_active": True})
    assert activated.json()["is_active"] is True

    deleted = client.delete(f"/api/admin/phases/{phase_id}", headers=admin["headers"])
    assert deleted.status_code == 200
    assert execute_raw_sql("SELECT COUNT(*) AS n FROM rubrics")[0]["n"] == 0


def test_phase_validation(client, admin, admin_project):
    response = client.post("/api/admin/phases", headers=admin["headers"], json={
        "project_id": admin_project["admin_project_id"], "name": "Bad", "deadline": "2099-01-01T00:00:00",
        "max_marks": 0, "late_penalty_per_day": -1
    })
    assert response.status_code == 422


def test_admin_stats(client, admin, admin_project, create_phase):
    empty = client.get("/api/admin/stats", headers=admin["headers"]).json()
    assert empty["active_phase"] == "No active phase"
    assert empty["total_students"] == 1
    assert empty["total_guides"] == 1
    assert empty["total_projects"] == 1

    phase_id = create_phase(admin_project["admin_project_id"], "Design Review")
    client.put(f"/api/admin/phases/{phase_id}", headers=admin["headers"], json={"is_active": True})

    stats = client.get("/api/admin/stats", headers=admin["headers"]).json()
    assert stats["active_phase"] == "Design Review"


def test_reference_upload_and_listing(client, admin, make_pdf):
    response = client.post(
        "/api/admin/references", headers=admin["headers"],
        files={"file": ("hostel.pdf", make_pdf(["Pet hostel booking system"]), "application/pdf")}
    )
    assert response.status_code == 201
    assert response.json()["text_length"] > 0

    listing = client.get("/api/admin/references", headers=admin["headers"]).json()
    assert [r["filename"] for r in listing] == ["hostel.pdf"]
    assert listing[0]["text_length"] == response.json()["text_length"]


def test_reference_with_same_name_is_not_overwritten(client, admin, make_pdf, add_reference):
    path = add_reference("hostel.pdf", ["Pet hostel booking system"])
    with open(path, "rb") as f:
        original = f.read()

    response = client.post(
        "/api/admin/references", headers=admin["headers"],
        files={"file": ("hostel.pdf", make_pdf(["Another project"]), "application/pdf")}
    )

    assert response.status_code == 409
    with open(path, "rb") as f:
        assert f.read() == original
