from sqlalchemy import text

from projexa.db.postgres import get_db_session


def test_my_projects(client, student, admin_project):
    projects = client.get("/api/student/projects", headers=student["headers"]).json()

    assert len(projects) == 1
    assert projects[0]["guide_name"] == "Dr Guide"
    assert projects[0]["admin_project_title"] == "Final Year Capstone"
    assert projects[0]["status"] == "pending"


def test_register_project_picks_department_guide(client, student, guide, create_user):
    create_user("guide", "ece.guide@projexa.edu", department="ECE")

    response = client.post("/api/student/projects", headers=student["headers"], json={
        "title": "Campus navigation app", "description": "Indoor maps"
    })

    assert response.status_code == 201
    body = response.json()
    assert body["guide_id"] == guide["user_id"]
    assert body["status"] == "active"
    assert body["admin_project_id"] is None


def test_register_project_without_guides(client, student):
    response = client.post("/api/student/projects", headers=student["headers"], json={
        "title": "Campus navigation app"
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "No guide available in your department"


def test_similar_topics(client, student):
    with get_db_session() as db:
        for title, year in [
            ("Online Pet Hostel Booking", 2023),
            ("Hostel Room Allocation System", 2022),
            ("Crop Disease Detection", 2024),
        ]:
            db.execute(text("INSERT INTO previous_topics (title, year) VALUES (:t, :y)"), {"t": title, "y": year})

    found = client.get("/api/student/topics/similar?title=Pet hostel management",
                       headers=student["headers"]).json()
    assert [t["title"] for t in found] == ["Online Pet Hostel Booking", "Hostel Room Allocation System"]

    assert client.get("/api/student/topics/similar?title=ab", headers=student["headers"]).json() == []


def test_phases_ordered_by_deadline(client, student, admin_project, create_phase):
    create_phase(admin_project["admin_project_id"], "Final Review", deadline="2099-05-01T00:00:00")
    create_phase(admin_project["admin_project_id"], "Phase 1 Synopsis", deadline="2099-01-01T00:00:00")

    phases = client.get(f"/api/student/phases?project_id={admin_project['project_id']}",
                        headers=student["headers"]).json()

    assert [p["name"] for p in phases] == ["Phase 1 Synopsis", "Final Review"]
    assert phases[0]["requires_similarity_check"] is True


def test_phases_of_someone_elses_project(client, create_user, headers, admin_project):
    other = create_user("student", "other@projexa.edu")
    response = client.get(f"/api/student/phases?project_id={admin_project['project_id']}",
                          headers=headers(other, "student"))
    assert response.status_code == 403


def test_my_submissions_newest_first(client, student, admin_project, create_phase, submit):
    first = create_phase(admin_project["admin_project_id"], "Design Review")
    second = create_phase(admin_project["admin_project_id"], "Implementation Review")
    submit(student, admin_project["project_id"], first, ["Design"])
    submit(student, admin_project["project_id"], second, ["Code"])

    submissions = client.get("/api/student/submissions", headers=student["headers"]).json()

    assert [s["phase_name"] for s in submissions] == ["Implementation Review", "Design Review"]
    assert submissions[0]["max_marks"] == 100
