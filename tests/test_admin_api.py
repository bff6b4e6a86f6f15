"""
Admin console API tests: course and lesson CRUD with reload-after-write
"""

from tests.conftest import ADMIN_EMAIL, STUDENT_EMAIL, sign_in


async def test_admin_course_crud_flow(client, accounts):
    await sign_in(client, "admin", ADMIN_EMAIL)

    # Create
    r = await client.post(
        "/api/v1/admin/courses",
        json={"title": "Safety", "description": "Stay safe"},
    )
    assert r.status_code == 201, r.text
    course = r.json()
    assert course["title"] == "Safety"

    # List
    r = await client.get("/api/v1/admin/courses")
    assert r.status_code == 200
    assert [c["title"] for c in r.json()] == ["Safety"]

    # Patch
    r = await client.patch(
        f"/api/v1/admin/courses/{course['id']}", json={"title": "Safety 101"}
    )
    assert r.status_code == 200
    assert r.json()["title"] == "Safety 101"
    assert r.json()["description"] == "Stay safe"

    # Delete
    r = await client.delete(f"/api/v1/admin/courses/{course['id']}")
    assert r.status_code == 204

    # Confirm gone
    r = await client.get("/api/v1/admin/courses")
    assert r.json() == []
    r = await client.patch(
        f"/api/v1/admin/courses/{course['id']}", json={"title": "Ghost"}
    )
    assert r.status_code == 404


async def test_delete_course_removes_its_lessons(client, accounts, onboarding):
    await sign_in(client, "admin", ADMIN_EMAIL)
    course_id = onboarding["course"]["id"]

    r = await client.get(f"/api/v1/admin/courses/{course_id}/trainings")
    assert [t["title"] for t in r.json()] == ["L1", "L2"]

    r = await client.delete(f"/api/v1/admin/courses/{course_id}")
    assert r.status_code == 204

    r = await client.get(f"/api/v1/admin/courses/{course_id}/trainings")
    assert r.status_code == 404
    r = await client.patch(
        f"/api/v1/admin/trainings/{onboarding['l1']['id']}", json={"title": "x"}
    )
    assert r.status_code == 404


async def test_training_crud_flow(client, accounts, onboarding):
    await sign_in(client, "admin", ADMIN_EMAIL)
    course_id = onboarding["course"]["id"]

    r = await client.post(
        "/api/v1/admin/trainings",
        json={
            "title": "L3",
            "video_url": "https://videos.example.com/l3",
            "order_number": 3,
            "course_id": course_id,
        },
    )
    assert r.status_code == 201, r.text
    created = r.json()

    r = await client.patch(
        f"/api/v1/admin/trainings/{created['id']}",
        json={"order_number": 0, "title": "Intro"},
    )
    assert r.status_code == 200
    assert r.json()["order_number"] == 0

    r = await client.get(f"/api/v1/admin/courses/{course_id}/trainings")
    assert [t["title"] for t in r.json()] == ["Intro", "L1", "L2"]

    r = await client.delete(f"/api/v1/admin/trainings/{created['id']}")
    assert r.status_code == 204
    r = await client.get(f"/api/v1/admin/courses/{course_id}/trainings")
    assert [t["title"] for t in r.json()] == ["L1", "L2"]


async def test_training_for_unknown_course(client, accounts):
    await sign_in(client, "admin", ADMIN_EMAIL)
    r = await client.post(
        "/api/v1/admin/trainings",
        json={
            "title": "Lost",
            "video_url": "https://videos.example.com/lost",
            "order_number": 1,
            "course_id": "missing",
        },
    )
    assert r.status_code == 422
    assert r.json()["error"] == "Please select a course first."


async def test_required_fields(client, accounts, onboarding):
    await sign_in(client, "admin", ADMIN_EMAIL)
    r = await client.post("/api/v1/admin/courses", json={"description": "d"})
    assert r.status_code == 422
    r = await client.patch(
        f"/api/v1/admin/courses/{onboarding['course']['id']}", json={"title": "  "}
    )
    assert r.status_code == 422
    r = await client.post(
        "/api/v1/admin/trainings",
        json={"title": "No url", "order_number": 1, "course_id": onboarding["course"]["id"]},
    )
    assert r.status_code == 422


async def test_student_is_denied(client, accounts):
    await sign_in(client, "student", STUDENT_EMAIL)
    r = await client.get("/api/v1/admin/courses")
    assert r.status_code == 403
    r = await client.post("/api/v1/admin/courses", json={"title": "Nope"})
    assert r.status_code == 403


async def test_anonymous_is_unauthorized(client):
    r = await client.get("/api/v1/admin/courses")
    assert r.status_code == 401


async def test_student_sees_admin_changes_after_reload(client, accounts, onboarding, registry):
    await sign_in(client, "admin", ADMIN_EMAIL)
    await client.delete(f"/api/v1/admin/courses/{onboarding['course']['id']}")

    # a learner signing in afterwards gets the post-delete catalog
    await client.post("/api/v1/session/logout")
    await sign_in(client, "student", STUDENT_EMAIL)
    r = await client.get("/api/v1/catalog")
    assert r.json() == []
