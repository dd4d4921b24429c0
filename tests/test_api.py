from fastapi.testclient import TestClient

from app.config import settings
from app.dependencies import get_store
from app.main import app
from app.services.quiz_service import QUIZZES_COLLECTION


def create_user(client, name="Bob Builder"):
    r = client.post("/users", json={"name": name})
    assert r.status_code == 200
    return r.json()["user"]


def create_quiz(client, **fields):
    payload = {"name": "Quiz 2", **fields}
    r = client.post("/quizzes", json=payload)
    assert r.status_code == 200
    return r.json()["quiz"]


def test_root_and_health(client):
    assert client.get("/").text == "alive"
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


# ---------------- USERS ----------------

def test_create_and_get_user(client):
    user = create_user(client)

    assert user["id"]
    assert user["name"] == "Bob Builder"
    assert user["quizIds"] == []

    r = client.get(f"/users/{user['id']}")
    assert r.status_code == 200
    assert r.json() == {"user": user}


def test_create_user_requires_name(client):
    assert client.post("/users", json={}).status_code == 400
    r = client.post("/users", json={"name": ""})
    assert r.status_code == 400
    assert "name" in r.json()["error"]


def test_unknown_user_is_404(client):
    r = client.get("/users/missing")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}

    r = client.delete("/users/missing")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


def test_delete_user_returns_deleted_values(client):
    user = create_user(client)

    r = client.delete(f"/users/{user['id']}")
    assert r.status_code == 200
    assert r.json() == {"user": user}
    assert client.get(f"/users/{user['id']}").status_code == 404


# ---------------- QUIZZES ----------------

def test_create_quiz_defaults_and_server_fields(client, clock):
    r = client.post("/quizzes", json={"name": "Quiz 2", "userCount": 50, "createdOn": "1999-01-01T00:00:00Z"})
    assert r.status_code == 200
    quiz = r.json()["quiz"]

    assert quiz["active"] is False
    assert quiz["userCount"] == 0
    assert quiz["createdOn"].startswith(clock.now.strftime("%Y-%m-%dT%H:%M:%S"))
    assert "description" not in quiz


def test_create_quiz_validation(client):
    assert client.post("/quizzes", json={"description": "d"}).status_code == 400
    assert client.post("/quizzes", json={"name": ""}).status_code == 400
    assert client.post("/quizzes", json={"name": "q", "description": ""}).status_code == 400
    assert client.post("/quizzes", json={"name": "q", "active": "maybe"}).status_code == 400


def test_partial_update_keeps_user_count(client, store):
    quiz = create_quiz(client, description="d")
    store.update(QUIZZES_COLLECTION, quiz["id"], {"userCount": 3})

    r = client.post(f"/quizzes/{quiz['id']}", json={"active": True, "userCount": 999})
    assert r.status_code == 200
    updated = r.json()["quiz"]

    assert updated["active"] is True
    assert updated["name"] == "Quiz 2"
    assert updated["description"] == "d"
    assert updated["userCount"] == 3
    assert updated["createdOn"] == quiz["createdOn"]
    assert client.get(f"/quizzes/{quiz['id']}").json()["quiz"] == updated


def test_patch_is_accepted_for_partial_update(client):
    quiz = create_quiz(client)

    r = client.patch(f"/quizzes/{quiz['id']}", json={"name": "Renamed"})

    assert r.status_code == 200
    assert r.json()["quiz"]["name"] == "Renamed"


def test_partial_update_validation_and_404(client):
    quiz = create_quiz(client)

    assert client.post(f"/quizzes/{quiz['id']}", json={"name": ""}).status_code == 400
    r = client.post("/quizzes/missing", json={"active": True})
    assert r.status_code == 404
    assert r.json() == {"error": "Quiz not found"}


def test_null_fields_are_rejected(client):
    quiz = create_quiz(client, description="d")

    r = client.post(f"/quizzes/{quiz['id']}", json={"description": None})
    assert r.status_code == 400
    assert "description" in r.json()["error"]

    assert client.patch(f"/quizzes/{quiz['id']}", json={"active": None}).status_code == 400
    assert client.post("/quizzes", json={"name": "q", "description": None}).status_code == 400
    assert client.get(f"/quizzes/{quiz['id']}").json()["quiz"]["description"] == "d"


def test_get_and_delete_quiz(client):
    quiz = create_quiz(client, description="d", active=True)

    assert client.get(f"/quizzes/{quiz['id']}").json() == {"quiz": quiz}

    r = client.delete(f"/quizzes/{quiz['id']}")
    assert r.status_code == 200
    assert r.json() == {"quiz": quiz}

    assert client.get(f"/quizzes/{quiz['id']}").status_code == 404
    assert client.delete(f"/quizzes/{quiz['id']}").status_code == 404


def test_list_quizzes_latest_ten(client):
    for n in range(12):
        create_quiz(client, name=f"Quiz {n}")

    r = client.get("/quizzes")

    assert r.status_code == 200
    names = [q["name"] for q in r.json()["quizzes"]]
    assert names == [f"Quiz {n}" for n in range(11, 1, -1)]


# ---------------- ENROLLMENT ----------------

def test_enroll_user_in_quiz(client):
    user = create_user(client)
    quiz = create_quiz(client)

    r = client.post(f"/users/{user['id']}/quizzes/{quiz['id']}")

    assert r.status_code == 200
    assert r.json() == {
        "quiz": {**quiz, "userCount": 1},
        "user": {**user, "quizIds": [quiz["id"]]},
    }


def test_enroll_twice_returns_message(client):
    user = create_user(client)
    quiz = create_quiz(client)
    client.post(f"/users/{user['id']}/quizzes/{quiz['id']}")

    r = client.post(f"/users/{user['id']}/quizzes/{quiz['id']}")

    assert r.status_code == 200
    assert r.json() == {"message": "Quiz already added"}
    assert client.get(f"/quizzes/{quiz['id']}").json()["quiz"]["userCount"] == 1
    assert client.get(f"/users/{user['id']}").json()["user"]["quizIds"] == [quiz["id"]]


def test_enroll_legacy_path(client):
    user = create_user(client)
    quiz = create_quiz(client)

    r = client.post(f"/users/{user['id']}/quizes/{quiz['id']}")

    assert r.status_code == 200
    assert r.json()["quiz"]["userCount"] == 1


def test_enroll_not_found(client):
    quiz = create_quiz(client)
    user = create_user(client)

    r = client.post(f"/users/missing/quizzes/missing")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}

    r = client.post(f"/users/missing/quizzes/{quiz['id']}")
    assert r.json() == {"error": "User not found"}

    r = client.post(f"/users/{user['id']}/quizzes/missing")
    assert r.status_code == 404
    assert r.json() == {"error": "Quiz not found"}


# ---------------- ERRORS ----------------

class BrokenStore:
    def get(self, collection, doc_id):
        raise ConnectionError("store unavailable")


def test_store_failure_is_500_without_details(monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", False)
    app.dependency_overrides[get_store] = lambda: BrokenStore()
    try:
        r = TestClient(app, raise_server_exceptions=False).get("/users/anything")
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 500
    assert "store unavailable" not in r.json()["error"]
    assert "stack" not in r.json()


def test_debug_errors_include_stack(client, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", True)

    r = client.get("/users/missing")

    assert r.status_code == 404
    assert r.json()["error"] == "User not found"
    assert "NotFoundError" in r.json()["stack"]
