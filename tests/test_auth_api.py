import pytest

from models import get_user_by_email, set_user_disabled


def signup(client, email="learner@example.com", password="Secret123", confirm=None):
    return client.post(
        "/api/auth/signup",
        json={
            "email": email,
            "password": password,
            "confirm_password": password if confirm is None else confirm,
        },
    )


def login(client, email="learner@example.com", password="Secret123", remember_me=False):
    return client.post(
        "/api/auth/login",
        json={"email": email, "password": password, "remember_me": remember_me},
    )


def test_signup_creates_student_with_zero_progress(client):
    response = signup(client)

    assert response.status_code == 201
    profile = response.get_json()["profile"]
    assert profile["email"] == "learner@example.com"
    assert profile["display_name"] == "learner"
    assert profile["role"] == "student"
    assert profile["progress"]["level"] == 1
    assert profile["progress"]["words_learned"] == 0
    assert not any(profile["progress"]["achievements"].values())

    me = client.get("/api/profile")
    assert me.status_code == 200
    assert me.get_json()["profile"]["email"] == "learner@example.com"


@pytest.mark.parametrize(
    ("payload", "field", "message"),
    [
        ({"email": "", "password": "Secret123", "confirm_password": "Secret123"}, "form", "All fields are required"),
        ({"email": "a@b.co", "password": "abc", "confirm_password": "abc"}, "password", "Password must be at least 6 characters"),
        ({"email": "a@b.co", "password": "Secret123", "confirm_password": "Secret124"}, "confirm_password", "Passwords do not match"),
    ],
)
def test_signup_validation_errors(client, payload, field, message):
    response = client.post("/api/auth/signup", json=payload)

    assert response.status_code == 400
    assert response.get_json()["errors"][field] == message


def test_signup_duplicate_email_conflicts(client):
    signup(client)
    client.post("/api/auth/logout")

    response = signup(client, email="Learner@Example.com")

    assert response.status_code == 409
    assert response.get_json() == {
        "error": "This email is already registered",
        "code": "auth/email-already-in-use",
    }


def test_signup_invalid_email(client):
    response = signup(client, email="not-an-email")

    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid email address"


def test_login_messages(client, app_context):
    signup(client)
    client.post("/api/auth/logout")

    missing = client.post("/api/auth/login", json={"email": "learner@example.com"})
    assert missing.status_code == 400
    assert missing.get_json()["errors"]["form"] == "Please fill in all fields"

    unknown = login(client, email="nobody@example.com")
    assert unknown.status_code == 401
    assert unknown.get_json()["error"] == "No account found with this email"

    wrong = login(client, password="Wrong1234")
    assert wrong.status_code == 401
    assert wrong.get_json() == {"error": "Incorrect password", "code": "auth/wrong-password"}

    set_user_disabled(get_user_by_email("learner@example.com").id, True)
    disabled = login(client)
    assert disabled.status_code == 401
    assert disabled.get_json()["error"] == "This account has been disabled"


def test_login_returns_profile_and_role(client):
    signup(client)
    client.post("/api/auth/logout")

    response = login(client, remember_me=True)

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["role"] == "student"
    assert payload["profile"]["username"] == "learner"


def test_logout_requires_new_login(client):
    signup(client)

    assert client.post("/api/auth/logout").get_json() == {"logged_out": True}
    assert client.get("/api/profile").status_code == 401


def test_admin_login_rejects_students(client):
    signup(client)
    client.post("/api/auth/logout")

    response = client.post(
        "/api/admin/login",
        json={"email": "learner@example.com", "password": "Secret123"},
    )

    assert response.status_code == 403
    assert response.get_json()["error"] == "Access denied. This account is not an admin account."
    assert client.get("/api/profile").status_code == 401


def test_admin_login_accepts_admins(client, admin_user):
    response = client.post(
        "/api/admin/login",
        json={"email": "admin@example.com", "password": "AdminPass123"},
    )

    assert response.status_code == 200
    assert response.get_json()["role"] == "admin"
    assert client.get("/api/admin/overview").status_code == 200


def test_admin_routes_forbidden_for_students(client):
    signup(client)

    assert client.get("/api/admin/overview").status_code == 403
    assert client.get("/api/admin/students").status_code == 403


def test_password_change_flow(client):
    signup(client)

    wrong = client.post(
        "/api/profile/password",
        json={"current_password": "Nope1234", "new_password": "Better456", "confirm_password": "Better456"},
    )
    assert wrong.status_code == 400
    assert wrong.get_json()["error"] == "Current password is incorrect"

    mismatch = client.post(
        "/api/profile/password",
        json={"current_password": "Secret123", "new_password": "Better456", "confirm_password": "Better457"},
    )
    assert mismatch.status_code == 400
    assert mismatch.get_json()["errors"]["confirm_password"] == "New passwords do not match"

    ok = client.post(
        "/api/profile/password",
        json={"current_password": "Secret123", "new_password": "Better456", "confirm_password": "Better456"},
    )
    assert ok.status_code == 200
    assert ok.get_json()["message"] == "Password updated successfully"

    client.post("/api/auth/logout")
    assert login(client).status_code == 401
    assert login(client, password="Better456").status_code == 200
