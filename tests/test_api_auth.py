"""
Auth API Tests — /api/v1/auth and /api/v1/admin/auth:
  - register (201 + token + Draft application)
  - login, redirect hint, bad credentials
  - /me and profile updates
  - staff login
  - deactivated accounts
  - password change
"""

from admissions.models import db
from admissions.models.application import Application
from admissions.models.user import User
from admissions.services import application_service, user_service

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
ADMIN_LOGIN_URL = "/api/v1/admin/auth/login"


def _register(client, **overrides):
    body = {
        "firstName": "Grace",
        "lastName": "Hopper",
        "email": "grace@example.com",
        "password": "compilers-rule",
    }
    body.update(overrides)
    return client.post(REGISTER_URL, json=body)


def _login(client, email, password, url=LOGIN_URL):
    return client.post(url, json={"email": email, "password": password})


# ═══════════════════════════════════════════════════════════════════════════
# Register
# ═══════════════════════════════════════════════════════════════════════════


class TestRegister:

    def test_register_returns_token_and_creates_application(self, client):
        res = _register(client)
        assert res.status_code == 201
        data = res.get_json()
        assert data["token"]
        assert data["tokenType"] == "Bearer"
        assert data["user"]["email"] == "grace@example.com"
        assert data["user"]["role"] == "user"

        application = Application.query.filter_by(user_id=data["userId"]).one()
        assert application.status == "Draft"

    def test_email_is_normalized(self, client):
        res = _register(client, email="Grace@Example.COM")
        assert res.status_code == 201
        assert res.get_json()["user"]["email"] == "grace@example.com"

    def test_duplicate_email(self, client):
        _register(client)
        res = _register(client, email="GRACE@example.com")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_invalid_email(self, client):
        res = _register(client, email="not-an-email")
        assert res.status_code == 400
        assert "email" in res.get_json()["details"]

    def test_short_password(self, client):
        res = _register(client, password="short")
        assert res.status_code == 400
        assert "password" in res.get_json()["details"]

    def test_missing_names(self, client):
        res = _register(client, firstName="", lastName=None)
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"firstName", "lastName"}

    def test_missing_body(self, client):
        res = client.post(REGISTER_URL)
        assert res.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════════════════════


class TestLogin:

    def test_login_draft_goes_to_application(self, client, applicant):
        res = _login(client, "ada@example.com", "correct-horse")
        assert res.status_code == 200
        data = res.get_json()
        assert data["token"]
        assert data["userId"] == applicant.id
        assert data["redirectTo"] == "/application"
        assert data["user"]["lastLoginAt"] is not None

    def test_login_after_submission_goes_to_dashboard(self, client, applicant, complete_answers):
        application_service.save_application(applicant.id, complete_answers)
        res = _login(client, "ADA@example.com", "correct-horse")
        assert res.status_code == 200
        assert res.get_json()["redirectTo"] == "/dashboard"

    def test_wrong_password(self, client, applicant):
        res = _login(client, "ada@example.com", "wrong-horse")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_unknown_email(self, client):
        res = _login(client, "nobody@example.com", "whatever-pass")
        assert res.status_code == 401

    def test_deactivated_account_cannot_login(self, client, applicant):
        user_service.set_user_active(applicant.id, False)
        res = _login(client, "ada@example.com", "correct-horse")
        assert res.status_code == 401

    def test_token_from_login_works(self, client, applicant):
        token = _login(client, "ada@example.com", "correct-horse").get_json()["token"]
        res = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 200
        assert res.get_json()["user"]["id"] == applicant.id


class TestAdminLogin:

    def test_admin_login(self, client, admin):
        res = _login(client, "rita@example.com", "review-pass", url=ADMIN_LOGIN_URL)
        assert res.status_code == 200
        assert res.get_json()["user"]["role"] == "admin"

    def test_applicant_rejected(self, client, applicant):
        res = _login(client, "ada@example.com", "correct-horse", url=ADMIN_LOGIN_URL)
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"


# ═══════════════════════════════════════════════════════════════════════════
# Me / profile
# ═══════════════════════════════════════════════════════════════════════════


class TestMe:

    def test_requires_token(self, client):
        res = client.get("/api/v1/auth/me")
        assert res.status_code == 401

    def test_garbage_token(self, client):
        res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid token"

    def test_returns_profile(self, client, applicant_headers):
        res = client.get("/api/v1/auth/me", headers=applicant_headers)
        assert res.status_code == 200
        user = res.get_json()["user"]
        assert user["firstName"] == "Ada"
        assert user["profileComplete"] is False

    def test_deactivated_token_rejected(self, client, applicant, applicant_headers):
        user_service.set_user_active(applicant.id, False)
        res = client.get("/api/v1/auth/me", headers=applicant_headers)
        assert res.status_code == 401

    def test_profile_update_marks_complete(self, client, applicant, applicant_headers):
        res = client.put("/api/v1/auth/profile", headers=applicant_headers, json={
            "phone": "+1 555 0100",
            "address": "1 Market Street",
        })
        assert res.status_code == 200
        assert res.get_json()["user"]["profileComplete"] is True
        assert db.session.get(User, applicant.id).phone == "+1 555 0100"

    def test_profile_rejects_blank_name(self, client, applicant_headers):
        res = client.put("/api/v1/auth/profile", headers=applicant_headers, json={"firstName": "  "})
        assert res.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════
# Change password
# ═══════════════════════════════════════════════════════════════════════════


class TestChangePassword:

    URL = "/api/v1/auth/change-password"

    def test_changes_password(self, client, applicant, applicant_headers):
        res = client.post(self.URL, headers=applicant_headers, json={
            "currentPassword": "correct-horse", "newPassword": "battery-staple",
        })
        assert res.status_code == 200
        assert res.get_json()["message"] == "Password changed successfully"
        assert _login(client, "ada@example.com", "correct-horse").status_code == 401
        assert _login(client, "ada@example.com", "battery-staple").status_code == 200

    def test_wrong_current_password(self, client, applicant, applicant_headers):
        res = client.post(self.URL, headers=applicant_headers, json={
            "currentPassword": "guess-again", "newPassword": "battery-staple",
        })
        assert res.status_code == 400
        assert res.get_json()["details"] == {"currentPassword": "incorrect"}
        assert _login(client, "ada@example.com", "correct-horse").status_code == 200

    def test_new_password_too_short(self, client, applicant_headers):
        res = client.post(self.URL, headers=applicant_headers, json={
            "currentPassword": "correct-horse", "newPassword": "short",
        })
        assert res.status_code == 400
        assert "password" in res.get_json()["details"]

    def test_requires_token(self, client):
        res = client.post(self.URL, json={"currentPassword": "a", "newPassword": "b"})
        assert res.status_code == 401
