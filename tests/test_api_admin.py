"""
Admin API Tests — /api/v1/admin:
  - role checks (applicant → 403, admin vs super-admin)
  - application listing, detail, status changes (permissive and strict)
  - user management: list, edit, activate/deactivate, delete, stats
  - staff accounts (super-admin only), own profile and password
  - dashboard statistics and daily analytics
"""

from datetime import datetime, timedelta, timezone

import pytest

from admissions.models import db
from admissions.models.application import Application
from admissions.models.user import User
from admissions.services import application_service
from admissions.services.user_service import register_user

BASE = "/api/v1/admin"


@pytest.fixture()
def bob():
    return register_user({
        "firstName": "Bob", "lastName": "Builder", "email": "bob@example.com", "password": "can-we-fix-it",
    })


def _application_id(user_id):
    return Application.query.filter_by(user_id=user_id).one().id


# ═══════════════════════════════════════════════════════════════════════════
# Access control
# ═══════════════════════════════════════════════════════════════════════════


class TestAccess:

    @pytest.mark.parametrize("path", ["/stats", "/applications", "/users", "/applications/progress"])
    def test_applicant_forbidden(self, client, applicant_headers, path):
        res = client.get(BASE + path, headers=applicant_headers)
        assert res.status_code == 403

    def test_anonymous_unauthorized(self, client):
        assert client.get(f"{BASE}/stats").status_code == 401

    def test_demoted_admin_loses_access(self, client, admin, admin_headers):
        admin.role = "user"
        db.session.commit()
        assert client.get(f"{BASE}/stats", headers=admin_headers).status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# Applications
# ═══════════════════════════════════════════════════════════════════════════


class TestApplications:

    def test_list_with_filters(self, client, admin_headers, applicant, bob, complete_answers):
        application_service.save_application(applicant.id, complete_answers)

        res = client.get(f"{BASE}/applications", headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["pagination"]["total"] == 2

        res = client.get(f"{BASE}/applications?status=In%20Review", headers=admin_headers)
        assert [a["userId"] for a in res.get_json()["applications"]] == [applicant.id]

        res = client.get(f"{BASE}/applications?search=builder", headers=admin_headers)
        assert [a["userId"] for a in res.get_json()["applications"]] == [bob.id]

    def test_pagination(self, client, admin_headers, applicant, bob):
        res = client.get(f"{BASE}/applications?page=2&limit=1", headers=admin_headers)
        pagination = res.get_json()["pagination"]
        assert pagination == {
            "currentPage": 2, "totalPages": 2, "total": 2, "hasNext": False, "hasPrev": True,
        }

    def test_detail(self, client, admin_headers, applicant):
        res = client.get(f"{BASE}/applications/{_application_id(applicant.id)}", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["application"]["user"]["firstName"] == "Ada"

    def test_detail_missing(self, client, admin_headers):
        assert client.get(f"{BASE}/applications/999", headers=admin_headers).status_code == 404

    def test_recent_and_progress(self, client, admin_headers, applicant, bob):
        recent = client.get(f"{BASE}/applications/recent?limit=1", headers=admin_headers).get_json()
        assert len(recent["applications"]) == 1

        progress = client.get(f"{BASE}/applications/progress", headers=admin_headers).get_json()
        assert {p["userId"] for p in progress["progressData"]} == {applicant.id, bob.id}

    def test_set_status(self, client, admin_headers, applicant):
        application_id = _application_id(applicant.id)
        res = client.patch(
            f"{BASE}/applications/{application_id}/status",
            headers=admin_headers,
            json={"status": "Accepted", "adminNotes": "Strong essays"},
        )
        assert res.status_code == 200
        application = res.get_json()["application"]
        assert application["status"] == "Accepted"
        assert application["adminNotes"] == "Strong essays"
        assert db.session.get(User, applicant.id).application_status == "Accepted"

    def test_invalid_status(self, client, admin_headers, applicant):
        res = client.patch(
            f"{BASE}/applications/{_application_id(applicant.id)}/status",
            headers=admin_headers,
            json={"status": "Waitlisted"},
        )
        assert res.status_code == 400

    def test_strict_transitions(self, app, client, admin_headers, applicant, monkeypatch):
        monkeypatch.setitem(app.config, "APPLICATION_STRICT_TRANSITIONS", True)
        res = client.patch(
            f"{BASE}/applications/{_application_id(applicant.id)}/status",
            headers=admin_headers,
            json={"status": "Accepted"},
        )
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_STATE"
        assert body["details"] == {"currentStatus": "Draft", "targetStatus": "Accepted"}

    def test_non_string_notes_rejected(self, client, admin_headers, applicant):
        res = client.patch(
            f"{BASE}/applications/{_application_id(applicant.id)}/status",
            headers=admin_headers,
            json={"status": "Accepted", "adminNotes": {"text": "nested"}},
        )
        assert res.status_code == 400
        assert "adminNotes" in res.get_json()["details"]
        assert Application.query.filter_by(user_id=applicant.id).one().status == "Draft"

    def test_empty_notes_clear(self, client, admin_headers, applicant):
        url = f"{BASE}/applications/{_application_id(applicant.id)}/status"
        client.patch(url, headers=admin_headers, json={"status": "In Review", "adminNotes": "call back"})
        res = client.patch(url, headers=admin_headers, json={"status": "Accepted", "adminNotes": ""})
        assert res.get_json()["application"]["adminNotes"] == ""

    def test_draft_on_complete_application_advances(self, client, admin_headers, applicant, complete_answers):
        application_service.save_application(applicant.id, complete_answers)
        res = client.patch(
            f"{BASE}/applications/{_application_id(applicant.id)}/status",
            headers=admin_headers,
            json={"status": "Draft"},
        )
        assert res.status_code == 200
        assert res.get_json()["application"]["status"] == "In Review"

    def test_delete_resets_user(self, client, admin_headers, applicant, complete_answers):
        application_service.save_application(applicant.id, complete_answers)
        res = client.delete(f"{BASE}/applications/{_application_id(applicant.id)}", headers=admin_headers)
        assert res.status_code == 200
        assert Application.query.count() == 0
        user = db.session.get(User, applicant.id)
        assert user.application_status == "Draft"
        assert user.is_application_completed is False


# ═══════════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════════


class TestUsers:

    def test_list_excludes_staff(self, client, admin_headers, applicant, bob):
        res = client.get(f"{BASE}/users", headers=admin_headers)
        assert res.status_code == 200
        users = res.get_json()["users"]
        assert {u["email"] for u in users} == {"ada@example.com", "bob@example.com"}
        assert all("completionPercentage" in u for u in users)

    def test_list_by_active_flag(self, client, admin_headers, applicant, bob):
        client.patch(f"{BASE}/users/{bob.id}/status", headers=admin_headers, json={"status": "inactive"})
        res = client.get(f"{BASE}/users?status=inactive", headers=admin_headers)
        assert [u["id"] for u in res.get_json()["users"]] == [bob.id]

    def test_detail_includes_application(self, client, admin_headers, applicant):
        res = client.get(f"{BASE}/users/{applicant.id}", headers=admin_headers)
        data = res.get_json()
        assert data["user"]["email"] == "ada@example.com"
        assert data["application"]["status"] == "Draft"

    def test_update_user(self, client, admin_headers, applicant):
        res = client.put(
            f"{BASE}/users/{applicant.id}",
            headers=admin_headers,
            json={"lastName": "Lovelace", "email": "ada.lovelace@example.com"},
        )
        assert res.status_code == 200
        user = res.get_json()["user"]
        assert user["lastName"] == "Lovelace"
        assert user["email"] == "ada.lovelace@example.com"

    def test_update_user_duplicate_email(self, client, admin_headers, applicant, bob):
        res = client.put(f"{BASE}/users/{applicant.id}", headers=admin_headers, json={"email": "bob@example.com"})
        assert res.status_code == 409

    def test_deactivate_and_reactivate(self, client, admin_headers, applicant):
        res = client.patch(f"{BASE}/users/{applicant.id}/status", headers=admin_headers, json={"status": "inactive"})
        assert res.get_json()["user"]["isActive"] is False
        res = client.patch(f"{BASE}/users/{applicant.id}/status", headers=admin_headers, json={"status": "active"})
        assert res.get_json()["user"]["isActive"] is True

    def test_invalid_user_status(self, client, admin_headers, applicant):
        res = client.patch(f"{BASE}/users/{applicant.id}/status", headers=admin_headers, json={"status": "banned"})
        assert res.status_code == 400

    def test_cannot_deactivate_self(self, client, admin, admin_headers):
        res = client.patch(f"{BASE}/users/{admin.id}/status", headers=admin_headers, json={"status": "inactive"})
        assert res.status_code == 403

    def test_delete_user_cascades(self, client, admin_headers, applicant):
        res = client.delete(f"{BASE}/users/{applicant.id}", headers=admin_headers)
        assert res.status_code == 200
        assert db.session.get(User, applicant.id) is None
        assert Application.query.count() == 0

    def test_cannot_delete_staff(self, client, admin_headers, super_admin):
        res = client.delete(f"{BASE}/users/{super_admin.id}", headers=admin_headers)
        assert res.status_code == 403

    def test_user_stats(self, client, admin_headers, applicant, complete_answers):
        application_service.save_section(applicant.id, "warmUp", complete_answers["warmUp"])
        res = client.get(f"{BASE}/users/{applicant.id}/stats", headers=admin_headers)
        data = res.get_json()
        assert data["applicationCompletion"] == 23
        assert data["profileCompletion"] == 50
        assert data["applicationSections"]["warmUp"] is True


# ═══════════════════════════════════════════════════════════════════════════
# Staff accounts
# ═══════════════════════════════════════════════════════════════════════════


class TestStaffAccounts:

    def test_admin_cannot_manage_staff(self, client, admin_headers):
        assert client.get(f"{BASE}/admins", headers=admin_headers).status_code == 403

    def test_super_admin_creates_and_lists(self, client, super_admin_headers):
        res = client.post(f"{BASE}/admins", headers=super_admin_headers, json={
            "firstName": "Nia", "lastName": "New", "email": "nia@example.com", "password": "fresh-staff",
        })
        assert res.status_code == 201
        assert res.get_json()["admin"]["role"] == "admin"

        admins = client.get(f"{BASE}/admins", headers=super_admin_headers).get_json()["admins"]
        assert {a["email"] for a in admins} == {"sam@example.com", "nia@example.com"}

    def test_create_rejects_applicant_role(self, client, super_admin_headers):
        res = client.post(f"{BASE}/admins", headers=super_admin_headers, json={
            "firstName": "Nia", "lastName": "New", "email": "nia@example.com",
            "password": "fresh-staff", "role": "user",
        })
        assert res.status_code == 400

    def test_promote_admin(self, client, admin, super_admin_headers):
        res = client.patch(f"{BASE}/admins/{admin.id}/role", headers=super_admin_headers, json={"role": "super-admin"})
        assert res.status_code == 200
        assert res.get_json()["admin"]["role"] == "super-admin"

    def test_cannot_change_own_role(self, client, super_admin, super_admin_headers):
        res = client.patch(f"{BASE}/admins/{super_admin.id}/role", headers=super_admin_headers, json={"role": "admin"})
        assert res.status_code == 403

    def test_get_staff_account(self, client, admin, super_admin_headers):
        res = client.get(f"{BASE}/admins/{admin.id}", headers=super_admin_headers)
        assert res.status_code == 200
        assert res.get_json()["admin"]["email"] == "rita@example.com"

    def test_applicant_is_not_a_staff_account(self, client, applicant, super_admin_headers):
        assert client.get(f"{BASE}/admins/{applicant.id}", headers=super_admin_headers).status_code == 404
        assert client.delete(f"{BASE}/admins/{applicant.id}", headers=super_admin_headers).status_code == 404
        assert db.session.get(User, applicant.id) is not None

    def test_update_staff_ignores_role_and_password(self, client, admin, super_admin_headers):
        res = client.put(f"{BASE}/admins/{admin.id}", headers=super_admin_headers, json={
            "lastName": "Renamed", "role": "super-admin", "password": "sneaky-new-pass",
        })
        assert res.status_code == 200
        body = res.get_json()["admin"]
        assert body["lastName"] == "Renamed"
        assert body["role"] == "admin"
        login = client.post(f"{BASE}/auth/login", json={"email": "rita@example.com", "password": "review-pass"})
        assert login.status_code == 200

    def test_delete_staff_account(self, client, admin, super_admin_headers):
        admin_id = admin.id
        res = client.delete(f"{BASE}/admins/{admin_id}", headers=super_admin_headers)
        assert res.status_code == 200
        assert db.session.get(User, admin_id) is None

    def test_cannot_delete_self(self, client, super_admin, super_admin_headers):
        res = client.delete(f"{BASE}/admins/{super_admin.id}", headers=super_admin_headers)
        assert res.status_code == 403
        assert db.session.get(User, super_admin.id) is not None

    def test_admin_cannot_edit_staff(self, client, super_admin, admin_headers):
        assert client.get(f"{BASE}/admins/{super_admin.id}", headers=admin_headers).status_code == 403
        assert client.delete(f"{BASE}/admins/{super_admin.id}", headers=admin_headers).status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# Own account
# ═══════════════════════════════════════════════════════════════════════════


class TestOwnAccount:

    def test_update_profile(self, client, admin, admin_headers):
        res = client.put(f"{BASE}/profile", headers=admin_headers, json={"firstName": "Rhea", "phone": "555-0101"})
        assert res.status_code == 200
        assert res.get_json()["admin"]["firstName"] == "Rhea"
        assert db.session.get(User, admin.id).phone == "555-0101"

    def test_profile_email_taken(self, client, admin_headers, applicant):
        res = client.put(f"{BASE}/profile", headers=admin_headers, json={"email": "ada@example.com"})
        assert res.status_code == 409

    def test_change_password(self, client, admin, admin_headers):
        res = client.post(f"{BASE}/change-password", headers=admin_headers, json={
            "currentPassword": "review-pass", "newPassword": "better-review-pass",
        })
        assert res.status_code == 200
        login = client.post(f"{BASE}/auth/login", json={"email": "rita@example.com", "password": "better-review-pass"})
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, admin_headers):
        res = client.post(f"{BASE}/change-password", headers=admin_headers, json={
            "currentPassword": "nope-nope", "newPassword": "better-review-pass",
        })
        assert res.status_code == 400
        assert res.get_json()["details"]["currentPassword"] == "incorrect"

    def test_applicant_forbidden(self, client, applicant_headers):
        assert client.put(f"{BASE}/profile", headers=applicant_headers, json={"firstName": "X"}).status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════════════════════


class TestStats:

    def test_empty(self, client, admin_headers):
        data = client.get(f"{BASE}/stats", headers=admin_headers).get_json()
        assert data["total"] == 0
        assert data["averageCompletion"] == 0
        assert data["monthlyTrends"] == []

    def test_counts(self, client, admin_headers, applicant, bob, complete_answers):
        application_service.save_application(applicant.id, complete_answers)
        application_service.admin_set_status(_application_id(applicant.id), "Accepted")

        data = client.get(f"{BASE}/stats", headers=admin_headers).get_json()
        assert data["total"] == 2
        assert data["draft"] == 1
        assert data["completed"] == 1
        assert data["byStatus"]["Accepted"] == 1
        assert data["fullyCompleted"] == 1


class TestAnalytics:

    def test_daily_buckets(self, client, admin_headers, applicant, bob, complete_answers):
        application_service.save_application(applicant.id, complete_answers)

        res = client.get(f"{BASE}/analytics", headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["period"] == 30
        assert sum(d["newUsers"] for d in data["userAnalytics"]) == 2
        assert sum(d["newApplications"] for d in data["applicationAnalytics"]) == 2
        assert data["applicationAnalytics"][-1]["averageCompletion"] == 50
        assert {s["status"]: s["count"] for s in data["statusDistribution"]} == {"Draft": 1, "In Review": 1}

    def test_old_records_fall_outside_period(self, client, admin_headers, applicant):
        old = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=10)
        db.session.get(User, applicant.id).created_at = old
        Application.query.filter_by(user_id=applicant.id).one().created_at = old
        db.session.commit()

        data = client.get(f"{BASE}/analytics?period=7", headers=admin_headers).get_json()
        assert data["period"] == 7
        assert data["userAnalytics"] == []
        assert data["applicationAnalytics"] == []
        assert data["statusDistribution"] == [{"status": "Draft", "count": 1, "averageCompletion": 0}]

    def test_period_is_clamped(self, client, admin_headers):
        assert client.get(f"{BASE}/analytics?period=0", headers=admin_headers).get_json()["period"] == 1
        assert client.get(f"{BASE}/analytics?period=9999", headers=admin_headers).get_json()["period"] == 365

    def test_staff_not_counted_as_sign_ups(self, client, admin_headers, super_admin):
        data = client.get(f"{BASE}/analytics", headers=admin_headers).get_json()
        assert data["userAnalytics"] == []
