# Overview: Pytest coverage for the HTTP API (auth, forms, responses, import, export).

"""
API tests for PodCount.

Verifies:
- Unauthenticated requests return 401
- Login, logout and session revocation
- Form CRUD with ledger-computed permissions in every payload
- Service errors render with the right status code and body
- Multipart import and file export round through Flask
"""

import io

import pytest

from podcount.models import Form, FormAccess, FormResponse, SecurityEvent, SessionToken
from conftest import PASSWORD, SIMPLE_FIELDS, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/forms"),
            ("POST", "/api/forms"),
            ("GET", "/api/forms/1"),
            ("DELETE", "/api/forms/1"),
            ("POST", "/api/forms/import"),
            ("GET", "/api/responses"),
            ("POST", "/api/responses"),
            ("GET", "/api/factories"),
            ("GET", "/api/users"),
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/security-events"),
            ("GET", "/api/password-reset-requests"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/forms", headers=auth_headers("nope"))
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_login_is_case_insensitive(self, client, supervisor):
        resp = client.post("/api/auth/login", json={"email": "Supervisor.Achiase@KOA.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == supervisor.id
        assert len(resp.json["token"]) == 64

    def test_wrong_password(self, client, db_session, supervisor):
        resp = client.post("/api/auth/login", json={"email": supervisor.email, "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials"
        assert db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_disabled_account(self, client, make_user, factory_a):
        user = make_user("GUEST", factory_a, status="DISABLED")
        resp = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 403
        assert "disabled" in resp.json["error"]

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"email": "a@koa.com"}).status_code == 400

    def test_me(self, client, supervisor, supervisor_headers):
        resp = client.get("/api/auth/me", headers=supervisor_headers)
        assert resp.status_code == 200
        assert resp.json["principal"] == {
            "user_id": supervisor.id,
            "role": "SUPERVISOR",
            "factory_id": supervisor.factory_id,
        }

    def test_logout_revokes_token(self, client, supervisor_headers):
        assert client.post("/api/auth/logout", headers=supervisor_headers).status_code == 200
        assert client.get("/api/auth/me", headers=supervisor_headers).status_code == 401

    def test_disabled_after_login(self, client, db_session, supervisor, supervisor_headers):
        supervisor.status = "DISABLED"
        db_session.commit()

        assert client.get("/api/auth/me", headers=supervisor_headers).status_code == 401
        session = db_session.query(SessionToken).filter_by(user_id=supervisor.id).one()
        assert session.is_revoked is True


# =============================================================================
# FORMS
# =============================================================================


class TestForms:

    def test_admin_form_shared_with_supervisor(self, client, db_session, admin, supervisor, admin_headers):
        """Admin-created form: supervisor can view and edit but not delete."""
        fields = [
            {"name": "farmer_id", "type": "text", "required": True},
            {"name": "farmer_name", "type": "text", "required": True},
            {"name": "community", "type": "text", "required": True},
        ]
        resp = client.post(
            "/api/forms",
            json={"name": "Achiase Survey", "type": "CONVENTIONAL", "fields": fields},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        form_id = resp.json["id"]
        assert resp.json["permissions"] == {"can_view": True, "can_edit": True, "can_delete": True}

        row = db_session.query(FormAccess).filter_by(user_id=supervisor.id, form_id=form_id).one()
        assert (row.can_view, row.can_edit, row.can_delete) == (True, True, False)

        sup_headers = auth_headers(get_auth_token(client, supervisor.email))
        got = client.get(f"/api/forms/{form_id}", headers=sup_headers)
        assert got.status_code == 200
        assert got.json["permissions"] == {"can_view": True, "can_edit": True, "can_delete": False}

        denied = client.delete(f"/api/forms/{form_id}", headers=sup_headers)
        assert denied.status_code == 403
        assert db_session.get(Form, form_id) is not None

    def test_round_trip_sections(self, client, supervisor_headers):
        fields = {
            "sections": [
                {"title": "Farmer", "fields": [
                    {"name": "farmer_id", "label": "Farmer ID", "type": "text", "required": True},
                    {"name": "grade", "label": "Grade", "type": "dropdown", "required": False, "options": ["A", "B"]},
                ]},
                {"title": "Counts", "fields": [
                    {"name": "large", "label": "Large (L)", "type": "number", "required": True, "min": 0},
                ]},
            ]
        }
        created = client.post("/api/forms", json={"name": "Nested", "fields": fields}, headers=supervisor_headers)
        assert created.status_code == 201

        fetched = client.get(f"/api/forms/{created.json['id']}", headers=supervisor_headers)
        assert fetched.json["fields"] == fields

    def test_duplicate_name_conflict(self, client, supervisor_headers):
        body = {"name": "Template A", "fields": SIMPLE_FIELDS}
        assert client.post("/api/forms", json=body, headers=supervisor_headers).status_code == 201

        resp = client.post("/api/forms", json=body, headers=supervisor_headers)
        assert resp.status_code == 409
        assert set(resp.json["fields"]) == {"name", "factory_id"}

    def test_invalid_schema_field_errors(self, client, supervisor_headers):
        resp = client.post(
            "/api/forms",
            json={"name": "Bad", "fields": [{"name": "a", "type": "blob"}]},
            headers=supervisor_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field_errors"] == {"fields[0].type": "Unsupported field type 'blob'"}

    def test_list_includes_default_template(self, client, supervisor_headers):
        resp = client.get("/api/forms", headers=supervisor_headers)
        assert resp.status_code == 200
        assert [f["name"] for f in resp.json] == ["Organic Cocoa Pod Count Template"]
        assert resp.json[0]["permissions"]["can_delete"] is True

    def test_patch_and_delete(self, client, db_session, supervisor_headers):
        form_id = client.post(
            "/api/forms", json={"name": "Draft", "fields": SIMPLE_FIELDS}, headers=supervisor_headers,
        ).json["id"]

        patched = client.patch(f"/api/forms/{form_id}", json={"description": "v2"}, headers=supervisor_headers)
        assert patched.status_code == 200
        assert patched.json["name"] == "Draft"
        assert patched.json["description"] == "v2"

        assert client.delete(f"/api/forms/{form_id}", headers=supervisor_headers).status_code == 200
        assert client.get(f"/api/forms/{form_id}", headers=supervisor_headers).status_code == 404
        assert db_session.query(FormAccess).filter_by(form_id=form_id).count() == 0

    def test_bad_factory_filter(self, client, supervisor_headers):
        resp = client.get("/api/forms?factory_id=abc", headers=supervisor_headers)
        assert resp.status_code == 400


class TestAccessRoutes:

    @pytest.fixture
    def form_id(self, client, supervisor_headers):
        return client.post(
            "/api/forms", json={"name": "Shared", "fields": SIMPLE_FIELDS}, headers=supervisor_headers,
        ).json["id"]

    def test_grant_list_revoke(self, client, form_id, outsider, admin_headers):
        granted = client.post(
            f"/api/forms/{form_id}/access",
            json={"user_id": outsider.id, "can_view": True, "can_edit": True},
            headers=admin_headers,
        )
        assert granted.status_code == 200
        assert granted.json["can_edit"] is True
        assert granted.json["user"]["email"] == outsider.email

        listed = client.get(f"/api/forms/{form_id}/access", headers=admin_headers)
        assert outsider.id in [row["user_id"] for row in listed.json]

        revoked = client.delete(f"/api/forms/{form_id}/access?user_id={outsider.id}", headers=admin_headers)
        assert revoked.status_code == 200

        again = client.delete(f"/api/forms/{form_id}/access?user_id={outsider.id}", headers=admin_headers)
        assert again.status_code == 404

    def test_non_admin_cannot_grant(self, client, form_id, outsider, supervisor_headers):
        resp = client.post(f"/api/forms/{form_id}/access", json={"user_id": outsider.id}, headers=supervisor_headers)
        assert resp.status_code == 403

    def test_revoke_requires_user_id(self, client, form_id, admin_headers):
        assert client.delete(f"/api/forms/{form_id}/access", headers=admin_headers).status_code == 400


# =============================================================================
# RESPONSES
# =============================================================================


class TestResponses:

    @pytest.fixture
    def form_id(self, client, supervisor_headers):
        return client.post(
            "/api/forms", json={"name": "Counts", "fields": SIMPLE_FIELDS}, headers=supervisor_headers,
        ).json["id"]

    def test_single_submission(self, client, form_id, supervisor, supervisor_headers):
        resp = client.post(
            "/api/responses",
            json={"form_id": form_id, "data": {"farmer_id": "F1", "pod_count": "12"}},
            headers=supervisor_headers,
        )
        assert resp.status_code == 201
        assert resp.json["data"]["pod_count"] == 12
        assert resp.json["submitted_by_id"] == supervisor.id

        listed = client.get(f"/api/responses?form_id={form_id}", headers=supervisor_headers)
        assert len(listed.json) == 1
        assert listed.json[0]["form_name"] == "Counts"

    def test_validation_errors_per_field(self, client, form_id, supervisor_headers):
        resp = client.post(
            "/api/responses",
            json={"form_id": form_id, "data": {"pod_count": "lots"}},
            headers=supervisor_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field_errors"] == {
            "farmer_id": "This field is required",
            "pod_count": "Please enter a valid number",
        }

    def test_missing_form_id(self, client, supervisor_headers):
        assert client.post("/api/responses", json={"data": {}}, headers=supervisor_headers).status_code == 400

    def test_unknown_form(self, client, supervisor_headers):
        resp = client.post("/api/responses", json={"form_id": 99999, "data": {}}, headers=supervisor_headers)
        assert resp.status_code == 404
        assert resp.json["error"] == "Form not found"

    def test_bulk(self, client, db_session, form_id, supervisor_headers):
        resp = client.post(
            "/api/responses",
            json={"responses": [
                {"form_id": form_id, "data": {"farmer_id": "F1", "extra": "kept"}},
                {"form_id": form_id, "data": {"farmer_id": "F2"}},
            ]},
            headers=supervisor_headers,
        )
        assert resp.status_code == 201
        assert resp.json["count"] == 2
        assert db_session.query(FormResponse).filter_by(form_id=form_id).count() == 2

    def test_empty_bulk(self, client, db_session, supervisor_headers):
        resp = client.post("/api/responses", json={"responses": []}, headers=supervisor_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "No responses provided"
        assert db_session.query(FormResponse).count() == 0

    def test_bulk_with_non_object_data(self, client, db_session, form_id, supervisor_headers):
        resp = client.post(
            "/api/responses",
            json={"responses": [
                {"form_id": form_id, "data": {"farmer_id": "F1"}},
                {"form_id": form_id, "data": "oops"},
            ]},
            headers=supervisor_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field_errors"] == {"responses[1].data": "Must be an object"}
        assert db_session.query(FormResponse).count() == 0


# =============================================================================
# IMPORT / EXPORT
# =============================================================================


class TestImportExport:

    CSV = b"farmer_id,pod_count,count_date\nF001,45,2024-01-15\nF002,30,2024-01-16\nF003,12,2024-01-17\n"

    def _upload(self, client, headers, content, filename, **form):
        data = {"file": (io.BytesIO(content), filename)}
        data.update(form)
        return client.post("/api/forms/import", data=data, headers=headers, content_type="multipart/form-data")

    def test_import_csv(self, client, supervisor_headers):
        resp = self._upload(client, supervisor_headers, self.CSV, "pod_counts.csv")
        assert resp.status_code == 201
        assert resp.json["responses_created"] == 3

        form = resp.json["form"]
        assert form["type"] == "IMPORTED"
        assert form["name"] == "pod counts"
        fields = form["fields"]["sections"][0]["fields"]
        assert [(f["name"], f["type"]) for f in fields] == [
            ("farmer_id", "text"), ("pod_count", "number"), ("count_date", "date"),
        ]

        listed = client.get(f"/api/responses?form_id={form['id']}", headers=supervisor_headers)
        assert sorted(r["data"]["farmer_id"] for r in listed.json) == ["F001", "F002", "F003"]
        assert all(set(r["data"]) == {"farmer_id", "pod_count", "count_date"} for r in listed.json)

    def test_import_custom_name(self, client, supervisor_headers):
        resp = self._upload(client, supervisor_headers, self.CSV, "x.csv", name="January", description="Jan")
        assert resp.json["form"]["name"] == "January"
        assert resp.json["form"]["description"] == "Jan"

    def test_import_requires_file(self, client, supervisor_headers):
        resp = client.post("/api/forms/import", data={}, headers=supervisor_headers,
                           content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_import_empty(self, client, supervisor_headers):
        resp = self._upload(client, supervisor_headers, b"farmer_id\n", "empty.csv")
        assert resp.status_code == 400
        assert resp.json["error"] == "No data rows found in file"

    def test_import_xls_rejected(self, client, supervisor_headers):
        resp = self._upload(client, supervisor_headers, b"\xd0\xcf\x11\xe0", "old.xls")
        assert resp.status_code == 400

    def test_import_corrupt_workbook(self, client, db_session, supervisor_headers):
        resp = self._upload(client, supervisor_headers, b"not a zip", "broken.xlsx")
        assert resp.status_code == 400
        assert resp.json["error"] == "Could not read Excel file"
        assert db_session.query(Form).filter_by(type="IMPORTED").count() == 0

    def test_export_csv(self, client, supervisor_headers):
        form_id = self._upload(client, supervisor_headers, self.CSV, "pods.csv").json["form"]["id"]
        resp = client.get(f"/api/forms/{form_id}/export?format=csv", headers=supervisor_headers)

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "pods_responses.csv" in resp.headers["Content-Disposition"]
        lines = resp.data.decode("utf-8-sig").splitlines()
        assert lines[0] == "submitted_at,submitted_by,farmer_id,pod_count,count_date"
        assert len(lines) == 4

    def test_export_forbidden(self, client, outsider, supervisor_headers):
        form_id = self._upload(client, supervisor_headers, self.CSV, "pods.csv").json["form"]["id"]
        outsider_headers = auth_headers(get_auth_token(client, outsider.email))
        assert client.get(f"/api/forms/{form_id}/export", headers=outsider_headers).status_code == 403


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"

    def test_dashboard_scoped_for_non_admin(self, client, supervisor_headers, outsider):
        client.post("/api/forms", json={"name": "Mine", "fields": SIMPLE_FIELDS}, headers=supervisor_headers)
        stats = client.get("/api/dashboard/stats", headers=supervisor_headers).json
        assert stats["forms"] == 1
        assert stats["users"] == 0
        assert stats["factories"] == 0

    def test_dashboard_admin_counts(self, client, admin_headers, outsider):
        stats = client.get("/api/dashboard/stats", headers=admin_headers).json
        assert stats["users"] == 2
        assert stats["factories"] == 2

    def test_security_events_admin_only(self, client, admin_headers, supervisor_headers):
        assert client.get("/api/security-events", headers=supervisor_headers).status_code == 403

        resp = client.get("/api/security-events", headers=admin_headers)
        assert resp.status_code == 200
        types = {e["event_type"] for e in resp.json}
        assert {"LOGIN_SUCCESS", "ADMIN_REQUIRED"} <= types

    def test_cors_for_allowed_origin(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        other = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers
