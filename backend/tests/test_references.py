"""Tests for reference management and outreach."""

import pytest

from conftest import auth_header
from simplehire.models.database import ReferenceDB, UserDataDB
from simplehire.services.notification_service import NotificationType, notification_service
from simplehire.services.reference_service import derive_reference_check_status


def referee(index=1, **overrides):
    fields = {
        "name": f"Referee {index}",
        "email": f"Referee{index}@Company.com",
        "phone": "+1 555 0100",
        "company": "Acme Corp",
        "position": "Engineering Manager",
        "relationship": "Manager",
    }
    fields.update(overrides)
    return fields


def _create(client, headers, index=1, **overrides):
    response = client.post("/api/references", json=referee(index, **overrides), headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


class TestDerivedStatus:

    @pytest.mark.parametrize("statuses,stored,expected", [
        ([], "not-started", "not-started"),
        (["draft", "draft"], "not-started", "not-started"),
        (["draft", "email-sent"], "not-started", "in-progress"),
        (["verified", "verified"], "in-progress", "verified"),
        (["verified", "response-received"], "not-started", "in-progress"),
        ([], "verified", "verified"),
    ])
    def test_derive_reference_check_status(self, statuses, stored, expected):
        assert derive_reference_check_status(statuses, stored) == expected


class TestReferenceEndpoints:

    def test_create_reference(self, client, user, headers):
        data = _create(client, headers)
        assert data["status"] == "draft"
        assert data["email"] == "referee1@company.com"
        assert data["relationship"] == "Manager"
        assert data["emailSentDate"] is None

    def test_missing_fields_rejected(self, client, user, headers):
        incomplete = referee()
        del incomplete["phone"]
        response = client.post("/api/references", json=incomplete, headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_invalid_email_rejected(self, client, user, headers):
        response = client.post("/api/references", json=referee(email="nope"), headers=headers)
        assert response.status_code == 400

    def test_limit_of_five(self, client, user, headers):
        for index in range(5):
            _create(client, headers, index)
        response = client.post("/api/references", json=referee(6), headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "LIMIT_EXCEEDED"

    def test_list_only_own_references(self, client, db_session, user, other_user, headers):
        _create(client, headers, 1)
        _create(client, auth_header(other_user), 2)
        listed = client.get("/api/references", headers=headers).json()["data"]
        assert [r["name"] for r in listed] == ["Referee 1"]

    def test_update_reference(self, client, user, headers):
        created = _create(client, headers)
        response = client.patch(
            f"/api/references/{created['id']}",
            json={"position": "Director", "relationship": "Skip-level manager"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["position"] == "Director"
        assert response.json()["data"]["relationship"] == "Skip-level manager"

    def test_update_unknown_field_rejected(self, client, user, headers):
        created = _create(client, headers)
        response = client.patch(f"/api/references/{created['id']}", json={"salary": 1}, headers=headers)
        assert response.status_code == 400

    def test_other_users_reference_not_found(self, client, user, other_user, headers):
        created = _create(client, auth_header(other_user))
        assert client.patch(
            f"/api/references/{created['id']}", json={"position": "CEO"}, headers=headers
        ).status_code == 404
        assert client.delete(f"/api/references/{created['id']}", headers=headers).status_code == 404

    def test_delete_draft(self, client, db_session, user, headers):
        created = _create(client, headers)
        response = client.delete(f"/api/references/{created['id']}", headers=headers)
        assert response.status_code == 200
        assert db_session.query(ReferenceDB).count() == 0

    def test_submit_sends_requests(self, client, db_session, user, headers):
        first = _create(client, headers, 1)
        second = _create(client, headers, 2)
        _create(client, headers, 3)

        response = client.post(
            "/api/references/submit", json={"referenceIds": [first["id"], second["id"]]}, headers=headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == {"submitted": 2, "emailsSent": 2, "failedEmails": []}
        assert body["message"] == "2 reference request(s) sent"

        listed = {r["id"]: r for r in client.get("/api/references", headers=headers).json()["data"]}
        assert listed[first["id"]]["status"] == "email-sent"
        assert listed[first["id"]]["emailSentDate"] is not None

        db_session.expire_all()
        user_data = db_session.query(UserDataDB).filter(UserDataDB.user_id == user.id).one()
        assert user_data.reference_check_status == "in-progress"

        sent = notification_service.get_user_notifications(user.id)
        assert {n.recipient for n in sent} == {"referee1@company.com", "referee2@company.com"}
        assert all(n.type == NotificationType.REFERENCE_REQUEST for n in sent)

    def test_submit_requires_references(self, client, user, headers):
        response = client.post("/api/references/submit", json={"referenceIds": []}, headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "NO_REFERENCES"

    def test_submit_unknown_ids(self, client, user, headers):
        response = client.post("/api/references/submit", json={"referenceIds": ["missing"]}, headers=headers)
        assert response.status_code == 404

    def test_submitted_reference_cannot_be_deleted(self, client, user, headers):
        created = _create(client, headers)
        client.post("/api/references/submit", json={"referenceIds": [created["id"]]}, headers=headers)

        response = client.delete(f"/api/references/{created['id']}", headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "SUBMITTED_REFERENCE"

    def test_resend(self, client, user, headers):
        created = _create(client, headers)
        assert client.post(f"/api/references/{created['id']}/resend", headers=headers).status_code == 400

        client.post("/api/references/submit", json={"referenceIds": [created["id"]]}, headers=headers)
        response = client.post(f"/api/references/{created['id']}/resend", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Reference request resent"
        reminders = [
            n for n in notification_service.get_user_notifications(user.id)
            if n.type == NotificationType.REFERENCE_REMINDER
        ]
        assert len(reminders) == 1

    def test_status_update_sets_timestamps(self, client, user, headers):
        created = _create(client, headers)
        response = client.patch(f"/api/references/{created['id']}", json={"status": "verified"}, headers=headers)
        data = response.json()["data"]
        assert data["status"] == "verified"
        assert data["responseDate"] is not None
        assert data["verifiedAt"] is not None

    def test_pending_referee_starts_the_track(self, client, db_session, user, headers):
        created = _create(client, headers)
        response = client.patch(f"/api/references/{created['id']}", json={"status": "pending"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "pending"
        assert response.json()["data"]["verifiedAt"] is None

        db_session.expire_all()
        assert db_session.query(ReferenceDB).filter(ReferenceDB.id == created["id"]).one().status == "pending"
        user_data = db_session.query(UserDataDB).filter(UserDataDB.user_id == user.id).one()
        assert user_data.reference_check_status == "in-progress"

    def test_all_verified_marks_track_verified(self, client, db_session, user, headers):
        first = _create(client, headers, 1)
        second = _create(client, headers, 2)
        for created in (first, second):
            client.patch(f"/api/references/{created['id']}", json={"status": "verified"}, headers=headers)

        db_session.expire_all()
        user_data = db_session.query(UserDataDB).filter(UserDataDB.user_id == user.id).one()
        assert user_data.reference_check_status == "verified"

    def test_summary(self, client, user, headers):
        first = _create(client, headers, 1)
        second = _create(client, headers, 2)
        _create(client, headers, 3)
        client.post("/api/references/submit", json={"referenceIds": [first["id"]]}, headers=headers)
        client.patch(f"/api/references/{second['id']}", json={"status": "verified"}, headers=headers)

        summary = client.get("/api/references/summary", headers=headers).json()["data"]
        assert summary == {"total": 3, "draft": 1, "sent": 1, "completed": 0, "verified": 1}
