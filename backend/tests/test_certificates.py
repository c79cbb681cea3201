"""Tests for certificate issuance and public verification."""

import re

from conftest import auth_header
from simplehire.services.certificate_service import certificate_service, generate_certificate_number

NUMBER_PATTERN = re.compile(r"^SH-\d{4}-[A-Z0-9]{6}$")


def test_certificate_number_format():
    assert NUMBER_PATTERN.match(generate_certificate_number())
    assert generate_certificate_number(2024).startswith("SH-2024-")


def test_issued_numbers_are_unique(db_session, user):
    numbers = {certificate_service.issue(db_session, user, "skill").certificate_number for _ in range(10)}
    assert len(numbers) == 10


class TestOwnerEndpoints:

    def test_list_certificates(self, client, db_session, user, other_user, headers):
        certificate_service.issue(db_session, user, "skill", {"overallScore": 82})
        certificate_service.issue(db_session, other_user, "skill")

        listed = client.get("/api/certificates", headers=headers).json()["data"]
        assert len(listed) == 1
        assert listed[0]["skillsData"] == {"overallScore": 82}
        assert listed[0]["status"] == "active"
        assert listed[0]["certificateUrl"] == f"https://simplehire.test/certificate/{listed[0]['certificateNumber']}"

    def test_get_certificate(self, client, db_session, user, other_user, headers):
        certificate = certificate_service.issue(db_session, user, "skill")
        response = client.get(f"/api/certificates/{certificate.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["certificateNumber"] == certificate.certificate_number

        other = client.get(f"/api/certificates/{certificate.id}", headers=auth_header(other_user))
        assert other.status_code == 404

    def test_share(self, client, db_session, user, headers):
        certificate = certificate_service.issue(db_session, user, "skill")
        response = client.post(f"/api/certificates/{certificate.id}/share", headers=headers)
        assert response.json()["data"] == {
            "shareableUrl": f"https://simplehire.test/certificate/{certificate.certificate_number}"
        }

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/certificates").status_code == 401


class TestPublicEndpoints:

    def test_public_view(self, client, db_session, user):
        certificate = certificate_service.issue(db_session, user, "skill", {"primarySkill": "python"})
        response = client.get(f"/api/certificates/public/{certificate.certificate_number}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["candidateName"] == user.name
        assert data["skillsData"] == {"primarySkill": "python"}
        assert "id" not in data
        assert "userId" not in data

    def test_verify_valid(self, client, db_session, user):
        certificate = certificate_service.issue(db_session, user, "skill")
        data = client.get(f"/api/certificates/verify/{certificate.certificate_number}").json()["data"]
        assert data["valid"] is True
        assert data["certificate"]["certificateNumber"] == certificate.certificate_number

    def test_verify_unknown(self, client, db_session):
        response = client.get("/api/certificates/verify/SH-2024-NOPE00")
        assert response.status_code == 200
        assert response.json()["data"] == {"valid": False}
        assert client.get("/api/certificates/public/SH-2024-NOPE00").status_code == 404

    def test_revoked_certificate_is_invalid(self, client, db_session, user):
        certificate = certificate_service.issue(db_session, user, "skill")
        certificate_service.revoke(db_session, certificate)

        number = certificate.certificate_number
        assert client.get(f"/api/certificates/verify/{number}").json()["data"] == {"valid": False}
        assert client.get(f"/api/certificates/public/{number}").status_code == 404
