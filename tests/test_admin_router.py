"""
Tests for the moderation endpoints: /api/admin and /api/reports.
"""
from fastapi import status

from app.models.admin import Admin, Ban
from app.models.notification import Notification, NotificationTypeEnum


ADMIN_URL = "/api/admin"
REPORTS_URL = "/api/reports/"


def _auth(token):
    return {"Authorization": token}


def _file_report(client, token, target_id, reason="Spam"):
    response = client.post(
        REPORTS_URL,
        json={"targetUserId": target_id, "reason": reason, "description": "Sent the same message 40 times"},
        headers=_auth(token),
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]["report"]


class TestBans:

    def test_ban_and_unban(self, client, test_db, admin_user, escort_user, admin_token, escort_token, agency):
        response = client.post(
            f"{ADMIN_URL}/users/{escort_user.id}/ban",
            json={"reason": "Fake photos", "severity": "TEMPORARY", "durationDays": 14},
            headers=_auth(admin_token),
        )
        assert response.status_code == status.HTTP_201_CREATED
        ban = response.json()["data"]["ban"]
        assert ban["severity"] == "TEMPORARY"
        assert ban["expiresAt"] is not None
        assert ban["bannedBy"] == admin_user.id

        test_db.refresh(escort_user)
        assert escort_user.is_banned is True
        alerts = test_db.query(Notification).filter(
            Notification.user_id == escort_user.id,
            Notification.type == NotificationTypeEnum.SECURITY_ALERT,
        ).count()
        assert alerts == 1

        # banned users are locked out of the API
        response = client.post(f"/api/agencies/{agency.id}/join", json={}, headers=_auth(escort_token))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "USER_BANNED"

        response = client.get(f"{ADMIN_URL}/users/banned", headers=_auth(admin_token))
        assert [u["id"] for u in response.json()["data"]["users"]] == [escort_user.id]

        response = client.post(
            f"{ADMIN_URL}/users/{escort_user.id}/unban",
            json={"reason": "Appeal accepted"},
            headers=_auth(admin_token),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["user"]["isBanned"] is False
        assert test_db.query(Ban).filter(Ban.user_id == escort_user.id, Ban.is_active.is_(True)).count() == 0

        response = client.post(f"/api/agencies/{agency.id}/join", json={}, headers=_auth(escort_token))
        assert response.status_code == status.HTTP_201_CREATED

    def test_permanent_ban_has_no_expiry(self, client, client_user, admin_token):
        response = client.post(
            f"{ADMIN_URL}/users/{client_user.id}/ban",
            json={"reason": "Fraud", "severity": "PERMANENT", "durationDays": 30},
            headers=_auth(admin_token),
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["ban"]["expiresAt"] is None

    def test_ban_counts_for_admin(self, client, test_db, admin_user, client_user, admin_token):
        client.post(f"{ADMIN_URL}/users/{client_user.id}/ban", json={"reason": "Abuse"}, headers=_auth(admin_token))
        admin = test_db.query(Admin).filter(Admin.user_id == admin_user.id).one()
        test_db.refresh(admin)
        assert admin.total_bans == 1

    def test_double_ban(self, client, client_user, admin_token):
        client.post(f"{ADMIN_URL}/users/{client_user.id}/ban", json={"reason": "Abuse"}, headers=_auth(admin_token))
        response = client.post(f"{ADMIN_URL}/users/{client_user.id}/ban", json={"reason": "Abuse"}, headers=_auth(admin_token))
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "USER_ALREADY_BANNED"

    def test_cannot_ban_self(self, client, admin_user, admin_token):
        response = client.post(f"{ADMIN_URL}/users/{admin_user.id}/ban", json={"reason": "x"}, headers=_auth(admin_token))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "CANNOT_BAN_SELF"

    def test_cannot_ban_admin(self, client, make_user, admin_token):
        from app.models.user import UserTypeEnum

        other_admin = make_user(UserTypeEnum.ADMIN)
        response = client.post(f"{ADMIN_URL}/users/{other_admin.id}/ban", json={"reason": "x"}, headers=_auth(admin_token))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "CANNOT_BAN_ADMIN"

    def test_blank_reason_rejected(self, client, client_user, admin_token):
        response = client.post(f"{ADMIN_URL}/users/{client_user.id}/ban", json={"reason": "   "}, headers=_auth(admin_token))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unban_not_banned(self, client, client_user, admin_token):
        response = client.post(f"{ADMIN_URL}/users/{client_user.id}/unban", headers=_auth(admin_token))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "USER_NOT_BANNED"

    def test_unknown_user(self, client, admin_token):
        response = client.post(f"{ADMIN_URL}/users/missing/ban", json={"reason": "x"}, headers=_auth(admin_token))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_non_admin_forbidden(self, client, client_user, agency_token):
        response = client.post(f"{ADMIN_URL}/users/{client_user.id}/ban", json={"reason": "x"}, headers=_auth(agency_token))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"


class TestReports:

    def test_file_and_list(self, client, client_user, escort_user, client_token, admin_token):
        report = _file_report(client, client_token, escort_user.id)
        assert report["status"] == "PENDING"
        assert report["authorId"] == client_user.id

        response = client.get(f"{ADMIN_URL}/reports", headers=_auth(admin_token))
        data = response.json()["data"]
        assert [r["id"] for r in data["reports"]] == [report["id"]]
        assert data["reports"][0]["targetUser"]["id"] == escort_user.id

    def test_cannot_report_self(self, client, client_user, client_token):
        response = client.post(
            REPORTS_URL, json={"targetUserId": client_user.id, "reason": "Me"}, headers=_auth(client_token)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "CANNOT_REPORT_SELF"

    def test_report_unknown_user(self, client, client_token):
        response = client.post(REPORTS_URL, json={"targetUserId": "nobody", "reason": "Spam"}, headers=_auth(client_token))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_resolve_with_ban(self, client, test_db, client_user, escort_user, client_token, admin_token):
        report = _file_report(client, client_token, escort_user.id, reason="Harassment")

        response = client.post(
            f"{ADMIN_URL}/reports/{report['id']}/resolve",
            json={"action": "ban_user", "resolution": "Confirmed", "banDurationDays": 7},
            headers=_auth(admin_token),
        )

        assert response.status_code == status.HTTP_200_OK
        resolved = response.json()["data"]["report"]
        assert resolved["status"] == "RESOLVED"
        assert resolved["actionTaken"] == "ban_user"
        test_db.refresh(escort_user)
        assert escort_user.is_banned is True
        assert escort_user.ban_reason == "Report: Harassment"
        reviewed = test_db.query(Notification).filter(
            Notification.user_id == client_user.id,
            Notification.type == NotificationTypeEnum.SYSTEM,
        ).count()
        assert reviewed == 1

    def test_resolved_reports_leave_pending_queue(self, client, escort_user, client_token, admin_token):
        report = _file_report(client, client_token, escort_user.id)
        client.post(f"{ADMIN_URL}/reports/{report['id']}/resolve", json={"action": "reject"}, headers=_auth(admin_token))

        pending = client.get(f"{ADMIN_URL}/reports?status=PENDING", headers=_auth(admin_token)).json()["data"]
        resolved = client.get(f"{ADMIN_URL}/reports?status=resolved", headers=_auth(admin_token)).json()["data"]
        everything = client.get(f"{ADMIN_URL}/reports?status=ALL", headers=_auth(admin_token)).json()["data"]

        assert pending["reports"] == []
        assert len(resolved["reports"]) == 1
        assert everything["pagination"]["total"] == 1

    def test_resolve_twice(self, client, escort_user, client_token, admin_token):
        report = _file_report(client, client_token, escort_user.id)
        url = f"{ADMIN_URL}/reports/{report['id']}/resolve"
        client.post(url, json={"action": "approve"}, headers=_auth(admin_token))
        response = client.post(url, json={"action": "approve"}, headers=_auth(admin_token))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "REPORT_ALREADY_PROCESSED"

    def test_resolve_invalid_action(self, client, escort_user, client_token, admin_token):
        report = _file_report(client, client_token, escort_user.id)
        response = client.post(
            f"{ADMIN_URL}/reports/{report['id']}/resolve", json={"action": "delete"}, headers=_auth(admin_token)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "INVALID_ACTION"

    def test_invalid_status_filter(self, client, admin_token):
        response = client.get(f"{ADMIN_URL}/reports?status=OPEN", headers=_auth(admin_token))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "INVALID_STATUS"


class TestAgencyApproval:

    def test_approve_pending_agency(self, client, test_db, agency, agency_user, admin_token):
        response = client.get(f"{ADMIN_URL}/agencies/pending", headers=_auth(admin_token))
        assert [a["id"] for a in response.json()["data"]["agencies"]] == [agency.id]

        response = client.post(f"{ADMIN_URL}/agencies/{agency.id}/approve", headers=_auth(admin_token))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["agency"]["isVerified"] is True
        response = client.get(f"{ADMIN_URL}/agencies/pending", headers=_auth(admin_token))
        assert response.json()["data"]["agencies"] == []
        notified = test_db.query(Notification).filter(
            Notification.user_id == agency_user.id,
            Notification.type == NotificationTypeEnum.AGENCY_VERIFICATION,
        ).count()
        assert notified == 1

    def test_approve_twice(self, client, agency, admin_token):
        client.post(f"{ADMIN_URL}/agencies/{agency.id}/approve", headers=_auth(admin_token))
        response = client.post(f"{ADMIN_URL}/agencies/{agency.id}/approve", headers=_auth(admin_token))
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "AGENCY_ALREADY_VERIFIED"

    def test_reject_agency(self, client, agency, admin_token):
        client.post(f"{ADMIN_URL}/agencies/{agency.id}/approve", headers=_auth(admin_token))
        response = client.post(
            f"{ADMIN_URL}/agencies/{agency.id}/reject",
            json={"reason": "License expired"},
            headers=_auth(admin_token),
        )
        assert response.status_code == status.HTTP_200_OK
        agency_data = response.json()["data"]["agency"]
        assert agency_data["isVerified"] is False
        assert agency_data["verifiedAt"] is None

    def test_unknown_agency(self, client, admin_token):
        response = client.post(f"{ADMIN_URL}/agencies/missing/approve", headers=_auth(admin_token))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "AGENCY_NOT_FOUND"
