"""
HTTP tests for the /api/agencies endpoints.

Covers:
- The full join -> approve -> verify -> renew -> leave flow
- Invitation flow and expiry
- Pricing fallback and search
- Authentication / user type guards and the error envelope
"""
from datetime import timedelta

from fastapi import status

from app.models.agency_invitation import AgencyInvitation
from app.models.user import UserTypeEnum
from app.utils.time_utils import utc_now
from common_utils.auth.utils import create_access_token


BASE_URL = "/api/agencies"


def _auth(token):
    return {"Authorization": token}


def _assert_error(response, status_code, code):
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["code"] == code
    assert "message" in body
    assert "timestamp" in body


# =====================================================================
# END-TO-END FLOWS
# =====================================================================

class TestMembershipFlow:

    def test_join_approve_verify_leave(self, client, test_db, escort, agency, escort_token, agency_token):
        """An escort joins, is approved and verified, then leaves and loses verification."""
        response = client.post(
            f"{BASE_URL}/{agency.id}/join",
            json={"message": "I'd like to join"},
            headers=_auth(escort_token),
        )
        assert response.status_code == status.HTTP_201_CREATED
        membership = response.json()["data"]["membership"]
        assert membership["status"] == "PENDING"
        assert membership["escortId"] == escort.id

        response = client.get(f"{BASE_URL}/escorts?status=pending", headers=_auth(agency_token))
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert [r["id"] for r in data["requests"]] == [membership["id"]]
        assert data["pagination"]["total"] == 1

        response = client.post(
            f"{BASE_URL}/memberships/{membership['id']}/manage",
            json={"action": "approve", "commissionRate": 0.2},
            headers=_auth(agency_token),
        )
        assert response.status_code == status.HTTP_200_OK
        approved = response.json()["data"]["membership"]
        assert approved["status"] == "ACTIVE"
        assert approved["commissionRate"] == 0.2

        response = client.post(
            f"{BASE_URL}/escorts/{escort.id}/verify",
            json={"pricingId": "default-basic", "verificationNotes": "Documents checked"},
            headers=_auth(agency_token),
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["isRenewal"] is False
        assert data["escort"]["isVerified"] is True
        assert data["escort"]["verifiedBy"] == agency.id
        assert data["pricing"]["cost"] == 10.0
        assert data["verification"]["pricingId"] == "default-basic"

        response = client.get(f"{BASE_URL}/escort/membership-status", headers=_auth(escort_token))
        status_data = response.json()["data"]
        assert status_data["status"] == "agency"
        assert status_data["currentMembership"]["agencyId"] == agency.id
        assert status_data["verification"]["isVerified"] is True
        assert status_data["verification"]["needsRenewal"] is False

        response = client.post(
            f"{BASE_URL}/escort/leave",
            json={"reason": "Going independent"},
            headers=_auth(escort_token),
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["verificationRemoved"] is True
        assert data["membership"]["status"] == "REJECTED"
        assert data["membership"]["leaveReason"] == "Going independent"

        test_db.refresh(escort)
        assert escort.is_verified is False
        test_db.refresh(agency)
        assert agency.total_escorts == 1
        assert agency.active_escorts == 0
        assert agency.verified_escorts == 0
        assert agency.total_verifications == 1

    def test_leave_without_body(self, client, escort_token, active_membership):
        response = client.post(f"{BASE_URL}/escort/leave", headers=_auth(escort_token))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["membership"]["leaveReason"] is None

    def test_leave_without_membership(self, client, escort_token):
        response = client.post(f"{BASE_URL}/escort/leave", headers=_auth(escort_token))
        _assert_error(response, status.HTTP_404_NOT_FOUND, "NO_ACTIVE_MEMBERSHIP")

    def test_duplicate_join_conflicts(self, client, agency, escort_token):
        client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(escort_token))
        response = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(escort_token))
        _assert_error(response, status.HTTP_409_CONFLICT, "MEMBERSHIP_PENDING")

    def test_join_by_agency_user_id(self, client, agency, agency_user, escort_token):
        response = client.post(f"{BASE_URL}/{agency_user.id}/join", json={}, headers=_auth(escort_token))
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["membership"]["agencyId"] == agency.id

    def test_second_agency_approval_blocked(
        self, client, escort, agency, second_agency, escort_token, agency_token, second_agency_token
    ):
        """Two pending requests: approving the second after the first returns 409."""
        first = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(escort_token))
        second = client.post(f"{BASE_URL}/{second_agency.id}/join", json={}, headers=_auth(escort_token))

        response = client.post(
            f"{BASE_URL}/memberships/{first.json()['data']['membership']['id']}/manage",
            json={"action": "approve"},
            headers=_auth(agency_token),
        )
        assert response.status_code == status.HTTP_200_OK

        response = client.post(
            f"{BASE_URL}/memberships/{second.json()['data']['membership']['id']}/manage",
            json={"action": "approve"},
            headers=_auth(second_agency_token),
        )
        _assert_error(response, status.HTTP_409_CONFLICT, "ESCORT_HAS_ACTIVE_MEMBERSHIP")
        assert response.json()["details"] == {"agencyId": agency.id}

    def test_manage_invalid_action(self, client, agency, escort_token, agency_token):
        created = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(escort_token))
        response = client.post(
            f"{BASE_URL}/memberships/{created.json()['data']['membership']['id']}/manage",
            json={"action": "ban"},
            headers=_auth(agency_token),
        )
        _assert_error(response, status.HTTP_400_BAD_REQUEST, "INVALID_ACTION")

    def test_manage_requires_action(self, client, agency_token):
        response = client.post(f"{BASE_URL}/memberships/whatever/manage", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR")


class TestInvitationFlow:

    def test_invite_and_accept(self, client, test_db, escort, agency, escort_token, agency_token):
        response = client.post(
            f"{BASE_URL}/escorts/{escort.id}/invite",
            json={"message": "Join us", "proposedCommission": 0.12, "proposedRole": "MANAGER"},
            headers=_auth(agency_token),
        )
        assert response.status_code == status.HTTP_201_CREATED
        invitation = response.json()["data"]["invitation"]
        assert invitation["status"] == "PENDING"
        assert invitation["proposedRole"] == "MANAGER"

        response = client.get(f"{BASE_URL}/escort/invitations?status=pending", headers=_auth(escort_token))
        data = response.json()["data"]
        assert [i["id"] for i in data["invitations"]] == [invitation["id"]]
        assert data["invitations"][0]["agency"]["id"] == agency.id

        response = client.post(
            f"{BASE_URL}/invitations/{invitation['id']}/respond",
            json={"action": "accept"},
            headers=_auth(escort_token),
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["invitation"]["status"] == "ACCEPTED"
        assert data["membership"]["status"] == "ACTIVE"
        assert data["membership"]["role"] == "MANAGER"
        assert data["membership"]["commissionRate"] == 0.12

        test_db.refresh(agency)
        assert agency.total_escorts == 1
        assert agency.active_escorts == 1

    def test_reject_returns_no_membership(self, client, escort, escort_token, agency_token):
        created = client.post(f"{BASE_URL}/escorts/{escort.id}/invite", json={}, headers=_auth(agency_token))
        response = client.post(
            f"{BASE_URL}/invitations/{created.json()['data']['invitation']['id']}/respond",
            json={"action": "reject", "message": "No thanks"},
            headers=_auth(escort_token),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["membership"] is None
        assert response.json()["data"]["invitation"]["status"] == "REJECTED"

    def test_expired_invitation(self, client, test_db, escort, escort_token, agency_token):
        """Invitations older than seven days can no longer be answered."""
        created = client.post(f"{BASE_URL}/escorts/{escort.id}/invite", json={}, headers=_auth(agency_token))
        invitation_id = created.json()["data"]["invitation"]["id"]
        invitation = test_db.query(AgencyInvitation).filter(AgencyInvitation.id == invitation_id).one()
        invitation.expires_at = utc_now() - timedelta(hours=1)
        test_db.commit()

        response = client.post(
            f"{BASE_URL}/invitations/{invitation_id}/respond",
            json={"action": "accept"},
            headers=_auth(escort_token),
        )
        _assert_error(response, status.HTTP_404_NOT_FOUND, "INVITATION_NOT_FOUND")

        response = client.get(f"{BASE_URL}/escort/invitations?status=PENDING", headers=_auth(escort_token))
        assert response.json()["data"]["invitations"] == []

    def test_duplicate_invitation(self, client, escort, agency_token):
        client.post(f"{BASE_URL}/escorts/{escort.id}/invite", json={}, headers=_auth(agency_token))
        response = client.post(f"{BASE_URL}/escorts/{escort.id}/invite", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_409_CONFLICT, "INVITATION_EXISTS")

    def test_invite_unknown_escort(self, client, agency_token):
        response = client.post(f"{BASE_URL}/escorts/nobody/invite", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_404_NOT_FOUND, "ESCORT_NOT_FOUND")


class TestVerificationEndpoints:

    def test_verify_non_member(self, client, escort, agency_token):
        response = client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_404_NOT_FOUND, "ESCORT_NOT_MEMBER")

    def test_verify_twice(self, client, escort, agency_token, active_membership):
        client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))
        response = client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_409_CONFLICT, "ESCORT_ALREADY_VERIFIED")

    def test_unknown_pricing(self, client, escort, agency_token, active_membership):
        response = client.post(
            f"{BASE_URL}/escorts/{escort.id}/verify",
            json={"pricingId": "diamond"},
            headers=_auth(agency_token),
        )
        _assert_error(response, status.HTTP_404_NOT_FOUND, "PRICING_NOT_FOUND")

    def test_renew_when_not_due(self, client, escort, agency_token, active_membership):
        client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))
        response = client.post(f"{BASE_URL}/escorts/{escort.id}/verify/renew", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_409_CONFLICT, "VERIFICATION_NOT_RENEWABLE")

    def test_renew_expiring(self, client, test_db, escort, agency, agency_token, active_membership):
        client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))
        test_db.refresh(escort)
        escort.verification_expires_at = utc_now() + timedelta(days=2)
        test_db.commit()

        response = client.post(
            f"{BASE_URL}/escorts/{escort.id}/verify/renew",
            json={"pricingId": "default-vip"},
            headers=_auth(agency_token),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["isRenewal"] is True
        assert data["pricing"]["duration"] == 90
        test_db.refresh(agency)
        assert agency.verified_escorts == 1
        assert agency.total_verifications == 2

    def test_expiring_list(self, client, test_db, escort, agency_token, active_membership):
        client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))

        response = client.get(f"{BASE_URL}/verifications/expiring", headers=_auth(agency_token))
        data = response.json()["data"]
        assert data["verifications"] == []
        assert data["withinDays"] == 7

        response = client.get(f"{BASE_URL}/verifications/expiring?days=31", headers=_auth(agency_token))
        data = response.json()["data"]
        assert len(data["verifications"]) == 1
        assert data["verifications"][0]["escort"]["id"] == escort.id

    def test_stats(self, client, escort, agency_token, active_membership):
        client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(agency_token))

        response = client.get(f"{BASE_URL}/stats", headers=_auth(agency_token))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["verificationCount"] == 1
        assert data["verificationRevenue"] == 10.0
        assert data["counters"]["verifiedEscorts"] == 1
        assert data["topEscorts"][0]["escortId"] == escort.id


# =====================================================================
# DISCOVERY
# =====================================================================

class TestDiscovery:

    def test_pricing_fallback(self, client, client_token):
        response = client.get(f"{BASE_URL}/verification-pricing", headers=_auth(client_token))

        assert response.status_code == status.HTTP_200_OK
        tiers = response.json()["data"]["pricing"]
        assert [t["id"] for t in tiers] == ["default-basic", "default-premium", "default-vip"]
        assert [t["cost"] for t in tiers] == [50.0, 75.0, 100.0]
        assert all(t["isFallback"] for t in tiers)

    def test_search_by_location(self, client, agency, second_agency, client_token):
        response = client.get(f"{BASE_URL}/search?location=barcelona", headers=_auth(client_token))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert [a["id"] for a in data["agencies"]] == [second_agency.id]
        assert data["filters"]["location"] == "barcelona"

    def test_search_excludes_banned(self, client, test_db, agency, agency_user, second_agency, client_token):
        agency_user.is_banned = True
        test_db.commit()
        response = client.get(f"{BASE_URL}/search", headers=_auth(client_token))
        assert [a["id"] for a in response.json()["data"]["agencies"]] == [second_agency.id]

    def test_search_sort_by_escorts(self, client, agency, second_agency, make_active_membership, make_user, client_token):
        make_active_membership(make_user(UserTypeEnum.ESCORT).escort, second_agency)
        response = client.get(f"{BASE_URL}/search?sortBy=escorts", headers=_auth(client_token))
        assert [a["id"] for a in response.json()["data"]["agencies"]] == [second_agency.id, agency.id]

    def test_search_invalid_sort(self, client, client_token):
        response = client.get(f"{BASE_URL}/search?sortBy=random", headers=_auth(client_token))
        _assert_error(response, status.HTTP_400_BAD_REQUEST, "INVALID_SORT")

    def test_search_pagination(self, client, agency, second_agency, client_token):
        response = client.get(f"{BASE_URL}/search?page=2&limit=1", headers=_auth(client_token))
        pagination = response.json()["data"]["pagination"]
        assert pagination == {"page": 2, "limit": 1, "total": 2, "pages": 2, "hasNext": False, "hasPrev": True}


# =====================================================================
# AUTH GUARDS
# =====================================================================

class TestAuthGuards:

    def test_missing_token(self, client, agency):
        response = client.post(f"{BASE_URL}/{agency.id}/join", json={})
        _assert_error(response, status.HTTP_401_UNAUTHORIZED, "NOT_AUTHENTICATED")

    def test_garbage_token(self, client, agency):
        response = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth("Bearer not-a-jwt"))
        _assert_error(response, status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN")

    def test_expired_token(self, client, escort_user, agency):
        token = create_access_token(
            user_id=escort_user.id,
            user_type=escort_user.user_type.value,
            expires_delta=timedelta(minutes=-5),
        )
        response = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(f"Bearer {token}"))
        _assert_error(response, status.HTTP_401_UNAUTHORIZED, "TOKEN_EXPIRED")

    def test_token_for_deleted_user(self, client, agency):
        token = create_access_token(user_id="gone", user_type="ESCORT")
        response = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(f"Bearer {token}"))
        _assert_error(response, status.HTTP_401_UNAUTHORIZED, "USER_NOT_FOUND")

    def test_banned_user(self, client, test_db, escort_user, agency, escort_token):
        escort_user.is_banned = True
        test_db.commit()
        response = client.post(f"{BASE_URL}/{agency.id}/join", json={}, headers=_auth(escort_token))
        _assert_error(response, status.HTTP_403_FORBIDDEN, "USER_BANNED")

    def test_agency_cannot_join(self, client, second_agency, agency_token):
        response = client.post(f"{BASE_URL}/{second_agency.id}/join", json={}, headers=_auth(agency_token))
        _assert_error(response, status.HTTP_403_FORBIDDEN, "INSUFFICIENT_PERMISSIONS")

    def test_escort_cannot_verify(self, client, escort, escort_token):
        response = client.post(f"{BASE_URL}/escorts/{escort.id}/verify", json={}, headers=_auth(escort_token))
        _assert_error(response, status.HTTP_403_FORBIDDEN, "INSUFFICIENT_PERMISSIONS")

    def test_client_cannot_list_escorts(self, client, client_token):
        response = client.get(f"{BASE_URL}/escorts", headers=_auth(client_token))
        _assert_error(response, status.HTTP_403_FORBIDDEN, "INSUFFICIENT_PERMISSIONS")

    def test_response_carries_request_id(self, client, client_token):
        response = client.get(
            f"{BASE_URL}/verification-pricing",
            headers={**_auth(client_token), "X-Request-ID": "req-123"},
        )
        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Response-Time" in response.headers
