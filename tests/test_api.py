import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from unionvote.main import create_app
from unionvote.routes.dependencies import get_otp_service
from unionvote.services.otp_service import OTPService

from conftest import ADMIN_PHONE, FIXED_CODE, MEMBER_PHONE, SequenceRandom


@pytest.fixture
def client(configs, repository, transport, clock):
    app = create_app(configs=configs, repository=repository, transport=transport)

    def deterministic_otp_service(request: Request) -> OTPService:
        return OTPService(repository, transport, configs=configs, rng=SequenceRandom(FIXED_CODE), clock=clock)
    app.dependency_overrides[get_otp_service] = deterministic_otp_service

    with TestClient(app) as test_client:
        yield test_client


def _login(client, clock, phone_number=MEMBER_PHONE):
    assert client.post("/auth/request-otp", json={"phone_number": phone_number}).status_code == 200
    response = client.post("/auth/validate-otp", json={"phone_number": phone_number, "otp_code": str(FIXED_CODE)})
    assert response.status_code == 200
    clock.advance(121)
    body = response.json()
    return {"Authorization": f"Bearer {body['session_token']}"}, body["identity"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["store"] == "database"


def test_request_otp(client, transport):
    response = client.post("/auth/request-otp", json={"phone_number": "+989121234567"})

    assert response.status_code == 200
    body = response.json()
    assert body["phone_number"] == MEMBER_PHONE
    assert body["expires_in"] == 300
    assert body["resend_after"] == 120
    assert "4821" not in response.text
    assert transport.messages[0][0] == MEMBER_PHONE


def test_request_otp_cooldown(client, clock):
    client.post("/auth/request-otp", json={"phone_number": MEMBER_PHONE})
    clock.advance(20)

    response = client.post("/auth/request-otp", json={"phone_number": MEMBER_PHONE})

    assert response.status_code == 429
    assert response.json()["retry_after"] == 100
    assert response.headers["Retry-After"] == "100"


def test_request_otp_delivery_failure(client, transport):
    transport.fail = True

    response = client.post("/auth/request-otp", json={"phone_number": MEMBER_PHONE})

    assert response.status_code == 502
    assert response.json()["error"] == "DeliveryFailed"


def test_request_otp_invalid_phone(client):
    response = client.post("/auth/request-otp", json={"phone_number": "12345"})

    assert response.status_code == 422
    assert response.json()["success"] is False


def test_validate_otp_wrong_code(client):
    client.post("/auth/request-otp", json={"phone_number": MEMBER_PHONE})

    response = client.post("/auth/validate-otp", json={"phone_number": MEMBER_PHONE, "otp_code": "1111"})

    assert response.status_code == 401
    assert response.json()["error"] == "CodeInvalidOrExpired"


def test_code_cannot_be_replayed(client):
    client.post("/auth/request-otp", json={"phone_number": MEMBER_PHONE})
    payload = {"phone_number": MEMBER_PHONE, "otp_code": "4821"}

    assert client.post("/auth/validate-otp", json=payload).status_code == 200
    assert client.post("/auth/validate-otp", json=payload).status_code == 401


def test_session_round_trip(client, clock):
    headers, identity = _login(client, clock)

    me = client.get("/session/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["identity"]["id"] == identity["id"]
    assert me.json()["identity"]["role"] == "member"
    assert me.json()["identity"]["approval_state"] is False

    assert client.post("/session/logout", headers=headers).status_code == 200
    assert client.post("/session/logout", headers=headers).status_code == 200
    assert client.get("/session/me", headers=headers).status_code == 401


def test_protected_paths_need_token(client):
    assert client.get("/votes/status").status_code == 401
    assert client.get("/session/me", headers={"Authorization": "Bearer short"}).status_code == 401
    unknown = client.get("/votes/status", headers={"Authorization": "Bearer " + "x" * 43})
    assert unknown.status_code == 401


def test_vote_flow(client, clock):
    headers, identity = _login(client, clock)

    status = client.get("/votes/status", headers=headers).json()
    assert status == {"voter_id": identity["id"], "has_voted": False, "candidate_id": None}

    cast = client.post("/votes", json={"candidate_id": "candidate-7"}, headers=headers)
    assert cast.status_code == 201
    assert cast.json()["ballot"]["candidate_id"] == "candidate-7"

    again = client.post("/votes", json={"candidate_id": "candidate-9"}, headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "AlreadyVoted"

    mine = client.get("/votes/mine", headers=headers).json()
    assert mine["has_voted"] is True
    assert mine["candidate_id"] == "candidate-7"

    results = client.get("/votes/results", headers=headers).json()
    assert results["total_votes"] == 1
    assert results["entries"] == [{"candidate_id": "candidate-7", "votes": 1, "percentage": 100, "is_leader": True}]

    stats = client.get("/votes/stats", headers=headers).json()
    assert stats == {"total_votes": 1, "participation_rate": 0.0}


def test_member_approval_requires_approved_admin(client, clock):
    member_headers, member = _login(client, clock)

    denied = client.post(f"/members/{member['id']}/approve", headers=member_headers)
    assert denied.status_code == 403

    admin_headers, admin = _login(client, clock, ADMIN_PHONE)
    assert admin["role"] == "admin"
    assert admin["approval_state"] is True

    approved = client.post(f"/members/{member['id']}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["identity"]["approval_state"] is True

    missing = client.post(f"/members/{'0' * 32}/approve", headers=admin_headers)
    assert missing.status_code == 404

    client.post("/votes", json={"candidate_id": "candidate-1"}, headers=member_headers)
    stats = client.get("/votes/stats", headers=admin_headers).json()
    assert stats == {"total_votes": 1, "participation_rate": 100.0}
