"""
HTTP tests for invitation tokens, sign-up and cohorts
"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError

from app.main import app
from app.api.v1.endpoints import cohorts as cohorts_endpoints
from app.api.v1.endpoints import tokens as tokens_endpoints
from app.core.exceptions import StoreUnavailable
from app.services.cohort_service import CohortService
from app.services.token_service import TokenService
from app.services.token_store import TokenStore


def api_client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.tokens
class TestIssueTokens:

    @pytest.mark.asyncio
    async def test_issue_requires_authentication(self, client, cohort):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": cohort.id}
            )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_trainee_cannot_issue(self, client, cohort, trainee_headers):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": cohort.id},
                headers=trainee_headers
            )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_issues_and_emails_token(self, client, cohort, admin_headers, notifier):
        cohort_id = cohort.id
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": cohort_id},
                headers=admin_headers
            )

        assert response.status_code == 201
        data = response.json()
        assert data["email_sent"] is True
        assert data["email_error"] is None

        token = data["token"]
        assert token["email"] == "alice@x.com"
        assert token["cohort_id"] == cohort_id
        assert token["is_used"] is False
        assert token["status"] == "active"
        assert token["signup_link"].endswith(f"/sign-up?token={token['token']}")

        assert len(notifier.sent) == 1
        assert notifier.sent[0]["to"] == "alice@x.com"
        assert token["signup_link"] in notifier.sent[0]["text_body"]

    @pytest.mark.asyncio
    async def test_email_failure_keeps_token(self, client, cohort, admin_headers, notifier):
        notifier.fail = True
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": cohort.id},
                headers=admin_headers
            )
            assert response.status_code == 201
            data = response.json()
            assert data["email_sent"] is False
            assert data["email_error"]

            check = await ac.get("/api/v1/tokens/verify", params={"token": data["token"]["token"]})

        assert check.json() == {"valid": True, "email": "alice@x.com"}

    @pytest.mark.asyncio
    async def test_issue_without_email(self, client, cohort, admin_headers, notifier):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": cohort.id, "send_email": False},
                headers=admin_headers
            )

        assert response.status_code == 201
        assert response.json()["email_sent"] is False
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_invited_address_kept_as_typed(self, client, cohort, admin_headers, notifier):
        async with api_client() as ac:
            issued = await ac.post(
                "/api/v1/tokens",
                json={"email": "Bob@Example.COM", "cohort_id": cohort.id, "send_email": False},
                headers=admin_headers
            )
            assert issued.status_code == 201
            token = issued.json()["token"]
            assert token["email"] == "Bob@Example.COM"

            sign_up = await ac.post(
                "/api/v1/auth/sign-up",
                json={
                    "email": "Bob@Example.COM",
                    "password": "Secret123",
                    "display_name": "Bob Jones",
                    "token": token["token"]
                }
            )
            login = await ac.post(
                "/api/v1/auth/login",
                json={"email": "Bob@Example.COM", "password": "Secret123"}
            )

        assert sign_up.status_code == 201
        assert sign_up.json()["account"]["email"] == "Bob@Example.COM"
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_malformed_email_rejected(self, client, cohort, admin_headers, notifier):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "not-an-email", "cohort_id": cohort.id},
                headers=admin_headers
            )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_cohort_rejected(self, client, admin_headers, notifier):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": 9999},
                headers=admin_headers
            )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "validation_error"
        assert detail["field"] == "cohort_id"


@pytest.mark.tokens
class TestVerifyEndpoint:

    @pytest.mark.asyncio
    async def test_valid_token_reveals_only_email(self, client, alice_token):
        secret = alice_token.token
        async with api_client() as ac:
            response = await ac.get("/api/v1/tokens/verify", params={"token": secret})

        assert response.status_code == 200
        assert response.json() == {"valid": True, "email": "alice@x.com"}

    @pytest.mark.asyncio
    async def test_invalid_tokens_are_indistinguishable(self, client, db_session, cohort, token_service):
        used = await token_service.issue_token(db_session, "bob@x.com", cohort.id)
        await token_service.mark_used(db_session, used.token)
        past = TokenService(clock=lambda: datetime.utcnow() - timedelta(days=8))
        expired = await past.issue_token(db_session, "carol@x.com", cohort.id)

        async with api_client() as ac:
            responses = [
                await ac.get("/api/v1/tokens/verify", params={"token": secret})
                for secret in (used.token, expired.token, "no-such-token")
            ]

        for response in responses:
            assert response.status_code == 200
            assert response.json() == {"valid": False}

    @pytest.mark.asyncio
    async def test_missing_token_parameter(self, client):
        async with api_client() as ac:
            response = await ac.get("/api/v1/tokens/verify")

        assert response.status_code == 400


@pytest.mark.tokens
class TestStaffTokenManagement:

    @pytest.mark.asyncio
    async def test_list_tokens_by_status(self, client, db_session, cohort, token_service, admin_headers):
        active = await token_service.issue_token(db_session, "alice@x.com", cohort.id)
        used = await token_service.issue_token(db_session, "bob@x.com", cohort.id)
        active_id, used_id = active.id, used.id
        await token_service.mark_used(db_session, used.token)

        async with api_client() as ac:
            everything = await ac.get("/api/v1/tokens", headers=admin_headers)
            only_used = await ac.get("/api/v1/tokens", params={"status": "used"}, headers=admin_headers)

        assert everything.status_code == 200
        assert {t["id"] for t in everything.json()} == {active_id, used_id}
        assert [t["id"] for t in only_used.json()] == [used_id]
        assert only_used.json()[0]["status"] == "used"

    @pytest.mark.asyncio
    async def test_trainee_cannot_list_tokens(self, client, trainee_headers):
        async with api_client() as ac:
            response = await ac.get("/api/v1/tokens", headers=trainee_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_resend_active_token(self, client, alice_token, admin_headers, notifier):
        token_id = alice_token.id
        async with api_client() as ac:
            response = await ac.post(f"/api/v1/tokens/{token_id}/send", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["email_sent"] is True
        assert notifier.sent[0]["to"] == "alice@x.com"

    @pytest.mark.asyncio
    async def test_resend_used_token_rejected(self, client, db_session, token_service, alice_token, admin_headers, notifier):
        token_id = alice_token.id
        await token_service.mark_used(db_session, alice_token.token)

        async with api_client() as ac:
            response = await ac.post(f"/api/v1/tokens/{token_id}/send", headers=admin_headers)

        assert response.status_code == 409
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_resend_unknown_token(self, client, admin_headers, notifier):
        async with api_client() as ac:
            response = await ac.post("/api/v1/tokens/does-not-exist/send", headers=admin_headers)

        assert response.status_code == 404


@pytest.mark.auth
class TestSignUpFlow:

    @pytest.mark.asyncio
    async def test_sign_up_then_sign_in(self, client, cohort, alice_token):
        secret = alice_token.token
        cohort_id = cohort.id

        async with api_client() as ac:
            sign_up = await ac.post(
                "/api/v1/auth/sign-up",
                json={
                    "email": "alice@x.com",
                    "password": "Secret123",
                    "display_name": "Alice Smith",
                    "token": secret
                }
            )
            assert sign_up.status_code == 201
            data = sign_up.json()
            assert data["redirect_to"] == "/sign-in"
            assert data["account"]["firstname"] == "Alice"
            assert data["account"]["lastname"] == "Smith"
            assert data["account"]["cohort_id"] == cohort_id
            assert data["account"]["role"] == "trainee"

            check = await ac.get("/api/v1/tokens/verify", params={"token": secret})
            assert check.json() == {"valid": False}

            login = await ac.post(
                "/api/v1/auth/login",
                json={"email": "alice@x.com", "password": "Secret123"}
            )
            assert login.status_code == 200
            access_token = login.json()["access_token"]

            me = await ac.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {access_token}"})

        assert me.status_code == 200
        assert me.json()["name"] == "Alice Smith"
        assert me.json()["cohort_id"] == cohort_id

    @pytest.mark.asyncio
    async def test_sign_up_twice_rejected(self, client, alice_token):
        payload = {
            "email": "alice@x.com",
            "password": "Secret123",
            "display_name": "Alice Smith",
            "token": alice_token.token
        }
        async with api_client() as ac:
            first = await ac.post("/api/v1/auth/sign-up", json=payload)
            second = await ac.post("/api/v1/auth/sign-up", json=payload)

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["detail"]["code"] == "invalid_invitation"

    @pytest.mark.asyncio
    async def test_sign_up_with_other_email_rejected(self, client, alice_token):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/auth/sign-up",
                json={
                    "email": "eve@x.com",
                    "password": "Secret123",
                    "display_name": "Eve",
                    "token": alice_token.token
                }
            )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "invalid_invitation"
        assert detail["message"] == "email does not match invitation"

    @pytest.mark.asyncio
    async def test_sign_up_missing_field(self, client, alice_token):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/auth/sign-up",
                json={
                    "email": "alice@x.com",
                    "password": "Secret123",
                    "token": alice_token.token
                }
            )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "validation_error"
        assert detail["field"] == "display_name"

    @pytest.mark.asyncio
    async def test_sign_up_weak_password(self, client, alice_token):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/auth/sign-up",
                json={
                    "email": "alice@x.com",
                    "password": "short",
                    "display_name": "Alice Smith",
                    "token": alice_token.token
                }
            )

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "registration_failed"

    @pytest.mark.asyncio
    async def test_login_invalid_password(self, client, trainee_user):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/auth/login",
                json={"email": "trainee@example.com", "password": "WrongPassword1"}
            )

        assert response.status_code == 401


class TestCohorts:

    @pytest.mark.asyncio
    async def test_list_cohorts(self, client, cohort, admin_headers):
        async with api_client() as ac:
            response = await ac.get("/api/v1/cohorts", headers=admin_headers)

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Batch 12"]

    @pytest.mark.asyncio
    async def test_admin_creates_cohort(self, client, admin_headers):
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/cohorts",
                json={"name": "Batch 13", "type": "part-time"},
                headers=admin_headers
            )

        assert response.status_code == 201
        assert response.json()["name"] == "Batch 13"
        assert response.json()["type"] == "part-time"

    @pytest.mark.asyncio
    async def test_trainee_cannot_list_cohorts(self, client, trainee_headers):
        async with api_client() as ac:
            response = await ac.get("/api/v1/cohorts", headers=trainee_headers)

        assert response.status_code == 403


class UnreachableSession:
    """Session whose database connection is gone"""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


class UnreachableCohortService(CohortService):

    async def get_cohort(self, db, cohort_id):
        raise StoreUnavailable("Store unavailable")

    async def list_cohorts(self, db):
        raise StoreUnavailable("Store unavailable")


class TestStoreOutage:

    @pytest.mark.asyncio
    async def test_cohort_lookup_maps_driver_errors(self):
        with pytest.raises(StoreUnavailable):
            await CohortService().get_cohort(UnreachableSession(), 1)

    @pytest.mark.asyncio
    async def test_token_lookup_maps_driver_errors(self):
        with pytest.raises(StoreUnavailable):
            await TokenStore().get_by_token(UnreachableSession(), "anything")

    @pytest.mark.asyncio
    async def test_issue_during_outage_is_503(self, client, admin_headers, notifier, monkeypatch):
        monkeypatch.setattr(tokens_endpoints, "cohort_service", UnreachableCohortService())
        async with api_client() as ac:
            response = await ac.post(
                "/api/v1/tokens",
                json={"email": "alice@x.com", "cohort_id": 1},
                headers=admin_headers
            )

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "store_unavailable"
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_list_cohorts_during_outage_is_503(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(cohorts_endpoints, "cohort_service", UnreachableCohortService())
        async with api_client() as ac:
            response = await ac.get("/api/v1/cohorts", headers=admin_headers)

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "store_unavailable"
