"""End-to-end tests through the HTTP API."""

import json

from conftest import PASSWORD, auth_headers, make_quote, make_service
from fixhub.config import PAYMONGO_WEBHOOK_SECRET
from fixhub.models import Payment, ServiceStatus
from fixhub.webhook_security import PAYMONGO_SIGNATURE_HEADER, create_paymongo_signature

SERVICE_PAYLOAD = {
    "name": "Assemble wardrobe",
    "categories": ["furniture assembly"],
    "description": "Flat-pack wardrobe, two doors",
    "amount": 60,
    "availableFromDate": "2026-11-20",
    "availableToDate": "2026-11-21",
    "availableFromTime": "10:00",
    "availableToTime": "16:00",
}


def _paid_event(external_id, payment_id=None, event_type="checkout_session.payment.paid") -> bytes:
    metadata = {"payment_id": str(payment_id)} if payment_id is not None else {}
    event = {
        "data": {
            "id": "evt_1",
            "attributes": {
                "type": event_type,
                "data": {"id": external_id, "attributes": {"metadata": metadata}},
            },
        }
    }
    return json.dumps(event).encode()


def _post_webhook(client, body: bytes, secret=PAYMONGO_WEBHOOK_SECRET):
    return client.post(
        "/payments/webhook",
        content=body,
        headers={
            PAYMONGO_SIGNATURE_HEADER: create_paymongo_signature(secret, body),
            "Content-Type": "application/json",
        },
    )


class TestHealth:
    def test_root_and_health(self, client) -> None:
        assert client.get("/").status_code == 200
        assert client.get("/health").json() == {"status": "healthy"}


class TestAuthFlow:
    def test_signup_then_unverified_signin(self, client) -> None:
        response = client.post(
            "/auth/signup",
            json={
                "email": "fresh@example.com",
                "password": PASSWORD,
                "firstName": "Fresh",
                "lastName": "Owner",
                "role": "owner",
            },
        )
        assert response.status_code == 201

        response = client.post("/auth/signin", json={"email": "fresh@example.com", "password": PASSWORD})
        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "not_authenticated"

    def test_signin_and_logout(self, client, owner) -> None:
        response = client.post("/auth/signin", json={"email": owner.email, "password": PASSWORD})
        assert response.status_code == 200
        headers = {"Authorization": f"Bearer {response.json()['token']}"}

        me = client.get("/users/current-user", headers=headers)
        assert me.status_code == 200
        assert me.json()["email"] == owner.email

        assert client.post("/auth/logout", headers=headers).status_code == 200
        stale = client.get("/users/current-user", headers=headers)
        assert stale.status_code == 401
        assert stale.json()["error"]["kind"] == "not_authenticated"

    def test_missing_token(self, client) -> None:
        response = client.get("/users/current-user")
        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "not_authenticated"

    def test_non_admin_blocked_from_admin_routes(self, client, db, owner) -> None:
        response = client.get("/admin/get-all-services", headers=auth_headers(db, owner))
        assert response.status_code == 403


class TestServiceEndpoints:
    def test_create_and_list(self, client, db, owner) -> None:
        headers = auth_headers(db, owner)
        created = client.post("/services/create-service", json=SERVICE_PAYLOAD, headers=headers)
        assert created.status_code == 201
        body = created.json()
        assert body["status"] == "pending"
        assert body["paid"] is False

        listed = client.get("/services/user-services", headers=headers)
        assert [s["id"] for s in listed.json()["services"]] == [body["id"]]

    def test_validation_error_envelope(self, client, db, owner) -> None:
        payload = dict(SERVICE_PAYLOAD, availableFromTime="25:00")
        response = client.post("/services/create-service", json=payload, headers=auth_headers(db, owner))
        assert response.status_code == 422
        assert response.json()["error"]["kind"] == "invalid_input"

    def test_non_finite_amount_is_invalid(self, client, db, owner) -> None:
        body = json.dumps(dict(SERVICE_PAYLOAD, amount=float("inf")))
        assert "Infinity" in body
        response = client.post(
            "/services/create-service",
            content=body,
            headers={**auth_headers(db, owner), "Content-Type": "application/json"},
        )
        assert response.status_code == 422
        assert response.json()["error"]["kind"] == "invalid_input"

    def test_cancel_completed_is_conflict(self, client, db, owner) -> None:
        service = make_service(db, owner, status=ServiceStatus.COMPLETED, paid=True)
        response = client.post(f"/services/cancel-service/{service.id}", headers=auth_headers(db, owner))
        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "invalid_transition"


class TestNegotiationOverHttp:
    def test_quote_approve_pay_resume(self, client, db, owner, contractor, service, gateway) -> None:
        owner_headers = auth_headers(db, owner)
        contractor_headers = auth_headers(db, contractor)

        quote = client.post(
            f"/contractor/create-quote/{service.id}",
            json={"description": "Install new trap", "estimatedCost": 100},
            headers=contractor_headers,
        )
        assert quote.status_code == 201
        quote_id = quote.json()["id"]
        assert quote.json()["approval_state"] == "pending"

        listed = client.get(f"/quotes/service-quotes/{service.id}", headers=owner_headers)
        assert [q["id"] for q in listed.json()["quotes"]] == [quote_id]

        approval = client.post(f"/services/approve-quote/{quote_id}", headers=owner_headers)
        assert approval.status_code == 202
        checkout = approval.json()
        assert checkout["status"] == "payment_required"
        assert checkout["checkoutUrl"].startswith("https://checkout.test/")

        settled = _post_webhook(client, _paid_event(checkout["externalId"]))
        assert settled.status_code == 200
        assert settled.json()["matched"] is True
        assert settled.json()["alreadySettled"] is False

        replay = _post_webhook(client, _paid_event(checkout["externalId"]))
        assert replay.json()["alreadySettled"] is True

        services = client.get("/services/user-services", headers=owner_headers).json()["services"]
        assert services[0]["status"] == "ongoing"
        assert services[0]["amount"] == 100
        assert services[0]["contractor_id"] == contractor.id

        notifications = client.get("/notifications/all-notification", headers=contractor_headers)
        subjects = {n["subject"] for n in notifications.json()["notifications"]}
        assert "Quote approved" in subjects

    def test_non_finite_quote_cost_is_invalid(self, client, db, contractor, service) -> None:
        response = client.post(
            f"/contractor/create-quote/{service.id}",
            content='{"description": "Install new trap", "estimatedCost": NaN}',
            headers={**auth_headers(db, contractor), "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_input"

    def test_paid_service_approval_is_immediate(self, client, db, owner, contractor) -> None:
        service = make_service(db, owner, paid=True)
        quote = make_quote(db, contractor, service)
        response = client.post(f"/services/approve-quote/{quote.id}", headers=auth_headers(db, owner))
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "approved"
        assert body["quote"]["approval_state"] == "approved"
        assert body["service"]["status"] == "ongoing"

    def test_self_approval_rejected(self, client, db, owner, service) -> None:
        quote = make_quote(db, owner, service)
        response = client.post(f"/services/approve-quote/{quote.id}", headers=auth_headers(db, owner))
        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "self_approval_forbidden"

    def test_gateway_failure_surfaces_as_retryable(
        self, client, db, owner, contractor, service, failing_gateway
    ) -> None:
        quote = make_quote(db, contractor, service)
        response = client.post(f"/services/approve-quote/{quote.id}", headers=auth_headers(db, owner))
        assert response.status_code == 504
        assert response.json()["error"]["retryable"] is True
        assert db.query(Payment).count() == 0

    def test_make_payment_returns_checkout(self, client, db, owner, service) -> None:
        response = client.post(f"/payments/make-payment/{service.id}", headers=auth_headers(db, owner))
        assert response.status_code == 200
        assert response.json()["status"] == "payment_required"


class TestWebhook:
    def test_bad_signature_rejected(self, client) -> None:
        body = _paid_event("cs_test_1")
        response = _post_webhook(client, body, secret="not-the-secret")
        assert response.status_code == 401

    def test_other_events_ignored(self, client) -> None:
        body = _paid_event("cs_test_1", event_type="payment.failed")
        response = _post_webhook(client, body)
        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_unknown_checkout_acknowledged(self, client) -> None:
        response = _post_webhook(client, _paid_event("cs_nobody"))
        assert response.status_code == 200
        assert response.json()["matched"] is False

    def test_metadata_payment_id_fallback(self, client, db, owner, service) -> None:
        checkout = client.post(
            f"/payments/make-payment/{service.id}", headers=auth_headers(db, owner)
        ).json()
        response = _post_webhook(client, _paid_event("cs_rotated", payment_id=checkout["paymentId"]))
        assert response.json()["paymentId"] == checkout["paymentId"]

    def test_malformed_payload(self, client) -> None:
        response = _post_webhook(client, b"not json")
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "invalid_input"
