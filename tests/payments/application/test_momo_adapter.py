"""Tests for the MTN MoMo Collection adapter against a scripted sandbox."""

import base64
import hashlib
import hmac
from dataclasses import replace
from datetime import timedelta

import httpx
import pytest
from payments.gateway.momo_adapter import MomoSettings, format_amount
from payments.gateway.port import GatewayError


def _initiate(gateway, **overrides):
    kwargs = {
        "external_id": "pay-1",
        "amount": 4500.0,
        "currency": "XAF",
        "payer_phone": "242061234567",
        "payer_message": "Payment for order ord-1",
        "payee_note": "Payment at Chez Mama",
    }
    return gateway.initiate(**{**kwargs, **overrides})


class TestSettings:
    def test_from_env(self):
        settings = MomoSettings.from_env(
            {
                "MTN_MOMO_COLLECTION_SUBSCRIPTION_KEY": "sub",
                "MTN_MOMO_CALLBACK_URL": "https://api.example.com/webhooks/mtn_momo",
                "MTN_MOMO_API_USER": "user",
                "MTN_MOMO_API_KEY": "key",
            }
        )
        assert settings.is_sandbox
        assert settings.callback_host == "api.example.com"
        assert settings.api_user == "user"

    def test_subscription_key_required(self):
        with pytest.raises(ValueError):
            MomoSettings.from_env({"MTN_MOMO_CALLBACK_URL": "https://x"})

    def test_callback_url_required(self):
        with pytest.raises(ValueError):
            MomoSettings.from_env({"MTN_MOMO_COLLECTION_SUBSCRIPTION_KEY": "sub"})

    @pytest.mark.parametrize(("amount", "text"), [(4500.0, "4500"), (4500.5, "4500.5"), (0.25, "0.25")])
    def test_format_amount(self, amount, text):
        assert format_amount(amount) == text


class TestInitiate:
    def test_request_to_pay(self, gateway, sandbox):
        reference_id = _initiate(gateway)

        [request] = sandbox.calls_to("/collection/v1_0/requesttopay", method="POST")
        assert request.headers["X-Reference-Id"] == reference_id
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.headers["X-Target-Environment"] == "sandbox"
        assert request.headers["Ocp-Apim-Subscription-Key"] == "sub-key"
        assert "X-Correlation-ID" in request.headers
        assert sandbox.body(request) == {
            "amount": "4500",
            "currency": "XAF",
            "externalId": "pay-1",
            "payer": {"partyIdType": "MSISDN", "partyId": "242061234567"},
            "payerMessage": "Payment for order ord-1",
            "payeeNote": "Payment at Chez Mama",
        }

    def test_token_request_uses_basic_auth(self, gateway, sandbox):
        _initiate(gateway)
        [token_request] = sandbox.calls_to("/collection/token/")
        expected = base64.b64encode(b"api-user:api-key").decode()
        assert token_request.headers["Authorization"] == f"Basic {expected}"

    def test_token_is_cached(self, gateway, sandbox):
        _initiate(gateway)
        _initiate(gateway)
        assert len(sandbox.calls_to("/collection/token/")) == 1

    def test_token_refreshed_near_expiry(self, gateway, sandbox, clock):
        _initiate(gateway)
        clock.now += timedelta(minutes=56)
        _initiate(gateway)
        assert len(sandbox.calls_to("/collection/token/")) == 2
        last = sandbox.calls_to("/collection/v1_0/requesttopay", method="POST")[-1]
        assert last.headers["Authorization"] == "Bearer token-2"

    def test_rejected_request(self, gateway, sandbox):
        sandbox.on("POST", "/collection/v1_0/requesttopay", httpx.Response(400, json={"code": "INVALID_CURRENCY"}))
        with pytest.raises(GatewayError) as exc:
            _initiate(gateway)
        assert exc.value.kind == "rejected"
        assert exc.value.status_code == 400
        assert not exc.value.retryable

    def test_expired_token_is_dropped(self, gateway, sandbox):
        sandbox.on("POST", "/collection/v1_0/requesttopay", httpx.Response(401), httpx.Response(202))
        with pytest.raises(GatewayError) as exc:
            _initiate(gateway)
        assert exc.value.kind == "auth"
        assert gateway.tokens.current is None

        _initiate(gateway)
        assert len(sandbox.calls_to("/collection/token/")) == 2

    def test_timeout(self, gateway, sandbox):
        sandbox.on("POST", "/collection/v1_0/requesttopay", httpx.ReadTimeout("slow"))
        with pytest.raises(GatewayError) as exc:
            _initiate(gateway)
        assert exc.value.kind == "timeout"
        assert exc.value.retryable


class TestQueryStatus:
    def test_successful(self, gateway, sandbox):
        sandbox.on(
            "GET",
            "/collection/v1_0/requesttopay/",
            httpx.Response(
                200,
                json={
                    "status": "SUCCESSFUL",
                    "financialTransactionId": "fin-42",
                    "externalId": "pay-1",
                    "amount": "4500",
                    "currency": "XAF",
                },
            ),
        )
        status = gateway.query_status("ref-1")
        assert status.status == "SUCCESSFUL"
        assert status.financial_transaction_id == "fin-42"
        assert status.external_id == "pay-1"

    def test_failure_reason_object(self, gateway, sandbox):
        sandbox.on(
            "GET",
            "/collection/v1_0/requesttopay/",
            httpx.Response(
                200, json={"status": "FAILED", "reason": {"code": "APPROVAL_REJECTED", "message": "Rejected"}}
            ),
        )
        assert gateway.query_status("ref-1").reason == "Rejected"

    def test_server_errors_are_retried_with_backoff(self, gateway, sandbox, sleeps):
        sandbox.on(
            "GET",
            "/collection/v1_0/requesttopay/",
            httpx.Response(503),
            httpx.Response(500),
            httpx.Response(200, json={"status": "PENDING"}),
        )
        assert gateway.query_status("ref-1").status == "PENDING"
        assert sleeps == [0.5, 1.0]

    def test_retries_are_bounded(self, gateway, sandbox, sleeps):
        sandbox.on("GET", "/collection/v1_0/requesttopay/", httpx.Response(503))
        with pytest.raises(GatewayError) as exc:
            gateway.query_status("ref-1")
        assert exc.value.status_code == 503
        assert len(sandbox.calls_to("/collection/v1_0/requesttopay/ref-1")) == 3
        assert len(sleeps) == 2

    def test_not_found_is_not_retried(self, gateway, sandbox, sleeps):
        sandbox.on("GET", "/collection/v1_0/requesttopay/", httpx.Response(404))
        with pytest.raises(GatewayError) as exc:
            gateway.query_status("ref-1")
        assert exc.value.kind == "not_found"
        assert sleeps == []

    def test_unknown_status_is_malformed(self, gateway, sandbox):
        sandbox.on("GET", "/collection/v1_0/requesttopay/", httpx.Response(200, json={"status": "ONGOING"}))
        with pytest.raises(GatewayError) as exc:
            gateway.query_status("ref-1")
        assert exc.value.kind == "malformed"


class TestSandboxProvisioning:
    @pytest.fixture()
    def unprovisioned(self, momo_settings):
        return replace(momo_settings, api_user=None, api_key=None)

    def test_initialize_provisions_api_user(self, make_gateway, unprovisioned, sandbox):
        gateway = make_gateway(unprovisioned)
        assert gateway.initialize() is True
        assert gateway.ready()

        [create] = sandbox.calls_to("/v1_0/apiuser", method="POST")[:1]
        assert sandbox.body(create) == {"providerCallbackHost": "api.example.com"}
        api_user = create.headers["X-Reference-Id"]
        assert sandbox.calls_to(f"/v1_0/apiuser/{api_user}/apikey", method="POST")

    def test_existing_api_user_is_reused(self, make_gateway, unprovisioned, sandbox):
        sandbox.on("POST", "/v1_0/apiuser", httpx.Response(409))
        gateway = make_gateway(unprovisioned)
        assert gateway.initialize() is True

    def test_failure_is_recorded_and_retried_on_use(self, make_gateway, unprovisioned, sandbox):
        sandbox.on("POST", "/v1_0/apiuser", httpx.Response(500), httpx.Response(201))
        gateway = make_gateway(unprovisioned)

        assert gateway.initialize() is False
        assert gateway.initialization_error
        assert gateway.health_check()["status"] == "not_initialized"

        _initiate(gateway)
        assert gateway.ready()
        creates = [r for r in sandbox.calls_to("/v1_0/apiuser", method="POST") if "X-Reference-Id" in r.headers]
        users = {r.headers["X-Reference-Id"] for r in creates}
        assert len(users) == 1

    def test_production_requires_credentials(self, make_gateway, unprovisioned, sandbox):
        gateway = make_gateway(replace(unprovisioned, environment="mtncongo"))
        assert gateway.initialize() is False
        with pytest.raises(GatewayError) as exc:
            _initiate(gateway)
        assert exc.value.kind == "not_initialized"
        assert sandbox.requests == []


class TestHealthAndBalance:
    def test_healthy(self, gateway):
        assert gateway.health_check() == {"status": "healthy", "environment": "sandbox"}

    def test_unhealthy_when_token_fails(self, gateway, sandbox):
        sandbox.on("POST", "/collection/token/", httpx.Response(500))
        assert gateway.health_check()["status"] == "unhealthy"

    def test_balance(self, gateway, sandbox):
        sandbox.on(
            "GET",
            "/collection/v1_0/account/balance",
            httpx.Response(200, json={"availableBalance": "125000", "currency": "XAF"}),
        )
        balance = gateway.get_balance()
        assert balance.available_balance == "125000"
        assert balance.currency == "XAF"


class TestCallbackSignature:
    def test_accepts_everything_without_secret(self, gateway):
        assert gateway.verify_callback_signature(b"{}", None) is True

    def test_hmac_with_secret(self, make_gateway, momo_settings):
        gateway = make_gateway(replace(momo_settings, callback_secret="s3cret"))
        body = b'{"referenceId": "ref-1"}'
        signature = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        assert gateway.verify_callback_signature(body, signature) is True
        assert gateway.verify_callback_signature(body, "forged") is False
        assert gateway.verify_callback_signature(body, None) is False
