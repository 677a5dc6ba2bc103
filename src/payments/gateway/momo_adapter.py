"""MTN Mobile Money (Collection API) gateway adapter.

Credentials follow MoMo's two-legged model: an API user and API key are
provisioned once (created through the provisioning endpoints in sandbox, read
from the environment in production) and exchanged for a short-lived bearer
token at ``/collection/token/``. The token is cached and refreshed five
minutes before it expires.

Provisioning never blocks process start: ``initialize()`` records its error
and the next call that needs the gateway retries it.
"""

import hashlib
import hmac
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlparse
from uuid import uuid4

import httpx
import structlog

from payments.gateway.port import (
    AccountBalance,
    GatewayError,
    GatewayStatus,
    PaymentGateway,
    TransactionStatus,
)
from payments.gateway.token import AccessToken, TokenCache

logger = structlog.get_logger(__name__)

SANDBOX_BASE_URL = "https://sandbox.momodeveloper.mtn.com"


@dataclass(frozen=True)
class MomoSettings:
    subscription_key: str
    callback_url: str
    base_url: str = SANDBOX_BASE_URL
    environment: str = "sandbox"
    api_user: str | None = None
    api_key: str | None = None
    callback_secret: str | None = None
    timeout: float = 30.0
    status_query_attempts: int = 3
    retry_backoff_seconds: float = 0.5

    @property
    def is_sandbox(self) -> bool:
        return self.environment == "sandbox"

    @property
    def callback_host(self) -> str:
        return urlparse(self.callback_url).hostname or self.callback_url

    @classmethod
    def from_env(cls, environ=None) -> "MomoSettings":
        env = os.environ if environ is None else environ

        subscription_key = env.get("MTN_MOMO_COLLECTION_SUBSCRIPTION_KEY")
        if not subscription_key:
            raise ValueError("MTN_MOMO_COLLECTION_SUBSCRIPTION_KEY is not set")
        callback_url = env.get("MTN_MOMO_CALLBACK_URL")
        if not callback_url:
            raise ValueError("MTN_MOMO_CALLBACK_URL is not set")

        return cls(
            subscription_key=subscription_key,
            callback_url=callback_url,
            base_url=env.get("MTN_MOMO_BASE_URL", SANDBOX_BASE_URL),
            environment=env.get("MTN_MOMO_ENVIRONMENT", "sandbox"),
            api_user=env.get("MTN_MOMO_API_USER") or None,
            api_key=env.get("MTN_MOMO_API_KEY") or None,
            callback_secret=env.get("MTN_MOMO_CALLBACK_SECRET") or None,
        )


def format_amount(amount: float) -> str:
    """MoMo expects amounts as strings without a trailing ``.0``."""
    text = f"{float(amount):.2f}"
    return text.rstrip("0").rstrip(".")


def _reason_text(reason) -> str | None:
    if reason is None:
        return None
    if isinstance(reason, dict):
        return reason.get("message") or reason.get("code")
    return str(reason)


class MomoGateway(PaymentGateway):
    """Collection API client over httpx."""

    name = "MTN_MOMO"

    def __init__(
        self,
        settings: MomoSettings,
        client: httpx.Client | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.settings = settings
        self._client = client or httpx.Client(base_url=settings.base_url, timeout=settings.timeout)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sleep = sleep or time.sleep
        self._init_lock = threading.Lock()
        self._init_error: str | None = None
        self._credentials: tuple[str, str] | None = None
        if settings.api_user and settings.api_key:
            self._credentials = (settings.api_user, settings.api_key)
        # Reused across provisioning retries so a re-attempt targets the same API user
        self._pending_api_user = str(uuid4())
        self.tokens = TokenCache(self._request_token, clock=self._clock)

    # -------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------
    def ready(self) -> bool:
        return self._credentials is not None

    @property
    def initialization_error(self) -> str | None:
        return self._init_error

    def initialize(self) -> bool:
        """Obtain API credentials. Safe to call repeatedly; never raises."""
        with self._init_lock:
            if self._credentials is not None:
                return True
            try:
                if not self.settings.is_sandbox:
                    raise GatewayError(
                        "MTN_MOMO_API_USER and MTN_MOMO_API_KEY are required outside sandbox",
                        kind="configuration",
                    )
                self._credentials = self._provision_sandbox_user(self._pending_api_user)
            except GatewayError as exc:
                self._init_error = str(exc)
                logger.warning("MoMo gateway initialization failed", error=str(exc), kind=exc.kind)
                return False

            self._init_error = None
            logger.info("MoMo gateway initialized", environment=self.settings.environment)
            return True

    def _ensure_ready(self) -> None:
        if not self.ready() and not self.initialize():
            raise GatewayError(f"Payment gateway is not initialized: {self._init_error}", kind="not_initialized")

    def _provision_sandbox_user(self, api_user: str) -> tuple[str, str]:
        # 409 means the user exists from an earlier, partially failed attempt
        self._send(
            "POST",
            "/v1_0/apiuser",
            headers={"X-Reference-Id": api_user},
            json={"providerCallbackHost": self.settings.callback_host},
            accept=(201, 409),
        )
        self._send("GET", f"/v1_0/apiuser/{api_user}")
        data = self._json(self._send("POST", f"/v1_0/apiuser/{api_user}/apikey", accept=(201,)))
        api_key = data.get("apiKey")
        if not api_key:
            raise GatewayError("Gateway returned no API key", kind="malformed")
        return api_user, api_key

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    def _request_token(self) -> AccessToken:
        api_user, api_key = self._credentials
        data = self._json(self._send("POST", "/collection/token/", auth=(api_user, api_key)))
        if "access_token" not in data:
            raise GatewayError("Gateway returned no access token", kind="malformed")

        expires_in = int(data.get("expires_in", 3600))
        logger.info("MoMo access token refreshed", expires_in=expires_in)
        return AccessToken(
            value=data["access_token"],
            token_type=data.get("token_type", "access_token"),
            expires_at=self._clock() + timedelta(seconds=expires_in),
        )

    def _send(self, method, path, *, headers=None, bearer=False, accept=None, **kwargs) -> httpx.Response:
        correlation_id = str(uuid4())
        request_headers = {
            "Ocp-Apim-Subscription-Key": self.settings.subscription_key,
            "X-Correlation-ID": correlation_id,
            **(headers or {}),
        }
        if bearer:
            request_headers["Authorization"] = f"Bearer {self.tokens.get()}"
            request_headers["X-Target-Environment"] = self.settings.environment

        try:
            response = self._client.request(method, path, headers=request_headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise GatewayError("Payment gateway timed out", kind="timeout", retryable=True) from exc
        except httpx.TransportError as exc:
            raise GatewayError(f"Payment gateway unreachable: {exc}", kind="transport", retryable=True) from exc

        logger.debug(
            "MoMo request",
            method=method,
            path=path,
            status_code=response.status_code,
            correlation_id=correlation_id,
        )

        if accept is not None and response.status_code in accept:
            return response
        if response.status_code == 401 and bearer:
            self.tokens.invalidate()
            raise GatewayError(
                "Payment gateway rejected the access token", kind="auth", status_code=401, retryable=True
            )
        if response.status_code == 404:
            raise GatewayError(f"Not found at gateway: {path}", kind="not_found", status_code=404)
        if response.status_code >= 500:
            raise GatewayError(
                f"Payment gateway error {response.status_code}",
                kind="transport",
                status_code=response.status_code,
                retryable=True,
            )
        if response.status_code >= 400:
            raise GatewayError(
                f"Payment gateway refused the request ({response.status_code}): {response.text[:200]}",
                kind="auth" if response.status_code in (401, 403) else "rejected",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned invalid JSON", kind="malformed") from exc
        if not isinstance(data, dict):
            raise GatewayError("Payment gateway returned an unexpected payload", kind="malformed")
        return data

    # -------------------------------------------------------------------
    # Collection operations
    # -------------------------------------------------------------------
    def initiate(
        self,
        external_id: str,
        amount: float,
        currency: str,
        payer_phone: str,
        payer_message: str = "",
        payee_note: str = "",
    ) -> str:
        self._ensure_ready()
        reference_id = str(uuid4())

        self._send(
            "POST",
            "/collection/v1_0/requesttopay",
            headers={"X-Reference-Id": reference_id},
            bearer=True,
            json={
                "amount": format_amount(amount),
                "currency": currency,
                "externalId": str(external_id),
                "payer": {"partyIdType": "MSISDN", "partyId": payer_phone},
                "payerMessage": payer_message,
                "payeeNote": payee_note,
            },
        )
        logger.info("MoMo payment requested", reference_id=reference_id, external_id=str(external_id))
        return reference_id

    def query_status(self, reference_id: str) -> TransactionStatus:
        self._ensure_ready()

        attempts = max(self.settings.status_query_attempts, 1)
        for attempt in range(1, attempts + 1):
            try:
                response = self._send("GET", f"/collection/v1_0/requesttopay/{reference_id}", bearer=True)
                break
            except GatewayError as exc:
                if not exc.retryable or attempt == attempts:
                    raise
                delay = self.settings.retry_backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "MoMo status query failed, retrying",
                    reference_id=reference_id,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
                self._sleep(delay)

        data = self._json(response)
        status = data.get("status")
        if status not in {s.value for s in GatewayStatus}:
            raise GatewayError(f"Unknown payment status from gateway: {status}", kind="malformed")

        return TransactionStatus(
            reference_id=reference_id,
            status=status,
            reason=_reason_text(data.get("reason")),
            financial_transaction_id=data.get("financialTransactionId"),
            external_id=data.get("externalId"),
            amount=data.get("amount"),
            currency=data.get("currency"),
        )

    def get_balance(self) -> AccountBalance:
        self._ensure_ready()
        data = self._json(self._send("GET", "/collection/v1_0/account/balance", bearer=True))
        return AccountBalance(
            available_balance=str(data.get("availableBalance", "0")),
            currency=data.get("currency", ""),
        )

    def health_check(self) -> dict:
        if not self.ready():
            return {"status": "not_initialized", "error": self._init_error}
        try:
            self.tokens.get()
        except GatewayError as exc:
            return {"status": "unhealthy", "error": str(exc)}
        return {"status": "healthy", "environment": self.settings.environment}

    def verify_callback_signature(self, payload: bytes, signature: str | None) -> bool:
        """HMAC-SHA256 of the raw body, when a callback secret is configured.

        MoMo itself does not sign callbacks; without a secret every callback
        is accepted and reconciliation re-checks state against the gateway.
        """
        secret = self.settings.callback_secret
        if not secret:
            return True
        expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    def close(self) -> None:
        self._client.close()
