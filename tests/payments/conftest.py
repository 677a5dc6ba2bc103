import json
from datetime import UTC, datetime

import httpx
import pytest

from payments.gateway.momo_adapter import MomoGateway, MomoSettings


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now


class MomoSandbox:
    """Scripted MoMo API behind an httpx.MockTransport.

    ``responses`` maps (method, path) to a list of responses consumed in
    order; the last one repeats. A path ending in "/" matches as a prefix.
    Unscripted provisioning, token and collection requests answer the way a
    healthy sandbox does. Every request is kept in ``requests``.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[tuple[str, str], list] = {}
        self.token_counter = 0

    def on(self, method, path, *responses):
        self.responses[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for (method, route), queued in self.responses.items():
            matches = path == route or (route.endswith("/") and path.startswith(route))
            if request.method == method and matches:
                response = queued.pop(0) if len(queued) > 1 else queued[0]
                if isinstance(response, Exception):
                    raise response
                return response

        if path == "/collection/token/":
            self.token_counter += 1
            return httpx.Response(
                200,
                json={"access_token": f"token-{self.token_counter}", "token_type": "access_token", "expires_in": 3600},
            )
        if request.method == "POST" and path == "/v1_0/apiuser":
            return httpx.Response(201)
        if request.method == "GET" and path.startswith("/v1_0/apiuser/"):
            return httpx.Response(200, json={"providerCallbackHost": "api.example.com", "targetEnvironment": "sandbox"})
        if request.method == "POST" and path.endswith("/apikey"):
            return httpx.Response(201, json={"apiKey": "provisioned-key"})
        if request.method == "POST" and path == "/collection/v1_0/requesttopay":
            return httpx.Response(202)
        if request.method == "GET" and path.startswith("/collection/v1_0/requesttopay/"):
            return httpx.Response(200, json={"status": "PENDING", "externalId": "ext-1", "amount": "4500", "currency": "XAF"})
        return httpx.Response(404)

    def calls_to(self, path_prefix, method=None):
        return [
            r for r in self.requests if r.url.path.startswith(path_prefix) and (method is None or r.method == method)
        ]

    @staticmethod
    def body(request):
        return json.loads(request.content)


@pytest.fixture()
def sandbox():
    return MomoSandbox()


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def momo_settings():
    return MomoSettings(
        subscription_key="sub-key",
        callback_url="https://api.example.com/webhooks/mtn_momo",
        api_user="api-user",
        api_key="api-key",
    )


@pytest.fixture()
def make_gateway(sandbox, clock, sleeps):
    def _make(settings):
        client = httpx.Client(base_url=settings.base_url, transport=httpx.MockTransport(sandbox.handler))
        return MomoGateway(settings, client=client, clock=clock, sleep=sleeps.append)

    return _make


@pytest.fixture()
def gateway(make_gateway, momo_settings):
    return make_gateway(momo_settings)
