"""APIClient tests: request building, status interpretation, operations.

Uses FakeBackend (httpx.MockTransport) so every call goes through the real
build → send → decode path without a network.

Status decision table under test:

  | HTTP status | Body                               | Outcome                       |
  |-------------|------------------------------------|-------------------------------|
  | 2xx         | envelope with data                 | data                          |
  | 2xx         | envelope with error                | ServerError(error.message)    |
  | 2xx         | envelope with data: null           | NoData                        |
  | 2xx         | not an envelope                    | DecodingError                 |
  | 401         | anything                           | Unauthorized                  |
  | 403         | error.code == LIMIT_REACHED        | LimitReached                  |
  | 403         | other error / no body              | ServerError(msg / "Access denied") |
  | 429         | anything                           | ServerError("Too many ...")   |
  | other       | error object / none                | ServerError(msg / "Server error: N") |
  | transport   | connect error / timeout            | NetworkError                  |
"""

import asyncio
import json

import httpx
import pytest

from helpers.payloads import (
    CATEGORIES,
    PLANS,
    QUESTION_SET,
    RECEIPT_ACTIVE,
    RECOMMENDATION,
    REGISTER_DATA,
    USER_STATUS,
    envelope,
    error_envelope,
)
from shopai.client import APIClient, interpret_response
from shopai.config import ClientSettings
from shopai.errors import (
    APIServiceError,
    DecodingError,
    InvalidEndpoint,
    LimitReached,
    NetworkError,
    NoData,
    ServerError,
    Unauthorized,
)
from shopai.models.answer import ChoicesAnswer, RangeAnswer, SearchAnswer, TextAnswer
from shopai.models.auth import SubscriptionStatus, UserStatus


def _body(payload) -> bytes:
    return json.dumps(payload).encode()


# =====================================================================
# Request building
# =====================================================================


class TestBuildRequest:

    def test_json_content_type_and_default_get(self, client):
        request = client.build_request("/categories")
        assert request.method == "GET"
        assert request.headers["Content-Type"] == "application/json"
        assert str(request.url) == "http://backend.test/api/categories"

    def test_bearer_attached_when_authenticated_and_token_present(self, client, session):
        session.set_token("abc")
        request = client.build_request("/auth/status", authenticated=True)
        assert request.headers["Authorization"] == "Bearer abc"

    def test_no_bearer_on_unauthenticated_call(self, client, session):
        session.set_token("abc")
        request = client.build_request("/categories")
        assert "Authorization" not in request.headers, (
            "Unauthenticated calls must never carry the token"
        )

    def test_no_bearer_without_token(self, client):
        request = client.build_request("/auth/status", authenticated=True)
        assert "Authorization" not in request.headers

    def test_body_is_sent_verbatim(self, client):
        request = client.build_request("/search", method="POST", body=b'{"a":1}')
        assert request.method == "POST"
        assert request.content == b'{"a":1}'

    def test_endpoint_without_leading_slash_is_invalid(self, client):
        with pytest.raises(InvalidEndpoint) as info:
            client.build_request("categories")
        assert info.value.endpoint == "categories"
        assert str(info.value) == "Invalid URL"

    def test_non_http_origin_is_invalid(self, session, backend):
        bad = APIClient(
            session,
            ClientSettings(base_url="ftp://backend.test/api"),
            transport=backend.transport,
        )
        with pytest.raises(InvalidEndpoint):
            bad.build_request("/categories")

    def test_missing_host_is_invalid(self, session, backend):
        bad = APIClient(
            session,
            ClientSettings(base_url="http://"),
            transport=backend.transport,
        )
        with pytest.raises(InvalidEndpoint):
            bad.build_request("/categories")


# =====================================================================
# Response interpretation
# =====================================================================


class TestInterpretResponse:

    def test_success_returns_data(self):
        status = interpret_response(200, _body(envelope(USER_STATUS)), UserStatus)
        assert isinstance(status, UserStatus)
        assert status.free_searches_remaining == 2

    def test_any_2xx_is_success(self):
        status = interpret_response(201, _body(envelope(USER_STATUS)), UserStatus)
        assert status.user_id == "user_1"

    def test_success_with_error_object_is_server_error(self):
        body = {"success": False, "data": None, "error": {"code": "X", "message": "Nope"}}
        with pytest.raises(ServerError) as info:
            interpret_response(200, _body(body), UserStatus)
        assert str(info.value) == "Nope"

    def test_null_data_is_no_data(self):
        body = {"success": True, "data": None, "error": None}
        with pytest.raises(NoData):
            interpret_response(200, _body(body), UserStatus)

    def test_missing_data_key_is_no_data(self):
        with pytest.raises(NoData):
            interpret_response(204, _body({"success": True}), UserStatus)

    def test_malformed_json_is_decoding_error(self):
        with pytest.raises(DecodingError) as info:
            interpret_response(200, b"<html>oops</html>", UserStatus)
        assert str(info.value).startswith("Data error:")
        assert info.value.cause is not None

    def test_wrong_payload_shape_is_decoding_error(self):
        with pytest.raises(DecodingError):
            interpret_response(200, _body(envelope({"unexpected": True})), UserStatus)

    @pytest.mark.parametrize("body", [
        b"",
        b"not json",
        _body(error_envelope("LIMIT_REACHED", "limit")),
        _body(envelope(USER_STATUS)),
    ])
    def test_401_is_unauthorized_regardless_of_body(self, body):
        with pytest.raises(Unauthorized):
            interpret_response(401, body, UserStatus)

    def test_403_limit_reached(self):
        body = {"error": {"code": "LIMIT_REACHED", "message": "You have used all free searches"}}
        with pytest.raises(LimitReached) as info:
            interpret_response(403, _body(body), UserStatus)
        assert str(info.value) == "Free search limit reached"

    def test_403_other_code_keeps_server_message(self):
        body = error_envelope("FORBIDDEN", "Region not supported")
        with pytest.raises(ServerError) as info:
            interpret_response(403, _body(body), UserStatus)
        assert str(info.value) == "Region not supported"

    def test_403_without_body_is_access_denied(self):
        with pytest.raises(ServerError) as info:
            interpret_response(403, b"", UserStatus)
        assert str(info.value) == "Access denied"

    def test_429_is_too_many_requests(self):
        with pytest.raises(ServerError) as info:
            interpret_response(429, _body(error_envelope("RATE", "slow down")), UserStatus)
        assert str(info.value) == "Too many requests. Please try again later."

    def test_other_status_uses_error_message(self):
        with pytest.raises(ServerError) as info:
            interpret_response(500, _body(error_envelope("BOOM", "Ranking failed")), UserStatus)
        assert str(info.value) == "Ranking failed"

    def test_other_status_without_error_object(self):
        with pytest.raises(ServerError) as info:
            interpret_response(502, b"Bad Gateway", UserStatus)
        assert str(info.value) == "Server error: 502"

    def test_all_failures_share_the_base_class(self):
        with pytest.raises(APIServiceError):
            interpret_response(418, b"", UserStatus)


# =====================================================================
# Transport failures
# =====================================================================


class TestTransportFailures:

    @pytest.mark.asyncio
    async def test_connect_error_is_network_error(self, client, backend):
        backend.raise_error("GET", "/categories", httpx.ConnectError("refused"))
        with pytest.raises(NetworkError) as info:
            await client.get_categories("GBP")
        assert isinstance(info.value.cause, httpx.ConnectError)
        assert str(info.value).startswith("Network error:")

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, client, backend):
        backend.raise_error("GET", "/categories", httpx.ReadTimeout("too slow"))
        with pytest.raises(NetworkError):
            await client.get_categories("GBP")

    @pytest.mark.asyncio
    async def test_decode_failure_is_not_network_error(self, client, backend):
        backend.respond("GET", "/categories", content=b"{broken")
        with pytest.raises(DecodingError):
            await client.get_categories("GBP")

    @pytest.mark.asyncio
    async def test_bad_content_encoding_is_decoding_error(self, client, backend):
        backend.add("GET", "/categories", lambda request: httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all",
        ))
        with pytest.raises(DecodingError) as info:
            await client.get_categories("GBP")
        assert isinstance(info.value.cause, httpx.DecodingError), (
            "httpx decode failures must stay inside the client error set"
        )

    @pytest.mark.asyncio
    async def test_other_request_error_is_network_error(self, client, backend):
        backend.raise_error(
            "GET", "/categories", httpx.TooManyRedirects("loop", request=None),
        )
        with pytest.raises(NetworkError):
            await client.get_categories("GBP")

    def test_timeout_is_thirty_seconds(self, client):
        request = client.build_request("/categories")
        assert request.extensions["timeout"]["read"] == 30.0


# =====================================================================
# Operations
# =====================================================================


class TestOperations:

    @pytest.mark.asyncio
    async def test_register_then_status_uses_bearer(self, client, backend):
        """register → token "t1"; next authenticated call carries it."""
        backend.ok("POST", "/auth/register", REGISTER_DATA)
        backend.ok("GET", "/auth/status", USER_STATUS)

        reg = await client.register(device_id="abc", region="UK", currency="GBP")
        assert reg.token == "t1"
        assert reg.user.subscription_status == SubscriptionStatus.NONE

        sent = backend.json_body(backend.requests_to("POST", "/auth/register")[0])
        assert sent == {"deviceId": "abc", "region": "UK", "currency": "GBP"}
        assert "Authorization" not in backend.last_request().headers

        client.set_auth_token(reg.token)
        await client.get_user_status()
        status_request = backend.requests_to("GET", "/auth/status")[0]
        assert status_request.headers["Authorization"] == "Bearer t1"

    @pytest.mark.asyncio
    async def test_status_without_token_is_unauthorized(self, client, backend):
        backend.fail("GET", "/auth/status", 401, "UNAUTHORIZED", "Missing token")
        with pytest.raises(Unauthorized):
            await client.get_user_status()

    @pytest.mark.asyncio
    async def test_get_categories_passes_currency(self, client, backend):
        backend.ok("GET", "/categories", CATEGORIES)
        categories = await client.get_categories("USD")
        assert categories[0].subcategories[0].id == "sub_headphones"
        assert backend.last_request().url.params["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_get_categories_defaults_to_settings_currency(self, client, backend):
        backend.ok("GET", "/categories", CATEGORIES)
        await client.get_categories()
        assert backend.last_request().url.params["currency"] == "GBP"

    @pytest.mark.asyncio
    async def test_get_questions(self, client, backend):
        backend.ok("GET", "/categories/sub_headphones/questions", QUESTION_SET)
        qs = await client.get_questions("sub_headphones", "GBP")
        assert qs.subcategory_name == "Headphones"
        assert [q.id for q in qs.questions] == [
            "use_case", "features", "budget", "brand", "notes",
        ]
        assert qs.questions[2].range_config.presets[0].label == "Under £50"

    @pytest.mark.asyncio
    async def test_search_posts_untagged_answers_with_auth(self, client, backend, session):
        session.set_token("t1")
        backend.ok("POST", "/search", RECOMMENDATION)

        result = await client.search("sub_headphones", [
            SearchAnswer(question_id="use_case", value=TextAnswer(value="commuting")),
            SearchAnswer(question_id="features", value=ChoicesAnswer(values=["anc"])),
            SearchAnswer(question_id="budget", value=RangeAnswer(min=50, max=150)),
        ])

        assert result.products[0].match_score == 94
        request = backend.last_request()
        assert request.headers["Authorization"] == "Bearer t1"
        assert backend.json_body(request) == {
            "subcategoryId": "sub_headphones",
            "answers": [
                {"questionId": "use_case", "value": "commuting"},
                {"questionId": "features", "value": ["anc"]},
                {"questionId": "budget", "value": {"min": 50.0, "max": 150.0}},
            ],
        }

    @pytest.mark.asyncio
    async def test_search_limit_reached(self, client, backend, session):
        session.set_token("t1")
        backend.fail("POST", "/search", 403, "LIMIT_REACHED", "Upgrade to continue")
        with pytest.raises(LimitReached):
            await client.search("sub_headphones", [])

    @pytest.mark.asyncio
    async def test_get_subscription_plans(self, client, backend):
        backend.ok("GET", "/subscriptions/plans", PLANS)
        plans = await client.get_subscription_plans("GBP")
        assert [p.period_label for p in plans] == ["/week", "/year"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method_name,path", [
        ("validate_receipt", "/subscriptions/validate"),
        ("restore_purchases", "/subscriptions/restore"),
    ])
    async def test_receipt_endpoints(self, client, backend, session, method_name, path):
        session.set_token("t1")
        backend.ok("POST", path, RECEIPT_ACTIVE)

        response = await getattr(client, method_name)("receipt-bytes")

        assert response.subscription_status == SubscriptionStatus.ACTIVE
        request = backend.last_request()
        assert request.headers["Authorization"] == "Bearer t1"
        assert backend.json_body(request) == {"receiptData": "receipt-bytes"}

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_independent(self, client, backend):

        backend.ok("GET", "/categories", CATEGORIES)
        backend.ok("GET", "/subscriptions/plans", PLANS)
        categories, plans = await asyncio.gather(
            client.get_categories("GBP"), client.get_subscription_plans("GBP"),
        )
        assert len(categories) == 1
        assert len(plans) == 2


class TestTokenDelegation:

    def test_set_and_clear_go_through_session(self, client, session, store):
        client.set_auth_token("t9")
        assert session.token == "t9"
        assert store.get("authToken") == "t9"

        client.clear_auth_token()
        assert client.auth_token is None
        assert store.get("authToken") is None

