"""APIClient: typed async request/response client for the ShopAI backend.

Every call follows the same three steps:

    1. build:   compose ``<base_url><endpoint>``, JSON content type, and a
                 bearer ``Authorization`` header when the call is
                 authenticated and a token is present
    2. issue:   send through one shared ``httpx.AsyncClient`` (30 s timeout)
    3. decode:  interpret the HTTP status and the uniform envelope
                 ``{success, data, error}`` into the payload or one of the
                 ``shopai.errors`` classes

The client never retries.  Concurrent calls are independent: the only shared
state is the connection pool and the read-only view of the AuthSession.

Usage::

    session = AuthSession(JSONFileStore(settings.state_path))
    async with APIClient(session, settings) as client:
        reg = await client.register(session.device_id, "UK", "GBP")
        client.set_auth_token(reg.token)
        status = await client.get_user_status()
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError

from shopai.config import ClientSettings, load_settings
from shopai.constants import (
    ACCESS_DENIED_MESSAGE,
    LIMIT_REACHED_CODE,
    REQUEST_TIMEOUT_SECONDS,
    TOO_MANY_REQUESTS_MESSAGE,
)
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
from shopai.models.answer import SearchAnswer
from shopai.models.auth import RegisterRequest, RegisterResponse, UserStatus
from shopai.models.base import APIModel
from shopai.models.catalog import Category, QuestionSet
from shopai.models.envelope import APIErrorBody, APIResponse
from shopai.models.search import RecommendationResponse, SearchRequest
from shopai.models.subscription import (
    ReceiptValidationRequest,
    ReceiptValidationResponse,
    SubscriptionPlan,
)
from shopai.session import AuthSession

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Response interpretation
# ------------------------------------------------------------------

def _error_body(content: bytes) -> APIErrorBody | None:
    """Best-effort extraction of ``error`` from a non-2xx body.

    Error bodies are not required to be complete envelopes, so only the
    ``error`` object itself is validated.  Anything unparsable yields None.
    """
    try:
        raw = json.loads(content)
    except ValueError:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("error"), dict):
        return None
    try:
        return APIErrorBody.model_validate(raw["error"])
    except ValidationError:
        return None


def interpret_response(status_code: int, content: bytes, payload_type: Any) -> Any:
    """Map an HTTP status + body to the decoded payload or a typed error.

    Decision order:
      - 2xx:  decode envelope; ``error`` → ServerError, no ``data`` → NoData
      - 401:  Unauthorized, body ignored
      - 403:  LIMIT_REACHED → LimitReached; otherwise ServerError with the
              server's message, or "Access denied" when there is none
      - 429:  ServerError("Too many requests. ...")
      - else: ServerError(error.message) or ServerError("Server error: <status>")

    Raises:
        DecodingError: a 2xx body did not match ``APIResponse[payload_type]``
        APIServiceError: any of the classified failures above
    """
    if 200 <= status_code <= 299:
        try:
            envelope = APIResponse[payload_type].model_validate_json(content)
        except ValidationError as exc:
            raise DecodingError(exc) from exc
        if envelope.error is not None:
            raise ServerError(envelope.error.message)
        if envelope.data is None:
            raise NoData()
        return envelope.data

    if status_code == 401:
        raise Unauthorized()

    if status_code == 403:
        error = _error_body(content)
        if error is not None and error.code == LIMIT_REACHED_CODE:
            raise LimitReached()
        # Keep the server's explanation when it sent one
        if error is not None and error.message:
            raise ServerError(error.message)
        raise ServerError(ACCESS_DENIED_MESSAGE)

    if status_code == 429:
        raise ServerError(TOO_MANY_REQUESTS_MESSAGE)

    error = _error_body(content)
    if error is not None:
        raise ServerError(error.message)
    raise ServerError(f"Server error: {status_code}")


def _encode(model: APIModel) -> bytes:
    return json.dumps(model.to_wire()).encode("utf-8")


# ------------------------------------------------------------------
# Client
# ------------------------------------------------------------------

class APIClient:
    """Async client for the ShopAI JSON API.

    Args:
        session: the AuthSession whose token is attached to authenticated
            calls.  The client only writes it through
            :meth:`set_auth_token` / :meth:`clear_auth_token`.
        settings: client settings; defaults to :func:`load_settings`
        transport: optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        session: AuthSession,
        settings: ClientSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._session = session
        self._settings = settings if settings is not None else load_settings()
        self._base_url = self._settings.base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS),
            transport=transport,
        )

    async def __aenter__(self) -> APIClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the underlying connection pool."""
        await self._http.aclose()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    # ==================================================================
    # Token management, delegated to the session
    # ==================================================================

    @property
    def auth_token(self) -> str | None:
        return self._session.token

    def set_auth_token(self, token: str) -> None:
        self._session.set_token(token)

    def clear_auth_token(self) -> None:
        self._session.clear_token()

    # ==================================================================
    # Request building
    # ==================================================================

    def _compose_url(self, endpoint: str) -> httpx.URL:
        if not endpoint.startswith("/"):
            raise InvalidEndpoint(endpoint)
        try:
            url = httpx.URL(f"{self._base_url}{endpoint}")
        except httpx.InvalidURL as exc:
            raise InvalidEndpoint(endpoint) from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidEndpoint(endpoint)
        return url

    def build_request(
        self,
        endpoint: str,
        method: str = "GET",
        body: bytes | None = None,
        authenticated: bool = False,
    ) -> httpx.Request:
        """Build a JSON request for ``endpoint`` (path relative to the base URL).

        The bearer header is attached only when ``authenticated`` is set and
        the session holds a token; an authenticated call without a token is
        sent bare and the server answers 401.

        Raises:
            InvalidEndpoint: if the address cannot be formed
        """
        url = self._compose_url(endpoint)
        headers = {"Content-Type": "application/json"}
        token = self._session.token
        if authenticated and token:
            headers["Authorization"] = f"Bearer {token}"
        return self._http.build_request(method, url, headers=headers, content=body)

    async def _perform(self, request: httpx.Request, payload_type: Any) -> Any:
        """Send ``request`` and decode its envelope as ``payload_type``."""
        logger.debug("%s %s", request.method, request.url)
        try:
            response = await self._http.send(request)
        except httpx.DecodingError as exc:
            # Body could not be decompressed or decoded while reading
            logger.error(
                "Decoding error on %s %s: %s", request.method, request.url.path, exc,
            )
            raise DecodingError(exc) from exc
        except httpx.RequestError as exc:
            logger.warning(
                "Network error on %s %s: %s", request.method, request.url.path, exc,
            )
            raise NetworkError(exc) from exc

        try:
            return interpret_response(
                response.status_code, response.content, payload_type,
            )
        except DecodingError as exc:
            logger.error(
                "Decoding error on %s %s: %s", request.method, request.url.path, exc.cause,
            )
            raise
        except APIServiceError as exc:
            logger.info(
                "%s %s failed [%d]: %s",
                request.method, request.url.path, response.status_code, type(exc).__name__,
            )
            raise

    def _with_currency(self, path: str, currency: str | None) -> str:
        return f"{path}?{urlencode({'currency': currency or self._settings.currency})}"

    # ==================================================================
    # Auth endpoints
    # ==================================================================

    async def register(
        self, device_id: str, region: str, currency: str
    ) -> RegisterResponse:
        """Register this install.  The caller stores the returned token."""
        body = _encode(
            RegisterRequest(device_id=device_id, region=region, currency=currency)
        )
        request = self.build_request("/auth/register", method="POST", body=body)
        return await self._perform(request, RegisterResponse)

    async def get_user_status(self) -> UserStatus:
        request = self.build_request("/auth/status", authenticated=True)
        return await self._perform(request, UserStatus)

    # ==================================================================
    # Category endpoints
    # ==================================================================

    async def get_categories(self, currency: str | None = None) -> list[Category]:
        request = self.build_request(self._with_currency("/categories", currency))
        return await self._perform(request, list[Category])

    async def get_questions(
        self, subcategory_id: str, currency: str | None = None
    ) -> QuestionSet:
        path = f"/categories/{quote(subcategory_id, safe='')}/questions"
        request = self.build_request(self._with_currency(path, currency))
        return await self._perform(request, QuestionSet)

    # ==================================================================
    # Search endpoint
    # ==================================================================

    async def search(
        self, subcategory_id: str, answers: list[SearchAnswer]
    ) -> RecommendationResponse:
        """Submit collected answers and return the ranked result.

        Raises:
            LimitReached: free searches exhausted and no active entitlement
            Unauthorized: token missing or expired
        """
        body = _encode(SearchRequest(subcategory_id=subcategory_id, answers=answers))
        request = self.build_request(
            "/search", method="POST", body=body, authenticated=True,
        )
        return await self._perform(request, RecommendationResponse)

    # ==================================================================
    # Subscription endpoints
    # ==================================================================

    async def get_subscription_plans(
        self, currency: str | None = None
    ) -> list[SubscriptionPlan]:
        request = self.build_request(self._with_currency("/subscriptions/plans", currency))
        return await self._perform(request, list[SubscriptionPlan])

    async def validate_receipt(self, receipt_data: str) -> ReceiptValidationResponse:
        body = _encode(ReceiptValidationRequest(receipt_data=receipt_data))
        request = self.build_request(
            "/subscriptions/validate", method="POST", body=body, authenticated=True,
        )
        return await self._perform(request, ReceiptValidationResponse)

    async def restore_purchases(self, receipt_data: str) -> ReceiptValidationResponse:
        body = _encode(ReceiptValidationRequest(receipt_data=receipt_data))
        request = self.build_request(
            "/subscriptions/restore", method="POST", body=body, authenticated=True,
        )
        return await self._perform(request, ReceiptValidationResponse)
