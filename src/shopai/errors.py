"""Closed error taxonomy for the ShopAI client.

Every failure the :class:`~shopai.client.APIClient` can report is one of the
``APIServiceError`` subclasses below.  Callers dispatch on the class:

  - ``Unauthorized``:  re-register and retry the original action
  - ``LimitReached``:  present an upgrade path, not a generic error
  - everything else:   show ``str(exc)`` as a retryable failure message

``AnswerShapeError`` is different: it signals a caller contract violation at
the answer-flow boundary (wrong answer shape for a question kind), in the
same way the engine reports other misuse with ``ValueError``.
"""


class APIServiceError(Exception):
    """Base class for all API client failures.

    ``str(exc)`` is always a message suitable for showing to the end user.
    """

    message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidEndpoint(APIServiceError):
    """The request address could not be composed from base URL + endpoint."""

    message = "Invalid URL"

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__()


class NoData(APIServiceError):
    """A successful envelope arrived without a ``data`` payload."""

    message = "No data received"


class DecodingError(APIServiceError):
    """The response body did not match the expected envelope/payload shape."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Data error: {cause}")


class ServerError(APIServiceError):
    """The server reported a failure; ``message`` is shown verbatim."""


class NetworkError(APIServiceError):
    """Transport-level failure: connection refused, DNS, timeout, ..."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class Unauthorized(APIServiceError):
    """HTTP 401: the token is missing, expired or revoked."""

    message = "Please sign in again"


class LimitReached(APIServiceError):
    """HTTP 403 with ``LIMIT_REACHED``: free searches exhausted, no entitlement."""

    message = "Free search limit reached"


class AnswerShapeError(ValueError):
    """An answer value does not fit the kind of the question it targets."""
