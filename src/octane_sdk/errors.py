# octane_sdk/errors.py
"""
Exception hierarchy for the Octane SDK.

Every failure the SDK surfaces is an OctaneError. Callers branch on the
concrete class (or on HttpError.code) rather than parsing messages:

- ConfigurationError: invalid client configuration or route document. Raised
  synchronously at construction / route-compile time, never retried.
- TransportError: the request never produced an HTTP response (connection
  failure, timeout). Never retried.
- HttpError: the server answered with status >= 400. One subclass is
  registered per well-known status code (BadRequest, Unauthorized, ...).
  Parameter validation failures are reported as BadRequest before any
  request is sent.
"""

import json
from http import HTTPStatus
from typing import Any, ClassVar, Final

__all__: list[str] = [
    'BadRequest',
    'ConfigurationError',
    'Conflict',
    'Forbidden',
    'HttpError',
    'InternalServerError',
    'MethodNotAllowed',
    'NotAcceptable',
    'NotFound',
    'NotImplementedServerError',
    'OctaneError',
    'RequestTimeout',
    'RouteConfigurationError',
    'ServiceUnavailable',
    'SessionExpiredError',
    'TransportError',
    'Unauthorized',
    'UnknownParameterTypeError',
    'UnsupportedMediaType',
]

HTTP_STATUS_UNAUTHORIZED: Final[int] = 401


# =============================================================================
# Root and Configuration Errors
# =============================================================================


class OctaneError(Exception):
    """Root of the SDK error hierarchy. Catch this to handle every SDK failure."""


class ConfigurationError(OctaneError, ValueError):
    """
    Raised for invalid client configuration.

    Examples are a missing host / shared space / workspace, or an
    authenticate() call with no credentials ever supplied.
    """


class RouteConfigurationError(ConfigurationError):
    """
    Raised when a route document cannot be compiled.

    Covers unresolvable `$name` parameter indirections, leaves with malformed
    parameter specs, and documents that are not JSON objects.
    """


class UnknownParameterTypeError(ConfigurationError):
    """
    Raised when a parameter spec declares a type the validator does not know.

    This is a schema defect, not a user input defect.

    Attributes:
        param_name: Name of the offending parameter.
        declared_type: The unsupported type tag.
    """

    def __init__(self, param_name: str, declared_type: Any) -> None:
        self.param_name: str = param_name
        self.declared_type: Any = declared_type
        super().__init__(
            f"Unknown parameter type for parameter '{param_name}': {declared_type}"
        )


class TransportError(OctaneError):
    """
    Raised when a request fails below the HTTP layer (connect error, timeout).

    The original httpx exception is available as __cause__.
    """


# =============================================================================
# HTTP Errors
# =============================================================================


class HttpError(OctaneError):
    """
    Base exception for HTTP error responses (status >= 400).

    Attributes:
        code: HTTP status code.
        status: Human-readable reason phrase for the code.
        message: Error message (response body text when the server sent one).
        body: Decoded response body (JSON value or text), None if unavailable.
        headers: Response headers, empty for locally raised errors.
    """

    status_code: ClassVar[int] = 500
    _registry: ClassVar[dict[int, type['HttpError']]] = {}

    def __init__(
        self,
        message: str | None = None,
        code: int | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.code: int = code if code is not None else self.status_code
        self.status: str = _reason_phrase(self.code)
        self.message: str = message or f'{self.code}:{self.status}'
        self.body: Any = body
        self.headers: dict[str, str] = headers or {}
        super().__init__(self.message)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Only the first class declared for a code becomes the factory target
        if 'status_code' in cls.__dict__:
            HttpError._registry.setdefault(cls.status_code, cls)

    @classmethod
    def from_status(
        cls,
        code: int,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> 'HttpError':
        """
        Build the registered HttpError subclass for a status code.

        Unregistered codes produce a plain HttpError carrying that code.

        Args:
            code: HTTP status code of the response.
            body: Decoded response body.
            headers: Response headers.

        Returns:
            HttpError instance (subclass when the code is registered).
        """
        error_class: type[HttpError] = cls._registry.get(code, HttpError)
        return error_class(
            message=_body_to_message(body),
            code=code,
            body=body,
            headers=headers,
        )

    def to_json(self) -> dict[str, Any]:
        """Return the error payload shape surfaced to callers."""
        return {
            'code': self.code,
            'status': self.status,
            'message': self.message,
        }

    def __str__(self) -> str:
        return self.message


class BadRequest(HttpError):
    """400 - also raised locally for parameter validation failures."""

    status_code = 400


class Unauthorized(HttpError):
    """401 - raised when no valid session exists or re-authentication failed."""

    status_code = 401


class SessionExpiredError(Unauthorized):
    """
    A request came back 401 while a session was believed valid.

    Internal retry signal for the re-authentication state machine. When it
    escapes to callers it is still an Unauthorized.
    """


class Forbidden(HttpError):
    status_code = 403


class NotFound(HttpError):
    status_code = 404


class MethodNotAllowed(HttpError):
    status_code = 405


class NotAcceptable(HttpError):
    status_code = 406


class RequestTimeout(HttpError):
    status_code = 408


class Conflict(HttpError):
    status_code = 409


class UnsupportedMediaType(HttpError):
    status_code = 415


class InternalServerError(HttpError):
    status_code = 500


class NotImplementedServerError(HttpError):
    status_code = 501


class ServiceUnavailable(HttpError):
    status_code = 503


# =============================================================================
# Helpers
# =============================================================================


def _reason_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return 'Unknown Status'


def _body_to_message(body: Any) -> str | None:
    if body is None or body == '':
        return None
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode('utf-8', errors='replace')
    return json.dumps(body)
