# octane_sdk/request_handler.py
"""
Authenticated HTTP verbs for the fluent client.

RequestHandler sends requests to URLs relative to the server root and keeps
the session cookie in its AsyncClient cookie jar. Every request goes through
SessionAuthenticator.send_with_reauthentication(), so a 401 triggers one
shared sign-in followed by a single replay.

Responses are returned as httpx.Response objects; error statuses are raised
as typed HttpErrors.
"""

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any, Final, Self

import httpx
from pydantic import ValidationError

from octane_sdk.auth import SessionAuthenticator, SessionState
from octane_sdk.common import create_http_client
from octane_sdk.config import OctaneCredentials, RequestHandlerParams
from octane_sdk.dispatcher import send_request, to_wire
from octane_sdk.errors import ConfigurationError
from octane_sdk.models import OCTET_STREAM, HTTPMethod, RequestSpec

__all__: list[str] = ['RequestHandler']

logger: logging.Logger = logging.getLogger(__name__)

SIGN_IN_PATH: Final[str] = '/authentication/sign_in'
SIGN_OUT_PATH: Final[str] = '/authentication/sign_out'


class RequestHandler:
    """
    Session-aware HTTP verbs against one Octane server.

    Args:
        params: RequestHandlerParams, or a mapping validated into one.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.

    Raises:
        ConfigurationError: If the parameters are invalid.

    Example:
        >>> async with RequestHandler(params) as handler:
        ...     await handler.authenticate()
        ...     response = await handler.get('/api/shared_spaces/1/workspaces/2/defects')
    """

    def __init__(
        self,
        params: RequestHandlerParams | Mapping[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._params: RequestHandlerParams = _coerce_params(params)

        self._http_client: httpx.AsyncClient = create_http_client(
            self._params,
            base_url=self._params.server,
            transport=transport,
        )
        self._authenticator: SessionAuthenticator = SessionAuthenticator(
            self._http_client,
            sign_in_url=SIGN_IN_PATH,
            sign_out_url=SIGN_OUT_PATH,
            credentials=OctaneCredentials(
                username=self._params.user,
                password=self._params.password,
            ),
        )

        logger.info('Initialized RequestHandler: server=%r', self._params.server)

    @property
    def session_state(self) -> SessionState:
        return self._authenticator.state

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        await self._http_client.aclose()
        logger.debug('RequestHandler closed')

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    async def get(self, url: str, headers: Mapping[str, str] | None = None) -> httpx.Response:
        """
        Send a GET request, re-authenticating once on 401.

        Args:
            url: Resource path relative to the server root.
            headers: Extra request headers.

        Raises:
            Unauthorized: If the session cannot be renewed.
            HttpError: For any other error status.
        """
        return await self._send(
            RequestSpec(url=url, method=HTTPMethod.GET, headers=dict(headers or {}))
        )

    async def delete(self, url: str, headers: Mapping[str, str] | None = None) -> httpx.Response:
        return await self._send(
            RequestSpec(url=url, method=HTTPMethod.DELETE, headers=dict(headers or {}))
        )

    async def update(
        self,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send a PUT request with a JSON (or pre-encoded) body."""
        return await self._send(_body_spec(url, HTTPMethod.PUT, body, headers))

    async def create(
        self,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send a POST request with a JSON (or pre-encoded) body."""
        return await self._send(_body_spec(url, HTTPMethod.POST, body, headers))

    async def get_attachment_content(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """
        Download attachment content. Read the bytes from response.content.

        The accept header is always application/octet-stream.
        """
        request_headers: dict[str, str] = {**(headers or {}), 'accept': OCTET_STREAM}
        return await self._send(
            RequestSpec(
                url=url,
                method=HTTPMethod.GET,
                headers=request_headers,
                binary_response=True,
            )
        )

    async def upload_attachment(
        self,
        url: str,
        body: bytes | str,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """
        Upload raw attachment content.

        The content-type header is always application/octet-stream.
        """
        request_headers: dict[str, str] = {**(headers or {}), 'content-type': OCTET_STREAM}
        return await self._send(
            RequestSpec(url=url, method=HTTPMethod.POST, headers=request_headers, content=body)
        )

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def authenticate(self) -> httpx.Response:
        """
        Sign in with the configured user and password.

        Raises:
            HttpError: If the server rejects the sign-in.
        """
        logger.debug('Signing in...')
        response: httpx.Response = await self._authenticator.authenticate()
        logger.debug('Signed in.')
        return response

    async def sign_out(self) -> httpx.Response:
        logger.debug('Signing out...')
        response: httpx.Response = await self._authenticator.sign_out()
        logger.debug('Signed out.')
        return response

    async def _send(self, request_spec: RequestSpec) -> httpx.Response:
        return await self._authenticator.send_with_reauthentication(
            lambda: send_request(self._http_client, request_spec)
        )


def _body_spec(
    url: str,
    method: HTTPMethod,
    body: Any,
    headers: Mapping[str, str] | None,
) -> RequestSpec:
    if isinstance(body, str | bytes):
        return RequestSpec(url=url, method=method, headers=dict(headers or {}), content=body)
    return RequestSpec(
        url=url,
        method=method,
        headers=dict(headers or {}),
        json_body=to_wire(body),
    )


def _coerce_params(params: RequestHandlerParams | Mapping[str, Any]) -> RequestHandlerParams:
    if isinstance(params, RequestHandlerParams):
        return params
    try:
        return RequestHandlerParams.model_validate(dict(params))
    except ValidationError as e:
        raise ConfigurationError(f'Invalid request handler parameters: {e}') from e
