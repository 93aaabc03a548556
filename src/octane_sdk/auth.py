# octane_sdk/auth.py
"""
Session authentication with one-shot re-authentication on 401.

Octane authenticates with a session cookie obtained from the sign-in
endpoint. The cookie lives in the httpx.AsyncClient cookie jar, so every
request sent through that client carries it. When the server answers 401,
SessionAuthenticator signs in again and replays the request once.

State Machine:
--------------
    UNAUTHENTICATED --authenticate()--> AUTHENTICATING --ok--> AUTHENTICATED
    AUTHENTICATED   --401-------------> REAUTHENTICATING --ok--> AUTHENTICATED
                                                         --fail--> FAILED
    any state       --sign_out()------> UNAUTHENTICATED

Single-Flight Re-authentication:
--------------------------------
Concurrent requests that all hit 401 share one sign-in. The first caller
starts an asyncio.Task; the others await the same task. The task reference is
dropped when it finishes, so a later session expiry starts a fresh sign-in.
Requests that were sent before a re-authentication completed and come back
401 afterwards are replayed on the new session without another sign-in.

Retry Behavior:
---------------
The replay is driven by tenacity: at most two attempts, retrying only on
SessionExpiredError. A replay that is rejected again surfaces as
Unauthorized; a failed sign-in surfaces as Unauthorized chained from the
sign-in error.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Final, TypeVar

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from octane_sdk.config import OctaneCredentials
from octane_sdk.errors import (
    ConfigurationError,
    HttpError,
    OctaneError,
    SessionExpiredError,
    TransportError,
    Unauthorized,
)

__all__: list[str] = ['SessionAuthenticator', 'SessionState']

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar('T')

# One original attempt plus one replay after re-authentication
MAX_SEND_ATTEMPTS: Final[int] = 2
HTTP_STATUS_ERROR_MIN: Final[int] = 400


class SessionState(str, Enum):
    """Authentication state of one client instance."""

    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATING = 'authenticating'
    AUTHENTICATED = 'authenticated'
    REAUTHENTICATING = 'reauthenticating'
    FAILED = 'failed'


class SessionAuthenticator:
    """
    Owns the session of one httpx.AsyncClient.

    Args:
        http_client: Client whose cookie jar holds the session cookie.
        sign_in_url: Absolute sign-in endpoint URL.
        sign_out_url: Absolute sign-out endpoint URL.
        credentials: Default credentials; authenticate() can supply or
            replace them later.

    Example:
        >>> authenticator = SessionAuthenticator(client, sign_in, sign_out, creds)
        >>> await authenticator.authenticate()
        >>> response = await authenticator.send_with_reauthentication(
        ...     lambda: send_request(client, spec)
        ... )
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        sign_in_url: str,
        sign_out_url: str,
        credentials: OctaneCredentials | Mapping[str, Any] | None = None,
    ) -> None:
        self._http_client: httpx.AsyncClient = http_client
        self._sign_in_url: str = sign_in_url
        self._sign_out_url: str = sign_out_url
        self._credentials: OctaneCredentials | None = _coerce_credentials(credentials)
        self._state: SessionState = SessionState.UNAUTHENTICATED
        self._reauth_task: asyncio.Task[None] | None = None
        # Bumped on every successful sign-in
        self._session_generation: int = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    # -------------------------------------------------------------------------
    # Sign-in / Sign-out
    # -------------------------------------------------------------------------

    async def authenticate(
        self,
        credentials: OctaneCredentials | Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Sign in and establish the session cookie.

        Args:
            credentials: Credentials to use and remember. None reuses the
                last credentials given.

        Returns:
            The sign-in response.

        Raises:
            ConfigurationError: If no credentials were ever given.
            HttpError: If the server rejects the sign-in.
            TransportError: If the server cannot be reached.
        """
        if credentials is not None:
            self._credentials = _coerce_credentials(credentials)
        elif self._credentials is None:
            raise ConfigurationError('No authentication credentials given')

        previous_state: SessionState = self._state
        self._state = SessionState.AUTHENTICATING

        try:
            response: httpx.Response = await self._sign_in()
        except BaseException:
            self._state = (
                SessionState.UNAUTHENTICATED
                if previous_state is SessionState.UNAUTHENTICATED
                else SessionState.FAILED
            )
            raise

        self._state = SessionState.AUTHENTICATED
        return response

    async def sign_out(self) -> httpx.Response:
        """
        Sign out and forget the session cookie.

        The local session is cleared even when the server call fails.

        Returns:
            The sign-out response.

        Raises:
            HttpError: If the server rejects the sign-out.
            TransportError: If the server cannot be reached.
        """
        try:
            response: httpx.Response = await self._post(self._sign_out_url, None)
        finally:
            self._http_client.cookies.clear()
            self._state = SessionState.UNAUTHENTICATED
            logger.info('Signed out')
        return response

    # -------------------------------------------------------------------------
    # Re-authentication
    # -------------------------------------------------------------------------

    async def reauthenticate(self) -> None:
        """
        Sign in again, sharing one sign-in among concurrent callers.

        Raises:
            ConfigurationError: If no credentials were ever given.
            HttpError: If the server rejects the sign-in.
            TransportError: If the server cannot be reached.
        """
        if self._reauth_task is None:
            logger.debug('Starting re-authentication')
            task: asyncio.Task[None] = asyncio.create_task(self._run_reauthentication())
            task.add_done_callback(self._forget_reauth_task)
            self._reauth_task = task
        else:
            logger.debug('Joining re-authentication already in progress')

        # A cancelled caller must not cancel the sign-in other callers wait on
        await asyncio.shield(self._reauth_task)

    async def send_with_reauthentication(self, send: Callable[[], Awaitable[T]]) -> T:
        """
        Run a request; on 401 re-authenticate once and replay it.

        Args:
            send: Coroutine factory that sends the request. It is called again
                for the replay, so it must rebuild or rewind its request. It
                signals a rejected session by raising SessionExpiredError.

        Returns:
            Whatever send() returns.

        Raises:
            Unauthorized: If re-authentication fails (chained from the cause)
                or the replay is rejected again.
            OctaneError: Any other error raised by send().
        """
        session_generation: int = self._session_generation

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(SessionExpiredError),
                stop=stop_after_attempt(MAX_SEND_ATTEMPTS),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        await self._refresh_session(session_generation)
                    session_generation = self._session_generation
                    return await send()
        except SessionExpiredError as error:
            logger.warning('Request rejected again after re-authentication')
            raise Unauthorized(
                message=error.message,
                code=error.code,
                body=error.body,
                headers=error.headers,
            ) from error

        raise AssertionError('retry loop exited without a result')  # pragma: no cover

    async def _refresh_session(self, stale_generation: int) -> None:
        if self._session_generation != stale_generation:
            logger.debug('Session already renewed by a concurrent request; replaying')
            return

        try:
            await self.reauthenticate()
        except OctaneError as error:
            logger.error('Re-authentication failed: %s', error)
            raise Unauthorized(f'Re-authentication failed: {error}') from error

    async def _run_reauthentication(self) -> None:
        if self._credentials is None:
            self._state = SessionState.FAILED
            raise ConfigurationError('No authentication credentials given')

        self._state = SessionState.REAUTHENTICATING
        try:
            await self._sign_in()
        except BaseException:
            self._state = SessionState.FAILED
            raise
        self._state = SessionState.AUTHENTICATED
        logger.info('Re-authenticated')

    def _forget_reauth_task(self, task: asyncio.Task[None]) -> None:
        if self._reauth_task is task:
            self._reauth_task = None

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _sign_in(self) -> httpx.Response:
        if self._credentials is None:
            raise ConfigurationError('No authentication credentials given')

        logger.debug('Signing in to %s', self._sign_in_url)
        response: httpx.Response = await self._post(
            self._sign_in_url, self._credentials.to_sign_in_body()
        )
        self._session_generation += 1
        logger.info('Signed in')
        return response

    async def _post(self, url: str, body: dict[str, str] | None) -> httpx.Response:
        try:
            response: httpx.Response = await self._http_client.post(url, json=body)
        except httpx.TimeoutException as error:
            logger.warning('Authentication request timeout: %s', url)
            raise TransportError(f'Request timeout: {error}') from error
        except httpx.RequestError as error:
            logger.warning('Connection error: %s - %s', url, error)
            raise TransportError(f'Connection error: {error}') from error

        if response.status_code >= HTTP_STATUS_ERROR_MIN:
            logger.error('Authentication request failed: HTTP %d', response.status_code)
            body_value: Any = response.text or None
            raise HttpError.from_status(
                response.status_code,
                body=body_value,
                headers=dict(response.headers),
            )

        return response


def _coerce_credentials(
    credentials: OctaneCredentials | Mapping[str, Any] | None,
) -> OctaneCredentials | None:
    if credentials is None or isinstance(credentials, OctaneCredentials):
        return credentials
    try:
        return OctaneCredentials.model_validate(dict(credentials))
    except ValueError as e:
        raise ConfigurationError(f'Invalid credentials: {e}') from e
