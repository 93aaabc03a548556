# octane_sdk/client.py
"""
Route-table client for the Octane REST API.

OctaneRoutesClient exposes every operation of a compiled route document.
Operations are not generated as methods; every call goes through call(),
which looks the route up in the RouteRegistry, validates the message with
parse_params(), and dispatches it. Attribute access only binds names:

    async with OctaneRoutesClient(config) as client:
        await client.authenticate()
        defects = await client.defects.get_all({'limit': 10})
        defect = await client.call('defects', 'get', {'id': 1001})

Request Lifecycle:
------------------
1. Refuse with Unauthorized if the client never authenticated.
2. Validate and coerce parameters (BadRequest before any I/O).
3. Build the RequestSpec from a private copy of the route's URL template.
4. Send it through SessionAuthenticator (one re-authentication + replay on 401).
5. Unwrap the response envelope.
6. Close upload handles opened during validation.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import TracebackType
from typing import Any, Final, Self, TypeAlias

import httpx
from pydantic import ValidationError

from octane_sdk.auth import SessionAuthenticator, SessionState
from octane_sdk.common import create_http_client
from octane_sdk.config import OctaneConfig, OctaneCredentials
from octane_sdk.dispatcher import build_request_spec, reshape_response, send_request
from octane_sdk.errors import ConfigurationError, Unauthorized
from octane_sdk.models import RequestSpec, RouteBlock
from octane_sdk.registry import RouteRegistry, load_route_document
from octane_sdk.validation import close_file_params, parse_params

__all__: list[str] = ['OctaneRoutesClient', 'RouteNamespace']

logger: logging.Logger = logging.getLogger(__name__)

SIGN_IN_PATH: Final[str] = '/authentication/sign_in'
SIGN_OUT_PATH: Final[str] = '/authentication/sign_out'
REQUIRED_CONFIG_MESSAGE: Final[str] = (
    'Octane host / shared space id / workspace id are required'
)

Message: TypeAlias = Mapping[str, Any] | list[Mapping[str, Any]] | None


class RouteNamespace:
    """
    Operations of one namespace, bound to a client.

    Attribute access returns a coroutine function for the operation:
    `await client.defects.get_all({...})` is
    `await client.call('defects', 'get_all', {...})`.
    """

    def __init__(self, client: 'OctaneRoutesClient', namespace: str) -> None:
        self._client: OctaneRoutesClient = client
        self._namespace: str = namespace

    @property
    def name(self) -> str:
        return self._namespace

    def operations(self) -> list[str]:
        return self._client.registry.list_operations(self._namespace)

    async def call(self, operation: str, message: Message = None) -> Any:
        return await self._client.call(self._namespace, operation, message)

    def __getattr__(self, operation: str) -> Any:
        if operation.startswith('_'):
            raise AttributeError(operation)

        # Fail at attribute access for unknown operations
        route: RouteBlock = self._client.registry.get(self._namespace, operation)

        async def invoke(message: Message = None) -> Any:
            return await self._client.call(route.namespace, route.operation, message)

        invoke.__name__ = route.operation
        invoke.__doc__ = route.description
        return invoke

    def __dir__(self) -> list[str]:
        return [*super().__dir__(), *self.operations()]

    def __repr__(self) -> str:
        return f'RouteNamespace({self._namespace!r})'


class OctaneRoutesClient:
    """
    Async client whose operations come from a route document.

    Args:
        config: OctaneConfig, or a mapping validated into one.
        registry: Pre-compiled registry. None compiles config.routes_config
            (or the bundled routes).
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.

    Raises:
        ConfigurationError: If host, shared space id or workspace id is
            missing, or the configuration is otherwise invalid.
        RouteConfigurationError: If the route document cannot be compiled.

    Example:
        >>> config = OctaneConfig(host='octane.example.com', protocol='https',
        ...                       shared_space_id=1001, workspace_id=1002)
        >>> async with OctaneRoutesClient(config) as client:
        ...     await client.authenticate({'username': 'me', 'password': 'pw'})
        ...     page = await client.defects.get_all({'limit': 5})
        ...     print(page.total_count)
    """

    def __init__(
        self,
        config: OctaneConfig | Mapping[str, Any],
        registry: RouteRegistry | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config: OctaneConfig = _coerce_config(config)
        self._registry: RouteRegistry = (
            registry if registry is not None else _compile_routes(self._config.routes_config)
        )

        default_protocol: Any = self._registry.constants.get('protocol')
        self._base_url: str = self._config.resolve_base_url(
            default_protocol if isinstance(default_protocol, str) else None
        )
        self._base_api_url: str = f'{self._base_url}{self._config.workspace_path()}'

        self._http_client: httpx.AsyncClient = create_http_client(
            self._config,
            headers=self._config.request_headers(),
            transport=transport,
        )
        self._authenticator: SessionAuthenticator = SessionAuthenticator(
            self._http_client,
            sign_in_url=f'{self._base_url}{SIGN_IN_PATH}',
            sign_out_url=f'{self._base_url}{SIGN_OUT_PATH}',
            credentials=self._config.credentials,
        )

        logger.info(
            'Initialized OctaneRoutesClient: base_api_url=%r, namespaces=%d',
            self._base_api_url,
            len(self._registry.list_namespaces()),
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> RouteRegistry:
        return self._registry

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def base_api_url(self) -> str:
        return self._base_api_url

    @property
    def session_state(self) -> SessionState:
        return self._authenticator.state

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client. Safe to call more than once."""
        await self._http_client.aclose()
        logger.debug('OctaneRoutesClient closed')

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
    # Authentication
    # -------------------------------------------------------------------------

    async def authenticate(
        self,
        credentials: OctaneCredentials | Mapping[str, Any] | None = None,
    ) -> None:
        """
        Sign in. Credentials are remembered for later re-authentication.

        Args:
            credentials: Credentials to use; None reuses the last ones given
                (or config.credentials).

        Raises:
            ConfigurationError: If no credentials were ever given.
            HttpError: If the server rejects the sign-in.
        """
        await self._authenticator.authenticate(credentials)

    async def sign_out(self) -> None:
        await self._authenticator.sign_out()

    # -------------------------------------------------------------------------
    # Operation Access
    # -------------------------------------------------------------------------

    def get_api(self, namespace: str) -> RouteNamespace:
        """
        Get the operations of a namespace.

        Raises:
            NamespaceNotFoundError: If the namespace doesn't exist.
        """
        self._registry.list_operations(namespace)
        return RouteNamespace(self, namespace)

    def __getattr__(self, name: str) -> RouteNamespace:
        if name.startswith('_'):
            raise AttributeError(name)
        if '_registry' not in self.__dict__ or not self._registry.has(name):
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute or namespace '{name}'"
            )
        return RouteNamespace(self, name)

    async def call(self, namespace: str, operation: str, message: Message = None) -> Any:
        """
        Invoke one route operation.

        Args:
            namespace: Namespace name, e.g. 'defects'.
            operation: Operation name, e.g. 'get_all' (camelCase accepted).
            message: Parameters, or a list of parameter mappings for bulk
                operations.

        Returns:
            The unwrapped response: EntityList for list reads, a single
            entity for single creates, bytes for binary downloads, None for
            an empty body, otherwise the decoded JSON.

        Raises:
            Unauthorized: If the client never authenticated, or the session
                could not be renewed.
            BadRequest: If a parameter is missing or invalid (before any I/O).
            NamespaceNotFoundError / OperationNotFoundError: Unknown route.
            HttpError: For any other error status.
            TransportError: If the server cannot be reached.
        """
        route: RouteBlock = self._registry.get(namespace, operation)
        logger.debug('#%s.%s', route.namespace, route.operation)

        if self._authenticator.state is SessionState.UNAUTHENTICATED:
            raise Unauthorized('authentication is required')

        params: dict[str, Any] | list[dict[str, Any]] = parse_params(
            message, route.params
        )

        try:
            request_spec: RequestSpec = build_request_spec(params, route, self._base_api_url)
            response: httpx.Response = await self._authenticator.send_with_reauthentication(
                lambda: send_request(self._http_client, request_spec)
            )
        finally:
            close_file_params(params)

        return reshape_response(route.method, response, request_spec.binary_response)


def _coerce_config(config: OctaneConfig | Mapping[str, Any]) -> OctaneConfig:
    if isinstance(config, OctaneConfig):
        return config

    raw_config: dict[str, Any] = dict(config or {})
    if not all(raw_config.get(key) for key in ('host', 'shared_space_id', 'workspace_id')):
        raise ConfigurationError(REQUIRED_CONFIG_MESSAGE)

    try:
        return OctaneConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigurationError(f'Invalid Octane configuration: {e}') from e


def _compile_routes(routes_config: Mapping[str, Any] | Path | None) -> RouteRegistry:
    if routes_config is None:
        return RouteRegistry.default()
    return RouteRegistry.from_document(load_route_document(routes_config))
