# octane_sdk/config/config_models.py
"""
Configuration models for the Octane SDK clients.

Design Decisions:
-----------------
- User-facing models use `extra='forbid'` so typos in YAML files or keyword
  arguments are rejected instead of silently ignored.

- No logging occurs within this module because the logging configuration
  itself is defined here. Logging must be configured by the caller after
  loading config.

- SSL verification supports three modes for corporate proxy environments:
  1. `True` - Standard verification using the bundled CA store
  2. `False` - Disabled verification (use with caution)
  3. String path - Custom CA bundle (e.g., exported Zscaler root certificate)

- Passwords and client secrets are SecretStr so they never show up in logs,
  repr() or validation errors. Read them with `.get_secret_value()`.

Usage:
------
    from octane_sdk.config import OctaneConfig

    config = OctaneConfig(
        host='octane.example.com',
        shared_space_id=1001,
        workspace_id=1002,
        credentials={'username': 'me', 'password': 'secret'},
    )
"""

from pathlib import Path
from typing import Any, Final, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

# =============================================================================
# Public API
# =============================================================================

__all__: list[str] = [
    'ConnectionSettings',
    'LogLevelName',
    'LoggingConfig',
    'OctaneConfig',
    'OctaneCredentials',
    'OctaneSettings',
    'RequestHandlerParams',
]

# =============================================================================
# Type Aliases
# =============================================================================

LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

LOG_LEVEL_VALUES: frozenset[int] = frozenset({10, 20, 30, 40, 50})

LOG_LEVEL_NAME_TO_INT: dict[LogLevelName, int] = {
    'DEBUG': 10,
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}

HTTPS_DEFAULT_PORT: Final[int] = 443
HTTP_DEFAULT_PORT: Final[int] = 80
TECH_PREVIEW_HEADER: Final[str] = 'ALM-OCTANE-TECH-PREVIEW'


# =============================================================================
# Credentials
# =============================================================================


class OctaneCredentials(BaseModel):
    """
    Sign-in credentials: a user/password pair or an API client id/secret pair.

    When both pairs are complete, the user/password pair is sent.

    Attributes:
        username: Octane user name.
        password: Octane password (masked).
        client_id: API access client id.
        client_secret: API access client secret (masked).
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    username: str | None = None
    password: SecretStr | None = None
    client_id: str | None = None
    client_secret: SecretStr | None = None

    @model_validator(mode='after')
    def require_complete_pair(self) -> Self:
        """Reject credentials with neither a complete user nor a complete client pair."""
        if not (self.has_user_pair or self.has_client_pair):
            raise ValueError(
                'credentials need username and password, or client_id and client_secret'
            )
        return self

    @property
    def has_user_pair(self) -> bool:
        return bool(self.username and self.password and self.password.get_secret_value())

    @property
    def has_client_pair(self) -> bool:
        return bool(
            self.client_id
            and self.client_secret
            and self.client_secret.get_secret_value()
        )

    def to_sign_in_body(self) -> dict[str, str]:
        """Build the JSON body posted to the sign-in endpoint."""
        if self.has_user_pair:
            return {
                'user': self.username or '',
                'password': self.password.get_secret_value() if self.password else '',
            }
        return {
            'client_id': self.client_id or '',
            'client_secret': (
                self.client_secret.get_secret_value() if self.client_secret else ''
            ),
        }


# =============================================================================
# Connection Configuration
# =============================================================================


class ConnectionSettings(BaseModel):
    """
    Transport settings shared by both client flavours.

    SSL/TLS Handling:
        Corporate proxy environments (e.g., Zscaler) often perform TLS
        interception, which breaks standard certificate verification.
        verify_ssl accepts True, False, or a path to a CA bundle, and
        use_truststore builds the SSL context from the OS trust store instead.

    Attributes:
        proxy: Proxy URL for all requests, None for a direct connection.
        headers: Extra headers sent with every request.
        timeout: [connect_timeout, read_timeout] in seconds.
        verify_ssl: False to disable SSL, True for the default CA bundle, or
            a CA bundle path.
        use_truststore: Build the SSL context from the OS trust store.
    """

    model_config = ConfigDict(extra='forbid')

    proxy: str | None = Field(
        default=None,
        description='Proxy URL used for every request',
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description='Extra headers sent with every request',
    )
    timeout: tuple[int, int] = Field(
        default=(10, 60),
        description='[connect_timeout, read_timeout] in seconds; both must be positive',
    )
    verify_ssl: bool | str = Field(
        default=True,
        description='False to disable SSL, True for system CA, or path to CA bundle',
    )
    use_truststore: bool = Field(
        default=False,
        description='Use the OS trust store (truststore) for certificate validation',
    )

    @field_validator('proxy')
    @classmethod
    def normalize_proxy_url(cls, proxy: str | None) -> str | None:
        """Accept 'host:port' shorthand by assuming an http:// proxy."""
        if not proxy:
            return None
        if '://' not in proxy:
            return f'http://{proxy}'
        return proxy

    @field_validator('timeout')
    @classmethod
    def validate_timeout_values_positive(cls, timeout: tuple[int, int]) -> tuple[int, int]:
        """Ensure both timeout values are positive.

        Raises:
            ValueError: If either timeout value is non-positive.
        """
        connect_timeout, read_timeout = timeout

        if connect_timeout <= 0:
            raise ValueError(f'connect_timeout must be positive, got: {connect_timeout}')
        if read_timeout <= 0:
            raise ValueError(f'read_timeout must be positive, got: {read_timeout}')

        return timeout

    @field_validator('verify_ssl')
    @classmethod
    def validate_ssl_configuration(cls, verify_ssl: bool | str) -> bool | str:
        """Validate that a CA bundle path points to an existing file.

        Raises:
            ValueError: If string path does not exist or is not a file.
        """
        if isinstance(verify_ssl, str):
            cert_path = Path(verify_ssl)

            if not cert_path.exists():
                raise ValueError(f'SSL certificate bundle file not found: {verify_ssl}')
            if not cert_path.is_file():
                raise ValueError(
                    f'SSL certificate path must be a file, not directory: {verify_ssl}'
                )

        return verify_ssl


class OctaneConfig(ConnectionSettings):
    """
    Configuration for the route-table client (OctaneRoutesClient).

    The server address is assembled as
    `{protocol}://{host}:{port}{/path_prefix}`; the workspace API root appends
    `/api/shared_spaces/{shared_space_id}/workspaces/{workspace_id}`.

    Attributes:
        host: Octane server host name.
        protocol: 'http' or 'https'. None takes the route document's
            constants, then falls back to 'http'.
        port: Server port. None means 443 for https, 80 otherwise.
        path_prefix: Optional context path, surrounding slashes are stripped.
        shared_space_id: Shared space id.
        workspace_id: Workspace id.
        routes_config: Route document as a mapping, an absolute path to a JSON
            file, or None for the bundled default routes.
        tech_preview_api: Send the legacy tech-preview client header.
        credentials: Default sign-in credentials.
    """

    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    host: str = Field(description='Octane server host name')
    protocol: Literal['http', 'https'] | None = Field(
        default=None,
        description="'http' or 'https'; None uses the route document default",
    )
    port: int | None = Field(
        default=None,
        gt=0,
        le=65535,
        description='Server port; None derives it from the protocol',
    )
    path_prefix: str | None = Field(
        default=None,
        description='Context path inserted before /api',
    )
    shared_space_id: int | str = Field(description='Octane shared space id')
    workspace_id: int | str = Field(description='Octane workspace id')
    routes_config: dict[str, Any] | Path | None = Field(
        default=None,
        description='Route document, absolute JSON path, or None for the bundled routes',
    )
    tech_preview_api: bool = Field(
        default=False,
        alias='tech_preview_API',
        description='Send the ALM-OCTANE-TECH-PREVIEW header',
    )
    credentials: OctaneCredentials | None = Field(
        default=None,
        description='Default sign-in credentials',
    )

    @field_validator('host')
    @classmethod
    def validate_host_not_empty(cls, host: str) -> str:
        host = host.strip()
        if not host:
            raise ValueError('host cannot be empty')
        return host

    @field_validator('shared_space_id', 'workspace_id')
    @classmethod
    def validate_id_not_empty(cls, value: int | str) -> int | str:
        if isinstance(value, str) and not value.strip():
            raise ValueError('shared space / workspace id cannot be empty')
        return value

    def resolve_base_url(self, default_protocol: str | None = None) -> str:
        """
        Assemble the server URL.

        Args:
            default_protocol: Protocol used when none is configured (the
                route document's constants).

        Returns:
            URL without trailing slash, e.g. 'https://octane.example.com:443/ctx'.
        """
        protocol: str = self.protocol or default_protocol or 'http'
        port: int = self.port or (HTTPS_DEFAULT_PORT if protocol == 'https' else HTTP_DEFAULT_PORT)
        prefix: str = ''
        if self.path_prefix:
            prefix = '/' + self.path_prefix.strip('/')
        return f'{protocol}://{self.host}:{port}{prefix}'

    def workspace_path(self) -> str:
        return f'/api/shared_spaces/{self.shared_space_id}/workspaces/{self.workspace_id}'

    def request_headers(self) -> dict[str, str]:
        """Default headers for every request, including the tech-preview flag."""
        request_headers: dict[str, str] = dict(self.headers)
        if self.tech_preview_api:
            request_headers[TECH_PREVIEW_HEADER] = 'true'
        return request_headers


class RequestHandlerParams(ConnectionSettings):
    """
    Configuration for the fluent client (Octane) and its RequestHandler.

    Attributes:
        server: Server root URL with scheme, e.g. 'https://octane.example.com'.
        shared_space: Shared space id.
        workspace: Workspace id.
        user: User name, or API client id.
        password: Password, or API client secret (masked).
    """

    server: str = Field(description='Server root URL with scheme, without trailing slash')
    shared_space: int | str = Field(description='Octane shared space id')
    workspace: int | str = Field(description='Octane workspace id')
    user: str = Field(description='User name or API client id')
    password: SecretStr = Field(description='Password or API client secret (masked)')

    @field_validator('server')
    @classmethod
    def validate_server_url(cls, server: str) -> str:
        """Validate and normalize the server URL.

        Raises:
            ValueError: If URL is empty or missing http/https scheme.
        """
        if not server:
            raise ValueError('server cannot be empty')

        if not server.startswith(('http://', 'https://')):
            raise ValueError(
                f"server must start with 'http://' or 'https://', got: {server!r}"
            )

        return server.rstrip('/')


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Configuration for SDK logging output.

    Console output always goes to stdout. File output is enabled by providing
    a file_path; file_level then defaults to DEBUG.

    Attributes:
        file_path: Path to log file. None disables file logging.
            Extension .log is appended automatically if missing.
        console_level: Minimum log level for console output.
            Accepts level name or numeric value.
        file_level: Minimum log level for file output.
    """

    model_config = ConfigDict(extra='forbid')

    file_path: Path | None = Field(
        default=None,
        description='Log file path (.log extension auto-added). None disables file logging.',
    )
    console_level: LogLevelName | int = Field(
        default='INFO',
        description="Console log level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL', or int",
    )
    file_level: LogLevelName | int | None = Field(
        default=None,
        description='File log level. None disables file logging.',
    )

    @field_validator('file_path', mode='before')
    @classmethod
    def normalize_log_file_path(cls, path_value: str | Path | None) -> Path | None:
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.log'):
            path_string = f'{path_string}.log'

        return Path(path_string)

    @field_validator('console_level', 'file_level', mode='after')
    @classmethod
    def validate_numeric_log_level(
        cls, level_value: LogLevelName | int | None
    ) -> LogLevelName | int | None:
        """Validate numeric log levels are standard Python logging values.

        Raises:
            ValueError: If numeric level is not a standard logging value.
        """
        if level_value is None or isinstance(level_value, str):
            return level_value

        if level_value not in LOG_LEVEL_VALUES:
            raise ValueError(
                f'Numeric log level must be one of {sorted(LOG_LEVEL_VALUES)}, '
                f'got: {level_value}'
            )

        return level_value

    @model_validator(mode='after')
    def ensure_file_logging_configuration_consistency(self) -> Self:
        """Default file_level to DEBUG, and reject a file_level without file_path.

        Raises:
            ValueError: If file_level is set but file_path is missing.
        """
        has_file_path: bool = self.file_path is not None
        has_file_level: bool = self.file_level is not None

        if has_file_path and not has_file_level:
            self.file_level = 'DEBUG'

        if has_file_level and not has_file_path:
            raise ValueError(
                'file_level is specified but file_path is missing. '
                'Provide file_path to enable file logging, or remove file_level.'
            )

        return self

    def get_console_level_int(self) -> int:
        if isinstance(self.console_level, int):
            return self.console_level
        return LOG_LEVEL_NAME_TO_INT[self.console_level]

    def get_file_level_int(self) -> int | None:
        if self.file_level is None:
            return None
        if isinstance(self.file_level, int):
            return self.file_level
        return LOG_LEVEL_NAME_TO_INT[self.file_level]


# =============================================================================
# Root Configuration
# =============================================================================


class OctaneSettings(BaseModel):
    """
    Root model of an SDK YAML settings file.

    Example file:

        client:
          host: octane.example.com
          protocol: https
          shared_space_id: 1001
          workspace_id: 1002
          credentials:
            client_id: api-client
            client_secret: s3cret
        logging:
          console_level: INFO

    Attributes:
        client: Route-table client configuration.
        logging: Logging configuration.
    """

    model_config = ConfigDict(extra='forbid')

    client: OctaneConfig = Field(description='Route-table client configuration')
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description='SDK logging configuration',
    )
