# octane_sdk/common/http_client.py
"""
httpx.AsyncClient factory shared by both client flavours.

Both clients talk to Octane through one AsyncClient per client instance. The
AsyncClient owns the cookie jar, so the session cookie set by sign-in is sent
with every later request and replay.
"""

import logging
from ssl import SSLContext

import httpx

from octane_sdk.common.truststore_context import build_truststore_ssl_context
from octane_sdk.config import ConnectionSettings

__all__: list[str] = ['build_ssl_verify', 'create_http_client']

logger: logging.Logger = logging.getLogger(__name__)


def build_ssl_verify(settings: ConnectionSettings) -> SSLContext | bool | str:
    """
    Build the httpx `verify` argument from connection settings.

    Returns:
        SSLContext for truststore, bool for enable/disable, or str path to CA bundle.
    """
    if settings.use_truststore:
        logger.debug('Building SSLContext from truststore (system CA store)')
        return build_truststore_ssl_context()

    logger.debug('Using SSL verification setting: %r', settings.verify_ssl)
    return settings.verify_ssl


def create_http_client(
    settings: ConnectionSettings,
    headers: dict[str, str] | None = None,
    base_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create the AsyncClient used for every request of one SDK client.

    Args:
        settings: Proxy, timeout and SSL settings.
        headers: Default headers (settings.headers when None).
        base_url: Base URL that relative request URLs are resolved against.
        transport: Optional transport override, e.g. httpx.MockTransport in tests.

    Returns:
        A new AsyncClient. The caller owns it and must close it.
    """
    connect_timeout, read_timeout = settings.timeout
    default_timeout = httpx.Timeout(
        connect=connect_timeout,
        read=read_timeout,
        write=connect_timeout,
        pool=connect_timeout,
    )

    client_kwargs: dict[str, object] = {
        'timeout': default_timeout,
        'headers': headers if headers is not None else dict(settings.headers),
    }
    if base_url is not None:
        client_kwargs['base_url'] = base_url
    if transport is not None:
        client_kwargs['transport'] = transport
    else:
        client_kwargs['verify'] = build_ssl_verify(settings)
        if settings.proxy:
            client_kwargs['proxy'] = settings.proxy

    return httpx.AsyncClient(**client_kwargs)  # type: ignore[arg-type]
