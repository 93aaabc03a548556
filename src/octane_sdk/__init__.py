# octane_sdk/__init__.py
"""
Octane SDK - Async client for the ALM Octane REST API.

This package provides two complementary clients:

1. **Route-table client**: OctaneRoutesClient
   - Operations compiled from a declarative JSON route document
   - Parameters validated and coerced before any I/O
   - List reads unwrapped into EntityList pages

2. **Fluent client**: Octane
   - Chainable request builder (get/create/update/delete + limit/fields/query)
   - Attachment upload and download
   - Arbitrary server-relative requests via execute_custom_request()

Both keep the session cookie and re-authenticate once on 401, sharing one
sign-in among concurrent requests.

Quick Start - Route-table client:
    >>> from octane_sdk import OctaneRoutesClient, Query
    >>>
    >>> async with OctaneRoutesClient({
    ...     'host': 'octane.example.com',
    ...     'shared_space_id': 1001,
    ...     'workspace_id': 1002,
    ... }) as client:
    ...     await client.authenticate({'username': 'me', 'password': 'secret'})
    ...     page = await client.defects.get_all({
    ...         'query': Query.field('severity').equal(
    ...             Query.field('id').equal('list_node.severity.high')
    ...         ),
    ...         'limit': 10,
    ...     })

Quick Start - Fluent client:
    >>> from octane_sdk import Octane
    >>>
    >>> async with Octane({
    ...     'server': 'https://octane.example.com',
    ...     'shared_space': 1001,
    ...     'workspace': 1002,
    ...     'user': 'me',
    ...     'password': 'secret',
    ... }) as octane:
    ...     await octane.authenticate()
    ...     defects = await octane.get(Octane.entity_types['defects']).limit(5).execute()

For more information, see DESIGN.md.
"""

__version__ = '0.1.0'

from octane_sdk.errors import (
    BadRequest,
    ConfigurationError,
    Conflict,
    Forbidden,
    HttpError,
    InternalServerError,
    MethodNotAllowed,
    NotAcceptable,
    NotFound,
    NotImplementedServerError,
    OctaneError,
    RequestTimeout,
    RouteConfigurationError,
    ServiceUnavailable,
    TransportError,
    Unauthorized,
    UnknownParameterTypeError,
    UnsupportedMediaType,
)
from octane_sdk.auth import SessionAuthenticator, SessionState
from octane_sdk.client import OctaneRoutesClient, RouteNamespace
from octane_sdk.common import setup_logger
from octane_sdk.config import (
    OctaneConfig,
    OctaneCredentials,
    RequestHandlerParams,
    load_config,
)
from octane_sdk.models import EntityList, MultiReference, Reference
from octane_sdk.octane import Octane
from octane_sdk.query import DelayQuery, Query
from octane_sdk.registry import (
    NamespaceNotFoundError,
    OperationNotFoundError,
    RouteRegistry,
)
from octane_sdk.request_handler import RequestHandler
from octane_sdk.url_builder import UrlBuilder

__all__: list[str] = [
    'BadRequest',
    'ConfigurationError',
    'Conflict',
    'DelayQuery',
    'EntityList',
    'Forbidden',
    'HttpError',
    'InternalServerError',
    'MethodNotAllowed',
    'MultiReference',
    'NamespaceNotFoundError',
    'NotAcceptable',
    'NotFound',
    'NotImplementedServerError',
    'Octane',
    'OctaneConfig',
    'OctaneCredentials',
    'OctaneError',
    'OctaneRoutesClient',
    'OperationNotFoundError',
    'Query',
    'Reference',
    'RequestHandler',
    'RequestHandlerParams',
    'RequestTimeout',
    'RouteConfigurationError',
    'RouteNamespace',
    'RouteRegistry',
    'ServiceUnavailable',
    'SessionAuthenticator',
    'SessionState',
    'TransportError',
    'Unauthorized',
    'UnknownParameterTypeError',
    'UnsupportedMediaType',
    'UrlBuilder',
    '__version__',
    'load_config',
    'setup_logger',
]
