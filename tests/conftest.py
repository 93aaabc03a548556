"""
Shared pytest fixtures for octane_sdk tests.

This module provides reusable fixtures for common test scenarios across
all test modules. Fixtures are automatically discovered by pytest.

The FakeOctaneServer stands in for an Octane instance behind an
httpx.MockTransport: it issues session cookies on sign-in, answers 401 for
requests without the current session cookie, and serves canned responses
per (method, path).
"""

import json
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any, TypeAlias

import httpx
import pytest

from octane_sdk.client import OctaneRoutesClient
from octane_sdk.config import OctaneConfig, RequestHandlerParams
from octane_sdk.octane import Octane
from octane_sdk.registry import RouteRegistry

SESSION_COOKIE: str = 'LWSSO_COOKIE_KEY'
WORKSPACE_PATH: str = '/api/shared_spaces/1001/workspaces/1002'

ResponseFactory: TypeAlias = Callable[[httpx.Request], httpx.Response]


# =============================================================================
# Fake Server
# =============================================================================


class FakeOctaneServer:
    """
    In-memory Octane server for httpx.MockTransport.

    Attributes:
        requests: Every request received, in order.
        sign_in_count: Number of successful sign-ins.
        sign_in_status: Status answered by the sign-in endpoint.
        sign_in_bodies: Decoded JSON bodies posted to the sign-in endpoint.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.sign_in_count: int = 0
        self.sign_in_status: int = 200
        self.sign_out_status: int = 200
        self.sign_in_bodies: list[Any] = []
        self._session: str | None = None
        self._responses: dict[tuple[str, str], list[ResponseFactory]] = {}

    def add(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        **response_kwargs: Any,
    ) -> None:
        """Queue a response. The last queued response for a route is repeated."""
        self.add_factory(
            method,
            path,
            lambda request: httpx.Response(status_code, **response_kwargs),
        )

    def add_factory(self, method: str, path: str, factory: ResponseFactory) -> None:
        self._responses.setdefault((method.upper(), path), []).append(factory)

    def expire_session(self) -> None:
        """Invalidate the current session cookie, as a server-side timeout would."""
        self._session = None

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path: str = request.url.path

        if path.endswith('/authentication/sign_in'):
            return self._sign_in(request)
        if path.endswith('/authentication/sign_out'):
            self._session = None
            return httpx.Response(self.sign_out_status)

        if not self._has_valid_session(request):
            return httpx.Response(401, json={'description': 'session expired'})

        factories: list[ResponseFactory] | None = self._responses.get((request.method, path))
        if not factories:
            return httpx.Response(404, json={'description': f'no route for {path}'})

        factory: ResponseFactory = factories.pop(0) if len(factories) > 1 else factories[0]
        return factory(request)

    def _sign_in(self, request: httpx.Request) -> httpx.Response:
        self.sign_in_bodies.append(json.loads(request.content or b'null'))
        if self.sign_in_status >= 400:  # noqa: PLR2004
            return httpx.Response(self.sign_in_status, json={'description': 'sign-in failed'})

        self.sign_in_count += 1
        self._session = f'session-{self.sign_in_count}'
        return httpx.Response(
            200,
            headers={'set-cookie': f'{SESSION_COOKIE}={self._session}; Path=/'},
        )

    def _has_valid_session(self, request: httpx.Request) -> bool:
        if self._session is None:
            return False
        return f'{SESSION_COOKIE}={self._session}' in request.headers.get('cookie', '')


@pytest.fixture
def fake_server() -> FakeOctaneServer:
    """Provide a fresh fake Octane server."""
    return FakeOctaneServer()


# =============================================================================
# Route Document Fixtures
# =============================================================================


@pytest.fixture
def route_document() -> dict[str, Any]:
    """
    Provide a small route document covering every body and response shape.

    Returns:
        Route document with defects CRUD and attachment upload/download.
    """
    name_param: dict[str, Any] = {
        'type': 'string',
        'required': True,
        'max_length': 255,
        'description': 'Name',
    }
    severity_param: dict[str, Any] = {
        'type': 'reference',
        'field_type_data': {'multiple': False},
    }
    return {
        'defines': {
            'constants': {'protocol': 'http'},
            'params': {
                'id': {'type': 'integer', 'required': True, 'min_value': 1},
                'fields': {'type': 'string'},
                'query': {'type': 'query'},
                'limit': {'type': 'integer', 'min_value': 1, 'max_value': 1000},
                'offset': {'type': 'integer', 'min_value': 0},
            },
        },
        'defects': {
            'get-all': {
                'url': '/defects',
                'method': 'GET',
                'params': {'$query': None, '$limit': None, '$offset': None, '$fields': None},
                'description': 'Gets defects list.',
            },
            'get': {
                'url': '/defects/:id',
                'method': 'GET',
                'params': {'$id': None, '$fields': None},
                'description': 'Gets a single defect.',
            },
            'create': {
                'url': '/defects',
                'method': 'POST',
                'params': {
                    'name': name_param,
                    'severity': severity_param,
                    'user_tags': {
                        'type': 'reference',
                        'field_type_data': {'multiple': True},
                    },
                },
            },
            'create-bulk': {
                'url': '/defects',
                'method': 'POST',
                'params': {'name': name_param},
            },
            'update': {
                'url': '/defects/:id',
                'method': 'PUT',
                'params': {'$id': None, 'name': {**name_param, 'required': False}},
            },
            'delete': {
                'url': '/defects/:id',
                'method': 'delete',
                'params': {'$id': None},
            },
        },
        'attachments': {
            'create': {
                'url': '/attachments',
                'method': 'POST',
                'content-type': 'multipart/form-data',
                'params': {
                    'name': name_param,
                    'file': {'type': 'file', 'required': True},
                    'owner_work_item': severity_param,
                },
            },
            'download': {
                'url': '/attachments/:id',
                'method': 'GET',
                'accept': 'application/octet-stream',
                'params': {'$id': None},
            },
        },
    }


@pytest.fixture
def route_registry(route_document: dict[str, Any]) -> RouteRegistry:
    """Provide a registry compiled from the test route document."""
    return RouteRegistry.from_document(route_document)


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def octane_config(route_document: dict[str, Any]) -> OctaneConfig:
    """
    Provide OctaneConfig for testing.

    Returns:
        Config pointing at octane.example.com with user credentials.
    """
    return OctaneConfig(
        host='octane.example.com',
        shared_space_id=1001,
        workspace_id=1002,
        routes_config=route_document,
        credentials={'username': 'sa@nga', 'password': 'Welcome1'},
    )


@pytest.fixture
def handler_params() -> RequestHandlerParams:
    """Provide RequestHandlerParams for the fluent client."""
    return RequestHandlerParams(
        server='http://octane.example.com',
        shared_space=1001,
        workspace=1002,
        user='sa@nga',
        password='Welcome1',
    )


@pytest.fixture
async def routes_client(
    octane_config: OctaneConfig,
    fake_server: FakeOctaneServer,
) -> AsyncIterator[OctaneRoutesClient]:
    """Provide an authenticated OctaneRoutesClient wired to the fake server."""
    async with OctaneRoutesClient(octane_config, transport=fake_server.transport) as client:
        await client.authenticate()
        yield client


@pytest.fixture
async def octane(
    handler_params: RequestHandlerParams,
    fake_server: FakeOctaneServer,
) -> AsyncIterator[Octane]:
    """Provide an authenticated fluent Octane client wired to the fake server."""
    async with Octane(handler_params, transport=fake_server.transport) as client:
        await client.authenticate()
        yield client


@pytest.fixture
def upload_file(tmp_path: Path) -> Path:
    """Provide an absolute path to a small file to upload."""
    file_path: Path = tmp_path / 'upload.txt'
    file_path.write_bytes(b'attachment body')
    return file_path
