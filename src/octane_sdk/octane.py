# octane_sdk/octane.py
"""
Fluent client for the Octane REST API.

Octane chains builder calls that shape one request and sends it with
execute():

    async with Octane(params) as octane:
        await octane.authenticate()
        page = await octane.get(Octane.entity_types['defects']).fields('name').limit(10).execute()
        created = await octane.create('defects', {'name': 'crash on save'}).execute()

The builder state (URL parts, operation, body) is consumed by execute(), so
each chain describes exactly one request. One Octane instance supports one
chain at a time; build chains sequentially or use separate instances.
"""

import json
import logging
from collections.abc import Mapping
from types import MappingProxyType, TracebackType
from typing import Any, ClassVar, Final, Self

import httpx

from octane_sdk.common import normalize_name
from octane_sdk.config import RequestHandlerParams
from octane_sdk.dispatcher import decode_body
from octane_sdk.errors import OctaneError
from octane_sdk.models import OCTET_STREAM, Reference
from octane_sdk.query import Query
from octane_sdk.request_handler import RequestHandler
from octane_sdk.url_builder import UrlBuilder

__all__: list[str] = ['Octane']

logger: logging.Logger = logging.getLogger(__name__)

ATTACHMENTS: Final[str] = 'attachments'


class Octane:
    """
    Fluent request builder bound to one shared space and workspace.

    Args:
        params: RequestHandlerParams, or a mapping validated into one.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.

    Attributes:
        operation_types: Supported operation names (RequestHandler methods).
        entity_types: Known entity collection names and their URL segments.
    """

    operation_types: ClassVar[MappingProxyType[str, str]] = MappingProxyType(
        {
            'create': 'create',
            'get': 'get',
            'update': 'update',
            'delete': 'delete',
            'get_attachment_content': 'get_attachment_content',
            'upload_attachment': 'upload_attachment',
        }
    )

    entity_types: ClassVar[MappingProxyType[str, str]] = MappingProxyType(
        {
            'application_modules': 'application_modules',
            'attachments': 'attachments',
            'automated_runs': 'automated_runs',
            'ci_builds': 'ci_builds',
            'comments': 'comments',
            'defects': 'defects',
            'epics': 'epics',
            'features': 'features',
            'gherkin_tests': 'gherkin_tests',
            'list_nodes': 'list_nodes',
            'manual_runs': 'manual_runs',
            'manual_tests': 'manual_tests',
            'metaphases': 'metaphases',
            'milestones': 'milestones',
            'phases': 'phases',
            'pipeline_nodes': 'pipeline_nodes',
            'pipeline_runs': 'pipeline_runs',
            'previous_runs': 'previous_runs',
            'programs': 'programs',
            'releases': 'releases',
            'requirement_documents': 'requirement_documents',
            'requirement_folders': 'requirement_folders',
            'requirement_roots': 'requirement_roots',
            'requirements': 'requirements',
            'roles': 'roles',
            'run_steps': 'run_steps',
            'runs': 'runs',
            'scm_commits': 'scm_commits',
            'sprints': 'sprints',
            'stories': 'stories',
            'suite_run': 'suite_run',
            'tasks': 'tasks',
            'taxonomy_category_nodes': 'taxonomy_category_nodes',
            'taxonomy_item_nodes': 'taxonomy_item_nodes',
            'taxonomy_nodes': 'taxonomy_nodes',
            'team_sprints': 'team_sprints',
            'teams': 'teams',
            'test_suite_link_to_automated_tests': 'test_suite_link_to_automated_tests',
            'test_suite_link_to_gherkin_tests': 'test_suite_link_to_gherkin_tests',
            'test_suite_link_to_manual_tests': 'test_suite_link_to_manual_tests',
            'test_suite_link_to_tests': 'test_suite_link_to_tests',
            'test_suites': 'test_suites',
            'tests': 'tests',
            'transitions': 'transitions',
            'user_items': 'user_items',
            'user_tags': 'user_tags',
            'users': 'users',
            'work_item_roots': 'work_item_roots',
            'work_items': 'work_items',
            'workspace_roles': 'workspace_roles',
            'workspace_users': 'workspace_users',
            'quality_stories': 'quality_stories',
            'fields_metadata': 'metadata/fields',
            'entities_metadata': 'metadata/entities',
        }
    )

    def __init__(
        self,
        params: RequestHandlerParams | Mapping[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._request_handler: RequestHandler = RequestHandler(params, transport=transport)
        handler_params: RequestHandlerParams = (
            params
            if isinstance(params, RequestHandlerParams)
            else RequestHandlerParams.model_validate(dict(params))
        )
        self._url_builder: UrlBuilder = UrlBuilder(
            handler_params.shared_space, handler_params.workspace
        )
        self._request_method: str | None = None
        self._request_body: Any = None

    @property
    def request_handler(self) -> RequestHandler:
        return self._request_handler

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        await self._request_handler.close()

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
    # URL Builders
    # -------------------------------------------------------------------------

    def limit(self, limit: int) -> Self:
        self._url_builder.limit(limit)
        return self

    def offset(self, offset: int) -> Self:
        self._url_builder.offset(offset)
        return self

    def at(self, entity_id: int | str) -> Self:
        self._url_builder.at(entity_id)
        return self

    def fields(self, *field_names: str) -> Self:
        self._url_builder.fields(field_names)
        return self

    def order_by(self, *field_names: str) -> Self:
        self._url_builder.order_by(field_names)
        return self

    def query(self, query: str | Query) -> Self:
        """Filter the collection. A Query is rendered with build() first."""
        self._url_builder.query(query.build() if isinstance(query, Query) else query)
        return self

    def script(self) -> Self:
        """Request the script of a test (only meaningful with at() on 'tests')."""
        self._url_builder.script()
        return self

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def get(self, entity_name: str) -> Self:
        self._prepare_request('get', entity_name)
        return self

    def delete(self, entity_name: str) -> Self:
        self._prepare_request('delete', entity_name)
        return self

    def create(self, entity_name: str, body: Any) -> Self:
        """Create one entity (mapping) or several (list); the body is wrapped in {'data': [...]}."""
        self._prepare_request('create', entity_name, _wrap_body(body))
        return self

    def update(self, entity_name: str, body: Mapping[str, Any]) -> Self:
        """Update one entity; body['id'] selects the entity."""
        if body.get('id'):
            self.at(body['id'])
        self._prepare_request('update', entity_name, body)
        return self

    def update_bulk(self, entity_name: str, body: Any) -> Self:
        self._prepare_request('update', entity_name, _wrap_body(body))
        return self

    def get_attachment_content(self) -> Self:
        """Download attachment content; combine with at(<attachment id>)."""
        self._prepare_request('get_attachment_content', ATTACHMENTS)
        return self

    def upload_attachment(
        self,
        attachment_name: str,
        attachment_data: bytes | str,
        owner_field: str,
        owner_reference: Reference | Mapping[str, Any] | str | int,
    ) -> Self:
        """
        Upload an attachment and link it to its owner entity.

        Args:
            attachment_name: File name shown in Octane.
            attachment_data: Raw content.
            owner_field: Owner field name, e.g. 'owner_work_item'.
            owner_reference: Owner reference, e.g. {'type': 'work_item', 'id': '1001'},
                or a plain owner id. Either is sent JSON-encoded.
        """
        self._request_method = 'upload_attachment'
        self._request_body = attachment_data

        owner: Any = owner_reference
        if isinstance(owner_reference, Reference):
            owner = owner_reference.to_json()
        elif isinstance(owner_reference, Mapping):
            owner = dict(owner_reference)

        self._url_builder.set_entity_url(ATTACHMENTS)
        self._url_builder.query_parameter('name', attachment_name)
        self._url_builder.query_parameter(owner_field, json.dumps(owner, separators=(',', ':')))
        return self

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute(self) -> Any:
        """
        Send the request described by the current chain.

        Returns:
            Decoded JSON body, bytes for attachment content, or None when the
            server sent an empty body.

        Raises:
            OctaneError: If no operation was chosen.
            HttpError: For error statuses.
        """
        if not self._request_method:
            raise OctaneError('Request method cannot be null!')

        operation: str = self._request_method
        body: Any = self._request_body
        url: str = self._url_builder.build()
        self._request_method = None
        self._request_body = None

        logger.debug('execute %s %s', operation, url)
        handler_method = getattr(self._request_handler, operation)
        if body is not None:
            response: httpx.Response = await handler_method(url, body)
        else:
            response = await handler_method(url)

        return _response_body(response)

    async def execute_custom_request(
        self,
        custom_url: str,
        operation: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """
        Send a request to an arbitrary server-relative URL.

        Args:
            custom_url: URL relative to the server root.
            operation: One of operation_types (camelCase accepted).
            body: Request body for create/update/upload.
            headers: Extra request headers.

        Raises:
            ValueError: If the operation is not supported.
        """
        operation_name: str = normalize_name(operation)
        if operation_name not in self.operation_types:
            raise ValueError('Operation is not supported')

        handler_method = getattr(self._request_handler, self.operation_types[operation_name])
        response: httpx.Response
        if body:
            response = await handler_method(custom_url, body, headers=headers)
        else:
            response = await handler_method(custom_url, headers=headers)

        return _response_body(response)

    async def authenticate(self) -> Any:
        response: httpx.Response = await self._request_handler.authenticate()
        return _response_body(response)

    async def sign_out(self) -> Any:
        response: httpx.Response = await self._request_handler.sign_out()
        return _response_body(response)

    def _prepare_request(self, operation: str, entity_name: str, body: Any = None) -> None:
        self._url_builder.set_entity_url(entity_name)
        self._request_method = operation
        if body is not None:
            self._request_body = body


def _wrap_body(body: Any) -> dict[str, Any]:
    if isinstance(body, list | tuple):
        return {'data': list(body)}
    return {'data': [body]}


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    if response.headers.get('content-type', '').startswith(OCTET_STREAM):
        return response.content
    return decode_body(response)
