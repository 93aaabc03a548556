"""
Tests for octane_sdk.registry module.

Tests route document loading, compilation, lookup and discovery.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from octane_sdk.errors import RouteConfigurationError, UnknownParameterTypeError
from octane_sdk.models import HTTPMethod, IntegerParam, QueryParam, RouteBlock
from octane_sdk.registry import (
    NamespaceNotFoundError,
    OperationNotFoundError,
    RouteRegistry,
    load_route_document,
)


def _leaf(url: str, method: str = 'GET', **params: Any) -> dict[str, Any]:
    return {'url': url, 'method': method, 'params': params}


class TestRouteRegistryCompilation:
    """Test compiling route documents."""

    def test_compiles_namespaces_and_operations(self, route_registry: RouteRegistry) -> None:
        """Should register every leaf under its namespace."""
        assert route_registry.list_namespaces() == ['attachments', 'defects']
        assert route_registry.list_operations('defects') == [
            'create',
            'create_bulk',
            'delete',
            'get',
            'get_all',
            'update',
        ]

    def test_resolves_defines_params(self, route_registry: RouteRegistry) -> None:
        """Should replace '$name' keys with the defines spec under the bare name."""
        route: RouteBlock = route_registry.get('defects', 'get_all')

        assert list(route.params) == ['query', 'limit', 'offset', 'fields']
        assert isinstance(route.params['query'], QueryParam)
        assert isinstance(route.params['limit'], IntegerParam)
        assert route.params['limit'].max_value == 1000  # noqa: PLR2004

    def test_normalizes_method_case(self, route_registry: RouteRegistry) -> None:
        """Should accept lower-case verbs."""
        assert route_registry.get('defects', 'delete').method is HTTPMethod.DELETE

    def test_exposes_constants(self, route_registry: RouteRegistry) -> None:
        """Should expose a copy of the defines constants."""
        constants = route_registry.constants
        constants['protocol'] = 'https'

        assert route_registry.constants == {'protocol': 'http'}

    def test_nested_namespaces_join_operation_name(self) -> None:
        """Should name deeper leaves after the joined path below the namespace."""
        registry = RouteRegistry.from_document(
            {'workspace': {'users': {'get-all': _leaf('/workspace_users')}}}
        )

        assert registry.list_operations('workspace') == ['users_get_all']

    def test_skips_empty_nodes(self) -> None:
        """Should ignore null and empty nodes."""
        registry = RouteRegistry.from_document(
            {'defects': {'get-all': _leaf('/defects'), 'unused': None, 'empty': {}}}
        )

        assert len(registry) == 1

    def test_unresolvable_param_raises(self) -> None:
        """Should fail at compile time for a '$name' missing from defines."""
        document: dict[str, Any] = {'defects': {'get': _leaf('/defects/:id', **{'$id': None})}}

        with pytest.raises(RouteConfigurationError, match="param 'id' not found in defines block"):
            RouteRegistry.from_document(document)

    def test_unknown_param_type_raises(self) -> None:
        """Should reject specs whose type has no validator."""
        document: dict[str, Any] = {
            'defects': {'create': _leaf('/defects', 'POST', name={'type': 'float'})}
        }

        with pytest.raises(UnknownParameterTypeError) as exc_info:
            RouteRegistry.from_document(document)

        assert exc_info.value.declared_type == 'float'

    def test_malformed_constraint_raises(self) -> None:
        """Should reject a known type with invalid constraints."""
        document: dict[str, Any] = {
            'defects': {
                'get-all': _leaf('/defects', limit={'type': 'integer', 'max_value': 'many'})
            }
        }

        with pytest.raises(RouteConfigurationError):
            RouteRegistry.from_document(document)

    def test_duplicate_operation_raises(self) -> None:
        """Should reject two leaves that normalize to the same operation."""
        document: dict[str, Any] = {
            'defects': {'get-all': _leaf('/defects'), 'getAll': _leaf('/defects')}
        }

        with pytest.raises(RouteConfigurationError, match='duplicates'):
            RouteRegistry.from_document(document)

    def test_leaf_outside_namespace_raises(self) -> None:
        """Should require every leaf to live inside a namespace."""
        with pytest.raises(RouteConfigurationError, match='not inside a namespace'):
            RouteRegistry.from_document({'ping': _leaf('/ping')})

    def test_non_object_document_raises(self) -> None:
        """Should reject documents that are not JSON objects."""
        with pytest.raises(RouteConfigurationError):
            RouteRegistry.from_document([])  # type: ignore[arg-type]

    def test_invalid_method_raises(self) -> None:
        """Should reject verbs outside HTTPMethod."""
        with pytest.raises(RouteConfigurationError):
            RouteRegistry.from_document({'defects': {'get-all': _leaf('/defects', 'FETCH')}})


class TestRouteRegistryLookup:
    """Test get/has and the lookup errors."""

    def test_get_accepts_camel_case(self, route_registry: RouteRegistry) -> None:
        """Should find 'getAll' and 'get-all' as get_all."""
        route = route_registry.get('defects', 'getAll')

        assert route is route_registry.get('Defects', 'get-all')
        assert route.url == '/defects'

    def test_get_unknown_namespace(self, route_registry: RouteRegistry) -> None:
        """Should raise NamespaceNotFoundError listing the namespaces."""
        with pytest.raises(NamespaceNotFoundError) as exc_info:
            route_registry.get('releases', 'get')

        assert exc_info.value.namespace == 'releases'
        assert 'defects' in exc_info.value.available_namespaces
        assert isinstance(exc_info.value, LookupError)

    def test_get_unknown_operation(self, route_registry: RouteRegistry) -> None:
        """Should raise OperationNotFoundError listing the operations."""
        with pytest.raises(OperationNotFoundError) as exc_info:
            route_registry.get('defects', 'archive')

        assert exc_info.value.operation == 'archive'
        assert 'get_all' in exc_info.value.available_operations

    def test_has(self, route_registry: RouteRegistry) -> None:
        """Should answer namespace and operation membership."""
        assert route_registry.has('defects')
        assert route_registry.has('defects', 'createBulk')
        assert not route_registry.has('defects', 'archive')
        assert not route_registry.has('releases')
        assert 'attachments' in route_registry
        assert 42 not in route_registry


class TestRouteRegistryDiscovery:
    """Test discovery helpers."""

    def test_len_counts_operations(self, route_registry: RouteRegistry) -> None:
        """Should count operations across namespaces."""
        assert len(route_registry) == 8  # noqa: PLR2004

    def test_get_all_operations_returns_copy(self, route_registry: RouteRegistry) -> None:
        """Should not let callers modify the registry."""
        operations = route_registry.get_all_operations('defects')
        operations.clear()

        assert route_registry.has('defects', 'get')

    def test_find_by_path(self, route_registry: RouteRegistry) -> None:
        """Should find routes by URL fragment."""
        assert route_registry.find_by_path('/attachments') == [
            ('attachments', 'create'),
            ('attachments', 'download'),
        ]
        assert route_registry.find_by_path('/nothing') == []

    def test_describe(self, route_registry: RouteRegistry) -> None:
        """Should list operations with verb and path."""
        description = route_registry.describe('defects')

        assert description.startswith('Namespace: defects (6 operations)')
        assert 'get_all [GET]' in description
        assert 'Path: /defects/:id' in description
        assert 'Description: Gets a single defect.' in description

    def test_describe_unknown_namespace(self, route_registry: RouteRegistry) -> None:
        """Should raise for an unknown namespace."""
        with pytest.raises(NamespaceNotFoundError):
            route_registry.describe('releases')


class TestDefaultRoutes:
    """Test the bundled route document."""

    def test_default_is_shared(self) -> None:
        """Should compile the bundled document once."""
        assert RouteRegistry.default() is RouteRegistry.default()

    def test_default_covers_entities(self) -> None:
        """Should contain the bundled namespaces."""
        registry = RouteRegistry.default()

        for namespace in ('defects', 'stories', 'tests', 'attachments', 'metadata'):
            assert registry.has(namespace)
        assert registry.get('attachments', 'download').is_binary_response
        assert registry.get('attachments', 'create').is_multipart
        assert registry.get('metadata', 'getFields').url == '/metadata/fields'
        assert registry.constants['protocol'] == 'http'


class TestLoadRouteDocument:
    """Test route document sources."""

    def test_mapping_is_used_as_is(self, route_document: dict[str, Any]) -> None:
        """Should return a dict copy of a mapping."""
        assert load_route_document(route_document) == route_document

    def test_absolute_json_file(self, tmp_path: Path, route_document: dict[str, Any]) -> None:
        """Should load a document from an absolute path."""
        routes_path = tmp_path / 'routes.json'
        routes_path.write_text(json.dumps(route_document), encoding='utf-8')

        assert load_route_document(routes_path) == route_document
        assert load_route_document(str(routes_path)) == route_document

    def test_relative_path_raises(self) -> None:
        """Should require an absolute path."""
        with pytest.raises(RouteConfigurationError, match='must be absolute'):
            load_route_document('routes.json')

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Should fail instead of silently using the bundled routes."""
        with pytest.raises(RouteConfigurationError, match='not found'):
            load_route_document(tmp_path / 'missing.json')

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Should wrap JSON errors."""
        routes_path = tmp_path / 'routes.json'
        routes_path.write_text('{not json', encoding='utf-8')

        with pytest.raises(RouteConfigurationError, match='Invalid JSON'):
            load_route_document(routes_path)

    def test_from_source(self, tmp_path: Path, route_document: dict[str, Any]) -> None:
        """Should load and compile in one step."""
        routes_path = tmp_path / 'routes.json'
        routes_path.write_text(json.dumps(route_document), encoding='utf-8')

        assert RouteRegistry.from_source(routes_path).has('attachments', 'download')
