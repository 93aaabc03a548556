# octane_sdk/registry.py
"""
Route registry compiled from a declarative route document.

The route document is a JSON tree of namespaces and leaf routes (see
octane_sdk.models.route_models). RouteRegistry walks it once, resolves every
'$name' parameter indirection against the 'defines' block, validates every
parameter spec, and freezes the result. Operations are then looked up by
(namespace, operation) and handed to the dispatcher; no callables are
synthesized per route.

Design Decisions:
-----------------
- Compile-time failure: an unresolvable '$name', an unknown parameter type,
  or a malformed leaf raises a ConfigurationError from from_document(), so a
  broken document never yields a half-usable client.

- Case-insensitive lookups: namespace and operation names are normalized to
  snake_case, so 'getAll', 'get-all' and 'get_all' all find the same route.

- Immutable after compilation: the registry is exposed through
  MappingProxyType and every RouteBlock is a frozen model.

Usage:
------
    from octane_sdk.registry import RouteRegistry

    registry = RouteRegistry.default()
    route = registry.get('defects', 'get_all')
"""

import json
import logging
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final, Self

from pydantic import ValidationError

from octane_sdk.common.formatting import normalize_name
from octane_sdk.errors import OctaneError, RouteConfigurationError
from octane_sdk.models.route_models import (
    ParamSpec,
    RouteBlock,
    RouteDefines,
    validate_param_spec,
)

__all__: list[str] = [
    'NamespaceNotFoundError',
    'OperationNotFoundError',
    'RouteRegistry',
    'load_route_document',
]

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_ROUTES_FILE: Final[str] = 'default_routes.json'
DEFINES_KEY: Final[str] = 'defines'


# =============================================================================
# Exceptions
# =============================================================================


class NamespaceNotFoundError(OctaneError, LookupError):
    """
    Raised when a requested namespace doesn't exist in the registry.

    Attributes:
        namespace: The namespace that was not found.
        available_namespaces: Valid namespace names.
    """

    def __init__(self, namespace: str, available_namespaces: list[str]) -> None:
        self.namespace: str = namespace
        self.available_namespaces: list[str] = available_namespaces
        super().__init__(
            f"Namespace '{namespace}' not found. "
            f'Available: {", ".join(sorted(available_namespaces))}'
        )


class OperationNotFoundError(OctaneError, LookupError):
    """
    Raised when a requested operation doesn't exist in a namespace.

    Attributes:
        namespace: The namespace name.
        operation: The operation that was not found.
        available_operations: Valid operation names for this namespace.
    """

    def __init__(
        self,
        namespace: str,
        operation: str,
        available_operations: list[str],
    ) -> None:
        self.namespace: str = namespace
        self.operation: str = operation
        self.available_operations: list[str] = available_operations
        super().__init__(
            f"Operation '{operation}' not found in namespace '{namespace}'. "
            f'Available: {", ".join(sorted(available_operations))}'
        )


# =============================================================================
# Document Loading
# =============================================================================


def load_route_document(source: Mapping[str, Any] | str | Path | None = None) -> dict[str, Any]:
    """
    Load a route document.

    Args:
        source: A document mapping (used as is), an absolute path to a JSON
            file, or None for the document bundled with the package.

    Returns:
        The parsed route document.

    Raises:
        RouteConfigurationError: If the path is relative, missing, or does not
            contain valid JSON.
    """
    if isinstance(source, Mapping):
        return dict(source)

    if source is None:
        bundled = resources.files('octane_sdk').joinpath('data', DEFAULT_ROUTES_FILE)
        logger.debug('Loading bundled route document %s', DEFAULT_ROUTES_FILE)
        return json.loads(bundled.read_text(encoding='utf-8'))

    routes_path = Path(source)
    if not routes_path.is_absolute():
        raise RouteConfigurationError(f'Routes config path must be absolute: {routes_path}')
    if not routes_path.is_file():
        raise RouteConfigurationError(f'Routes config file not found: {routes_path}')

    try:
        with routes_path.open(encoding='utf-8') as routes_file:
            document: Any = json.load(routes_file)
    except json.JSONDecodeError as e:
        logger.error('Invalid JSON in routes config %s: %s', routes_path, e)
        raise RouteConfigurationError(f'Invalid JSON in {routes_path}: {e}') from e

    logger.info('Loaded route document from %s', routes_path)
    return document


# =============================================================================
# Registry
# =============================================================================


class RouteRegistry:
    """
    Frozen lookup table of compiled routes, grouped by namespace.

    Example:
        >>> registry = RouteRegistry.from_document(document)
        >>> registry.get('defects', 'getAll').url
        '/defects'
        >>> for namespace in registry.list_namespaces():
        ...     print(namespace, registry.list_operations(namespace))
    """

    _default: Self | None = None

    def __init__(
        self,
        routes: Mapping[str, Mapping[str, RouteBlock]],
        defines: RouteDefines | None = None,
    ) -> None:
        """
        Freeze already compiled routes. Use from_document() to compile a document.

        Args:
            routes: namespace -> operation -> RouteBlock, names normalized.
            defines: The document's defines block (constants are exposed).
        """
        self._defines: RouteDefines = defines or RouteDefines()
        self._registry: MappingProxyType[str, MappingProxyType[str, RouteBlock]] = (
            MappingProxyType(
                {
                    namespace: MappingProxyType(dict(operations))
                    for namespace, operations in routes.items()
                }
            )
        )

        total_operations: int = sum(len(ops) for ops in self._registry.values())
        logger.info(
            'RouteRegistry initialized: %d namespaces, %d operations',
            len(self._registry),
            total_operations,
        )

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Self:
        """
        Compile a route document.

        Args:
            document: Parsed route document.

        Returns:
            The compiled registry.

        Raises:
            RouteConfigurationError: Unresolvable '$name', malformed leaf,
                duplicate operation, or a document that is not an object.
            UnknownParameterTypeError: A parameter declares an unsupported type.
        """
        if not isinstance(document, Mapping):
            raise RouteConfigurationError(
                f'Route document must be a JSON object, got {type(document).__name__}'
            )

        try:
            defines = RouteDefines.model_validate(document.get(DEFINES_KEY) or {})
        except ValidationError as e:
            raise RouteConfigurationError(f'Invalid defines block: {e}') from e

        routes: dict[str, dict[str, RouteBlock]] = {}
        body: dict[str, Any] = {k: v for k, v in document.items() if k != DEFINES_KEY}
        _compile_tree(body, [], defines, routes)

        return cls(routes, defines)

    @classmethod
    def from_source(cls, source: Mapping[str, Any] | str | Path | None = None) -> Self:
        """Load (see load_route_document) and compile a route document."""
        return cls.from_document(load_route_document(source))

    @classmethod
    def default(cls) -> Self:
        """
        Get the registry compiled from the bundled route document.

        Compiled on first use and shared afterwards. Create your own instance
        with from_document() for custom route tables.
        """
        if cls._default is None:
            cls._default = cls.from_source(None)
        return cls._default

    @property
    def constants(self) -> dict[str, Any]:
        """Default connection values from the defines block (copy)."""
        return dict(self._defines.constants)

    # -------------------------------------------------------------------------
    # Route Lookup
    # -------------------------------------------------------------------------

    def get(self, namespace: str, operation: str) -> RouteBlock:
        """
        Get a compiled route.

        Args:
            namespace: Namespace name (case-insensitive).
            operation: Operation name (case-insensitive, camelCase accepted).

        Returns:
            The route definition.

        Raises:
            NamespaceNotFoundError: If the namespace doesn't exist.
            OperationNotFoundError: If the operation doesn't exist in it.
        """
        operations = self._operations(namespace)
        operation_key: str = normalize_name(operation)

        if operation_key not in operations:
            raise OperationNotFoundError(
                namespace=namespace,
                operation=operation,
                available_operations=list(operations.keys()),
            )

        return operations[operation_key]

    def has(self, namespace: str, operation: str | None = None) -> bool:
        """
        Check if a namespace (or an operation within it) exists.

        Args:
            namespace: Namespace name (case-insensitive).
            operation: Operation name, or None to only check the namespace.
        """
        namespace_key: str = normalize_name(namespace)
        if namespace_key not in self._registry:
            return False
        if operation is None:
            return True
        return normalize_name(operation) in self._registry[namespace_key]

    # -------------------------------------------------------------------------
    # Discovery Methods
    # -------------------------------------------------------------------------

    def list_namespaces(self) -> list[str]:
        return sorted(self._registry.keys())

    def list_operations(self, namespace: str) -> list[str]:
        """
        Get all operation names of a namespace.

        Raises:
            NamespaceNotFoundError: If the namespace doesn't exist.
        """
        return sorted(self._operations(namespace).keys())

    def get_all_operations(self, namespace: str) -> dict[str, RouteBlock]:
        """Return a mutable copy of a namespace's operation mapping."""
        return dict(self._operations(namespace))

    def find_by_path(self, path_fragment: str) -> list[tuple[str, str]]:
        """
        Find routes whose URL template contains the given fragment.

        Args:
            path_fragment: Case-sensitive substring of the URL template.

        Returns:
            Sorted (namespace, operation) tuples. Empty list if nothing matches.
        """
        matches: list[tuple[str, str]] = []

        for namespace, operations in self._registry.items():
            for operation, route in operations.items():
                if path_fragment in route.url:
                    matches.append((namespace, operation))

        return sorted(matches)

    def describe(self, namespace: str | None = None) -> str:
        """
        Generate a human-readable listing of the registry contents.

        Args:
            namespace: Namespace to describe. If None, describes all of them.

        Raises:
            NamespaceNotFoundError: If the namespace doesn't exist.
        """
        lines: list[str] = []

        if namespace is not None:
            self._operations(namespace)
            namespaces_to_describe: list[str] = [normalize_name(namespace)]
        else:
            namespaces_to_describe = self.list_namespaces()

        for namespace_name in namespaces_to_describe:
            operations = self._registry[namespace_name]
            lines.append(f'Namespace: {namespace_name} ({len(operations)} operations)')
            lines.append('')

            for operation_name in sorted(operations.keys()):
                route: RouteBlock = operations[operation_name]
                lines.append(f'  {operation_name} [{route.method.value}]')
                lines.append(f'    Path: {route.url}')
                if route.params:
                    lines.append(f'    Params: {", ".join(route.params)}')
                if route.description:
                    lines.append(f'    Description: {route.description}')
                lines.append('')

        return '\n'.join(lines).rstrip()

    # -------------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------------

    def _operations(self, namespace: str) -> MappingProxyType[str, RouteBlock]:
        namespace_key: str = normalize_name(namespace)
        if namespace_key not in self._registry:
            raise NamespaceNotFoundError(
                namespace=namespace,
                available_namespaces=list(self._registry.keys()),
            )
        return self._registry[namespace_key]

    def __contains__(self, namespace: object) -> bool:
        return isinstance(namespace, str) and self.has(namespace)

    def __len__(self) -> int:
        return sum(len(ops) for ops in self._registry.values())


# =============================================================================
# Compilation
# =============================================================================


def _is_leaf(node: Mapping[str, Any]) -> bool:
    return bool(node.get('url')) and isinstance(node.get('params'), Mapping)


def _compile_tree(
    node: Mapping[str, Any],
    path: list[str],
    defines: RouteDefines,
    routes: dict[str, dict[str, RouteBlock]],
) -> None:
    for segment, child in node.items():
        if not child:
            continue

        child_path: list[str] = [*path, segment]
        if not isinstance(child, Mapping):
            raise RouteConfigurationError(
                f"Route node '{'/'.join(child_path)}' must be an object"
            )

        if _is_leaf(child):
            _register_leaf(child, child_path, defines, routes)
        else:
            _compile_tree(child, child_path, defines, routes)


def _register_leaf(
    leaf: Mapping[str, Any],
    path: list[str],
    defines: RouteDefines,
    routes: dict[str, dict[str, RouteBlock]],
) -> None:
    route_name: str = '/'.join(path)
    if len(path) < 2:  # noqa: PLR2004
        raise RouteConfigurationError(f"Route '{route_name}' is not inside a namespace")

    namespace: str = normalize_name(path[0])
    operation: str = normalize_name('-'.join(path[1:]))

    params: dict[str, ParamSpec] = _resolve_params(route_name, leaf['params'], defines)

    try:
        route = RouteBlock.model_validate(
            {**leaf, 'namespace': namespace, 'operation': operation, 'params': params}
        )
    except ValidationError as e:
        raise RouteConfigurationError(f"Invalid route '{route_name}': {e}") from e

    operations = routes.setdefault(namespace, {})
    if operation in operations:
        raise RouteConfigurationError(
            f"Route '{route_name}' duplicates operation '{namespace}.{operation}'"
        )
    operations[operation] = route
    logger.debug(
        'Compiled route %s.%s -> %s %s', namespace, operation, route.method.value, route.url
    )


def _resolve_params(
    route_name: str,
    declared: Mapping[str, Any],
    defines: RouteDefines,
) -> dict[str, ParamSpec]:
    """Replace '$name' keys with the defines-registered spec and validate all specs."""
    resolved: dict[str, ParamSpec] = {}

    for declared_name, raw_spec in declared.items():
        param_name: str = declared_name
        spec: Any = raw_spec

        if declared_name.startswith('$'):
            param_name = declared_name[1:]
            if param_name not in defines.params:
                raise RouteConfigurationError(
                    f"Route '{route_name}': param '{param_name}' not found in defines block"
                )
            spec = defines.params[param_name]

        resolved[param_name] = validate_param_spec(param_name, spec)

    return resolved
