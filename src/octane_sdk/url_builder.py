# octane_sdk/url_builder.py
"""
Single-use builder for Octane entity resource URLs.

The builder accumulates request-shaping state (entity, id, paging, field
selection, ordering, filter) and renders it with build(). Rendering always
resets the accumulated state, so one builder yields exactly one URL per
request and nothing leaks into the next one.

Two rendering modes:

- id mode (at() was called): '/.../{entity}/{id}', optional '/script' for
  tests, optional '?fields=...'. Paging, ordering and filters are dropped:
  fetching a single entity does not paginate.
- list mode: raw query_parameter() pairs first, then fields, limit, offset,
  query and order_by, in that fixed order.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final
from urllib.parse import quote

__all__: list[str] = ['UrlBuilder']

logger: logging.Logger = logging.getLogger(__name__)

SCRIPT_CAPABLE_ENTITIES: Final[frozenset[str]] = frozenset({'tests'})

# Characters JavaScript's encodeURIComponent leaves untouched
_URI_COMPONENT_SAFE: Final[str] = "-_.!~*'()"


@dataclass
class _UrlState:
    entity_name: str | None = None
    at: int | str | None = None
    limit: int | None = None
    offset: int | None = None
    fields: str | None = None
    order_by: str | None = None
    query: str | None = None
    query_string: str | None = None
    script: bool = False


class UrlBuilder:
    """
    Builds Octane API resource paths for one shared space / workspace.

    Args:
        shared_space: Octane shared space id.
        workspace: Octane workspace id.

    Example:
        >>> builder = UrlBuilder(1001, 1002)
        >>> builder.set_entity_url('defects')
        >>> builder.at(5)
        >>> builder.fields(['name'])
        >>> builder.build()
        '/api/shared_spaces/1001/workspaces/1002/defects/5?fields=name'
    """

    def __init__(self, shared_space: int | str, workspace: int | str) -> None:
        self._shared_space: int | str = shared_space
        self._workspace: int | str = workspace
        self._state: _UrlState = _UrlState()

    def set_entity_url(self, entity_name: str) -> None:
        self._state.entity_name = entity_name

    def limit(self, limit: int) -> None:
        self._state.limit = limit

    def offset(self, offset: int) -> None:
        self._state.offset = offset

    def at(self, entity_id: int | str) -> None:
        self._state.at = entity_id

    def fields(self, field_names: Iterable[str]) -> None:
        self._state.fields = ','.join(field_names)

    def order_by(self, field_names: Iterable[str]) -> None:
        self._state.order_by = ','.join(field_names)

    def query(self, query: str) -> None:
        """Store a filter, percent-encoded and wrapped in double quotes."""
        self._state.query = f'"{quote(query, safe=_URI_COMPONENT_SAFE)}"'

    def query_parameter(self, name: str, value: object) -> None:
        """Append a verbatim name=value pair, rendered before all other params."""
        pair: str = f'{name}={value}'
        if self._state.query_string:
            self._state.query_string = f'{self._state.query_string}&{pair}'
        else:
            self._state.query_string = pair

    def script(self) -> None:
        self._state.script = True

    def build(self) -> str:
        """
        Render the accumulated state and reset the builder.

        Returns:
            Path plus query string. Empty string when nothing was set.
        """
        state: _UrlState = self._state
        self.reset()

        built_url: str = ''
        if state.entity_name:
            built_url = (
                f'/api/shared_spaces/{self._shared_space}'
                f'/workspaces/{self._workspace}/{state.entity_name}'
            )

        query_parts: list[str] = []

        if state.at:
            built_url = f'{built_url}/{state.at}'
            if state.script and state.entity_name in SCRIPT_CAPABLE_ENTITIES:
                built_url = f'{built_url}/script'
            if state.fields:
                query_parts.append(f'fields={state.fields}')
            return _join(built_url, query_parts)

        if state.query_string:
            query_parts.append(state.query_string)
        if state.fields:
            query_parts.append(f'fields={state.fields}')
        if state.limit:
            query_parts.append(f'limit={state.limit}')
        if state.offset:
            query_parts.append(f'offset={state.offset}')
        if state.query:
            query_parts.append(f'query={state.query}')
        if state.order_by:
            query_parts.append(f'order_by={state.order_by}')

        return _join(built_url, query_parts)

    def reset(self) -> None:
        self._state = _UrlState()


def _join(path: str, query_parts: list[str]) -> str:
    if not query_parts:
        return path
    return f'{path}?' + '&'.join(query_parts)
