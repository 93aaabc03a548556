# octane_sdk/models/shared_response_models.py
"""
Shapes returned to callers after response envelope unwrapping.

GET list responses arrive as {'total_count': n, 'data': [...]}. Callers get
the data list itself, as an EntityList that still remembers the server-side
total in its meta attribute.
"""

import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd

__all__: list[str] = ['EntityList']

logger: logging.Logger = logging.getLogger(__name__)


class EntityList(list[Any]):
    """
    A page of entities with the server-reported total.

    Behaves as a plain list of entity dicts. The total number of matching
    entities (which may exceed the page length) is kept in meta.

    Attributes:
        meta: {'total_count': <int>} as reported by the server.

    Example:
        >>> page = EntityList([{'id': '1'}], total_count=42)
        >>> len(page), page.total_count
        (1, 42)
    """

    def __init__(self, items: Iterable[Any] = (), total_count: int | None = None) -> None:
        super().__init__(items)
        self.meta: dict[str, Any] = {'total_count': total_count}

    @property
    def total_count(self) -> int | None:
        return self.meta.get('total_count')

    def to_dataframe(self) -> pd.DataFrame:
        """
        Convert the page to a pandas DataFrame, one row per entity.

        Reference fields stay as nested dicts in their columns.

        Returns:
            DataFrame with one column per entity field, or an empty DataFrame
            with no columns when the page is empty.
        """
        if not self:
            logger.warning('No entities to convert (total_count=%r)', self.total_count)
            return pd.DataFrame()

        dataframe = pd.DataFrame(list(self))
        logger.debug(
            'Created DataFrame: %d rows, %d columns',
            len(dataframe),
            len(dataframe.columns),
        )
        return dataframe

    def __repr__(self) -> str:
        return f'EntityList({list.__repr__(self)}, total_count={self.total_count!r})'
