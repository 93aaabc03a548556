# octane_sdk/query.py
"""
Fluent builder for the Octane filter-query language.

A Query is an immutable expression node. Field comparators produce leaf
nodes; and_/or_/not_/group combine them. build() renders the tree to the
textual syntax the REST API expects:

    >>> Query.field('id').equal(5).build()
    'id EQ 5'
    >>> Query.field('a').not_greater_equal(5).and_(Query.field('b').not_equal('x')).build()
    '!a GE 5;!b EQ ^x^'

Calling and_() or or_() without an argument returns a DelayQuery, a builder
state that is waiting for its right-hand operand. It only exposes field();
applying a comparator to that field completes the combination:

    >>> Query.field('a').equal(1).or_().field('b').equal(2).build()
    'a EQ 1||b EQ 2'

Unsupported operand types are programming errors and fail with
AssertionError rather than a recoverable exception.
"""

from collections.abc import Callable, Sequence
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Final

from octane_sdk.common.formatting import format_number, to_iso_timestamp

__all__: list[str] = ['DelayQuery', 'Field', 'Operator', 'Query']


class Operator(str, Enum):
    """Expression node tags."""

    EQUAL = 'equal'
    LESS = 'less'
    GREATER = 'greater'
    LESS_EQUAL = 'less_equal'
    GREATER_EQUAL = 'greater_equal'
    BETWEEN = 'between'
    IN = 'in'
    AND = 'and'
    OR = 'or'
    NOT = 'not'
    GROUP = 'group'
    NONE = 'none'


class Query:
    """
    Immutable query expression node.

    Attributes:
        operator: Node tag selecting the rendering rule.
        operand1: Field name for comparisons, left query for combinators.
        operand2: Comparison value, or right query for and/or.
        operand3: Upper bound for between.
    """

    NULL: ClassVar['Query']
    NULL_REFERENCE: ClassVar['Query']
    NONE: ClassVar['Query']

    __slots__ = ('operand1', 'operand2', 'operand3', 'operator')

    def __init__(
        self,
        operator: Operator,
        operand1: Any = None,
        operand2: Any = None,
        operand3: Any = None,
    ) -> None:
        object.__setattr__(self, 'operator', operator)
        object.__setattr__(self, 'operand1', operand1)
        object.__setattr__(self, 'operand2', operand2)
        object.__setattr__(self, 'operand3', operand3)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError('Query is immutable')

    @staticmethod
    def field(name: str) -> 'Field':
        """Start a comparator chain on a field."""
        return Field(name)

    def group(self) -> 'Query':
        """Wrap this query in parentheses."""
        return Query(Operator.GROUP, self)

    def not_(self) -> 'Query':
        """Negate this query."""
        return Query(Operator.NOT, self)

    def and_(self, other: 'Query | None' = None) -> 'Query | DelayQuery':
        if isinstance(other, Query):
            return Query(Operator.AND, self, other)
        return DelayQuery(Operator.AND, self)

    def or_(self, other: 'Query | None' = None) -> 'Query | DelayQuery':
        if isinstance(other, Query):
            return Query(Operator.OR, self, other)
        return DelayQuery(Operator.OR, self)

    def build(self) -> str:
        """Render the expression tree to Octane query syntax."""
        renderer: Callable[..., str] = _RENDERERS[self.operator]
        return renderer(self.operand1, self.operand2, self.operand3)

    def __repr__(self) -> str:
        return f'Query({self.operator.value!r}, {self.operand1!r}, {self.operand2!r})'


Query.NULL = Query(Operator.NONE)
# NULL_REFERENCE must stay a distinct instance from NULL: it renders as {null}
Query.NULL_REFERENCE = Query.NONE = Query(Operator.NONE)


class DelayQuery:
    """
    An and/or combination waiting for its right-hand operand.

    Only field() is exposed; there is deliberately no build().
    """

    __slots__ = ('_left', '_operator')

    def __init__(self, operator: Operator, left: Query) -> None:
        self._operator: Operator = operator
        self._left: Query = left

    def field(self, name: str) -> 'Field':
        return Field(name, self)

    def fulfill(self, right: Query) -> Query:
        """Complete the pending combination with its right-hand operand."""
        return Query(self._operator, self._left, right)


class Field:
    """Comparator chain for a single field, optionally completing a DelayQuery."""

    __slots__ = ('_delay', 'name')

    def __init__(self, name: str, delay: DelayQuery | None = None) -> None:
        self.name: str = name
        self._delay: DelayQuery | None = delay

    def equal(self, value: Any) -> Query:
        return self._complete(Query(Operator.EQUAL, self.name, value))

    def not_equal(self, value: Any) -> Query:
        return self._complete(Query(Operator.EQUAL, self.name, value).not_())

    def less(self, value: Any) -> Query:
        return self._complete(Query(Operator.LESS, self.name, value))

    def not_less(self, value: Any) -> Query:
        return self._complete(Query(Operator.LESS, self.name, value).not_())

    def greater(self, value: Any) -> Query:
        return self._complete(Query(Operator.GREATER, self.name, value))

    def not_greater(self, value: Any) -> Query:
        return self._complete(Query(Operator.GREATER, self.name, value).not_())

    def less_equal(self, value: Any) -> Query:
        return self._complete(Query(Operator.LESS_EQUAL, self.name, value))

    def not_less_equal(self, value: Any) -> Query:
        return self._complete(Query(Operator.LESS_EQUAL, self.name, value).not_())

    def greater_equal(self, value: Any) -> Query:
        return self._complete(Query(Operator.GREATER_EQUAL, self.name, value))

    def not_greater_equal(self, value: Any) -> Query:
        return self._complete(Query(Operator.GREATER_EQUAL, self.name, value).not_())

    def between(self, lower: Any, upper: Any) -> Query:
        return self._complete(Query(Operator.BETWEEN, self.name, lower, upper))

    def in_comparison(self, values: Sequence[Any]) -> Query:
        return self._complete(Query(Operator.IN, self.name, values))

    def _complete(self, query: Query) -> Query:
        if self._delay is not None:
            return self._delay.fulfill(query)
        return query


# =============================================================================
# Rendering
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _require(condition: bool, message: str) -> None:
    # Explicit raise so the check survives python -O
    if not condition:
        raise AssertionError(message)


def _require_field(field_name: Any) -> None:
    _require(isinstance(field_name, str), f'Field name must be a string: {field_name!r}')


def _render_equal(field_name: Any, value: Any, _: Any = None) -> str:
    _require_field(field_name)
    if isinstance(value, bool):
        return f'{field_name} EQ {str(value).lower()}'
    if _is_number(value):
        return f'{field_name} EQ {format_number(value)}'
    if isinstance(value, str):
        return f'{field_name} EQ ^{value}^'
    if isinstance(value, date):
        return f'{field_name} EQ ^{to_iso_timestamp(value)}^'
    if value is Query.NULL:
        return f'{field_name} EQ {value.build()}'
    if isinstance(value, Query):
        return f'{field_name} EQ {{{value.build()}}}'
    raise AssertionError(f'Not supported data type: {value!r}')


def _compare(field_name: Any, value: Any, operator: str) -> str:
    _require_field(field_name)
    _require(
        _is_number(value) or isinstance(value, date),
        f'Not supported data type: {value!r}',
    )
    if _is_number(value):
        return f'{field_name} {operator} {format_number(value)}'
    return f'{field_name} {operator} ^{to_iso_timestamp(value)}^'


def _render_between(field_name: Any, lower: Any, upper: Any) -> str:
    _require_field(field_name)
    _require(
        (_is_number(lower) and _is_number(upper))
        or (isinstance(lower, date) and isinstance(upper, date)),
        f'Not supported data types: {lower!r}, {upper!r}',
    )
    if _is_number(lower):
        return f'{field_name} BTW {format_number(lower)}...{format_number(upper)}'
    return (
        f'{field_name} BTW ^{to_iso_timestamp(lower)}^...^{to_iso_timestamp(upper)}^'
    )


def _render_in(field_name: Any, values: Any, _: Any = None) -> str:
    _require_field(field_name)
    _require(isinstance(values, list | tuple), f'IN expects a list or tuple: {values!r}')
    rendered: list[str] = []
    for value in values:
        if _is_number(value):
            rendered.append(format_number(value))
        elif isinstance(value, str):
            rendered.append(f'^{value}^')
        elif isinstance(value, date):
            rendered.append(f'^{to_iso_timestamp(value)}^')
        elif isinstance(value, Query):
            rendered.append(f'{{{value.build()}}}')
        else:
            raise AssertionError(f'Not supported data type: {value!r}')
    return f'{field_name} IN ' + ','.join(rendered)


def _require_query(*queries: Any) -> None:
    for query in queries:
        _require(isinstance(query, Query), f'Expected a Query: {query!r}')


def _render_group(query: Any, *_: Any) -> str:
    _require_query(query)
    return f'({query.build()})'


def _render_not(query: Any, *_: Any) -> str:
    _require_query(query)
    return f'!{query.build()}'


def _render_and(left: Any, right: Any, _: Any = None) -> str:
    _require_query(left, right)
    return f'{left.build()};{right.build()}'


def _render_or(left: Any, right: Any, _: Any = None) -> str:
    _require_query(left, right)
    return f'{left.build()}||{right.build()}'


_RENDERERS: Final[dict[Operator, Callable[..., str]]] = {
    Operator.EQUAL: _render_equal,
    Operator.LESS: lambda f, v, _=None: _compare(f, v, 'LT'),
    Operator.GREATER: lambda f, v, _=None: _compare(f, v, 'GT'),
    Operator.LESS_EQUAL: lambda f, v, _=None: _compare(f, v, 'LE'),
    Operator.GREATER_EQUAL: lambda f, v, _=None: _compare(f, v, 'GE'),
    Operator.BETWEEN: _render_between,
    Operator.IN: _render_in,
    Operator.GROUP: _render_group,
    Operator.NOT: _render_not,
    Operator.AND: _render_and,
    Operator.OR: _render_or,
    Operator.NONE: lambda *_: 'null',
}
