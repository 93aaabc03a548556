# octane_sdk/validation.py
"""
Parameter validation and type coercion for route operations.

parse_params() checks a caller's message against an operation's declared
parameters before anything touches the network. Each declared parameter is
trimmed, checked for presence, and then coerced by sanitize_param() according
to its ParamSpec variant:

    integer      -> int, range checked against min_value / max_value
    boolean      -> must already be a bool
    date/datetime-> ISO-8601 UTC string ('...Z')
    string/memo  -> str, length checked against max_length
    object       -> mapping or list, passed through
    reference    -> Reference or MultiReference
    query        -> '"<rendered query>"'
    file         -> open binary handle for an absolute path

Any rejected value raises BadRequest naming the parameter. A parameter spec
with a type outside this set raises UnknownParameterTypeError, which is a
configuration error rather than an input error.
"""

import io
import json
import logging
import os
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from dateutil import parser as date_parser

from octane_sdk.common.formatting import to_iso_timestamp, trim_value
from octane_sdk.errors import BadRequest
from octane_sdk.models.reference import MultiReference, Reference
from octane_sdk.models.route_models import (
    BooleanParam,
    DateParam,
    FileParam,
    IntegerParam,
    ObjectParam,
    ParamSpec,
    QueryParam,
    ReferenceParam,
    StringParam,
    validate_param_spec,
)
from octane_sdk.query import Query

__all__: list[str] = ['close_file_params', 'parse_params', 'sanitize_param']

logger: logging.Logger = logging.getLogger(__name__)

# ASCII base-10 only: int() would also take '1_000' and non-ASCII digits
_INTEGER_PATTERN: re.Pattern[str] = re.compile(r'[+-]?[0-9]+')


class _InvalidValue(Exception):
    """Internal marker: the value failed its type's checks."""


# =============================================================================
# Public API
# =============================================================================


def parse_params(
    message: Mapping[str, Any] | list[Mapping[str, Any]] | None,
    params_schema: Mapping[str, ParamSpec | Mapping[str, Any]],
    defines: Mapping[str, ParamSpec | Mapping[str, Any]] | None = None,
) -> dict[str, Any] | list[dict[str, Any]]:
    """
    Validate and coerce a message against declared parameters.

    Only declared parameters survive: undeclared keys are dropped, and
    optional parameters with empty values (None, '' or whitespace) are left
    out of the result.

    Args:
        message: Parameter mapping, or a list of them for bulk operations.
        params_schema: Parameter name -> spec. Names starting with '$' are
            looked up in defines.
        defines: Reusable parameter specs for '$name' indirections.

    Returns:
        A new dict of sanitized parameters, or a list of such dicts when the
        message is a list.

    Raises:
        BadRequest: A required parameter is empty, a value is invalid, or a
            '$name' indirection cannot be resolved.
        UnknownParameterTypeError: A spec declares an unsupported type.
    """
    if not isinstance(message, list):
        return _parse_single(message or {}, params_schema, defines)

    entries: list[dict[str, Any]] = []
    try:
        for entry in message:
            entries.append(_parse_single(entry, params_schema, defines))
    except Exception:
        close_file_params(entries)
        raise
    return entries


def close_file_params(params: Mapping[str, Any] | list[Mapping[str, Any]] | None) -> None:
    """
    Close every file handle held by sanitized parameters.

    Handles opened for 'file' parameters belong to the call that validated
    them, wherever the dispatcher routed them afterwards. Closing an already
    closed handle is a no-op.

    Args:
        params: Result of parse_params(), or None.
    """
    if not params:
        return
    entries = params if isinstance(params, list) else [params]
    for entry in entries:
        for name, value in entry.items():
            if isinstance(value, io.IOBase) and not value.closed:
                value.close()
                logger.debug("Closed upload file for parameter '%s'", name)


def sanitize_param(
    name: str,
    value: Any,
    spec: ParamSpec | Mapping[str, Any],
) -> Any:
    """
    Coerce one parameter value according to its spec.

    Args:
        name: Parameter name, used in error messages.
        value: Raw (already trimmed) value.
        spec: A ParamSpec, or a raw mapping that is validated into one.

    Returns:
        The coerced value.

    Raises:
        BadRequest: The value does not satisfy the spec.
        UnknownParameterTypeError: The spec's type is not supported.
    """
    param_spec: ParamSpec = validate_param_spec(name, spec)

    try:
        return _sanitize(value, param_spec)
    except _InvalidValue:
        logger.debug("Rejected value for parameter '%s'", name)
        raise BadRequest(
            f"Invalid value for parameter '{name}': {_describe_value(value)}"
        ) from None


# =============================================================================
# Internals
# =============================================================================


def _parse_single(
    message: Mapping[str, Any],
    params_schema: Mapping[str, ParamSpec | Mapping[str, Any]],
    defines: Mapping[str, ParamSpec | Mapping[str, Any]] | None,
) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}
    try:
        _sanitize_declared(message, params_schema, defines, sanitized)
    except Exception:
        close_file_params(sanitized)
        raise
    return sanitized


def _sanitize_declared(
    message: Mapping[str, Any],
    params_schema: Mapping[str, ParamSpec | Mapping[str, Any]],
    defines: Mapping[str, ParamSpec | Mapping[str, Any]] | None,
    sanitized: dict[str, Any],
) -> None:
    for declared_name, declared_spec in params_schema.items():
        param_name: str = declared_name
        spec: ParamSpec | Mapping[str, Any] = declared_spec

        if declared_name.startswith('$'):
            param_name = declared_name[1:]
            if not defines or param_name not in defines:
                raise BadRequest(
                    'Invalid variable parameter name substitution; '
                    f"param '{param_name}' not found in defines block"
                )
            spec = defines[param_name]

        param_spec: ParamSpec = validate_param_spec(param_name, spec)
        value: Any = trim_value(message.get(param_name))

        if value is None or value == '':
            if param_spec.required:
                raise BadRequest(f"Empty value for parameter '{param_name}': {value}")
            continue

        sanitized[param_name] = sanitize_param(param_name, value, param_spec)


def _sanitize(value: Any, spec: ParamSpec) -> Any:  # noqa: PLR0911
    match spec:
        case IntegerParam():
            return _sanitize_integer(value, spec)
        case BooleanParam():
            if not isinstance(value, bool):
                raise _InvalidValue
            return value
        case DateParam():
            return _sanitize_date(value)
        case StringParam():
            if not isinstance(value, str):
                raise _InvalidValue
            if spec.max_length and len(value) > spec.max_length:
                raise _InvalidValue
            return value
        case ObjectParam():
            if not isinstance(value, Mapping | list | tuple):
                raise _InvalidValue
            return value
        case ReferenceParam():
            reference: Reference | MultiReference | None
            if spec.field_type_data.multiple:
                reference = MultiReference.parse(value)
            else:
                reference = Reference.parse(value)
            if reference is None:
                raise _InvalidValue
            return reference
        case QueryParam():
            if not isinstance(value, Query):
                raise _InvalidValue
            return f'"{value.build()}"'
        case FileParam():
            return _open_file(value)


def _sanitize_integer(value: Any, spec: IntegerParam) -> int:
    if isinstance(value, bool):
        raise _InvalidValue

    parsed: int
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif isinstance(value, str):
        if not _INTEGER_PATTERN.fullmatch(value):
            raise _InvalidValue
        parsed = int(value, 10)
    else:
        raise _InvalidValue

    if spec.min_value is not None and parsed < spec.min_value:
        raise _InvalidValue
    if spec.max_value is not None and parsed > spec.max_value:
        raise _InvalidValue
    return parsed


def _sanitize_date(value: Any) -> str:
    if isinstance(value, date):
        return to_iso_timestamp(value)

    if isinstance(value, int | float) and not isinstance(value, bool):
        # Numeric values are epoch milliseconds
        try:
            return to_iso_timestamp(datetime.fromtimestamp(value / 1000, tz=UTC))
        except (OverflowError, OSError, ValueError):
            raise _InvalidValue from None

    if isinstance(value, str):
        try:
            return to_iso_timestamp(date_parser.parse(value))
        except (date_parser.ParserError, OverflowError, ValueError):
            raise _InvalidValue from None

    raise _InvalidValue


def _open_file(value: Any) -> Any:
    if not isinstance(value, str) or not os.path.isabs(value):
        raise _InvalidValue
    try:
        handle = open(value, 'rb')  # noqa: SIM115 - closed by close_file_params()
    except OSError as e:
        logger.warning('Cannot open upload file %s: %s', value, e)
        raise _InvalidValue from None
    logger.debug('Opened upload file %s', value)
    return handle


def _describe_value(value: Any) -> str:
    if isinstance(value, Mapping | list):
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError):
            return repr(value)
    return str(value)
