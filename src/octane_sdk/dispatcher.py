# octane_sdk/dispatcher.py
"""
Generic request dispatch for compiled routes.

One code path serves every route in the registry:

1. build_request_spec() turns validated parameters plus a RouteBlock into a
   RequestSpec: path placeholders substituted, body shaped into the vendor
   envelope, and placed in the query string, a JSON body or a multipart form.
2. send_request() executes the spec over an httpx.AsyncClient, converting
   transport failures to TransportError and error statuses to typed
   HttpErrors. A 401 becomes SessionExpiredError so the authenticator can
   re-authenticate and replay.
3. reshape_response() unwraps the response envelope for the caller.

Body Shaping:
-------------
- list message (bulk)          -> {'data': [<entity>, ...]}
- POST, not multipart          -> {'data': [<entity>]}
- anything else                -> <entity>

Envelope Unwrapping:
--------------------
- binary response              -> raw bytes
- GET {total_count, data}      -> EntityList(data, total_count)
- POST {data: [<one entity>]}  -> <entity>
- empty body                   -> None
"""

import json
import logging
import os
from collections.abc import Mapping
from io import IOBase
from typing import Any, Final
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from octane_sdk.errors import (
    HTTP_STATUS_UNAUTHORIZED,
    HttpError,
    SessionExpiredError,
    TransportError,
)
from octane_sdk.models import (
    OCTET_STREAM,
    EntityList,
    FileParam,
    HTTPMethod,
    RequestSpec,
    RouteBlock,
)

__all__: list[str] = [
    'build_request_spec',
    'check_response',
    'decode_body',
    'reshape_response',
    'send_request',
    'to_wire',
]

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_FILE_PARAM: Final[str] = 'file'
ENTITY_PART: Final[str] = 'entity'
CONTENT_PART: Final[str] = 'content'
JSON_CONTENT_TYPE: Final[str] = 'application/json'
LOG_BODY_PREVIEW_CHARS: Final[int] = 500
HTTP_STATUS_ERROR_MIN: Final[int] = 400


# =============================================================================
# Request Building
# =============================================================================


def build_request_spec(
    params: Mapping[str, Any] | list[Mapping[str, Any]],
    route: RouteBlock,
    base_url: str,
) -> RequestSpec:
    """
    Build the wire request for one route invocation.

    The route is never modified; placeholders are substituted on a local copy
    of its URL template.

    Args:
        params: Validated parameters (output of parse_params), or a list of
            them for bulk operations.
        route: Compiled route definition.
        base_url: Workspace API root the route URL is relative to.

    Returns:
        RequestSpec ready for send_request().
    """
    method: HTTPMethod = route.method
    url_template: str = route.url
    body: Any

    if isinstance(params, list):
        entities: list[dict[str, Any]] = []
        for entry in params:
            entity, url_template = _split_url_params(entry, route, url_template)
            entities.append(entity)
        body = {'data': entities}
    else:
        entity, url_template = _split_url_params(params, route, url_template)
        if method is HTTPMethod.POST and not route.is_multipart:
            body = {'data': [entity]}
        else:
            body = entity

    headers: dict[str, str] = {}
    if route.is_binary_response:
        headers['accept'] = OCTET_STREAM

    url: str = f'{base_url.rstrip("/")}{url_template}'

    if method.carries_query_string:
        return RequestSpec(
            url=url,
            method=method,
            headers=headers,
            query_params=_to_query_params(body),
            binary_response=route.is_binary_response,
        )

    if method is HTTPMethod.POST and route.is_multipart:
        entity_fields: dict[str, Any] = dict(body)
        content: Any = None
        for file_param in _file_param_names(route):
            if file_param in entity_fields:
                content = entity_fields.pop(file_param)
                break
        return RequestSpec(
            url=url,
            method=method,
            headers=headers,
            form_entity=json.dumps(to_wire(entity_fields)),
            file_content=content,
            binary_response=route.is_binary_response,
        )

    return RequestSpec(
        url=url,
        method=method,
        headers=headers,
        json_body=to_wire(body),
        binary_response=route.is_binary_response,
    )


def to_wire(value: Any) -> Any:
    """Convert models (Reference, MultiReference) nested in a body to plain JSON values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json')
    if isinstance(value, Mapping):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_wire(item) for item in value]
    return value


def _split_url_params(
    params: Mapping[str, Any],
    route: RouteBlock,
    url_template: str,
) -> tuple[dict[str, Any], str]:
    """Substitute ':name' placeholders and return the remaining body fields."""
    body: dict[str, Any] = {}

    for param_name in route.params:
        if param_name not in params:
            continue

        value: Any = params[param_name]
        placeholder: str = f':{param_name}'
        if placeholder in url_template:
            url_template = url_template.replace(placeholder, quote(str(value), safe=''), 1)
        else:
            body[param_name] = value

    return body, url_template


def _file_param_names(route: RouteBlock) -> list[str]:
    declared: list[str] = [
        name for name, spec in route.params.items() if isinstance(spec, FileParam)
    ]
    return declared or [DEFAULT_FILE_PARAM]


def _to_query_params(body: Mapping[str, Any]) -> dict[str, str]:
    query_params: dict[str, str] = {}
    for key, value in body.items():
        if isinstance(value, bool):
            query_params[key] = 'true' if value else 'false'
        elif isinstance(value, BaseModel | Mapping | list | tuple):
            query_params[key] = json.dumps(to_wire(value), separators=(',', ':'))
        else:
            query_params[key] = str(value)
    return query_params


# =============================================================================
# HTTP Execution
# =============================================================================


async def send_request(
    http_client: httpx.AsyncClient,
    request_spec: RequestSpec,
) -> httpx.Response:
    """
    Send a RequestSpec and fail on any non-success status.

    Args:
        http_client: Client holding the session cookies and default headers.
        request_spec: Request to send. Its upload handle is rewound first, so
            a spec can be replayed after re-authentication.

    Returns:
        The successful httpx Response.

    Raises:
        TransportError: On timeout or connection errors.
        SessionExpiredError: On HTTP 401.
        HttpError: On any other status >= 400 (registered subclass per code).
    """
    request_spec.rewind()

    request_kwargs: dict[str, Any] = {
        'params': request_spec.query_params or None,
        'headers': request_spec.headers or None,
    }
    if request_spec.is_multipart:
        request_kwargs['files'] = _build_multipart(request_spec)
    elif request_spec.json_body is not None:
        request_kwargs['json'] = request_spec.json_body
    elif request_spec.content is not None:
        request_kwargs['content'] = request_spec.content

    logger.debug('%s %s', request_spec.method.value, request_spec.url)

    try:
        response: httpx.Response = await http_client.request(
            request_spec.method.value,
            request_spec.url,
            **request_kwargs,
        )
    except httpx.TimeoutException as error:
        logger.warning('Request timeout: %s', request_spec.url)
        raise TransportError(f'Request timeout: {error}') from error
    except httpx.RequestError as error:
        logger.warning('Connection error: %s - %s', request_spec.url, error)
        raise TransportError(f'Connection error: {error}') from error

    check_response(response)
    return response


def check_response(response: httpx.Response) -> None:
    """
    Raise the typed error for a failed response.

    Raises:
        SessionExpiredError: On HTTP 401.
        HttpError: On any other status >= 400.
    """
    if response.status_code < HTTP_STATUS_ERROR_MIN:
        return

    body: Any = decode_body(response)
    headers: dict[str, str] = dict(response.headers)

    if response.status_code == HTTP_STATUS_UNAUTHORIZED:
        logger.info('Session rejected (401) for %s', response.request.url)
        raise SessionExpiredError(
            message=_preview(response), code=response.status_code, body=body, headers=headers
        )

    logger.error(
        'HTTP error %d for %s: %s',
        response.status_code,
        response.request.url,
        response.text[:LOG_BODY_PREVIEW_CHARS],
    )
    raise HttpError.from_status(response.status_code, body=body, headers=headers)


def _build_multipart(request_spec: RequestSpec) -> dict[str, Any]:
    files: dict[str, Any] = {
        ENTITY_PART: (None, request_spec.form_entity, JSON_CONTENT_TYPE),
    }
    content: IOBase | None = request_spec.file_content
    if content is not None:
        file_name: str = os.path.basename(str(getattr(content, 'name', CONTENT_PART)))
        files[CONTENT_PART] = (file_name, content, OCTET_STREAM)
    return files


def _preview(response: httpx.Response) -> str | None:
    return response.text[:LOG_BODY_PREVIEW_CHARS] or None


# =============================================================================
# Response Shaping
# =============================================================================


def decode_body(response: httpx.Response) -> Any:
    """Decode a JSON response body; fall back to text, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def reshape_response(
    method: HTTPMethod | str,
    response: httpx.Response,
    binary_response: bool = False,
) -> Any:
    """
    Unwrap the vendor response envelope.

    Args:
        method: HTTP method of the request that produced the response.
        response: Successful response.
        binary_response: Return the raw bytes regardless of content type.

    Returns:
        bytes, EntityList, a single entity, the decoded JSON, or None.
    """
    content_type: str = response.headers.get('content-type', '')
    if binary_response or content_type.startswith(OCTET_STREAM):
        return response.content

    body: Any = decode_body(response)
    method = HTTPMethod(method.upper())

    if not isinstance(body, dict):
        return body

    if method is HTTPMethod.GET and 'total_count' in body and 'data' in body:
        return EntityList(body['data'], total_count=body['total_count'])

    if method is HTTPMethod.POST and isinstance(body.get('data'), list) and len(body['data']) == 1:
        return body['data'][0]

    return body
