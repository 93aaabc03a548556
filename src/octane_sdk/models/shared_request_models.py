# octane_sdk/models/shared_request_models.py
"""
Transport-level request specification.

RequestSpec is the contract between the dispatcher (which builds it from a
route block and validated parameters) and the authenticated sender (which
executes and, after a 401, replays it). It holds no session state, so
replaying a spec after re-authentication sends an identical request.
"""

import logging
from enum import Enum
from io import IOBase
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger: logging.Logger = logging.getLogger(__name__)


class HTTPMethod(str, Enum):
    """Supported HTTP methods for API requests."""

    GET = 'GET'
    HEAD = 'HEAD'
    POST = 'POST'
    PUT = 'PUT'
    PATCH = 'PATCH'
    DELETE = 'DELETE'

    @property
    def carries_query_string(self) -> bool:
        """Whether parameters for this verb travel in the query string."""
        return self in (HTTPMethod.HEAD, HTTPMethod.GET, HTTPMethod.DELETE)


class RequestSpec(BaseModel):
    """
    Complete specification for an HTTP request.

    At most one of json_body, content or (form_entity, file_content) is used
    for the body; query_params apply to every verb.

    Attributes:
        url: Absolute URL, path parameters already substituted.
        method: HTTP method.
        headers: Extra per-request headers (session cookies come from the client).
        query_params: Query-string parameters.
        json_body: JSON request body, None when the request has no JSON body.
        content: Raw request body (already encoded text or bytes).
        form_entity: JSON text for the 'entity' part of a multipart upload.
        file_content: Readable binary handle for the 'content' multipart part.
        binary_response: Return the raw response bytes instead of decoded JSON.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, arbitrary_types_allowed=True)

    url: str
    method: HTTPMethod = HTTPMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)
    json_body: Any = None
    content: bytes | str | None = None
    form_entity: str | None = None
    file_content: IOBase | None = None
    binary_response: bool = False

    @property
    def is_multipart(self) -> bool:
        return self.form_entity is not None

    def rewind(self) -> None:
        """Reset the upload handle so the spec can be sent again."""
        if self.file_content is not None and self.file_content.seekable():
            self.file_content.seek(0)
