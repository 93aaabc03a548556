# octane_sdk/models/route_models.py
"""
Declarative route document models.

A route document is a JSON tree. Its 'defines' block supplies constants and
a registry of reusable parameter specs. Every other node is either a
namespace (a mapping of child nodes) or a leaf route, which is a node with
both 'url' and 'params'.

Parameter specs are a closed tagged union keyed on 'type'. A spec that
declares an unknown type fails validation when the document is compiled,
before any operation can be invoked.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Final, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from octane_sdk.errors import RouteConfigurationError, UnknownParameterTypeError
from octane_sdk.models.shared_request_models import HTTPMethod

__all__: list[str] = [
    'BooleanParam',
    'DateParam',
    'FieldTypeData',
    'FileParam',
    'IntegerParam',
    'MULTIPART_FORM_DATA',
    'OCTET_STREAM',
    'ObjectParam',
    'PARAM_SPEC_ADAPTER',
    'ParamSpec',
    'QueryParam',
    'ReferenceParam',
    'RouteBlock',
    'RouteDefines',
    'StringParam',
    'validate_param_spec',
]

MULTIPART_FORM_DATA: Final[str] = 'multipart/form-data'
OCTET_STREAM: Final[str] = 'application/octet-stream'


# =============================================================================
# Parameter Specifications
# =============================================================================


class _BaseParam(BaseModel):
    # Vendor metadata carries many descriptive keys we do not act on
    model_config = ConfigDict(extra='ignore', frozen=True)

    required: bool = False
    description: str | None = None


class IntegerParam(_BaseParam):
    type: Literal['integer']
    min_value: int | None = None
    max_value: int | None = None


class BooleanParam(_BaseParam):
    type: Literal['boolean']


class DateParam(_BaseParam):
    type: Literal['date', 'datetime']


class StringParam(_BaseParam):
    type: Literal['string', 'memo']
    max_length: int | None = None


class ObjectParam(_BaseParam):
    type: Literal['object']


class FieldTypeData(BaseModel):
    model_config = ConfigDict(extra='ignore', frozen=True)

    multiple: bool = False


class ReferenceParam(_BaseParam):
    type: Literal['reference']
    field_type_data: FieldTypeData = Field(default_factory=FieldTypeData)

    @field_validator('field_type_data', mode='before')
    @classmethod
    def default_field_type_data(cls, value: Any) -> Any:
        """Generated documents write null when the field has no extra data."""
        return FieldTypeData() if value is None else value


class QueryParam(_BaseParam):
    type: Literal['query']


class FileParam(_BaseParam):
    type: Literal['file']


ParamSpec = Annotated[
    IntegerParam
    | BooleanParam
    | DateParam
    | StringParam
    | ObjectParam
    | ReferenceParam
    | QueryParam
    | FileParam,
    Field(discriminator='type'),
]

PARAM_SPEC_ADAPTER: Final[TypeAdapter[ParamSpec]] = TypeAdapter(ParamSpec)

_UNKNOWN_TAG_ERRORS: Final[frozenset[str]] = frozenset(
    {'union_tag_invalid', 'union_tag_not_found'}
)


def validate_param_spec(name: str, raw: Any) -> ParamSpec:
    """
    Validate one raw parameter spec into its ParamSpec variant.

    Args:
        name: Parameter name, used in error messages.
        raw: A ParamSpec (returned unchanged) or a mapping from a route document.

    Returns:
        The validated ParamSpec.

    Raises:
        UnknownParameterTypeError: 'type' is missing or not a supported tag.
        RouteConfigurationError: The type is known but its constraints are malformed.
    """
    if isinstance(raw, _BaseParam):
        return raw  # type: ignore[return-value]

    try:
        return PARAM_SPEC_ADAPTER.validate_python(raw)
    except ValidationError as e:
        declared_type: Any = raw.get('type') if isinstance(raw, Mapping) else None
        if any(error['type'] in _UNKNOWN_TAG_ERRORS for error in e.errors()):
            raise UnknownParameterTypeError(name, declared_type) from e
        raise RouteConfigurationError(
            f"Malformed spec for parameter '{name}' ({declared_type}): {e}"
        ) from e


# =============================================================================
# Route Definitions
# =============================================================================


class RouteDefines(BaseModel):
    """
    The 'defines' block of a route document.

    Attributes:
        constants: Default connection values (e.g. host, protocol).
        params: Reusable parameter specs referenced by leaves as '$name'.
    """

    model_config = ConfigDict(extra='ignore', frozen=True)

    constants: dict[str, Any] = Field(default_factory=dict)
    params: dict[str, dict[str, Any]] = Field(default_factory=dict)


class RouteBlock(BaseModel):
    """
    A compiled leaf route: one invokable API operation.

    Parameter names are already resolved (no '$' prefix remains) and every
    spec is validated. Instances are frozen and shared by all calls; request
    building works on copies of the URL template, never on the block.

    Attributes:
        namespace: Normalized namespace, e.g. 'defects'.
        operation: Normalized operation name, e.g. 'get_all'.
        url: Path template relative to the workspace API root, with
            ':param' placeholders.
        method: HTTP verb.
        params: Parameter name -> spec, in document order.
        accept: Optional accept media type override.
        content_type: Optional request content type override.
        description: Human-readable description.
    """

    model_config = ConfigDict(extra='forbid', frozen=True, populate_by_name=True)

    namespace: str
    operation: str
    url: str
    method: HTTPMethod
    params: dict[str, ParamSpec] = Field(default_factory=dict)
    accept: str | None = None
    content_type: str | None = Field(default=None, alias='content-type')
    description: str | None = None

    @field_validator('method', mode='before')
    @classmethod
    def normalize_method(cls, method: Any) -> Any:
        """Route documents spell verbs in any case; the enum is upper-case."""
        return method.upper() if isinstance(method, str) else method

    @property
    def is_multipart(self) -> bool:
        return self.content_type == MULTIPART_FORM_DATA

    @property
    def is_binary_response(self) -> bool:
        return self.accept == OCTET_STREAM
