# octane_sdk/models/__init__.py

from octane_sdk.models.reference import MultiReference, Reference
from octane_sdk.models.route_models import (
    MULTIPART_FORM_DATA,
    OCTET_STREAM,
    PARAM_SPEC_ADAPTER,
    BooleanParam,
    DateParam,
    FieldTypeData,
    FileParam,
    IntegerParam,
    ObjectParam,
    ParamSpec,
    QueryParam,
    ReferenceParam,
    RouteBlock,
    RouteDefines,
    StringParam,
    validate_param_spec,
)
from octane_sdk.models.shared_request_models import HTTPMethod, RequestSpec
from octane_sdk.models.shared_response_models import EntityList

__all__: list[str] = [
    'MULTIPART_FORM_DATA',
    'OCTET_STREAM',
    'PARAM_SPEC_ADAPTER',
    'BooleanParam',
    'DateParam',
    'EntityList',
    'FieldTypeData',
    'FileParam',
    'HTTPMethod',
    'IntegerParam',
    'MultiReference',
    'ObjectParam',
    'ParamSpec',
    'QueryParam',
    'Reference',
    'ReferenceParam',
    'RequestSpec',
    'RouteBlock',
    'RouteDefines',
    'StringParam',
    'validate_param_spec',
]
