# octane_sdk/common/__init__.py

from octane_sdk.common.formatting import (
    format_number,
    normalize_name,
    to_iso_timestamp,
    trim_value,
)
from octane_sdk.common.http_client import build_ssl_verify, create_http_client
from octane_sdk.common.logger import setup_logger
from octane_sdk.common.truststore_context import build_truststore_ssl_context

__all__: list[str] = [
    'build_ssl_verify',
    'build_truststore_ssl_context',
    'create_http_client',
    'format_number',
    'normalize_name',
    'setup_logger',
    'to_iso_timestamp',
    'trim_value',
]
