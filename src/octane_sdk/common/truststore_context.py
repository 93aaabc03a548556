# octane_sdk/common/truststore_context.py
"""
SSL context factory backed by the operating system trust store.

Corporate TLS-inspecting proxies (Zscaler and similar) re-sign traffic with a
private root CA that lives in the Windows/macOS system store but not in
Python's bundled certificates. Verifying against the system store keeps SSL
verification on in those environments.
"""

import ssl
from ssl import SSLContext

__all__: list[str] = ['build_truststore_ssl_context']


def build_truststore_ssl_context() -> SSLContext:
    """
    Create a client SSLContext that validates certificates with truststore.

    Returns:
        SSLContext using the OS trust store.

    Raises:
        RuntimeError: If truststore is not installed.
    """
    try:
        import truststore  # noqa: PLC0415
    except ImportError as import_error:
        raise RuntimeError(
            'truststore is required when use_truststore=True; '
            'install it with: pip install truststore'
        ) from import_error

    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
