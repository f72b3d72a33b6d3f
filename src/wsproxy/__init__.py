"""
wsproxy: schema-driven dynamic SOAP client.
DynamicProxy(wsdl_bytes) discovers services and operations; invoke any of them by name.

Library log records stay silent until the application calls
wsproxy.logging_config.setup_logging() (or logger.enable("wsproxy")).
"""
from loguru import logger

from wsproxy.core import (
    DynamicProxy,
    OperationSignature,
    ProxyConfig,
    ProxyError,
    parse_description,
)
from wsproxy.transport import SoapHttpTransport, Transport

logger.disable("wsproxy")

__all__ = [
    "DynamicProxy",
    "OperationSignature",
    "ProxyConfig",
    "ProxyError",
    "SoapHttpTransport",
    "Transport",
    "parse_description",
]
