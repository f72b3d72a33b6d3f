from wsproxy.core.config import Config, ProxyConfig
from wsproxy.core.errors import (
    ArityMismatch,
    DescriptionUnavailable,
    MalformedDocument,
    OperationNotFound,
    ParseError,
    ProxyError,
    RemoteFault,
    ResultDecodeError,
    ServiceNotFound,
    TransportError,
    TransportTimeout,
    TypeMismatch,
    UnsupportedDescription,
)
from wsproxy.core.introspection import OperationSignature, describe_operation
from wsproxy.core.invoker import DynamicInvoker
from wsproxy.core.parser import parse_description
from wsproxy.core.proxy import DynamicProxy
from wsproxy.core.registry import ServiceRegistry

__all__ = [
    "ArityMismatch",
    "Config",
    "DescriptionUnavailable",
    "DynamicInvoker",
    "DynamicProxy",
    "MalformedDocument",
    "OperationNotFound",
    "OperationSignature",
    "ParseError",
    "ProxyConfig",
    "ProxyError",
    "RemoteFault",
    "ResultDecodeError",
    "ServiceNotFound",
    "ServiceRegistry",
    "TransportError",
    "TransportTimeout",
    "TypeMismatch",
    "UnsupportedDescription",
    "describe_operation",
    "parse_description",
]
