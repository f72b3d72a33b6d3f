"""
DynamicProxy: one object per service description.
Construction parses the document and builds the registry; it either fully succeeds
(Ready) or raises (Failed) and leaves nothing behind. A fresh parse needs a fresh proxy.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from loguru import logger

from wsproxy.core.config import ProxyConfig
from wsproxy.core.introspection import OperationSignature, describe_operation
from wsproxy.core.invoker import DynamicInvoker
from wsproxy.core.parser import parse_description
from wsproxy.core.registry import ServiceRegistry

if TYPE_CHECKING:
    from wsproxy.core.model import ServiceModel
    from wsproxy.transport.protocol import Transport


class DynamicProxy:
    """
    Discover services/operations from a WSDL document and invoke any of them by name.
    transport: any object with perform_call(service, operation, arguments); defaults to SOAP over HTTP.
    """

    def __init__(
        self,
        document: bytes | str,
        transport: Transport | None = None,
        config: ProxyConfig | None = None,
    ) -> None:
        self.config = config or ProxyConfig()
        model = parse_description(document)
        registry = ServiceRegistry(model)
        if transport is None:
            from wsproxy.transport.soap_http import SoapHttpTransport

            transport = SoapHttpTransport(self.config)
        self._registry = registry
        self._invoker = DynamicInvoker(registry, transport)
        logger.debug("Proxy ready: services={}", registry.list_services())

    @classmethod
    def from_location(
        cls,
        location: str,
        transport: Transport | None = None,
        config: ProxyConfig | None = None,
    ) -> DynamicProxy:
        """Retrieve the description (path or http(s) URL) and build a proxy from it."""
        from wsproxy.transport.fetch import fetch_description

        return cls(fetch_description(location, config), transport=transport, config=config)

    @property
    def model(self) -> ServiceModel:
        return self._registry.model

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    @property
    def transport(self) -> Transport:
        return self._invoker.transport

    @property
    def services(self) -> list[str]:
        return self._registry.list_services()

    def list_services(self) -> list[str]:
        return self._registry.list_services()

    def list_operations(self, service_name: str) -> list[str]:
        """Operation names of a service in declaration order. Raises ServiceNotFound."""
        return self._registry.list_operations(service_name)

    def describe_operation(self, service_name: str, operation_name: str) -> OperationSignature:
        """(parameters, return_type). Raises ServiceNotFound / OperationNotFound."""
        return describe_operation(self._registry, service_name, operation_name)

    def invoke(self, service_name: str, operation_name: str, args: Sequence[Any] = ()) -> Any:
        """Call an operation with positional args; see DynamicInvoker for the failure modes."""
        return self._invoker.invoke(service_name, operation_name, args)

    def close(self) -> None:
        """Close the transport if it holds resources (e.g. an HTTP client)."""
        close = getattr(self._invoker.transport, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> DynamicProxy:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
