"""SOAP over HTTP transport: the default Transport, one httpx.Client per instance."""
from __future__ import annotations

import threading
from typing import Any

import httpx
from loguru import logger

from wsproxy.core.config import ProxyConfig
from wsproxy.core.errors import TransportError, TransportTimeout
from wsproxy.core.model import OperationDescriptor, ServiceDescriptor
from wsproxy.transport.envelope import SoapEnvelopeBuilder, SoapResponseParser


class SoapHttpTransport:
    """
    POSTs a SOAP envelope to the port address (or a configured override) and parses the reply.
    No retries: failures surface as TransportError / TransportTimeout / RemoteFault.
    """

    def __init__(
        self,
        config: ProxyConfig | None = None,
        *,
        client: httpx.Client | None = None,
        builder: SoapEnvelopeBuilder | None = None,
        parser: SoapResponseParser | None = None,
    ) -> None:
        self.config = config or ProxyConfig()
        self._client = client
        self._client_lock = threading.Lock()
        self._builder = builder or SoapEnvelopeBuilder()
        self._parser = parser or SoapResponseParser()

    def _get_client(self) -> httpx.Client:
        # shared by threadpool workers: one client per transport
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    timeout=httpx.Timeout(self.config.timeout),
                    verify=self.config.verify,
                )
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None

    def __enter__(self) -> SoapHttpTransport:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @staticmethod
    def _headers(service: ServiceDescriptor, operation: OperationDescriptor) -> dict[str, str]:
        if service.soap_version == "1.2":
            content_type = "application/soap+xml; charset=utf-8"
            if operation.soap_action:
                content_type += f'; action="{operation.soap_action}"'
            return {"Content-Type": content_type, "Accept": "application/soap+xml, text/xml"}
        return {
            "Content-Type": "text/xml; charset=utf-8",
            "Accept": "text/xml",
            "SOAPAction": f'"{operation.soap_action}"',
        }

    def perform_call(
        self,
        service: ServiceDescriptor,
        operation: OperationDescriptor,
        arguments: dict[str, Any],
    ) -> Any:
        url = self.config.endpoint_for(service)
        if not url:
            raise TransportError(
                "no endpoint address in description or config",
                service_name=service.name,
                operation_name=operation.name,
            )
        envelope = self._builder.build(service, operation, arguments)
        try:
            response = self._get_client().post(
                url,
                content=envelope.encode("utf-8"),
                headers=self._headers(service, operation),
            )
        except httpx.TimeoutException as e:
            logger.warning("Timeout calling {}.{} at {}", service.name, operation.name, url)
            raise TransportTimeout(
                f"timed out after {self.config.timeout}s", service_name=service.name, operation_name=operation.name, cause=e
            ) from e
        except httpx.HTTPError as e:
            logger.error("Request error calling {}.{} at {}: {}", service.name, operation.name, url, e)
            raise TransportError(str(e), service_name=service.name, operation_name=operation.name, cause=e) from e

        if response.is_error:
            # SOAP 1.1 faults travel with HTTP 500
            self._parser.raise_for_fault(response.content, service, operation)
            logger.error("HTTP {} calling {}.{}", response.status_code, service.name, operation.name)
            raise TransportError(
                f"HTTP {response.status_code}", service_name=service.name, operation_name=operation.name
            )
        return self._parser.parse(response.content, service, operation)
