"""
Dynamic invoker: (service, operation, positional args) -> typed result.
Resolve via the registry, check arity and types, hand off to the transport, coerce the result.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
from typing import TYPE_CHECKING, Any, Sequence

from loguru import logger

from wsproxy.core.errors import ArityMismatch, ResultDecodeError, TransportError, TransportTimeout, TypeMismatch
from wsproxy.core.model import OperationDescriptor, ServiceDescriptor
from wsproxy.core.registry import ServiceRegistry
from wsproxy.core.values import ValueMismatch, check_value, coerce_value

if TYPE_CHECKING:
    from wsproxy.transport.protocol import Transport


def _param_path(name: str, path: str) -> str:
    if not path:
        return name
    return f"{name}{path}" if path.startswith("[") else f"{name}.{path}"


class DynamicInvoker:
    """
    Stateless apart from its two collaborators: no retries, no caching.
    Each call is independent; any shared mutable state lives inside the transport.
    """

    def __init__(self, registry: ServiceRegistry, transport: Transport) -> None:
        self._registry = registry
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    def bind(
        self,
        service: ServiceDescriptor,
        operation: OperationDescriptor,
        args: Sequence[Any],
    ) -> dict[str, Any]:
        """Positional args -> name -> normalized value, in declared order. Raises ArityMismatch / TypeMismatch."""
        params = operation.parameters
        if len(args) != len(params):
            raise ArityMismatch(service.name, operation.name, expected=len(params), got=len(args))
        bound: dict[str, Any] = {}
        for param, value in zip(params, args):
            try:
                bound[param.name] = check_value(value, param.type, self._registry.types, optional=param.optional)
            except ValueMismatch as exc:
                raise TypeMismatch(
                    service.name,
                    operation.name,
                    _param_path(param.name, exc.path),
                    exc.expected,
                    exc.actual,
                ) from None
        return bound

    def invoke(self, service_name: str, operation_name: str, args: Sequence[Any] = ()) -> Any:
        service, operation = self._registry.resolve(service_name, operation_name)
        arguments = self.bind(service, operation, list(args))

        logger.debug("Dispatching {}.{} with {} argument(s)", service.name, operation.name, len(arguments))
        try:
            raw = self._transport.perform_call(service, operation, arguments)
        except TransportError:
            raise
        except (TimeoutError, concurrent.futures.CancelledError, asyncio.CancelledError) as exc:
            raise TransportTimeout(
                f"call did not complete: {str(exc) or type(exc).__name__}",
                service_name=service.name,
                operation_name=operation.name,
                cause=exc,
            ) from exc
        except Exception as exc:
            raise TransportError(
                str(exc) or type(exc).__name__,
                service_name=service.name,
                operation_name=operation.name,
                cause=exc,
            ) from exc

        try:
            return coerce_value(raw, operation.return_type, self._registry.types)
        except ValueMismatch as exc:
            raise ResultDecodeError(service.name, operation.name, str(operation.return_type), str(exc)) from None
