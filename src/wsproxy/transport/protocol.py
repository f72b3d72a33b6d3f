"""Transport protocol: perform one remote call for a resolved operation. Implementation is the user's choice."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from wsproxy.core.model import OperationDescriptor, ServiceDescriptor


@runtime_checkable
class Transport(Protocol):
    """
    Remote call boundary: resolved descriptors + bound arguments (name -> value, declared order)
    in, raw result out. SOAP over HTTP, an in-process stub or a test mock all fit.
    Failures should be raised; retries, timeouts and pooling are the transport's own business.
    """

    def perform_call(
        self,
        service: ServiceDescriptor,
        operation: OperationDescriptor,
        arguments: dict[str, Any],
    ) -> Any:
        ...
