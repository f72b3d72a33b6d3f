"""Parameter introspection: ordered (name, type) pairs and return type of an operation."""
from __future__ import annotations

from typing import NamedTuple

from wsproxy.core.model import ParameterDescriptor, TypeRef
from wsproxy.core.registry import ServiceRegistry


class OperationSignature(NamedTuple):
    parameters: tuple[ParameterDescriptor, ...]
    return_type: TypeRef

    def pairs(self) -> list[tuple[str, str]]:
        """(name, type name) pairs in declaration order."""
        return [(p.name, str(p.type)) for p in self.parameters]


def describe_operation(registry: ServiceRegistry, service_name: str, operation_name: str) -> OperationSignature:
    """Exact, case-sensitive lookup. Raises ServiceNotFound / OperationNotFound."""
    operation = registry.lookup_operation(service_name, operation_name)
    return OperationSignature(operation.parameters, operation.return_type)
