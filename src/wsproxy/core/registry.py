"""Registry: service name -> ServiceDescriptor, per service operation name -> OperationDescriptor."""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from wsproxy.core.errors import OperationNotFound, ServiceNotFound
from wsproxy.core.model import ComplexTypeDef, OperationDescriptor, ServiceDescriptor, ServiceModel


class ServiceRegistry:
    """
    Read-only index over a ServiceModel, built once.
    Holds no mutable state after __init__, so concurrent readers need no locking.
    Only operations declared by the description exist here; nothing is inherited.
    """

    def __init__(self, model: ServiceModel) -> None:
        self._model = model
        services: dict[str, ServiceDescriptor] = {}
        operations: dict[str, Mapping[str, OperationDescriptor]] = {}
        for service in model.services:
            services[service.name] = service
            operations[service.name] = MappingProxyType({op.name: op for op in service.operations})
        self._services = MappingProxyType(services)
        self._operations = MappingProxyType(operations)

    @property
    def model(self) -> ServiceModel:
        return self._model

    @property
    def types(self) -> Mapping[str, ComplexTypeDef]:
        """Complex type table used to validate and coerce ComplexRef values."""
        return self._model.types

    def list_services(self) -> list[str]:
        """All service names in document order (possibly empty)."""
        return list(self._services)

    def lookup_service(self, name: str) -> ServiceDescriptor:
        try:
            return self._services[name]
        except KeyError:
            raise ServiceNotFound(name) from None

    def list_operations(self, service_name: str) -> list[str]:
        self.lookup_service(service_name)
        return list(self._operations[service_name])

    def lookup_operation(self, service_name: str, operation_name: str) -> OperationDescriptor:
        return self.resolve(service_name, operation_name)[1]

    def resolve(self, service_name: str, operation_name: str) -> tuple[ServiceDescriptor, OperationDescriptor]:
        """Both descriptors from a single service lookup. Raises ServiceNotFound / OperationNotFound."""
        service = self.lookup_service(service_name)
        try:
            return service, self._operations[service_name][operation_name]
        except KeyError:
            raise OperationNotFound(service_name, operation_name) from None

    def __contains__(self, service_name: object) -> bool:
        return service_name in self._services

    def __len__(self) -> int:
        return len(self._services)
