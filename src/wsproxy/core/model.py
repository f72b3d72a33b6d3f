"""
In-memory model of a service description: services, operations, parameters, types.
Everything here is frozen; a model is built once by the parser and never mutated.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union


class PrimitiveKind(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOL = "bool"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    BYTES = "bytes"
    ANY = "any"
    VOID = "void"


@dataclass(frozen=True)
class PrimitiveType:
    kind: PrimitiveKind

    def __str__(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class ComplexRef:
    """Reference by name to a ComplexTypeDef in ServiceModel.types."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType:
    item: TypeRef

    def __str__(self) -> str:
        return f"{self.item}[]"


TypeRef = Union[PrimitiveType, ComplexRef, ArrayType]

VOID = PrimitiveType(PrimitiveKind.VOID)
ANY = PrimitiveType(PrimitiveKind.ANY)


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    type: TypeRef
    optional: bool = False


@dataclass(frozen=True)
class ComplexTypeDef:
    """Shape of a complex value: named fields in declaration order."""

    name: str
    fields: tuple[FieldDescriptor, ...] = ()

    def field(self, name: str) -> FieldDescriptor | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    type: TypeRef
    optional: bool = False

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


@dataclass(frozen=True)
class OperationDescriptor:
    """
    One callable remote operation. `parameters` order is call-significant.
    The remaining fields are wire details the transport needs to address the call.

    result_shape tells the transport where the result lives in the response body:
      "child"  - the single child of the response wrapper (None when absent)
      "record" - all children of the response wrapper, as a mapping
      "body"   - the body's own part element(s), no wrapper (bare document style)
    """

    name: str
    parameters: tuple[ParameterDescriptor, ...]
    return_type: TypeRef
    soap_action: str = ""
    style: str = "document"
    namespace: str = ""
    request_element: str = ""
    qualified: bool = True
    result_shape: str = "child"

    def signature(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        return f"{self.name}({params}) -> {self.return_type}"


@dataclass(frozen=True)
class ServiceDescriptor:
    name: str
    operations: tuple[OperationDescriptor, ...]
    address: str = ""
    port_name: str = ""
    soap_version: str = "1.1"

    def operation(self, name: str) -> OperationDescriptor | None:
        for op in self.operations:
            if op.name == name:
                return op
        return None


@dataclass(frozen=True)
class ServiceModel:
    """The fully-parsed description. `types` maps complex type names to their shapes."""

    services: tuple[ServiceDescriptor, ...] = ()
    types: Mapping[str, ComplexTypeDef] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    target_namespace: str = ""
