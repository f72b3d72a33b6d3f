"""OpenAPI 3.0 document for the gateway, generated from the service model."""
from __future__ import annotations

from typing import Any

from wsproxy.core.model import ArrayType, ComplexRef, PrimitiveKind, PrimitiveType, TypeRef
from wsproxy.core.registry import ServiceRegistry

_PRIMITIVE_SCHEMAS: dict[PrimitiveKind, dict[str, Any]] = {
    PrimitiveKind.STRING: {"type": "string"},
    PrimitiveKind.INT: {"type": "integer"},
    PrimitiveKind.FLOAT: {"type": "number"},
    PrimitiveKind.DECIMAL: {"type": "string", "format": "decimal"},
    PrimitiveKind.BOOL: {"type": "boolean"},
    PrimitiveKind.DATETIME: {"type": "string", "format": "date-time"},
    PrimitiveKind.DATE: {"type": "string", "format": "date"},
    PrimitiveKind.TIME: {"type": "string", "format": "time"},
    PrimitiveKind.BYTES: {"type": "string", "format": "byte"},
    PrimitiveKind.ANY: {},
    PrimitiveKind.VOID: {"nullable": True},
}


def type_schema(type_ref: TypeRef) -> dict[str, Any]:
    if isinstance(type_ref, PrimitiveType):
        return dict(_PRIMITIVE_SCHEMAS[type_ref.kind])
    if isinstance(type_ref, ArrayType):
        return {"type": "array", "items": type_schema(type_ref.item)}
    if isinstance(type_ref, ComplexRef):
        return {"$ref": f"#/components/schemas/{type_ref.name}"}
    raise TypeError(f"not a type reference: {type_ref!r}")


def build_openapi_spec(registry: ServiceRegistry, *, title: str = "wsproxy", version: str = "0.1.0") -> dict[str, Any]:
    """One POST path per operation; args are a positional JSON array, parameter order in x-parameters."""
    paths: dict[str, Any] = {}
    for service_name in registry.list_services():
        for op_name in registry.list_operations(service_name):
            op = registry.lookup_operation(service_name, op_name)
            args_schema = {
                "type": "array",
                "minItems": len(op.parameters),
                "maxItems": len(op.parameters),
                "items": {},
                "description": ", ".join(str(p) for p in op.parameters) or "no arguments",
                "x-parameters": [dict(type_schema(p.type), title=p.name) for p in op.parameters],
            }
            paths[f"/services/{service_name}/operations/{op_name}"] = {
                "post": {
                    "summary": op.signature(),
                    "tags": [service_name],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {"args": args_schema},
                                    "required": ["args"],
                                }
                            }
                        },
                    },
                    "responses": {
                        "200": {
                            "description": "OK",
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "type": "object",
                                        "properties": {"result": type_schema(op.return_type)},
                                    }
                                }
                            },
                        },
                    },
                }
            }

    schemas: dict[str, Any] = {}
    for name, definition in registry.types.items():
        schemas[name] = {
            "type": "object",
            "properties": {f.name: type_schema(f.type) for f in definition.fields},
            "required": [f.name for f in definition.fields if not f.optional],
        }
    return {
        "openapi": "3.0.0",
        "info": {"title": title, "version": version},
        "paths": paths,
        "components": {"schemas": schemas},
    }
