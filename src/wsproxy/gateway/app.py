"""
HTTP gateway: exposes a DynamicProxy as JSON over HTTP (Starlette).
Errors use the envelope {"error": {"code": "...", "message": "..."}}.
"""
from __future__ import annotations

import base64
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from loguru import logger
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from wsproxy.core.errors import (
    ArityMismatch,
    OperationNotFound,
    ProxyError,
    ServiceNotFound,
    TransportTimeout,
    TypeMismatch,
)
from wsproxy.core.proxy import DynamicProxy
from wsproxy.core.values import decode_args
from wsproxy.gateway.openapi import build_openapi_spec

_STATUS: list[tuple[type[ProxyError], int]] = [
    (ServiceNotFound, 404),
    (OperationNotFound, 404),
    (ArityMismatch, 400),
    (TypeMismatch, 400),
    (TransportTimeout, 504),
]


def to_jsonable(value: Any) -> Any:
    """Typed results -> JSON-compatible values (Decimal as string, bytes as base64)."""
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


def error_response(error: ProxyError) -> JSONResponse:
    status = next((code for kind, code in _STATUS if isinstance(error, kind)), 502)
    return JSONResponse({"error": {"code": error.code, "message": error.message}}, status_code=status)


def create_gateway(proxy: DynamicProxy, *, title: str = "wsproxy", version: str = "0.1.0") -> Starlette:
    """ASGI app over a ready proxy. Invocations run in the threadpool (the transport blocks)."""

    async def list_services(request: Request) -> JSONResponse:
        return JSONResponse({"services": proxy.list_services()})

    async def list_operations(request: Request) -> JSONResponse:
        service = request.path_params["service"]
        try:
            return JSONResponse({"service": service, "operations": proxy.list_operations(service)})
        except ProxyError as e:
            return error_response(e)

    async def describe(request: Request) -> JSONResponse:
        service = request.path_params["service"]
        operation = request.path_params["operation"]
        try:
            signature = proxy.describe_operation(service, operation)
        except ProxyError as e:
            return error_response(e)
        return JSONResponse(
            {
                "service": service,
                "operation": operation,
                "parameters": [
                    {"name": p.name, "type": str(p.type), "optional": p.optional} for p in signature.parameters
                ],
                "return_type": str(signature.return_type),
            }
        )

    async def invoke(request: Request) -> JSONResponse:
        service = request.path_params["service"]
        operation = request.path_params["operation"]
        try:
            body = await request.json()
        except ValueError:
            body = None
        args = body.get("args", []) if isinstance(body, dict) else None
        if not isinstance(args, list):
            return JSONResponse(
                {"error": {"code": "BAD_REQUEST", "message": 'body must be {"args": [...]}'}}, status_code=400
            )
        try:
            signature = proxy.describe_operation(service, operation)
            args = decode_args(signature.parameters, args, proxy.registry.types)
            result = await run_in_threadpool(proxy.invoke, service, operation, args)
        except ProxyError as e:
            logger.info("Gateway call {}.{} failed: {}", service, operation, e)
            return error_response(e)
        return JSONResponse({"result": to_jsonable(result)})

    spec = build_openapi_spec(proxy.registry, title=title, version=version)

    async def openapi(request: Request) -> JSONResponse:
        return JSONResponse(spec)

    return Starlette(
        routes=[
            Route("/services", list_services),
            Route("/services/{service}/operations", list_operations),
            Route("/services/{service}/operations/{operation}", describe, methods=["GET"]),
            Route("/services/{service}/operations/{operation}", invoke, methods=["POST"]),
            Route("/openapi.json", openapi),
        ]
    )
