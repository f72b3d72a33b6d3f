"""
CLI for exploring and calling SOAP services: services, operations, describe, invoke.
LOCATION is a WSDL file path or an http(s) URL (e.g. http://host/Service.asmx?WSDL).
"""
from __future__ import annotations

import json
from typing import List, NoReturn, Optional

import typer

from wsproxy.core.config import ProxyConfig
from wsproxy.core.errors import ProxyError
from wsproxy.core.model import ParameterDescriptor, PrimitiveKind, PrimitiveType
from wsproxy.core.proxy import DynamicProxy
from wsproxy.core.values import decode_args
from wsproxy.gateway.app import to_jsonable
from wsproxy.logging_config import setup_logging

app = typer.Typer(help="wsproxy CLI: discover and invoke SOAP operations from a WSDL.")


@app.callback()
def configure(
    ctx: typer.Context,
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="HTTP timeout in seconds"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Override the port address"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
) -> None:
    """Defaults come from WSPROXY_* environment variables; options override them."""
    config = ProxyConfig.from_env()
    if timeout is not None:
        config.timeout = timeout
    if endpoint is not None:
        config.endpoint = endpoint
    if log_level is not None:
        config.log_level = log_level.upper()
    setup_logging(level=config.log_level)
    ctx.obj = config


def _open(ctx: typer.Context, location: str) -> DynamicProxy:
    try:
        return DynamicProxy.from_location(location, config=ctx.obj)
    except ProxyError as e:
        _fail(e)


def _fail(error: ProxyError) -> NoReturn:
    typer.echo(str(error), err=True)
    raise typer.Exit(1)


def _parse_arg(text: str) -> object:
    """JSON when it parses (5, true, {"x": 1}), otherwise the raw string."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def _parse_args(parameters: tuple[ParameterDescriptor, ...], texts: List[str]) -> list[object]:
    """String parameters keep their text verbatim (12345, true, null stay strings); the rest are JSON-decoded."""
    if len(texts) != len(parameters):
        return [_parse_arg(t) for t in texts]
    return [
        t if p.type == PrimitiveType(PrimitiveKind.STRING) else _parse_arg(t) for p, t in zip(parameters, texts)
    ]


@app.command()
def services(
    ctx: typer.Context,
    location: str = typer.Argument(..., help="WSDL path or URL"),
) -> None:
    """List services in document order."""
    with _open(ctx, location) as proxy:
        for name in proxy.list_services():
            typer.echo(name)


@app.command()
def operations(
    ctx: typer.Context,
    location: str = typer.Argument(..., help="WSDL path or URL"),
    service: str = typer.Argument(..., help="Service name"),
) -> None:
    """List operations of one service."""
    with _open(ctx, location) as proxy:
        try:
            names = proxy.list_operations(service)
        except ProxyError as e:
            _fail(e)
        for name in names:
            typer.echo(name)


@app.command()
def describe(
    ctx: typer.Context,
    location: str = typer.Argument(..., help="WSDL path or URL"),
    service: Optional[str] = typer.Option(None, "--service", "-s", help="Only this service"),
) -> None:
    """Print every operation signature, then a summary count."""
    with _open(ctx, location) as proxy:
        names = [service] if service else proxy.list_services()
        op_count = param_count = 0
        for service_name in names:
            try:
                op_names = proxy.list_operations(service_name)
            except ProxyError as e:
                _fail(e)
            typer.echo(service_name)
            for op_name in op_names:
                signature = proxy.describe_operation(service_name, op_name)
                params = ", ".join(str(p) for p in signature.parameters)
                typer.echo(f"  {op_name}({params}) -> {signature.return_type}")
                op_count += 1
                param_count += len(signature.parameters)
        typer.echo(f"Summary: {op_count} total operations, {param_count} total parameters")


@app.command()
def invoke(
    ctx: typer.Context,
    location: str = typer.Argument(..., help="WSDL path or URL"),
    service: str = typer.Argument(..., help="Service name"),
    operation: str = typer.Argument(..., help="Operation name"),
    args: Optional[List[str]] = typer.Argument(None, help="Positional arguments; JSON-decoded unless the parameter is a string"),
) -> None:
    """Call an operation and print the result as JSON."""
    with _open(ctx, location) as proxy:
        try:
            signature = proxy.describe_operation(service, operation)
            values = _parse_args(signature.parameters, args or [])
            values = decode_args(signature.parameters, values, proxy.registry.types)
            result = proxy.invoke(service, operation, values)
        except ProxyError as e:
            _fail(e)
        typer.echo(json.dumps(to_jsonable(result), indent=2))


def main() -> None:
    """Entry point for the wsproxy console command."""
    app()


if __name__ == "__main__":
    main()
