from wsproxy.gateway.app import create_gateway, to_jsonable
from wsproxy.gateway.openapi import build_openapi_spec

__all__ = ["build_openapi_spec", "create_gateway", "to_jsonable"]
