"""Proxy config: created directly or loaded from environment; consumed by the default transport."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from wsproxy.core.model import ServiceDescriptor

_FALSE_VALUES = {"0", "false", "no", "off"}


class Config:
    """Environment helpers shared by config objects."""

    @classmethod
    def load_from_env(cls, prefix: str = "WSPROXY_", **defaults: Any) -> dict[str, Any]:
        """Load from os.environ with prefix and defaults. WSPROXY_TIMEOUT=5 -> {"timeout": "5"}."""
        result = dict(defaults)
        for key, value in os.environ.items():
            if key.startswith(prefix):
                name = key[len(prefix):].lower()
                result[name] = value
        return result

    @staticmethod
    def services_from_env(suffix: str = "_SERVICE_URL") -> dict[str, str]:
        """
        Build service name -> endpoint URL overrides from env.
        Env vars: CALCULATOR_SERVICE_URL=http://... -> {"calculator": "http://..."}.
        Key is the part before suffix, lowercased; matched case-insensitively against service names.
        """
        out: dict[str, str] = {}
        for key, value in os.environ.items():
            if not value or not key.endswith(suffix):
                continue
            name = key[: -len(suffix)].lower()
            if name:
                out[name] = value.strip()
        return out


@dataclass
class ProxyConfig(Config):
    timeout: float = 30.0
    verify: bool = True
    # replaces every port address from the description
    endpoint: str | None = None
    # per-service overrides, service name (case-insensitive) -> URL; wins over `endpoint`
    endpoints: dict[str, str] = field(default_factory=dict)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, prefix: str = "WSPROXY_") -> ProxyConfig:
        raw = cls.load_from_env(prefix, timeout=30.0, verify="true", log_level="WARNING")
        return cls(
            timeout=float(raw["timeout"]),
            verify=str(raw["verify"]).strip().lower() not in _FALSE_VALUES,
            endpoint=raw.get("endpoint") or None,
            endpoints=cls.services_from_env(),
            log_level=str(raw["log_level"]).upper(),
        )

    def endpoint_for(self, service: ServiceDescriptor) -> str:
        overrides = {name.lower(): url for name, url in self.endpoints.items()}
        return overrides.get(service.name.lower()) or self.endpoint or service.address
