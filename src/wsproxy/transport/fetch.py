"""Description retrieval: local path or http(s) URL -> bytes."""
from __future__ import annotations

from pathlib import Path

import httpx
from loguru import logger

from wsproxy.core.config import ProxyConfig
from wsproxy.core.errors import DescriptionUnavailable


def fetch_description(
    location: str,
    config: ProxyConfig | None = None,
    *,
    client: httpx.Client | None = None,
) -> bytes:
    """Read the description document once. Raises DescriptionUnavailable."""
    config = config or ProxyConfig()
    if location.startswith(("http://", "https://")):
        logger.debug("Fetching description from {}", location)
        try:
            if client is not None:
                response = client.get(location, follow_redirects=True)
            else:
                response = httpx.get(location, timeout=config.timeout, verify=config.verify, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DescriptionUnavailable(location, str(e)) from e
        return response.content

    path = Path(location[len("file://"):] if location.startswith("file://") else location)
    try:
        return path.read_bytes()
    except OSError as e:
        raise DescriptionUnavailable(location, e.strerror or str(e)) from e
