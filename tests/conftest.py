"""Shared fixtures: proxies over the sample documents and a recording transport."""

from __future__ import annotations

from pathlib import Path

import pytest
from samples import CALCULATOR_WSDL, SHOP_WSDL, RecordingTransport

from wsproxy import DynamicProxy


@pytest.fixture()
def summing_transport() -> RecordingTransport:
    return RecordingTransport(lambda service, operation, arguments: sum(arguments.values()))


@pytest.fixture()
def calculator(summing_transport: RecordingTransport) -> DynamicProxy:
    return DynamicProxy(CALCULATOR_WSDL, transport=summing_transport)


@pytest.fixture()
def shop_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def shop(shop_transport: RecordingTransport) -> DynamicProxy:
    return DynamicProxy(SHOP_WSDL, transport=shop_transport)


@pytest.fixture()
def calculator_file(tmp_path: Path) -> Path:
    path = tmp_path / "calculator.wsdl"
    path.write_bytes(CALCULATOR_WSDL)
    return path
