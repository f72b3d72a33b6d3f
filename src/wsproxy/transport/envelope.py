"""SOAP envelopes: request serialization and response/fault parsing."""
from __future__ import annotations

import base64
import math
from datetime import date, datetime, time
from typing import Any
from xml.etree import ElementTree
from xml.sax.saxutils import escape, quoteattr

from wsproxy.core.errors import RemoteFault, TransportError
from wsproxy.core.model import OperationDescriptor, ServiceDescriptor

SOAP11_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP12_ENV_NS = "http://www.w3.org/2003/05/soap-envelope"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
_XSI_NIL = f"{{{XSI_NS}}}nil"


def envelope_namespace(service: ServiceDescriptor) -> str:
    return SOAP12_ENV_NS if service.soap_version == "1.2" else SOAP11_ENV_NS


def _local(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


class SoapEnvelopeBuilder:
    """Builds SOAP envelopes from bound arguments (name -> value, declared order)."""

    def build(self, service: ServiceDescriptor, operation: OperationDescriptor, arguments: dict[str, Any]) -> str:
        namespace = quoteattr(operation.namespace)
        children = "".join(self._serialize(name, value) for name, value in arguments.items())
        if not operation.request_element:
            # bare document style: the parts are the body's children
            body = "".join(
                self._serialize(name, value, xmlns=namespace) for name, value in arguments.items()
            )
        elif operation.qualified:
            body = f"<{operation.request_element} xmlns={namespace}>{children}</{operation.request_element}>"
        else:
            body = f"<m:{operation.request_element} xmlns:m={namespace}>{children}</m:{operation.request_element}>"

        return (
            '<?xml version="1.0" encoding="utf-8"?>'
            f'<soap:Envelope xmlns:soap="{envelope_namespace(service)}" xmlns:xsi="{XSI_NS}">'
            f"<soap:Body>{body}</soap:Body>"
            "</soap:Envelope>"
        )

    def _serialize(self, name: str, value: Any, xmlns: str | None = None) -> str:
        ns_attr = f" xmlns={xmlns}" if xmlns else ""
        if value is None:
            return f'<{name}{ns_attr} xsi:nil="true"/>'
        if isinstance(value, (list, tuple)):
            return "".join(self._serialize(name, item, xmlns) for item in value)
        if isinstance(value, dict):
            inner = "".join(self._serialize(key, item) for key, item in value.items())
            return f"<{name}{ns_attr}>{inner}</{name}>"
        return f"<{name}{ns_attr}>{escape(self._text(value))}</{name}>"

    @staticmethod
    def _text(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float):
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "INF" if value > 0 else "-INF"
            return repr(value)
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, (bytes, bytearray)):
            return base64.b64encode(bytes(value)).decode("ascii")
        return str(value)


class SoapResponseParser:
    """
    Parses SOAP responses into raw values: leaf elements become text,
    elements with children become dicts, repeated children become lists.
    """

    def __init__(self, max_depth: int = 64) -> None:
        self.max_depth = max_depth

    def parse(self, content: bytes, service: ServiceDescriptor, operation: OperationDescriptor) -> Any:
        body = self._body(content, service, operation)
        fault = self._fault(body)
        if fault is not None:
            raise RemoteFault(*fault, service_name=service.name, operation_name=operation.name)

        parts = list(body)
        if operation.result_shape == "body":
            if not parts:
                return None
            if len(parts) == 1:
                return self._to_raw(parts[0])
            return self._children_to_dict(body)

        wrapper = parts[0] if parts else None
        if wrapper is None or len(wrapper) == 0:
            return {} if operation.result_shape == "record" else None
        values = self._children_to_dict(wrapper)
        if operation.result_shape == "record":
            return values
        return next(iter(values.values()))

    def raise_for_fault(self, content: bytes, service: ServiceDescriptor, operation: OperationDescriptor) -> None:
        """Raise RemoteFault if content is a SOAP fault; do nothing for anything else (HTML error pages etc.)."""
        try:
            root = ElementTree.fromstring(content)
        except ElementTree.ParseError:
            return
        body = next((child for child in root if _local(child.tag) == "Body"), None)
        fault = self._fault(body) if body is not None else None
        if fault is not None:
            raise RemoteFault(*fault, service_name=service.name, operation_name=operation.name)

    def _body(self, content: bytes, service: ServiceDescriptor, operation: OperationDescriptor) -> ElementTree.Element:
        try:
            root = ElementTree.fromstring(content)
        except ElementTree.ParseError as exc:
            raise TransportError(
                f"response is not XML: {exc}", service_name=service.name, operation_name=operation.name, cause=exc
            ) from exc
        if _local(root.tag) != "Envelope":
            raise TransportError(
                f"response root is {_local(root.tag)!r}, not a SOAP Envelope",
                service_name=service.name,
                operation_name=operation.name,
            )
        for child in root:
            if _local(child.tag) == "Body":
                return child
        raise TransportError("SOAP response has no Body", service_name=service.name, operation_name=operation.name)

    @staticmethod
    def _fault(body: ElementTree.Element) -> tuple[str, str] | None:
        """(fault code, fault string) for SOAP 1.1 and 1.2 faults."""
        for child in body:
            if _local(child.tag) != "Fault":
                continue
            code, reason = "", ""
            for elem in child.iter():
                tag = _local(elem.tag)
                if tag == "faultcode" or (tag == "Value" and not code):
                    code = (elem.text or "").strip()
                elif tag == "faultstring" or (tag == "Text" and not reason):
                    reason = (elem.text or "").strip()
            return code or "Server", reason
        return None

    def _to_raw(self, elem: ElementTree.Element, depth: int = 0) -> Any:
        if elem.get(_XSI_NIL) in ("true", "1"):
            return None
        if len(elem) == 0:
            return elem.text if elem.text is not None else ""
        if depth >= self.max_depth:
            raise ValueError(f"response nesting exceeds {self.max_depth} levels")
        return self._children_to_dict(elem, depth)

    def _children_to_dict(self, elem: ElementTree.Element, depth: int = 0) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for child in elem:
            tag = _local(child.tag)
            value = self._to_raw(child, depth + 1)
            if tag in result:
                if not isinstance(result[tag], list):
                    result[tag] = [result[tag]]
                result[tag].append(value)
            else:
                result[tag] = value
        return result
