"""Error taxonomy: every failure has its own type and a stable code callers can branch on."""
from __future__ import annotations


class ProxyError(Exception):
    """Base for all proxy failures: code (stable string) + human message."""

    code = "PROXY_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code}] {message}")


# Construction-time errors: a proxy is never returned when one of these is raised.


class ParseError(ProxyError):
    """The service description could not be turned into a model."""

    code = "PARSE_ERROR"


class MalformedDocument(ParseError):
    """Input is not well-formed XML at all."""

    code = "MALFORMED_DOCUMENT"


class UnsupportedDescription(ParseError):
    """Well-formed XML that is not a usable WSDL 1.1 SOAP description."""

    code = "UNSUPPORTED_DESCRIPTION"


class DescriptionUnavailable(ProxyError):
    """The description document could not be retrieved from its location."""

    code = "DESCRIPTION_UNAVAILABLE"

    def __init__(self, location: str, reason: str) -> None:
        self.location = location
        super().__init__(f"cannot retrieve description from {location!r}: {reason}")


# Call-time errors: local to the failing call.


class ServiceNotFound(ProxyError, LookupError):
    code = "SERVICE_NOT_FOUND"

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name
        super().__init__(f"service {service_name!r} is not described")


class OperationNotFound(ProxyError, LookupError):
    code = "OPERATION_NOT_FOUND"

    def __init__(self, service_name: str, operation_name: str) -> None:
        self.service_name = service_name
        self.operation_name = operation_name
        super().__init__(f"service {service_name!r} has no operation {operation_name!r}")


class ArityMismatch(ProxyError, TypeError):
    code = "ARITY_MISMATCH"

    def __init__(self, service_name: str, operation_name: str, expected: int, got: int) -> None:
        self.service_name = service_name
        self.operation_name = operation_name
        self.expected = expected
        self.got = got
        super().__init__(
            f"{service_name}.{operation_name} takes {expected} argument(s), got {got}"
        )


class TypeMismatch(ProxyError, TypeError):
    code = "TYPE_MISMATCH"

    def __init__(
        self,
        service_name: str,
        operation_name: str,
        param_name: str,
        expected_type: str,
        actual_type: str,
    ) -> None:
        self.service_name = service_name
        self.operation_name = operation_name
        self.param_name = param_name
        self.expected_type = expected_type
        self.actual_type = actual_type
        super().__init__(
            f"{service_name}.{operation_name}: parameter {param_name!r} expects "
            f"{expected_type}, got {actual_type}"
        )


class ResultDecodeError(ProxyError):
    code = "RESULT_DECODE_ERROR"

    def __init__(self, service_name: str, operation_name: str, expected_type: str, reason: str) -> None:
        self.service_name = service_name
        self.operation_name = operation_name
        self.expected_type = expected_type
        super().__init__(
            f"{service_name}.{operation_name}: result is not a valid {expected_type}: {reason}"
        )


class TransportError(ProxyError):
    """Remote call failed inside the transport. The original exception is kept as .cause."""

    code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        operation_name: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.service_name = service_name
        self.operation_name = operation_name
        self.cause = cause
        if service_name and operation_name:
            message = f"{service_name}.{operation_name}: {message}"
        super().__init__(message)


class TransportTimeout(TransportError):
    """The transport gave up waiting (timeout or cancellation)."""

    code = "TRANSPORT_TIMEOUT"


class RemoteFault(TransportError):
    """The remote side answered with a SOAP fault."""

    code = "REMOTE_FAULT"

    def __init__(self, fault_code: str, fault_string: str, **kwargs) -> None:
        self.fault_code = fault_code
        self.fault_string = fault_string
        super().__init__(f"{fault_code}: {fault_string}", **kwargs)
