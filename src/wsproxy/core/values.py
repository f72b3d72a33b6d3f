"""
Value checks against TypeRef: argument compatibility (outbound) and result coercion (inbound).

Both walk the same tagged TypeRef; complex shapes are looked up by name in the model's type table.
"""
from __future__ import annotations

import base64
import binascii
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Sequence

from wsproxy.core.model import (
    ANY,
    ArrayType,
    ComplexTypeDef,
    ParameterDescriptor,
    PrimitiveKind,
    PrimitiveType,
    TypeRef,
)


class ValueMismatch(Exception):
    """Raised by check/coerce; the invoker turns it into TypeMismatch or ResultDecodeError."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"{path or 'value'}: expected {expected}, got {actual}")


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


_ELEMENT_NAME = re.compile(r"[^\W\d][\w.-]*")


def _check_free_form(value: Any, path: str) -> Any:
    """`any` values go on the wire as-is; mapping keys become element names and must be valid ones."""
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str) or not _ELEMENT_NAME.fullmatch(key):
                raise ValueMismatch(_join(path, str(key)), "an XML element name", repr(key))
            _check_free_form(item, _join(path, key))
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_free_form(item, f"{path}[{i}]")
    return value


# -- outbound: argument compatibility ----------------------------------------

_PRIMITIVE_CHECKS: dict[PrimitiveKind, Callable[[Any], bool]] = {
    PrimitiveKind.STRING: lambda v: isinstance(v, str),
    PrimitiveKind.INT: lambda v: isinstance(v, int) and not isinstance(v, bool),
    PrimitiveKind.FLOAT: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    PrimitiveKind.DECIMAL: lambda v: isinstance(v, (int, Decimal)) and not isinstance(v, bool),
    PrimitiveKind.BOOL: lambda v: isinstance(v, bool),
    PrimitiveKind.DATETIME: lambda v: isinstance(v, datetime),
    PrimitiveKind.DATE: lambda v: isinstance(v, date) and not isinstance(v, datetime),
    PrimitiveKind.TIME: lambda v: isinstance(v, time),
    PrimitiveKind.BYTES: lambda v: isinstance(v, (bytes, bytearray)),
    PrimitiveKind.ANY: lambda v: True,
    PrimitiveKind.VOID: lambda v: v is None,
}


def check_value(
    value: Any,
    type_ref: TypeRef,
    types: Mapping[str, ComplexTypeDef],
    *,
    optional: bool = False,
    path: str = "",
) -> Any:
    """
    Check value against type_ref and return it normalized for dispatch
    (complex mappings re-ordered into declared field order, tuples as lists).
    Raises ValueMismatch.
    """
    if value is None and (optional or type_ref == ANY):
        return None
    if isinstance(type_ref, PrimitiveType):
        if not _PRIMITIVE_CHECKS[type_ref.kind](value):
            raise ValueMismatch(path, str(type_ref), type_name(value))
        if type_ref.kind is PrimitiveKind.ANY:
            return _check_free_form(value, path)
        return value
    if isinstance(type_ref, ArrayType):
        if not isinstance(value, (list, tuple)):
            raise ValueMismatch(path, str(type_ref), type_name(value))
        return [check_value(item, type_ref.item, types, path=f"{path}[{i}]") for i, item in enumerate(value)]
    definition = types[type_ref.name]
    if not isinstance(value, Mapping):
        raise ValueMismatch(path, str(type_ref), type_name(value))
    unknown = [key for key in value if definition.field(key) is None]
    if unknown:
        raise ValueMismatch(_join(path, str(unknown[0])), f"a field of {type_ref}", "unknown field")
    normalized: dict[str, Any] = {}
    for f in definition.fields:
        if f.name not in value:
            if not f.optional:
                raise ValueMismatch(_join(path, f.name), str(f.type), "missing")
            continue
        normalized[f.name] = check_value(value[f.name], f.type, types, optional=f.optional, path=_join(path, f.name))
    return normalized


# -- inbound: result coercion ---------------------------------------------------

_TRUE = {"true", "1"}
_FALSE = {"false", "0"}


def _parse_datetime(text: str) -> datetime:
    # fromisoformat only learned the "Z" suffix in 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _coerce_primitive(raw: Any, kind: PrimitiveKind) -> Any:
    """Convert a native value or its XML text form. Raises ValueError/TypeError on mismatch."""
    if kind is PrimitiveKind.ANY:
        return raw
    if kind is PrimitiveKind.STRING:
        if isinstance(raw, str):
            return raw
    elif kind is PrimitiveKind.INT:
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            return int(raw.strip())
    elif kind is PrimitiveKind.FLOAT:
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)
        if isinstance(raw, str):
            text = raw.strip()
            return float({"INF": "inf", "-INF": "-inf", "NaN": "nan"}.get(text, text))
    elif kind is PrimitiveKind.DECIMAL:
        if isinstance(raw, Decimal):
            return raw
        if isinstance(raw, (int, str)) and not isinstance(raw, bool):
            return Decimal(str(raw).strip())
        if isinstance(raw, float):
            return Decimal(str(raw))
    elif kind is PrimitiveKind.BOOL:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.strip().lower() in _TRUE | _FALSE:
            return raw.strip().lower() in _TRUE
    elif kind is PrimitiveKind.DATETIME:
        if isinstance(raw, datetime):
            return raw
        if isinstance(raw, str):
            return _parse_datetime(raw.strip())
    elif kind is PrimitiveKind.DATE:
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        if isinstance(raw, str):
            return date.fromisoformat(raw.strip()[:10])
    elif kind is PrimitiveKind.TIME:
        if isinstance(raw, time):
            return raw
        if isinstance(raw, str):
            text = raw.strip()
            return time.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
    elif kind is PrimitiveKind.BYTES:
        if isinstance(raw, (bytes, bytearray)):
            return bytes(raw)
        if isinstance(raw, str):
            return base64.b64decode(raw.strip(), validate=True)
    raise TypeError(type_name(raw))


def coerce_value(raw: Any, type_ref: TypeRef, types: Mapping[str, ComplexTypeDef], *, path: str = "") -> Any:
    """Coerce a raw transport value to type_ref. Raises ValueMismatch."""
    if isinstance(type_ref, PrimitiveType):
        if type_ref.kind is PrimitiveKind.VOID:
            return None
        if raw is None:
            return None
        try:
            return _coerce_primitive(raw, type_ref.kind)
        except (ValueError, TypeError, InvalidOperation, binascii.Error):
            raise ValueMismatch(path, str(type_ref), repr(raw)) from None
    if isinstance(type_ref, ArrayType):
        if raw is None:
            return []
        items = list(raw) if isinstance(raw, (list, tuple)) else [raw]
        return [coerce_value(item, type_ref.item, types, path=f"{path}[{i}]") for i, item in enumerate(items)]
    if raw is None:
        return None
    definition = types[type_ref.name]
    if not isinstance(raw, Mapping):
        raise ValueMismatch(path, str(type_ref), type_name(raw))
    result: dict[str, Any] = {}
    for f in definition.fields:
        if f.name in raw:
            result[f.name] = coerce_value(raw[f.name], f.type, types, path=_join(path, f.name))
        elif f.optional:
            result[f.name] = [] if isinstance(f.type, ArrayType) else None
        else:
            raise ValueMismatch(_join(path, f.name), str(f.type), "missing")
    return result


def decode_args(
    parameters: Sequence[ParameterDescriptor],
    args: list[Any],
    types: Mapping[str, ComplexTypeDef],
) -> list[Any]:
    """
    Turn text/JSON argument forms (ISO dates, base64, decimal strings) into native values
    by declared parameter type. Values that do not convert are passed through unchanged
    so the invoker reports them as TypeMismatch; a wrong count is left for ArityMismatch.
    """
    if len(args) != len(parameters):
        return args
    decoded = []
    for param, value in zip(parameters, args):
        try:
            decoded.append(coerce_value(value, param.type, types))
        except ValueMismatch:
            decoded.append(value)
    return decoded
