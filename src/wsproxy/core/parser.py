"""
WSDL 1.1 parser: description bytes -> ServiceModel.

Only SOAP-bound ports are modelled and every reference must resolve inside the
document itself; anything living behind wsdl:import or xsd:import/@schemaLocation
makes the description unsupported.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator
from xml.etree import ElementTree

from loguru import logger

from wsproxy.core.errors import MalformedDocument, UnsupportedDescription
from wsproxy.core.model import (
    ANY,
    VOID,
    ArrayType,
    ComplexRef,
    ComplexTypeDef,
    FieldDescriptor,
    OperationDescriptor,
    ParameterDescriptor,
    PrimitiveKind,
    PrimitiveType,
    ServiceDescriptor,
    ServiceModel,
    TypeRef,
)

WSDL_NS = "http://schemas.xmlsoap.org/wsdl/"
SOAP11_NS = "http://schemas.xmlsoap.org/wsdl/soap/"
SOAP12_NS = "http://schemas.xmlsoap.org/wsdl/soap12/"
XSD_NS = "http://www.w3.org/2001/XMLSchema"
SOAPENC_NS = "http://schemas.xmlsoap.org/soap/encoding/"
MS_TYPES_NS = "http://microsoft.com/wsdl/types/"

_W = f"{{{WSDL_NS}}}"
_X = f"{{{XSD_NS}}}"
_WSDL_ARRAY_TYPE = f"{_W}arrayType"

QName = tuple[str, str]

_XSD_PRIMITIVES: dict[str, PrimitiveKind] = {
    "string": PrimitiveKind.STRING,
    "normalizedString": PrimitiveKind.STRING,
    "token": PrimitiveKind.STRING,
    "anyURI": PrimitiveKind.STRING,
    "QName": PrimitiveKind.STRING,
    "NCName": PrimitiveKind.STRING,
    "Name": PrimitiveKind.STRING,
    "language": PrimitiveKind.STRING,
    "duration": PrimitiveKind.STRING,
    "guid": PrimitiveKind.STRING,
    "int": PrimitiveKind.INT,
    "integer": PrimitiveKind.INT,
    "long": PrimitiveKind.INT,
    "short": PrimitiveKind.INT,
    "byte": PrimitiveKind.INT,
    "unsignedInt": PrimitiveKind.INT,
    "unsignedLong": PrimitiveKind.INT,
    "unsignedShort": PrimitiveKind.INT,
    "unsignedByte": PrimitiveKind.INT,
    "positiveInteger": PrimitiveKind.INT,
    "negativeInteger": PrimitiveKind.INT,
    "nonNegativeInteger": PrimitiveKind.INT,
    "nonPositiveInteger": PrimitiveKind.INT,
    "char": PrimitiveKind.INT,
    "float": PrimitiveKind.FLOAT,
    "double": PrimitiveKind.FLOAT,
    "decimal": PrimitiveKind.DECIMAL,
    "boolean": PrimitiveKind.BOOL,
    "dateTime": PrimitiveKind.DATETIME,
    "date": PrimitiveKind.DATE,
    "time": PrimitiveKind.TIME,
    "base64Binary": PrimitiveKind.BYTES,
    "hexBinary": PrimitiveKind.BYTES,
    "anyType": PrimitiveKind.ANY,
    "anySimpleType": PrimitiveKind.STRING,
}


@dataclass(frozen=True)
class _SchemaItem:
    """A top-level schema component together with the schema it was declared in."""

    node: ElementTree.Element
    namespace: str
    qualified: bool


def parse_description(document: bytes | str) -> ServiceModel:
    """Parse a WSDL 1.1 document. Raises MalformedDocument or UnsupportedDescription."""
    return WsdlParser(document).parse()


def _read_tree(document: bytes) -> tuple[ElementTree.Element, dict[ElementTree.Element, dict[str, str]]]:
    """Parse XML keeping the in-scope prefix map of every element (ElementTree drops it)."""
    scopes: dict[ElementTree.Element, dict[str, str]] = {}
    stack: list[dict[str, str]] = [{}]
    pending: dict[str, str] = {}
    root: ElementTree.Element | None = None
    try:
        for event, item in ElementTree.iterparse(io.BytesIO(document), events=("start-ns", "start", "end")):
            if event == "start-ns":
                prefix, uri = item
                pending[prefix] = uri
            elif event == "start":
                scope = dict(stack[-1])
                scope.update(pending)
                pending = {}
                scopes[item] = scope
                stack.append(scope)
                if root is None:
                    root = item
            else:
                stack.pop()
    except ElementTree.ParseError as exc:
        raise MalformedDocument(f"not well-formed XML: {exc}") from exc
    if root is None:
        raise MalformedDocument("document has no root element")
    return root, scopes


def _is_repeated(node: ElementTree.Element) -> bool:
    max_occurs = node.get("maxOccurs", "1")
    if max_occurs == "unbounded":
        return True
    try:
        return int(max_occurs) > 1
    except ValueError:
        return False


class WsdlParser:
    """One-shot parser. Indexes the document, then walks services -> ports -> operations."""

    def __init__(self, document: bytes | str) -> None:
        if isinstance(document, str):
            document = document.encode("utf-8")
        self._document = document
        self._scopes: dict[ElementTree.Element, dict[str, str]] = {}
        self._tns = ""
        self._messages: dict[QName, list[ElementTree.Element]] = {}
        self._port_types: dict[QName, ElementTree.Element] = {}
        self._bindings: dict[QName, ElementTree.Element] = {}
        self._elements: dict[QName, _SchemaItem] = {}
        self._complex_types: dict[QName, _SchemaItem] = {}
        self._simple_types: dict[QName, _SchemaItem] = {}
        self._groups: dict[QName, _SchemaItem] = {}
        # complex type key (QName or anonymous node) -> assigned model name
        self._type_names: dict[Any, str] = {}
        self._types: dict[str, ComplexTypeDef] = {}

    def parse(self) -> ServiceModel:
        root, self._scopes = _read_tree(self._document)
        if root.tag != f"{_W}definitions":
            raise UnsupportedDescription(f"root element {root.tag!r} is not a WSDL 1.1 definitions element")
        self._tns = root.get("targetNamespace", "")
        if root.find(f"{_W}import") is not None:
            logger.debug("Description uses wsdl:import; imported components will not be resolved")
        self._index(root)

        services: list[ServiceDescriptor] = []
        seen: set[str] = set()
        for node in root.findall(f"{_W}service"):
            name = node.get("name")
            if not name:
                raise UnsupportedDescription("wsdl:service without a name")
            if name in seen:
                raise UnsupportedDescription(f"service {name!r} is declared more than once")
            seen.add(name)
            service = self._service(name, node)
            if service is None:
                logger.debug("Skipping service {} without a SOAP port", name)
                continue
            services.append(service)

        logger.debug(
            "Parsed description: {} service(s), {} operation(s), {} complex type(s)",
            len(services),
            sum(len(s.operations) for s in services),
            len(self._types),
        )
        return ServiceModel(
            services=tuple(services),
            types=MappingProxyType(dict(self._types)),
            target_namespace=self._tns,
        )

    # -- indexing ---------------------------------------------------------

    def _index(self, root: ElementTree.Element) -> None:
        for node in root.findall(f"{_W}message"):
            self._messages[(self._tns, node.get("name", ""))] = node.findall(f"{_W}part")
        for node in root.findall(f"{_W}portType"):
            self._port_types[(self._tns, node.get("name", ""))] = node
        for node in root.findall(f"{_W}binding"):
            self._bindings[(self._tns, node.get("name", ""))] = node
        for schema in root.iter(f"{_X}schema"):
            namespace = schema.get("targetNamespace", "")
            qualified = schema.get("elementFormDefault") == "qualified"
            targets = {
                f"{_X}element": self._elements,
                f"{_X}complexType": self._complex_types,
                f"{_X}simpleType": self._simple_types,
                f"{_X}group": self._groups,
            }
            for child in schema:
                index = targets.get(child.tag)
                if index is not None and child.get("name"):
                    index[(namespace, child.get("name"))] = _SchemaItem(child, namespace, qualified)

    def _qname(self, node: ElementTree.Element, value: str) -> QName:
        prefix, _, local = value.rpartition(":")
        scope = self._scopes.get(node, {})
        if prefix:
            if prefix not in scope:
                raise UnsupportedDescription(f"undeclared namespace prefix {prefix!r} in {value!r}")
            return scope[prefix], local
        return scope.get("", ""), local

    @staticmethod
    def _lookup(index: dict[QName, Any], qname: QName, kind: str) -> Any:
        try:
            return index[qname]
        except KeyError:
            raise UnsupportedDescription(f"unresolved {kind} reference {{{qname[0]}}}{qname[1]}") from None

    # -- services and operations ------------------------------------------

    def _service(self, name: str, node: ElementTree.Element) -> ServiceDescriptor | None:
        chosen = None
        for port in node.findall(f"{_W}port"):
            binding = self._lookup(self._bindings, self._qname(port, port.get("binding", "")), "binding")
            if binding.find(f"{{{SOAP11_NS}}}binding") is not None:
                version, soap_ns = "1.1", SOAP11_NS
            elif binding.find(f"{{{SOAP12_NS}}}binding") is not None:
                version, soap_ns = "1.2", SOAP12_NS
            else:
                continue
            if chosen is None or (version == "1.1" and chosen[2] != "1.1"):
                chosen = (port, binding, version, soap_ns)
        if chosen is None:
            return None

        port, binding, version, soap_ns = chosen
        address = port.find(f"{{{soap_ns}}}address")
        port_type = self._lookup(self._port_types, self._qname(binding, binding.get("type", "")), "portType")
        default_style = binding.find(f"{{{soap_ns}}}binding").get("style", "document")
        bound = {op.get("name"): op for op in binding.findall(f"{_W}operation")}

        operations: list[OperationDescriptor] = []
        seen: set[str] = set()
        for op_node in port_type.findall(f"{_W}operation"):
            op_name = op_node.get("name", "")
            if op_name in seen:
                raise UnsupportedDescription(f"service {name!r} declares operation {op_name!r} more than once")
            seen.add(op_name)
            operation = self._operation(op_node, bound.get(op_name), default_style, soap_ns)
            names = [p.name for p in operation.parameters]
            if len(names) != len(set(names)):
                raise UnsupportedDescription(f"operation {name}.{op_name} has duplicate parameter names")
            operations.append(operation)

        return ServiceDescriptor(
            name=name,
            operations=tuple(operations),
            address=address.get("location", "") if address is not None else "",
            port_name=port.get("name", ""),
            soap_version=version,
        )

    def _operation(
        self,
        node: ElementTree.Element,
        bound: ElementTree.Element | None,
        default_style: str,
        soap_ns: str,
    ) -> OperationDescriptor:
        name = node.get("name", "")
        soap_op = bound.find(f"{{{soap_ns}}}operation") if bound is not None else None
        body = bound.find(f"{_W}input/{{{soap_ns}}}body") if bound is not None else None
        style = (soap_op.get("style") if soap_op is not None else None) or default_style
        soap_action = soap_op.get("soapAction", "") if soap_op is not None else ""
        input_parts = self._message_parts(node.find(f"{_W}input"))
        output_parts = self._message_parts(node.find(f"{_W}output"))

        if style == "rpc":
            params = tuple(ParameterDescriptor(p.get("name", ""), self._part_type(p)) for p in input_parts)
            if len(output_parts) > 1:
                fields = tuple(FieldDescriptor(p.get("name", ""), self._part_type(p)) for p in output_parts)
                return_type: TypeRef = self._synthesized(f"{name}Response", fields)
                shape = "record"
            else:
                return_type = self._part_type(output_parts[0]) if output_parts else VOID
                shape = "child"
            namespace = (body.get("namespace") if body is not None else None) or self._tns
            return OperationDescriptor(
                name=name,
                parameters=params,
                return_type=return_type,
                soap_action=soap_action,
                style="rpc",
                namespace=namespace,
                request_element=name,
                qualified=False,
                result_shape=shape,
            )

        wrapper = self._wrapper(name, input_parts)
        if wrapper is not None:
            params = tuple(
                ParameterDescriptor(f.name, f.type, f.optional) for f in self._wrapper_fields(wrapper)
            )
            return_type, shape = self._wrapped_result(name, output_parts)
            return OperationDescriptor(
                name=name,
                parameters=params,
                return_type=return_type,
                soap_action=soap_action,
                style="document",
                namespace=wrapper.namespace,
                request_element=wrapper.node.get("name", ""),
                qualified=wrapper.qualified,
                result_shape=shape,
            )

        # bare document/literal: one parameter per part, named after the element that goes on the wire
        params = tuple(ParameterDescriptor(self._bare_name(p), self._part_type(p)) for p in input_parts)
        namespace = self._tns
        if input_parts and input_parts[0].get("element"):
            namespace = self._part_element(input_parts[0]).namespace
        if len(output_parts) > 1:
            fields = tuple(FieldDescriptor(self._bare_name(p), self._part_type(p)) for p in output_parts)
            return_type = self._synthesized(f"{name}Response", fields)
        else:
            return_type = self._part_type(output_parts[0]) if output_parts else VOID
        return OperationDescriptor(
            name=name,
            parameters=params,
            return_type=return_type,
            soap_action=soap_action,
            style="document",
            namespace=namespace,
            request_element="",
            result_shape="body",
        )

    def _message_parts(self, io_node: ElementTree.Element | None) -> list[ElementTree.Element]:
        if io_node is None:
            return []
        return self._lookup(self._messages, self._qname(io_node, io_node.get("message", "")), "message")

    def _part_element(self, part: ElementTree.Element) -> _SchemaItem:
        return self._lookup(self._elements, self._qname(part, part.get("element", "")), "element")

    def _bare_name(self, part: ElementTree.Element) -> str:
        if part.get("element"):
            return self._part_element(part).node.get("name", "")
        return part.get("name", "")

    def _part_type(self, part: ElementTree.Element) -> TypeRef:
        if part.get("element"):
            return self._element_type(self._part_element(part).node)
        if part.get("type"):
            return self._resolve_type(self._qname(part, part.get("type", "")))
        raise UnsupportedDescription(f"message part {part.get('name')!r} has neither element nor type")

    def _wrapper(self, op_name: str, parts: list[ElementTree.Element]) -> _SchemaItem | None:
        """The request wrapper element of a document/literal wrapped operation, if it is one."""
        if len(parts) != 1 or not parts[0].get("element"):
            return None
        item = self._part_element(parts[0])
        if item.node.get("name") != op_name:
            return None
        if not isinstance(self._element_type(item.node), ComplexRef):
            return None
        return item

    def _wrapper_fields(self, item: _SchemaItem) -> tuple[FieldDescriptor, ...]:
        ref = self._element_type(item.node)
        if not isinstance(ref, ComplexRef):
            raise UnsupportedDescription(f"wrapper element {item.node.get('name')!r} has no complex type")
        return self._types[ref.name].fields

    def _wrapped_result(self, op_name: str, parts: list[ElementTree.Element]) -> tuple[TypeRef, str]:
        if not parts:
            return VOID, "child"
        if len(parts) != 1 or not parts[0].get("element"):
            fields = tuple(FieldDescriptor(p.get("name", ""), self._part_type(p)) for p in parts)
            return self._synthesized(f"{op_name}Response", fields), "record"
        ref = self._element_type(self._part_element(parts[0]).node)
        if not isinstance(ref, ComplexRef):
            return ref, "child"
        fields = self._types[ref.name].fields
        if not fields:
            return VOID, "child"
        if len(fields) == 1:
            return fields[0].type, "child"
        return ref, "record"

    def _synthesized(self, hint: str, fields: tuple[FieldDescriptor, ...]) -> ComplexRef:
        name = self._claim(hint, object())
        self._types[name] = ComplexTypeDef(name, fields)
        return ComplexRef(name)

    # -- XML Schema types -------------------------------------------------

    def _claim(self, hint: str, key: Any) -> str:
        if key in self._type_names:
            return self._type_names[key]
        taken = set(self._type_names.values())
        name, n = hint or "Anonymous", 2
        while name in taken:
            name = f"{hint}{n}"
            n += 1
        self._type_names[key] = name
        return name

    def _resolve_type(self, qname: QName) -> TypeRef:
        namespace, local = qname
        if namespace in (XSD_NS, MS_TYPES_NS) or (namespace == SOAPENC_NS and local != "Array"):
            return PrimitiveType(_XSD_PRIMITIVES.get(local, PrimitiveKind.STRING))
        if qname == (SOAPENC_NS, "Array"):
            return ArrayType(ANY)
        if qname in self._simple_types:
            return self._simple(self._simple_types[qname].node)
        if qname in self._complex_types:
            if qname in self._type_names:
                return ComplexRef(self._type_names[qname])
            return self._complex(self._complex_types[qname].node, local, qname)
        raise UnsupportedDescription(f"unresolved type reference {{{namespace}}}{local}")

    def _simple(self, node: ElementTree.Element) -> TypeRef:
        restriction = node.find(f"{_X}restriction")
        if restriction is not None:
            if restriction.get("base"):
                return self._resolve_type(self._qname(restriction, restriction.get("base", "")))
            inner = restriction.find(f"{_X}simpleType")
            if inner is not None:
                return self._simple(inner)
        # xsd:list and xsd:union travel as plain text
        return PrimitiveType(PrimitiveKind.STRING)

    def _complex(self, node: ElementTree.Element, hint: str, key: Any) -> TypeRef:
        array = self._encoded_array(node)
        if array is not None:
            return array
        simple = node.find(f"{_X}simpleContent")
        if simple is not None:
            for child in simple:
                if child.get("base"):
                    return self._resolve_type(self._qname(child, child.get("base", "")))
            return PrimitiveType(PrimitiveKind.STRING)
        if key in self._type_names:
            return ComplexRef(self._type_names[key])
        # claim the name before walking fields so recursive types resolve to a reference
        name = self._claim(hint, key)
        self._types[name] = ComplexTypeDef(name, tuple(self._fields(node)))
        return ComplexRef(name)

    def _encoded_array(self, node: ElementTree.Element) -> ArrayType | None:
        restriction = node.find(f"{_X}complexContent/{_X}restriction")
        if restriction is None or not restriction.get("base"):
            return None
        if self._qname(restriction, restriction.get("base", "")) != (SOAPENC_NS, "Array"):
            return None
        for attribute in restriction.iter(f"{_X}attribute"):
            array_type = attribute.get(_WSDL_ARRAY_TYPE)
            if array_type:
                item = array_type.split("[", 1)[0]
                return ArrayType(self._resolve_type(self._qname(attribute, item)))
        for element in restriction.iter(f"{_X}element"):
            return ArrayType(self._element_type(element))
        return ArrayType(ANY)

    def _fields(self, node: ElementTree.Element) -> Iterator[FieldDescriptor]:
        content = node.find(f"{_X}complexContent")
        if content is not None:
            extension = content.find(f"{_X}extension")
            if extension is not None:
                base = self._resolve_type(self._qname(extension, extension.get("base", "")))
                if isinstance(base, ComplexRef):
                    base_def = self._types.get(base.name)
                    if base_def is None:
                        raise UnsupportedDescription(f"circular extension of type {base.name!r}")
                    yield from base_def.fields
                node = extension
            else:
                restriction = content.find(f"{_X}restriction")
                if restriction is not None:
                    node = restriction
        yield from self._particles(node, optional=False)

    def _particles(self, node: ElementTree.Element, optional: bool) -> Iterator[FieldDescriptor]:
        for child in node:
            if child.tag == f"{_X}element":
                yield self._field(child, optional)
            elif child.tag in (f"{_X}sequence", f"{_X}all"):
                yield from self._particles(child, optional or child.get("minOccurs") == "0")
            elif child.tag == f"{_X}choice":
                yield from self._particles(child, True)
            elif child.tag == f"{_X}group" and child.get("ref"):
                group = self._lookup(self._groups, self._qname(child, child.get("ref", "")), "group")
                yield from self._particles(group.node, optional or child.get("minOccurs") == "0")

    def _field(self, node: ElementTree.Element, optional: bool) -> FieldDescriptor:
        target = node
        if node.get("ref"):
            target = self._lookup(self._elements, self._qname(node, node.get("ref", "")), "element").node
        type_ref = self._element_type(target)
        if _is_repeated(node):
            type_ref = ArrayType(type_ref)
        optional = optional or node.get("minOccurs") == "0" or target.get("nillable") == "true"
        return FieldDescriptor(target.get("name", ""), type_ref, optional)

    def _element_type(self, node: ElementTree.Element) -> TypeRef:
        if node.get("type"):
            return self._resolve_type(self._qname(node, node.get("type", "")))
        inline = node.find(f"{_X}complexType")
        if inline is not None:
            return self._complex(inline, node.get("name", ""), inline)
        inline = node.find(f"{_X}simpleType")
        if inline is not None:
            return self._simple(inline)
        return ANY
