"""Tests for the registry and parameter introspection."""

import pytest
from samples import CALCULATOR_WSDL, SHOP_WSDL

from wsproxy.core.errors import OperationNotFound, ServiceNotFound
from wsproxy.core.introspection import describe_operation
from wsproxy.core.model import ArrayType, ComplexRef
from wsproxy.core.parser import parse_description
from wsproxy.core.registry import ServiceRegistry


@pytest.fixture()
def registry():
    return ServiceRegistry(parse_description(SHOP_WSDL))


class TestServiceRegistry:
    def test_list_services_in_document_order(self, registry):
        assert registry.list_services() == ["Warehouse", "Billing"]
        assert len(registry) == 2
        assert "Billing" in registry
        assert "Legacy" not in registry

    def test_listing_is_idempotent(self, registry):
        assert registry.list_services() == registry.list_services()
        assert registry.list_operations("Billing") == registry.list_operations("Billing") == ["Charge", "Refund"]

    def test_listing_returns_copies(self, registry):
        registry.list_services().append("Injected")
        assert registry.list_services() == ["Warehouse", "Billing"]

    def test_unknown_service(self, registry):
        with pytest.raises(ServiceNotFound) as exc_info:
            registry.list_operations("Nope")
        assert exc_info.value.service_name == "Nope"
        assert exc_info.value.code == "SERVICE_NOT_FOUND"

    def test_lookup_is_case_sensitive(self, registry):
        with pytest.raises(ServiceNotFound):
            registry.lookup_service("warehouse")
        with pytest.raises(OperationNotFound) as exc_info:
            registry.lookup_operation("Warehouse", "ping")
        assert (exc_info.value.service_name, exc_info.value.operation_name) == ("Warehouse", "ping")

    def test_operations_are_scoped_to_their_service(self, registry):
        with pytest.raises(OperationNotFound):
            registry.lookup_operation("Billing", "FindItems")

    def test_lookup_errors_are_lookup_errors(self, registry):
        with pytest.raises(LookupError):
            registry.lookup_operation("Nope", "Add")

    def test_falls_back_to_soap12_port(self):
        document = CALCULATOR_WSDL.replace(b"<soap:binding ", b"<soap:extension ")
        registry = ServiceRegistry(parse_description(document))
        assert registry.list_services() == ["Calculator"]
        assert registry.lookup_service("Calculator").soap_version == "1.2"

    def test_resolve_looks_up_the_service_once(self, registry, monkeypatch):
        seen = []
        lookup = registry.lookup_service
        monkeypatch.setattr(registry, "lookup_service", lambda name: seen.append(name) or lookup(name))
        service, operation = registry.resolve("Billing", "Refund")
        assert (service.name, operation.name) == ("Billing", "Refund")
        assert seen == ["Billing"]
        with pytest.raises(OperationNotFound):
            registry.resolve("Billing", "FindItems")


class TestDescribeOperation:
    def test_signature(self, registry):
        signature = describe_operation(registry, "Warehouse", "FindItems")
        assert signature.pairs() == [("prefix", "string"), ("limit", "int")]
        assert signature.return_type == ArrayType(ComplexRef("Item"))

    def test_unpacks_as_pair(self, registry):
        parameters, return_type = describe_operation(registry, "Billing", "Charge")
        assert [p.name for p in parameters] == ["account", "amount"]
        assert str(return_type) == "string"

    def test_no_parameters(self, registry):
        signature = describe_operation(registry, "Warehouse", "Ping")
        assert signature.parameters == ()
        assert str(signature.return_type) == "void"

    def test_repeated_calls_agree(self, registry):
        assert describe_operation(registry, "Warehouse", "SaveItem") == describe_operation(
            registry, "Warehouse", "SaveItem"
        )

    def test_unknown_operation(self, registry):
        with pytest.raises(OperationNotFound):
            describe_operation(registry, "Warehouse", "Delete")
        with pytest.raises(ServiceNotFound):
            describe_operation(registry, "Archive", "Delete")
