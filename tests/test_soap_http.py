"""Tests for the SOAP over HTTP transport, against httpx.MockTransport."""

import threading
import time
from decimal import Decimal
from xml.etree import ElementTree

import httpx
import pytest
from samples import CALCULATOR_WSDL, SHOP_WSDL

from wsproxy import DynamicProxy, ProxyConfig, SoapHttpTransport
from wsproxy.core.errors import RemoteFault, ResultDecodeError, TransportError, TransportTimeout
from wsproxy.core.model import VOID, OperationDescriptor, ServiceDescriptor
from wsproxy.transport.envelope import SOAP11_ENV_NS, SOAP12_ENV_NS, SoapEnvelopeBuilder, SoapResponseParser


def envelope(body: str, ns: str = SOAP11_ENV_NS) -> bytes:
    return f'<soap:Envelope xmlns:soap="{ns}"><soap:Body>{body}</soap:Body></soap:Envelope>'.encode()


class Server:
    """Canned HTTP responder that remembers the requests it saw."""

    def __init__(self, body: bytes = b"", status_code: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.body = body
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.body, headers={"Content-Type": "text/xml"})


def make_proxy(document: bytes, server, config: ProxyConfig | None = None) -> DynamicProxy:
    client = httpx.Client(transport=httpx.MockTransport(server))
    return DynamicProxy(document, transport=SoapHttpTransport(config, client=client), config=config)


class TestCalculatorOverHttp:
    @pytest.fixture()
    def server(self):
        return Server(envelope('<AddResponse xmlns="http://tempuri.org/"><AddResult>5</AddResult></AddResponse>'))

    def test_add(self, server):
        with make_proxy(CALCULATOR_WSDL, server) as proxy:
            assert proxy.invoke("Calculator", "Add", [2, 3]) == 5

    def test_request(self, server):
        with make_proxy(CALCULATOR_WSDL, server) as proxy:
            proxy.invoke("Calculator", "Add", [2, 3])
        (request,) = server.requests
        assert request.method == "POST"
        assert str(request.url) == "http://example.test/calculator.asmx"
        assert request.headers["SOAPAction"] == '"http://tempuri.org/Add"'
        assert request.headers["Content-Type"].startswith("text/xml")

        root = ElementTree.fromstring(request.content)
        add = root.find(f"{{{SOAP11_ENV_NS}}}Body/{{http://tempuri.org/}}Add")
        assert add is not None
        assert [(child.tag, child.text) for child in add] == [
            ("{http://tempuri.org/}a", "2"),
            ("{http://tempuri.org/}b", "3"),
        ]

    def test_endpoint_override(self, server):
        config = ProxyConfig(endpoints={"calculator": "http://override.test/calc"})
        with make_proxy(CALCULATOR_WSDL, server, config) as proxy:
            proxy.invoke("Calculator", "Add", [1, 1])
        assert str(server.requests[0].url) == "http://override.test/calc"

    def test_soap_fault(self):
        server = Server(
            envelope(
                "<soap:Fault><faultcode>soap:Server</faultcode>"
                "<faultstring>Server was unable to process request.</faultstring></soap:Fault>"
            ),
            status_code=500,
        )
        with make_proxy(CALCULATOR_WSDL, server) as proxy:
            with pytest.raises(RemoteFault) as exc_info:
                proxy.invoke("Calculator", "Add", [1, 2])
        assert exc_info.value.fault_code == "soap:Server"
        assert exc_info.value.fault_string == "Server was unable to process request."
        assert exc_info.value.code == "REMOTE_FAULT"

    def test_http_error_without_fault(self):
        server = Server(b"<html><body>Service Unavailable</body></html>", status_code=503)
        with make_proxy(CALCULATOR_WSDL, server) as proxy:
            with pytest.raises(TransportError) as exc_info:
                proxy.invoke("Calculator", "Add", [1, 2])
        assert not isinstance(exc_info.value, RemoteFault)
        assert "HTTP 503" in str(exc_info.value)

    def test_response_is_not_soap(self):
        with make_proxy(CALCULATOR_WSDL, Server(b"<html/>")) as proxy:
            with pytest.raises(TransportError, match="not a SOAP Envelope"):
                proxy.invoke("Calculator", "Add", [1, 2])

    def test_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with make_proxy(CALCULATOR_WSDL, slow) as proxy:
            with pytest.raises(TransportTimeout) as exc_info:
                proxy.invoke("Calculator", "Add", [1, 2])
        assert isinstance(exc_info.value.cause, httpx.ReadTimeout)

    def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_proxy(CALCULATOR_WSDL, refuse) as proxy:
            with pytest.raises(TransportError, match="connection refused"):
                proxy.invoke("Calculator", "Add", [1, 2])

    def test_bad_result(self):
        server = Server(envelope('<AddResponse xmlns="http://tempuri.org/"><AddResult>five</AddResult></AddResponse>'))
        with make_proxy(CALCULATOR_WSDL, server) as proxy:
            with pytest.raises(ResultDecodeError, match="five"):
                proxy.invoke("Calculator", "Add", [1, 2])


class TestShopOverHttp:
    def test_rpc_call(self):
        server = Server(envelope('<m:ChargeResponse xmlns:m="urn:billing"><receipt>R-77</receipt></m:ChargeResponse>'))
        with make_proxy(SHOP_WSDL, server) as proxy:
            assert proxy.invoke("Billing", "Charge", ["acme", Decimal("9.50")]) == "R-77"

        root = ElementTree.fromstring(server.requests[0].content)
        charge = root.find(f"{{{SOAP11_ENV_NS}}}Body/{{urn:billing}}Charge")
        assert [(child.tag, child.text) for child in charge] == [("account", "acme"), ("amount", "9.50")]
        assert server.requests[0].headers["SOAPAction"] == '"urn:billing#Charge"'

    def test_array_result(self):
        server = Server(
            envelope(
                '<FindItemsResponse xmlns="urn:shop">'
                "<FindItemsResult><sku>A-1</sku><quantity>3</quantity><price>2.50</price>"
                "<tags>new</tags><tags>sale</tags></FindItemsResult>"
                "<FindItemsResult><sku>A-2</sku><quantity>1</quantity><price>4</price></FindItemsResult>"
                "</FindItemsResponse>"
            )
        )
        with make_proxy(SHOP_WSDL, server) as proxy:
            items = proxy.invoke("Warehouse", "FindItems", ["A", None])
        assert [item["sku"] for item in items] == ["A-1", "A-2"]
        assert items[0]["tags"] == ["new", "sale"]
        assert items[0]["price"] == Decimal("2.50")
        assert items[1]["tags"] == []

        body = ElementTree.fromstring(server.requests[0].content).find(f"{{{SOAP11_ENV_NS}}}Body")
        limit = body.find("{urn:shop}FindItems/{urn:shop}limit")
        assert limit.get("{http://www.w3.org/2001/XMLSchema-instance}nil") == "true"

    def test_complex_argument(self):
        server = Server(envelope('<SaveItemResponse xmlns="urn:shop"><SaveItemResult>true</SaveItemResult></SaveItemResponse>'))
        item = {"sku": "B&Q", "quantity": 1, "price": Decimal("3"), "tags": ["a", "b"]}
        with make_proxy(SHOP_WSDL, server) as proxy:
            assert proxy.invoke("Warehouse", "SaveItem", [item]) is True

        body = ElementTree.fromstring(server.requests[0].content).find(f"{{{SOAP11_ENV_NS}}}Body")
        sent = body.find("{urn:shop}SaveItem/{urn:shop}item")
        assert sent.find("{urn:shop}sku").text == "B&Q"
        assert [tag.text for tag in sent.findall("{urn:shop}tags")] == ["a", "b"]

    def test_empty_response_for_void(self):
        server = Server(envelope('<PingResponse xmlns="urn:shop" />'))
        with make_proxy(SHOP_WSDL, server) as proxy:
            assert proxy.invoke("Warehouse", "Ping", []) is None

    def test_record_response(self):
        server = Server(
            envelope(
                '<SummaryResponse xmlns="urn:shop"><count>2</count>'
                "<updated>2024-03-01T10:00:00</updated></SummaryResponse>"
            )
        )
        with make_proxy(SHOP_WSDL, server) as proxy:
            summary = proxy.invoke("Warehouse", "Summary", [])
        assert summary["count"] == 2
        assert summary["featured"] is None


class TestSoap12:
    SERVICE = ServiceDescriptor("Clock", (), address="http://t.test/clock", soap_version="1.2")
    OPERATION = OperationDescriptor(
        "Now", (), VOID, soap_action="urn:clock#Now", namespace="urn:clock", request_element="Now"
    )

    def test_headers_and_envelope(self):
        server = Server(envelope("<NowResponse xmlns='urn:clock' />", ns=SOAP12_ENV_NS))
        transport = SoapHttpTransport(client=httpx.Client(transport=httpx.MockTransport(server)))
        transport.perform_call(self.SERVICE, self.OPERATION, {})
        request = server.requests[0]
        assert request.headers["Content-Type"] == 'application/soap+xml; charset=utf-8; action="urn:clock#Now"'
        assert "SOAPAction" not in request.headers
        assert ElementTree.fromstring(request.content).tag == f"{{{SOAP12_ENV_NS}}}Envelope"

    def test_soap12_fault(self):
        fault = (
            "<soap:Fault><soap:Code><soap:Value>soap:Receiver</soap:Value></soap:Code>"
            '<soap:Reason><soap:Text xml:lang="en">clock stopped</soap:Text></soap:Reason></soap:Fault>'
        )
        parser = SoapResponseParser()
        with pytest.raises(RemoteFault) as exc_info:
            parser.parse(envelope(fault, ns=SOAP12_ENV_NS), self.SERVICE, self.OPERATION)
        assert (exc_info.value.fault_code, exc_info.value.fault_string) == ("soap:Receiver", "clock stopped")

    def test_missing_address(self):
        service = ServiceDescriptor("Clock", (), soap_version="1.2")
        with pytest.raises(TransportError, match="no endpoint"):
            SoapHttpTransport().perform_call(service, self.OPERATION, {})


class TestClientSharing:
    def test_concurrent_calls_share_one_client(self, monkeypatch):
        created = []

        class SlowClient(httpx.Client):
            def __init__(self, **kwargs):
                time.sleep(0.05)
                super().__init__(**kwargs)
                created.append(self)

        monkeypatch.setattr(httpx, "Client", SlowClient)
        transport = SoapHttpTransport()
        barrier = threading.Barrier(4)
        clients = []

        def worker():
            barrier.wait()
            clients.append(transport._get_client())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(created) == 1
        assert len(clients) == 4
        assert all(client is created[0] for client in clients)
        transport.close()
        assert created[0].is_closed


class TestEnvelopeBuilder:
    def test_unqualified_rpc_wrapper(self):
        operation = OperationDescriptor(
            "Echo", (), VOID, style="rpc", namespace="urn:e", request_element="Echo", qualified=False
        )
        text = SoapEnvelopeBuilder().build(ServiceDescriptor("E", ()), operation, {"flag": True, "ratio": 0.5})
        assert '<m:Echo xmlns:m="urn:e"><flag>true</flag><ratio>0.5</ratio></m:Echo>' in text

    def test_bare_parts_carry_their_namespace(self):
        operation = OperationDescriptor("Convert", (), VOID, namespace="urn:t", result_shape="body")
        text = SoapEnvelopeBuilder().build(ServiceDescriptor("T", ()), operation, {"Celsius": 21.5})
        assert '<soap:Body><Celsius xmlns="urn:t">21.5</Celsius></soap:Body>' in text

    def test_bytes_are_base64(self):
        operation = OperationDescriptor("Put", (), VOID, namespace="urn:b", request_element="Put")
        text = SoapEnvelopeBuilder().build(ServiceDescriptor("B", ()), operation, {"data": b"\x00\x01"})
        assert "<data>AAE=</data>" in text
