from wsproxy.transport.envelope import SoapEnvelopeBuilder, SoapResponseParser
from wsproxy.transport.fetch import fetch_description
from wsproxy.transport.protocol import Transport
from wsproxy.transport.soap_http import SoapHttpTransport

__all__ = [
    "SoapEnvelopeBuilder",
    "SoapHttpTransport",
    "SoapResponseParser",
    "Transport",
    "fetch_description",
]
