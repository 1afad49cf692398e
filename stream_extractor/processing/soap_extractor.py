"""
SOAP adapter: invokes a remote operation and extracts records from its response.

The request envelope is built with lxml and posted with a requests Session.
The raw response body is then handed to the XML extractor, so registrations
address the response from the envelope down, e.g.
"soap:Envelope/soap:Body/m:ListOfCountryNamesByNameResponse/...".
"""

import logging

from typing import Any, Dict, Mapping, Optional

import requests

from lxml import etree

from ..exceptions import ConfigurationError, InputError, RemoteCallError
from ..models import SOAPOptions
from .xml_extractor import XMLExtractor


SOAP_ENVELOPE_NAMESPACES = {
    "1.1": "http://schemas.xmlsoap.org/soap/envelope/",
    "1.2": "http://www.w3.org/2003/05/soap-envelope",
}

logger = logging.getLogger(__name__)


class SOAPExtractor(XMLExtractor):
    """
    XML extractor fed by SOAP calls.

    A call is described by a mapping:
        function: Operation name (required)
        arguments: Mapping of argument name to value; nested mappings become nested
                   elements and lists become repeated elements
        namespace: Target namespace of the operation
        headers: Mapping of SOAP header element name to value
        http_headers: Extra HTTP headers for this call
        soap_action: SOAPAction value, defaults to namespace + "/" + function
    """

    def __init__(self, elements: Optional[Mapping[str, Mapping[str, Any]]], endpoint: str,
                 namespaces: Optional[Mapping[str, str]] = None,
                 options: Optional[Mapping[str, Any]] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize the extractor and its HTTP session.

        Args:
            elements: Mapping of address to {"map": {...}, "handler": callable}
            endpoint: Service URL the envelopes are posted to
            namespaces: Prefix to URI mapping used by XPath property expressions
            options: Transport options (timeout, soap_version, headers, verify)
            session: Optional pre-configured requests Session

        Raises:
            ConfigurationError: If the endpoint or options are invalid
        """
        super().__init__(elements, namespaces)

        if not isinstance(endpoint, str) or not endpoint.strip():
            raise ConfigurationError("The SOAP client could not be instantiated: endpoint is not set")

        self.endpoint = endpoint.strip()
        self.options = SOAPOptions.from_mapping(options)
        self.envelope_namespace = SOAP_ENVELOPE_NAMESPACES[self.options.soap_version]

        self._session = session or requests.Session()
        self._session.headers.update(self.options.headers)

        self.last_request: Optional[bytes] = None
        self.last_response: Optional[bytes] = None
        self.last_response_headers: Dict[str, str] = {}
        self.call_count = 0

    def make_call(self, call: Any) -> bytes:
        """
        Invoke a remote operation.

        Returns:
            Raw response body

        Raises:
            InputError: If the call is not a mapping or names no function
            RemoteCallError: If the transport fails or the service returns a fault
        """
        if not isinstance(call, Mapping):
            raise InputError("The input must be a mapping", type(call).__name__)

        function = call.get("function")
        if not function:
            raise InputError("The SOAP function is not set")

        namespace = call.get("namespace")
        envelope = self.build_envelope(function, call.get("arguments") or {}, namespace, call.get("headers") or {})
        soap_action = call.get("soap_action")
        if soap_action is None:
            soap_action = f"{namespace.rstrip('/')}/{function}" if namespace else function

        http_headers = self._http_headers(soap_action)
        http_headers.update(call.get("http_headers") or {})

        self.last_request = envelope
        self.last_response = None
        self.last_response_headers = {}
        self.call_count += 1

        logger.debug(f"Calling {function} at {self.endpoint}")
        try:
            response = self._session.post(
                self.endpoint,
                data=envelope,
                headers=http_headers,
                timeout=self.options.timeout,
                verify=self.options.verify,
            )
        except requests.RequestException as e:
            logger.error(f"SOAP call {function} failed: {e}")
            raise RemoteCallError(f"SOAP call {function} failed: {e}") from e

        self.last_response = response.content
        self.last_response_headers = dict(response.headers)

        fault = self._find_fault(response.content)
        if fault is not None:
            fault_code, fault_string = fault
            logger.error(f"SOAP fault from {function}: {fault_code} {fault_string}")
            raise RemoteCallError(fault_string, code=response.status_code, fault_code=fault_code)

        if response.status_code != 200:
            logger.error(f"SOAP call {function} returned HTTP {response.status_code}")
            raise RemoteCallError(
                f"SOAP call {function} returned HTTP {response.status_code}", code=response.status_code
            )

        return response.content

    def extract(self, source: Any, config: Optional[Mapping[str, Any]] = None, data: Any = None) -> bool:
        """Invoke the call described by source and extract records from the response."""
        if not isinstance(source, Mapping):
            raise InputError("The input must be a mapping", type(source).__name__)
        return super().extract(self.make_call(source), config, data)

    def dump(self, source: Any, config: Optional[Mapping[str, Any]] = None) -> Dict[str, int]:
        """Invoke the call described by source and count the addresses of the response."""
        if not isinstance(source, Mapping):
            raise InputError("The input must be a mapping", type(source).__name__)
        return super().dump(self.make_call(source), config)

    def build_envelope(self, function: str, arguments: Mapping[str, Any], namespace: Optional[str] = None,
                       headers: Optional[Mapping[str, Any]] = None) -> bytes:
        """Serialize a request envelope for one operation."""
        soap = self.envelope_namespace
        nsmap = {"soap": soap}
        if namespace:
            nsmap["m"] = namespace

        envelope = etree.Element(f"{{{soap}}}Envelope", nsmap=nsmap)
        if headers:
            header = etree.SubElement(envelope, f"{{{soap}}}Header")
            self._append_values(header, headers, namespace)

        body = etree.SubElement(envelope, f"{{{soap}}}Body")
        operation = etree.SubElement(body, self._qualify(function, namespace))
        self._append_values(operation, arguments, namespace)

        return etree.tostring(envelope, xml_declaration=True, encoding="UTF-8")

    def _append_values(self, parent: etree._Element, values: Mapping[str, Any], namespace: Optional[str]) -> None:
        if not isinstance(values, Mapping):
            raise InputError("SOAP arguments and headers must be mappings")
        for name, value in values.items():
            items = value if isinstance(value, (list, tuple)) else [value]
            for item in items:
                child = etree.SubElement(parent, self._qualify(name, namespace))
                if isinstance(item, Mapping):
                    self._append_values(child, item, namespace)
                elif isinstance(item, bool):
                    child.text = "true" if item else "false"
                elif item is not None:
                    child.text = str(item)

    @staticmethod
    def _qualify(name: str, namespace: Optional[str]) -> str:
        return f"{{{namespace}}}{name}" if namespace else name

    def _http_headers(self, soap_action: str) -> Dict[str, str]:
        if self.options.soap_version == "1.2":
            return {"Content-Type": f'application/soap+xml; charset=utf-8; action="{soap_action}"'}
        return {"Content-Type": "text/xml; charset=utf-8", "SOAPAction": f'"{soap_action}"'}

    def _find_fault(self, content: bytes) -> Optional[tuple]:
        """Return (fault code, fault string) when the body carries a SOAP fault."""
        if not content:
            return None
        try:
            root = etree.fromstring(content, etree.XMLParser(no_network=True, huge_tree=True))
        except etree.XMLSyntaxError:
            return None

        fault = root.find(f"{{{self.envelope_namespace}}}Body/{{{self.envelope_namespace}}}Fault")
        if fault is None:
            return None

        if self.options.soap_version == "1.2":
            ns = {"soap": self.envelope_namespace}
            code = fault.xpath("string(soap:Code/soap:Value)", namespaces=ns)
            reason = fault.xpath("string(soap:Reason/soap:Text)", namespaces=ns)
        else:
            code = fault.findtext("faultcode") or ""
            reason = fault.findtext("faultstring") or ""
        return code.strip(), reason.strip() or "SOAP fault"

    def get_performance_stats(self) -> Dict[str, Any]:
        stats = super().get_performance_stats()
        stats['call_count'] = self.call_count
        return stats
