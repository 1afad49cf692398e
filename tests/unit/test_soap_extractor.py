"""
Unit tests for SOAPExtractor.

HTTP traffic is replaced by patching requests.Session.post; responses are
served from the SOAP fixtures under tests/input/soap.
"""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

from lxml import etree

from stream_extractor import SOAPExtractor
from stream_extractor.exceptions import ConfigurationError, InputError, RemoteCallError


INPUT_DIR = Path(__file__).parent.parent / "input" / "soap"
ENDPOINT = "http://www.oorsprong.org/websamples.countryinfo/CountryInfoService.wso"
NAMESPACE = "http://www.oorsprong.org/websamples.countryinfo"
SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
COUNTRY = (
    "soap:Envelope/soap:Body/m:ListOfCountryNamesByNameResponse/"
    "m:ListOfCountryNamesByNameResult/m:tCountryCodeAndName"
)
CALL = {"function": "ListOfCountryNamesByName", "namespace": NAMESPACE}


def make_response(name, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.content = (INPUT_DIR / name).read_bytes()
    response.headers = {"Content-Type": "text/xml; charset=utf-8"}
    return response


@pytest.fixture
def countries():
    return []


@pytest.fixture
def extractor(countries):
    def handler(element, properties, data):
        countries.append(properties)

    return SOAPExtractor(
        {COUNTRY: {'map': {'code': 'string(m:sISOCode)', 'name': 'string(m:sName)'}, 'handler': handler}},
        ENDPOINT,
        namespaces={'m': NAMESPACE},
    )


class TestExtraction:

    @patch('requests.Session.post')
    def test_extract_response_records(self, mock_post, extractor, countries):
        mock_post.return_value = make_response("country_list.xml")

        assert extractor.extract(CALL) is True

        assert countries == [
            {'code': 'AX', 'name': 'Åland Islands'},
            {'code': 'AF', 'name': 'Afghanistan'},
            {'code': 'AL', 'name': 'Albania'},
        ]

    @patch('requests.Session.post')
    def test_request_and_response_are_recorded(self, mock_post, extractor):
        mock_post.return_value = make_response("country_list.xml")

        extractor.extract(CALL)

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == ENDPOINT
        assert kwargs['headers']['SOAPAction'] == f'"{NAMESPACE}/ListOfCountryNamesByName"'
        assert kwargs['headers']['Content-Type'].startswith('text/xml')
        assert kwargs['timeout'] == 30
        assert kwargs['data'] == extractor.last_request
        assert b'ListOfCountryNamesByName' in extractor.last_request
        assert extractor.last_response == (INPUT_DIR / "country_list.xml").read_bytes()
        assert extractor.last_response_headers == {"Content-Type": "text/xml; charset=utf-8"}
        assert extractor.get_performance_stats()['call_count'] == 1

    @patch('requests.Session.post')
    def test_dump_response(self, mock_post, extractor):
        mock_post.return_value = make_response("country_list.xml")

        counts = extractor.dump(CALL)

        assert counts['soap:Envelope'] == 1
        assert counts['soap:Envelope/soap:Body'] == 1
        assert counts[COUNTRY] == 3
        assert counts[COUNTRY + '/m:sName'] == 3


class TestFailures:

    @patch('requests.Session.post')
    def test_input_must_be_mapping(self, mock_post, extractor):
        with pytest.raises(InputError, match="^The input must be a mapping$"):
            extractor.extract("ListOfCountryNamesByName")

        with pytest.raises(InputError, match="^The input must be a mapping$"):
            extractor.dump(["ListOfCountryNamesByName"])

        mock_post.assert_not_called()

    @patch('requests.Session.post')
    def test_function_must_be_set(self, mock_post, extractor):
        with pytest.raises(InputError, match="^The SOAP function is not set$"):
            extractor.extract({"arguments": {}})

        mock_post.assert_not_called()

    @patch('requests.Session.post')
    def test_fault(self, mock_post, extractor, countries):
        mock_post.return_value = make_response("fault.xml", status_code=500)

        with pytest.raises(RemoteCallError) as raised:
            extractor.extract({"function": "InvalidFunction", "namespace": NAMESPACE})

        assert str(raised.value) == 'Function ("InvalidFunction") is not a valid method for this service'
        assert raised.value.fault_code == 'soap:Client'
        assert raised.value.code == 500
        assert extractor.last_response is not None
        assert countries == []

    @patch('requests.Session.post')
    def test_transport_failure(self, mock_post, extractor):
        mock_post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(RemoteCallError, match="connection refused"):
            extractor.extract(CALL)

        assert extractor.last_response is None

    @patch('requests.Session.post')
    def test_http_error_without_fault(self, mock_post, extractor):
        response = Mock(status_code=503, content=b'Service Unavailable', headers={})
        mock_post.return_value = response

        with pytest.raises(RemoteCallError, match="HTTP 503") as raised:
            extractor.extract(CALL)

        assert raised.value.code == 503

    def test_endpoint_is_required(self):
        with pytest.raises(ConfigurationError, match="could not be instantiated"):
            SOAPExtractor({}, "  ")

    def test_invalid_options(self):
        with pytest.raises(ConfigurationError):
            SOAPExtractor({}, ENDPOINT, options={'soap_version': '2.0'})


class TestEnvelope:

    def test_arguments_become_elements(self, extractor):
        envelope = extractor.build_envelope(
            "FullCountryInfo",
            {"sCountryISOCode": "PT", "filters": {"flag": True, "codes": ["A", "B"]}},
            NAMESPACE,
            headers={"Token": "abc"},
        )

        root = etree.fromstring(envelope)
        assert root.tag == f"{{{SOAP_NS}}}Envelope"
        assert root.findtext(f"{{{SOAP_NS}}}Header/{{{NAMESPACE}}}Token") == "abc"

        operation = root.find(f"{{{SOAP_NS}}}Body/{{{NAMESPACE}}}FullCountryInfo")
        assert operation.findtext(f"{{{NAMESPACE}}}sCountryISOCode") == "PT"
        assert operation.findtext(f"{{{NAMESPACE}}}filters/{{{NAMESPACE}}}flag") == "true"
        assert [code.text for code in operation.iterfind(f"{{{NAMESPACE}}}filters/{{{NAMESPACE}}}codes")] == ["A", "B"]

    def test_soap_12_content_type(self):
        extractor = SOAPExtractor({}, ENDPOINT, options={'soap_version': '1.2'})

        headers = extractor._http_headers("urn:action")

        assert headers["Content-Type"] == 'application/soap+xml; charset=utf-8; action="urn:action"'
        assert "SOAPAction" not in headers
