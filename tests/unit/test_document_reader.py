"""
Unit tests for DocumentReader and parser diagnostics.

Test Coverage:
- Element start/end events with qualified names, depths and emptiness
- expand() completing the current element while nested events are replayed
- Input provisioning for bytes, str, paths and streams, and the matching failures
- Memory release of consumed siblings
- Diagnostic buffering and translation into StructuralError
"""

import io
import logging

from pathlib import Path

import pytest

from lxml import etree

from stream_extractor.exceptions import InputError, InvalidInputTypeError, StructuralError
from stream_extractor.models import NodeKind, XMLExtractionConfig
from stream_extractor.parsing.diagnostics import Diagnostic, DiagnosticTranslator
from stream_extractor.parsing.document_reader import DocumentReader


INPUT_DIR = Path(__file__).parent.parent / "input" / "xml"


def read_all(reader):
    events = []
    while True:
        event = reader.read()
        if event is None:
            return events
        events.append((event.kind, event.name, event.depth, event.is_empty))


class TestEvents:

    def test_start_and_end_events(self):
        with DocumentReader() as reader:
            reader.open(b'<a><b>t</b><c/></a>')
            events = read_all(reader)

        assert events == [
            (NodeKind.ELEMENT, 'a', 0, False),
            (NodeKind.ELEMENT, 'b', 1, False),
            (NodeKind.END_ELEMENT, 'b', 1, False),
            (NodeKind.ELEMENT, 'c', 1, True),
            (NodeKind.END_ELEMENT, 'c', 1, False),
            (NodeKind.END_ELEMENT, 'a', 0, False),
        ]

    def test_element_with_only_attributes_is_empty(self):
        with DocumentReader() as reader:
            reader.open('<a><b id="1"></b></a>')
            reader.read()
            event = reader.read()

        assert event.name == 'b'
        assert event.is_empty

    def test_element_with_children_is_not_empty(self):
        with DocumentReader() as reader:
            reader.open('<a><b/></a>')
            event = reader.read()

        assert not event.is_empty

    def test_prefixed_names(self):
        with DocumentReader() as reader:
            reader.open(INPUT_DIR / "namespaced.xml")
            names = [name for kind, name, _, _ in read_all(reader) if kind is NodeKind.ELEMENT]

        assert names[:4] == ['c:Catalog', 'c:Section', 'p:Product', 'p:Title']

    def test_expand_keeps_cursor_and_replays_nested_events(self):
        with DocumentReader() as reader:
            reader.open('<r><x><y>1</y></x><z/></r>')
            reader.read()
            reader.read()

            element = reader.expand()
            assert element.tag == 'x'
            assert element.findtext('y') == '1'

            remaining = [(kind, name) for kind, name, _, _ in read_all(reader)]

        assert remaining == [
            (NodeKind.ELEMENT, 'y'),
            (NodeKind.END_ELEMENT, 'y'),
            (NodeKind.END_ELEMENT, 'x'),
            (NodeKind.ELEMENT, 'z'),
            (NodeKind.END_ELEMENT, 'z'),
            (NodeKind.END_ELEMENT, 'r'),
        ]

    def test_expand_without_current_element(self):
        with DocumentReader() as reader:
            reader.open('<r/>')
            with pytest.raises(StructuralError):
                reader.expand()

    def test_consumed_siblings_are_released(self):
        with DocumentReader() as reader:
            reader.open('<r>' + '<i>v</i>' * 50 + '</r>')
            root = reader.read().element
            for _ in range(60):
                reader.read()

            assert len(root) < 25


class TestInputProvisioning:

    def test_text_input(self):
        with DocumentReader() as reader:
            reader.open('<a>é</a>')
            assert reader.read().name == 'a'

    def test_binary_stream_is_read_and_left_open(self):
        stream = io.BytesIO(b'<a/>')
        with DocumentReader() as reader:
            reader.open(stream)
            assert reader.read().name == 'a'

        assert not stream.closed

    def test_text_stream(self):
        with DocumentReader() as reader:
            reader.open(io.StringIO('<a><b/></a>'))
            assert [name for _, name, _, _ in read_all(reader)] == ['a', 'b', 'b', 'a']

    def test_closed_stream(self):
        stream = io.BytesIO(b'<a/>')
        stream.close()
        with DocumentReader() as reader:
            with pytest.raises(InputError, match="Invalid stream type"):
                reader.open(stream)

    def test_unsupported_input_type(self):
        with DocumentReader() as reader:
            with pytest.raises(InvalidInputTypeError, match=r"^Invalid input type: bool$"):
                reader.open(True)

    def test_missing_path(self, tmp_path):
        missing = tmp_path / "invalid.xml"
        with DocumentReader() as reader:
            with pytest.raises(InputError) as error:
                reader.open(missing)

        assert str(error.value) == f'Could not open "{missing}" for parsing'
        assert error.value.input_description == str(missing)

    def test_empty_input(self):
        with DocumentReader() as reader:
            with pytest.raises(InputError, match="input is empty"):
                reader.open('   ')

    def test_path_is_closed_on_close(self):
        reader = DocumentReader()
        reader.open(INPUT_DIR / "persons.xml")
        handle = reader._source
        reader.close()

        assert handle.closed


class TestDiagnostics:

    def test_recovered_error_is_buffered(self):
        config = XMLExtractionConfig.from_mapping({'options': {'recover': True}})
        with DocumentReader(config) as reader:
            reader.open(b'<r><a>x & y</a></r>')
            reader.clear_diagnostics()
            reader.read()
            reader.read()
            reader.expand()
            diagnostic = reader.last_diagnostic()

        assert diagnostic is not None
        assert diagnostic.line == 1

    def test_look_ahead_error_is_raised_after_the_start_event(self):
        with DocumentReader() as reader:
            reader.open(b'<r><a>x & y</a></r>')
            assert reader.read().name == 'r'

            event = reader.read()
            assert (event.kind, event.name, event.is_empty) == (NodeKind.ELEMENT, 'a', False)

            with pytest.raises(etree.XMLSyntaxError):
                reader.read()

    def test_look_ahead_error_is_raised_by_expand(self):
        with DocumentReader() as reader:
            reader.open(b'<r><a>x & y</a></r>')
            reader.read()
            reader.read()

            with pytest.raises(etree.XMLSyntaxError):
                reader.expand()

    def test_no_diagnostic_for_clean_document(self):
        with DocumentReader() as reader:
            reader.open(b'<r><a>x</a></r>')
            reader.clear_diagnostics()
            reader.read()
            reader.expand()

            assert reader.last_diagnostic() is None

    def test_warning_is_logged_not_raised(self, caplog):
        translator = DiagnosticTranslator()
        warning = Diagnostic(etree.ErrorLevels.WARNING, "unsupported version", line=1)

        with caplog.at_level(logging.WARNING):
            translator.check(warning, 'Persons')

        assert "unsupported version" in caplog.text

    def test_error_is_raised_with_line_and_address(self):
        translator = DiagnosticTranslator()
        error = Diagnostic(etree.ErrorLevels.FATAL, "xmlParseEntityRef: no name", line=9, code=68)

        with pytest.raises(StructuralError) as raised:
            translator.check(error, 'Persons/Person')

        assert str(raised.value) == "xmlParseEntityRef: no name @ line #9 [Persons/Person]"
        assert raised.value.line == 9
        assert raised.value.code == 68
        assert raised.value.address == 'Persons/Person'

    def test_syntax_error_translation(self):
        with pytest.raises(etree.XMLSyntaxError) as raised:
            etree.fromstring(b'<a>\n&</a>')

        diagnostic = Diagnostic.from_syntax_error(raised.value)

        assert diagnostic.line == 2
        assert diagnostic.is_fatal
        assert "column" not in diagnostic.message
