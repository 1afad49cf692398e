"""
Forward-only structural reader built on lxml.etree.iterparse.

The reader turns a document into a sequence of element start and end events,
each carrying the qualified element name and its nesting depth. It never
rewinds. Two pieces of look-ahead sit on top of iterparse:

- one event of look-ahead on every element start, so that empty elements
  (no child nodes, no text) can be recognised before they are matched;
- expand(), which keeps pulling events into the look-ahead buffer until the
  current element's end tag has been parsed, so the element is complete and
  can be copied out while the cursor itself stays in place.

Elements are cleared once their end event has been consumed, keeping memory
bounded for large files regardless of how far into the document the reader is.
"""

import io
import logging
import os

from collections import deque
from typing import Any, Deque, List, Optional, Set, Tuple

from lxml import etree

from ..interfaces import DocumentReaderInterface
from ..exceptions import InputError, InvalidInputTypeError, StructuralError
from ..models import NodeKind, ReaderEvent, XMLExtractionConfig
from ..utils import InputUtils
from .diagnostics import Diagnostic


RawEvent = Tuple[str, Any]


class DocumentReader(DocumentReaderInterface):
    """
    Streaming XML reader exposing element events, node expansion and buffered diagnostics.

    Accepted sources:
    - bytes / bytearray / str: in-memory document (str is encoded with the configured encoding)
    - os.PathLike: file opened and parsed incrementally
    - readable stream: read to completion, then handled as an in-memory document

    Usage:
        with DocumentReader(config) as reader:
            reader.open(source)
            while (event := reader.read()) is not None:
                ...
    """

    def __init__(self, config: Optional[XMLExtractionConfig] = None):
        self.config = config or XMLExtractionConfig()
        self.logger = logging.getLogger(__name__)

        self._source: Optional[io.IOBase] = None
        self._events = None
        self._lookahead: Deque[RawEvent] = deque()
        self._completed: Set[Any] = set()
        self._current: Optional[ReaderEvent] = None
        self._release: Optional[Any] = None
        self._pending_error: Optional[etree.XMLSyntaxError] = None
        self._depth = 0

        self._diagnostic_count = 0
        self._diagnostic_last: Optional[Tuple] = None

    def __enter__(self) -> 'DocumentReader':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def open(self, source: Any) -> None:
        """
        Prepare a source for reading.

        Raises:
            InvalidInputTypeError: If the source is not a supported kind
            InputError: If the source cannot be opened or read
        """
        self.close()
        self._source = self._provision(source)
        self._events = etree.iterparse(
            self._source,
            events=('start', 'end'),
            encoding=self.config.encoding,
            **self.config.options
        )
        self._depth = 0
        self._diagnostic_count = 0
        self._diagnostic_last = None

    def _provision(self, source: Any) -> io.IOBase:
        if isinstance(source, (bytes, bytearray)):
            if not source.strip():
                raise InputError("Could not set the XML input string for parsing: input is empty", "bytes")
            return io.BytesIO(bytes(source))

        if isinstance(source, str):
            if not source.strip():
                raise InputError("Could not set the XML input string for parsing: input is empty", "str")
            try:
                return io.BytesIO(source.encode(self.config.encoding))
            except UnicodeEncodeError as e:
                raise InputError(
                    f"Could not set the XML input string for parsing: {e}", "str"
                ) from e

        if InputUtils.is_path(source):
            path = os.fspath(source)
            try:
                handle = open(path, 'rb')
            except OSError as e:
                self.logger.error(f"Could not open {path!r}: {e}")
                raise InputError(f'Could not open "{path}" for parsing', path) from e
            self.logger.debug(f"Streaming document from {path}")
            return handle

        if InputUtils.is_stream(source):
            return self._provision(InputUtils.read_stream(source))

        type_name = InputUtils.type_name(source)
        raise InvalidInputTypeError(f"Invalid input type: {type_name}", type_name)

    def read(self) -> Optional[ReaderEvent]:
        """
        Advance to the next element start or end event.

        Returns:
            The new current event, or None at end of document

        Raises:
            etree.XMLSyntaxError: If the document is malformed at this point
        """
        self._release_consumed()

        raw = self._next_raw()
        if raw is None:
            self._current = None
            return None

        action, element = raw
        name = self._qualified_name(element)

        if action == 'start':
            depth = self._depth
            self._depth += 1
            self._current = ReaderEvent(NodeKind.ELEMENT, name, depth, self._is_empty(element), element)
        else:
            self._depth -= 1
            self._completed.discard(element)
            self._release = element
            self._current = ReaderEvent(NodeKind.END_ELEMENT, name, self._depth, False, element)

        return self._current

    def expand(self) -> Any:
        """
        Complete the current element without moving the cursor.

        Events consumed while completing the element are buffered and replayed
        by subsequent read() calls, so nested elements are still visited.

        Raises:
            StructuralError: If there is no current element
            etree.XMLSyntaxError: If the document is malformed inside the element
        """
        if self._current is None:
            raise StructuralError("No current element to expand")

        element = self._current.element
        if self._current.kind is NodeKind.ELEMENT:
            while element not in self._completed:
                raw = self._fetch()
                if raw is None:
                    break
                self._lookahead.append(raw)
        return element

    def clear_diagnostics(self) -> None:
        entries = self._error_entries()
        self._diagnostic_count = len(entries)
        self._diagnostic_last = self._entry_key(entries[-1]) if entries else None

    def last_diagnostic(self) -> Optional[Diagnostic]:
        entries = self._error_entries()
        if not entries:
            return None
        last = entries[-1]
        if len(entries) == self._diagnostic_count and self._entry_key(last) == self._diagnostic_last:
            return None
        return Diagnostic.from_log_entry(last)

    def close(self) -> None:
        if self._source is not None:
            self._source.close()
            self.logger.debug("Document source closed")
        self._source = None
        self._events = None
        self._lookahead.clear()
        self._completed.clear()
        self._current = None
        self._release = None
        self._pending_error = None

    def _next_raw(self) -> Optional[RawEvent]:
        if self._lookahead:
            return self._lookahead.popleft()
        return self._fetch()

    def _fetch(self) -> Optional[RawEvent]:
        if self._pending_error is not None:
            error, self._pending_error = self._pending_error, None
            raise error
        if self._events is None:
            return None
        try:
            action, element = next(self._events)
        except StopIteration:
            return None
        except OSError as e:
            raise InputError(f"Failed to read document: {e}") from e

        if action == 'end':
            self._completed.add(element)
        return action, element

    def _is_empty(self, element: Any) -> bool:
        """
        An element is empty when its very next event is its own end and it holds no text.

        A parse error met while looking ahead belongs to the element being started,
        so it is held back and raised by the next read() or expand() instead.
        """
        if not self._lookahead:
            try:
                raw = self._fetch()
            except etree.XMLSyntaxError as e:
                self._pending_error = e
                return False
            if raw is None:
                return False
            self._lookahead.append(raw)

        action, following = self._lookahead[0]
        return action == 'end' and following is element and len(element) == 0 and not element.text

    def _release_consumed(self) -> None:
        element = self._release
        if element is None:
            return
        self._release = None
        element.clear(keep_tail=True)
        parent = element.getparent()
        if parent is not None:
            while element.getprevious() is not None:
                del parent[0]

    def _error_entries(self) -> List[Any]:
        error_log = getattr(self._events, 'error_log', None)
        return list(error_log) if error_log is not None else []

    @staticmethod
    def _entry_key(entry: Any) -> Tuple:
        return entry.line, entry.column, entry.type, entry.message

    @staticmethod
    def _qualified_name(element: Any) -> str:
        localname = etree.QName(element).localname
        return f"{element.prefix}:{localname}" if element.prefix else localname
