"""
Tabular (CSV) adaptation of the registration and handler protocol.

A single element is registered under the "default" key. Its property map
assigns each property a zero-based column index; every row from start_line on
is turned into a property record and handed to the handler together with the
row index.
"""

import csv
import logging
import os
import re
import time

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from ..config.processing_defaults import ExtractionDefaults
from ..exceptions import (
    ConfigurationError, InputError, InvalidInputTypeError, InvalidMapError, MappingError, StructuralError
)
from ..interfaces import ExtractorInterface
from ..mapping.map_registry import MapRegistry
from ..models import CSVExtractionConfig, Registration
from ..utils import InputUtils


_LINE_BREAK = re.compile(r'\r\n|\n|\r')


class CSVExtractor(ExtractorInterface):
    """
    Row-by-row extractor for delimited text.

    Example:
        extractor = CSVExtractor({
            'map': {'name': 0, 'surname': 1},
            'handler': lambda row, properties, data: data.append(properties),
        })
        rows = []
        extractor.extract("name,surname\\nAnna,Adams", data=rows)
    """

    def __init__(self, element: Optional[Mapping[str, Any]] = None):
        """
        Initialize the extractor.

        Args:
            element: Optional {"map": {...}, "handler": callable} registered under "default"
        """
        self.logger = logging.getLogger(__name__)
        self.registry = MapRegistry()
        if element is not None:
            if not isinstance(element, Mapping):
                raise InvalidMapError(
                    f"[{ExtractionDefaults.DEFAULT_KEY}] Element definition must be a mapping with 'map' and 'handler'",
                    ExtractionDefaults.DEFAULT_KEY
                )
            self.register(ExtractionDefaults.DEFAULT_KEY, element.get('map'), element.get('handler'))

        # Performance tracking
        self.rows_processed = 0
        self.rows_skipped = 0
        self.properties_omitted = 0
        self.processing_time_seconds = 0.0

        self.logger.info(f"CSVExtractor initialized with {len(self.registry)} registered elements")

    def register(self, address: str, property_map: Mapping[str, Any],
                 handler: Callable[..., Any]) -> Registration:
        """
        Register a column map. Only the "default" registration is used for extraction.

        Column indexes may be given as integers or digit strings.
        """
        columns = property_map
        if isinstance(property_map, Mapping):
            columns = {name: self._column_index(address, name, column) for name, column in property_map.items()}
        return self.registry.register(address, columns, handler)

    @staticmethod
    def _column_index(address: str, name: str, column: Any) -> int:
        if isinstance(column, str) and column.strip().isdigit():
            return int(column.strip())
        if isinstance(column, int) and not isinstance(column, bool) and column >= 0:
            return column
        raise InvalidMapError(f"[{address}] Invalid column {column!r} for property \"{name}\"", address)

    def extract(self, source: Any, config: Optional[Mapping[str, Any]] = None, data: Any = None) -> bool:
        """
        Extract one record per row.

        Args:
            source: bytes, str, os.PathLike or readable stream
            config: Optional overrides (delimiter, enclosure, escape, start_line, exceptions, auto_eol, encoding)
            data: Accumulator handed unchanged to every handler call

        Returns:
            True once every row has been processed

        Raises:
            ConfigurationError: If nothing is registered or the configuration is invalid
            InputError: If the source cannot be read
            MappingError: If a mapped column is missing and exceptions are enabled
            StructuralError: If a row cannot be parsed
        """
        settings = CSVExtractionConfig.from_mapping(config)
        registration = self.registry.lookup(ExtractionDefaults.DEFAULT_KEY)
        if registration is None:
            raise ConfigurationError(
                f"[{ExtractionDefaults.DEFAULT_KEY}] Element property map is not registered",
                ExtractionDefaults.DEFAULT_KEY
            )

        self.rows_processed = 0
        self.rows_skipped = 0
        self.properties_omitted = 0
        start_time = time.time()

        with self.registry.locked(), self._lines(source, settings) as lines:
            for row_index, fields in self._rows(lines, settings):
                if row_index < settings.start_line:
                    self.rows_skipped += 1
                    continue

                properties = self.extract_row(row_index, fields, settings.exceptions)
                registration.handler(row_index, properties, data)
                self.rows_processed += 1

        self.processing_time_seconds = time.time() - start_time
        self.logger.info(
            f"Extraction complete: {self.rows_processed} rows processed, "
            f"{self.rows_skipped} skipped in {self.processing_time_seconds:.3f}s"
        )
        return True

    def extract_row(self, row_index: int, fields: List[str], exceptions: bool = True) -> Dict[str, Any]:
        """
        Build the property record for one row.

        Args:
            row_index: Zero-based row index, used in error messages
            fields: Parsed row fields
            exceptions: Raise on a missing column instead of omitting the property

        Raises:
            MappingError: If a mapped column is missing and exceptions is True
        """
        registration = self.registry.lookup(ExtractionDefaults.DEFAULT_KEY)
        if registration is None:
            raise ConfigurationError(
                f"[{ExtractionDefaults.DEFAULT_KEY}] Element property map is not registered",
                ExtractionDefaults.DEFAULT_KEY
            )

        properties: Dict[str, Any] = {}
        for name, column in registration.property_map.items():
            if column < len(fields) and fields[column] is not None:
                properties[name] = fields[column]
                continue

            if exceptions:
                self.logger.error(f"Row {row_index} has no column {column} for property {name}")
                raise MappingError(
                    f'Invalid column {column} @ line {row_index} for property "{name}"',
                    column=column, row=row_index, property_name=name
                )

            self.properties_omitted += 1
            self.logger.warning(f"Row {row_index} has no column {column}, omitting property {name}")
        return properties

    @contextmanager
    def _lines(self, source: Any, settings: CSVExtractionConfig) -> Iterator[Iterable[str]]:
        """Yield an iterable of text lines for any supported input kind, closing files it opened."""
        if isinstance(source, (bytes, bytearray)):
            try:
                text = bytes(source).decode(settings.encoding)
            except UnicodeDecodeError as e:
                raise InputError(f"Could not decode input as {settings.encoding}: {e}", "bytes") from e
            yield self._split(text)

        elif isinstance(source, str):
            yield self._split(source)

        elif InputUtils.is_path(source):
            path = os.fspath(source)
            newline = None if settings.auto_eol else '\n'
            try:
                handle = open(path, 'r', encoding=settings.encoding, newline=newline)
            except OSError as e:
                self.logger.error(f"Could not open {path!r}: {e}")
                raise InputError(f'Could not open "{path}" for parsing', path) from e
            with handle:
                self.logger.debug(f"Streaming rows from {path}")
                yield handle

        elif InputUtils.is_stream(source):
            with self._lines(InputUtils.read_stream(source), settings) as lines:
                yield lines

        else:
            type_name = InputUtils.type_name(source)
            raise InvalidInputTypeError(f"Invalid input type: {type_name}", type_name)

    @staticmethod
    def _split(text: str) -> List[str]:
        return [line for line in _LINE_BREAK.split(text) if line]

    @staticmethod
    def _normalize(lines: Iterable[str], settings: CSVExtractionConfig) -> Iterator[str]:
        """
        Rewrite lines so that the csv module returns fields as they were written.

        Inside an enclosure the escape character protects the character after it
        and both stay in the field, so an escaped enclosure is passed on doubled.
        Outside enclosures the escape character is plain data. An unquoted field
        holding a bare carriage return (a file read without auto_eol) is wrapped
        in enclosures so that the return stays part of the field.
        """
        enclosure = settings.enclosure
        delimiter = settings.delimiter
        escape = settings.escape if settings.escape != enclosure else None
        quoted = False

        for line in lines:
            body = line.rstrip('\r\n')
            ending = line[len(body):]
            if enclosure not in body:
                if quoted and (escape is None or escape not in body):
                    yield line
                    continue
                if not quoted and '\r' not in body:
                    yield line
                    continue

            out: List[str] = []
            field = 0
            field_quoted = quoted
            field_start = not quoted
            wrap = False
            i = 0
            while i < len(body):
                char = body[i]
                following = body[i + 1] if i + 1 < len(body) else ''
                if quoted:
                    if char == escape and following:
                        out.append(char + (following * 2 if following == enclosure else following))
                        i += 2
                        continue
                    if char == enclosure:
                        if following == enclosure:
                            out.append(char * 2)
                            i += 2
                            continue
                        quoted = False
                    out.append(char)
                elif char == delimiter:
                    if wrap:
                        CSVExtractor._enclose(out, field, enclosure)
                    out.append(char)
                    field, field_quoted, field_start, wrap = len(out), False, True, False
                    i += 1
                    continue
                elif char == enclosure and field_start:
                    quoted = field_quoted = True
                    out.append(char)
                else:
                    wrap = wrap or (char == '\r' and not field_quoted)
                    out.append(char)
                field_start = False
                i += 1

            if wrap:
                CSVExtractor._enclose(out, field, enclosure)
            yield ''.join(out) + ending

    @staticmethod
    def _enclose(out: List[str], start: int, enclosure: str) -> None:
        """Quote the unquoted field that begins at out[start]."""
        value = ''.join(out[start:]).replace(enclosure, enclosure * 2)
        out[start:] = [enclosure + value + enclosure]

    def _rows(self, lines: Iterable[str], settings: CSVExtractionConfig) -> Iterator[tuple]:
        """Parse lines into (row index, fields), dropping empty rows."""
        reader = csv.reader(
            self._normalize(lines, settings),
            delimiter=settings.delimiter,
            quotechar=settings.enclosure,
            escapechar=None,
            doublequote=True,
        )
        row_index = 0
        while True:
            try:
                fields = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                self.logger.error(f"Malformed CSV at row {row_index}: {e}")
                raise StructuralError(
                    f"{e} @ line #{row_index} [{ExtractionDefaults.DEFAULT_KEY}]",
                    address=ExtractionDefaults.DEFAULT_KEY, line=row_index
                ) from e
            except UnicodeDecodeError as e:
                raise InputError(f"Could not decode input as {settings.encoding}: {e}") from e

            if not fields:
                continue
            yield row_index, fields
            row_index += 1

    def get_performance_stats(self) -> Dict[str, Any]:
        """
        Get extraction statistics for the most recent call.

        Returns:
            Dictionary containing performance metrics
        """
        return {
            'rows_processed': self.rows_processed,
            'rows_skipped': self.rows_skipped,
            'properties_omitted': self.properties_omitted,
            'processing_time_seconds': round(self.processing_time_seconds, 4),
        }
