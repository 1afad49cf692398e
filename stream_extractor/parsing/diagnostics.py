"""
Diagnostic translation for the structural parser.

libxml2 reports problems through an error log whose entries carry a severity
level (warning, error, fatal), a message, an error code and usually a line
number. This module converts those entries, and the XMLSyntaxError exceptions
lxml raises while streaming, into StructuralError failures annotated with the
canonical address being processed, so that every failure can be located in the
document structure even when the parser cannot report a line.
"""

import logging
import re

from dataclasses import dataclass
from typing import Any, Optional

from lxml import etree

from ..exceptions import StructuralError


_POSITION_SUFFIX = re.compile(r',\s*line\s+\d+,\s*column\s+\d+\s*$')


@dataclass(frozen=True)
class Diagnostic:
    """
    A single parser diagnostic.

    Attributes:
        level: libxml2 severity (etree.ErrorLevels.WARNING, ERROR or FATAL)
        message: Diagnostic text without position information
        line: Source line number, when known
        code: libxml2 error code
    """
    level: int
    message: str
    line: Optional[int] = None
    code: int = 0

    @property
    def is_fatal(self) -> bool:
        """True for severities above warning."""
        return self.level > etree.ErrorLevels.WARNING

    @classmethod
    def from_log_entry(cls, entry: Any) -> 'Diagnostic':
        """Build a diagnostic from an lxml _LogEntry."""
        return cls(
            level=entry.level,
            message=(entry.message or '').strip(),
            line=entry.line or None,
            code=entry.type or 0,
        )

    @classmethod
    def from_syntax_error(cls, error: etree.XMLSyntaxError) -> 'Diagnostic':
        """
        Build a diagnostic from an XMLSyntaxError raised while reading.

        The error log attached to the exception is preferred because its message
        carries no position suffix; the exception text is the fallback.
        """
        line = getattr(error, 'lineno', None)
        error_log = getattr(error, 'error_log', None)
        entry = error_log.last_error if error_log is not None else None

        if entry is not None and (line is None or entry.line == line):
            return cls.from_log_entry(entry)

        message = _POSITION_SUFFIX.sub('', str(getattr(error, 'msg', None) or error)).strip()
        return cls(
            level=etree.ErrorLevels.FATAL,
            message=message,
            line=line or None,
            code=getattr(error, 'code', 0) or 0,
        )


class DiagnosticTranslator:
    """
    Filters parser diagnostics by severity and converts fatal ones into StructuralError.

    Warnings (and anything below) are logged and dropped. Errors and fatal errors
    abort the extraction with a message of the form
    ``<message> @ line #<line> [<address>]``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def check(self, diagnostic: Optional[Diagnostic], address: str) -> None:
        """
        Inspect the diagnostic buffered for the unit just processed.

        Args:
            diagnostic: Last diagnostic reported by the reader, or None
            address: Canonical address of the unit

        Raises:
            StructuralError: If the diagnostic is more severe than a warning
        """
        if diagnostic is None:
            return

        if not diagnostic.is_fatal:
            self.logger.warning(f"Parser warning at [{address}]: {diagnostic.message} (line {diagnostic.line})")
            return

        raise self.to_error(diagnostic, address)

    def translate(self, error: etree.XMLSyntaxError, address: str) -> StructuralError:
        """Convert an XMLSyntaxError raised while reading into a StructuralError."""
        return self.to_error(Diagnostic.from_syntax_error(error), address)

    def to_error(self, diagnostic: Diagnostic, address: str) -> StructuralError:
        message = diagnostic.message
        if diagnostic.line is not None:
            message = f"{message} @ line #{diagnostic.line}"
        message = f"{message} [{address}]"

        self.logger.error(f"Structural error: {message} (code {diagnostic.code})")
        return StructuralError(message, address=address, code=diagnostic.code, line=diagnostic.line)
