"""
Abstract interfaces and base classes for the stream extraction system.

This module defines the contracts that extractors and structural readers must
implement to ensure consistent behavior and enable dependency injection.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from .models import ReaderEvent


class ExtractorInterface(ABC):
    """Abstract interface for record extractors (XML, CSV, SOAP)."""

    @abstractmethod
    def register(self, address: str, property_map: Mapping[str, Any], handler: Any) -> None:
        """
        Register an element property map and data handler.

        Args:
            address: Element address (XML) or the "default" key (CSV)
            property_map: Ordered mapping of property name to source expression
            handler: Callable invoked for every matched element

        Raises:
            ConfigurationError: If the map or handler is invalid
        """
        pass

    @abstractmethod
    def extract(self, source: Any, config: Optional[Mapping[str, Any]] = None, data: Any = None) -> bool:
        """
        Extract records from a source, invoking registered handlers.

        Args:
            source: Document input (bytes, str, os.PathLike or readable stream)
            config: Optional keyed configuration overrides
            data: Caller-owned accumulator threaded through every handler call

        Returns:
            True when the whole source was processed
        """
        pass


class DocumentReaderInterface(ABC):
    """
    Abstract interface for forward-only structural readers.

    Diagnostics are buffered by the reader: callers clear them before a step
    and inspect the last one afterwards.
    """

    @abstractmethod
    def read(self) -> Optional[ReaderEvent]:
        """
        Advance to the next element start or end.

        Returns:
            The next event, or None at end of document
        """
        pass

    @abstractmethod
    def expand(self) -> Any:
        """
        Complete the element at the current position without moving the cursor.

        Returns:
            The fully parsed element (still attached to the reader's tree)
        """
        pass

    @abstractmethod
    def clear_diagnostics(self) -> None:
        """Discard buffered diagnostics."""
        pass

    @abstractmethod
    def last_diagnostic(self) -> Optional[Any]:
        """Return the most recent diagnostic buffered since the last clear, if any."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying document source."""
        pass


class AddressCounterInterface(ABC):
    """Abstract interface for components that report the addresses of a document."""

    @abstractmethod
    def dump(self, source: Any, config: Optional[Mapping[str, Any]] = None) -> Dict[str, int]:
        """
        Count occurrences of every canonical element address in a document.

        Returns:
            Mapping of address to occurrence count in first-seen order
        """
        pass
