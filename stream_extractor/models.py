"""
Core data models for the stream extraction system.

This module defines the primary data structures used throughout the system:
element registrations, handler result variants, structural reader events,
per-call configuration and extraction statistics.
"""

import codecs

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Mapping, Optional
from enum import Enum

from .config.processing_defaults import ExtractionDefaults
from .exceptions import ConfigurationError


# Keyword arguments accepted by lxml.etree.iterparse that callers may set through "options"
SUPPORTED_PARSER_OPTIONS = {
    "attribute_defaults",
    "collect_ids",
    "dtd_validation",
    "huge_tree",
    "load_dtd",
    "no_network",
    "recover",
    "remove_blank_text",
    "remove_comments",
    "remove_pis",
    "resolve_entities",
    "strip_cdata",
}


@dataclass(frozen=True)
class Registration:
    """
    An element map registered under a canonical address.

    Attributes:
        address: Canonical, slash-trimmed address (e.g. "Persons/Person") or "default"
        property_map: Ordered mapping of property name to source expression (XPath,
                      "#"-prefixed back-reference, or column index for tabular input)
        handler: Callable invoked as handler(element, properties, data)
    """
    address: str
    property_map: Mapping[str, Any]
    handler: Callable[..., Any]


@dataclass(frozen=True)
class SkipTo:
    """Handler result directing the extractor to skip ahead until the address recurs."""
    address: str


@dataclass(frozen=True)
class Correlate:
    """Handler result storing a value for back-references from descendant elements."""
    value: Any


class NodeKind(Enum):
    """Structural reader event kinds."""
    ELEMENT = "element"
    END_ELEMENT = "end_element"


@dataclass
class ReaderEvent:
    """
    A single forward-only reader position.

    Attributes:
        kind: Element start or element end
        name: Qualified element name, including the namespace prefix when present
        depth: Nesting depth, zero for the document element
        is_empty: True when the element has neither child nodes nor text
        element: Underlying lxml element (still attached to the streaming tree)
    """
    kind: NodeKind
    name: str
    depth: int
    is_empty: bool = False
    element: Any = None


def _merge_settings(config_class, overrides: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Validate override keys against the dataclass fields of config_class."""
    if overrides is None:
        return {}
    if not isinstance(overrides, Mapping):
        raise ConfigurationError(f"Configuration settings must be a mapping, got {type(overrides).__name__}")

    known = {f.name for f in fields(config_class)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration settings: {', '.join(unknown)}")
    return dict(overrides)


@dataclass
class XMLExtractionConfig:
    """
    Configuration for one XML extraction call.

    Attributes:
        encoding: Character encoding label used for text input and documents without a declaration
        options: lxml parser flags passed to iterparse (huge_tree, recover, ...)
    """
    encoding: str = ExtractionDefaults.ENCODING
    options: Dict[str, Any] = field(default_factory=lambda: dict(ExtractionDefaults.PARSER_OPTIONS))

    def __post_init__(self):
        """Validate encoding and parser flags."""
        _validate_encoding(self.encoding)
        if not isinstance(self.options, Mapping):
            raise ConfigurationError("options must be a mapping of parser flags")
        unsupported = sorted(set(self.options) - SUPPORTED_PARSER_OPTIONS)
        if unsupported:
            raise ConfigurationError(f"Unsupported parser options: {', '.join(unsupported)}")

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> 'XMLExtractionConfig':
        """
        Build a configuration from keyed overrides, defaulting every missing key.

        Parser options are merged over the default options rather than replacing them.
        """
        if isinstance(overrides, cls):
            return overrides
        settings = _merge_settings(cls, overrides)
        options = dict(ExtractionDefaults.PARSER_OPTIONS)
        if settings.get("options") is not None:
            if not isinstance(settings["options"], Mapping):
                raise ConfigurationError("options must be a mapping of parser flags")
            options.update(settings["options"])
        settings["options"] = options
        return cls(**settings)


@dataclass
class CSVExtractionConfig:
    """
    Configuration for one tabular extraction call.

    Attributes:
        delimiter: Field delimiter
        enclosure: Quote character
        escape: Escape character honoured inside enclosures and kept in the field (empty string disables escaping)
        start_line: Zero-based index of the first row handed to the handler
        exceptions: Raise MappingError on a missing column instead of omitting the property
        auto_eol: Honour bare carriage-return line endings when reading files
        encoding: Character encoding of file and byte input
    """
    delimiter: str = ExtractionDefaults.DELIMITER
    enclosure: str = ExtractionDefaults.ENCLOSURE
    escape: Optional[str] = ExtractionDefaults.ESCAPE
    start_line: int = ExtractionDefaults.START_LINE
    exceptions: bool = ExtractionDefaults.EXCEPTIONS
    auto_eol: bool = ExtractionDefaults.AUTO_EOL
    encoding: str = ExtractionDefaults.ENCODING

    def __post_init__(self):
        """Validate CSV control characters and row offset."""
        for name in ("delimiter", "enclosure"):
            value = getattr(self, name)
            if not isinstance(value, str) or len(value) != 1:
                raise ConfigurationError(f"{name} must be a single character")
        if self.escape == "":
            self.escape = None
        if self.escape is not None and (not isinstance(self.escape, str) or len(self.escape) != 1):
            raise ConfigurationError("escape must be a single character")
        if not isinstance(self.start_line, int) or isinstance(self.start_line, bool) or self.start_line < 0:
            raise ConfigurationError("start_line must be a non-negative integer")
        _validate_encoding(self.encoding)

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> 'CSVExtractionConfig':
        """Build a configuration from keyed overrides, defaulting every missing key."""
        if isinstance(overrides, cls):
            return overrides
        return cls(**_merge_settings(cls, overrides))


@dataclass
class SOAPOptions:
    """
    Transport options for the SOAP adapter.

    Attributes:
        timeout: Request timeout in seconds
        soap_version: "1.1" (text/xml) or "1.2" (application/soap+xml)
        headers: Extra HTTP headers sent with every call
        verify: TLS certificate verification flag handed to requests
    """
    timeout: float = ExtractionDefaults.SOAP_TIMEOUT
    soap_version: str = ExtractionDefaults.SOAP_VERSION
    headers: Dict[str, str] = field(default_factory=dict)
    verify: bool = True

    def __post_init__(self):
        if self.soap_version not in ("1.1", "1.2"):
            raise ConfigurationError(f"Unsupported SOAP version: {self.soap_version}")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> 'SOAPOptions':
        if isinstance(overrides, cls):
            return overrides
        return cls(**_merge_settings(cls, overrides))


@dataclass
class ExtractionStats:
    """
    Counters collected during one extraction call.

    Attributes:
        elements_visited: Element start events seen by the path tracker
        elements_skipped: Element start events passed over while skipping ahead
        elements_matched: Registered elements materialized and handed to a handler
        correlations_stored: Handler results stored for back-references
        skips_requested: Handler results that started a skip-ahead
        processing_time_seconds: Wall-clock duration of the call
    """
    elements_visited: int = 0
    elements_skipped: int = 0
    elements_matched: int = 0
    correlations_stored: int = 0
    skips_requested: int = 0
    processing_time_seconds: float = 0.0

    @property
    def match_rate(self) -> float:
        """Calculate the share of visited elements that were matched, as a percentage."""
        if self.elements_visited == 0:
            return 0.0
        return (self.elements_matched / self.elements_visited) * 100.0


def _validate_encoding(encoding: str) -> None:
    if not isinstance(encoding, str) or not encoding:
        raise ConfigurationError("encoding must be a non-empty string")
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise ConfigurationError(f"Unknown encoding: {encoding}") from e
