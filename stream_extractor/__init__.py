"""
Stream Extractor

Streaming, path-addressed record extraction from XML, CSV and SOAP sources.
Callers register property maps against element addresses; the extractor walks
the document once, evaluates each map on every matching element and hands the
resulting record to a caller-supplied handler.
"""

__version__ = "1.0.0"

# Import core models and extractors for easy access
from .models import (
    Registration,
    SkipTo,
    Correlate,
    XMLExtractionConfig,
    CSVExtractionConfig,
    SOAPOptions,
    ExtractionStats
)

from .exceptions import (
    ExtractionError,
    ConfigurationError,
    InvalidMapError,
    MissingHandlerError,
    InvalidHandlerError,
    InputError,
    InvalidInputTypeError,
    StructuralError,
    NodeImportError,
    ExpressionError,
    UnregisteredReferenceError,
    MappingError,
    RemoteCallError
)

from .parsing.node_materializer import NodeValue, flatten
from .processing.xml_extractor import XMLExtractor
from .processing.csv_extractor import CSVExtractor
from .processing.soap_extractor import SOAPExtractor

__all__ = [
    # Core models
    "Registration",
    "SkipTo",
    "Correlate",
    "XMLExtractionConfig",
    "CSVExtractionConfig",
    "SOAPOptions",
    "ExtractionStats",
    "NodeValue",
    "flatten",

    # Extractors
    "XMLExtractor",
    "CSVExtractor",
    "SOAPExtractor",

    # Exceptions
    "ExtractionError",
    "ConfigurationError",
    "InvalidMapError",
    "MissingHandlerError",
    "InvalidHandlerError",
    "InputError",
    "InvalidInputTypeError",
    "StructuralError",
    "NodeImportError",
    "ExpressionError",
    "UnregisteredReferenceError",
    "MappingError",
    "RemoteCallError"
]
