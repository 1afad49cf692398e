"""
Custom exceptions for the stream extraction system.

This module defines specific exception types for the different error conditions
that can occur while registering element maps and extracting records from XML,
CSV or SOAP sources.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base exception for all extraction related errors."""

    def __init__(self, message: str, address: Optional[str] = None, code: int = 0):
        """
        Initialize extraction error.

        Args:
            message: Error description
            address: Optional canonical address (e.g. "Persons/Person") where the error occurred
            code: Optional numeric error code reported by the underlying library
        """
        super().__init__(message)
        self.address = address
        self.code = code


class ConfigurationError(ExtractionError):
    """Exception raised when an element registration or configuration setting is invalid."""
    pass


class InvalidMapError(ConfigurationError):
    """Exception raised when an element property map is not a mapping or is empty."""
    pass


class MissingHandlerError(ConfigurationError):
    """Exception raised when an element data handler is not set."""
    pass


class InvalidHandlerError(ConfigurationError):
    """Exception raised when an element data handler is not callable."""
    pass


class InputError(ExtractionError):
    """Exception raised when the extraction input cannot be read."""

    def __init__(self, message: str, input_description: Optional[str] = None):
        """
        Initialize input error.

        Args:
            message: Error description
            input_description: Path, type name or stream description of the offending input
        """
        super().__init__(message)
        self.input_description = input_description


class InvalidInputTypeError(InputError):
    """Exception raised when the extraction input is of an unsupported kind."""
    pass


class StructuralError(ExtractionError):
    """Exception raised when a document is malformed."""

    def __init__(self, message: str, address: Optional[str] = None, code: int = 0,
                 line: Optional[int] = None):
        """
        Initialize structural error.

        Args:
            message: Error description, already annotated with line and address
            address: Canonical address being processed when the error surfaced
            code: Parser error code
            line: Source line number, when the parser reports one
        """
        super().__init__(message, address, code)
        self.line = line


class NodeImportError(StructuralError):
    """Exception raised when the current node cannot be detached from the reader."""
    pass


class ExpressionError(ExtractionError):
    """Exception raised when a property source expression is invalid or fails to evaluate."""

    def __init__(self, message: str, expression: Optional[str] = None, address: Optional[str] = None):
        super().__init__(message, address)
        self.expression = expression


class UnregisteredReferenceError(ExtractionError):
    """Exception raised when a back-reference names an address with no recorded value."""
    pass


class MappingError(ExtractionError):
    """Exception raised when a tabular row has no field for a mapped column."""

    def __init__(self, message: str, column: Optional[int] = None, row: Optional[int] = None,
                 property_name: Optional[str] = None):
        """
        Initialize mapping error.

        Args:
            message: Error description
            column: Column index declared in the property map
            row: Zero-based row index of the offending row
            property_name: Property that referenced the missing column
        """
        super().__init__(message, "default")
        self.column = column
        self.row = row
        self.property_name = property_name


class RemoteCallError(ExtractionError):
    """Exception raised when a SOAP call fails or returns a fault."""

    def __init__(self, message: str, code: int = 0, fault_code: Optional[str] = None):
        super().__init__(message, code=code)
        self.fault_code = fault_code
