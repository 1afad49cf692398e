"""
Utility functions for common patterns across the stream extraction system.
"""

import io
import os

from typing import Any, Optional, Union

from .exceptions import InputError


class AddressUtils:
    """Utility methods for canonical element addresses."""

    @staticmethod
    def canonical(address: Any) -> str:
        """
        Normalize an address to its canonical form.

        Examples:
            '/Persons/Person/' -> 'Persons/Person'
            ' Persons/Person ' -> 'Persons/Person'

        Args:
            address: Raw address as supplied by the caller

        Returns:
            Address with surrounding whitespace and leading/trailing slashes removed
        """
        return str(address).strip().strip('/')

    @staticmethod
    def element_path(address: str) -> str:
        """Return the rooted form handed to handlers ('Persons/Person' -> '/Persons/Person')."""
        return '/' + address


class InputUtils:
    """Utility methods for classifying and reading extraction input."""

    @staticmethod
    def is_path(value: Any) -> bool:
        return isinstance(value, os.PathLike)

    @staticmethod
    def is_stream(value: Any) -> bool:
        return callable(getattr(value, 'read', None))

    @staticmethod
    def type_name(value: Any) -> str:
        """Human-readable type name used in error messages (True -> 'bool')."""
        return type(value).__name__

    @staticmethod
    def read_stream(stream: Any) -> Union[bytes, str]:
        """
        Read a caller-supplied stream to completion.

        The stream is not closed; it remains owned by the caller.

        Args:
            stream: Readable binary or text stream

        Returns:
            Everything left in the stream

        Raises:
            InputError: If the stream is closed, not readable, or reading fails
        """
        description = InputUtils.describe_stream(stream)
        if getattr(stream, 'closed', False):
            raise InputError(f"Invalid stream type: {description} is closed", description)

        readable = getattr(stream, 'readable', None)
        if callable(readable) and not readable():
            raise InputError(f"Invalid stream type: {description} is not readable", description)

        try:
            content = stream.read()
        except (OSError, ValueError, io.UnsupportedOperation) as e:
            raise InputError(f"Failed to read input from stream: {e}", description) from e

        if content is None or not isinstance(content, (bytes, bytearray, str)):
            raise InputError("Failed to read input from stream", description)
        return bytes(content) if isinstance(content, bytearray) else content

    @staticmethod
    def describe_stream(stream: Any) -> str:
        name: Optional[str] = getattr(stream, 'name', None)
        if isinstance(name, str):
            return f"{type(stream).__name__}({name})"
        return type(stream).__name__
