"""
Registry of element property maps and their data handlers.

Each registration ties a canonical address to an ordered property map and a
handler. Registrations are validated when they are added, so a bad map fails
before any document is touched, and the registry is locked for the duration of
an extraction call.
"""

import logging

from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from ..exceptions import ConfigurationError, InvalidHandlerError, InvalidMapError, MissingHandlerError
from ..models import Registration
from ..utils import AddressUtils


class MapRegistry:
    """
    Address-keyed store of Registration objects.

    Duplicate addresses overwrite the earlier registration.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._registrations: Dict[str, Registration] = {}
        self._locked = False

    def register(self, address: str, property_map: Any, handler: Optional[Callable[..., Any]]) -> Registration:
        """
        Validate and store a registration.

        Args:
            address: Element address, leading/trailing slashes are trimmed
            property_map: Non-empty mapping of property name to source expression
            handler: Callable invoked for each match

        Returns:
            The stored Registration

        Raises:
            InvalidMapError: If the map is not a mapping or is empty
            MissingHandlerError: If no handler is given
            InvalidHandlerError: If the handler is not callable
            ConfigurationError: If an extraction is in progress
        """
        key = AddressUtils.canonical(address)

        if self._locked:
            raise ConfigurationError(f"[{key}] Elements cannot be registered during an extraction", key)
        if not isinstance(property_map, Mapping):
            raise InvalidMapError(f"[{key}] Element property map must be a mapping", key)
        if len(property_map) == 0:
            raise InvalidMapError(f"[{key}] Element property map must not be empty", key)
        if handler is None:
            raise MissingHandlerError(f"[{key}] Element data handler is not set", key)
        if not callable(handler):
            raise InvalidHandlerError(f"[{key}] Element data handler must be callable", key)

        if key in self._registrations:
            self.logger.debug(f"Replacing registration for {key}")

        registration = Registration(key, MappingProxyType(dict(property_map)), handler)
        self._registrations[key] = registration
        return registration

    def register_element(self, address: str, element: Any) -> Registration:
        """Register an element given as {"map": {...}, "handler": callable}."""
        key = AddressUtils.canonical(address)
        if not isinstance(element, Mapping):
            raise InvalidMapError(f"[{key}] Element definition must be a mapping with 'map' and 'handler'", key)
        return self.register(key, element.get('map'), element.get('handler'))

    def lookup(self, address: str) -> Optional[Registration]:
        return self._registrations.get(AddressUtils.canonical(address))

    def is_registered(self, address: Any) -> bool:
        if not isinstance(address, str):
            return False
        return AddressUtils.canonical(address) in self._registrations

    def addresses(self) -> List[str]:
        return list(self._registrations)

    @contextmanager
    def locked(self) -> Iterator['MapRegistry']:
        """Reject registrations while the block runs."""
        previous = self._locked
        self._locked = True
        try:
            yield self
        finally:
            self._locked = previous

    def __contains__(self, address: Any) -> bool:
        return self.is_registered(address)

    def __len__(self) -> int:
        return len(self._registrations)
