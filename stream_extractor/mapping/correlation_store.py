"""
Per-call store of handler results used to resolve back-references.
"""

import logging

from typing import Any, Dict

from ..exceptions import UnregisteredReferenceError
from ..utils import AddressUtils


class CorrelationStore:
    """
    Maps a canonical address to the last value its handler produced.

    A fresh store is created for every extraction call. Later writes for the
    same address overwrite earlier ones.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._values: Dict[str, Any] = {}

    def put(self, address: str, value: Any) -> None:
        key = AddressUtils.canonical(address)
        self._values[key] = value
        self.logger.debug(f"Stored correlation value for {key}")

    def get(self, address: str) -> Any:
        """
        Return the value stored for an address.

        Raises:
            UnregisteredReferenceError: If nothing has been stored for the address yet
        """
        key = AddressUtils.canonical(address)
        if key not in self._values:
            raise UnregisteredReferenceError(f'Unregistered Element XPath: "/{key}"', key)
        return self._values[key]

    def __contains__(self, address: str) -> bool:
        return AddressUtils.canonical(address) in self._values

    def __len__(self) -> int:
        return len(self._values)
