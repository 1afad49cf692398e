"""
Canonical address tracking for forward-only document traversal.

The tracker keeps one element name per nesting depth. Every event truncates
the stack to the event's depth and appends the event's element name, so the
address is always derived from depth alone and is re-established correctly
after sibling branches or skipped subtrees.
"""

import logging

from typing import List, Optional

from ..models import NodeKind, ReaderEvent
from ..utils import AddressUtils


class PathTracker:
    """
    Current element address plus skip-ahead state.

    While a skip target is set the tracker keeps advancing without offering any
    match candidates; the target is cleared exactly once, on the first event
    whose address equals it.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.stack: List[str] = []
        self.current_address = ''
        self.skip: Optional[str] = None

    @property
    def skipping(self) -> bool:
        return self.skip is not None

    def advance(self, event: Optional[ReaderEvent]) -> bool:
        """
        Move to the next reader event.

        Args:
            event: Next event from the structural reader, None at end of document

        Returns:
            False at end of document, True otherwise
        """
        if event is None:
            return False

        del self.stack[event.depth:]
        self.stack.append(event.name)
        self.current_address = '/'.join(self.stack)

        if self.skip is not None and self.skip == self.current_address:
            self.logger.debug(f"Skip target reached: {self.current_address}")
            self.skip = None

        return True

    def is_match_candidate(self, event: ReaderEvent) -> bool:
        """Only non-empty element starts are matched, and never while skipping."""
        return event.kind is NodeKind.ELEMENT and not event.is_empty and self.skip is None

    def skip_to(self, address: str) -> None:
        self.skip = AddressUtils.canonical(address)
        self.logger.debug(f"Skipping from {self.current_address} to {self.skip}")

    def reset(self) -> None:
        self.stack = []
        self.current_address = ''
        self.skip = None
