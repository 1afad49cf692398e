"""
Property expression evaluation for matched elements.

A property expression is either a back-reference ("#" followed by an address,
resolved from the correlation store) or an XPath expression evaluated against
the detached element. XPath expressions are compiled once per evaluator and
reused for every match.
"""

import logging

from typing import Any, Dict, Mapping, Optional

from lxml import etree

from ..config.processing_defaults import ExtractionDefaults
from ..exceptions import ConfigurationError, ExpressionError
from .correlation_store import CorrelationStore


class PropertyEvaluator:
    """Builds property records from property maps."""

    def __init__(self, namespaces: Optional[Mapping[str, str]] = None):
        self.logger = logging.getLogger(__name__)
        self.namespaces = self._validate_namespaces(namespaces)
        self._compiled: Dict[str, etree.XPath] = {}

    @staticmethod
    def _validate_namespaces(namespaces: Optional[Mapping[str, str]]) -> Dict[str, str]:
        if namespaces is None:
            return {}
        if not isinstance(namespaces, Mapping):
            raise ConfigurationError("Namespaces must be a mapping of prefix to URI")
        for prefix, uri in namespaces.items():
            if not isinstance(prefix, str) or not prefix:
                raise ConfigurationError(f"Invalid namespace prefix: {prefix!r}")
            if not isinstance(uri, str) or not uri:
                raise ConfigurationError(f"Invalid namespace URI for prefix {prefix}: {uri!r}")
        return dict(namespaces)

    def evaluate(self, node: Any, property_map: Mapping[str, Any], store: CorrelationStore,
                 address: str) -> Dict[str, Any]:
        """
        Resolve every property of a map, in declared order.

        Args:
            node: Detached element the XPath expressions run against
            property_map: Property name to expression
            store: Correlation store of the current extraction call
            address: Canonical address of the node, used in error messages

        Returns:
            Property record

        Raises:
            ExpressionError: If an expression is invalid or fails to evaluate
            UnregisteredReferenceError: If a back-reference has no stored value
        """
        properties: Dict[str, Any] = {}
        for name, expression in property_map.items():
            properties[name] = self.resolve(node, expression, store, address)
        return properties

    def resolve(self, node: Any, expression: Any, store: CorrelationStore, address: str) -> Any:
        if not isinstance(expression, str):
            raise ExpressionError(f'Invalid XPath expression: "{expression}"', str(expression), address)

        expression = expression.strip()
        if expression.startswith(ExtractionDefaults.BACK_REFERENCE_MARKER):
            return store.get(expression[len(ExtractionDefaults.BACK_REFERENCE_MARKER):])

        xpath = self.compile(expression, address)
        try:
            return xpath(node)
        except etree.XPathError as e:
            self.logger.error(f"XPath evaluation failed at [{address}] for {expression!r}: {e}")
            raise ExpressionError(f'Invalid XPath expression: "{expression}"', expression, address) from e

    def compile(self, expression: str, address: Optional[str] = None) -> etree.XPath:
        """Compile an XPath expression, reusing earlier compilations."""
        xpath = self._compiled.get(expression)
        if xpath is not None:
            return xpath
        try:
            xpath = etree.XPath(expression, namespaces=self.namespaces, smart_strings=False)
        except etree.XPathError as e:
            self.logger.error(f"XPath compilation failed for {expression!r}: {e}")
            raise ExpressionError(f'Invalid XPath expression: "{expression}"', expression, address) from e
        self._compiled[expression] = xpath
        return xpath
