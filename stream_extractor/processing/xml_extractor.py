"""
Streaming, path-addressed XML record extraction.

The extractor walks a document one element event at a time, keeps the
canonical address of the current element, and for every element whose address
has a registered property map it materializes the element, evaluates the map
and calls the registered handler with the resulting property record.

Handler results drive two behaviours:
- skip ahead: SkipTo(address), or a plain string naming a registered address,
  suspends matching until that address recurs;
- correlation: Correlate(value), or any other truthy value, is stored under the
  current address and can be read by descendants through "#<address>"
  back-reference expressions.
"""

import logging
import time

from typing import Any, Callable, Dict, Mapping, Optional

from lxml import etree

from ..interfaces import AddressCounterInterface, ExtractorInterface
from ..mapping.correlation_store import CorrelationStore
from ..mapping.map_registry import MapRegistry
from ..mapping.property_evaluator import PropertyEvaluator
from ..models import Correlate, ExtractionStats, NodeKind, ReaderEvent, Registration, SkipTo, XMLExtractionConfig
from ..parsing.diagnostics import DiagnosticTranslator
from ..parsing.document_reader import DocumentReader
from ..parsing.node_materializer import NodeMaterializer, flatten
from ..parsing.path_tracker import PathTracker
from ..utils import AddressUtils


class XMLExtractor(ExtractorInterface, AddressCounterInterface):
    """
    Registration-driven XML extractor.

    Example:
        def person(element, properties, data):
            data.append(properties)
            return properties['id']

        extractor = XMLExtractor({
            'Persons/Person': {'map': {'id': 'string(@id)', 'name': 'string(Name)'}, 'handler': person},
        })
        people = []
        extractor.extract(Path('persons.xml'), data=people)

    Extraction is strictly sequential: one call at a time per extractor, with
    handlers invoked synchronously in document order.
    """

    flatten = staticmethod(flatten)

    def __init__(self, elements: Optional[Mapping[str, Mapping[str, Any]]] = None,
                 namespaces: Optional[Mapping[str, str]] = None):
        """
        Initialize the extractor.

        Args:
            elements: Optional mapping of address to {"map": {...}, "handler": callable}
            namespaces: Optional prefix to URI mapping used by XPath property expressions

        Raises:
            ConfigurationError: If an element definition or the namespaces are invalid
        """
        self.logger = logging.getLogger(__name__)
        self.registry = MapRegistry()
        self.evaluator = PropertyEvaluator(namespaces)
        self.translator = DiagnosticTranslator()
        self.materializer = NodeMaterializer(self.translator)

        for address, element in (elements or {}).items():
            self.registry.register_element(address, element)

        # Performance tracking
        self.stats = ExtractionStats()
        self.extraction_count = 0

        self.logger.info(f"{type(self).__name__} initialized with {len(self.registry)} registered elements")

    def register(self, address: str, property_map: Mapping[str, Any],
                 handler: Callable[..., Any]) -> Registration:
        return self.registry.register(address, property_map, handler)

    def extract(self, source: Any, config: Optional[Mapping[str, Any]] = None, data: Any = None) -> bool:
        """
        Extract records from an XML source.

        Args:
            source: bytes, str, os.PathLike or readable stream
            config: Optional {"encoding": ..., "options": {...}} overrides
            data: Accumulator handed unchanged to every handler call

        Returns:
            True once the whole document has been processed

        Raises:
            ConfigurationError: If the configuration is invalid
            InputError: If the source cannot be read
            StructuralError: If the document is malformed
            ExpressionError: If a property expression is invalid
            UnregisteredReferenceError: If a back-reference has no stored value
        """
        settings = XMLExtractionConfig.from_mapping(config)
        self.stats = ExtractionStats()
        start_time = time.time()

        with self.registry.locked(), DocumentReader(settings) as reader:
            reader.open(source)
            self._run(reader, PathTracker(), CorrelationStore(), data)

        self.stats.processing_time_seconds = time.time() - start_time
        self.extraction_count += 1
        self.logger.info(
            f"Extraction complete: {self.stats.elements_matched} matches, "
            f"{self.stats.elements_visited} elements visited, "
            f"{self.stats.elements_skipped} skipped in {self.stats.processing_time_seconds:.3f}s"
        )
        return True

    def dump(self, source: Any, config: Optional[Mapping[str, Any]] = None) -> Dict[str, int]:
        """
        Count the element start occurrences of every canonical address.

        Useful for discovering which addresses to register.

        Returns:
            Address to count, in first-seen order
        """
        settings = XMLExtractionConfig.from_mapping(config)
        counts: Dict[str, int] = {}
        tracker = PathTracker()

        with DocumentReader(settings) as reader:
            reader.open(source)
            while True:
                event = self._next_event(reader, tracker)
                if not tracker.advance(event):
                    break
                if event.kind is NodeKind.ELEMENT:
                    counts[tracker.current_address] = counts.get(tracker.current_address, 0) + 1

        self.logger.debug(f"Dumped {len(counts)} distinct addresses")
        return counts

    def _run(self, reader: DocumentReader, tracker: PathTracker, store: CorrelationStore, data: Any) -> None:
        while True:
            event = self._next_event(reader, tracker)
            if not tracker.advance(event):
                return

            if event.kind is NodeKind.ELEMENT:
                self.stats.elements_visited += 1
                if tracker.skipping:
                    self.stats.elements_skipped += 1

            if not tracker.is_match_candidate(event):
                continue

            registration = self.registry.lookup(tracker.current_address)
            if registration is None:
                continue

            self._process_match(reader, tracker, store, registration, data)

    def _next_event(self, reader: DocumentReader, tracker: PathTracker) -> Optional[ReaderEvent]:
        try:
            return reader.read()
        except etree.XMLSyntaxError as e:
            raise self.translator.translate(e, tracker.current_address) from e

    def _process_match(self, reader: DocumentReader, tracker: PathTracker, store: CorrelationStore,
                       registration: Registration, data: Any) -> None:
        address = tracker.current_address
        self.logger.debug(f"Matched {address}")

        node = self.materializer.materialize(reader, address)
        properties = self.evaluator.evaluate(node, registration.property_map, store, address)
        self.stats.elements_matched += 1

        result = registration.handler(AddressUtils.element_path(address), properties, data)
        self._apply_result(result, tracker, store, address)

    def _apply_result(self, result: Any, tracker: PathTracker, store: CorrelationStore, address: str) -> None:
        if isinstance(result, SkipTo):
            tracker.skip_to(result.address)
            self.stats.skips_requested += 1
            return

        if isinstance(result, Correlate):
            store.put(address, result.value)
            self.stats.correlations_stored += 1
            return

        if not result:
            return

        if self.registry.is_registered(result):
            tracker.skip_to(result)
            self.stats.skips_requested += 1
        else:
            store.put(address, result)
            self.stats.correlations_stored += 1

    def get_performance_stats(self) -> Dict[str, Any]:
        """
        Get extraction statistics for the most recent call.

        Returns:
            Dictionary containing performance metrics
        """
        return {
            'extraction_count': self.extraction_count,
            'registered_elements': len(self.registry),
            'elements_visited': self.stats.elements_visited,
            'elements_skipped': self.stats.elements_skipped,
            'elements_matched': self.stats.elements_matched,
            'correlations_stored': self.stats.correlations_stored,
            'skips_requested': self.stats.skips_requested,
            'match_rate': round(self.stats.match_rate, 2),
            'processing_time_seconds': round(self.stats.processing_time_seconds, 4),
        }

    def reset_stats(self) -> None:
        """Reset performance statistics."""
        self.stats = ExtractionStats()
        self.extraction_count = 0

        self.logger.debug("XMLExtractor statistics reset")
