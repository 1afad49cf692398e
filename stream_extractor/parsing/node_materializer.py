"""
Node materialization and flattening.

The forward-only reader cannot answer arbitrary queries, so every matched
element is completed and copied into a detached tree before its property
expressions are evaluated. This module also converts elements and XPath
node-sets into plain Python containers for handlers that prefer nested lists
and dicts over lxml elements.
"""

import copy
import logging

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from lxml import etree

from ..exceptions import NodeImportError
from ..interfaces import DocumentReaderInterface
from .diagnostics import DiagnosticTranslator


ATTRIBUTES_KEY = '@'
TEXT_NAME = '#text'
COMMENT_NAME = '#comment'


class NodeMaterializer:
    """Detaches the element at the reader's current position."""

    def __init__(self, translator: Optional[DiagnosticTranslator] = None):
        self.logger = logging.getLogger(__name__)
        self.translator = translator or DiagnosticTranslator(self.logger)

    def materialize(self, reader: DocumentReaderInterface, address: str) -> etree._Element:
        """
        Expand the current element and import it into an independent tree.

        Args:
            reader: Structural reader positioned on an element start
            address: Canonical address of that element, used in error messages

        Returns:
            Deep copy of the element with no parent and no tail

        Raises:
            StructuralError: If the parser reports an error while expanding
            NodeImportError: If the element cannot be copied out of the reader's tree
        """
        reader.clear_diagnostics()
        try:
            element = reader.expand()
        except etree.XMLSyntaxError as e:
            raise self.translator.translate(e, address) from e

        self.translator.check(reader.last_diagnostic(), address)

        if not isinstance(element, etree._Element):
            raise NodeImportError('Node import failed', address=address)
        try:
            node = copy.deepcopy(element)
        except (TypeError, ValueError, etree.LxmlError) as e:
            self.logger.error(f"Node import failed at [{address}]: {e}")
            raise NodeImportError('Node import failed', address=address) from e

        node.tail = None
        return node


@dataclass
class NodeValue:
    """
    Tagged tree produced by flattening an element.

    A leaf carries text only. A branch carries its attributes (when requested)
    and its children as (node name, NodeValue) pairs in document order.
    """
    name: str
    text: Optional[str] = None
    children: List[Tuple[str, 'NodeValue']] = field(default_factory=list)
    attributes: Optional[Dict[str, str]] = None
    associative: bool = False
    leaf: bool = True

    def to_python(self) -> Any:
        """
        Convert to plain containers.

        Leaves become their text. Branches become a list of child values, or a
        dict of child name to list of values when associative. Attributes, when
        present, are placed under the '@' key, which turns a sequential branch
        into a dict keyed by '@' and child positions.
        """
        if self.leaf:
            return self.text

        if self.associative:
            result: Dict[Any, Any] = {}
            if self.attributes is not None:
                result[ATTRIBUTES_KEY] = dict(self.attributes)
            for name, child in self.children:
                result.setdefault(name, []).append(child.to_python())
            return result

        values = [child.to_python() for _, child in self.children]
        if self.attributes is None:
            return values

        result = {ATTRIBUTES_KEY: dict(self.attributes)}
        result.update(enumerate(values))
        return result


def node_name(node: Any) -> str:
    """Qualified node name, with DOM-style names for text and comment nodes."""
    if isinstance(node, etree._Comment):
        return COMMENT_NAME
    if isinstance(node, etree._ProcessingInstruction):
        return node.target
    if isinstance(node, etree._Element):
        localname = etree.QName(node).localname
        return f"{node.prefix}:{localname}" if node.prefix else localname
    return TEXT_NAME


def node_text(node: Any) -> str:
    """Concatenated text content of a node and its descendants."""
    if isinstance(node, (etree._Comment, etree._ProcessingInstruction)):
        return node.text or ''
    if isinstance(node, etree._Element):
        return ''.join(node.itertext())
    return str(node)


def _element_children(node: etree._Element) -> int:
    return sum(1 for child in node if not isinstance(child, (etree._Comment, etree._ProcessingInstruction)))


def _child_nodes(node: etree._Element):
    """Yield child nodes in document order, text runs included, whitespace-only text skipped."""
    if node.text and node.text.strip():
        yield node.text
    for child in node:
        yield child
        if child.tail and child.tail.strip():
            yield child.tail


def to_node_value(node: Any, associative: bool = False, attributes: bool = False) -> NodeValue:
    """Build the tagged tree for a single node or XPath string result."""
    name = node_name(node)
    if not isinstance(node, etree._Element) or isinstance(node, (etree._Comment, etree._ProcessingInstruction)):
        return NodeValue(name, text=node_text(node))

    include_attributes = attributes and len(node.attrib) > 0
    if _element_children(node) == 0 and not include_attributes:
        return NodeValue(name, text=node_text(node))

    value = NodeValue(
        name,
        attributes=dict(node.attrib) if include_attributes else None,
        associative=associative,
        leaf=False,
    )
    for child in _child_nodes(node):
        value.children.append((node_name(child), to_node_value(child, associative, attributes)))
    return value


def flatten(nodes: Any, associative: bool = False, attributes: bool = False) -> Any:
    """
    Convert an element or an XPath node-set into nested lists and dicts.

    Args:
        nodes: lxml element, XPath result list, or scalar XPath result
        associative: Group child values by node name instead of position
        attributes: Include element attributes under the '@' key

    Returns:
        A list for node-sets, the converted value for a single node, scalars unchanged
    """
    if isinstance(nodes, list):
        return [to_node_value(node, associative, attributes).to_python() for node in nodes]
    if isinstance(nodes, (etree._Element, str)):
        return to_node_value(nodes, associative, attributes).to_python()
    return nodes
