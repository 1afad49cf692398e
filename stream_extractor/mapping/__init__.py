"""
Mapping components: element registrations, per-call correlation store and
property expression evaluation.
"""

from .correlation_store import CorrelationStore
from .map_registry import MapRegistry
from .property_evaluator import PropertyEvaluator

__all__ = [
    'CorrelationStore',
    'MapRegistry',
    'PropertyEvaluator'
]
