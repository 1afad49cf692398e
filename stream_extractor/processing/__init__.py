"""
Processing module for the stream extraction system.

This module provides the XML extraction loop and its CSV and SOAP adaptations.
"""

from .xml_extractor import XMLExtractor
from .csv_extractor import CSVExtractor
from .soap_extractor import SOAPExtractor

__all__ = [
    'XMLExtractor',
    'CSVExtractor',
    'SOAPExtractor'
]
