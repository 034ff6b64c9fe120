"""
Transport layer: the abstracts API as seen by an editing session.
"""

from .contracts import AbstractsTransport, Record, TransportResult, TransportStatus
from .client import EditorApiClient

__all__ = [
    'AbstractsTransport',
    'EditorApiClient',
    'Record',
    'TransportResult',
    'TransportStatus',
]
