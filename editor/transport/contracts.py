"""
Transport Contracts

Typed request outcomes and the interface the editing session talks to.

PRINCIPLES:
===========
1. Failed requests are first-class results, never exceptions
2. Every result records what was attempted and when
3. The session never sees HTTP library types
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..figures import FigureUpload

Record = Dict[str, Any]


class TransportStatus(Enum):
    """Status of a request attempt."""
    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class TransportResult:
    """Outcome of a single request."""
    method: str
    url: str
    status: TransportStatus
    attempted_at: datetime
    completed_at: datetime
    http_status: Optional[int] = None
    record: Optional[Record] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == TransportStatus.SUCCESS

    def duration_ms(self) -> float:
        return (self.completed_at - self.attempted_at).total_seconds() * 1000


class AbstractsTransport:
    """
    Interface for the abstracts API.

    Implementations return a TransportResult for every call and must not
    raise for network or server failures.
    """

    def get_conference(self, conference_id: str) -> TransportResult:
        raise NotImplementedError

    def get_abstract(self, abstract_id: str) -> TransportResult:
        raise NotImplementedError

    def create_abstract(self, conference_id: str, record: Record) -> TransportResult:
        raise NotImplementedError

    def update_abstract(self, abstract_id: str, record: Record) -> TransportResult:
        raise NotImplementedError

    def upload_figure(self, abstract_id: str, upload: FigureUpload) -> TransportResult:
        raise NotImplementedError

    def delete_figure(self, figure_id: str) -> TransportResult:
        raise NotImplementedError
