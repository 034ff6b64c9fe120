"""
Base Contracts and Shared Types

Foundational types shared by every layer of the editor.
All types here are IMMUTABLE and represent pure data.

ERROR MODEL:
============
- Session operations never raise for user-recoverable failures
- Every failure is an Error value carrying an explicit ErrorCode
- Exceptions are reserved for programming errors (bad schemas,
  structurally broken records, out-of-range indices)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for every failure an editing session can report.
    No silent fallbacks - every error state is enumerated.
    """
    # Transport errors
    TRANSPORT_FAILED = auto()
    MALFORMED_RECORD = auto()
    
    # Workflow errors
    ILLEGAL_STATE_TRANSITION = auto()
    NO_FIGURE = auto()
    MISSING_CONTEXT = auto()
    NOT_PERSISTED = auto()
    
    # Validation errors
    VALIDATION_FAILED = auto()
    
    # Unsupported input
    UNSUPPORTED_FIGURE_TYPE = auto()
    FIGURE_TOO_LARGE = auto()
    
    # Editing errors
    INVALID_INDEX = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and inspected.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    
    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        """Create an error stamped with the current UTC time."""
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple((key, str(value)) for key, value in context.items())
        )
    
    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None
    
    @property
    def is_success(self) -> bool:
        return self.error is None
    
    @property
    def is_failure(self) -> bool:
        return self.error is not None
    
    @staticmethod
    def success(value: object = None) -> Result:
        return Result(value=value, error=None)
    
    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# WORKFLOW STATES
# =============================================================================

class AbstractState(str, Enum):
    """
    Lifecycle stage of an abstract.
    
    Values are the literal wire spellings, so members compare equal
    to the strings exchanged with the server.
    """
    IN_PREPARATION = "InPreparation"
    SUBMITTED = "Submitted"
    IN_REVIEW = "InReview"
    IN_REVISION = "InRevision"
    WITHDRAWN = "Withdrawn"
    
    def __str__(self) -> str:
        return self.value
