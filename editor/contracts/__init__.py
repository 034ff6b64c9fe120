"""
Contracts Module

Immutable types shared between the models, workflow, transport and
session layers. No layer may import implementation details from
another layer through this package.
"""

from .base import AbstractState, Error, ErrorCode, Result

__all__ = [
    'AbstractState',
    'Error',
    'ErrorCode',
    'Result',
]
