"""
Workflow Package

Submission workflow rules: which state changes a client may request
and which editor actions to offer.
"""

from .state_machine import (
    TRANSITIONS,
    UNPERSISTED_CANDIDATES,
    EditorAction,
    available_actions,
    is_transition_legal,
    legal_candidates,
)

__all__ = [
    'TRANSITIONS',
    'UNPERSISTED_CANDIDATES',
    'EditorAction',
    'available_actions',
    'is_transition_legal',
    'legal_candidates',
]
