"""
Workflow State Machine

Pure functions deciding which abstract state changes a client may
request.

INVARIANT: is_transition_legal(...) is a PURE FUNCTION
Same (is_persisted, prior_state, candidate_state) → same answer.

It is consulted before every persistence attempt. An illegal change
never reaches the transport.

TRANSITIONS (persisted abstracts):
==================================
    InPreparation → InPreparation, Submitted
    Submitted     → Withdrawn
    Withdrawn     → InPreparation
    InRevision    → InRevision, Submitted
    InReview      → (none; moved on by the server only)

Unpersisted abstracts may only be saved as InPreparation or Submitted.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from ..contracts.base import AbstractState

StateLike = Union[AbstractState, str]


UNPERSISTED_CANDIDATES: FrozenSet[AbstractState] = frozenset({
    AbstractState.IN_PREPARATION,
    AbstractState.SUBMITTED,
})

TRANSITIONS: Dict[AbstractState, FrozenSet[AbstractState]] = {
    AbstractState.IN_PREPARATION: frozenset({AbstractState.IN_PREPARATION, AbstractState.SUBMITTED}),
    AbstractState.SUBMITTED: frozenset({AbstractState.WITHDRAWN}),
    AbstractState.WITHDRAWN: frozenset({AbstractState.IN_PREPARATION}),
    AbstractState.IN_REVISION: frozenset({AbstractState.IN_REVISION, AbstractState.SUBMITTED}),
    AbstractState.IN_REVIEW: frozenset(),
}


def _as_state(value: Optional[StateLike]) -> Optional[AbstractState]:
    """Unknown spellings map to None, which no table entry accepts."""
    if value is None:
        return None
    try:
        return AbstractState(value)
    except ValueError:
        return None


def legal_candidates(is_persisted: bool, prior_state: Optional[StateLike]) -> FrozenSet[AbstractState]:
    """All states a save may carry given the persisted prior state."""
    if not is_persisted:
        return UNPERSISTED_CANDIDATES

    prior = _as_state(prior_state)
    if prior is None:
        return frozenset()
    return TRANSITIONS[prior]


def is_transition_legal(
    is_persisted: bool,
    prior_state: Optional[StateLike],
    candidate_state: Optional[StateLike]
) -> bool:
    """Decide whether saving ``candidate_state`` is allowed."""
    candidate = _as_state(candidate_state)
    if candidate is None:
        return False
    return candidate in legal_candidates(is_persisted, prior_state)


# =============================================================================
# EDITOR ACTIONS
# =============================================================================

class EditorAction(Enum):
    """Actions an editor offers for an abstract."""
    SAVE = "save"
    SUBMIT = "submit"
    WITHDRAW = "withdraw"
    REACTIVATE = "reactivate"


_EDITABLE = frozenset({AbstractState.IN_PREPARATION, AbstractState.IN_REVISION})
_WITHDRAWABLE = frozenset({AbstractState.SUBMITTED, AbstractState.IN_REVIEW})


def available_actions(is_persisted: bool, prior_state: Optional[StateLike]) -> FrozenSet[EditorAction]:
    """
    Actions to offer for an abstract in ``prior_state``.

    Offering an action does not make its transition legal: withdrawing
    an abstract that is InReview is offered but rejected by
    is_transition_legal, leaving the final word to the server.
    """
    prior = _as_state(prior_state)
    actions = set()

    if not is_persisted or prior is None or prior in _EDITABLE:
        actions.add(EditorAction.SAVE)

    if is_persisted and (prior is None or prior in _EDITABLE):
        actions.add(EditorAction.SUBMIT)

    if is_persisted and prior in _WITHDRAWABLE:
        actions.add(EditorAction.WITHDRAW)

    if is_persisted and (prior is None or prior == AbstractState.WITHDRAWN):
        actions.add(EditorAction.REACTIVATE)

    return frozenset(actions)
