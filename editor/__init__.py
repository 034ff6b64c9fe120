"""
Conference Abstract Editor

Client-side core of a conference abstract editor. Layers talk only
through explicit contracts; no layer holds global state.

LAYER STRUCTURE:
================

1. MODELS (models/)
   - Responsibility: Entity types, explicit schemas, record marshalling
   - Outputs: Abstract, Author, Affiliation, Figure, Reference,
     Conference, AbstractGroup
   - MUST NOT: Perform I/O or know about workflow states beyond storing one

2. WORKFLOW (workflow/)
   - Responsibility: Decide which state changes a client may request
   - Outputs: Pure yes/no answers and offered editor actions
   - MUST NOT: Hold state

3. TRANSPORT (transport/)
   - Responsibility: Fetch and persist records over HTTP
   - Outputs: TransportResult with an explicit status
   - MUST NOT: Raise for network or server failures

4. SESSION (session.py)
   - Responsibility: One user's editing of one abstract
   - Inputs: Transport, validator, configuration (all injected)
   - Outputs: Result values and user messages

INVARIANTS:
===========
- An illegal transition is never sent to the server
- A failed request leaves the in-memory abstract unchanged
- Opaque fields are read from records but never written back
"""

from .config import EditorConfig
from .contracts.base import AbstractState, Error, ErrorCode, Result
from .figures import FigureUpload, check_figure
from .messages import Message, MessageBoard, MessageLevel
from .models import (
    Abstract,
    AbstractGroup,
    Affiliation,
    Author,
    Conference,
    Figure,
    Marshaller,
    Reference,
)
from .session import EditorSession
from .transport import AbstractsTransport, EditorApiClient, TransportResult, TransportStatus
from .validation import AbstractValidator, DefaultAbstractValidator, ValidationResult
from .workflow import EditorAction, available_actions, is_transition_legal

__version__ = "0.1.0"

__all__ = [
    'EditorConfig',
    'AbstractState',
    'Error',
    'ErrorCode',
    'Result',
    'FigureUpload',
    'check_figure',
    'Message',
    'MessageBoard',
    'MessageLevel',
    'Abstract',
    'AbstractGroup',
    'Affiliation',
    'Author',
    'Conference',
    'Figure',
    'Marshaller',
    'Reference',
    'EditorSession',
    'AbstractsTransport',
    'EditorApiClient',
    'TransportResult',
    'TransportStatus',
    'AbstractValidator',
    'DefaultAbstractValidator',
    'ValidationResult',
    'EditorAction',
    'available_actions',
    'is_transition_legal',
]
