"""
Models Package

Entity types, their explicit schemas and the generic Marshaller that
converts them to and from wire records.
"""

from .naming import to_wire_name, from_wire_name, is_reversible
from .schema import EntitySchema, FieldKind, FieldSpec, SchemaError
from .marshaller import DEFAULT_MARSHALLER, Marshaller, MarshallingError
from .entities import (
    Entity,
    Identifiable,
    Marshaled,
    OwnerTracking,
    AbstractGroup,
    Affiliation,
    Figure,
    Reference,
    Author,
    Conference,
    Abstract,
)

__all__ = [
    # Naming
    'to_wire_name',
    'from_wire_name',
    'is_reversible',
    # Schema
    'EntitySchema',
    'FieldKind',
    'FieldSpec',
    'SchemaError',
    # Marshalling
    'DEFAULT_MARSHALLER',
    'Marshaller',
    'MarshallingError',
    # Entities
    'Entity',
    'Identifiable',
    'Marshaled',
    'OwnerTracking',
    'AbstractGroup',
    'Affiliation',
    'Figure',
    'Reference',
    'Author',
    'Conference',
    'Abstract',
]
