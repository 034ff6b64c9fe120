"""
Entity Schema

Static, explicit field declarations for every entity type.

WHY EXPLICIT:
=============
Fields are never discovered by inspecting instances. A schema lists
the fields in wire order, each with its kind, default and (for nested
kinds) the entity type to recurse into. Anything not declared is never
read from a record and never written to one.

FIELD KINDS:
============
- SCALAR:     str / int / float / bool / None, optionally converted on decode
- INDICES:    ordered list of integer positions into a sibling collection
- ENTITY:     exactly one owned child entity
- COLLECTION: ordered list of owned child entities

Opacity is a separate flag: an opaque field is decoded like any other
field of its kind but is always omitted from encoded records.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple, Type, TYPE_CHECKING
import copy

from .naming import is_reversible, to_wire_name

if TYPE_CHECKING:
    from .entities import Entity


class SchemaError(ValueError):
    """Raised when a schema declaration is inconsistent."""


class FieldKind(Enum):
    """Shape of a declared field."""
    SCALAR = "scalar"
    INDICES = "indices"
    ENTITY = "entity"
    COLLECTION = "collection"
    
    @property
    def is_nested(self) -> bool:
        return self in (FieldKind.ENTITY, FieldKind.COLLECTION)


@dataclass(frozen=True)
class FieldSpec:
    """
    Declaration of a single entity field.
    
    ``name`` is the identity (camelCase) spelling. The Python attribute
    and the wire key are both the lower_snake spelling of that name.
    """
    name: str
    kind: FieldKind = FieldKind.SCALAR
    default: Any = None
    entity: Optional[Type['Entity']] = None
    opaque: bool = False
    converter: Optional[Callable[[Any], Any]] = None
    
    @property
    def wire_name(self) -> str:
        return to_wire_name(self.name)
    
    @property
    def attribute(self) -> str:
        return self.wire_name
    
    def make_default(self) -> Any:
        """Fresh default value; mutable shapes are never shared."""
        if self.kind in (FieldKind.COLLECTION, FieldKind.INDICES):
            return list(self.default or ())
        if self.kind == FieldKind.ENTITY:
            return None if self.default is None else copy.deepcopy(self.default)
        return self.default


UUID_FIELD = FieldSpec("uuid")


class EntitySchema:
    """
    Ordered set of field declarations for one entity type.
    
    The identity field ``uuid`` is always declared first. The schema is
    bound to its entity class when the class is created.
    """
    
    def __init__(self, entity_name: str, fields: Sequence[FieldSpec]):
        self._entity_name = entity_name
        self._fields: Tuple[FieldSpec, ...] = (UUID_FIELD,) + tuple(fields)
        self._by_name: Dict[str, FieldSpec] = {}
        self._entity_type: Optional[Type['Entity']] = None
        
        for spec in self._fields:
            self._check(spec)
            self._by_name[spec.name] = spec
    
    def _check(self, spec: FieldSpec):
        if spec.name in self._by_name:
            raise SchemaError(f"{self._entity_name}: duplicate field '{spec.name}'")
        if not spec.name or "_" in spec.name or not spec.name[0].islower():
            raise SchemaError(f"{self._entity_name}: '{spec.name}' is not a camelCase identifier")
        if not is_reversible(spec.name):
            raise SchemaError(f"{self._entity_name}: '{spec.name}' does not survive wire naming")
        if spec.kind.is_nested and spec.entity is None:
            raise SchemaError(f"{self._entity_name}: nested field '{spec.name}' needs an entity type")
        if not spec.kind.is_nested and spec.entity is not None:
            raise SchemaError(f"{self._entity_name}: field '{spec.name}' is not nested")
    
    def bind(self, entity_type: Type['Entity']):
        if self._entity_type is not None and self._entity_type is not entity_type:
            raise SchemaError(f"{self._entity_name}: schema already bound to {self._entity_type.__name__}")
        self._entity_type = entity_type
    
    @property
    def entity_name(self) -> str:
        return self._entity_name
    
    @property
    def entity_type(self) -> Type['Entity']:
        if self._entity_type is None:
            raise SchemaError(f"{self._entity_name}: schema is not bound to an entity type")
        return self._entity_type
    
    @property
    def fields(self) -> Tuple[FieldSpec, ...]:
        return self._fields
    
    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self._fields)
    
    @property
    def has_opaque_fields(self) -> bool:
        return any(spec.opaque for spec in self._fields)
    
    def get(self, name: str) -> FieldSpec:
        return self._by_name[name]
    
    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._fields)
    
    def __len__(self) -> int:
        return len(self._fields)
    
    def __repr__(self) -> str:
        return f"EntitySchema({self._entity_name!r}, {list(self.field_names)!r})"
