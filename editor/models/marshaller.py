"""
Marshaller

Generic conversion between wire records (plain dicts as exchanged with
the API) and entities, driven entirely by EntitySchema declarations.

DECODE RULES:
=============
1. Every declared field is looked up by wire name, then by identity name
   (the wire spelling wins when a record carries both)
2. Absent fields keep their declared default
3. ``null`` is treated like an absent field unless ``null_overwrites``
4. Nested kinds recurse; collection order is preserved
5. Unknown record keys are ignored

ENCODE RULES:
=============
1. Fields are written in declaration order under their wire names
2. Opaque fields are never written
3. Nested kinds recurse; collection order is preserved
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, TYPE_CHECKING
import logging

from .schema import EntitySchema, FieldKind, FieldSpec

if TYPE_CHECKING:
    from .entities import Entity

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

_MISSING = object()


class MarshallingError(ValueError):
    """Raised when a record value has the wrong shape for its declared field."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class Marshaller:
    """
    Schema-driven record <-> entity conversion.

    A single instance is stateless apart from its null policy and can be
    shared by any number of sessions.
    """

    def __init__(self, null_overwrites: bool = False):
        self._null_overwrites = null_overwrites

    @property
    def null_overwrites(self) -> bool:
        return self._null_overwrites

    # =========================================================================
    # DECODE
    # =========================================================================

    def decode(self, schema: EntitySchema, record: Optional[Mapping[str, Any]]) -> 'Entity':
        """Build a populated entity of the schema's type from ``record``."""
        return self._decode(schema, record, schema.entity_name)

    def decode_many(self, schema: EntitySchema, records: Optional[Iterable[Any]]) -> List['Entity']:
        """Decode a sequence of records, preserving order."""
        return self._decode_list(schema, records, schema.entity_name)

    def _decode(self, schema: EntitySchema, record: Optional[Mapping[str, Any]], path: str) -> 'Entity':
        target = schema.entity_type()

        if record is None:
            return target
        if not isinstance(record, Mapping):
            raise MarshallingError(path, f"expected an object, got {type(record).__name__}")

        for spec in schema:
            value = self._read(spec, record)

            if value is _MISSING:
                continue
            if value is None and not self._null_overwrites:
                continue

            field_path = f"{path}.{spec.wire_name}"
            setattr(target, spec.attribute, self._decode_value(spec, value, field_path))

        return target

    def _decode_list(self, schema: EntitySchema, records: Optional[Iterable[Any]], path: str) -> List['Entity']:
        if records is None:
            return []
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise MarshallingError(path, f"expected an array, got {type(records).__name__}")

        return [
            self._decode(schema, item, f"{path}[{position}]")
            for position, item in enumerate(records)
        ]

    def _read(self, spec: FieldSpec, record: Mapping[str, Any]) -> Any:
        """Wire spelling first, identity spelling second."""
        if spec.wire_name in record:
            return record[spec.wire_name]
        if spec.name in record:
            return record[spec.name]
        return _MISSING

    def _decode_value(self, spec: FieldSpec, value: Any, path: str) -> Any:
        if value is None:
            return spec.make_default() if spec.kind != FieldKind.SCALAR else None

        if spec.kind == FieldKind.ENTITY:
            return self._decode(spec.entity.SCHEMA, value, path)

        if spec.kind == FieldKind.COLLECTION:
            return self._decode_list(spec.entity.SCHEMA, value, path)

        if spec.kind == FieldKind.INDICES:
            return self._decode_indices(value, path)

        if spec.converter is not None:
            try:
                return spec.converter(value)
            except (TypeError, ValueError) as e:
                raise MarshallingError(path, f"invalid value {value!r} ({e})") from e

        return value

    def _decode_indices(self, value: Any, path: str) -> List[int]:
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
            raise MarshallingError(path, f"expected an array of positions, got {type(value).__name__}")

        positions = []
        for item in value:
            # float.is_integer() is False for nan and infinities
            if (isinstance(item, bool) or not isinstance(item, (int, float))
                    or (isinstance(item, float) and not item.is_integer())):
                raise MarshallingError(path, f"position {item!r} is not an integer")
            positions.append(int(item))
        return positions

    # =========================================================================
    # ENCODE
    # =========================================================================

    def encode(self, entity: 'Entity') -> Record:
        """Produce a plain wire record for ``entity`` (opaque fields omitted)."""
        record: Record = {}

        for spec in entity.SCHEMA:
            if spec.opaque:
                continue
            record[spec.wire_name] = self._encode_value(spec, getattr(entity, spec.attribute))

        return record

    def encode_many(self, entities: Iterable['Entity']) -> List[Record]:
        return [self.encode(entity) for entity in entities]

    def _encode_value(self, spec: FieldSpec, value: Any) -> Any:
        if value is None:
            return None

        if spec.kind == FieldKind.ENTITY:
            return self.encode(value)

        if spec.kind == FieldKind.COLLECTION:
            return self.encode_many(value)

        if spec.kind == FieldKind.INDICES:
            return list(value)

        if isinstance(value, Enum):
            return value.value

        return value

    # =========================================================================
    # COMPARISON
    # =========================================================================

    def diff(self, left: 'Entity', right: 'Entity') -> Tuple[str, ...]:
        """Wire names of the encodable fields that differ between two entities."""
        if left.SCHEMA is not right.SCHEMA:
            raise TypeError(f"cannot compare {type(left).__name__} with {type(right).__name__}")

        left_record = self.encode(left)
        right_record = self.encode(right)
        changed = tuple(
            name for name in left_record
            if left_record[name] != right_record[name]
        )

        if changed:
            logger.debug("%s differs in %s", left.SCHEMA.entity_name, ", ".join(changed))

        return changed


DEFAULT_MARSHALLER = Marshaller()
