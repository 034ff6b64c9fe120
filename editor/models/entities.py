"""
Entity Types

Mutable in-memory entities backed by explicit schemas.

CAPABILITIES:
=============
Entities combine small capabilities instead of inheriting a
behaviour-heavy base:

- Identifiable:  optional ``uuid`` assigned once by the persistence layer
- Marshaled:     conversion to and from wire records via a Marshaller
- OwnerTracking: read-only owner locator (Abstract, Conference)

Attribute names are the lower_snake spellings of the schema's field
names. Constructors accept any subset of those attributes as keywords;
everything else starts at the declared default.
"""

from __future__ import annotations
from typing import Any, ClassVar, Dict, List, Mapping, Optional
import copy

from ..contracts.base import AbstractState
from .marshaller import DEFAULT_MARSHALLER, Marshaller
from .schema import EntitySchema, FieldKind, FieldSpec


# =============================================================================
# CAPABILITIES
# =============================================================================

class Identifiable:
    """Identity token handed out by the persistence layer."""

    uuid: Optional[str]

    @property
    def is_persisted(self) -> bool:
        return self.uuid is not None

    def assign_identity(self, uuid: str):
        """Set the identity exactly once."""
        if not uuid:
            raise ValueError("identity must be a non-empty string")
        if self.uuid is not None and self.uuid != uuid:
            raise ValueError(f"identity already assigned ({self.uuid}), refusing {uuid}")
        self.uuid = uuid


class Marshaled:
    """Record conversion through a (shared, stateless) Marshaller."""

    SCHEMA: ClassVar[EntitySchema]

    def to_record(self, marshaller: Marshaller = DEFAULT_MARSHALLER) -> Dict[str, Any]:
        return marshaller.encode(self)

    @classmethod
    def from_record(cls, record: Optional[Mapping[str, Any]], marshaller: Marshaller = DEFAULT_MARSHALLER):
        return marshaller.decode(cls.SCHEMA, record)

    @classmethod
    def from_records(cls, records, marshaller: Marshaller = DEFAULT_MARSHALLER) -> list:
        return marshaller.decode_many(cls.SCHEMA, records)


class OwnerTracking:
    """Server-assigned locator of the owner list; clients never write it."""

    owners: Optional[str]

    @property
    def owners_locator(self) -> Optional[str]:
        return self.owners


class Entity(Identifiable, Marshaled):
    """Schema-driven entity: defaults, keyword construction, field-wise equality."""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if 'SCHEMA' in cls.__dict__:
            cls.SCHEMA.bind(cls)

    def __init__(self, **values: Any):
        attributes = {spec.attribute: spec for spec in self.SCHEMA}

        unknown = set(values) - set(attributes)
        if unknown:
            raise TypeError(f"{type(self).__name__} has no fields {sorted(unknown)}")

        for attribute, spec in attributes.items():
            if attribute in values:
                setattr(self, attribute, values[attribute])
            else:
                setattr(self, attribute, spec.make_default())

    def clone(self):
        """Deep, independent copy including opaque fields."""
        return copy.deepcopy(self)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return all(
            getattr(self, spec.attribute) == getattr(other, spec.attribute)
            for spec in self.SCHEMA
        )

    __hash__ = None

    def __repr__(self) -> str:
        shown = ", ".join(
            f"{spec.attribute}={getattr(self, spec.attribute)!r}"
            for spec in self.SCHEMA
            if spec.kind == FieldKind.SCALAR and getattr(self, spec.attribute) is not None
        )
        return f"{type(self).__name__}({shown})"


# =============================================================================
# LEAF ENTITIES
# =============================================================================

class AbstractGroup(Entity):
    """Topic group of a conference; ``prefix`` numbers its abstracts."""

    prefix: int
    name: Optional[str]
    short: Optional[str]

    SCHEMA = EntitySchema("AbstractGroup", (
        FieldSpec("prefix", default=0),
        FieldSpec("name"),
        FieldSpec("short"),
    ))


class Affiliation(Entity):

    address: Optional[str]
    country: Optional[str]
    department: Optional[str]
    name: Optional[str]
    section: Optional[str]
    position: int

    SCHEMA = EntitySchema("Affiliation", (
        FieldSpec("address"),
        FieldSpec("country"),
        FieldSpec("department"),
        FieldSpec("name"),
        FieldSpec("section"),
        FieldSpec("position", default=0),
    ))

    def format(self) -> str:
        """Single line: name, section, department, address, country."""
        parts = [self.name, self.section, self.department, self.address, self.country]
        return ", ".join(part for part in parts if part)


class Figure(Entity):
    """Figure metadata; ``file`` is the URL of the stored image."""

    name: Optional[str]
    caption: Optional[str]
    file: Optional[str]

    SCHEMA = EntitySchema("Figure", (
        FieldSpec("name"),
        FieldSpec("caption"),
        FieldSpec("file"),
    ))


class Reference(Entity):

    authors: Optional[str]
    title: Optional[str]
    year: Optional[str]
    doi: Optional[str]

    SCHEMA = EntitySchema("Reference", (
        FieldSpec("authors"),
        FieldSpec("title"),
        FieldSpec("year"),
        FieldSpec("doi"),
    ))

    def format(self) -> str:
        text = self.authors or ""
        if self.title:
            text += " " + self.title
        if self.year:
            text += f" ({self.year})"
        if self.doi:
            text += ", " + self.doi
        return text


class Author(Entity):
    """
    Author of an abstract.

    ``affiliations`` holds positions into the owning abstract's
    affiliation list, not affiliation identities.
    """

    mail: Optional[str]
    first_name: Optional[str]
    middle_name: Optional[str]
    last_name: Optional[str]
    position: int
    affiliations: List[int]

    SCHEMA = EntitySchema("Author", (
        FieldSpec("mail"),
        FieldSpec("firstName"),
        FieldSpec("middleName"),
        FieldSpec("lastName"),
        FieldSpec("position", default=0),
        FieldSpec("affiliations", kind=FieldKind.INDICES),
    ))

    def format_name(self) -> str:
        names = [self.first_name, self.middle_name, self.last_name]
        return " ".join(name for name in names if name)

    def format_affiliations(self) -> str:
        """1-based affiliation numbers, e.g. ``"1, 3"``."""
        return ", ".join(str(index + 1) for index in sorted(self.affiliations))


# =============================================================================
# ROOT ENTITIES
# =============================================================================

class Conference(Entity, OwnerTracking):

    name: Optional[str]
    short: Optional[str]
    cite: Optional[str]
    link: Optional[str]
    is_open: bool
    groups: List[AbstractGroup]
    owners: Optional[str]
    abstracts: Optional[str]

    SCHEMA = EntitySchema("Conference", (
        FieldSpec("name"),
        FieldSpec("short"),
        FieldSpec("cite"),
        FieldSpec("link"),
        FieldSpec("isOpen", default=False),
        FieldSpec("groups", kind=FieldKind.COLLECTION, entity=AbstractGroup),
        FieldSpec("owners", opaque=True),
        FieldSpec("abstracts", opaque=True),
    ))


class Abstract(Entity, OwnerTracking):
    """
    The editable root entity.

    Owns ordered authors, affiliations, references and figures. Authors
    reference affiliations by position, so the affiliation helpers below
    keep those positions consistent.
    """

    sort_id: int
    title: Optional[str]
    topic: Optional[str]
    text: Optional[str]
    doi: Optional[str]
    conflict_of_interest: Optional[str]
    acknowledgements: Optional[str]
    owners: Optional[str]
    state: AbstractState
    figures: List[Figure]
    authors: List[Author]
    affiliations: List[Affiliation]
    references: List[Reference]

    SCHEMA = EntitySchema("Abstract", (
        FieldSpec("sortId", default=0),
        FieldSpec("title"),
        FieldSpec("topic"),
        FieldSpec("text"),
        FieldSpec("doi"),
        FieldSpec("conflictOfInterest"),
        FieldSpec("acknowledgements"),
        FieldSpec("owners", opaque=True),
        FieldSpec("state", default=AbstractState.IN_PREPARATION, converter=AbstractState),
        FieldSpec("figures", kind=FieldKind.COLLECTION, entity=Figure, opaque=True),
        FieldSpec("authors", kind=FieldKind.COLLECTION, entity=Author),
        FieldSpec("affiliations", kind=FieldKind.COLLECTION, entity=Affiliation),
        FieldSpec("references", kind=FieldKind.COLLECTION, entity=Reference),
    ))

    def paragraphs(self) -> List[str]:
        return self.text.split("\n") if self.text else []

    @property
    def has_figures(self) -> bool:
        return len(self.figures) > 0

    # =========================================================================
    # AUTHORS
    # =========================================================================

    def add_author(self, author: Optional[Author] = None) -> Author:
        author = author or Author()
        self.authors.append(author)
        return author

    def remove_author(self, index: int) -> Author:
        self._check_index(self.authors, index, "author")
        return self.authors.pop(index)

    # =========================================================================
    # AFFILIATIONS
    # =========================================================================

    def add_affiliation(self, affiliation: Optional[Affiliation] = None) -> Affiliation:
        affiliation = affiliation or Affiliation()
        self.affiliations.append(affiliation)
        return affiliation

    def remove_affiliation(self, index: int) -> Affiliation:
        """
        Remove an affiliation and renumber author references.

        Positions equal to ``index`` are dropped, positions above it are
        shifted down by one, so every author keeps pointing at the same
        affiliations as before.
        """
        self._check_index(self.affiliations, index, "affiliation")
        removed = self.affiliations.pop(index)

        for author in self.authors:
            author.affiliations = [
                position - 1 if position > index else position
                for position in author.affiliations
                if position != index
            ]

        return removed

    def link_author_to_affiliation(self, author_index: int, affiliation_index: int) -> bool:
        """
        Add ``affiliation_index`` to an author's positions.

        Returns False (and changes nothing) if the author is already
        linked to that affiliation.
        """
        self._check_index(self.authors, author_index, "author")
        self._check_index(self.affiliations, affiliation_index, "affiliation")

        author = self.authors[author_index]
        if affiliation_index in author.affiliations:
            return False

        author.affiliations = sorted(author.affiliations + [affiliation_index])
        return True

    def unlink_author_from_affiliation(self, affiliation_index: int, author: Author) -> bool:
        """Remove one matching position from ``author``; False if it was not linked."""
        if affiliation_index not in author.affiliations:
            return False
        author.affiliations.remove(affiliation_index)
        return True

    def authors_for_affiliation(self, index: int) -> List[Author]:
        return [author for author in self.authors if index in author.affiliations]

    # =========================================================================
    # REFERENCES
    # =========================================================================

    def add_reference(self, reference: Optional[Reference] = None) -> Reference:
        reference = reference or Reference()
        self.references.append(reference)
        return reference

    def remove_reference(self, index: int) -> Reference:
        self._check_index(self.references, index, "reference")
        return self.references.pop(index)

    @staticmethod
    def _check_index(items: list, index: int, label: str):
        # negative positions are never valid references
        if not 0 <= index < len(items):
            raise IndexError(f"{label} index {index} out of range (0..{len(items) - 1})")
