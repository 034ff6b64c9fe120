"""
Naming Normalizer

Converts field identifiers between the two spellings used by the API:

- identity names: camelCase (``conflictOfInterest``)
- wire names: lower_snake_case (``conflict_of_interest``)

The conversion is a bijection on ASCII identifiers that start with a
lower case letter and contain no underscores. EntitySchema checks every
declared field against this.
"""

from __future__ import annotations
import re

_UPPER_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_wire_name(identifier: str) -> str:
    """``firstName`` -> ``first_name``."""
    return _UPPER_BOUNDARY.sub("_", identifier).lower()


def from_wire_name(wire_identifier: str) -> str:
    """``first_name`` -> ``firstName``."""
    head, *tail = wire_identifier.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


def is_reversible(identifier: str) -> bool:
    """True if ``identifier`` survives a wire round trip unchanged."""
    return from_wire_name(to_wire_name(identifier)) == identifier
