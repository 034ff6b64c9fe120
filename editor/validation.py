"""
Abstract Validation

Content rules applied before an abstract is saved.

SEVERITIES:
===========
- errors:   block the save; the transport is never invoked
- warnings: the save proceeds; the warning is reported afterwards

Workflow legality is NOT checked here; see editor.workflow.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .config import EditorConfig
from .models.entities import Abstract, Conference


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one abstract."""
    errors: Tuple[str, ...] = field(default_factory=tuple)
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    @property
    def first_warning(self) -> Optional[str]:
        return self.warnings[0] if self.warnings else None


class AbstractValidator:
    """
    Interface for abstract content validation.

    Implementations must be side-effect free: the abstract is inspected,
    never modified.
    """

    def validate(self, abstract: Abstract, conference: Optional[Conference] = None) -> ValidationResult:
        raise NotImplementedError


class DefaultAbstractValidator(AbstractValidator):
    """Rule set used when a session is created without a validator."""

    def __init__(self, config: Optional[EditorConfig] = None):
        config = config or EditorConfig()
        self._text_limit = config.text_character_limit
        self._ack_limit = config.ack_character_limit

    def validate(self, abstract: Abstract, conference: Optional[Conference] = None) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        self._check_content(abstract, errors)
        self._check_authors(abstract, errors, warnings)
        self._check_affiliations(abstract, warnings)

        if conference is not None and conference.groups and not abstract.topic:
            warnings.append("The abstract has no topic.")

        return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))

    def _check_content(self, abstract: Abstract, errors: List[str]):
        # Records may carry any scalar here
        for label, value in (("title", abstract.title), ("text", abstract.text),
                             ("acknowledgements", abstract.acknowledgements)):
            if value is not None and not isinstance(value, str):
                errors.append(f"The abstract field '{label}' does not hold text.")
        if errors:
            return

        if not abstract.title or not abstract.title.strip():
            errors.append("The abstract has no title.")

        if not abstract.text or not abstract.text.strip():
            errors.append("The abstract has no text.")
        elif len(abstract.text) > self._text_limit:
            errors.append(f"The abstract text is longer than {self._text_limit} characters.")

        if abstract.acknowledgements and len(abstract.acknowledgements) > self._ack_limit:
            errors.append(f"The acknowledgements are longer than {self._ack_limit} characters.")

    def _check_authors(self, abstract: Abstract, errors: List[str], warnings: List[str]):
        if not abstract.authors:
            warnings.append("The abstract has no authors.")
            return

        affiliation_count = len(abstract.affiliations)

        for number, author in enumerate(abstract.authors, start=1):
            if not author.last_name:
                errors.append(f"Author {number} has no last name.")

            if any(not 0 <= index < affiliation_count for index in author.affiliations):
                errors.append(f"Author {number} refers to an affiliation that does not exist.")
            elif not author.affiliations:
                warnings.append(f"Author {number} has no affiliation.")

    def _check_affiliations(self, abstract: Abstract, warnings: List[str]):
        if not abstract.affiliations:
            warnings.append("The abstract has no affiliations.")
            return

        for index in range(len(abstract.affiliations)):
            if not abstract.authors_for_affiliation(index):
                warnings.append(f"Affiliation {index + 1} is not assigned to any author.")
