"""
Editor Session

One user's editing session for one abstract.

RESPONSIBILITY: load, edit, gate, validate and persist an abstract
COLLABORATORS:  AbstractsTransport, AbstractValidator, Marshaller
OUTPUTS:        Result values and MessageBoard messages

SAVE PIPELINE:
==============
1. Workflow gate   (illegal transition → error, no request)
2. Figure checks   (unsupported/oversize file → error, no request)
3. Validation      (errors → error, no request; warnings → reported later)
4. Encode + POST/PUT
5. On success only: replace abstract, prior state and edit copy with the
   decoded server answer

GUARANTEES:
===========
- At most one request in flight per operation, issued synchronously
- A failed request leaves the in-memory abstract untouched
- Every operation returns a Result and posts exactly one message
  (figure follow-ups may post a second one)
"""

from __future__ import annotations
from typing import FrozenSet, List, Optional
import logging

from .config import EditorConfig
from .contracts.base import AbstractState, Error, ErrorCode, Result
from .figures import FigureUpload, check_figure
from .messages import MessageBoard
from .models.entities import Abstract, Author, Conference, Figure
from .models.marshaller import Marshaller, MarshallingError
from .transport.contracts import AbstractsTransport, TransportResult
from .validation import AbstractValidator, DefaultAbstractValidator, ValidationResult
from .workflow.state_machine import EditorAction, available_actions, is_transition_legal

logger = logging.getLogger(__name__)


class EditorSession:
    """
    Explicit editing context.

    Nothing here is global: every component that needs the session gets
    it passed in.
    """

    def __init__(
        self,
        transport: AbstractsTransport,
        conference_id: Optional[str] = None,
        abstract_id: Optional[str] = None,
        validator: Optional[AbstractValidator] = None,
        config: Optional[EditorConfig] = None,
        marshaller: Optional[Marshaller] = None,
        messages: Optional[MessageBoard] = None
    ):
        self._config = config or EditorConfig()
        self._transport = transport
        self._conference_id = conference_id
        self._abstract_id = abstract_id
        self._validator = validator or DefaultAbstractValidator(self._config)
        self._marshaller = marshaller or Marshaller(null_overwrites=self._config.null_overwrites)
        self.messages = messages or MessageBoard()

        self.conference: Optional[Conference] = None
        self.abstract: Optional[Abstract] = None
        self.edited_abstract: Optional[Abstract] = None
        self._prior_state: Optional[AbstractState] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def is_persisted(self) -> bool:
        return self.abstract is not None and self.abstract.is_persisted

    @property
    def prior_state(self) -> Optional[AbstractState]:
        """State of the abstract as last loaded from or saved to the server."""
        return self._prior_state

    @property
    def available_actions(self) -> FrozenSet[EditorAction]:
        if self.abstract is None:
            return frozenset()
        return available_actions(self.is_persisted, self._prior_state)

    @property
    def owners_locator(self) -> Optional[str]:
        return self.abstract.owners_locator if self.abstract is not None else None

    def is_change_ok(self, candidate: Optional[Abstract] = None) -> bool:
        """Whether saving ``candidate`` (default: the current abstract) is a legal transition."""
        candidate = candidate or self.abstract
        if candidate is None:
            return False
        return is_transition_legal(self.is_persisted, self._prior_state, candidate.state)

    # =========================================================================
    # LOADING
    # =========================================================================

    def open(self) -> Result:
        """Load the conference and the abstract, or start a new abstract."""
        outcome = Result.success()

        if self._conference_id:
            outcome = self.load_conference(self._conference_id)

        if self._abstract_id:
            loaded = self.load_abstract(self._abstract_id)
            outcome = loaded if loaded.is_failure else outcome
        else:
            self._adopt(Abstract())

        return outcome if outcome.is_failure else Result.success(self.abstract)

    def load_conference(self, conference_id: str) -> Result:
        failure_text = f"Unable to request the conference: uuid = {conference_id}"
        result = self._transport.get_conference(conference_id)
        if not result.success:
            return self._transport_failure(result, failure_text)

        try:
            self.conference = self._marshaller.decode(Conference.SCHEMA, result.record)
        except MarshallingError as e:
            return self._malformed(e, failure_text)

        self._conference_id = conference_id
        return Result.success(self.conference)

    def load_abstract(self, abstract_id: str) -> Result:
        failure_text = f"Unable to request the abstract: uuid = {abstract_id}"
        result = self._transport.get_abstract(abstract_id)
        if not result.success:
            return self._transport_failure(result, failure_text)

        try:
            abstract = self._marshaller.decode(Abstract.SCHEMA, result.record)
        except MarshallingError as e:
            return self._malformed(e, failure_text)

        self._adopt(abstract)
        return Result.success(self.abstract)

    def _adopt(self, abstract: Abstract):
        """Make ``abstract`` the current, last-persisted version."""
        self.abstract = abstract
        self.edited_abstract = abstract
        self._prior_state = AbstractState(abstract.state) if abstract.state is not None else None
        if abstract.uuid:
            self._abstract_id = abstract.uuid

    # =========================================================================
    # SAVING
    # =========================================================================

    def save_abstract(self, candidate: Optional[Abstract] = None, figure: Optional[FigureUpload] = None) -> Result:
        """
        Persist ``candidate`` (default: the current abstract).

        ``figure`` is uploaded after a successful save if the saved
        abstract has no figure yet.
        """
        if self.abstract is None:
            return self._fail(ErrorCode.MISSING_CONTEXT, "No abstract is loaded.")

        candidate = candidate or self.abstract

        if not self.is_change_ok(candidate):
            return self._fail(
                ErrorCode.ILLEGAL_STATE_TRANSITION,
                "Unable to save abstract: illegal state",
                prior_state=self._prior_state,
                candidate_state=candidate.state
            )

        if figure is not None:
            figure_error = check_figure(figure, self._config)
            if figure_error is not None:
                return self._report(figure_error)

        validation = self._validator.validate(candidate, self.conference)
        if validation.has_errors:
            return self._fail(
                ErrorCode.VALIDATION_FAILED,
                f"Unable to save abstract: {validation.first_error}"
            )

        record = self._marshaller.encode(candidate)

        if self.is_persisted:
            logger.info("Updating abstract %s (%s)", self.abstract.uuid, candidate.state)
            result = self._transport.update_abstract(self.abstract.uuid, record)
        elif self._conference_id:
            logger.info("Creating abstract in conference %s (%s)", self._conference_id, candidate.state)
            result = self._transport.create_abstract(self._conference_id, record)
        else:
            return self._fail(
                ErrorCode.MISSING_CONTEXT,
                "Conference id or abstract id must be defined."
            )

        if not result.success:
            return self._transport_failure(result, "Unable to save abstract!")

        try:
            saved = self._marshaller.decode(Abstract.SCHEMA, result.record)
        except MarshallingError as e:
            return self._malformed(e, "Unable to save abstract!")

        self._adopt(saved)

        if figure is not None and not saved.has_figures:
            return self._save_pending_figure(figure, validation)

        if figure is not None:
            logger.info("Abstract %s already has a figure; upload of %s skipped", saved.uuid, figure.filename)

        self._report_saved("The abstract was saved", "Abstract saved.", validation)
        return Result.success(self.abstract)

    def _save_pending_figure(self, figure: FigureUpload, validation: ValidationResult) -> Result:
        uploaded = self._send_figure(figure)
        if uploaded.is_failure:
            return uploaded

        self._report_saved("The abstract and figure was saved", "Abstract and figure saved.", validation)
        return Result.success(self.abstract)

    def _report_saved(self, warning_prefix: str, ok_text: str, validation: ValidationResult):
        if validation.has_warnings:
            self.messages.set_info("Note", f"{warning_prefix} but still has issues: {validation.first_warning}")
        else:
            self.messages.set_ok("Ok", ok_text, closable=True)

    def submit(self) -> Result:
        return self._save_with_state(AbstractState.SUBMITTED)

    def withdraw(self) -> Result:
        return self._save_with_state(AbstractState.WITHDRAWN)

    def reactivate(self) -> Result:
        return self._save_with_state(AbstractState.IN_PREPARATION)

    def _save_with_state(self, state: AbstractState) -> Result:
        # Works on a copy so a rejected or failed save leaves the abstract as it was
        if self.abstract is None:
            return self._fail(ErrorCode.MISSING_CONTEXT, "No abstract is loaded.")

        candidate = self.abstract.clone()
        candidate.state = state
        return self.save_abstract(candidate)

    # =========================================================================
    # EDIT LIFECYCLE
    # =========================================================================

    def start_edit(self) -> Optional[Abstract]:
        """Start editing on an independent copy of the current abstract."""
        if self.abstract is None:
            return None
        self.edited_abstract = self.abstract.clone()
        return self.edited_abstract

    def end_edit(self) -> Result:
        """
        Finish editing.

        A persisted abstract is saved when an encodable field changed. An
        unsaved one is only validated locally and becomes the current
        abstract.
        """
        if self.edited_abstract is None:
            return self._fail(ErrorCode.MISSING_CONTEXT, "No abstract is being edited.")

        if self.is_persisted:
            if not self._marshaller.diff(self.abstract, self.edited_abstract):
                logger.info("Abstract %s unchanged; nothing to save", self.abstract.uuid)
                self.messages.set_info("Note", "No changes to save.")
                return Result.success(self.abstract)
            return self.save_abstract(self.edited_abstract)

        validation = self._validator.validate(self.edited_abstract, self.conference)
        if validation.has_errors:
            self.messages.set_warning("Warning", validation.first_error)
        elif validation.has_warnings:
            self.messages.set_info("Note", validation.first_warning)
        else:
            self.messages.clear()

        self.abstract = self.edited_abstract
        return Result.success(self.abstract)

    # =========================================================================
    # COLLECTION EDITING (on the edit copy)
    # =========================================================================

    def add_author(self) -> Result:
        return self._edit(lambda abstract: abstract.add_author(), "Unable to add author")

    def remove_author(self, index: int) -> Result:
        return self._edit(lambda abstract: abstract.remove_author(index), "Unable to remove author")

    def add_affiliation(self) -> Result:
        return self._edit(lambda abstract: abstract.add_affiliation(), "Unable to add affiliation")

    def remove_affiliation(self, index: int) -> Result:
        return self._edit(lambda abstract: abstract.remove_affiliation(index), "Unable to remove affiliation")

    def add_reference(self) -> Result:
        return self._edit(lambda abstract: abstract.add_reference(), "Unable to add reference")

    def remove_reference(self, index: int) -> Result:
        return self._edit(lambda abstract: abstract.remove_reference(index), "Unable to remove reference")

    def link_author_to_affiliation(self, author_index: int, affiliation_index: int) -> Result:
        linked = self._edit(
            lambda abstract: abstract.link_author_to_affiliation(author_index, affiliation_index),
            "Unable to add author to affiliation"
        )
        if linked.is_success and linked.value is False:
            self.messages.set_info("Hint", "This author is assigned to this affiliation.")
        return linked

    def unlink_author_from_affiliation(self, affiliation_index: int, author: Author) -> Result:
        return self._edit(
            lambda abstract: abstract.unlink_author_from_affiliation(affiliation_index, author),
            "Unable to remove affiliation from author"
        )

    def authors_for_affiliation(self, index: int) -> List[Author]:
        if self.edited_abstract is None:
            return []
        return self.edited_abstract.authors_for_affiliation(index)

    def _edit(self, change, failure_text: str) -> Result:
        if self.edited_abstract is None:
            return self._fail(ErrorCode.MISSING_CONTEXT, "No abstract is being edited.")
        try:
            return Result.success(change(self.edited_abstract))
        except IndexError as e:
            return self._fail(ErrorCode.INVALID_INDEX, f"{failure_text}: invalid index", detail=e)

    # =========================================================================
    # FIGURES
    # =========================================================================

    def upload_figure(self, upload: FigureUpload) -> Result:
        """Attach a figure to the saved abstract."""
        if not self.is_persisted:
            return self._fail(ErrorCode.NOT_PERSISTED, "Save the abstract before adding a figure.")

        if not self.is_change_ok():
            return self._fail(ErrorCode.ILLEGAL_STATE_TRANSITION, "Unable to save the figure: illegal state")

        figure_error = check_figure(upload, self._config)
        if figure_error is not None:
            return self._report(figure_error)

        uploaded = self._send_figure(upload)
        if uploaded.is_success:
            self.messages.set_ok("Ok", "Figure saved.", closable=True)
        return uploaded

    def _send_figure(self, upload: FigureUpload) -> Result:
        result = self._transport.upload_figure(self.abstract.uuid, upload)
        if not result.success:
            return self._transport_failure(result, "Unable to save the figure")

        try:
            figure = self._marshaller.decode(Figure.SCHEMA, result.record)
        except MarshallingError as e:
            return self._malformed(e, "Unable to save the figure")

        reloaded = self.load_abstract(self.abstract.uuid)
        if reloaded.is_failure:
            return reloaded
        return Result.success(figure)

    def remove_figure(self) -> Result:
        """Delete the abstract's (first) figure."""
        if self.abstract is None:
            return self._fail(ErrorCode.MISSING_CONTEXT, "No abstract is loaded.")

        if not self.is_change_ok():
            return self._fail(ErrorCode.ILLEGAL_STATE_TRANSITION, "Unable to delete figure: illegal state")

        if not self.abstract.has_figures:
            error = Error.create(ErrorCode.NO_FIGURE, "Unable to delete figure: abstract has no figure")
            self.messages.set_warning("Error", error.message, closable=True)
            return Result.failure(error)

        figure = self.abstract.figures[0]
        result = self._transport.delete_figure(figure.uuid)
        if not result.success:
            return self._transport_failure(result, "Unable to delete the figure")

        reloaded = self.load_abstract(self.abstract.uuid)
        if reloaded.is_failure:
            return reloaded

        self.messages.set_ok("Ok", "Figure removed from abstract")
        return Result.success(figure)

    # =========================================================================
    # FAILURE REPORTING
    # =========================================================================

    def _fail(self, code: ErrorCode, message: str, **context: object) -> Result:
        return self._report(Error.create(code, message, **context))

    def _report(self, error: Error) -> Result:
        self.messages.set_error("Error", error.message)
        return Result.failure(error)

    def _transport_failure(self, result: TransportResult, message: str) -> Result:
        return self._fail(
            ErrorCode.TRANSPORT_FAILED,
            message,
            method=result.method,
            url=result.url,
            status=result.status.value,
            detail=result.error_message
        )

    def _malformed(self, error: MarshallingError, message: str) -> Result:
        logger.error("Unreadable record: %s", error)
        return self._fail(ErrorCode.MALFORMED_RECORD, message, path=error.path)
