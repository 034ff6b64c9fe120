"""
Editor Session Tests

AXIOMS UNDER TEST:
==================
1. An illegal state change never reaches the transport
2. A failed request leaves the in-memory abstract untouched
3. Every operation reports through a Result and a message
"""

from unittest.mock import MagicMock

import pytest

from editor.config import EditorConfig
from editor.contracts.base import AbstractState, ErrorCode
from editor.figures import FigureUpload
from editor.messages import MessageLevel
from editor.models.entities import Abstract, Author
from editor.session import EditorSession
from editor.transport.contracts import TransportStatus
from editor.validation import AbstractValidator, ValidationResult
from editor.workflow.state_machine import EditorAction, is_transition_legal

from .fakes import RecordingTransport, complete_abstract_record


@pytest.fixture
def transport():
    return RecordingTransport()


def open_session(transport, **kwargs):
    kwargs.setdefault("conference_id", "conf-1")
    session = EditorSession(transport, **kwargs)
    assert session.open().is_success
    return session


def open_saved(transport, state="InPreparation", uuid="abs-9"):
    transport.add_abstract(complete_abstract_record(uuid, state=state))
    return open_session(transport, abstract_id=uuid)


def png(size=16, name="figure.png"):
    return FigureUpload(filename=name, payload=b"\x89PNG" + b"\x00" * size, caption="A figure")


# =============================================================================
# LOADING
# =============================================================================

class TestOpen:

    def test_open_without_abstract_starts_new_one(self, transport):
        session = open_session(transport)

        assert session.conference.name == "Bernstein Conference"
        assert session.abstract is not None
        assert not session.is_persisted
        assert session.abstract.state == AbstractState.IN_PREPARATION
        assert transport.calls == [("GET", "conferences/conf-1")]

    def test_open_existing_abstract(self, transport):
        session = open_saved(transport, state="Submitted")

        assert session.is_persisted
        assert session.prior_state == AbstractState.SUBMITTED
        assert session.owners_locator == "/api/abstracts/abs-9/owners"
        assert session.available_actions == frozenset({EditorAction.WITHDRAW})

    def test_missing_abstract_reports_uuid(self, transport):
        session = EditorSession(transport, conference_id="conf-1", abstract_id="nope")

        result = session.open()

        assert result.is_failure
        assert result.error.code == ErrorCode.TRANSPORT_FAILED
        assert session.messages.current.text == "Unable to request the abstract: uuid = nope"

    def test_missing_conference_reports_uuid(self, transport):
        session = EditorSession(transport, conference_id="conf-x")

        result = session.open()

        assert result.is_failure
        assert "conf-x" in session.messages.current.text

    def test_malformed_record_is_reported(self, transport):
        record = complete_abstract_record("abs-9")
        record["authors"] = "not a list"
        transport.add_abstract(record)
        session = EditorSession(transport, abstract_id="abs-9")

        result = session.open()

        assert result.is_failure
        assert result.error.code == ErrorCode.MALFORMED_RECORD
        assert session.abstract is None

    def test_non_finite_position_is_reported(self, transport):
        record = complete_abstract_record("abs-9")
        record["authors"][0]["affiliations"] = [float("nan")]
        transport.add_abstract(record)
        session = EditorSession(transport, abstract_id="abs-9")

        result = session.open()

        assert result.error.code == ErrorCode.MALFORMED_RECORD
        assert session.abstract is None

    def test_numeric_title_fails_validation(self, transport):
        record = complete_abstract_record("abs-9")
        record["title"] = 5
        transport.add_abstract(record)
        session = open_session(transport, abstract_id="abs-9")

        result = session.save_abstract()

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert session.messages.current.text == "Unable to save abstract: The abstract field 'title' does not hold text."
        assert transport.writes() == []


# =============================================================================
# SAVE PIPELINE
# =============================================================================

class TestSaveAbstract:

    def test_end_to_end_submission(self, transport):
        """Create, submit, then edit a submitted abstract."""
        session = open_session(transport)
        candidate = Abstract.from_record(complete_abstract_record())

        created = session.save_abstract(candidate)

        assert created.is_success
        assert transport.calls[-1] == ("POST", "conferences/conf-1/abstracts")
        assert session.abstract.uuid == "abs-1"
        assert session.prior_state == AbstractState.IN_PREPARATION
        assert session.messages.current.text == "Abstract saved."

        submitted = session.submit()

        assert submitted.is_success
        assert transport.calls[-1] == ("PUT", "abstracts/abs-1")
        assert transport.sent[-1]["state"] == "Submitted"
        assert session.prior_state == AbstractState.SUBMITTED

        before = transport.request_count
        session.abstract.title = "A better title"
        rejected = session.save_abstract()

        assert rejected.is_failure
        assert rejected.error.code == ErrorCode.ILLEGAL_STATE_TRANSITION
        assert session.messages.current.text == "Unable to save abstract: illegal state"
        assert transport.request_count == before

    def test_new_abstract_submitted_directly(self, transport):
        session = open_session(transport)
        candidate = Abstract.from_record(complete_abstract_record())
        assert candidate.state == AbstractState.IN_PREPARATION
        candidate.state = AbstractState.SUBMITTED

        result = session.save_abstract(candidate)

        assert result.is_success
        assert transport.writes() == [("POST", "conferences/conf-1/abstracts")]
        assert session.is_persisted
        assert session.prior_state == AbstractState.SUBMITTED

        back = session.abstract.clone()
        back.state = AbstractState.IN_PREPARATION
        assert session.save_abstract(back).error.code == ErrorCode.ILLEGAL_STATE_TRANSITION
        assert len(transport.writes()) == 1

    def test_injected_validator_is_used(self, transport):
        validator = MagicMock(spec=AbstractValidator)
        validator.validate.return_value = ValidationResult(errors=("Custom rule failed.",))
        transport.add_abstract(complete_abstract_record("abs-9"))
        session = open_session(transport, abstract_id="abs-9", validator=validator)

        result = session.save_abstract()

        validator.validate.assert_called_once_with(session.abstract, session.conference)
        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert session.messages.current.text == "Unable to save abstract: Custom rule failed."
        assert transport.writes() == []

    def test_opaque_fields_are_not_sent(self, transport):
        session = open_saved(transport)

        session.save_abstract()

        assert "owners" not in transport.sent[-1]
        assert "figures" not in transport.sent[-1]
        assert transport.sent[-1]["uuid"] == "abs-9"

    def test_failed_request_leaves_abstract_unchanged(self, transport):
        session = open_saved(transport)
        transport.fail_next = TransportStatus.HTTP_ERROR

        result = session.submit()

        assert result.is_failure
        assert result.error.code == ErrorCode.TRANSPORT_FAILED
        assert session.abstract.state == AbstractState.IN_PREPARATION
        assert session.prior_state == AbstractState.IN_PREPARATION
        assert session.messages.current.text == "Unable to save abstract!"

    def test_validation_error_blocks_transport(self, transport):
        session = open_session(transport)
        candidate = Abstract.from_record(complete_abstract_record())
        candidate.title = None

        result = session.save_abstract(candidate)

        assert result.error.code == ErrorCode.VALIDATION_FAILED
        assert session.messages.current.text == "Unable to save abstract: The abstract has no title."
        assert transport.writes() == []

    def test_warning_is_reported_after_save(self, transport):
        session = open_session(transport)
        candidate = Abstract.from_record(complete_abstract_record())
        candidate.topic = None

        result = session.save_abstract(candidate)

        assert result.is_success
        assert session.messages.current.level == MessageLevel.INFO
        assert session.messages.current.text == (
            "The abstract was saved but still has issues: The abstract has no topic."
        )

    def test_unsaved_abstract_without_conference(self, transport):
        session = EditorSession(transport)
        session.open()

        result = session.save_abstract(Abstract.from_record(complete_abstract_record()))

        assert result.error.code == ErrorCode.MISSING_CONTEXT
        assert transport.request_count == 0

    def test_withdraw_and_reactivate(self, transport):
        session = open_saved(transport, state="Submitted")

        assert session.withdraw().is_success
        assert session.prior_state == AbstractState.WITHDRAWN
        assert session.available_actions == frozenset({EditorAction.REACTIVATE})

        assert session.reactivate().is_success
        assert session.prior_state == AbstractState.IN_PREPARATION

    def test_withdraw_in_review_is_offered_but_refused(self, transport):
        session = open_saved(transport, state="InReview")

        assert EditorAction.WITHDRAW in session.available_actions
        result = session.withdraw()

        assert result.error.code == ErrorCode.ILLEGAL_STATE_TRANSITION
        assert transport.writes() == []
        assert session.abstract.state == AbstractState.IN_REVIEW

    @pytest.mark.parametrize("prior", list(AbstractState))
    @pytest.mark.parametrize("candidate", list(AbstractState))
    def test_only_legal_changes_reach_transport(self, transport, prior, candidate):
        session = open_saved(transport, state=prior.value)
        changed = session.abstract.clone()
        changed.state = candidate

        result = session.save_abstract(changed)

        if is_transition_legal(True, prior, candidate):
            assert result.is_success
            assert transport.writes() == [("PUT", "abstracts/abs-9")]
        else:
            assert result.error.code == ErrorCode.ILLEGAL_STATE_TRANSITION
            assert transport.writes() == []


# =============================================================================
# EDIT LIFECYCLE
# =============================================================================

class TestEditLifecycle:

    def test_start_edit_works_on_a_copy(self, transport):
        session = open_saved(transport)

        edited = session.start_edit()
        edited.title = "Changed"
        edited.authors[0].last_name = "Byron"

        assert session.abstract.title == "Grid cells in the dark"
        assert session.abstract.authors[0].last_name == "Lovelace"

    def test_end_edit_saves_persisted_abstract(self, transport):
        session = open_saved(transport)
        session.start_edit().title = "Changed"

        result = session.end_edit()

        assert result.is_success
        assert transport.sent[-1]["title"] == "Changed"
        assert session.abstract.title == "Changed"

    def test_end_edit_without_changes_sends_nothing(self, transport):
        session = open_saved(transport)
        session.start_edit()
        before = transport.request_count

        result = session.end_edit()

        assert result.is_success
        assert transport.request_count == before
        assert session.messages.current.text == "No changes to save."

    def test_end_edit_failure_keeps_previous_abstract(self, transport):
        session = open_saved(transport)
        session.start_edit().title = "Changed"
        transport.fail_next = TransportStatus.TIMEOUT

        result = session.end_edit()

        assert result.is_failure
        assert session.abstract.title == "Grid cells in the dark"
        assert session.edited_abstract.title == "Changed"

    def test_end_edit_of_unsaved_abstract_only_validates(self, transport):
        session = open_session(transport)
        edited = session.start_edit()
        edited.text = "Some text"

        result = session.end_edit()

        assert result.is_success
        assert session.abstract is edited
        assert session.messages.current.level == MessageLevel.WARNING
        assert session.messages.current.text == "The abstract has no title."
        assert transport.writes() == []


# =============================================================================
# COLLECTION EDITING
# =============================================================================

class TestCollectionEditing:

    def test_edits_apply_to_edit_copy(self, transport):
        session = open_saved(transport)
        session.start_edit()

        session.add_author()

        assert len(session.edited_abstract.authors) == 2
        assert len(session.abstract.authors) == 1

    def test_remove_affiliation_renumbers_authors(self, transport):
        session = open_saved(transport)
        session.start_edit()
        session.add_affiliation()
        session.add_affiliation()
        session.edited_abstract.authors[0].affiliations = [0, 2]

        result = session.remove_affiliation(1)

        assert result.is_success
        assert session.edited_abstract.authors[0].affiliations == [0, 1]

    def test_link_twice_posts_hint(self, transport):
        session = open_saved(transport)

        result = session.link_author_to_affiliation(0, 0)

        assert result.is_success
        assert result.value is False
        assert session.messages.current.title == "Hint"
        assert session.messages.current.text == "This author is assigned to this affiliation."

    def test_link_with_invalid_index(self, transport):
        session = open_saved(transport)

        result = session.link_author_to_affiliation(0, 5)

        assert result.error.code == ErrorCode.INVALID_INDEX
        assert session.messages.current.text == "Unable to add author to affiliation: invalid index"

    def test_unlink_and_query(self, transport):
        session = open_saved(transport)
        author = session.edited_abstract.authors[0]

        assert session.authors_for_affiliation(0) == [author]
        assert session.unlink_author_from_affiliation(0, author).value is True
        assert session.authors_for_affiliation(0) == []
        assert session.unlink_author_from_affiliation(0, Author()).value is False

    def test_remove_reference_out_of_range(self, transport):
        session = open_saved(transport)

        result = session.remove_reference(0)

        assert result.error.code == ErrorCode.INVALID_INDEX


# =============================================================================
# FIGURES
# =============================================================================

class TestFigures:

    def test_upload_requires_saved_abstract(self, transport):
        session = open_session(transport)

        result = session.upload_figure(png())

        assert result.error.code == ErrorCode.NOT_PERSISTED
        assert transport.writes() == []

    def test_unsupported_type_is_rejected_locally(self, transport):
        session = open_saved(transport)

        result = session.upload_figure(png(name="figure.bmp"))

        assert result.error.code == ErrorCode.UNSUPPORTED_FIGURE_TYPE
        assert transport.writes() == []

    def test_oversize_figure_is_rejected_locally(self, transport):
        session = EditorSession(transport, abstract_id="abs-9", config=EditorConfig(figure_max_bytes=8))
        transport.add_abstract(complete_abstract_record("abs-9"))
        session.open()

        result = session.upload_figure(png(size=64))

        assert result.error.code == ErrorCode.FIGURE_TOO_LARGE
        assert transport.writes() == []

    def test_upload_reloads_abstract(self, transport):
        session = open_saved(transport)

        result = session.upload_figure(png())

        assert result.is_success
        assert result.value.name == "figure.png"
        assert session.abstract.has_figures
        assert session.abstract.figures[0].caption == "A figure"
        assert transport.calls[-2:] == [("POST", "abstracts/abs-9/figures"), ("GET", "abstracts/abs-9")]
        assert session.messages.current.text == "Figure saved."

    def test_upload_failure(self, transport):
        session = open_saved(transport)
        transport.fail_next = TransportStatus.NETWORK_ERROR

        result = session.upload_figure(png())

        assert result.error.code == ErrorCode.TRANSPORT_FAILED
        assert session.messages.current.text == "Unable to save the figure"
        assert not session.abstract.has_figures

    def test_save_with_pending_figure(self, transport):
        session = open_session(transport)

        result = session.save_abstract(Abstract.from_record(complete_abstract_record()), figure=png())

        assert result.is_success
        assert len(session.abstract.figures) == 1
        assert session.messages.current.text == "Abstract and figure saved."

    def test_save_with_invalid_figure_sends_nothing(self, transport):
        session = open_session(transport)

        result = session.save_abstract(
            Abstract.from_record(complete_abstract_record()),
            figure=png(name="figure.tiff")
        )

        assert result.error.code == ErrorCode.UNSUPPORTED_FIGURE_TYPE
        assert transport.writes() == []

    def test_remove_figure_without_figure(self, transport):
        session = open_saved(transport)

        result = session.remove_figure()

        assert result.error.code == ErrorCode.NO_FIGURE
        assert session.messages.current.level == MessageLevel.WARNING
        assert transport.writes() == []

    def test_remove_figure(self, transport):
        session = open_saved(transport)
        session.upload_figure(png())
        figure_id = session.abstract.figures[0].uuid

        result = session.remove_figure()

        assert result.is_success
        assert ("DELETE", f"figures/{figure_id}") in transport.calls
        assert not session.abstract.has_figures
        assert session.messages.current.text == "Figure removed from abstract"

    def test_remove_figure_of_submitted_abstract_is_illegal(self, transport):
        record = complete_abstract_record("abs-9", state="Submitted")
        record["figures"] = [{"uuid": "fig-0", "name": "old.png"}]
        transport.add_abstract(record)
        session = open_session(transport, abstract_id="abs-9")

        result = session.remove_figure()

        assert result.error.code == ErrorCode.ILLEGAL_STATE_TRANSITION
        assert transport.writes() == []
