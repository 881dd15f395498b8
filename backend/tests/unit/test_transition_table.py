"""Unit tests for the document status transition table"""

import itertools

import pytest

from domain.lifecycle import DocumentStatus, TRANSITION_TABLE, TransitionClass, TransitionDecision
from domain.lifecycle.transitions import (
    INITIAL_STATUS,
    TERMINAL_STATES,
    allowed_decisions,
    get_allowed_transitions,
    is_legal_transition,
    is_privileged_transition,
    is_terminal,
    requires_comment,
    transition_class,
    transition_label,
)

LISTED = {
    (DocumentStatus.DRAFT, DocumentStatus.REVIEW): TransitionClass.ORDINARY,
    (DocumentStatus.REVIEW, DocumentStatus.PUBLISHED): TransitionClass.ORDINARY,
    (DocumentStatus.REVIEW, DocumentStatus.DRAFT): TransitionClass.ORDINARY,
    (DocumentStatus.PUBLISHED, DocumentStatus.DRAFT): TransitionClass.PRIVILEGED,
    (DocumentStatus.PUBLISHED, DocumentStatus.ARCHIVED): TransitionClass.PRIVILEGED,
    (DocumentStatus.ARCHIVED, DocumentStatus.PUBLISHED): TransitionClass.ORDINARY,
    (DocumentStatus.ARCHIVED, DocumentStatus.DISPOSED): TransitionClass.PRIVILEGED,
}


class TestTransitionTable:
    """Test the transition table contents and classification"""

    def test_document_status_enum_values(self):
        """Test DocumentStatus enum has all lifecycle values"""
        assert [s.value for s in DocumentStatus] == ["draft", "review", "published", "archived", "disposed"]

    def test_every_status_has_an_entry(self):
        assert set(TRANSITION_TABLE) == set(DocumentStatus)

    @pytest.mark.parametrize("pair,expected", sorted(LISTED.items(), key=lambda item: str(item[0])))
    def test_listed_pairs_are_classified(self, pair, expected):
        assert transition_class(*pair) == expected
        assert is_legal_transition(*pair) is True

    def test_unlisted_pairs_are_illegal(self):
        """Any pair not in the table is illegal, including self-transitions"""
        for pair in itertools.product(DocumentStatus, DocumentStatus):
            if pair in LISTED:
                continue
            assert transition_class(*pair) == TransitionClass.ILLEGAL, pair
            assert is_legal_transition(*pair) is False, pair

    def test_review_to_archived_is_illegal(self):
        assert is_legal_transition(DocumentStatus.REVIEW, DocumentStatus.ARCHIVED) is False

    def test_none_source_is_illegal(self):
        """Creation is not a table transition"""
        assert is_legal_transition(None, DocumentStatus.DRAFT) is False

    def test_privileged_pairs(self):
        privileged = {pair for pair, klass in LISTED.items() if klass == TransitionClass.PRIVILEGED}
        for pair in itertools.product(DocumentStatus, DocumentStatus):
            assert is_privileged_transition(*pair) is (pair in privileged)


class TestTerminalAndHelpers:
    """Test terminal state and helper lookups"""

    def test_disposed_is_the_only_terminal_state(self):
        assert TERMINAL_STATES == frozenset({DocumentStatus.DISPOSED})
        assert is_terminal(DocumentStatus.DISPOSED) is True
        assert is_terminal(DocumentStatus.ARCHIVED) is False

    def test_disposed_has_no_targets(self):
        assert get_allowed_transitions(DocumentStatus.DISPOSED) == []

    def test_get_allowed_transitions_preserves_table_order(self):
        assert get_allowed_transitions(DocumentStatus.REVIEW) == [DocumentStatus.PUBLISHED, DocumentStatus.DRAFT]
        assert get_allowed_transitions(DocumentStatus.ARCHIVED) == [DocumentStatus.PUBLISHED, DocumentStatus.DISPOSED]

    def test_initial_status_is_draft(self):
        assert INITIAL_STATUS == DocumentStatus.DRAFT

    def test_comment_required_for_archive_and_dispose_only(self):
        assert requires_comment(DocumentStatus.ARCHIVED) is True
        assert requires_comment(DocumentStatus.DISPOSED) is True
        assert requires_comment(DocumentStatus.PUBLISHED) is False
        assert requires_comment(DocumentStatus.DRAFT) is False

    def test_labels(self):
        assert transition_label(DocumentStatus.DRAFT, DocumentStatus.REVIEW) == "Submit for review"
        assert transition_label(DocumentStatus.ARCHIVED, DocumentStatus.DISPOSED) == "Dispose"
        # Unlisted pairs fall back to a generic label
        assert transition_label(DocumentStatus.DRAFT, DocumentStatus.DISPOSED) == "draft → disposed"

    def test_decisions_only_on_review_outcomes(self):
        assert allowed_decisions(DocumentStatus.REVIEW, DocumentStatus.PUBLISHED) == {TransitionDecision.APPROVED}
        assert allowed_decisions(DocumentStatus.REVIEW, DocumentStatus.DRAFT) == {
            TransitionDecision.REJECTED, TransitionDecision.RETURNED,
        }
        for pair in LISTED:
            if pair[0] != DocumentStatus.REVIEW:
                assert allowed_decisions(*pair) == frozenset(), pair
