"""
Tests for coding module.

Tests coding-section bookkeeping: question selection and the
append-only submission list.
"""

import pytest
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.coding import CodingBridge
from proctor.errors import LedgerError
from proctor.state import SessionState


@pytest.fixture
def bridge(make_test):
    return CodingBridge(make_test(coding=3), SessionState())


class TestCodingBridge:
    """Test CodingBridge."""

    def test_first_question(self, bridge):
        assert bridge.first_question_id() == "c0"
        assert bridge.selected_question() is None

    def test_no_coding_questions(self, make_test):
        assert CodingBridge(make_test(), SessionState()).first_question_id() is None

    def test_select_any_question_in_any_order(self, bridge):
        assert bridge.select_question("c2").title == "Problem 2"
        bridge.select_question("c0")
        bridge.select_question("c2")

        assert bridge.state.selected_coding_question_id == "c2"

    def test_select_unknown_question(self, bridge):
        bridge.select_question("c1")

        with pytest.raises(LedgerError, match="Unknown coding question"):
            bridge.select_question("c9")
        assert bridge.state.selected_coding_question_id == "c1"

    def test_submissions_are_appended_in_order(self, bridge):
        bridge.select_question("c0")
        bridge.record_submission("sub-1", 40)
        bridge.record_submission("sub-2", 100)
        bridge.select_question("c1")
        bridge.record_submission("sub-3", 0)

        assert bridge.submissions_for_payload() == [
            {"submissionId": "sub-1", "score": 40},
            {"submissionId": "sub-2", "score": 100},
            {"submissionId": "sub-3", "score": 0},
        ]
        assert [s.question_id for s in bridge.state.coding_submissions] == ["c0", "c0", "c1"]

    def test_repeated_submission_ids_are_kept(self, bridge):
        bridge.select_question("c0")
        bridge.record_submission("same", 10)
        bridge.record_submission("same", 20)

        assert len(bridge.state.coding_submissions) == 2

    def test_attempt_summary(self, bridge):
        bridge.select_question("c1")
        bridge.record_submission("a", 1)
        bridge.record_submission("b", 2)

        assert bridge.attempt_summary() == {"c0": 0, "c1": 2, "c2": 0}
