"""
Tests for ledger module.

Tests MCQ answer bookkeeping including:
- Answer validation and normalization
- Review marks and clearing
- Navigation inside a section and one-way section entry
- Section counts and palette status
"""

import pytest
import random
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.errors import LedgerError, SectionRegressionError
from proctor.ledger import (
    ADVANCED,
    SECTION_COMPLETE,
    STATUS_ANSWERED,
    STATUS_ANSWERED_MARKED,
    STATUS_MARKED,
    STATUS_NOT_ANSWERED,
    STATUS_NOT_VISITED,
    AnswerLedger,
)
from proctor.state import SessionState


@pytest.fixture
def ledger(make_test):
    return AnswerLedger(make_test(section_sizes=(3, 2)), SessionState())


class TestAnswers:
    """Test answer recording."""

    def test_select_answer_normalizes_label(self, ledger):
        ledger.select_answer("s0q0", "b")

        assert ledger.state.answers == {"s0q0": "B"}

    def test_select_answer_marks_visited(self, ledger):
        ledger.select_answer("s0q2", "A")

        assert "s0q2" in ledger.state.visited

    def test_reselect_overwrites(self, ledger):
        ledger.select_answer("s0q0", "A")
        ledger.select_answer("s0q0", "D")

        assert ledger.state.answers["s0q0"] == "D"

    @pytest.mark.parametrize("label", ["E", "", "AB", "1"])
    def test_invalid_label_rejected(self, ledger, label):
        with pytest.raises(LedgerError, match="Invalid option"):
            ledger.select_answer("s0q0", label)
        assert ledger.state.answers == {}

    def test_unknown_question_rejected(self, ledger):
        with pytest.raises(LedgerError, match="Unknown question"):
            ledger.select_answer("nope", "A")

    def test_clear_removes_answer_and_mark(self, ledger):
        ledger.select_answer("s0q0", "A")
        ledger.toggle_review_mark("s0q0")

        ledger.clear_response("s0q0")

        assert "s0q0" not in ledger.state.answers
        assert "s0q0" not in ledger.state.marked_for_review

    def test_toggle_review_mark(self, ledger):
        assert ledger.toggle_review_mark("s0q1") is True
        assert ledger.toggle_review_mark("s0q1") is False
        assert ledger.state.marked_for_review == set()

    def test_record_time_credits_current_question(self, ledger):
        ledger.record_time()
        ledger.record_time(2)
        ledger.go_to(1)
        ledger.record_time()

        assert ledger.state.time_spent == {"s0q0": 3, "s0q1": 1}


class TestNavigation:
    """Test go_to, advance and enter_section."""

    def test_go_to_marks_visited(self, ledger):
        question = ledger.go_to(2)

        assert question.id == "s0q2"
        assert ledger.state.current_question_index == 2
        assert "s0q2" in ledger.state.visited

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_go_to_out_of_range(self, ledger, index):
        with pytest.raises(LedgerError, match="out of range"):
            ledger.go_to(index)
        assert ledger.state.current_question_index == 0

    def test_advance_until_section_complete(self, ledger):
        assert ledger.advance() == ADVANCED
        assert ledger.advance() == ADVANCED
        assert ledger.advance() == SECTION_COMPLETE
        assert ledger.state.current_question_index == 2

    def test_enter_next_section(self, ledger):
        ledger.go_to(2)

        section = ledger.enter_section(1)

        assert section.name == "Section 1"
        assert ledger.state.current_section_index == 1
        assert ledger.state.current_question_index == 0
        assert "s1q0" in ledger.state.visited
        assert ledger.is_last_section()

    def test_cannot_go_back_a_section(self, ledger):
        ledger.enter_section(1)

        with pytest.raises(SectionRegressionError):
            ledger.enter_section(0)
        assert ledger.state.current_section_index == 1

    def test_cannot_skip_or_reenter_a_section(self, ledger):
        with pytest.raises(SectionRegressionError):
            ledger.enter_section(0)
        with pytest.raises(SectionRegressionError):
            ledger.enter_section(2)

    def test_cannot_enter_past_last_section(self, ledger):
        ledger.enter_section(1)

        with pytest.raises(LedgerError, match="out of range"):
            ledger.enter_section(2)

    def test_go_to_stays_in_current_section(self, ledger):
        ledger.enter_section(1)

        with pytest.raises(LedgerError):
            ledger.go_to(2)

    def test_clamp_position(self, ledger):
        ledger.state.current_section_index = 7
        ledger.state.current_question_index = 9

        ledger.clamp_position()

        assert ledger.state.current_section_index == 1
        assert ledger.state.current_question_index == 0

        ledger.state.current_question_index = 5
        ledger.clamp_position()
        assert ledger.state.current_question_index == 1


class TestCounts:
    """Test question status and section counts."""

    def test_status_of_each_kind(self, ledger):
        ledger.select_answer("s0q0", "A")
        ledger.toggle_review_mark("s0q0")
        ledger.select_answer("s0q1", "B")
        ledger.toggle_review_mark("s0q2")

        statuses = [entry["status"] for entry in ledger.palette()]

        assert statuses == [STATUS_ANSWERED_MARKED, STATUS_ANSWERED, STATUS_MARKED]

        ledger.clear_response("s0q2")
        ledger.mark_visited("s0q2")
        assert ledger.question_status(ledger.current_section_questions()[2]) == STATUS_NOT_ANSWERED

    def test_unvisited_questions(self, ledger):
        counts = ledger.compute_section_counts()

        assert counts.not_visited == 3
        assert ledger.palette()[0]["status"] == STATUS_NOT_VISITED

    def test_marked_includes_answered_and_marked(self, ledger):
        ledger.select_answer("s0q0", "A")
        ledger.toggle_review_mark("s0q0")
        ledger.toggle_review_mark("s0q1")

        counts = ledger.compute_section_counts()

        assert counts.marked == 2
        assert counts.answered == 0
        assert counts.not_answered == 0
        assert counts.not_visited == 1

    def test_counts_for_other_section(self, ledger):
        ledger.select_answer("s1q1", "C")

        counts = ledger.compute_section_counts(1)

        assert counts.to_dict() == {"answered": 1, "notAnswered": 0, "marked": 0, "notVisited": 1}

    def test_counts_partition_the_section(self, ledger):
        """Every sequence of operations keeps the four counts summing to the section size."""
        rng = random.Random(7)
        ids = ["s0q0", "s0q1", "s0q2"]

        for _ in range(200):
            question_id = rng.choice(ids)
            action = rng.choice(["answer", "clear", "mark", "visit"])
            if action == "answer":
                ledger.select_answer(question_id, rng.choice("ABCD"))
            elif action == "clear":
                ledger.clear_response(question_id)
            elif action == "mark":
                ledger.toggle_review_mark(question_id)
            else:
                ledger.mark_visited(question_id)

            counts = ledger.compute_section_counts()
            assert counts.total == 3
            assert min(counts.answered, counts.not_answered, counts.marked, counts.not_visited) >= 0

    def test_two_section_walkthrough(self, ledger):
        """Answer, mark and skip across both sections."""
        ledger.mark_visited("s0q0")
        ledger.select_answer("s0q0", "A")
        ledger.advance()
        ledger.toggle_review_mark("s0q1")
        ledger.advance()
        assert ledger.advance() == SECTION_COMPLETE

        first = ledger.compute_section_counts()
        assert (first.answered, first.marked, first.not_answered, first.not_visited) == (1, 1, 1, 0)

        ledger.enter_section(1)
        ledger.select_answer("s1q0", "D")

        second = ledger.compute_section_counts()
        assert (second.answered, second.not_visited) == (1, 1)
        assert ledger.compute_section_counts(0) == first
