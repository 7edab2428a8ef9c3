"""
Answer and navigation bookkeeping for the MCQ phase.

The ledger owns answers, review flags, visited flags and the current
(section, question) position. Sections are entered strictly in order and
never re-entered.
"""

from dataclasses import dataclass
from typing import List, Optional

from .errors import LedgerError, SectionRegressionError
from .models import OPTION_LABELS, Question, Section, Test
from .state import SessionState


ADVANCED = "advanced"
SECTION_COMPLETE = "section_complete"

STATUS_ANSWERED_MARKED = "answered-marked"
STATUS_ANSWERED = "answered"
STATUS_MARKED = "marked"
STATUS_NOT_ANSWERED = "not-answered"
STATUS_NOT_VISITED = "not-visited"


@dataclass(frozen=True)
class SectionCounts:
    """Palette summary; the four partitions cover the section exactly once."""
    answered: int
    not_answered: int
    marked: int
    not_visited: int

    @property
    def total(self) -> int:
        return self.answered + self.not_answered + self.marked + self.not_visited

    def to_dict(self) -> dict:
        return {
            "answered": self.answered,
            "notAnswered": self.not_answered,
            "marked": self.marked,
            "notVisited": self.not_visited,
        }


class AnswerLedger:
    """Mutates only the MCQ-related fields of a SessionState."""

    def __init__(self, test: Test, state: SessionState):
        self.test = test
        self.state = state
        self.sections: List[Section] = test.mcq_sections()
        self._question_ids = {q.id for q in test.all_questions()}

    # ===== POSITION =====

    def current_section(self) -> Optional[Section]:
        if 0 <= self.state.current_section_index < len(self.sections):
            return self.sections[self.state.current_section_index]
        return None

    def current_section_questions(self) -> List[Question]:
        section = self.current_section()
        return list(section.questions) if section else []

    def current_question(self) -> Optional[Question]:
        questions = self.current_section_questions()
        if 0 <= self.state.current_question_index < len(questions):
            return questions[self.state.current_question_index]
        return None

    def is_last_section(self) -> bool:
        return self.state.current_section_index >= len(self.sections) - 1

    def clamp_position(self):
        """Pull a restored position back inside the test bounds."""
        if self.state.current_section_index >= len(self.sections):
            self.state.current_section_index = max(len(self.sections) - 1, 0)
            self.state.current_question_index = 0
        questions = self.current_section_questions()
        if self.state.current_question_index >= len(questions):
            self.state.current_question_index = max(len(questions) - 1, 0)

    # ===== ANSWERS =====

    def _require_question(self, question_id: str):
        if question_id not in self._question_ids:
            raise LedgerError(f"Unknown question: {question_id}")

    def select_answer(self, question_id: str, option_label: str):
        """Record an answer. Answering a question also marks it visited."""
        self._require_question(question_id)
        label = str(option_label).upper()
        if label not in OPTION_LABELS:
            raise LedgerError(f"Invalid option '{option_label}', expected one of {', '.join(OPTION_LABELS)}")

        self.state.answers[question_id] = label
        self.state.visited.add(question_id)

    def clear_response(self, question_id: str):
        """Remove both the answer and the review flag."""
        self._require_question(question_id)
        self.state.answers.pop(question_id, None)
        self.state.marked_for_review.discard(question_id)

    def toggle_review_mark(self, question_id: str) -> bool:
        """Flip the review flag; returns the new flag value."""
        self._require_question(question_id)
        if question_id in self.state.marked_for_review:
            self.state.marked_for_review.discard(question_id)
            return False
        self.state.marked_for_review.add(question_id)
        return True

    def mark_visited(self, question_id: str):
        self._require_question(question_id)
        self.state.visited.add(question_id)

    def record_time(self, seconds: int = 1):
        """Credit time to the question currently on screen."""
        question = self.current_question()
        if question is None:
            return
        spent = self.state.time_spent
        spent[question.id] = spent.get(question.id, 0) + seconds

    # ===== NAVIGATION =====

    def go_to(self, index: int) -> Question:
        """Jump to a question of the current section."""
        questions = self.current_section_questions()
        if not 0 <= index < len(questions):
            raise LedgerError(f"Question index {index} out of range (0-{len(questions) - 1})")

        self.state.current_question_index = index
        question = questions[index]
        self.mark_visited(question.id)
        return question

    def advance(self) -> str:
        """
        Move to the next question of the current section.

        Returns:
            ADVANCED, or SECTION_COMPLETE when already at the last question
        """
        questions = self.current_section_questions()
        if self.state.current_question_index < len(questions) - 1:
            self.go_to(self.state.current_question_index + 1)
            return ADVANCED
        return SECTION_COMPLETE

    def enter_section(self, index: int) -> Section:
        """Enter the next section; earlier sections stay closed for good."""
        expected = self.state.current_section_index + 1
        if index != expected:
            raise SectionRegressionError(
                f"Cannot move from section {self.state.current_section_index} to {index}"
            )
        if index >= len(self.sections):
            raise LedgerError(f"Section index {index} out of range")

        self.state.current_section_index = index
        self.state.current_question_index = 0
        section = self.sections[index]
        if section.questions:
            self.mark_visited(section.questions[0].id)
        return section

    # ===== SUMMARIES =====

    def question_status(self, question: Question) -> str:
        answered = question.id in self.state.answers
        marked = question.id in self.state.marked_for_review
        visited = question.id in self.state.visited

        if answered and marked:
            return STATUS_ANSWERED_MARKED
        if answered:
            return STATUS_ANSWERED
        if marked:
            return STATUS_MARKED
        if visited:
            return STATUS_NOT_ANSWERED
        return STATUS_NOT_VISITED

    def compute_section_counts(self, section_index: Optional[int] = None) -> SectionCounts:
        """Summarize a section (the active one by default)."""
        if section_index is None:
            questions = self.current_section_questions()
        else:
            questions = list(self.sections[section_index].questions)

        answered = not_answered = marked = not_visited = 0
        for question in questions:
            status = self.question_status(question)
            if status in (STATUS_MARKED, STATUS_ANSWERED_MARKED):
                marked += 1
            elif status == STATUS_ANSWERED:
                answered += 1
            elif status == STATUS_NOT_ANSWERED:
                not_answered += 1
            else:
                not_visited += 1

        return SectionCounts(
            answered=answered,
            not_answered=not_answered,
            marked=marked,
            not_visited=not_visited,
        )

    def palette(self) -> List[dict]:
        """Status of every question in the current section, in order."""
        return [
            {"index": i, "questionId": q.id, "status": self.question_status(q)}
            for i, q in enumerate(self.current_section_questions())
        ]
