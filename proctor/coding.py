"""
Coding section bookkeeping.

Execution and judging belong to an external collaborator that reports
(submission_id, score) pairs back. The bridge only tracks the selected
question and keeps every reported submission.
"""

from collections import Counter
from typing import Dict, List, Optional

from .errors import LedgerError
from .models import CodingQuestion, CodingSubmission, Test
from .state import SessionState


class CodingBridge:
    """Selected coding question and the append-only submission list."""

    def __init__(self, test: Test, state: SessionState):
        self.test = test
        self.state = state
        self._questions: Dict[str, CodingQuestion] = {q.id: q for q in test.coding_questions}

    def first_question_id(self) -> Optional[str]:
        if not self.test.coding_questions:
            return None
        return self.test.coding_questions[0].id

    def selected_question(self) -> Optional[CodingQuestion]:
        return self._questions.get(self.state.selected_coding_question_id)

    def select_question(self, question_id: str) -> CodingQuestion:
        """Point at a coding question; any question may be revisited at will."""
        if question_id not in self._questions:
            raise LedgerError(f"Unknown coding question: {question_id}")
        self.state.selected_coding_question_id = question_id
        return self._questions[question_id]

    def record_submission(self, submission_id: str, score) -> CodingSubmission:
        """Append a reported result. Scores are taken as reported."""
        submission = CodingSubmission(
            submission_id=str(submission_id),
            score=score,
            question_id=self.state.selected_coding_question_id,
        )
        self.state.coding_submissions.append(submission)
        return submission

    def submissions_for_payload(self) -> List[dict]:
        return [
            {"submissionId": s.submission_id, "score": s.score}
            for s in self.state.coding_submissions
        ]

    def attempt_summary(self) -> Dict[str, int]:
        """Number of submissions per coding question, zero for untouched ones."""
        counts = Counter(s.question_id for s in self.state.coding_submissions)
        return {q.id: counts.get(q.id, 0) for q in self.test.coding_questions}
