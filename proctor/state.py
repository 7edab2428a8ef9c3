"""
Mutable session state and its checkpoint record.

The checkpoint record uses the field names of the browser-side progress
record so that records written by older clients can still be resumed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .models import CodingSubmission


CHECKPOINT_VERSION = 2


class Phase(Enum):
    INSTRUCTIONS = "instructions"
    MCQ_ACTIVE = "mcq_active"
    SECTION_COMPLETE_CONFIRM = "section_complete_confirm"
    CODING_TRANSITION = "coding_transition"
    CODING_ACTIVE = "coding_active"
    SUBMIT_CONFIRM = "submit_confirm"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    EXITED = "exited"


ACTIVE_PHASES = {
    Phase.MCQ_ACTIVE,
    Phase.SECTION_COMPLETE_CONFIRM,
    Phase.CODING_TRANSITION,
    Phase.CODING_ACTIVE,
    Phase.SUBMIT_CONFIRM,
}


def _id_set(value) -> Set[str]:
    """Accept both the list form and the legacy {id: bool} form."""
    if isinstance(value, dict):
        return {str(k) for k, flag in value.items() if flag}
    if isinstance(value, (list, tuple, set)):
        return {str(v) for v in value}
    raise TypeError(f"expected list or object, got {type(value).__name__}")


def _non_negative_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected number, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"expected non-negative number, got {value}")
    return int(value)


def _answers(value) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise TypeError(f"expected object, got {type(value).__name__}")
    return {str(k): str(v).upper() for k, v in value.items() if v}


def _submissions(value) -> List[CodingSubmission]:
    if not isinstance(value, list):
        raise TypeError(f"expected list, got {type(value).__name__}")
    return [CodingSubmission.from_dict(item) for item in value]


def _time_spent(value) -> Dict[str, int]:
    if not isinstance(value, dict):
        raise TypeError(f"expected object, got {type(value).__name__}")
    return {str(k): _non_negative_int(v) for k, v in value.items()}


def _bool(value) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected boolean, got {type(value).__name__}")
    return value


def _optional_str(value) -> Optional[str]:
    return None if value is None else str(value)


def _start_time(value) -> float:
    # stored as epoch milliseconds
    return _non_negative_int(value) / 1000.0


def _optional_start_time(value) -> Optional[float]:
    return None if value is None else _start_time(value)


# checkpoint key(s) -> (attribute, parser)
_FIELDS = [
    (("answers",), "answers", _answers),
    (("markedForReview",), "marked_for_review", _id_set),
    (("visited", "visitedQuestions"), "visited", _id_set),
    (("currentSectionIndex",), "current_section_index", _non_negative_int),
    (("currentQuestionIndex",), "current_question_index", _non_negative_int),
    (("violations",), "violation_count", _non_negative_int),
    (("timeLeft",), "remaining_seconds", _non_negative_int),
    (("mcqCompleted",), "mcq_completed", _bool),
    (("selectedCodingQuestionId",), "selected_coding_question_id", _optional_str),
    (("codingSubmissions",), "coding_submissions", _submissions),
    (("testStartTime",), "session_start", _start_time),
    (("timeSpent",), "time_spent", _time_spent),
    (("thresholdHandled",), "threshold_handled", _bool),
    (("forcedCodingDone",), "forced_coding_done", _bool),
    (("codingClockStart",), "coding_clock_start", _optional_start_time),
]


@dataclass
class SessionState:
    """Everything that changes while a candidate takes a test."""
    answers: Dict[str, str] = field(default_factory=dict)
    marked_for_review: Set[str] = field(default_factory=set)
    visited: Set[str] = field(default_factory=set)
    current_section_index: int = 0
    current_question_index: int = 0
    violation_count: int = 0
    remaining_seconds: int = 0
    mcq_completed: bool = False
    selected_coding_question_id: Optional[str] = None
    coding_submissions: List[CodingSubmission] = field(default_factory=list)
    phase: Phase = Phase.INSTRUCTIONS
    session_start: Optional[float] = None
    time_spent: Dict[str, int] = field(default_factory=dict)
    threshold_handled: bool = False
    forced_coding_done: bool = False
    coding_clock_start: Optional[float] = None

    def to_checkpoint(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible checkpoint record."""
        return {
            "version": CHECKPOINT_VERSION,
            "answers": dict(self.answers),
            "markedForReview": sorted(self.marked_for_review),
            "visited": sorted(self.visited),
            "currentSectionIndex": self.current_section_index,
            "currentQuestionIndex": self.current_question_index,
            "violations": self.violation_count,
            "timeLeft": self.remaining_seconds,
            "mcqCompleted": self.mcq_completed,
            "selectedCodingQuestionId": self.selected_coding_question_id,
            "codingSubmissions": [s.to_dict() for s in self.coding_submissions],
            "testStartTime": int(self.session_start * 1000) if self.session_start is not None else None,
            "timeSpent": dict(self.time_spent),
            "thresholdHandled": self.threshold_handled,
            "forcedCodingDone": self.forced_coding_done,
            "codingClockStart": (int(self.coding_clock_start * 1000)
                                 if self.coding_clock_start is not None else None),
            "phase": self.phase.value,
        }

    def hydrate(self, record: Dict[str, Any]) -> List[str]:
        """
        Overwrite fields present in a checkpoint record.

        Absent fields keep their current values; a malformed field is skipped.
        The phase is never restored, the orchestrator derives it on start.

        Returns:
            Descriptions of the fields that could not be restored
        """
        if not isinstance(record, dict):
            return [f"record: expected object, got {type(record).__name__}"]

        problems = []
        for keys, attribute, parse in _FIELDS:
            key = next((k for k in keys if k in record), None)
            if key is None:
                continue
            value = record[key]
            if value is None and attribute not in ("selected_coding_question_id", "coding_clock_start"):
                continue
            try:
                setattr(self, attribute, parse(value))
            except (TypeError, ValueError, KeyError, AttributeError) as e:
                problems.append(f"{key}: {e}")

        return problems

    @staticmethod
    def from_checkpoint(record: Dict[str, Any]) -> 'SessionState':
        state = SessionState()
        state.hydrate(record)
        return state
