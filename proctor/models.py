"""
Data models for test definitions and session configuration.

Provides type-safe structures for Question, Section, CodingQuestion, Test
and SessionConfig objects. Field names of the incoming JSON follow the
test authoring format (``_id``, ``questionText``, ``sectionName``...);
snake_case aliases are accepted as well.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from .errors import TestDefinitionError


OPTION_LABELS = ("A", "B", "C", "D")

RESUME_POLICIES = ("wall_clock", "snapshot", "reset")
DEFAULT_CODING_GRACE_SECONDS = 600


def _pick(data: dict, *keys, default=None):
    """Return the first key present in data."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question with four labeled options."""
    id: str
    text: str
    options: Dict[str, str]
    marks: float = 1.0
    image_url: Optional[str] = None
    option_images: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def from_dict(data: dict) -> 'Question':
        """Create a Question object from a dictionary."""
        question_id = _pick(data, '_id', 'id')
        if question_id is None:
            raise TestDefinitionError("Question without an id")

        options = data.get('options') or {}
        missing = [label for label in OPTION_LABELS if label not in options]
        if missing:
            raise TestDefinitionError(
                f"Question {question_id} is missing options: {', '.join(missing)}"
            )

        option_images = {
            label: url
            for label, url in (_pick(data, 'optionImages', 'option_images', default={})).items()
            if label in OPTION_LABELS and url
        }

        return Question(
            id=str(question_id),
            text=_pick(data, 'questionText', 'text', default=""),
            options={label: str(options[label]) for label in OPTION_LABELS},
            marks=float(data.get('marks', 1.0)),
            image_url=_pick(data, 'questionImageUrl', 'image_url'),
            option_images=option_images,
        )


@dataclass(frozen=True)
class Section:
    """An ordered, one-way block of MCQ questions."""
    id: str
    name: str
    questions: List[Question]
    duration_minutes: Optional[int] = None  # informational, the global clock rules

    @staticmethod
    def from_dict(data: dict) -> 'Section':
        """Create a Section object from a dictionary."""
        section_id = _pick(data, '_id', 'id')
        if section_id is None:
            raise TestDefinitionError("Section without an id")

        return Section(
            id=str(section_id),
            name=_pick(data, 'sectionName', 'name', default=f"Section {section_id}"),
            questions=[Question.from_dict(q) for q in data.get('questions', [])],
            duration_minutes=_pick(data, 'sectionDuration', 'duration_minutes'),
        )


@dataclass(frozen=True)
class CodingQuestion:
    """Coding problem reference; content and execution live elsewhere."""
    id: str
    title: str
    points: float = 0.0

    @staticmethod
    def from_dict(data: dict) -> 'CodingQuestion':
        """Create a CodingQuestion object from a dictionary."""
        question_id = _pick(data, '_id', 'questionId', 'id')
        if question_id is None:
            raise TestDefinitionError("Coding question without an id")

        return CodingQuestion(
            id=str(question_id),
            title=_pick(data, 'title', default=str(question_id)),
            points=float(_pick(data, 'points', 'marks', default=0.0)),
        )


@dataclass(frozen=True)
class Test:
    """Represents an entire test definition."""
    __test__ = False

    id: str
    name: str
    duration_seconds: int
    questions: List[Question] = field(default_factory=list)
    has_sections: bool = False
    sections: List[Section] = field(default_factory=list)
    has_coding_section: bool = False
    coding_questions: List[CodingQuestion] = field(default_factory=list)
    total_marks: float = 0.0
    test_type: str = "mcq"
    subject: str = ""

    @staticmethod
    def from_dict(data: dict) -> 'Test':
        """Create a Test object from a dictionary."""
        test_id = _pick(data, '_id', 'id')
        if test_id is None:
            raise TestDefinitionError("Test without an id")

        if 'durationSeconds' in data:
            duration_seconds = int(data['durationSeconds'])
        elif 'duration_seconds' in data:
            duration_seconds = int(data['duration_seconds'])
        else:
            # authoring format stores minutes
            duration_seconds = int(data.get('duration', 0)) * 60

        if duration_seconds <= 0:
            raise TestDefinitionError(f"Test {test_id} must have a positive duration")

        has_sections = bool(_pick(data, 'hasSections', 'has_sections', default=False))
        sections = []
        if has_sections:
            sections = [Section.from_dict(s) for s in data.get('sections', [])]

        has_coding = bool(_pick(data, 'hasCodingSection', 'has_coding_section', default=False))
        coding_questions = [
            CodingQuestion.from_dict(c)
            for c in _pick(data, 'codingQuestions', 'coding_questions', default=[])
        ]

        test = Test(
            id=str(test_id),
            name=_pick(data, 'testName', 'name', default=str(test_id)),
            duration_seconds=duration_seconds,
            questions=[Question.from_dict(q) for q in data.get('questions', [])],
            has_sections=has_sections,
            sections=sections,
            has_coding_section=has_coding,
            coding_questions=coding_questions,
            total_marks=float(_pick(data, 'totalMarks', 'total_marks', default=0.0)),
            test_type=_pick(data, 'testType', 'test_type', default="mcq"),
            subject=data.get('subject', ""),
        )

        seen = set()
        for question in test.all_questions():
            if question.id in seen:
                raise TestDefinitionError(f"Duplicate question id: {question.id}")
            seen.add(question.id)

        return test

    def mcq_sections(self) -> List[Section]:
        """Sections in traversal order. A flat test is one unnamed section."""
        if self.has_sections and self.sections:
            return list(self.sections)
        return [Section(id=self.id, name="Questions", questions=list(self.questions))]

    def all_questions(self) -> List[Question]:
        """Every MCQ question of the test in order."""
        questions = []
        for section in self.mcq_sections():
            questions.extend(section.questions)
        return questions

    def has_mcq(self) -> bool:
        return len(self.all_questions()) > 0

    def has_coding(self) -> bool:
        return self.has_coding_section and len(self.coding_questions) > 0

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.all_questions():
            if question.id == question_id:
                return question
        return None


@dataclass
class CodingSubmission:
    """One score reported by the coding execution collaborator."""
    submission_id: str
    score: float
    question_id: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> 'CodingSubmission':
        submission_id = _pick(data, 'submissionId', 'submission_id')
        if submission_id is None:
            raise KeyError('submissionId')

        return CodingSubmission(
            submission_id=str(submission_id),
            score=_pick(data, 'score', default=0),
            question_id=_pick(data, 'questionId', 'question_id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"submissionId": self.submission_id, "score": self.score}
        if self.question_id is not None:
            data["questionId"] = self.question_id
        return data


@dataclass
class NetworkMonitoringConfig:
    """Network monitoring settings."""
    enabled: bool
    check_interval_seconds: int

    @staticmethod
    def from_dict(data: dict) -> 'NetworkMonitoringConfig':
        """Create NetworkMonitoringConfig from dictionary."""
        return NetworkMonitoringConfig(
            enabled=data.get('enabled', False),
            check_interval_seconds=data.get('check_interval_seconds', 15)
        )

    @staticmethod
    def default() -> 'NetworkMonitoringConfig':
        """Return default config (monitoring disabled)."""
        return NetworkMonitoringConfig(enabled=False, check_interval_seconds=15)


@dataclass
class SessionConfig:
    """
    Policy settings for a proctored session.

    Attributes:
        violation_limit: Number of tab-switch violations that forces a transition
        tick_seconds: Real seconds between clock ticks
        resume_clock_policy: How the clock resumes after a reload
            ("wall_clock", "snapshot" or "reset")
        coding_grace_seconds: Coding time granted when time expiry forces the
            jump into coding (0 leaves the coding phase unclocked)
        checkpoint_dir: Directory for file-backed checkpoints
        encrypt_checkpoints: Store checkpoints as Fernet tokens
        autosave: Checkpoint after every state-altering operation, not only on unload
        require_fullscreen: Request fullscreen when the session starts
        network_monitoring: Count coming online as leaving the exam environment
    """
    violation_limit: int = 3
    tick_seconds: int = 1
    resume_clock_policy: str = "wall_clock"
    coding_grace_seconds: int = DEFAULT_CODING_GRACE_SECONDS
    checkpoint_dir: str = "checkpoints"
    encrypt_checkpoints: bool = False
    autosave: bool = False
    require_fullscreen: bool = True
    network_monitoring: NetworkMonitoringConfig = field(default_factory=NetworkMonitoringConfig.default)

    @staticmethod
    def from_dict(data: dict) -> 'SessionConfig':
        """Create SessionConfig from dictionary."""
        network_config = NetworkMonitoringConfig.default()
        if 'network_monitoring' in data:
            network_config = NetworkMonitoringConfig.from_dict(data['network_monitoring'])

        return SessionConfig(
            violation_limit=data.get('violation_limit', 3),
            tick_seconds=data.get('tick_seconds', 1),
            resume_clock_policy=data.get('resume_clock_policy', 'wall_clock'),
            coding_grace_seconds=data.get('coding_grace_seconds', DEFAULT_CODING_GRACE_SECONDS),
            checkpoint_dir=data.get('checkpoint_dir', 'checkpoints'),
            encrypt_checkpoints=data.get('encrypt_checkpoints', False),
            autosave=data.get('autosave', False),
            require_fullscreen=data.get('require_fullscreen', True),
            network_monitoring=network_config,
        )

    def validate(self) -> tuple[bool, str]:
        """
        Validate configuration consistency.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not isinstance(self.violation_limit, int) or self.violation_limit < 1:
            return False, f"violation_limit must be a positive integer, got {self.violation_limit!r}"

        if not isinstance(self.tick_seconds, int) or self.tick_seconds < 1:
            return False, f"tick_seconds must be a positive integer, got {self.tick_seconds!r}"

        if self.resume_clock_policy not in RESUME_POLICIES:
            return False, (f"resume_clock_policy must be one of {', '.join(RESUME_POLICIES)}, "
                           f"got {self.resume_clock_policy!r}")

        if not isinstance(self.coding_grace_seconds, int) or self.coding_grace_seconds < 0:
            return False, "coding_grace_seconds must be a non-negative integer"

        if self.network_monitoring.check_interval_seconds < 1:
            return False, "network_monitoring.check_interval_seconds must be at least 1"

        return True, ""

    @staticmethod
    def default() -> 'SessionConfig':
        """Return default configuration."""
        return SessionConfig()
