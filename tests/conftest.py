"""
Shared fixtures: test definitions, a controllable time source and a
session factory wired to in-memory collaborators.
"""

import pytest
from unittest.mock import Mock
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.models import SessionConfig, Test
from proctor.orchestrator import SessionOrchestrator
from proctor.persistence import MemoryCheckpointStore
from proctor.session_log import SessionLog


def question_dict(question_id: str) -> dict:
    return {
        "_id": question_id,
        "questionText": f"Question {question_id}?",
        "options": {"A": "one", "B": "two", "C": "three", "D": "four"},
        "marks": 1,
    }


def build_test_dict(section_sizes=(3,), coding=0, duration_seconds=600, flat=False) -> dict:
    """Build a test definition; question ids are s<section>q<index>, coding ids c<n>."""
    data = {
        "_id": "T1",
        "testName": "Sample Test",
        "durationSeconds": duration_seconds,
        "totalMarks": sum(section_sizes),
        "hasCodingSection": coding > 0,
        "codingQuestions": [
            {"_id": f"c{n}", "title": f"Problem {n}", "points": 10} for n in range(coding)
        ],
    }
    if flat:
        data["questions"] = [question_dict(f"s0q{i}") for i in range(section_sizes[0])]
    else:
        data["hasSections"] = True
        data["sections"] = [
            {
                "_id": f"sec{s}",
                "sectionName": f"Section {s}",
                "questions": [question_dict(f"s{s}q{i}") for i in range(size)],
            }
            for s, size in enumerate(section_sizes)
        ]
    return data


class FakeTime:
    """Monotonic and wall clock under test control."""

    EPOCH = 1_700_000_000.0

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def wall(self) -> float:
        return self.EPOCH + self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def make_test_dict():
    return build_test_dict


@pytest.fixture
def make_test():
    def factory(**kwargs) -> Test:
        return Test.from_dict(build_test_dict(**kwargs))
    return factory


@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def make_session(fake_time):
    """
    Factory for orchestrators with a Mock submit, a memory store and an
    in-memory SessionLog. Fullscreen is off unless a config asks for it.
    """
    def factory(test, config=None, store=None, submit=None, **kwargs) -> SessionOrchestrator:
        return SessionOrchestrator(
            test,
            submit if submit is not None else Mock(),
            session_id="T1_candidate",
            store=store if store is not None else MemoryCheckpointStore(),
            config=config or SessionConfig(require_fullscreen=False),
            session_logger=SessionLog(),
            time_source=fake_time,
            wall_clock=fake_time.wall,
            **kwargs
        )
    return factory
