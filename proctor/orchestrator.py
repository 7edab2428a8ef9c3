"""
Session orchestrator: the phase state machine of a proctored test.

The orchestrator is the only writer of SessionState. It owns the ledger,
the coding bridge, the clock, the violation monitor and the checkpoint
store, and routes the three forcing functions (user action, clock expiry,
violation limit) through one decision point.

Public operations return an ActionResult instead of touching any display
state; notices raised from background callbacks (clock, watcher) are queued
and delivered with the next result, or through drain_notices().
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .clock import SessionClock, format_time
from .coding import CodingBridge
from .errors import (
    InvalidTransitionError,
    LedgerError,
    TermsNotAcceptedError,
    TestDefinitionError,
)
from .ledger import SECTION_COMPLETE, AnswerLedger
from .models import SessionConfig, Test
from .persistence import CheckpointStore, MemoryCheckpointStore
from .state import ACTIVE_PHASES, Phase, SessionState
from .violations import ViolationMonitor, VisibilityWatcher


REASON_TIME = "time_expired"
REASON_VIOLATIONS = "violation_limit"

# submit(answers, time_spent_minutes, coding_submissions)
SubmitFn = Callable[[List[dict], int, List[dict]], None]


@dataclass
class ActionResult:
    """Outcome of an orchestrator operation for the presentation layer."""
    ok: bool
    phase: Phase
    notices: List[str] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


class NullDisplay:
    """Display collaborator for hosts without a fullscreen concept."""

    def enter_fullscreen(self):
        pass

    def exit_fullscreen(self):
        pass

    def is_fullscreen(self) -> bool:
        return False


class SessionOrchestrator:
    """Sequences the phases of one test session."""

    def __init__(
        self,
        test: Test,
        submit: SubmitFn,
        session_id: Optional[str] = None,
        store: Optional[CheckpointStore] = None,
        config: Optional[SessionConfig] = None,
        display=None,
        on_exit: Optional[Callable[[], None]] = None,
        session_logger=None,
        time_source: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        if not test.has_mcq() and not test.has_coding():
            raise TestDefinitionError(f"Test {test.id} has neither MCQ nor coding questions")

        self.test = test
        self.submit_fn = submit
        self.session_id = session_id or test.id
        self.store = store if store is not None else MemoryCheckpointStore()
        self.config = config or SessionConfig.default()
        self.display = display or NullDisplay()
        self.on_exit = on_exit
        self.session_logger = session_logger
        self.wall_clock = wall_clock

        self.state = SessionState(remaining_seconds=test.duration_seconds)
        self.ledger = AnswerLedger(test, self.state)
        self.coding = CodingBridge(test, self.state)
        self.clock = SessionClock(
            on_tick=self._on_tick,
            on_expire=self._on_clock_expire,
            tick_seconds=self.config.tick_seconds,
            time_source=time_source,
        )
        self.monitor = ViolationMonitor(on_violation=self._on_violation)
        self.watcher: Optional[VisibilityWatcher] = None

        self._lock = threading.RLock()
        self._pending_notices: List[str] = []
        self._restore_attempted = False
        self._resumed = False
        self._submitting = False
        self._return_phase: Optional[Phase] = None

    # ===== HELPER FUNCTIONS =====

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def submitting(self) -> bool:
        return self._submitting

    def _log(self, event: str, details: str = ""):
        if self.session_logger:
            self.session_logger(event, details)

    def _notify(self, message: str):
        self._pending_notices.append(message)

    def drain_notices(self) -> List[str]:
        with self._lock:
            notices = self._pending_notices
            self._pending_notices = []
            return notices

    def _result(self, ok: bool = True, error: Optional[str] = None) -> ActionResult:
        return ActionResult(
            ok=ok,
            phase=self.state.phase,
            notices=self.drain_notices(),
            loading=self._submitting,
            error=error,
        )

    def _require(self, *phases: Phase):
        if self.state.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise InvalidTransitionError(
                f"Not allowed in phase '{self.state.phase.value}' (allowed: {allowed})"
            )

    def _save(self) -> bool:
        try:
            self.store.save(self.session_id, self.state.to_checkpoint())
            return True
        except Exception as e:
            self._log("CHECKPOINT_ERROR", f"Save failed: {e}")
            return False

    def _autosave(self):
        if self.config.autosave and self.state.phase in ACTIVE_PHASES and not self._submitting:
            self._save()

    def attach_watcher(self, away_check: Callable[[], bool], check_interval_seconds: float) -> VisibilityWatcher:
        """Poll an away check for visibility while the session is active."""
        self.watcher = VisibilityWatcher(
            self.monitor,
            away_check,
            check_interval_seconds=check_interval_seconds,
            session_logger=self.session_logger,
        )
        return self.watcher

    def run_clock_in_background(self, poll_interval: float = 0.2):
        self.clock.run_in_background(poll_interval)

    # ===== RESTORE / START / EXIT =====

    def restore(self) -> ActionResult:
        """Hydrate state from the checkpoint store, once, before start."""
        with self._lock:
            self._require(Phase.INSTRUCTIONS)
            if self._restore_attempted:
                raise InvalidTransitionError("Checkpoint restore already attempted")
            self._restore_attempted = True

            try:
                record = self.store.load(self.session_id)
            except Exception as e:
                self._log("CHECKPOINT_ERROR", f"Load failed: {e}")
                self._notify("Saved progress could not be read; starting fresh.")
                return self._result(ok=False, error=str(e))

            if record is None:
                return self._result(ok=False)

            problems = self.state.hydrate(record)
            for problem in problems:
                self._log("CHECKPOINT_FIELD_INVALID", problem)

            # records without the flag follow the mcqCompleted gate of older clients
            if ("thresholdHandled" not in record and self.state.mcq_completed
                    and self.state.violation_count >= self.config.violation_limit):
                self.state.threshold_handled = True

            self.ledger.clamp_position()
            if (self.state.selected_coding_question_id is not None
                    and self.coding.selected_question() is None):
                self._log("CHECKPOINT_FIELD_INVALID",
                          f"selectedCodingQuestionId: unknown id {self.state.selected_coding_question_id}")
                self.state.selected_coding_question_id = None

            self._resumed = True
            self._log(
                "CHECKPOINT_RESTORED",
                f"Answers: {len(self.state.answers)}, Section: {self.state.current_section_index}, "
                f"Question: {self.state.current_question_index}, Violations: {self.state.violation_count}"
            )
            self._notify("Your previous progress has been restored.")
            return self._result()

    def _clock_budget(self):
        """Seconds the running clock was started with, and the wall time it started."""
        if self.state.coding_clock_start is not None:
            return self.config.coding_grace_seconds, self.state.coding_clock_start
        return self.test.duration_seconds, self.state.session_start

    def _coding_unclocked(self) -> bool:
        return self.state.coding_clock_start is not None and self.config.coding_grace_seconds == 0

    def _initial_remaining(self) -> int:
        budget, started = self._clock_budget()
        if not self._resumed:
            return budget

        policy = self.config.resume_clock_policy
        if policy == "reset":
            return budget
        if policy == "snapshot":
            return min(self.state.remaining_seconds, budget)
        # wall_clock
        elapsed = int(self.wall_clock() - started)
        return max(min(budget - elapsed, budget), 0)

    def start(self, accepted_terms: bool) -> ActionResult:
        """Leave the instructions screen and begin the timed session."""
        with self._lock:
            self._require(Phase.INSTRUCTIONS)
            if not accepted_terms:
                raise TermsNotAcceptedError("Please accept the terms and conditions to proceed.")

            if self.config.require_fullscreen:
                try:
                    self.display.enter_fullscreen()
                except Exception as e:
                    self._log("FULLSCREEN_ERROR", f"Could not enter fullscreen: {e}")

            if self.state.session_start is None:
                self.state.session_start = self.wall_clock()
            remaining = self._initial_remaining()
            self.state.remaining_seconds = remaining

            if not self.test.has_mcq():
                self.state.mcq_completed = True
                self.state.forced_coding_done = True
                self._enter_coding()
            elif self.state.mcq_completed and self.test.has_coding():
                self.state.forced_coding_done = True
                self._enter_coding()
            else:
                self.state.phase = Phase.MCQ_ACTIVE
                question = self.ledger.current_question()
                if question is not None:
                    self.ledger.mark_visited(question.id)

            self.monitor.violation_count = self.state.violation_count
            self.monitor.arm()

            self._log(
                "SESSION_RESUME" if self._resumed else "SESSION_START",
                f"Test: {self.test.id}, Phase: {self.state.phase.value}, Remaining: {format_time(remaining)}"
            )

            if (self.state.violation_count >= self.config.violation_limit
                    and not self.state.threshold_handled):
                self.state.threshold_handled = True
                self._forced_transition(REASON_VIOLATIONS)

            if self.state.phase in ACTIVE_PHASES:
                if not self._coding_unclocked():
                    self.clock.start(remaining)
                if self.watcher and self.state.phase in ACTIVE_PHASES:
                    self.watcher.start_monitoring()

            self._autosave()
            return self._result()

    def exit(self) -> ActionResult:
        """Leave from the instructions screen without starting."""
        with self._lock:
            self._require(Phase.INSTRUCTIONS)
            self.state.phase = Phase.EXITED
            self._log("SESSION_EXIT", "Candidate left before starting")
            if self.on_exit:
                self.on_exit()
            return self._result()

    # ===== MCQ OPERATIONS =====

    def _current_section_question(self, question_id: Optional[str]):
        if question_id is None:
            question = self.ledger.current_question()
            if question is None:
                raise LedgerError("No current question")
            return question
        for question in self.ledger.current_section_questions():
            if question.id == question_id:
                return question
        raise LedgerError(f"Question {question_id} is not in the current section")

    def select_answer(self, option_label: str, question_id: Optional[str] = None) -> ActionResult:
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            question = self._current_section_question(question_id)
            self.ledger.select_answer(question.id, option_label)
            self._autosave()
            return self._result()

    def clear_response(self, question_id: Optional[str] = None) -> ActionResult:
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            question = self._current_section_question(question_id)
            self.ledger.clear_response(question.id)
            self._autosave()
            return self._result()

    def toggle_review(self, question_id: Optional[str] = None) -> ActionResult:
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            question = self._current_section_question(question_id)
            self.ledger.toggle_review_mark(question.id)
            self._autosave()
            return self._result()

    def go_to(self, index: int) -> ActionResult:
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            self.ledger.go_to(index)
            self._autosave()
            return self._result()

    def advance(self) -> ActionResult:
        """Save & Next: next question, or the section-complete dialog."""
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            if self.ledger.advance() == SECTION_COMPLETE:
                self.state.phase = Phase.SECTION_COMPLETE_CONFIRM
            self._autosave()
            return self._result()

    save_and_next = advance

    def mark_for_review_and_next(self) -> ActionResult:
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            question = self._current_section_question(None)
            if question.id not in self.state.marked_for_review:
                self.ledger.toggle_review_mark(question.id)
            return self.advance()

    def review_section(self) -> ActionResult:
        """Close the section-complete dialog and stay in the section."""
        with self._lock:
            self._require(Phase.SECTION_COMPLETE_CONFIRM)
            self.state.phase = Phase.MCQ_ACTIVE
            return self._result()

    def proceed_section(self) -> ActionResult:
        """Leave the current section for good."""
        with self._lock:
            self._require(Phase.SECTION_COMPLETE_CONFIRM)
            if not self.ledger.is_last_section():
                section = self.ledger.enter_section(self.state.current_section_index + 1)
                self.state.phase = Phase.MCQ_ACTIVE
                self._log("SECTION_ENTERED", f"Section {self.state.current_section_index + 1}: {section.name}")
            elif self.test.has_coding():
                self.state.mcq_completed = True
                self.state.phase = Phase.CODING_TRANSITION
                self._log("MCQ_COMPLETED", "Moving to coding section")
            else:
                self._return_phase = Phase.MCQ_ACTIVE
                self.state.phase = Phase.SUBMIT_CONFIRM
            self._autosave()
            return self._result()

    def finish_mcq(self) -> ActionResult:
        """Candidate-initiated end of the MCQ part from the question view."""
        with self._lock:
            self._require(Phase.MCQ_ACTIVE)
            if not self.test.has_coding():
                return self.request_submit()
            self.state.mcq_completed = True
            self._enter_coding()
            self._log("MCQ_COMPLETED", "Candidate moved to coding section")
            self._autosave()
            return self._result()

    # ===== CODING OPERATIONS =====

    def _enter_coding(self):
        self.state.phase = Phase.CODING_ACTIVE
        if self.coding.selected_question() is None:
            first = self.coding.first_question_id()
            if first is not None:
                self.coding.select_question(first)

    def begin_coding(self) -> ActionResult:
        with self._lock:
            self._require(Phase.CODING_TRANSITION)
            self._enter_coding()
            self._autosave()
            return self._result()

    def select_coding_question(self, question_id: str) -> ActionResult:
        with self._lock:
            self._require(Phase.CODING_ACTIVE)
            self.coding.select_question(question_id)
            self._autosave()
            return self._result()

    def record_coding_submission(self, submission_id: str, score) -> ActionResult:
        """Callback for the coding execution collaborator."""
        with self._lock:
            # late results may still arrive while the confirm dialog is open
            if not (self.state.phase == Phase.SUBMIT_CONFIRM and self.state.mcq_completed):
                self._require(Phase.CODING_ACTIVE)
            submission = self.coding.record_submission(submission_id, score)
            self._log("CODING_SUBMISSION",
                      f"Question: {submission.question_id}, Submission: {submission.submission_id}, "
                      f"Score: {submission.score}")
            self._autosave()
            return self._result()

    # ===== SUBMISSION =====

    def request_submit(self) -> ActionResult:
        """Open the submit confirmation dialog."""
        with self._lock:
            self._require(Phase.MCQ_ACTIVE, Phase.CODING_ACTIVE)
            if (self.state.phase == Phase.MCQ_ACTIVE and self.test.has_coding()
                    and not self.state.mcq_completed):
                raise InvalidTransitionError("Finish the MCQ section before submitting")
            self._return_phase = self.state.phase
            self.state.phase = Phase.SUBMIT_CONFIRM
            return self._result()

    def cancel_submit(self) -> ActionResult:
        with self._lock:
            self._require(Phase.SUBMIT_CONFIRM)
            self.state.phase = self._return_phase or Phase.MCQ_ACTIVE
            self._return_phase = None
            return self._result()

    def confirm_submit(self) -> ActionResult:
        with self._lock:
            self._require(Phase.SUBMIT_CONFIRM)
            return self._finalize(forced=False)

    def build_answer_payload(self) -> List[dict]:
        """One entry per test question, empty string when unanswered."""
        return [
            {
                "questionId": question.id,
                "selectedAnswer": self.state.answers.get(question.id, ""),
                "timeSpentSeconds": self.state.time_spent.get(question.id, 0),
            }
            for question in self.test.all_questions()
        ]

    def elapsed_minutes(self) -> int:
        if self.state.session_start is None:
            return 0
        return max(int((self.wall_clock() - self.state.session_start) // 60), 0)

    def _finalize(self, forced: bool, reason: str = "") -> ActionResult:
        if self._submitting or self.state.phase in (Phase.SUBMITTED, Phase.EXITED):
            return self._result(ok=False, error="Submission already in progress")

        self._submitting = True
        pre_submit_phase = self.state.phase
        self.state.phase = Phase.SUBMITTING

        try:
            if self.display.is_fullscreen():
                self.display.exit_fullscreen()
        except Exception as e:
            self._log("FULLSCREEN_ERROR", f"Could not exit fullscreen: {e}")

        answers = self.build_answer_payload()
        minutes = self.elapsed_minutes()
        coding_submissions = self.coding.submissions_for_payload()
        answered = sum(1 for a in answers if a["selectedAnswer"])

        self._log(
            "SUBMISSION_STARTED",
            f"{'Auto' if forced else 'Manual'}, Answered: {answered}/{len(answers)}, "
            f"Coding submissions: {len(coding_submissions)}" + (f", Reason: {reason}" if reason else "")
        )
        try:
            self.submit_fn(answers, minutes, coding_submissions)
        except Exception as e:
            self._submitting = False
            self.state.phase = pre_submit_phase
            self._log("SUBMISSION_FAILED", f"{'Auto' if forced else 'Manual'} submission failed: {e}")
            self._notify("Failed to submit test. Please try again.")
            return self._result(ok=False, error=str(e))

        try:
            self.store.clear(self.session_id)
        except Exception as e:
            self._log("CHECKPOINT_ERROR", f"Clear failed: {e}")

        self.clock.stop()
        self.monitor.disarm()
        if self.watcher:
            self.watcher.stop_monitoring()

        self.state.phase = Phase.SUBMITTED
        self._submitting = False
        self._log(
            "AUTO_SUBMISSION" if forced else "SUBMISSION",
            f"Answered: {answered}/{len(answers)}, Coding submissions: {len(coding_submissions)}, "
            f"Time spent: {minutes} min" + (f", Reason: {reason}" if reason else "")
        )
        self._notify("Test submitted successfully.")
        if self.on_exit:
            self.on_exit()
        return self._result()

    # ===== FORCED TRANSITIONS =====

    def _forced_transition(self, reason: str):
        """Shared decision for clock expiry and the violation limit."""
        if self._submitting or self.state.phase not in ACTIVE_PHASES:
            self._log("FORCED_TRANSITION_IGNORED", f"Reason: {reason}, Phase: {self.state.phase.value}")
            return

        if (not self.state.mcq_completed and self.test.has_coding()
                and not self.state.forced_coding_done):
            self.state.forced_coding_done = True
            self.state.mcq_completed = True
            self._return_phase = None
            self._enter_coding()
            self._log("FORCED_TRANSITION", f"Reason: {reason}, moved to coding section")
            if reason == REASON_TIME:
                self._notify("Time is up for the MCQ section. Moving to the coding section.")
                self.state.coding_clock_start = self.wall_clock()
                self.state.remaining_seconds = self.config.coding_grace_seconds
                if self.config.coding_grace_seconds > 0:
                    self.clock.start(self.config.coding_grace_seconds)
            else:
                self._notify("Violation limit reached. Moving to the coding section.")
            self._autosave()
            return

        self._log("FORCED_TRANSITION", f"Reason: {reason}, auto-submitting")
        if reason == REASON_TIME:
            self._notify("Time is up. Your test is being submitted.")
        else:
            self._notify("You have exceeded the violation limit! Your test will be auto-submitted.")
        self._finalize(forced=True, reason=reason)

    def _on_tick(self, remaining: int):
        with self._lock:
            self.state.remaining_seconds = remaining
            if self.state.phase == Phase.MCQ_ACTIVE and not self._submitting:
                self.ledger.record_time(self.config.tick_seconds)

    def _on_clock_expire(self):
        with self._lock:
            self.state.remaining_seconds = 0
            self._log("EXAM_TIMEOUT", "Session time finished")
            self._forced_transition(REASON_TIME)

    def _on_violation(self, count: int):
        with self._lock:
            self.state.violation_count = count
            limit = self.config.violation_limit
            self._log("VIOLATION", f"Count: {count}/{limit}, Phase: {self.state.phase.value}")

            if count >= limit and not self.state.threshold_handled:
                self.state.threshold_handled = True
                self._forced_transition(REASON_VIOLATIONS)
            elif count < limit:
                self._notify(f"Warning: Tab switching detected! Violation {count}/{limit} recorded.")
            self._autosave()

    def report_visibility(self, hidden: bool) -> ActionResult:
        """Feed a visibility change from the host environment."""
        with self._lock:
            if self.state.phase in ACTIVE_PHASES or self.state.phase == Phase.SUBMITTING:
                self.monitor.on_visibility_change(hidden)
            return self._result()

    # ===== PERSISTENCE HOOKS =====

    def on_unload(self) -> bool:
        """Page-unload signal: checkpoint an active, non-submitting session."""
        with self._lock:
            if self.state.phase not in ACTIVE_PHASES or self._submitting:
                return False
            return self._save()

    def checkpoint(self) -> bool:
        with self._lock:
            if self.state.phase not in ACTIVE_PHASES or self._submitting:
                return False
            return self._save()

    # ===== READ MODELS =====

    def snapshot(self) -> dict:
        """The checkpoint record for the current state, without saving it."""
        with self._lock:
            return self.state.to_checkpoint()

    def status(self) -> dict:
        with self._lock:
            section = self.ledger.current_section()
            question = self.ledger.current_question()
            counts = self.ledger.compute_section_counts()
            return {
                "phase": self.state.phase.value,
                "remainingSeconds": self.state.remaining_seconds,
                "remaining": format_time(self.state.remaining_seconds),
                "sectionIndex": self.state.current_section_index,
                "sectionCount": len(self.ledger.sections),
                "sectionName": section.name if section else None,
                "questionIndex": self.state.current_question_index,
                "questionCount": len(self.ledger.current_section_questions()),
                "questionId": question.id if question else None,
                "selectedAnswer": self.state.answers.get(question.id) if question else None,
                "counts": counts.to_dict(),
                "violations": self.state.violation_count,
                "violationLimit": self.config.violation_limit,
                "mcqCompleted": self.state.mcq_completed,
                "selectedCodingQuestionId": self.state.selected_coding_question_id,
                "codingSubmissions": len(self.state.coding_submissions),
                "submitting": self._submitting,
            }

    def submit_summary(self) -> dict:
        """Inputs for the submit confirmation screen."""
        with self._lock:
            questions = self.test.all_questions()
            answered = sum(1 for q in questions if q.id in self.state.answers)
            return {
                "testType": self.test.test_type,
                "totalQuestions": len(questions),
                "answered": answered,
                "notAnswered": len(questions) - answered,
                "markedForReview": len(self.state.marked_for_review),
                "hasCoding": self.test.has_coding(),
                "codingAttempts": self.coding.attempt_summary(),
                "codingSubmissions": len(self.state.coding_submissions),
            }
