#!/usr/bin/env python3
"""
Proctored Assessment Runner CLI

Candidate-facing terminal front end for a SessionOrchestrator. Handles test
loading, checkpoint resume, the instructions screen and a phase-aware
command loop; the orchestrator owns every state decision.
"""

import os
import sys
import argparse
import getpass
from pathlib import Path
from typing import Optional

from .config_loader import load_config
from .connectivity import network_away_check
from .errors import CheckpointError, ConfigError, InvalidTransitionError, LedgerError, TestDefinitionError
from .messages import message
from .models import OPTION_LABELS
from .orchestrator import ActionResult, SessionOrchestrator
from .packaging import SubmissionPackager, safe_filename
from .persistence import open_store
from .session_log import SessionLog
from .state import Phase
from .test_loader import load_test

CHECKPOINT_KEY_ENV = "PROCTOR_CHECKPOINT_KEY"


class ExamRunner:
    """Main CLI application controller."""

    def __init__(self, input_fn=input, output=print):
        self.input = input_fn
        self.print = output
        self.language = "en"
        self.test = None
        self.config = None
        self.session_log: Optional[SessionLog] = None
        self.packager: Optional[SubmissionPackager] = None
        self.orchestrator: Optional[SessionOrchestrator] = None
        self.finished = False

        self.commands = {
            Phase.MCQ_ACTIVE: {
                "show": self.cmd_show_question,
                "answer": self.cmd_answer,
                "clear": self.cmd_clear,
                "review": self.cmd_review,
                "next": self.cmd_next,
                "mark-next": self.cmd_mark_next,
                "goto": self.cmd_goto,
                "palette": self.cmd_palette,
                "finish": self.cmd_finish,
            },
            Phase.SECTION_COMPLETE_CONFIRM: {
                "back": self.cmd_back,
                "proceed": self.cmd_proceed,
            },
            Phase.CODING_TRANSITION: {
                "begin": self.cmd_begin,
            },
            Phase.CODING_ACTIVE: {
                "coding": self.cmd_coding_list,
                "select": self.cmd_select,
                "score": self.cmd_score,
                "submit": self.cmd_submit,
            },
            Phase.SUBMIT_CONFIRM: {
                "confirm": self.cmd_confirm,
                "cancel": self.cmd_cancel,
                "score": self.cmd_score,
            },
        }
        self.help_keys = {
            Phase.MCQ_ACTIVE: "help_mcq",
            Phase.SECTION_COMPLETE_CONFIRM: "help_section_complete",
            Phase.CODING_TRANSITION: "help_coding_transition",
            Phase.CODING_ACTIVE: "help_coding",
            Phase.SUBMIT_CONFIRM: "help_submit_confirm",
        }

    def _msg(self, key: str, **kwargs) -> str:
        return message(key, self.language, **kwargs)

    def parse_args(self, argv=None):
        parser = argparse.ArgumentParser(
            description="Proctored Assessment Runner",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        parser.add_argument(
            "--test",
            required=True,
            help="Test definition file (.json, or an encrypted file such as test.enc)"
        )
        parser.add_argument(
            "--config",
            help="Path to session configuration file (default: config.json in executable directory)"
        )
        parser.add_argument(
            "--candidate",
            help="Candidate name (prompted when omitted)"
        )
        parser.add_argument(
            "--checkpoint-key",
            help=f"Fernet key for encrypted checkpoints (default: ${CHECKPOINT_KEY_ENV})"
        )
        parser.add_argument(
            "--work-dir",
            help="Directory for session files and the submission package (default: current directory)"
        )
        return parser.parse_args(argv)

    # ===== SETUP =====

    def load(self, test_path: Path, config_path: Optional[str]) -> bool:
        """Load the test and its configuration; bundled config wins."""
        key_input = None
        if test_path.suffix.lower() != '.json':
            try:
                key_input = getpass.getpass(self._msg("ask_key", test=test_path.name))
            except (KeyboardInterrupt, EOFError):
                self.print()
                return False
            key_input = key_input.strip()
            if not key_input:
                self.print(self._msg("key_error"))
                return False

        try:
            self.test, bundled_config = load_test(test_path, key_input)
        except (TestDefinitionError, ConfigError) as e:
            self.print(self._msg("load_error", error=e))
            return False

        try:
            self.config = bundled_config or load_config(Path(config_path) if config_path else None)
        except ConfigError as e:
            self.print(self._msg("config_error", error=e))
            return False
        return True

    def ask_candidate(self, candidate: Optional[str]) -> Optional[str]:
        if candidate and candidate.strip():
            return candidate.strip()
        try:
            name = self.input(self._msg("ask_name")).strip()
        except (KeyboardInterrupt, EOFError):
            self.print()
            return None
        if not name:
            self.print(self._msg("name_error"))
            return None
        return name

    def prepare_session(self, candidate: str, work_root: Path, checkpoint_key: Optional[str]) -> bool:
        """Create the work directory, log, store, packager and orchestrator."""
        work_dir = work_root / f"{safe_filename(candidate)}_{safe_filename(self.test.id)}"
        work_dir.mkdir(parents=True, exist_ok=True)

        self.session_log = SessionLog(work_dir / "session.log")
        try:
            store = open_store(self.config, key=checkpoint_key, base_dir=work_root)
        except CheckpointError as e:
            if checkpoint_key is None:
                self.print(self._msg("checkpoint_key_missing"))
            else:
                self.print(self._msg("config_error", error=e))
            return False

        self.packager = SubmissionPackager(self.test, candidate, work_dir, session_log=self.session_log)
        try:
            self.orchestrator = SessionOrchestrator(
                self.test,
                self.packager,
                session_id=f"{self.test.id}_{candidate}",
                store=store,
                config=self.config,
                session_logger=self.session_log,
            )
        except TestDefinitionError as e:
            self.print(self._msg("load_error", error=e))
            return False
        if self.config.network_monitoring.enabled:
            self.orchestrator.attach_watcher(
                network_away_check(),
                self.config.network_monitoring.check_interval_seconds,
            )
        return True

    def show_instructions(self) -> bool:
        """Instructions screen; True once the session has started."""
        test = self.test
        self.print("\n" + self._msg("header"))
        self.print(self._msg(
            "instructions_heading",
            name=test.name,
            questions=len(test.all_questions()),
            minutes=test.duration_seconds // 60,
            marks=test.total_marks,
        ))
        self.print(self._msg("header"))
        self.print(self._msg("instructions", limit=self.config.violation_limit), end="")
        if test.has_coding():
            self.print(self._msg("instructions_coding"), end="")

        while True:
            try:
                answer = self.input(self._msg("accept_prompt")).strip().lower()
            except (KeyboardInterrupt, EOFError):
                answer = "exit"
            if answer in ("exit", "quit"):
                self.orchestrator.exit()
                self.print(self._msg("exit_before_start"))
                return False
            try:
                result = self.orchestrator.start(accepted_terms=answer in ("y", "yes"))
            except InvalidTransitionError as e:
                self.print(e)
                continue
            self.show_result(result)
            return True

    # ===== MAIN FLOW =====

    def run(self, argv=None) -> int:
        """Main application entry point."""
        args = self.parse_args(argv)

        self.print(self._msg("header"))
        self.print(self._msg("title"))
        self.print(self._msg("header"))

        if not self.load(Path(args.test), args.config):
            return 1

        candidate = self.ask_candidate(args.candidate)
        if candidate is None:
            return 1

        work_root = Path(args.work_dir) if args.work_dir else Path.cwd()
        checkpoint_key = args.checkpoint_key or os.environ.get(CHECKPOINT_KEY_ENV)
        if not self.prepare_session(candidate, work_root, checkpoint_key):
            return 1

        restored = self.orchestrator.restore()
        if restored.ok:
            self.print(self._msg("resume_found"))
        self.show_notices(restored.notices)

        if not self.show_instructions():
            return 0

        self.orchestrator.run_clock_in_background()
        try:
            self.command_loop()
        finally:
            self.orchestrator.clock.stop()
            if self.orchestrator.watcher:
                self.orchestrator.watcher.stop_monitoring()

        if self.orchestrator.phase == Phase.SUBMITTED and self.packager.last_package:
            self.print(self._msg("submitted", zip_name=self.packager.last_package.name))
        return 0

    def command_loop(self):
        """Main interactive command loop."""
        self.print("\n" + self._msg("header"))
        self.cmd_help()
        self.print(self._msg("header") + "\n")
        self.render_phase()

        while not self.finished and self.orchestrator.phase not in (Phase.SUBMITTED, Phase.EXITED):
            self.show_notices(self.orchestrator.drain_notices())
            try:
                cmd_line = self.input("exam> ").strip()
            except (KeyboardInterrupt, EOFError):
                self.print("\n" + self._msg("interrupt"))
                continue
            if not cmd_line:
                continue
            self.handle_command(cmd_line)

        self.show_notices(self.orchestrator.drain_notices())

    def handle_command(self, cmd_line: str):
        """Route one command line to the handler for the current phase."""
        parts = cmd_line.split()
        command = parts[0].lower()
        args = parts[1:]

        if command == "help":
            self.cmd_help()
            return
        if command == "status":
            self.cmd_status()
            return
        if command == "time":
            self.cmd_time()
            return
        if command in ("exit", "quit"):
            self.cmd_exit()
            return

        phase = self.orchestrator.phase
        handler = self.commands.get(phase, {}).get(command)
        if handler is None:
            if any(command in table for table in self.commands.values()):
                self.print(self._msg("not_now", error=f"'{command}' in phase '{phase.value}'"))
            else:
                self.print(self._msg("unknown_command", command=command))
            return

        try:
            result = handler(args)
        except InvalidTransitionError as e:
            self.print(self._msg("not_now", error=e))
            return
        except (LedgerError, ValueError, IndexError) as e:
            self.print(self._msg("invalid_input", error=e))
            return

        if result is not None:
            self.show_result(result)
            if result.phase != phase or command in ("goto", "next", "mark-next"):
                self.render_phase()

    # ===== RENDERING =====

    def show_notices(self, notices):
        for notice in notices:
            self.print(f"\n! {notice}")

    def show_result(self, result: ActionResult):
        self.show_notices(result.notices)
        if result.error and not result.notices:
            self.print(result.error)

    def render_phase(self):
        phase = self.orchestrator.phase
        if phase == Phase.MCQ_ACTIVE:
            self.cmd_show_question([])
        elif phase == Phase.SECTION_COMPLETE_CONFIRM:
            self.render_section_complete()
        elif phase == Phase.CODING_TRANSITION:
            self.print(self._msg("coding_transition"))
        elif phase == Phase.CODING_ACTIVE:
            self.cmd_coding_list([])
        elif phase == Phase.SUBMIT_CONFIRM:
            self.render_submit_confirm()

    def render_section_complete(self):
        ledger = self.orchestrator.ledger
        counts = ledger.compute_section_counts()
        self.print(self._msg(
            "section_complete",
            name=ledger.current_section().name,
            answered=counts.answered,
            total=counts.total,
            marked=counts.marked,
            not_answered=counts.not_answered,
        ))
        self.print(self._msg("help_section_complete"))

    def render_submit_confirm(self):
        summary = self.orchestrator.submit_summary()
        if summary["totalQuestions"]:
            self.print(self._msg(
                "submit_confirm_mcq",
                answered=summary["answered"],
                total=summary["totalQuestions"],
                marked=summary["markedForReview"],
            ))
        if summary["hasCoding"]:
            self.print(self._msg("submit_confirm_coding", count=summary["codingSubmissions"]))
        self.print(self._msg("submit_confirm_prompt"))

    # ===== COMMANDS =====

    def cmd_help(self, args=None):
        key = self.help_keys.get(self.orchestrator.phase)
        if key:
            self.print(self._msg(key))

    def cmd_status(self, args=None):
        status = self.orchestrator.status()
        self.print(self._msg(
            "status_line",
            remaining=status["remaining"],
            violations=status["violations"],
            limit=status["violationLimit"],
            phase=status["phase"],
        ))
        if self.orchestrator.phase in (Phase.MCQ_ACTIVE, Phase.SECTION_COMPLETE_CONFIRM):
            self.print(self._msg("counts_line", **status["counts"]))

    def cmd_time(self, args=None):
        self.print(self.orchestrator.status()["remaining"])

    def cmd_exit(self, args=None):
        """Save progress and leave; the next run resumes."""
        self.orchestrator.on_unload()
        self.session_log("SESSION_EXIT", "Candidate exited session - progress saved")
        self.print(self._msg("saved_exit"))
        self.finished = True

    def cmd_show_question(self, args):
        ledger = self.orchestrator.ledger
        section = ledger.current_section()
        question = ledger.current_question()
        if section is None or question is None:
            return
        self.print(self._msg(
            "section_heading",
            index=self.orchestrator.state.current_section_index + 1,
            count=len(ledger.sections),
            name=section.name,
        ))
        self.print(self._msg(
            "question_heading",
            number=self.orchestrator.state.current_question_index + 1,
            count=len(ledger.current_section_questions()),
            status=ledger.question_status(question),
        ))
        self.print(f"\n{question.text}\n")
        selected = self.orchestrator.state.answers.get(question.id)
        for label in OPTION_LABELS:
            marker = "*" if label == selected else " "
            self.print(f" {marker} {label}) {question.options[label]}")
        self.print()

    def cmd_answer(self, args):
        if len(args) != 1:
            raise ValueError(f"answer takes one of {', '.join(OPTION_LABELS)}")
        return self.orchestrator.select_answer(args[0])

    def cmd_clear(self, args):
        return self.orchestrator.clear_response()

    def cmd_review(self, args):
        return self.orchestrator.toggle_review()

    def cmd_next(self, args):
        return self.orchestrator.save_and_next()

    def cmd_mark_next(self, args):
        return self.orchestrator.mark_for_review_and_next()

    def cmd_goto(self, args):
        if len(args) != 1:
            raise ValueError("goto takes a question number")
        return self.orchestrator.go_to(int(args[0]) - 1)

    def cmd_palette(self, args):
        for entry in self.orchestrator.ledger.palette():
            self.print(f"  {entry['index'] + 1:>3}. {entry['status']}")

    def cmd_finish(self, args):
        return self.orchestrator.finish_mcq()

    def cmd_back(self, args):
        return self.orchestrator.review_section()

    def cmd_proceed(self, args):
        return self.orchestrator.proceed_section()

    def cmd_begin(self, args):
        return self.orchestrator.begin_coding()

    def cmd_coding_list(self, args):
        attempts = self.orchestrator.coding.attempt_summary()
        selected = self.orchestrator.state.selected_coding_question_id
        for number, question in enumerate(self.test.coding_questions, start=1):
            self.print(self._msg(
                "coding_list_item",
                marker=">" if question.id == selected else " ",
                number=number,
                title=question.title,
                points=question.points,
                count=attempts.get(question.id, 0),
            ))

    def cmd_select(self, args):
        if len(args) != 1:
            raise ValueError("select takes a coding question number")
        index = int(args[0]) - 1
        if index < 0:
            raise IndexError("coding question numbers start at 1")
        return self.orchestrator.select_coding_question(self.test.coding_questions[index].id)

    def cmd_score(self, args):
        """Record a result reported by the external code runner."""
        if len(args) != 2:
            raise ValueError("score takes a submission id and a score")
        return self.orchestrator.record_coding_submission(args[0], float(args[1]))

    def cmd_submit(self, args):
        return self.orchestrator.request_submit()

    def cmd_confirm(self, args):
        return self.orchestrator.confirm_submit()

    def cmd_cancel(self, args):
        return self.orchestrator.cancel_submit()


def main():
    """Entry point for the exam runner."""
    runner = ExamRunner()
    sys.exit(runner.run())


if __name__ == "__main__":
    main()
