"""
Local submission collaborator.

SubmissionPackager implements the submit handoff for offline use: instead
of posting to a server it writes the payload, a human-readable summary and
the session log into a ZIP next to the working directory. Grading happens
later, wherever the package is collected.
"""

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from zipfile import ZipFile, ZIP_DEFLATED

from .errors import SubmissionError
from .models import Test


def safe_filename(value: str) -> str:
    return "".join(c if c.isalnum() else '_' for c in value.upper())


class SubmissionPackager:
    """Callable submit collaborator producing a submission ZIP."""

    def __init__(self, test: Test, candidate: str, work_dir: Path, session_log=None):
        self.test = test
        self.candidate = candidate
        self.work_dir = Path(work_dir)
        self.session_log = session_log
        self.last_package: Optional[Path] = None

    def __call__(self, answers: List[dict], time_spent_minutes: int, coding_submissions: List[dict]):
        self.submit(answers, time_spent_minutes, coding_submissions)

    def submit(self, answers: List[dict], time_spent_minutes: int, coding_submissions: List[dict]) -> Path:
        """Write the submission package; raises SubmissionError on I/O failure."""
        payload = {
            "testId": self.test.id,
            "candidate": self.candidate,
            "submittedAt": datetime.now().isoformat(timespec="seconds"),
            "timeSpent": time_spent_minutes,
            "answers": answers,
            "codingSubmissions": coding_submissions,
        }
        payload_bytes = json.dumps(payload, indent=2).encode('utf-8')

        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
            answers_path = self.work_dir / "answers.json"
            with open(answers_path, 'wb') as f:
                f.write(payload_bytes)

            results_path = self.work_dir / "results.txt"
            with open(results_path, 'w', encoding='utf-8') as f:
                f.write(self.render_results(answers, time_spent_minutes, coding_submissions, payload_bytes))

            zip_path = self.create_submission_zip()
        except OSError as e:
            raise SubmissionError(f"Could not write submission package: {e}") from e

        self.last_package = zip_path
        return zip_path

    def render_results(self, answers: List[dict], time_spent_minutes: int,
                       coding_submissions: List[dict], payload_bytes: bytes) -> str:
        """Generate the human-readable results.txt content."""
        lines = []
        lines.append(f"Candidate: {self.candidate} | Test: {self.test.name} ({self.test.id}) | "
                     f"Date: {datetime.now().strftime('%Y-%m-%d')}")
        lines.append(f"Time spent: {time_spent_minutes} min\n")

        answered = 0
        for number, answer in enumerate(answers, start=1):
            selected = answer["selectedAnswer"]
            if selected:
                answered += 1
            shown = selected if selected else "-"
            lines.append(f"  Q{number:<3} [{answer['questionId']}]: {shown}  ({answer.get('timeSpentSeconds', 0)}s)")

        lines.append("")
        lines.append(f"ANSWERED: {answered} / {len(answers)}")

        if self.test.has_coding():
            lines.append("")
            lines.append("[Coding]")
            if coding_submissions:
                for sub in coding_submissions:
                    lines.append(f"  SUBMISSION {sub['submissionId']}: score {sub['score']}")
            else:
                lines.append("  NO SUBMISSIONS")

        sha256 = hashlib.sha256(payload_bytes).hexdigest()
        lines.append("")
        lines.append(f"SHA256(answers.json): {sha256[:8]}...{sha256[-4:]}")
        return "\n".join(lines) + "\n"

    def create_submission_zip(self) -> Path:
        """Create the final submission ZIP file beside the working directory."""
        zip_filename = f"{safe_filename(self.candidate)}_{safe_filename(self.test.id)}.zip"
        zip_path = self.work_dir.parent / zip_filename

        log_path = getattr(self.session_log, "log_path", None)
        files_to_zip = [self.work_dir / "answers.json", self.work_dir / "results.txt"]
        if log_path is not None:
            files_to_zip.append(Path(log_path))

        with ZipFile(zip_path, 'w', ZIP_DEFLATED) as zipf:
            for file_path in files_to_zip:
                if file_path.exists():
                    zipf.write(file_path, arcname=file_path.name)
            if log_path is None and self.session_log is not None:
                zipf.writestr("session.log", self.session_log.render())

        return zip_path
