"""User-facing strings for the terminal runner."""

MESSAGES = {
    "en": {
        "header": "=" * 60,
        "title": "PROCTORED ASSESSMENT",
        "ask_name": "Enter your full name: ",
        "name_error": "Error: Name cannot be empty.",
        "ask_key": "Enter the password or key for '{test}': ",
        "key_error": "Error: A password or key is required for encrypted tests.",
        "load_error": "Error: Failed to load the test.\nDetails: {error}",
        "config_error": "Error: {error}",
        "checkpoint_key_missing": "Error: Encrypted checkpoints are enabled; pass --checkpoint-key "
                                  "or set PROCTOR_CHECKPOINT_KEY.",
        "instructions_heading": "{name}  |  {questions} questions  |  {minutes} minutes  |  {marks} marks",
        "instructions": (
            "Important Instructions\n"
            "  - The test is conducted in fullscreen mode where available.\n"
            "  - Sections are answered in order; you cannot return to a finished section.\n"
            "  - Leaving the exam environment counts as a violation ({limit} violations end the MCQ part).\n"
            "  - The test moves on automatically when time expires.\n"
        ),
        "instructions_coding": "  - A coding section follows the multiple-choice questions.\n",
        "resume_found": "Saved progress found for this test; it will be resumed.",
        "accept_prompt": "Type 'y' to accept the terms and start, or 'exit' to leave: ",
        "terms_required": "Please accept the terms and conditions to proceed.",
        "exit_before_start": "You left the test without starting it.",
        "help_mcq": (
            "Commands: show | answer <A-D> | clear | review | next | mark-next | goto <n> | "
            "palette | finish | status | time | exit"
        ),
        "help_section_complete": "Commands: back (review answers) | proceed (cannot return)",
        "help_coding_transition": "Commands: begin (start the coding section)",
        "help_coding": "Commands: coding | select <n> | score <submission-id> <score> | submit | status | time | exit",
        "help_submit_confirm": "Commands: confirm | cancel",
        "section_heading": "Section {index} of {count}: {name}",
        "question_heading": "Question {number} of {count}  [{status}]",
        "section_complete": (
            "Section Complete! You have completed {name}.\n"
            "  Questions Answered: {answered}/{total}\n"
            "  Marked for Review: {marked}\n"
            "  Not Answered: {not_answered}\n"
            "Note: You cannot return to this section after proceeding."
        ),
        "coding_transition": "MCQ section finished. Type 'begin' to start the coding section.",
        "coding_list_item": "{marker} {number}. {title} ({points} pts) - submissions: {count}",
        "submit_confirm_mcq": "You have answered {answered} of {total} questions ({marked} marked for review).",
        "submit_confirm_coding": "Coding submissions recorded: {count}.",
        "submit_confirm_prompt": "Type 'confirm' to submit or 'cancel' to keep working.",
        "status_line": "Time left: {remaining} | Violations: {violations}/{limit} | Phase: {phase}",
        "counts_line": "Answered: {answered} | Not Answered: {notAnswered} | Marked: {marked} | Not Visited: {notVisited}",
        "submitted": "Submission package: {zip_name}",
        "saved_exit": "Progress saved. Run the same command again to resume.",
        "interrupt": "Use 'exit' to save progress and leave.",
        "unknown_command": "Unknown command: '{command}'. Type 'help' for a list of commands.",
        "not_now": "Not available right now: {error}",
        "invalid_input": "Invalid input: {error}",
    }
}


def message(key: str, language: str = "en", **kwargs) -> str:
    template = MESSAGES.get(language, MESSAGES["en"]).get(key, key)
    return template.format(**kwargs)
