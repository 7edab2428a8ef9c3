"""Custom exceptions for the proctored session engine."""


class ProctorError(Exception):
    """Base exception for session engine errors."""

    pass


class TestDefinitionError(ProctorError):
    """Malformed or inconsistent test definition."""

    __test__ = False


class ConfigError(ProctorError):
    """Invalid session configuration."""

    pass


class InvalidTransitionError(ProctorError):
    """Operation not allowed in the current phase."""

    pass


class TermsNotAcceptedError(InvalidTransitionError):
    """Session start requested without accepting the instructions."""

    pass


class LedgerError(ProctorError):
    """Unknown question, option label or position."""

    pass


class SectionRegressionError(LedgerError):
    """Attempt to re-enter or skip over a section."""

    pass


class CheckpointError(ProctorError):
    """Checkpoint record could not be read or written."""

    pass


class SubmissionError(ProctorError):
    """Final submission handoff failed."""

    pass
