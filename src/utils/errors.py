"""
Exception hierarchy for the harness.

Cycle-level failures (SubmissionError) are caught per submission.
Everything else is fatal for the enclosing company/step.
"""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigError(HarnessError):
    """Configuration file is missing, malformed or incomplete."""


class TemplateNotFoundError(HarnessError):
    """No JSON template exists for the requested company code."""

    def __init__(self, company_code: str, path=None):
        self.company_code = company_code
        self.path = path
        super().__init__(f"Template file not found for company code: {company_code}")


class SubmissionError(HarnessError):
    """An outbound submission failed (network, HTTP status, or unparseable body)."""

    def __init__(self, message: str, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class IdentifierPoolError(HarnessError):
    """The persisted identifier pool could not be read."""


class IdentifierSpaceExhaustedError(HarnessError):
    """No unused identifier was found within the configured number of draws."""
