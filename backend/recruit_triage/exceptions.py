"""Exceptions raised across the triage pipeline."""


class RecruitTriageError(Exception):
    """Base exception for the recruitment triage service."""


class ConfigurationError(RecruitTriageError):
    """Raised at startup when required configuration is missing or invalid."""


class GmailAuthRequiredError(RecruitTriageError):
    """Raised when Gmail needs interactive OAuth (browser). Do not run in background task."""


class TemplateNotFoundError(RecruitTriageError):
    """Raised when no reply template exists for a template id."""


class LLMError(RecruitTriageError):
    """Raised when the LLM completion call fails for a non-transient reason."""
