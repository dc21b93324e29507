"""Custom exceptions for issue trend synthesis."""

from __future__ import annotations


class IssueTrendsError(Exception):
    """Base exception for the project."""


class ConfigError(IssueTrendsError):
    """Raised when required configuration is missing or invalid."""


class ProviderUnavailable(IssueTrendsError):
    """Raised when no generative backend is configured."""


class BackendError(IssueTrendsError):
    """Raised when a single call to one backend fails."""

    def __init__(self, message: str, backend: str = "") -> None:
        super().__init__(message)
        self.backend = backend


class TransientBackendError(BackendError):
    """Recoverable backend failure (network, timeout, 5xx, empty output)."""


class QuotaExceeded(BackendError):
    """Backend reported quota or rate-limit exhaustion."""


class GenerationExhausted(IssueTrendsError):
    """Raised when every attempt on every usable backend has failed."""


class ExtractionParseError(IssueTrendsError):
    """Raised when model output does not match the extraction schema."""


class AllExtractionsFailed(IssueTrendsError):
    """Raised when no paper in the issue could be extracted."""

    def __init__(self, failed_papers: list[str]) -> None:
        super().__init__(
            f"All paper extractions failed ({len(failed_papers)} papers)"
        )
        self.failed_papers = failed_papers
