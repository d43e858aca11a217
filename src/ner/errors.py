"""Error taxonomy for the character NER pipeline."""
from __future__ import annotations


class NERError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(NERError):
    """The pipeline is misconfigured (paths, languages, model settings)."""


class ModelUnavailable(ConfigurationError):
    """A requested language has no installed or loadable model."""

    def __init__(self, language: str, reason: str = ""):
        self.language = language
        self.reason = reason
        msg = f"No model available for language '{language}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DataError(NERError):
    """Input data is empty or malformed."""


class EmptyGroundTruthError(DataError, ZeroDivisionError):
    """Accuracy is undefined for an empty ground-truth character set."""


class ProcessingError(NERError):
    """Annotating or reloading a single play failed."""
