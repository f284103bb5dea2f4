"""
Error taxonomy for bundle parsing, index staging and engine access.

Every error names the step it came from so a surfaced message tells a human
whether the problem is a bad path, a corrupt bundle or an incompatible index.
"""

from typing import Optional


class ViewerError(Exception):
    """Base class for all viewer errors."""

    step = "viewer"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.step}: {self.message} ({self.cause})"
        return f"{self.step}: {self.message}"

    def to_dict(self):
        return {
            "error": type(self).__name__,
            "step": self.step,
            "message": str(self),
        }


class ParseError(ViewerError):
    step = "parse"


class NotFound(ParseError):
    """Bundle path does not exist."""


class Malformed(ParseError):
    """Bundle cannot be decoded as the expected structure."""


class MissingIndexPayload(ParseError):
    """Bundle has no (or an empty) binary index field."""


class StagingError(ViewerError):
    step = "staging"


class StagingWriteFailed(StagingError):
    pass


class StagingVerificationFailed(StagingError):
    pass


class EngineError(ViewerError):
    step = "engine"


class EngineOpenFailed(EngineError):
    step = "engine.open"


class EngineSearchFailed(EngineError):
    step = "engine.search"


class RecordVectorMismatch(ViewerError):
    """Records and index rows disagree; the bundle was built inconsistently."""

    step = "compose"
