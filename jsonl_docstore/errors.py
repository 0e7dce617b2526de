from __future__ import annotations

class DocStoreError(Exception):
    """Base class for all errors raised by jsonl_docstore."""

class MalformedLogError(DocStoreError):
    """
    A log line has no valid marker or its payload cannot be decoded.
    Loading aborts instead of skipping the line so corruption is never masked.
    """
    def __init__(self, path: str, lineno: int, reason: str) -> None:
        super().__init__(f"{path}:{lineno}: {reason}")
        self.path = path
        self.lineno = lineno
        self.reason = reason

class QueryShapeError(DocStoreError, ValueError):
    """Query (or find options) does not match any recognized shape."""

class ValidationError(DocStoreError, ValueError):
    """Record holds a value outside of str / number / list of either."""
