"""Error types raised while binding request headers.

Every runtime failure is a ``HeaderError`` carrying a stable ``kind`` string and
an HTTP status the service layer can hand back to the client. Underlying cast
or conversion errors are chained with ``raise ... from`` so ``__cause__`` keeps
the original diagnostic.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

HEADER_BINDING_ERROR = "HEADER_BINDING_ERROR"
HEADER_VALIDATION_ERROR = "HEADER_VALIDATION_ERROR"


def describe_cause(exc: Optional[BaseException]) -> Optional[str]:
    """One-line summary of an underlying error for response bodies."""
    if exc is None:
        return None
    if isinstance(exc, ValidationError):
        errs = exc.errors()
        if errs:
            first = errs[0]
            loc = ".".join(str(p) for p in first.get("loc", ()) if p != "")
            return f"{loc}: {first['msg']}" if loc else first["msg"]
    msg = str(exc)
    return msg or exc.__class__.__name__


class HeaderError(Exception):
    kind = "HEADER_ERROR"
    status_code = 400

    def __init__(self, message: str, *, header: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.header = header

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.header is not None:
            body["header"] = self.header
        cause = describe_cause(self.__cause__)
        if cause:
            body["cause"] = cause
        return body


class HeaderBindingError(HeaderError):
    kind = HEADER_BINDING_ERROR


class MissingHeaderError(HeaderBindingError):
    """Header absent, or present but empty, where that is not permitted."""

    reason = "missing"

    def __init__(self, header: str):
        super().__init__(f"no header value found for '{header}'", header=header)


class HeaderCastError(HeaderBindingError):
    """Header present but not convertible to the declared type."""

    reason = "cast"

    def __init__(self, header: str):
        super().__init__(f"header binding failed for parameter: '{header}'", header=header)


class HeaderValidationError(HeaderError):
    kind = HEADER_VALIDATION_ERROR
    reason = "validation"

    def __init__(self, header: str):
        super().__init__(f"header validation failed for parameter: '{header}'", header=header)


class HeaderDescriptorError(TypeError):
    """Raised at build time when a handler declares an unsupported header type."""


__all__ = [
    "HEADER_BINDING_ERROR",
    "HEADER_VALIDATION_ERROR",
    "HeaderError",
    "HeaderBindingError",
    "MissingHeaderError",
    "HeaderCastError",
    "HeaderValidationError",
    "HeaderDescriptorError",
    "describe_cause",
]
