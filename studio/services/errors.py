"""
Error taxonomy for generative calls.

Every failure coming back from the backend is normalised into one
ErrorKind here, before retry or polling logic sees it.
"""

import logging
from enum import Enum
from typing import Optional

import httpx

logger = logging.getLogger("errors")


class ErrorKind(str, Enum):
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    CONTENT_POLICY_REJECTED = "CONTENT_POLICY_REJECTED"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    OPERATION_TIMED_OUT = "OPERATION_TIMED_OUT"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNKNOWN = "UNKNOWN"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.RATE_LIMITED


class StudioError(Exception):
    """A generative call failure with a classified kind."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(self.message)

    def __repr__(self):
        return f"StudioError({self.kind.value}, {self.message!r})"


_CODE_KINDS = {
    429: ErrorKind.RATE_LIMITED,
    401: ErrorKind.INVALID_CREDENTIAL,
    404: ErrorKind.ENTITY_NOT_FOUND,
    "RESOURCE_EXHAUSTED": ErrorKind.RATE_LIMITED,
    "UNAUTHENTICATED": ErrorKind.INVALID_CREDENTIAL,
    "NOT_FOUND": ErrorKind.ENTITY_NOT_FOUND,
}

USER_MESSAGES = {
    ErrorKind.RATE_LIMITED: "The service is busy right now. Please try again later.",
    ErrorKind.INVALID_CREDENTIAL: "Your API key is not valid. Check your configuration.",
    ErrorKind.CONTENT_POLICY_REJECTED: "The request was blocked by the content safety policy. Try rephrasing it.",
    ErrorKind.NETWORK_UNREACHABLE: "Network error. Check your connection and try again.",
}

GENERIC_MESSAGE = "Something went wrong. Please try again."


def _kind_for_code(code) -> Optional[ErrorKind]:
    if code is None:
        return None
    if isinstance(code, str):
        if code.isdigit():
            code = int(code)
        else:
            code = code.upper()
    return _CODE_KINDS.get(code)


def _field(obj, name):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _kind_for_message(message: str) -> Optional[ErrorKind]:
    lowered = message.lower()
    if ("429" in lowered or "quota" in lowered
            or "resource_exhausted" in lowered or "too many requests" in lowered):
        return ErrorKind.RATE_LIMITED
    if "requested entity was not found" in lowered:
        return ErrorKind.ENTITY_NOT_FOUND
    if "api key not valid" in lowered:
        return ErrorKind.INVALID_CREDENTIAL
    if "safety" in lowered:
        return ErrorKind.CONTENT_POLICY_REJECTED
    if "fetch" in lowered or "network" in lowered:
        return ErrorKind.NETWORK_UNREACHABLE
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map any exception raised by a remote call to an ErrorKind.

    Checked in order: the error's own code/status, the nested error
    object (``error``, ``details["error"]``, ``response``), then the
    lower-cased message text.
    """
    if isinstance(exc, StudioError):
        return exc.kind

    for attr in ("code", "status", "status_code"):
        kind = _kind_for_code(getattr(exc, attr, None))
        if kind:
            return kind

    nested = [getattr(exc, "error", None), getattr(exc, "response", None)]
    details = getattr(exc, "details", None)
    if isinstance(details, dict):
        nested.append(details.get("error", details))
    for obj in nested:
        if obj is None:
            continue
        for attr in ("code", "status", "status_code"):
            kind = _kind_for_code(_field(obj, attr))
            if kind:
                return kind

    message = getattr(exc, "message", None) or str(exc) or ""
    kind = _kind_for_message(str(message))
    if kind:
        return kind

    if isinstance(exc, (ConnectionError, httpx.TransportError)):
        return ErrorKind.NETWORK_UNREACHABLE
    return ErrorKind.UNKNOWN


def to_studio_error(exc: BaseException) -> StudioError:
    if isinstance(exc, StudioError):
        return exc
    kind = classify_error(exc)
    message = getattr(exc, "message", None) or str(exc) or kind.value
    return StudioError(kind, str(message))


def user_message(kind: ErrorKind) -> str:
    """User-facing text for an error kind."""
    return USER_MESSAGES.get(kind, GENERIC_MESSAGE)
