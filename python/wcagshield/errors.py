from __future__ import annotations

import socket
import ssl
import urllib.error
from enum import Enum
from typing import Any


class ScanErrorKind(Enum):
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    INVALID_INPUT = "invalid_input"
    TRANSPORT_SECURITY = "transport_security"
    UNKNOWN = "unknown"


_DEFAULT_STATUS = {
    ScanErrorKind.UNREACHABLE: 400,
    ScanErrorKind.TIMEOUT: 408,
    ScanErrorKind.INVALID_INPUT: 400,
    ScanErrorKind.TRANSPORT_SECURITY: 400,
    ScanErrorKind.UNKNOWN: 500,
}

_USER_MESSAGES = {
    ScanErrorKind.UNREACHABLE: "Unable to reach the website. Please check the URL and try again.",
    ScanErrorKind.TIMEOUT: "The website took too long to respond. Please try again.",
    ScanErrorKind.INVALID_INPUT: "Invalid URL format. Please enter a valid website address.",
    ScanErrorKind.TRANSPORT_SECURITY: "SSL certificate error. The website may have security issues.",
}

# Checked in order; the first matching needle wins.
_MESSAGE_NEEDLES: tuple[tuple[ScanErrorKind, tuple[str, ...]], ...] = (
    (ScanErrorKind.UNREACHABLE, ("fetch failed", "enotfound", "getaddrinfo", "name or service not known")),
    (ScanErrorKind.TIMEOUT, ("timeout", "timed out", "etimedout")),
    (ScanErrorKind.TRANSPORT_SECURITY, ("certificate", "ssl")),
    (ScanErrorKind.INVALID_INPUT, ("invalid url", "invalid protocol", "unknown url type")),
)


class WcagShieldError(Exception):
    """Base class for errors raised by the scanner core."""


class ScanError(WcagShieldError):
    def __init__(self, kind: ScanErrorKind, message: str | None = None, status: int | None = None) -> None:
        self.kind = kind
        self.status = _DEFAULT_STATUS[kind] if status is None else int(status)
        super().__init__(message or _USER_MESSAGES.get(kind, "Scan failed"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": "wcagshield.error.v1",
            "ok": False,
            "code": self.kind.value.upper(),
            "status": self.status,
            "message": str(self),
        }


class InvalidInputError(ScanError, ValueError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(ScanErrorKind.INVALID_INPUT, message)


class RegistryError(WcagShieldError, ValueError):
    pass


class SelectorError(WcagShieldError, ValueError):
    pass


class CheckExecutionError(WcagShieldError):
    def __init__(self, rule_id: str, cause: BaseException) -> None:
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"check {rule_id!r} failed: {type(cause).__name__}: {cause}")


class CheckWarning(UserWarning):
    pass


def _kind_from_type(exc: BaseException) -> ScanErrorKind | None:
    # SSLError and socket.timeout both subclass OSError, so order matters.
    if isinstance(exc, ssl.SSLError):
        return ScanErrorKind.TRANSPORT_SECURITY
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return ScanErrorKind.TIMEOUT
    if isinstance(exc, (socket.gaierror, ConnectionError)):
        return ScanErrorKind.UNREACHABLE
    if isinstance(exc, urllib.error.HTTPError):
        return None
    if isinstance(exc, urllib.error.URLError):
        reason = exc.reason
        if isinstance(reason, BaseException):
            return _kind_from_type(reason)
        return None
    if isinstance(exc, ValueError):
        return ScanErrorKind.INVALID_INPUT
    return None


def _kind_from_message(message: str) -> ScanErrorKind | None:
    text = message.lower()
    for kind, needles in _MESSAGE_NEEDLES:
        if any(n in text for n in needles):
            return kind
    return None


def classify_fetch_error(exc: BaseException) -> ScanError:
    """Map a document acquisition failure onto a user-facing ScanError."""
    if isinstance(exc, ScanError):
        return exc
    kind = _kind_from_type(exc) or _kind_from_message(str(exc))
    if kind is None:
        return ScanError(ScanErrorKind.UNKNOWN, str(exc) or "Scan failed")
    return ScanError(kind)
