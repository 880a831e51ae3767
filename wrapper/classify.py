# wrapper/classify.py
"""Turn outbound transport failures into a (status, message) outcome.

Dispatch errors are first reduced to a ``TransportFailure`` (kind + detail)
by ``describe``; ``classify`` then maps the kind to the status code and
message reported to the caller. Rules are checked in a fixed order and the
first match wins.
"""
import errno
import socket
import ssl
from dataclasses import dataclass
from enum import Enum

import httpx

UNKNOWN_ERROR = "Unknown error"


class FailureKind(str, Enum):
    NAME_RESOLUTION = "name_resolution"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    TLS = "tls"
    REMOTE_STATUS = "remote_status"
    OTHER = "other"


@dataclass(frozen=True)
class TransportFailure:
    kind: FailureKind
    detail: str
    remote_status: int | None = None


# Lower-cased markers for errors whose cause chain carries only text.
_NAME_RESOLUTION_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)
_REFUSED_MARKERS = ("connection refused", "actively refused")
_TIMEOUT_MARKERS = ("timed out", "timeout")
_TLS_MARKERS = ("[ssl:", "certificate verify", "tlsv1 alert", "sslv3 alert")

_KIND_OUTCOMES: dict[FailureKind, tuple[int, str]] = {
    FailureKind.NAME_RESOLUTION: (404, "Target URL not found"),
    FailureKind.CONNECTION_REFUSED: (503, "Connection refused by target server"),
    FailureKind.TIMEOUT: (504, "Request timeout"),
    FailureKind.TLS: (495, "SSL/TLS error"),
}

_REMOTE_OUTCOMES: dict[int, tuple[int, str]] = {
    401: (401, "Unauthorized"),
    403: (403, "Forbidden"),
    404: (404, "Not Found"),
    500: (502, "Bad Gateway"),
}


def _chain(exc: BaseException) -> list[BaseException]:
    """The exception, its causes/contexts, and members of exception groups."""
    seen: list[BaseException] = []
    pending = [exc]
    while pending:
        current = pending.pop(0)
        if current is None or any(current is s for s in seen):
            continue
        seen.append(current)
        pending.extend(getattr(current, "exceptions", ()) or ())
        pending.append(current.__cause__)
        pending.append(current.__context__)
    return seen


def _detail(exc: BaseException) -> str:
    return str(exc).strip() or type(exc).__name__


def _has_marker(texts: list[str], markers: tuple[str, ...]) -> bool:
    return any(m in t for t in texts for m in markers)


def describe(exc: BaseException) -> TransportFailure:
    """Reduce a dispatch exception to a structured failure description."""
    chain = _chain(exc)
    texts = [str(e).lower() for e in chain]
    detail = _detail(exc)

    if any(isinstance(e, socket.gaierror) for e in chain) or _has_marker(texts, _NAME_RESOLUTION_MARKERS):
        return TransportFailure(FailureKind.NAME_RESOLUTION, detail)

    if any(
        isinstance(e, ConnectionRefusedError)
        or (isinstance(e, OSError) and e.errno == errno.ECONNREFUSED)
        for e in chain
    ) or _has_marker(texts, _REFUSED_MARKERS):
        return TransportFailure(FailureKind.CONNECTION_REFUSED, detail)

    if any(isinstance(e, (httpx.TimeoutException, TimeoutError)) for e in chain) or _has_marker(
        texts, _TIMEOUT_MARKERS
    ):
        return TransportFailure(FailureKind.TIMEOUT, detail)

    if any(isinstance(e, ssl.SSLError) for e in chain) or _has_marker(texts, _TLS_MARKERS):
        return TransportFailure(FailureKind.TLS, detail)

    for e in chain:
        if isinstance(e, httpx.HTTPStatusError):
            return TransportFailure(FailureKind.REMOTE_STATUS, detail, e.response.status_code)

    return TransportFailure(FailureKind.OTHER, detail)


def classify(failure: TransportFailure) -> tuple[int, str]:
    """Map a failure description to the (status, message) reported to the caller."""
    if failure.kind in _KIND_OUTCOMES:
        return _KIND_OUTCOMES[failure.kind]
    if failure.kind is FailureKind.REMOTE_STATUS and failure.remote_status in _REMOTE_OUTCOMES:
        return _REMOTE_OUTCOMES[failure.remote_status]
    return 500, failure.detail or UNKNOWN_ERROR
