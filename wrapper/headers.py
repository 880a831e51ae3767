# wrapper/headers.py
from collections.abc import Iterable, Mapping

# Transport-level response headers that must not be re-exposed to the caller.
_STRIP_RESPONSE_HEADERS = frozenset({"content-encoding", "transfer-encoding", "connection"})


def baseline_headers(user_agent: str) -> dict[str, str]:
    """Headers every outbound request starts from."""
    return {
        "User-Agent": user_agent,
        "Accept": "*/*",
        "Accept-Encoding": "gzip, deflate, br",
        "Connection": "keep-alive",
        "Cache-Control": "no-cache",
    }


def outbound_headers(user_agent: str, caller: Mapping[str, str] | None) -> dict[str, str]:
    """Baseline headers overlaid with the caller's; the caller wins on collision.

    Keys are compared case-insensitively, so a caller's "accept" replaces the
    baseline "Accept" instead of sending both.
    """
    headers = baseline_headers(user_agent)
    for key, value in (caller or {}).items():
        for existing in [k for k in headers if k.lower() == key.lower()]:
            del headers[existing]
        headers[key] = value
    return headers


def filter_response_headers(items: Iterable[tuple[str, str]]) -> dict[str, str]:
    return {k: v for k, v in items if k.lower() not in _STRIP_RESPONSE_HEADERS}
