# wrapper/methods.py
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def allows_body(method: str) -> bool:
    """Return True if a request body may be attached for this HTTP method."""
    return method.strip().upper() in _BODY_METHODS
