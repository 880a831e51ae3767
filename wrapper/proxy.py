# wrapper/proxy.py
import asyncio
import logging
import time
from typing import Any

import httpx

from wrapper.classify import FailureKind, TransportFailure, classify, describe
from wrapper.guard import HostGuard, RequestRejected
from wrapper.headers import filter_response_headers, outbound_headers
from wrapper.methods import allows_body
from wrapper.models import ErrorPayload, ForwardMeta, ForwardRequest, ForwardResponse

logger = logging.getLogger(__name__)

FAILURE_CATEGORY = "API Wrapper request failed"
MAX_REDIRECTS = 5


def _elapsed_ms(start: float) -> int:
    return max(0, int(round((time.perf_counter() - start) * 1000)))


def _body_kwargs(method: str, body: Any) -> dict[str, Any]:
    """httpx keyword arguments carrying the body, or nothing if it is dropped."""
    if body is None or not allows_body(method):
        return {}
    if isinstance(body, (str, bytes)):
        return {"content": body}
    return {"json": body}


def _parse_body(response: httpx.Response) -> Any:
    """Structured JSON when the body parses as such, otherwise the raw text."""
    try:
        return response.json()
    except (ValueError, RecursionError):
        return response.text


class ForwardingEngine:
    """Re-issues caller-described requests and wraps the outcome in an envelope.

    ``forward`` never raises: every failure becomes a ``ForwardResponse`` with
    ``success=False``. The httpx client is shared across calls and owned by
    the caller. Redirects are followed here one hop at a time and every hop
    passes the host guard. The whole exchange, redirects and body included,
    is bounded by ``settings.forward_timeout``.
    """

    def __init__(self, client: httpx.AsyncClient, settings, guard: HostGuard | None = None) -> None:
        self.client = client
        self.timeout = settings.forward_timeout
        self.user_agent = settings.user_agent
        self.guard = guard or HostGuard(settings.blocked_hosts)

    async def forward(self, request: ForwardRequest) -> ForwardResponse:
        method = request.method.upper()
        start = time.perf_counter()

        try:
            async with asyncio.timeout(self.timeout):
                response = await self._dispatch(method, request)
            return self._received(request, method, response, _elapsed_ms(start))
        except RequestRejected as exc:
            logger.warning("Redirect from %s refused: %s", request.url, exc.message)
            return self._rejected(request, method, exc, _elapsed_ms(start))
        except Exception as exc:
            elapsed = _elapsed_ms(start)
            failure = describe(exc)
            if failure.kind is FailureKind.OTHER:
                logger.exception("Forward %s %s failed unexpectedly", method, request.url)
            else:
                logger.warning(
                    "Forward %s %s failed (%s): %s",
                    method, request.url, failure.kind.value, failure.detail,
                )
            return self._failure(request, method, failure, elapsed)

    async def _dispatch(self, method: str, request: ForwardRequest) -> httpx.Response:
        logger.info("Dispatching %s %s", method, request.url)
        response = await self.client.request(
            method=method,
            url=request.url,
            headers=outbound_headers(self.user_agent, request.headers),
            timeout=self.timeout,
            follow_redirects=False,
            **_body_kwargs(method, request.body),
        )
        hops = 0
        while response.next_request is not None:
            next_request = response.next_request
            await response.aclose()
            if hops >= MAX_REDIRECTS:
                raise httpx.TooManyRedirects(
                    f"Exceeded maximum of {MAX_REDIRECTS} redirects", request=response.request
                )
            self.guard.check(str(next_request.url))
            logger.info("Following redirect to %s", next_request.url)
            response = await self.client.send(next_request, follow_redirects=False)
            hops += 1
        return response

    def _received(
        self,
        request: ForwardRequest,
        method: str,
        response: httpx.Response,
        elapsed: int,
    ) -> ForwardResponse:
        logger.info(
            "Forward %s %s -> %s (%dms)", method, request.url, response.status_code, elapsed
        )
        if response.status_code >= 500:
            logger.warning("Target returned %s for %s %s", response.status_code, method, request.url)

        return ForwardResponse(
            success=True,
            status=response.status_code,
            status_text="OK",
            headers=filter_response_headers(response.headers.items()),
            data=_parse_body(response),
            meta=ForwardMeta(response_time=elapsed, target_url=request.url, method=method),
        )

    def _rejected(
        self,
        request: ForwardRequest,
        method: str,
        exc: RequestRejected,
        elapsed: int,
    ) -> ForwardResponse:
        payload = ErrorPayload(
            error=exc.error,
            message=exc.message,
            status=400,
            target_url=request.url,
        )
        return ForwardResponse(
            success=False,
            status=400,
            status_text="Bad Request",
            headers={},
            data=payload.model_dump(by_alias=True, exclude_none=True),
            meta=ForwardMeta(response_time=elapsed, target_url=request.url, method=method),
        )

    def _failure(
        self,
        request: ForwardRequest,
        method: str,
        failure: TransportFailure,
        elapsed: int,
    ) -> ForwardResponse:
        status, message = classify(failure)
        payload = ErrorPayload(
            error=FAILURE_CATEGORY,
            message=message,
            status=status,
            target_url=request.url,
            original_error=failure.detail or None,
        )
        return ForwardResponse(
            success=False,
            status=status,
            status_text="Error",
            headers={},
            data=payload.model_dump(by_alias=True, exclude_none=True),
            meta=ForwardMeta(response_time=elapsed, target_url=request.url, method=method),
        )
