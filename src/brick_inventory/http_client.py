from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from .config import DEFAULT_USER_AGENT
from .errors import EmptyResponseError, InvalidResponseError
from .logging_utils import log_event
from .urls import normalize_url

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient:
    """Thin wrapper over a ``requests.Session``.

    There are no retries here; transport errors (``requests.RequestException``)
    reach the caller unchanged.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = 45,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._user_agent = user_agent

    def get(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> FetchResult:
        normalized = normalize_url(url)
        merged = {"User-Agent": self._user_agent}
        if headers:
            merged.update(headers)

        resp = self._session.get(
            normalized,
            timeout=self._timeout_s if timeout_s is None else timeout_s,
            headers=merged,
        )
        log_event(
            logger,
            logging.DEBUG,
            "http_get",
            url=normalized,
            status_code=resp.status_code,
            size=len(resp.content or b""),
        )

        # Callers may want to inspect bodies of error pages.
        return FetchResult(
            url=normalized,
            final_url=str(resp.url),
            status_code=int(resp.status_code),
            body=resp.content or b"",
        )

    def fetch_bytes(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> bytes:
        """GET *url* and return the body, insisting on 2xx and a non-empty body."""

        result = self.get(url, headers=headers, timeout_s=timeout_s)
        if result.final_url != result.url:
            log_event(logger, logging.INFO, "http_redirected", url=result.url, final_url=result.final_url)
        if not result.ok:
            raise InvalidResponseError(url, result.status_code)
        if not result.body:
            raise EmptyResponseError(url)
        return result.body
