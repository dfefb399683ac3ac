from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from .errors import RemoteSourceError


logger = logging.getLogger(__name__)

_RETRY_STATUS = (429, 500, 502, 503, 504)


def is_url(source: object) -> bool:
    return isinstance(source, str) and source.strip().lower().startswith(("http://", "https://"))


class RemoteDocumentClient:
    """
    Read-only HTTP source for documents.

    Notes
    - Fetches the body as text; decoding is left to the store.
    - Network errors, 429 and 5xx are retried with exponential backoff.
    - Other non-200 responses fail immediately.
    """

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        max_attempts: int = 4,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._timeout, follow_redirects=True)
        self._sleep = sleep

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RemoteDocumentClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def fetch(self, url: str) -> str:
        attempt = 0
        backoff = 1.0
        last_exc: Optional[Exception] = None
        while attempt < self._max_attempts:
            try:
                resp = self._client.get(url)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                last_exc = exc
            else:
                if resp.status_code == 200:
                    return resp.text
                if resp.status_code in _RETRY_STATUS:
                    last_exc = RemoteSourceError(f"HTTP {resp.status_code} from {url}")
                else:
                    raise RemoteSourceError(f"HTTP {resp.status_code} from {url}: {resp.text[:200]}")

            attempt += 1
            if attempt < self._max_attempts:
                logger.debug("Retrying %s in %.1fs (attempt %d)", url, backoff, attempt + 1)
                self._sleep(backoff)
                backoff = min(backoff * 2, 8.0)

        raise RemoteSourceError(f"Failed to fetch {url} after {self._max_attempts} attempts") from last_exc


__all__ = ["RemoteDocumentClient", "is_url"]
