from __future__ import annotations
import logging
import time
from typing import Any, Mapping, Optional
import httpx

DEFAULT_TIMEOUT = 20.0
RETRYABLE_STATUS = (429, 502, 503, 504)

logger = logging.getLogger(__name__)


class HttpRetryingClient:
    """httpx client with basic retries/backoff on rate limits and gateway errors."""
    def __init__(self, headers: Optional[Mapping[str, str]] = None, timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None,
                 sleep=time.sleep):
        self._http = httpx.Client(timeout=timeout, headers=headers or {}, transport=transport)
        self._sleep = sleep

    def close(self) -> None:
        self._http.close()

    def get(self, url: str, *, params: Optional[Mapping[str, Any]] = None,
            retries: int = 2, backoff: float = 0.75) -> httpx.Response:
        last_exc = None
        for i in range(retries + 1):
            try:
                r = self._http.get(url, params=params or {})
                if r.status_code in RETRYABLE_STATUS:
                    raise httpx.HTTPStatusError("retryable", request=r.request, response=r)
                r.raise_for_status()
                return r
            except httpx.HTTPStatusError as e:
                last_exc = e
                if e.response.status_code not in RETRYABLE_STATUS or i == retries:
                    break
            except httpx.TransportError as e:
                last_exc = e
                if i == retries:
                    break
            logger.warning("GET %s failed (attempt %d/%d): %s", url, i + 1, retries + 1, last_exc)
            self._sleep(backoff * (2 ** i))
        assert last_exc is not None
        raise last_exc
