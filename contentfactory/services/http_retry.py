"""
Shared tenacity policy for HTTP adapters.

Transport errors, 429s and 5xx responses are retried three times with
exponential backoff; other 4xx responses fail immediately.
"""

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential


def is_transient_http_error(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


http_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=8),
    retry=retry_if_exception(is_transient_http_error),
    reraise=True,
)
