"""Shared JSON-over-HTTPS request loop for external collaborators."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

import httpx

from ..errors import CollaboratorError, CollaboratorTimeout

logger = logging.getLogger(__name__)

# Client errors that are worth retrying; everything else in 4xx is final.
RETRYABLE_STATUS_CODES = {408, 425, 429}


def get_json(
    url: str,
    params: Mapping[str, Any] | None = None,
    *,
    service: str,
    error_cls: type[CollaboratorError] = CollaboratorError,
    timeout: float = 5.0,
    max_retries: int = 0,
    backoff_seconds: float = 0.0,
    transport: httpx.BaseTransport | None = None,
) -> Any:
    """GET ``url`` and return the decoded JSON body.

    Transient failures (timeouts, network errors, 5xx, 429) are retried with
    exponential backoff up to ``max_retries`` times. Timeouts surface as
    CollaboratorTimeout, every other failure as ``error_cls``.
    """
    client = httpx.Client(
        timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
        transport=transport,
    )
    try:
        attempt = 0
        while True:
            try:
                response = client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                retryable = status_code >= 500 or status_code in RETRYABLE_STATUS_CODES
                attempt += 1
                if not retryable or attempt > max_retries:
                    raise error_cls(
                        f"{service} request failed with HTTP {status_code}",
                        reason="bad_response" if status_code < 500 else "unavailable",
                    ) from e
                wait_time = backoff_seconds * (2 ** (attempt - 1))
                logger.warning(f"{service} returned HTTP {status_code}, retrying in {wait_time:.1f}s (attempt {attempt}/{max_retries})")
                time.sleep(wait_time)
            except httpx.TimeoutException as e:
                attempt += 1
                if attempt > max_retries:
                    logger.warning(f"{service} request timed out after {attempt} attempt(s): {e}")
                    raise CollaboratorTimeout(f"{service} request timed out after {timeout:.1f}s") from e
                wait_time = backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"{service} timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{max_retries})")
                time.sleep(wait_time)
            except httpx.TransportError as e:
                attempt += 1
                if attempt > max_retries:
                    raise error_cls(f"Failed to connect to {service}: {e}", reason="unavailable") from e
                wait_time = backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"{service} network error, retrying in {wait_time:.1f}s (attempt {attempt}/{max_retries}): {e}")
                time.sleep(wait_time)
            except ValueError as e:
                raise error_cls(f"{service} returned a non-JSON body", reason="bad_response") from e
    finally:
        client.close()
