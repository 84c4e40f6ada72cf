"""
Retry/backoff and rate-limit-aware HTTP GET helper used by the GitHub client.
Transient statuses are retried here; whatever is left after the last attempt is returned
to the caller as a status/response dict for categorization.
"""

import os
import time
import random
import logging
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
import requests

logger = logging.getLogger(__name__)

# retry/backoff defaults from environment
DEFAULT_MAX_RETRIES = int(os.getenv("REPOSCORE_MAX_RETRIES", "3"))
DEFAULT_BACKOFF_BASE = float(os.getenv("REPOSCORE_BACKOFF_BASE", "0.5"))
_env_jitter = os.getenv("REPOSCORE_BACKOFF_JITTER")
DEFAULT_BACKOFF_JITTER = float(_env_jitter) if _env_jitter else None
DEFAULT_MAX_BACKOFF = float(os.getenv("REPOSCORE_MAX_BACKOFF", "60.0"))
DEFAULT_TIMEOUT = float(os.getenv("REPOSCORE_TIMEOUT", "30.0"))

RETRYABLE_STATUSES = (429, 502, 503, 504)

# runtime-overrides
_runtime: Dict[str, Optional[float]] = {
    'max_retries': None,
    'backoff_base': None,
    'backoff_jitter': None,
    'max_backoff': None,
}


def configure_retry(
    max_retries: Optional[int] = None, backoff_base: Optional[float] = None, backoff_jitter: Optional[float] = None, max_backoff: Optional[float] = None
):
    """Configure retry/backoff defaults at runtime (e.g. from CLI)."""
    if max_retries is not None:
        if int(max_retries) < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        _runtime['max_retries'] = int(max_retries)
    if backoff_base is not None:
        _runtime['backoff_base'] = float(backoff_base)
    if backoff_jitter is not None:
        _runtime['backoff_jitter'] = float(backoff_jitter)
    if max_backoff is not None:
        _runtime['max_backoff'] = float(max_backoff)


def reset_retry():
    """Drop runtime overrides and return to the environment defaults."""
    for k in _runtime:
        _runtime[k] = None


def _resolved(name: str, explicit, default):
    if explicit is not None:
        return explicit
    if _runtime[name] is not None:
        return _runtime[name]
    return default


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    if not raw_ra:
        return None
    try:
        return max(0.0, float(raw_ra))
    except ValueError:
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw_ra)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _header_number(headers, key: str, cast):
    val = headers.get(key)
    if val is None:
        return None
    try:
        return cast(val)
    except (TypeError, ValueError):
        return None


def parse_rate_headers(headers) -> Tuple[Optional[float], Optional[int], Optional[float]]:
    """Return (retry_after_seconds, ratelimit_remaining, ratelimit_reset_epoch)."""
    headers = headers or {}
    return (
        _parse_retry_after(headers.get('Retry-After')),
        _header_number(headers, 'X-RateLimit-Remaining', int),
        _header_number(headers, 'X-RateLimit-Reset', float),
    )


def _parse_body(resp):
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, 'text', None)


def _wait_seconds(retry_after: Optional[float], reset: Optional[float], backoff: float, jitter: float) -> float:
    if retry_after is not None:
        return retry_after + random.uniform(0, jitter)
    if reset:
        return max(0.0, reset - time.time()) + random.uniform(0, jitter)
    return backoff + random.uniform(0, jitter)


def perform_request_with_retries(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    max_retries: Optional[int] = None,
    backoff_base: Optional[float] = None,
    backoff_jitter: Optional[float] = None,
    max_backoff: Optional[float] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """GET url, retrying connection errors and transient statuses.

    Returns {'response', 'status', 'headers', 'timestamp'}; status 0 means no HTTP response was
    received, in which case 'error' holds the exception text.
    """
    attempts = int(_resolved('max_retries', max_retries, DEFAULT_MAX_RETRIES))
    backoff = float(_resolved('backoff_base', backoff_base, DEFAULT_BACKOFF_BASE))
    jitter = _resolved('backoff_jitter', backoff_jitter, DEFAULT_BACKOFF_JITTER)
    jitter = float(jitter) if jitter is not None else backoff
    cap = float(_resolved('max_backoff', max_backoff, DEFAULT_MAX_BACKOFF))

    last: Dict[str, Any] = {'response': None, 'status': 0, 'headers': {}, 'timestamp': time.time()}
    for attempt in range(1, max(1, attempts) + 1):
        try:
            resp = requests.get(url, headers=headers or {}, params=params or {}, timeout=timeout or DEFAULT_TIMEOUT)
        except requests.RequestException as ex:
            logger.warning("GET %s failed (attempt %d/%d): %s", url, attempt, attempts, ex)
            last = {'response': None, 'status': 0, 'headers': {}, 'error': str(ex), 'timestamp': time.time()}
            wait = min(backoff + random.uniform(0, jitter), cap)
        else:
            status = resp.status_code
            resp_headers = getattr(resp, 'headers', None) or {}
            last = {'response': _parse_body(resp), 'status': status, 'headers': resp_headers, 'timestamp': time.time()}
            if status == 200:
                return last
            retry_after, remaining, reset = parse_rate_headers(resp_headers)
            exhausted = remaining is not None and remaining <= 0
            if status not in RETRYABLE_STATUSES and retry_after is None and not exhausted:
                return last
            wait = _wait_seconds(retry_after, reset, backoff, jitter)
            if wait > cap:
                # quota resets too far in the future to be worth waiting for
                logger.warning("GET %s returned %s; retry would wait %.0fs, giving up", url, status, wait)
                return last
            logger.debug("GET %s returned %s (attempt %d/%d)", url, status, attempt, attempts)

        if attempt < attempts:
            time.sleep(wait)
            backoff = min(backoff * 2, cap)
    return last


__all__ = ["configure_retry", "reset_retry", "perform_request_with_retries", "parse_rate_headers"]
