"""
SQLite cache for raw GitHub responses and collected ledger snapshots.
http_cache holds GET bodies keyed by resource and page; ledger_cache holds one
repository's participant counters so a run can be re-scored without the API.
"""

import sqlite3
import json
import time
import logging
import threading
from typing import Optional, Any, Dict, Iterable

from normalize.models import ActivityCounters
from .ledger import ParticipantLedger
from .retry import perform_request_with_retries

logger = logging.getLogger(__name__)

DB_PATH = None  # can be overridden by caller

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS http_cache (
    key TEXT PRIMARY KEY,
    response TEXT,
    status INTEGER,
    timestamp REAL
);
CREATE TABLE IF NOT EXISTS ledger_cache (
    repo TEXT PRIMARY KEY,
    participants TEXT,
    timestamp REAL
);
"""


class Cache:
    def __init__(self, path: Optional[str] = None, max_entries: Optional[int] = None, ttl_seconds: Optional[float] = None):
        """Create a cache instance.

        :param path: SQLite file path or None for in-memory.
        :param max_entries: optional maximum number of http entries to keep; oldest are pruned first.
        :param ttl_seconds: optional TTL in seconds for http entries.
        """
        self.path = path or DB_PATH or ':memory:'
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self.max_entries = int(max_entries) if max_entries is not None else None
        self.ttl_seconds = float(ttl_seconds) if ttl_seconds is not None else None
        self._init_db()

    def _init_db(self):
        with self._lock:
            self.conn.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # noinspection SqlResolve
    def stats(self) -> Dict[str, Any]:
        """Return entry counts plus the oldest and newest http entry timestamps."""
        with self._lock:
            cur = self.conn.cursor()
            cur.execute('SELECT COUNT(1), MIN(timestamp), MAX(timestamp) FROM http_cache')
            count, oldest, newest = cur.fetchone()
            cur.execute('SELECT COUNT(1) FROM ledger_cache')
            ledgers = cur.fetchone()[0]
        return {
            'count': int(count or 0),
            'oldest': float(oldest) if oldest is not None else None,
            'newest': float(newest) if newest is not None else None,
            'ledgers': int(ledgers or 0),
        }

    # noinspection SqlResolve
    def list_keys(self, limit: int = 1000) -> list:
        """Return http cache keys with status and timestamp, newest first."""
        with self._lock:
            cur = self.conn.cursor()
            cur.execute('SELECT key, status, timestamp FROM http_cache ORDER BY timestamp DESC LIMIT ?', (limit,))
            rows = cur.fetchall()
        return [{'key': k, 'status': int(status or 0), 'timestamp': float(ts or 0)} for k, status, ts in rows]

    # noinspection SqlWithoutWhere
    def clear(self):
        """Clear all http entries and ledger snapshots."""
        with self._lock:
            self.conn.execute('DELETE FROM http_cache')
            self.conn.execute('DELETE FROM ledger_cache')
            self.conn.commit()

    # noinspection SqlResolve
    def delete_key(self, key: str) -> int:
        with self._lock:
            cur = self.conn.execute('DELETE FROM http_cache WHERE key = ?', (key,))
            self.conn.commit()
            return cur.rowcount

    # noinspection SqlResolve
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            cur = self.conn.execute('SELECT response, status, timestamp FROM http_cache WHERE key = ?', (key,))
            row = cur.fetchone()
        if not row:
            return None
        response, status, timestamp = row
        if self.ttl_seconds is not None and time.time() - float(timestamp or 0) > self.ttl_seconds:
            self.delete_key(key)
            return None
        return {'response': json.loads(response), 'status': status, 'timestamp': timestamp}

    # noinspection SqlResolve
    def _prune_if_needed(self):
        with self._lock:
            if self.ttl_seconds is not None:
                cutoff = time.time() - self.ttl_seconds
                self.conn.execute('DELETE FROM http_cache WHERE timestamp < ?', (cutoff,))
            if self.max_entries is not None:
                count = self.conn.execute('SELECT COUNT(1) FROM http_cache').fetchone()[0] or 0
                if count > self.max_entries:
                    self.conn.execute(
                        'DELETE FROM http_cache WHERE key IN (SELECT key FROM http_cache ORDER BY timestamp ASC LIMIT ?)',
                        (int(count - self.max_entries),),
                    )
            self.conn.commit()

    # noinspection SqlResolve
    def set(self, key: str, response: Any, status: int = 200):
        payload = json.dumps(response)
        with self._lock:
            self.conn.execute(
                'REPLACE INTO http_cache(key, response, status, timestamp) VALUES (?, ?, ?, ?)', (key, payload, status, time.time())
            )
            self.conn.commit()
            self._prune_if_needed()

    # noinspection SqlResolve
    def save_ledger(self, repo_key: str, participants: Dict[str, ActivityCounters]):
        """Store one repository's counters, replacing any previous snapshot."""
        payload = json.dumps({identity: c.as_dict() for identity, c in participants.items()})
        with self._lock:
            self.conn.execute(
                'REPLACE INTO ledger_cache(repo, participants, timestamp) VALUES (?, ?, ?)', (repo_key, payload, time.time())
            )
            self.conn.commit()

    # noinspection SqlResolve
    def load_ledger(self, repo_keys: Iterable[str]) -> Optional[ParticipantLedger]:
        """Rebuild a ledger from snapshots; None unless every requested repository is cached."""
        ledger = ParticipantLedger()
        with self._lock:
            for repo_key in repo_keys:
                row = self.conn.execute('SELECT participants FROM ledger_cache WHERE repo = ?', (repo_key,)).fetchone()
                if not row:
                    logger.info("No cached ledger for %s", repo_key)
                    return None
                data = json.loads(row[0])
                ledger.add_repository(repo_key, {identity: ActivityCounters.from_dict(c) for identity, c in data.items()})
        return ledger


def _cached_fresh(cache: Optional[Cache], cache_key: Optional[str], max_age: Optional[float]):
    if not cache or not cache_key:
        return None
    cached = cache.get(cache_key)
    if not cached:
        return None
    if max_age is None:
        return cached
    age = time.time() - float(cached.get('timestamp', 0) or 0)
    return cached if age <= float(max_age) else None


def rate_limited_get(
    url: str,
    headers: Dict[str, str] = None,
    params: Dict[str, Any] = None,
    cache: Cache = None,
    cache_key: str = None,
    max_age: Optional[float] = None,
    **retry_kwargs,
) -> Dict[str, Any]:
    """Public API: perform a GET with caching, rate-limit handling, and retries.

    Checks cache first (honoring max_age); successful responses are written back to the cache.
    """
    cached = _cached_fresh(cache, cache_key, max_age)
    if cached:
        logger.debug("Cache hit for %s", cache_key)
        return cached

    result = perform_request_with_retries(url, headers or {}, params or {}, **retry_kwargs)
    if cache and cache_key and result.get('status') == 200:
        cache.set(cache_key, result.get('response'), 200)
    return result


__all__ = ["Cache", "rate_limited_get"]
