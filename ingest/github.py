"""
GitHub REST client: the page-by-page fetch collaborator used by the contribution collector.
Failures are raised as categorized errors (not found, rate limited, network/unknown).
"""
import logging
from typing import List, Dict, Any, Optional
from errors import AuthenticationError, RepositoryNotFound, RateLimited, TransientNetworkError
from normalize.models import RawEvent
from normalize.util import raw_event_from_issue
from storage.cache import rate_limited_get, Cache
from storage.retry import parse_rate_headers

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
RATE_LIMIT_HINT = "Use a GitHub token (--api-key) or reuse collected data (--cache with --use-cache)."


def _error_message(result: Dict[str, Any]) -> str:
    body = result.get('response')
    if isinstance(body, dict) and body.get('message'):
        return str(body['message'])
    if result.get('error'):
        return str(result['error'])
    return f"HTTP {result.get('status', 0)}"


def _is_rate_limited(result: Dict[str, Any]) -> bool:
    status = result.get('status')
    if status == 429:
        return True
    if status != 403:
        return False
    _, remaining, _ = parse_rate_headers(result.get('headers'))
    return (remaining is not None and remaining <= 0) or 'rate limit' in _error_message(result).lower()


def _is_short_page(body: Any, per_page: int) -> bool:
    return not isinstance(body, list) or len(body) < per_page


class GitHubClient:
    """Minimal GitHub client for repository issue/PR listings, token validation and quota checks."""

    def __init__(self, token: Optional[str] = None, base_url: str = None, cache: Optional[Cache] = None, max_age: Optional[float] = None, **retry_kwargs):
        self.token = token
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip('/')
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"
        self.cache = cache
        self.max_age = max_age
        self.retry_kwargs = retry_kwargs

    def _get(self, path: str, params: Dict[str, Any] = None, cache_key: str = None) -> Dict[str, Any]:
        return rate_limited_get(
            f"{self.base_url}{path}",
            headers=self.headers,
            params=params,
            cache=self.cache if cache_key else None,
            cache_key=cache_key,
            max_age=self.max_age,
            **self.retry_kwargs,
        )

    def _raise_for_result(self, result: Dict[str, Any], repo: Optional[str] = None):
        status = result.get('status', 0)
        if status == 200:
            return
        message = _error_message(result)
        where = f" ({repo})" if repo else ""
        if status == 401:
            raise AuthenticationError(f"GitHub rejected the token{where}: {message}", repo=repo)
        if status == 404:
            raise RepositoryNotFound(f"Repository not found{where}: {message}", repo=repo, status=status)
        if _is_rate_limited(result):
            raise RateLimited(f"GitHub API rate limit exceeded{where}. {RATE_LIMIT_HINT}", repo=repo, status=status)
        if status == 0:
            raise TransientNetworkError(f"Network error{where}: {message}", repo=repo, status=status)
        raise TransientNetworkError(f"GitHub API error{where}: {message}", repo=repo, status=status)

    def fetch_issue_page(self, owner: str, repo: str, page: int, per_page: int = 100) -> List[Optional[RawEvent]]:
        """Fetch one page of issues and PRs (state=all), oldest first.

        Items are listed by creation time ascending so new activity only ever lands on the
        last page; full pages may be served from the cache, a short (last) page never is.
        The returned list has one slot per item on the page so callers can detect a short page;
        malformed items (no user) are None.
        """
        repo_path = f"{owner}/{repo}"
        params = {"state": "all", "sort": "created", "direction": "asc", "per_page": per_page, "page": page}
        key = f"github:issues:{repo_path}:created-asc:page:{page}:per:{per_page}"
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached and _is_short_page(cached.get('response'), per_page):
                logger.debug("Refreshing last page %d of %s", page, repo_path)
                self.cache.delete_key(key)
        result = self._get(f"/repos/{repo_path}/issues", params=params, cache_key=key)
        self._raise_for_result(result, repo_path)
        data = result.get('response')
        if not isinstance(data, list):
            raise TransientNetworkError(f"Unexpected payload for {repo_path} page {page}: {type(data).__name__}", repo=repo_path, status=200)
        return [raw_event_from_issue(item) for item in data]

    def validate_token(self) -> bool:
        """Check the token against GET /user. Returns False when running unauthenticated."""
        if not self.token:
            logger.info("No GitHub token configured; continuing unauthenticated")
            return False
        logger.info("Validating GitHub token...")
        result = self._get("/user")
        self._raise_for_result(result)
        logger.info("GitHub token is valid")
        return True

    def rate_limit(self) -> Dict[str, Any]:
        """Return the core API quota: {'limit', 'remaining', 'reset'}."""
        result = self._get("/rate_limit")
        self._raise_for_result(result)
        body = result.get('response') or {}
        core = (body.get('resources') or {}).get('core') or body.get('rate') or {}
        return {'limit': core.get('limit'), 'remaining': core.get('remaining'), 'reset': core.get('reset')}
