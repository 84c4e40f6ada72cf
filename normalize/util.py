"""
Normalization utility helpers.
Turn raw GitHub issue payloads and repository arguments into normalize.models entities.
"""
import re
from typing import Dict, Any, Optional, Tuple
from normalize.models import RawEvent
from errors import ConfigurationError

REPO_PATTERN = re.compile(r"^([^/\s]+)/([^/\s]+)$")


def _first_label_name(item: Dict[str, Any]) -> Optional[str]:
    """Return the name of the first label, or None. Additional labels are ignored."""
    labels = item.get('labels') or []
    if not isinstance(labels, list) or not labels:
        return None
    first = labels[0]
    if isinstance(first, dict):
        return first.get('name') or None
    # the issues API also accepts plain label strings in some payloads
    return str(first) if first else None


def raw_event_from_issue(item: Dict[str, Any]) -> Optional[RawEvent]:
    """Create a RawEvent from one entry of GET /repos/{owner}/{repo}/issues.

    Returns None for entries without a user login so the classifier never sees them.
    """
    if not isinstance(item, dict):
        return None
    login = (item.get('user') or {}).get('login')
    if not login:
        return None
    pr = item.get('pull_request')
    is_pr = pr is not None
    merged = bool(pr.get('merged_at')) if isinstance(pr, dict) else False
    return RawEvent(
        identity=login,
        is_pull_request=is_pr,
        merged=merged,
        state_reason=item.get('state_reason'),
        label=_first_label_name(item),
    )


def parse_repo_identifier(repo_path: str) -> Tuple[str, str]:
    """Split 'owner/repo' into (owner, repo)."""
    match = REPO_PATTERN.match((repo_path or '').strip())
    if not match:
        raise ConfigurationError(f"Invalid repository '{repo_path}': expected owner/repo")
    return match.group(1), match.group(2)
