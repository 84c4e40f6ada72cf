"""
Scoring utility functions.
Provides weight, cap and exclusion-list loading from the YAML config plus the weighted-sum helper.
"""
from typing import Dict, Any, Optional, List, Tuple
import os
import yaml
from errors import ConfigurationError

# filename used for weight YAML configuration
WEIGHTS_FILENAME = 'weights.yaml'

DEFAULT_WEIGHTS = {
    'pr_feature_bug': 3,
    'pr_doc': 2,
    'pr_typo': 1,
    'issue_feature_bug': 2,
    'issue_doc': 1,
}

# doc/typo PRs are capped at DOC_CAP x feature/bug PRs, issues at ISSUE_CAP x valid PRs
DEFAULT_DOC_CAP = 3
DEFAULT_ISSUE_CAP = 4


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', WEIGHTS_FILENAME)


def _read_config(path: Optional[str]) -> Dict[str, Any]:
    """Return the parsed YAML document, or {} when the file does not exist."""
    path = path or default_config_path()
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            doc = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as ex:
        raise ConfigurationError(f"Failed to read config {path}: {ex}") from ex
    if not isinstance(doc, dict):
        raise ConfigurationError(f"Config {path} must be a mapping, got {type(doc).__name__}")
    return doc


def _as_count(name: str, value: Any) -> int:
    """Weights and caps are small non-negative integers so scores stay exact."""
    try:
        as_int = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
    if as_int != value and str(as_int) != str(value).strip():
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
    if as_int < 0:
        raise ConfigurationError(f"'{name}' must not be negative, got {value!r}")
    return as_int


def _merge_weights(base: Dict[str, int], overrides: Any) -> Dict[str, int]:
    merged = dict(base)
    if not isinstance(overrides, dict):
        return merged
    for k, v in overrides.items():
        if k not in DEFAULT_WEIGHTS:
            raise ConfigurationError(f"Unknown weight '{k}'; expected one of {', '.join(DEFAULT_WEIGHTS)}")
        merged[k] = _as_count(k, v)
    return merged


def load_weights(path: Optional[str] = None) -> Dict[str, int]:
    """
    Load category weights from the 'weights' section of the YAML config, falling back to DEFAULT_WEIGHTS.
    """
    doc = _read_config(path)
    return _merge_weights(DEFAULT_WEIGHTS, doc.get('weights'))


def load_caps(path: Optional[str] = None) -> Tuple[int, int]:
    """Return (doc_cap, issue_cap) from the 'caps' section."""
    caps = _read_config(path).get('caps') or {}
    doc_cap = _as_count('caps.doc', caps.get('doc', DEFAULT_DOC_CAP))
    issue_cap = _as_count('caps.issue', caps.get('issue', DEFAULT_ISSUE_CAP))
    return doc_cap, issue_cap


def load_exclude_users(path: Optional[str] = None) -> List[str]:
    users = _read_config(path).get('exclude_users') or []
    if not isinstance(users, list):
        raise ConfigurationError("'exclude_users' must be a list of logins")
    return [str(u) for u in users]


def compute_weighted_score(counts: Dict[str, int], weights: Dict[str, int]) -> int:
    """
    Sum of count x weight over the weighted categories. Missing counts are treated as zero.
    """
    total = 0
    for k, w in weights.items():
        total += int(counts.get(k, 0) or 0) * int(w)
    return total


def load_preset(preset_name: str, path: Optional[str] = None) -> Dict[str, int]:
    """
    Return the base weights with the named preset merged over them.

    Example:
        merged = load_preset('issues_light')

    Raises ConfigurationError when the preset is not defined.
    """
    doc = _read_config(path)
    base = _merge_weights(DEFAULT_WEIGHTS, doc.get('weights'))
    presets = doc.get('presets') or {}
    if not isinstance(presets, dict) or preset_name not in presets:
        raise ConfigurationError(f"Preset '{preset_name}' not found in {path or default_config_path()}")
    return _merge_weights(base, presets.get(preset_name) or {})


def list_presets(path: Optional[str] = None) -> list:
    """Return a list of available preset names from the weights YAML (or empty list)."""
    presets = _read_config(path).get('presets') or {}
    return list(presets.keys()) if isinstance(presets, dict) else []
