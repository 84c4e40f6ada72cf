"""
GitHub token persistence in a .env file.
"""
import os
from typing import Optional
from dotenv import dotenv_values, set_key

TOKEN_VAR = 'GITHUB_TOKEN'
DEFAULT_ENV_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')


def load_env_token(path: Optional[str] = None) -> Optional[str]:
    """Return GITHUB_TOKEN from the .env file, or None if the file or key is missing."""
    path = path or DEFAULT_ENV_PATH
    if not os.path.exists(path):
        return None
    value = dotenv_values(path).get(TOKEN_VAR)
    return value.strip() if value else None


def save_env_token(token: str, path: Optional[str] = None):
    """Write (or replace) GITHUB_TOKEN in the .env file, creating it if needed."""
    path = path or DEFAULT_ENV_PATH
    if not os.path.exists(path):
        open(path, 'a', encoding='utf-8').close()
    set_key(path, TOKEN_VAR, token, quote_mode='never')


def resolve_token(cli_token: Optional[str] = None, env_path: Optional[str] = None) -> Optional[str]:
    """CLI flag first, then the process environment, then the .env file."""
    return cli_token or os.getenv(TOKEN_VAR) or load_env_token(env_path)
