"""
CLI entry point for reposcore. Wires the pipeline: collect -> score -> rank -> report
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from errors import RepoScoreError
from ingest.collector import ContributionCollector, plan_repositories, DEFAULT_MAX_WORKERS
from ingest.github import GitHubClient
from normalize.classifier import ActivityClassifier
from report.renderer import FORMATS, render, write_reports
from scoring import ScoringEngine, RepoRanker
from scoring.utils import load_exclude_users, list_presets
from storage.cache import Cache
from storage.env import resolve_token, save_env_token
from storage.ledger import ParticipantLedger
from storage.retry import configure_retry

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
DEFAULT_CACHE_PATH = "cache.db"


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _clear_cache(cache: Cache, force: bool):
    if not force:
        confirm = input(f"Are you sure you want to clear the cache at {cache.path}? This cannot be undone. [y/N]: ")
        if confirm.strip().lower() not in ("y", "yes"):
            print("Aborted cache clear.")
            return
    cache.clear()
    print(f"Cleared cache at {cache.path}")


def _handle_cache_actions(args) -> bool:
    """Run --cache-info / --cache-clear. Returns True if one was performed and the CLI should exit."""
    if not (args.cache_info or args.cache_clear):
        return False
    with Cache(args.cache or DEFAULT_CACHE_PATH) as cache:
        if args.cache_info:
            _print_json(cache.stats())
        if args.cache_clear:
            _clear_cache(cache, args.force)
    return True


def _print_rate_limit(client: GitHubClient):
    quota = client.rate_limit()
    print(f"GitHub API requests remaining: {quota['remaining']} / {quota['limit']}")


def collect_ledger(args, client: GitHubClient, cache: Optional[Cache]) -> ParticipantLedger:
    """Reuse a cached ledger when asked to, otherwise collect from GitHub (and refresh the cache)."""
    repo_keys = [key for _, key in plan_repositories(args.repo)]
    if args.use_cache:
        if cache is None:
            logger.warning("--use-cache has no effect without --cache")
        else:
            ledger = cache.load_ledger(repo_keys)
            if ledger is not None:
                logger.info("Using cached ledger for %s", ", ".join(repo_keys))
                return ledger

    client.validate_token()
    exclude = load_exclude_users(args.weights) + list(args.exclude_user or [])
    collector = ContributionCollector(client, ActivityClassifier(exclude), max_workers=args.workers)
    ledger = collector.collect(args.repo)
    if cache is not None:
        for key in repo_keys:
            cache.save_ledger(key, ledger.repository(key))
    return ledger


def run_pipeline(args, cache: Optional[Cache]) -> List[str]:
    """Execute collect -> score -> rank -> write and return the written paths."""
    token = resolve_token(args.api_key)
    if args.save_token and args.api_key:
        save_env_token(args.api_key)
        logger.info("Saved token to .env")
    client = GitHubClient(token, cache=cache, max_age=args.max_age)
    if args.check_limit:
        _print_rate_limit(client)
        return []

    engine = ScoringEngine.from_config(args.weights, args.preset)
    ledger = collect_ledger(args, client, cache)
    boards = RepoRanker().rank_all(engine.score_ledger(ledger))

    formats = FORMATS if args.format == 'all' else (args.format,)
    written = write_reports(boards, args.output, formats, ledger=ledger)
    if args.print:
        print(render(boards, 'text'))
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reposcore", description="Score GitHub issue/PR contributions per participant.")
    parser.add_argument("-r", "--repo", nargs="+", default=[], help="Repositories to analyze (owner/repo owner2/repo2 ...)")
    parser.add_argument("-a", "--api-key", type=str, default=None, help="GitHub access token (falls back to GITHUB_TOKEN env or .env)")
    parser.add_argument("--save-token", action="store_true", help="Store the --api-key token in .env for later runs")
    parser.add_argument("-o", "--output", type=str, default="results", help="Output directory (default: results)")
    parser.add_argument("-f", "--format", choices=FORMATS + ("table", "all"), default="all", help="Report format (default: all)")
    parser.add_argument("--print", action="store_true", help="Also print the score tables to stdout")
    parser.add_argument("--weights", type=str, default=None, help="Path to weights YAML (default: config/weights.yaml)")
    parser.add_argument("--preset", type=str, default=None, help="Named weight preset from the weights YAML")
    parser.add_argument("--list-presets", action="store_true", help="List weight presets and exit")
    parser.add_argument("--exclude-user", nargs="+", default=[], help="Logins whose activity is ignored")
    parser.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS, help="Repositories collected concurrently")
    parser.add_argument("--cache", type=str, default="", help="Path to SQLite cache file (optional)")
    parser.add_argument("--use-cache", action="store_true", help="Score the ledger stored in --cache instead of calling the API")
    parser.add_argument("--max-age", type=float, default=None, help="Maximum age in seconds of cached API pages")
    # retry/backoff knobs: REPOSCORE_MAX_RETRIES, REPOSCORE_BACKOFF_BASE, REPOSCORE_BACKOFF_JITTER, REPOSCORE_MAX_BACKOFF set the defaults
    parser.add_argument("--max-retries", type=int, default=None, help="Maximum attempts per HTTP request")
    parser.add_argument("--backoff-base", type=float, default=None, help="Base backoff seconds")
    parser.add_argument("--backoff-jitter", type=float, default=None, help="Jitter seconds added to backoff")
    parser.add_argument("--max-backoff", type=float, default=None, help="Longest wait in seconds before giving up on a retry")
    parser.add_argument("--check-limit", action="store_true", help="Show the remaining GitHub API quota and exit")
    parser.add_argument("--cache-info", action="store_true", help="Show cache statistics (uses --cache or cache.db)")
    parser.add_argument("--cache-clear", action="store_true", help="Clear the cache (uses --cache or cache.db)")
    parser.add_argument("--force", action="store_true", help="Do not ask for confirmation (with --cache-clear)")
    parser.add_argument("--log-level", default="INFO", choices=("DEBUG", "INFO", "WARNING", "ERROR"), help="Logging verbosity")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        configure_retry(max_retries=args.max_retries, backoff_base=args.backoff_base, backoff_jitter=args.backoff_jitter, max_backoff=args.max_backoff)
    except ValueError as ex:
        parser.error(str(ex))

    if args.list_presets:
        print("\n".join(list_presets(args.weights)))
        return 0
    if _handle_cache_actions(args):
        return 0
    if not args.repo and not args.check_limit:
        parser.error("--repo is required (owner/repo ...)")

    cache = Cache(args.cache) if args.cache else None
    try:
        written = run_pipeline(args, cache)
    except RepoScoreError as ex:
        logger.error("%s", ex)
        return 1
    finally:
        if cache:
            cache.close()
    for path in written:
        print(f"Wrote report to {path}")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
