"""
Report renderer: text table, text bar chart, CSV, Markdown, HTML and JSON views of repository scoreboards.
HTML and Markdown are rendered with the Jinja2 templates in report/templates.
"""

from typing import Optional, List, Dict, Any, Iterable
from datetime import datetime, timezone
import os
import io
import csv
import json
import logging
from jinja2 import Environment, FileSystemLoader, select_autoescape
from normalize.models import RepoScoreboard, RankedEntry, ActivityCounters, COUNTER_FIELDS

logger = logging.getLogger(__name__)

TITLE = "Contribution Score by Participant"
BAR_MAX_WIDTH = 40
BAR_CHAR = '█'

CATEGORY_LABELS = {
    'pr_feature_bug': 'feat/bug PR',
    'pr_doc': 'doc PR',
    'pr_typo': 'typo PR',
    'issue_feature_bug': 'feat/bug issue',
    'issue_doc': 'doc issue',
}

TABLE_HEADER = (
    ['rank', 'participant']
    + [f"{CATEGORY_LABELS[f]} score" for f in COUNTER_FIELDS]
    + ['total', 'participation(%)']
    + [f"{CATEGORY_LABELS[f]}(%)" for f in COUNTER_FIELDS]
)

CSV_HEADER = ['name']
for _f in COUNTER_FIELDS:
    CSV_HEADER += [f"{CATEGORY_LABELS[_f]} count", f"{CATEGORY_LABELS[_f]} score"]
CSV_HEADER += ['total', 'participation_rate']

FORMATS = ('text', 'chart', 'csv', 'md', 'html', 'json')

_env = None


def _jinja_env() -> Environment:
    global _env
    if _env is None:
        tmpl_dir = os.path.join(os.path.dirname(__file__), 'templates')
        _env = Environment(loader=FileSystemLoader(tmpl_dir), autoescape=select_autoescape(['html', 'xml']), trim_blocks=True, lstrip_blocks=True)
        _env.filters['ordinal'] = ordinal
    return _env


def ordinal(n: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    if 10 <= n % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')
    return f"{n}{suffix}"


def _now() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')


def _stat(value: Optional[float], fmt: str = '{:.2f}') -> str:
    return fmt.format(value) if value is not None else 'no participants'


def summary_lines(board: RepoScoreboard) -> List[str]:
    return [
        f"Average score: {_stat(board.average)}",
        f"Minimum score: {_stat(board.minimum, '{}')}",
        f"Maximum score: {_stat(board.maximum, '{}')}",
    ]


def table_row(entry: RankedEntry) -> List[str]:
    s = entry.score
    return (
        [str(entry.rank), s.identity]
        + [str(getattr(s, f)) for f in COUNTER_FIELDS]
        + [str(s.total), f"{entry.participation_rate:.2f}%"]
        + [f"{entry.ratios[f]:.2f}%" for f in COUNTER_FIELDS]
    )


def render_text(board: RepoScoreboard, generated_at: Optional[str] = None) -> str:
    """Fixed-width table headed by the title, generation time and average/min/max."""
    rows = [TABLE_HEADER] + [table_row(e) for e in board]
    widths = [max(len(r[i]) for r in rows) for i in range(len(TABLE_HEADER))]
    sep = '+' + '+'.join('-' * (w + 2) for w in widths) + '+'

    lines = [TITLE, f"Generated at {generated_at or _now()}", '']
    lines.extend(summary_lines(board))
    lines.append('')
    lines.append(sep)
    for i, row in enumerate(rows):
        lines.append('| ' + ' | '.join(cell.ljust(w) for cell, w in zip(row, widths)) + ' |')
        if i == 0:
            lines.append(sep)
    lines.append(sep)
    return "\n".join(lines)


def render_chart(board: RepoScoreboard) -> str:
    """Horizontal bar chart scaled to the top score."""
    if not len(board):
        return f"{board.repo_key}: no participants"
    labels = [f"{e.identity} ({ordinal(e.rank)})" for e in board]
    label_width = max(len(label) for label in labels)
    top = board.maximum or 0
    lines = []
    for label, e in zip(labels, board):
        bar_len = round(e.total / top * BAR_MAX_WIDTH) if top > 0 else 0
        lines.append(f"{label.ljust(label_width)} | {BAR_CHAR * bar_len} {e.total}")
    return "\n".join(lines)


def render_csv(board: RepoScoreboard, participants: Optional[Dict[str, ActivityCounters]] = None) -> str:
    """One row per participant with raw counts (when participants is given) and scores."""
    participants = participants or {}
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for e in board:
        counts = participants.get(e.identity)
        row = [e.identity]
        for f in COUNTER_FIELDS:
            row += [getattr(counts, f) if counts else '', getattr(e.score, f)]
        row += [e.total, f"{e.participation_rate:.2f}"]
        writer.writerow(row)
    return output.getvalue()


def render_markdown(board: RepoScoreboard, generated_at: Optional[str] = None) -> str:
    tmpl = _jinja_env().get_template('section_repo.md.j2')
    return tmpl.render(
        board=board,
        title=TITLE,
        header=TABLE_HEADER,
        rows=[table_row(e) for e in board],
        summary=summary_lines(board),
        generated_at=generated_at or _now(),
    )


def _board_dict(board: RepoScoreboard) -> Dict[str, Any]:
    return {
        'repo': board.repo_key,
        'total_score': board.total_score,
        'average': board.average,
        'min': board.minimum,
        'max': board.maximum,
        'participants': [
            {
                'rank': e.rank,
                'name': e.identity,
                'scores': e.score.category_scores(),
                'total': e.total,
                'participation_rate': e.participation_rate,
                'ratios': e.ratios,
            }
            for e in board
        ],
    }


def render_json(boards: Dict[str, RepoScoreboard], generated_at: Optional[str] = None) -> str:
    return json.dumps({'generated_at': generated_at or _now(), 'repositories': [_board_dict(b) for b in boards.values()]}, indent=2)


def render_html(boards: Dict[str, RepoScoreboard], generated_at: Optional[str] = None) -> str:
    """Single page with one tab per repository key."""
    tmpl = _jinja_env().get_template('report.html.j2')
    tabs = [
        {
            'key': key,
            'board': board,
            'rows': [table_row(e) for e in board],
            'summary': summary_lines(board),
            'csv': f"{key}/{key}_data.csv",
        }
        for key, board in boards.items()
    ]
    return tmpl.render(title=TITLE, header=TABLE_HEADER, tabs=tabs, generated_at=generated_at or _now())


def render(
    boards: Dict[str, RepoScoreboard],
    fmt: str = 'text',
    ledger=None,
    generated_at: Optional[str] = None,
) -> str:
    """Render every scoreboard in one format. Per-repository formats are concatenated in key order."""
    fmt_l = (fmt or 'text').lower()
    generated_at = generated_at or _now()
    if fmt_l in ('html', 'htm'):
        return render_html(boards, generated_at)
    if fmt_l in ('json', 'js'):
        return render_json(boards, generated_at)
    parts = []
    for key, board in boards.items():
        if fmt_l in ('md', 'markdown'):
            parts.append(render_markdown(board, generated_at))
        elif fmt_l == 'csv':
            parts.append(render_csv(board, ledger.repository(key) if ledger is not None else None))
        elif fmt_l == 'chart':
            parts.append(f"[{key}]\n" + render_chart(board))
        elif fmt_l in ('text', 'table', 'txt'):
            parts.append(f"[{key}]\n" + render_text(board, generated_at))
        else:
            raise ValueError(f"Unknown output format '{fmt}'; expected one of {', '.join(FORMATS)}")
    return "\n\n".join(parts)


def _write(path: str, content: str) -> str:
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    # newline='' is safe for CSV on Windows and harmless for other formats
    with open(path, 'w', encoding='utf-8', newline='') as fh:
        fh.write(content)
    logger.info("Wrote %s", path)
    return path


def write_reports(
    boards: Dict[str, RepoScoreboard],
    output_dir: str,
    formats: Iterable[str] = FORMATS,
    ledger=None,
    generated_at: Optional[str] = None,
) -> List[str]:
    """Write per-repository files under output_dir/<repo_key>/ plus index.html / scores.json. Returns written paths."""
    formats = {f.lower() for f in formats}
    generated_at = generated_at or _now()
    written: List[str] = []
    for key, board in boards.items():
        repo_dir = os.path.join(output_dir, key)
        if formats & {'text', 'table'}:
            written.append(_write(os.path.join(repo_dir, f"{key}.txt"), render_text(board, generated_at)))
        if 'chart' in formats:
            written.append(_write(os.path.join(repo_dir, f"{key}_chart.txt"), render_chart(board)))
        # the HTML page links to the CSV files
        if formats & {'csv', 'html'}:
            participants = ledger.repository(key) if ledger is not None else None
            written.append(_write(os.path.join(repo_dir, f"{key}_data.csv"), render_csv(board, participants)))
        if formats & {'md', 'markdown'}:
            written.append(_write(os.path.join(repo_dir, f"{key}.md"), render_markdown(board, generated_at)))
    if 'html' in formats:
        written.append(_write(os.path.join(output_dir, 'index.html'), render_html(boards, generated_at)))
    if 'json' in formats:
        written.append(_write(os.path.join(output_dir, 'scores.json'), render_json(boards, generated_at)))
    return written
