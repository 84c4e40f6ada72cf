import csv
import io
import json
import os

import pytest

from normalize.models import ActivityCounters
from report.renderer import (
    render,
    render_text,
    render_chart,
    render_csv,
    render_markdown,
    render_html,
    render_json,
    write_reports,
    ordinal,
    BAR_CHAR,
    BAR_MAX_WIDTH,
    CSV_HEADER,
    TITLE,
)
from scoring import ScoringEngine, RepoRanker
from storage.ledger import ParticipantLedger

GENERATED = '2025-01-01 00:00:00 UTC'


@pytest.fixture
def ledger():
    ledger = ParticipantLedger()
    ledger.add_repository('alpha', {
        'alice': ActivityCounters(pr_feature_bug=2, issue_feature_bug=1),
        'bob': ActivityCounters(pr_doc=1),
    })
    ledger.add_repository('beta', {
        'carol': ActivityCounters(issue_feature_bug=1),
    })
    ledger.register('gamma')
    return ledger


@pytest.fixture
def boards(ledger):
    return RepoRanker().rank_all(ScoringEngine().score_ledger(ledger))


def test_ordinal():
    assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22, 101, 111)] == [
        '1st', '2nd', '3rd', '4th', '11th', '12th', '13th', '21st', '22nd', '101st', '111th'
    ]


def test_render_text_table(boards):
    out = render_text(boards['alpha'], GENERATED)
    assert out.startswith(TITLE)
    assert f"Generated at {GENERATED}" in out
    assert 'Average score: 5.00' in out
    assert 'Minimum score: 2' in out
    assert 'Maximum score: 8' in out
    lines = out.splitlines()
    alice = next(line for line in lines if ' alice ' in line)
    assert '| 1 ' in alice and '80.00%' in alice


def test_render_text_empty_repository(boards):
    out = render_text(boards['gamma'], GENERATED)
    assert 'Average score: no participants' in out


def test_render_chart_scales_to_top(boards):
    lines = render_chart(boards['alpha']).splitlines()
    assert lines[0].startswith('alice (1st)')
    assert lines[0].count(BAR_CHAR) == BAR_MAX_WIDTH
    assert lines[1].startswith('bob (2nd)')
    assert lines[1].count(BAR_CHAR) == 10
    assert render_chart(boards['gamma']) == 'gamma: no participants'


def test_render_csv_includes_counts(boards, ledger):
    rows = list(csv.reader(io.StringIO(render_csv(boards['alpha'], ledger.repository('alpha')))))
    assert rows[0] == CSV_HEADER
    assert rows[1][0] == 'alice'
    # feat/bug PR count, feat/bug PR score
    assert rows[1][1:3] == ['2', '6']
    assert rows[1][-2:] == ['8', '80.00']


def test_render_markdown(boards):
    out = render_markdown(boards['alpha'], GENERATED)
    assert out.startswith('## alpha')
    assert '| rank | participant |' in out
    assert '| 1 | alice |' in out
    assert '_No participants._' in render_markdown(boards['gamma'], GENERATED)


def test_render_html_has_tab_per_repository(boards):
    out = render_html(boards, GENERATED)
    for key in ('alpha', 'beta', 'gamma', 'total'):
        assert f'id="{key}"' in out
    assert 'href="alpha/alpha_data.csv"' in out
    assert '<td>alice</td>' in out


def test_render_json(boards):
    data = json.loads(render_json(boards, GENERATED))
    assert data['generated_at'] == GENERATED
    repos = {r['repo']: r for r in data['repositories']}
    assert list(repos) == ['alpha', 'beta', 'gamma', 'total']
    assert repos['alpha']['participants'][0]['name'] == 'alice'
    assert repos['gamma']['average'] is None


def test_render_dispatch(boards, ledger):
    assert render(boards, 'table', generated_at=GENERATED).startswith('[alpha]')
    assert render(boards, 'csv', ledger=ledger).startswith(','.join(CSV_HEADER))
    with pytest.raises(ValueError):
        render(boards, 'pdf')


def test_write_reports_layout(boards, ledger, tmp_path):
    written = write_reports(boards, str(tmp_path), ('text', 'chart', 'csv', 'md', 'html', 'json'), ledger, GENERATED)
    rel = {os.path.relpath(p, tmp_path).replace(os.sep, '/') for p in written}
    for key in ('alpha', 'beta', 'gamma', 'total'):
        assert {f"{key}/{key}.txt", f"{key}/{key}_chart.txt", f"{key}/{key}_data.csv", f"{key}/{key}.md"} <= rel
    assert 'index.html' in rel
    assert 'scores.json' in rel
    assert (tmp_path / 'alpha' / 'alpha.txt').read_text(encoding='utf-8').startswith(TITLE)


def test_html_only_still_writes_linked_csv(boards, tmp_path):
    write_reports(boards, str(tmp_path), ('html',), generated_at=GENERATED)
    assert (tmp_path / 'index.html').exists()
    assert (tmp_path / 'beta' / 'beta_data.csv').exists()
    assert not (tmp_path / 'beta' / 'beta.txt').exists()
