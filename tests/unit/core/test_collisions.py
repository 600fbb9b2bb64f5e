"""Unit tests for core/collisions.py"""

from datetime import datetime, timezone

from mdsite.core.collisions import precedence, resolve_collisions
from mdsite.core.errors import DiagnosticKind, Severity
from mdsite.core.models import Document


def doc(path: str, route: str, order: int, when: datetime = None) -> Document:
    return Document(
        id=path, route=route, section="blog", title=path, body="",
        source_order=order, source_path=path, publish_time=when,
    )


JAN_7 = datetime(2024, 1, 7, tzinfo=timezone.utc)
JAN_9 = datetime(2024, 1, 9, tzinfo=timezone.utc)


def test_unique_routes_pass_through():
    docs = [doc("a.md", "/blog/a/", 0), doc("b.md", "/blog/b/", 1)]
    winners, diagnostics = resolve_collisions(docs)
    assert winners == docs
    assert diagnostics == []


def test_latest_publish_time_wins_regardless_of_order():
    """The newer copy wins even when it was discovered first."""
    newer = doc("copy-1.md", "/blog/a/", 0, JAN_9)
    older = doc("copy-2.md", "/blog/a/", 1, JAN_7)
    winners, diagnostics = resolve_collisions([newer, older])

    assert winners == [newer]
    assert len(diagnostics) == 1
    d = diagnostics[0]
    assert d.kind == DiagnosticKind.duplicate_route_discarded
    assert d.severity == Severity.warning
    assert d.route == "/blog/a/"
    assert d.source_path == "copy-2.md"
    assert "copy-1.md" in d.message


def test_later_discovery_breaks_ties():
    first = doc("one.md", "/blog/a/", 0, JAN_7)
    second = doc("two.md", "/blog/a/", 1, JAN_7)
    winners, _ = resolve_collisions([first, second])
    assert winners == [second]


def test_undated_candidates_fall_back_to_discovery_order():
    winners, _ = resolve_collisions([doc("one.md", "/x/", 3), doc("two.md", "/x/", 5)])
    assert winners[0].source_path == "two.md"


def test_dated_beats_undated():
    """A candidate with a date outranks one without, even if discovered earlier."""
    dated = doc("dated.md", "/blog/a/", 0, JAN_7)
    undated = doc("undated.md", "/blog/a/", 9)
    winners, diagnostics = resolve_collisions([undated, dated])
    assert winners == [dated]
    assert diagnostics[0].source_path == "undated.md"


def test_each_loser_gets_a_diagnostic():
    group = [doc(f"c{i}.md", "/blog/a/", i, JAN_7) for i in range(4)]
    winners, diagnostics = resolve_collisions(group)
    assert winners == [group[-1]]
    assert [d.source_path for d in diagnostics] == ["c0.md", "c1.md", "c2.md"]


def test_result_independent_of_input_order():
    group = [
        doc("a.md", "/blog/a/", 0, JAN_7),
        doc("b.md", "/blog/a/", 1, JAN_9),
        doc("c.md", "/blog/c/", 2),
        doc("d.md", "/blog/c/", 3),
    ]
    forward = resolve_collisions(group)
    backward = resolve_collisions(list(reversed(group)))
    assert forward == backward
    assert [w.source_path for w in forward[0]] == ["b.md", "d.md"]


def test_one_winner_per_route():
    docs = [doc(f"{i}.md", f"/r{i % 3}/", i) for i in range(10)]
    winners, diagnostics = resolve_collisions(docs)
    assert sorted(w.route for w in winners) == ["/r0/", "/r1/", "/r2/"]
    assert len(winners) + len(diagnostics) == len(docs)


def test_precedence_ordering():
    assert precedence(doc("a", "/", 0, JAN_9)) > precedence(doc("b", "/", 5, JAN_7))
    assert precedence(doc("a", "/", 0, JAN_7)) > precedence(doc("b", "/", 5))
