"""Collision resolution: reduce document candidates to exactly one per route"""

import logging
from datetime import datetime, timezone
from typing import Iterable

from mdsite.core.errors import Diagnostic, DiagnosticKind, Severity, diagnostic
from mdsite.core.models import Document


logger = logging.getLogger(__name__)

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def precedence(doc: Document) -> tuple[bool, datetime, int]:
    """Sort key: dated beats undated, later publish_time wins, then later discovery wins."""
    return doc.dated, doc.publish_time or _UNDATED, doc.source_order


def resolve_collisions(candidates: Iterable[Document]) -> tuple[list[Document], list[Diagnostic]]:
    """Keep one Document per route; every discarded candidate becomes a warning.

    All candidates are grouped before any decision is made, so the outcome
    depends only on the candidates themselves, never on the order in which
    routes were first seen. Winners are returned in source_order.
    """
    by_route: dict[str, list[Document]] = {}
    for doc in candidates:
        by_route.setdefault(doc.route, []).append(doc)

    winners: list[Document] = []
    diagnostics: list[Diagnostic] = []

    for route, group in by_route.items():
        ranked = sorted(group, key=precedence, reverse=True)
        winner, losers = ranked[0], ranked[1:]
        winners.append(winner)
        for loser in sorted(losers, key=lambda d: d.source_order):
            logger.info("Route %s: %s supersedes %s", route, winner.source_path, loser.source_path)
            diagnostics.append(diagnostic(
                DiagnosticKind.duplicate_route_discarded,
                f"Discarded in favour of {winner.source_path} (entry #{winner.source_order})",
                severity=Severity.warning,
                source_path=loser.source_path,
                route=route,
            ))

    winners.sort(key=lambda d: d.source_order)
    diagnostics.sort(key=lambda d: (d.route, d.source_path or ''))
    return winners, diagnostics
