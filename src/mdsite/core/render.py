"""Renderer: build per-document template context and invoke the injected render function"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from mdsite.core.errors import (
    Diagnostic, DiagnosticKind, InternalInvariantViolation, RenderFailure, Severity, diagnostic,
)
from mdsite.core.index import paginate
from mdsite.core.models import Document, ListPage, Page, SectionIndex, SiteIndex
from mdsite.core.utils.hashing import fingerprint


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderContext:
    """Everything a template needs for one document besides the document itself."""
    document: Document
    section:  SectionIndex
    site:     SiteIndex
    page:     Page
    newer:    Optional[Document] = None
    older:    Optional[Document] = None

    def cache_key(self) -> str:
        """Fingerprint of the document and the navigation context it is rendered with."""
        d = self.document
        return fingerprint({
            "route": d.route, "id": d.id, "title": d.title, "body": d.body,
            "section": d.section, "section_title": self.section.title,
            "publish_time": d.publish_time, "tags": d.tags, "categories": d.categories,
            "params": dict(d.params), "page": self.page.route,
            "newer": (self.newer.route, self.newer.title) if self.newer else None,
            "older": (self.older.route, self.older.title) if self.older else None,
        })


RenderFn = Callable[[Document, RenderContext], bytes]
ListRenderFn = Callable[[ListPage, SiteIndex], bytes]


class RenderCache:
    """In-memory artifact cache, one entry per route keyed by RenderContext fingerprint.

    A new fingerprint for a route replaces the previous entry, so the cache
    never holds more entries than there are routes. Safe to share between workers.
    """

    def __init__(self):
        self._entries: dict[str, tuple[str, bytes]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, route: str, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._entries.get(route)
        if entry is None or entry[0] != key:
            return None
        return entry[1]

    def put(self, route: str, key: str, data: bytes) -> None:
        with self._lock:
            self._entries[route] = (key, data)

    def retain(self, routes: Iterable[str]) -> None:
        """Drop entries for routes no longer being built."""
        keep = set(routes)
        with self._lock:
            for route in [r for r in self._entries if r not in keep]:
                del self._entries[route]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@dataclass(frozen=True)
class RenderOutcome:
    route:   str
    data:    Optional[bytes] = None
    diagnostics: tuple[Diagnostic, ...] = ()
    skipped: bool = False
    cached:  bool = False


@dataclass
class RenderBatch:
    """Merged outcome of a rendering pass."""
    artifacts:   dict[str, bytes] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    rendered:    int = 0
    cached:      int = 0
    cancelled:   bool = False

    def merge(self, outcomes: Iterable[RenderOutcome]) -> "RenderBatch":
        for outcome in sorted(outcomes, key=lambda o: o.route):
            self.diagnostics.extend(outcome.diagnostics)
            if outcome.skipped:
                self.cancelled = True
            elif outcome.data is not None:
                self.artifacts[outcome.route] = outcome.data
                if outcome.cached:
                    self.cached += 1
                else:
                    self.rendered += 1
        return self


def context_for(document: Document, site: SiteIndex) -> RenderContext:
    """Build the RenderContext for an indexed document.

    Raises InternalInvariantViolation if the document is not part of site.
    """
    section = site.section_for(document)
    if section is None:
        raise InternalInvariantViolation(
            f"Document {document.id!r} reached the renderer without being indexed",
            document.source_path, document.route,
        )
    newer, older = section.neighbours(document.route)
    return RenderContext(
        document=document, section=section, site=site,
        page=section.page_of(document.route), newer=newer, older=older,
    )


def _as_bytes(data) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"renderer returned {type(data).__name__}, expected bytes")


def _invoke(route: str, call: Callable[[], bytes], source_path: str = None) -> RenderOutcome:
    """Run one render call, converting any exception into a render_failure diagnostic."""
    try:
        data = _as_bytes(call())
    except Exception as e:
        logger.warning("Render failed for %s: %s", route, e, exc_info=logger.isEnabledFor(logging.DEBUG))
        failure = RenderFailure(f"{type(e).__name__}: {e}", source_path, route)
        return RenderOutcome(route=route, diagnostics=(failure.to_diagnostic(),))
    return RenderOutcome(route=route, data=data)


def _render_one(
    ctx: RenderContext,
    render: RenderFn,
    cancel: Optional[threading.Event],
    cache: Optional[RenderCache],
    ) -> RenderOutcome:
    doc = ctx.document
    if cancel is not None and cancel.is_set():
        return RenderOutcome(route=doc.route, skipped=True)

    key = ctx.cache_key() if cache is not None else None
    if key is not None:
        hit = cache.get(doc.route, key)
        if hit is not None:
            return RenderOutcome(route=doc.route, data=hit, cached=True)

    outcome = _invoke(doc.route, lambda: render(doc, ctx), doc.source_path)
    if key is not None and outcome.data is not None:
        cache.put(doc.route, key, outcome.data)
    return outcome


def _run(tasks: list[tuple[str, Callable[[], RenderOutcome]]], workers: int) -> list[RenderOutcome]:
    """Run render tasks sequentially or on a thread pool; each task returns its own outcome."""
    if workers <= 1 or len(tasks) <= 1:
        return [task() for _, task in tasks]

    outcomes: list[RenderOutcome] = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(task): route for route, task in tasks}
        for future in as_completed(futures):
            outcomes.append(future.result())
    return outcomes


def render_documents(
    documents: Iterable[Document],
    site: SiteIndex,
    render: RenderFn,
    workers: int = 1,
    cancel: Optional[threading.Event] = None,
    cache: Optional[RenderCache] = None,
    ) -> RenderBatch:
    """Render every document once through render, isolating per-document failures.

    All contexts are built before any render call, so an unindexed document
    aborts the pass before work starts. Once cancel is set, tasks that have
    not started are skipped and in-flight ones finish.
    """
    contexts = [context_for(doc, site) for doc in documents]
    tasks = [
        (ctx.document.route, lambda ctx=ctx: _render_one(ctx, render, cancel, cache))
        for ctx in contexts
    ]
    batch = RenderBatch().merge(_run(tasks, workers))
    if cache is not None:
        cache.retain(ctx.document.route for ctx in contexts)
    logger.info("Rendered %d document(s), %d from cache, %d failed",
                batch.rendered, batch.cached, len(batch.diagnostics))
    return batch


def list_pages(site: SiteIndex, page_size: int) -> list[ListPage]:
    """Every paginated section and taxonomy term page of a site."""
    pages: list[ListPage] = []

    def _add(kind: str, name: str, title: str, docs: tuple[Document, ...], paging: tuple[Page, ...]):
        for i, page in enumerate(paging):
            pages.append(ListPage(
                kind=kind, name=name, title=title, route=page.route, page=page,
                total_pages=len(paging), documents=docs[page.start:page.stop],
                prev_route=paging[i - 1].route if i > 0 else None,
                next_route=paging[i + 1].route if i + 1 < len(paging) else None,
            ))

    for section in site.sections.values():
        _add("section", section.name, section.title, section.documents, section.pages)
    for taxonomy in site.taxonomies.values():
        for term in taxonomy.terms.values():
            paging = paginate(len(term.documents), page_size, term.route)
            _add("term", f"{taxonomy.name}/{term.slug}", term.term, term.documents, paging)
    return pages


def render_list_pages(
    site: SiteIndex,
    render_list: Callable[[ListPage, SiteIndex], bytes],
    page_size: int,
    taken: Iterable[str] = (),
    workers: int = 1,
    cancel: Optional[threading.Event] = None,
    ) -> RenderBatch:
    """Render section and taxonomy list pages.

    A list page whose route is already taken (normally by a document such as
    content/index.md) is not rendered and is recorded at info severity.
    """
    taken = set(taken)
    shadowed: list[Diagnostic] = []
    tasks = []

    for page in list_pages(site, page_size):
        if page.route in taken:
            shadowed.append(diagnostic(
                DiagnosticKind.duplicate_route_discarded,
                f"List page for {page.name!r} discarded: route is already taken",
                severity=Severity.info,
                route=page.route,
            ))
            continue
        taken.add(page.route)

        def task(page=page) -> RenderOutcome:
            if cancel is not None and cancel.is_set():
                return RenderOutcome(route=page.route, skipped=True)
            return _invoke(page.route, lambda: render_list(page, site))

        tasks.append((page.route, task))

    batch = RenderBatch(diagnostics=shadowed).merge(_run(tasks, workers))
    logger.info("Rendered %d list page(s)", batch.rendered)
    return batch
