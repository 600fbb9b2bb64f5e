"""Build orchestration: load -> build -> resolve -> filter -> index -> render"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Collection, Iterable, Optional, Union

from mdsite.core.collisions import resolve_collisions
from mdsite.core.documents import build_documents, to_utc
from mdsite.core.errors import (
    Diagnostic, DiagnosticKind, InternalInvariantViolation, Severity, SourceUnavailable, diagnostic,
)
from mdsite.core.index import DEFAULT_TAXONOMIES, build_site_index
from mdsite.core.loader import iter_entries
from mdsite.core.models import BuildResult, BuildState, Document, RawEntry, SiteIndex
from mdsite.core.render import ListRenderFn, RenderCache, RenderFn, render_documents, render_list_pages
from mdsite.core.source import ContentSource


logger = logging.getLogger(__name__)


def filter_visible(
    documents: Iterable[Document],
    reference_time: datetime,
    diagnostics: list[Diagnostic],
    ) -> list[Document]:
    """Drop drafts and documents published after reference_time, recording each exclusion."""
    visible = []
    for doc in documents:
        if doc.draft:
            diagnostics.append(diagnostic(
                DiagnosticKind.excluded_draft, "excluded: draft",
                severity=Severity.info, source_path=doc.source_path, route=doc.route,
            ))
        elif doc.publish_time is not None and doc.publish_time > reference_time:
            diagnostics.append(diagnostic(
                DiagnosticKind.excluded_future,
                f"excluded: future-dated ({doc.publish_time.isoformat()} > {reference_time.isoformat()})",
                severity=Severity.info, source_path=doc.source_path, route=doc.route,
            ))
        else:
            visible.append(doc)
    return visible


@dataclass(frozen=True)
class SitePlan:
    """Everything known about a build before rendering starts."""
    site:           SiteIndex
    documents:      tuple[Document, ...]
    reference_time: datetime
    diagnostics:    tuple[Diagnostic, ...]


class SiteBuilder:
    """Sequences the pipeline stages and owns the build state machine.

    Only SourceUnavailable ends a build in the failed state; per-entry and
    per-document problems are recorded as diagnostics and the build proceeds.
    InternalInvariantViolation marks the build failed and propagates.
    """

    def __init__(
        self,
        source: ContentSource,
        render: RenderFn,
        render_list: Optional[ListRenderFn] = None,
        page_size: int = 10,
        sections: Optional[Collection[str]] = None,
        taxonomies: Iterable[str] = DEFAULT_TAXONOMIES,
        content_dir: str = "content",
        workers: int = 1,
        source_retries: int = 0,
        cache: Optional[RenderCache] = None,
        ):
        self.source = source
        self.render = render
        self.render_list = render_list
        self.page_size = page_size
        self.sections = frozenset(sections) if sections else None
        self.taxonomies = tuple(taxonomies)
        self.content_dir = content_dir
        self.workers = workers
        if source_retries < 0:
            raise ValueError(f"source_retries must be >= 0, got {source_retries}")
        self.source_retries = source_retries
        self.cache = cache
        self.state = BuildState.idle
        self._cancel = threading.Event()

    @classmethod
    def from_settings(cls, settings, source: ContentSource, render: RenderFn, **kwargs) -> "SiteBuilder":
        """Construct a builder from a Settings object; kwargs override or add collaborators."""
        options = dict(
            page_size=settings.page_size,
            sections=settings.sections,
            taxonomies=settings.taxonomies,
            content_dir=settings.content_name,
            workers=settings.workers,
            source_retries=settings.source_retries,
        )
        options.update(kwargs)
        return cls(source, render, **options)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Request cancellation; in-flight render calls finish, no new ones start."""
        logger.info("Cancellation requested (state=%s)", self.state.value)
        self._cancel.set()

    def _transition(self, state: BuildState) -> None:
        logger.debug("Build state %s -> %s", self.state.value, state.value)
        self.state = state

    def _load(self, diagnostics: list[Diagnostic]) -> list[RawEntry]:
        """Materialize the loader stream, retrying the whole enumeration on SourceUnavailable."""
        attempts = self.source_retries + 1
        for attempt in range(1, attempts + 1):
            scratch: list[Diagnostic] = []
            try:
                entries = list(iter_entries(self.source, scratch))
            except SourceUnavailable as e:
                logger.warning("Content source unavailable (attempt %d/%d): %s", attempt, attempts, e.message)
                if attempt == attempts:
                    raise
                continue
            diagnostics.extend(scratch)
            logger.info("Loaded %d entr%s", len(entries), "y" if len(entries) == 1 else "ies")
            return entries
        raise InternalInvariantViolation("source retry loop exited without a result")

    def plan(self, reference_time: Union[datetime, date, None] = None) -> SitePlan:
        """Load, build, resolve, filter, and index without rendering.

        Raises SourceUnavailable when the source cannot be enumerated.
        """
        reference = to_utc(reference_time) if reference_time is not None else datetime.now(timezone.utc)
        diagnostics: list[Diagnostic] = []

        self._transition(BuildState.loading)
        entries = self._load(diagnostics)

        self._transition(BuildState.building)
        candidates, section_meta = build_documents(entries, diagnostics, self.content_dir, self.sections)
        resolved, duplicates = resolve_collisions(candidates)
        diagnostics.extend(duplicates)
        visible = filter_visible(resolved, reference, diagnostics)
        site = build_site_index(visible, self.page_size, self.taxonomies, section_meta)

        return SitePlan(
            site=site, documents=tuple(visible), reference_time=reference, diagnostics=tuple(diagnostics),
        )

    def _finish(self, state: BuildState, artifacts: dict, diagnostics: list[Diagnostic]) -> BuildResult:
        self._transition(state)
        result = BuildResult(state=state, artifacts=MappingProxyType(artifacts), diagnostics=tuple(diagnostics))
        logger.info("Build %s: %d artifact(s), %d error(s), %d warning(s)",
                    state.value, len(artifacts), len(result.errors), len(result.warnings))
        return result

    def run(self, reference_time: Union[datetime, date, None] = None) -> BuildResult:
        """Run a full build. reference_time defaults to now (UTC) and drives future-date filtering."""
        self._cancel.clear()
        try:
            try:
                plan = self.plan(reference_time)
            except SourceUnavailable as e:
                logger.error("Build failed: %s", e.message)
                return self._finish(BuildState.failed, {}, [e.to_diagnostic()])

            diagnostics = list(plan.diagnostics)
            if self.cancelled:
                return self._finish(BuildState.cancelled, {}, diagnostics)

            self._transition(BuildState.rendering)
            batch = render_documents(
                plan.documents, plan.site, self.render,
                workers=self.workers, cancel=self._cancel, cache=self.cache,
            )
            artifacts = dict(batch.artifacts)
            diagnostics.extend(batch.diagnostics)

            if self.render_list is not None and not self.cancelled:
                lists = render_list_pages(
                    plan.site, self.render_list, self.page_size,
                    taken={d.route for d in plan.documents},
                    workers=self.workers, cancel=self._cancel,
                )
                artifacts.update(lists.artifacts)
                diagnostics.extend(lists.diagnostics)

        except InternalInvariantViolation:
            self._transition(BuildState.failed)
            raise

        state = BuildState.cancelled if self.cancelled or batch.cancelled else BuildState.done
        return self._finish(state, artifacts, diagnostics)
