"""Immutable data models flowing through the build pipeline"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from mdsite.core.errors import BuildError, Diagnostic, Severity


ROOT_SECTION = "/"


class BuildState(str, Enum):
    """Orchestrator states; Done, Failed and Cancelled are terminal."""
    idle = "idle"
    loading = "loading"
    building = "building"
    rendering = "rendering"
    done = "done"
    failed = "failed"
    cancelled = "cancelled"


@dataclass(frozen=True)
class SourceItem:
    """One location yielded by a content source, before any structured parsing."""
    path:        str
    body:        str = ""
    front_matter: Optional[str] = None   # raw text between the delimiters
    format:      Optional[str] = None    # "yaml" | "toml" | None
    error:       Optional[BuildError] = None   # set when the location could not be read or split


@dataclass(frozen=True)
class RawEntry:
    """One physical content unit as discovered by the loader."""
    source_path:         str
    front_matter:        Optional[str]
    front_matter_format: Optional[str]
    body:                str
    discovered_order:    int


@dataclass(frozen=True)
class Document:
    """The canonical content unit after identity resolution."""
    id:           str
    route:        str
    section:      str
    title:        str
    body:         str
    source_order: int
    source_path:  str
    publish_time: Optional[datetime] = None
    draft:        bool = False
    tags:         tuple[str, ...] = ()
    categories:   tuple[str, ...] = ()
    params:       Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def dated(self) -> bool:
        return self.publish_time is not None

    def terms(self, taxonomy: str) -> tuple[str, ...]:
        """Terms of a taxonomy; tags and categories are first-class, others come from params."""
        if taxonomy == "tags":
            return self.tags
        if taxonomy == "categories":
            return self.categories
        value = self.params.get(taxonomy, ())
        if isinstance(value, str):
            return (value,)
        return tuple(str(v) for v in value) if isinstance(value, (list, tuple)) else ()


@dataclass(frozen=True)
class SectionMeta:
    """Section-level front matter taken from a branch bundle (_index.md)."""
    section:     str
    title:       str
    source_path: str


@dataclass(frozen=True)
class Page:
    """Pagination boundary: documents[start:stop] of a section live on this page."""
    number: int
    start:  int
    stop:   int
    route:  str


@dataclass(frozen=True)
class SectionIndex:
    """Ordered view of one section's documents plus pagination boundaries."""
    name:      str
    route:     str
    title:     str
    documents: tuple[Document, ...]
    page_size: int
    pages:     tuple[Page, ...]

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, route: str) -> bool:
        return route in self._positions

    @property
    def routes(self) -> tuple[str, ...]:
        return tuple(d.route for d in self.documents)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(d.id for d in self.documents)

    @cached_property
    def _positions(self) -> dict[str, int]:
        return {d.route: i for i, d in enumerate(self.documents)}

    def position(self, route: str) -> int:
        """Index of route within the section ordering; KeyError if absent."""
        return self._positions[route]

    def neighbours(self, route: str) -> tuple[Optional[Document], Optional[Document]]:
        """Return (newer, older) documents around route, None at either end."""
        i = self.position(route)
        newer = self.documents[i - 1] if i > 0 else None
        older = self.documents[i + 1] if i + 1 < len(self.documents) else None
        return newer, older

    def page_of(self, route: str) -> Page:
        i = self.position(route)
        for page in self.pages:
            if page.start <= i < page.stop:
                return page
        raise KeyError(route)

    def page_documents(self, page: Page) -> tuple[Document, ...]:
        return self.documents[page.start:page.stop]


@dataclass(frozen=True)
class TermIndex:
    """Documents carrying one taxonomy term, in section ordering."""
    term:      str
    slug:      str
    route:     str
    documents: tuple[Document, ...]

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)


@dataclass(frozen=True)
class TaxonomyIndex:
    name:  str
    route: str
    terms: Mapping[str, TermIndex]


@dataclass(frozen=True)
class SiteIndex:
    """Every derived view a renderer may need for navigation."""
    sections:   Mapping[str, SectionIndex]
    taxonomies: Mapping[str, TaxonomyIndex] = field(default_factory=lambda: MappingProxyType({}))

    def section_for(self, document: Document) -> Optional[SectionIndex]:
        """The SectionIndex holding document, or None if it was never indexed."""
        section = self.sections.get(document.section)
        if section is None or document.route not in section:
            return None
        return section

    @property
    def documents(self) -> tuple[Document, ...]:
        return tuple(d for s in self.sections.values() for d in s)


@dataclass(frozen=True)
class ListPage:
    """One paginated list page (section or taxonomy term) handed to a list renderer."""
    kind:      str              # "section" | "term"
    name:      str              # section name or "<taxonomy>/<term>"
    title:     str
    route:     str
    page:      Page
    total_pages: int
    documents: tuple[Document, ...]
    prev_route: Optional[str] = None
    next_route: Optional[str] = None


@dataclass(frozen=True)
class BuildResult:
    """Output of one build: route -> artifact bytes plus ordered diagnostics."""
    state:       BuildState
    artifacts:   Mapping[str, bytes]
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == Severity.error)

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == Severity.warning)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def failed(self, strict: bool = False) -> bool:
        """True if a caller should treat this build as unsuccessful."""
        if self.state != BuildState.done or self.has_errors:
            return True
        return strict and bool(self.warnings)
