"""Index builder: section ordering, pagination boundaries, and taxonomy indices"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from mdsite.core.documents import section_route
from mdsite.core.errors import InternalInvariantViolation
from mdsite.core.models import (
    ROOT_SECTION, Document, Page, SectionIndex, SectionMeta, SiteIndex, TaxonomyIndex, TermIndex,
)
from mdsite.core.utils.slug import humanize, slugify


DEFAULT_TAXONOMIES = ('tags', 'categories')


def order_key(doc: Document) -> tuple[bool, float, int]:
    """Newest first, undated after every dated document, source_order breaks exact ties."""
    if doc.publish_time is None:
        return True, 0.0, doc.source_order
    return False, -doc.publish_time.timestamp(), doc.source_order


def page_route(base: str, number: int) -> str:
    """Page 1 lives at the list route itself; page N at <base>page/N/."""
    return base if number == 1 else f"{base}page/{number}/"


def paginate(count: int, page_size: int, base_route: str) -> tuple[Page, ...]:
    """Split count ordered items into pages. page_size <= 0 means a single page."""
    if count == 0:
        return (Page(number=1, start=0, stop=0, route=base_route),)
    size = page_size if page_size > 0 else count
    return tuple(
        Page(number=n + 1, start=start, stop=min(start + size, count), route=page_route(base_route, n + 1))
        for n, start in enumerate(range(0, count, size))
    )


def build_section_index(
    name: str,
    documents: Iterable[Document],
    page_size: int,
    title: Optional[str] = None,
    ) -> SectionIndex:
    ordered = tuple(sorted(documents, key=order_key))
    route = section_route(name)
    return SectionIndex(
        name=name,
        route=route,
        title=title or ('Home' if name == ROOT_SECTION else humanize(name)),
        documents=ordered,
        page_size=page_size,
        pages=paginate(len(ordered), page_size, route),
    )


def build_taxonomy_index(name: str, documents: Iterable[Document]) -> TaxonomyIndex:
    """Group documents by term slug; the first spelling seen (in section order) names the term."""
    base = f"/{slugify(name)}/"
    grouped: dict[str, list[Document]] = {}
    labels: dict[str, str] = {}
    for doc in sorted(documents, key=order_key):
        slugs = dict.fromkeys(s for s in (slugify(t) for t in doc.terms(name)) if s)
        for term in doc.terms(name):
            labels.setdefault(slugify(term), term)
        for slug in slugs:
            grouped.setdefault(slug, []).append(doc)

    terms = {
        slug: TermIndex(term=labels[slug], slug=slug, route=f"{base}{slug}/", documents=tuple(docs))
        for slug, docs in sorted(grouped.items())
    }
    return TaxonomyIndex(name=name, route=base, terms=MappingProxyType(terms))


def build_site_index(
    documents: Iterable[Document],
    page_size: int = 10,
    taxonomies: Iterable[str] = DEFAULT_TAXONOMIES,
    section_meta: Optional[Mapping[str, SectionMeta]] = None,
    ) -> SiteIndex:
    """Group visible documents by section and build every derived navigation view.

    Raises InternalInvariantViolation if a document reaches indexing without a section.
    """
    docs = list(documents)
    grouped: dict[str, list[Document]] = {}
    for doc in docs:
        if not doc.section:
            raise InternalInvariantViolation(
                f"Document {doc.id!r} has no section assigned", doc.source_path, doc.route,
            )
        grouped.setdefault(doc.section, []).append(doc)

    meta = section_meta or {}
    sections = {
        name: build_section_index(name, members, page_size, meta[name].title if name in meta else None)
        for name, members in sorted(grouped.items())
    }
    taxonomy_indices = {name: build_taxonomy_index(name, docs) for name in taxonomies}
    return SiteIndex(sections=MappingProxyType(sections), taxonomies=MappingProxyType(taxonomy_indices))
