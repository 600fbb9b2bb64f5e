"""Document model builder: RawEntry -> Document with resolved identity"""

import logging
from datetime import date, datetime, time, timezone
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, Collection, Iterable, Optional, Union

from mdsite.core.errors import (
    Diagnostic, DiagnosticKind, InvalidFrontMatter, Severity, diagnostic,
)
from mdsite.core.models import ROOT_SECTION, Document, RawEntry, SectionMeta
from mdsite.core.parse import parse_front_matter
from mdsite.core.utils.slug import humanize, slugify


logger = logging.getLogger(__name__)

INDEX_STEMS = {'index', '_index'}
BRANCH_STEM = '_index'
RESERVED_KEYS = {'id', 'title', 'url', 'slug', 'section', 'date', 'publishDate', 'draft', 'tags', 'categories'}


def to_utc(value: Union[datetime, date]) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime; naive values are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time(), tzinfo=timezone.utc)


def _publish_time(fm: dict[str, Any], source_path: str) -> Optional[datetime]:
    key = 'publishDate' if fm.get('publishDate') is not None else 'date'
    value = fm.get(key)
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return to_utc(value)
    if isinstance(value, str):
        try:
            return to_utc(datetime.fromisoformat(value.strip()))
        except ValueError as e:
            raise InvalidFrontMatter(f"Invalid '{key}' value {value!r}: {e}", source_path) from e
    raise InvalidFrontMatter(f"Invalid '{key}' value: expected a date, got {type(value).__name__}", source_path)


def _string(fm: dict[str, Any], key: str, source_path: str) -> Optional[str]:
    value = fm.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise InvalidFrontMatter(f"Invalid '{key}': expected a string, got {type(value).__name__}", source_path)
    return str(value)


def _string_list(fm: dict[str, Any], key: str, source_path: str) -> tuple[str, ...]:
    value = fm.get(key)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, (str, int, float)) and not isinstance(v, bool) for v in value):
        return tuple(str(v) for v in value)
    raise InvalidFrontMatter(f"Invalid '{key}': expected a string or list of strings", source_path)


def _draft(fm: dict[str, Any], source_path: str) -> bool:
    value = fm.get('draft', False)
    if not isinstance(value, bool):
        raise InvalidFrontMatter(f"Invalid 'draft': expected true or false, got {value!r}", source_path)
    return value


def _segments(source_path: str, content_dir: str) -> tuple[tuple[str, ...], str]:
    """Return (address segments, file stem) for a source path below content_dir."""
    parts = PurePosixPath(source_path).parts
    if len(parts) > 1 and parts[0] == content_dir:
        parts = parts[1:]
    stem = PurePosixPath(parts[-1]).stem if parts else ''
    dirs = tuple(parts[:-1])
    if stem in INDEX_STEMS:
        return dirs, stem
    return dirs + (stem,), stem


def _route(segments: Iterable[str]) -> str:
    slugs = [s for s in (slugify(seg) for seg in segments) if s]
    return '/' + ''.join(f'{s}/' for s in slugs)


def section_route(section: str) -> str:
    return '/' if section == ROOT_SECTION else f'/{section}/'


def _section(
    fm: dict[str, Any],
    segments: tuple[str, ...],
    sections: Optional[Collection[str]],
    source_path: str,
    ) -> str:
    explicit = _string(fm, 'section', source_path)
    if explicit is not None:
        section = slugify(explicit)
        if not section:
            raise InvalidFrontMatter(f"Invalid 'section': {explicit!r}", source_path)
    elif len(segments) > 1:
        section = slugify(segments[0]) or ROOT_SECTION
    else:
        section = ROOT_SECTION

    if sections and section != ROOT_SECTION and section not in sections:
        raise InvalidFrontMatter(f"Unknown section {section!r} (allowed: {', '.join(sorted(sections))})", source_path)
    return section


def build_document(
    entry: RawEntry,
    content_dir: str = 'content',
    sections: Optional[Collection[str]] = None,
    ) -> Union[Document, SectionMeta]:
    """Convert one RawEntry into a Document (or SectionMeta for a top-level _index file).

    Raises InvalidFrontMatter when the front matter cannot be parsed or a field has the wrong type.
    """
    path = entry.source_path
    fm = parse_front_matter(entry.front_matter, entry.front_matter_format, path)
    segments, stem = _segments(path, content_dir)

    if stem == BRANCH_STEM and len(segments) <= 1:
        section = slugify(segments[0]) if segments else ROOT_SECTION
        section = section or ROOT_SECTION
        if sections and section != ROOT_SECTION and section not in sections:
            raise InvalidFrontMatter(f"Unknown section {section!r}", path)
        title = _string(fm, 'title', path) or (humanize(segments[0]) if segments else '')
        return SectionMeta(section=section, title=title, source_path=path)

    section = _section(fm, segments, sections, path)

    url = _string(fm, 'url', path)
    slug = _string(fm, 'slug', path)
    if url is not None:
        url = url.strip()
        if not url:
            raise InvalidFrontMatter("Invalid 'url': must not be empty", path)
        if '..' in url.split('/'):
            raise InvalidFrontMatter(f"Invalid 'url' {url!r}: parent segments are not allowed", path)
        route = url if url.startswith('/') else f'/{url}'
    elif slug is not None and slugify(slug):
        route = _route(segments[:-1] + (slug,))
    else:
        route = _route(segments)

    default_id = str(PurePosixPath(*segments)) if segments else stem or path
    title = _string(fm, 'title', path) or humanize(segments[-1] if segments else 'home')

    return Document(
        id=_string(fm, 'id', path) or default_id,
        route=route,
        section=section,
        title=title,
        body=entry.body,
        source_order=entry.discovered_order,
        source_path=path,
        publish_time=_publish_time(fm, path),
        draft=_draft(fm, path),
        tags=_string_list(fm, 'tags', path),
        categories=_string_list(fm, 'categories', path),
        params=MappingProxyType({k: v for k, v in fm.items() if k not in RESERVED_KEYS}),
    )


def build_documents(
    entries: Iterable[RawEntry],
    diagnostics: list[Diagnostic],
    content_dir: str = 'content',
    sections: Optional[Collection[str]] = None,
    ) -> tuple[list[Document], dict[str, SectionMeta]]:
    """Build Document candidates from entries; bad entries are recorded and excluded.

    Returns (candidates, section_meta). candidates may still contain duplicate routes.
    """
    candidates: list[Document] = []
    meta: dict[str, SectionMeta] = {}

    for entry in entries:
        try:
            built = build_document(entry, content_dir, sections)
        except InvalidFrontMatter as e:
            logger.warning("Excluding %s: %s", entry.source_path, e.message)
            diagnostics.append(e.to_diagnostic())
            continue

        if isinstance(built, SectionMeta):
            previous = meta.get(built.section)
            if previous is not None:
                diagnostics.append(diagnostic(
                    DiagnosticKind.duplicate_route_discarded,
                    f"Section metadata superseded by {built.source_path}",
                    severity=Severity.warning,
                    source_path=previous.source_path,
                    route=section_route(built.section),
                ))
            meta[built.section] = built
        else:
            candidates.append(built)

    return candidates, meta
