"""Content loader: turn a content source into a lazy stream of RawEntry"""

import logging
from typing import Iterator

from mdsite.core.errors import Diagnostic
from mdsite.core.models import RawEntry
from mdsite.core.source import ContentSource


logger = logging.getLogger(__name__)


def iter_entries(source: ContentSource, diagnostics: list[Diagnostic]) -> Iterator[RawEntry]:
    """Yield RawEntry objects in source enumeration order.

    Items the source could not read or split are appended to diagnostics and
    skipped; discovered_order still counts them so it mirrors scan position.
    SourceUnavailable from the source propagates to the caller.
    """
    for order, item in enumerate(source.enumerate()):
        if item.error is not None:
            logger.warning("Skipping %s: %s", item.path, item.error.message)
            diagnostics.append(item.error.to_diagnostic())
            continue
        yield RawEntry(
            source_path=item.path,
            front_matter=item.front_matter,
            front_matter_format=item.format,
            body=item.body,
            discovered_order=order,
        )
