"""Content sources: enumerable collections of raw content items"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, Protocol, runtime_checkable

from mdsite.core.errors import BuildError, InvalidFrontMatter, SourceUnavailable
from mdsite.core.models import SourceItem
from mdsite.core.parse import discover_files, split_front_matter


logger = logging.getLogger(__name__)


@runtime_checkable
class ContentSource(Protocol):
    """Anything that can enumerate (path, front matter, body) items in a stable order."""

    def enumerate(self) -> Iterable[SourceItem]:
        ...


def item_from_text(path: str, text: str) -> SourceItem:
    """Split raw file text into a SourceItem; delimiter problems become item errors."""
    try:
        front_matter, fmt, body = split_front_matter(text, path)
    except InvalidFrontMatter as e:
        return SourceItem(path=path, body=text, error=e)
    return SourceItem(path=path, body=body, front_matter=front_matter, format=fmt)


class FileSystemSource:
    """Content files under a directory, enumerated in sorted path order.

    Item paths are POSIX paths relative to the parent of root, so a file
    site/content/blog/a.md read from root=site/content is reported as
    content/blog/a.md.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"FileSystemSource({str(self.root)!r})"

    def _relative(self, path: Path) -> str:
        return (Path(self.root.name) / path.relative_to(self.root)).as_posix()

    def _files(self) -> list[Path]:
        if not self.root.exists():
            raise SourceUnavailable(f"Content directory does not exist: {self.root}")
        if not self.root.is_dir():
            raise SourceUnavailable(f"Content source is not a directory: {self.root}")
        try:
            return discover_files(self.root)
        except OSError as e:
            raise SourceUnavailable(f"Cannot enumerate {self.root}: {e}") from e

    def enumerate(self) -> Iterator[SourceItem]:
        files = self._files()
        logger.debug("Discovered %d content file(s) under %s", len(files), self.root)
        for path in files:
            rel = self._relative(path)
            try:
                text = path.read_text(encoding='utf-8')
            except (OSError, UnicodeDecodeError) as e:
                yield SourceItem(path=rel, error=BuildError(f"Cannot read file: {e}", rel))
                continue
            yield item_from_text(rel, text)


class MemorySource:
    """In-memory source of (path, text) pairs, kept in the given order.

    Duplicate paths are allowed and preserved.
    """

    def __init__(self, entries: Iterable[tuple[str, str]] = ()):
        self._entries = list(entries)

    def add(self, path: str, text: str) -> None:
        self._entries.append((path, text))

    def enumerate(self) -> Iterator[SourceItem]:
        for path, text in self._entries:
            yield item_from_text(path, text)
