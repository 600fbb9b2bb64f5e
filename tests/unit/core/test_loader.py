"""Unit tests for core/source.py and core/loader.py"""

import pytest

from mdsite.core.errors import DiagnosticKind, Severity, SourceUnavailable
from mdsite.core.loader import iter_entries
from mdsite.core.models import RawEntry
from mdsite.core.source import ContentSource, FileSystemSource, MemorySource


@pytest.fixture(name="content_dir")
def content_dir_fixture(tmp_path):
    root = tmp_path / "content"
    (root / "blog").mkdir(parents=True)
    (root / "about.md").write_text("---\ntitle: About\n---\nAbout us.\n")
    (root / "blog" / "b.md").write_text("+++\ntitle = \"B\"\n+++\nB body.\n")
    (root / "blog" / "a.md").write_text("A body, no front matter.\n")
    return root


# --- FileSystemSource ---

def test_filesystem_source_paths_relative_to_parent(content_dir):
    """Item paths start with the content directory name and use forward slashes."""
    paths = [item.path for item in FileSystemSource(content_dir).enumerate()]
    assert paths == ["content/about.md", "content/blog/a.md", "content/blog/b.md"]


def test_filesystem_source_splits_front_matter(content_dir):
    items = {item.path: item for item in FileSystemSource(content_dir).enumerate()}
    assert items["content/about.md"].format == "yaml"
    assert items["content/about.md"].front_matter == "title: About\n"
    assert items["content/blog/b.md"].format == "toml"
    assert items["content/blog/a.md"].front_matter is None
    assert items["content/blog/a.md"].body == "A body, no front matter.\n"


def test_filesystem_source_missing_root(tmp_path):
    """A missing content directory cannot be enumerated at all."""
    with pytest.raises(SourceUnavailable, match="does not exist"):
        list(FileSystemSource(tmp_path / "nope").enumerate())


def test_filesystem_source_root_is_file(tmp_path):
    f = tmp_path / "content"
    f.write_text("not a dir")
    with pytest.raises(SourceUnavailable, match="not a directory"):
        list(FileSystemSource(f).enumerate())


def test_filesystem_source_invalid_utf8_is_item_error(content_dir):
    """An unreadable file becomes an error item instead of aborting enumeration."""
    (content_dir / "broken.md").write_bytes(b"\xff\xfe\x00bad")
    items = list(FileSystemSource(content_dir).enumerate())
    broken = [i for i in items if i.path == "content/broken.md"]
    assert len(items) == 4
    assert broken[0].error is not None
    assert broken[0].error.kind == DiagnosticKind.invalid_entry


def test_sources_satisfy_protocol(content_dir):
    assert isinstance(FileSystemSource(content_dir), ContentSource)
    assert isinstance(MemorySource(), ContentSource)


# --- MemorySource ---

def test_memory_source_keeps_duplicates_in_order():
    """Duplicate paths are preserved rather than rejected."""
    source = MemorySource([("content/blog/a.md", "one"), ("content/blog/a.md", "two")])
    source.add("content/blog/b.md", "three")
    assert [(i.path, i.body) for i in source.enumerate()] == [
        ("content/blog/a.md", "one"), ("content/blog/a.md", "two"), ("content/blog/b.md", "three"),
    ]


def test_memory_source_is_restartable():
    source = MemorySource([("a.md", "x")])
    assert list(source.enumerate()) == list(source.enumerate())


# --- iter_entries ---

def test_iter_entries_yields_raw_entries(content_dir):
    diagnostics = []
    entries = list(iter_entries(FileSystemSource(content_dir), diagnostics))
    assert all(isinstance(e, RawEntry) for e in entries)
    assert [e.discovered_order for e in entries] == [0, 1, 2]
    assert diagnostics == []


def test_iter_entries_is_lazy():
    """Nothing is read until the stream is consumed."""
    class Exploding:
        def enumerate(self):
            raise SourceUnavailable("boom")

    stream = iter_entries(Exploding(), [])
    with pytest.raises(SourceUnavailable):
        next(stream)


def test_iter_entries_skips_malformed_entry():
    """An unclosed front matter block is reported and skipped; the rest still load."""
    source = MemorySource([
        ("content/a.md", "---\ntitle: A\n---\nA"),
        ("content/bad.md", "---\ntitle: never closed\n"),
        ("content/c.md", "C"),
    ])
    diagnostics = []
    entries = list(iter_entries(source, diagnostics))

    assert [e.source_path for e in entries] == ["content/a.md", "content/c.md"]
    assert [e.discovered_order for e in entries] == [0, 2]
    assert len(diagnostics) == 1
    assert diagnostics[0].kind == DiagnosticKind.invalid_front_matter
    assert diagnostics[0].severity == Severity.error
    assert diagnostics[0].source_path == "content/bad.md"


def test_iter_entries_empty_source():
    diagnostics = []
    assert list(iter_entries(MemorySource(), diagnostics)) == []
    assert diagnostics == []
