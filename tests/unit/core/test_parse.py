"""Unit tests for core/parse.py"""

import datetime

import pytest

from mdsite.core.errors import InvalidFrontMatter
from mdsite.core.parse import discover_files, parse_front_matter, split_front_matter


def test_split_yaml_front_matter():
    """YAML block between --- lines is split from the body."""
    fm, fmt, body = split_front_matter("---\ntitle: Hello\n---\n# Body\n")
    assert fm == "title: Hello\n"
    assert fmt == "yaml"
    assert body == "# Body\n"


def test_split_toml_front_matter():
    """TOML block between +++ lines is split from the body."""
    fm, fmt, body = split_front_matter('+++\ntitle = "Hello"\n+++\n\nBody\n')
    assert fm == 'title = "Hello"\n'
    assert fmt == "toml"
    assert body == "Body\n"


def test_split_no_front_matter():
    """Text without an opening delimiter is all body."""
    text = "# No front matter\n"
    assert split_front_matter(text) == (None, None, text)


def test_split_empty_text():
    assert split_front_matter("") == (None, None, "")


def test_split_closing_delimiter_at_eof():
    """A closing delimiter without a trailing newline still closes the block."""
    fm, fmt, body = split_front_matter("---\ntitle: T\n---")
    assert fm == "title: T\n"
    assert body == ""


def test_split_strips_bom():
    fm, fmt, _ = split_front_matter("\ufeff---\ntitle: T\n---\nBody\n")
    assert fmt == "yaml"


def test_split_unclosed_raises():
    """An opening delimiter that never closes is invalid front matter."""
    with pytest.raises(InvalidFrontMatter, match="Unclosed"):
        split_front_matter("---\ntitle: T\nBody\n", "content/a.md")


def test_split_mismatched_delimiters_raise():
    """A YAML opener is not closed by a TOML delimiter."""
    with pytest.raises(InvalidFrontMatter):
        split_front_matter("---\ntitle: T\n+++\nBody\n")


def test_parse_yaml_types():
    """YAML dates, booleans, and lists come through as typed values."""
    fm = parse_front_matter("date: 2024-01-09\ndraft: true\ntags: [a, b]\n", "yaml")
    assert fm == {"date": datetime.date(2024, 1, 9), "draft": True, "tags": ["a", "b"]}


def test_parse_toml_types():
    fm = parse_front_matter('date = 2024-01-09T10:00:00Z\ndraft = false\ntags = ["x"]\n', "toml")
    assert fm["date"] == datetime.datetime(2024, 1, 9, 10, tzinfo=datetime.timezone.utc)
    assert fm["draft"] is False
    assert fm["tags"] == ["x"]


@pytest.mark.parametrize("text", [None, "", "   \n"])
def test_parse_empty_is_empty_mapping(text):
    assert parse_front_matter(text, "yaml") == {}


def test_parse_invalid_yaml():
    with pytest.raises(InvalidFrontMatter, match="Invalid YAML"):
        parse_front_matter("key: [unclosed\n", "yaml", "content/a.md")


def test_parse_invalid_toml():
    with pytest.raises(InvalidFrontMatter, match="Invalid TOML"):
        parse_front_matter("title = \n", "toml")


def test_parse_non_mapping_rejected():
    """A YAML scalar or list is not a usable front matter mapping."""
    with pytest.raises(InvalidFrontMatter, match="expected a mapping"):
        parse_front_matter("- just\n- a list\n", "yaml")


def test_parse_error_carries_source_path():
    with pytest.raises(InvalidFrontMatter) as exc:
        parse_front_matter("key: [unclosed\n", "yaml", "content/bad.md")
    assert exc.value.source_path == "content/bad.md"


def test_discover_files_single(tmp_path):
    """discover_files returns a list with one file when given a file path."""
    f = tmp_path / "doc.md"
    f.write_text("# Hello")
    assert discover_files(f) == [f]


def test_discover_files_skips_other_suffixes(tmp_path):
    (tmp_path / "notes.txt").write_text("text")
    (tmp_path / "image.png").write_bytes(b"\x89PNG")
    assert discover_files(tmp_path) == []


def test_discover_files_sorted_and_recursive(tmp_path):
    """Content files are found recursively and returned in sorted order."""
    (tmp_path / "b.md").write_text("b")
    (tmp_path / "a.markdown").write_text("a")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "c.mdx").write_text("c")
    files = discover_files(tmp_path)
    assert files == sorted(files)
    assert len(files) == 3


def test_discover_files_skips_hidden(tmp_path):
    hidden = tmp_path / ".drafts"
    hidden.mkdir()
    (hidden / "a.md").write_text("a")
    (tmp_path / ".b.md").write_text("b")
    (tmp_path / "c.md").write_text("c")
    assert [p.name for p in discover_files(tmp_path)] == ["c.md"]


@pytest.mark.parametrize("text,fmt", [
    ("title: A\nauthor: me\n2024: yes\n", "yaml"),
    ("title: A\ntrue: 1\n", "yaml"),
])
def test_parse_non_string_keys_rejected(text, fmt):
    """Top-level keys must be strings; YAML int or bool keys are invalid front matter."""
    with pytest.raises(InvalidFrontMatter, match="keys must be strings") as exc:
        parse_front_matter(text, fmt, "content/blog/a.md")
    assert exc.value.source_path == "content/blog/a.md"


def test_parse_nested_non_string_keys_allowed():
    fm = parse_front_matter("meta:\n  1: one\n  b: two\n", "yaml")
    assert fm == {"meta": {1: "one", "b": "two"}}
