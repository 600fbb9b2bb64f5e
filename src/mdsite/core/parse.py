"""File discovery, front matter splitting, and structured front matter parsing"""

import tomllib
from pathlib import Path
from typing import Any, Optional

import yaml

from mdsite.core.errors import InvalidFrontMatter


MD_EXTENSIONS = {'.md', '.markdown', '.mdx'}
DELIMITERS = {'---': 'yaml', '+++': 'toml'}


def split_front_matter(text: str, source_path: str = None) -> tuple[Optional[str], Optional[str], str]:
    """Return (front_matter_text, format, body) for a raw content file.

    Entries without an opening delimiter on the first line have no front matter.
    An opening delimiter that is never closed raises InvalidFrontMatter.
    """
    text = text.lstrip('\ufeff')
    lines = text.splitlines(keepends=True)
    if not lines:
        return None, None, text

    opening = lines[0].strip()
    fmt = DELIMITERS.get(opening)
    if fmt is None:
        return None, None, text

    for i in range(1, len(lines)):
        if lines[i].strip() == opening:
            fm_text = ''.join(lines[1:i])
            body = ''.join(lines[i + 1:]).lstrip('\n')
            return fm_text, fmt, body

    raise InvalidFrontMatter(f"Unclosed {fmt.upper()} front matter (missing closing '{opening}')", source_path)


def parse_front_matter(text: Optional[str], fmt: Optional[str], source_path: str = None) -> dict[str, Any]:
    """Parse a raw front matter block into a mapping. Empty or absent blocks give {}."""
    if text is None or not text.strip():
        return {}

    try:
        if fmt == 'toml':
            data = tomllib.loads(text)
        elif fmt == 'yaml':
            data = yaml.safe_load(text)
        else:
            raise InvalidFrontMatter(f"Unknown front matter format: {fmt!r}", source_path)
    except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise InvalidFrontMatter(f"Invalid {fmt.upper()} front matter: {e}", source_path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidFrontMatter(
            f"Invalid {fmt.upper()} front matter: expected a mapping, got {type(data).__name__}",
            source_path,
        )
    bad_keys = [k for k in data if not isinstance(k, str)]
    if bad_keys:
        raise InvalidFrontMatter(
            f"Invalid {fmt.upper()} front matter: keys must be strings, got {bad_keys[0]!r}",
            source_path,
        )
    return data


def _visible(path: Path, root: Path) -> bool:
    """Skip hidden files/directories and symlinks below root."""
    rel = path.relative_to(root)
    if any(part.startswith('.') for part in rel.parts):
        return False
    return not path.is_symlink()


def discover_files(path: Path) -> list[Path]:
    """Return sorted content files under path, or [path] if a single content file."""
    if path.is_file():
        return [path] if path.suffix.lower() in MD_EXTENSIONS else []
    return sorted(
        p for p in path.rglob('*')
        if p.suffix.lower() in MD_EXTENSIONS and p.is_file() and _visible(p, path)
    )
