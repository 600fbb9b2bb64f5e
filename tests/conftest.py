"""Root test configuration: shared sources, renderers, and content helpers"""

from datetime import datetime, timezone

import pytest

from mdsite.core.errors import SourceUnavailable


REFERENCE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_text(body: str = "Body.\n", fmt: str = "yaml", **front_matter) -> str:
    """Render keyword front matter as a YAML or TOML block followed by body."""
    if not front_matter:
        return body
    if fmt == "toml":
        lines = []
        for key, value in front_matter.items():
            if isinstance(value, bool):
                lines.append(f"{key} = {str(value).lower()}")
            elif isinstance(value, list):
                lines.append(f"{key} = [{', '.join(repr(v).replace(chr(39), chr(34)) for v in value)}]")
            elif key in ("date", "publishDate"):
                lines.append(f"{key} = {value}")
            else:
                lines.append(f'{key} = "{value}"')
        return "+++\n" + "\n".join(lines) + "\n+++\n\n" + body
    lines = []
    for key, value in front_matter.items():
        if isinstance(value, bool):
            lines.append(f"{key}: {str(value).lower()}")
        elif isinstance(value, list):
            lines.append(f"{key}: [{', '.join(value)}]")
        else:
            lines.append(f"{key}: {value}")
    return "---\n" + "\n".join(lines) + "\n---\n\n" + body


def identity_render(doc, ctx) -> bytes:
    """Trivial renderer: the route and body, so artifacts are easy to assert on."""
    return f"{doc.route}\n{doc.body}".encode("utf-8")


class UnavailableSource:
    """A source whose enumeration always fails."""

    def __init__(self):
        self.calls = 0

    def enumerate(self):
        self.calls += 1
        raise SourceUnavailable("content source unavailable")


class FlakySource:
    """Fails the first `failures` enumerations, then delegates to `inner`."""

    def __init__(self, inner, failures: int = 1):
        self.inner = inner
        self.failures = failures
        self.calls = 0

    def enumerate(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise SourceUnavailable(f"flaky failure #{self.calls}")
        return self.inner.enumerate()


@pytest.fixture(name="make_text")
def make_text_fixture():
    return make_text


@pytest.fixture(name="render")
def render_fixture():
    return identity_render


@pytest.fixture(name="now")
def now_fixture():
    return REFERENCE_TIME


@pytest.fixture(name="unavailable_source")
def unavailable_source_fixture():
    return UnavailableSource()


@pytest.fixture(name="flaky_source")
def flaky_source_fixture():
    return FlakySource
