"""Minimal HTML theme: markdown-it body rendering plus plain page chrome"""

import threading
from html import escape

from markdown_it import MarkdownIt

from mdsite.core.models import Document, ListPage, SiteIndex
from mdsite.core.render import RenderContext
from mdsite.core.utils.slug import slugify


PAGE = """\
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title} | {site_title}</title>
</head>
<body>
<header><a href="/">{site_title}</a>{sections}</header>
<main>
{main}
</main>
</body>
</html>
"""


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def _link(doc: Document, rel: str) -> str:
    return f'<a rel="{rel}" href="{escape(doc.route)}">{escape(doc.title)}</a>'


class BasicTheme:
    """Renders documents and list pages to UTF-8 HTML bytes.

    One MarkdownIt parser per thread, so render workers never share parser state.
    """

    def __init__(self, site_title: str = "My Site", parser_config: str = "gfm-like"):
        self.site_title = site_title
        self.parser_config = parser_config
        self._local = threading.local()

    @property
    def parser(self) -> MarkdownIt:
        md = getattr(self._local, "md", None)
        if md is None:
            md = self._local.md = _make_parser(self.parser_config)
        return md

    def _page(self, title: str, main: str, site: SiteIndex) -> bytes:
        nav = "".join(
            f' <a href="{escape(s.route)}">{escape(s.title)}</a>'
            for s in site.sections.values() if s.route != "/"
        )
        return PAGE.format(
            title=escape(title), site_title=escape(self.site_title), sections=nav, main=main,
        ).encode("utf-8")

    def render(self, doc: Document, ctx: RenderContext) -> bytes:
        meta = []
        if doc.publish_time is not None:
            meta.append(f'<time datetime="{doc.publish_time.isoformat()}">{doc.publish_time:%Y-%m-%d}</time>')
        meta.extend(f'<a rel="tag" href="/tags/{slugify(t)}/">{escape(t)}</a>' for t in doc.tags)

        nav = []
        if ctx.newer is not None:
            nav.append(_link(ctx.newer, "prev"))
        nav.append(f'<a rel="up" href="{escape(ctx.page.route)}">{escape(ctx.section.title)}</a>')
        if ctx.older is not None:
            nav.append(_link(ctx.older, "next"))

        main = (
            f"<article>\n<h1>{escape(doc.title)}</h1>\n"
            f"<p class=\"meta\">{' '.join(meta)}</p>\n"
            f"{self.parser.render(doc.body)}</article>\n"
            f"<nav>{' | '.join(nav)}</nav>"
        )
        return self._page(doc.title, main, ctx.site)

    def render_list(self, page: ListPage, site: SiteIndex) -> bytes:
        items = "\n".join(
            f"<li>{_link(d, 'bookmark')}"
            + (f" <time>{d.publish_time:%Y-%m-%d}</time>" if d.publish_time else "")
            + "</li>"
            for d in page.documents
        )
        pager = []
        if page.prev_route:
            pager.append(f'<a rel="prev" href="{escape(page.prev_route)}">Newer</a>')
        if page.total_pages > 1:
            pager.append(f"Page {page.page.number} of {page.total_pages}")
        if page.next_route:
            pager.append(f'<a rel="next" href="{escape(page.next_route)}">Older</a>')

        main = f"<h1>{escape(page.title)}</h1>\n<ul>\n{items}\n</ul>\n<nav>{' | '.join(pager)}</nav>"
        return self._page(page.title, main, site)
