"""Slug generation for route segments and taxonomy terms"""

import re


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated URL-safe slug."""
    text = text.lower()
    text = re.sub(r'[^\w\s.-]', '', text)
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-.')


def humanize(segment: str) -> str:
    """Turn a file stem like 'my-first_post' into a title ('My first post')."""
    words = re.sub(r'[-_]+', ' ', segment).strip()
    return words[:1].upper() + words[1:] if words else segment
