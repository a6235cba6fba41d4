"""Filesystem-safe names for exported sheets and images."""

import hashlib
import posixpath
import re
from urllib.parse import unquote, urlsplit

_UNSAFE_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')


def sanitize_filename(name: str, fallback: str = "sheet") -> str:
    """Replace characters that aren't allowed in file names.

    Trailing dots and spaces are stripped (Windows drops them silently).
    """
    cleaned = _UNSAFE_CHARS_RE.sub("_", name).rstrip(". ")
    if cleaned in ("", ".", ".."):
        return fallback
    return cleaned


def unique_sheet_names(titles: list[str]) -> list[str]:
    """Map sheet titles to distinct, filesystem-safe base names.

    Names are compared case-insensitively. The first title keeps its
    sanitized name, later collisions get ``-2``, ``-3``, ... in order.
    """
    used: set[str] = set()
    names = []
    for title in titles:
        base = sanitize_filename(title)
        name = base
        n = 2
        while name.lower() in used:
            name = f"{base}-{n}"
            n += 1
        used.add(name.lower())
        names.append(name)
    return names


def url_digest(url: str) -> str:
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:8]


def image_filename(url: str) -> str:
    """Derive a file name from the last path segment of an image URL."""
    try:
        path = unquote(urlsplit(url).path)
    except ValueError:
        # Malformed URLs still get a name, the download reports the failure
        return "image"
    return sanitize_filename(posixpath.basename(path), fallback="image")


def unique_image_names(urls: list[str]) -> dict[str, str]:
    """Assign each distinct URL a file name, unique within one directory.

    When two URLs share a name, the later one gets the first 8 hex digits of
    the URL's sha1 inserted before the extension.
    """
    used: set[str] = set()
    names: dict[str, str] = {}
    for url in urls:
        if url in names:
            continue
        name = image_filename(url)
        if name.lower() in used:
            stem, ext = posixpath.splitext(name)
            name = f"{stem}-{url_digest(url)}{ext}"
        used.add(name.lower())
        names[url] = name
    return names
