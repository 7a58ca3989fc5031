"""Code-repository link extraction from abstracts."""

from __future__ import annotations

import re
from urllib.parse import urlparse

CODE_HOST_DOMAINS: tuple[str, ...] = (
    "github.com",
    "gitlab.com",
    "bitbucket.org",
    "huggingface.co",
    "zenodo.org",
)

_URL_RE = re.compile(
    r"https?://(?:www\.)?(?:" + "|".join(re.escape(d) for d in CODE_HOST_DOMAINS) + r")/[^\s<>\"')\]]+",
    re.IGNORECASE,
)
_TRAILING_PUNCTUATION = ".,;:!?"


def extract_code_links(text: str) -> tuple[str, ...]:
    """Return deduplicated code-hosting URLs in first-seen order."""
    links: list[str] = []
    seen: set[str] = set()
    for match in _URL_RE.finditer(text or ""):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if not is_code_link(url):
            continue
        key = url.lower()
        if key in seen:
            continue
        seen.add(key)
        links.append(url)
    return tuple(links)


def is_code_link(url: str) -> bool:
    """True for a well-formed http(s) URL on a known code host with a path."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in {"http", "https"}:
        return False
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    if host not in CODE_HOST_DOMAINS:
        return False
    return bool(parsed.path.strip("/"))


def primary_repository(links: tuple[str, ...]) -> str | None:
    """First GitHub link, used as the record's headline repository."""
    for link in links:
        if urlparse(link).hostname in {"github.com", "www.github.com"}:
            return link
    return None
