"""HTML parsing helpers for scraped download pages."""

from __future__ import annotations

import re
from urllib.parse import urljoin

from lxml import html
from lxml.etree import ParserError

from versiontracker.models.release import DownloadAsset

APACHE_LOUNGE_URL = "https://www.apachelounge.com/download/"

_APACHE_BINARY_RE = re.compile(r"/download/[^\"]+/binaries/(httpd-(\d+\.\d+\.\d+)[^/\"]*-win64[^/\"]*\.zip)$")


def parse_apache_lounge_binaries(page_html: str, *, base_url: str = APACHE_LOUNGE_URL) -> dict[str, DownloadAsset]:
    """Map Apache httpd versions to their first listed win64 binary zip on ApacheLounge."""

    try:
        tree = html.fromstring(page_html)
    except (ParserError, ValueError):
        return {}

    binaries: dict[str, DownloadAsset] = {}
    for href in tree.xpath("//a/@href"):
        match = _APACHE_BINARY_RE.search(str(href))
        if match is None:
            continue
        filename, version = match.group(1), match.group(2)
        binaries.setdefault(
            version,
            DownloadAsset(name=filename, url=urljoin(base_url, str(href)), type="binaries", arch="x64"),
        )
    return binaries
