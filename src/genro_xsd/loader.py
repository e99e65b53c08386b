# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SchemaLoader - retrieve schema documents from files, URLs or raw text."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urljoin

from genro_toolbox import smartasync

logger = logging.getLogger(__name__)

URL_SCHEMES = ("http://", "https://")


def is_url(location: str) -> bool:
    return location.startswith(URL_SCHEMES)


def decode_source(data: bytes | str) -> str:
    """Decode document bytes as UTF-8 and drop a leading byte-order mark."""
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig")
    return data.lstrip("\ufeff")


class SchemaLoader:
    """Load XSD documents.

    A source is one of:
        - a Path or a file path string
        - an http(s) URL, fetched with httpx
        - raw XSD text (anything containing ``<``)

    Args:
        timeout: HTTP request timeout in seconds. Default 30.
    """

    def __init__(self, timeout: float = 30):
        self.timeout = timeout

    def load(self, source: str | Path, base: str | None = None) -> str:
        """Return the decoded text of a schema document.

        Args:
            source: Path, URL or raw text.
            base: Location of the referring document, for relative paths.
        """
        if isinstance(source, Path):
            return decode_source(source.read_bytes())
        if "<" in source:
            return decode_source(source)
        location = self.resolve(source, base)
        if is_url(location):
            logger.debug("Fetching %s", location)
            return decode_source(self.fetch(location))
        logger.debug("Reading %s", location)
        return decode_source(Path(location).read_bytes())

    def resolve(self, location: str, base: str | None = None) -> str:
        """Resolve ``location`` against the location of the referring document."""
        if is_url(location) or base is None:
            return location
        if is_url(base):
            return urljoin(base, location)
        return str(Path(base).parent / location)

    @smartasync
    async def fetch(self, url: str) -> bytes:
        """Fetch URL content."""
        import httpx

        async with httpx.AsyncClient() as client:
            response = await client.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.content
