"""
Key document fetcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from shared.logging import get_logger

from .transport import Transport

_MAX_SECONDS = timedelta.max.days * 86400


@dataclass(frozen=True)
class FetchResult:
    """Raw key document plus the freshness hint from the response, if any."""

    document: bytes
    freshness_hint: Optional[timedelta] = None


def parse_max_age(cache_control: Optional[str]) -> Optional[timedelta]:
    """Return the ``max-age`` of a Cache-Control value, or None.

    Only the first ``max-age`` directive counts; a value that is not a
    non-negative decimal integer yields None.
    """
    if not cache_control:
        return None

    for directive in cache_control.split(","):
        name, sep, value = directive.strip().partition("=")
        if name.strip().lower() != "max-age" or not sep:
            continue
        value = value.strip().strip('"')
        if not value.isascii() or not value.isdigit():
            return None
        seconds = int(value)
        if seconds > _MAX_SECONDS:
            return None
        return timedelta(seconds=seconds)

    return None


class KeyFetcher:
    """Performs one retrieval of the key document per call."""

    def __init__(self, url: str, transport: Transport, *, honor_cache_control: bool = True) -> None:
        self.url = url
        self.transport = transport
        self.honor_cache_control = honor_cache_control
        self.logger = get_logger("payment_keys.fetcher")

    async def fetch(self) -> FetchResult:
        """Fetch the document; transport failures propagate unchanged."""
        response = await self.transport.get(self.url)

        hint = None
        if self.honor_cache_control:
            cache_control = response.header("cache-control")
            hint = parse_max_age(cache_control)
            if cache_control and hint is None:
                self.logger.debug("Ignoring Cache-Control without usable max-age", cache_control=cache_control)

        self.logger.debug(
            "Fetched key document",
            url=self.url,
            size_bytes=len(response.body),
            freshness_hint_seconds=int(hint.total_seconds()) if hint is not None else None,
        )
        return FetchResult(document=response.body, freshness_hint=hint)
