"""
Payment signing key provider.

Public facade over the key cache: callers ask for the keys of a protocol
version and get them from the cached snapshot, which is refreshed from the
key endpoint when its freshness window has elapsed.
"""

from __future__ import annotations

from datetime import timedelta
from typing import List, Mapping, Optional, Protocol, Union

from shared.config import KeyProviderConfig, get_config
from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .caching.cache import DEFAULT_FRESHNESS, KeyCache
from .caching.coordinator import RefreshCoordinator
from .clock import SYSTEM_CLOCK, Clock
from .fetch.fetcher import KeyFetcher
from .fetch.transport import HttpxTransport, StaticTransport, Transport
from .keys.parser import KeyParser

INLINE_DOCUMENT_URL = "inline:keys.json"


class SignatureKeyProvider(Protocol):
    """Source of signing keys for signature verification."""

    async def get_public_keys(self, protocol_version: str) -> Optional[List[str]]: ...


class PaymentKeyProvider:
    """Downloads, caches and serves the keys that sign payment messages."""

    def __init__(
        self,
        url: str,
        transport: Transport,
        *,
        clock: Clock = SYSTEM_CLOCK,
        default_freshness: timedelta = DEFAULT_FRESHNESS,
        honor_cache_control: bool = True,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if default_freshness < timedelta(0):
            raise ConfigurationError(
                "Default freshness window must not be negative",
                details={"default_freshness_seconds": default_freshness.total_seconds()},
            )

        self.url = url
        self.transport = transport
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("payment_keys.provider")

        self.cache = KeyCache(clock, default_freshness)
        self.coordinator = RefreshCoordinator(
            self.cache,
            KeyFetcher(url, transport, honor_cache_control=honor_cache_control),
            KeyParser(clock),
            metrics=metrics,
        )

    @classmethod
    def from_config(
        cls,
        config: Optional[KeyProviderConfig] = None,
        *,
        clock: Clock = SYSTEM_CLOCK,
        transport: Optional[Transport] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "PaymentKeyProvider":
        """Build a provider from settings (environment variables by default)."""
        config = config or get_config()
        return cls(
            config.resolved_key_url,
            transport or HttpxTransport(timeout=config.http_timeout),
            clock=clock,
            default_freshness=config.default_freshness,
            honor_cache_control=config.honor_cache_control,
            metrics=metrics,
        )

    @classmethod
    def for_environment(cls, is_test: bool, **kwargs) -> "PaymentKeyProvider":
        """Provider for Google's production or test key endpoint."""
        config = KeyProviderConfig(environment="test" if is_test else "production")
        return cls.from_config(config, **kwargs)

    @classmethod
    def from_document(
        cls,
        document: Union[str, bytes],
        clock: Clock = SYSTEM_CLOCK,
        *,
        headers: Optional[Mapping[str, str]] = None,
        **kwargs,
    ) -> "PaymentKeyProvider":
        """Provider serving a fixed key document instead of the network."""
        return cls(INLINE_DOCUMENT_URL, StaticTransport(document, headers), clock=clock, **kwargs)

    async def get_public_keys(self, protocol_version: str) -> Optional[List[str]]:
        """Return the base64 ASN.1 keys for ``protocol_version``.

        Returns None when the current key set has no key for that version.
        Refresh failures (``TransportFailure``, ``KeyDocumentMalformed``)
        propagate to the caller.
        """
        snapshot = await self.coordinator.ensure_fresh()
        keys = snapshot.keys_for(protocol_version)
        if keys is None:
            self.logger.debug("No signing keys for protocol version", protocol_version=protocol_version)
            return None
        return list(keys)

    async def prefetch_keys(self) -> None:
        """Fetch keys ahead of first use if the cached set needs an update."""
        await self.coordinator.ensure_fresh()

    async def close(self) -> None:
        """Release the transport."""
        await self.transport.aclose()

    async def __aenter__(self) -> "PaymentKeyProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
