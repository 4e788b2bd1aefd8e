"""
Transports used to retrieve the key document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, Union

import httpx

from shared.errors import TransportFailure
from shared.logging import get_logger


@dataclass(frozen=True)
class TransportResponse:
    """Body and (lower-cased) headers of one successful GET."""

    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class Transport(Protocol):
    """One operation: fetch a URL or raise ``TransportFailure``."""

    async def get(self, url: str) -> TransportResponse: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Transport backed by a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.logger = get_logger("payment_keys.transport")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=timeout),
            follow_redirects=True,
        )

    async def get(self, url: str) -> TransportResponse:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            self.logger.warning("Key endpoint returned error status", url=url, status_code=status_code)
            raise TransportFailure(
                f"Key endpoint returned HTTP {status_code}",
                details={"url": url, "status_code": status_code},
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("Key endpoint request failed", url=url, error=str(exc))
            raise TransportFailure(
                "Key endpoint not reachable",
                details={"url": url, "error": str(exc) or type(exc).__name__},
            ) from exc

        headers = {name.lower(): value for name, value in response.headers.items()}
        return TransportResponse(body=response.content, headers=headers)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()


class StaticTransport:
    """Serves a fixed document, for offline use and tests."""

    def __init__(self, document: Union[str, bytes], headers: Optional[Mapping[str, str]] = None) -> None:
        self.document = document.encode("utf-8") if isinstance(document, str) else document
        self.headers = {name.lower(): value for name, value in (headers or {}).items()}

    async def get(self, url: str) -> TransportResponse:
        return TransportResponse(body=self.document, headers=dict(self.headers))

    async def aclose(self) -> None:
        return None
