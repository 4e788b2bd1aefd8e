"""
Payment signing key cache.

Keeps a locally cached copy of the signing keys Google Pay publishes for
verifying payment method tokens, refreshing them on demand:

- provider: Public facade (``get_public_keys`` / ``prefetch_keys``).
- caching: Snapshot cache and single-flight refresh coordination.
- fetch: Transports and the key document fetcher.
- keys: Key models and the document parser.
- clock: Injectable time source.

Importing this package performs no network calls.
"""

from .provider import PaymentKeyProvider, SignatureKeyProvider

__all__ = ["PaymentKeyProvider", "SignatureKeyProvider"]
