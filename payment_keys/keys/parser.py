"""
Key document parser.

Turns the raw bytes served by the key endpoint into a ``KeySnapshot``,
dropping keys whose embedded expiration has already passed.
"""

from __future__ import annotations

from typing import Dict, List, Union

from pydantic import ValidationError

from shared.errors import KeyDocumentMalformed
from shared.logging import get_logger

from ..clock import SYSTEM_CLOCK, Clock
from .models import KeySnapshot, RawKeyDocument, SigningKey


class KeyParser:
    """Validates key documents and indexes surviving keys by protocol version."""

    def __init__(self, clock: Clock = SYSTEM_CLOCK) -> None:
        self.clock = clock
        self.logger = get_logger("payment_keys.parser")

    def decode(self, raw_document: Union[bytes, str]) -> RawKeyDocument:
        """Decode and validate the document, without any expiration filtering."""
        try:
            return RawKeyDocument.model_validate_json(raw_document)
        except ValidationError as exc:
            errors = [
                {"loc": ".".join(str(part) for part in error["loc"]), "msg": error["msg"]}
                for error in exc.errors()
            ]
            raise KeyDocumentMalformed(
                "Failed to parse payment signing keys",
                details={"errors": errors},
            ) from exc

    def parse(self, raw_document: Union[bytes, str]) -> KeySnapshot:
        """Build a snapshot from the document; all-or-nothing."""
        document = self.decode(raw_document)
        now = self.clock.now()

        grouped: Dict[str, List[str]] = {}
        expired = 0
        for raw_key in document.keys:
            key = SigningKey.from_raw(raw_key)
            if not key.is_valid(now):
                expired += 1
                continue
            grouped.setdefault(key.protocol_version, []).append(key.value)

        snapshot = KeySnapshot(by_protocol_version=grouped, captured_at=now)
        self.logger.debug(
            "Parsed key document",
            keys_count=snapshot.key_count,
            expired_count=expired,
            protocol_versions=sorted(grouped),
        )
        return snapshot
