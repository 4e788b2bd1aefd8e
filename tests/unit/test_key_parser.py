"""
Unit tests for KeyParser.
"""

import pytest
from datetime import timedelta, timezone, datetime

from payment_keys.keys.models import SigningKey, RawSigningKey
from payment_keys.keys.parser import KeyParser
from shared.errors import KeyDocumentMalformed
from shared.test_helpers import (
    ECV1_KEY,
    ECV2_KEY_A,
    ECV2_KEY_B,
    ROTATED_KEY,
    TEST_NOW,
    MockClock,
    build_key_document,
    epoch_millis,
    make_key,
    sample_key_document,
)


class TestKeyParser:
    """Test cases for KeyParser."""

    @pytest.fixture
    def clock(self):
        """Clock pinned to the test instant."""
        return MockClock()

    @pytest.fixture
    def parser(self, clock):
        """Create KeyParser instance."""
        return KeyParser(clock)

    def test_groups_keys_by_protocol_version(self, parser):
        """Test that keys are grouped by version in document order."""
        snapshot = parser.parse(sample_key_document())

        assert snapshot.keys_for("ECv2") == (ECV2_KEY_A, ECV2_KEY_B)
        assert snapshot.keys_for("ECv1") == (ECV1_KEY,)
        assert snapshot.keys_for("ECv99") is None
        assert snapshot.key_count == 3
        assert snapshot.captured_at == TEST_NOW

    def test_duplicates_are_preserved(self, parser):
        """Test that a key listed twice stays listed twice."""
        document = build_key_document([
            make_key(ECV2_KEY_A, "ECv2"),
            make_key(ECV2_KEY_A, "ECv2"),
        ])

        snapshot = parser.parse(document)

        assert snapshot.keys_for("ECv2") == (ECV2_KEY_A, ECV2_KEY_A)

    def test_accepts_bytes_and_numeric_expiration(self, parser):
        """Test bytes input and keyExpiration sent as a JSON number."""
        document = build_key_document([make_key(ECV2_KEY_A, "ECv2", 2893456000000)])

        snapshot = parser.parse(document.encode("utf-8"))

        assert snapshot.keys_for("ECv2") == (ECV2_KEY_A,)

    def test_expired_keys_are_dropped(self, parser):
        """Test that a key whose expiration is before now is excluded."""
        document = build_key_document([
            make_key(ECV2_KEY_A, "ECv2", str(epoch_millis(TEST_NOW - timedelta(days=1)))),
            make_key(ECV2_KEY_B, "ECv2", str(epoch_millis(TEST_NOW + timedelta(days=1)))),
            make_key(ECV1_KEY, "ECv1", str(epoch_millis(TEST_NOW - timedelta(milliseconds=1)))),
        ])

        snapshot = parser.parse(document)

        assert snapshot.keys_for("ECv2") == (ECV2_KEY_B,)
        assert snapshot.keys_for("ECv1") is None

    def test_key_expiring_exactly_now_is_dropped(self, parser):
        """Test that a key is only valid strictly before its expiration."""
        document = build_key_document([make_key(ECV2_KEY_A, "ECv2", epoch_millis(TEST_NOW))])

        snapshot = parser.parse(document)

        assert snapshot.keys_for("ECv2") is None

    def test_zero_or_missing_expiration_never_expires(self, clock, parser):
        """Test that keyExpiration 0 or absent is kept regardless of now."""
        clock.advance(timedelta(days=365 * 100))
        document = build_key_document([
            make_key(ECV2_KEY_A, "ECv2", "0"),
            make_key(ECV2_KEY_B, "ECv2", None),
            make_key(ROTATED_KEY, "ECv2"),
        ])

        snapshot = parser.parse(document)

        assert snapshot.keys_for("ECv2") == (ECV2_KEY_A, ECV2_KEY_B)

    @pytest.mark.parametrize("expiration", ["-1", "-9223372036854775808"])
    def test_negative_expiration_is_expired(self, parser, expiration):
        """Test that a negative keyExpiration drops that key and keeps the rest."""
        document = build_key_document([
            make_key(ECV2_KEY_A, "ECv2", expiration),
            make_key(ECV1_KEY, "ECv1"),
        ])

        snapshot = parser.parse(document)

        assert snapshot.keys_for("ECv2") is None
        assert snapshot.keys_for("ECv1") == (ECV1_KEY,)

    @pytest.mark.parametrize("expiration", ["9223372036854775807", 253402300800000])
    def test_expiration_past_year_9999_is_kept(self, clock, parser, expiration):
        """Test that a keyExpiration beyond the datetime range never expires."""
        clock.advance(timedelta(days=365 * 100))
        document = build_key_document([
            make_key(ECV2_KEY_A, "ECv2", expiration),
            make_key(ECV1_KEY, "ECv1", "0"),
        ])

        snapshot = parser.parse(document)

        assert snapshot.keys_for("ECv2") == (ECV2_KEY_A,)
        assert snapshot.keys_for("ECv1") == (ECV1_KEY,)

    def test_empty_key_list(self, parser):
        """Test that an empty key list yields an empty snapshot."""
        snapshot = parser.parse('{"keys": []}')

        assert snapshot.key_count == 0
        assert snapshot.keys_for("ECv2") is None

    @pytest.mark.parametrize("document", [
        "not json",
        "{}",
        '{"keys": {"keyValue": "abc"}}',
        build_key_document([{"protocolVersion": "ECv2"}]),
        build_key_document([{"keyValue": ECV2_KEY_A}]),
        build_key_document([make_key("", "ECv2")]),
        build_key_document([make_key("not base64!", "ECv2")]),
        build_key_document([make_key(ECV2_KEY_A, "ECv2", "soon")]),
    ])
    def test_malformed_documents(self, parser, document):
        """Test that decode and validation failures raise KeyDocumentMalformed."""
        with pytest.raises(KeyDocumentMalformed) as exc_info:
            parser.parse(document)

        assert exc_info.value.code == "KEY_DOCUMENT_MALFORMED"
        assert exc_info.value.details["errors"]

    def test_one_bad_key_rejects_whole_document(self, parser):
        """Test that no partial snapshot is produced."""
        document = build_key_document([
            make_key(ECV2_KEY_A, "ECv2"),
            make_key(ECV2_KEY_B, "ECv2"),
            {"keyValue": ECV1_KEY},
        ])

        with pytest.raises(KeyDocumentMalformed):
            parser.parse(document)

    def test_snapshot_is_immutable(self, parser):
        """Test that the snapshot mapping cannot be modified."""
        snapshot = parser.parse(sample_key_document())

        with pytest.raises(TypeError):
            snapshot.by_protocol_version["ECv3"] = ("x",)


class TestSigningKey:
    """Test cases for SigningKey."""

    def test_from_raw_converts_epoch_millis(self):
        """Test expiration conversion from epoch milliseconds."""
        raw = RawSigningKey(keyValue=ECV2_KEY_A, protocolVersion="ECv2", keyExpiration="2893456000000")

        key = SigningKey.from_raw(raw)

        assert key.expiration == datetime(2061, 9, 9, 1, 46, 40, tzinfo=timezone.utc)
        assert key.is_valid(TEST_NOW)

    def test_from_raw_zero_expiration(self):
        """Test that zero expiration maps to no expiration."""
        raw = RawSigningKey(keyValue=ECV2_KEY_A, protocolVersion="ECv2", keyExpiration=0)

        key = SigningKey.from_raw(raw)

        assert key.expiration is None
        assert key.is_valid(datetime.max.replace(tzinfo=timezone.utc))

    def test_from_raw_clamps_out_of_range_expiration(self):
        """Test expirations outside the datetime range map to its edges."""
        past = RawSigningKey(keyValue=ECV2_KEY_A, protocolVersion="ECv2", keyExpiration="-9223372036854775808")
        future = RawSigningKey(keyValue=ECV2_KEY_A, protocolVersion="ECv2", keyExpiration="9223372036854775807")

        assert SigningKey.from_raw(past).expiration == datetime.min.replace(tzinfo=timezone.utc)
        assert not SigningKey.from_raw(past).is_valid(TEST_NOW)
        assert SigningKey.from_raw(future).expiration is None
