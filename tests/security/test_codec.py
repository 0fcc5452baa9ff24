"""
Security tests for the authenticated cookie codec

Tests tamper resistance, name binding, encryption and key rotation.
"""

import zlib
from datetime import datetime
from unittest.mock import patch

import pytest
from itsdangerous.encoding import base64_decode

from websessions.core.utils.encryption import (
    EncodeError,
    SecureCookieCodec,
    codecs_from_pairs,
    decode_multi,
    encode_multi,
    generate_random_key,
)
from websessions.sessions.errors import DecodeError, MultiError

# Mark all tests in this module as security tests
pytestmark = pytest.mark.security

HASH_KEY = b"codec-hash-key-0123456789abcdef0123456789"
BLOCK_KEY = b"codec-block-key-0123456789abcdef"


@pytest.fixture(params=[None, BLOCK_KEY], ids=["signed", "encrypted"])
def codec(request):
    return SecureCookieCodec(HASH_KEY, request.param)


class TestRoundTrip:
    """Test values survive encode and decode"""

    def test_payload_round_trip(self, codec):
        values = {
            "uid": 42,
            "name": "ada",
            "roles": ["admin", "dev"],
            "nested": {"a": {"b": [1, 2, 3]}},
            "seen": datetime(2026, 1, 2, 3, 4, 5),
            "blob": b"\x00\x01binary",
        }

        assert codec.decode("auth", codec.encode("auth", values)) == values

    def test_session_id_round_trip(self, codec):
        assert codec.decode("auth", codec.encode("auth", "17")) == "17"

    def test_container_types_preserved(self, codec):
        values = {
            "pair": (1, (2, 3)),
            "tags": {"a", "b"},
            "frozen": frozenset({1, 2}),
            "by_id": {1: "one", 2: ["two"]},
            "by_pair": {(0, 1): "origin"},
            "list": [(1, 2), {3}],
        }

        decoded = codec.decode("auth", codec.encode("auth", values))

        assert decoded == values
        assert isinstance(decoded["pair"], tuple)
        assert isinstance(decoded["pair"][1], tuple)
        assert isinstance(decoded["tags"], set)
        assert isinstance(decoded["frozen"], frozenset)
        assert list(decoded["by_id"]) == [1, 2]
        assert isinstance(decoded["list"][0], tuple)

    @pytest.mark.parametrize("key", ["__tuple__", "__dict__", "__bytes__"])
    def test_tag_named_keys_are_plain_data(self, codec, key):
        values = {"wrapper": {key: [1, 2]}}

        assert codec.decode("auth", codec.encode("auth", values)) == values

    def test_encoded_value_is_cookie_safe(self, codec):
        encoded = codec.encode("auth", {"uid": 42})

        assert "=" not in encoded
        assert ";" not in encoded
        assert " " not in encoded

    @pytest.mark.parametrize("block_key, visible", [(None, True), (BLOCK_KEY, False)])
    def test_encryption_hides_plaintext(self, block_key, visible):
        codec = SecureCookieCodec(HASH_KEY, block_key)
        encoded = codec.encode("auth", {"email": "ada@example.com"})

        payload = encoded.rsplit(".", 2)[0]
        if payload.startswith("."):
            raw = zlib.decompress(base64_decode(payload[1:]))
        else:
            raw = base64_decode(payload)
        assert (b"ada@example.com" in raw) is visible

    def test_unserializable_value_rejected(self, codec):
        with pytest.raises(EncodeError):
            codec.encode("auth", {"obj": object()})


class TestTamperResistance:
    """Test that modified or misdirected values are rejected"""

    def test_flipped_character_rejected(self, codec):
        encoded = codec.encode("auth", "17")
        index = 0
        replacement = "A" if encoded[index] != "A" else "B"
        tampered = encoded[:index] + replacement + encoded[index + 1:]

        with pytest.raises(DecodeError):
            codec.decode("auth", tampered)

    def test_value_bound_to_name(self, codec):
        encoded = codec.encode("auth", "17")

        with pytest.raises(DecodeError):
            codec.decode("other", encoded)

    def test_wrong_hash_key_rejected(self):
        encoded = SecureCookieCodec(HASH_KEY).encode("auth", "17")

        with pytest.raises(DecodeError):
            SecureCookieCodec(b"a-different-hash-key-0123456789").decode("auth", encoded)

    @pytest.mark.parametrize("value", ["", "not base64!!", "YWJj", "ünicode"])
    def test_garbage_rejected(self, codec, value):
        with pytest.raises(DecodeError):
            codec.decode("auth", value)

    def test_expired_timestamp_rejected(self):
        codec = SecureCookieCodec(HASH_KEY, max_age=60)
        with patch("time.time", return_value=1_000_000):
            encoded = codec.encode("auth", "17")
        with patch("time.time", return_value=1_000_061):
            with pytest.raises(DecodeError):
                codec.decode("auth", encoded)

    def test_max_age_zero_disables_timestamp_check(self):
        codec = SecureCookieCodec(HASH_KEY, max_age=0)
        with patch("time.time", return_value=1_000_000):
            encoded = codec.encode("auth", "17")

        assert codec.decode("auth", encoded) == "17"

    def test_max_length_enforced(self):
        codec = SecureCookieCodec(HASH_KEY, max_length=100)

        with pytest.raises(EncodeError):
            codec.encode("auth", generate_random_key(200).hex())
        with pytest.raises(DecodeError):
            codec.decode("auth", "x" * 200)

    def test_hash_key_required(self):
        with pytest.raises(ValueError):
            SecureCookieCodec(b"")


class TestKeyRotation:
    """Test multi-codec encoding and decoding"""

    def test_first_codec_encodes(self):
        new_key = (b"new-hash-key-0123456789abcdef", BLOCK_KEY)
        old_key = (b"old-hash-key-0123456789abcdef", None)
        codecs = codecs_from_pairs(new_key, old_key)

        encoded = encode_multi("auth", "17", codecs)

        assert codecs[0].decode("auth", encoded) == "17"
        with pytest.raises(DecodeError):
            codecs[1].decode("auth", encoded)

    def test_any_codec_decodes(self):
        old_key = (b"old-hash-key-0123456789abcdef", None)
        encoded = encode_multi("auth", "17", codecs_from_pairs(old_key))

        rotated = codecs_from_pairs((b"new-hash-key-0123456789abcdef", BLOCK_KEY), old_key)

        assert decode_multi("auth", encoded, rotated) == "17"

    def test_all_codecs_fail(self):
        codecs = codecs_from_pairs(b"key-one-0123456789abcdef", b"key-two-0123456789abcdef")

        with pytest.raises(DecodeError) as exc_info:
            decode_multi("auth", "garbage", codecs)

        assert isinstance(exc_info.value, MultiError)
        assert "(and 1 other error)" in str(exc_info.value)

    def test_encode_without_codecs(self):
        with pytest.raises(EncodeError):
            encode_multi("auth", "17", [])

    def test_generate_random_key(self):
        first = generate_random_key(32)
        second = generate_random_key(32)

        assert len(first) == 32
        assert first != second
