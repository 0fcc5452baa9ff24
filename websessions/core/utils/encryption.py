"""
Authenticated cookie codec.

Values are serialized to tagged JSON, optionally encrypted with Fernet, then
timestamped and signed by itsdangerous with the cookie name as salt. Several
codecs can be chained for key rotation: the first one encodes, all of them
are tried on decode.
"""

import base64
import hashlib
import json
import logging
import secrets
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from itsdangerous import BadData, URLSafeTimedSerializer

from websessions.sessions.errors import DecodeError, DecodeMultiError, SessionError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 86400 * 30
DEFAULT_MAX_LENGTH = 4096

KeyPair = Union[bytes, Tuple[bytes, Optional[bytes]]]

_TAGS = ("__tuple__", "__set__", "__frozenset__", "__bytes__", "__datetime__", "__dict__")


class EncodeError(SessionError):
    """Raised when a value cannot be serialized, encrypted or fits no cookie"""
    pass


def generate_random_key(length: int = 32) -> bytes:
    """
    Generate a random key suitable for signing or encryption.

    Args:
        length: Key length in bytes (32 or 64 recommended for hash keys)

    Returns:
        Cryptographically secure random bytes
    """
    return secrets.token_bytes(length)


def _tag(value: Any) -> Any:
    """Convert value into plain JSON types, tagging the ones JSON would lose"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, list):
        return [_tag(item) for item in value]
    if isinstance(value, tuple):
        return {"__tuple__": [_tag(item) for item in value]}
    if isinstance(value, frozenset):
        return {"__frozenset__": [_tag(item) for item in value]}
    if isinstance(value, set):
        return {"__set__": [_tag(item) for item in value]}
    if isinstance(value, bytes):
        return {"__bytes__": base64.b64encode(value).decode("ascii")}
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    if isinstance(value, dict):
        plain_keys = all(isinstance(key, str) for key in value)
        # A lone tag-named key would be read back as a tag
        if plain_keys and not (len(value) == 1 and next(iter(value)) in _TAGS):
            return {key: _tag(item) for key, item in value.items()}
        return {"__dict__": [[_tag(key), _tag(item)] for key, item in value.items()]}
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def _untag(obj: dict) -> Any:
    if len(obj) == 1:
        tag, data = next(iter(obj.items()))
        if tag == "__tuple__":
            return tuple(data)
        if tag == "__set__":
            return set(data)
        if tag == "__frozenset__":
            return frozenset(data)
        if tag == "__bytes__":
            return base64.b64decode(data)
        if tag == "__datetime__":
            return datetime.fromisoformat(data)
        if tag == "__dict__":
            return {key: item for key, item in data}
    return obj


def serialize(value: Any) -> str:
    return json.dumps(_tag(value), separators=(",", ":"))


def deserialize(data: str) -> Any:
    return json.loads(data, object_hook=_untag)


class _PayloadSerializer:
    """itsdangerous serializer: tagged JSON, encrypted when a cipher is set"""

    def __init__(self, cipher: Optional[Fernet] = None):
        self.cipher = cipher

    def dumps(self, value: Any) -> str:
        data = serialize(value)
        if self.cipher is None:
            return data
        return self.cipher.encrypt(data.encode("utf-8")).decode("ascii")

    def loads(self, data: str) -> Any:
        if self.cipher is not None:
            data = self.cipher.decrypt(data.encode("ascii")).decode("utf-8")
        return deserialize(data)


class SecureCookieCodec:
    """Signs, and optionally encrypts, named values for cookie storage."""

    def __init__(
        self,
        hash_key: bytes,
        block_key: Optional[bytes] = None,
        max_age: int = DEFAULT_MAX_AGE,
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        """
        Args:
            hash_key: Key used to sign values
            block_key: Optional key used to encrypt values
            max_age: Maximum age in seconds of an encoded value; 0 disables the check
            max_length: Maximum length of an encoded value; 0 disables the check
        """
        if not hash_key:
            raise ValueError("hash key is not set")
        self.hash_key = hash_key
        self.max_age = max_age
        self.max_length = max_length
        self.cipher = self._create_cipher(block_key) if block_key else None

    @staticmethod
    def _create_cipher(block_key: bytes) -> Fernet:
        """Create a Fernet cipher from a raw block key."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=b"websessions-block-key",
        )
        return Fernet(base64.urlsafe_b64encode(hkdf.derive(block_key)))

    def _serializer(self, name: str) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(
            self.hash_key,
            salt=name,
            serializer=_PayloadSerializer(self.cipher),
            signer_kwargs={"digest_method": hashlib.sha256},
        )

    def encode(self, name: str, value: Any) -> str:
        """
        Encode a value for the cookie called name.

        Raises:
            EncodeError: If the value is not serializable or the result is too long
        """
        try:
            encoded = self._serializer(name).dumps(value)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"failed to serialize value: {e}") from e

        if self.max_length and len(encoded) > self.max_length:
            raise EncodeError("the value is too long")
        return encoded

    def decode(self, name: str, value: str) -> Any:
        """
        Decode a value produced by encode() for the same name.

        Raises:
            DecodeError: If the value is malformed, tampered with, expired or
                was encoded with another key
        """
        if self.max_length and len(value) > self.max_length:
            raise DecodeError("the value is too long")
        try:
            return self._serializer(name).loads(value, max_age=self.max_age or None)
        except BadData as e:
            raise DecodeError(f"the value is not valid: {e}") from e


def codecs_from_pairs(
    *key_pairs: KeyPair,
    max_age: int = DEFAULT_MAX_AGE,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> List[SecureCookieCodec]:
    """
    Build one codec per key pair.

    Args:
        key_pairs: Either a bare hash key or a (hash_key, block_key) tuple;
            the block key may be None to sign without encrypting
        max_age: Maximum age of encoded values for every codec
        max_length: Maximum encoded length for every codec

    Returns:
        Codecs in the given order; the first is used for encoding
    """
    codecs = []
    for pair in key_pairs:
        if isinstance(pair, (bytes, bytearray)):
            hash_key, block_key = bytes(pair), None
        else:
            hash_key, block_key = pair
        codecs.append(
            SecureCookieCodec(hash_key, block_key, max_age=max_age, max_length=max_length)
        )
    return codecs


def encode_multi(name: str, value: Any, codecs: Sequence[SecureCookieCodec]) -> str:
    """Encode value with the first codec."""
    if not codecs:
        raise EncodeError("no codecs were provided")
    return codecs[0].encode(name, value)


def decode_multi(name: str, value: str, codecs: Iterable[SecureCookieCodec]) -> Any:
    """
    Decode value with each codec in turn until one succeeds.

    Raises:
        DecodeMultiError: If no codec could decode the value
    """
    errors: List[BaseException] = []
    for codec in codecs:
        try:
            return codec.decode(name, value)
        except DecodeError as e:
            errors.append(e)
    if not errors:
        errors.append(DecodeError("no codecs were provided"))
    logger.debug(f"Could not decode value for {name!r}: {errors[0]}")
    raise DecodeMultiError(errors)
