"""
Reversible keyed encoding for sensitive card fields.

Card number, expiry and CVV are stored only as Fernet tokens produced here.
Values are padded to a fixed bucket before encryption so tokens for every
card field have the same length, and every token is authenticated: a value
produced under another key, or altered after the fact, fails to decode
instead of returning wrong plaintext.

Security Features:
- Fernet (AES-CBC + HMAC-SHA256) from `cryptography`
- PBKDF2 key derivation from configured key material
- Key rotation: first key encodes, every configured key decodes
- Fail fast with ConfigurationError when no key is configured
"""

import base64
import functools
from typing import List, Sequence

from cryptography.exceptions import InvalidSignature
from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from django.conf import settings

from .exceptions import ConfigurationError, DecodeError

# Plaintext is padded to a multiple of this many bits before encryption.
PAD_BLOCK_BITS = 256

KDF_SALT = b'guarded_commerce.card_fields'
KDF_ITERATIONS = 100000


def derive_key(material: str) -> bytes:
    """
    Derive a Fernet key from configured key material.

    Args:
        material: Secret string from configuration

    Returns:
        bytes: URL-safe base64 encoded 32-byte key
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
        backend=default_backend()
    )
    return base64.urlsafe_b64encode(kdf.derive(material.encode()))


class FieldEncoder:
    """
    Encode and decode individual sensitive string fields.

    The instance is immutable after construction and safe to share between
    threads.
    """

    def __init__(self, key_materials: Sequence[str]):
        materials = [m for m in key_materials if m]
        if not materials:
            raise ConfigurationError("No card field key material configured.")
        self._fernet = MultiFernet([Fernet(derive_key(m)) for m in materials])

    def encode(self, plaintext: str) -> str:
        """
        Encode a plaintext field for storage.

        Args:
            plaintext: Field value

        Returns:
            str: ASCII token safe to store in a CharField
        """
        if not isinstance(plaintext, str):
            raise TypeError("Only str values can be encoded.")

        padder = padding.PKCS7(PAD_BLOCK_BITS).padder()
        padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()
        return self._fernet.encrypt(padded).decode('ascii')

    def decode(self, encoded: str) -> str:
        """
        Decode a stored token back to its exact plaintext.

        Args:
            encoded: Token previously returned by `encode`

        Returns:
            str: Original plaintext

        Raises:
            DecodeError: If the token was not produced by `encode` with one
                of the configured keys
        """
        if not isinstance(encoded, str):
            raise DecodeError()

        try:
            padded = self._fernet.decrypt(encoded.encode('ascii'))
            unpadder = padding.PKCS7(PAD_BLOCK_BITS).unpadder()
            raw = unpadder.update(padded) + unpadder.finalize()
            return raw.decode('utf-8')
        except (InvalidToken, InvalidSignature, ValueError, UnicodeError):
            # ValueError covers bad padding and non-ASCII input alike
            raise DecodeError() from None


def _configured_keys() -> List[str]:
    keys = getattr(settings, 'CARD_FIELD_KEYS', None) or []
    if isinstance(keys, str):
        keys = [k.strip() for k in keys.split(',')]
    return [k for k in keys if k]


@functools.lru_cache(maxsize=None)
def get_field_encoder() -> FieldEncoder:
    """
    Return the process-wide encoder, built once from settings.

    A missing key is not cached: every call keeps failing with
    ConfigurationError until the process is restarted with a key.
    """
    return FieldEncoder(_configured_keys())


def encode_field(plaintext: str) -> str:
    return get_field_encoder().encode(plaintext)


def decode_field(encoded: str) -> str:
    return get_field_encoder().decode(encoded)
