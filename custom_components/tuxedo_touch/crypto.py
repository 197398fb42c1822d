"""Cipher and signing helpers for the Tuxedo Touch encrypted API.

The panel is provisioned with a single hex secret: the first 64 characters
are the AES-256 key (also used, as text, for the HMAC), the rest is the CBC
initialization vector.
"""

import base64
import binascii
import hashlib
import hmac
from urllib.parse import quote, unquote

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .const import PRIVATE_KEY_SPLIT
from .exceptions import DecryptionError, MalformedKeyError

KEY_SIZE = 32
IV_SIZE = 16

# Characters left untouched by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _decode_hex(value, size, label):
    """Decode a hex string and enforce its byte length."""
    try:
        raw = bytes.fromhex(value)
    except (TypeError, ValueError) as e:
        raise MalformedKeyError(f"{label} is not valid hex") from e
    if len(raw) != size:
        raise MalformedKeyError(f"{label} must be {size} bytes, got {len(raw)}")
    return raw


def _cipher(key_hex, iv_hex):
    key = _decode_hex(key_hex, KEY_SIZE, "key")
    iv = _decode_hex(iv_hex, IV_SIZE, "iv")
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def split_private_key(private_key):
    """Split the provisioned secret into (key_hex, iv_hex).

    Raises MalformedKeyError when either half has the wrong length.
    """
    private_key = (private_key or "").strip()
    key_hex = private_key[:PRIVATE_KEY_SPLIT]
    iv_hex = private_key[PRIVATE_KEY_SPLIT:]
    _decode_hex(key_hex, KEY_SIZE, "key")
    _decode_hex(iv_hex, IV_SIZE, "iv")
    return key_hex, iv_hex


def sign(header: str, key: str | bytes) -> str:
    """Return the HMAC-SHA1 hex digest of header.

    The panel keys the HMAC with the hex key text itself, not its decoded bytes.
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    return hmac.new(key, header.encode("utf-8"), hashlib.sha1).hexdigest()


def encrypt(plaintext: str, key_hex: str, iv_hex: str) -> str:
    """AES-256-CBC encrypt plaintext, returning URL-encoded base64."""
    encryptor = _cipher(key_hex, iv_hex).encryptor()
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return quote(base64.b64encode(ciphertext).decode("ascii"), safe=_URI_COMPONENT_SAFE)


def decrypt(ciphertext: str, key_hex: str, iv_hex: str) -> str:
    """Inverse of encrypt. Accepts URL-encoded or plain base64."""
    decryptor = _cipher(key_hex, iv_hex).decryptor()
    try:
        raw = base64.b64decode(unquote(ciphertext), validate=True)
        padded = decryptor.update(raw) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except (binascii.Error, ValueError, TypeError) as e:
        # UnicodeDecodeError is a ValueError
        raise DecryptionError(f"Could not decrypt payload: {e}") from e
