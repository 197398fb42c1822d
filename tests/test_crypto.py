"""Tests for the cipher and signing helpers."""

import base64
import string
from urllib.parse import unquote

import pytest

from custom_components.tuxedo_touch.crypto import decrypt, encrypt, sign, split_private_key
from custom_components.tuxedo_touch.exceptions import DecryptionError, MalformedKeyError

from .conftest import IV_HEX, KEY_HEX, PRIVATE_KEY


def test_sign_matches_known_hmac_sha1_vector():
    digest = sign("The quick brown fox jumps over the lazy dog", "key")
    assert digest == "de7c9b85b8b78aa6bc8a7a36f70a90701c9db4d9"


def test_sign_uses_key_text_not_decoded_bytes():
    header = "MACID:00:11:22:33:44:55,Path:API_REV01/GetSecurityStatus"
    assert sign(header, KEY_HEX) == sign(header, KEY_HEX.encode("utf-8"))
    assert sign(header, KEY_HEX) != sign(header, bytes.fromhex(KEY_HEX))


def test_split_private_key():
    key_hex, iv_hex = split_private_key(PRIVATE_KEY)
    assert key_hex == KEY_HEX
    assert iv_hex == IV_HEX
    assert len(bytes.fromhex(key_hex)) == 32
    assert len(bytes.fromhex(iv_hex)) == 16


def test_split_private_key_strips_whitespace():
    assert split_private_key(f"  {PRIVATE_KEY}\n") == (KEY_HEX, IV_HEX)


@pytest.mark.parametrize(
    "secret",
    [
        PRIVATE_KEY[:80],  # IV too short
        PRIVATE_KEY + "00",  # IV too long
        PRIVATE_KEY[:62],  # key too short, no IV
        "zz" + PRIVATE_KEY[2:],  # not hex
        "",
        None,
    ],
)
def test_split_private_key_rejects_bad_secrets(secret):
    with pytest.raises(MalformedKeyError):
        split_private_key(secret)


def test_encrypt_rejects_short_key():
    with pytest.raises(MalformedKeyError):
        encrypt("operation=get", KEY_HEX[:32], IV_HEX)


def test_encrypt_is_url_component_encoded():
    ciphertext = encrypt("operation=get&category=All&filler=" + "x" * 64, KEY_HEX, IV_HEX)
    for char in "+/=":
        assert char not in ciphertext
    # Undoing the URL encoding leaves valid base64 of whole AES blocks
    raw = base64.b64decode(unquote(ciphertext), validate=True)
    assert len(raw) % 16 == 0


def test_decrypt_inverts_encrypt():
    plaintext = '{"Status": "Armed Away", "note": "café"}'
    assert decrypt(encrypt(plaintext, KEY_HEX, IV_HEX), KEY_HEX, IV_HEX) == plaintext


PRINTABLE_ASCII = "".join(chr(c) for c in range(0x20, 0x7F))


def _printable(length):
    return (PRINTABLE_ASCII * (length // len(PRINTABLE_ASCII) + 1))[:length]


@pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 31, 32, 33, len(PRINTABLE_ASCII), 200])
def test_round_trip_printable_ascii(length):
    plaintext = _printable(length)
    assert decrypt(encrypt(plaintext, KEY_HEX, IV_HEX), KEY_HEX, IV_HEX) == plaintext


@pytest.mark.parametrize("plaintext", [string.punctuation, string.ascii_letters + string.digits, " " * 16, "%20&=+/"])
def test_round_trip_printable_ascii_special_characters(plaintext):
    assert decrypt(encrypt(plaintext, KEY_HEX, IV_HEX), KEY_HEX, IV_HEX) == plaintext


def test_split_then_round_trip():
    key_hex, iv_hex = split_private_key("a" * 64 + "b" * 32)

    assert (key_hex, iv_hex) == ("a" * 64, "b" * 32)
    plaintext = "operation=get&pID=1"
    assert decrypt(encrypt(plaintext, key_hex, iv_hex), key_hex, iv_hex) == plaintext


def test_decrypt_accepts_plain_base64():
    ciphertext = encrypt("operation=get", KEY_HEX, IV_HEX)
    assert decrypt(unquote(ciphertext), KEY_HEX, IV_HEX) == "operation=get"


def test_encrypt_is_deterministic_for_fixed_iv():
    assert encrypt("operation=get", KEY_HEX, IV_HEX) == encrypt("operation=get", KEY_HEX, IV_HEX)


@pytest.mark.parametrize(
    "ciphertext",
    [
        "not base64!!",
        base64.b64encode(b"short").decode(),  # not a whole block
        "",
    ],
)
def test_decrypt_rejects_corrupted_ciphertext(ciphertext):
    with pytest.raises(DecryptionError):
        decrypt(ciphertext, KEY_HEX, IV_HEX)


def test_decrypt_rejects_truncated_ciphertext():
    raw = base64.b64decode(unquote(encrypt("operation=get" * 4, KEY_HEX, IV_HEX)))
    truncated = base64.b64encode(raw[:-3]).decode()
    with pytest.raises(DecryptionError):
        decrypt(truncated, KEY_HEX, IV_HEX)
