"""
ncryptsec Crypto Engine Tests

Covers round trips, wrong passwords, tampering, prefix/version errors and the
published NIP-49 test vector.

Usage:
    python -m pytest tests/test_crypto_engine.py -v
"""

import sys
import unicodedata
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.ncryptsec.bech32 import bech32_decode, bech32_encode
from services.ncryptsec.crypto_engine import (
    aead_decrypt,
    aead_encrypt,
    decrypt,
    decrypt_to_hex,
    derive_key,
    encrypt,
    encrypt_hex,
    read_envelope,
)
from services.ncryptsec.exceptions import AuthenticationError, FormatError
from services.ncryptsec.models import EncryptedKeyEnvelope

# Low cost keeps the suite fast; production storage uses logn=16
TEST_LOGN = 4

NIP49_VECTOR = (
    "ncryptsec1qgg9947rlpvqu76pj5ecreduf9jxhselq2nae2kghhvd5g7dgjtcxfqtd67p9m0w57lspw8gsq6yphnm"
    "8623nsl8xn9j4jdzz84zm3frztj3z7s35vpzmqf6ksu8r89qk5z2zxfmu5gv8th8wclt0h4p"
)
NIP49_KEY_HEX = "3501454135014541350145413501453fefb02227e449e57cf4d3a3ce05378683"


def fixed_source(n: int) -> bytes:
    """Deterministic random source for reproducible envelopes."""
    return bytes((i * 7 + n) % 256 for i in range(n))


def flip_bit(data: bytes, index: int, bit: int) -> bytes:
    out = bytearray(data)
    out[index] ^= 1 << bit
    return bytes(out)


# =============================================================================
# Test: Round Trip
# =============================================================================

def test_scenario_correct_horse():
    key = b"\x01" * 32
    encoded = encrypt(key, "correct horse", logn=TEST_LOGN, ksb=2)

    assert encoded.startswith("ncryptsec1")
    assert decrypt(encoded, "correct horse") == key


@pytest.mark.parametrize("logn", [4, 8, 12])
@pytest.mark.parametrize("ksb", [0, 1, 2])
def test_round_trip_across_cost_and_ksb(logn, ksb):
    key = bytes(range(32))
    encoded = encrypt(key, "pässwörd", logn=logn, ksb=ksb)

    assert decrypt(encoded, "pässwörd") == key
    envelope = read_envelope(encoded)
    assert envelope.logn == logn
    assert envelope.ksb == ksb


def test_envelope_length_is_header_plus_ciphertext():
    encoded = encrypt(b"\x05" * 32, "pw", logn=TEST_LOGN)
    _, data = bech32_decode(encoded)

    envelope = EncryptedKeyEnvelope.from_bytes(data)
    assert len(data) == 43 + len(envelope.ciphertext)
    assert len(envelope.ciphertext) == 48


def test_two_encryptions_differ_but_both_decrypt():
    key = b"\x09" * 32
    first = encrypt(key, "same password", logn=TEST_LOGN)
    second = encrypt(key, "same password", logn=TEST_LOGN)

    assert first != second
    assert read_envelope(first).salt != read_envelope(second).salt
    assert read_envelope(first).nonce != read_envelope(second).nonce
    assert decrypt(first, "same password") == key
    assert decrypt(second, "same password") == key


def test_injected_random_source_is_deterministic():
    key = b"\x0a" * 32
    first = encrypt(key, "pw", logn=TEST_LOGN, random_source=fixed_source)
    second = encrypt(key, "pw", logn=TEST_LOGN, random_source=fixed_source)

    assert first == second
    assert read_envelope(first).salt == fixed_source(16)
    assert read_envelope(first).nonce == fixed_source(24)


def test_nip49_published_vector():
    assert decrypt_to_hex(NIP49_VECTOR, "nostr") == NIP49_KEY_HEX


def test_password_is_nfkc_normalized():
    password = "ÅΩẛ̣"
    key = b"\x0b" * 32
    encoded = encrypt(key, unicodedata.normalize("NFC", password), logn=TEST_LOGN)

    assert decrypt(encoded, unicodedata.normalize("NFD", password)) == key
    assert decrypt(encoded, unicodedata.normalize("NFKD", password)) == key


def test_uppercase_encoding_decrypts():
    key = b"\x0c" * 32
    encoded = encrypt(key, "pw", logn=TEST_LOGN)
    assert decrypt(encoded.upper(), "pw") == key


# =============================================================================
# Test: Authentication Failures
# =============================================================================

def test_scenario_wrong_password():
    encoded = encrypt(b"\x01" * 32, "correct horse", logn=TEST_LOGN)
    with pytest.raises(AuthenticationError):
        decrypt(encoded, "wrong password")


def test_error_messages_never_contain_password():
    encoded = encrypt(b"\x01" * 32, "hunter2", logn=TEST_LOGN)
    with pytest.raises(AuthenticationError) as exc_info:
        decrypt(encoded, "hunter3")

    assert "hunter" not in str(exc_info.value)
    assert exc_info.value.__cause__ is None


def test_every_envelope_bit_flip_is_rejected():
    key = b"\x0d" * 32
    encoded = encrypt(key, "pw", logn=TEST_LOGN)
    _, data = bech32_decode(encoded)

    for index in range(len(data)):
        for bit in range(8):
            # logn 4 -> 20 would need 1 GiB of scrypt memory
            if index == 1 and bit == 4:
                continue
            tampered = bech32_encode("ncryptsec", flip_bit(data, index, bit))
            with pytest.raises((AuthenticationError, FormatError)):
                decrypt(tampered, "pw")


def test_every_string_character_flip_is_rejected():
    encoded = encrypt(b"\x0e" * 32, "pw", logn=TEST_LOGN)

    for pos in range(len(encoded)):
        corrupted = encoded[:pos] + chr(ord(encoded[pos]) ^ 1) + encoded[pos + 1:]
        with pytest.raises((AuthenticationError, FormatError)):
            decrypt(corrupted, "pw")


def test_ksb_is_authenticated():
    encoded = encrypt(b"\x0f" * 32, "pw", logn=TEST_LOGN, ksb=2)
    _, data = bech32_decode(encoded)

    tampered = bytearray(data)
    tampered[42] = 0x01
    with pytest.raises(AuthenticationError):
        decrypt(bech32_encode("ncryptsec", bytes(tampered)), "pw")


def test_aead_decrypt_rejects_wrong_aad():
    key = b"\x11" * 32
    nonce = b"\x22" * 24
    sealed = aead_encrypt(key, nonce, b"\x02", b"secret" * 4)

    assert aead_decrypt(key, nonce, b"\x02", sealed) == b"secret" * 4
    with pytest.raises(AuthenticationError):
        aead_decrypt(key, nonce, b"\x00", sealed)


# =============================================================================
# Test: Format Failures
# =============================================================================

def test_scenario_wrong_prefix():
    npub = bech32_encode("npub", b"\x03" * 32)
    with pytest.raises(FormatError, match="prefix"):
        decrypt(npub, "any")


def test_wrong_prefix_with_valid_envelope():
    encoded = encrypt(b"\x01" * 32, "pw", logn=TEST_LOGN)
    _, data = bech32_decode(encoded)

    with pytest.raises(FormatError):
        decrypt(bech32_encode("nsec", data), "pw")


def test_wrong_version_byte():
    encoded = encrypt(b"\x01" * 32, "pw", logn=TEST_LOGN)
    _, data = bech32_decode(encoded)

    with pytest.raises(FormatError, match="version"):
        decrypt(bech32_encode("ncryptsec", b"\x01" + data[1:]), "pw")


def test_truncated_envelope():
    encoded = encrypt(b"\x01" * 32, "pw", logn=TEST_LOGN)
    _, data = bech32_decode(encoded)

    with pytest.raises(FormatError):
        decrypt(bech32_encode("ncryptsec", data[:60]), "pw")


def test_garbage_input():
    with pytest.raises(FormatError):
        decrypt("not a key at all", "pw")


def test_excessive_cost_is_rejected_before_derivation():
    envelope = EncryptedKeyEnvelope(
        logn=40,
        salt=b"\x00" * 16,
        nonce=b"\x00" * 24,
        ksb=2,
        ciphertext=b"\x00" * 48,
    )
    with pytest.raises(FormatError, match="logn"):
        decrypt(bech32_encode("ncryptsec", envelope.to_bytes()), "pw")


def test_zero_cost_is_rejected():
    envelope = EncryptedKeyEnvelope(
        logn=0,
        salt=b"\x00" * 16,
        nonce=b"\x00" * 24,
        ciphertext=b"\x00" * 48,
    )
    with pytest.raises(FormatError):
        decrypt(bech32_encode("ncryptsec", envelope.to_bytes()), "pw")


def test_authentic_plaintext_of_wrong_length_is_rejected():
    salt = b"\x01" * 16
    nonce = b"\x02" * 24
    key = derive_key("pw", salt, TEST_LOGN)
    ciphertext = aead_encrypt(key, nonce, b"\x02", b"\x03" * 40)
    envelope = EncryptedKeyEnvelope(
        logn=TEST_LOGN, salt=salt, nonce=nonce, ksb=2, ciphertext=ciphertext
    )

    with pytest.raises(FormatError):
        decrypt(bech32_encode("ncryptsec", envelope.to_bytes()), "pw")


# =============================================================================
# Test: Input Validation and Hex Helpers
# =============================================================================

@pytest.mark.parametrize("kwargs", [
    {"private_key": b"\x01" * 31},
    {"private_key": b"\x01" * 33},
    {"ksb": 3},
    {"logn": 0},
    {"logn": 64},
])
def test_encrypt_rejects_invalid_arguments(kwargs):
    args = {"private_key": b"\x01" * 32, "password": "pw", "logn": TEST_LOGN}
    args.update(kwargs)
    with pytest.raises(ValueError):
        encrypt(**args)


def test_hex_round_trip():
    key_hex = "ab" * 32
    encoded = encrypt_hex(key_hex, "pw", logn=TEST_LOGN)
    assert decrypt_to_hex(encoded, "pw") == key_hex


def test_hex_helper_rejects_bad_hex():
    with pytest.raises(ValueError):
        encrypt_hex("zz" * 32, "pw", logn=TEST_LOGN)
    with pytest.raises(ValueError):
        encrypt_hex("ab" * 31, "pw", logn=TEST_LOGN)


def test_derive_key_is_deterministic():
    salt = b"\x05" * 16
    assert derive_key("pw", salt, TEST_LOGN) == derive_key("pw", salt, TEST_LOGN)
    assert derive_key("pw", salt, TEST_LOGN) != derive_key("pw", salt, TEST_LOGN + 1)
    assert len(derive_key("pw", salt, TEST_LOGN)) == 32
