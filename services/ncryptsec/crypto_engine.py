"""
ncryptsec - Crypto Engine
Password-based encryption of raw 32-byte private keys (NIP-49).

Security Architecture:
- Key derivation: scrypt (N = 2^logn, r = 8, p = 1) over the NFKC password
- Encryption: XChaCha20-Poly1305-IETF, 24-byte random nonce, ksb byte as AAD
- Transport: bech32 with the "ncryptsec" prefix

Library: PyNaCl (libsodium binding)
"""

import logging
import unicodedata
from typing import Callable, Optional

import nacl.utils
from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
    crypto_pwhash_scryptsalsa208sha256_ll,
)
from nacl.exceptions import CryptoError

from config.key_profiles import KeyProfileConfig

from .bech32 import bech32_decode, bech32_encode
from .exceptions import AuthenticationError, FormatError
from .models import (
    ENVELOPE_VERSION,
    NONCE_LENGTH,
    PRIVATE_KEY_LENGTH,
    SALT_LENGTH,
    EncryptedKeyEnvelope,
    KeySecurity,
)

logger = logging.getLogger(__name__)

NCRYPTSEC_PREFIX = "ncryptsec"

SCRYPT_R = 8
SCRYPT_P = 1
DERIVED_KEY_LENGTH = 32
MIN_LOGN = 1

DEFAULT_LOGN = 16
DEFAULT_KSB = KeySecurity.UNTRACKED

# Callable returning n secure random bytes
RandomSource = Callable[[int], bytes]


def _scrypt_maxmem(n: int) -> int:
    """Memory ceiling libsodium needs for the given cost (V and B arrays)."""
    return 128 * SCRYPT_R * (n + 2 + SCRYPT_P)


def _check_logn(logn: int) -> bool:
    return isinstance(logn, int) and MIN_LOGN <= logn <= KeyProfileConfig.MAX_LOGN


def derive_key(password: str, salt: bytes, logn: int) -> bytes:
    """
    Derive the 32-byte symmetric key from a password.

    The password is NFKC-normalised so that the same password typed on
    different keyboards derives the same key.

    Args:
        password: The user's password or PIN
        salt: 16-byte salt stored in the envelope
        logn: Cost exponent, N = 2^logn

    Returns:
        The derived key
    """
    n = 2 ** logn
    normalized = unicodedata.normalize("NFKC", password).encode("utf-8")
    return crypto_pwhash_scryptsalsa208sha256_ll(
        normalized,
        salt,
        n,
        SCRYPT_R,
        SCRYPT_P,
        dklen=DERIVED_KEY_LENGTH,
        maxmem=_scrypt_maxmem(n),
    )


def aead_encrypt(key: bytes, nonce: bytes, aad: bytes, plaintext: bytes) -> bytes:
    """Seal plaintext, returning ciphertext with the 16-byte tag appended."""
    return crypto_aead_xchacha20poly1305_ietf_encrypt(plaintext, aad, nonce, key)


def aead_decrypt(key: bytes, nonce: bytes, aad: bytes, ciphertext: bytes) -> bytes:
    """
    Open a sealed ciphertext.

    Raises:
        AuthenticationError: tag mismatch (wrong key, tampered data or AAD)
    """
    try:
        return crypto_aead_xchacha20poly1305_ietf_decrypt(ciphertext, aad, nonce, key)
    except CryptoError:
        raise AuthenticationError("Decryption failed: authentication tag mismatch") from None



def encrypt(
    private_key: bytes,
    password: str,
    logn: int = DEFAULT_LOGN,
    ksb: int = DEFAULT_KSB,
    random_source: Optional[RandomSource] = None,
) -> str:
    """
    Encrypt a private key with a password.

    Workflow:
    1. Draw a fresh salt and nonce from the random source
    2. Derive the symmetric key with scrypt
    3. Seal the private key with the ksb byte as associated data
    4. Serialize the envelope and encode it as bech32

    Args:
        private_key: Raw 32-byte private key
        password: Password used to derive the encryption key
        logn: scrypt cost exponent (16 for storage, 10 for device link)
        ksb: Key security byte (0x00, 0x01 or 0x02)
        random_source: Callable returning n random bytes (default: libsodium)

    Returns:
        bech32 string starting with "ncryptsec1"
    """
    if len(private_key) != PRIVATE_KEY_LENGTH:
        raise ValueError(f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key)}")
    if ksb not in tuple(KeySecurity):
        raise ValueError(f"Invalid key security byte {ksb}, expected 0, 1 or 2")
    if not _check_logn(logn):
        raise ValueError(
            f"logn must be between {MIN_LOGN} and {KeyProfileConfig.MAX_LOGN}, got {logn}"
        )

    rand = random_source or nacl.utils.random
    salt = rand(SALT_LENGTH)
    nonce = rand(NONCE_LENGTH)
    aad = bytes([ksb])

    key = derive_key(password, salt, logn)
    ciphertext = aead_encrypt(key, nonce, aad, bytes(private_key))

    envelope = EncryptedKeyEnvelope(
        version=ENVELOPE_VERSION,
        logn=logn,
        salt=salt,
        nonce=nonce,
        ksb=int(ksb),
        ciphertext=ciphertext,
    )

    logger.debug(f"Encrypted private key (logn={logn}, ksb={int(ksb)})")
    return bech32_encode(NCRYPTSEC_PREFIX, envelope.to_bytes())


def read_envelope(encoded: str) -> EncryptedKeyEnvelope:
    """
    Parse an ncryptsec string without decrypting it.

    Raises:
        FormatError: bad bech32, wrong prefix, truncated envelope or bad version
    """
    prefix, data = bech32_decode(encoded)
    if prefix != NCRYPTSEC_PREFIX:
        logger.warning(f"Rejected encrypted key with prefix '{prefix}'")
        raise FormatError(f"Invalid prefix '{prefix}', expected '{NCRYPTSEC_PREFIX}'")
    return EncryptedKeyEnvelope.from_bytes(data)


def decrypt(encoded: str, password: str) -> bytes:
    """
    Decrypt an ncryptsec string.

    Args:
        encoded: bech32 string starting with "ncryptsec1"
        password: The password used for encryption

    Returns:
        The raw 32-byte private key

    Raises:
        FormatError: malformed input or unsupported cost factor
        AuthenticationError: wrong password or tampered ciphertext
    """
    envelope = read_envelope(encoded)

    if not _check_logn(envelope.logn):
        raise FormatError(
            f"Unsupported logn {envelope.logn}, expected {MIN_LOGN}..{KeyProfileConfig.MAX_LOGN}"
        )

    key = derive_key(password, envelope.salt, envelope.logn)
    try:
        plaintext = aead_decrypt(key, envelope.nonce, envelope.aad, envelope.ciphertext)
    except AuthenticationError:
        logger.warning(f"Encrypted key failed authentication (logn={envelope.logn})")
        raise

    if len(plaintext) != PRIVATE_KEY_LENGTH:
        raise FormatError(f"Decrypted key must be {PRIVATE_KEY_LENGTH} bytes")
    return plaintext


# =============================================================================
# Hex helpers (signer handoff)
# =============================================================================

def key_from_hex(private_key_hex: str) -> bytes:
    if not isinstance(private_key_hex, str) or len(private_key_hex) != PRIVATE_KEY_LENGTH * 2:
        raise ValueError(f"Private key hex must be {PRIVATE_KEY_LENGTH * 2} characters")
    try:
        return bytes.fromhex(private_key_hex)
    except ValueError:
        raise ValueError("Private key hex contains non-hex characters") from None


def encrypt_hex(
    private_key_hex: str,
    password: str,
    logn: int = DEFAULT_LOGN,
    ksb: int = DEFAULT_KSB,
    random_source: Optional[RandomSource] = None,
) -> str:
    """Encrypt a hex-encoded private key (as held by a signer)."""
    return encrypt(key_from_hex(private_key_hex), password, logn, ksb, random_source)


def decrypt_to_hex(encoded: str, password: str) -> str:
    """Decrypt an ncryptsec string to the lowercase hex form a signer is built from."""
    return decrypt(encoded, password).hex()
