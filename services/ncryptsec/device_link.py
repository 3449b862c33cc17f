"""
ncryptsec - Device Link
Builds and redeems PIN-protected key payloads for QR-code device linking.

Flow:
1. The logged-in device generates a short numeric PIN
2. The private key is encrypted with the PIN at a low scrypt cost (logn=10)
3. The ncryptsec string is wrapped as "nostr:link:<ncryptsec>" and shown as a QR code
4. The new device scans the QR code, the user types the PIN, the key is decrypted

Security rests on the short display time and the out-of-band PIN, not on the
KDF cost. Payloads built here must never be stored at rest.
"""

import logging
import secrets
from typing import Callable, Optional

from .crypto_engine import RandomSource, decrypt, encrypt
from .exceptions import FormatError
from .models import LINK_URI_PREFIX, KeySecurity, LinkPayload, ScanResultType

logger = logging.getLogger(__name__)

LINK_LOGN = 10
DEFAULT_PIN_LENGTH = 4


def generate_pin(
    length: int = DEFAULT_PIN_LENGTH,
    randbelow: Callable[[int], int] = secrets.randbelow,
) -> str:
    """
    Generate a random numeric PIN.

    Args:
        length: Number of digits
        randbelow: Uniform integer source in [0, n) (default: secrets.randbelow)

    Returns:
        PIN string, left-padded with zeros to exactly `length` digits
    """
    if length < 1:
        raise ValueError(f"PIN length must be at least 1, got {length}")
    return str(randbelow(10 ** length)).zfill(length)


def build_link_payload(
    private_key: bytes,
    pin: str,
    logn: int = LINK_LOGN,
    random_source: Optional[RandomSource] = None,
) -> LinkPayload:
    """
    Encrypt a private key with a PIN and wrap it in a device-link URI.

    Args:
        private_key: Raw 32-byte private key
        pin: PIN shown to the user, delivered out of band
        logn: scrypt cost exponent for the link profile
        random_source: Callable returning n random bytes (default: libsodium)

    Returns:
        LinkPayload with the PIN, the ncryptsec string and the URI
    """
    encrypted_key = encrypt(
        private_key,
        pin,
        logn=logn,
        ksb=KeySecurity.UNTRACKED,
        random_source=random_source,
    )
    logger.info(f"Built device-link payload (logn={logn}, pin_length={len(pin)})")
    return LinkPayload(
        pin=pin,
        encrypted_key=encrypted_key,
        uri=f"{LINK_URI_PREFIX}{encrypted_key}",
    )


def parse_link_uri(uri: str) -> str:
    """
    Extract the ncryptsec string from a device-link URI.

    Raises:
        FormatError: the text is not a nostr:link: URI
    """
    text = uri.strip()
    if not text.lower().startswith(LINK_URI_PREFIX):
        raise FormatError(f"Not a device-link URI, expected '{LINK_URI_PREFIX}' prefix")
    encrypted_key = text[len(LINK_URI_PREFIX):]
    if not encrypted_key:
        raise FormatError("Device-link URI carries no encrypted key")
    return encrypted_key


def redeem_link_payload(uri: str, pin: str) -> bytes:
    """Decrypt the private key carried by a scanned device-link URI."""
    return decrypt(parse_link_uri(uri), pin)


def identify_scan_type(data: str) -> ScanResultType:
    """Classify scanned QR data."""
    if not data:
        return ScanResultType.UNKNOWN

    lower = data.lower()

    if lower.startswith("lightning:") or lower.startswith("lnbc"):
        return ScanResultType.LIGHTNING

    if (
        lower.startswith("cashu:")
        or "cashub" in lower
        or "ur:" in lower
    ):
        return ScanResultType.ECASH

    if lower.startswith("nsec"):
        return ScanResultType.PRIVATE_KEY

    if lower.startswith(LINK_URI_PREFIX) or ("ncryptsec" in lower and "nostr:link" in lower):
        return ScanResultType.LINK

    return ScanResultType.UNKNOWN
