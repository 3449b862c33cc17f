"""
ncryptsec - Bech32 Transport
Checksummed text encoding used for QR codes and copy-paste.

Format (BIP-173, bech32 constant 1):
    <prefix> "1" <data chars> <6 checksum chars>

Unlike BIP-173 addresses, the overall length is bounded at 5000 characters
so that an encrypted key envelope fits while QR codes stay scannable.
"""

from typing import List, Tuple

from .exceptions import FormatError


CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
SEPARATOR = "1"
CHECKSUM_LENGTH = 6
BECH32_MAX_SIZE = 5000

_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_CHARSET_MAP = {c: i for i, c in enumerate(CHARSET)}


def _polymod(values: List[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i in range(5):
            if (top >> i) & 1:
                chk ^= _GENERATOR[i]
    return chk


def _expand_prefix(prefix: str) -> List[int]:
    return [ord(c) >> 5 for c in prefix] + [0] + [ord(c) & 31 for c in prefix]


def _create_checksum(prefix: str, words: List[int]) -> List[int]:
    values = _expand_prefix(prefix) + words
    polymod = _polymod(values + [0] * CHECKSUM_LENGTH) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(CHECKSUM_LENGTH)]


def _verify_checksum(prefix: str, words: List[int]) -> bool:
    return _polymod(_expand_prefix(prefix) + words) == 1


def to_words(data: bytes) -> List[int]:
    """Regroup 8-bit bytes into 5-bit words, zero padding the tail."""
    acc = 0
    bits = 0
    words = []
    for byte in data:
        acc = (acc << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            words.append((acc >> bits) & 31)
        acc &= (1 << bits) - 1
    if bits:
        words.append((acc << (5 - bits)) & 31)
    return words


def from_words(words: List[int]) -> bytes:
    """
    Regroup 5-bit words into bytes.

    Raises:
        FormatError: if the padding is longer than 4 bits or not all zeros
    """
    acc = 0
    bits = 0
    out = bytearray()
    for word in words:
        acc = (acc << 5) | word
        bits += 5
        while bits >= 8:
            bits -= 8
            out.append((acc >> bits) & 0xFF)
        acc &= (1 << bits) - 1
    if bits >= 5:
        raise FormatError("Excess padding in bech32 data")
    if acc:
        raise FormatError("Non-zero padding in bech32 data")
    return bytes(out)


def bech32_encode(prefix: str, data: bytes, limit: int = BECH32_MAX_SIZE) -> str:
    """
    Encode bytes as a bech32 string.

    Args:
        prefix: Human-readable part (e.g. "ncryptsec")
        data: Payload bytes
        limit: Maximum length of the resulting string

    Returns:
        Lowercase bech32 string
    """
    if not prefix:
        raise FormatError("Bech32 prefix must not be empty")
    prefix = prefix.lower()
    words = to_words(data)
    if len(prefix) + 1 + len(words) + CHECKSUM_LENGTH > limit:
        raise FormatError(f"Bech32 payload exceeds {limit} characters")

    checksum = _create_checksum(prefix, words)
    return prefix + SEPARATOR + "".join(CHARSET[w] for w in words + checksum)


def bech32_decode(text: str, limit: int = BECH32_MAX_SIZE) -> Tuple[str, bytes]:
    """
    Decode a bech32 string.

    Returns:
        Tuple of (prefix, data); the prefix is returned lowercase

    Raises:
        FormatError: malformed string, bad checksum or size overrun
    """
    if not isinstance(text, str):
        raise FormatError("Bech32 input must be a string")
    if len(text) < 8 or len(text) > limit:
        raise FormatError(f"Bech32 string length {len(text)} outside 8..{limit}")
    if text.lower() != text and text.upper() != text:
        raise FormatError("Bech32 string uses mixed case")

    text = text.lower()
    pos = text.rfind(SEPARATOR)
    if pos < 1:
        raise FormatError("Bech32 string has no prefix or separator")
    if len(text) - pos - 1 < CHECKSUM_LENGTH:
        raise FormatError("Bech32 data part too short")

    prefix = text[:pos]
    for c in prefix:
        if not 33 <= ord(c) <= 126:
            raise FormatError("Invalid character in bech32 prefix")

    words = []
    for c in text[pos + 1:]:
        if c not in _CHARSET_MAP:
            raise FormatError("Invalid character in bech32 data")
        words.append(_CHARSET_MAP[c])

    if not _verify_checksum(prefix, words):
        raise FormatError("Invalid bech32 checksum")

    return prefix, from_words(words[:-CHECKSUM_LENGTH])
