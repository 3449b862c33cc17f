"""
ncryptsec - Pydantic Models
Defines the binary envelope layout of an encrypted key and the link payload.

Envelope layout (no length prefixes, fixed offsets):
    version(1) | logn(1) | salt(16) | nonce(24) | ksb(1) | ciphertext(>=48)
"""

from enum import Enum, IntEnum

from pydantic import BaseModel, Field, field_validator

from .exceptions import FormatError


ENVELOPE_VERSION = 0x02
SALT_LENGTH = 16
NONCE_LENGTH = 24
PRIVATE_KEY_LENGTH = 32
TAG_LENGTH = 16
HEADER_LENGTH = 1 + 1 + SALT_LENGTH + NONCE_LENGTH + 1
MIN_CIPHERTEXT_LENGTH = PRIVATE_KEY_LENGTH + TAG_LENGTH

LINK_URI_PREFIX = "nostr:link:"


class KeySecurity(IntEnum):
    """Key security byte (ksb) values."""
    INSECURE = 0x00   # key has been known to be handled insecurely
    SECURE = 0x01     # key has not been known to be handled insecurely
    UNTRACKED = 0x02  # client does not track this


class EncryptedKeyEnvelope(BaseModel):
    """
    Binary envelope carried inside an ncryptsec string.

    The ksb byte doubles as the AEAD associated data, so it is authenticated
    but not secret.
    """
    version: int = Field(default=ENVELOPE_VERSION, ge=0, le=255, description="Format version")
    logn: int = Field(..., ge=0, le=255, description="scrypt cost exponent, N = 2^logn")
    salt: bytes = Field(..., description="16 random bytes for the KDF")
    nonce: bytes = Field(..., description="24 random bytes for XChaCha20-Poly1305")
    ksb: int = Field(default=KeySecurity.UNTRACKED, ge=0, le=255, description="Key security byte")
    ciphertext: bytes = Field(..., description="Sealed private key including tag")

    @field_validator('salt')
    @classmethod
    def validate_salt(cls, v: bytes) -> bytes:
        if len(v) != SALT_LENGTH:
            raise ValueError(f"salt must be {SALT_LENGTH} bytes, got {len(v)}")
        return v

    @field_validator('nonce')
    @classmethod
    def validate_nonce(cls, v: bytes) -> bytes:
        if len(v) != NONCE_LENGTH:
            raise ValueError(f"nonce must be {NONCE_LENGTH} bytes, got {len(v)}")
        return v

    @property
    def aad(self) -> bytes:
        """Associated data bound to the ciphertext."""
        return bytes([self.ksb])

    def to_bytes(self) -> bytes:
        return (
            bytes([self.version, self.logn])
            + self.salt
            + self.nonce
            + self.aad
            + self.ciphertext
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptedKeyEnvelope":
        """
        Parse an envelope from its binary form.

        Only the length and the version byte are checked here.

        Raises:
            FormatError: truncated envelope or unknown version
        """
        if len(data) < HEADER_LENGTH + MIN_CIPHERTEXT_LENGTH:
            raise FormatError(
                f"Envelope is {len(data)} bytes, "
                f"expected at least {HEADER_LENGTH + MIN_CIPHERTEXT_LENGTH}"
            )
        if data[0] != ENVELOPE_VERSION:
            raise FormatError(f"Invalid version {data[0]}, expected {ENVELOPE_VERSION}")

        offset = 2
        salt = data[offset:offset + SALT_LENGTH]
        offset += SALT_LENGTH
        nonce = data[offset:offset + NONCE_LENGTH]
        offset += NONCE_LENGTH

        return cls(
            version=data[0],
            logn=data[1],
            salt=salt,
            nonce=nonce,
            ksb=data[offset],
            ciphertext=data[offset + 1:],
        )


class LinkPayload(BaseModel):
    """PIN-protected key for device linking."""
    pin: str = Field(..., description="Numeric PIN, delivered out of band")
    encrypted_key: str = Field(..., description="ncryptsec string encrypted with the PIN")
    uri: str = Field(..., description="nostr:link: URI for QR rendering")


class ScanResultType(str, Enum):
    """Kinds of content recognised in scanned QR data."""
    LIGHTNING = "lightning"
    ECASH = "ecash"
    PRIVATE_KEY = "private-key"
    LINK = "link"
    UNKNOWN = "unknown"
