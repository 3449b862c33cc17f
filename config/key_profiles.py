"""
ncryptsec Key Profiles
Cost settings for the two encryption profiles.

Profiles:
- storage: long-term encrypted key at rest (high scrypt cost)
- link:    short-lived device-link QR payload (low scrypt cost + numeric PIN)

The link profile trades brute-force resistance for scan-time latency and must
never be used for keys kept at rest.
"""

import os


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


class KeyProfileConfig:
    """Profile configuration, overridable through environment variables."""

    # ========== Storage profile ==========
    # N = 2^16 = 65536
    STORAGE_LOGN: int = _env_int("NCRYPTSEC_STORAGE_LOGN", 16)

    # ========== Device-link profile ==========
    # N = 2^10 = 1024
    LINK_LOGN: int = _env_int("NCRYPTSEC_LINK_LOGN", 10)
    PIN_LENGTH: int = _env_int("NCRYPTSEC_PIN_LENGTH", 4)

    # ========== Limits ==========
    # Upper bound accepted when decrypting untrusted envelopes (2^22 needs 4 GiB)
    MAX_LOGN: int = _env_int("NCRYPTSEC_MAX_LOGN", 22)

    @classmethod
    def as_dict(cls) -> dict:
        return {
            "storage_logn": cls.STORAGE_LOGN,
            "link_logn": cls.LINK_LOGN,
            "pin_length": cls.PIN_LENGTH,
            "max_logn": cls.MAX_LOGN,
        }
