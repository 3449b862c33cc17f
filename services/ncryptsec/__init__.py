"""
ncryptsec - Password-encrypted private keys (NIP-49)
Encrypts raw 32-byte keys for storage and for PIN-protected device linking.

Primitives: scrypt + XChaCha20-Poly1305
Library: PyNaCl (libsodium binding)
"""

from .crypto_engine import decrypt, decrypt_to_hex, encrypt, encrypt_hex, read_envelope
from .device_link import build_link_payload, generate_pin, parse_link_uri, redeem_link_payload
from .exceptions import AuthenticationError, FormatError, NcryptsecError
from .models import EncryptedKeyEnvelope, KeySecurity, LinkPayload

__all__ = [
    'encrypt',
    'decrypt',
    'encrypt_hex',
    'decrypt_to_hex',
    'read_envelope',
    'generate_pin',
    'build_link_payload',
    'parse_link_uri',
    'redeem_link_payload',
    'NcryptsecError',
    'FormatError',
    'AuthenticationError',
    'EncryptedKeyEnvelope',
    'KeySecurity',
    'LinkPayload',
]
