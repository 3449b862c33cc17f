"""
ncryptsec - Exceptions
Errors raised while decoding or decrypting an encrypted key.
"""


class NcryptsecError(Exception):
    """Base exception for encrypted key failures."""
    pass


class FormatError(NcryptsecError):
    """Raised when an encoded key or envelope is malformed."""
    pass


class AuthenticationError(NcryptsecError):
    """
    Raised when the authentication tag does not verify.

    A wrong password and a tampered ciphertext produce the same error.
    """
    pass
