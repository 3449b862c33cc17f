"""
ncryptsec - FastAPI Routes
REST endpoints for encrypted key handling and device linking.

Endpoints:
- POST /api/ncryptsec/encrypt        - Encrypt a hex private key with a password
- POST /api/ncryptsec/decrypt        - Decrypt an ncryptsec string
- POST /api/ncryptsec/inspect        - Show public envelope parameters
- POST /api/ncryptsec/link           - Build a PIN-protected device-link payload
- POST /api/ncryptsec/link/qr        - Same as /link, rendered as a PNG QR code
- POST /api/ncryptsec/link/redeem    - Decrypt a scanned device-link URI
- POST /api/ncryptsec/scan/identify  - Classify scanned QR data
- GET  /api/ncryptsec/profiles       - Active cost profiles

Handlers are plain functions so the scrypt work runs in the threadpool.
"""

import logging
from io import BytesIO
from typing import Optional

import qrcode
from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from config.key_profiles import KeyProfileConfig

from .crypto_engine import decrypt_to_hex, encrypt_hex, key_from_hex, read_envelope
from .device_link import (
    build_link_payload,
    generate_pin,
    identify_scan_type,
    redeem_link_payload,
)
from .exceptions import AuthenticationError, FormatError
from .models import KeySecurity, LinkPayload

logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================

class EncryptRequest(BaseModel):
    """Request to encrypt a private key."""
    private_key_hex: str = Field(..., description="64-character hex private key")
    password: str = Field(..., description="Password used to derive the encryption key")
    logn: Optional[int] = Field(None, description="scrypt cost exponent (default: storage profile)")
    ksb: int = Field(KeySecurity.UNTRACKED, description="Key security byte (0, 1 or 2)")


class EncryptResponse(BaseModel):
    encrypted_key: str


class DecryptRequest(BaseModel):
    """Request to decrypt an ncryptsec string."""
    encrypted_key: str = Field(..., description="bech32 string starting with ncryptsec1")
    password: str = Field(..., description="Password used for encryption")


class PrivateKeyResponse(BaseModel):
    private_key_hex: str


class InspectRequest(BaseModel):
    encrypted_key: str = Field(..., description="bech32 string starting with ncryptsec1")


class InspectResponse(BaseModel):
    """Public parameters of an encrypted key."""
    version: int
    logn: int
    ksb: int


class LinkRequest(BaseModel):
    """Request to build a device-link payload."""
    private_key_hex: str = Field(..., description="64-character hex private key")
    pin: Optional[str] = Field(None, description="PIN to use; generated when omitted")
    pin_length: Optional[int] = Field(None, ge=1, le=12, description="Length of a generated PIN")


class RedeemRequest(BaseModel):
    """Request to decrypt a scanned device-link URI."""
    uri: str = Field(..., description="nostr:link:ncryptsec1... URI")
    pin: str = Field(..., description="PIN shown on the linking device")


class IdentifyRequest(BaseModel):
    data: str = Field(..., description="Raw scanned text")


class IdentifyResponse(BaseModel):
    type: str


# ============================================================================
# Helpers
# ============================================================================

def _to_http_error(exc: Exception) -> HTTPException:
    """Map codec errors to HTTP errors without echoing secrets."""
    logger.warning(f"Encrypted key request rejected: {type(exc).__name__}")
    if isinstance(exc, AuthenticationError):
        return HTTPException(
            status_code=401,
            detail="Decryption failed: wrong password or corrupted key"
        )
    if isinstance(exc, FormatError):
        return HTTPException(status_code=400, detail=f"Invalid encrypted key: {exc}")
    return HTTPException(status_code=422, detail=str(exc))


def _build_link(request: LinkRequest) -> LinkPayload:
    pin_length = request.pin_length or KeyProfileConfig.PIN_LENGTH
    pin = request.pin if request.pin is not None else generate_pin(pin_length)
    if not pin.isdigit():
        raise HTTPException(status_code=422, detail="PIN must contain digits only")

    try:
        private_key = key_from_hex(request.private_key_hex)
        return build_link_payload(private_key, pin, logn=KeyProfileConfig.LINK_LOGN)
    except ValueError as e:
        raise _to_http_error(e)


# ============================================================================
# Router
# ============================================================================

router = APIRouter(prefix="/api/ncryptsec", tags=["Encrypted Keys"])


@router.get("/profiles")
def get_profiles():
    """Return the active storage and device-link cost settings."""
    return KeyProfileConfig.as_dict()


@router.post("/encrypt", response_model=EncryptResponse)
def encrypt_key(request: EncryptRequest):
    """
    Encrypt a private key for storage.

    Uses the storage profile cost unless logn is given.
    """
    logn = request.logn if request.logn is not None else KeyProfileConfig.STORAGE_LOGN
    try:
        encrypted_key = encrypt_hex(
            request.private_key_hex,
            request.password,
            logn=logn,
            ksb=request.ksb,
        )
    except ValueError as e:
        raise _to_http_error(e)

    return EncryptResponse(encrypted_key=encrypted_key)


@router.post("/decrypt", response_model=PrivateKeyResponse)
def decrypt_key(request: DecryptRequest):
    """Decrypt an ncryptsec string back to the hex private key."""
    try:
        private_key_hex = decrypt_to_hex(request.encrypted_key, request.password)
    except (FormatError, AuthenticationError) as e:
        raise _to_http_error(e)

    return PrivateKeyResponse(private_key_hex=private_key_hex)


@router.post("/inspect", response_model=InspectResponse)
def inspect_key(request: InspectRequest):
    """Return version, cost and key security byte without a password."""
    try:
        envelope = read_envelope(request.encrypted_key)
    except FormatError as e:
        raise _to_http_error(e)

    return InspectResponse(version=envelope.version, logn=envelope.logn, ksb=envelope.ksb)


@router.post("/link", response_model=LinkPayload)
def create_link(request: LinkRequest):
    """
    Build a device-link payload.

    The response holds the PIN; show it next to the QR code and never persist it.
    """
    return _build_link(request)


@router.post("/link/qr")
def create_link_qr(request: LinkRequest):
    """Build a device-link payload and render its URI as a PNG QR code."""
    payload = _build_link(request)

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(payload.uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)

    return Response(
        content=buffer.getvalue(),
        media_type="image/png",
        headers={"Cache-Control": "no-store", "X-Link-Pin": payload.pin}
    )


@router.post("/link/redeem", response_model=PrivateKeyResponse)
def redeem_link(request: RedeemRequest):
    """Decrypt the private key from a scanned device-link URI."""
    try:
        private_key = redeem_link_payload(request.uri, request.pin)
    except (FormatError, AuthenticationError) as e:
        raise _to_http_error(e)

    return PrivateKeyResponse(private_key_hex=private_key.hex())


@router.post("/scan/identify", response_model=IdentifyResponse)
def identify_scan(request: IdentifyRequest):
    """Classify scanned QR data (lightning, ecash, private-key, link, unknown)."""
    return IdentifyResponse(type=identify_scan_type(request.data).value)
