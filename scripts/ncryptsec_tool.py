#!/usr/bin/env python3
"""
ncryptsec Command-Line Tool
Encrypt, decrypt and inspect password-protected private keys, and build
device-link payloads.

Usage:
    python scripts/ncryptsec_tool.py encrypt --key <hex> [--logn 16] [--ksb 2]
    python scripts/ncryptsec_tool.py decrypt ncryptsec1...
    python scripts/ncryptsec_tool.py inspect ncryptsec1...
    python scripts/ncryptsec_tool.py pin [--length 4]
    python scripts/ncryptsec_tool.py link --key <hex> [--pin 1234]

Passwords are prompted with getpass unless --password is given.
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.key_profiles import KeyProfileConfig
from services.ncryptsec import (
    AuthenticationError,
    FormatError,
    build_link_payload,
    decrypt_to_hex,
    encrypt_hex,
    generate_pin,
    read_envelope,
)
from services.ncryptsec.crypto_engine import key_from_hex


def _read_password(args, confirm: bool = False) -> str:
    if args.password is not None:
        return args.password

    password = getpass.getpass("Password: ")
    if confirm and getpass.getpass("Confirm password: ") != password:
        raise ValueError("Passwords do not match")
    return password


def cmd_encrypt(args) -> int:
    password = _read_password(args, confirm=True)
    print(encrypt_hex(args.key, password, logn=args.logn, ksb=args.ksb))
    return 0


def cmd_decrypt(args) -> int:
    password = _read_password(args)
    print(decrypt_to_hex(args.encrypted_key, password))
    return 0


def cmd_inspect(args) -> int:
    envelope = read_envelope(args.encrypted_key)
    print(f"version: {envelope.version}")
    print(f"logn:    {envelope.logn} (N = {2 ** envelope.logn})")
    print(f"ksb:     {envelope.ksb}")
    return 0


def cmd_pin(args) -> int:
    print(generate_pin(args.length))
    return 0


def cmd_link(args) -> int:
    pin = args.pin if args.pin is not None else generate_pin(KeyProfileConfig.PIN_LENGTH)
    payload = build_link_payload(key_from_hex(args.key), pin, logn=KeyProfileConfig.LINK_LOGN)
    print(f"PIN: {payload.pin}")
    print(payload.uri)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ncryptsec private key tool (NIP-49)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_encrypt = subparsers.add_parser("encrypt", help="Encrypt a hex private key")
    p_encrypt.add_argument("--key", "-k", required=True, help="64-character hex private key")
    p_encrypt.add_argument("--password", "-p", help="Password (prompted when omitted)")
    p_encrypt.add_argument("--logn", type=int, default=KeyProfileConfig.STORAGE_LOGN,
                           help="scrypt cost exponent")
    p_encrypt.add_argument("--ksb", type=int, default=2, choices=[0, 1, 2],
                           help="Key security byte")
    p_encrypt.set_defaults(func=cmd_encrypt)

    p_decrypt = subparsers.add_parser("decrypt", help="Decrypt an ncryptsec string")
    p_decrypt.add_argument("encrypted_key", help="ncryptsec1... string")
    p_decrypt.add_argument("--password", "-p", help="Password (prompted when omitted)")
    p_decrypt.set_defaults(func=cmd_decrypt)

    p_inspect = subparsers.add_parser("inspect", help="Show envelope parameters")
    p_inspect.add_argument("encrypted_key", help="ncryptsec1... string")
    p_inspect.set_defaults(func=cmd_inspect)

    p_pin = subparsers.add_parser("pin", help="Generate a numeric PIN")
    p_pin.add_argument("--length", "-n", type=int, default=KeyProfileConfig.PIN_LENGTH,
                       help="Number of digits")
    p_pin.set_defaults(func=cmd_pin)

    p_link = subparsers.add_parser("link", help="Build a device-link URI")
    p_link.add_argument("--key", "-k", required=True, help="64-character hex private key")
    p_link.add_argument("--pin", help="PIN to use (generated when omitted)")
    p_link.set_defaults(func=cmd_link)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except AuthenticationError:
        print("❌ Decryption failed: wrong password or corrupted key", file=sys.stderr)
        return 2
    except FormatError as e:
        print(f"❌ Invalid encrypted key: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
