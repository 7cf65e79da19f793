# MIT License © 2025 Motohiro Suzuki
"""
pmt_crypto/ec_keys.py

NIST P-256 key codecs.

Accepted inputs:
- private keys: PKCS8 DER, base64
- public keys : X.509 SubjectPublicKeyInfo DER, base64
                or raw uncompressed point (0x04 || X || Y), base64

Key objects from `cryptography` are passed through unchanged after a curve check.
"""

from __future__ import annotations

import base64
import binascii
from typing import Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

CURVE = ec.SECP256R1()

UNCOMPRESSED_POINT_LEN = 65
_UNCOMPRESSED_PREFIX = 0x04

PrivateKeyInput = Union[ec.EllipticCurvePrivateKey, str, bytes]
PublicKeyInput = Union[ec.EllipticCurvePublicKey, str, bytes]


def b64decode(data: str | bytes) -> bytes:
    """Strict standard-alphabet base64 decode."""
    if isinstance(data, str):
        data = data.encode("ascii", errors="strict")
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("base64 input must be str or bytes")
    try:
        return base64.b64decode(bytes(data), validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64: {e}") from e


def b64encode(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def _check_curve(key: ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey) -> None:
    if key.curve.name != CURVE.name:
        raise ValueError(f"unsupported curve: {key.curve.name} (expected {CURVE.name})")


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(CURVE)


def load_private_key(value: PrivateKeyInput) -> ec.EllipticCurvePrivateKey:
    if isinstance(value, ec.EllipticCurvePrivateKey):
        _check_curve(value)
        return value
    if isinstance(value, str):
        value = b64decode(value)
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"unsupported private key type: {type(value).__name__}")

    key = serialization.load_der_private_key(bytes(value), password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise ValueError("private key is not an EC key")
    _check_curve(key)
    return key


def load_public_key(value: PublicKeyInput) -> ec.EllipticCurvePublicKey:
    if isinstance(value, ec.EllipticCurvePublicKey):
        _check_curve(value)
        return value
    if isinstance(value, str):
        value = b64decode(value)
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"unsupported public key type: {type(value).__name__}")

    raw = bytes(value)
    if len(raw) == UNCOMPRESSED_POINT_LEN and raw[0] == _UNCOMPRESSED_PREFIX:
        return decode_point(raw)

    key = serialization.load_der_public_key(raw)
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("public key is not an EC key")
    _check_curve(key)
    return key


def encode_point(key: ec.EllipticCurvePublicKey) -> bytes:
    return key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


def decode_point(point: bytes) -> ec.EllipticCurvePublicKey:
    if not isinstance(point, (bytes, bytearray)):
        raise TypeError("point must be bytes")
    if len(point) != UNCOMPRESSED_POINT_LEN or point[0] != _UNCOMPRESSED_PREFIX:
        raise ValueError("point must be an uncompressed P-256 point")
    return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, bytes(point))


def encode_x509(key: ec.EllipticCurvePublicKey) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def encode_pkcs8(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def same_public_key(a: ec.EllipticCurvePublicKey, b: ec.EllipticCurvePublicKey) -> bool:
    return encode_point(a) == encode_point(b)
