# MIT License © 2025 Motohiro Suzuki
"""
ECDSA P-256 / SHA-256 signatures, DER encoded.

verify() returns bool (never raises on a bad signature), so callers can run
first-match loops over several keys.
"""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

_ALG = ec.ECDSA(hashes.SHA256())


class EcdsaSigner:
    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise TypeError("private_key must be an EC private key")
        self._private_key = private_key

    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._private_key.public_key()

    def sign(self, msg: bytes) -> bytes:
        if not isinstance(msg, (bytes, bytearray)):
            raise TypeError("msg must be bytes")
        return self._private_key.sign(bytes(msg), _ALG)


class EcdsaVerifier:
    def __init__(self, public_key: ec.EllipticCurvePublicKey) -> None:
        if not isinstance(public_key, ec.EllipticCurvePublicKey):
            raise TypeError("public_key must be an EC public key")
        self.public_key = public_key

    def verify(self, sig: bytes, msg: bytes) -> bool:
        if not isinstance(sig, (bytes, bytearray)):
            raise TypeError("sig must be bytes")
        if not isinstance(msg, (bytes, bytearray)):
            raise TypeError("msg must be bytes")
        try:
            self.public_key.verify(bytes(sig), bytes(msg), _ALG)
        except InvalidSignature:
            return False
        return True
