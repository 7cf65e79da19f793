# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF


def hkdf_sha256(ikm: bytes, salt: bytes | None, info: bytes, length: int) -> bytes:
    if not isinstance(ikm, (bytes, bytearray)):
        raise TypeError("ikm must be bytes")
    if salt is not None and not isinstance(salt, (bytes, bytearray)):
        raise TypeError("salt must be bytes")
    if not isinstance(info, (bytes, bytearray)):
        raise TypeError("info must be bytes")
    if not isinstance(length, int) or length <= 0:
        raise ValueError("length must be positive int")

    # empty salt == HashLen zero bytes (RFC 5869 2.2)
    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=bytes(salt) if salt else None,
        info=bytes(info),
    )
    return kdf.derive(bytes(ikm))


def ecies_hkdf_symmetric_key(
    *,
    kem_bytes: bytes,
    shared_secret: bytes,
    salt: bytes | None,
    info: bytes,
    length: int,
) -> bytes:
    """ECIES key schedule: IKM = encoded ephemeral point || ECDH shared secret."""
    return hkdf_sha256(ikm=bytes(kem_bytes) + bytes(shared_secret), salt=salt, info=info, length=length)
