# MIT License © 2025 Motohiro Suzuki
"""
ECIES-HKDF key encapsulation over P-256.

Sender side:
- generate (or take) an ephemeral key pair
- ss  = ECDH(ephemeral_sk, recipient_pk)
- key = HKDF(salt, ephemeral_point || ss, info, key_len)
- kem_bytes = uncompressed ephemeral point (goes on the wire)

Recipient side:
- ss  = ECDH(recipient_sk, decode_point(kem_bytes))
- key derived exactly as above
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from cryptography.hazmat.primitives.asymmetric import ec

from pmt_crypto.ec_keys import decode_point, encode_point, generate_private_key
from pmt_crypto.hkdf import ecies_hkdf_symmetric_key

EphemeralKeyFactory = Callable[[], ec.EllipticCurvePrivateKey]


@dataclass(frozen=True)
class KemResult:
    symmetric_key: bytes
    kem_bytes: bytes


@runtime_checkable
class RecipientKem(Protocol):
    """
    Anything able to finish ECDH for an encoded ephemeral point.
    Lets recipients keep private keys outside the process (HSM etc).
    """

    def compute_shared_secret(self, ephemeral_point: bytes) -> bytes:
        ...


class SenderKem:
    def __init__(self, recipient_public_key: ec.EllipticCurvePublicKey) -> None:
        if not isinstance(recipient_public_key, ec.EllipticCurvePublicKey):
            raise TypeError("recipient_public_key must be an EC public key")
        self._recipient_public_key = recipient_public_key

    def encapsulate(
        self,
        *,
        salt: bytes | None,
        info: bytes,
        key_len: int,
        ephemeral_key_factory: Optional[EphemeralKeyFactory] = None,
    ) -> KemResult:
        factory = ephemeral_key_factory or generate_private_key
        ephemeral = factory()
        if not isinstance(ephemeral, ec.EllipticCurvePrivateKey):
            raise TypeError("ephemeral key factory must return an EC private key")

        shared_secret = ephemeral.exchange(ec.ECDH(), self._recipient_public_key)
        kem_bytes = encode_point(ephemeral.public_key())
        key = ecies_hkdf_symmetric_key(
            kem_bytes=kem_bytes,
            shared_secret=shared_secret,
            salt=salt,
            info=info,
            length=key_len,
        )
        return KemResult(symmetric_key=key, kem_bytes=kem_bytes)


class PrivateKeyRecipientKem:
    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise TypeError("private_key must be an EC private key")
        self._private_key = private_key

    def compute_shared_secret(self, ephemeral_point: bytes) -> bytes:
        peer = decode_point(ephemeral_point)
        return self._private_key.exchange(ec.ECDH(), peer)


def decapsulate(
    kem: RecipientKem,
    kem_bytes: bytes,
    *,
    salt: bytes | None,
    info: bytes,
    key_len: int,
) -> bytes:
    shared_secret = kem.compute_shared_secret(bytes(kem_bytes))
    return ecies_hkdf_symmetric_key(
        kem_bytes=kem_bytes,
        shared_secret=shared_secret,
        salt=salt,
        info=info,
        length=key_len,
    )
