# MIT License © 2025 Motohiro Suzuki
"""
pmt_protocol/intermediate_cert.py

ECv2 only: certify a short-lived intermediate public key with one or more
long-lived sender signing keys.

  signedKey  = canonical_json({"keyValue": b64(X.509 DER), "keyExpiration": "<millis>"})
  signatures = [ECDSA(k, length_value(sender_id, "ECv2", signedKey)) for k in signing keys]

Signing with an old and a new long-lived key at once lets recipients that
trust either one accept the certificate during trust-anchor rotation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec

from pmt_crypto.ec_keys import (
    PrivateKeyInput,
    PublicKeyInput,
    b64encode,
    encode_x509,
    load_private_key,
    load_public_key,
)
from pmt_crypto.signature import EcdsaSigner
from pmt_protocol.codec import canonical_json, now_millis, signed_key_tbs
from pmt_protocol.constants import (
    DEFAULT_SENDER_ID,
    JSON_KEY_EXPIRATION_KEY,
    JSON_KEY_VALUE_KEY,
    MAX_MILLIS_DIGITS,
    PROTOCOL_VERSION_EC_V2,
    ProtocolVersion,
)
from pmt_protocol.errors import ConfigurationError
from pmt_protocol.models import IntermediateCertificate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntermediateCertFactoryConfig:
    protocol_version: str = PROTOCOL_VERSION_EC_V2
    sender_id: Optional[str] = None
    sender_signing_keys: Sequence[PrivateKeyInput] = ()
    sender_intermediate_signing_key: Optional[PublicKeyInput] = None
    expiration: Optional[int] = None  # unix millis
    clock: Optional[Callable[[], int]] = None


class IntermediateCertFactory:
    def __init__(
        self,
        *,
        sender_id: str,
        signers: Tuple[EcdsaSigner, ...],
        intermediate_public_key: ec.EllipticCurvePublicKey,
        expiration: int,
    ) -> None:
        self._sender_id = sender_id
        self._signers = signers
        self._intermediate_public_key = intermediate_public_key
        self._expiration = expiration

    @classmethod
    def build(cls, config: IntermediateCertFactoryConfig) -> "IntermediateCertFactory":
        version = ProtocolVersion.parse(config.protocol_version)
        if version is not ProtocolVersion.EC_V2:
            raise ConfigurationError("intermediate signing keys are only used in ECv2")

        if not config.sender_signing_keys:
            raise ConfigurationError(
                "must add at least one sender's signing key using "
                "IntermediateCertFactoryConfig.sender_signing_keys"
            )
        if config.sender_intermediate_signing_key is None:
            raise ConfigurationError(
                "must set sender's intermediate signing key using "
                "IntermediateCertFactoryConfig.sender_intermediate_signing_key"
            )
        if config.expiration is None:
            raise ConfigurationError("must set expiration using IntermediateCertFactoryConfig.expiration")
        if isinstance(config.expiration, bool) or not isinstance(config.expiration, int):
            raise ConfigurationError("expiration must be int milliseconds")
        if config.expiration <= 0:
            raise ConfigurationError("invalid negative expiration")
        if config.expiration >= 10**MAX_MILLIS_DIGITS:
            raise ConfigurationError(f"expiration must have at most {MAX_MILLIS_DIGITS} digits")
        now = (config.clock or now_millis)()
        if config.expiration <= now:
            raise ConfigurationError("expiration must be in the future")

        signers = []
        for i, k in enumerate(config.sender_signing_keys):
            try:
                signers.append(EcdsaSigner(load_private_key(k)))
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                raise ConfigurationError(f"invalid sender's signing key #{i}: {e}") from e
        try:
            intermediate = load_public_key(config.sender_intermediate_signing_key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"invalid sender's intermediate signing key: {e}") from e

        sender_id = config.sender_id if config.sender_id is not None else DEFAULT_SENDER_ID
        return cls(
            sender_id=sender_id,
            signers=tuple(signers),
            intermediate_public_key=intermediate,
            expiration=int(config.expiration),
        )

    def create(self) -> IntermediateCertificate:
        signed_key = canonical_json(
            [
                (JSON_KEY_VALUE_KEY, b64encode(encode_x509(self._intermediate_public_key))),
                (JSON_KEY_EXPIRATION_KEY, str(self._expiration)),
            ]
        )
        tbs = signed_key_tbs(
            sender_id=self._sender_id,
            protocol_version=PROTOCOL_VERSION_EC_V2,
            signed_key=signed_key,
        )
        signatures = tuple(b64encode(s.sign(tbs)) for s in self._signers)
        logger.debug(
            "intermediate key certified: signatures=%d expiration=%d", len(signatures), self._expiration
        )
        return IntermediateCertificate(signed_key=signed_key, signatures=signatures)
