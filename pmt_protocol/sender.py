# MIT License © 2025 Motohiro Suzuki
"""
pmt_protocol/sender.py

Seal a plaintext for one recipient.

seal(pt):
  (kem_bytes, key) = ECIES-HKDF(recipient_pk)          # fresh ephemeral key
  (ct, tag)        = AES-CTR + HMAC-SHA256(key, pt)
  signedMessage    = canonical_json(encryptedMessage, ephemeralPublicKey, tag)
  signature        = ECDSA(length_value(sender_id, recipient_id, version, signedMessage))

ECv1 signs with the long-lived key; ECv2 signs with the intermediate key and
ships its certificate in every token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec

from pmt_crypto.dem import AesCtrHmacDem
from pmt_crypto.ec_keys import (
    PrivateKeyInput,
    PublicKeyInput,
    b64encode,
    load_private_key,
    load_public_key,
    same_public_key,
)
from pmt_crypto.kem import EphemeralKeyFactory, SenderKem
from pmt_crypto.signature import EcdsaSigner
from pmt_protocol.codec import message_tbs
from pmt_protocol.constants import (
    DEFAULT_SENDER_ID,
    HKDF_INFO,
    HKDF_SALT,
    PROTOCOL_VERSION_EC_V1,
    ProtocolVersion,
    params_for,
)
from pmt_protocol.errors import ConfigurationError, FormatError
from pmt_protocol.models import IntermediateCertificate, SealedEnvelope, SignedMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SenderConfig:
    protocol_version: str = PROTOCOL_VERSION_EC_V1
    sender_id: Optional[str] = None
    recipient_id: Optional[str] = None
    recipient_public_key: Optional[PublicKeyInput] = None
    # ECv1
    sender_signing_key: Optional[PrivateKeyInput] = None
    # ECv2
    sender_intermediate_signing_key: Optional[PrivateKeyInput] = None
    sender_intermediate_cert: Optional[Union[IntermediateCertificate, str]] = None
    # tests only: replaces the CSPRNG ephemeral key
    ephemeral_key_factory: Optional[EphemeralKeyFactory] = None


@dataclass(frozen=True)
class DirectSigning:
    """ECv1: every token signed by the long-lived key."""

    signer: EcdsaSigner


@dataclass(frozen=True)
class IntermediateSigning:
    """ECv2: every token signed by the certified intermediate key."""

    signer: EcdsaSigner
    certificate: IntermediateCertificate


SigningMaterial = Union[DirectSigning, IntermediateSigning]


def _check_fields(version: ProtocolVersion, config: SenderConfig) -> None:
    if not params_for(version).uses_intermediate_key:
        if config.sender_signing_key is None:
            raise ConfigurationError("must set sender's signing key using SenderConfig.sender_signing_key")
        if config.sender_intermediate_signing_key is not None:
            raise ConfigurationError(
                "must not set sender's intermediate signing key using "
                "SenderConfig.sender_intermediate_signing_key"
            )
        if config.sender_intermediate_cert is not None:
            raise ConfigurationError(
                "must not set signed sender's intermediate signing key using "
                "SenderConfig.sender_intermediate_cert"
            )
        return

    if config.sender_signing_key is not None:
        raise ConfigurationError("must not set sender's signing key using SenderConfig.sender_signing_key")
    if config.sender_intermediate_signing_key is None:
        raise ConfigurationError(
            "must set sender's intermediate signing key using SenderConfig.sender_intermediate_signing_key"
        )
    if config.sender_intermediate_cert is None:
        raise ConfigurationError(
            "must set signed sender's intermediate signing key using SenderConfig.sender_intermediate_cert"
        )


def _private_key(value: PrivateKeyInput, what: str) -> ec.EllipticCurvePrivateKey:
    try:
        return load_private_key(value)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"invalid {what}: {e}") from e


def _intermediate_signing(config: SenderConfig) -> IntermediateSigning:
    key = _private_key(config.sender_intermediate_signing_key, "sender's intermediate signing key")

    cert = config.sender_intermediate_cert
    if not isinstance(cert, (str, IntermediateCertificate)):
        raise ConfigurationError(f"unsupported intermediate certificate type: {type(cert).__name__}")
    try:
        if isinstance(cert, str):
            cert = IntermediateCertificate.from_json(cert)
        certified = load_public_key(cert.parsed_signed_key().key_value)
    except (FormatError, ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"invalid signed sender's intermediate signing key: {e}") from e

    if not same_public_key(certified, key.public_key()):
        raise ConfigurationError("sender's intermediate signing key does not match the certified key")
    return IntermediateSigning(signer=EcdsaSigner(key), certificate=cert)


class Sender:
    def __init__(
        self,
        *,
        protocol_version: ProtocolVersion,
        sender_id: str,
        recipient_id: str,
        recipient_public_key: ec.EllipticCurvePublicKey,
        signing: SigningMaterial,
        ephemeral_key_factory: Optional[EphemeralKeyFactory] = None,
    ) -> None:
        self._protocol_version = protocol_version
        self._sender_id = sender_id
        self._recipient_id = recipient_id
        self._kem = SenderKem(recipient_public_key)
        params = params_for(protocol_version)
        self._dem = AesCtrHmacDem(aes_key_len=params.aes_ctr_key_len, mac_key_len=params.hmac_key_len)
        self._signing = signing
        self._ephemeral_key_factory = ephemeral_key_factory

    @classmethod
    def build(cls, config: SenderConfig) -> "Sender":
        version = ProtocolVersion.parse(config.protocol_version)
        _check_fields(version, config)

        if not config.recipient_id:
            raise ConfigurationError("must set recipient Id using SenderConfig.recipient_id")
        if config.recipient_public_key is None:
            raise ConfigurationError("must set recipient's public key using SenderConfig.recipient_public_key")
        try:
            recipient_pk = load_public_key(config.recipient_public_key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"invalid recipient's public key: {e}") from e

        signing: SigningMaterial
        if not params_for(version).uses_intermediate_key:
            signing = DirectSigning(signer=EcdsaSigner(_private_key(config.sender_signing_key, "sender's signing key")))
        else:
            signing = _intermediate_signing(config)

        sender_id = config.sender_id if config.sender_id is not None else DEFAULT_SENDER_ID
        return cls(
            protocol_version=version,
            sender_id=sender_id,
            recipient_id=config.recipient_id,
            recipient_public_key=recipient_pk,
            signing=signing,
            ephemeral_key_factory=config.ephemeral_key_factory,
        )

    @property
    def protocol_version(self) -> ProtocolVersion:
        return self._protocol_version

    def _encrypt(self, plaintext: bytes) -> str:
        r = self._kem.encapsulate(
            salt=HKDF_SALT,
            info=HKDF_INFO,
            key_len=self._dem.key_len,
            ephemeral_key_factory=self._ephemeral_key_factory,
        )
        ct, tag = self._dem.encrypt(r.symmetric_key, plaintext)
        msg = SignedMessage(
            encrypted_message=b64encode(ct),
            ephemeral_public_key=b64encode(r.kem_bytes),
            tag=b64encode(tag),
        )
        return msg.canonical()

    def seal_envelope(self, plaintext: str) -> SealedEnvelope:
        if not isinstance(plaintext, str):
            raise TypeError("plaintext must be str")

        signed_message = self._encrypt(plaintext.encode("utf-8"))
        tbs = message_tbs(
            sender_id=self._sender_id,
            recipient_id=self._recipient_id,
            protocol_version=self._protocol_version.value,
            signed_message=signed_message,
        )
        signature = b64encode(self._signing.signer.sign(tbs))

        cert = None
        if isinstance(self._signing, IntermediateSigning):
            cert = self._signing.certificate

        logger.debug(
            "sealed token: version=%s recipient=%s pt_len=%d",
            self._protocol_version.value,
            self._recipient_id,
            len(plaintext),
        )
        return SealedEnvelope(
            protocol_version=self._protocol_version.value,
            signed_message=signed_message,
            signature=signature,
            intermediate_signing_key=cert,
        )

    def seal(self, plaintext: str) -> str:
        return self.seal_envelope(plaintext).to_json()
