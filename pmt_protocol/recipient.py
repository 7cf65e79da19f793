# MIT License © 2025 Motohiro Suzuki
"""
pmt_protocol/recipient.py

Unseal a token addressed to this recipient.

Checks, in order (first failure rejects the token):
1) protocolVersion == configured version (before any signature work)
2) ECv2: certificate signed by >=1 trusted ECv2 key, then keyExpiration > now
3) signature over length_value(sender_id, recipient_id, version, signedMessage)
   ECv1: any trusted ECv1 key / ECv2: the certified intermediate key
4) first recipient key whose HMAC tag matches decrypts (configuration order)
5) JSON plaintext carrying messageExpiration must not be expired

Callers always get the same SecurityError message; `reason` and `__cause__`
name the failed check.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

from cryptography.exceptions import UnsupportedAlgorithm

from pmt_crypto.dem import AesCtrHmacDem
from pmt_crypto.ec_keys import (
    PrivateKeyInput,
    PublicKeyInput,
    b64decode,
    decode_point,
    load_private_key,
    load_public_key,
)
from pmt_crypto.kem import PrivateKeyRecipientKem, RecipientKem, decapsulate
from pmt_crypto.signature import EcdsaVerifier
from pmt_protocol.codec import message_tbs, now_millis, signed_key_tbs
from pmt_protocol.constants import (
    DEFAULT_SENDER_ID,
    HKDF_INFO,
    HKDF_SALT,
    JSON_MESSAGE_EXPIRATION_KEY,
    MAX_MILLIS_DIGITS,
    PROTOCOL_VERSION_EC_V1,
    ProtocolVersion,
    params_for,
)
from pmt_protocol.errors import ConfigurationError, FormatError, SecurityError, UnsealReason
from pmt_protocol.models import IntermediateCertificate, SealedEnvelope
from pmt_protocol.verifying_keys import VerifyingKeySet

logger = logging.getLogger(__name__)

UNSEAL_FAILED = "cannot unseal payment method token"


@dataclass(frozen=True)
class RecipientConfig:
    protocol_version: str = PROTOCOL_VERSION_EC_V1
    recipient_id: Optional[str] = None
    sender_id: Optional[str] = None
    # tried in order: private keys first, then custom KEMs
    recipient_private_keys: Sequence[PrivateKeyInput] = ()
    recipient_kems: Sequence[RecipientKem] = ()
    sender_verifying_keys: Sequence[PublicKeyInput] = ()
    sender_verifying_keys_json: Optional[str] = None
    clock: Optional[Callable[[], int]] = None


def _b64(value: str, what: str) -> bytes:
    try:
        return b64decode(value)
    except (ValueError, TypeError) as e:
        raise FormatError(f"invalid base64 in {what}") from e


class Recipient:
    def __init__(
        self,
        *,
        protocol_version: ProtocolVersion,
        sender_id: str,
        recipient_id: str,
        kems: Tuple[RecipientKem, ...],
        verifiers: Tuple[EcdsaVerifier, ...],
        clock: Callable[[], int],
    ) -> None:
        self._protocol_version = protocol_version
        self._sender_id = sender_id
        self._recipient_id = recipient_id
        self._kems = kems
        self._verifiers = verifiers
        self._clock = clock
        params = params_for(protocol_version)
        self._uses_intermediate_key = params.uses_intermediate_key
        self._dem = AesCtrHmacDem(aes_key_len=params.aes_ctr_key_len, mac_key_len=params.hmac_key_len)

    @classmethod
    def build(cls, config: RecipientConfig) -> "Recipient":
        version = ProtocolVersion.parse(config.protocol_version)

        if not config.recipient_id:
            raise ConfigurationError("must set recipient Id using RecipientConfig.recipient_id")

        if not config.recipient_private_keys and not config.recipient_kems:
            raise ConfigurationError(
                "must add at least one recipient's decrypting key using "
                "RecipientConfig.recipient_private_keys or RecipientConfig.recipient_kems"
            )

        keys = VerifyingKeySet()
        if config.sender_verifying_keys_json is not None:
            keys = VerifyingKeySet.from_json(config.sender_verifying_keys_json)
        keys = keys.with_keys(version, config.sender_verifying_keys)
        trusted = keys.for_version(version)
        if not trusted:
            raise ConfigurationError(
                f"must set at least one sender's verifying key for {version.value} using "
                "RecipientConfig.sender_verifying_keys or RecipientConfig.sender_verifying_keys_json"
            )

        kems = []
        for i, k in enumerate(config.recipient_private_keys):
            try:
                kems.append(PrivateKeyRecipientKem(load_private_key(k)))
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                raise ConfigurationError(f"invalid recipient's private key #{i}: {e}") from e
        for i, kem in enumerate(config.recipient_kems):
            if not isinstance(kem, RecipientKem):
                raise ConfigurationError(f"recipient KEM #{i} must provide compute_shared_secret()")
            kems.append(kem)

        sender_id = config.sender_id if config.sender_id is not None else DEFAULT_SENDER_ID
        return cls(
            protocol_version=version,
            sender_id=sender_id,
            recipient_id=config.recipient_id,
            kems=tuple(kems),
            verifiers=tuple(e.verifier() for e in trusted),
            clock=config.clock or now_millis,
        )

    @property
    def protocol_version(self) -> ProtocolVersion:
        return self._protocol_version

    def unseal(self, token: Union[str, bytes, SealedEnvelope]) -> str:
        try:
            return self._unseal(token)
        except SecurityError as e:
            logger.debug("token rejected: reason=%s detail=%s", e.reason.name, e)
            raise SecurityError(UNSEAL_FAILED, reason=e.reason) from e

    # -----------------------------
    # steps
    # -----------------------------
    def _unseal(self, token: Union[str, bytes, SealedEnvelope]) -> str:
        env = token if isinstance(token, SealedEnvelope) else SealedEnvelope.from_json(token)

        if env.protocol_version != self._protocol_version.value:
            raise SecurityError(
                f"invalid version: {env.protocol_version}",
                reason=UnsealReason.PROTOCOL_VERSION_MISMATCH,
            )

        if self._uses_intermediate_key:
            if env.intermediate_signing_key is None:
                raise FormatError(f"{self._protocol_version.value} token must contain intermediateSigningKey")
            verifiers: Tuple[EcdsaVerifier, ...] = (self._verify_intermediate_key(env.intermediate_signing_key),)
        else:
            if env.intermediate_signing_key is not None:
                raise FormatError(f"{self._protocol_version.value} token must not contain intermediateSigningKey")
            verifiers = self._verifiers

        self._verify_message_signature(env, verifiers)
        plaintext = self._decrypt(env)
        self._validate_message(plaintext)
        return plaintext

    def _verify_intermediate_key(self, cert: IntermediateCertificate) -> EcdsaVerifier:
        tbs = signed_key_tbs(
            sender_id=self._sender_id,
            protocol_version=self._protocol_version.value,
            signed_key=cert.signed_key,
        )
        sigs = [_b64(s, "intermediateSigningKey.signatures") for s in cert.signatures]

        if not any(v.verify(sig, tbs) for v in self._verifiers for sig in sigs):
            raise SecurityError(
                "cannot verify signature of intermediateSigningKey",
                reason=UnsealReason.INTERMEDIATE_KEY_SIGNATURE,
            )

        signed_key = cert.parsed_signed_key()
        now = self._clock()
        if signed_key.expiration_millis <= now:
            raise SecurityError(
                f"expired intermediateSigningKey: expiration={signed_key.expiration_millis} now={now}",
                reason=UnsealReason.INTERMEDIATE_KEY_EXPIRED,
            )

        try:
            return EcdsaVerifier(load_public_key(signed_key.key_value))
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise FormatError("invalid intermediate signing key value") from e

    def _verify_message_signature(self, env: SealedEnvelope, verifiers: Sequence[EcdsaVerifier]) -> None:
        sig = _b64(env.signature, "signature")
        tbs = message_tbs(
            sender_id=self._sender_id,
            recipient_id=self._recipient_id,
            protocol_version=self._protocol_version.value,
            signed_message=env.signed_message,
        )
        for v in verifiers:
            if v.verify(sig, tbs):
                return
        raise SecurityError("cannot verify signature", reason=UnsealReason.MESSAGE_SIGNATURE)

    def _decrypt(self, env: SealedEnvelope) -> str:
        msg = env.parsed_signed_message()
        ct = _b64(msg.encrypted_message, "encryptedMessage")
        kem_bytes = _b64(msg.ephemeral_public_key, "ephemeralPublicKey")
        tag = _b64(msg.tag, "tag")
        try:
            decode_point(kem_bytes)
        except (ValueError, TypeError) as e:
            raise FormatError("invalid ephemeralPublicKey") from e

        for i, kem in enumerate(self._kems):
            try:
                key = decapsulate(
                    kem,
                    kem_bytes,
                    salt=HKDF_SALT,
                    info=HKDF_INFO,
                    key_len=self._dem.key_len,
                )
            except (ValueError, TypeError) as e:
                logger.debug("recipient key #%d: key agreement failed: %s", i, e)
                continue
            if not self._dem.tag_matches(key, ct, tag):
                logger.debug("recipient key #%d: tag mismatch", i)
                continue
            pt = self._dem.decrypt(key, ct, tag)
            try:
                return pt.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SecurityError("plaintext is not utf-8", reason=UnsealReason.DECRYPTION_FAILED) from e

        raise SecurityError("cannot decrypt", reason=UnsealReason.DECRYPTION_FAILED)

    def _validate_message(self, plaintext: str) -> None:
        try:
            doc = json.loads(plaintext)
        except ValueError:
            return  # not JSON, nothing to check
        if not isinstance(doc, dict) or JSON_MESSAGE_EXPIRATION_KEY not in doc:
            return

        raw = doc[JSON_MESSAGE_EXPIRATION_KEY]
        if isinstance(raw, str):
            # decimal millis only: no sign, whitespace or underscores
            if not raw.isascii() or not raw.isdigit() or len(raw) > MAX_MILLIS_DIGITS:
                raise FormatError(f"invalid {JSON_MESSAGE_EXPIRATION_KEY}")
            expiration = int(raw)
        elif isinstance(raw, int) and not isinstance(raw, bool):
            expiration = raw
        else:
            raise FormatError(f"invalid {JSON_MESSAGE_EXPIRATION_KEY}")

        if expiration <= self._clock():
            raise SecurityError("expired payload", reason=UnsealReason.MESSAGE_EXPIRED)
