# MIT License © 2025 Motohiro Suzuki
"""
Sender verifying keys, possibly several per protocol version so a signing
key can be rotated with an overlap window.

JSON input:
  {"keys": [{"keyValue": "<base64>", "protocolVersion": "ECv1"|"ECv2"}, ...]}

Entries for other protocol versions (ECv2SigningOnly, ...) are skipped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec

from pmt_crypto.ec_keys import PublicKeyInput, load_public_key
from pmt_crypto.signature import EcdsaVerifier
from pmt_protocol.constants import (
    JSON_KEY_VALUE_KEY,
    JSON_KEYS_KEY,
    JSON_PROTOCOL_VERSION_KEY,
    ProtocolVersion,
)
from pmt_protocol.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifyingKeyEntry:
    protocol_version: ProtocolVersion
    public_key: ec.EllipticCurvePublicKey

    def verifier(self) -> EcdsaVerifier:
        return EcdsaVerifier(self.public_key)


def _load(value: PublicKeyInput, what: str) -> ec.EllipticCurvePublicKey:
    try:
        return load_public_key(value)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"invalid {what}: {e}") from e


@dataclass(frozen=True)
class VerifyingKeySet:
    entries: Tuple[VerifyingKeyEntry, ...] = ()

    @classmethod
    def from_json(cls, text: str) -> "VerifyingKeySet":
        try:
            doc = json.loads(text)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid verifying keys JSON: {e}") from e

        if not isinstance(doc, dict) or not isinstance(doc.get(JSON_KEYS_KEY), list):
            raise ConfigurationError(f"verifying keys JSON must contain a '{JSON_KEYS_KEY}' array")

        entries = []
        for i, item in enumerate(doc[JSON_KEYS_KEY]):
            if not isinstance(item, dict):
                raise ConfigurationError(f"verifying key #{i} must be an object")
            key_value = item.get(JSON_KEY_VALUE_KEY)
            version = item.get(JSON_PROTOCOL_VERSION_KEY)
            if not isinstance(key_value, str) or not isinstance(version, str):
                raise ConfigurationError(
                    f"verifying key #{i} must contain '{JSON_KEY_VALUE_KEY}' and '{JSON_PROTOCOL_VERSION_KEY}' strings"
                )
            try:
                v = ProtocolVersion.parse(version)
            except ConfigurationError:
                # e.g. ECv2SigningOnly entries in published key documents
                logger.debug("verifying key #%d: skipping unsupported version %s", i, version)
                continue
            entries.append(VerifyingKeyEntry(protocol_version=v, public_key=_load(key_value, f"verifying key #{i}")))
        return cls(entries=tuple(entries))

    def with_keys(self, version: ProtocolVersion | str, keys: Iterable[PublicKeyInput]) -> "VerifyingKeySet":
        v = ProtocolVersion.parse(version)
        extra = tuple(
            VerifyingKeyEntry(protocol_version=v, public_key=_load(k, f"{v.value} verifying key"))
            for k in keys
        )
        return VerifyingKeySet(entries=self.entries + extra)

    def for_version(self, version: ProtocolVersion | str) -> Tuple[VerifyingKeyEntry, ...]:
        v = ProtocolVersion.parse(version)
        return tuple(e for e in self.entries if e.protocol_version is v)

    def __len__(self) -> int:
        return len(self.entries)
