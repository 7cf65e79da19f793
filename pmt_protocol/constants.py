# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pmt_crypto.dem import HMAC_SHA256_KEY_LEN
from pmt_protocol.errors import ConfigurationError

PROTOCOL_VERSION_EC_V1 = "ECv1"
PROTOCOL_VERSION_EC_V2 = "ECv2"

DEFAULT_SENDER_ID = "Google"

# ECIES key schedule
HKDF_SALT = b""
HKDF_INFO = b"Google"

# wire field names
JSON_PROTOCOL_VERSION_KEY = "protocolVersion"
JSON_SIGNED_MESSAGE_KEY = "signedMessage"
JSON_SIGNATURE_KEY = "signature"
JSON_INTERMEDIATE_SIGNING_KEY = "intermediateSigningKey"
JSON_SIGNED_KEY_KEY = "signedKey"
JSON_SIGNATURES_KEY = "signatures"
JSON_KEY_VALUE_KEY = "keyValue"
JSON_KEY_EXPIRATION_KEY = "keyExpiration"
JSON_ENCRYPTED_MESSAGE_KEY = "encryptedMessage"
JSON_EPHEMERAL_PUBLIC_KEY = "ephemeralPublicKey"
JSON_TAG_KEY = "tag"
JSON_KEYS_KEY = "keys"
JSON_MESSAGE_EXPIRATION_KEY = "messageExpiration"

# unix millis as decimal text; 19 digits covers any signed 64-bit value
MAX_MILLIS_DIGITS = 19


class ProtocolVersion(str, Enum):
    EC_V1 = PROTOCOL_VERSION_EC_V1
    EC_V2 = PROTOCOL_VERSION_EC_V2

    @classmethod
    def parse(cls, value: Any) -> "ProtocolVersion":
        if isinstance(value, ProtocolVersion):
            return value
        for v in cls:
            if v.value == value:
                return v
        raise ConfigurationError(f"invalid version: {value}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VersionParams:
    aes_ctr_key_len: int
    hmac_key_len: int = HMAC_SHA256_KEY_LEN
    uses_intermediate_key: bool = False


_PARAMS = {
    ProtocolVersion.EC_V1: VersionParams(aes_ctr_key_len=16),
    ProtocolVersion.EC_V2: VersionParams(aes_ctr_key_len=32, uses_intermediate_key=True),
}


def params_for(version: ProtocolVersion) -> VersionParams:
    return _PARAMS[ProtocolVersion.parse(version)]
