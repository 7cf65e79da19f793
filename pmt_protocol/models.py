# MIT License © 2025 Motohiro Suzuki
"""
Pydantic models for the token wire schema.

Outer objects are parsed strictly: every listed field required, no extra
fields, string values only. The nested `signedMessage` / `signedKey` travel
as JSON strings and are kept verbatim so signatures can be checked over the
exact received bytes.
"""

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from pmt_protocol.codec import canonical_json
from pmt_protocol.constants import (
    JSON_ENCRYPTED_MESSAGE_KEY,
    JSON_EPHEMERAL_PUBLIC_KEY,
    JSON_KEY_EXPIRATION_KEY,
    JSON_KEY_VALUE_KEY,
    JSON_TAG_KEY,
    MAX_MILLIS_DIGITS,
)
from pmt_protocol.errors import FormatError


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @classmethod
    def from_json(cls, text: str | bytes):
        if not isinstance(text, (str, bytes, bytearray)):
            raise FormatError(f"{cls.__name__}: expected JSON text, got {type(text).__name__}")
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise FormatError(f"{cls.__name__}: {e.error_count()} schema error(s): {e.errors()[0]['msg']}") from e

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class SignedMessage(_WireModel):
    """Inner object signed by the sender: {encryptedMessage, ephemeralPublicKey, tag}."""

    encrypted_message: StrictStr = Field(alias=JSON_ENCRYPTED_MESSAGE_KEY)
    ephemeral_public_key: StrictStr = Field(alias=JSON_EPHEMERAL_PUBLIC_KEY, min_length=1)
    tag: StrictStr = Field(alias=JSON_TAG_KEY, min_length=1)

    def canonical(self) -> str:
        return canonical_json(
            [
                (JSON_ENCRYPTED_MESSAGE_KEY, self.encrypted_message),
                (JSON_EPHEMERAL_PUBLIC_KEY, self.ephemeral_public_key),
                (JSON_TAG_KEY, self.tag),
            ]
        )


class SignedKey(_WireModel):
    """Inner object certified by long-lived keys: {keyValue, keyExpiration}."""

    key_value: StrictStr = Field(alias=JSON_KEY_VALUE_KEY, min_length=1)
    key_expiration: StrictStr = Field(alias=JSON_KEY_EXPIRATION_KEY, min_length=1)

    @field_validator("key_expiration")
    @classmethod
    def _decimal_millis(cls, v: str) -> str:
        if not v.isascii() or not v.isdigit():
            raise ValueError("keyExpiration must be decimal milliseconds")
        if len(v) > MAX_MILLIS_DIGITS:
            raise ValueError(f"keyExpiration must have at most {MAX_MILLIS_DIGITS} digits")
        return v

    @property
    def expiration_millis(self) -> int:
        return int(self.key_expiration)

    def canonical(self) -> str:
        return canonical_json(
            [
                (JSON_KEY_VALUE_KEY, self.key_value),
                (JSON_KEY_EXPIRATION_KEY, self.key_expiration),
            ]
        )


class IntermediateCertificate(_WireModel):
    signed_key: StrictStr = Field(alias="signedKey", min_length=1)
    signatures: Tuple[StrictStr, ...] = Field(alias="signatures", min_length=1)

    def parsed_signed_key(self) -> SignedKey:
        return SignedKey.from_json(self.signed_key)


class SealedEnvelope(_WireModel):
    protocol_version: StrictStr = Field(alias="protocolVersion")
    signed_message: StrictStr = Field(alias="signedMessage", min_length=1)
    signature: StrictStr = Field(alias="signature", min_length=1)
    intermediate_signing_key: Optional[IntermediateCertificate] = Field(
        default=None, alias="intermediateSigningKey"
    )

    def parsed_signed_message(self) -> SignedMessage:
        return SignedMessage.from_json(self.signed_message)
