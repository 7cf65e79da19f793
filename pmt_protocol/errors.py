# MIT License © 2025 Motohiro Suzuki
"""
pmt_protocol/errors.py

- ConfigurationError : caller-fixable setup mistake, raised by build()
- SecurityError      : token rejected at runtime (one category for callers)
- FormatError        : token rejected because it is malformed

UnsealReason identifies which check rejected a token. It is for logs and
tests; the message callers see stays the same for every reason.
"""

from __future__ import annotations

from enum import IntEnum


class UnsealReason(IntEnum):
    UNSPECIFIED = 0
    MALFORMED_TOKEN = 1
    PROTOCOL_VERSION_MISMATCH = 2
    INTERMEDIATE_KEY_SIGNATURE = 3
    INTERMEDIATE_KEY_EXPIRED = 4
    MESSAGE_SIGNATURE = 5
    DECRYPTION_FAILED = 6
    MESSAGE_EXPIRED = 7


class PaymentTokenError(Exception):
    pass


class ConfigurationError(PaymentTokenError, ValueError):
    pass


class SecurityError(PaymentTokenError):
    def __init__(self, message: str, *, reason: UnsealReason = UnsealReason.UNSPECIFIED) -> None:
        super().__init__(message)
        self.reason = reason


class FormatError(SecurityError):
    def __init__(self, message: str, *, reason: UnsealReason = UnsealReason.MALFORMED_TOKEN) -> None:
        super().__init__(message, reason=reason)
