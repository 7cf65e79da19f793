# MIT License © 2025 Motohiro Suzuki
"""
Encrypt-then-MAC data encapsulation:
- Encrypt = AES-CTR, initial counter block all zero
- Tag     = HMAC-SHA256(mac_key, ciphertext), full 32 bytes

The zero counter is fine only because every key comes from a fresh
ephemeral ECDH and is used for exactly one message.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

HMAC_SHA256_KEY_LEN = 32
TAG_LEN = 32
_ZERO_IV = b"\x00" * 16


@dataclass(frozen=True)
class AesCtrHmacDem:
    aes_key_len: int
    mac_key_len: int = HMAC_SHA256_KEY_LEN

    def __post_init__(self) -> None:
        if self.aes_key_len not in (16, 24, 32):
            raise ValueError(f"invalid AES key length: {self.aes_key_len} (expected 16/24/32)")
        if self.mac_key_len <= 0:
            raise ValueError("mac_key_len must be positive")

    @property
    def key_len(self) -> int:
        return self.aes_key_len + self.mac_key_len

    def _split(self, key: bytes) -> tuple[bytes, bytes]:
        if not isinstance(key, (bytes, bytearray)):
            raise TypeError("key must be bytes")
        if len(key) != self.key_len:
            raise ValueError(f"key length mismatch: got {len(key)} expected {self.key_len}")
        k = bytes(key)
        return k[: self.aes_key_len], k[self.aes_key_len :]

    @staticmethod
    def _ctr(enc_key: bytes, data: bytes) -> bytes:
        c = Cipher(algorithms.AES(enc_key), modes.CTR(_ZERO_IV)).encryptor()
        return c.update(bytes(data)) + c.finalize()

    @staticmethod
    def compute_tag(mac_key: bytes, ciphertext: bytes) -> bytes:
        return hmac.new(bytes(mac_key), bytes(ciphertext), hashlib.sha256).digest()

    def encrypt(self, key: bytes, plaintext: bytes) -> tuple[bytes, bytes]:
        if not isinstance(plaintext, (bytes, bytearray)):
            raise TypeError("plaintext must be bytes")
        enc_key, mac_key = self._split(key)
        ct = self._ctr(enc_key, plaintext)
        return ct, self.compute_tag(mac_key, ct)

    def tag_matches(self, key: bytes, ciphertext: bytes, tag: bytes) -> bool:
        _, mac_key = self._split(key)
        exp = self.compute_tag(mac_key, ciphertext)
        return hmac.compare_digest(exp, bytes(tag))

    def decrypt(self, key: bytes, ciphertext: bytes, tag: bytes) -> bytes:
        if not isinstance(ciphertext, (bytes, bytearray)):
            raise TypeError("ciphertext must be bytes")
        if not isinstance(tag, (bytes, bytearray)):
            raise TypeError("tag must be bytes")
        if not self.tag_matches(key, ciphertext, tag):
            raise ValueError("bad tag")
        enc_key, _ = self._split(key)
        return self._ctr(enc_key, ciphertext)
