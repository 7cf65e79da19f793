# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from conftest import MERCHANT_PRIVATE_KEY_PKCS8_BASE64, MERCHANT_PUBLIC_KEY_BASE64
from pmt_crypto.dem import TAG_LEN, AesCtrHmacDem
from pmt_crypto.ec_keys import (
    b64decode,
    b64encode,
    decode_point,
    encode_pkcs8,
    encode_point,
    encode_x509,
    load_private_key,
    load_public_key,
    same_public_key,
)
from pmt_crypto.hkdf import ecies_hkdf_symmetric_key, hkdf_sha256
from pmt_crypto.kem import PrivateKeyRecipientKem, RecipientKem, SenderKem, decapsulate
from pmt_crypto.signature import EcdsaSigner, EcdsaVerifier


class TestHkdf:
    def test_rfc5869_case_1(self) -> None:
        okm = hkdf_sha256(
            ikm=bytes([0x0B] * 22),
            salt=bytes(range(0x00, 0x0D)),
            info=bytes(range(0xF0, 0xFA)),
            length=42,
        )
        assert okm.hex() == (
            "3cb25f25faacd57a90434f64d0362f2a2d2d0a90cf1a5a4c5db02d56ecc4c5bf34007208d5b887185865"
        )

    def test_empty_salt_equals_no_salt(self) -> None:
        assert hkdf_sha256(b"ikm", b"", b"info", 32) == hkdf_sha256(b"ikm", None, b"info", 32)
        assert hkdf_sha256(b"ikm", b"", b"info", 32) == hkdf_sha256(b"ikm", bytes(32), b"info", 32)

    def test_ecies_ikm_is_point_then_secret(self) -> None:
        a = ecies_hkdf_symmetric_key(kem_bytes=b"P", shared_secret=b"S", salt=b"", info=b"Google", length=48)
        assert a == hkdf_sha256(b"PS", b"", b"Google", 48)

    @pytest.mark.parametrize("length", [0, -1])
    def test_rejects_bad_length(self, length: int) -> None:
        with pytest.raises(ValueError):
            hkdf_sha256(b"ikm", None, b"", length)


class TestKeys:
    def test_precomputed_pair_matches(self) -> None:
        sk = load_private_key(MERCHANT_PRIVATE_KEY_PKCS8_BASE64)
        pk = load_public_key(MERCHANT_PUBLIC_KEY_BASE64)
        assert same_public_key(sk.public_key(), pk)

    def test_point_and_x509_load_to_same_key(self, new_key) -> None:
        pk = new_key().public_key()
        from_point = load_public_key(b64encode(encode_point(pk)))
        from_x509 = load_public_key(encode_x509(pk))
        assert same_public_key(from_point, from_x509)
        assert len(encode_point(pk)) == 65

    def test_private_key_roundtrip(self, new_key) -> None:
        sk = new_key()
        again = load_private_key(b64encode(encode_pkcs8(sk)))
        assert same_public_key(sk.public_key(), again.public_key())

    def test_rejects_other_curves(self) -> None:
        with pytest.raises(ValueError, match="unsupported curve"):
            load_private_key(ec.generate_private_key(ec.SECP384R1()))
        with pytest.raises(ValueError, match="unsupported curve"):
            load_public_key(ec.generate_private_key(ec.SECP384R1()).public_key())

    def test_decode_point_rejects_compressed_and_off_curve(self, new_key) -> None:
        pk = new_key().public_key()
        compressed = pk.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint)
        with pytest.raises(ValueError):
            decode_point(compressed)
        with pytest.raises(ValueError):
            decode_point(b"\x04" + b"\x00" * 64)

    def test_strict_base64(self) -> None:
        assert b64decode("AAEC") == b"\x00\x01\x02"
        for bad in ("AA=C", "A A", "AAE*", "AAE"):
            with pytest.raises(ValueError):
                b64decode(bad)


class TestDem:
    @pytest.mark.parametrize("aes_key_len", [16, 32])
    def test_encrypt_decrypt(self, aes_key_len: int) -> None:
        dem = AesCtrHmacDem(aes_key_len=aes_key_len)
        key = bytes(range(dem.key_len))
        ct, tag = dem.encrypt(key, b"hello payment")

        assert len(ct) == len(b"hello payment")
        assert len(tag) == TAG_LEN
        assert dem.tag_matches(key, ct, tag)
        assert dem.decrypt(key, ct, tag) == b"hello payment"

    def test_key_lengths(self) -> None:
        assert AesCtrHmacDem(aes_key_len=16).key_len == 48
        assert AesCtrHmacDem(aes_key_len=32).key_len == 64
        with pytest.raises(ValueError):
            AesCtrHmacDem(aes_key_len=20)

    def test_tag_covers_ciphertext(self) -> None:
        dem = AesCtrHmacDem(aes_key_len=16)
        key = bytes(48)
        ct, tag = dem.encrypt(key, b"abc")
        bad_ct = bytes([ct[0] ^ 1]) + ct[1:]
        assert not dem.tag_matches(key, bad_ct, tag)
        with pytest.raises(ValueError, match="bad tag"):
            dem.decrypt(key, bad_ct, tag)
        with pytest.raises(ValueError, match="bad tag"):
            dem.decrypt(key, ct, tag[:16])

    def test_empty_plaintext(self) -> None:
        dem = AesCtrHmacDem(aes_key_len=32)
        key = bytes(64)
        ct, tag = dem.encrypt(key, b"")
        assert ct == b""
        assert dem.decrypt(key, ct, tag) == b""

    def test_wrong_key_length(self) -> None:
        with pytest.raises(ValueError, match="key length mismatch"):
            AesCtrHmacDem(aes_key_len=16).encrypt(bytes(64), b"x")


class TestKem:
    def test_sender_and_recipient_agree(self, new_key) -> None:
        recipient = new_key()
        r = SenderKem(recipient.public_key()).encapsulate(salt=b"", info=b"Google", key_len=48)
        assert len(r.kem_bytes) == 65
        assert len(r.symmetric_key) == 48

        key = decapsulate(PrivateKeyRecipientKem(recipient), r.kem_bytes, salt=b"", info=b"Google", key_len=48)
        assert key == r.symmetric_key

    def test_info_changes_key(self, new_key) -> None:
        recipient = new_key()
        eph = new_key()
        kem = SenderKem(recipient.public_key())
        a = kem.encapsulate(salt=b"", info=b"Google", key_len=48, ephemeral_key_factory=lambda: eph)
        b = kem.encapsulate(salt=b"", info=b"Other", key_len=48, ephemeral_key_factory=lambda: eph)
        assert a.kem_bytes == b.kem_bytes
        assert a.symmetric_key != b.symmetric_key

    def test_private_key_kem_is_a_recipient_kem(self, new_key) -> None:
        assert isinstance(PrivateKeyRecipientKem(new_key()), RecipientKem)
        assert not isinstance(object(), RecipientKem)

    def test_rejects_non_key_inputs(self) -> None:
        with pytest.raises(TypeError):
            SenderKem("not a key")
        with pytest.raises(TypeError):
            PrivateKeyRecipientKem(b"not a key")


class TestSignature:
    def test_sign_verify(self, new_key) -> None:
        signer = EcdsaSigner(new_key())
        sig = signer.sign(b"to be signed")
        verifier = EcdsaVerifier(signer.public_key())
        assert verifier.verify(sig, b"to be signed")
        assert not verifier.verify(sig, b"to be signed!")

    def test_garbage_signature_is_false_not_error(self, new_key) -> None:
        verifier = EcdsaVerifier(new_key().public_key())
        assert not verifier.verify(b"", b"m")
        assert not verifier.verify(b"\x30\x00", b"m")
        assert not verifier.verify(bytes(72), b"m")

    def test_other_key_does_not_verify(self, new_key) -> None:
        sig = EcdsaSigner(new_key()).sign(b"m")
        assert not EcdsaVerifier(new_key().public_key()).verify(sig, b"m")
