# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

import pytest

from conftest import (
    SENDER_VERIFYING_KEY_V1_X509_BASE64,
    SENDER_VERIFYING_KEY_V2_X509_BASE64,
    SENDER_VERIFYING_KEYS_JSON,
    point_b64,
)
from pmt_crypto.ec_keys import load_public_key, same_public_key
from pmt_crypto.signature import EcdsaSigner
from pmt_protocol.constants import ProtocolVersion
from pmt_protocol.errors import ConfigurationError
from pmt_protocol.verifying_keys import VerifyingKeySet


def test_from_json_groups_by_version() -> None:
    ks = VerifyingKeySet.from_json(SENDER_VERIFYING_KEYS_JSON)
    assert len(ks) == 2

    (v1,) = ks.for_version("ECv1")
    (v2,) = ks.for_version(ProtocolVersion.EC_V2)
    assert v1.protocol_version is ProtocolVersion.EC_V1
    assert same_public_key(v1.public_key, load_public_key(SENDER_VERIFYING_KEY_V1_X509_BASE64))
    assert same_public_key(v2.public_key, load_public_key(SENDER_VERIFYING_KEY_V2_X509_BASE64))


def test_several_keys_per_version_keep_order(new_key) -> None:
    a, b = new_key(), new_key()
    ks = VerifyingKeySet().with_keys("ECv1", [a.public_key(), point_b64(b)])

    entries = ks.for_version("ECv1")
    assert [same_public_key(e.public_key, k.public_key()) for e, k in zip(entries, (a, b))] == [True, True]
    assert ks.for_version("ECv2") == ()


def test_verifier_checks_signatures(new_key) -> None:
    k = new_key()
    (entry,) = VerifyingKeySet().with_keys("ECv1", [k.public_key()]).entries

    sig = EcdsaSigner(k).sign(b"msg")
    assert entry.verifier().verify(sig, b"msg")
    assert not entry.verifier().verify(sig, b"other")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "{",
        "[]",
        '{"keys": "nope"}',
        '{"keys": [1]}',
        '{"keys": [{"keyValue": "AAAA"}]}',
        '{"keys": [{"keyValue": "AAAA", "protocolVersion": "ECv1"}]}',
    ],
)
def test_from_json_rejects(text: str) -> None:
    with pytest.raises(ConfigurationError):
        VerifyingKeySet.from_json(text)


def test_empty_key_list_is_allowed() -> None:
    assert len(VerifyingKeySet.from_json('{"keys": []}')) == 0


def test_unsupported_versions_are_skipped() -> None:
    text = (
        '{"keys": ['
        '{"keyValue": "' + SENDER_VERIFYING_KEY_V2_X509_BASE64 + '", "protocolVersion": "ECv2SigningOnly"}, '
        '{"keyValue": "' + SENDER_VERIFYING_KEY_V1_X509_BASE64 + '", "protocolVersion": "ECv1"}, '
        '{"keyValue": "not a key", "protocolVersion": "ECv9"}'
        "]}"
    )
    ks = VerifyingKeySet.from_json(text)

    (entry,) = ks.entries
    assert entry.protocol_version is ProtocolVersion.EC_V1
    assert same_public_key(entry.public_key, load_public_key(SENDER_VERIFYING_KEY_V1_X509_BASE64))
    assert ks.for_version("ECv2") == ()
