# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

import base64

import pytest

from pmt_crypto.ec_keys import encode_point, encode_x509, generate_private_key
from pmt_protocol.codec import now_millis

# Recipient (merchant) key pair: raw uncompressed public point + PKCS8 private key.
MERCHANT_PUBLIC_KEY_BASE64 = (
    "BOdoXP+9Aq473SnGwg3JU1aiNpsd9vH2ognq4PtDtlLGa3Kj8TPf+jaQNPyDSkh3JUhiS0KyrrlWhAgNZKHYF2Y="
)
MERCHANT_PRIVATE_KEY_PKCS8_BASE64 = (
    "MIGHAgEAMBMGByqGSM49AgEGCCqGSM49AwEHBG0wawIBAQQgCPSuFr4iSIaQprjj"
    "chHPyDu2NXFe0vDBoTpPkYaK9dehRANCAATnaFz/vQKuO90pxsINyVNWojabHfbx"
    "9qIJ6uD7Q7ZSxmtyo/Ez3/o2kDT8g0pIdyVIYktCsq65VoQIDWSh2Bdm"
)

SENDER_VERIFYING_KEY_V1_X509_BASE64 = (
    "MFkwEwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAEPYnHwS8uegWAewQtlxizmLFynw"
    "HcxRT1PK07cDA6/C4sXrVI1SzZCUx8U8S0LjMrT6ird/VW7be3Mz6t/srtRQ=="
)
SENDER_VERIFYING_KEY_V2_X509_BASE64 = (
    "MFkwEwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAE/1+3HBVSbdv+j7NaArdgMyoSAM"
    "43yRydzqdg1TxodSzA96Dj4Mc1EiKroxxunavVIvdxGnJeFViTzFvzFRxyCw=="
)
SENDER_VERIFYING_KEYS_JSON = (
    '{"keys": ['
    '{"keyValue": "' + SENDER_VERIFYING_KEY_V1_X509_BASE64 + '", "protocolVersion": "ECv1"}, '
    '{"keyValue": "' + SENDER_VERIFYING_KEY_V2_X509_BASE64 + '", "protocolVersion": "ECv2"}'
    "]}"
)

SENDER_SIGNING_KEY_V1_PKCS8_BASE64 = (
    "MIGHAgEAMBMGByqGSM49AgEGCCqGSM49AwEHBG0wawIBAQQgZj/Dldxz8fvKVF5O"
    "TeAtK6tY3G1McmvhMppe6ayW6GahRANCAAQ9icfBLy56BYB7BC2XGLOYsXKfAdzF"
    "FPU8rTtwMDr8LixetUjVLNkJTHxTxLQuMytPqKt39Vbtt7czPq3+yu1F"
)
SENDER_SIGNING_KEY_V2_PKCS8_BASE64 = (
    "MIGHAgEAMBMGByqGSM49AgEGCCqGSM49AwEHBG0wawIBAQQgKvEdSS8f0mjTCNKev"
    "aKXIzfNC5b4A104gJWI9TsLIMqhRANCAAT/X7ccFVJt2/6Ps1oCt2AzKhIAz"
    "jfJHJ3Op2DVPGh1LMD3oOPgxzUSIqujHG6dq9Ui93Eacl4VWJPMW/MVHHIL"
)

# The ECv2 intermediate key pair happens to be the same key as the ECv2 signing key.
INTERMEDIATE_PUBLIC_KEY_X509_BASE64 = SENDER_VERIFYING_KEY_V2_X509_BASE64
INTERMEDIATE_PRIVATE_KEY_PKCS8_BASE64 = SENDER_SIGNING_KEY_V2_PKCS8_BASE64

RECIPIENT_ID = "someRecipient"
DAY_MS = 24 * 3600 * 1000


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def point_b64(private_key) -> str:
    return b64(encode_point(private_key.public_key()))


def x509_b64(private_key) -> str:
    return b64(encode_x509(private_key.public_key()))


@pytest.fixture
def tomorrow() -> int:
    return now_millis() + DAY_MS


@pytest.fixture
def new_key():
    return generate_private_key
