# MIT License © 2025 Motohiro Suzuki
"""
pmt_diagnostics/fuzz_tester.py

Lightweight token fuzz (ALWAYS prints results)

Goals:
- Random bit flips anywhere in a sealed token never crash unseal():
  every rejection must be a SecurityError
- Bit flips inside any signed/encrypted field are always rejected

Byte-level flips may land in base64 padding bits and decode to the same
bytes; those are counted as `equivalent`, not as failures.

Run:
  python3 -m pmt_diagnostics.fuzz_tester
  python3 -m pmt_diagnostics.fuzz_tester --iters 500 --version ECv2 --seed 1
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import random
from dataclasses import dataclass
from typing import Optional, Sequence

from pmt_crypto.ec_keys import encode_point, encode_x509, generate_private_key
from pmt_diagnostics.logging_config import setup_logging
from pmt_protocol.codec import now_millis
from pmt_protocol.constants import (
    JSON_INTERMEDIATE_SIGNING_KEY,
    JSON_SIGNATURE_KEY,
    JSON_SIGNATURES_KEY,
    JSON_SIGNED_MESSAGE_KEY,
    ProtocolVersion,
)
from pmt_protocol.errors import SecurityError
from pmt_protocol.intermediate_cert import IntermediateCertFactory, IntermediateCertFactoryConfig
from pmt_protocol.recipient import Recipient, RecipientConfig
from pmt_protocol.sender import Sender, SenderConfig

logger = logging.getLogger(__name__)

_PLAINTEXT = '{"paymentMethod":"CARD","pan":"4111111111111111"}'


@dataclass
class FuzzStats:
    iters: int = 0
    rejected: int = 0
    equivalent: int = 0
    unexpected_success: int = 0
    exceptions: int = 0


def make_pair(version: ProtocolVersion | str = ProtocolVersion.EC_V1) -> tuple[Sender, Recipient]:
    v = ProtocolVersion.parse(version)
    signing = generate_private_key()
    recipient_sk = generate_private_key()
    recipient_pk = base64.b64encode(encode_point(recipient_sk.public_key())).decode("ascii")

    if v is ProtocolVersion.EC_V1:
        sender_cfg = SenderConfig(
            protocol_version=v.value,
            recipient_id="fuzz-recipient",
            recipient_public_key=recipient_pk,
            sender_signing_key=signing,
        )
    else:
        intermediate = generate_private_key()
        cert = IntermediateCertFactory.build(
            IntermediateCertFactoryConfig(
                sender_signing_keys=(signing,),
                sender_intermediate_signing_key=base64.b64encode(encode_x509(intermediate.public_key())).decode("ascii"),
                expiration=now_millis() + 24 * 3600 * 1000,
            )
        ).create()
        sender_cfg = SenderConfig(
            protocol_version=v.value,
            recipient_id="fuzz-recipient",
            recipient_public_key=recipient_pk,
            sender_intermediate_signing_key=intermediate,
            sender_intermediate_cert=cert,
        )

    recipient_cfg = RecipientConfig(
        protocol_version=v.value,
        recipient_id="fuzz-recipient",
        recipient_private_keys=(recipient_sk,),
        sender_verifying_keys=(signing.public_key(),),
    )
    return Sender.build(sender_cfg), Recipient.build(recipient_cfg)


def _flip_one_bit(b: bytes, rng: random.Random) -> bytes:
    if not b:
        return b
    i = rng.randrange(0, len(b))
    bb = bytearray(b)
    bb[i] ^= 1 << rng.randrange(0, 8)
    return bytes(bb)


def _try_unseal(stats: FuzzStats, recipient: Recipient, token: str | bytes, *, allow_equivalent: bool) -> None:
    stats.iters += 1
    try:
        out = recipient.unseal(token)
    except SecurityError:
        stats.rejected += 1
        return
    except Exception as e:
        stats.exceptions += 1
        logger.error("unseal raised %r", e)
        return

    if allow_equivalent and out == _PLAINTEXT:
        stats.equivalent += 1
    else:
        stats.unexpected_success += 1


def fuzz_token_bytes(stats: FuzzStats, sender: Sender, recipient: Recipient, *, iters: int, rng: random.Random) -> None:
    token = sender.seal(_PLAINTEXT).encode("utf-8")
    for _ in range(iters):
        _try_unseal(stats, recipient, _flip_one_bit(token, rng), allow_equivalent=True)


def _mutate_b64(value: str, rng: random.Random) -> str:
    raw = base64.b64decode(value)
    return base64.b64encode(_flip_one_bit(raw, rng)).decode("ascii")


def fuzz_token_fields(stats: FuzzStats, sender: Sender, recipient: Recipient, *, iters: int, rng: random.Random) -> None:
    """Flip one bit of decoded content inside a signed or encrypted field."""
    for _ in range(iters):
        doc = json.loads(sender.seal(_PLAINTEXT))
        targets = ["signature", "encryptedMessage", "ephemeralPublicKey", "tag"]
        if JSON_INTERMEDIATE_SIGNING_KEY in doc:
            targets += ["certSignature", "signedKey"]
        target = rng.choice(targets)

        if target == "signature":
            doc[JSON_SIGNATURE_KEY] = _mutate_b64(doc[JSON_SIGNATURE_KEY], rng)
        elif target == "certSignature":
            sigs = doc[JSON_INTERMEDIATE_SIGNING_KEY][JSON_SIGNATURES_KEY]
            i = rng.randrange(len(sigs))
            sigs[i] = _mutate_b64(sigs[i], rng)
        elif target == "signedKey":
            cert = doc[JSON_INTERMEDIATE_SIGNING_KEY]
            sk = json.loads(cert["signedKey"])
            sk["keyValue"] = _mutate_b64(sk["keyValue"], rng)
            cert["signedKey"] = json.dumps(sk, separators=(",", ":"))
        else:
            inner = json.loads(doc[JSON_SIGNED_MESSAGE_KEY])
            inner[target] = _mutate_b64(inner[target], rng)
            doc[JSON_SIGNED_MESSAGE_KEY] = json.dumps(inner, separators=(",", ":"))

        _try_unseal(stats, recipient, json.dumps(doc), allow_equivalent=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--iters", type=int, default=300)
    ap.add_argument("--version", type=str, default="ECv1")
    ap.add_argument("--seed", type=int, default=155)
    args = ap.parse_args(argv)

    setup_logging()
    rng = random.Random(args.seed)
    sender, recipient = make_pair(args.version)

    print(f"=== Token Fuzz Tester ({args.version}) ===")
    print("")

    stats_bytes = FuzzStats()
    fuzz_token_bytes(stats_bytes, sender, recipient, iters=args.iters, rng=rng)
    print("[BYTES] fuzz done")
    print(f"  rejected={stats_bytes.rejected}")
    print(f"  equivalent(padding bits)={stats_bytes.equivalent}")
    print(f"  unexpected_success={stats_bytes.unexpected_success}")
    print(f"  exceptions={stats_bytes.exceptions}")
    print("")

    stats_fields = FuzzStats()
    fuzz_token_fields(stats_fields, sender, recipient, iters=args.iters, rng=rng)
    print("[FIELDS] fuzz done")
    print(f"  rejected={stats_fields.rejected}")
    print(f"  unexpected_success={stats_fields.unexpected_success}")
    print(f"  exceptions={stats_fields.exceptions}")
    print("")
    print("=== DONE ===")

    bad = stats_bytes.unexpected_success + stats_bytes.exceptions
    bad += stats_fields.unexpected_success + stats_fields.exceptions
    return 1 if bad else 0


if __name__ == "__main__":
    raise SystemExit(main())
