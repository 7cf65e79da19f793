# MIT License © 2025 Motohiro Suzuki
"""
Recipient key pair generation.

Output format is what Sender/Recipient configs accept directly:
- private_key.txt : PKCS8 DER, base64  -> RecipientConfig.recipient_private_keys
- public_key.txt  : raw uncompressed point, base64 -> SenderConfig.recipient_public_key
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pmt_crypto.ec_keys import b64encode, encode_pkcs8, encode_point, generate_private_key

logger = logging.getLogger(__name__)

PRIVATE_KEY_FILE = "private_key.txt"
PUBLIC_KEY_FILE = "public_key.txt"


@dataclass(frozen=True)
class RecipientKeyPair:
    private_key_pkcs8_b64: str
    public_key_point_b64: str


@dataclass(frozen=True)
class KeyGenConfig:
    out_dir: Path = Path(".")
    overwrite: bool = False

    @staticmethod
    def from_env(default: str = ".") -> "KeyGenConfig":
        v = os.getenv("PMT_KEYGEN_DIR", default).strip() or default
        return KeyGenConfig(out_dir=Path(v))


def generate_recipient_keys() -> RecipientKeyPair:
    sk = generate_private_key()
    return RecipientKeyPair(
        private_key_pkcs8_b64=b64encode(encode_pkcs8(sk)),
        public_key_point_b64=b64encode(encode_point(sk.public_key())),
    )


def write_recipient_keys(cfg: KeyGenConfig, keys: Optional[RecipientKeyPair] = None) -> tuple[Path, Path]:
    out = Path(cfg.out_dir)
    out.mkdir(parents=True, exist_ok=True)

    sk_path = out / PRIVATE_KEY_FILE
    pk_path = out / PUBLIC_KEY_FILE
    if not cfg.overwrite:
        for p in (sk_path, pk_path):
            if p.exists():
                raise FileExistsError(f"refusing to overwrite {p}")

    kp = keys or generate_recipient_keys()
    sk_path.write_text(kp.private_key_pkcs8_b64 + "\n", encoding="ascii")
    pk_path.write_text(kp.public_key_point_b64 + "\n", encoding="ascii")
    try:
        os.chmod(sk_path, 0o600)
    except OSError as e:
        logger.warning("could not restrict permissions on %s: %s", sk_path, e)

    logger.info("recipient keys written: private=%s public=%s", sk_path, pk_path)
    return sk_path, pk_path
