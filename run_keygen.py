# MIT License © 2025 Motohiro Suzuki
"""
Recipient key generator

- Generates a P-256 key pair for receiving payment method tokens
- Writes private_key.txt (PKCS8, base64) and public_key.txt (raw point, base64)
- Output directory: --out, else $PMT_KEYGEN_DIR, else current directory

Run:
  python3 run_keygen.py --out ./keys
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from pmt_diagnostics.logging_config import setup_logging
from pmt_protocol.keygen import KeyGenConfig, write_recipient_keys

logger = logging.getLogger("run_keygen")


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Generate a recipient key pair for payment method tokens")
    ap.add_argument("--out", type=str, default=None, help="output directory")
    ap.add_argument("--force", action="store_true", help="overwrite existing key files")
    args = ap.parse_args(argv)

    setup_logging()

    cfg = KeyGenConfig.from_env()
    if args.out:
        cfg = KeyGenConfig(out_dir=Path(args.out), overwrite=args.force)
    elif args.force:
        cfg = KeyGenConfig(out_dir=cfg.out_dir, overwrite=True)

    try:
        sk_path, pk_path = write_recipient_keys(cfg)
    except FileExistsError as e:
        logger.error("%s (use --force)", e)
        return 1

    print(f"private key: {sk_path}")
    print(f"public key : {pk_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
