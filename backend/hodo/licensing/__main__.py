"""Licensing tools for Hodo installations.

Usage:
    python -m hodo.licensing keygen --out-dir DIR
    python -m hodo.licensing mint --public-key FILE --username NAME [--date YYYY-MM-DD] [--emp-no N]
    python -m hodo.licensing check-key [--private-key FILE]

Commands:
    keygen      Write a new RSA keypair (``auth`` private, ``auth.pub`` public)
    mint        Print an unlock code for a user and, with --emp-no, log the issuance
    check-key   Verify that the installation's private key parses
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from ..config import Settings
from .crypto import HybridDecryptor, generate_keypair
from .issuance import record_issuance
from .unlock_code import format_day, mint_unlock_code

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("hodo.licensing.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hodo.licensing", description="Hodo licensing tools")
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Generate an installation keypair")
    keygen.add_argument("--out-dir", type=Path, required=True, help="Directory for auth and auth.pub")

    mint = sub.add_parser("mint", help="Mint an unlock code")
    mint.add_argument("--public-key", type=Path, required=True, help="Installation public key (PEM)")
    mint.add_argument("--username", required=True, help="Account to unlock")
    mint.add_argument("--date", type=date.fromisoformat, default=None, help="Redemption day (default: today)")
    mint.add_argument("--emp-no", default="", help="Issuer employee number; enables the issuance log")
    mint.add_argument("--record-file", type=Path, default=None, help="Issuance log path")

    check = sub.add_parser("check-key", help="Validate the installation private key")
    check.add_argument("--private-key", type=Path, default=None, help="Private key path (default: configured)")

    return parser


def cmd_keygen(args) -> int:
    out_dir: Path = args.out_dir
    private_path = out_dir / "auth"
    if private_path.exists():
        logger.error(f"Refusing to overwrite existing key at {private_path}")
        return 1
    out_dir.mkdir(parents=True, exist_ok=True)
    private_pem, public_pem = generate_keypair()
    private_path.write_bytes(private_pem)
    private_path.chmod(0o600)
    (out_dir / "auth.pub").write_bytes(public_pem)
    logger.info(f"Keypair written to {out_dir}")
    return 0


def cmd_mint(args) -> int:
    day = args.date or date.today()
    code = mint_unlock_code(args.public_key.read_bytes(), args.username, day)
    if args.emp_no:
        record_file = args.record_file or Settings().issuance_log_path
        record_issuance(record_file, args.username.strip(), format_day(day), args.emp_no.strip())
        logger.info(f"Issuance recorded in {record_file}")
    print(str(code))
    return 0


def cmd_check_key(args) -> int:
    path = args.private_key or Settings().private_key_path
    if HybridDecryptor.from_file(path).validate_private_key():
        logger.info(f"Private key at {path} is valid")
        return 0
    logger.error(f"Private key at {path} is missing or invalid")
    return 1


COMMANDS = {
    "keygen": cmd_keygen,
    "mint": cmd_mint,
    "check-key": cmd_check_key,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
