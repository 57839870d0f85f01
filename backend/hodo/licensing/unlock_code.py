"""Unlock code wire format and minting.

The code a user pastes is ``"<wrappedKeyAndIv>,<payload>"`` and its
plaintext is ``"<username>,<yyyyMMdd>"``.
"""

import re
import secrets
import string
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .crypto import AES_IV_LENGTH, AES_KEY_LENGTH, encrypt_payload, wrap_key_and_iv

DATE_FORMAT = "%Y%m%d"
_DATE_RE = re.compile(r"^\d{8}$")

# Printable alphabet for the key and IV; they are carried as ASCII text
_KEY_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class UnlockCode:
    """The two base64 halves of an unlock code."""
    wrapped_key_and_iv: str
    payload: str

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["UnlockCode"]:
        """Split a stored or pasted code; None unless it has exactly two non-empty parts."""
        if not raw:
            return None
        parts = raw.split(",")
        if len(parts) != 2:
            return None
        wrapped, payload = (p.strip() for p in parts)
        if not wrapped or not payload:
            return None
        return cls(wrapped_key_and_iv=wrapped, payload=payload)

    def __str__(self) -> str:
        return f"{self.wrapped_key_and_iv},{self.payload}"


@dataclass(frozen=True)
class UnlockClaim:
    """Decrypted content of an unlock code."""
    username: str
    date: str  # yyyyMMdd

    @classmethod
    def parse(cls, plaintext: Optional[str], strip: bool = False) -> Optional["UnlockClaim"]:
        """
        Parse ``username,yyyyMMdd``; None unless it has exactly two non-empty parts.

        Parts are taken verbatim unless ``strip`` is set.
        """
        if not plaintext:
            return None
        parts = plaintext.split(",")
        if len(parts) != 2:
            return None
        username, day = (p.strip() for p in parts) if strip else parts
        if not username or not day:
            return None
        return cls(username=username, date=day)

    @property
    def has_valid_date(self) -> bool:
        return bool(_DATE_RE.match(self.date))


def format_day(day: date) -> str:
    return day.strftime(DATE_FORMAT)


def _random_text(length: int) -> str:
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(length))


def mint_unlock_code(public_key_pem: bytes, username: str, day: date) -> UnlockCode:
    """
    Produce an unlock code for a user, valid for activation on ``day``.

    Args:
        public_key_pem: The target installation's RSA public key
        username: Account the code unlocks
        day: Calendar day on which the code may be redeemed

    Returns:
        The unlock code; ``str(code)`` is what the user pastes
    """
    username = username.strip()
    if not username or "," in username:
        raise ValueError("Username must be non-empty and must not contain commas")

    aes_key = _random_text(AES_KEY_LENGTH)
    iv = _random_text(AES_IV_LENGTH)
    plaintext = f"{username},{format_day(day)}"
    return UnlockCode(
        wrapped_key_and_iv=wrap_key_and_iv(public_key_pem, aes_key, iv),
        payload=encrypt_payload(aes_key, iv, plaintext),
    )
