"""
Hybrid RSA-OAEP + AES-256-CBC decryption for unlock codes.

An unlock code is two base64 strings:

1. the RSA-OAEP (SHA-256) encryption of a 48-character ASCII string whose
   first 32 characters are the AES key and last 16 the IV;
2. the AES-256-CBC (PKCS7) encryption of the plaintext under that key/IV.

The key and IV travel as text, not random binary. The minting side must
produce printable characters and this side re-encodes them as ASCII.
"""

import base64
import binascii
from pathlib import Path
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, padding as sym_padding, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import DecryptionFailed
from ..logging import get_logger

# RSA configuration (must match the minting tool)
RSA_KEY_BITS = 2048
RSA_PUBLIC_EXPONENT = 65537

# AES-CBC configuration
AES_KEY_LENGTH = 32  # 256 bits
AES_IV_LENGTH = 16
AES_BLOCK_BITS = 128

logger = get_logger("licensing")


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


class HybridDecryptor:
    """Decrypts unlock codes with the installation's RSA private key."""

    def __init__(self, private_key_pem: Optional[bytes]):
        self._pem = private_key_pem
        self._key: Optional[rsa.RSAPrivateKey] = None

    @classmethod
    def from_file(cls, path: Path) -> "HybridDecryptor":
        """Read the PEM once at startup. A missing file yields a keyless engine."""
        try:
            pem = Path(path).read_bytes()
        except OSError as e:
            logger.error(f"Private key could not be read from {path}: {e.strerror}")
            pem = None
        return cls(pem)

    def _load_key(self) -> rsa.RSAPrivateKey:
        if self._key is None:
            if not self._pem:
                raise ValueError("No private key configured")
            key = serialization.load_pem_private_key(self._pem, password=None)
            if not isinstance(key, rsa.RSAPrivateKey):
                raise ValueError("Private key is not an RSA key")
            self._key = key
        return self._key

    def validate_private_key(self) -> bool:
        """Check that the configured key parses, without decrypting anything."""
        try:
            self._load_key()
            return True
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            logger.error(f"Private key validation failed: {type(e).__name__}")
            return False

    def decrypt(self, wrapped_key_and_iv: str, payload: str) -> str:
        """
        Recover the plaintext of an unlock code.

        Args:
            wrapped_key_and_iv: Base64 RSA-OAEP ciphertext of the key+IV text
            payload: Base64 AES-256-CBC ciphertext

        Returns:
            Decrypted plaintext string

        Raises:
            DecryptionFailed: for every failure, whichever stage it occurred in
        """
        try:
            private_key = self._load_key()
            key_and_iv = private_key.decrypt(_b64decode(wrapped_key_and_iv), _oaep()).decode("ascii")
            aes_key = key_and_iv[:AES_KEY_LENGTH].encode("ascii")
            iv = key_and_iv[AES_KEY_LENGTH:].encode("ascii")
            if len(aes_key) != AES_KEY_LENGTH or len(iv) != AES_IV_LENGTH:
                raise ValueError("Unexpected key or IV length")

            decryptor = Cipher(algorithms.AES(aes_key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(_b64decode(payload)) + decryptor.finalize()
            unpadder = sym_padding.PKCS7(AES_BLOCK_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            # UnicodeDecodeError, binascii.Error and InvalidKey errors are ValueErrors
            logger.debug(f"Unlock code decryption failed: {type(e).__name__}")
            raise DecryptionFailed() from None


def _b64decode(value: str) -> bytes:
    if not isinstance(value, str) or not value:
        raise ValueError("Expected a non-empty base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise ValueError("Invalid base64") from e


# --- Encryption side (unlock code minting, fixtures) ---

def generate_keypair(bits: int = RSA_KEY_BITS) -> tuple[bytes, bytes]:
    """
    Generate an RSA keypair for an installation.

    Returns:
        Tuple of (private_pem, public_pem)
    """
    key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=bits)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def wrap_key_and_iv(public_key_pem: bytes, aes_key: str, iv: str) -> str:
    """
    Encrypt the ASCII key and IV with the installation's public key.

    Args:
        public_key_pem: PEM-encoded RSA public key
        aes_key: 32 printable ASCII characters
        iv: 16 printable ASCII characters

    Returns:
        Base64-encoded RSA-OAEP ciphertext
    """
    public_key = serialization.load_pem_public_key(public_key_pem)
    wrapped = public_key.encrypt((aes_key + iv).encode("ascii"), _oaep())
    return base64.b64encode(wrapped).decode("ascii")


def encrypt_payload(aes_key: str, iv: str, plaintext: str) -> str:
    """
    Encrypt plaintext using AES-256-CBC with PKCS7 padding.

    Returns:
        Base64-encoded ciphertext
    """
    padder = sym_padding.PKCS7(AES_BLOCK_BITS).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(aes_key.encode("ascii")), modes.CBC(iv.encode("ascii"))).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(ciphertext).decode("ascii")
