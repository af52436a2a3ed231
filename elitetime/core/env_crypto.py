"""
Symmetric encryption of the local secrets file.

``.env`` is encrypted into ``.env.enc`` with AES-256-GCM. The key is the
SHA-256 digest of ``MASTER_KEY``; the file holds
``base64(nonce || ciphertext || tag)``.

Usage::

    MASTER_KEY=... python -m elitetime.core.env_crypto encrypt
    MASTER_KEY=... python -m elitetime.core.env_crypto decrypt --output .env
"""
import argparse
import base64
import hashlib
import io
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
DEFAULT_PLAIN_FILE = ".env"
DEFAULT_ENCRYPTED_FILE = ".env.enc"


class EnvCryptoError(Exception):
    """Raised when the secrets file cannot be encrypted or decrypted"""


def get_master_key(master_key: Optional[str] = None) -> bytes:
    secret = master_key or os.getenv("MASTER_KEY")
    if not secret:
        raise EnvCryptoError("MASTER_KEY is not set")
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt_bytes(plaintext: bytes, master_key: Optional[str] = None) -> bytes:
    key = get_master_key(master_key)
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
    return base64.b64encode(nonce + ciphertext)


def decrypt_bytes(payload: bytes, master_key: Optional[str] = None) -> bytes:
    key = get_master_key(master_key)
    try:
        raw = base64.b64decode(payload.strip(), validate=True)
    except ValueError as e:
        raise EnvCryptoError(f"Encrypted payload is not valid base64: {e}") from e

    if len(raw) <= NONCE_SIZE:
        raise EnvCryptoError("Encrypted payload is truncated")

    nonce, ciphertext = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise EnvCryptoError("Decryption failed: wrong MASTER_KEY or tampered file") from e


def encrypt_env_file(
    source: str = DEFAULT_PLAIN_FILE,
    destination: str = DEFAULT_ENCRYPTED_FILE,
    master_key: Optional[str] = None,
) -> Path:
    src = Path(source)
    if not src.exists():
        raise EnvCryptoError(f"{source} not found")

    dst = Path(destination)
    dst.write_bytes(encrypt_bytes(src.read_bytes(), master_key))
    logger.info(f"Encrypted {src} -> {dst}")
    return dst


def decrypt_env_file(
    source: str = DEFAULT_ENCRYPTED_FILE,
    master_key: Optional[str] = None,
) -> str:
    src = Path(source)
    if not src.exists():
        raise EnvCryptoError(f"{source} not found")
    return decrypt_bytes(src.read_bytes(), master_key).decode("utf-8")


def load_encrypted_env(source: str = DEFAULT_ENCRYPTED_FILE) -> bool:
    """
    Merge the decrypted secrets into ``os.environ``.

    Variables already present in the environment win. Returns False when
    there is nothing to load (no file or no MASTER_KEY).
    """
    if not Path(source).exists() or not os.getenv("MASTER_KEY"):
        return False

    content = decrypt_env_file(source)
    load_dotenv(stream=io.StringIO(content), override=False)
    logger.info(f"Loaded environment from {source}")
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Encrypt or decrypt the Elite Time env file")
    parser.add_argument("command", choices=["encrypt", "decrypt"])
    parser.add_argument("--input", "-i", default=None)
    parser.add_argument("--output", "-o", default=None)
    args = parser.parse_args(argv)

    try:
        if args.command == "encrypt":
            dst = encrypt_env_file(
                args.input or DEFAULT_PLAIN_FILE,
                args.output or DEFAULT_ENCRYPTED_FILE,
            )
            print(f"Encrypted file written to {dst}")
        else:
            content = decrypt_env_file(args.input or DEFAULT_ENCRYPTED_FILE)
            if args.output:
                Path(args.output).write_text(content, encoding="utf-8")
                print(f"Decrypted file written to {args.output}")
            else:
                sys.stdout.write(content)
    except EnvCryptoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
